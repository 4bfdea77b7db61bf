"""
Container start-up flow: make sure the server files are installed (downloading
them on first start, optionally checking for updates on later starts) so the
server can be launched.

``prepare`` does everything up to, but not including, the handoff.  Scratch
files it creates are removed before it returns or raises.
"""

import logging
import os
from typing import Optional

from hytale_entrypoint.config import BootstrapConfig
from hytale_entrypoint.errors import AcquisitionError, BootstrapError, ConfigurationError
from hytale_entrypoint.services import archive
from hytale_entrypoint.services import credentials as creds
from hytale_entrypoint.services import downloader as dl
from hytale_entrypoint.services.server import artifacts_present
from hytale_entrypoint.utils.paths import remove_path
from hytale_entrypoint.utils.process import CommandRunner, SubprocessRunner

logger = logging.getLogger(__name__)


class Scratch:
    """Run-scoped temporary paths, deleted by ``cleanup``."""

    def __init__(self):
        self._paths: list[str] = []

    def track(self, path: str) -> str:
        if path not in self._paths:
            self._paths.append(path)
        return path

    def cleanup(self) -> None:
        if self._paths:
            logger.info("Cleaning up temporary files...")
        while self._paths:
            path = self._paths.pop()
            try:
                remove_path(path)
            except OSError as exc:
                logger.warning("Could not remove %s: %s", path, exc)

    def __enter__(self) -> "Scratch":
        return self

    def __exit__(self, *exc_info) -> None:
        self.cleanup()


# ---------------------------------------------------------------------------
# Archive processing
# ---------------------------------------------------------------------------

def process_zip(config: BootstrapConfig, zip_path: str, scratch: Scratch) -> dict[str, str]:
    """Verify, extract and install *zip_path*; delete it afterwards unless ``keep_zip``."""
    if not archive.verify_archive(zip_path):
        raise AcquisitionError(f"Downloaded zip appears invalid or corrupted: {zip_path}")

    logger.info("Extracting %s...", zip_path)
    archive.extract_archive(zip_path, scratch.track(config.extract_dir))
    installed = archive.install_artifacts(config, config.extract_dir)

    if config.keep_zip:
        logger.info("Keeping %s (KEEP_ZIP)", zip_path)
    else:
        os.remove(zip_path)
        logger.info("Removed %s", zip_path)
    return installed


def _stage(config: BootstrapConfig, scratch: Scratch) -> str:
    src = creds.resolve_credentials_path(config.credentials_file, config.server_dir)
    # Tracked only once staged, so a rejected path is never deleted.
    return scratch.track(creds.stage_credentials(src, config.staged_credentials_path))


# ---------------------------------------------------------------------------
# Flows
# ---------------------------------------------------------------------------

def acquire(config: BootstrapConfig, runner: CommandRunner, scratch: Scratch) -> dict[str, str]:
    """First-start flow: download the server with the user's credentials and install it."""
    source = creds.resolve_credentials_path(config.credentials_file, config.server_dir)
    if not os.path.isfile(source):
        raise ConfigurationError(f"Credentials file not found at {source} (CREDENTIALS_FILE)")
    dl.ensure_downloader(config)

    staged = scratch.track(creds.stage_credentials(source, config.staged_credentials_path))
    logger.info("Downloading Hytale server files...")
    rc = dl.download_server(config, runner, staged)
    if rc != 0:
        raise AcquisitionError(f"Downloader exited with code {rc}. Check your credentials.")

    zip_path = archive.find_latest_archive(config.server_dir)
    if zip_path is None:
        raise AcquisitionError("No zip file found after download.")
    return process_zip(config, zip_path, scratch)


def check_for_update(
    config: BootstrapConfig,
    runner: CommandRunner,
    scratch: Scratch,
) -> Optional[dict[str, str]]:
    """
    Ask the downloader for an update and install any archive it leaves behind.

    A failing check is retried once with credentials when they are configured.
    Problems with the check itself only mean "no update"; a new archive that
    fails to install is still fatal.  Returns the installed paths or None.
    """
    before = archive.find_latest_archive(config.server_dir)
    logger.info("Checking for server updates...")

    if dl.has_downloader(config):
        rc = dl.check_update(config, runner)
        if rc != 0 and config.credentials_file:
            logger.info("Update check failed (exit %d); retrying with credentials...", rc)
            try:
                staged = _stage(config, scratch)
            except BootstrapError as exc:
                logger.warning("Cannot retry update check: %s", exc)
            else:
                rc = dl.check_update(config, runner, staged)
        if rc != 0:
            logger.warning("Update check failed (exit %d); continuing with installed files.", rc)
    else:
        logger.warning(
            "Downloader not found or not executable at %s; skipping update check.",
            config.downloader_bin,
        )

    after = archive.find_latest_archive(config.server_dir)
    if after is None or after == before:
        logger.info("No update found.")
        return None

    logger.info("Update archive found: %s", after)
    return process_zip(config, after, scratch)


def prepare(config: BootstrapConfig, runner: Optional[CommandRunner] = None) -> None:
    """Bring the server directory into a startable state.  Raises ``BootstrapError``."""
    if runner is None:
        runner = SubprocessRunner()

    with Scratch() as scratch:
        if artifacts_present(config):
            logger.info("Server files found. Skipping setup.")
            if config.check_for_update:
                check_for_update(config, runner, scratch)
            return

        logger.info("Server files not found. Beginning setup...")
        acquire(config, runner, scratch)
