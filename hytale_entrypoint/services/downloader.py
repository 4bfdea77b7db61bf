"""
Manages the Hytale downloader executable – optionally fetching it, and invoking
it for server downloads and update checks.

The downloader writes the server zip into its working directory, so it is
always run from the server directory.  Only its exit status is interpreted;
everything it prints is relayed to the log.
"""

import io
import logging
import os
import re
import zipfile
from typing import Callable, Optional

import requests

from hytale_entrypoint.config import DOWNLOADER_LINUX, BootstrapConfig
from hytale_entrypoint.errors import PrerequisiteError
from hytale_entrypoint.utils.paths import ensure_dir, is_executable
from hytale_entrypoint.utils.process import CommandRunner

logger = logging.getLogger(__name__)

_FETCH_HEADERS = {
    "User-Agent": "hytale-entrypoint",
    "Accept": "application/zip,*/*",
}


# ---------------------------------------------------------------------------
# Locating / fetching the binary
# ---------------------------------------------------------------------------

def has_downloader(config: BootstrapConfig) -> bool:
    return is_executable(config.downloader_bin)


def ensure_downloader(config: BootstrapConfig) -> str:
    """Return the downloader path, fetching it first if allowed.  Raises if unusable."""
    if has_downloader(config):
        return config.downloader_bin
    if config.fetch_downloader and not os.path.exists(config.downloader_bin):
        fetch_downloader(config)
        if has_downloader(config):
            return config.downloader_bin
    raise PrerequisiteError(
        f"Downloader binary not found or not executable at {config.downloader_bin}"
    )


def fetch_downloader(config: BootstrapConfig) -> str:
    """Download the downloader zip and install the Linux binary at ``downloader_bin``."""
    logger.info("Fetching Hytale downloader from %s...", config.downloader_url)
    try:
        resp = requests.get(config.downloader_url, timeout=60, headers=_FETCH_HEADERS)
        resp.raise_for_status()
    except requests.RequestException as exc:
        raise PrerequisiteError(f"Could not fetch downloader: {exc}") from exc

    try:
        with zipfile.ZipFile(io.BytesIO(resp.content)) as zf:
            member = _find_binary_member(zf.namelist())
            if not member:
                raise PrerequisiteError("Could not find downloader binary in zip.")
            ensure_dir(os.path.dirname(os.path.abspath(config.downloader_bin)))
            staging = config.downloader_bin + ".part"
            with zf.open(member) as src, open(staging, "wb") as dst:
                dst.write(src.read())
    except zipfile.BadZipFile as exc:
        raise PrerequisiteError(f"Downloader archive is not a valid zip: {exc}") from exc

    os.chmod(staging, 0o755)
    os.replace(staging, config.downloader_bin)
    logger.info("Downloader ready at %s", config.downloader_bin)
    return config.downloader_bin


def _find_binary_member(names: list[str]) -> Optional[str]:
    for name in names:
        if os.path.basename(name.rstrip("/")) == DOWNLOADER_LINUX:
            return name
    for name in names:
        if "linux" in name.lower() and "amd64" in name and not name.endswith("/"):
            return name
    return None


# ---------------------------------------------------------------------------
# Output relaying
# ---------------------------------------------------------------------------

# Matches lines like: [====...] 91.0% (1.3 GB / 1.4 GB)
_PROGRESS_RE = re.compile(r'(\d+\.?\d*)%\s*\(([^)]+)\)')


def parse_progress(line: str) -> tuple[float, str] | None:
    """Return ``(percent, detail)`` for a downloader progress line, else None."""
    m = _PROGRESS_RE.search(line)
    if m:
        return float(m.group(1)), m.group(2).strip()
    return None


def make_output_handler(step: int = 10) -> Callable[[str], None]:
    """
    Return a callback relaying downloader output to the log.  Progress lines
    are only logged when they reach a new multiple of *step* percent.
    """
    last = {"bucket": -1}

    def _handler(line: str):
        if not line.strip():
            return
        prog = parse_progress(line)
        if prog is None:
            logger.info("[downloader] %s", line)
            return
        bucket = int(prog[0]) // step
        if bucket > last["bucket"]:
            last["bucket"] = bucket
            logger.info("[downloader] %.1f%% (%s)", prog[0], prog[1])
    return _handler


# ---------------------------------------------------------------------------
# Invoking the downloader
# ---------------------------------------------------------------------------

def download_command(config: BootstrapConfig, credentials: str) -> list[str]:
    cmd = [config.downloader_bin, "-credentials-path", credentials]
    if config.patchline:
        cmd += ["-patchline", config.patchline]
    return cmd


def check_update_command(config: BootstrapConfig, credentials: Optional[str] = None) -> list[str]:
    cmd = [config.downloader_bin, "-check-update"]
    if credentials:
        cmd += ["-credentials-path", credentials]
    return cmd


def download_server(config: BootstrapConfig, runner: CommandRunner, credentials: str) -> int:
    """Run the downloader in acquisition mode.  Returns its exit status."""
    result = runner.run(
        download_command(config, credentials),
        cwd=config.server_dir,
        on_output=make_output_handler(),
    )
    if result.stderr:
        logger.error("%s", result.stderr)
    return result.returncode


def check_update(
    config: BootstrapConfig,
    runner: CommandRunner,
    credentials: Optional[str] = None,
) -> int:
    """Run the downloader in update-check mode.  Returns its exit status."""
    result = runner.run(
        check_update_command(config, credentials),
        cwd=config.server_dir,
        on_output=make_output_handler(),
    )
    if result.stderr:
        logger.warning("%s", result.stderr)
    return result.returncode
