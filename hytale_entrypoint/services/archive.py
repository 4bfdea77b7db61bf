"""
Server archives – finding the zip the downloader produced, checking it,
extracting it and moving the server files into place.
"""

import logging
import os
import shutil
import zipfile
from typing import Optional

from hytale_entrypoint.config import ASSETS_ZIP, SERVER_AOT, SERVER_JAR, BootstrapConfig
from hytale_entrypoint.errors import AcquisitionError
from hytale_entrypoint.utils.paths import atomic_copy

logger = logging.getLogger(__name__)

# Subfolders of the downloaded zip the server binaries usually live in.
_NESTED_DIRS = ("server", "Server")


# ---------------------------------------------------------------------------
# Discovery
# ---------------------------------------------------------------------------

def find_latest_archive(server_dir: str) -> Optional[str]:
    """
    Return the most recently modified ``*.zip`` directly inside *server_dir*,
    or None.  Ties on modification time go to the lexically greatest name.
    """
    try:
        names = os.listdir(server_dir)
    except FileNotFoundError:
        return None

    newest = None
    newest_key = None
    for name in names:
        if not name.endswith(".zip"):
            continue
        path = os.path.join(server_dir, name)
        if not os.path.isfile(path):
            continue
        key = (os.stat(path).st_mtime_ns, name)
        if newest_key is None or key > newest_key:
            newest, newest_key = path, key
    return newest


# ---------------------------------------------------------------------------
# Verify / extract
# ---------------------------------------------------------------------------

def verify_archive(path: str) -> bool:
    """True if *path* is a readable zip whose members all pass their CRC check."""
    try:
        with zipfile.ZipFile(path, "r") as zf:
            bad = zf.testzip()
    except (zipfile.BadZipFile, OSError, EOFError) as exc:
        logger.debug("Integrity test of %s failed: %s", path, exc)
        return False
    if bad is not None:
        logger.debug("Integrity test of %s failed at member %s", path, bad)
        return False
    return True


def extract_archive(path: str, dest_dir: str) -> None:
    """Extract every entry of *path* into a freshly emptied *dest_dir*."""
    if os.path.isdir(dest_dir):
        shutil.rmtree(dest_dir)
    os.makedirs(dest_dir)

    with zipfile.ZipFile(path, "r") as zf:
        zf.extractall(dest_dir)


# ---------------------------------------------------------------------------
# Install
# ---------------------------------------------------------------------------

def locate_artifact(extract_dir: str, name: str) -> Optional[str]:
    """Find *name* at the top of *extract_dir*, then under ``server/``, then anywhere."""
    direct = os.path.join(extract_dir, name)
    if os.path.isfile(direct):
        return direct

    for sub in _NESTED_DIRS:
        nested = os.path.join(extract_dir, sub, name)
        if os.path.isfile(nested):
            return nested

    for root, dirs, files in os.walk(extract_dir):
        dirs.sort()
        if name in files:
            return os.path.join(root, name)
    return None


def install_artifacts(config: BootstrapConfig, extract_dir: str) -> dict[str, str]:
    """
    Copy the jar and assets out of *extract_dir* into the server directory.

    Both are located before either is written.  The AOT cache is installed
    too when the archive ships one.  Returns ``{name: installed_path}``.
    """
    targets = {SERVER_JAR: config.jar_path, ASSETS_ZIP: config.assets_path}
    found = {}
    for name in targets:
        logger.info("Locating %s...", name)
        src = locate_artifact(extract_dir, name)
        if src is None:
            raise AcquisitionError(f"{name} not found in extracted contents.")
        found[name] = src

    aot = locate_artifact(extract_dir, SERVER_AOT)
    if aot is not None:
        targets[SERVER_AOT] = config.aot_path
        found[SERVER_AOT] = aot

    installed = {}
    for name, src in found.items():
        installed[name] = atomic_copy(src, targets[name])
        logger.info("Installed %s", installed[name])
    return installed
