"""
Downloader credentials – locating the user's file and staging a private copy.

The credentials are usually mounted read-only, but the downloader refreshes its
session by writing back to the file it was given, so it always works on a
writable copy.
"""

import logging
import os
import shutil

from hytale_entrypoint.errors import ConfigurationError

logger = logging.getLogger(__name__)


def resolve_credentials_path(value: str, server_dir: str) -> str:
    """Return *value* unchanged if absolute, else joined onto *server_dir*."""
    value = (value or "").strip()
    if not value:
        raise ConfigurationError("CREDENTIALS_FILE environment variable is not set.")
    if os.path.isabs(value):
        return value
    return os.path.join(server_dir, value)


def stage_credentials(src: str, dest: str) -> str:
    """Copy *src* to *dest* readable and writable by the owner only."""
    if not os.path.isfile(src):
        raise ConfigurationError(f"Credentials file not found at {src} (CREDENTIALS_FILE)")
    if os.path.realpath(src) == os.path.realpath(dest):
        raise ConfigurationError(
            f"CREDENTIALS_FILE and STAGED_CREDENTIALS_PATH both point at {src}; "
            "the staged copy must be a separate file."
        )

    os.makedirs(os.path.dirname(os.path.abspath(dest)), exist_ok=True)
    fd = os.open(dest, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
    try:
        with os.fdopen(fd, "wb") as dst, open(src, "rb") as source:
            # O_CREAT's mode is ignored for an existing file
            os.fchmod(dst.fileno(), 0o600)
            shutil.copyfileobj(source, dst)
    except BaseException:
        os.remove(dest)
        raise
    logger.debug("Staged credentials %s -> %s", src, dest)
    return dest
