"""
Entrypoint constants and the runtime configuration.

Everything the entrypoint needs is read from the environment exactly once
(``BootstrapConfig.from_env``) and the resulting object is passed to every
operation explicitly.
"""

import os
import shlex
from typing import Mapping, Optional

from pydantic import BaseModel, ConfigDict, field_validator

from hytale_entrypoint.errors import ConfigurationError

# ---------------------------------------------------------------------------
# Entrypoint metadata
# ---------------------------------------------------------------------------

ENTRYPOINT_VERSION = "1.0.0"
APP_NAME = "Hytale Server Entrypoint"

# ---------------------------------------------------------------------------
# Hytale downloader / server file names
# ---------------------------------------------------------------------------

DOWNLOADER_LINUX = "hytale-downloader-linux-amd64"
DOWNLOADER_ZIP_URL = "https://downloader.hytale.com/hytale-downloader.zip"
SERVER_JAR = "HytaleServer.jar"
SERVER_AOT = "HytaleServer.aot"
ASSETS_ZIP = "Assets.zip"

# ---------------------------------------------------------------------------
# Container defaults
# ---------------------------------------------------------------------------

DEFAULT_SERVER_DIR = "/server"
DEFAULT_DOWNLOADER_BIN = "/app/hytale-downloader"
DEFAULT_EXTRACT_DIR = "/tmp/hytale_extract"
DEFAULT_STAGED_CREDENTIALS = "/tmp/hytale_credentials.json"

TRUTHY_VALUES = ("1", "true", "yes", "y")


def is_truthy(value: Optional[str]) -> bool:
    """True for ``1``, ``true``, ``yes`` or ``y`` in any case."""
    if value is None:
        return False
    return value.strip().lower() in TRUTHY_VALUES


def _env(environ: Mapping[str, str], name: str, default: str = "") -> str:
    # Blank values count as unset so ``-e FOO=`` in compose files falls back.
    value = environ.get(name, "")
    if not value or not value.strip():
        return default
    return value.strip()


def _split(environ: Mapping[str, str], name: str) -> list[str]:
    try:
        return shlex.split(_env(environ, name))
    except ValueError as exc:
        raise ConfigurationError(f"{name} could not be parsed: {exc}") from exc


class BootstrapConfig(BaseModel):
    """Immutable settings for one entrypoint run."""

    model_config = ConfigDict(frozen=True)

    server_dir: str = DEFAULT_SERVER_DIR
    credentials_file: str = ""
    check_for_update: bool = False
    keep_zip: bool = False
    downloader_bin: str = DEFAULT_DOWNLOADER_BIN
    extract_dir: str = DEFAULT_EXTRACT_DIR
    staged_credentials_path: str = DEFAULT_STAGED_CREDENTIALS
    fetch_downloader: bool = False
    downloader_url: str = DOWNLOADER_ZIP_URL
    patchline: str = ""
    java_bin: str = "java"
    jvm_args: list[str] = []
    server_args: list[str] = []
    log_level: str = "INFO"

    @field_validator("server_dir", "extract_dir")
    @classmethod
    def _absolute(cls, v: str) -> str:
        return os.path.abspath(v)

    @field_validator("log_level")
    @classmethod
    def _upper(cls, v: str) -> str:
        return v.strip().upper() or "INFO"

    # -- Derived paths --------------------------------------------------------

    @property
    def jar_path(self) -> str:
        return os.path.join(self.server_dir, SERVER_JAR)

    @property
    def assets_path(self) -> str:
        return os.path.join(self.server_dir, ASSETS_ZIP)

    @property
    def aot_path(self) -> str:
        return os.path.join(self.server_dir, SERVER_AOT)

    # -- Construction ---------------------------------------------------------

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "BootstrapConfig":
        """Build the configuration from *environ* (defaults to ``os.environ``)."""
        if environ is None:
            environ = os.environ
        return cls(
            server_dir=_env(environ, "SERVER_DIR", DEFAULT_SERVER_DIR),
            credentials_file=_env(environ, "CREDENTIALS_FILE"),
            check_for_update=is_truthy(environ.get("CHECK_FOR_UPDATE")),
            keep_zip=is_truthy(environ.get("KEEP_ZIP")),
            downloader_bin=_env(environ, "DOWNLOADER_BIN", DEFAULT_DOWNLOADER_BIN),
            extract_dir=_env(environ, "EXTRACT_DIR", DEFAULT_EXTRACT_DIR),
            staged_credentials_path=_env(
                environ, "STAGED_CREDENTIALS_PATH", DEFAULT_STAGED_CREDENTIALS
            ),
            fetch_downloader=is_truthy(environ.get("FETCH_DOWNLOADER")),
            downloader_url=_env(environ, "DOWNLOADER_URL", DOWNLOADER_ZIP_URL),
            patchline=_env(environ, "PATCHLINE"),
            java_bin=_env(environ, "JAVA_BIN", "java"),
            jvm_args=_split(environ, "JVM_ARGS"),
            server_args=_split(environ, "SERVER_ARGS"),
            log_level=_env(environ, "LOG_LEVEL", "INFO"),
        )
