"""
Server handoff – builds the Java command line and replaces the entrypoint
process with it.

After ``os.execvp`` the JVM owns the PID, so it receives container signals
and console input directly.  Nothing here runs after a successful handoff.
"""

import logging
import os
import sys
from typing import Callable, NoReturn

from hytale_entrypoint.config import BootstrapConfig
from hytale_entrypoint.errors import PrerequisiteError
from hytale_entrypoint.utils.java import check_java

logger = logging.getLogger(__name__)


def artifacts_present(config: BootstrapConfig) -> bool:
    """True iff both the jar and the assets exist as regular files."""
    return os.path.isfile(config.jar_path) and os.path.isfile(config.assets_path)


def build_server_command(config: BootstrapConfig) -> list[str]:
    cmd = [config.java_bin] + list(config.jvm_args)
    if os.path.isfile(config.aot_path):
        cmd.append(f"-XX:AOTCache={config.aot_path}")
    cmd += ["-jar", config.jar_path, "--assets", config.assets_path]
    cmd += list(config.server_args)
    return cmd


def _flush_logs() -> None:
    for handler in logging.getLogger().handlers:
        handler.flush()
    sys.stdout.flush()
    sys.stderr.flush()


def start_server(
    config: BootstrapConfig,
    execvp: Callable[[str, list[str]], None] = os.execvp,
) -> NoReturn:
    """Hand the process over to the Hytale server.  Does not return."""
    found, detail = check_java(config.java_bin)
    if not found:
        raise PrerequisiteError(detail)
    logger.info("Using %s", detail)

    cmd = build_server_command(config)
    logger.info("Starting Hytale Server...")
    logger.debug("Exec: %s", " ".join(cmd))
    _flush_logs()

    os.chdir(config.server_dir)
    try:
        execvp(cmd[0], cmd)
    except OSError as exc:
        raise PrerequisiteError(f"Could not start server: {exc}") from exc
    # Only reachable when a test substitutes execvp.
    raise SystemExit(0)
