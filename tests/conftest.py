import os
import stat
import zipfile
from typing import Callable, Optional

import pytest

from hytale_entrypoint.config import BootstrapConfig
from hytale_entrypoint.utils.process import CommandResult


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def make_zip(path, members: dict) -> str:
    """Write a zip at *path* with ``{arcname: bytes}`` members."""
    path = str(path)
    with zipfile.ZipFile(path, "w", zipfile.ZIP_STORED) as zf:
        for name, data in members.items():
            zf.writestr(name, data)
    return path


def server_zip(path, layout: str = "nested") -> str:
    """A downloader-style archive.  *layout* is ``nested``, ``flat`` or ``deep``."""
    if layout == "flat":
        members = {"HytaleServer.jar": b"jar-v2", "Assets.zip": b"assets-v2"}
    elif layout == "deep":
        members = {
            "release/2026.10.01/bin/HytaleServer.jar": b"jar-v2",
            "release/2026.10.01/Assets.zip": b"assets-v2",
        }
    else:
        members = {
            "server/HytaleServer.jar": b"jar-v2",
            "server/Licenses/LICENSE.txt": b"license",
            "Assets.zip": b"assets-v2",
        }
    return make_zip(path, members)


def make_executable(path, content: str = "#!/bin/sh\nexit 0\n") -> str:
    path = str(path)
    with open(path, "w") as f:
        f.write(content)
    os.chmod(path, os.stat(path).st_mode | stat.S_IXUSR)
    return path


def snapshot(directory) -> dict:
    """``{relative_path: (size, mtime_ns)}`` for every file under *directory*."""
    result = {}
    for root, _dirs, files in os.walk(str(directory)):
        for name in files:
            full = os.path.join(root, name)
            st = os.stat(full)
            result[os.path.relpath(full, str(directory))] = (st.st_size, st.st_mtime_ns)
    return result


class FakeRunner:
    """Stands in for the downloader.  *script* is called per invocation with
    ``(cmd, cwd)`` and returns the exit code."""

    def __init__(self, script: Optional[Callable[[list, str], int]] = None):
        self.script = script
        self.calls = []

    def run(self, cmd, cwd=None, on_output=None):
        self.calls.append((list(cmd), cwd))
        rc = self.script(cmd, cwd) if self.script else 0
        if on_output:
            on_output(f"fake downloader exited {rc}")
        return CommandResult(rc, "")


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def server_dir(tmp_path):
    d = tmp_path / "server"
    d.mkdir()
    return d


@pytest.fixture
def downloader_bin(tmp_path):
    return make_executable(tmp_path / "hytale-downloader")


@pytest.fixture
def make_config(tmp_path, server_dir, downloader_bin):
    def _make(**overrides) -> BootstrapConfig:
        values = {
            "server_dir": str(server_dir),
            "downloader_bin": downloader_bin,
            "extract_dir": str(tmp_path / "extract"),
            "staged_credentials_path": str(tmp_path / "staged" / "credentials.json"),
        }
        values.update(overrides)
        return BootstrapConfig(**values)
    return _make


@pytest.fixture
def installed(server_dir):
    """Server directory that already holds a jar and assets."""
    (server_dir / "HytaleServer.jar").write_bytes(b"jar-v1")
    (server_dir / "Assets.zip").write_bytes(b"assets-v1")
    return server_dir
