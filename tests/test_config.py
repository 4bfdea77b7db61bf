import os

import pytest
from pydantic import ValidationError

from hytale_entrypoint.config import (
    DEFAULT_DOWNLOADER_BIN,
    DEFAULT_EXTRACT_DIR,
    DEFAULT_SERVER_DIR,
    DOWNLOADER_ZIP_URL,
    BootstrapConfig,
    is_truthy,
)
from hytale_entrypoint.errors import ConfigurationError


@pytest.mark.parametrize("value", ["1", "true", "TRUE", "Yes", "y", " yes "])
def test_truthy_values(value):
    assert is_truthy(value) is True


@pytest.mark.parametrize("value", [None, "", "0", "false", "no", "on", "enabled"])
def test_falsy_values(value):
    assert is_truthy(value) is False


def test_defaults_from_empty_environment():
    config = BootstrapConfig.from_env({})

    assert config.server_dir == DEFAULT_SERVER_DIR
    assert config.downloader_bin == DEFAULT_DOWNLOADER_BIN
    assert config.extract_dir == DEFAULT_EXTRACT_DIR
    assert config.downloader_url == DOWNLOADER_ZIP_URL
    assert config.credentials_file == ""
    assert config.check_for_update is False
    assert config.keep_zip is False
    assert config.fetch_downloader is False
    assert config.jvm_args == []
    assert config.jar_path == "/server/HytaleServer.jar"
    assert config.assets_path == "/server/Assets.zip"


def test_reads_environment(tmp_path):
    config = BootstrapConfig.from_env({
        "SERVER_DIR": str(tmp_path),
        "CREDENTIALS_FILE": "creds.json",
        "CHECK_FOR_UPDATE": "Yes",
        "KEEP_ZIP": "1",
        "DOWNLOADER_BIN": "/opt/dl",
        "EXTRACT_DIR": str(tmp_path / "x"),
        "PATCHLINE": "pre-release",
        "JVM_ARGS": "-Xms2G -Xmx4G",
        "SERVER_ARGS": "--bind 0.0.0.0:5520",
        "LOG_LEVEL": "debug",
    })

    assert config.server_dir == str(tmp_path)
    assert config.credentials_file == "creds.json"
    assert config.check_for_update is True
    assert config.keep_zip is True
    assert config.downloader_bin == "/opt/dl"
    assert config.patchline == "pre-release"
    assert config.jvm_args == ["-Xms2G", "-Xmx4G"]
    assert config.server_args == ["--bind", "0.0.0.0:5520"]
    assert config.log_level == "DEBUG"
    assert config.jar_path == os.path.join(str(tmp_path), "HytaleServer.jar")


def test_blank_values_fall_back_to_defaults():
    config = BootstrapConfig.from_env({"SERVER_DIR": "  ", "CREDENTIALS_FILE": ""})

    assert config.server_dir == DEFAULT_SERVER_DIR
    assert config.credentials_file == ""


def test_relative_server_dir_is_made_absolute(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    config = BootstrapConfig.from_env({"SERVER_DIR": "data"})
    assert config.server_dir == os.path.join(str(tmp_path), "data")


def test_config_is_frozen():
    config = BootstrapConfig()
    with pytest.raises(ValidationError):
        config.keep_zip = True


@pytest.mark.parametrize("name", ["JVM_ARGS", "SERVER_ARGS"])
def test_unbalanced_quotes_are_a_configuration_error(name):
    with pytest.raises(ConfigurationError, match=name):
        BootstrapConfig.from_env({name: '-Dname="unterminated'})
