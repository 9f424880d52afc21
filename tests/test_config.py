"""Tests for configuration loading."""

from pathlib import Path

import pytest
import yaml

from casauth.core.cas import ConfigurationError, ProtocolVersion, ResponseFormat
from casauth.core.config import AppConfig, get_default_config_yaml, load_config


class TestLoadConfig:
    """Tests for load_config."""

    def test_defaults(self, isolated_config: Path):
        config = load_config()
        assert config.cas.server_url == ""
        assert config.cas.version == 3
        assert config.server.port == 8080
        assert config.config_path is None

    def test_file(self, isolated_config: Path):
        isolated_config.write_text(
            yaml.safe_dump({"cas": {"server_url": "https://cas.example.org/cas", "version": 2}})
        )
        config = load_config()
        assert config.cas.server_url == "https://cas.example.org/cas"
        assert config.cas.version == 2
        assert config.config_path == isolated_config

    def test_env_overrides_file(self, isolated_config: Path, monkeypatch: pytest.MonkeyPatch):
        isolated_config.write_text(yaml.safe_dump({"cas": {"version": 2, "renew": False}}))
        monkeypatch.setenv("CASAUTH_VERSION", "1")
        monkeypatch.setenv("CASAUTH_RENEW", "true")
        monkeypatch.setenv("CASAUTH_FORMAT", "JSON")
        monkeypatch.setenv("CASAUTH_TIMEOUT", "2.5")
        monkeypatch.setenv("CASAUTH_PORT", "9090")

        config = load_config()
        assert config.cas.version == 1
        assert config.cas.renew is True
        assert config.cas.response_format == "JSON"
        assert config.cas.timeout == 2.5
        assert config.server.port == 9090

    def test_invalid_yaml_ignored(self, isolated_config: Path):
        isolated_config.write_text("cas: [unclosed")
        assert load_config().cas.server_url == ""

    def test_default_yaml_loads(self, isolated_config: Path):
        isolated_config.write_text(get_default_config_yaml())
        config = load_config()
        assert config.cas.server_url == "https://cas.example.org/cas"
        assert config.logging.level == "INFO"


class TestCASSettings:
    """Settings become validated client objects."""

    def test_client_config(self):
        settings = AppConfig.from_dict(
            {"cas": {"server_url": "https://cas.example.org/cas", "version": "2"}}
        ).cas
        config = settings.client_config(lambda result: "ok")
        assert config.version is ProtocolVersion.V2

    def test_client_config_invalid(self):
        settings = AppConfig().cas
        with pytest.raises(ConfigurationError):
            settings.client_config(lambda result: "ok")

    def test_validation_options(self):
        settings = AppConfig.from_dict({"cas": {"response_format": "json"}}).cas
        assert settings.validation_options().response_format is ResponseFormat.JSON


def test_save_round_trip(tmp_path: Path):
    config = AppConfig.from_dict({"cas": {"server_url": "https://cas.example.org/cas"}})
    path = tmp_path / "nested" / "config.yaml"
    config.save(path)
    assert load_config(path).cas.server_url == "https://cas.example.org/cas"
