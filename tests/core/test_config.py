"""Tests for configuration loading."""

import json

import pytest

from procmgr.core.config import Config, ExecConfig
from procmgr.core.exceptions import ConfigError


class TestConfigDefaults:
    def test_defaults(self):
        config = Config()

        assert config.exec.default_timeout == 60.0
        assert config.exec.encoding == "utf-8"
        assert config.logging.level == "INFO"
        assert config.metrics_enabled is True

    def test_negative_default_timeout_rejected(self):
        with pytest.raises(ValueError):
            ExecConfig(default_timeout=-5)

    def test_level_is_normalized(self):
        config = Config(logging={"level": "debug"})

        assert config.logging.level == "DEBUG"

    def test_dotted_get(self):
        config = Config()

        assert config.get("exec.default_timeout") == 60.0
        assert config.get("exec.missing", "fallback") == "fallback"


class TestConfigFiles:
    def test_load_yaml(self, temp_dir):
        path = temp_dir / "procmgr.yaml"
        path.write_text("exec:\n  default_timeout: 5\nlogging:\n  level: warning\n")

        config = Config.load_from_file(path)

        assert config.exec.default_timeout == 5.0
        assert config.logging.level == "WARNING"

    def test_load_json(self, temp_dir):
        path = temp_dir / "procmgr.json"
        path.write_text(json.dumps({"metrics_enabled": False}))

        config = Config.load_from_file(path)

        assert config.metrics_enabled is False

    def test_empty_yaml_gives_defaults(self, temp_dir):
        path = temp_dir / "empty.yml"
        path.write_text("")

        assert Config.load_from_file(path).exec.default_timeout == 60.0

    def test_missing_file(self, temp_dir):
        with pytest.raises(ConfigError, match="not found"):
            Config.load_from_file(temp_dir / "nope.yaml")

    def test_unsupported_format(self, temp_dir):
        path = temp_dir / "procmgr.toml"
        path.write_text("")

        with pytest.raises(ConfigError, match="Unsupported"):
            Config.load_from_file(path)

    def test_invalid_values(self, temp_dir):
        path = temp_dir / "bad.yaml"
        path.write_text("logging:\n  level: LOUD\n")

        with pytest.raises(ConfigError):
            Config.load_from_file(path)

    def test_broken_yaml(self, temp_dir):
        path = temp_dir / "broken.yaml"
        path.write_text("exec: [unclosed\n")

        with pytest.raises(ConfigError, match="YAML"):
            Config.load_from_file(path)

    def test_save_then_load(self, temp_dir):
        path = temp_dir / "nested" / "saved.yaml"
        Config(exec={"default_timeout": 12.5}).save_to_file(path)

        assert Config.load_from_file(path).exec.default_timeout == 12.5


class TestConfigEnv:
    def test_load_from_env(self, monkeypatch):
        monkeypatch.setenv("PROCMGR_DEFAULT_TIMEOUT", "2.5")
        monkeypatch.setenv("LOG_LEVEL", "error")
        monkeypatch.setenv("PROCMGR_METRICS", "false")

        config = Config.load_from_env()

        assert config.exec.default_timeout == 2.5
        assert config.logging.level == "ERROR"
        assert config.metrics_enabled is False

    def test_invalid_timeout_env(self, monkeypatch):
        monkeypatch.setenv("PROCMGR_DEFAULT_TIMEOUT", "soon")

        with pytest.raises(ConfigError):
            Config.load_from_env()

    def test_empty_env_gives_defaults(self, monkeypatch):
        for name in ("PROCMGR_DEFAULT_TIMEOUT", "PROCMGR_ENCODING", "LOG_LEVEL", "LOG_FILE", "PROCMGR_METRICS"):
            monkeypatch.delenv(name, raising=False)

        assert Config.load_from_env() == Config()
