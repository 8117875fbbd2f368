"""Tests for the config loader and the environment config manager."""

import json
import os
from pathlib import Path

import pytest

from teamsync.config_loader import (
    DEFAULT_AI_MODEL,
    MAX_REFRESH_SECONDS,
    MIN_REFRESH_SECONDS,
    Config,
    load_config,
)
from teamsync.core.config_manager import ConfigManager, parse_env_file

pytestmark = pytest.mark.unit

ENV_KEYS = [
    "TEAMSYNC_STORE_BACKEND",
    "TEAMSYNC_STORE_PATH",
    "TEAMSYNC_REMOTE_API_URL",
    "TEAMSYNC_REFRESH_INTERVAL",
    "TEAMSYNC_SERVER_BIND",
    "TEAMSYNC_SERVER_PORT",
    "TEAMSYNC_LOG_LEVEL",
    "TEAMSYNC_AI_API_KEY",
    "TEAMSYNC_AI_MODEL",
    "TEAMSYNC_AI_ENDPOINT",
]


@pytest.fixture
def clean_env(monkeypatch):
    """Remove every TEAMSYNC_* variable for the duration of the test."""
    for key in ENV_KEYS:
        monkeypatch.delenv(key, raising=False)
    return monkeypatch


class TestConfigFromDict:
    def test_defaults(self):
        cfg = Config.from_dict(None)
        assert cfg.store_backend == "local"
        assert cfg.store_path == "teamsync.json"
        assert cfg.refresh_interval_seconds == 30
        assert cfg.server_port == 8080
        assert cfg.ai_api_key is None
        assert cfg.ai_model == DEFAULT_AI_MODEL

    @pytest.mark.parametrize(
        "raw, expected",
        [(1, MIN_REFRESH_SECONDS), (99999, MAX_REFRESH_SECONDS), ("60", 60), ("abc", 30)],
    )
    def test_refresh_interval_coerced(self, raw, expected):
        assert Config.from_dict({"refresh_interval_seconds": raw}).refresh_interval_seconds == expected

    def test_unknown_backend_falls_back_to_local(self):
        assert Config.from_dict({"store_backend": "mongo"}).store_backend == "local"

    def test_remote_backend_requires_url(self):
        with pytest.raises(ValueError, match="remote_api_url"):
            Config.from_dict({"store_backend": "remote"})

    def test_remote_url_trailing_slash_stripped(self):
        cfg = Config.from_dict({"store_backend": "REMOTE", "remote_api_url": "http://proxy/api/"})
        assert cfg.store_backend == "remote"
        assert cfg.remote_api_url == "http://proxy/api"

    def test_blank_api_key_is_none(self):
        assert Config.from_dict({"ai_api_key": ""}).ai_api_key is None

    def test_log_level_upper_cased(self):
        assert Config.from_dict({"log_level": "debug"}).log_level == "DEBUG"

    def test_with_overrides_revalidates(self):
        cfg = Config().with_overrides({"server_port": "9000", "unknown": 1})
        assert cfg.server_port == 9000
        assert not hasattr(cfg, "unknown")


class TestLoadConfig:
    def test_missing_file_uses_defaults(self, tmp_path):
        cfg = load_config(str(tmp_path / "missing.yaml"))
        assert cfg == Config()

    def test_yaml_file(self, tmp_path):
        path = tmp_path / "teamsync.yaml"
        path.write_text("store_path: data/cal.json\nserver_port: 9001\n", encoding="utf-8")
        cfg = load_config(str(path))
        assert cfg.store_path == "data/cal.json"
        assert cfg.server_port == 9001

    def test_json_file(self, tmp_path):
        path = tmp_path / "teamsync.json"
        path.write_text(json.dumps({"refresh_interval_seconds": 10}), encoding="utf-8")
        assert load_config(str(path)).refresh_interval_seconds == 10

    def test_empty_yaml_file(self, tmp_path):
        path = tmp_path / "empty.yaml"
        path.write_text("", encoding="utf-8")
        assert load_config(str(path)) == Config()

    def test_non_mapping_rejected(self, tmp_path):
        path = tmp_path / "list.yaml"
        path.write_text("- a\n- b\n", encoding="utf-8")
        with pytest.raises(ValueError, match="mapping"):
            load_config(str(path))

    def test_overrides_win_over_file(self, tmp_path):
        path = tmp_path / "teamsync.yaml"
        path.write_text("server_port: 9001\n", encoding="utf-8")
        assert load_config(str(path), {"server_port": 9100}).server_port == 9100


class TestConfigManager:
    def test_parse_env_file(self, tmp_path):
        env_file = tmp_path / ".env"
        env_file.write_text(
            "# comment\n\nTEAMSYNC_SERVER_PORT=9000\nexport TEAMSYNC_AI_MODEL='gemini-x'\n"
            'TEAMSYNC_STORE_PATH="a b.json"\nnot a pair\n',
            encoding="utf-8",
        )
        assert parse_env_file(env_file) == {
            "TEAMSYNC_SERVER_PORT": "9000",
            "TEAMSYNC_AI_MODEL": "gemini-x",
            "TEAMSYNC_STORE_PATH": "a b.json",
        }

    def test_parse_missing_env_file(self, tmp_path):
        assert parse_env_file(tmp_path / "nope") == {}

    def test_load_env_file_keeps_existing_values(self, tmp_path, clean_env):
        env_file = tmp_path / ".env"
        env_file.write_text("TEAMSYNC_SERVER_PORT=9000\nTEAMSYNC_LOG_LEVEL=DEBUG\n", encoding="utf-8")
        clean_env.setenv("TEAMSYNC_LOG_LEVEL", "WARNING")

        try:
            loaded = ConfigManager(env_file_path=env_file).load_env_file()
            assert loaded == ["TEAMSYNC_SERVER_PORT"]
            overrides = ConfigManager(env_file_path=env_file).build_config_from_env()
            assert overrides == {"server_port": 9000, "log_level": "WARNING"}
        finally:
            # load_env_file writes os.environ directly
            os.environ.pop("TEAMSYNC_SERVER_PORT", None)

    def test_load_env_file_missing(self, clean_env):
        assert ConfigManager(env_file_path=Path("/nonexistent/.env")).load_env_file() == []

    def test_invalid_int_ignored(self, clean_env):
        clean_env.setenv("TEAMSYNC_SERVER_PORT", "eighty")
        clean_env.setenv("TEAMSYNC_REFRESH_INTERVAL", "15")
        overrides = ConfigManager(env_file_path=Path("/nonexistent/.env")).build_config_from_env()
        assert overrides == {"refresh_interval_seconds": 15}

    def test_full_config_feeds_loader(self, tmp_path, clean_env):
        clean_env.setenv("TEAMSYNC_STORE_BACKEND", "remote")
        clean_env.setenv("TEAMSYNC_REMOTE_API_URL", "http://proxy.local")
        overrides = ConfigManager(env_file_path=tmp_path / ".env").load_full_config()
        cfg = load_config(str(tmp_path / "missing.yaml"), overrides)
        assert cfg.store_backend == "remote"
        assert cfg.remote_api_url == "http://proxy.local"
