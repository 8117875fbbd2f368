"""Tests for the teamsync command line entry point."""

from __future__ import annotations

from argparse import Namespace
from unittest.mock import Mock

import pytest

from teamsync.__main__ import _create_parser, main

pytestmark = pytest.mark.unit


class TestCreateParser:
    """Tests for argument parser creation."""

    def test_defaults(self) -> None:
        args = _create_parser().parse_args([])
        assert (args.port, args.config, args.store) == (None, None, None)

    def test_all_options(self) -> None:
        args = _create_parser().parse_args(
            ["--port", "3000", "--config", "cfg.yaml", "--store", "team.json"]
        )
        assert args.port == 3000
        assert args.config == "cfg.yaml"
        assert args.store == "team.json"

    def test_invalid_port_rejected(self) -> None:
        with pytest.raises(SystemExit):
            _create_parser().parse_args(["--port", "invalid"])


class TestMain:
    """Tests for the main entry point."""

    def test_exits_zero_after_server_stops(self, monkeypatch: pytest.MonkeyPatch) -> None:
        mock_run_server = Mock()
        monkeypatch.setattr("teamsync.__main__.run_server", mock_run_server)

        with pytest.raises(SystemExit) as exc_info:
            main(["--port", "5000"])

        assert exc_info.value.code == 0
        call_args = mock_run_server.call_args[0][0]
        assert isinstance(call_args, Namespace)
        assert call_args.port == 5000

    def test_configuration_error_exits_two(
        self, monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture
    ) -> None:
        mock_run_server = Mock(side_effect=ValueError("store_backend 'remote' requires remote_api_url"))
        monkeypatch.setattr("teamsync.__main__.run_server", mock_run_server)

        with pytest.raises(SystemExit) as exc_info:
            main([])

        assert exc_info.value.code == 2
        assert "remote_api_url" in capsys.readouterr().err


class TestRunServer:
    """Configuration precedence inside run_server."""

    def test_cli_overrides_env_and_file(self, monkeypatch: pytest.MonkeyPatch, tmp_path) -> None:
        import teamsync
        import teamsync.api.server as server_module

        config_file = tmp_path / "teamsync.yaml"
        config_file.write_text("server_port: 7000\nstore_backend: local\n", encoding="utf-8")
        monkeypatch.chdir(tmp_path)
        monkeypatch.setenv("TEAMSYNC_SERVER_PORT", "7100")
        monkeypatch.setenv("TEAMSYNC_STORE_BACKEND", "remote")
        monkeypatch.setenv("TEAMSYNC_REMOTE_API_URL", "http://proxy.test")
        captured = {}
        monkeypatch.setattr(server_module, "start_server", lambda cfg: captured.setdefault("cfg", cfg))

        teamsync.run_server(Namespace(port=7200, config=str(config_file), store="mine.json"))

        cfg = captured["cfg"]
        assert cfg.server_port == 7200
        assert cfg.store_backend == "local"
        assert cfg.store_path == "mine.json"
