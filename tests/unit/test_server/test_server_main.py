"""
Unit tests for echo_app.server.main module.
"""

from unittest.mock import patch

import pytest

from echo_app.server.main import build_parser, load_server_config, main
from echo_app.shared.exceptions import ConfigurationError, EchoServerError


@pytest.fixture(autouse=True)
def isolated(tmp_path, monkeypatch, clean_env):
    monkeypatch.chdir(tmp_path)


class TestBuildParser:
    """Test build_parser function."""

    def test_defaults(self):
        args = build_parser().parse_args([])

        assert args.host is None
        assert args.port is None
        assert args.config_file is None

    def test_options(self):
        args = build_parser().parse_args(["--host", "127.0.0.1", "--port", "9000", "--log-level", "DEBUG"])

        assert args.host == "127.0.0.1"
        assert args.port == 9000
        assert args.log_level == "DEBUG"


class TestLoadServerConfig:
    """Test load_server_config function."""

    def test_cli_overrides_env(self, monkeypatch):
        monkeypatch.setenv("PORT", "9000")
        args = build_parser().parse_args(["--port", "9100"])

        assert load_server_config(args).port == 9100

    def test_env_port(self, monkeypatch):
        monkeypatch.setenv("PORT", "9000")
        assert load_server_config(build_parser().parse_args([])).port == 9000

    def test_invalid_port(self):
        with pytest.raises(ConfigurationError):
            load_server_config(build_parser().parse_args(["--port", "70000"]))


class TestMain:
    """Test main function exit codes."""

    @patch("echo_app.server.main.EchoServer")
    def test_clean_exit(self, mock_server_class):
        assert main(["--port", "9000"]) == 0

        config = mock_server_class.call_args[0][0]
        assert config.port == 9000
        mock_server_class.return_value.start.assert_called_once()

    @patch("echo_app.server.main.EchoServer")
    def test_configuration_error(self, mock_server_class):
        assert main(["--port", "70000"]) == 2
        mock_server_class.assert_not_called()

    @patch("echo_app.server.main.EchoServer")
    def test_server_error(self, mock_server_class):
        mock_server_class.return_value.start.side_effect = EchoServerError("Port 9000 is already in use")
        assert main(["--port", "9000"]) == 3

    @patch("echo_app.server.main.EchoServer")
    def test_keyboard_interrupt(self, mock_server_class):
        mock_server_class.return_value.start.side_effect = KeyboardInterrupt
        assert main([]) == 0

    @patch("echo_app.server.main.EchoServer")
    def test_unexpected_error(self, mock_server_class):
        mock_server_class.return_value.start.side_effect = RuntimeError("boom")
        assert main([]) == 1

    def test_version(self, capsys):
        with pytest.raises(SystemExit) as exc_info:
            main(["--version"])

        assert exc_info.value.code == 0
        assert "Echo Server" in capsys.readouterr().out
