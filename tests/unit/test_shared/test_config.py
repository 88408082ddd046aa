"""
Unit tests for echo_app.shared.config module.
"""

import json

import pytest

from echo_app.shared.config import ClientConfig, ConfigurationLoader, ServerConfig
from echo_app.shared.constants import DEFAULT_GREETING, ECHO_PREFIX
from echo_app.shared.exceptions import ConfigurationError


class TestServerConfig:
    """Test ServerConfig class."""

    def test_defaults(self):
        config = ServerConfig()

        assert config.host == "0.0.0.0"
        assert config.port == 8080
        assert config.echo_prefix == ECHO_PREFIX
        config.validate()

    def test_port_zero_allowed(self):
        ServerConfig(port=0).validate()

    @pytest.mark.parametrize("overrides", [
        {"port": 70000},
        {"port": -1},
        {"host": ""},
        {"buffer_size": 0},
        {"socket_timeout": 0},
        {"backlog": 0},
    ])
    def test_invalid_values(self, overrides):
        config = ServerConfig(**overrides)
        with pytest.raises(ConfigurationError, match="Server configuration validation failed"):
            config.validate()

    def test_multiple_errors_reported(self):
        with pytest.raises(ConfigurationError) as exc_info:
            ServerConfig(port=70000, buffer_size=0).validate()

        assert "port" in str(exc_info.value)
        assert "buffer_size" in str(exc_info.value)

    def test_from_env_defaults(self, clean_env):
        assert ServerConfig.from_env() == ServerConfig()

    def test_from_env_port_variable(self, clean_env, monkeypatch):
        monkeypatch.setenv("PORT", "9000")
        assert ServerConfig.from_env().port == 9000

    def test_from_env_echo_port_wins(self, clean_env, monkeypatch):
        monkeypatch.setenv("PORT", "9000")
        monkeypatch.setenv("ECHO_SERVER_PORT", "9100")
        assert ServerConfig.from_env().port == 9100

    def test_from_env_other_values(self, clean_env, monkeypatch):
        monkeypatch.setenv("ECHO_SERVER_HOST", "127.0.0.1")
        monkeypatch.setenv("ECHO_SERVER_PREFIX", ">> ")
        monkeypatch.setenv("ECHO_SERVER_BUFFER_SIZE", "2048")

        config = ServerConfig.from_env()

        assert config.host == "127.0.0.1"
        assert config.echo_prefix == ">> "
        assert config.buffer_size == 2048

    def test_from_env_non_numeric_port(self, clean_env, monkeypatch):
        monkeypatch.setenv("PORT", "eighty")
        with pytest.raises(ConfigurationError, match="environment"):
            ServerConfig.from_env()

    def test_from_dict_ignores_unknown_keys(self):
        config = ServerConfig.from_dict({"host": "127.0.0.1", "port": 9000, "colour": "blue"})
        assert config.host == "127.0.0.1"
        assert config.port == 9000

    def test_from_dict_invalid(self):
        with pytest.raises(ConfigurationError):
            ServerConfig.from_dict({"port": 123456})


class TestClientConfig:
    """Test ClientConfig class."""

    def test_defaults(self):
        config = ClientConfig()

        assert config.port == 8080
        assert config.subnet is None
        assert config.scan_concurrency == 32
        assert config.greeting == DEFAULT_GREETING
        assert config.max_log_entries == 100
        config.validate()

    @pytest.mark.parametrize("overrides", [
        {"port": 0},
        {"subnet": "192.168"},
        {"connect_timeout": 0},
        {"probe_timeout": -1},
        {"scan_timeout": 0},
        {"scan_concurrency": 0},
        {"buffer_size": 0},
        {"max_log_entries": 0},
        {"receive_poll_interval": 0},
    ])
    def test_invalid_values(self, overrides):
        with pytest.raises(ConfigurationError, match="Client configuration validation failed"):
            ClientConfig(**overrides).validate()

    def test_subnet_with_trailing_dot_valid(self):
        ClientConfig(subnet="192.168.1.").validate()

    def test_from_env(self, clean_env, monkeypatch):
        monkeypatch.setenv("ECHO_CLIENT_PORT", "9000")
        monkeypatch.setenv("ECHO_CLIENT_SUBNET", "10.0.0")
        monkeypatch.setenv("ECHO_CLIENT_SCAN_CONCURRENCY", "8")

        config = ClientConfig.from_env()

        assert config.port == 9000
        assert config.subnet == "10.0.0"
        assert config.scan_concurrency == 8

    def test_from_env_empty_subnet_is_none(self, clean_env, monkeypatch):
        monkeypatch.setenv("ECHO_CLIENT_SUBNET", "")
        assert ClientConfig.from_env().subnet is None

    def test_from_env_invalid_number(self, clean_env, monkeypatch):
        monkeypatch.setenv("ECHO_CLIENT_PROBE_TIMEOUT", "fast")
        with pytest.raises(ConfigurationError):
            ClientConfig.from_env()

    def test_from_dict(self):
        config = ClientConfig.from_dict({"port": 9000, "greeting": "hi", "unknown": 1})
        assert config.port == 9000
        assert config.greeting == "hi"


class TestConfigurationLoader:
    """Test ConfigurationLoader class."""

    def test_no_file_returns_empty(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        assert ConfigurationLoader.load_from_file() == {}

    def test_default_file_found(self, tmp_path, monkeypatch, sample_config_data):
        monkeypatch.chdir(tmp_path)
        (tmp_path / "echo_config.json").write_text(json.dumps(sample_config_data))

        assert ConfigurationLoader.find_default_config() == "echo_config.json"
        assert ConfigurationLoader.load_from_file() == sample_config_data

    def test_load_json(self, tmp_path, sample_config_data):
        path = tmp_path / "config.json"
        path.write_text(json.dumps(sample_config_data))

        assert ConfigurationLoader.load_from_file(path) == sample_config_data

    def test_load_yaml(self, tmp_path):
        pytest.importorskip("yaml")
        path = tmp_path / "config.yaml"
        path.write_text("server:\n  port: 9000\nclient:\n  subnet: '10.0.0'\n")

        data = ConfigurationLoader.load_from_file(path)

        assert data["server"]["port"] == 9000
        assert data["client"]["subnet"] == "10.0.0"

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigurationError, match="not found"):
            ConfigurationLoader.load_from_file(tmp_path / "missing.json")

    def test_unsupported_format(self, tmp_path):
        path = tmp_path / "config.ini"
        path.write_text("[server]\n")
        with pytest.raises(ConfigurationError, match="Unsupported"):
            ConfigurationLoader.load_from_file(path)

    def test_invalid_json(self, tmp_path):
        path = tmp_path / "config.json"
        path.write_text("{not json")
        with pytest.raises(ConfigurationError, match="Invalid JSON"):
            ConfigurationLoader.load_from_file(path)

    def test_non_mapping(self, tmp_path):
        path = tmp_path / "config.json"
        path.write_text("[1, 2, 3]")
        with pytest.raises(ConfigurationError, match="mapping"):
            ConfigurationLoader.load_from_file(path)

    def test_load_server_config_from_file(self, tmp_path, clean_env, sample_config_data):
        path = tmp_path / "config.json"
        path.write_text(json.dumps(sample_config_data))

        config = ConfigurationLoader.load_server_config(path)

        assert config.host == "127.0.0.1"
        assert config.port == 9000

    def test_env_overrides_file(self, tmp_path, clean_env, monkeypatch, sample_config_data):
        path = tmp_path / "config.json"
        path.write_text(json.dumps(sample_config_data))
        monkeypatch.setenv("ECHO_SERVER_PORT", "9500")

        assert ConfigurationLoader.load_server_config(path).port == 9500

    def test_load_client_config_from_file(self, tmp_path, clean_env, sample_config_data):
        path = tmp_path / "config.json"
        path.write_text(json.dumps(sample_config_data))

        config = ConfigurationLoader.load_client_config(path)

        assert config.port == 9000
        assert config.subnet == "10.0.0"
        assert config.scan_concurrency == 8

    def test_load_client_config_without_env(self, tmp_path, clean_env, monkeypatch, sample_config_data):
        path = tmp_path / "config.json"
        path.write_text(json.dumps(sample_config_data))
        monkeypatch.setenv("ECHO_CLIENT_PORT", "9999")

        assert ConfigurationLoader.load_client_config(path, use_env=False).port == 9000
