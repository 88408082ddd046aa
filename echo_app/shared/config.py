"""
Configuration Management

Provides configuration classes and environment-based configuration loading.
"""

import json
import os
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from .constants import (
    CLIENT_BUFFER_SIZE,
    DEFAULT_CONNECT_TIMEOUT,
    DEFAULT_GREETING,
    DEFAULT_LISTEN_BACKLOG,
    DEFAULT_PROBE_TIMEOUT,
    DEFAULT_RECEIVE_POLL_INTERVAL,
    DEFAULT_SCAN_CONCURRENCY,
    DEFAULT_SCAN_TIMEOUT,
    DEFAULT_SERVER_HOST,
    DEFAULT_SERVER_PORT,
    DEFAULT_SOCKET_TIMEOUT,
    ECHO_PREFIX,
    MAX_LOG_ENTRIES,
    SERVER_BUFFER_SIZE,
)
from .exceptions import ConfigurationError, ValidationError
from .utils import validate_subnet_prefix


def _is_port(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and 1 <= value <= 65535


def _is_positive_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool) and value > 0


def _optional_env(name: str) -> Optional[str]:
    value = os.getenv(name)
    return value if value else None


@dataclass
class ServerConfig:
    """Echo server configuration settings."""

    host: str = DEFAULT_SERVER_HOST
    port: int = DEFAULT_SERVER_PORT
    buffer_size: int = SERVER_BUFFER_SIZE
    echo_prefix: str = ECHO_PREFIX
    socket_timeout: float = DEFAULT_SOCKET_TIMEOUT
    backlog: int = DEFAULT_LISTEN_BACKLOG

    def validate(self) -> None:
        """Validate configuration values."""
        errors: List[str] = []

        if not isinstance(self.host, str) or not self.host.strip():
            errors.append("host must be a non-empty string")

        # Port 0 asks the OS for a free port
        if not (self.port == 0 or _is_port(self.port)):
            errors.append("port must be an integer between 1 and 65535")

        if not isinstance(self.buffer_size, int) or self.buffer_size < 1:
            errors.append("buffer_size must be a positive integer")

        if not isinstance(self.echo_prefix, str):
            errors.append("echo_prefix must be a string")

        if not _is_positive_number(self.socket_timeout):
            errors.append("socket_timeout must be a positive number")

        if not isinstance(self.backlog, int) or self.backlog < 1:
            errors.append("backlog must be a positive integer")

        if errors:
            raise ConfigurationError(f"Server configuration validation failed: {'; '.join(errors)}")

    @classmethod
    def from_env(cls) -> "ServerConfig":
        """
        Load configuration from environment variables.

        ``ECHO_SERVER_PORT`` wins over the plain ``PORT`` variable.
        """
        try:
            port_text = os.getenv("ECHO_SERVER_PORT") or os.getenv("PORT") or str(cls.port)
            config = cls(
                host=os.getenv("ECHO_SERVER_HOST", cls.host),
                port=int(port_text),
                buffer_size=int(os.getenv("ECHO_SERVER_BUFFER_SIZE", str(cls.buffer_size))),
                echo_prefix=os.getenv("ECHO_SERVER_PREFIX", cls.echo_prefix),
                socket_timeout=float(os.getenv("ECHO_SERVER_SOCKET_TIMEOUT", str(cls.socket_timeout))),
                backlog=int(os.getenv("ECHO_SERVER_BACKLOG", str(cls.backlog))),
            )
            config.validate()
            return config
        except ValueError as e:
            raise ConfigurationError(f"Failed to load server configuration from environment: {e}")

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ServerConfig":
        """Create configuration from dictionary."""
        try:
            field_names = {f.name for f in fields(cls)}
            filtered_data = {k: v for k, v in data.items() if k in field_names}
            config = cls(**filtered_data)
            config.validate()
            return config
        except (TypeError, ValueError) as e:
            raise ConfigurationError(f"Failed to create server configuration from dictionary: {e}")


@dataclass
class ClientConfig:
    """Client configuration settings."""

    port: int = DEFAULT_SERVER_PORT
    subnet: Optional[str] = None
    connect_timeout: float = DEFAULT_CONNECT_TIMEOUT
    probe_timeout: float = DEFAULT_PROBE_TIMEOUT
    scan_timeout: float = DEFAULT_SCAN_TIMEOUT
    scan_concurrency: int = DEFAULT_SCAN_CONCURRENCY
    buffer_size: int = CLIENT_BUFFER_SIZE
    greeting: str = DEFAULT_GREETING
    receive_poll_interval: float = DEFAULT_RECEIVE_POLL_INTERVAL
    max_log_entries: int = MAX_LOG_ENTRIES

    def validate(self) -> None:
        """Validate configuration values."""
        errors: List[str] = []

        if not _is_port(self.port):
            errors.append("port must be an integer between 1 and 65535")

        if self.subnet is not None:
            try:
                validate_subnet_prefix(self.subnet)
            except ValidationError:
                errors.append("subnet must be three IPv4 octets such as 192.168.1")

        for name in ("connect_timeout", "probe_timeout", "scan_timeout", "receive_poll_interval"):
            if not _is_positive_number(getattr(self, name)):
                errors.append(f"{name} must be a positive number")

        if not isinstance(self.scan_concurrency, int) or self.scan_concurrency < 1:
            errors.append("scan_concurrency must be a positive integer")

        if not isinstance(self.buffer_size, int) or self.buffer_size < 1:
            errors.append("buffer_size must be a positive integer")

        if not isinstance(self.greeting, str):
            errors.append("greeting must be a string")

        if not isinstance(self.max_log_entries, int) or self.max_log_entries < 1:
            errors.append("max_log_entries must be a positive integer")

        if errors:
            raise ConfigurationError(f"Client configuration validation failed: {'; '.join(errors)}")

    @classmethod
    def from_env(cls) -> "ClientConfig":
        """Load configuration from environment variables."""
        try:
            config = cls(
                port=int(os.getenv("ECHO_CLIENT_PORT", str(cls.port))),
                subnet=_optional_env("ECHO_CLIENT_SUBNET"),
                connect_timeout=float(os.getenv("ECHO_CLIENT_CONNECT_TIMEOUT", str(cls.connect_timeout))),
                probe_timeout=float(os.getenv("ECHO_CLIENT_PROBE_TIMEOUT", str(cls.probe_timeout))),
                scan_timeout=float(os.getenv("ECHO_CLIENT_SCAN_TIMEOUT", str(cls.scan_timeout))),
                scan_concurrency=int(os.getenv("ECHO_CLIENT_SCAN_CONCURRENCY", str(cls.scan_concurrency))),
                buffer_size=int(os.getenv("ECHO_CLIENT_BUFFER_SIZE", str(cls.buffer_size))),
                greeting=os.getenv("ECHO_CLIENT_GREETING", cls.greeting),
                receive_poll_interval=float(
                    os.getenv("ECHO_CLIENT_RECEIVE_POLL_INTERVAL", str(cls.receive_poll_interval))
                ),
                max_log_entries=int(os.getenv("ECHO_CLIENT_MAX_LOG_ENTRIES", str(cls.max_log_entries))),
            )
            config.validate()
            return config
        except ValueError as e:
            raise ConfigurationError(f"Failed to load client configuration from environment: {e}")

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ClientConfig":
        """Create configuration from dictionary."""
        try:
            field_names = {f.name for f in fields(cls)}
            filtered_data = {k: v for k, v in data.items() if k in field_names}
            config = cls(**filtered_data)
            config.validate()
            return config
        except (TypeError, ValueError) as e:
            raise ConfigurationError(f"Failed to create client configuration from dictionary: {e}")


class ConfigurationLoader:
    """Configuration loader with support for multiple sources."""

    DEFAULT_CONFIG_PATHS = [
        "echo_config.json",
        ".echo_config.json",
        "echo_config.yaml",
        ".echo_config.yaml",
        "echo_config.yml",
        ".echo_config.yml"
    ]

    @staticmethod
    def find_default_config() -> Optional[str]:
        """Return the first default configuration file that exists."""
        for path in ConfigurationLoader.DEFAULT_CONFIG_PATHS:
            if os.path.exists(path):
                return path
        return None

    @staticmethod
    def load_from_file(config_path: Optional[Union[str, Path]] = None) -> Dict[str, Any]:
        """
        Load configuration from a JSON or YAML file.

        Args:
            config_path: Path to configuration file. If None, looks for default locations.

        Returns:
            Dictionary containing configuration values.

        Raises:
            ConfigurationError: If file cannot be loaded or parsed.
        """
        if config_path is None:
            config_path = ConfigurationLoader.find_default_config()

        if config_path is None:
            return {}

        config_path = Path(config_path)

        if not config_path.exists():
            raise ConfigurationError(f"Configuration file not found: {config_path}")

        if config_path.suffix not in ('.json', '.yml', '.yaml'):
            raise ConfigurationError(f"Unsupported configuration file format: {config_path.suffix}")

        try:
            with open(config_path, 'r', encoding='utf-8') as f:
                if config_path.suffix == '.json':
                    data = json.load(f)
                else:
                    import yaml
                    data = yaml.safe_load(f) or {}
        except json.JSONDecodeError as e:
            raise ConfigurationError(f"Invalid JSON in configuration file {config_path}: {e}")
        except ImportError:
            raise ConfigurationError(
                "PyYAML is required for YAML configuration files. Install with: pip install PyYAML"
            )
        except Exception as e:
            raise ConfigurationError(f"Failed to load configuration from {config_path}: {e}")

        if not isinstance(data, dict):
            raise ConfigurationError(f"Configuration file {config_path} must contain a mapping")
        return data

    @staticmethod
    def _overlay_env(config: Any, config_class: Any) -> None:
        """Copy environment values that differ from the defaults onto ``config``."""
        env_config = config_class.from_env()
        default_config = config_class()
        for config_field in fields(config_class):
            env_value = getattr(env_config, config_field.name)
            if env_value != getattr(default_config, config_field.name):
                setattr(config, config_field.name, env_value)

    @staticmethod
    def load_server_config(
        config_path: Optional[Union[str, Path]] = None,
        use_env: bool = True
    ) -> ServerConfig:
        """
        Load server configuration from file and/or environment.

        Args:
            config_path: Path to configuration file.
            use_env: Whether to load from environment variables.

        Returns:
            ServerConfig instance.
        """
        file_config = ConfigurationLoader.load_from_file(config_path)
        config_data = file_config.get('server', {})

        config = ServerConfig.from_dict(config_data) if config_data else ServerConfig()

        if use_env:
            ConfigurationLoader._overlay_env(config, ServerConfig)

        config.validate()
        return config

    @staticmethod
    def load_client_config(
        config_path: Optional[Union[str, Path]] = None,
        use_env: bool = True
    ) -> ClientConfig:
        """
        Load client configuration from file and/or environment.

        Args:
            config_path: Path to configuration file.
            use_env: Whether to load from environment variables.

        Returns:
            ClientConfig instance.
        """
        file_config = ConfigurationLoader.load_from_file(config_path)
        config_data = file_config.get('client', {})

        config = ClientConfig.from_dict(config_data) if config_data else ClientConfig()

        if use_env:
            ConfigurationLoader._overlay_env(config, ClientConfig)

        config.validate()
        return config
