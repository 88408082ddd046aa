"""
Pytest Configuration and Shared Fixtures

Provides common test fixtures and configuration for the test suite.
"""

import errno
import logging
import socket
from typing import Callable, Dict, Iterable
from unittest.mock import Mock

import pytest

from echo_app.shared.config import ClientConfig, ServerConfig


# Captured before any test patches socket.socket
REAL_SOCKET_CLASS = socket.socket


@pytest.fixture
def server_config() -> ServerConfig:
    """Provide a test server configuration bound to loopback."""
    return ServerConfig(
        host="127.0.0.1",
        port=0,  # Use 0 to get a random available port
        socket_timeout=0.1
    )


@pytest.fixture
def client_config() -> ClientConfig:
    """Provide a test client configuration with short timeouts."""
    return ClientConfig(
        port=8080,
        subnet="127.0.0",
        connect_timeout=1.0,
        probe_timeout=0.2,
        scan_timeout=2.0,
        receive_poll_interval=0.05
    )


@pytest.fixture
def mock_socket() -> Mock:
    """Provide a mock socket for testing."""
    mock_sock = Mock(spec=REAL_SOCKET_CLASS)
    mock_sock.recv.return_value = b""
    mock_sock.sendall.return_value = None
    mock_sock.close.return_value = None
    mock_sock.connect.return_value = None
    return mock_sock


@pytest.fixture
def listening_hosts() -> Callable[[Iterable[str]], Callable[..., Mock]]:
    """
    Build a ``socket.socket`` replacement where only the given hosts accept.

    Every other connect fails with ECONNREFUSED. The returned factory records
    each created socket on its ``created`` attribute.
    """
    def build(hosts: Iterable[str]) -> Callable[..., Mock]:
        accepting = set(hosts)
        created = []

        def connect(address):
            if address[0] not in accepting:
                raise ConnectionRefusedError(errno.ECONNREFUSED, "Connection refused")

        def factory(*args, **kwargs):
            sock = Mock(spec=REAL_SOCKET_CLASS)
            sock.connect.side_effect = connect
            created.append(sock)
            return sock

        factory.created = created
        return factory

    return build


@pytest.fixture
def available_port() -> int:
    """Get an available port for testing."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        s.bind(('127.0.0.1', 0))
        return s.getsockname()[1]


@pytest.fixture
def mock_rich_console() -> Mock:
    """Provide a mock Rich console for UI testing."""
    console = Mock()
    console.print = Mock()
    console.status = Mock()
    console.status.return_value.__enter__ = Mock(return_value=None)
    console.status.return_value.__exit__ = Mock(return_value=None)
    return console


@pytest.fixture
def temp_log_file(tmp_path) -> str:
    """Provide a temporary log file path."""
    return str(tmp_path / "test.log")


@pytest.fixture
def clean_env(monkeypatch) -> None:
    """Remove configuration variables that could leak in from the shell."""
    import os
    for name in list(os.environ):
        if name.startswith("ECHO_") or name == "PORT":
            monkeypatch.delenv(name, raising=False)


@pytest.fixture(autouse=True)
def reset_logging():
    """Reset logging configuration between tests."""
    root_logger = logging.getLogger()
    original_level = root_logger.level
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    yield

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)
        handler.close()
    root_logger.setLevel(original_level)


@pytest.fixture
def sample_config_data() -> Dict[str, Dict[str, object]]:
    """Provide a configuration file body for loader tests."""
    return {
        "server": {"host": "127.0.0.1", "port": 9000, "echo_prefix": "ECHO: "},
        "client": {"port": 9000, "subnet": "10.0.0", "scan_concurrency": 8}
    }
