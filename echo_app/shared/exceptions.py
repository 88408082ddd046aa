"""
Custom Exceptions

Defines custom exception classes for the echo application.
"""

import errno
import socket
from typing import Optional


class EchoAppError(Exception):
    """Base exception class for all echo application errors."""
    pass


class ValidationError(EchoAppError):
    """Raised when input validation fails."""

    def __init__(self, message: str, field: Optional[str] = None, value: Optional[str] = None):
        super().__init__(message)
        self.field = field
        self.value = value


class InvalidAddressError(ValidationError):
    """Raised when a server address is not a well-formed IPv4 address."""
    pass


class InvalidPortError(ValidationError):
    """Raised when a port number is outside 1-65535."""
    pass


class InvalidSubnetError(ValidationError):
    """Raised when a subnet prefix is not three IPv4 octets."""
    pass


class NetworkError(EchoAppError):
    """Raised when network-related errors occur."""

    def __init__(self, message: str, operation: Optional[str] = None, address: Optional[str] = None):
        super().__init__(message)
        self.operation = operation
        self.address = address


class SessionError(NetworkError):
    """Base class for connection session failures."""

    hint = "Check network connection\nRestart both apps\nTry a different port"


class ConnectTimeoutError(SessionError):
    """Raised when a connect attempt exceeds its timeout."""

    hint = "Server app is running\nIP address is correct\nBoth devices on same WiFi"


class ConnectRefusedError(SessionError):
    """Raised when the peer actively refuses the connection."""

    hint = "Make sure server app is running\nCheck port number (usually 8080)\nRestart server app"


class NetworkUnreachableError(SessionError):
    """Raised when the local network has no route to the server."""

    hint = "Check WiFi connection\nBoth devices on same WiFi?"


class HostUnreachableError(SessionError):
    """Raised when the server host cannot be reached."""

    hint = "Check IP address format\nBoth devices on same WiFi?\nTry pinging the IP first"


class OtherNetworkError(SessionError):
    """Raised for socket failures without a more specific category."""
    pass


class NotConnectedError(SessionError):
    """Raised when sending on a session that is not connected."""

    hint = "Connect to a server first"


class SessionIOError(SessionError):
    """Raised when a send fails on a live session."""
    pass


class ConfigurationError(EchoAppError):
    """Raised when configuration-related errors occur."""

    def __init__(self, message: str, details: Optional[dict] = None):
        super().__init__(message)
        self.details = details


class ServerError(EchoAppError):
    """Base class for server-related errors."""
    pass


class EchoServerError(ServerError):
    """Raised when echo server operations fail."""
    pass


def classify_socket_error(error: OSError, address: Optional[str] = None) -> SessionError:
    """
    Map a socket-level failure raised by connect to the session error taxonomy.

    Args:
        error: The OSError raised by the socket call.
        address: Endpoint string used in the error message.

    Returns:
        A SessionError subclass instance for the caller to raise.
    """
    target = address or "server"

    if isinstance(error, socket.timeout) or error.errno == errno.ETIMEDOUT:
        return ConnectTimeoutError(
            f"Connection to {target} timed out - server may not be running",
            operation="connect", address=address
        )
    if isinstance(error, ConnectionRefusedError) or error.errno == errno.ECONNREFUSED:
        return ConnectRefusedError(
            f"Connection refused by {target} - server not running or wrong port",
            operation="connect", address=address
        )
    if error.errno == errno.ENETUNREACH:
        return NetworkUnreachableError(
            f"Network unreachable for {target} - check WiFi connection",
            operation="connect", address=address
        )
    if error.errno == errno.EHOSTUNREACH:
        return HostUnreachableError(
            f"Host unreachable: {target} - check IP address",
            operation="connect", address=address
        )

    return OtherNetworkError(f"Network error connecting to {target}: {error}", operation="connect", address=address)
