"""
Utility Functions

Common validation and formatting helpers used throughout the echo application.
"""

import ipaddress
import re
import socket
from typing import Optional, Tuple

from .constants import MIN_PORT, MAX_PORT, TEXT_ENCODING
from .exceptions import InvalidAddressError, InvalidPortError, InvalidSubnetError, ValidationError


_SUBNET_PATTERN = re.compile(r'^(\d{1,3})\.(\d{1,3})\.(\d{1,3})$')


def validate_ipv4_address(address: str) -> str:
    """
    Validate a dotted-quad IPv4 address.

    Args:
        address: The address text to validate.

    Returns:
        The normalized address string.

    Raises:
        InvalidAddressError: If the address is not a well-formed IPv4 address.
    """
    if not isinstance(address, str) or not address.strip():
        raise InvalidAddressError("Server address cannot be empty", field="address", value=str(address))

    try:
        return str(ipaddress.IPv4Address(address.strip()))
    except ValueError as e:
        raise InvalidAddressError(
            f"Invalid IP address format: {address}", field="address", value=address
        ) from e


def validate_port(port: int) -> int:
    """
    Validate a TCP port number.

    Raises:
        InvalidPortError: If the port is not an integer in 1-65535.
    """
    if isinstance(port, bool) or not isinstance(port, int) or not (MIN_PORT <= port <= MAX_PORT):
        raise InvalidPortError(
            f"Port must be an integer between {MIN_PORT} and {MAX_PORT}, got {port!r}",
            field="port", value=str(port)
        )
    return port


def validate_subnet_prefix(prefix: str) -> str:
    """
    Validate a /24 subnet prefix such as ``"192.168.1"``.

    A trailing dot is tolerated so that ``"192.168.1."`` is accepted too.

    Returns:
        The prefix without a trailing dot.

    Raises:
        InvalidSubnetError: If the prefix is not three octets in 0-255.
    """
    if not isinstance(prefix, str):
        raise InvalidSubnetError(f"Subnet prefix must be a string, got {prefix!r}", field="subnet")

    candidate = prefix.strip().rstrip('.')
    match = _SUBNET_PATTERN.match(candidate)
    if not match or any(int(octet) > 255 for octet in match.groups()):
        raise InvalidSubnetError(
            f"Subnet prefix must be three octets like 192.168.1, got {prefix!r}",
            field="subnet", value=prefix
        )
    return candidate


def subnet_prefix_of(address: str) -> str:
    """Return the first three octets of an IPv4 address."""
    return validate_ipv4_address(address).rsplit('.', 1)[0]


def format_address(address: Tuple[str, int]) -> str:
    """
    Format an address tuple as a string.

    Args:
        address: Tuple of (host, port).

    Returns:
        Formatted address string.
    """
    return f"{address[0]}:{address[1]}"


def decode_text(data: bytes) -> str:
    """Decode received bytes as UTF-8, replacing invalid sequences."""
    return data.decode(TEXT_ENCODING, errors="replace")


def encode_text(text: str) -> bytes:
    """
    Encode outgoing text as UTF-8.

    Raises:
        ValidationError: If the text holds characters UTF-8 cannot encode,
            such as lone surrogates.
    """
    try:
        return text.encode(TEXT_ENCODING)
    except UnicodeEncodeError as e:
        raise ValidationError(f"Text cannot be encoded as UTF-8: {e.reason}", field="text") from e


def close_quietly(sock: Optional[socket.socket]) -> None:
    """Close a socket, ignoring errors from an already closed socket."""
    if sock is None:
        return
    try:
        sock.close()
    except OSError:
        pass  # Socket already closed

