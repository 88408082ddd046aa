"""
Unit tests for echo_app.shared.utils module.
"""

import pytest
from unittest.mock import Mock

from echo_app.shared.exceptions import InvalidAddressError, InvalidPortError, InvalidSubnetError, ValidationError
from echo_app.shared.utils import (
    close_quietly,
    decode_text,
    encode_text,
    format_address,
    subnet_prefix_of,
    validate_ipv4_address,
    validate_port,
    validate_subnet_prefix,
)


class TestValidateIpv4Address:
    """Test validate_ipv4_address function."""

    @pytest.mark.parametrize("address", ["192.168.1.10", "10.0.0.42", "127.0.0.1", "0.0.0.0"])
    def test_valid_addresses(self, address):
        """Test well-formed dotted quads."""
        assert validate_ipv4_address(address) == address

    def test_surrounding_whitespace_stripped(self):
        assert validate_ipv4_address("  10.0.0.1 ") == "10.0.0.1"

    @pytest.mark.parametrize("address", ["999.999.999.999", "192.168.1", "abc", "1.2.3.4.5", "192.168.1."])
    def test_invalid_addresses(self, address):
        """Test malformed addresses are rejected."""
        with pytest.raises(InvalidAddressError) as exc_info:
            validate_ipv4_address(address)

        assert "Invalid IP address format" in str(exc_info.value)
        assert exc_info.value.field == "address"

    @pytest.mark.parametrize("address", ["", "   "])
    def test_empty_address(self, address):
        """Test empty address message."""
        with pytest.raises(InvalidAddressError, match="cannot be empty"):
            validate_ipv4_address(address)

    def test_non_string_rejected(self):
        with pytest.raises(InvalidAddressError):
            validate_ipv4_address(None)

    def test_is_validation_error(self):
        with pytest.raises(ValidationError):
            validate_ipv4_address("not an ip")


class TestValidatePort:
    """Test validate_port function."""

    @pytest.mark.parametrize("port", [1, 80, 8080, 65535])
    def test_valid_ports(self, port):
        assert validate_port(port) == port

    @pytest.mark.parametrize("port", [0, -1, 65536, 70000])
    def test_out_of_range(self, port):
        """Test ports outside 1-65535."""
        with pytest.raises(InvalidPortError):
            validate_port(port)

    @pytest.mark.parametrize("port", ["8080", 8080.0, None, True])
    def test_non_integer(self, port):
        """Test non-integer ports, including bool."""
        with pytest.raises(InvalidPortError):
            validate_port(port)


class TestValidateSubnetPrefix:
    """Test validate_subnet_prefix function."""

    def test_valid_prefix(self):
        assert validate_subnet_prefix("192.168.1") == "192.168.1"

    def test_trailing_dot_tolerated(self):
        assert validate_subnet_prefix("10.0.0.") == "10.0.0"

    @pytest.mark.parametrize("prefix", ["192.168", "192.168.1.1", "256.1.1", "a.b.c", ""])
    def test_invalid_prefix(self, prefix):
        with pytest.raises(InvalidSubnetError):
            validate_subnet_prefix(prefix)

    def test_non_string(self):
        with pytest.raises(InvalidSubnetError):
            validate_subnet_prefix(19216801)


class TestSubnetPrefixOf:
    """Test subnet_prefix_of function."""

    def test_prefix(self):
        assert subnet_prefix_of("192.168.1.23") == "192.168.1"

    def test_invalid_address(self):
        with pytest.raises(InvalidAddressError):
            subnet_prefix_of("192.168.1")


class TestTextCodec:
    """Test decode_text and encode_text."""

    def test_encode_utf8(self):
        assert encode_text("héllo") == "héllo".encode("utf-8")

    def test_encode_lone_surrogate_rejected(self):
        with pytest.raises(ValidationError) as exc_info:
            encode_text("bad \ud800")

        assert exc_info.value.field == "text"

    def test_decode_utf8(self):
        assert decode_text("ECHO: ☃".encode("utf-8")) == "ECHO: ☃"

    def test_decode_invalid_bytes_replaced(self):
        """Test invalid UTF-8 is replaced rather than raising."""
        assert decode_text(b"ok\xff") == "ok�"


class TestFormatAddress:
    """Test format_address function."""

    def test_format_address(self):
        assert format_address(("127.0.0.1", 12345)) == "127.0.0.1:12345"


class TestCloseQuietly:
    """Test close_quietly function."""

    def test_none_is_ignored(self):
        close_quietly(None)

    def test_closes_socket(self):
        sock = Mock()
        close_quietly(sock)
        sock.close.assert_called_once()

    def test_os_error_ignored(self):
        sock = Mock()
        sock.close.side_effect = OSError("already closed")
        close_quietly(sock)
