"""
Echo Client Package

Provides the echo client: subnet discovery, connection session and message log.
"""

from .echo_client import EchoClient

__all__ = ["EchoClient"]
