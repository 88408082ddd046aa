"""
Echo Server Package

Provides the TCP echo server that clients discover and talk to.
"""

from .echo_server import EchoServer

__all__ = ["EchoServer"]
