"""
Client Network Layer

Provides the connection session used by the echo client.
"""

from .session import ConnectionSession, SessionConfig, connect, disconnect, send

__all__ = ["ConnectionSession", "SessionConfig", "connect", "send", "disconnect"]
