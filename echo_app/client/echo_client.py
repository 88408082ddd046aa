"""
Echo Client

The client-side facade that a user interface drives: discover a server, hold
at most one connection session, send text, and keep a bounded message log.
"""

import threading
from typing import Callable, Optional

from echo_app.client.network.session import ConnectionSession, SessionConfig
from echo_app.discovery.local_network import guess_subnet_prefix
from echo_app.discovery.subnet_scanner import ScannerConfig, SubnetScanner
from echo_app.shared.config import ClientConfig
from echo_app.shared.constants import DEFAULT_SUBNET_HINT
from echo_app.shared.exceptions import EchoAppError, NotConnectedError, SessionError
from echo_app.shared.logging_config import get_logger
from echo_app.shared.models import LogEntry, MessageLog, ScanResult, SessionStatus


logger = get_logger(__name__)


class EchoClient:
    """
    Main echo client class.

    Orchestrates subnet discovery and the connection session, and reports
    received messages and disconnects back to the hosting layer through
    callbacks. Only one session is active per client; connecting again
    disconnects the previous session first.
    """

    def __init__(self, config: Optional[ClientConfig] = None) -> None:
        """
        Initialize the echo client.

        Args:
            config: Client configuration.
        """
        self.config = config or ClientConfig()
        self.messages = MessageLog(self.config.max_log_entries)
        self.scanner = SubnetScanner(ScannerConfig(
            concurrency=self.config.scan_concurrency,
            probe_timeout=self.config.probe_timeout,
            scan_timeout=self.config.scan_timeout
        ))

        self._session: Optional[ConnectionSession] = None
        self._lock = threading.RLock()
        self.last_scan: Optional[ScanResult] = None

        # Callbacks
        self._on_message: Optional[Callable[[str], None]] = None
        self._on_disconnected: Optional[Callable[[str], None]] = None
        self._on_log: Optional[Callable[[LogEntry], None]] = None

        self.add_log("📱 Client ready to connect")

    def set_callbacks(self,
                      on_message: Optional[Callable[[str], None]] = None,
                      on_disconnected: Optional[Callable[[str], None]] = None,
                      on_log: Optional[Callable[[LogEntry], None]] = None) -> None:
        """
        Set external callbacks for client events.

        Args:
            on_message: Called with each message received from the server.
            on_disconnected: Called with the reason when a session ends.
            on_log: Called with each new message log entry.
        """
        self._on_message = on_message
        self._on_disconnected = on_disconnected
        self._on_log = on_log

    def add_log(self, text: str) -> LogEntry:
        """Add an entry to the message log and notify the host."""
        entry = self.messages.add(text)
        if self._on_log:
            self._on_log(entry)
        return entry

    def default_subnet(self) -> str:
        """Get the subnet to scan: configured, guessed from local interfaces, or the common default."""
        if self.config.subnet:
            return self.config.subnet.rstrip('.')
        return guess_subnet_prefix() or DEFAULT_SUBNET_HINT

    def scan(self, subnet: Optional[str] = None, port: Optional[int] = None) -> Optional[str]:
        """
        Look for an echo server on a /24 subnet.

        Args:
            subnet: First three octets to scan. Defaults to ``default_subnet()``.
            port: Port to probe. Defaults to the configured port.

        Returns:
            The address of a listening server, or None.

        Raises:
            ValidationError: If the subnet or port is malformed.
        """
        subnet = subnet or self.default_subnet()
        port = self.config.port if port is None else port

        self.add_log(f"🔍 Scanning {subnet}.1-254 on port {port}...")
        result = self.scanner.scan(subnet, port)
        self.last_scan = result

        if result.found:
            self.add_log(f"🔍 Found server at {result.address}:{port}")
        elif result.timed_out:
            self.add_log(f"❌ Scan timed out after {result.elapsed_seconds:.1f}s")
        else:
            self.add_log(f"❌ No server found on {subnet}.0/24 port {port}")
        return result.address

    def connect(self, address: str, port: Optional[int] = None) -> ConnectionSession:
        """
        Connect to a server, replacing any existing session.

        Returns:
            The new connected session.

        Raises:
            InvalidAddressError: If ``address`` is not an IPv4 address.
            SessionError: If the connection fails.
        """
        port = self.config.port if port is None else port

        with self._lock:
            if self._session is not None:
                self._session.disconnect()
                self._session = None

            session = ConnectionSession(SessionConfig(
                host=address,
                port=port,
                timeout=self.config.connect_timeout,
                buffer_size=self.config.buffer_size,
                greeting=self.config.greeting,
                receive_poll_interval=self.config.receive_poll_interval
            ))
            session.set_callbacks(
                on_message=self._handle_message,
                on_disconnected=lambda reason: self._handle_disconnected(session, reason)
            )

            self.add_log(f"🔄 Connecting to {address}:{port}...")
            self._session = session
            try:
                session.connect()
            except EchoAppError as e:
                if self._session is session:
                    self._session = None
                self.add_log(f"❌ {e}")
                logger.warning(f"Connection to {address}:{port} failed: {e}")
                raise

            self.add_log(f"✅ Connected to server {address}:{port}")
            if self.config.greeting:
                self.add_log(f"📤 Sent: {self.config.greeting}")
            return session

    def send(self, text: str) -> None:
        """
        Send text to the connected server.

        Raises:
            ValidationError: If the text cannot be encoded; nothing is sent.
            NotConnectedError: If there is no live session.
            SessionIOError: If the write fails; the session is torn down.
        """
        session = self._session
        if session is None or not session.is_alive():
            raise NotConnectedError("Not connected to server", operation="send")

        try:
            session.send(text)
        except SessionError as e:
            self.add_log(f"❌ Error sending message: {e}")
            raise

        self.add_log(f"📤 Sent: {text}")

    def disconnect(self) -> None:
        """Disconnect the current session, if any."""
        with self._lock:
            session, self._session = self._session, None
        if session is not None:
            session.disconnect()

    def shutdown(self) -> None:
        """Stop any scan in progress and disconnect."""
        self.scanner.cancel()
        self.disconnect()

    def is_connected(self) -> bool:
        session = self._session
        return session is not None and session.is_alive()

    def get_connection_status(self) -> SessionStatus:
        session = self._session
        return session.get_status() if session is not None else SessionStatus.DISCONNECTED

    @property
    def session(self) -> Optional[ConnectionSession]:
        return self._session

    def _handle_message(self, text: str) -> None:
        self.add_log(f"📨 Server: {text}")
        if self._on_message:
            self._on_message(text)

    def _handle_disconnected(self, session: ConnectionSession, reason: str) -> None:
        if reason == "peer closed":
            self.add_log("📱 Server disconnected")
        elif reason.startswith(("send failed", "receive failed")):
            self.add_log(f"❌ {reason}")
        self.add_log("🔴 Disconnected from server")

        # Called on the receive thread; must not take self._lock
        if self._session is session:
            self._session = None

        if self._on_disconnected:
            self._on_disconnected(reason)
