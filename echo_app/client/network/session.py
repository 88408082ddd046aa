"""
Connection Session

Owns a single TCP connection to an echo server: connect with timeout, greeting,
background receive loop, send, and idempotent disconnect.

The wire protocol is unframed UTF-8. Each ``send`` is one write and each read
of up to ``buffer_size`` bytes is delivered as one message, so a message split
or merged by TCP arrives split or merged. This matches the echo server and is
left as is.
"""

import socket
import threading
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable, Dict, Optional

from echo_app.shared.constants import (
    CLIENT_BUFFER_SIZE,
    DEFAULT_CONNECT_TIMEOUT,
    DEFAULT_GREETING,
    DEFAULT_RECEIVE_POLL_INTERVAL,
    THREAD_JOIN_TIMEOUT,
)
from echo_app.shared.exceptions import (
    NotConnectedError,
    SessionError,
    SessionIOError,
    ValidationError,
    classify_socket_error,
)
from echo_app.shared.logging_config import get_logger
from echo_app.shared.models import SessionStatus
from echo_app.shared.utils import (
    close_quietly,
    decode_text,
    encode_text,
    validate_ipv4_address,
    validate_port,
)


logger = get_logger(__name__)

MessageCallback = Callable[[str], None]
DisconnectedCallback = Callable[[str], None]


@dataclass
class SessionConfig:
    """Configuration for a connection session."""
    host: str
    port: int
    timeout: float = DEFAULT_CONNECT_TIMEOUT
    buffer_size: int = CLIENT_BUFFER_SIZE
    greeting: Optional[str] = DEFAULT_GREETING
    receive_poll_interval: float = DEFAULT_RECEIVE_POLL_INTERVAL


class ConnectionSession:
    """
    A single client connection to an echo server.

    Lifecycle: DISCONNECTED -> CONNECTING -> CONNECTED -> DISCONNECTED. A
    session is used once; after it disconnects, create a new one to reconnect.
    Any send or receive failure tears the session down.
    """

    def __init__(self, config: SessionConfig) -> None:
        """
        Initialize the session without touching the network.

        Args:
            config: Session configuration.
        """
        self.config = config
        self._socket: Optional[socket.socket] = None
        self._status = SessionStatus.DISCONNECTED
        self._alive = False
        self._closed = False
        self._stop_event = threading.Event()
        self._lock = threading.RLock()
        self._send_lock = threading.Lock()
        self._receive_thread: Optional[threading.Thread] = None
        self._connected_at: Optional[datetime] = None
        self._disconnect_reason: Optional[str] = None
        self._bytes_sent = 0
        self._bytes_received = 0
        self._messages_received = 0

        # Callbacks
        self._on_message: Optional[MessageCallback] = None
        self._on_disconnected: Optional[DisconnectedCallback] = None

    @property
    def endpoint(self) -> str:
        return f"{self.config.host}:{self.config.port}"

    def set_callbacks(self,
                      on_message: Optional[MessageCallback] = None,
                      on_disconnected: Optional[DisconnectedCallback] = None) -> None:
        """
        Set event callbacks.

        Callbacks run on the receive thread (or on the thread that triggered
        the disconnect); the host application marshals them to its UI thread.

        Args:
            on_message: Called with the decoded text of each read.
            on_disconnected: Called once with the reason when the session ends.
        """
        self._on_message = on_message
        self._on_disconnected = on_disconnected

    def connect(self) -> "ConnectionSession":
        """
        Connect, send the greeting, and start the receive loop.

        Returns:
            This session, now connected.

        Raises:
            InvalidAddressError: If the host is not an IPv4 address. No socket
                is created.
            InvalidPortError: If the port is out of range.
            SessionError: A taxonomy member describing the connect failure.
        """
        host = validate_ipv4_address(self.config.host)
        port = validate_port(self.config.port)

        with self._lock:
            if self._closed or self._status != SessionStatus.DISCONNECTED:
                raise SessionError(
                    f"Session for {self.endpoint} cannot be reused", operation="connect", address=self.endpoint
                )
            self._status = SessionStatus.CONNECTING

        logger.info(f"Connecting to {host}:{port}...")
        sock: Optional[socket.socket] = None
        try:
            sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
            sock.settimeout(self.config.timeout)
            sock.connect((host, port))
        except OSError as e:
            close_quietly(sock)
            with self._lock:
                self._status = SessionStatus.DISCONNECTED
                self._closed = True
            error = classify_socket_error(e, self.endpoint)
            logger.warning(f"Connect to {self.endpoint} failed: {error}")
            raise error from e

        with self._lock:
            if self._closed:
                close_quietly(sock)
                raise SessionError(
                    f"Connection to {self.endpoint} was cancelled", operation="connect", address=self.endpoint
                )
            self._socket = sock
            # Blocking from here on; teardown's shutdown() wakes a pending recv
            self._socket.settimeout(None)
            self._status = SessionStatus.CONNECTED
            self._alive = True
            self._connected_at = datetime.now()

        logger.info(f"Connected to server {self.endpoint}")

        if self.config.greeting:
            self.send(self.config.greeting)

        with self._lock:
            if self._alive:
                self._receive_thread = threading.Thread(
                    target=self._receive_loop,
                    name=f"Receive-{self.endpoint}",
                    daemon=True
                )
                self._receive_thread.start()

        return self

    def send(self, text: str) -> None:
        """
        Send text as a single unframed UTF-8 write.

        Writes are serialized on their own lock so a slow write never blocks
        message delivery or disconnect.

        Raises:
            ValidationError: If the text cannot be encoded as UTF-8.
            NotConnectedError: If the session is not live.
            SessionIOError: If the write fails; the session is torn down first.
        """
        data = encode_text(text)

        with self._send_lock:
            with self._lock:
                sock = self._socket
                if not self._alive or sock is None:
                    raise NotConnectedError("Not connected to server", operation="send", address=self.endpoint)

            try:
                sock.sendall(data)
            except OSError as e:
                failure = e
            else:
                with self._lock:
                    self._bytes_sent += len(data)
                logger.debug(f"Sent {len(data)} bytes to {self.endpoint}")
                return

        self._teardown(f"send failed: {failure}")
        raise SessionIOError(
            f"Failed to send data: {failure}", operation="send", address=self.endpoint
        ) from failure

    def disconnect(self) -> None:
        """
        Disconnect from the server.

        Safe to call any number of times and from any thread, including the
        message callback.
        """
        self._teardown("disconnected by user")
        self._join_receive_thread()

    def close(self) -> None:
        """Close the session."""
        self.disconnect()

    def is_alive(self) -> bool:
        """
        Check the liveness flag.

        Returns:
            True while connected and the receive loop should keep running.
        """
        return self._alive

    def get_status(self) -> SessionStatus:
        return self._status

    @property
    def disconnect_reason(self) -> Optional[str]:
        return self._disconnect_reason

    def get_session_info(self) -> Dict[str, Any]:
        """
        Get session information.

        Returns:
            Dictionary with session details.
        """
        return {
            "host": self.config.host,
            "port": self.config.port,
            "status": self._status.value,
            "connected_at": self._connected_at,
            "bytes_sent": self._bytes_sent,
            "bytes_received": self._bytes_received,
            "messages_received": self._messages_received,
            "disconnect_reason": self._disconnect_reason
        }

    def _receive_loop(self) -> None:
        """Read until the peer closes, an I/O error occurs, or the session stops."""
        reason = "receive loop stopped"
        try:
            while self._alive and not self._stop_event.is_set():
                sock = self._socket
                if sock is None:
                    break

                try:
                    data = sock.recv(self.config.buffer_size)
                except socket.timeout:
                    continue
                except OSError as e:
                    if self._stop_event.is_set():
                        # Socket closed by disconnect()
                        break
                    reason = f"receive failed: {e}"
                    logger.warning(f"Error receiving from {self.endpoint}: {e}")
                    break

                if self._stop_event.is_set():
                    break

                if not data:
                    reason = "peer closed"
                    logger.info(f"Server {self.endpoint} closed the connection")
                    break

                text = decode_text(data)
                with self._lock:
                    # No delivery once the liveness flag has flipped
                    if not self._alive:
                        break

                    self._bytes_received += len(data)
                    self._messages_received += 1
                    callback = self._on_message

                logger.debug(f"Received {len(data)} bytes from {self.endpoint}")

                if callback:
                    try:
                        callback(text)
                    except Exception:
                        logger.exception("Message callback raised")
        finally:
            self._teardown(reason)

    def _teardown(self, reason: str) -> None:
        """Flip the liveness flag, stop the loop, close the socket, notify once."""
        with self._lock:
            if self._closed:
                return
            self._closed = True
            was_alive = self._alive
            self._alive = False
            self._status = SessionStatus.DISCONNECTED
            self._disconnect_reason = reason
            self._stop_event.set()
            sock, self._socket = self._socket, None

        if sock is not None:
            try:
                sock.shutdown(socket.SHUT_RDWR)
            except OSError:
                pass  # Peer already gone
            close_quietly(sock)

        self._join_receive_thread()

        logger.info(f"Session {self.endpoint} disconnected: {reason}")

        if was_alive and self._on_disconnected:
            try:
                self._on_disconnected(reason)
            except Exception:
                logger.exception("Disconnected callback raised")

    def _join_receive_thread(self) -> None:
        """Wait for the receive thread to exit, unless called from it."""
        thread = self._receive_thread
        if thread is None or thread is threading.current_thread() or not thread.is_alive():
            return

        thread.join(timeout=max(THREAD_JOIN_TIMEOUT, self.config.receive_poll_interval * 4))
        if thread.is_alive():
            logger.warning(f"Receive thread for {self.endpoint} did not stop in time")

    def __enter__(self) -> "ConnectionSession":
        """Context manager entry."""
        return self.connect()

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        """Context manager exit."""
        self.close()


def connect(address: str,
            port: int,
            timeout: float = DEFAULT_CONNECT_TIMEOUT,
            on_message: Optional[MessageCallback] = None,
            on_disconnected: Optional[DisconnectedCallback] = None,
            greeting: Optional[str] = DEFAULT_GREETING,
            buffer_size: int = CLIENT_BUFFER_SIZE) -> ConnectionSession:
    """
    Open a session to ``address:port``.

    Returns:
        A connected session.

    Raises:
        InvalidAddressError: Before any network activity for malformed addresses.
        SessionError: For connect failures.
    """
    if timeout is None or timeout <= 0:
        raise ValidationError("Connect timeout must be positive", field="timeout")

    session = ConnectionSession(SessionConfig(
        host=address,
        port=port,
        timeout=timeout,
        buffer_size=buffer_size,
        greeting=greeting
    ))
    session.set_callbacks(on_message=on_message, on_disconnected=on_disconnected)
    return session.connect()


def send(session: ConnectionSession, text: str) -> None:
    """Send ``text`` on ``session``."""
    session.send(text)


def disconnect(session: ConnectionSession) -> None:
    """Disconnect ``session``; no-op if already disconnected."""
    session.disconnect()
