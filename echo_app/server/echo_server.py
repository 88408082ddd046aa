"""
Echo Server Module

TCP server that answers every chunk it reads with the same text prefixed by
``"ECHO: "``. One handler thread per client, graceful shutdown.
"""

import errno
import signal
import socket
import sys
import threading
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

from echo_app.discovery.local_network import get_local_ipv4_addresses
from echo_app.shared.config import ServerConfig
from echo_app.shared.constants import THREAD_JOIN_TIMEOUT
from echo_app.shared.exceptions import ConfigurationError, EchoServerError
from echo_app.shared.logging_config import get_logger
from echo_app.shared.utils import close_quietly, decode_text, encode_text, format_address


logger = get_logger(__name__)


class EchoServer:
    """
    Echo server with a threaded accept loop.

    The accept loop polls with a socket timeout so it can observe
    ``shutdown_event``; each accepted client is served on its own thread.
    """

    def __init__(self, config: Optional[ServerConfig] = None, install_signal_handlers: bool = False):
        """
        Initialize the echo server.

        Args:
            config: Server configuration. If None, loads from environment.
            install_signal_handlers: Install SIGINT/SIGTERM handlers that shut
                the server down. Only valid on the main thread.
        """
        self.config = config or ServerConfig.from_env()
        self.server_socket: Optional[socket.socket] = None
        self.is_running = False
        self.shutdown_event = threading.Event()
        self.ready_event = threading.Event()

        self._clients: Dict[str, socket.socket] = {}
        self._client_threads: Dict[str, threading.Thread] = {}
        self._clients_lock = threading.Lock()

        # Statistics
        self.start_time: Optional[datetime] = None
        self.total_connections_accepted = 0
        self.total_chunks_echoed = 0

        if install_signal_handlers:
            self._setup_signal_handlers()

        logger.info(f"EchoServer initialized with config: {self.config}")

    def start(self) -> None:
        """
        Bind, listen and serve until ``shutdown()`` is called.

        Raises:
            EchoServerError: If the server fails to start.
            ConfigurationError: If configuration is invalid.
        """
        if self.is_running:
            raise EchoServerError("Server is already running")

        try:
            self.config.validate()
            self._create_server_socket()
            self._bind_and_listen()
        except (ConfigurationError, EchoServerError):
            self._close_server_socket()
            raise

        self.is_running = True
        self.shutdown_event.clear()
        self.start_time = datetime.now()
        self.ready_event.set()

        logger.info(f"Echo server started on {self.config.host}:{self.get_server_port()}")
        self._log_local_addresses()

        try:
            self._run_server_loop()
        finally:
            self.shutdown()

    def start_in_background(self) -> threading.Thread:
        """
        Run ``start()`` on a daemon thread and wait until it is listening.

        Returns:
            The server thread.

        Raises:
            EchoServerError: If the server does not come up.
        """
        thread = threading.Thread(target=self._start_quietly, name="EchoServer", daemon=True)
        thread.start()
        if not self.ready_event.wait(timeout=5.0):
            raise EchoServerError("Server did not start listening in time")
        if not self.is_running:
            raise EchoServerError("Server failed to start; see log for details")
        return thread

    def shutdown(self) -> None:
        """
        Gracefully shutdown the server and close all client connections.
        """
        if not self.is_running:
            return

        logger.info("Initiating server shutdown...")
        self.is_running = False
        self.shutdown_event.set()

        self._close_server_socket()
        self._shutdown_client_threads()

        logger.info("Server shutdown complete")

    def get_server_port(self) -> int:
        """
        Get the actual port the server is listening on.

        Raises:
            EchoServerError: If server socket is not initialized
        """
        if not self.server_socket:
            raise EchoServerError("Server socket not initialized")

        try:
            return self.server_socket.getsockname()[1]
        except OSError as e:
            raise EchoServerError(f"Failed to get server port: {e}") from e

    def get_server_statistics(self) -> Dict[str, Any]:
        """
        Get server statistics.

        Returns:
            Dictionary containing server statistics
        """
        uptime = datetime.now() - self.start_time if self.start_time else None
        with self._clients_lock:
            connected = len(self._clients)

        return {
            'host': self.config.host,
            'port': self.config.port,
            'is_running': self.is_running,
            'start_time': self.start_time,
            'uptime_seconds': uptime.total_seconds() if uptime else 0,
            'connected_clients': connected,
            'total_connections_accepted': self.total_connections_accepted,
            'total_chunks_echoed': self.total_chunks_echoed
        }

    def _start_quietly(self) -> None:
        try:
            self.start()
        except Exception as e:
            logger.error(f"Failed to start server: {e}")
            self.ready_event.set()

    def _create_server_socket(self) -> None:
        """
        Create and configure the server socket.

        Raises:
            EchoServerError: If socket creation fails
        """
        try:
            self.server_socket = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
            self.server_socket.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
            self.server_socket.settimeout(self.config.socket_timeout)

            logger.debug("Server socket created and configured")

        except OSError as e:
            raise EchoServerError(f"Failed to create server socket: {e}") from e

    def _bind_and_listen(self) -> None:
        """
        Bind the server socket and start listening.

        Raises:
            EchoServerError: If binding or listening fails
        """
        try:
            self.server_socket.bind((self.config.host, self.config.port))
            self.server_socket.listen(self.config.backlog)

            logger.info(f"Listening on {self.config.host}:{self.get_server_port()}")

        except OSError as e:
            if e.errno == errno.EADDRINUSE:
                raise EchoServerError(f"Port {self.config.port} is already in use") from e
            elif e.errno == errno.EACCES:
                raise EchoServerError(f"Permission denied to bind to port {self.config.port}") from e
            else:
                raise EchoServerError(f"Failed to bind to {self.config.host}:{self.config.port}: {e}") from e

    def _log_local_addresses(self) -> None:
        addresses = get_local_ipv4_addresses()
        logger.info(f"Local IPs: {', '.join(addresses) if addresses else 'none found'}")

    def _run_server_loop(self) -> None:
        """
        Main server loop that accepts client connections.
        """
        logger.info("Server loop started, accepting connections...")

        while self.is_running and not self.shutdown_event.is_set():
            try:
                client_socket, address = self.server_socket.accept()
            except socket.timeout:
                # Timeout allows checking for shutdown signal
                continue
            except OSError as e:
                if self.is_running:  # Only log if not shutting down
                    logger.error(f"Socket error in server loop: {e}")
                break

            self.total_connections_accepted += 1
            self._handle_new_client(client_socket, address)

        logger.info("Server loop ended")

    def _handle_new_client(self, client_socket: socket.socket, address: Tuple[str, int]) -> None:
        """
        Register a new client and start its handler thread.

        Args:
            client_socket: The client's socket
            address: Client's address tuple
        """
        endpoint = format_address(address)
        logger.info(f"Client connected: {endpoint}")

        # Accepted sockets may inherit the listener timeout
        client_socket.settimeout(None)

        thread = threading.Thread(
            target=self._handle_client_communication,
            args=(endpoint, client_socket),
            name=f"Client-{endpoint}",
            daemon=True
        )
        with self._clients_lock:
            self._clients[endpoint] = client_socket
            self._client_threads[endpoint] = thread
        thread.start()

    def _handle_client_communication(self, endpoint: str, client_socket: socket.socket) -> None:
        """
        Echo every chunk received from a client until it disconnects.

        Args:
            endpoint: Client "host:port" string
            client_socket: The client's socket
        """
        try:
            while not self.shutdown_event.is_set():
                data = client_socket.recv(self.config.buffer_size)
                if not data:
                    logger.info(f"Client disconnected: {endpoint}")
                    break

                message = decode_text(data)
                logger.info(f"From {endpoint}: {message}")

                client_socket.sendall(encode_text(self.config.echo_prefix + message))
                self.total_chunks_echoed += 1

        except OSError as e:
            if not self.shutdown_event.is_set():
                logger.warning(f"Client error ({endpoint}): {e}")
        finally:
            close_quietly(client_socket)
            with self._clients_lock:
                self._clients.pop(endpoint, None)
                self._client_threads.pop(endpoint, None)

    def _close_server_socket(self) -> None:
        if self.server_socket:
            close_quietly(self.server_socket)
            logger.debug("Server socket closed")

    def _shutdown_client_threads(self) -> None:
        """Close client sockets and wait for their handler threads."""
        with self._clients_lock:
            clients: List[Tuple[str, socket.socket]] = list(self._clients.items())
            threads: List[threading.Thread] = list(self._client_threads.values())

        logger.info(f"Shutting down {len(clients)} client handlers...")

        for endpoint, client_socket in clients:
            try:
                client_socket.shutdown(socket.SHUT_RDWR)
            except OSError:
                pass  # Already disconnected
            close_quietly(client_socket)

        for thread in threads:
            if thread is not threading.current_thread():
                thread.join(timeout=THREAD_JOIN_TIMEOUT)
                if thread.is_alive():
                    logger.warning(f"{thread.name} did not shutdown gracefully")

    def _setup_signal_handlers(self) -> None:
        """Set up signal handlers for graceful shutdown."""
        def signal_handler(signum, frame):
            logger.info(f"Received signal {signum}, initiating shutdown...")
            self.shutdown()
            sys.exit(0)

        signal.signal(signal.SIGINT, signal_handler)
        if hasattr(signal, "SIGTERM"):
            signal.signal(signal.SIGTERM, signal_handler)
