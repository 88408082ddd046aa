"""
Subnet Scanner

Finds an echo server by probing every host of a /24 subnet with TCP connects.
"""

import socket
import threading
import time
from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, wait
from dataclasses import dataclass, field
from typing import List, Optional, Set

from echo_app.shared.constants import (
    DEFAULT_PROBE_TIMEOUT,
    DEFAULT_SCAN_CONCURRENCY,
    DEFAULT_SCAN_TIMEOUT,
    FIRST_HOST_OCTET,
    LAST_HOST_OCTET,
)
from echo_app.shared.exceptions import ValidationError
from echo_app.shared.logging_config import get_logger
from echo_app.shared.models import AddressCandidate, ScanResult
from echo_app.shared.utils import close_quietly, validate_port, validate_subnet_prefix


logger = get_logger(__name__)


@dataclass
class ScannerConfig:
    """Configuration for subnet scanning."""
    concurrency: int = DEFAULT_SCAN_CONCURRENCY
    probe_timeout: float = DEFAULT_PROBE_TIMEOUT
    scan_timeout: float = DEFAULT_SCAN_TIMEOUT


@dataclass
class _ScanState:
    """Per-scan cancellation signal, probe counter and open probe sockets."""
    stop_event: threading.Event = field(default_factory=threading.Event)
    lock: threading.Lock = field(default_factory=threading.Lock)
    probes_attempted: int = 0
    sockets: Set[socket.socket] = field(default_factory=set)

    def record_attempt(self) -> None:
        with self.lock:
            self.probes_attempted += 1

    def register(self, sock: socket.socket) -> bool:
        """Track an open probe socket. Returns False once the scan has stopped."""
        with self.lock:
            if self.stop_event.is_set():
                return False
            self.sockets.add(sock)
            return True

    def unregister(self, sock: socket.socket) -> None:
        with self.lock:
            self.sockets.discard(sock)

    def stop(self) -> None:
        """Signal the workers and abort every connect still in flight."""
        with self.lock:
            self.stop_event.set()
            open_sockets = list(self.sockets)

        for sock in open_sockets:
            try:
                sock.shutdown(socket.SHUT_RDWR)
            except OSError:
                pass  # Not connected yet or already closed


def generate_candidates(subnet_prefix: str, port: int) -> List[AddressCandidate]:
    """
    Generate the candidate addresses ``{prefix}.1`` through ``{prefix}.254``.

    Raises:
        InvalidSubnetError: If the prefix is malformed.
        InvalidPortError: If the port is out of range.
    """
    prefix = validate_subnet_prefix(subnet_prefix)
    validate_port(port)
    return [
        AddressCandidate(host=f"{prefix}.{octet}", port=port)
        for octet in range(FIRST_HOST_OCTET, LAST_HOST_OCTET + 1)
    ]


class SubnetScanner:
    """
    Concurrent TCP connect scanner for a single /24 subnet.

    At most ``concurrency`` probes are in flight at once. The first probe that
    connects wins; queued probes are cancelled and connects still in flight
    are aborted, so no probe socket or worker outlives ``scan``. Timeouts,
    refusals and unreachable hosts all count as a failed probe.
    """

    def __init__(self, config: Optional[ScannerConfig] = None) -> None:
        """
        Initialize the scanner.

        Args:
            config: Scanner configuration.
        """
        self.config = config or ScannerConfig()
        if not isinstance(self.config.concurrency, int) or self.config.concurrency < 1:
            raise ValidationError("Scan concurrency must be a positive integer", field="concurrency")
        self._current: Optional[_ScanState] = None

    def scan(self,
             subnet_prefix: str,
             port: int,
             per_attempt_timeout: Optional[float] = None,
             overall_timeout: Optional[float] = None) -> ScanResult:
        """
        Scan a subnet for a host accepting TCP connections on ``port``.

        Args:
            subnet_prefix: First three octets of the subnet, e.g. "192.168.1".
            port: TCP port to probe.
            per_attempt_timeout: Connect timeout per candidate, in seconds.
            overall_timeout: Deadline for the whole scan, in seconds.

        Returns:
            ScanResult with the first address found, or no address.

        Raises:
            ValidationError: If the subnet, port or timeouts are invalid. No
                socket is opened in that case.
        """
        candidates = generate_candidates(subnet_prefix, port)
        subnet = validate_subnet_prefix(subnet_prefix)
        per_attempt = self.config.probe_timeout if per_attempt_timeout is None else per_attempt_timeout
        overall = self.config.scan_timeout if overall_timeout is None else overall_timeout

        if per_attempt <= 0 or overall <= 0:
            raise ValidationError("Scan timeouts must be positive", field="timeout")

        state = _ScanState()
        self._current = state
        started = time.monotonic()
        deadline = started + overall
        found: Optional[str] = None
        timed_out = False

        logger.info(f"Scanning {subnet}.{FIRST_HOST_OCTET}-{LAST_HOST_OCTET} on port {port}")

        executor = ThreadPoolExecutor(max_workers=self.config.concurrency, thread_name_prefix="ScanProbe")
        try:
            pending: Set[Future] = {
                executor.submit(self._probe, candidate, per_attempt, state)
                for candidate in candidates
            }

            while pending and found is None and not state.stop_event.is_set():
                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    timed_out = True
                    break

                done, pending = wait(pending, timeout=remaining, return_when=FIRST_COMPLETED)
                for future in done:
                    if future.cancelled():
                        continue
                    address = future.result()
                    if address is not None and found is None:
                        found = address
        finally:
            state.stop()
            executor.shutdown(wait=True, cancel_futures=True)
            self._current = None

        elapsed = time.monotonic() - started

        if found is not None:
            logger.info(f"Found server at {found}:{port} after {elapsed:.2f}s")
        elif timed_out:
            logger.info(f"Scan of {subnet}.0/24 timed out after {elapsed:.2f}s")
        else:
            logger.info(f"No server found on {subnet}.0/24 port {port}")

        return ScanResult(
            address=found,
            port=port,
            subnet=subnet,
            probes_attempted=state.probes_attempted,
            elapsed_seconds=elapsed,
            timed_out=timed_out
        )

    def cancel(self) -> None:
        """Stop the scan in progress; it returns without an address."""
        state = self._current
        if state is not None:
            state.stop()

    def is_scanning(self) -> bool:
        """Check whether a scan is in progress."""
        return self._current is not None

    def _probe(self, candidate: AddressCandidate, timeout: float, state: _ScanState) -> Optional[str]:
        """
        Try a single TCP connect.

        Returns:
            The candidate host if it accepted the connection, otherwise None.
        """
        if state.stop_event.is_set():
            return None

        state.record_attempt()
        sock: Optional[socket.socket] = None
        try:
            sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
            if not state.register(sock):
                return None
            sock.settimeout(timeout)
            sock.connect((candidate.host, candidate.port))
            return None if state.stop_event.is_set() else candidate.host
        except OSError:
            return None
        finally:
            if sock is not None:
                state.unregister(sock)
            close_quietly(sock)


def scan(subnet_prefix: str,
         port: int,
         per_attempt_timeout: float = DEFAULT_PROBE_TIMEOUT,
         overall_timeout: float = DEFAULT_SCAN_TIMEOUT) -> Optional[str]:
    """
    Scan ``{subnet_prefix}.1-254`` and return the first host listening on ``port``.

    Returns:
        The address found, or None.
    """
    result = SubnetScanner().scan(subnet_prefix, port, per_attempt_timeout, overall_timeout)
    return result.address
