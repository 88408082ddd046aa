"""
Data Models

Defines data classes and models used throughout the echo application.
"""

import threading
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import List, Optional

from .constants import MAX_LOG_ENTRIES, LOG_ENTRY_TIME_FORMAT


class SessionStatus(Enum):
    """Enumeration of connection session statuses."""
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"


@dataclass(frozen=True)
class AddressCandidate:
    """An IPv4 address and port probed during a subnet scan."""
    host: str
    port: int

    @property
    def endpoint(self) -> str:
        """Get endpoint as host:port string."""
        return f"{self.host}:{self.port}"


@dataclass
class ScanResult:
    """Outcome of a single subnet scan."""
    address: Optional[str]
    port: int
    subnet: str
    probes_attempted: int = 0
    elapsed_seconds: float = 0.0
    timed_out: bool = False

    @property
    def found(self) -> bool:
        """Whether a listening server was found."""
        return self.address is not None


@dataclass
class LocalInterface:
    """An IPv4 address bound to an up, non-loopback interface."""
    name: str
    address: str
    netmask: Optional[str] = None

    @property
    def subnet_prefix(self) -> str:
        """Get the first three octets of the address."""
        return self.address.rsplit('.', 1)[0]


@dataclass
class LogEntry:
    """A timestamped line of the client message log."""
    text: str
    timestamp: datetime = field(default_factory=datetime.now)

    def formatted(self) -> str:
        """Render the entry as ``[HH:MM:SS] text``."""
        return f"[{self.timestamp.strftime(LOG_ENTRY_TIME_FORMAT)}] {self.text}"


class MessageLog:
    """
    Bounded, most-recent-first log of client events.

    Entries beyond ``max_entries`` are evicted oldest first.
    """

    def __init__(self, max_entries: int = MAX_LOG_ENTRIES) -> None:
        if max_entries < 1:
            raise ValueError("max_entries must be a positive integer")
        self.max_entries = max_entries
        self._entries: List[LogEntry] = []
        self._lock = threading.Lock()

    def add(self, text: str) -> LogEntry:
        """Insert a new entry at the front and trim the tail."""
        entry = LogEntry(text)
        with self._lock:
            self._entries.insert(0, entry)
            while len(self._entries) > self.max_entries:
                self._entries.pop()
        return entry

    def entries(self) -> List[LogEntry]:
        """Get a snapshot of the entries, most recent first."""
        with self._lock:
            return list(self._entries)

    def formatted(self) -> List[str]:
        """Get the formatted entries, most recent first."""
        return [entry.formatted() for entry in self.entries()]

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
