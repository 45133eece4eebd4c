"""
Connection models for py2teamspeak.

Classes:
    ConnectionConfig: Immutable configuration for a connection
    ConnectionPhase: Enumeration of transport phases
    ConnectionState: Per-client lifecycle state gating command writes
"""

import re
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import List, Optional, Tuple


DEFAULT_HOST = "localhost"
DEFAULT_PORT = 10011
DEFAULT_BANNER_LINES = 2

_HOSTNAME_PATTERN = re.compile(
    r'^(?=.{1,253}$)[A-Za-z0-9](?:[A-Za-z0-9-]{0,61}[A-Za-z0-9])?'
    r'(?:\.[A-Za-z0-9](?:[A-Za-z0-9-]{0,61}[A-Za-z0-9])?)*$'
)
_IPV4_PATTERN = re.compile(
    r'^(?:(?:25[0-5]|2[0-4][0-9]|[01]?[0-9][0-9]?)\.){3}'
    r'(?:25[0-5]|2[0-4][0-9]|[01]?[0-9][0-9]?)$'
)


@dataclass(frozen=True)
class ConnectionConfig:
    """
    Immutable configuration for a query connection.

    Attributes:
        host: Hostname or IPv4 address of the query interface
        port: Query port (1-65535, default 10011)
        timeout: Connect timeout in seconds
        encoding: Text encoding of the line stream
        banner_lines: Number of greeting lines the server sends before it
                      accepts commands

    Example:
        >>> config = ConnectionConfig("ts.example.org")
        >>> config.validate()
        (True, [])
    """

    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT
    timeout: float = 5.0
    encoding: str = "utf-8"
    banner_lines: int = DEFAULT_BANNER_LINES

    def validate(self) -> Tuple[bool, List[str]]:
        """
        Validate the connection configuration.

        Returns:
            Tuple of (is_valid, list_of_error_messages)
        """
        errors = []

        if not isinstance(self.host, str) or not (
                _IPV4_PATTERN.match(self.host) or _HOSTNAME_PATTERN.match(self.host)):
            errors.append(f"Invalid host: {self.host!r}")

        if isinstance(self.port, bool) or not isinstance(self.port, int) \
                or not (1 <= self.port <= 65535):
            errors.append(f"Port out of range (1-65535): {self.port!r}")

        if not isinstance(self.timeout, (int, float)) or self.timeout <= 0:
            errors.append(f"Timeout must be positive: {self.timeout!r}")

        if isinstance(self.banner_lines, bool) or not isinstance(self.banner_lines, int) \
                or self.banner_lines < 0:
            errors.append(f"Banner line count must be >= 0: {self.banner_lines!r}")

        try:
            "".encode(self.encoding)
        except (LookupError, TypeError):
            errors.append(f"Unknown encoding: {self.encoding!r}")

        return (len(errors) == 0, errors)


class ConnectionPhase(Enum):
    """
    Transport phases.

    States:
        DISCONNECTED: No socket
        CONNECTING: Connect in progress
        CONNECTED: Socket open (banner may still be pending)
        ERROR: Last connect or read failed
    """

    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    ERROR = "error"


@dataclass
class ConnectionState:
    """
    Lifecycle state owned by one client.

    ``lifecycle`` starts at ``-banner_lines`` and is incremented once per
    greeting line; commands may be written only when it is zero.

    Example:
        >>> state = ConnectionState()
        >>> state.register_banner_line(), state.register_banner_line()
        (False, True)
        >>> state.is_ready
        True
    """

    banner_lines: int = DEFAULT_BANNER_LINES
    lifecycle: int = field(init=False)
    phase: ConnectionPhase = ConnectionPhase.DISCONNECTED
    connected_at: Optional[datetime] = None
    last_error: Optional[str] = None

    def __post_init__(self):
        self.lifecycle = -self.banner_lines

    @property
    def is_ready(self) -> bool:
        return self.lifecycle == 0

    @property
    def awaiting_banner(self) -> bool:
        return self.lifecycle < 0

    def register_banner_line(self) -> bool:
        """
        Count one greeting line.

        Returns:
            True exactly when this line made the connection ready
        """
        if self.lifecycle >= 0:
            return False
        self.lifecycle += 1
        return self.lifecycle == 0

    def reset(self) -> None:
        """Return to the pre-banner state for a fresh connection."""
        self.lifecycle = -self.banner_lines
        self.connected_at = None
        self.last_error = None
