# py2teamspeak package
"""
Client for the TeamSpeak ServerQuery line protocol.
"""

__version__ = "0.5.0"

from .client import QueryClient
from .core.errors import QueryError, TransportError, ProtocolError
from .core.query_protocol import escape, unescape, parse_line, build_command_line
from .models.command import PendingCommand, CommandResult, ErrorInfo
from .models.connection import ConnectionConfig

__all__ = [
    "QueryClient",
    "QueryError",
    "TransportError",
    "ProtocolError",
    "escape",
    "unescape",
    "parse_line",
    "build_command_line",
    "PendingCommand",
    "CommandResult",
    "ErrorInfo",
    "ConnectionConfig",
]
