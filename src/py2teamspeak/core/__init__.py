"""
Core layer for ServerQuery communication.

This package contains the line codec, the single-flight command queue,
the response router, the event registry and the TCP line transport.

Only the leaf modules are re-exported here; the queue, router and
transport depend on :mod:`py2teamspeak.models` and are imported from their
own modules.
"""

from .query_protocol import (
    escape,
    unescape,
    parse_line,
    build_command_line,
    LinePrefix
)
from .errors import (
    QueryError,
    TransportError,
    ProtocolError,
    MalformedLineError,
    ConfigurationError,
    ValidationError,
    ErrorCodes
)
from .events import EventRegistry
from .command_catalog import QUERY_COMMANDS

__all__ = [
    'escape',
    'unescape',
    'parse_line',
    'build_command_line',
    'LinePrefix',
    'QueryError',
    'TransportError',
    'ProtocolError',
    'MalformedLineError',
    'ConfigurationError',
    'ValidationError',
    'ErrorCodes',
    'EventRegistry',
    'QUERY_COMMANDS'
]
