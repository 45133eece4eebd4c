"""
Data models for py2teamspeak.

This package contains the data structures shared by the command pipeline,
the transport and the client facade.
"""

from .command import (
    CommandResult,
    ErrorInfo,
    RequestDescriptor,
    PendingCommand,
    CommandCallback
)

from .connection import (
    ConnectionConfig,
    ConnectionPhase,
    ConnectionState,
    DEFAULT_HOST,
    DEFAULT_PORT
)

__all__ = [
    'CommandResult',
    'ErrorInfo',
    'RequestDescriptor',
    'PendingCommand',
    'CommandCallback',
    'ConnectionConfig',
    'ConnectionPhase',
    'ConnectionState',
    'DEFAULT_HOST',
    'DEFAULT_PORT',
]
