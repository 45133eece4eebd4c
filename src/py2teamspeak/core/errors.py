"""
Unified error handling for py2teamspeak.

This module defines the error hierarchy shared by the transport, the
command pipeline and the configuration layer.

Error Code Ranges:
- 1000-1999: Transport errors
- 2000-2999: Protocol/command errors
- 6000-6999: Configuration errors
- 7000-7999: Validation errors
- 9000-9999: Unknown/System errors

Protocol errors reported by the server are delivered as values
(see :class:`py2teamspeak.models.command.ErrorInfo`); the exception classes
here are for callers that prefer raising, and for the transport and
configuration layers which do raise.
"""

from typing import Optional, Dict, Any
from datetime import datetime
import traceback


class QueryError(Exception):
    """
    Base exception for all py2teamspeak errors.

    Provides structured error information with context tracking.
    """

    DEFAULT_CODE = 9000

    def __init__(
        self,
        message: str,
        error_code: Optional[int] = None,
        context: Optional[Dict[str, Any]] = None,
        cause: Optional[Exception] = None
    ):
        """
        Initialize a query error.

        Args:
            message: Human-readable error description
            error_code: Numeric error code for categorization
            context: Additional context information
            cause: Original exception if this wraps another error
        """
        super().__init__(message)
        self.message = message
        self.error_code = error_code if error_code is not None else self.DEFAULT_CODE
        self.context = context or {}
        self.cause = cause
        self.timestamp = datetime.now()

        self.stack_trace = traceback.format_exc() if cause else None

        if cause:
            self.context['original_error'] = str(cause)
            self.context['original_type'] = type(cause).__name__

    def to_dict(self) -> Dict[str, Any]:
        """Convert error to dictionary for logging/serialization."""
        return {
            'error_type': self.__class__.__name__,
            'message': self.message,
            'code': self.error_code,
            'context': self.context,
            'timestamp': self.timestamp.isoformat(),
            'cause': str(self.cause) if self.cause else None,
        }

    def format_log_message(self) -> str:
        """Format error for logging (with all details)."""
        parts = [
            f"[{self.error_code}] {self.__class__.__name__}: {self.message}"
        ]

        if self.context:
            parts.append(f"Context: {self.context}")

        if self.cause:
            parts.append(f"Caused by: {self.cause}")

        return " | ".join(parts)


class TransportError(QueryError):
    """Connection-level failures: connect, read, write, remote close."""
    DEFAULT_CODE = 1001

    def __init__(self, message: str, **kwargs):
        if 'context' not in kwargs or kwargs['context'] is None:
            kwargs['context'] = {}
        kwargs['context']['category'] = 'TRANSPORT'
        super().__init__(message, **kwargs)


class ProtocolError(QueryError):
    """A command terminated with a nonzero error id."""
    DEFAULT_CODE = 2002

    def __init__(self, message: str, error_id: int,
                 command: Optional[str] = None, **kwargs):
        if 'context' not in kwargs or kwargs['context'] is None:
            kwargs['context'] = {}
        kwargs['context']['category'] = 'PROTOCOL'
        kwargs['context']['error_id'] = error_id
        if command is not None:
            kwargs['context']['command'] = command
        super().__init__(message, **kwargs)
        self.error_id = error_id
        self.command = command


class MalformedLineError(QueryError):
    """A received line could not be classified or parsed."""
    DEFAULT_CODE = 2005

    def __init__(self, message: str, line: Optional[str] = None, **kwargs):
        if 'context' not in kwargs or kwargs['context'] is None:
            kwargs['context'] = {}
        kwargs['context']['category'] = 'PROTOCOL'
        if line is not None:
            kwargs['context']['line'] = line
        super().__init__(message, **kwargs)
        self.line = line


class ConfigurationError(QueryError):
    """Errors in configuration files or settings."""
    DEFAULT_CODE = 6001

    def __init__(self, message: str, setting_name: Optional[str] = None, **kwargs):
        if 'context' not in kwargs or kwargs['context'] is None:
            kwargs['context'] = {}
        kwargs['context']['category'] = 'CONFIGURATION'
        if setting_name:
            kwargs['context']['setting'] = setting_name
        super().__init__(message, **kwargs)


class ValidationError(QueryError):
    """Errors related to input validation and parameter checking."""
    DEFAULT_CODE = 7001

    def __init__(self, message: str, field_name: Optional[str] = None, **kwargs):
        if 'context' not in kwargs or kwargs['context'] is None:
            kwargs['context'] = {}
        kwargs['context']['category'] = 'VALIDATION'
        if field_name:
            kwargs['context']['field'] = field_name
        super().__init__(message, **kwargs)


class ErrorCodes:
    """Standard error codes for common error scenarios."""

    # Transport errors (1000-1999)
    CONNECTION_REFUSED = 1001
    CONNECTION_TIMEOUT = 1002
    CONNECTION_LOST = 1003
    SOCKET_ERROR = 1004
    NOT_CONNECTED = 1005
    LINE_TOO_LONG = 1006

    # Protocol errors (2000-2999)
    INVALID_COMMAND = 2001
    COMMAND_FAILED = 2002
    PROTOCOL_ERROR = 2003
    ENCODING_ERROR = 2004
    MALFORMED_LINE = 2005
    COMMAND_ABANDONED = 2006

    # Configuration errors (6000-6999)
    CONFIG_NOT_FOUND = 6001
    CONFIG_INVALID = 6002
    CONFIG_SAVE_ERROR = 6003

    # Validation errors (7000-7999)
    INVALID_PARAMETER = 7001
    OUT_OF_RANGE = 7002

    # System errors (9000-9999)
    UNKNOWN_ERROR = 9000
    INTERNAL_ERROR = 9001


def wrap_external_error(e: Exception, message: str, error_class=QueryError, **context) -> QueryError:
    """
    Wrap an external exception in a QueryError.

    Args:
        e: The original exception
        message: Context-specific error message
        error_class: The QueryError subclass to use
        **context: Additional context information

    Returns:
        A QueryError instance wrapping the original exception
    """
    return error_class(
        message=message,
        cause=e,
        context=context
    )
