"""
Command models for py2teamspeak.

This module provides the data structures that travel through the command
pipeline: the queued command itself, its accumulated result, and the error
information attached when the server rejects it.

Classes:
    CommandResult: Successful (possibly partial) result of a command
    ErrorInfo: Server-reported failure of a command
    RequestDescriptor: Description of the request handed to result handlers
    PendingCommand: A command waiting in the queue or on the wire
"""

import threading
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence

from ..core.errors import ProtocolError
from ..core.query_protocol import build_command_line


_MISSING = object()


@dataclass
class CommandResult:
    """
    Result of a command.

    Attributes:
        status: Always ``"ok"``
        raw: The raw line the result was built from
        data: Parsed data line, or ``_MISSING`` for a synthesized result
              that carries no data

    Example:
        >>> CommandResult(raw="a=b", data={"a": "b"}).to_dict()
        {'status': 'ok', 'data': {'a': 'b'}, 'raw': 'a=b'}
    """

    raw: str
    data: Any = _MISSING
    status: str = "ok"

    @property
    def has_data(self) -> bool:
        return self.data is not _MISSING

    @property
    def records(self) -> List[Dict[str, Any]]:
        """Data as a list of records regardless of how many arrived."""
        if not self.has_data or self.data is None:
            return []
        if isinstance(self.data, list):
            return self.data
        return [self.data]

    def to_dict(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {'status': self.status}
        if self.has_data:
            result['data'] = self.data
        result['raw'] = self.raw
        return result


@dataclass
class ErrorInfo:
    """
    Error reported by a terminator line with a nonzero id.

    Attributes:
        message: Server supplied message (unescaped)
        error_id: Numeric error id from the terminator
        extra: Remaining terminator fields, e.g. ``extra_msg``
        status: Always ``"error"``
    """

    message: Any
    error_id: int
    extra: Dict[str, Any] = field(default_factory=dict)
    status: str = "error"

    def to_dict(self) -> Dict[str, Any]:
        return {
            'status': self.status,
            'message': self.message,
            'error_id': self.error_id,
        }

    def to_exception(self, command: Optional[str] = None) -> ProtocolError:
        """Build a ProtocolError for callers that prefer raising."""
        context = dict(self.extra) if self.extra else None
        return ProtocolError(
            str(self.message),
            error_id=self.error_id,
            command=command,
            context=context
        )


@dataclass(frozen=True)
class RequestDescriptor:
    """What was sent; passed to callbacks alongside error and result."""

    name: str
    options: List[str]
    parameters: Dict[str, Any]
    raw: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            'name': self.name,
            'options': list(self.options),
            'parameters': dict(self.parameters),
            'raw': self.raw,
        }


CommandCallback = Callable[[Optional[ErrorInfo], Optional[CommandResult], RequestDescriptor], Any]


class PendingCommand:
    """
    A command submitted to the client.

    The name, options, parameters and serialized text are fixed at
    construction. ``result`` and ``error`` are written by the response
    router while the command is in flight.

    Example:
        >>> cmd = PendingCommand("serverlist", options=["uid"])
        >>> cmd.text
        'serverlist -uid'
        >>> cmd.wait(timeout=0)
        False
    """

    def __init__(
        self,
        name: str,
        options: Optional[Sequence[str]] = None,
        parameters: Optional[Mapping[str, Any]] = None,
        callback: Optional[CommandCallback] = None
    ):
        self.name = name
        self.options: List[str] = list(options or [])
        self.parameters: Dict[str, Any] = {
            key: list(value) if isinstance(value, (list, tuple)) else value
            for key, value in (parameters or {}).items()
        }
        self.callback = callback
        self.text = build_command_line(self.name, self.options, self.parameters)
        self.created_at = datetime.now()

        self.result: Optional[CommandResult] = None
        self.error: Optional[ErrorInfo] = None
        self._done = threading.Event()
        self._claimed = False
        self._claim_lock = threading.Lock()

    @property
    def request(self) -> RequestDescriptor:
        return RequestDescriptor(
            name=self.name,
            options=list(self.options),
            parameters=dict(self.parameters),
            raw=self.text
        )

    @property
    def done(self) -> bool:
        return self._done.is_set()

    def wait(self, timeout: Optional[float] = None) -> bool:
        """
        Block until the command is resolved.

        Waiting does not cancel anything: on timeout the command stays
        queued or in flight.

        Args:
            timeout: Seconds to wait (None = wait forever)

        Returns:
            True if resolved, False on timeout
        """
        return self._done.wait(timeout)

    def raise_for_error(self) -> None:
        """Raise ProtocolError if the server rejected the command."""
        if self.error is not None:
            raise self.error.to_exception(self.name)

    def _claim(self) -> bool:
        """Reserve the command for resolution. Only the first caller wins."""
        with self._claim_lock:
            if self._claimed:
                return False
            self._claimed = True
            return True

    def _resolve(self) -> None:
        self._done.set()

    def __repr__(self) -> str:
        state = "done" if self.done else "pending"
        return f"PendingCommand({self.text!r}, {state})"
