"""
Response routing for the ServerQuery line protocol.

Every line read from the connection passes through ResponseRouter.handle_line,
one at a time, on the reader thread.

Classification (first match wins):
    1. Greeting banner   while the connection is not yet ready
    2. Terminator        ``error id=.. msg=..``, resolves the in-flight command
    3. Notification      ``notify<event> ...``, independent of the queue
    4. Data line         stored on the in-flight command (last one wins)
    5. Anything else     dropped

Architecture:
    LineReader (background thread)
        └── reads one line, hands it to ResponseRouter

    ResponseRouter
        └── updates the in-flight PendingCommand
        └── resolves it via callback or a named event
        └── advances the CommandQueue
        └── emits notifications on the EventRegistry
"""

import logging
from typing import Dict, Optional

from ..models.command import CommandResult, ErrorInfo, PendingCommand
from ..models.connection import ConnectionState
from .command_queue import CommandQueue
from .errors import ErrorCodes, MalformedLineError
from .events import EventRegistry
from .query_protocol import LinePrefix, parse_line

logger = logging.getLogger(__name__)


class ResponseRouter:
    """
    Routes incoming lines to the in-flight command or to event subscribers.

    Example:
        >>> state = ConnectionState(banner_lines=0)
        >>> queue = CommandQueue(state, lambda line: None)
        >>> router = ResponseRouter(state, queue, EventRegistry())
        >>> cmd = PendingCommand("whoami")
        >>> queue.submit(cmd)
        >>> router.handle_line("client_id=3")
        >>> router.handle_line("error id=0 msg=ok")
        >>> cmd.result.to_dict()
        {'status': 'ok', 'data': {'client_id': 3}, 'raw': 'client_id=3'}
    """

    def __init__(self, state: ConnectionState, queue: CommandQueue, events: EventRegistry):
        self.state = state
        self.queue = queue
        self.events = events

        self._stats = {
            'lines_received': 0,
            'banner_lines': 0,
            'data_lines': 0,
            'responses_dispatched': 0,
            'notifications_dispatched': 0,
            'lines_dropped': 0,
        }

    def handle_line(self, line: str) -> None:
        """
        Process one received line.

        Args:
            line: Line without its newline; surrounding whitespace is ignored
        """
        line = line.strip()
        self._stats['lines_received'] += 1

        with self.queue.lock:
            if self.state.awaiting_banner:
                self._stats['banner_lines'] += 1
                logger.debug(f"Banner: {line}")
                if self.state.register_banner_line():
                    logger.info("Query interface ready")
                    self.queue.advance()
                return

        if not line:
            self._stats['lines_dropped'] += 1
            return

        if line.startswith(LinePrefix.TERMINATOR):
            self._handle_terminator(line)
        elif line.startswith(LinePrefix.NOTIFICATION):
            self._handle_notification(line)
        else:
            self._handle_data(line)

    def _handle_terminator(self, line: str) -> None:
        command = self.queue.in_flight
        if command is None:
            self._stats['lines_dropped'] += 1
            error = MalformedLineError("Terminator with no command in flight", line=line,
                                       error_code=ErrorCodes.PROTOCOL_ERROR)
            logger.warning(error.format_log_message())
            return

        parsed = parse_line(line[len(LinePrefix.TERMINATOR):].strip())
        if isinstance(parsed, list):
            record = parsed[0]
        else:
            record = parsed or {}

        error_id = record.get('id')
        result = command.result
        error: Optional[ErrorInfo] = None

        if isinstance(error_id, bool) or not isinstance(error_id, int):
            malformed = MalformedLineError("Terminator without numeric id", line=line)
            logger.warning(malformed.format_log_message())
            error = ErrorInfo(
                message=malformed.message,
                error_id=ErrorCodes.MALFORMED_LINE,
                extra={'line': line}
            )
        elif error_id == 0:
            if result is None:
                result = CommandResult(raw=line)
        else:
            extra = {key: value for key, value in record.items() if key not in ('id', 'msg')}
            error = ErrorInfo(
                message=record.get('msg', ''),
                error_id=error_id,
                extra=extra
            )
            logger.debug(f"'{command.name}' failed: [{error_id}] {error.message}")

        self.resolve(command, error, result)

        with self.queue.lock:
            self.queue.complete(command)
            self.queue.advance()

    def resolve(self, command: PendingCommand, error: Optional[ErrorInfo],
                result: Optional[CommandResult]) -> bool:
        """
        Record the outcome and hand it to the command's callback or named event.

        Each command is resolved at most once; later calls are ignored.

        Returns:
            True if this call resolved the command
        """
        if not command._claim():
            logger.debug(f"'{command.name}' already resolved")
            return False

        command.error = error
        command.result = result
        request = command.request

        if callable(command.callback):
            try:
                command.callback(error, result, request)
            except Exception as e:
                logger.error(f"Callback error for '{command.name}': {e}", exc_info=True)
        else:
            self.events.emit(command.name, error, result, request)

        command._resolve()
        self._stats['responses_dispatched'] += 1
        return True

    def _handle_notification(self, line: str) -> None:
        body = line[len(LinePrefix.NOTIFICATION):]
        event_name, _, payload = body.partition(" ")
        data = parse_line(payload)

        logger.debug(f"Notification '{event_name}'")
        self.events.emit('notify', event_name, data)
        self.events.emit('notify.' + event_name, event_name, data)
        self._stats['notifications_dispatched'] += 1

    def _handle_data(self, line: str) -> None:
        command = self.queue.in_flight
        if command is None:
            self._stats['lines_dropped'] += 1
            logger.debug(f"Dropped line with no command in flight: {line}")
            return

        command.result = CommandResult(raw=line, data=parse_line(line))
        self._stats['data_lines'] += 1

    def get_stats(self) -> Dict[str, int]:
        """Get routing statistics."""
        return self._stats.copy()
