# src/py2teamspeak/core/command_queue.py
"""
Ordered single-flight command queue.

The query protocol has no request ids: replies are matched to commands
purely by arrival order. This module therefore keeps at most one command
on the wire. Everything else waits in a FIFO list until the in-flight
command has been answered.
"""
import logging
import threading
from typing import Callable, List, Optional

from ..models.command import PendingCommand
from ..models.connection import ConnectionState
from .query_protocol import LINE_TERMINATOR

logger = logging.getLogger(__name__)

LineWriter = Callable[[str], None]


class CommandQueue:
    """
    FIFO queue plus one in-flight slot.

    A command is written only when the connection is ready (the greeting
    banner has been consumed) and the slot is empty. The queue is unbounded.

    Attributes:
        state: Lifecycle state of the owning client's connection
        writer: Callable receiving one complete line (terminator included)

    Example:
        >>> written = []
        >>> state = ConnectionState(banner_lines=0)
        >>> q = CommandQueue(state, written.append)
        >>> q.submit(PendingCommand("version"))
        >>> q.submit(PendingCommand("whoami"))
        >>> written
        ['version\\n']
    """

    def __init__(self, state: ConnectionState, writer: Optional[LineWriter] = None):
        self.state = state
        self.writer = writer
        self._lock = threading.RLock()
        self._queue: List[PendingCommand] = []
        self._in_flight: Optional[PendingCommand] = None

        self._stats = {
            'commands_submitted': 0,
            'commands_written': 0,
            'commands_completed': 0,
            'commands_drained': 0,
        }

    @property
    def lock(self) -> threading.RLock:
        return self._lock

    @property
    def in_flight(self) -> Optional[PendingCommand]:
        with self._lock:
            return self._in_flight

    @property
    def is_idle(self) -> bool:
        with self._lock:
            return self._in_flight is None

    def __len__(self) -> int:
        with self._lock:
            return len(self._queue)

    def submit(self, command: PendingCommand) -> None:
        """
        Append a command and write it at once if possible.

        Args:
            command: Command to send
        """
        with self._lock:
            self._queue.append(command)
            self._stats['commands_submitted'] += 1
            logger.debug(f"Queued '{command.name}' ({len(self._queue)} pending)")
            self.advance()

    def advance(self) -> Optional[PendingCommand]:
        """
        Promote the head of the queue to the in-flight slot and write it.

        No-op while a command is in flight, while the queue is empty or
        while the connection is not ready.

        Returns:
            The command that was written, or None
        """
        with self._lock:
            if self._in_flight is not None or not self._queue:
                return None
            if not self.state.is_ready:
                return None
            if self.writer is None:
                logger.debug("No writer attached; holding queued commands")
                return None

            command = self._queue.pop(0)
            self._in_flight = command
            try:
                self.writer(command.text + LINE_TERMINATOR)
            except Exception as e:
                # The command stays in the slot; the transport reports the
                # failure through its own error event.
                logger.error(f"Failed to write '{command.name}': {e}")
                return None
            self._stats['commands_written'] += 1
            logger.debug(f"Sent: {command.text}")
            return command

    def complete(self, command: PendingCommand) -> bool:
        """
        Clear the in-flight slot if ``command`` still occupies it.

        A slot that was abandoned and refilled while ``command`` was being
        resolved belongs to the newer command and is left alone.

        Returns:
            True if the slot was cleared
        """
        with self._lock:
            if self._in_flight is not command:
                return False
            self._in_flight = None
            self._stats['commands_completed'] += 1
            return True

    def abandon_in_flight(self) -> Optional[PendingCommand]:
        """Clear the slot for a command whose reply can no longer arrive."""
        with self._lock:
            command = self._in_flight
            self._in_flight = None
            if command is not None:
                logger.warning(f"Abandoned in-flight command '{command.name}'")
            return command

    def peek_pending(self) -> List[PendingCommand]:
        """Return a copy of the queued (not yet written) commands."""
        with self._lock:
            return list(self._queue)

    def drain_pending(self) -> List[PendingCommand]:
        """Remove and return every queued (not yet written) command."""
        with self._lock:
            drained = self._queue
            self._queue = []
            self._stats['commands_drained'] += len(drained)
        if drained:
            logger.info(f"Drained {len(drained)} pending commands")
        return drained

    def get_stats(self) -> dict:
        with self._lock:
            stats = self._stats.copy()
            stats['pending'] = len(self._queue)
            stats['in_flight'] = self._in_flight.name if self._in_flight else None
        return stats
