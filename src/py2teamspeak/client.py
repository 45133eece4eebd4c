"""
ServerQuery client facade.

QueryClient wires together one connection state, one command queue, one
response router, one event registry and (optionally) one TCP line
connection. All of them belong to the client instance; nothing is shared
between clients.

Example:
    >>> client = QueryClient("127.0.0.1", 10011)
    >>> client.on('notify.cliententerview', lambda name, data: print(data))
    >>> client.connect()
    >>> cmd = client.send('version')
    >>> cmd.wait(5.0)
    True
    >>> cmd.result.data['platform']
    'Linux'
"""

import dataclasses
import logging
from datetime import datetime
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence

from .core.command_catalog import QUERY_COMMANDS, is_known_command
from .core.command_queue import CommandQueue, LineWriter
from .core.errors import ErrorCodes, TransportError, ValidationError
from .core.events import EventRegistry, Handler
from .core.response_router import ResponseRouter
from .core.tcp_connection import LineConnection
from .models.command import CommandCallback, ErrorInfo, PendingCommand
from .models.connection import ConnectionConfig, ConnectionPhase, ConnectionState

logger = logging.getLogger(__name__)


class CommandShortcuts:
    """
    Attribute access to known commands: ``client.api.serverlist('uid')``.

    Each shortcut forwards its arguments to :meth:`QueryClient.send`.
    """

    def __init__(self, client: 'QueryClient'):
        self._client = client

    def __getattr__(self, name: str) -> Callable[..., PendingCommand]:
        if name.startswith("_") or not is_known_command(name):
            raise AttributeError(f"Unknown query command: {name!r}")

        def shortcut(*args: Any) -> PendingCommand:
            return self._client.send(name, *args)

        shortcut.__name__ = name
        return shortcut

    def __dir__(self) -> List[str]:
        return sorted(QUERY_COMMANDS)


class QueryClient:
    """
    Client for the ServerQuery line protocol.

    Commands are sent strictly one at a time in submission order. Results
    arrive on the reader thread, either through the callback given with the
    command or, when there is none, as an event named after the command.

    Attributes:
        config: Connection configuration
        events: Event registry for notifications, results and signals
        state: Connection lifecycle state
        queue: Single-flight command queue
        router: Incoming line router
        api: Shortcuts for every command in the catalog
    """

    def __init__(
        self,
        host: Optional[str] = None,
        port: Optional[int] = None,
        config: Optional[ConnectionConfig] = None,
        writer: Optional[LineWriter] = None
    ):
        """
        Initialize the client. No connection is opened here.

        Args:
            host: Overrides ``config.host``
            port: Overrides ``config.port``
            config: Connection configuration (defaults to localhost:10011)
            writer: Custom line writer; when given, lines received through
                    :meth:`handle_line` drive the client instead of a socket
        """
        config = config or ConnectionConfig()
        overrides: Dict[str, Any] = {}
        if host is not None:
            overrides['host'] = host
        if port is not None:
            overrides['port'] = port
        self.config = dataclasses.replace(config, **overrides) if overrides else config

        self.events = EventRegistry()
        self.state = ConnectionState(banner_lines=self.config.banner_lines)
        self.queue = CommandQueue(self.state, writer)
        self.router = ResponseRouter(self.state, self.queue, self.events)
        self.connection: Optional[LineConnection] = None
        self.api = CommandShortcuts(self)

    # --- connection lifecycle ---

    def connect(self) -> 'QueryClient':
        """
        Open the TCP connection.

        Queued commands are kept and written once the greeting banner has
        been received. A command left in flight by a previous connection is
        abandoned, since its reply can no longer arrive: it is resolved with
        ``ErrorCodes.COMMAND_ABANDONED`` like :meth:`fail_pending` does.

        Raises:
            ValidationError: If the configuration is invalid
            TransportError: If the connection cannot be established
        """
        if self.connection is None:
            self.connection = LineConnection(
                self.config,
                line_handler=self.handle_line,
                signal_handler=self._on_signal
            )

        with self.queue.lock:
            self.state.reset()
            self.state.phase = ConnectionPhase.CONNECTING
            stale = self.queue.abandon_in_flight()
            self.queue.writer = self.connection.write_line

        if stale is not None:
            self._abandon([stale], "connection reset before reply")

        try:
            self.connection.connect()
        except TransportError as e:
            self.state.phase = ConnectionPhase.ERROR
            self.state.last_error = e.message
            raise
        return self

    def disconnect(self) -> 'QueryClient':
        """Close the connection. Queued commands stay queued."""
        if self.connection is not None:
            self.connection.disconnect()
        return self

    def is_connected(self) -> bool:
        return self.connection is not None and self.connection.is_connected()

    def is_ready(self) -> bool:
        return self.state.is_ready

    def handle_line(self, line: str) -> None:
        """Feed one received line (used by the reader and by custom transports)."""
        self.router.handle_line(line)

    def __enter__(self) -> 'QueryClient':
        return self.connect()

    def __exit__(self, exc_type, exc, tb) -> None:
        self.disconnect()

    # --- commands ---

    def send(self, name: str, *args: Any) -> PendingCommand:
        """
        Queue a command, interpreting trailing arguments by type.

        Args:
            name: Command name
            *args: Any mix of
                   - list/tuple of str: options
                   - str: a single option
                   - mapping: parameters (insertion order is kept)
                   - callable: completion callback ``(error, result, request)``

        Returns:
            The queued PendingCommand (returns immediately)

        Raises:
            ValidationError: For an argument of any other type

        Example:
            >>> client.send('clientlist', ['uid', 'away'])
            >>> client.send('use', {'sid': 1}, on_done)
        """
        options: List[str] = []
        parameters: Mapping[str, Any] = {}
        callback: Optional[CommandCallback] = None

        for arg in args:
            if isinstance(arg, (list, tuple)):
                options.extend(arg)
            elif isinstance(arg, str):
                options.append(arg)
            elif isinstance(arg, Mapping):
                parameters = arg
            elif callable(arg):
                callback = arg
            elif arg is None:
                continue
            else:
                raise ValidationError(
                    f"Unsupported argument for '{name}': {arg!r}",
                    field_name=type(arg).__name__
                )

        return self.execute(name, options=options, parameters=parameters, callback=callback)

    def execute(
        self,
        name: str,
        options: Optional[Sequence[str]] = None,
        parameters: Optional[Mapping[str, Any]] = None,
        callback: Optional[CommandCallback] = None
    ) -> PendingCommand:
        """
        Queue a command with explicit options, parameters and callback.

        Returns:
            The queued PendingCommand
        """
        if not name or not isinstance(name, str):
            raise ValidationError(f"Invalid command name: {name!r}", field_name='name')

        command = PendingCommand(name, options=options, parameters=parameters, callback=callback)
        self.queue.submit(command)
        return command

    def subscribe(self, *args: Any) -> PendingCommand:
        """Register for server notifications (``servernotifyregister``)."""
        return self.send('servernotifyregister', *args)

    def unsubscribe(self, *args: Any) -> PendingCommand:
        """Unregister all notifications (``servernotifyunregister``)."""
        return self.send('servernotifyunregister', *args)

    def pending(self) -> List[PendingCommand]:
        """Snapshot of queued commands that have not been written yet."""
        return self.queue.peek_pending()

    def clear_pending(self) -> List[PendingCommand]:
        """Remove and return queued commands that have not been written yet."""
        return self.queue.drain_pending()

    def fail_pending(self, message: str = "connection closed") -> List[PendingCommand]:
        """
        Abandon the in-flight command and every queued command.

        Each abandoned command is resolved with an ErrorInfo carrying
        ``ErrorCodes.COMMAND_ABANDONED``, through its callback or named
        event like any other result.

        A command whose reply is being delivered at the same moment keeps
        that reply and is not included.

        Returns:
            The abandoned commands, in-flight one first
        """
        with self.queue.lock:
            outstanding = []
            in_flight = self.queue.abandon_in_flight()
            if in_flight is not None:
                outstanding.append(in_flight)
            outstanding.extend(self.queue.drain_pending())

        abandoned = self._abandon(outstanding, message)
        if abandoned:
            logger.info(f"Failed {len(abandoned)} outstanding commands: {message}")
        return abandoned

    def _abandon(self, commands: List[PendingCommand], message: str) -> List[PendingCommand]:
        """Resolve each command with COMMAND_ABANDONED; returns those resolved here."""
        abandoned = []
        for command in commands:
            error = ErrorInfo(message=message, error_id=ErrorCodes.COMMAND_ABANDONED)
            if self.router.resolve(command, error, command.result):
                abandoned.append(command)
        return abandoned

    # --- events ---

    def on(self, name: str, handler: Handler) -> 'QueryClient':
        self.events.on(name, handler)
        return self

    def once(self, name: str, handler: Handler) -> 'QueryClient':
        self.events.once(name, handler)
        return self

    def off(self, name: str, handler: Handler) -> 'QueryClient':
        self.events.off(name, handler)
        return self

    def on_any(self, handler: Handler) -> 'QueryClient':
        self.events.on_any(handler)
        return self

    def _on_signal(self, name: str, error: Optional[TransportError]) -> None:
        if name == 'connect':
            self.state.phase = ConnectionPhase.CONNECTED
            self.state.connected_at = datetime.now()
            self.events.emit('connect')
        elif name == 'end':
            self.events.emit('end', self.queue.peek_pending())
        elif name == 'error':
            self.state.phase = ConnectionPhase.ERROR
            self.state.last_error = error.message if error else None
            self.events.emit('error', error)
        elif name == 'close':
            if self.state.phase != ConnectionPhase.ERROR:
                self.state.phase = ConnectionPhase.DISCONNECTED
            self.events.emit('close', self.queue.peek_pending())
        else:
            logger.debug(f"Ignoring unknown transport signal '{name}'")

    def get_stats(self) -> Dict[str, Any]:
        """Get combined statistics."""
        return {
            'queue': self.queue.get_stats(),
            'router': self.router.get_stats(),
            'events': self.events.get_stats(),
        }
