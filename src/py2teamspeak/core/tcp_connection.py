"""
TCP connection management for the ServerQuery line protocol.

This module owns the socket: it connects, writes ``<payload>\\n`` lines,
runs the background LineReader and reports connection-level signals.

Signals (passed to ``signal_handler(name, payload)``):
    connect     socket connected, reader running          payload: None
    end         server closed its side                    payload: None
    error       read/write failure                        payload: TransportError
    close       socket closed (always last)               payload: None
"""

import socket
import logging
import threading
from typing import Callable, Optional, Tuple

from ..models.connection import ConnectionConfig, ConnectionPhase
from .errors import ErrorCodes, TransportError, ValidationError
from .socket_reader import LineReader

SignalHandler = Callable[[str, Optional[TransportError]], None]


class LineConnection:
    """
    Manages one TCP connection carrying text lines.

    Example:
        >>> connection = LineConnection(ConnectionConfig("127.0.0.1", 10011),
        ...                             line_handler=print)
        >>> connection.connect()
        >>> connection.write_line("version\\n")
        >>> connection.disconnect()
    """

    def __init__(
        self,
        config: ConnectionConfig,
        line_handler: Callable[[str], None],
        signal_handler: Optional[SignalHandler] = None
    ):
        """
        Initialize connection manager.

        Args:
            config: Host, port, timeout and encoding
            line_handler: Called on the reader thread with each received line
            signal_handler: Called with connection-level signals
        """
        self.config = config
        self._line_handler = line_handler
        self._signal_handler = signal_handler
        self._socket: Optional[socket.socket] = None
        self._reader: Optional[LineReader] = None
        self._lock = threading.Lock()
        self._send_lock = threading.Lock()
        self._phase = ConnectionPhase.DISCONNECTED
        self.logger = logging.getLogger(__name__)

    @property
    def phase(self) -> ConnectionPhase:
        return self._phase

    def is_connected(self) -> bool:
        return self._phase == ConnectionPhase.CONNECTED

    def get_connection_info(self) -> Tuple[Optional[str], Optional[int]]:
        if not self.is_connected():
            return None, None
        return self.config.host, self.config.port

    def connect(self) -> None:
        """
        Open the socket and start the background reader.

        Raises:
            ValidationError: If the configuration is invalid
            TransportError: If the connection cannot be established
        """
        valid, errors = self.config.validate()
        if not valid:
            raise ValidationError("; ".join(errors), field_name="connection")

        with self._lock:
            if self._phase == ConnectionPhase.CONNECTED:
                self.logger.warning("Already connected. Disconnecting first.")
                self._close_unsafe()

            host, port = self.config.host, self.config.port
            self._phase = ConnectionPhase.CONNECTING
            self.logger.info(f"Connecting to {host}:{port}")

            try:
                sock = socket.create_connection((host, port), timeout=self.config.timeout)
            except socket.timeout as e:
                self._phase = ConnectionPhase.ERROR
                raise TransportError(f"Connection to {host}:{port} timed out",
                                     error_code=ErrorCodes.CONNECTION_TIMEOUT, cause=e)
            except ConnectionRefusedError as e:
                self._phase = ConnectionPhase.ERROR
                raise TransportError(f"Connection to {host}:{port} refused",
                                     error_code=ErrorCodes.CONNECTION_REFUSED, cause=e)
            except OSError as e:
                self._phase = ConnectionPhase.ERROR
                raise TransportError(f"Connection to {host}:{port} failed: {e}",
                                     error_code=ErrorCodes.SOCKET_ERROR, cause=e)

            self._socket = sock
            self._phase = ConnectionPhase.CONNECTED
            self._reader = LineReader(
                sock,
                self._line_handler,
                end_handler=self._on_end,
                error_handler=self._on_read_error,
                encoding=self.config.encoding
            )
            self.logger.info(f"Connected to {host}:{port}")

        self._signal('connect')
        self._reader.start()

    def write_line(self, line: str) -> None:
        """
        Send one line. ``line`` must already carry its terminator.

        Raises:
            TransportError: If not connected or the send fails
        """
        sock = self._socket
        if sock is None or not self.is_connected():
            raise TransportError("Not connected to query interface",
                                 error_code=ErrorCodes.NOT_CONNECTED)

        data = line.encode(self.config.encoding)
        try:
            with self._send_lock:
                sock.sendall(data)
        except OSError as e:
            error = TransportError(f"Failed to send data: {e}",
                                   error_code=ErrorCodes.SOCKET_ERROR, cause=e)
            self.logger.error(error.format_log_message())
            self._fail(error)
            raise error
        self.logger.debug(f"Sent {len(data)} bytes")

    def disconnect(self) -> None:
        """
        Close the connection. Safe to call repeatedly and when not connected.
        """
        with self._lock:
            closed = self._close_unsafe()
        if closed:
            self._signal('close')

    def _close_unsafe(self) -> bool:
        """Close without locking. Returns True if a socket was closed."""
        if self._reader:
            self._reader.stop()
            self._reader = None

        sock = self._socket
        self._socket = None
        if self._phase != ConnectionPhase.ERROR:
            self._phase = ConnectionPhase.DISCONNECTED

        if sock is None:
            return False

        try:
            sock.shutdown(socket.SHUT_RDWR)
        except OSError:
            pass  # already closed by peer
        try:
            sock.close()
            self.logger.info("Closed query socket")
        except OSError as e:
            self.logger.error(f"Error closing socket: {e}")
        return True

    def _on_end(self) -> None:
        self._signal('end')
        self.disconnect()

    def _on_read_error(self, exc: Exception) -> None:
        if isinstance(exc, TransportError):
            error = exc
        else:
            error = TransportError(f"Connection lost: {exc}",
                                   error_code=ErrorCodes.CONNECTION_LOST, cause=exc)
        self._fail(error)

    def _fail(self, error: TransportError) -> None:
        with self._lock:
            self._phase = ConnectionPhase.ERROR
        self._signal('error', error)
        self.disconnect()

    def _signal(self, name: str, payload: Optional[TransportError] = None) -> None:
        if self._signal_handler is None:
            return
        try:
            self._signal_handler(name, payload)
        except Exception as e:
            self.logger.error(f"Signal handler error for '{name}': {e}", exc_info=True)
