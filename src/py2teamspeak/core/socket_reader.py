"""
Background line reader for the ServerQuery connection.

This module provides a continuous background reader that drains the socket,
splits the byte stream into lines and hands each complete line to a handler.
Lines are delivered one at a time, in order, with the line terminator
removed; a partial line is held back until its newline arrives.

Architecture:
    LineReader (background thread)
        └── recv() into a byte buffer
        └── splits on b"\\n", decodes, strips a trailing b"\\r"
        └── calls line_handler(line) for each complete line
        └── calls end_handler() when the peer closes
        └── calls error_handler(exc) on socket failure or an overlong line
"""

import logging
import socket
import threading
from typing import Callable, Dict, List, Optional

from .errors import ErrorCodes, TransportError

logger = logging.getLogger(__name__)


class LineFramer:
    """
    Incremental splitter turning received bytes into text lines.

    Example:
        >>> framer = LineFramer()
        >>> framer.feed(b"TS3\\nWelc")
        ['TS3']
        >>> framer.feed(b"ome\\r\\n")
        ['Welcome']
    """

    MAX_LINE_LENGTH = 4 * 1024 * 1024  # bytes held without a newline

    def __init__(self, encoding: str = "utf-8", max_line_length: int = MAX_LINE_LENGTH):
        self.encoding = encoding
        self.max_line_length = max_line_length
        self._buffer = b""

    def feed(self, data: bytes) -> List[str]:
        """
        Add received bytes and return every line they complete.

        Raises:
            TransportError: If an unterminated line exceeds ``max_line_length``
        """
        self._buffer += data
        *complete, self._buffer = self._buffer.split(b"\n")
        if len(self._buffer) > self.max_line_length:
            size = len(self._buffer)
            self._buffer = b""
            raise TransportError(
                f"Line exceeds {self.max_line_length} bytes without a terminator",
                error_code=ErrorCodes.LINE_TOO_LONG,
                context={'buffered_bytes': size}
            )
        return [
            raw.rstrip(b"\r").decode(self.encoding, errors="replace")
            for raw in complete
        ]

    @property
    def pending_bytes(self) -> int:
        return len(self._buffer)


class LineReader:
    """
    Background thread that continuously reads lines from the query socket.
    """

    RECV_SIZE = 4096
    POLL_INTERVAL = 0.5  # socket timeout allowing shutdown checks

    def __init__(
        self,
        sock: socket.socket,
        line_handler: Callable[[str], None],
        end_handler: Optional[Callable[[], None]] = None,
        error_handler: Optional[Callable[[Exception], None]] = None,
        encoding: str = "utf-8",
        max_line_length: int = LineFramer.MAX_LINE_LENGTH
    ):
        """
        Initialize the line reader.

        Args:
            sock: Connected socket to read from
            line_handler: Called with each complete line
            end_handler: Called once when the peer closes the connection
            error_handler: Called once with the exception on socket failure
                           or with a TransportError for an overlong line
            encoding: Text encoding of the stream
            max_line_length: Longest unterminated line accepted, in bytes
        """
        self._socket = sock
        self._line_handler = line_handler
        self._end_handler = end_handler
        self._error_handler = error_handler
        self._framer = LineFramer(encoding, max_line_length)
        self._running = False
        self._thread: Optional[threading.Thread] = None
        self._lock = threading.Lock()

        self._stats = {
            'lines_read': 0,
            'handler_errors': 0,
            'socket_errors': 0,
            'framing_errors': 0,
            'bytes_read': 0,
        }

    def start(self):
        """Start the background reader thread."""
        with self._lock:
            if self._running:
                logger.warning("LineReader already running")
                return

            self._running = True
            self._thread = threading.Thread(
                target=self._read_loop,
                name="LineReader",
                daemon=True
            )
            self._thread.start()
            logger.debug("LineReader background thread started")

    def stop(self, timeout: float = 2.0):
        """
        Stop the background reader thread.

        Safe to call from the reader thread itself (e.g. from a handler),
        in which case the loop exits after the current line.

        Args:
            timeout: Seconds to wait for thread to stop
        """
        with self._lock:
            if not self._running:
                return
            self._running = False

        thread = self._thread
        if thread and thread.is_alive() and thread is not threading.current_thread():
            thread.join(timeout=timeout)
            if thread.is_alive():
                logger.warning("LineReader thread did not stop cleanly")

        logger.debug("LineReader stopped")

    def is_running(self) -> bool:
        return self._running

    def _read_loop(self):
        """Main read loop - runs in background thread."""
        self._socket.settimeout(self.POLL_INTERVAL)

        try:
            while self._running:
                try:
                    data = self._socket.recv(self.RECV_SIZE)
                except socket.timeout:
                    continue
                except OSError as e:
                    if self._running:
                        self._stats['socket_errors'] += 1
                        logger.error(f"Socket error in reader: {e}")
                        self._running = False
                        if self._error_handler:
                            self._error_handler(e)
                    break

                if not data:
                    if self._running:
                        logger.info("Connection closed by server")
                        self._running = False
                        if self._end_handler:
                            self._end_handler()
                    break

                self._stats['bytes_read'] += len(data)

                try:
                    lines = self._framer.feed(data)
                except TransportError as e:
                    self._stats['framing_errors'] += 1
                    logger.error(e.format_log_message())
                    self._running = False
                    if self._error_handler:
                        self._error_handler(e)
                    break

                for line in lines:
                    self._stats['lines_read'] += 1
                    logger.debug(f"Received: {line}")
                    try:
                        self._line_handler(line)
                    except Exception as e:
                        self._stats['handler_errors'] += 1
                        logger.error(f"Line handler error: {e}", exc_info=True)
        finally:
            logger.debug(f"LineReader loop exiting. Stats: {self._stats}")

    def get_stats(self) -> Dict[str, int]:
        """Get reader statistics."""
        return self._stats.copy()
