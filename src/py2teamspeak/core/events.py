# src/py2teamspeak/core/events.py
"""
Event registry for notifications, command results and connection signals.

Handlers are registered by event name. A separate generic channel receives
every emitted event together with its name.

Event names used by the client:
    connect                 ()
    end, close              (pending_commands)
    error                   (TransportError)
    notify                  (event_name, data)
    notify.<event_name>     (event_name, data)
    <command name>          (error, result, request)   only without callback
"""
import logging
import threading
from typing import Any, Callable, Dict, List

logger = logging.getLogger(__name__)

Handler = Callable[..., Any]


class EventRegistry:
    """
    Observer registry keyed by event name.

    Handlers are called synchronously on the emitting thread, outside the
    registry lock, so a handler may register or remove handlers or emit
    further events. A failing handler is logged and does not prevent the
    remaining handlers from running.

    Example:
        >>> events = EventRegistry()
        >>> events.on('notify.cliententerview', lambda name, data: print(data))
        >>> events.emit('notify.cliententerview', 'cliententerview', {'clid': 5})
        {'clid': 5}
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._handlers: Dict[str, List[Handler]] = {}
        self._any_handlers: List[Handler] = []

        self._stats = {
            'events_emitted': 0,
            'handlers_called': 0,
            'handler_errors': 0,
        }

    def on(self, name: str, handler: Handler) -> None:
        """
        Register a handler for one event name.

        Args:
            name: Event name, e.g. ``'notify.textmessage'`` or ``'serverlist'``
            handler: Called with the event's positional arguments
        """
        with self._lock:
            self._handlers.setdefault(name, []).append(handler)
        logger.debug(f"Registered handler for '{name}'")

    def once(self, name: str, handler: Handler) -> Handler:
        """Register a handler that is removed after its first call."""
        def wrapper(*args):
            self.off(name, wrapper)
            return handler(*args)

        self.on(name, wrapper)
        return wrapper

    def off(self, name: str, handler: Handler) -> None:
        """Remove a handler. Unknown handlers are ignored."""
        with self._lock:
            handlers = self._handlers.get(name)
            if not handlers:
                return
            try:
                handlers.remove(handler)
            except ValueError:
                return
            if not handlers:
                del self._handlers[name]

    def on_any(self, handler: Handler) -> None:
        """Register a handler on the generic channel: ``handler(name, *args)``."""
        with self._lock:
            self._any_handlers.append(handler)

    def off_any(self, handler: Handler) -> None:
        with self._lock:
            if handler in self._any_handlers:
                self._any_handlers.remove(handler)

    def has_handlers(self, name: str) -> bool:
        with self._lock:
            return bool(self._handlers.get(name))

    def handler_count(self, name: str) -> int:
        with self._lock:
            return len(self._handlers.get(name, ()))

    def emit(self, name: str, *args: Any) -> int:
        """
        Emit an event.

        Args:
            name: Event name
            *args: Positional arguments passed to each handler

        Returns:
            Number of handlers called (named and generic)
        """
        with self._lock:
            handlers = list(self._handlers.get(name, ()))
            any_handlers = list(self._any_handlers)
            self._stats['events_emitted'] += 1

        called = 0

        for handler in handlers:
            called += self._call(name, handler, args)

        for handler in any_handlers:
            called += self._call(name, handler, (name,) + args)

        if not called:
            logger.debug(f"No handlers for event '{name}'")

        return called

    def clear(self) -> None:
        """Remove every handler."""
        with self._lock:
            self._handlers.clear()
            self._any_handlers.clear()

    def get_stats(self) -> Dict[str, int]:
        with self._lock:
            return self._stats.copy()

    def _call(self, name: str, handler: Handler, args: tuple) -> int:
        failed = False
        try:
            handler(*args)
        except Exception as e:
            failed = True
            logger.error(f"Handler error for event '{name}': {e}", exc_info=True)

        with self._lock:
            self._stats['handlers_called'] += 1
            if failed:
                self._stats['handler_errors'] += 1
        return 1
