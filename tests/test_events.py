"""
Unit tests for EventRegistry.
"""
import threading
import unittest
from unittest.mock import Mock

from py2teamspeak.core.events import EventRegistry


class TestEventRegistry(unittest.TestCase):

    def setUp(self):
        """Set up test fixtures."""
        self.events = EventRegistry()

    def test_named_handler_receives_arguments(self):
        handler = Mock()
        self.events.on('notify.textmessage', handler)

        called = self.events.emit('notify.textmessage', 'textmessage', {'msg': 'hi'})

        self.assertEqual(called, 1)
        handler.assert_called_once_with('textmessage', {'msg': 'hi'})

    def test_emit_without_handlers(self):
        self.assertEqual(self.events.emit('nothing'), 0)

    def test_handlers_called_in_registration_order(self):
        order = []
        self.events.on('x', lambda: order.append(1))
        self.events.on('x', lambda: order.append(2))
        self.events.emit('x')
        self.assertEqual(order, [1, 2])

    def test_generic_channel_gets_name_first(self):
        handler = Mock()
        self.events.on_any(handler)

        self.events.emit('connect')
        self.events.emit('notify', 'serveredited', None)

        self.assertEqual(handler.call_args_list[0][0], ('connect',))
        self.assertEqual(handler.call_args_list[1][0], ('notify', 'serveredited', None))

    def test_off_any(self):
        handler = Mock()
        self.events.on_any(handler)
        self.events.off_any(handler)
        self.events.emit('connect')
        handler.assert_not_called()

    def test_once(self):
        handler = Mock()
        self.events.once('close', handler)

        self.events.emit('close', [])
        self.events.emit('close', [])

        handler.assert_called_once_with([])
        self.assertFalse(self.events.has_handlers('close'))

    def test_off_with_wrapper_from_once(self):
        handler = Mock()
        wrapper = self.events.once('close', handler)
        self.events.off('close', wrapper)
        self.events.emit('close', [])
        handler.assert_not_called()

    def test_off_unknown_handler_ignored(self):
        self.events.off('missing', Mock())
        self.events.on('x', Mock())
        self.events.off('x', Mock())
        self.assertEqual(self.events.handler_count('x'), 1)

    def test_failing_handler_does_not_stop_others(self):
        def broken(*args):
            raise RuntimeError("boom")

        after = Mock()
        self.events.on('x', broken)
        self.events.on('x', after)

        with self.assertLogs('py2teamspeak.core.events', level='ERROR'):
            self.events.emit('x', 1)

        after.assert_called_once_with(1)
        self.assertEqual(self.events.get_stats()['handler_errors'], 1)

    def test_handler_may_register_during_emit(self):
        late = Mock()

        def registering():
            self.events.on('x', late)

        self.events.on('x', registering)
        self.events.emit('x')
        late.assert_not_called()

        self.events.emit('x')
        late.assert_called_once()

    def test_stats_consistent_under_concurrent_emit(self):
        self.events.on('x', lambda: None)
        self.events.on_any(lambda name: None)

        def emitter():
            for _ in range(500):
                self.events.emit('x')

        threads = [threading.Thread(target=emitter) for _ in range(4)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        stats = self.events.get_stats()
        self.assertEqual(stats['events_emitted'], 2000)
        self.assertEqual(stats['handlers_called'], 4000)
        self.assertEqual(stats['handler_errors'], 0)

    def test_clear(self):
        self.events.on('x', Mock())
        self.events.on_any(Mock())
        self.events.clear()
        self.assertEqual(self.events.emit('x'), 0)


if __name__ == '__main__':
    unittest.main()
