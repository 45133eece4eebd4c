"""
Unit tests for the single-flight command queue.
"""
import threading
import unittest

from py2teamspeak.core.command_queue import CommandQueue
from py2teamspeak.models.command import PendingCommand
from py2teamspeak.models.connection import ConnectionState


class TestCommandQueueGating(unittest.TestCase):
    """Test that writes wait for the banner and for the in-flight slot."""

    def setUp(self):
        """Set up test fixtures."""
        self.written = []
        self.state = ConnectionState()
        self.queue = CommandQueue(self.state, self.written.append)

    def _make_ready(self):
        self.state.register_banner_line()
        self.state.register_banner_line()

    def test_nothing_written_before_ready(self):
        """Test that commands submitted before the banner are only queued."""
        self.queue.submit(PendingCommand("version"))
        self.queue.submit(PendingCommand("whoami"))

        self.assertEqual(self.written, [])
        self.assertEqual(len(self.queue), 2)
        self.assertIsNone(self.queue.in_flight)

    def test_advance_after_ready_writes_head_only(self):
        """Test that becoming ready flushes exactly the first command."""
        first = PendingCommand("version")
        self.queue.submit(first)
        self.queue.submit(PendingCommand("whoami"))
        self.queue.submit(PendingCommand("serverlist"))

        self._make_ready()
        self.queue.advance()

        self.assertEqual(self.written, ["version\n"])
        self.assertIs(self.queue.in_flight, first)
        self.assertEqual(len(self.queue), 2)

    def test_submit_when_ready_and_idle_writes_immediately(self):
        self._make_ready()
        self.queue.submit(PendingCommand("version"))
        self.assertEqual(self.written, ["version\n"])

    def test_submit_while_in_flight_only_queues(self):
        self._make_ready()
        self.queue.submit(PendingCommand("version"))
        self.queue.submit(PendingCommand("whoami"))

        self.assertEqual(self.written, ["version\n"])
        self.assertEqual([c.name for c in self.queue.peek_pending()], ["whoami"])

    def test_complete_then_advance_writes_next(self):
        self._make_ready()
        first = PendingCommand("version")
        second = PendingCommand("whoami")
        self.queue.submit(first)
        self.queue.submit(second)

        self.assertTrue(self.queue.complete(first))
        self.queue.advance()

        self.assertEqual(self.written, ["version\n", "whoami\n"])
        self.assertIs(self.queue.in_flight, second)

    def test_complete_ignores_command_no_longer_in_slot(self):
        """Test that completing a replaced command leaves the new one in flight."""
        self._make_ready()
        first = PendingCommand("version")
        self.queue.submit(first)
        self.queue.abandon_in_flight()
        second = PendingCommand("whoami")
        self.queue.submit(second)

        self.assertFalse(self.queue.complete(first))
        self.assertIs(self.queue.in_flight, second)
        self.assertIsNone(self.queue.advance())
        self.assertEqual(self.written, ["version\n", "whoami\n"])

    def test_advance_is_idempotent(self):
        """Test that advance is a no-op when busy or empty."""
        self._make_ready()
        self.assertIsNone(self.queue.advance())

        self.queue.submit(PendingCommand("version"))
        self.assertIsNone(self.queue.advance())
        self.assertIsNone(self.queue.advance())
        self.assertEqual(len(self.written), 1)

    def test_no_writer_holds_commands(self):
        queue = CommandQueue(ConnectionState(banner_lines=0))
        queue.submit(PendingCommand("version"))
        self.assertIsNone(queue.in_flight)
        self.assertEqual(len(queue), 1)

    def test_writer_failure_keeps_command_in_slot(self):
        def failing_writer(line):
            raise OSError("broken pipe")

        queue = CommandQueue(ConnectionState(banner_lines=0), failing_writer)
        command = PendingCommand("version")
        queue.submit(command)

        self.assertIs(queue.in_flight, command)
        self.assertEqual(queue.get_stats()['commands_written'], 0)


class TestCommandQueuePending(unittest.TestCase):
    """Test peek/drain of queued commands."""

    def setUp(self):
        """Set up test fixtures."""
        self.queue = CommandQueue(ConnectionState(), lambda line: None)
        self.commands = [PendingCommand(name) for name in ("a", "b", "c")]
        for command in self.commands:
            self.queue.submit(command)

    def test_peek_returns_copy(self):
        snapshot = self.queue.peek_pending()
        self.assertEqual(snapshot, self.commands)

        snapshot.clear()
        self.assertEqual(len(self.queue), 3)

    def test_drain_returns_and_clears(self):
        drained = self.queue.drain_pending()
        self.assertEqual(drained, self.commands)
        self.assertEqual(len(self.queue), 0)
        self.assertEqual(self.queue.drain_pending(), [])

    def test_abandon_in_flight(self):
        state = ConnectionState(banner_lines=0)
        queue = CommandQueue(state, lambda line: None)
        command = PendingCommand("version")
        queue.submit(command)

        self.assertIs(queue.abandon_in_flight(), command)
        self.assertTrue(queue.is_idle)
        self.assertIsNone(queue.abandon_in_flight())

    def test_stats(self):
        stats = self.queue.get_stats()
        self.assertEqual(stats['commands_submitted'], 3)
        self.assertEqual(stats['pending'], 3)
        self.assertIsNone(stats['in_flight'])


class TestCommandQueueConcurrency(unittest.TestCase):
    """Test concurrent submitters."""

    def test_concurrent_submit_keeps_single_flight(self):
        written = []
        queue = CommandQueue(ConnectionState(banner_lines=0), written.append)

        def submitter(prefix):
            for i in range(50):
                queue.submit(PendingCommand(f"{prefix}{i}"))

        threads = [threading.Thread(target=submitter, args=(p,)) for p in "abcd"]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        self.assertEqual(len(written), 1)
        self.assertEqual(len(queue), 199)

        # Drain by completing one at a time; every command is written once
        while queue.in_flight is not None:
            queue.complete(queue.in_flight)
            queue.advance()

        self.assertEqual(len(written), 200)
        self.assertEqual(len(set(written)), 200)


if __name__ == '__main__':
    unittest.main()
