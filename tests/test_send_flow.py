#!/usr/bin/env python3
"""
Unit tests for the send flow controller.

Covers sharing, ticket adoption, rollback on engine failure, disconnect,
selection handling and late completions after a disconnect.
"""

import unittest
from unittest.mock import Mock

import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent))

from tests.fakes import FakeEngine, FakeRunner, FakePicker, FakeScheduler, FakeClipboard
from PyQt6.QtWidgets import QApplication

from common.constants import Role
from common.protocol_definitions import Progress
from ticketdrop.session.controller import TransferSession


def comparable(state):
    """Session snapshot without the internal generation counter."""
    return (state.selected_path, state.role, state.connected, state.ticket,
            state.progress, state.transfer_active)


class SendFlowTestCase(unittest.TestCase):

    @classmethod
    def setUpClass(cls):
        """Create QApplication once for all tests."""
        if not QApplication.instance():
            cls.app = QApplication([])
        else:
            cls.app = QApplication.instance()

    def setUp(self):
        self.engine = FakeEngine()
        self.runner = FakeRunner()
        self.picker = FakePicker(file_path="/tmp/picked.txt", directory="/home/me/downloads")
        self.scheduler = FakeScheduler()
        self.session = TransferSession(self.engine, self.runner, picker=self.picker, schedule=self.scheduler)
        self.store = self.session.store
        self.sender = self.session.sender


class TestShare(SendFlowTestCase):

    def test_share_issues_ticket(self):
        """Select /tmp/report.pdf, share, engine returns abc123."""
        results = []
        self.sender.share_finished.connect(results.append)
        self.store.set_path("/tmp/report.pdf")

        self.assertTrue(self.sender.share_selected_file())

        self.assertTrue(self.store.connected)
        self.assertEqual(self.store.role, Role.SENDING)
        call = self.runner.last("begin_send")
        self.assertEqual(call.func, self.engine.begin_send)
        self.assertEqual(call.args[0], "/tmp/report.pdf")

        call.succeed("abc123")

        self.assertEqual(self.store.ticket, "abc123")
        self.assertEqual(self.store.role, Role.SENDING)
        self.assertTrue(self.store.connected)
        self.assertEqual(len(results), 1)
        self.assertTrue(results[0].success)
        self.assertEqual(results[0].ticket, "abc123")

    def test_share_without_path_is_noop(self):
        before = self.store.state

        self.assertFalse(self.sender.share_selected_file())

        self.assertEqual(self.runner.calls, [])
        self.assertEqual(self.store.state, before)

    def test_rollback_on_engine_failure(self):
        errors = []
        results = []
        self.sender.error_occurred.connect(errors.append)
        self.sender.share_finished.connect(results.append)
        self.store.set_path("/tmp/unreadable.bin")
        before = comparable(self.store.state)

        self.sender.share_selected_file()
        self.runner.last("begin_send").fail("Permission denied")

        self.assertFalse(self.store.connected)
        self.assertEqual(self.store.ticket, "")
        self.assertEqual(self.store.role, Role.IDLE)
        self.assertEqual(comparable(self.store.state), before)
        self.assertEqual(self.store.selected_path, "/tmp/unreadable.bin")
        self.assertEqual(len(errors), 1)
        self.assertIn("Permission denied", errors[0])
        self.assertFalse(results[0].success)

    def test_empty_ticket_counts_as_failure(self):
        self.store.set_path("/tmp/a.txt")
        self.sender.share_selected_file()
        self.runner.last("begin_send").succeed("")

        self.assertFalse(self.store.connected)
        self.assertEqual(self.store.role, Role.IDLE)

    def test_share_rejected_while_receiving(self):
        errors = []
        self.sender.error_occurred.connect(errors.append)
        self.store.set_path("/tmp/a.txt")
        self.session.receive("xyz999")
        before = self.store.state

        self.assertFalse(self.sender.share_selected_file())

        self.assertEqual(self.runner.calls_named("begin_send"), [])
        self.assertEqual(self.store.state, before)
        self.assertEqual(len(errors), 1)

    def test_second_share_rejected_while_sending(self):
        self.store.set_path("/tmp/a.txt")
        self.sender.share_selected_file()
        self.assertFalse(self.sender.share_selected_file())
        self.assertEqual(len(self.runner.calls_named("begin_send")), 1)


class TestSendProgress(SendFlowTestCase):

    def test_samples_relayed_verbatim(self):
        self.store.set_path("/tmp/a.txt")
        self.sender.share_selected_file()
        report = self.runner.last("begin_send").args[1]

        report(30, 100)
        self.assertEqual(self.store.progress, Progress(30, 100))
        report(20, 100)  # not monotonic, still relayed
        self.assertEqual(self.store.progress, Progress(20, 100))
        self.assertTrue(self.store.transfer_active)

    def test_samples_from_previous_share_are_dropped(self):
        self.store.set_path("/tmp/a.txt")
        self.sender.share_selected_file()
        old_report = self.runner.last("begin_send").args[1]
        self.runner.last("begin_send").succeed("first")
        self.sender.disconnect()

        self.store.set_path("/tmp/b.txt")
        self.sender.share_selected_file()
        new_report = self.runner.last("begin_send").args[1]
        new_report(10, 100)

        old_report(100, 100)

        self.assertEqual(self.store.progress, Progress(10, 100))
        self.assertEqual(self.scheduler.pending, [])


class TestDisconnect(SendFlowTestCase):

    def test_disconnect_mid_transfer(self):
        """Liveness click while sending at (40,100) clears everything immediately."""
        self.store.set_path("/tmp/report.pdf")
        self.sender.share_selected_file()
        call = self.runner.last("begin_send")
        call.succeed("abc123")
        call.args[1](40, 100)

        self.session.liveness.activate()

        self.assertFalse(self.store.connected)
        self.assertEqual(self.store.ticket, "")
        self.assertEqual(self.store.selected_path, "")
        self.assertEqual(self.store.role, Role.IDLE)
        self.assertFalse(self.store.transfer_active)
        self.assertEqual(len(self.runner.calls_named("shutdown")), 1)

    def test_disconnect_is_idempotent(self):
        self.store.set_path("/tmp/a.txt")
        self.sender.share_selected_file()
        self.runner.last("begin_send").succeed("abc123")

        self.sender.disconnect()
        once = comparable(self.store.state)
        self.sender.disconnect()

        self.assertEqual(comparable(self.store.state), once)

    def test_disconnect_when_idle(self):
        self.sender.disconnect()
        self.assertFalse(self.store.connected)
        self.assertEqual(self.store.role, Role.IDLE)

    def test_disconnect_does_not_wait_for_shutdown(self):
        self.store.set_path("/tmp/a.txt")
        self.sender.share_selected_file()
        self.runner.last("begin_send").succeed("abc123")

        self.sender.disconnect()

        # shutdown not settled yet, local state already reset
        self.assertFalse(self.store.connected)
        self.runner.last("shutdown").fail("router timeout")
        self.assertFalse(self.store.connected)

    def test_late_success_after_disconnect_is_discarded(self):
        results = []
        self.sender.share_finished.connect(results.append)
        self.store.set_path("/tmp/a.txt")
        self.sender.share_selected_file()
        pending = self.runner.last("begin_send")

        self.sender.disconnect()
        pending.succeed("late-ticket")

        self.assertEqual(self.store.ticket, "")
        self.assertFalse(self.store.connected)
        self.assertEqual(results, [])

    def test_late_failure_after_new_share_is_discarded(self):
        self.store.set_path("/tmp/a.txt")
        self.sender.share_selected_file()
        stale = self.runner.last("begin_send")
        self.sender.disconnect()

        self.store.set_path("/tmp/b.txt")
        self.sender.share_selected_file()
        stale.fail("boom")

        self.assertTrue(self.store.connected)
        self.assertEqual(self.store.role, Role.SENDING)


class TestSelection(SendFlowTestCase):

    def test_drop_takes_first_path(self):
        self.assertTrue(self.sender.on_paths_dropped(["/tmp/first.png", "/tmp/second.png"]))
        self.assertEqual(self.store.selected_path, "/tmp/first.png")

    def test_empty_drop_is_ignored(self):
        self.assertFalse(self.sender.on_paths_dropped([]))
        self.assertEqual(self.store.selected_path, "")

    def test_choose_file_uses_picker(self):
        self.assertTrue(self.sender.choose_file())
        self.assertEqual(self.store.selected_path, "/tmp/picked.txt")

    def test_choose_file_cancelled(self):
        self.picker.file_path = None
        self.assertFalse(self.sender.choose_file())
        self.assertEqual(self.store.selected_path, "")

    def test_clear_selection_before_share(self):
        self.store.set_path("/tmp/a.txt")
        self.assertTrue(self.sender.clear_selection())
        self.assertEqual(self.store.selected_path, "")
        self.assertEqual(self.runner.calls, [])

    def test_clear_selection_rejected_while_connected(self):
        self.store.set_path("/tmp/a.txt")
        self.sender.share_selected_file()
        self.assertFalse(self.sender.clear_selection())
        self.assertEqual(self.store.selected_path, "/tmp/a.txt")

    def test_drop_rejected_while_connected(self):
        self.store.set_path("/tmp/a.txt")
        self.sender.share_selected_file()
        self.assertFalse(self.sender.on_paths_dropped(["/tmp/other.txt"]))
        self.assertEqual(self.store.selected_path, "/tmp/a.txt")


class TestCopyTicket(SendFlowTestCase):

    def test_copy_ticket(self):
        clipboard = FakeClipboard()
        self.store.set_path("/tmp/a.txt")
        self.sender.share_selected_file()
        self.runner.last("begin_send").succeed("abc123")
        before = self.store.state

        self.assertTrue(self.session.copy_ticket(clipboard))

        self.assertEqual(clipboard.text, "abc123")
        self.assertEqual(self.store.state, before)

    def test_copy_without_ticket(self):
        clipboard = Mock()
        self.assertFalse(self.session.copy_ticket(clipboard))
        clipboard.setText.assert_not_called()


if __name__ == '__main__':
    unittest.main()
