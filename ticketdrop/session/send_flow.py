"""
Send flow controller.

Drives the sender side: file selection, sharing, ticket adoption, progress
relay and disconnect.
"""

from typing import Optional, Sequence

from PyQt6.QtCore import pyqtSignal

from common.constants import Role
from common.protocol_definitions import TransferResult
from ticketdrop.session.flow import FlowController
from ticketdrop.utils.logger import logger


class SendFlowController(FlowController):
    """Sender side of the session."""

    role = Role.SENDING
    share_finished = pyqtSignal(object)  # TransferResult

    def choose_file(self) -> bool:
        """Prompt for a file and select it unless the user cancelled."""
        if self.picker is None:
            return False
        path = self.picker.pick_file()
        if not path:
            return False
        return self.store.set_path(path)

    def on_paths_dropped(self, paths: Sequence[str]) -> bool:
        """Select the first dropped entry; the rest are ignored."""
        if not paths:
            return False
        return self.store.set_path(str(paths[0]))

    def clear_selection(self) -> bool:
        """Withdraw a selected but not yet shared file."""
        if self.store.connected:
            return False
        return self.store.set_path("")

    def share_selected_file(self) -> bool:
        """
        Share the selected file.

        Returns True when the engine call was submitted. The ticket arrives
        later through ``share_finished``.
        """
        path = self.store.selected_path
        if not path:
            logger.debug("[SEND] Share requested without a selected file")
            return False
        if not self._is_idle():
            return False

        generation = self.store.begin_session(Role.SENDING)
        self.store.set_connected(True)
        logger.log_share(path, generation)

        self.runner.submit(
            self.engine.begin_send, path, self.channel.bind(generation),
            on_done=lambda success, error, result: self._on_share_done(generation, path, success, error, result)
        )
        return True

    def _on_share_done(self, generation: int, path: str, success: bool, error: Optional[str], result):
        if not self._accepts(generation, "share completion"):
            return

        if success and result:
            ticket = str(result)
            self.store.set_ticket(ticket)
            logger.log_ticket_issued(ticket, generation)
            self.share_finished.emit(TransferResult(Role.SENDING, True, ticket=ticket, path=path))
            return

        message = error or "The engine did not return a ticket"
        logger.log_error("share", message)
        self.store.set_connected(False)
        self.store.end_session()
        self.share_finished.emit(TransferResult(Role.SENDING, False, error=message, path=path))
        self.error_occurred.emit(f"Could not share file: {message}")

    def disconnect(self):
        """Hard stop: shut the engine down and reset the session immediately."""
        self.runner.submit(self.engine.shutdown, on_done=self._on_shutdown_done)
        self.store.end_session()
        self.store.set_connected(False)
        self.store.set_path("")
        logger.log_disconnect(self.store.generation)

    def _on_shutdown_done(self, success: bool, error: Optional[str], result):
        if not success:
            logger.log_error("shutdown", error)

    def copy_ticket(self, clipboard) -> bool:
        """Put the current ticket on ``clipboard``."""
        ticket = self.store.ticket
        if not ticket:
            return False
        clipboard.setText(ticket)
        return True
