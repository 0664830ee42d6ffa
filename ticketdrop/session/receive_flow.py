"""
Receive flow controller.

Redeems a pasted ticket: asks for a destination directory, starts the engine
download and relays receive progress to the store.
"""

from typing import Optional

from PyQt6.QtCore import pyqtSignal

from common.constants import Role
from common.protocol_definitions import TransferResult
from ticketdrop.session.flow import FlowController
from ticketdrop.utils.logger import logger


class ReceiveFlowController(FlowController):
    """Receiver side of the session."""

    role = Role.RECEIVING
    receive_finished = pyqtSignal(object)  # TransferResult

    def receive(self, ticket_text: str) -> bool:
        """
        Redeem ``ticket_text``.

        The ticket is not validated here; a malformed one fails in the engine
        and is reported through ``receive_finished``. Returns True when the
        engine call was submitted.
        """
        ticket = (ticket_text or "").strip()
        if not ticket:
            return False
        if not self._is_idle():
            return False

        dest_dir = self.picker.pick_directory() if self.picker is not None else None
        if not dest_dir:
            logger.debug("[RECEIVE] Destination prompt cancelled")
            return False

        # The prompt is modal; the session may have changed meanwhile
        if not self._is_idle():
            return False

        generation = self.store.begin_session(Role.RECEIVING)
        logger.log_receive(dest_dir, generation)

        self.runner.submit(
            self.engine.begin_receive, ticket, dest_dir, self.channel.bind(generation),
            on_done=lambda success, error, result: self._on_receive_done(generation, success, error, result)
        )
        return True

    def _on_receive_done(self, generation: int, success: bool, error: Optional[str], result):
        if success and self.store.has_completed(generation):
            # terminal sample already returned the store to idle
            logger.info(f"[RECEIVE] Saved to {result}")
            self.receive_finished.emit(TransferResult(Role.RECEIVING, True, path=result))
            return
        if not self._accepts(generation, "receive completion"):
            return

        if success:
            logger.info(f"[RECEIVE] Saved to {result}")
            self.store.finish_session(generation)
            self.receive_finished.emit(TransferResult(Role.RECEIVING, True, path=result))
            return

        message = error or "Unknown error"
        logger.log_error("receive", message)
        self.store.end_session()
        self.receive_finished.emit(TransferResult(Role.RECEIVING, False, error=message))
        self.error_occurred.emit(f"Could not receive file: {message}")
