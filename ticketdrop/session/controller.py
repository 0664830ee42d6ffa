"""
Transfer session controller.

Wires the session store, the per-role progress channels, both flow
controllers and the liveness indicator around one engine runner.
"""

from PyQt6.QtCore import QObject

from common.constants import GRACE_DELAY_MS
from ticketdrop.session.liveness import LivenessIndicator
from ticketdrop.session.progress import ProgressChannel
from ticketdrop.session.receive_flow import ReceiveFlowController
from ticketdrop.session.send_flow import SendFlowController
from ticketdrop.session.state import SessionStore


class TransferSession(QObject):
    """Everything the presentation layer talks to."""

    def __init__(self, engine, runner, picker=None, grace_delay_ms: int = GRACE_DELAY_MS,
                 schedule=None, parent=None):
        super().__init__(parent)
        self.engine = engine
        self.runner = runner
        self.store = SessionStore(grace_delay_ms=grace_delay_ms, schedule=schedule, parent=self)

        self.send_channel = ProgressChannel('send', parent=self)
        self.receive_channel = ProgressChannel('receive', parent=self)

        self.sender = SendFlowController(self.store, engine, runner, self.send_channel, picker, parent=self)
        self.receiver = ReceiveFlowController(self.store, engine, runner, self.receive_channel, picker, parent=self)
        self.liveness = LivenessIndicator(self.store, self.sender, parent=self)

    # Presentation-facing entry points

    def set_path(self, path: str) -> bool:
        return self.store.set_path(path)

    def share_selected_file(self) -> bool:
        return self.sender.share_selected_file()

    def disconnect(self):
        self.sender.disconnect()

    def receive(self, ticket_text: str) -> bool:
        return self.receiver.receive(ticket_text)

    def copy_ticket(self, clipboard) -> bool:
        return self.sender.copy_ticket(clipboard)
