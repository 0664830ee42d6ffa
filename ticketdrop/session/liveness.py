"""
Connection liveness indicator.

A two-state machine (DISCONNECTED <-> CONNECTED) that follows the store: it
is CONNECTED while the store is connected and holds an issued ticket. Activating it is a hard stop: the engine is shut down and
the session is cleared even if a transfer is mid-flight.
"""

from enum import Enum

from PyQt6.QtCore import QObject, pyqtSignal


class LivenessState(Enum):
    DISCONNECTED = 'disconnected'
    CONNECTED = 'connected'


class LivenessIndicator(QObject):
    """Tracks whether a send session is live and exposes the stop control."""

    state_changed = pyqtSignal(object)  # LivenessState

    def __init__(self, store, send_controller, parent=None):
        super().__init__(parent)
        self.store = store
        self.send_controller = send_controller
        self._state = LivenessState.DISCONNECTED
        self.store.state_changed.connect(self._sync)
        self._sync()

    @property
    def state(self) -> LivenessState:
        return self._state

    @property
    def is_connected(self) -> bool:
        return self._state is LivenessState.CONNECTED

    def activate(self):
        """Click handler: always disconnect."""
        self.send_controller.disconnect()
        self._sync()

    def _sync(self):
        # Live only once the share succeeded, i.e. a ticket was issued
        live = self.store.connected and bool(self.store.ticket)
        new_state = LivenessState.CONNECTED if live else LivenessState.DISCONNECTED
        if new_state is not self._state:
            self._state = new_state
            self.state_changed.emit(new_state)
