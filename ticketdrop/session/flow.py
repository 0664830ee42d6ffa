"""
Plumbing shared by the send and receive flow controllers.

Each controller owns one progress channel and relays its samples verbatim to
the store, tagged with the generation captured when the call was submitted.
Engine completions are checked against the current generation before they
touch the store, so a late result from a superseded session is ignored.
"""

from PyQt6.QtCore import QObject, pyqtSignal

from common.constants import Role
from ticketdrop.utils.logger import logger


class FlowController(QObject):
    """Base class for a controller that owns one transfer role."""

    role = Role.IDLE
    error_occurred = pyqtSignal(str)

    def __init__(self, store, engine, runner, channel, picker=None, parent=None):
        super().__init__(parent)
        self.store = store
        self.engine = engine
        self.runner = runner
        self.channel = channel
        self.picker = picker
        self.channel.sample.connect(self._on_progress)

    def _on_progress(self, generation: int, done: int, total: int):
        if self.store.role is not self.role:
            logger.log_stale_event(f"{self.channel.name} progress", generation, self.store.generation)
            return
        logger.log_progress(self.channel.name, done, total)
        self.store.record_progress(generation, done, total)

    def _accepts(self, generation: int, kind: str) -> bool:
        if self.store.is_current(generation):
            return True
        logger.log_stale_event(kind, generation, self.store.generation)
        return False

    def _is_idle(self) -> bool:
        if self.store.role is Role.IDLE:
            return True
        message = f"Another transfer is in progress ({self.store.role.value})"
        logger.warning(f"[SESSION] {message}")
        self.error_occurred.emit(message)
        return False
