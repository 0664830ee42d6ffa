"""
Session state store.

Single source of truth for the current transfer session. Fields are private;
controllers mutate them only through the methods below, and every effective
mutation emits ``state_changed`` so readers observe it immediately.

All methods must be called from the GUI thread. Progress samples and engine
completions produced on the engine thread reach this object through queued
Qt signals, which serialises every mutation.
"""

from dataclasses import dataclass
from typing import Callable, Optional

from PyQt6.QtCore import QObject, QTimer, pyqtSignal

from common.constants import GRACE_DELAY_MS, Role
from common.protocol_definitions import Progress
from ticketdrop.utils.logger import logger


Scheduler = Callable[[int, Callable[[], None]], None]


@dataclass(frozen=True)
class SessionState:
    """Read-only snapshot of the store."""
    selected_path: str = ""
    role: Role = Role.IDLE
    connected: bool = False
    ticket: str = ""
    progress: Progress = Progress()
    transfer_active: bool = False
    generation: int = 0


class SessionStore(QObject):
    """Process-wide session state with guarded transitions."""

    state_changed = pyqtSignal()

    def __init__(self, grace_delay_ms: int = GRACE_DELAY_MS, schedule: Optional[Scheduler] = None, parent=None):
        super().__init__(parent)
        self._selected_path = ""
        self._role = Role.IDLE
        self._connected = False
        self._ticket = ""
        self._progress = Progress()
        self._transfer_active = False
        self._generation = 0
        self._completed_generation = 0

        self.grace_delay_ms = grace_delay_ms
        self._schedule = schedule or QTimer.singleShot

    # ------------------------------------------------------------------
    # Read access
    # ------------------------------------------------------------------

    @property
    def selected_path(self) -> str:
        return self._selected_path

    @property
    def role(self) -> Role:
        return self._role

    @property
    def connected(self) -> bool:
        return self._connected

    @property
    def ticket(self) -> str:
        return self._ticket

    @property
    def progress(self) -> Progress:
        return self._progress

    @property
    def percent(self) -> float:
        return self._progress.percent

    @property
    def transfer_active(self) -> bool:
        return self._transfer_active

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def state(self) -> SessionState:
        return SessionState(
            selected_path=self._selected_path,
            role=self._role,
            connected=self._connected,
            ticket=self._ticket,
            progress=self._progress,
            transfer_active=self._transfer_active,
            generation=self._generation,
        )

    def is_current(self, generation: int) -> bool:
        return generation == self._generation

    def has_completed(self, generation: int) -> bool:
        """True once the grace completion of ``generation`` has run."""
        return generation == self._completed_generation

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    def set_path(self, path: str) -> bool:
        """Replace the selected path. Rejected mid-session or while receiving."""
        if self._connected:
            logger.debug("[SESSION] Ignoring path change while connected")
            return False
        if self._role is Role.RECEIVING:
            logger.debug("[SESSION] Ignoring path change while receiving")
            return False
        path = path or ""
        if path != self._selected_path:
            self._selected_path = path
            self.state_changed.emit()
        return True

    def set_connected(self, connected: bool):
        """Set the connection flag. Disconnecting also drops ticket and progress."""
        if connected:
            if not self._connected:
                self._connected = True
                self.state_changed.emit()
            return

        self._connected = False
        self._ticket = ""
        self._progress = Progress()
        self._transfer_active = False
        self.state_changed.emit()

    def set_ticket(self, ticket: str) -> bool:
        """Install the share ticket; only meaningful while sending."""
        if self._role is not Role.SENDING:
            logger.debug(f"[SESSION] Ignoring ticket while role={self._role.value}")
            return False
        self._ticket = ticket or ""
        self.state_changed.emit()
        return True

    def begin_session(self, role: Role) -> int:
        """Start a new session generation owned by ``role``."""
        self._generation += 1
        self._role = role
        self._ticket = ""
        self._progress = Progress()
        self._transfer_active = False
        self.state_changed.emit()
        return self._generation

    def end_session(self):
        """Invalidate the current generation and return to idle."""
        self._generation += 1
        self._role = Role.IDLE
        self._ticket = ""
        self._progress = Progress()
        self._transfer_active = False
        self.state_changed.emit()

    def record_progress(self, generation: int, done: int, total: int) -> bool:
        """
        Apply a progress sample tagged with the session it belongs to.

        Samples from a superseded generation, or arriving while idle, are
        dropped. A terminal sample (``done >= total``) schedules the grace
        completion step.
        """
        if generation != self._generation or self._role is Role.IDLE:
            logger.log_stale_event("progress", generation, self._generation)
            return False

        self._progress = Progress(done=done, total=total)
        self._transfer_active = True
        self.state_changed.emit()

        if self._progress.is_complete:
            self._schedule_completion(generation)
        return True

    def finish_session(self, generation: int):
        """Schedule the grace completion for a session whose engine call succeeded."""
        if generation != self._generation:
            return
        self._schedule_completion(generation)

    def _schedule_completion(self, generation: int):
        self._schedule(self.grace_delay_ms, lambda: self._complete(generation))

    def _complete(self, generation: int):
        if generation != self._generation:
            logger.log_stale_event("completion", generation, self._generation)
            return
        self._completed_generation = generation
        self._transfer_active = False
        self._progress = Progress(done=0, total=self._progress.total)
        if self._role is Role.RECEIVING:
            self._role = Role.IDLE
        self.state_changed.emit()
