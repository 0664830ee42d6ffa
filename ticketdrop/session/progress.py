"""
Progress event streams.

One ``ProgressChannel`` exists per role. Engine code reports progress through
a closure obtained from ``bind(generation)``; the closure may be called from
the engine thread and simply emits ``sample``. Qt queues the emission to the
thread the channel lives in, so listeners run on the GUI thread in FIFO order.
"""

from typing import Callable

from PyQt6.QtCore import QObject, pyqtSignal


ProgressCallback = Callable[[int, int], None]


class ProgressChannel(QObject):
    """Typed progress stream for one transfer role."""

    sample = pyqtSignal(int, int, int)  # generation, done, total

    def __init__(self, name: str, parent=None):
        super().__init__(parent)
        self.name = name

    def bind(self, generation: int) -> ProgressCallback:
        """Return a progress callback tagged with ``generation``."""
        def report(done: int, total: int):
            self.sample.emit(generation, int(done), int(total))
        return report
