"""
Transfer engine interface.

The session core treats the engine as a black box: it hands over a path or a
ticket and gets back a ticket, a saved path or an ``EngineError``. Progress is
reported through the ``on_progress(done, total)`` callback passed to each call.
"""

from abc import ABC, abstractmethod
from typing import Callable


ProgressCallback = Callable[[int, int], None]


class EngineError(Exception):
    """A transfer engine operation failed (I/O error, bad ticket, unreachable peer)."""


class TransferEngine(ABC):
    """Operations the session controllers consume."""

    @abstractmethod
    async def begin_send(self, path: str, on_progress: ProgressCallback) -> str:
        """Start sharing ``path`` and return the ticket for it."""

    @abstractmethod
    async def begin_receive(self, ticket: str, dest_dir: str, on_progress: ProgressCallback) -> str:
        """Fetch the file behind ``ticket`` into ``dest_dir`` and return the saved path."""

    @abstractmethod
    async def shutdown(self) -> None:
        """Stop sharing and abort transfers in flight."""
