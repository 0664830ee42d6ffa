"""
Engine runner.

Hosts the asyncio event loop the transfer engine runs on inside a QThread and
marshals call completions back to the GUI thread.
"""

import asyncio
import threading
from typing import Callable, Dict, Optional

from PyQt6.QtCore import QThread, pyqtSignal

from common.constants import ENGINE_STOP_WAIT_MS, SHUTDOWN_TIMEOUT
from ticketdrop.utils.logger import logger


DoneCallback = Callable[[bool, Optional[str], object], None]  # success, error, result


class EngineThread(QThread):
    """Thread owning the engine's event loop."""

    task_done = pyqtSignal(int, bool, object, object)  # token, success, error, result

    def __init__(self, engine, parent=None):
        super().__init__(parent)
        self.engine = engine
        self.loop: Optional[asyncio.AbstractEventLoop] = None
        self.loop_ready = threading.Event()
        self._callbacks: Dict[int, DoneCallback] = {}
        self._next_token = 0
        # Emitted from the loop thread, delivered on the thread that owns this object
        self.task_done.connect(self._dispatch)

    def run(self):
        """Run the engine loop until stop() is called."""
        self.loop = asyncio.new_event_loop()
        asyncio.set_event_loop(self.loop)
        self.loop_ready.set()

        try:
            self.loop.run_forever()
        finally:
            try:
                pending = asyncio.all_tasks(self.loop)
                for task in pending:
                    task.cancel()
                if pending:
                    self.loop.run_until_complete(asyncio.gather(*pending, return_exceptions=True))
            except RuntimeError as e:
                logger.error(f"[ENGINE] Error cleaning up tasks: {e}")
            finally:
                self.loop.close()
                logger.debug("[ENGINE] Event loop closed")

    def submit(self, async_func, *args, on_done: Optional[DoneCallback] = None, **kwargs) -> int:
        """
        Schedule ``async_func(*args, **kwargs)`` on the engine loop.

        ``on_done(success, error, result)`` is invoked on the GUI thread once
        the coroutine settles. Returns a token identifying the call.
        """
        self._next_token += 1
        token = self._next_token
        if on_done is not None:
            self._callbacks[token] = on_done

        if not self.loop_ready.wait(timeout=5.0) or self.loop is None or self.loop.is_closed():
            logger.error("[ENGINE] Event loop not running, call rejected")
            self._dispatch(token, False, "Transfer engine is not running", None)
            return token

        future = asyncio.run_coroutine_threadsafe(async_func(*args, **kwargs), self.loop)
        future.add_done_callback(lambda f: self._on_future_done(token, f))
        return token

    def _on_future_done(self, token: int, future):
        if future.cancelled():
            self.task_done.emit(token, False, "Operation cancelled", None)
            return
        error = future.exception()
        if error is not None:
            self.task_done.emit(token, False, str(error) or error.__class__.__name__, None)
        else:
            self.task_done.emit(token, True, None, future.result())

    def _dispatch(self, token: int, success: bool, error, result):
        callback = self._callbacks.pop(token, None)
        if callback is None:
            return
        try:
            callback(success, error, result)
        except Exception as e:
            logger.log_error("engine completion handler", e)

    def stop(self):
        """Shut the engine down, stop the loop and join the thread."""
        if self.loop is None or self.loop.is_closed():
            return

        future = asyncio.run_coroutine_threadsafe(self.engine.shutdown(), self.loop)
        try:
            future.result(timeout=SHUTDOWN_TIMEOUT + 1)
        except Exception as e:
            logger.log_error("engine shutdown", e)

        self.loop.call_soon_threadsafe(self.loop.stop)
        if not self.wait(ENGINE_STOP_WAIT_MS):
            logger.warning("[ENGINE] Thread did not exit within timeout")
