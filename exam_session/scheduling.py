"""Recurring background callbacks for the timer tick and the autosave cadence."""
import logging
import threading
from typing import Callable

logger = logging.getLogger(__name__)


class RepeatingTimer:
    """
    Calls `callback` every `interval` seconds on a daemon thread until cancelled.

    The first call happens one interval after `start()`. Exceptions raised by
    the callback are logged and the loop carries on.
    """

    def __init__(self, interval: float, callback: Callable[[], None], name: str = "repeating-timer"):
        if interval <= 0:
            raise ValueError("interval must be positive")
        self.interval = interval
        self.callback = callback
        self.name = name
        self._stop = threading.Event()
        self._thread = threading.Thread(target=self._run, name=name, daemon=True)

    def _run(self) -> None:
        while not self._stop.wait(self.interval):
            try:
                self.callback()
            except Exception:
                logger.exception(f"{self.name}: callback failed")

    def start(self) -> None:
        self._thread.start()
        logger.debug(f"{self.name}: started ({self.interval}s)")

    @property
    def is_alive(self) -> bool:
        return self._thread.is_alive()

    @property
    def cancelled(self) -> bool:
        return self._stop.is_set()

    def cancel(self, timeout: float = 5.0) -> None:
        """Stop the loop. Safe to call more than once, and from the callback itself."""
        if self._stop.is_set():
            return
        self._stop.set()
        if self._thread.is_alive() and threading.current_thread() is not self._thread:
            self._thread.join(timeout)
        logger.debug(f"{self.name}: cancelled")
