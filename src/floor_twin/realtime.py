"""Background thread that paces SimPy time to the wall clock."""

import logging
import threading
import time
from typing import Optional

import simpy

logger = logging.getLogger(__name__)


class RealtimeDriver:
    """Advances a SimPy environment in small wall-clock steps.

    Each step runs under the shared state lock and only for the events due
    since the previous step, so external commands wait at most one step.
    """

    def __init__(
        self,
        env: simpy.Environment,
        lock: threading.RLock,
        factor: float = 1.0,
        resolution_sec: float = 0.05,
    ):
        """Initialize driver.

        Args:
            env: Environment to advance
            lock: Shared state lock held while stepping
            factor: Simulated seconds per wall-clock second
            resolution_sec: Wall-clock interval between steps
        """
        if factor <= 0:
            raise ValueError(f"factor must be > 0, got {factor}")
        self.env = env
        self.lock = lock
        self.factor = factor
        self.resolution_sec = resolution_sec

        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self.step_errors = 0

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        if self.is_running:
            return
        self._stop.clear()
        self._thread = threading.Thread(
            target=self._loop, name="floor-twin-clock", daemon=True
        )
        self._thread.start()

    def stop(self, timeout: Optional[float] = 5.0) -> None:
        """Signal the loop and wait for the thread to exit."""
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout=timeout)
            if self._thread.is_alive():
                logger.error("Realtime driver did not stop within %.1fs", timeout)
            self._thread = None

    def _loop(self) -> None:
        start_wall = time.monotonic()
        with self.lock:
            start_sim = self.env.now
        logger.debug("Realtime driver started (factor=%.2f)", self.factor)

        while not self._stop.wait(self.resolution_sec):
            target = start_sim + (time.monotonic() - start_wall) * self.factor
            with self.lock:
                if self._stop.is_set():
                    break
                if target <= self.env.now:
                    continue
                try:
                    self.env.run(until=target)
                except Exception:
                    self.step_errors += 1
                    logger.exception("Simulation step failed at t=%.2fs", self.env.now)

        logger.debug("Realtime driver stopped")
