"""StashCache Janitor - Background Expiry Sweeps.

Copyright (c) 2024-2026 BlackRoad OS, Inc. All rights reserved.
"""

from __future__ import annotations

import logging
import threading
from enum import Enum, auto
from typing import TYPE_CHECKING, Callable, Optional

from stashcache_core.cache.expiry import ExpiryPolicy

if TYPE_CHECKING:
    from stashcache_core.metrics.collector import MetricsCollector
    from stashcache_core.store.backend import EntryStore

logger = logging.getLogger(__name__)


class RecurringTask:
    """Runs an action on a daemon thread every `interval` seconds.

    Stopping is cooperative: stop() sets an event that both wakes the
    inter-run wait and is visible to the action via `stop_requested`.
    Exceptions from the action are logged and the loop keeps going.

    Example:
        task = RecurringTask("flush", 30.0, flush_buffers)
        task.start()
        ...
        task.stop()
    """

    def __init__(self, name: str, interval: float, action: Callable[[], None]):
        if interval <= 0:
            raise ValueError(f"interval must be > 0, got {interval}")
        self.name = name
        self.interval = interval
        self._action = action
        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self._lock = threading.Lock()

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def stop_requested(self) -> bool:
        return self._stop_event.is_set()

    def start(self) -> None:
        """Start the background thread. No-op if already running."""
        with self._lock:
            if self.is_running:
                return
            self._stop_event.clear()
            self._thread = threading.Thread(
                target=self._loop,
                daemon=True,
                name=self.name,
            )
            self._thread.start()
        logger.debug(f"Task {self.name} started (interval={self.interval}s)")

    def stop(self, timeout: Optional[float] = 5.0) -> None:
        """Signal the loop to exit and wait for it."""
        self._stop_event.set()
        with self._lock:
            thread, self._thread = self._thread, None
        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout=timeout)
            if thread.is_alive():
                logger.warning(f"Task {self.name} did not stop within {timeout}s")
        logger.debug(f"Task {self.name} stopped")

    def run_once(self) -> None:
        """Run the action on the calling thread."""
        self._action()

    def _loop(self) -> None:
        while not self._stop_event.wait(self.interval):
            try:
                self._action()
            except Exception as e:
                logger.error(f"Task {self.name} failed: {e}", exc_info=True)

    def __repr__(self) -> str:
        return f"RecurringTask(name={self.name!r}, interval={self.interval}, running={self.is_running})"


class JanitorState(Enum):
    """Janitor lifecycle states."""

    IDLE = auto()
    SCANNING = auto()
    STOPPED = auto()


class ExpiryJanitor:
    """Periodically purges expired entries nobody reads again.

    Foreground get/has evict lazily; the janitor is the safety net.
    Each sweep walks the store one key at a time, checking the stop
    signal between keys, so shutdown is never blocked by a long scan.
    """

    def __init__(
        self,
        store: "EntryStore",
        policy: Optional[ExpiryPolicy] = None,
        interval: float = 60.0,
        metrics: Optional["MetricsCollector"] = None,
        name: str = "stashcache-janitor",
    ):
        self.store = store
        self.policy = policy or ExpiryPolicy()
        self.metrics = metrics
        self._state = JanitorState.IDLE
        self._state_lock = threading.Lock()
        self._task = RecurringTask(name, interval, self.sweep)

    @property
    def state(self) -> JanitorState:
        return self._state

    @property
    def interval(self) -> float:
        return self._task.interval

    @property
    def is_running(self) -> bool:
        return self._task.is_running

    def start(self) -> None:
        with self._state_lock:
            self._state = JanitorState.IDLE
        self._task.start()
        logger.info(f"Expiry janitor started (interval={self.interval}s)")

    def stop(self, timeout: Optional[float] = 5.0) -> None:
        self._task.stop(timeout)
        with self._state_lock:
            self._state = JanitorState.STOPPED
        logger.info("Expiry janitor stopped")

    def sweep(self) -> int:
        """Run one full sweep now.

        Returns:
            Number of entries removed
        """
        with self._state_lock:
            if self._state is JanitorState.STOPPED and self._task.stop_requested():
                return 0
            self._state = JanitorState.SCANNING

        try:
            removed = self.store.scan_and_evict(
                self.policy.now(),
                should_stop=self._task.stop_requested,
            )
        finally:
            with self._state_lock:
                if self._state is JanitorState.SCANNING:
                    self._state = JanitorState.IDLE

        if removed:
            logger.info(f"Janitor removed {removed} expired entries")
            if self.metrics is not None:
                self.metrics.record_expiration(removed)
        return removed

    def __repr__(self) -> str:
        return f"ExpiryJanitor(state={self._state.name}, interval={self.interval})"


__all__ = ["RecurringTask", "ExpiryJanitor", "JanitorState"]
