"""Debounced scheduling of thread publishes."""

import threading
from collections.abc import Callable
from typing import Any

from thread_sharing.logging import get_logger
from thread_sharing.models import Thread

logger = get_logger("scheduler")

DEFAULT_DELAY_SECONDS = 5.0

TimerFactory = Callable[[float, Callable[[], None]], Any]


class SyncScheduler:
    """Coalesces change notifications into one publish per thread per window.

    The first change after a flush starts a timer; changes arriving before
    it fires only replace the pending thread object, so each thread is
    published once with its latest observed state. One scheduler is created
    per process and owns its pending map and timer.
    """

    def __init__(
        self,
        publish: Callable[[Thread], object],
        delay: float = DEFAULT_DELAY_SECONDS,
        is_shared: Callable[[Thread], bool] | None = None,
        timer_factory: TimerFactory = threading.Timer,
    ) -> None:
        """Initialize the scheduler.

        Args:
            publish: Called once per pending thread when the window closes
            delay: Debounce window in seconds
            is_shared: Checked at flush time; threads unshared while pending
                are dropped
            timer_factory: Creates a startable, cancellable timer
                (threading.Timer signature)
        """
        self._publish = publish
        self._delay = delay
        self._is_shared = is_shared
        self._timer_factory = timer_factory
        self._lock = threading.Lock()
        self._pending: dict[str, Thread] = {}
        self._timer: Any = None

    @property
    def pending_count(self) -> int:
        with self._lock:
            return len(self._pending)

    def on_change(self, thread: Thread) -> None:
        """Record a change to a shared thread. Never blocks on I/O."""
        with self._lock:
            self._pending[thread.id] = thread
            if self._timer is None:
                self._timer = self._timer_factory(self._delay, self._on_timer)
                if hasattr(self._timer, "daemon"):
                    self._timer.daemon = True
                self._timer.start()

    def _on_timer(self) -> None:
        self._flush()

    def _take_pending(self) -> list[Thread]:
        with self._lock:
            processing = list(self._pending.values())
            self._pending = {}
            self._timer = None
        return processing

    def _flush(self) -> int:
        published = 0
        for thread in self._take_pending():
            try:
                if self._is_shared is not None and not self._is_shared(thread):
                    logger.debug("Skipping thread unshared while pending: thread_id=%s", thread.id)
                    continue
                self._publish(thread)
                published += 1
            except Exception:
                logger.exception("Unable to sync thread '%s' to the cloud", thread.subject)
        return published

    def flush_now(self) -> int:
        """Cancel the timer and publish everything pending immediately.

        Returns:
            Number of threads handed to publish without error
        """
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
        return self._flush()

    def close(self) -> None:
        """Cancel the timer and drop pending changes."""
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
                self._timer = None
            dropped = len(self._pending)
            self._pending = {}
        if dropped:
            logger.info("Scheduler closed with pending threads dropped: count=%d", dropped)
