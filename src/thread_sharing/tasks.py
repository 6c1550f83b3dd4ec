"""Deferred metadata persistence.

The publisher never writes metadata itself. It emits SyncbackMetadataTask
values into a MetadataSink; MetadataTaskQueue is the sink used in
production and applies queued tasks to the store from the daemon loop.
"""

import queue
import threading
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, Protocol, Self

from thread_sharing.logging import get_logger
from thread_sharing.models import Thread
from thread_sharing.store import MailStore

logger = get_logger("tasks")


@dataclass(frozen=True)
class SyncbackMetadataTask:
    """Request to store a plugin's metadata value on a model."""

    model_id: str
    plugin_id: str
    value: dict[str, Any]

    @classmethod
    def for_saving(cls, model: Thread, plugin_id: str, value: dict[str, Any]) -> Self:
        return cls(model_id=model.id, plugin_id=plugin_id, value=value)


class MetadataSink(Protocol):
    def submit(self, task: SyncbackMetadataTask) -> None: ...

    def pending_value(self, model_id: str, plugin_id: str) -> dict[str, Any] | None:
        """Latest submitted value not yet persisted, if any."""
        ...


ErrorHandler = Callable[[SyncbackMetadataTask, Exception], None]


def _log_task_error(task: SyncbackMetadataTask, error: Exception) -> None:
    logger.error(
        "Failed to persist metadata: model_id=%s plugin_id=%s",
        task.model_id,
        task.plugin_id,
        exc_info=error,
    )


class MetadataTaskQueue:
    """Queue of metadata writes applied to the store in submission order.

    submit() is safe to call from any thread. Failures while applying a task
    are handed to the error handler and never raised to the submitter.
    """

    def __init__(self, store: MailStore, on_error: ErrorHandler | None = None) -> None:
        self._store = store
        self._queue: queue.Queue[SyncbackMetadataTask] = queue.Queue()
        self._on_error = on_error or _log_task_error
        self._lock = threading.Lock()
        self._latest: dict[tuple[str, str], SyncbackMetadataTask] = {}

    def submit(self, task: SyncbackMetadataTask) -> None:
        with self._lock:
            self._latest[(task.model_id, task.plugin_id)] = task
        self._queue.put(task)
        logger.debug("Queued metadata task: model_id=%s plugin_id=%s", task.model_id, task.plugin_id)

    def pending_value(self, model_id: str, plugin_id: str) -> dict[str, Any] | None:
        with self._lock:
            task = self._latest.get((model_id, plugin_id))
        return task.value if task else None

    def _settle(self, task: SyncbackMetadataTask) -> None:
        # Only forget the value if no newer task was submitted meanwhile
        with self._lock:
            key = (task.model_id, task.plugin_id)
            if self._latest.get(key) is task:
                del self._latest[key]

    @property
    def pending_count(self) -> int:
        return self._queue.qsize()

    def process_pending(self) -> int:
        """Apply all queued tasks.

        Returns:
            Number of tasks applied successfully
        """
        applied = 0
        while True:
            try:
                task = self._queue.get_nowait()
            except queue.Empty:
                break

            try:
                self._store.set_metadata(task.model_id, task.plugin_id, task.value)
                applied += 1
            except Exception as e:
                self._on_error(task, e)
            finally:
                self._settle(task)

        return applied
