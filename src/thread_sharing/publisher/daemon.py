"""Publisher daemon main loop for keeping shared threads up to date."""

import time
from collections.abc import Callable

from thread_sharing.api import StaticAssetClient
from thread_sharing.attachments import AttachmentStore
from thread_sharing.config import Config
from thread_sharing.logging import get_logger, setup_logging
from thread_sharing.publisher.pipeline import PublishPipeline
from thread_sharing.publisher.scheduler import SyncScheduler
from thread_sharing.store import DatabaseChangeRecord, MailStore
from thread_sharing.tasks import MetadataTaskQueue

logger = get_logger("publisher")

# Global flag for graceful shutdown
_shutdown_requested = False


def request_shutdown() -> None:
    """Request graceful shutdown of the publisher daemon."""
    global _shutdown_requested
    _shutdown_requested = True


def is_shutdown_requested() -> bool:
    """Check if shutdown has been requested."""
    return _shutdown_requested


def reset_shutdown() -> None:
    """Reset shutdown flag (useful for testing)."""
    global _shutdown_requested
    _shutdown_requested = False


def make_change_handler(
    pipeline: PublishPipeline,
    scheduler: SyncScheduler,
) -> Callable[[DatabaseChangeRecord], None]:
    """Build the store listener that schedules shared threads for publishing.

    Only persisted threads are of interest; unshared threads are ignored.
    """

    def on_database_change(change: DatabaseChangeRecord) -> None:
        if change.type != "persist" or change.object_class != "Thread":
            return

        for thread in change.objects:
            try:
                if pipeline.is_shared(thread):
                    scheduler.on_change(thread)
            except Exception:
                logger.exception("Error handling change: thread_id=%s", thread.id)

    return on_database_change


def run_publisher_cycle(store: MailStore, tasks: MetadataTaskQueue) -> int:
    """Run one polling cycle.

    Applies queued metadata writes, then reports changed threads to
    listeners. Metadata writes are themselves changes, which the publish
    pipeline recognizes as no-ops.

    Args:
        store: Mail store to poll
        tasks: Queue of pending metadata writes

    Returns:
        Number of changed threads reported
    """
    applied = tasks.process_pending()
    if applied:
        logger.debug("Persisted metadata: tasks=%d", applied)
    return store.poll_changes()


def run_publisher(config: Config) -> None:
    """Run the publisher daemon main loop.

    Polls the mail store for changes, debounces shared threads, and
    publishes them until shutdown is requested. Every thread is reported on
    the first poll, so changes made while the daemon was stopped are
    picked up.

    Args:
        config: Application configuration
    """
    reset_shutdown()

    setup_logging("publisher")

    interval = config.sharing.poll_interval_seconds

    logger.info(
        "Starting publisher daemon: store=%s api=%s debounce=%.1fs",
        config.store.db_path,
        config.api.base_url,
        config.sharing.debounce_seconds,
    )

    with MailStore(config.store.db_path) as store, StaticAssetClient(config.api) as client:
        tasks = MetadataTaskQueue(store)
        pipeline = PublishPipeline(
            store=store,
            client=client,
            attachments=AttachmentStore(config.store.attachments_path),
            sink=tasks,
            identity=config.identity,
            share_url_base=config.api.share_url_base,
        )
        scheduler = SyncScheduler(
            pipeline.publish,
            delay=config.sharing.debounce_seconds,
            is_shared=pipeline.is_shared,
        )
        unlisten = store.listen(make_change_handler(pipeline, scheduler))

        try:
            while not is_shutdown_requested():
                try:
                    changed = run_publisher_cycle(store, tasks)
                except Exception:
                    logger.exception("Error in publisher cycle")
                    changed = 0

                if changed > 0:
                    logger.debug("Cycle complete: threads_changed=%d", changed)

                time.sleep(interval)
        finally:
            unlisten()
            scheduler.close()
            # Metadata for publishes that already happened must not be lost
            tasks.process_pending()

    logger.info("Publisher daemon stopped")
