"""Publishing of shared threads to the static asset store."""

import threading
import time
from collections.abc import Callable

from thread_sharing.api import StaticAssetClient
from thread_sharing.attachments import AttachmentStore
from thread_sharing.logging import get_logger
from thread_sharing.models import PLUGIN_ID, Identity, SharingMetadata, Thread
from thread_sharing.publisher.fingerprint import combined_version_hash
from thread_sharing.publisher.snapshot import TOMBSTONE, build_snapshot, serialize_snapshot
from thread_sharing.publisher.uploader import AssetUploader
from thread_sharing.store import MailStore
from thread_sharing.tasks import MetadataSink, SyncbackMetadataTask

logger = get_logger("pipeline")


class PublishPipeline:
    """Mirrors a thread to a JSON snapshot plus its attachments.

    publish() is idempotent: a thread whose message versions are unchanged
    since the last publish is skipped, which also stops the metadata write
    that follows every publish from triggering another one.
    """

    def __init__(
        self,
        store: MailStore,
        client: StaticAssetClient,
        attachments: AttachmentStore,
        sink: MetadataSink,
        identity: Identity,
        share_url_base: str = "https://shared.getmailspring.com",
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._store = store
        self._client = client
        self._uploader = AssetUploader(client, attachments)
        self._sink = sink
        self._identity = identity
        self._share_url_base = share_url_base.rstrip("/")
        self._clock = clock
        self._lock = threading.Lock()

    def metadata_for(self, thread: Thread) -> SharingMetadata:
        """Latest sharing metadata for a thread.

        A value still waiting in the sink wins over the stored one, and the
        stored one over the copy carried by a possibly stale thread object.
        """
        value = self._sink.pending_value(thread.id, PLUGIN_ID)
        if value is None:
            value = self._store.metadata_for(thread.id, PLUGIN_ID)
        if value is None:
            value = thread.metadata_for_plugin_id(PLUGIN_ID)
        return SharingMetadata.from_dict(value)

    def is_shared(self, thread: Thread) -> bool:
        return self.metadata_for(thread).shared

    def sharing_url_for_thread(self, thread: Thread) -> str | None:
        metadata = self.metadata_for(thread)
        if not metadata.shared or not metadata.key:
            return None
        return f"{self._share_url_base}/thread/{self._identity.id}/{metadata.key}"

    def publish(self, thread: Thread) -> bool:
        """Publish the thread's current state if it changed.

        Args:
            thread: Thread to publish

        Returns:
            True if a snapshot was written, False if nothing changed

        Raises:
            UploadFailed: The snapshot could not be written; metadata is
                left as it was so the next attempt starts over
        """
        with self._lock:
            metadata = self.metadata_for(thread)

            messages = self._store.find_messages(thread.id, include_body=True)
            # Reminders, deleted mail and other system messages are never shared
            messages = [m for m in messages if not m.is_hidden()]

            new_hash = combined_version_hash(messages)
            if metadata.combined_version_hash == new_hash:
                logger.debug("Thread unchanged since last publish: thread_id=%s", thread.id)
                return False

            updated = metadata.copy()
            updated.shared = True
            updated.combined_version_hash = new_hash
            if not updated.key:
                updated.key = f"{thread.id}-{int(self._clock() * 1000)}"

            files = [f for m in messages for f in m.files]
            updated.file_urls.update(self._uploader.upload_missing(files, updated.file_urls))

            document = build_snapshot(thread, messages, updated, self._identity)
            self._client.post_static_asset(
                filename=updated.key,
                data=serialize_snapshot(document),
                content_type="application/json",
            )

            self._sink.submit(SyncbackMetadataTask.for_saving(thread, PLUGIN_ID, updated.to_dict()))

        logger.info(
            "Published thread: thread_id=%s key=%s messages=%d files=%d",
            thread.id,
            updated.key,
            len(messages),
            len(updated.file_urls),
        )
        return True

    def unpublish(self, thread: Thread) -> None:
        """Replace the thread's snapshot with a tombstone and mark it unshared.

        The key and uploaded file URLs are kept so sharing again reuses the
        same address. The version hash is cleared so it republishes.

        Raises:
            UploadFailed: The tombstone could not be written
        """
        with self._lock:
            metadata = self.metadata_for(thread)

            if metadata.key:
                self._client.post_static_asset(
                    filename=metadata.key,
                    data=serialize_snapshot(TOMBSTONE),
                    content_type="application/json",
                )
            else:
                logger.warning("Unsharing thread that was never published: thread_id=%s", thread.id)

            updated = SharingMetadata(
                shared=False,
                key=metadata.key,
                combined_version_hash=None,
                file_urls=metadata.file_urls,
            )
            self._sink.submit(SyncbackMetadataTask.for_saving(thread, PLUGIN_ID, updated.to_dict()))

        logger.info("Unshared thread: thread_id=%s key=%s", thread.id, metadata.key)
