"""Tests for the metadata task queue."""

from pathlib import Path
from unittest.mock import MagicMock

import pytest

from thread_sharing.models import Thread
from thread_sharing.store import MailStore
from thread_sharing.tasks import MetadataTaskQueue, SyncbackMetadataTask


@pytest.fixture
def store(tmp_path: Path) -> MailStore:
    """Provide a MailStore with one thread."""
    store = MailStore(tmp_path / "mail.db")
    store.save_thread(Thread(id="t1"))
    return store


class TestSyncbackMetadataTask:
    """Tests for SyncbackMetadataTask."""

    def test_for_saving(self) -> None:
        """Should take the model id from the thread."""
        task = SyncbackMetadataTask.for_saving(Thread(id="t1"), "thread-sharing", {"shared": True})
        assert task.model_id == "t1"
        assert task.plugin_id == "thread-sharing"
        assert task.value == {"shared": True}


class TestMetadataTaskQueue:
    """Tests for MetadataTaskQueue."""

    def test_submit_does_not_write(self, store: MailStore) -> None:
        """Submitted tasks should wait until processed."""
        tasks = MetadataTaskQueue(store)
        tasks.submit(SyncbackMetadataTask("t1", "thread-sharing", {"shared": True}))

        assert tasks.pending_count == 1
        assert store.metadata_for("t1", "thread-sharing") is None

    def test_process_pending_applies_in_order(self, store: MailStore) -> None:
        """The last submitted value should win."""
        tasks = MetadataTaskQueue(store)
        tasks.submit(SyncbackMetadataTask("t1", "thread-sharing", {"shared": True}))
        tasks.submit(SyncbackMetadataTask("t1", "thread-sharing", {"shared": False}))

        assert tasks.process_pending() == 2
        assert tasks.pending_count == 0
        assert store.metadata_for("t1", "thread-sharing") == {"shared": False}

    def test_pending_value_until_processed(self, store: MailStore) -> None:
        """pending_value should expose the latest unapplied value."""
        tasks = MetadataTaskQueue(store)
        assert tasks.pending_value("t1", "thread-sharing") is None

        tasks.submit(SyncbackMetadataTask("t1", "thread-sharing", {"shared": True}))
        tasks.submit(SyncbackMetadataTask("t1", "thread-sharing", {"shared": True, "key": "k"}))
        assert tasks.pending_value("t1", "thread-sharing") == {"shared": True, "key": "k"}

        tasks.process_pending()
        assert tasks.pending_value("t1", "thread-sharing") is None

    def test_errors_go_to_handler(self) -> None:
        """A failing write should be reported, not raised."""
        store = MagicMock()
        store.set_metadata.side_effect = [RuntimeError("disk full"), None]
        on_error = MagicMock()
        tasks = MetadataTaskQueue(store, on_error=on_error)
        first = SyncbackMetadataTask("t1", "thread-sharing", {"shared": True})
        second = SyncbackMetadataTask("t2", "thread-sharing", {"shared": True})
        tasks.submit(first)
        tasks.submit(second)

        assert tasks.process_pending() == 1

        on_error.assert_called_once()
        assert on_error.call_args[0][0] is first
        assert isinstance(on_error.call_args[0][1], RuntimeError)
        assert tasks.pending_value("t1", "thread-sharing") is None

    def test_default_handler_logs(self, caplog: pytest.LogCaptureFixture) -> None:
        """Without a handler, failures should be logged."""
        store = MagicMock()
        store.set_metadata.side_effect = RuntimeError("disk full")
        tasks = MetadataTaskQueue(store)
        tasks.submit(SyncbackMetadataTask("t1", "thread-sharing", {"shared": True}))

        with caplog.at_level("ERROR"):
            assert tasks.process_pending() == 0

        assert "Failed to persist metadata" in caplog.text
