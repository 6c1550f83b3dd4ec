"""Tests for mail models and sharing metadata."""

import pytest

from thread_sharing.models import (
    PLUGIN_ID,
    File,
    Message,
    SharingMetadata,
    Thread,
)


class TestFile:
    """Tests for File attachment model."""

    def test_display_name_uses_filename(self) -> None:
        """Should use the filename when present."""
        f = File(id="f1", message_id="m1", filename="report.pdf")
        assert f.display_name() == "report.pdf"

    def test_display_name_fallback(self) -> None:
        """Should fall back for attachments without a filename."""
        f = File(id="f1", message_id="m1")
        assert f.display_name() == "Unnamed Attachment"


class TestMessage:
    """Tests for Message model."""

    def test_to_json_includes_files(self) -> None:
        """Should serialize attachments with camelCase keys."""
        msg = Message(
            id="m1",
            thread_id="t1",
            version=3,
            body="<p>Hi</p>",
            files=[File(id="f1", message_id="m1", filename="a.txt", size=4)],
        )

        data = msg.to_json()

        assert data["threadId"] == "t1"
        assert data["version"] == 3
        assert data["files"] == [
            {
                "id": "f1",
                "messageId": "m1",
                "filename": "a.txt",
                "contentType": "application/octet-stream",
                "size": 4,
            }
        ]

    def test_hidden_flag(self) -> None:
        """is_hidden should reflect the hidden flag."""
        assert Message(id="m1", thread_id="t1", hidden=True).is_hidden() is True
        assert Message(id="m2", thread_id="t1").is_hidden() is False


class TestThread:
    """Tests for Thread model."""

    def test_metadata_for_plugin_id(self) -> None:
        """Should return metadata stored under the plugin id."""
        thread = Thread(id="t1", metadata={PLUGIN_ID: {"shared": True}})
        assert thread.metadata_for_plugin_id(PLUGIN_ID) == {"shared": True}
        assert thread.metadata_for_plugin_id("other") is None

    def test_to_json_excludes_metadata(self) -> None:
        """Plugin metadata is private and never part of the public fields."""
        thread = Thread(
            id="t1",
            subject="Hello",
            first_message_ts=1000,
            metadata={PLUGIN_ID: {"key": "secret"}},
        )

        data = thread.to_json()

        assert data["subject"] == "Hello"
        assert data["firstMessageTimestamp"] == 1000
        assert "metadata" not in data


class TestSharingMetadata:
    """Tests for SharingMetadata value object."""

    def test_defaults_for_missing_blob(self) -> None:
        """None or empty blobs should give an unshared default."""
        for blob in (None, {}):
            metadata = SharingMetadata.from_dict(blob)
            assert metadata.shared is False
            assert metadata.key is None
            assert metadata.combined_version_hash is None
            assert metadata.file_urls == {}

    def test_reads_unversioned_blob(self) -> None:
        """Blobs written without a schema version should still load."""
        metadata = SharingMetadata.from_dict({
            "shared": True,
            "key": "t1-123",
            "combinedVersionHash": "1|2",
            "fileURLs": {"f1": "https://x/f1"},
        })

        assert metadata.shared is True
        assert metadata.key == "t1-123"
        assert metadata.combined_version_hash == "1|2"
        assert metadata.file_urls == {"f1": "https://x/f1"}

    def test_reads_unshare_blob(self) -> None:
        """An unshare record carries only shared and key."""
        metadata = SharingMetadata.from_dict({"shared": False, "key": "t1-123"})
        assert metadata.shared is False
        assert metadata.key == "t1-123"
        assert metadata.file_urls == {}

    def test_to_dict_is_versioned(self) -> None:
        """Serialized metadata should carry the schema version."""
        data = SharingMetadata(shared=True, key="k").to_dict()
        assert data["v"] == 1
        assert data["shared"] is True
        assert data["fileURLs"] == {}

    def test_rejects_newer_version(self) -> None:
        """Should refuse blobs written by a newer schema."""
        with pytest.raises(ValueError, match="Unsupported"):
            SharingMetadata.from_dict({"v": 99, "shared": True})

    def test_copy_is_independent(self) -> None:
        """Mutating a copy's file URLs should not affect the original."""
        original = SharingMetadata(file_urls={"f1": "u1"})
        copied = original.copy()
        copied.file_urls["f2"] = "u2"
        assert original.file_urls == {"f1": "u1"}

    def test_for_thread(self) -> None:
        """Should read metadata from the thread's plugin namespace."""
        thread = Thread(id="t1", metadata={PLUGIN_ID: {"shared": True, "key": "k"}})
        assert SharingMetadata.for_thread(thread).key == "k"
