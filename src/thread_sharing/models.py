"""Mail data models and the sharing metadata value object."""

from dataclasses import dataclass, field
from typing import Any, Self

PLUGIN_ID = "thread-sharing"

METADATA_SCHEMA_VERSION = 1


@dataclass
class Identity:
    """The account that shares threads."""

    id: str = ""
    first_name: str = ""
    last_name: str = ""
    email_address: str = ""


@dataclass
class File:
    """An attachment belonging to a message."""

    id: str
    message_id: str
    filename: str = ""
    content_type: str = "application/octet-stream"
    size: int = 0

    def display_name(self) -> str:
        return self.filename or "Unnamed Attachment"

    def to_json(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "messageId": self.message_id,
            "filename": self.display_name(),
            "contentType": self.content_type,
            "size": self.size,
        }


@dataclass
class Message:
    """A single message within a thread."""

    id: str
    thread_id: str
    version: int = 0
    subject: str = ""
    from_addr: str = ""
    to_addrs: list[str] = field(default_factory=list)
    date: int | None = None  # Unix timestamp (seconds)
    body: str | None = None  # Only loaded when requested
    hidden: bool = False  # Reminders, deleted mail and other system messages
    files: list[File] = field(default_factory=list)

    def is_hidden(self) -> bool:
        return self.hidden

    def to_json(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "threadId": self.thread_id,
            "version": self.version,
            "subject": self.subject,
            "from": self.from_addr,
            "to": list(self.to_addrs),
            "date": self.date,
            "body": self.body,
            "files": [f.to_json() for f in self.files],
        }


@dataclass
class Thread:
    """A conversation, with plugin metadata stored beside it."""

    id: str
    subject: str = ""
    snippet: str = ""
    participants: list[str] = field(default_factory=list)
    first_message_ts: int | None = None
    last_message_sent_ts: int | None = None
    last_message_received_ts: int | None = None
    metadata: dict[str, dict[str, Any]] = field(default_factory=dict)

    def metadata_for_plugin_id(self, plugin_id: str) -> dict[str, Any] | None:
        return self.metadata.get(plugin_id)

    def to_json(self) -> dict[str, Any]:
        """Public fields of the thread, as published in shared snapshots."""
        return {
            "id": self.id,
            "subject": self.subject,
            "snippet": self.snippet,
            "participants": list(self.participants),
            "firstMessageTimestamp": self.first_message_ts,
            "lastMessageSentTimestamp": self.last_message_sent_ts,
            "lastMessageReceivedTimestamp": self.last_message_received_ts,
        }


@dataclass
class SharingMetadata:
    """Per-thread sharing state kept in the thread's plugin metadata.

    `key` addresses the remote snapshot and must not change once assigned,
    and `file_urls` only ever gains entries.
    """

    shared: bool = False
    key: str | None = None
    combined_version_hash: str | None = None
    file_urls: dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> Self:
        """Deserialize a stored metadata blob.

        Blobs written before versioning carry no "v" key and may omit any
        field, so every field falls back to its default.
        """
        if not data:
            return cls()

        version = data.get("v", METADATA_SCHEMA_VERSION)
        if version > METADATA_SCHEMA_VERSION:
            raise ValueError(f"Unsupported sharing metadata version: {version}")

        return cls(
            shared=bool(data.get("shared", False)),
            key=data.get("key"),
            combined_version_hash=data.get("combinedVersionHash"),
            file_urls=dict(data.get("fileURLs") or {}),
        )

    @classmethod
    def for_thread(cls, thread: Thread) -> Self:
        return cls.from_dict(thread.metadata_for_plugin_id(PLUGIN_ID))

    def to_dict(self) -> dict[str, Any]:
        return {
            "v": METADATA_SCHEMA_VERSION,
            "shared": self.shared,
            "key": self.key,
            "combinedVersionHash": self.combined_version_hash,
            "fileURLs": dict(self.file_urls),
        }

    def copy(self) -> Self:
        return type(self)(
            shared=self.shared,
            key=self.key,
            combined_version_hash=self.combined_version_hash,
            file_urls=dict(self.file_urls),
        )


@dataclass
class Locator:
    """Reference to a thread from a shared link: subject plus a time clue.

    `date` anchors on the first message time; `last_date` on whichever of
    the last sent/received times the link producer saw.
    """

    subject: str
    date: int | None = None
    last_date: int | None = None
