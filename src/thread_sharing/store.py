"""Mail store with SQLite persistence and change notifications."""

import json
import sqlite3
import threading
from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Self

from thread_sharing.logging import get_logger
from thread_sharing.models import File, Message, Thread

logger = get_logger("store")

# Columns a thread may be matched on by time window
THREAD_TIME_COLUMNS = {
    "first_message_ts",
    "last_message_sent_ts",
    "last_message_received_ts",
}


@dataclass
class DatabaseChangeRecord:
    """A batch of objects of one class that changed in the store."""

    type: str  # persist, unpersist
    object_class: str
    objects: list[Any] = field(default_factory=list)


ChangeListener = Callable[[DatabaseChangeRecord], None]


class MailStore:
    """Stores threads, messages, attachments and plugin metadata.

    Every write that touches a thread (the thread row, one of its messages,
    or its metadata) advances the thread's change sequence. poll_changes()
    turns advanced sequences into "persist" change records for listeners,
    which also picks up writes made by other processes.

    The connection is shared across threads and guarded by a lock.
    """

    def __init__(self, db_path: Path) -> None:
        """Initialize the store with database path.

        Args:
            db_path: Path to SQLite database file. Parent directories
                     will be created if they don't exist.
        """
        self._db_path = db_path
        db_path.parent.mkdir(parents=True, exist_ok=True)
        self._conn = sqlite3.connect(db_path, check_same_thread=False)
        self._conn.row_factory = sqlite3.Row
        self._lock = threading.RLock()
        self._listeners: list[ChangeListener] = []
        self._last_seq = 0
        self.ensure_schema()

    def ensure_schema(self) -> None:
        """Create tables if they don't exist."""
        with self._lock:
            self._conn.executescript("""
                CREATE TABLE IF NOT EXISTS threads (
                    id TEXT PRIMARY KEY,
                    subject TEXT NOT NULL DEFAULT '',
                    snippet TEXT NOT NULL DEFAULT '',
                    participants TEXT NOT NULL DEFAULT '[]',
                    first_message_ts INTEGER,
                    last_message_sent_ts INTEGER,
                    last_message_received_ts INTEGER,
                    change_seq INTEGER NOT NULL DEFAULT 0
                );
                CREATE INDEX IF NOT EXISTS threads_subject ON threads (subject);
                CREATE INDEX IF NOT EXISTS threads_change_seq ON threads (change_seq);

                CREATE TABLE IF NOT EXISTS messages (
                    id TEXT PRIMARY KEY,
                    thread_id TEXT NOT NULL,
                    version INTEGER NOT NULL DEFAULT 0,
                    subject TEXT NOT NULL DEFAULT '',
                    from_addr TEXT NOT NULL DEFAULT '',
                    to_addrs TEXT NOT NULL DEFAULT '[]',
                    date INTEGER,
                    body TEXT,
                    hidden INTEGER NOT NULL DEFAULT 0
                );
                CREATE INDEX IF NOT EXISTS messages_thread ON messages (thread_id);

                CREATE TABLE IF NOT EXISTS files (
                    id TEXT PRIMARY KEY,
                    message_id TEXT NOT NULL,
                    filename TEXT NOT NULL DEFAULT '',
                    content_type TEXT NOT NULL DEFAULT 'application/octet-stream',
                    size INTEGER NOT NULL DEFAULT 0
                );
                CREATE INDEX IF NOT EXISTS files_message ON files (message_id);

                CREATE TABLE IF NOT EXISTS metadata (
                    object_id TEXT NOT NULL,
                    plugin_id TEXT NOT NULL,
                    value TEXT NOT NULL,
                    PRIMARY KEY (object_id, plugin_id)
                );
            """)
            self._conn.commit()

    def _bump_thread(self, thread_id: str) -> None:
        self._conn.execute(
            """
            UPDATE threads
            SET change_seq = (SELECT COALESCE(MAX(change_seq), 0) + 1 FROM threads)
            WHERE id = ?
            """,
            (thread_id,),
        )

    def save_thread(self, thread: Thread) -> None:
        """Insert or update a thread row. Metadata is written separately."""
        with self._lock:
            self._conn.execute(
                """
                INSERT INTO threads (
                    id, subject, snippet, participants,
                    first_message_ts, last_message_sent_ts, last_message_received_ts
                )
                VALUES (?, ?, ?, ?, ?, ?, ?)
                ON CONFLICT (id) DO UPDATE SET
                    subject = excluded.subject,
                    snippet = excluded.snippet,
                    participants = excluded.participants,
                    first_message_ts = excluded.first_message_ts,
                    last_message_sent_ts = excluded.last_message_sent_ts,
                    last_message_received_ts = excluded.last_message_received_ts
                """,
                (
                    thread.id,
                    thread.subject,
                    thread.snippet,
                    json.dumps(thread.participants),
                    thread.first_message_ts,
                    thread.last_message_sent_ts,
                    thread.last_message_received_ts,
                ),
            )
            self._bump_thread(thread.id)
            self._conn.commit()

    def save_message(self, message: Message) -> Message:
        """Insert or update a message and its attachments.

        Updating an existing message increments its version, so every
        stored mutation is visible to version-based change detection.

        Returns:
            The message as stored, with its current version
        """
        with self._lock:
            row = self._conn.execute(
                "SELECT version FROM messages WHERE id = ?", (message.id,)
            ).fetchone()
            version = message.version if row is None else row["version"] + 1

            self._conn.execute(
                """
                INSERT OR REPLACE INTO messages (
                    id, thread_id, version, subject, from_addr, to_addrs, date, body, hidden
                )
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    message.id,
                    message.thread_id,
                    version,
                    message.subject,
                    message.from_addr,
                    json.dumps(message.to_addrs),
                    message.date,
                    message.body,
                    int(message.hidden),
                ),
            )
            self._conn.execute("DELETE FROM files WHERE message_id = ?", (message.id,))
            self._conn.executemany(
                """
                INSERT OR REPLACE INTO files (id, message_id, filename, content_type, size)
                VALUES (?, ?, ?, ?, ?)
                """,
                [(f.id, message.id, f.filename, f.content_type, f.size) for f in message.files],
            )
            self._bump_thread(message.thread_id)
            self._conn.commit()

        message.version = version
        return message

    def _thread_from_row(self, row: sqlite3.Row) -> Thread:
        cursor = self._conn.execute(
            "SELECT plugin_id, value FROM metadata WHERE object_id = ?", (row["id"],)
        )
        return Thread(
            id=row["id"],
            subject=row["subject"],
            snippet=row["snippet"],
            participants=json.loads(row["participants"]),
            first_message_ts=row["first_message_ts"],
            last_message_sent_ts=row["last_message_sent_ts"],
            last_message_received_ts=row["last_message_received_ts"],
            metadata={r["plugin_id"]: json.loads(r["value"]) for r in cursor},
        )

    def find_thread(self, thread_id: str) -> Thread | None:
        """Get a thread, including its plugin metadata.

        Returns:
            Thread if found, None otherwise
        """
        with self._lock:
            row = self._conn.execute("SELECT * FROM threads WHERE id = ?", (thread_id,)).fetchone()
            if row is None:
                return None
            return self._thread_from_row(row)

    def find_messages(self, thread_id: str, include_body: bool = False) -> list[Message]:
        """Get all messages of a thread with their attachments, oldest first.

        Args:
            thread_id: Thread to load messages for
            include_body: Whether to load message bodies (large, off by default)
        """
        with self._lock:
            rows = self._conn.execute(
                "SELECT * FROM messages WHERE thread_id = ? ORDER BY date, id",
                (thread_id,),
            ).fetchall()
            files_by_message: dict[str, list[File]] = {}
            file_rows = self._conn.execute(
                """
                SELECT files.* FROM files
                JOIN messages ON messages.id = files.message_id
                WHERE messages.thread_id = ?
                ORDER BY files.id
                """,
                (thread_id,),
            )
            for f in file_rows:
                files_by_message.setdefault(f["message_id"], []).append(
                    File(
                        id=f["id"],
                        message_id=f["message_id"],
                        filename=f["filename"],
                        content_type=f["content_type"],
                        size=f["size"],
                    )
                )

        return [
            Message(
                id=row["id"],
                thread_id=row["thread_id"],
                version=row["version"],
                subject=row["subject"],
                from_addr=row["from_addr"],
                to_addrs=json.loads(row["to_addrs"]),
                date=row["date"],
                body=row["body"] if include_body else None,
                hidden=bool(row["hidden"]),
                files=files_by_message.get(row["id"], []),
            )
            for row in rows
        ]

    def find_threads_in_window(
        self,
        subject: str,
        columns: list[str],
        low: int,
        high: int,
    ) -> list[Thread]:
        """Find threads with an exact subject and any of the given timestamps in a window.

        The window is open: a timestamp matches when low < ts < high.

        Args:
            subject: Exact subject to match
            columns: Thread timestamp columns, any of which may match
            low: Exclusive lower bound (Unix seconds)
            high: Exclusive upper bound (Unix seconds)

        Returns:
            Matching threads ordered by first message time, then id
        """
        invalid = set(columns) - THREAD_TIME_COLUMNS
        if invalid or not columns:
            raise ValueError(f"Invalid time columns: {invalid or columns}")

        window = " OR ".join(f"({col} > ? AND {col} < ?)" for col in columns)
        params: list[Any] = [subject]
        for _ in columns:
            params.extend([low, high])

        with self._lock:
            rows = self._conn.execute(
                f"""
                SELECT * FROM threads
                WHERE subject = ? AND ({window})
                ORDER BY first_message_ts, id
                """,
                params,
            ).fetchall()
            return [self._thread_from_row(row) for row in rows]

    def metadata_for(self, object_id: str, plugin_id: str) -> dict[str, Any] | None:
        """Get the metadata value a plugin stored on an object."""
        with self._lock:
            row = self._conn.execute(
                "SELECT value FROM metadata WHERE object_id = ? AND plugin_id = ?",
                (object_id, plugin_id),
            ).fetchone()
        if row is None:
            return None
        return json.loads(row["value"])

    def set_metadata(self, object_id: str, plugin_id: str, value: dict[str, Any]) -> None:
        """Replace a plugin's metadata value on an object."""
        with self._lock:
            self._conn.execute(
                """
                INSERT INTO metadata (object_id, plugin_id, value) VALUES (?, ?, ?)
                ON CONFLICT (object_id, plugin_id) DO UPDATE SET value = excluded.value
                """,
                (object_id, plugin_id, json.dumps(value)),
            )
            self._bump_thread(object_id)
            self._conn.commit()

    def listen(self, callback: ChangeListener) -> Callable[[], None]:
        """Subscribe to change records.

        Returns:
            A function that removes the subscription
        """
        self._listeners.append(callback)

        def unlisten() -> None:
            if callback in self._listeners:
                self._listeners.remove(callback)

        return unlisten

    def poll_changes(self) -> int:
        """Emit a persist record for threads changed since the last poll.

        Returns:
            Number of changed threads
        """
        with self._lock:
            rows = self._conn.execute(
                "SELECT * FROM threads WHERE change_seq > ? ORDER BY change_seq",
                (self._last_seq,),
            ).fetchall()
            if not rows:
                return 0
            self._last_seq = rows[-1]["change_seq"]
            threads = [self._thread_from_row(row) for row in rows]

        record = DatabaseChangeRecord(type="persist", object_class="Thread", objects=threads)
        for listener in list(self._listeners):
            try:
                listener(record)
            except Exception:
                logger.exception("Change listener failed: object_class=%s", record.object_class)

        return len(threads)

    def close(self) -> None:
        """Close the database connection."""
        with self._lock:
            self._conn.close()

    def __enter__(self) -> Self:
        """Enter context manager."""
        return self

    def __exit__(self, exc_type: type | None, exc_val: Exception | None, exc_tb: object) -> None:
        """Exit context manager, closing database connection."""
        self.close()
