"""SQLite storage for the append-only memory log."""

import json
import sqlite3
from pathlib import Path

from .models import ActionTag, MemoryRecord

_COLUMNS = "id, room_id, user_id, agent_id, action, message_id, content, created_at"


class MemoryStore:
    """Append-only, per-room log of memory records backed by SQLite.

    Records are never updated or deleted; later records supersede earlier
    ones by insertion order. Pass ``":memory:"`` as the path for a
    throwaway store.
    """

    def __init__(self, db_path: Path | str) -> None:
        """Initialize the store with a database path.

        Args:
            db_path: Path to the SQLite database file, or ``":memory:"``.
        """
        self.db_path = db_path
        self._conn: sqlite3.Connection | None = None

    def _get_connection(self) -> sqlite3.Connection:
        """Get or create the database connection."""
        if self._conn is None:
            if str(self.db_path) != ":memory:":
                Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)
            self._conn = sqlite3.connect(self.db_path)
            self._conn.row_factory = sqlite3.Row
        return self._conn

    def init_db(self) -> None:
        """Create the records table if it doesn't exist."""
        conn = self._get_connection()
        conn.execute("""
            CREATE TABLE IF NOT EXISTS records (
                id          INTEGER PRIMARY KEY AUTOINCREMENT,
                room_id     TEXT NOT NULL,
                user_id     TEXT NOT NULL,
                agent_id    TEXT NOT NULL,
                action      TEXT NOT NULL,
                message_id  TEXT,
                content     TEXT NOT NULL DEFAULT '{}',
                created_at  TEXT NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%f', 'now'))
            )
        """)
        conn.execute("CREATE INDEX IF NOT EXISTS idx_records_room ON records(room_id, id)")
        conn.commit()

    def append(self, record: MemoryRecord) -> MemoryRecord:
        """Append a record to its room's log.

        Args:
            record: The record to append. Its ``id`` is ignored.

        Returns:
            The record with its assigned id and timestamp.
        """
        conn = self._get_connection()
        cursor = conn.execute(
            """
            INSERT INTO records (room_id, user_id, agent_id, action, message_id, content)
            VALUES (?, ?, ?, ?, ?, ?)
            RETURNING id, created_at
            """,
            (
                record.room_id,
                record.user_id,
                record.agent_id,
                record.action.value,
                record.message_id,
                json.dumps(record.content, default=str),
            ),
        )
        row = cursor.fetchone()
        conn.commit()
        return MemoryRecord(
            room_id=record.room_id,
            user_id=record.user_id,
            agent_id=record.agent_id,
            action=record.action,
            content=dict(record.content),
            message_id=record.message_id,
            id=row["id"],
            created_at=row["created_at"],
        )

    def query_by_room(self, room_id: str) -> list[MemoryRecord]:
        """Get every record of a room, oldest first.

        Args:
            room_id: The room to read.

        Returns:
            Records in insertion order.
        """
        conn = self._get_connection()
        cursor = conn.execute(
            f"SELECT {_COLUMNS} FROM records WHERE room_id = ? ORDER BY id",
            (room_id,),
        )
        return [self._row_to_record(row) for row in cursor.fetchall()]

    def latest_by_action(self, room_id: str, action: ActionTag) -> MemoryRecord | None:
        """Get the newest record of a room with the given action tag.

        Args:
            room_id: The room to read.
            action: The tag to filter by.

        Returns:
            The most recent matching record, or None.
        """
        conn = self._get_connection()
        cursor = conn.execute(
            f"SELECT {_COLUMNS} FROM records WHERE room_id = ? AND action = ? "
            "ORDER BY id DESC LIMIT 1",
            (room_id, action.value),
        )
        row = cursor.fetchone()
        return self._row_to_record(row) if row else None

    def recent_messages(self, room_id: str, limit: int = 10) -> list[MemoryRecord]:
        """Get the last user messages and agent replies of a room, oldest first.

        Args:
            room_id: The room to read.
            limit: Maximum number of records to return.

        Returns:
            Up to ``limit`` MESSAGE/REPLY records in insertion order.
        """
        conn = self._get_connection()
        cursor = conn.execute(
            f"SELECT {_COLUMNS} FROM records WHERE room_id = ? AND action IN (?, ?) "
            "ORDER BY id DESC LIMIT ?",
            (room_id, ActionTag.MESSAGE.value, ActionTag.REPLY.value, limit),
        )
        rows = cursor.fetchall()
        return [self._row_to_record(row) for row in reversed(rows)]

    def close(self) -> None:
        """Close the database connection."""
        if self._conn is not None:
            self._conn.close()
            self._conn = None

    def _row_to_record(self, row: sqlite3.Row) -> MemoryRecord:
        """Convert a database row to a MemoryRecord."""
        return MemoryRecord(
            room_id=row["room_id"],
            user_id=row["user_id"],
            agent_id=row["agent_id"],
            action=ActionTag(row["action"]),
            content=json.loads(row["content"]),
            message_id=row["message_id"],
            id=row["id"],
            created_at=row["created_at"],
        )
