"""SQLite cache for messages mirrored from the phone."""

from __future__ import annotations

import json
import logging
import sqlite3
from datetime import datetime
from pathlib import Path

from pydantic import ValidationError

from ..api.models import Message
from ..api.uri import strip_number
from ..utils.config import Config

logger = logging.getLogger(__name__)

SCHEMA_VERSION = 1


class Cache:
    """SQLite-based cache of SMS messages, grouped by conversation."""

    def __init__(self, db_path: Path | None = None, config: Config | None = None) -> None:
        self.db_path = db_path or (config or Config()).cache_path
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._conn: sqlite3.Connection | None = None
        self._init_db()

    def _get_conn(self) -> sqlite3.Connection:
        """Get or create database connection."""
        if self._conn is None:
            self._conn = sqlite3.connect(self.db_path, check_same_thread=False)
            self._conn.row_factory = sqlite3.Row
        return self._conn

    def _init_db(self) -> None:
        """Initialize database schema."""
        conn = self._get_conn()

        cursor = conn.execute("PRAGMA user_version")
        version = cursor.fetchone()[0]

        if version < SCHEMA_VERSION:
            self._create_schema(conn)
            conn.execute(f"PRAGMA user_version = {SCHEMA_VERSION}")
            conn.commit()

    def _create_schema(self, conn: sqlite3.Connection) -> None:
        """Create database tables."""
        conn.executescript("""
            CREATE TABLE IF NOT EXISTS messages (
                id INTEGER PRIMARY KEY,
                thread_id INTEGER,
                address TEXT,
                number TEXT,
                body TEXT,
                date INTEGER,
                direction INTEGER,
                status INTEGER,
                full_json TEXT,
                updated_at INTEGER DEFAULT (strftime('%s', 'now'))
            );

            CREATE INDEX IF NOT EXISTS idx_messages_number_date
                ON messages(number, date);
            CREATE INDEX IF NOT EXISTS idx_messages_thread_date
                ON messages(thread_id, date DESC);
        """)

    def close(self) -> None:
        """Close database connection."""
        if self._conn:
            self._conn.close()
            self._conn = None

    def save_message(self, message: Message) -> None:
        """Save or update a single message."""
        conn = self._get_conn()
        now = int(datetime.now().timestamp())
        self._save_message(conn, message, now)
        conn.commit()

    def save_messages(self, messages: list[Message]) -> None:
        """Save or update multiple messages."""
        conn = self._get_conn()
        now = int(datetime.now().timestamp())

        for message in messages:
            self._save_message(conn, message, now)

        conn.commit()

    def _save_message(self, conn: sqlite3.Connection, message: Message, now: int) -> None:
        """Internal: save message to database."""
        conn.execute("""
            INSERT OR REPLACE INTO messages
            (id, thread_id, address, number, body, date, direction, status,
             full_json, updated_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
        """, (
            message.id,
            message.thread_id,
            message.address,
            strip_number(message.address),
            message.body,
            message.date,
            int(message.direction),
            int(message.status),
            message.model_dump_json(by_alias=True),
            now,
        ))

    def _rows_to_messages(self, cursor: sqlite3.Cursor) -> list[Message]:
        messages = []
        for row in cursor:
            try:
                messages.append(Message(**json.loads(row["full_json"])))
            except (ValidationError, json.JSONDecodeError) as e:
                logger.warning("Skipping unreadable cached message: %s", e)
        return messages

    def get_message(self, message_id: int) -> Message | None:
        """Get a single message by id."""
        conn = self._get_conn()
        cursor = conn.execute("SELECT full_json FROM messages WHERE id = ?", (message_id,))
        messages = self._rows_to_messages(cursor)
        return messages[0] if messages else None

    def get_conversation(self, number: str, limit: int | None = None) -> list[Message]:
        """
        Get the messages exchanged with a phone number, oldest first.

        The number is matched on its digits only, so "+1 (555) 123-4567"
        and "15551234567" refer to the same conversation.
        """
        conn = self._get_conn()
        stripped = strip_number(number)

        if limit:
            # Newest `limit` messages, returned in ascending order
            cursor = conn.execute("""
                SELECT full_json FROM (
                    SELECT full_json, date, id FROM messages
                    WHERE number = ?
                    ORDER BY date DESC, id DESC
                    LIMIT ?
                ) ORDER BY date ASC, id ASC
            """, (stripped, limit))
        else:
            cursor = conn.execute("""
                SELECT full_json FROM messages
                WHERE number = ?
                ORDER BY date ASC, id ASC
            """, (stripped,))

        return self._rows_to_messages(cursor)

    def get_threads(self) -> list[Message]:
        """Get the latest message of every thread, newest first."""
        conn = self._get_conn()
        cursor = conn.execute("""
            SELECT m.full_json FROM messages m
            WHERE m.id = (
                SELECT id FROM messages
                WHERE thread_id = m.thread_id
                ORDER BY date DESC, id DESC
                LIMIT 1
            )
            ORDER BY m.date DESC, m.id DESC
        """)
        return self._rows_to_messages(cursor)

    def get_latest_message_id(self) -> int | None:
        """Get the highest message id in the cache."""
        conn = self._get_conn()
        cursor = conn.execute("SELECT MAX(id) as max_id FROM messages")
        row = cursor.fetchone()
        return row["max_id"] if row and row["max_id"] is not None else None

    def get_message_count(self) -> int:
        """Get number of cached messages."""
        conn = self._get_conn()
        cursor = conn.execute("SELECT COUNT(*) as count FROM messages")
        return cursor.fetchone()["count"]

    def clear_all(self) -> None:
        """Clear all cached data."""
        conn = self._get_conn()
        conn.execute("DELETE FROM messages")
        conn.commit()
