"""Tests for the SQLite message cache."""

from __future__ import annotations

import threading
from pathlib import Path

from sms_mirror.api.models import Message, MessageDirection, MessageStatus
from sms_mirror.state.cache import SCHEMA_VERSION, Cache
from sms_mirror.utils.config import Config


def make_message(
    message_id: int,
    date: int,
    address: str = "+1 (555) 123-4567",
    thread_id: int = 1,
    direction: MessageDirection = MessageDirection.IN,
) -> Message:
    return Message(
        id=message_id,
        thread_id=thread_id,
        address=address,
        body=f"Message {message_id}",
        date=date,
        direction=direction,
        status=MessageStatus.READ,
    )


class TestCacheSchema:
    """Test database initialization."""

    def test_schema_version(self, tmp_path: Path) -> None:
        """The schema version is recorded in user_version."""
        cache = Cache(tmp_path / "test.db")

        conn = cache._get_conn()
        version = conn.execute("PRAGMA user_version").fetchone()[0]

        assert version == SCHEMA_VERSION
        cache.close()

    def test_creates_parent_directory(self, tmp_path: Path) -> None:
        """The database directory is created if missing."""
        db_path = tmp_path / "nested" / "dir" / "test.db"
        cache = Cache(db_path)
        assert db_path.parent.is_dir()
        cache.close()

    def test_path_from_config(self, tmp_path: Path) -> None:
        """Without an explicit path the configured cache path is used."""
        config = Config(tmp_path / "config.json")
        config.cache_path = tmp_path / "data" / "messages.db"

        cache = Cache(config=config)
        cache.save_message(make_message(1, 1000))

        assert cache.db_path == tmp_path / "data" / "messages.db"
        assert cache.db_path.is_file()
        cache.close()

    def test_data_persists_across_instances(self, tmp_path: Path) -> None:
        """Reopening the database keeps saved messages."""
        db_path = tmp_path / "test.db"
        cache = Cache(db_path)
        cache.save_message(make_message(1, 1000))
        cache.close()

        reopened = Cache(db_path)
        assert reopened.get_message_count() == 1
        assert reopened.get_message(1) == make_message(1, 1000)
        reopened.close()


class TestCacheMessageOperations:
    """Test message CRUD operations."""

    def test_save_and_get_message(self, tmp_path: Path) -> None:
        """Save and retrieve a single message."""
        cache = Cache(tmp_path / "test.db")

        message = make_message(42, 1000, direction=MessageDirection.OUT)
        cache.save_message(message)

        retrieved = cache.get_message(42)
        assert retrieved == message
        assert retrieved.direction is MessageDirection.OUT
        assert cache.get_message(43) is None
        cache.close()

    def test_save_replaces_existing(self, tmp_path: Path) -> None:
        """Saving a message with a known id replaces it."""
        cache = Cache(tmp_path / "test.db")

        cache.save_message(make_message(1, 1000))
        cache.save_message(make_message(1, 2000))

        assert cache.get_message_count() == 1
        assert cache.get_message(1).date == 2000
        cache.close()

    def test_conversation_ordered_by_date(self, tmp_path: Path) -> None:
        """Conversation messages come back oldest first."""
        cache = Cache(tmp_path / "test.db")

        cache.save_messages([make_message(i, date) for i, date in enumerate([3000, 1000, 2000])])

        retrieved = cache.get_conversation("+1 (555) 123-4567")
        assert [m.date for m in retrieved] == [1000, 2000, 3000]
        cache.close()

    def test_conversation_matches_stripped_number(self, tmp_path: Path) -> None:
        """Differently formatted numbers find the same conversation."""
        cache = Cache(tmp_path / "test.db")

        cache.save_messages([
            make_message(1, 1000, address="+1 (555) 123-4567"),
            make_message(2, 2000, address="15551234567"),
            make_message(3, 3000, address="5559876", thread_id=2),
        ])

        retrieved = cache.get_conversation("1-555-123-4567")
        assert [m.id for m in retrieved] == [1, 2]
        cache.close()

    def test_conversation_limit_keeps_newest(self, tmp_path: Path) -> None:
        """A limit returns the newest messages, still oldest first."""
        cache = Cache(tmp_path / "test.db")

        cache.save_messages([make_message(i, 1000 * i) for i in range(1, 6)])

        retrieved = cache.get_conversation("15551234567", limit=2)
        assert [m.id for m in retrieved] == [4, 5]
        cache.close()

    def test_threads_latest_message_per_thread(self, tmp_path: Path) -> None:
        """get_threads returns each thread's newest message, newest first."""
        cache = Cache(tmp_path / "test.db")

        cache.save_messages([
            make_message(1, 1000, thread_id=1),
            make_message(2, 5000, thread_id=1),
            make_message(3, 2000, address="5559876", thread_id=2),
            make_message(4, 9000, address="5550000", thread_id=3),
        ])

        threads = cache.get_threads()
        assert [m.id for m in threads] == [4, 2, 3]
        cache.close()

    def test_latest_message_id(self, tmp_path: Path) -> None:
        """The highest id is reported, or None when empty."""
        cache = Cache(tmp_path / "test.db")

        assert cache.get_latest_message_id() is None
        cache.save_messages([make_message(7, 1000), make_message(3, 2000)])
        assert cache.get_latest_message_id() == 7
        cache.close()

    def test_unreadable_rows_skipped(self, tmp_path: Path) -> None:
        """Rows that no longer validate are skipped."""
        cache = Cache(tmp_path / "test.db")

        cache.save_message(make_message(1, 1000))
        cache._get_conn().execute("UPDATE messages SET full_json = '{\"_id\": 1}'")
        cache._get_conn().commit()

        assert cache.get_conversation("15551234567") == []
        cache.close()


class TestCacheConcurrency:
    """Test concurrent access to the cache."""

    def test_concurrent_reads(self, tmp_path: Path) -> None:
        """Multiple threads can read simultaneously."""
        cache = Cache(tmp_path / "test.db")
        cache.save_message(make_message(1, 1000))

        results: list[Message | None] = []
        errors: list[Exception] = []
        lock = threading.Lock()

        def read_message() -> None:
            try:
                result = cache.get_message(1)
                with lock:
                    results.append(result)
            except Exception as e:
                with lock:
                    errors.append(e)

        threads = [threading.Thread(target=read_message) for _ in range(10)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert len(errors) == 0, f"Errors during concurrent reads: {errors}"
        assert len(results) == 10
        assert all(r is not None and r.id == 1 for r in results)
        cache.close()


class TestCacheClearAll:
    """Test clearing all cached data."""

    def test_clear_all(self, tmp_path: Path) -> None:
        """Clear all removes all data."""
        cache = Cache(tmp_path / "test.db")

        cache.save_messages([make_message(1, 1000), make_message(2, 2000)])
        assert cache.get_message_count() == 2

        cache.clear_all()

        assert cache.get_message_count() == 0
        assert cache.get_threads() == []
        cache.close()
