"""Tests for synced references and the store."""

from __future__ import annotations

import os
import tempfile
import unittest

from arenasync.errors import SerializationError, StaleWriteError
from arenasync.realtime import MemoryStorageArea, SqliteStorageArea, Store, StorageEvent
from arenasync.realtime.reference import TRANSACTION_ATTEMPTS
from tests.helpers import Recorder, make_store


class SyncedReferenceTestCase(unittest.TestCase):
    """Test case for SyncedReference within one context."""

    def setUp(self) -> None:
        """Set up a store and a reference."""
        self.store = make_store()
        self.ref = self.store.ref("tournaments/t1")

    def test_read_of_missing_path_is_none(self) -> None:
        """An empty path reads as None."""
        self.assertIsNone(self.ref.read())
        self.assertFalse(self.ref.exists())

    def test_on_change_replays_current_value(self) -> None:
        """A late subscriber gets the existing value immediately."""
        self.ref.write({"leaderboard": [{"id": "p1", "score": 10}]})
        recorder = Recorder()

        self.ref.on_change(recorder)

        self.assertEqual(recorder.values, [{"leaderboard": [{"id": "p1", "score": 10}]}])

    def test_on_change_replays_none_when_empty(self) -> None:
        """The initial replay happens even when nothing is stored."""
        recorder = Recorder()
        self.ref.on_change(recorder)
        self.assertEqual(recorder.values, [None])

    def test_write_during_subscribe_is_not_missed(self) -> None:
        """A write landing while the initial value is read still arrives."""
        other = self.store.ref("tournaments/t1")
        original_read = self.ref.read

        def read_then_concurrent_write():
            value = original_read()
            other.write({"n": 1})
            return value

        self.ref.read = read_then_concurrent_write
        recorder = Recorder()

        self.ref.on_change(recorder)

        self.assertEqual(recorder.values, [{"n": 1}])

    def test_handler_may_write_from_replay(self) -> None:
        """A handler that writes back to its own path does not deadlock."""
        seen = []

        def bump(value):
            seen.append(value)
            if value is None:
                self.ref.write(1)

        self.ref.on_change(bump)

        self.assertEqual(seen, [None, 1])

    def test_write_notifies_subscribers_in_order(self) -> None:
        """Later writes are delivered after the initial replay, in order."""
        recorder = Recorder()
        self.ref.on_change(recorder)

        self.ref.write({"n": 1})
        self.ref.write({"n": 2})

        self.assertEqual(recorder.values, [None, {"n": 1}, {"n": 2}])

    def test_equal_write_still_publishes(self) -> None:
        """Writes are not de-duplicated."""
        self.ref.write({"n": 1})
        recorder = Recorder()
        self.ref.on_change(recorder)

        self.ref.write({"n": 1})

        self.assertEqual(recorder.values, [{"n": 1}, {"n": 1}])

    def test_write_returns_acknowledgement(self) -> None:
        """The write result carries the path and new revision."""
        result = self.ref.write([1, 2])
        self.assertEqual(
            (result.path, result.revision, result.value), ("tournaments/t1", 1, [1, 2])
        )

    def test_failed_write_publishes_nothing(self) -> None:
        """A value that cannot be serialized is neither stored nor announced."""
        recorder = Recorder()
        self.ref.on_change(recorder)
        with self.assertRaises(SerializationError):
            self.ref.write({"bad": object()})
        self.assertEqual(recorder.values, [None])
        self.assertIsNone(self.ref.read())

    def test_other_paths_are_not_notified(self) -> None:
        """A subscriber on another path sees only its own replay."""
        recorder = Recorder()
        self.store.ref("tournaments/t2").on_change(recorder)
        self.ref.write({"n": 1})
        self.assertEqual(recorder.values, [None])

    def test_transaction_applies_update_to_current_value(self) -> None:
        """The update function receives the stored value."""
        self.ref.write([1])
        result = self.ref.transaction(lambda current: current + [2])
        self.assertEqual(result.value, [1, 2])
        self.assertEqual(self.ref.read(), [1, 2])

    def test_transaction_with_pinned_revision_conflicts(self) -> None:
        """A pinned revision that moved on is reported, not retried."""
        self.ref.write([1])
        self.ref.write([1, 2])
        calls = []

        with self.assertRaises(StaleWriteError):
            self.ref.transaction(lambda current: calls.append(current), expected_revision=1)
        self.assertEqual(calls, [])

    def test_transaction_retries_when_another_context_writes_first(self) -> None:
        """A concurrent write makes the update run again on fresh data."""
        other = Store(self.store.area.connect())
        self.ref.write([1])
        seen = []

        def update(current: list) -> list:
            seen.append(list(current))
            if len(seen) == 1:
                other.ref("tournaments/t1").write([1, 99])
            return current + [2]

        result = self.ref.transaction(update)

        self.assertEqual(seen, [[1], [1, 99]])
        self.assertEqual(result.value, [1, 99, 2])

    def test_transaction_gives_up_after_losing_every_attempt(self) -> None:
        """Conflicts on every retry end in StaleWriteError."""
        other = Store(self.store.area.connect())
        self.ref.write([1])
        seen = []

        def update(current: list) -> list:
            seen.append(current)
            other.ref("tournaments/t1").write(current + [0])
            return current + [2]

        with self.assertLogs("arenasync.realtime.reference", level="WARNING"):
            with self.assertRaises(StaleWriteError):
                self.ref.transaction(update)

        self.assertEqual(len(seen), TRANSACTION_ATTEMPTS)
        self.assertEqual(self.ref.read(), [1, 0, 0, 0, 0, 0])


class CrossContextTestCase(unittest.TestCase):
    """Test case for delivery between contexts sharing storage."""

    def test_subscriber_in_other_context_receives_write(self) -> None:
        """A write in context A reaches a subscriber registered in context B."""
        area_a = MemoryStorageArea()
        context_a = Store(area_a)
        context_b = Store(area_a.connect())
        recorder = Recorder()
        context_b.ref("tournaments/t1").on_change(recorder)

        context_a.ref("tournaments/t1").write({"leaderboard": [{"id": "p1", "score": 10}]})

        self.assertEqual(recorder.last, {"leaderboard": [{"id": "p1", "score": 10}]})

    def test_native_signal_is_redelivered(self) -> None:
        """Invoking the storage change signal by hand notifies subscribers."""
        context_b = make_store()
        recorder = Recorder()
        context_b.ref("tournaments/t1").on_change(recorder)

        context_b.area.dispatch(
            StorageEvent(
                "firebase_db_tournaments/t1",
                None,
                '{"leaderboard":[{"id":"p1","score":10}]}',
                1,
            )
        )

        self.assertEqual(recorder.values, [None, {"leaderboard": [{"id": "p1", "score": 10}]}])

    def test_writer_is_notified_once(self) -> None:
        """The writing context hears its own write exactly once."""
        area = MemoryStorageArea()
        writer = Store(area)
        Store(area.connect())
        recorder = Recorder()
        writer.ref("p").on_change(recorder)

        writer.ref("p").write(1)

        self.assertEqual(recorder.values, [None, 1])

    def test_processes_sharing_sqlite_file(self) -> None:
        """Polling delivers writes committed by another connection."""
        with tempfile.TemporaryDirectory() as tmpdir:
            path = os.path.join(tmpdir, "store.sqlite3")
            context_a = Store(SqliteStorageArea(path))
            context_b = Store(SqliteStorageArea(path))
            recorder = Recorder()
            context_b.ref("chats/u1_u2").on_change(recorder)

            context_a.ref("chats/u1_u2").write([{"id": "m1"}])
            self.assertEqual(recorder.values, [None])

            self.assertEqual(context_b.poll(), 1)
            self.assertEqual(recorder.values, [None, [{"id": "m1"}]])

            context_a.close()
            context_b.close()


if __name__ == "__main__":
    unittest.main()
