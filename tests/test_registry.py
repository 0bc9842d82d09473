"""
Unit tests for the session registry and stats reporter.
"""

from datetime import datetime, timedelta, timezone
from unittest.mock import patch

import pytest

from uai.errors import NotFoundError, PersistenceError
from uai.session.models import Session
from uai.session.stats import EMPTY_STATS, compute_stats, format_duration


class TestOpenAppendClose:
    def test_open_creates_record(self, registry, store):
        session_id = registry.open("claude-code", "/proj")

        assert registry.is_open(session_id)
        assert session_id in registry.open_ids()
        record = store.read(session_id)
        assert record.tool == "claude-code"
        assert record.end_time is None

    def test_append_persists_each_message(self, registry, store):
        session_id = registry.open("o3-mcp", "/proj")
        registry.append(session_id, "user", "latest react features")
        registry.append(session_id, "assistant", "{}")

        record = store.read(session_id)
        assert [(m.role, m.content) for m in record.messages] == [
            ("user", "latest react features"),
            ("assistant", "{}"),
        ]

    def test_append_unknown_raises(self, registry):
        with pytest.raises(NotFoundError):
            registry.append("missing", "user", "hi")

    def test_append_after_close_raises(self, registry):
        session_id = registry.open("claude-code", "/proj")
        registry.close(session_id)
        with pytest.raises(NotFoundError):
            registry.append(session_id, "user", "late")

    def test_close_sets_end_time(self, registry, store):
        session_id = registry.open("gemini-cli", "/proj")
        registry.close(session_id)

        assert not registry.is_open(session_id)
        record = store.read(session_id)
        assert record.end_time is not None
        assert record.end_time >= record.start_time

    def test_close_twice_keeps_first_end_time(self, registry, store):
        session_id = registry.open("claude-code", "/proj")
        registry.close(session_id)
        first_end = store.read(session_id).end_time

        registry.close(session_id)
        assert store.read(session_id).end_time == first_end

    def test_close_unknown_is_noop(self, registry):
        registry.close("never-opened")

    def test_failed_close_keeps_session_open(self, registry, store):
        session_id = registry.open("claude-code", "/proj")
        with patch.object(store, "save", side_effect=PersistenceError("disk full")):
            with pytest.raises(PersistenceError):
                registry.close(session_id)

        assert registry.is_open(session_id)
        assert store.read(session_id).end_time is None

        registry.close(session_id)
        assert not registry.is_open(session_id)
        assert store.read(session_id).end_time is not None

    def test_get_open(self, registry):
        session_id = registry.open("claude-code", "/proj")
        assert registry.get_open(session_id).id == session_id
        registry.close(session_id)
        with pytest.raises(NotFoundError):
            registry.get_open(session_id)


class TestClearWhileOpen:
    def test_append_recreates_cleared_file_with_full_history(self, registry, store):
        session_id = registry.open("claude-code", "/proj")
        registry.append(session_id, "user", "one")
        store.delete_all()

        registry.append(session_id, "assistant", "two")

        record = store.read(session_id)
        assert [m.content for m in record.messages] == ["one", "two"]

    def test_close_recreates_cleared_file(self, registry, store):
        session_id = registry.open("claude-code", "/proj")
        store.delete_all()
        registry.close(session_id)
        assert store.read(session_id).end_time is not None


class TestStats:
    def test_stats_for_finished_session(self, registry):
        session_id = registry.open("claude-code", "/proj")
        registry.append(session_id, "user", "a")
        registry.append(session_id, "assistant", "b")
        registry.close(session_id)

        stats = registry.stats(session_id)
        assert stats.message_count == 2
        assert stats.duration.endswith("s")
        assert stats.duration.startswith("0m")

    def test_stats_for_unknown_session(self, registry):
        stats = registry.stats("missing")
        assert stats == EMPTY_STATS
        assert stats.message_count == 0
        assert stats.duration == "0m0s"

    def test_compute_stats_uses_end_time(self):
        start = datetime(2024, 1, 1, 12, 0, 0, tzinfo=timezone.utc)
        session = Session(
            tool="claude-code",
            project_path="/p",
            start_time=start,
            end_time=start + timedelta(minutes=2, seconds=5, milliseconds=900),
        )
        assert compute_stats(session).duration == "2m5s"

    def test_compute_stats_open_session_uses_now(self):
        start = datetime(2024, 1, 1, 12, 0, 0, tzinfo=timezone.utc)
        session = Session(tool="o3-mcp", project_path="/p", start_time=start)
        now = start + timedelta(seconds=75)
        assert compute_stats(session, now=now).duration == "1m15s"

    def test_compute_stats_none(self):
        assert compute_stats(None) == EMPTY_STATS


class TestFormatDuration:
    @pytest.mark.parametrize(
        "seconds, expected",
        [
            (0, "0m0s"),
            (59.9, "0m59s"),
            (60, "1m0s"),
            (3725, "62m5s"),
            (-3, "0m0s"),
        ],
    )
    def test_format(self, seconds, expected):
        assert format_duration(seconds) == expected
