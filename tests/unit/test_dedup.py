"""Tests for log entry deduplication."""

from __future__ import annotations

from collections.abc import Callable

from enforceauth_deploy.models.logs import LogEntry
from enforceauth_deploy.polling.dedup import MESSAGE_EDGE_CHARS, EntryDeduplicator, identify


class TestIdentify:
    def test_same_entry_same_identity(self, entry: Callable[..., LogEntry]) -> None:
        assert identify(entry("hello")) == identify(entry("hello"))

    def test_timestamp_distinguishes(self, entry: Callable[..., LogEntry]) -> None:
        a = entry("hello", timestamp="2024-01-01T00:00:00Z")
        b = entry("hello", timestamp="2024-01-01T00:00:01Z")
        assert identify(a) != identify(b)

    def test_action_distinguishes(self, entry: Callable[..., LogEntry]) -> None:
        a = entry("done", metadata={"action": "pipeline_complete"})
        b = entry("done", metadata={"action": "pipeline_failed"})
        assert identify(a) != identify(b)

    def test_long_message_uses_edges(self, entry: Callable[..., LogEntry]) -> None:
        message = "a" * 500
        identity = identify(entry(message))
        assert identity.message_length == 500
        assert len(identity.message_head) == MESSAGE_EDGE_CHARS
        assert len(identity.message_tail) == MESSAGE_EDGE_CHARS

    def test_middle_difference_collapses(self, entry: Callable[..., LogEntry]) -> None:
        edge = "x" * MESSAGE_EDGE_CHARS
        a = entry(f"{edge}AAAA{edge}")
        b = entry(f"{edge}BBBB{edge}")
        assert identify(a) == identify(b)


class TestEntryDeduplicator:
    def test_admit_once(self, entry: Callable[..., LogEntry]) -> None:
        dedup = EntryDeduplicator()
        item = entry("hello")
        assert dedup.admit(item) is True
        assert dedup.admit(item) is False
        assert len(dedup) == 1

    def test_refetched_copy_rejected(self, entry: Callable[..., LogEntry]) -> None:
        dedup = EntryDeduplicator()
        dedup.admit(entry("hello"))
        assert dedup.admit(entry("hello")) is False

    def test_seen_and_mark_seen(self, entry: Callable[..., LogEntry]) -> None:
        dedup = EntryDeduplicator()
        identity = identify(entry("x"))
        assert dedup.seen(identity) is False
        dedup.mark_seen(identity)
        assert dedup.seen(identity) is True

    def test_instances_are_independent(self, entry: Callable[..., LogEntry]) -> None:
        first, second = EntryDeduplicator(), EntryDeduplicator()
        first.admit(entry("x"))
        assert second.admit(entry("x")) is True
