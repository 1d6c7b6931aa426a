"""Tests for timestamp and duration helpers."""

from __future__ import annotations

import threading
from unittest.mock import MagicMock

import pytest

from enforceauth_deploy.utils.helpers import (
    elapsed_ms,
    format_duration_ms,
    parse_timestamp,
    wait_for_next_poll,
)


class TestParseTimestamp:
    def test_z_suffix(self) -> None:
        parsed = parse_timestamp("2024-01-01T00:00:05Z")
        assert parsed is not None
        assert parsed.second == 5
        assert parsed.utcoffset() is not None

    def test_naive_is_utc(self) -> None:
        parsed = parse_timestamp("2024-01-01T00:00:05")
        assert parsed is not None
        assert parsed.utcoffset().total_seconds() == 0  # type: ignore[union-attr]

    @pytest.mark.parametrize("value", ["", None, "not-a-date", "2024-13-45"])
    def test_unparseable(self, value: str | None) -> None:
        assert parse_timestamp(value) is None


class TestElapsedMs:
    def test_difference(self) -> None:
        assert elapsed_ms("2024-01-01T00:00:00Z", "2024-01-01T00:00:03.500Z") == 3500

    def test_mixed_offsets(self) -> None:
        assert elapsed_ms("2024-01-01T01:00:00+01:00", "2024-01-01T00:00:01Z") == 1000

    def test_negative_is_unknown(self) -> None:
        assert elapsed_ms("2024-01-01T00:00:05Z", "2024-01-01T00:00:00Z") is None

    def test_unparseable_is_unknown(self) -> None:
        assert elapsed_ms("garbage", "2024-01-01T00:00:00Z") is None
        assert elapsed_ms("2024-01-01T00:00:00Z", None) is None


class TestFormatDuration:
    @pytest.mark.parametrize(
        ("value", "expected"),
        [
            (None, "unknown"),
            (850, "850ms"),
            (4200, "4.2s"),
            (125_000, "2m 5s"),
        ],
    )
    def test_format(self, value: int | None, expected: str) -> None:
        assert format_duration_ms(value) == expected


class TestWaitForNextPoll:
    def test_uses_sleep_without_cancel(self) -> None:
        sleep = MagicMock()
        wait_for_next_poll(2.0, sleep=sleep)
        sleep.assert_called_once_with(2.0)

    def test_set_cancel_returns_immediately(self) -> None:
        sleep = MagicMock()
        cancel = threading.Event()
        cancel.set()
        wait_for_next_poll(30.0, sleep=sleep, cancel=cancel)
        sleep.assert_not_called()
