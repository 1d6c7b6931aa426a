"""Shared pytest fixtures for the EnforceAuth deploy test suite."""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

import pytest

from enforceauth_deploy.api.base import DeploymentApi
from enforceauth_deploy.models.api import DeploymentStatus
from enforceauth_deploy.models.logs import LogEntry

# ---------------------------------------------------------------------------
# Log entry builders
# ---------------------------------------------------------------------------


def make_entry(
    message: str = "",
    *,
    timestamp: str = "2024-01-01T00:00:00Z",
    level: str = "info",
    metadata: dict[str, Any] | None = None,
) -> LogEntry:
    return LogEntry(timestamp=timestamp, level=level, message=message, metadata=metadata)


def phase_entry(phase: str, timestamp: str) -> LogEntry:
    return make_entry(
        f"Phase {phase} started",
        timestamp=timestamp,
        metadata={
            "action": "report_phase_change_success",
            "timestamp": timestamp,
            "details": {"phase": phase},
        },
    )


def complete_entry(
    timestamp: str,
    *,
    duration_ms: float | None = None,
    bundle_version: str | None = None,
    deployment_url: str | None = None,
) -> LogEntry:
    metadata: dict[str, Any] = {
        "action": "pipeline_complete",
        "timestamp": timestamp,
        "details": {"bundle_version": bundle_version, "deployment_url": deployment_url},
    }
    if duration_ms is not None:
        metadata["duration_ms"] = duration_ms
    return make_entry("Pipeline complete", timestamp=timestamp, metadata=metadata)


@pytest.fixture()
def entry() -> Callable[..., LogEntry]:
    """Factory for plain ``LogEntry`` objects."""
    return make_entry


@pytest.fixture()
def phase() -> Callable[[str, str], LogEntry]:
    """Factory for ``report_phase_change_success`` entries."""
    return phase_entry


@pytest.fixture()
def complete() -> Callable[..., LogEntry]:
    """Factory for ``pipeline_complete`` entries."""
    return complete_entry


# ---------------------------------------------------------------------------
# Fake API and clock
# ---------------------------------------------------------------------------


class FakeDeploymentApi(DeploymentApi):
    """In-memory ``DeploymentApi`` that replays scripted responses.

    Each item of ``log_batches`` / ``statuses`` is either a value to return
    or an exception to raise. Once exhausted, the last item repeats.
    """

    def __init__(self) -> None:
        self.log_batches: list[list[LogEntry] | Exception] = []
        self.statuses: list[DeploymentStatus | Exception] = []
        self.log_calls = 0
        self.status_calls = 0
        self.triggered: list[tuple[str, str, str]] = []
        self.run_id = "run-123"

    def trigger_deployment(
        self, entity_id: str, idempotency_key: str, *, commit_sha: str = ""
    ) -> str:
        self.triggered.append((entity_id, idempotency_key, commit_sha))
        return self.run_id

    def get_deployment_status(self, run_id: str) -> DeploymentStatus:
        item = self._next(self.statuses, self.status_calls)
        self.status_calls += 1
        if isinstance(item, Exception):
            raise item
        return item

    def get_policy_logs(self, entity_id: str, run_id: str, limit: int = 100) -> list[LogEntry]:
        item = self._next(self.log_batches, self.log_calls)
        self.log_calls += 1
        if isinstance(item, Exception):
            raise item
        return list(item)

    @staticmethod
    def _next(items: list[Any], index: int) -> Any:
        if not items:
            return []
        return items[min(index, len(items) - 1)]


class FakeClock:
    """Monotonic clock advanced only by ``sleep``."""

    def __init__(self) -> None:
        self.now = 0.0
        self.sleeps: list[float] = []

    def __call__(self) -> float:
        return self.now

    def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


@pytest.fixture()
def fake_api() -> FakeDeploymentApi:
    return FakeDeploymentApi()


@pytest.fixture()
def fake_clock() -> FakeClock:
    return FakeClock()
