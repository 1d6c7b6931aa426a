"""Live progress narration for a poll session.

The reporter turns poll-session events into human-readable lines on the
``enforceauth_deploy.progress`` logger. It owns no decision logic: the
pollers call it unconditionally and the configured ``LogVerbosity``
alone decides what is written.

=========  ==========================================================
none       nothing
quiet      session start and final outcome
normal     + phase start/complete markers, non-debug pipeline log lines
verbose    + debug-level pipeline log lines
=========  ==========================================================
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from enforceauth_deploy.models.polling import LogVerbosity, PollStatus
from enforceauth_deploy.utils.helpers import format_duration_ms

if TYPE_CHECKING:
    from enforceauth_deploy.models.logs import LogEntry
    from enforceauth_deploy.models.polling import PollingResult

PROGRESS_LOGGER = "enforceauth_deploy.progress"

_DEBUG_LEVEL = "debug"


class ProgressReporter:
    """Verbosity-filtered progress output."""

    def __init__(
        self,
        verbosity: LogVerbosity = LogVerbosity.NORMAL,
        *,
        logger: logging.Logger | None = None,
    ) -> None:
        self.verbosity = verbosity
        self._logger = logger or logging.getLogger(PROGRESS_LOGGER)

    def _emit(self, minimum: LogVerbosity, message: str, *args: object) -> None:
        if self.verbosity.rank >= minimum.rank:
            self._logger.info(message, *args)

    def session_started(self, run_id: str, timeout_minutes: float) -> None:
        self._emit(
            LogVerbosity.QUIET,
            "Polling for deployment completion (run: %s, timeout: %s minutes)...",
            run_id,
            f"{timeout_minutes:g}",
        )

    def phase_started(self, phase: str) -> None:
        self._emit(LogVerbosity.NORMAL, "▶ Phase started: %s", phase)

    def phase_completed(self, phase: str, duration_ms: int | None) -> None:
        self._emit(
            LogVerbosity.NORMAL,
            "✓ Phase completed: %s (%s)",
            phase,
            format_duration_ms(duration_ms),
        )

    def log_line(self, entry: LogEntry) -> None:
        minimum = (
            LogVerbosity.VERBOSE if entry.normalized_level == _DEBUG_LEVEL else LogVerbosity.NORMAL
        )
        self._emit(
            minimum,
            "  [%s] %s: %s",
            entry.timestamp or "-",
            (entry.normalized_level or "info").upper(),
            entry.message,
        )

    def session_finished(self, result: PollingResult, elapsed_seconds: float) -> None:
        if result.status is PollStatus.SUCCESS:
            duration = (
                format_duration_ms(result.duration_ms)
                if result.duration_ms is not None
                else f"{elapsed_seconds:.0f}s"
            )
            self._emit(LogVerbosity.QUIET, "Deployment completed successfully in %s", duration)
            if result.bundle_version:
                self._emit(LogVerbosity.QUIET, "Bundle version: %s", result.bundle_version)
            if result.deployment_url:
                self._emit(LogVerbosity.QUIET, "Deployment URL: %s", result.deployment_url)
        elif result.status is PollStatus.FAILED:
            self._emit(
                LogVerbosity.QUIET,
                "Deployment failed: %s",
                result.error_message or "Unknown error",
            )
        else:
            self._emit(
                LogVerbosity.QUIET,
                "Deployment polling timed out after %.0fs (phases seen: %s)",
                elapsed_seconds,
                ", ".join(result.phases) or "none",
            )
