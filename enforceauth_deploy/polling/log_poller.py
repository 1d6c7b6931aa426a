"""Log-based deployment completion polling.

Follows a deployment run by repeatedly fetching its pipeline log stream
and deriving lifecycle state from log metadata, until the run succeeds,
fails, or the wall-clock budget runs out.

Each iteration of ``poll_for_completion``::

    deadline reached?  ── yes ──▶ TIMEOUT (last phase duration unset)
          │ no
    fetch logs ── transient error ──▶ warn, sleep, loop
          │      └─ permanent auth error ──▶ FAILED (no retries)
          ▼
    for each new entry, in arrival order:
        narrate → classify → phase transition | terminal | ignore
          │ first terminal entry ends the session; later entries in the
          │ batch are not processed
          ▼
    sleep ``poll_delay_ms`` (fixed, no backoff) and loop

All per-run state (seen-set, phase tracker) lives in a ``LogPollSession``
created for the call and discarded with it; nothing is process-wide.

Cancellation is cooperative: an optional ``threading.Event`` is checked
before every fetch and the inter-poll delay waits on it, so setting the
event ends the session at the next suspension point. A long-hanging fetch
can delay deadline detection, which is why the API client's per-request
timeout is kept well under the poll delay.
"""

from __future__ import annotations

import logging
import time
from typing import TYPE_CHECKING

from enforceauth_deploy.core.constants import CANCELLED_MESSAGE
from enforceauth_deploy.models.polling import PollingConfig, PollingResult, PollStatus
from enforceauth_deploy.polling.classifier import (
    Classification,
    OutcomeKind,
    build_terminal_result,
    classify_entry,
    classify_fetch_error,
)
from enforceauth_deploy.polling.dedup import EntryDeduplicator
from enforceauth_deploy.polling.phase_tracker import PhaseTracker
from enforceauth_deploy.polling.reporter import ProgressReporter
from enforceauth_deploy.utils.helpers import wait_for_next_poll

if TYPE_CHECKING:
    import threading
    from collections.abc import Callable, Iterable

    from enforceauth_deploy.api.base import DeploymentApi
    from enforceauth_deploy.models.logs import LogEntry

logger = logging.getLogger(__name__)


class LogPollSession:
    """State of one poll session: seen entries, phases, narration.

    Attributes:
        dedup: Fingerprints of every entry already processed.
        tracker: Ordered phases and their timings.
        reporter: Progress narration sink.
    """

    def __init__(self, reporter: ProgressReporter | None = None) -> None:
        self.dedup = EntryDeduplicator()
        self.tracker = PhaseTracker()
        self.reporter = reporter or ProgressReporter()

    def process_batch(self, entries: Iterable[LogEntry]) -> PollingResult | None:
        """Process the not-yet-seen entries of one fetched batch.

        Returns:
            The terminal ``PollingResult`` from the first terminal entry, or
            ``None`` if the batch holds no terminal entry.
        """
        for entry in entries:
            if not self.dedup.admit(entry):
                continue

            self.reporter.log_line(entry)
            classification = classify_entry(entry)

            if classification.kind is OutcomeKind.PHASE_TRANSITION:
                self._enter_phase(classification)
            elif classification.is_terminal:
                return self.finish(classification)
        return None

    def finish(self, classification: Classification) -> PollingResult:
        """Build the terminal result for *classification*."""
        result = build_terminal_result(classification, self.tracker)
        last = self.tracker.current_phase
        if result.status is PollStatus.SUCCESS and last is not None:
            timing = result.phase_timings.get(last)
            self.reporter.phase_completed(last, timing.duration_ms if timing else None)
        return result

    def timed_out(self, error_message: str) -> PollingResult:
        """Build the result for a session that saw no terminal entry."""
        return PollingResult(
            status=PollStatus.TIMEOUT,
            phases=self.tracker.phases,
            phase_timings=self.tracker.finalize(None),
            error_message=error_message,
        )

    def _enter_phase(self, classification: Classification) -> None:
        previous = self.tracker.current_phase
        if not self.tracker.observe_phase(classification.phase, classification.at):
            return
        if previous is not None:
            timing = self.tracker.timing(previous)
            self.reporter.phase_completed(previous, timing.duration_ms if timing else None)
        self.reporter.phase_started(classification.phase)


def poll_for_completion(
    api: DeploymentApi,
    entity_id: str,
    run_id: str,
    timeout_minutes: float,
    config: PollingConfig | None = None,
    *,
    reporter: ProgressReporter | None = None,
    clock: Callable[[], float] = time.monotonic,
    sleep: Callable[[float], None] = time.sleep,
    cancel: threading.Event | None = None,
) -> PollingResult:
    """Poll a run's pipeline logs until it succeeds, fails or times out.

    Args:
        api: Deployment API used to fetch log batches.
        entity_id: Entity whose policy logs are read.
        run_id: Deployment run to follow.
        timeout_minutes: Wall-clock budget; range is enforced by the caller.
        config: Delay, fetch size and verbosity (defaults if omitted).
        reporter: Progress sink; built from ``config.log_verbosity`` if omitted.
        clock: Monotonic seconds source (injectable for tests).
        sleep: Delay function used when no *cancel* event is given.
        cancel: Optional cancellation token.

    Returns:
        The terminal ``PollingResult``. Transient fetch errors, permanent
        authorisation errors, pipeline failures and timeouts are all
        returned as data; nothing is raised for a run outcome.
    """
    config = config or PollingConfig()
    reporter = reporter or ProgressReporter(config.log_verbosity)
    session = LogPollSession(reporter)

    timeout_seconds = timeout_minutes * 60
    start = clock()
    poll_count = 0

    reporter.session_started(run_id, timeout_minutes)
    logger.debug(
        "log poll started | run_id=%s | timeout=%ss | delay=%dms | limit=%d",
        run_id,
        f"{timeout_seconds:g}",
        config.poll_delay_ms,
        config.log_limit,
    )

    while True:
        elapsed = clock() - start
        if elapsed >= timeout_seconds:
            logger.warning(
                "Poll timeout | run_id=%s | timeout=%sm | poll_count=%d | phases=%d",
                run_id,
                f"{timeout_minutes:g}",
                poll_count,
                len(session.tracker.phases),
            )
            result = session.timed_out(
                f"Deployment polling timed out after {timeout_minutes:g} minutes. "
                "Check the EnforceAuth console for more details."
            )
            break

        if cancel is not None and cancel.is_set():
            logger.warning("Poll cancelled | run_id=%s | poll_count=%d", run_id, poll_count)
            result = session.timed_out(CANCELLED_MESSAGE)
            break

        poll_count += 1
        try:
            entries = api.get_policy_logs(entity_id, run_id, config.log_limit)
        except Exception as exc:
            permanent = classify_fetch_error(exc)
            if permanent is not None:
                logger.error(
                    "Log fetch failed permanently | run_id=%s | poll=%d | error=%s",
                    run_id,
                    poll_count,
                    exc,
                )
                result = session.finish(permanent)
                break
            logger.warning("Failed to fetch deployment logs: %s. Retrying...", exc)
        else:
            seen_before = len(session.dedup)
            result_or_none = session.process_batch(entries)
            logger.debug(
                "Poll #%d | run_id=%s | fetched=%d | new=%d | phase=%s",
                poll_count,
                run_id,
                len(entries),
                len(session.dedup) - seen_before,
                session.tracker.current_phase or "-",
            )
            if result_or_none is not None:
                result = result_or_none
                break

        wait_for_next_poll(config.poll_delay_seconds, sleep=sleep, cancel=cancel)

    elapsed = clock() - start
    reporter.session_finished(result, elapsed)
    logger.debug(
        "log poll finished | run_id=%s | status=%s | polls=%d | elapsed=%.1fs",
        run_id,
        result.status.value,
        poll_count,
        elapsed,
    )
    return result

