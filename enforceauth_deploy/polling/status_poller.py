"""Status-endpoint deployment polling (``poll-mode: status``).

Fallback to the log-based poller for entities whose log stream is not
available: polls ``GET /v1/deployments/{run_id}`` until the run reaches a
terminal status (``success``, ``failed`` or ``timeout``).

Uses exponential backoff with jitter between polls so long deployments do
not hammer the API. Changes of ``current_phase`` feed the same
``PhaseTracker`` as the log-based poller, so both modes report phases the
same way; timings here are observation times, not producer timestamps.
"""

from __future__ import annotations

import logging
import random
import time
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from enforceauth_deploy.core.constants import CANCELLED_MESSAGE
from enforceauth_deploy.models.polling import PollingResult, PollStatus
from enforceauth_deploy.polling.classifier import classify_fetch_error
from enforceauth_deploy.polling.phase_tracker import PhaseTracker
from enforceauth_deploy.polling.reporter import ProgressReporter
from enforceauth_deploy.utils.helpers import wait_for_next_poll

if TYPE_CHECKING:
    import threading
    from collections.abc import Callable

    from enforceauth_deploy.api.base import DeploymentApi
    from enforceauth_deploy.models.api import DeploymentStatus

logger = logging.getLogger(__name__)

TERMINAL_STATUSES: dict[str, PollStatus] = {
    "success": PollStatus.SUCCESS,
    "failed": PollStatus.FAILED,
    "timeout": PollStatus.TIMEOUT,
}


@dataclass(frozen=True, slots=True)
class BackoffConfig:
    """Exponential backoff parameters.

    Attributes:
        initial_delay_ms: Delay before the second poll.
        max_delay_ms: Upper bound on the pre-jitter delay.
        backoff_multiplier: Growth factor per poll.
        jitter_percent: Maximum +/- jitter as a fraction (0-1).
    """

    initial_delay_ms: int = 2000
    max_delay_ms: int = 30_000
    backoff_multiplier: float = 1.5
    jitter_percent: float = 0.2


def next_delay_ms(current_delay_ms: float, config: BackoffConfig, rng: random.Random) -> int:
    """Apply backoff, cap, then +/- ``jitter_percent`` jitter."""
    delay = min(current_delay_ms * config.backoff_multiplier, config.max_delay_ms)
    jitter_range = delay * config.jitter_percent
    delay += (rng.random() - 0.5) * 2 * jitter_range
    return round(delay)


def format_status(status: DeploymentStatus) -> str:
    message = f"Status: {status.status}"
    if status.current_phase:
        message += f" (phase: {status.current_phase})"
    if status.error_message:
        message += f" - Error: {status.error_message}"
    return message


def poll_status_for_completion(
    api: DeploymentApi,
    run_id: str,
    timeout_minutes: float,
    backoff: BackoffConfig | None = None,
    *,
    reporter: ProgressReporter | None = None,
    clock: Callable[[], float] = time.monotonic,
    sleep: Callable[[float], None] = time.sleep,
    rng: random.Random | None = None,
    cancel: threading.Event | None = None,
) -> PollingResult:
    """Poll the deployment status endpoint until a terminal status.

    Returns:
        The terminal ``PollingResult``; a client-side deadline yields
        ``TIMEOUT`` rather than raising.
    """
    backoff = backoff or BackoffConfig()
    reporter = reporter or ProgressReporter()
    rng = rng or random.Random()
    tracker = PhaseTracker()

    timeout_seconds = timeout_minutes * 60
    start = clock()
    current_delay: float = backoff.initial_delay_ms
    last_status: str | None = None
    last_phase: str | None = None
    poll_count = 0

    reporter.session_started(run_id, timeout_minutes)

    while True:
        if clock() - start >= timeout_seconds:
            result = PollingResult(
                status=PollStatus.TIMEOUT,
                phases=tracker.phases,
                phase_timings=tracker.finalize(None),
                error_message=(
                    f"Deployment polling timed out after {timeout_minutes:g} minutes. "
                    f"Last status: {last_status or 'unknown'}. "
                    "Check the EnforceAuth console for more details."
                ),
            )
            break

        if cancel is not None and cancel.is_set():
            result = PollingResult(
                status=PollStatus.TIMEOUT,
                phases=tracker.phases,
                phase_timings=tracker.finalize(None),
                error_message=CANCELLED_MESSAGE,
            )
            break

        poll_count += 1
        try:
            status = api.get_deployment_status(run_id)
        except Exception as exc:
            permanent = classify_fetch_error(exc)
            if permanent is not None:
                logger.error("Status fetch failed permanently | run_id=%s | error=%s", run_id, exc)
                result = PollingResult(
                    status=PollStatus.FAILED,
                    phases=tracker.phases,
                    phase_timings=tracker.finalize(None),
                    error_message=permanent.error_message,
                )
                break
            logger.warning("Failed to fetch deployment status: %s. Retrying...", exc)
        else:
            if status.status != last_status or status.current_phase != last_phase:
                logger.info(format_status(status))
                last_status = status.status
                last_phase = status.current_phase
            else:
                logger.debug("Poll #%d: %s", poll_count, format_status(status))

            if status.current_phase:
                previous = tracker.current_phase
                if tracker.observe_phase(status.current_phase, _now_iso()):
                    if previous is not None:
                        timing = tracker.timing(previous)
                        reporter.phase_completed(previous, timing.duration_ms if timing else None)
                    reporter.phase_started(status.current_phase)

            terminal = TERMINAL_STATUSES.get(status.status)
            if terminal is not None:
                result = _terminal_result(status, terminal, tracker)
                break

        wait_for_next_poll(current_delay / 1000, sleep=sleep, cancel=cancel)
        current_delay = next_delay_ms(current_delay, backoff, rng)

    reporter.session_finished(result, clock() - start)
    return result


def _terminal_result(
    status: DeploymentStatus,
    terminal: PollStatus,
    tracker: PhaseTracker,
) -> PollingResult:
    timings = tracker.finalize(status.completed_at or _now_iso())
    if terminal is PollStatus.SUCCESS:
        return PollingResult(
            status=terminal,
            phases=tracker.phases,
            phase_timings=timings,
            duration_ms=status.duration_ms,
        )

    if terminal is PollStatus.TIMEOUT:
        message = "Deployment timed out on the server side"
    else:
        message = status.error_message or "Unknown error"
        if status.error_phase:
            message += f" (phase: {status.error_phase})"
    return PollingResult(
        status=terminal,
        phases=tracker.phases,
        phase_timings=timings,
        error_message=message,
    )


def _now_iso() -> str:
    return datetime.now(UTC).isoformat()

