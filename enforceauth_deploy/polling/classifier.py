"""Outcome classification for pipeline log entries and fetch failures.

Each new log entry is classified as exactly one of:

- ``IGNORE``: informational; nothing to do.
- ``PHASE_TRANSITION``: a pipeline phase started.
- ``TERMINAL_SUCCESS``: the pipeline completed.
- ``TERMINAL_FAILURE``: the pipeline failed, or logged at error level.

Precedence (first match wins):

1. Severity ``error`` (any case) → failure, regardless of action. Message
   from ``metadata.error``, else ``metadata.message``, else the entry text.
2. ``report_phase_change_success`` with a non-empty ``details.phase``.
3. ``pipeline_complete``.
4. ``pipeline_failed`` / ``pipeline_error``.
5. Anything else is ignored.

Fetch failures are classified separately by ``classify_fetch_error``: an
authorisation failure that cannot fix itself becomes
``TRANSPORT_PERMANENT_FAILURE``; everything else is transient (``None``).

Domain "error" log lines and transport errors never share a code path:
the former come from ``classify_entry``, the latter only from
``classify_fetch_error``.
"""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from enforceauth_deploy.api.base import ApiError
from enforceauth_deploy.core.constants import DEFAULT_FAILURE_MESSAGE
from enforceauth_deploy.core.exceptions import DeployError
from enforceauth_deploy.models.logs import (
    PhaseChangeAction,
    PipelineCompleteAction,
    PipelineFailedAction,
    decode_action,
)
from enforceauth_deploy.models.polling import PollingResult, PollStatus

if TYPE_CHECKING:
    from enforceauth_deploy.models.logs import LogEntry
    from enforceauth_deploy.polling.phase_tracker import PhaseTracker

logger = logging.getLogger(__name__)

ERROR_LEVEL = "error"

#: Lower-cased fragments that mark an authorisation failure as permanent.
PERMANENT_AUTH_MARKERS = (
    "insufficient permission",
    "insufficient privilege",
    "insufficient scope",
    "forbidden",
)

PERMISSION_REMEDIATION = (
    "Insufficient permissions to read deployment progress: {detail}. "
    "Ensure the trust policy for this repository grants read access to the "
    "entity's deployments and policy logs."
)


class OutcomeKind(enum.Enum):
    """What a single classified observation means for the poll session."""

    IGNORE = "ignore"
    PHASE_TRANSITION = "phase_transition"
    TERMINAL_SUCCESS = "terminal_success"
    TERMINAL_FAILURE = "terminal_failure"
    TRANSPORT_PERMANENT_FAILURE = "transport_permanent_failure"


@dataclass(frozen=True, slots=True)
class Classification:
    """Result of classifying one log entry or fetch failure.

    Attributes:
        kind: The outcome category.
        at: Effective instant (``metadata.timestamp`` else entry timestamp).
        phase: Phase name (``PHASE_TRANSITION`` only).
        error_message: Failure description (failure kinds only).
        duration_ms: Server-reported pipeline duration (success only).
        bundle_version: Deployed bundle version (success only).
        deployment_url: Deployment console URL (success only).
    """

    kind: OutcomeKind
    at: str = ""
    phase: str = ""
    error_message: str | None = None
    duration_ms: int | None = None
    bundle_version: str | None = None
    deployment_url: str | None = None

    @property
    def is_terminal(self) -> bool:
        return self.kind in (
            OutcomeKind.TERMINAL_SUCCESS,
            OutcomeKind.TERMINAL_FAILURE,
            OutcomeKind.TRANSPORT_PERMANENT_FAILURE,
        )


IGNORED = Classification(kind=OutcomeKind.IGNORE)


def classify_entry(entry: LogEntry) -> Classification:
    """Classify one not-yet-seen log entry."""
    payload = decode_action(entry.metadata)
    at = payload.timestamp or entry.timestamp

    if entry.normalized_level == ERROR_LEVEL:
        message = payload.error or payload.message or entry.message or DEFAULT_FAILURE_MESSAGE
        return Classification(kind=OutcomeKind.TERMINAL_FAILURE, at=at, error_message=message)

    if isinstance(payload, PhaseChangeAction):
        phase = payload.details.phase
        if not phase.strip():
            return IGNORED
        return Classification(kind=OutcomeKind.PHASE_TRANSITION, at=at, phase=phase)

    if isinstance(payload, PipelineCompleteAction):
        duration = payload.duration_ms
        return Classification(
            kind=OutcomeKind.TERMINAL_SUCCESS,
            at=at,
            duration_ms=round(duration) if duration is not None else None,
            bundle_version=payload.details.bundle_version,
            deployment_url=payload.details.deployment_url,
        )

    if isinstance(payload, PipelineFailedAction):
        return Classification(
            kind=OutcomeKind.TERMINAL_FAILURE,
            at=at,
            error_message=payload.message or DEFAULT_FAILURE_MESSAGE,
        )

    return IGNORED


def classify_fetch_error(exc: BaseException) -> Classification | None:
    """Classify a log-fetch failure.

    Returns:
        A ``TRANSPORT_PERMANENT_FAILURE`` classification carrying a
        remediation message when *exc* is a permanent authorisation
        failure (HTTP 403, or an error mentioning a forbidden or insufficient
        permission, privilege or scope); ``None`` for transient failures
        that should be retried. Errors flagged ``retryable`` are always
        transient whatever their text says.
    """
    if isinstance(exc, DeployError) and exc.retryable:
        return None

    detail = exc.message if isinstance(exc, DeployError) and exc.message else str(exc)
    forbidden = isinstance(exc, ApiError) and exc.status_code == 403
    lowered = detail.lower()
    if not forbidden and not any(marker in lowered for marker in PERMANENT_AUTH_MARKERS):
        return None

    return Classification(
        kind=OutcomeKind.TRANSPORT_PERMANENT_FAILURE,
        error_message=PERMISSION_REMEDIATION.format(detail=detail),
    )


def build_terminal_result(classification: Classification, tracker: PhaseTracker) -> PollingResult:
    """Finalize *tracker* at the classification's instant and build the result.

    Raises:
        ValueError: If *classification* is not terminal.
    """
    if classification.kind is OutcomeKind.TERMINAL_SUCCESS:
        timings = tracker.finalize(classification.at or None)
        return PollingResult(
            status=PollStatus.SUCCESS,
            phases=tracker.phases,
            phase_timings=timings,
            duration_ms=classification.duration_ms,
            bundle_version=classification.bundle_version,
            deployment_url=classification.deployment_url,
        )

    if classification.kind in (
        OutcomeKind.TERMINAL_FAILURE,
        OutcomeKind.TRANSPORT_PERMANENT_FAILURE,
    ):
        timings = tracker.finalize(classification.at or None)
        return PollingResult(
            status=PollStatus.FAILED,
            phases=tracker.phases,
            phase_timings=timings,
            error_message=classification.error_message or DEFAULT_FAILURE_MESSAGE,
        )

    msg = f"Classification {classification.kind.value!r} is not terminal"
    raise ValueError(msg)
