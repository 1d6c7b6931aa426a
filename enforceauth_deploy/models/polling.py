"""Typed models for a deployment poll session.

Defines the data structures produced by the pollers and consumed by the
action entry point:

- ``PollStatus``: Terminal outcome of a poll session
- ``LogVerbosity``: How much live progress the reporter narrates
- ``PollingConfig``: Per-session tuning (delay, fetch size, verbosity)
- ``PhaseTiming``: Start instant and (once derivable) duration of a phase
- ``PollingResult``: The terminal outcome returned to the caller

Design notes:
- All models are frozen dataclasses; a ``PollingResult`` is built once,
  when a terminal condition is detected, and never mutated.
- Explicit units on every numeric field (``_ms``).
- No magic strings: statuses and verbosity levels are enums.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field

from enforceauth_deploy.core.constants import DEFAULT_LOG_LIMIT
from enforceauth_deploy.core.exceptions import ValidationError

# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------


class ModelValidationError(ValueError, ValidationError):
    """Raised when a model is constructed with invalid field values.

    Attributes:
        model: Name of the model class that failed validation.
        field_name: The field that violated the invariant.
        value: The invalid value.
    """

    default_stage = "model_validation"
    default_code = "MODEL_VALIDATION_FAILED"

    def __init__(self, model: str, field_name: str, value: object, message: str) -> None:
        self.model = model
        self.field_name = field_name
        self.value = value
        formatted = f"{model}.{field_name}={value!r}: {message}"
        ValidationError.__init__(self, formatted)


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------


class PollStatus(enum.Enum):
    """Terminal outcome of a poll session.

    Values:
        SUCCESS: The pipeline reported completion.
        FAILED:  The pipeline reported failure, emitted an error-level log
                 line, or the log feed became permanently unreadable.
        TIMEOUT: The wall-clock budget elapsed without a terminal signal.
    """

    SUCCESS = "success"
    FAILED = "failed"
    TIMEOUT = "timeout"


class LogVerbosity(enum.Enum):
    """Live progress narration level.

    Verbosity only changes what is reported, never how a session is decided.

    Values:
        NONE:    Nothing is narrated.
        QUIET:   Session start and final outcome only.
        NORMAL:  Adds phase markers and non-debug log lines.
        VERBOSE: Adds debug-level log lines.
    """

    NONE = "none"
    QUIET = "quiet"
    NORMAL = "normal"
    VERBOSE = "verbose"

    @property
    def rank(self) -> int:
        """Ordinal used for ``>=`` style comparisons."""
        return _VERBOSITY_ORDER.index(self)


_VERBOSITY_ORDER = (
    LogVerbosity.NONE,
    LogVerbosity.QUIET,
    LogVerbosity.NORMAL,
    LogVerbosity.VERBOSE,
)


# ---------------------------------------------------------------------------
# Session configuration
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class PollingConfig:
    """Tuning for one poll session.

    Attributes:
        poll_delay_ms: Fixed delay between log fetches in milliseconds.
        log_limit: Maximum number of log entries requested per fetch.
        log_verbosity: Live narration level (display only).
    """

    poll_delay_ms: int = 2000
    log_limit: int = DEFAULT_LOG_LIMIT
    log_verbosity: LogVerbosity = LogVerbosity.NORMAL

    def __post_init__(self) -> None:
        _check_min("PollingConfig", "poll_delay_ms", self.poll_delay_ms, 0)
        _check_min("PollingConfig", "log_limit", self.log_limit, 1)

    @property
    def poll_delay_seconds(self) -> float:
        """The inter-poll delay in seconds."""
        return self.poll_delay_ms / 1000


# ---------------------------------------------------------------------------
# Results
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class PhaseTiming:
    """Timing record for one pipeline phase.

    Attributes:
        started_at: Instant the phase was first observed (as reported).
        duration_ms: Milliseconds until the next boundary, or ``None`` when
            no end boundary is known or an instant could not be parsed.
    """

    started_at: str
    duration_ms: int | None = None


@dataclass(frozen=True, slots=True)
class PollingResult:
    """Terminal outcome of one poll session.

    Attributes:
        status: Terminal status.
        phases: Distinct phase names in first-observed order.
        phase_timings: Per-phase timing after end-boundary inference.
        duration_ms: Server-reported pipeline duration (success only).
        error_message: Failure description (failed only).
        bundle_version: Deployed bundle version (success only).
        deployment_url: Console URL for the deployment (success only).
    """

    status: PollStatus
    phases: list[str] = field(default_factory=list)
    phase_timings: dict[str, PhaseTiming] = field(default_factory=dict)
    duration_ms: int | None = None
    error_message: str | None = None
    bundle_version: str | None = None
    deployment_url: str | None = None

    @property
    def is_successful(self) -> bool:
        """True if the deployment completed successfully."""
        return self.status is PollStatus.SUCCESS

    @property
    def is_failed(self) -> bool:
        """True if the deployment failed or did not finish in time."""
        return self.status in (PollStatus.FAILED, PollStatus.TIMEOUT)


# ---------------------------------------------------------------------------
# Validation helpers (module-private)
# ---------------------------------------------------------------------------


def _check_min(model: str, field_name: str, value: float | int, lo: float | int) -> None:
    """Raise `ModelValidationError` if *value* is below *lo*."""
    if value < lo:
        raise ModelValidationError(model, field_name, value, f"must be >= {lo}")
