"""Action configuration loaded from GitHub Action inputs.

The runner exposes each ``with:`` input of ``action.yml`` as an
``INPUT_<NAME>`` environment variable (name upper-cased, spaces replaced
by underscores, hyphens kept). ``ActionConfig.from_env()`` reads those
variables; ``main`` layers command-line overrides on top for local runs.

Fail-fast validation:
    ``from_env()`` raises ``ConfigValidationError`` if any value is out of
    its valid range, so bad inputs are reported before anything is
    deployed.
"""

from __future__ import annotations

import os
from dataclasses import dataclass

from enforceauth_deploy.core.constants import (
    DEFAULT_API_URL,
    DEFAULT_LOG_LIMIT,
    DEFAULT_POLL_INTERVAL_SECONDS,
    DEFAULT_TIMEOUT_MINUTES,
    MAX_LOG_LIMIT,
    MAX_POLL_INTERVAL_SECONDS,
    MAX_TIMEOUT_MINUTES,
    MIN_POLL_INTERVAL_SECONDS,
    MIN_TIMEOUT_MINUTES,
    POLL_MODE_LOGS,
    POLL_MODES,
)
from enforceauth_deploy.core.exceptions import ValidationError
from enforceauth_deploy.models.polling import LogVerbosity, PollingConfig

_TRUE_VALUES = ("true", "True", "TRUE")
_FALSE_VALUES = ("false", "False", "FALSE")


class ConfigValidationError(ValidationError):
    """Raised when an action input is missing or out of valid range.

    Attributes:
        key: The input name that failed validation.
        value: The invalid value.
        message: Human-readable description of the valid range.
    """

    default_stage = "config"
    default_code = "CONFIG_VALIDATION_FAILED"

    def __init__(self, key: str, value: object, message: str) -> None:
        self.key = key
        self.value = value
        super().__init__(f"{key} {message} (got {value!r})")


# ---------------------------------------------------------------------------
# Input accessors
# ---------------------------------------------------------------------------


def input_env_name(name: str) -> str:
    return f"INPUT_{name.replace(' ', '_').upper()}"


def get_input(name: str, *, required: bool = False, default: str = "") -> str:
    """Read an action input, trimmed.

    Raises:
        ConfigValidationError: If *required* and the input is empty.
    """
    value = os.getenv(input_env_name(name), "").strip()
    if not value:
        if required:
            raise ConfigValidationError(name, value, "is required and not supplied")
        return default
    return value


def get_boolean_input(name: str, *, default: bool = False) -> bool:
    """Read a boolean input using the YAML 1.2 core schema spellings.

    Raises:
        ConfigValidationError: If the value is not a recognised boolean.
    """
    value = get_input(name)
    if not value:
        return default
    if value in _TRUE_VALUES:
        return True
    if value in _FALSE_VALUES:
        return False
    raise ConfigValidationError(name, value, "must be one of: true, false")


def _get_int_input(name: str, default: int) -> int:
    value = get_input(name)
    if not value:
        return default
    try:
        return int(value, 10)
    except ValueError as exc:
        raise ConfigValidationError(name, value, "must be an integer") from exc


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class ActionConfig:
    """Immutable action configuration.

    Loaded once at startup and threaded through the entry point.

    Attributes:
        entity_id: EnforceAuth entity whose policies are deployed.
        api_url: EnforceAuth API base URL.
        wait_for_completion: Whether to poll until the deployment finishes.
        timeout_minutes: Polling wall-clock budget (1-60).
        dry_run: Authenticate but do not trigger a deployment.
        poll_interval_seconds: Delay between polls (1-30).
        log_verbosity: Live narration level.
        log_limit: Maximum log entries per fetch.
        poll_mode: ``"logs"`` (log stream) or ``"status"`` (status endpoint).
    """

    entity_id: str
    api_url: str = DEFAULT_API_URL
    wait_for_completion: bool = True
    timeout_minutes: int = DEFAULT_TIMEOUT_MINUTES
    dry_run: bool = False
    poll_interval_seconds: int = DEFAULT_POLL_INTERVAL_SECONDS
    log_verbosity: LogVerbosity = LogVerbosity.NORMAL
    log_limit: int = DEFAULT_LOG_LIMIT
    poll_mode: str = POLL_MODE_LOGS

    @classmethod
    def from_env(cls) -> ActionConfig:
        """Load and validate configuration from ``INPUT_*`` variables.

        Raises:
            ConfigValidationError: If an input is missing, malformed or
                out of range.
        """
        config = cls(
            entity_id=get_input("entity-id", required=True),
            api_url=get_input("api-url", default=DEFAULT_API_URL),
            wait_for_completion=get_boolean_input("wait-for-completion", default=True),
            timeout_minutes=_get_int_input("timeout-minutes", DEFAULT_TIMEOUT_MINUTES),
            dry_run=get_boolean_input("dry-run", default=False),
            poll_interval_seconds=_get_int_input(
                "poll-interval-seconds", DEFAULT_POLL_INTERVAL_SECONDS
            ),
            log_verbosity=parse_verbosity(get_input("log-verbosity", default="normal")),
            log_limit=_get_int_input("log-limit", DEFAULT_LOG_LIMIT),
            poll_mode=get_input("poll-mode", default=POLL_MODE_LOGS),
        )
        validate(config)
        return config

    def polling_config(self) -> PollingConfig:
        """Build the per-session ``PollingConfig`` from these inputs."""
        return PollingConfig(
            poll_delay_ms=self.poll_interval_seconds * 1000,
            log_limit=self.log_limit,
            log_verbosity=self.log_verbosity,
        )


def parse_verbosity(value: str) -> LogVerbosity:
    """Map a ``log-verbosity`` input to ``LogVerbosity``.

    Raises:
        ConfigValidationError: If the value is not a known level.
    """
    try:
        return LogVerbosity(value.strip().lower())
    except ValueError as exc:
        valid = ", ".join(v.value for v in LogVerbosity)
        raise ConfigValidationError("log-verbosity", value, f"must be one of: {valid}") from exc


def validate(config: ActionConfig) -> None:
    """Validate configuration ranges.  Raises ``ConfigValidationError``."""
    if not config.entity_id.strip():
        raise ConfigValidationError("entity-id", config.entity_id, "must not be empty")

    if not config.api_url.startswith(("https://", "http://")):
        raise ConfigValidationError("api-url", config.api_url, "must be an http(s) URL")

    if not MIN_TIMEOUT_MINUTES <= config.timeout_minutes <= MAX_TIMEOUT_MINUTES:
        raise ConfigValidationError(
            "timeout-minutes",
            config.timeout_minutes,
            f"must be between {MIN_TIMEOUT_MINUTES} and {MAX_TIMEOUT_MINUTES}",
        )

    if not MIN_POLL_INTERVAL_SECONDS <= config.poll_interval_seconds <= MAX_POLL_INTERVAL_SECONDS:
        raise ConfigValidationError(
            "poll-interval-seconds",
            config.poll_interval_seconds,
            f"must be between {MIN_POLL_INTERVAL_SECONDS} and {MAX_POLL_INTERVAL_SECONDS}",
        )

    if not 1 <= config.log_limit <= MAX_LOG_LIMIT:
        raise ConfigValidationError(
            "log-limit",
            config.log_limit,
            f"must be between 1 and {MAX_LOG_LIMIT}",
        )

    if config.poll_mode not in POLL_MODES:
        raise ConfigValidationError(
            "poll-mode",
            config.poll_mode,
            f"must be one of: {', '.join(POLL_MODES)}",
        )
