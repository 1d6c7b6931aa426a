"""DeploymentApi abstract base class and API exceptions.

Defines the contract the pollers and the entry point rely on. The pollers
interact exclusively with this interface, so tests substitute in-memory
fakes and the production ``EnforceAuthClient`` is never special-cased.

Lifecycle:
    1. ``trigger_deployment(entity_id, key)``: start a pipeline run.
    2. ``get_policy_logs(entity_id, run_id)``: read the run's log stream.
    3. ``get_deployment_status(run_id)``: read the run's status record.
"""

from __future__ import annotations

import abc
from typing import TYPE_CHECKING

from enforceauth_deploy.core.exceptions import ContractError, DeployError, TransientError

if TYPE_CHECKING:
    from enforceauth_deploy.models.api import DeploymentStatus
    from enforceauth_deploy.models.logs import LogEntry


class DeploymentApi(abc.ABC):
    """Abstract base class for the EnforceAuth deployment API."""

    @abc.abstractmethod
    def trigger_deployment(
        self,
        entity_id: str,
        idempotency_key: str,
        *,
        commit_sha: str = "",
    ) -> str:
        """Trigger a policy deployment and return its run id.

        Raises:
            ApiError: On transport or API errors.
        """

    @abc.abstractmethod
    def get_deployment_status(self, run_id: str) -> DeploymentStatus:
        """Return the current status record of a deployment run.

        Raises:
            ApiError: On transport or API errors.
        """

    @abc.abstractmethod
    def get_policy_logs(self, entity_id: str, run_id: str, limit: int = 100) -> list[LogEntry]:
        """Return the most recent pipeline log entries of a run, in arrival order.

        Successive calls return overlapping windows; callers deduplicate.

        Raises:
            ApiError: On transport or API errors.
        """


# ---------------------------------------------------------------------------
# API exceptions
# ---------------------------------------------------------------------------


class ApiError(DeployError):
    """Base exception for EnforceAuth API errors.

    Attributes:
        message: Human-readable error description.
        status_code: HTTP status code (0 when no response was received).
        retryable: Whether the caller should retry the operation.
    """

    default_stage = "api"
    default_code = "API_REQUEST_FAILED"

    def __init__(
        self,
        message: str,
        *,
        status_code: int = 0,
        retryable: bool | None = None,
    ) -> None:
        self.status_code = status_code
        if retryable is None:
            retryable = status_code == 429 or status_code >= 500
        super().__init__(message, retryable=retryable)

    def __str__(self) -> str:
        return f"API request failed: {self.message}"


class ApiAuthError(ApiError):
    """Authentication (401) or authorisation (403) failure."""

    default_code = "API_AUTH_FAILED"

    def __init__(self, message: str, *, status_code: int = 403) -> None:
        super().__init__(message, status_code=status_code, retryable=False)


class ApiTransportError(ApiError, TransientError):
    """No usable HTTP response (connection reset, DNS, timeout)."""

    default_code = "API_TRANSPORT_FAILED"

    def __init__(self, message: str) -> None:
        super().__init__(message, status_code=0, retryable=True)


class ApiResponseError(ApiError, ContractError):
    """The API answered with a body that does not match its contract."""

    default_code = "API_INVALID_RESPONSE"

    def __init__(self, message: str, *, status_code: int = 0) -> None:
        super().__init__(message, status_code=status_code, retryable=False)
