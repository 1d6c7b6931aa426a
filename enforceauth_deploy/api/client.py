"""EnforceAuth API client (httpx).

Concrete ``DeploymentApi`` implementation for the endpoints the action uses:

- ``POST /v1/entities/{id}/policies/deploy``: trigger a deployment
- ``GET  /v1/deployments/{run_id}``: deployment status
- ``GET  /v1/entities/{id}/policy-logs``: pipeline log stream

Responses are either wrapped (``{"success": true, "data": ...}``) or the
bare payload; both are accepted. Every failure surfaces as an ``ApiError``
subclass so callers can branch on ``retryable`` and ``status_code``.
"""

from __future__ import annotations

import logging
from typing import Any

import httpx
from pydantic import ValidationError as PydanticValidationError

from enforceauth_deploy.api.base import (
    ApiAuthError,
    ApiError,
    ApiResponseError,
    ApiTransportError,
    DeploymentApi,
)
from enforceauth_deploy.core.constants import (
    DEFAULT_REQUEST_TIMEOUT_SECONDS,
    DEPLOY_PATH_TEMPLATE,
    DEPLOYMENT_STATUS_PATH_TEMPLATE,
    IDEMPOTENCY_KEY_HEADER,
    IDEMPOTENCY_REPLAY_HEADER,
    POLICY_LOGS_PATH_TEMPLATE,
)
from enforceauth_deploy.models.api import DeploymentStatus, DeployResponse
from enforceauth_deploy.models.logs import LogEntry

logger = logging.getLogger(__name__)


class EnforceAuthClient(DeploymentApi):
    """Authenticated client for the EnforceAuth API.

    Args:
        api_url: API base URL; a trailing slash is ignored.
        access_token: Bearer token from the OIDC exchange.
        timeout: Per-request timeout in seconds. Keep it well under the
            poll delay so a hanging request cannot stall deadline checks.
        http_client: Optional pre-built ``httpx.Client`` (tests inject one
            backed by ``httpx.MockTransport``).
    """

    def __init__(
        self,
        api_url: str,
        access_token: str,
        *,
        timeout: float = DEFAULT_REQUEST_TIMEOUT_SECONDS,
        http_client: httpx.Client | None = None,
    ) -> None:
        self._api_url = api_url.rstrip("/")
        self._access_token = access_token
        self._http = http_client or httpx.Client(timeout=timeout)

    @property
    def api_url(self) -> str:
        return self._api_url

    def close(self) -> None:
        self._http.close()

    def __enter__(self) -> EnforceAuthClient:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    # ------------------------------------------------------------------
    # Endpoints
    # ------------------------------------------------------------------

    def trigger_deployment(
        self,
        entity_id: str,
        idempotency_key: str,
        *,
        commit_sha: str = "",
    ) -> str:
        logger.info("Triggering deployment for entity: %s", entity_id)

        body: dict[str, Any] = {}
        if commit_sha:
            body["commit_sha"] = commit_sha

        payload = self._request(
            "POST",
            DEPLOY_PATH_TEMPLATE.format(entity_id=entity_id),
            body=body,
            idempotency_key=idempotency_key,
        )
        try:
            response = DeployResponse.model_validate(payload)
        except PydanticValidationError as exc:
            msg = "Deploy response missing run_id"
            raise ApiResponseError(msg) from exc

        logger.info("Deployment triggered with run ID: %s", response.run_id)
        return response.run_id

    def get_deployment_status(self, run_id: str) -> DeploymentStatus:
        logger.debug("Fetching deployment status for run: %s", run_id)

        payload = self._request("GET", DEPLOYMENT_STATUS_PATH_TEMPLATE.format(run_id=run_id))
        deployment = payload.get("deployment") if isinstance(payload, dict) else None
        try:
            return DeploymentStatus.model_validate(deployment)
        except PydanticValidationError as exc:
            msg = f"Deployment status response is malformed ({exc.error_count()} error(s))"
            raise ApiResponseError(msg) from exc

    def get_policy_logs(self, entity_id: str, run_id: str, limit: int = 100) -> list[LogEntry]:
        logger.debug("Fetching policy logs for run: %s", run_id)

        payload = self._request(
            "GET",
            POLICY_LOGS_PATH_TEMPLATE.format(entity_id=entity_id),
            params={"run_id": run_id, "limit": limit},
        )
        raw_logs = payload.get("logs") if isinstance(payload, dict) else None
        if not isinstance(raw_logs, list):
            return []

        entries: list[LogEntry] = []
        for raw in raw_logs:
            try:
                entries.append(LogEntry.model_validate(raw))
            except PydanticValidationError:
                logger.debug("Skipping malformed log entry | run_id=%s", run_id)
        return entries

    # ------------------------------------------------------------------
    # Transport
    # ------------------------------------------------------------------

    def _request(
        self,
        method: str,
        path: str,
        *,
        params: dict[str, Any] | None = None,
        body: dict[str, Any] | None = None,
        idempotency_key: str = "",
    ) -> Any:
        """Send an authenticated request and return the unwrapped payload.

        Raises:
            ApiTransportError: No response was received.
            ApiAuthError: HTTP 401/403.
            ApiError: Any other non-2xx response or ``success: false`` body.
            ApiResponseError: The body is not valid JSON.
        """
        url = f"{self._api_url}{path}"
        logger.debug("%s %s", method, url)

        headers = {
            "Authorization": f"Bearer {self._access_token}",
            "Accept": "application/json",
        }
        if idempotency_key:
            headers[IDEMPOTENCY_KEY_HEADER] = idempotency_key

        try:
            response = self._http.request(
                method,
                url,
                params=params,
                json=body,
                headers=headers,
            )
        except httpx.HTTPError as exc:
            msg = f"{method} {path}: {exc}"
            raise ApiTransportError(msg) from exc

        if response.headers.get(IDEMPOTENCY_REPLAY_HEADER, "").lower() == "true":
            logger.info("Request was replayed from idempotency cache")

        if response.is_error:
            message = _error_message(response)
            if response.status_code in (401, 403):
                raise ApiAuthError(message, status_code=response.status_code)
            raise ApiError(message, status_code=response.status_code)

        try:
            payload = response.json()
        except ValueError as exc:
            msg = "API returned invalid JSON response"
            raise ApiResponseError(msg, status_code=response.status_code) from exc

        return _unwrap(payload, status_code=response.status_code)


def _error_message(response: httpx.Response) -> str:
    """Extract ``message``/``error`` from an error body, else the raw text."""
    try:
        body = response.json()
    except ValueError:
        body = None
    if isinstance(body, dict):
        message = body.get("message") or body.get("error")
        if message:
            return str(message)
    return f"HTTP {response.status_code}: {response.text}"


def _unwrap(payload: Any, *, status_code: int) -> Any:
    """Strip the ``{"success": ..., "data": ...}`` envelope if present."""
    if not isinstance(payload, dict) or "success" not in payload:
        return payload
    if payload.get("success") is False:
        message = payload.get("message") or payload.get("error") or "unknown error"
        msg = f"API returned error: {message}"
        raise ApiError(msg, status_code=status_code, retryable=False)
    return payload.get("data", payload)
