"""Shared constants.

Centralises API paths, log metadata action names, and input defaults that
are used by the client, the pollers and the action entry point.
"""

from __future__ import annotations

# ---------------------------------------------------------------------------
# API
# ---------------------------------------------------------------------------

DEFAULT_API_URL: str = "https://api.enforceauth.com"
"""Default EnforceAuth API base URL."""

DEFAULT_REQUEST_TIMEOUT_SECONDS: float = 10.0
"""Per-request HTTP timeout; kept well under the inter-poll delay budget."""

TOKEN_EXCHANGE_PATH: str = "/v1/auth/oidc/token"
DEPLOY_PATH_TEMPLATE: str = "/v1/entities/{entity_id}/policies/deploy"
DEPLOYMENT_STATUS_PATH_TEMPLATE: str = "/v1/deployments/{run_id}"
POLICY_LOGS_PATH_TEMPLATE: str = "/v1/entities/{entity_id}/policy-logs"

IDEMPOTENCY_KEY_HEADER: str = "Idempotency-Key"
IDEMPOTENCY_REPLAY_HEADER: str = "X-Idempotency-Replay"

# ---------------------------------------------------------------------------
# Log metadata actions
# ---------------------------------------------------------------------------

ACTION_PHASE_CHANGE: str = "report_phase_change_success"
ACTION_PIPELINE_COMPLETE: str = "pipeline_complete"
ACTION_PIPELINE_FAILED: str = "pipeline_failed"
ACTION_PIPELINE_ERROR: str = "pipeline_error"

DEFAULT_FAILURE_MESSAGE: str = "Deployment failed without error message"

# ---------------------------------------------------------------------------
# Action input defaults and bounds
# ---------------------------------------------------------------------------

DEFAULT_TIMEOUT_MINUTES: int = 10
MIN_TIMEOUT_MINUTES: int = 1
MAX_TIMEOUT_MINUTES: int = 60

DEFAULT_POLL_INTERVAL_SECONDS: int = 2
MIN_POLL_INTERVAL_SECONDS: int = 1
MAX_POLL_INTERVAL_SECONDS: int = 30

DEFAULT_LOG_LIMIT: int = 200
MAX_LOG_LIMIT: int = 1000

POLL_MODE_LOGS: str = "logs"
POLL_MODE_STATUS: str = "status"
POLL_MODES: tuple[str, ...] = (POLL_MODE_LOGS, POLL_MODE_STATUS)

CANCELLED_MESSAGE: str = "Polling was cancelled before the deployment finished"
