"""OIDC token acquisition and exchange.

Handles:
1. Acquiring an OIDC token from the GitHub Actions runtime.
2. Exchanging it for an EnforceAuth access token via RFC 8693:

   - grant_type: ``urn:ietf:params:oauth:grant-type:token-exchange``
   - subject_token: GitHub OIDC JWT
   - subject_token_type: ``urn:ietf:params:oauth:token-type:jwt``
   - requested_token_type: ``urn:ietf:params:oauth:token-type:access_token``

No long-lived API key is ever handled by the workflow.
"""

from __future__ import annotations

import contextlib
import logging
import os
from dataclasses import dataclass
from typing import TYPE_CHECKING

import httpx
from pydantic import ValidationError as PydanticValidationError

from enforceauth_deploy.core.constants import (
    DEFAULT_REQUEST_TIMEOUT_SECONDS,
    TOKEN_EXCHANGE_PATH,
)
from enforceauth_deploy.core.exceptions import PermanentError
from enforceauth_deploy.core.workflow import set_secret
from enforceauth_deploy.models.api import TokenExchangeErrorBody, TokenExchangeResponse

if TYPE_CHECKING:
    from contextlib import AbstractContextManager

logger = logging.getLogger(__name__)

TOKEN_EXCHANGE_GRANT_TYPE = "urn:ietf:params:oauth:grant-type:token-exchange"
TOKEN_TYPE_JWT = "urn:ietf:params:oauth:token-type:jwt"
TOKEN_TYPE_ACCESS_TOKEN = "urn:ietf:params:oauth:token-type:access_token"

_REMEDIATION = {
    "invalid_grant": (
        "Token validation failed: {detail}. Check that your trust policy is configured correctly."
    ),
    "unauthorized_client": (
        "No matching trust policy: {detail}. "
        "Configure a trust policy for your repository and branch."
    ),
    "access_denied": (
        "Access denied: {detail}. "
        "The entity may not be accessible with the configured trust policy."
    ),
}


class OIDCError(PermanentError):
    """Raised when a GitHub OIDC token cannot be acquired."""

    default_stage = "oidc"
    default_code = "OIDC_TOKEN_UNAVAILABLE"


class TokenExchangeError(PermanentError):
    """Raised when the EnforceAuth token exchange fails."""

    default_stage = "oidc"
    default_code = "TOKEN_EXCHANGE_FAILED"


@dataclass(frozen=True, slots=True)
class OIDCExchangeResult:
    """EnforceAuth access token and its lifetime in seconds."""

    access_token: str
    expires_in: int


def _http_scope(client: httpx.Client | None) -> AbstractContextManager[httpx.Client]:
    if client is not None:
        return contextlib.nullcontext(client)
    return httpx.Client(timeout=DEFAULT_REQUEST_TIMEOUT_SECONDS)


def get_github_oidc_token(audience: str, *, client: httpx.Client | None = None) -> str:
    """Acquire a GitHub OIDC token for *audience*.

    Requires the workflow to grant ``permissions: id-token: write``.

    Raises:
        OIDCError: If the runtime does not expose the token endpoint or the
            request fails.
    """
    request_url = os.getenv("ACTIONS_ID_TOKEN_REQUEST_URL", "")
    request_token = os.getenv("ACTIONS_ID_TOKEN_REQUEST_TOKEN", "")
    if not request_url or not request_token:
        msg = (
            "Failed to get GitHub OIDC token. Ensure your workflow has "
            '"permissions: id-token: write" configured.'
        )
        raise OIDCError(msg)

    logger.debug("Requesting GitHub OIDC token | audience=%s", audience)
    try:
        with _http_scope(client) as http:
            response = http.get(
                request_url,
                params={"audience": audience},
                headers={"Authorization": f"Bearer {request_token}"},
            )
            response.raise_for_status()
            token = response.json().get("value", "")
    except (httpx.HTTPError, ValueError) as exc:
        msg = f"Failed to get GitHub OIDC token: {exc}"
        raise OIDCError(msg) from exc

    if not token:
        msg = "Failed to get GitHub OIDC token: GitHub OIDC token is empty"
        raise OIDCError(msg)

    logger.debug("Successfully acquired GitHub OIDC token")
    return str(token)


def exchange_token(
    api_url: str,
    github_token: str,
    entity_id: str,
    *,
    client: httpx.Client | None = None,
) -> OIDCExchangeResult:
    """Exchange a GitHub OIDC JWT for an EnforceAuth access token.

    Raises:
        TokenExchangeError: If the exchange is rejected or the response is
            unusable.
    """
    token_endpoint = f"{api_url.rstrip('/')}{TOKEN_EXCHANGE_PATH}"
    logger.debug("Exchanging token | endpoint=%s", token_endpoint)

    form = {
        "grant_type": TOKEN_EXCHANGE_GRANT_TYPE,
        "subject_token": github_token,
        "subject_token_type": TOKEN_TYPE_JWT,
        "requested_token_type": TOKEN_TYPE_ACCESS_TOKEN,
        "entity_id": entity_id,
    }

    try:
        with _http_scope(client) as http:
            response = http.post(
                token_endpoint,
                data=form,
                headers={"Accept": "application/json"},
            )
    except httpx.HTTPError as exc:
        msg = f"Token exchange failed: {exc}"
        raise TokenExchangeError(msg) from exc

    if response.is_error:
        msg = f"Token exchange failed: {_describe_exchange_error(response)}"
        raise TokenExchangeError(msg)

    try:
        body = TokenExchangeResponse.model_validate_json(response.text)
    except PydanticValidationError as exc:
        msg = "Token exchange returned invalid JSON response"
        raise TokenExchangeError(msg) from exc

    if not body.access_token:
        msg = "Token exchange response missing access_token"
        raise TokenExchangeError(msg)

    logger.debug("Token exchange successful | expires_in=%ds", body.expires_in)
    return OIDCExchangeResult(access_token=body.access_token, expires_in=body.expires_in)


def _describe_exchange_error(response: httpx.Response) -> str:
    """Turn an RFC 6749 error body into an actionable message."""
    try:
        body = TokenExchangeErrorBody.model_validate_json(response.text)
    except PydanticValidationError:
        return f"HTTP {response.status_code}: {response.text}"

    detail = body.error_description or body.error or "Unknown error"
    template = _REMEDIATION.get(body.error)
    return template.format(detail=detail) if template else detail


def authenticate(
    api_url: str,
    entity_id: str,
    *,
    client: httpx.Client | None = None,
) -> str:
    """Run the full OIDC flow and return a masked EnforceAuth access token."""
    logger.info("Authenticating with EnforceAuth using OIDC...")

    github_token = get_github_oidc_token(api_url, client=client)
    result = exchange_token(api_url, github_token, entity_id, client=client)
    set_secret(result.access_token)

    logger.info("Successfully authenticated with EnforceAuth")
    return result.access_token
