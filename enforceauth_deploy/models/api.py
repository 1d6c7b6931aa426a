"""Pydantic models for EnforceAuth API payloads.

These mirror the JSON bodies returned by the API. Unknown fields are
ignored so additive server changes never break the client.
"""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict


class DeployResponse(BaseModel):
    """Body of ``POST /v1/entities/{id}/policies/deploy``."""

    model_config = ConfigDict(extra="ignore")

    run_id: str
    message: str = ""


class DeploymentStatus(BaseModel):
    """Body of ``GET /v1/deployments/{run_id}`` (``deployment`` key)."""

    model_config = ConfigDict(extra="ignore")

    run_id: str
    entity_id: str = ""
    trigger_source: str = ""
    user_id: str = ""
    repository_url: str | None = None
    branch: str | None = None
    commit_sha: str | None = None
    commit_message: str | None = None
    status: Literal["pending", "in_progress", "success", "failed", "timeout"]
    current_phase: str | None = None
    started_at: str | None = None
    completed_at: str | None = None
    timeout_at: str | None = None
    error_message: str | None = None
    error_phase: str | None = None
    duration_ms: int | None = None
    metadata: dict[str, Any] | None = None


class TokenExchangeResponse(BaseModel):
    """RFC 8693 token exchange success response."""

    model_config = ConfigDict(extra="ignore")

    access_token: str = ""
    issued_token_type: str = ""
    token_type: str = ""
    expires_in: int = 0


class TokenExchangeErrorBody(BaseModel):
    """RFC 8693 / RFC 6749 error response."""

    model_config = ConfigDict(extra="ignore")

    error: str = ""
    error_description: str | None = None
