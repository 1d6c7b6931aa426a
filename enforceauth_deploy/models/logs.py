"""Pydantic models for pipeline log entries and their metadata actions.

A log entry's ``metadata`` is a loosely structured payload whose shape is
determined by its ``action`` field. Rather than probing it field-by-field
at every use site, ``decode_action()`` turns it into exactly one of the
tagged payload models below:

- ``PhaseChangeAction``: ``report_phase_change_success``
- ``PipelineCompleteAction``: ``pipeline_complete``
- ``PipelineFailedAction``: ``pipeline_failed`` / ``pipeline_error``
- ``ActionPayload``: anything else (including no action at all)

Every variant carries the common optional ``timestamp``, ``message`` and
``error`` fields. Payloads that do not validate against their variant
degrade to the generic ``ActionPayload`` so a malformed entry never aborts
a poll session.
"""

from __future__ import annotations

import logging
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from enforceauth_deploy.core.constants import (
    ACTION_PHASE_CHANGE,
    ACTION_PIPELINE_COMPLETE,
    ACTION_PIPELINE_ERROR,
    ACTION_PIPELINE_FAILED,
)

logger = logging.getLogger(__name__)


class LogEntry(BaseModel):
    """One observation from the remote pipeline log stream.

    Attributes:
        timestamp: Producer-assigned ISO 8601 instant (not monotonic).
        level: Severity label; compare via ``normalized_level``.
        message: Free-text, human-readable message.
        metadata: Optional structured payload (see ``decode_action``).
    """

    model_config = ConfigDict(frozen=True, extra="ignore")

    timestamp: str = ""
    level: str = "info"
    message: str = ""
    metadata: dict[str, Any] | None = None

    @field_validator("timestamp", "level", "message", mode="before")
    @classmethod
    def _coerce_text(cls, value: object) -> str:
        if value is None:
            return ""
        return value if isinstance(value, str) else str(value)

    @field_validator("metadata", mode="before")
    @classmethod
    def _drop_non_mapping(cls, value: object) -> object:
        if isinstance(value, dict):
            return value
        if value is not None:
            logger.debug("Ignoring non-object log metadata | type=%s", type(value).__name__)
        return None

    @property
    def normalized_level(self) -> str:
        """Lower-cased, stripped severity label."""
        return self.level.strip().lower()

    @property
    def action_name(self) -> str:
        """The raw metadata ``action`` discriminator, or ``""``."""
        if not self.metadata:
            return ""
        action = self.metadata.get("action")
        return action if isinstance(action, str) else ""


# ---------------------------------------------------------------------------
# Tagged metadata payloads
# ---------------------------------------------------------------------------


class ActionPayload(BaseModel):
    """Fields shared by every metadata action, and the fallback variant."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    action: str = ""
    timestamp: str | None = None
    message: str | None = None
    error: str | None = None


class PhaseChangeDetails(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore")

    phase: str = ""


class PhaseChangeAction(ActionPayload):
    """A pipeline phase started."""

    action: Literal["report_phase_change_success"] = "report_phase_change_success"
    details: PhaseChangeDetails = Field(default_factory=PhaseChangeDetails)


class PipelineCompleteDetails(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore")

    bundle_version: str | None = None
    deployment_url: str | None = None


class PipelineCompleteAction(ActionPayload):
    """The pipeline finished successfully."""

    action: Literal["pipeline_complete"] = "pipeline_complete"
    duration_ms: float | None = None
    details: PipelineCompleteDetails = Field(default_factory=PipelineCompleteDetails)


class PipelineFailedAction(ActionPayload):
    """The pipeline reported a failure."""

    action: Literal["pipeline_failed", "pipeline_error"] = "pipeline_failed"


LogAction = PhaseChangeAction | PipelineCompleteAction | PipelineFailedAction | ActionPayload

_ACTION_MODELS: dict[str, type[ActionPayload]] = {
    ACTION_PHASE_CHANGE: PhaseChangeAction,
    ACTION_PIPELINE_COMPLETE: PipelineCompleteAction,
    ACTION_PIPELINE_FAILED: PipelineFailedAction,
    ACTION_PIPELINE_ERROR: PipelineFailedAction,
}


def decode_action(metadata: dict[str, Any] | None) -> LogAction:
    """Decode a metadata payload into its tagged action variant.

    Args:
        metadata: The entry's raw ``metadata`` dict, or ``None``.

    Returns:
        The variant selected by ``metadata["action"]``. Unknown or missing
        actions, and payloads that fail validation, yield an
        ``ActionPayload`` carrying whichever common fields are usable.
    """
    if not metadata:
        return ActionPayload()

    action = metadata.get("action")
    model = _ACTION_MODELS.get(action) if isinstance(action, str) else None
    if model is not None:
        try:
            return model.model_validate(metadata)
        except ValidationError as exc:
            logger.debug(
                "Malformed metadata for action | action=%s | errors=%d",
                action,
                exc.error_count(),
            )
            bad_keys = {err["loc"][0] for err in exc.errors() if err["loc"]}

        # Drop the offending fields and keep the action's meaning.
        cleaned = {key: value for key, value in metadata.items() if key not in bad_keys}
        try:
            return model.model_validate(cleaned)
        except ValidationError:
            logger.debug("Falling back to generic metadata | action=%s", action)

    return _generic_payload(metadata)


def _generic_payload(metadata: dict[str, Any]) -> ActionPayload:
    """Keep only the common string fields that are actually strings."""
    usable = {
        key: value
        for key, value in metadata.items()
        if key in ("action", "timestamp", "message", "error") and isinstance(value, str)
    }
    return ActionPayload.model_validate(usable)
