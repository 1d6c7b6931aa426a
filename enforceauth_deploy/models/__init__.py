"""Data models and schemas.

Defines the data structures used throughout the action:
- LogEntry: One pipeline log observation, with tagged metadata actions
- PollingResult: Terminal outcome of a poll session
- DeploymentStatus: Status-endpoint payload
"""

from enforceauth_deploy.models.logs import (
    ActionPayload,
    LogEntry,
    PhaseChangeAction,
    PipelineCompleteAction,
    PipelineFailedAction,
    decode_action,
)
from enforceauth_deploy.models.polling import (
    LogVerbosity,
    PhaseTiming,
    PollingConfig,
    PollingResult,
    PollStatus,
)

__all__ = [
    "ActionPayload",
    "LogEntry",
    "LogVerbosity",
    "PhaseChangeAction",
    "PhaseTiming",
    "PipelineCompleteAction",
    "PipelineFailedAction",
    "PollStatus",
    "PollingConfig",
    "PollingResult",
    "decode_action",
]
