"""Deployment completion polling.

- poll_for_completion: Log-stream poller (default mode)
- poll_status_for_completion: Status-endpoint poller (``poll-mode: status``)
- ProgressReporter: Verbosity-filtered live narration
"""

from enforceauth_deploy.polling.log_poller import LogPollSession, poll_for_completion
from enforceauth_deploy.polling.reporter import ProgressReporter
from enforceauth_deploy.polling.status_poller import BackoffConfig, poll_status_for_completion

__all__ = [
    "BackoffConfig",
    "LogPollSession",
    "ProgressReporter",
    "poll_for_completion",
    "poll_status_for_completion",
]
