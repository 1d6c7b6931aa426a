"""GitHub Actions runtime context, read from ``GITHUB_*`` variables."""

from __future__ import annotations

import os
from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class GitHubContext:
    """The subset of the workflow run context the action uses.

    Attributes:
        repository: ``owner/repo``.
        ref: Git ref that triggered the run.
        sha: Commit being deployed.
        workflow: Workflow name.
        job: Job id.
        run_id: Unique workflow run id.
        run_attempt: Retry number of the run (starts at 1).
    """

    repository: str = ""
    ref: str = ""
    sha: str = ""
    workflow: str = ""
    job: str = ""
    run_id: int = 0
    run_attempt: int = 1

    @classmethod
    def from_env(cls) -> GitHubContext:
        return cls(
            repository=os.getenv("GITHUB_REPOSITORY", ""),
            ref=os.getenv("GITHUB_REF", ""),
            sha=os.getenv("GITHUB_SHA", ""),
            workflow=os.getenv("GITHUB_WORKFLOW", ""),
            job=os.getenv("GITHUB_JOB", ""),
            run_id=_int_env("GITHUB_RUN_ID", 0),
            run_attempt=_int_env("GITHUB_RUN_ATTEMPT", 1),
        )


def _int_env(name: str, default: int) -> int:
    try:
        return int(os.getenv(name, str(default)))
    except ValueError:
        return default
