"""Idempotency key generation for deployment requests.

The key is derived from the entity being deployed and the workflow run
context, so that:

- the same commit in the same workflow/job produces the same key
  (a re-delivered request is not deployed twice);
- a retry of a failed job produces a new key (``run_attempt`` changes);
- a different workflow or job produces a new key.
"""

from __future__ import annotations

import hashlib

from enforceauth_deploy.core.context import GitHubContext

KEY_PREFIX = "gha_"
_HASH_LENGTH = 32


def generate_idempotency_key(entity_id: str, context: GitHubContext | None = None) -> str:
    """Return ``gha_<32 hex chars>`` for *entity_id* in the current run."""
    ctx = context or GitHubContext.from_env()
    components = [
        entity_id,
        ctx.sha,
        ctx.workflow,
        ctx.job,
        str(ctx.run_id),
        str(ctx.run_attempt),
    ]
    digest = hashlib.sha256(":".join(components).encode("utf-8")).hexdigest()
    return f"{KEY_PREFIX}{digest[:_HASH_LENGTH]}"


def get_idempotency_context(
    entity_id: str,
    context: GitHubContext | None = None,
) -> dict[str, object]:
    """Return the inputs of ``generate_idempotency_key`` for debug logging."""
    ctx = context or GitHubContext.from_env()
    return {
        "entity_id": entity_id,
        "sha": ctx.sha,
        "workflow": ctx.workflow,
        "job": ctx.job,
        "run_id": ctx.run_id,
        "run_attempt": ctx.run_attempt,
    }
