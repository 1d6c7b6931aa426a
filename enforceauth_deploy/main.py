"""Action entry point: inputs → auth → trigger → poll → outputs.

This module is purely the wiring layer between the GitHub Actions runtime
and the package. It is also the single boundary where exceptions become a
failed step: everything below it either returns data (the pollers) or
raises a ``DeployError`` subclass.

Steps:
1. Load and validate inputs (``INPUT_*`` variables, CLI overrides on top)
2. Derive the idempotency key from the workflow run context
3. Authenticate via GitHub OIDC → EnforceAuth token exchange
4. Trigger the deployment (skipped in dry-run mode)
5. Poll until completion (log stream or status endpoint)
6. Publish outputs (run-id, status, duration-seconds, bundle-version,
   deployment-url, phases)
"""

from __future__ import annotations

import argparse
import json
import logging
import os
import signal
import sys
import threading
import time
from typing import TYPE_CHECKING

from enforceauth_deploy import __version__
from enforceauth_deploy.api.client import EnforceAuthClient
from enforceauth_deploy.core.config import ActionConfig, input_env_name
from enforceauth_deploy.core.constants import DEFAULT_FAILURE_MESSAGE, POLL_MODE_STATUS
from enforceauth_deploy.core.context import GitHubContext
from enforceauth_deploy.core.exceptions import DeployError
from enforceauth_deploy.core.idempotency import generate_idempotency_key, get_idempotency_context
from enforceauth_deploy.core.oidc import authenticate
from enforceauth_deploy.core.workflow import configure_logging, set_output
from enforceauth_deploy.polling.log_poller import poll_for_completion
from enforceauth_deploy.polling.reporter import ProgressReporter
from enforceauth_deploy.polling.status_poller import BackoffConfig, poll_status_for_completion

if TYPE_CHECKING:
    from collections.abc import Callable, MutableMapping, Sequence

    from enforceauth_deploy.api.base import DeploymentApi
    from enforceauth_deploy.models.polling import PollingResult

logger = logging.getLogger("enforceauth_deploy.main")

# CLI flag dest → action input name.
_OVERRIDES = {
    "entity_id": "entity-id",
    "api_url": "api-url",
    "timeout_minutes": "timeout-minutes",
    "poll_interval_seconds": "poll-interval-seconds",
    "log_verbosity": "log-verbosity",
    "log_limit": "log-limit",
    "poll_mode": "poll-mode",
}


# ---------------------------------------------------------------------------
# Command line
# ---------------------------------------------------------------------------


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="enforceauth-deploy",
        description=(
            "Deploy EnforceAuth policies from GitHub Actions. Inputs are read "
            "from INPUT_* variables; flags override them for local runs."
        ),
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("--entity-id", dest="entity_id", help="EnforceAuth entity to deploy.")
    parser.add_argument("--api-url", dest="api_url", help="EnforceAuth API base URL.")
    parser.add_argument(
        "--timeout-minutes",
        dest="timeout_minutes",
        type=int,
        help="Polling timeout in minutes (1-60).",
    )
    parser.add_argument(
        "--poll-interval-seconds",
        dest="poll_interval_seconds",
        type=int,
        help="Delay between polls in seconds (1-30).",
    )
    parser.add_argument(
        "--log-verbosity",
        dest="log_verbosity",
        choices=("none", "quiet", "normal", "verbose"),
        help="Live progress narration level.",
    )
    parser.add_argument(
        "--log-limit",
        dest="log_limit",
        type=int,
        help="Maximum log entries fetched per poll (1-1000).",
    )
    parser.add_argument(
        "--poll-mode",
        dest="poll_mode",
        choices=("logs", "status"),
        help="Follow the pipeline log stream or the status endpoint.",
    )
    parser.add_argument(
        "--dry-run",
        dest="dry_run",
        action="store_true",
        default=None,
        help="Authenticate but do not trigger a deployment.",
    )
    parser.add_argument(
        "--no-wait",
        dest="wait_for_completion",
        action="store_false",
        default=None,
        help="Return as soon as the deployment is triggered.",
    )
    return parser


def apply_overrides(args: argparse.Namespace, environ: MutableMapping[str, str]) -> None:
    """Write explicitly given CLI flags into *environ* as ``INPUT_*`` values.

    Flags go through the same parsing and validation as action inputs.
    """
    for dest, input_name in _OVERRIDES.items():
        value = getattr(args, dest, None)
        if value is not None:
            environ[input_env_name(input_name)] = str(value)
    if args.dry_run is not None:
        environ[input_env_name("dry-run")] = "true"
    if args.wait_for_completion is not None:
        environ[input_env_name("wait-for-completion")] = "false"


# ---------------------------------------------------------------------------
# Run
# ---------------------------------------------------------------------------


def _log_context(config: ActionConfig, context: GitHubContext) -> None:
    logger.info("EnforceAuth Deploy Action")
    logger.info("=========================")
    logger.info("Entity: %s", config.entity_id)
    logger.info("API URL: %s", config.api_url)
    logger.info("Wait for completion: %s", str(config.wait_for_completion).lower())
    logger.info("Timeout: %d minutes", config.timeout_minutes)
    logger.info("Dry run: %s", str(config.dry_run).lower())
    logger.info("Poll mode: %s", config.poll_mode)
    logger.info("")
    logger.info("GitHub Context:")
    logger.info("  Repository: %s", context.repository)
    logger.info("  Ref: %s", context.ref)
    logger.info("  SHA: %s", context.sha)
    logger.info("  Workflow: %s", context.workflow)
    logger.info("  Job: %s", context.job)
    logger.info("  Run ID: %d", context.run_id)
    logger.info("  Run Attempt: %d", context.run_attempt)
    logger.info("")


def _wait_for_result(
    client: DeploymentApi,
    config: ActionConfig,
    run_id: str,
    cancel: threading.Event | None,
) -> PollingResult:
    reporter = ProgressReporter(config.log_verbosity)
    if config.poll_mode == POLL_MODE_STATUS:
        return poll_status_for_completion(
            client,
            run_id,
            config.timeout_minutes,
            BackoffConfig(initial_delay_ms=config.poll_interval_seconds * 1000),
            reporter=reporter,
            cancel=cancel,
        )
    return poll_for_completion(
        client,
        config.entity_id,
        run_id,
        config.timeout_minutes,
        config.polling_config(),
        reporter=reporter,
        cancel=cancel,
    )


def run(
    config: ActionConfig,
    *,
    context: GitHubContext | None = None,
    clock: Callable[[], float] = time.monotonic,
    cancel: threading.Event | None = None,
) -> int:
    """Execute the action and return the process exit code (0 or 1)."""
    start = clock()
    ctx = context or GitHubContext.from_env()

    def wall_seconds() -> int:
        return round(clock() - start)

    try:
        _log_context(config, ctx)

        idempotency_key = generate_idempotency_key(config.entity_id, ctx)
        logger.debug("Idempotency key: %s", idempotency_key)
        logger.debug(
            "Idempotency context: %s",
            json.dumps(get_idempotency_context(config.entity_id, ctx)),
        )

        access_token = authenticate(config.api_url, config.entity_id)

        with EnforceAuthClient(config.api_url, access_token) as client:
            if config.dry_run:
                logger.info("Dry run mode enabled - skipping actual deployment")
                set_output("run-id", "dry-run")
                set_output("status", "dry-run")
                set_output("duration-seconds", wall_seconds())
                return 0

            run_id = client.trigger_deployment(
                config.entity_id,
                idempotency_key,
                commit_sha=ctx.sha,
            )
            set_output("run-id", run_id)

            if not config.wait_for_completion:
                logger.info("Deployment triggered successfully (not waiting for completion)")
                set_output("status", "pending")
                set_output("duration-seconds", wall_seconds())
                return 0

            result = _wait_for_result(client, config, run_id, cancel)

        set_output("status", result.status.value)
        if result.duration_ms is not None:
            set_output("duration-seconds", round(result.duration_ms / 1000))
        else:
            set_output("duration-seconds", wall_seconds())
        if result.bundle_version:
            set_output("bundle-version", result.bundle_version)
        if result.deployment_url:
            set_output("deployment-url", result.deployment_url)
        set_output("phases", ",".join(result.phases))

        if result.is_failed:
            logger.error("Deployment failed: %s", result.error_message or DEFAULT_FAILURE_MESSAGE)
            return 1
        return 0

    except DeployError as exc:
        logger.error("%s", exc)
        logger.debug("error=%s", json.dumps(exc.to_error_dict()))
        set_output("duration-seconds", wall_seconds())
        return 1
    except Exception as exc:
        logger.error("%s", exc)
        set_output("duration-seconds", wall_seconds())
        return 1


def _install_cancel_handlers(cancel: threading.Event) -> None:
    """Set *cancel* when the runner interrupts the step (job cancelled)."""

    def _handler(signum: int, _frame: object) -> None:
        logger.warning("Received signal %d, stopping poll", signum)
        cancel.set()

    for sig in (signal.SIGINT, signal.SIGTERM):
        signal.signal(sig, _handler)


def main(argv: Sequence[str] | None = None) -> None:
    args = build_parser().parse_args(argv)
    configure_logging()
    apply_overrides(args, os.environ)

    try:
        config = ActionConfig.from_env()
    except DeployError as exc:
        logger.error("%s", exc)
        sys.exit(1)

    cancel = threading.Event()
    _install_cancel_handlers(cancel)
    sys.exit(run(config, cancel=cancel))
