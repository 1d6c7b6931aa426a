"""GitHub Actions workflow commands.

The runner interprets specially formatted stdout lines (``::warning::``,
``::add-mask::`` ...) and an append-only ``$GITHUB_OUTPUT`` file. This
module is the only place that knows those formats:

- ``WorkflowCommandHandler`` renders ``logging`` records as workflow
  commands, so the rest of the package logs with plain ``logging`` calls.
- ``set_output`` / ``set_secret`` publish step outputs and mask secrets.
- ``configure_logging`` wires the handler onto the package logger.

Reference:
    https://docs.github.com/actions/reference/workflow-commands-for-github-actions
"""

from __future__ import annotations

import logging
import os
import sys
import uuid
from typing import TextIO

logger = logging.getLogger(__name__)

PACKAGE_LOGGER = "enforceauth_deploy"


def escape_data(value: str) -> str:
    """Escape a command message so multi-line text stays one command."""
    return value.replace("%", "%25").replace("\r", "%0D").replace("\n", "%0A")


class WorkflowCommandHandler(logging.StreamHandler):  # type: ignore[type-arg]
    """Render log records as GitHub workflow commands.

    ``DEBUG`` → ``::debug::``, ``WARNING`` → ``::warning::``,
    ``ERROR``/``CRITICAL`` → ``::error::``; ``INFO`` is written verbatim.
    """

    def __init__(self, stream: TextIO | None = None) -> None:
        super().__init__(stream or sys.stdout)

    def format(self, record: logging.LogRecord) -> str:
        message = super().format(record)
        if record.levelno >= logging.ERROR:
            return f"::error::{escape_data(message)}"
        if record.levelno >= logging.WARNING:
            return f"::warning::{escape_data(message)}"
        if record.levelno >= logging.INFO:
            return message
        return f"::debug::{escape_data(message)}"


def configure_logging(stream: TextIO | None = None) -> logging.Logger:
    """Attach a ``WorkflowCommandHandler`` to the package logger (idempotent).

    Debug records are always emitted as ``::debug::`` commands; the runner
    only displays them when step debug logging is enabled.
    """
    package_logger = logging.getLogger(PACKAGE_LOGGER)
    for handler in package_logger.handlers:
        if isinstance(handler, WorkflowCommandHandler):
            return package_logger

    handler = WorkflowCommandHandler(stream)
    handler.setFormatter(logging.Formatter("%(message)s"))
    package_logger.addHandler(handler)
    package_logger.setLevel(logging.DEBUG)
    package_logger.propagate = False
    return package_logger


def set_output(name: str, value: object) -> None:
    """Publish a step output.

    Appends a heredoc-style record to ``$GITHUB_OUTPUT``. Outside a runner
    (no ``GITHUB_OUTPUT``) the value is logged instead.
    """
    text = str(value)
    output_path = os.getenv("GITHUB_OUTPUT", "")
    if not output_path:
        logger.info("output %s=%s", name, text)
        return

    delimiter = f"ghadelimiter_{uuid.uuid4()}"
    with open(output_path, "a", encoding="utf-8") as fh:
        fh.write(f"{name}<<{delimiter}\n{text}\n{delimiter}\n")


def set_secret(value: str, stream: TextIO | None = None) -> None:
    """Register *value* with the runner so it is masked in all logs."""
    if not value:
        return
    out = stream or sys.stdout
    out.write(f"::add-mask::{escape_data(value)}\n")
    out.flush()
