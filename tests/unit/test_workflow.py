"""Tests for GitHub workflow command output."""

from __future__ import annotations

import io
import logging
import os
from pathlib import Path
from unittest.mock import patch

import pytest

from enforceauth_deploy.core.workflow import (
    PACKAGE_LOGGER,
    WorkflowCommandHandler,
    configure_logging,
    escape_data,
    set_output,
    set_secret,
)


def _record(level: int, message: str) -> logging.LogRecord:
    return logging.LogRecord("enforceauth_deploy.test", level, __file__, 1, message, None, None)


class TestWorkflowCommandHandler:
    @pytest.fixture()
    def handler(self) -> WorkflowCommandHandler:
        handler = WorkflowCommandHandler(io.StringIO())
        handler.setFormatter(logging.Formatter("%(message)s"))
        return handler

    def test_info_is_plain(self, handler: WorkflowCommandHandler) -> None:
        assert handler.format(_record(logging.INFO, "hello")) == "hello"

    def test_warning(self, handler: WorkflowCommandHandler) -> None:
        assert handler.format(_record(logging.WARNING, "careful")) == "::warning::careful"

    def test_error(self, handler: WorkflowCommandHandler) -> None:
        assert handler.format(_record(logging.ERROR, "broken")) == "::error::broken"

    def test_critical_is_error(self, handler: WorkflowCommandHandler) -> None:
        assert handler.format(_record(logging.CRITICAL, "x")).startswith("::error::")

    def test_debug(self, handler: WorkflowCommandHandler) -> None:
        assert handler.format(_record(logging.DEBUG, "detail")) == "::debug::detail"

    def test_multiline_is_escaped(self, handler: WorkflowCommandHandler) -> None:
        assert handler.format(_record(logging.ERROR, "a\nb")) == "::error::a%0Ab"


class TestEscapeData:
    def test_escapes_percent_first(self) -> None:
        assert escape_data("100%\r\n") == "100%25%0D%0A"


class TestConfigureLogging:
    def test_idempotent(self) -> None:
        package_logger = logging.getLogger(PACKAGE_LOGGER)
        before = list(package_logger.handlers)
        try:
            configure_logging(io.StringIO())
            configure_logging(io.StringIO())
            added = [h for h in package_logger.handlers if isinstance(h, WorkflowCommandHandler)]
            assert len(added) == 1
            assert package_logger.propagate is False
        finally:
            package_logger.handlers = before
            package_logger.propagate = True


class TestSetOutput:
    def test_appends_heredoc_record(self, tmp_path: Path) -> None:
        output_file = tmp_path / "output"
        output_file.write_text("", encoding="utf-8")
        with patch.dict(os.environ, {"GITHUB_OUTPUT": str(output_file)}):
            set_output("run-id", "run-123")
            set_output("duration-seconds", 42)

        lines = output_file.read_text(encoding="utf-8").splitlines()
        assert lines[0].startswith("run-id<<ghadelimiter_")
        assert lines[1] == "run-123"
        assert lines[2] == lines[0].split("<<", 1)[1]
        assert lines[3].startswith("duration-seconds<<")
        assert lines[4] == "42"

    def test_without_output_file_logs(self) -> None:
        env = {k: v for k, v in os.environ.items() if k != "GITHUB_OUTPUT"}
        with (
            patch.dict(os.environ, env, clear=True),
            patch("enforceauth_deploy.core.workflow.logger") as mock_logger,
        ):
            set_output("status", "success")
        mock_logger.info.assert_called_once_with("output %s=%s", "status", "success")


class TestSetSecret:
    def test_writes_mask_command(self) -> None:
        stream = io.StringIO()
        set_secret("tok-abc", stream)
        assert stream.getvalue() == "::add-mask::tok-abc\n"

    def test_empty_value_is_ignored(self) -> None:
        stream = io.StringIO()
        set_secret("", stream)
        assert stream.getvalue() == ""
