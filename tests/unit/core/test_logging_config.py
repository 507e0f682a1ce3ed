"""Unit tests for structured logging setup."""

from __future__ import annotations

import json

import pytest
import structlog

from core.errors import QuarryConfigError
from core.logging_config import configure_logging, get_logger


def test_get_logger_configures_stderr_pipeline(capsys) -> None:
    """Unconfigured logging should be set up to emit JSON on stderr."""
    structlog.reset_defaults()

    get_logger("quarry.test").info("export_started", run_id="run-42")

    captured = capsys.readouterr()
    assert captured.out == ""
    assert json.loads(captured.err)["run_id"] == "run-42"


def test_configure_logging_filters_below_level(capsys) -> None:
    """Events under the configured level should be dropped."""
    configure_logging("ERROR")
    logger = get_logger("quarry.test")

    logger.info("hidden_event")
    logger.error("shown_event")
    configure_logging()

    stderr = capsys.readouterr().err
    assert "hidden_event" not in stderr and "shown_event" in stderr


def test_configure_logging_rejects_unknown_level() -> None:
    """Unknown level names should raise a config error."""
    with pytest.raises(QuarryConfigError):
        configure_logging("LOUD")
