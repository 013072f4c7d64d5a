"""Tests for logging configuration."""

from __future__ import annotations

import io
import json
import logging

import pytest

from restbridge.foundation.config import LoggingSettings
from restbridge.runtime.observability import ROOT_LOGGER, configure_logging


@pytest.fixture(autouse=True)
def restore_logger() -> object:
    root = logging.getLogger(ROOT_LOGGER)
    handlers, level = list(root.handlers), root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)


def test_json_output() -> None:
    stream = io.StringIO()
    configure_logging(format="json", level="debug", stream=stream)

    logging.getLogger("restbridge.binding").debug("ready", extra={"operations": 12})

    entry = json.loads(stream.getvalue().strip())
    assert entry["level"] == "debug"
    assert entry["logger"] == "restbridge.binding"
    assert entry["event"] == "ready"
    assert entry["operations"] == 12
    assert "ts" in entry


def test_text_output_from_settings() -> None:
    stream = io.StringIO()
    configure_logging(LoggingSettings(level="WARNING", format="text"), stream=stream)

    log = logging.getLogger("restbridge.retry")
    log.info("hidden")
    log.warning("Retry %d/%d", 1, 3)

    output = stream.getvalue()
    assert "hidden" not in output
    assert "[WARNING] restbridge.retry: Retry 1/3" in output


def test_reconfigure_replaces_handler() -> None:
    configure_logging(stream=io.StringIO())
    root = configure_logging(stream=io.StringIO())
    assert sum(1 for h in root.handlers if getattr(h, "_restbridge", False)) == 1


def test_unknown_format() -> None:
    with pytest.raises(ValueError, match="Unknown log format"):
        configure_logging(format="xml")
