"""Tests for setup_logging."""

from __future__ import annotations

import json
import logging

import pytest
import structlog

from reachvet.core.logging import setup_logging


@pytest.fixture(autouse=True)
def _reset_logging():
    yield
    structlog.reset_defaults()
    logging.getLogger().handlers.clear()


def test_level_from_env(monkeypatch):
    monkeypatch.setenv("REACHVET_LOG_LEVEL", "debug")
    setup_logging()
    assert logging.getLogger("reachvet").level == logging.DEBUG


def test_explicit_level_wins(monkeypatch):
    monkeypatch.setenv("REACHVET_LOG_LEVEL", "DEBUG")
    setup_logging(level="warning")
    assert logging.getLogger("reachvet").level == logging.WARNING


def test_json_output_goes_to_stderr(capsys):
    setup_logging(level="INFO", fmt="json")
    structlog.get_logger("reachvet.test").info("cache.loaded", entries=3)

    captured = capsys.readouterr()
    assert captured.out == ""
    record = json.loads(captured.err.strip().splitlines()[-1])
    assert record["event"] == "cache.loaded"
    assert record["entries"] == 3
    assert record["level"] == "info"
    assert record["logger"] == "reachvet.test"
