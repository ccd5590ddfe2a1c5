import logging

import pytest

from ledger.logging_setup import _parse_level, get_logger


@pytest.mark.parametrize(
    "level,expected",
    [
        (logging.DEBUG, logging.DEBUG),
        ("warning", logging.WARNING),
        (" ERROR ", logging.ERROR),
        ("15", 15),
        ("chatty", logging.INFO),
    ],
)
def test_parse_level_explicit(level, expected, monkeypatch):
    monkeypatch.setenv("LEDGER_LOG_LEVEL", "CRITICAL")
    assert _parse_level(level) == expected


def test_parse_level_falls_back_to_env(monkeypatch):
    monkeypatch.setenv("LEDGER_LOG_LEVEL", "debug")
    assert _parse_level(None) == logging.DEBUG
    assert _parse_level("") == logging.DEBUG


def test_parse_level_default(monkeypatch):
    monkeypatch.delenv("LEDGER_LOG_LEVEL", raising=False)
    assert _parse_level(None) == logging.INFO


def test_get_logger_is_under_package_logger():
    logger = get_logger("ledger.store")
    assert logger.name == "ledger.store"
    assert logging.getLogger("ledger").handlers
