"""Shared test fixtures for quicktoshl.

Provides config isolation, output state management, a manual clock for
the reference-data cache, sample Toshl payloads and a CLI runner. These
fixtures are discovered by pytest and available to every test module.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any

import pytest

from quicktoshl.output import OutputFormat, OutputManager, reset_output, set_output


# ---------------------------------------------------------------------------
# Auto-reset global output state between tests
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def _reset_output_between_tests() -> None:
    """Reset the global OutputManager after every test.

    The OutputManager caches references to sys.stdout/sys.stderr at
    creation time. When Typer's CliRunner redirects those streams the
    cached references go stale once the test finishes, so a fresh manager
    is created on next use.
    """
    yield
    reset_output()


@pytest.fixture(autouse=True)
def _reset_logging_between_tests() -> None:
    """Undo the Rich handler installed by the CLI callback.

    The callback stops propagation on the ``quicktoshl`` logger, which would
    hide records from ``caplog`` in later tests.
    """
    yield
    logger = logging.getLogger("quicktoshl")
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
    logger.propagate = True
    logger.setLevel(logging.NOTSET)


# ---------------------------------------------------------------------------
# Clock
# ---------------------------------------------------------------------------


class ManualClock:
    """A clock that only moves when told to."""

    def __init__(self, start: datetime) -> None:
        self.current = start

    def __call__(self) -> datetime:
        return self.current

    def advance(self, **kwargs: float) -> None:
        self.current += timedelta(**kwargs)


@pytest.fixture
def clock() -> ManualClock:
    return ManualClock(datetime(2024, 3, 1, 9, 0, tzinfo=timezone.utc))


# ---------------------------------------------------------------------------
# Sample Toshl payloads
# ---------------------------------------------------------------------------


@pytest.fixture
def categories_payload() -> list[dict[str, Any]]:
    return [
        {"id": "c-food", "name": "Food", "type": "expense", "deleted": False},
        {"id": "c-rent", "name": "Rent", "type": "expense", "deleted": False},
        {"id": "c-salary", "name": "Salary", "type": "income", "deleted": False},
        {"id": "c-old", "name": "Old stuff", "type": "expense", "deleted": True},
    ]


@pytest.fixture
def tags_payload() -> list[dict[str, Any]]:
    return [
        {"id": "t-lunch", "name": "lunch", "type": "expense", "category": "c-food"},
        {"id": "t-coffee", "name": "coffee", "type": "expense", "category": "c-food"},
        {"id": "t-bonus", "name": "bonus", "type": "income"},
        {"id": "t-gone", "name": "gone", "type": "expense", "deleted": True},
    ]


@pytest.fixture
def accounts_payload() -> list[dict[str, Any]]:
    return [
        {"id": "a-bank", "name": "Bank", "order": 2, "currency": {"code": "VND"}},
        {"id": "a-cash", "name": "Cash", "order": 1, "currency": {"code": "VND"}},
    ]


@pytest.fixture
def currencies_payload() -> dict[str, Any]:
    return {
        "USD": {"name": "US Dollar", "symbol": "$", "precision": 2},
        "VND": {"name": "Vietnamese Dong", "symbol": "₫", "precision": 0},
    }


@pytest.fixture
def me_payload() -> dict[str, Any]:
    return {"id": "u-1", "email": "user@example.com", "currency": {"main": "VND"}}


@pytest.fixture
def entries_payload() -> list[dict[str, Any]]:
    return [
        {
            "id": "e-1",
            "amount": -50000,
            "currency": {"code": "VND"},
            "date": "2024-03-01",
            "desc": "Cơm trưa",
            "account": "a-cash",
            "category": "c-food",
            "tags": ["t-lunch"],
        },
        {
            "id": "e-2",
            "amount": -3000000,
            "currency": {"code": "VND"},
            "date": "2024-03-02",
            "desc": "March rent",
            "account": "a-bank",
            "category": "c-rent",
            "tags": [],
            "repeat": {"frequency": "monthly", "interval": 1},
        },
        {
            "id": "e-3",
            "amount": 20000000,
            "currency": {"code": "VND"},
            "date": "2024-03-05",
            "desc": "Salary",
            "account": "a-bank",
            "category": "c-salary",
            "tags": ["t-bonus"],
        },
        {
            "id": "e-4",
            "amount": -1000000,
            "currency": {"code": "VND"},
            "date": "2024-03-06",
            "desc": "ATM",
            "account": "a-bank",
            "tags": [],
            "transaction": {"account": "a-cash", "currency": {"code": "VND"}},
        },
        {
            "id": "e-5",
            "amount": -30000,
            "currency": {"code": "VND"},
            "date": "2024-03-07",
            "desc": "Cà phê sáng",
            "account": "a-cash",
            "category": "c-food",
            "tags": ["t-coffee"],
        },
    ]


# ---------------------------------------------------------------------------
# Config isolation fixture
# ---------------------------------------------------------------------------


@pytest.fixture
def isolated_config(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Isolate configuration to a temporary directory.

    Sets XDG_CONFIG_HOME and XDG_DATA_HOME to subdirectories of tmp_path so
    that tests never touch real user config, and clears the QUICKTOSHL_*
    and TOSHL_API_KEY environment variables.

    Returns:
        The tmp_path root directory for additional file creation.
    """
    monkeypatch.setattr("quicktoshl.config._is_xdg_platform", lambda: True)
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "config"))
    monkeypatch.setenv("XDG_DATA_HOME", str(tmp_path / "data"))

    for var in ["QUICKTOSHL_BASE_URL", "QUICKTOSHL_FORCE_REFRESH", "TOSHL_API_KEY"]:
        monkeypatch.delenv(var, raising=False)

    monkeypatch.chdir(tmp_path)
    return tmp_path


# ---------------------------------------------------------------------------
# Output fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def quiet_output() -> OutputManager:
    """Install a PLAIN-format, quiet OutputManager as the global output."""
    output = OutputManager(format=OutputFormat.PLAIN, quiet=True)
    set_output(output)
    yield output
    reset_output()


# ---------------------------------------------------------------------------
# CLI runner fixture
# ---------------------------------------------------------------------------


@pytest.fixture
def cli_runner():
    """Typer CLI test runner."""
    from typer.testing import CliRunner

    return CliRunner()
