"""Shared fixtures for the post cadence planner test suite."""

from datetime import date
from unittest.mock import AsyncMock, MagicMock

import pytest

from postplanner.config import reset_settings
from postplanner.scheduling.models import Platform, PostRecord, TimeSource
from postplanner.scheduling.posting_time import TimeAssigner


# ---------------------------------------------------------------------------
# Ensure we don't hit real services or pick up local overrides
# ---------------------------------------------------------------------------
@pytest.fixture(autouse=True)
def _block_env_keys(monkeypatch):
    """Clear credentials and planner overrides so tests are hermetic."""
    keys = [
        "SUPABASE_URL",
        "SUPABASE_SERVICE_KEY",
        "PLANNER_TIMEZONE",
        "PLANNER_DEFAULT_PLATFORM",
        "PLANNER_INDUSTRY",
        "PLANNER_APPLY_CONCURRENCY",
        "PLANNER_LOG_LEVEL",
    ]
    for key in keys:
        monkeypatch.delenv(key, raising=False)


@pytest.fixture(autouse=True)
def _fresh_settings():
    """Drop the cached Settings singleton around every test."""
    reset_settings()
    yield
    reset_settings()


# ---------------------------------------------------------------------------
# Common date fixtures
# ---------------------------------------------------------------------------
@pytest.fixture
def week_start():
    """Monday 2024-01-01."""
    return date(2024, 1, 1)


@pytest.fixture
def week_end():
    """Sunday 2024-01-07."""
    return date(2024, 1, 7)


@pytest.fixture
def today():
    """Fixed operational "today" for move tests."""
    return date(2024, 3, 10)


@pytest.fixture
def assigner():
    """TimeAssigner with only the default 08:00-20:00 window."""
    return TimeAssigner()


@pytest.fixture
def fb_record():
    """A committed Facebook post on 2024-03-15 with a manually set time."""
    return PostRecord(
        date=date(2024, 3, 15),
        platform=Platform.FACEBOOK,
        starter_text="Taco Tuesday is back",
        posting_time="12:00",
        posting_time_source=TimeSource.MANUAL,
        status="generated",
        captions={"facebook": "Tacos tonight!"},
    )


# ---------------------------------------------------------------------------
# Mock Supabase client
# ---------------------------------------------------------------------------
@pytest.fixture
def mock_supabase_client():
    """A mock Supabase async client.

    ``client.table()`` is synchronous in the real client; only
    ``execute()`` is awaited.  Set ``table_mock.execute.return_value`` to
    control the response.
    """
    client = MagicMock()
    table_mock = MagicMock()
    table_mock.select.return_value = table_mock
    table_mock.insert.return_value = table_mock
    table_mock.upsert.return_value = table_mock
    table_mock.update.return_value = table_mock
    table_mock.delete.return_value = table_mock
    table_mock.eq.return_value = table_mock
    table_mock.order.return_value = table_mock
    table_mock.execute = AsyncMock(return_value=MagicMock(data=[], count=0))
    client.table.return_value = table_mock
    return client
