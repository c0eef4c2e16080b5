"""
Pytest Configuration and Fixtures.

This file configures pytest and provides shared fixtures for all tests.
"""
import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest
from loguru import logger

# Add project root to path
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from carddown.cards import card_id  # noqa: E402
from carddown.config import get_settings  # noqa: E402
from carddown.models import Card, CardEntry, CardState  # noqa: E402


def pytest_configure(config):
    """Configure pytest markers."""
    config.addinivalue_line("markers", "unit: Unit tests")
    config.addinivalue_line("markers", "smoke: Smoke tests for CLI commands")


def pytest_collection_modifyitems(config, items):
    """Automatically mark tests based on their location."""
    for item in items:
        # Mark based on test file location
        if "unit" in str(item.fspath):
            item.add_marker(pytest.mark.unit)
        elif "smoke" in str(item.fspath):
            item.add_marker(pytest.mark.smoke)


@pytest.fixture(scope="session")
def project_root():
    """Return the project root directory."""
    return PROJECT_ROOT


@pytest.fixture
def now():
    """A fixed, timezone-aware 'now' for time arithmetic."""
    return datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def log_messages():
    """Collect loguru messages emitted during a test."""
    messages = []
    handler_id = logger.add(lambda message: messages.append(message.record), level="DEBUG")
    yield messages
    logger.remove(handler_id)


@pytest.fixture
def settings(tmp_path, monkeypatch):
    """Settings pointing at a temporary data directory."""
    data_dir = tmp_path / "data"
    monkeypatch.setenv("CARDDOWN_DATA_DIR", str(data_dir))
    get_settings.cache_clear()
    yield get_settings()
    get_settings.cache_clear()


def _make_card(prompt: str = "foo", response: str = "bar", tags=(), file="notes.md", line=0) -> Card:
    """Build a card the way the parser would for a one-line card."""
    return Card(
        id=card_id(f"{prompt}:{response}"),
        file=Path(file),
        line=line,
        prompt=prompt,
        response=[response],
        tags=set(tags),
    )


def _make_entry(
    prompt: str = "foo",
    tags=(),
    last_revised: datetime | None = None,
    interval: int = 0,
    leech: bool = False,
    orphan: bool = False,
) -> CardEntry:
    return CardEntry(
        card=_make_card(prompt, tags=tags),
        state=CardState(interval=interval),
        added=datetime(2012, 12, 12, 12, 12, 12, tzinfo=timezone.utc),
        last_revised=last_revised,
        leech=leech,
        orphan=orphan,
    )


@pytest.fixture
def sample_entries(now):
    """Two entries, one orphaned and one leech, as stored on disk."""
    return [
        CardEntry(
            card=_make_card("foo", tags={"foo"}, file="foo"),
            added=datetime(2012, 12, 12, 12, 12, 12, tzinfo=timezone.utc),
            orphan=True,
            revise_count=1,
        ),
        CardEntry(
            card=_make_card("baz", tags={"baz"}, file="baz"),
            added=datetime(2011, 11, 11, 11, 11, 11, tzinfo=timezone.utc),
            last_revised=now - timedelta(days=3),
            leech=True,
            revise_count=2,
        ),
    ]


@pytest.fixture
def make_card():
    return _make_card


@pytest.fixture
def make_entry():
    return _make_entry
