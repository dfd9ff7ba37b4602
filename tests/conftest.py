"""
Pytest configuration and shared fixtures for the test suite.
"""

import asyncio
import tempfile
from pathlib import Path
from typing import Generator, Optional

import pytest

from thoughtpolice.data_acquisition.reddit import RedditAcquisition
from thoughtpolice.foundation.config import IngestionConfig

from factories import (
    FakeClock,
    FakeScoring,
    FakeSource,
    RecordingSleep,
    make_client,
    make_history,
)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def no_sleep() -> RecordingSleep:
    return RecordingSleep()


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for test files."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def fast_ingestion() -> IngestionConfig:
    return IngestionConfig(page_delay=1.0)


@pytest.fixture
def reddit_factory(clock, no_sleep, fast_ingestion):
    """Build a RedditAcquisition whose HTTP layer is served by ``handler``."""

    def factory(handler, ingestion: Optional[IngestionConfig] = None) -> RedditAcquisition:
        return RedditAcquisition(
            http=make_client(handler),
            ingestion=ingestion or fast_ingestion,
            sleep=no_sleep,
            clock=clock
        )

    return factory


@pytest.fixture
def fake_source() -> FakeSource:
    return FakeSource({"alice": make_history("alice")})


@pytest.fixture
def fake_scoring() -> FakeScoring:
    return FakeScoring()


@pytest.fixture
def cancel_event() -> asyncio.Event:
    return asyncio.Event()


def pytest_configure(config):
    """Configure pytest with custom markers."""
    config.addinivalue_line(
        "markers", "unit: mark test as a unit test"
    )
    config.addinivalue_line(
        "markers", "integration: mark test as an integration test"
    )
    config.addinivalue_line(
        "markers", "slow: mark test as slow running"
    )
