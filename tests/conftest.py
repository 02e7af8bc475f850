"""Pytest configuration for the docrelay test suite.

Key Principles:
- Core tests never touch the network: deliveries go to a recording channel
- Mock the logger when asserting on observability output
- Each test gets a fresh actor
"""

import sys
from pathlib import Path

import pytest
from unittest.mock import MagicMock

# tests directory (for fixtures.*)
tests_root = Path(__file__).parent
if str(tests_root) not in sys.path:
    sys.path.insert(0, str(tests_root))

from fixtures import RecordingChannel  # noqa: E402

from docrelay import Actor  # noqa: E402


@pytest.fixture
def mock_logger():
    """Create a mock logger for testing.

    ``bind`` returns the same mock so component loggers can be asserted on.
    """
    logger = MagicMock()
    logger.info = MagicMock()
    logger.debug = MagicMock()
    logger.warning = MagicMock()
    logger.error = MagicMock()
    logger.bind = MagicMock(return_value=logger)
    return logger


@pytest.fixture
def channel() -> RecordingChannel:
    return RecordingChannel()


@pytest.fixture
def actor(channel, mock_logger) -> Actor:
    """Actor wired to the recording channel."""
    return Actor("http://actor.test", channel=channel, logger=mock_logger)


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers", "unit: Unit tests (may use mocks)"
    )
    config.addinivalue_line(
        "markers", "integration: Tests that exercise the HTTP gateway end to end"
    )
