"""
Shared pytest configuration and fixtures for constituent-vote-tally.

This module provides common test fixtures and utilities used across
all test modules.
"""

import sys
from pathlib import Path

import pytest

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from roster.constituent import Constituent  # noqa: E402
from roster.csv_configuration import CSVConfiguration  # noqa: E402


@pytest.fixture
def sample_constituents():
    """Provide a small roster with names, a tag and an identifier-only voter."""
    return [
        Constituent(identifier="s123", name="Alice", tag="board"),
        Constituent(identifier="s456", name="Bob"),
        Constituent(identifier="s789", name="Charlie", tag="staff"),
        Constituent(identifier="s999"),
    ]


@pytest.fixture
def sample_options():
    """Provide option keys in column order."""
    return ["Budget", "Bylaws", "Chair"]


@pytest.fixture
def default_config():
    return CSVConfiguration.default()


@pytest.fixture
def smkid_config():
    return CSVConfiguration.smkid()


def pytest_configure(config):
    """Configure pytest with custom markers."""
    config.addinivalue_line(
        "markers", "unit: marks tests as unit tests (fast, no external dependencies)"
    )
    config.addinivalue_line(
        "markers",
        "integration: marks tests as integration tests (roster, ballots and tally together)",
    )
    config.addinivalue_line(
        "markers", "invariant: marks tests as counting invariant validation"
    )
    config.addinivalue_line(
        "markers", "smoke: marks tests as smoke tests (basic functionality check)"
    )
