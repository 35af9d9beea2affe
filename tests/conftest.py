"""Pytest configuration and shared fixtures."""

import pytest
import structlog

from tter.events import EventEmitter


def pytest_configure(config):
    """Configure pytest markers."""
    config.addinivalue_line("markers", "slow: mark test as slow running")


@pytest.fixture
def emitter():
    return EventEmitter()


@pytest.fixture(autouse=True)
def _reset_structlog():
    yield
    structlog.reset_defaults()
