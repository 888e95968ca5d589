"""Shared test fixtures and configuration for backend tests."""
from datetime import datetime

import pytest

from chat_relay.chat.service import relay


@pytest.fixture(autouse=True)
def reset_relay():
    """Start and finish every test with an empty relay."""
    relay.clear()
    yield
    relay.clear()


@pytest.fixture
def fixed_clock():
    """Clock pinned to 09:05 so timestamp labels are predictable."""
    return lambda: datetime(2024, 1, 1, 9, 5, 30)
