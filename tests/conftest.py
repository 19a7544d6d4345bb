"""
Shared pytest fixtures for all tests.
"""

import os
from unittest.mock import AsyncMock

import pytest

# Ensure test environment before settings are first read
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("RAZORPAY_ENABLED", "false")

from tests.utils import InMemoryOrderRepository  # noqa: E402


@pytest.fixture
def order_repository() -> InMemoryOrderRepository:
    return InMemoryOrderRepository()


@pytest.fixture
def mock_notifier() -> AsyncMock:
    """Notifier double; assert on ``notify`` calls."""
    return AsyncMock()
