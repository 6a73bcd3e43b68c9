"""Pytest configuration and fixtures."""

import os
import sys

import pytest

# Add repository root to path for the marketplace package
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from marketplace.services.batch_fetch import BatchLoader
from marketplace.services.transactions import TransactionCoordinator
from tests.util.fake_store import FakeDb


@pytest.fixture
def fake_db():
    """Empty in-memory store."""
    return FakeDb()


@pytest.fixture
def batch_loader(fake_db):
    """Sequential loader so read order is deterministic."""
    return BatchLoader(fake_db, max_workers=1)


@pytest.fixture
def coordinator(fake_db):
    return TransactionCoordinator(fake_db)


@pytest.fixture
def test_user_id():
    """Get a test user ID."""
    return "test-user-123"
