"""Fixtures for tests that talk to a running Firestore emulator."""

import os
import uuid

import pytest

from marketplace.apis.Db import Db
from marketplace.services.batch_fetch import BatchLoader
from marketplace.services.transactions import TransactionCoordinator


def pytest_collection_modifyitems(config, items):
    if os.getenv("FIRESTORE_EMULATOR_HOST"):
        return
    skip_integration = pytest.mark.skip(reason="FIRESTORE_EMULATOR_HOST is not set")
    for item in items:
        if "integration" in item.keywords:
            item.add_marker(skip_integration)


@pytest.fixture(scope="session")
def emulator_db():
    """Db connected to the emulator named by FIRESTORE_EMULATOR_HOST."""
    return Db.from_environment({"transactions": {"max_attempts": 20}})


@pytest.fixture
def created_docs(emulator_db):
    """Track (collection, id) pairs and delete them after the test."""
    docs = []
    yield docs
    for collection, doc_id in docs:
        emulator_db.delete(collection, doc_id)


@pytest.fixture
def seed(emulator_db, created_docs):
    """Write a document under a unique id and register it for cleanup."""
    def _seed(collection, data, doc_id=None):
        doc_id = doc_id or f"{collection}-{uuid.uuid4().hex[:12]}"
        emulator_db.set(collection, doc_id, data)
        created_docs.append((collection, doc_id))
        return doc_id
    return _seed


@pytest.fixture
def emulator_loader(emulator_db):
    return BatchLoader(emulator_db)


@pytest.fixture
def emulator_coordinator(emulator_db):
    return TransactionCoordinator(emulator_db)
