"""Shared pytest fixtures."""

from collections.abc import Iterator

import pytest
from mongomock_motor import AsyncMongoMockClient

from server.db import db_manager


@pytest.fixture
def mongo() -> Iterator[object]:
    """In-memory database bound to the shared database manager."""
    client = AsyncMongoMockClient()
    db_manager.async_client = client
    db_manager.async_db = client["test_db"]
    yield db_manager.async_db
    db_manager.async_client = None
    db_manager.async_db = None
