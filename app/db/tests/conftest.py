"""Pytest configuration and fixtures for db tests."""

import pytest

from apps.base.context import RequestContext
from db.schema import SchemaInfo


@pytest.fixture
def sample_collection() -> str:
    """Sample collection name for testing."""
    return "test_collection"


@pytest.fixture
def ctx(sample_collection: str) -> RequestContext:
    """Request context of tenant ``t1`` on the sample collection."""
    return RequestContext(tenant_id="t1", collection=sample_collection)


@pytest.fixture
def array_schema() -> SchemaInfo:
    """Schema with one array of objects."""
    return SchemaInfo(array_paths=("relatedObjects",))
