"""Pytest fixtures for HTTP tests."""

import asyncio
from collections.abc import Callable, Iterator

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from apps.customer_config.routes import set_default_config
from db.cache import clear_cached_documents
from server.config import Settings
from server.routes import setup_routes

ADMIN_TENANT = "admin-tenant"

ClientFactory = Callable[[str | None], TestClient]


@pytest.fixture
def app(mongo) -> FastAPI:
    """Application serving every route on the in-memory database."""
    set_default_config(None)
    asyncio.run(clear_cached_documents())
    app = FastAPI()
    setup_routes(app)
    return app


@pytest.fixture
def client_for(app: FastAPI) -> Iterator[ClientFactory]:
    """Build test clients authenticated as a tenant, or anonymous."""
    clients: list[TestClient] = []

    def factory(tenant: str | None) -> TestClient:
        cookies = {"customerGUID": tenant} if tenant else None
        client = TestClient(app, cookies=cookies)
        clients.append(client)
        return client

    yield factory
    for client in clients:
        client.close()


@pytest.fixture
def client(client_for: ClientFactory) -> TestClient:
    """Client of tenant ``u1``."""
    return client_for("u1")


@pytest.fixture
def admin_client(
    client_for: ClientFactory, monkeypatch: pytest.MonkeyPatch
) -> TestClient:
    """Client of a tenant listed as admin user."""
    monkeypatch.setattr(Settings(), "_admin_users_str", ADMIN_TENANT)
    return client_for(ADMIN_TENANT)
