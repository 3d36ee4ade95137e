"""Shared pytest fixtures for the order engine tests."""
from __future__ import annotations

import os
from datetime import datetime, timezone
from urllib.parse import urlparse

import pytest

from wali.core.config import DEFAULT_TARIFFS
from wali.domain.models.order import CreateOrderRequest
from wali.infra.db.orders_repo import InMemoryOrdersRepository
from wali.services.order_service import OrderService

FIXED_NOW = datetime(2025, 3, 14, 9, 30, tzinfo=timezone.utc)

# Cocody -> Plateau, Abidjan
PICKUP = {"address": "Cocody, Rue des Jardins", "latitude": 5.3599, "longitude": -3.9870}
DELIVERY = {"address": "Plateau, Avenue Chardy", "latitude": 5.3200, "longitude": -4.0200}


def _get_test_db_url() -> str | None:
    return os.getenv("TEST_DATABASE_URL")


def _is_safe_db_url(db_url: str) -> bool:
    """Allow only local/test hosts unless explicitly overridden."""
    parsed = urlparse(db_url)
    host = (parsed.hostname or "").lower()
    return host in {"localhost", "127.0.0.1", "postgres", "db"}


def build_request(order_type: str = "DELIVERY", **overrides) -> CreateOrderRequest:
    payload = {
        "type": order_type,
        "pickup": PICKUP,
        "delivery": DELIVERY,
        "items": [],
    }
    if order_type in ("FOOD", "SHOPPING"):
        payload["items"] = [{"name": "Attiéké poisson", "quantity": 2, "unit_price": 1500}]
    payload.update(overrides)
    return CreateOrderRequest.model_validate(payload)


@pytest.fixture()
def make_request():
    """Factory for valid CreateOrderRequest payloads around Abidjan."""
    return build_request


@pytest.fixture()
def fixed_now() -> datetime:
    return FIXED_NOW


@pytest.fixture()
def repo() -> InMemoryOrdersRepository:
    return InMemoryOrdersRepository()


@pytest.fixture()
def order_service(repo: InMemoryOrdersRepository) -> OrderService:
    return OrderService(repo, DEFAULT_TARIFFS, clock=lambda: FIXED_NOW)


@pytest.fixture(scope="session")
def postgres_url() -> str:
    db_url = _get_test_db_url()
    if not db_url:
        pytest.skip("TEST_DATABASE_URL is required for DB tests")
    if not _is_safe_db_url(db_url) and os.getenv("ALLOW_TEST_DB_RESET") != "1":
        pytest.skip(
            "Refusing to run DB tests against non-local database. "
            "Set ALLOW_TEST_DB_RESET=1 to override."
        )
    return db_url


@pytest.fixture()
def pg_repo(postgres_url: str):
    """Function-scoped PostgreSQL repository with clean tables."""
    from wali.infra.db.postgres import PostgresOrdersRepository

    repo = PostgresOrdersRepository(postgres_url)
    repo.ensure_schema()
    with repo.get_connection() as conn:
        conn.cursor().execute("TRUNCATE TABLE orders, order_number_counters")
    try:
        yield repo
    finally:
        repo.close()


@pytest.fixture()
async def aiohttp_client():
    """Minimal aiohttp_client fixture to avoid pytest-aiohttp dependency."""
    clients: list[object] = []

    async def _make_client(app):
        from aiohttp.test_utils import TestClient, TestServer

        server = TestServer(app)
        client = TestClient(server)
        await client.start_server()
        clients.append(client)
        return client

    try:
        yield _make_client
    finally:
        for client in clients:
            await client.close()
