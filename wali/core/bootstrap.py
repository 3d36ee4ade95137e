"""Application bootstrap wiring settings, repository, services and the web app."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from aiohttp import web

from logging_config import logger
from wali.api.payment_webhooks import setup_payment_routes
from wali.application.orders.reconcile_payment import PaymentReconciler
from wali.core.config import Settings
from wali.infra.db.orders_repo import InMemoryOrdersRepository, OrdersRepository
from wali.integrations.payment_providers import build_default_adapters
from wali.services.order_service import OrderService


@dataclass
class Services:
    repo: OrdersRepository
    order_service: OrderService
    reconciler: PaymentReconciler


def create_repository(database_url: str | None) -> Any:
    """PostgreSQL when a URL is configured, in-memory otherwise."""
    if database_url and database_url.startswith(("postgres://", "postgresql://")):
        from wali.infra.db.postgres import PostgresOrdersRepository

        logger.info("Using PostgreSQL orders repository")
        return PostgresOrdersRepository(database_url)

    logger.warning("DATABASE_URL not set - orders are kept in memory and lost on restart")
    return InMemoryOrdersRepository()


def build_services(settings: Settings, repo: OrdersRepository | None = None) -> Services:
    """Create runtime components from configuration."""
    repo = repo if repo is not None else create_repository(settings.database_url)
    order_service = OrderService(repo, settings.tariffs, settings.service_area)
    reconciler = PaymentReconciler(order_service, build_default_adapters(settings.payments))
    return Services(repo=repo, order_service=order_service, reconciler=reconciler)


def create_app(services: Services) -> web.Application:
    """Create aiohttp web application with payment webhook handlers."""
    app = web.Application()
    setup_payment_routes(app, services.reconciler)

    async def _close_repo(app: web.Application) -> None:
        close = getattr(services.repo, "close", None)
        if callable(close):
            close()
            logger.info("Orders repository closed")

    app.on_cleanup.append(_close_repo)
    return app
