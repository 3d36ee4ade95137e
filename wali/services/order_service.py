"""
Order service: creation, status transitions and re-pricing.

All writes go through ``OrdersRepository.save``, which rejects stale
versions with ``ConcurrentModificationError``. The repository is sync;
calls run in worker threads via ``AsyncDBProxy``.
"""
from __future__ import annotations

import uuid
from dataclasses import replace
from datetime import datetime, timezone
from typing import Callable

from logging_config import logger
from wali.core.async_db import AsyncDBProxy
from wali.core.exceptions import InvalidRequestError, InvalidStateError, OrderNotFoundException
from wali.domain.models.order import CreateOrderRequest, QuoteRequest, UpdateOrderRequest
from wali.domain.order import Order, OrderStatus, PriceBreakdown, TrackingEvent
from wali.domain.order_fsm import TERMINAL_STATUSES, TransitionContext, transition
from wali.domain.order_labels import type_label, zone_label
from wali.domain.pricing import PricingEngine, TariffTable
from wali.domain.service_area import DEFAULT_SERVICE_AREA, ServiceArea
from wali.infra.db.orders_repo import (
    DEFAULT_PAGE_SIZE,
    MAX_PAGE_SIZE,
    OrderPage,
    OrdersRepository,
)

CANCELLABLE_STATUSES = frozenset(
    {
        OrderStatus.PENDING,
        OrderStatus.CONFIRMED,
        OrderStatus.ASSIGNED,
    }
)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class OrderService:
    """Use cases over persisted orders."""

    def __init__(
        self,
        repo: OrdersRepository,
        tariffs: TariffTable,
        area: ServiceArea = DEFAULT_SERVICE_AREA,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self.repo = AsyncDBProxy(repo)
        self.area = area
        self.pricing = PricingEngine(tariffs, area)
        self._clock = clock or _utcnow

    # ------------------------------------------------------------------
    # Pricing
    # ------------------------------------------------------------------

    def quote(self, request: QuoteRequest | CreateOrderRequest) -> PriceBreakdown:
        """Price a trip without persisting anything."""
        return self.pricing.calculate(
            request.type,
            request.pickup.to_domain().coordinate,
            request.delivery.to_domain().coordinate,
            request.domain_items(),
        )

    def reload_tariffs(self, tariffs: TariffTable) -> None:
        """Swap the tariff table; existing orders keep their breakdown."""
        self.pricing = PricingEngine(tariffs, self.area)
        logger.info(f"Tariffs reloaded for {', '.join(t.value for t in tariffs)}")

    async def recalculate_price(self, order_id: str) -> PriceBreakdown:
        """Re-price a PENDING order with the current tariffs and store the result."""
        order = await self.repo.load(order_id)
        if order.status != OrderStatus.PENDING:
            raise InvalidStateError(
                f"Order {order_id} is {order.status.value}; price is frozen after PENDING"
            )

        price = self.pricing.calculate(
            order.type,
            order.pickup.coordinate,
            order.delivery.coordinate,
            order.items,
        )
        saved = await self.repo.save(replace(order, price=price, updated_at=self._clock()))
        logger.info(
            f"Order {saved.order_number} re-priced: {order.price.total_amount} -> {price.total_amount}"
        )
        return saved.price

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def create_order(
        self,
        request: CreateOrderRequest,
        customer_id: str | None = None,
    ) -> Order:
        """Price and persist a new PENDING order."""
        pickup = request.pickup.to_domain()
        delivery = request.delivery.to_domain()
        items = request.domain_items()

        price = self.pricing.calculate(request.type, pickup.coordinate, delivery.coordinate, items)

        now = self._clock()
        order_number = await self.repo.next_order_number(now.date())
        zone = zone_label(self.area.zone_of(pickup.coordinate))

        order = Order(
            id=str(uuid.uuid4()),
            order_number=order_number,
            type=request.type,
            status=OrderStatus.PENDING,
            pickup=pickup,
            delivery=delivery,
            price=price,
            items=items,
            customer_id=customer_id,
            notes=request.notes,
            scheduled_at=request.scheduled_at,
            created_at=now,
            updated_at=now,
            tracking=(
                TrackingEvent(
                    status=OrderStatus.PENDING,
                    created_at=now,
                    description=f"{type_label(request.type)} créée ({zone})",
                    actor=customer_id,
                ),
            ),
        )

        saved = await self.repo.save(order)
        logger.info(
            f"Order {saved.order_number} created: type={saved.type.value}, "
            f"distance={price.distance_km}km, total={price.total_amount} FCFA"
        )
        return saved

    async def get_order(self, order_id: str) -> Order:
        return await self.repo.load(order_id)

    async def find_order(self, ref: str) -> Order:
        """Look an order up by id, then by order number."""
        try:
            return await self.repo.load(ref)
        except OrderNotFoundException:
            order = await self.repo.find_by_number(ref)
            if order is None:
                raise
            return order

    async def request_transition(
        self,
        order_id: str,
        target: OrderStatus | str,
        context: TransitionContext | None = None,
    ) -> Order:
        """Load, apply the transition, save with version check."""
        order = await self.repo.load(order_id)
        return await self._apply_transition(order, target, context)

    async def _apply_transition(
        self,
        order: Order,
        target: OrderStatus | str,
        context: TransitionContext | None,
    ) -> Order:
        context = context or TransitionContext()
        if context.at is None:
            context = replace(context, at=self._clock())

        updated = transition(order, target, context)
        saved = await self.repo.save(updated)
        logger.info(
            f"Order {saved.order_number}: {order.status.value} -> {saved.status.value}"
            + (f" by {context.actor}" if context.actor else "")
        )
        return saved

    async def cancel(self, order_id: str, reason: str, actor: str | None = None) -> Order:
        """Cancel an order that has not been picked up yet.

        The status check and the transition run on the same loaded copy; if
        the order moves in between, the save fails with
        ``ConcurrentModificationError``.
        """
        order = await self.repo.load(order_id)
        if order.status not in CANCELLABLE_STATUSES:
            raise InvalidStateError(
                f"Order {order_id} cannot be cancelled in status {order.status.value}"
            )
        return await self._apply_transition(
            order,
            OrderStatus.CANCELLED,
            TransitionContext(reason=reason, actor=actor),
        )

    async def update_details(
        self,
        order_id: str,
        request: UpdateOrderRequest,
        customer_id: str | None = None,
    ) -> Order:
        """Edit notes / scheduled time of an order that is not finished yet.

        Only the fields explicitly set on ``request`` change. When
        ``customer_id`` is given, orders owned by someone else read as missing.
        """
        order = await self.repo.load(order_id)
        if customer_id is not None and order.customer_id != customer_id:
            raise OrderNotFoundException(order_id)
        if order.status in TERMINAL_STATUSES:
            raise InvalidStateError(
                f"Order {order_id} is {order.status.value} and can no longer be modified"
            )

        changes = {
            name: getattr(request, name)
            for name in ("notes", "scheduled_at")
            if name in request.model_fields_set
        }
        if not changes:
            return order

        saved = await self.repo.save(replace(order, **changes, updated_at=self._clock()))
        logger.info(f"Order {saved.order_number} details updated: {', '.join(changes)}")
        return saved

    async def list_customer_orders(
        self,
        customer_id: str,
        page: int = 1,
        limit: int = DEFAULT_PAGE_SIZE,
    ) -> OrderPage:
        """A customer's orders, newest first."""
        if page < 1:
            raise InvalidRequestError("page must be >= 1")
        if not 1 <= limit <= MAX_PAGE_SIZE:
            raise InvalidRequestError(f"limit must be between 1 and {MAX_PAGE_SIZE}")
        return await self.repo.list_customer_orders(customer_id, page, limit)

    # Thin helpers used by driver/admin tooling.

    async def confirm(self, order_id: str, actor: str | None = None) -> Order:
        return await self.request_transition(
            order_id, OrderStatus.CONFIRMED, TransitionContext(actor=actor)
        )

    async def assign_driver(self, order_id: str, driver_id: str, actor: str | None = None) -> Order:
        return await self.request_transition(
            order_id,
            OrderStatus.ASSIGNED,
            TransitionContext(driver_id=driver_id, actor=actor or driver_id),
        )

    async def mark_picked_up(self, order_id: str) -> Order:
        return await self.request_transition(order_id, OrderStatus.PICKED_UP)

    async def start_transit(self, order_id: str) -> Order:
        return await self.request_transition(order_id, OrderStatus.IN_TRANSIT)

    async def mark_delivered(self, order_id: str, proof_of_delivery: str) -> Order:
        return await self.request_transition(
            order_id,
            OrderStatus.DELIVERED,
            TransitionContext(proof_of_delivery=proof_of_delivery),
        )

    async def mark_failed(self, order_id: str, reason: str, actor: str | None = None) -> Order:
        return await self.request_transition(
            order_id,
            OrderStatus.FAILED,
            TransitionContext(reason=reason, actor=actor),
        )
