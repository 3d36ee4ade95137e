"""Delivery pricing rules.

The engine never owns tariffs: a table mapping each ``OrderType`` to its
``Tariff`` is passed in (loaded from configuration at startup and on
reload). Given identical inputs the breakdown is always identical.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Mapping, Sequence

from wali.core.exceptions import InvalidRequestError
from wali.core.order_math import calc_delivery_fee, calc_items_subtotal, calc_total_amount
from wali.domain import geo
from wali.domain.order import Coordinate, OrderItem, OrderType, PriceBreakdown
from wali.domain.service_area import DEFAULT_SERVICE_AREA, ServiceArea


@dataclass(frozen=True, slots=True)
class Tariff:
    base_fee: int
    per_km_rate: int
    free_km: float
    min_fee: int
    max_fee: int

    def __post_init__(self) -> None:
        for name in ("base_fee", "per_km_rate", "free_km", "min_fee", "max_fee"):
            if getattr(self, name) < 0:
                raise ValueError(f"{name} must be non-negative")
        if self.min_fee > self.max_fee:
            raise ValueError("min_fee must not exceed max_fee")


TariffTable = Mapping[OrderType, Tariff]


def _check_items(order_type: OrderType, items: Sequence[OrderItem]) -> None:
    if order_type.requires_items and not items:
        raise InvalidRequestError(f"{order_type.value} orders must contain at least one item")
    for item in items:
        if item.quantity < 1:
            raise InvalidRequestError(f"Item '{item.name}' quantity must be at least 1")
        if item.unit_price < 0:
            raise InvalidRequestError(f"Item '{item.name}' unit price must be non-negative")


def calculate(
    order_type: OrderType,
    pickup: Coordinate,
    delivery: Coordinate,
    items: Sequence[OrderItem],
    *,
    tariffs: TariffTable,
    area: ServiceArea = DEFAULT_SERVICE_AREA,
) -> PriceBreakdown:
    """Price an order.

    Raises:
        InvalidRequestError: FOOD/SHOPPING without items, or no tariff for the type.
        OutOfServiceAreaError: either point lies outside the service regions.
    """
    order_type = OrderType(order_type)
    _check_items(order_type, items)

    tariff = tariffs.get(order_type)
    if tariff is None:
        raise InvalidRequestError(f"No tariff configured for {order_type.value}")

    area.ensure_contains(pickup, "pickup")
    area.ensure_contains(delivery, "delivery")

    trip = geo.distance(pickup, delivery)
    distance_km = round(trip.km, 2)

    base_price = tariff.base_fee
    delivery_fee = calc_delivery_fee(
        distance_km,
        per_km_rate=tariff.per_km_rate,
        free_km=tariff.free_km,
        min_fee=tariff.min_fee,
        max_fee=tariff.max_fee,
    )
    items_subtotal = calc_items_subtotal(items)

    return PriceBreakdown(
        distance_km=distance_km,
        estimated_duration_minutes=trip.estimated_minutes,
        base_price=base_price,
        delivery_fee=delivery_fee,
        items_subtotal=items_subtotal,
        total_amount=calc_total_amount(base_price, delivery_fee, items_subtotal),
    )


class PricingEngine:
    """Binds a tariff table and service area to ``calculate``."""

    def __init__(self, tariffs: TariffTable, area: ServiceArea = DEFAULT_SERVICE_AREA) -> None:
        self.tariffs = dict(tariffs)
        self.area = area

    def calculate(
        self,
        order_type: OrderType,
        pickup: Coordinate,
        delivery: Coordinate,
        items: Sequence[OrderItem] = (),
    ) -> PriceBreakdown:
        return calculate(
            order_type,
            pickup,
            delivery,
            items,
            tariffs=self.tariffs,
            area=self.area,
        )
