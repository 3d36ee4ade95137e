"""Domain package."""

from .order import (
    Coordinate,
    Location,
    Order,
    OrderItem,
    OrderStatus,
    OrderType,
    PaymentEventType,
    PriceBreakdown,
    TrackingEvent,
)

__all__ = [
    # Entities
    "Order",
    "OrderItem",
    "TrackingEvent",
    # Value Objects
    "Coordinate",
    "Location",
    "PriceBreakdown",
    "OrderStatus",
    "OrderType",
    "PaymentEventType",
]
