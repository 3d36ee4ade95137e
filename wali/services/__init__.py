"""Business services orchestrating domain logic."""

from .order_service import CANCELLABLE_STATUSES, OrderService

__all__ = [
    "CANCELLABLE_STATUSES",
    "OrderService",
]
