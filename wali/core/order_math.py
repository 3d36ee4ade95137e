"""Shared helpers for order totals and fees."""
from __future__ import annotations

import json
from decimal import ROUND_CEILING, Decimal
from typing import Any, Iterable

from wali.domain.order import OrderItem


def parse_json_list(raw: Any) -> list[dict]:
    """Decode a JSON array column; anything else becomes an empty list."""
    if not raw:
        return []
    if isinstance(raw, (str, bytes)):
        try:
            data = json.loads(raw)
        except ValueError:
            return []
        return data if isinstance(data, list) else []
    if isinstance(raw, list):
        return raw
    return []


def calc_items_subtotal(items: Iterable[OrderItem]) -> int:
    return sum(item.quantity * item.unit_price for item in items)


def calc_item_count(items: Iterable[OrderItem]) -> int:
    return sum(item.quantity for item in items)


def calc_delivery_fee(
    distance_km: float,
    *,
    per_km_rate: int,
    free_km: float,
    min_fee: int,
    max_fee: int,
) -> int:
    """Per-km charge beyond the free distance, clamped to [min_fee, max_fee].

    Decimal arithmetic keeps 3.1 km - 2 km at exactly 1.1 km before the
    charge is rounded up to a whole franc.
    """
    chargeable_km = max(Decimal(0), Decimal(str(distance_km)) - Decimal(str(free_km)))
    fee = int((chargeable_km * Decimal(per_km_rate)).to_integral_value(rounding=ROUND_CEILING))
    return min(max_fee, max(min_fee, fee))


def calc_total_amount(base_price: int, delivery_fee: int, items_subtotal: int) -> int:
    return int(base_price) + int(delivery_fee) + int(items_subtotal)
