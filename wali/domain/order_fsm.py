"""Order status transition rules (single source of truth)."""
from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import datetime, timezone
from typing import Mapping

from wali.core.exceptions import (
    InvalidRequestError,
    InvalidTransitionError,
    MissingPreconditionError,
)
from wali.domain.order import Order, OrderStatus, TrackingEvent

MAX_PROOF_OF_DELIVERY_LENGTH = 500

TERMINAL_STATUSES = frozenset(
    {
        OrderStatus.DELIVERED,
        OrderStatus.CANCELLED,
        OrderStatus.FAILED,
    }
)

DRIVER_STATUSES = frozenset(
    {
        OrderStatus.ASSIGNED,
        OrderStatus.PICKED_UP,
        OrderStatus.IN_TRANSIT,
        OrderStatus.DELIVERED,
    }
)

ALLOWED_TRANSITIONS: Mapping[OrderStatus, frozenset[OrderStatus]] = {
    OrderStatus.PENDING: frozenset(
        {
            OrderStatus.CONFIRMED,
            OrderStatus.CANCELLED,
            OrderStatus.FAILED,
        }
    ),
    OrderStatus.CONFIRMED: frozenset(
        {
            OrderStatus.ASSIGNED,
            OrderStatus.CANCELLED,
            OrderStatus.FAILED,
        }
    ),
    OrderStatus.ASSIGNED: frozenset(
        {
            OrderStatus.PICKED_UP,
            OrderStatus.CANCELLED,
            OrderStatus.FAILED,
        }
    ),
    OrderStatus.PICKED_UP: frozenset(
        {
            OrderStatus.IN_TRANSIT,
            OrderStatus.FAILED,
        }
    ),
    OrderStatus.IN_TRANSIT: frozenset(
        {
            OrderStatus.DELIVERED,
            OrderStatus.FAILED,
        }
    ),
    OrderStatus.DELIVERED: frozenset(),
    OrderStatus.CANCELLED: frozenset(),
    OrderStatus.FAILED: frozenset(),
}

# Context fields each target status cannot do without.
REQUIRED_CONTEXT: Mapping[OrderStatus, str] = {
    OrderStatus.ASSIGNED: "driver_id",
    OrderStatus.DELIVERED: "proof_of_delivery",
    OrderStatus.CANCELLED: "reason",
    OrderStatus.FAILED: "reason",
}


@dataclass(frozen=True, slots=True)
class TransitionContext:
    """Inputs a transition may consume."""

    driver_id: str | None = None
    reason: str | None = None
    proof_of_delivery: str | None = None
    actor: str | None = None
    at: datetime | None = None


@dataclass(frozen=True, slots=True)
class TransitionValidationResult:
    allowed: bool
    reason: str | None = None


def validate_order_transition(
    current_status: OrderStatus | str,
    target_status: OrderStatus | str,
) -> TransitionValidationResult:
    """Check a status pair against the transition table without raising."""
    try:
        current = OrderStatus.normalize(current_status)
        target = OrderStatus.normalize(target_status)
    except ValueError as exc:
        return TransitionValidationResult(False, f"Unsupported status: {exc}")

    if current in TERMINAL_STATUSES:
        return TransitionValidationResult(False, f"Terminal status '{current.value}' is final.")

    if target not in ALLOWED_TRANSITIONS[current]:
        return TransitionValidationResult(
            False,
            f"Transition '{current.value} -> {target.value}' is not allowed.",
        )

    return TransitionValidationResult(True)


def _require(context: TransitionContext, target: OrderStatus) -> None:
    field_name = REQUIRED_CONTEXT.get(target)
    if field_name is None:
        return
    value = getattr(context, field_name)
    if value is None or not str(value).strip():
        raise MissingPreconditionError(target.value, field_name)


def _check_proof(context: TransitionContext, target: OrderStatus) -> None:
    proof = context.proof_of_delivery
    if proof is None:
        return
    if target != OrderStatus.DELIVERED:
        raise InvalidRequestError("proof_of_delivery can only be set when delivering")
    if len(proof) > MAX_PROOF_OF_DELIVERY_LENGTH:
        raise InvalidRequestError(
            f"proof_of_delivery must be at most {MAX_PROOF_OF_DELIVERY_LENGTH} characters"
        )


def transition(
    order: Order,
    target: OrderStatus | str,
    context: TransitionContext | None = None,
) -> Order:
    """Apply a validated status change and its side effects.

    Returns a new ``Order``; the input is left untouched. The version is
    not bumped here, persistence owns it.

    Raises:
        InvalidTransitionError: pair not in ``ALLOWED_TRANSITIONS``.
        MissingPreconditionError: required context input absent.
        InvalidRequestError: unknown target status, or proof of delivery
            misplaced or too long.
    """
    context = context or TransitionContext()
    try:
        target = OrderStatus.normalize(target)
    except ValueError as exc:
        raise InvalidRequestError(f"Unsupported status: {target!r}") from exc

    result = validate_order_transition(order.status, target)
    if not result.allowed:
        raise InvalidTransitionError(order.status.value, target.value)

    _require(context, target)
    _check_proof(context, target)

    now = context.at or datetime.now(timezone.utc)
    changes: dict = {"status": target, "updated_at": now}

    if target == OrderStatus.ASSIGNED:
        changes["driver_id"] = context.driver_id
    elif target == OrderStatus.PICKED_UP:
        changes["picked_up_at"] = now
    elif target == OrderStatus.DELIVERED:
        changes["proof_of_delivery"] = context.proof_of_delivery
        changes["delivered_at"] = now
    elif target == OrderStatus.CANCELLED:
        changes["cancellation_reason"] = context.reason
    elif target == OrderStatus.FAILED:
        changes["failure_reason"] = context.reason

    if target not in DRIVER_STATUSES:
        changes["driver_id"] = None

    event = TrackingEvent(
        status=target,
        created_at=now,
        description=context.reason,
        actor=context.actor or context.driver_id or order.driver_id,
    )
    changes["tracking"] = order.tracking + (event,)

    return replace(order, **changes)
