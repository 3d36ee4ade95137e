"""Custom exceptions for the WALI order engine."""
from __future__ import annotations

from enum import Enum


class ErrorKind(str, Enum):
    """Error categories surfaced by the pricing and lifecycle core."""

    INVALID_COORDINATE = "InvalidCoordinate"
    INVALID_REQUEST = "InvalidRequest"
    OUT_OF_SERVICE_AREA = "OutOfServiceArea"
    INVALID_TRANSITION = "InvalidTransition"
    MISSING_PRECONDITION = "MissingPrecondition"
    INVALID_STATE = "InvalidState"
    NOT_FOUND = "NotFound"
    INVALID_SIGNATURE = "InvalidSignature"
    CONCURRENT_MODIFICATION = "ConcurrentModification"


class WaliException(Exception):
    """Base exception for all WALI errors."""

    kind: ErrorKind | None = None
    retryable: bool = False

    def __init__(self, message: str, *args: object) -> None:
        super().__init__(message, *args)
        self.message = message


class InvalidCoordinateError(WaliException):
    """Latitude/longitude is NaN, infinite or out of range."""

    kind = ErrorKind.INVALID_COORDINATE


class InvalidRequestError(WaliException):
    """Input validation errors."""

    kind = ErrorKind.INVALID_REQUEST


class OutOfServiceAreaError(WaliException):
    """Coordinate falls outside the supported service region."""

    kind = ErrorKind.OUT_OF_SERVICE_AREA

    def __init__(self, latitude: float, longitude: float, label: str = "point") -> None:
        super().__init__(
            f"{label} ({latitude}, {longitude}) is outside the service area"
        )
        self.latitude = latitude
        self.longitude = longitude
        self.label = label


class InvalidTransitionError(WaliException):
    """Requested status change is not in the transition table."""

    kind = ErrorKind.INVALID_TRANSITION

    def __init__(self, current: str, target: str) -> None:
        super().__init__(f"Transition '{current} -> {target}' is not allowed")
        self.current = current
        self.target = target


class MissingPreconditionError(WaliException):
    """A transition needs an input that was not supplied."""

    kind = ErrorKind.MISSING_PRECONDITION

    def __init__(self, target: str, field_name: str) -> None:
        super().__init__(f"Transition to '{target}' requires '{field_name}'")
        self.target = target
        self.field_name = field_name


class InvalidStateError(WaliException):
    """Operation is not permitted in the order's current status."""

    kind = ErrorKind.INVALID_STATE


class OrderNotFoundException(WaliException):
    """Order not found in storage."""

    kind = ErrorKind.NOT_FOUND

    def __init__(self, order_id: str) -> None:
        super().__init__(f"Order with ID {order_id} not found")
        self.order_id = order_id


class InvalidSignatureError(WaliException):
    """Webhook payload signature did not verify."""

    kind = ErrorKind.INVALID_SIGNATURE

    def __init__(self, provider: str) -> None:
        super().__init__(f"Invalid webhook signature from {provider}")
        self.provider = provider


class ConcurrentModificationError(WaliException):
    """Stored order changed since it was loaded. Re-read and retry."""

    kind = ErrorKind.CONCURRENT_MODIFICATION
    retryable = True

    def __init__(self, order_id: str, expected_version: int) -> None:
        super().__init__(
            f"Order {order_id} was modified concurrently (expected version {expected_version})"
        )
        self.order_id = order_id
        self.expected_version = expected_version


class DatabaseException(WaliException):
    """Database-related errors."""

    pass


class ConfigurationException(WaliException):
    """Configuration errors."""

    pass
