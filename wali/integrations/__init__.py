"""Integrations package - payment provider adapters."""

from wali.integrations.payment_providers import (
    FlutterwaveAdapter,
    PaystackAdapter,
    ProviderAdapter,
    ProviderEvent,
    build_default_adapters,
)

__all__ = [
    "FlutterwaveAdapter",
    "PaystackAdapter",
    "ProviderAdapter",
    "ProviderEvent",
    "build_default_adapters",
]
