"""Environment-driven configuration objects for the order engine."""
from __future__ import annotations

import json
import os
from dataclasses import dataclass, field
from pathlib import Path

from dotenv import load_dotenv
from pydantic import BaseModel, Field, ValidationError, model_validator

from wali.core.exceptions import ConfigurationException
from wali.domain.order import OrderType
from wali.domain.pricing import Tariff, TariffTable
from wali.domain.service_area import DEFAULT_SERVICE_AREA, ServiceArea


class TariffConfig(BaseModel):
    """One row of the tariff file, amounts in FCFA."""

    base_fee: int = Field(..., ge=0)
    per_km_rate: int = Field(..., ge=0)
    free_km: float = Field(..., ge=0)
    min_fee: int = Field(..., ge=0)
    max_fee: int = Field(..., ge=0)

    @model_validator(mode="after")
    def validate_bounds(self):
        if self.min_fee > self.max_fee:
            raise ValueError("min_fee must not exceed max_fee")
        return self

    def to_domain(self) -> Tariff:
        return Tariff(
            base_fee=self.base_fee,
            per_km_rate=self.per_km_rate,
            free_km=self.free_km,
            min_fee=self.min_fee,
            max_fee=self.max_fee,
        )


class TariffTableConfig(BaseModel):
    """Tariff file layout: ``{"tariffs": {"DELIVERY": {...}, ...}}``."""

    tariffs: dict[OrderType, TariffConfig]

    @model_validator(mode="after")
    def validate_all_types(self):
        missing = [t.value for t in OrderType if t not in self.tariffs]
        if missing:
            raise ValueError(f"Missing tariffs for: {', '.join(missing)}")
        return self

    def to_domain(self) -> dict[OrderType, Tariff]:
        return {order_type: cfg.to_domain() for order_type, cfg in self.tariffs.items()}


# Launch tariffs for Abidjan, FCFA.
DEFAULT_TARIFFS: dict[OrderType, Tariff] = {
    OrderType.DELIVERY: Tariff(base_fee=1000, per_km_rate=200, free_km=2, min_fee=500, max_fee=10000),
    OrderType.FOOD: Tariff(base_fee=1500, per_km_rate=200, free_km=2, min_fee=500, max_fee=10000),
    OrderType.SHOPPING: Tariff(base_fee=2000, per_km_rate=200, free_km=2, min_fee=500, max_fee=10000),
}


def _str_to_bool(value: str | None) -> bool:
    if value is None:
        return False
    return value.strip().lower() in {"true", "1", "yes", "y"}


def load_tariffs(path: str | Path | None) -> dict[OrderType, Tariff]:
    """Read and validate a tariff file; fall back to ``DEFAULT_TARIFFS`` when no path."""
    if not path:
        return dict(DEFAULT_TARIFFS)
    try:
        raw = json.loads(Path(path).read_text(encoding="utf-8"))
        return TariffTableConfig.model_validate(raw).to_domain()
    except (OSError, ValueError, ValidationError) as exc:
        raise ConfigurationException(f"Invalid tariff file {path}: {exc}") from exc


@dataclass(slots=True)
class PaymentSecrets:
    paystack_secret_key: str
    flutterwave_secret_hash: str


@dataclass(slots=True)
class Settings:
    database_url: str | None
    environment: str
    host: str
    port: int
    payments: PaymentSecrets
    tariffs: TariffTable = field(default_factory=lambda: dict(DEFAULT_TARIFFS))
    service_area: ServiceArea = DEFAULT_SERVICE_AREA
    sentry_enabled: bool = True

    @property
    def is_production(self) -> bool:
        return self.environment == "production"


def load_settings() -> Settings:
    """Load environment variables once and expose typed settings."""
    load_dotenv()

    payments = PaymentSecrets(
        paystack_secret_key=os.getenv("PAYSTACK_SECRET_KEY", ""),
        flutterwave_secret_hash=os.getenv("FLUTTERWAVE_SECRET_HASH", ""),
    )

    return Settings(
        database_url=os.getenv("DATABASE_URL"),
        environment=os.getenv("WALI_ENV", "development"),
        host=os.getenv("HOST", "0.0.0.0"),
        port=int(os.getenv("PORT", "8080")),
        payments=payments,
        tariffs=load_tariffs(os.getenv("WALI_TARIFFS_FILE")),
        sentry_enabled=_str_to_bool(os.getenv("SENTRY_ENABLED", "true")),
    )
