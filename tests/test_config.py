from __future__ import annotations

import json

import pytest

from wali.core.config import DEFAULT_TARIFFS, load_settings, load_tariffs
from wali.core.exceptions import ConfigurationException
from wali.domain.order import OrderType

TARIFF_FILE = {
    "tariffs": {
        "DELIVERY": {"base_fee": 800, "per_km_rate": 150, "free_km": 1.5, "min_fee": 400, "max_fee": 8000},
        "FOOD": {"base_fee": 1200, "per_km_rate": 150, "free_km": 1.5, "min_fee": 400, "max_fee": 8000},
        "SHOPPING": {"base_fee": 1800, "per_km_rate": 150, "free_km": 1.5, "min_fee": 400, "max_fee": 8000},
    }
}


def test_default_tariffs_cover_every_type() -> None:
    assert set(DEFAULT_TARIFFS) == set(OrderType)
    assert DEFAULT_TARIFFS[OrderType.DELIVERY].base_fee == 1000
    assert DEFAULT_TARIFFS[OrderType.FOOD].base_fee == 1500
    assert DEFAULT_TARIFFS[OrderType.SHOPPING].base_fee == 2000


def test_load_tariffs_without_path_returns_defaults() -> None:
    assert load_tariffs(None) == DEFAULT_TARIFFS


def test_load_tariffs_from_file(tmp_path) -> None:
    path = tmp_path / "tariffs.json"
    path.write_text(json.dumps(TARIFF_FILE), encoding="utf-8")

    tariffs = load_tariffs(path)

    assert tariffs[OrderType.DELIVERY].base_fee == 800
    assert tariffs[OrderType.SHOPPING].free_km == 1.5


@pytest.mark.parametrize(
    "mutate",
    [
        lambda data: data["tariffs"].pop("FOOD"),
        lambda data: data["tariffs"]["DELIVERY"].update(min_fee=9000),
        lambda data: data["tariffs"]["DELIVERY"].update(per_km_rate=-1),
    ],
)
def test_invalid_tariff_file_rejected(tmp_path, mutate) -> None:
    data = json.loads(json.dumps(TARIFF_FILE))
    mutate(data)
    path = tmp_path / "tariffs.json"
    path.write_text(json.dumps(data), encoding="utf-8")

    with pytest.raises(ConfigurationException):
        load_tariffs(path)


def test_missing_tariff_file_rejected(tmp_path) -> None:
    with pytest.raises(ConfigurationException):
        load_tariffs(tmp_path / "absent.json")


def test_load_settings_reads_environment(monkeypatch, tmp_path) -> None:
    path = tmp_path / "tariffs.json"
    path.write_text(json.dumps(TARIFF_FILE), encoding="utf-8")
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("PAYSTACK_SECRET_KEY", "sk_live_x")
    monkeypatch.setenv("FLUTTERWAVE_SECRET_HASH", "flw")
    monkeypatch.setenv("WALI_TARIFFS_FILE", str(path))
    monkeypatch.setenv("PORT", "9090")
    monkeypatch.setenv("WALI_ENV", "production")
    monkeypatch.delenv("DATABASE_URL", raising=False)

    settings = load_settings()

    assert settings.port == 9090
    assert settings.is_production
    assert settings.database_url is None
    assert settings.payments.paystack_secret_key == "sk_live_x"
    assert settings.tariffs[OrderType.DELIVERY].base_fee == 800
