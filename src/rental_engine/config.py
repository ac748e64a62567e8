"""Engine configuration."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any

from rental_engine.utils.config_store import load_config_section, save_config_section
from rental_engine.version import __app_name__, __company__

APP_NAME = __app_name__
APP_DATA_DIRNAME = "RentalEngine"
APP_HOME_ENV = "RENTAL_ENGINE_HOME"
DB_FILENAME = "rental_engine.db"
LOGS_DIRNAME = "logs"
LOG_FILENAME = "engine.log"
LOG_MAX_BYTES = 1_000_000
LOG_BACKUP_COUNT = 3
CONFIG_FILENAME = "config.json"
DB_BUSY_TIMEOUT_SECONDS = 30.0

DEFAULT_TAX_RATE = 0.18
DEFAULT_LATE_FEE_PER_DAY = 100.0
DEFAULT_RETURN_GRACE_HOURS = 0.0
DEFAULT_CURRENCY = "INR"

# A block of seven rented days is billed as five daily-rate units.
WEEKLY_BLOCK_DAYS = 7
WEEKLY_BLOCK_DAYS_BILLED = 5
HOURLY_PRICING_MAX_HOURS = 24

SETTINGS_KEY = "engine"


class PartialMinimumBasis(str, Enum):
    OUTSTANDING = "outstanding"
    TOTAL = "total"


@dataclass(frozen=True)
class PaymentPolicy:
    """Business policy for partial invoice payments."""

    max_partial_payments: int = 1
    min_partial_fraction: float = 0.5
    partial_minimum_basis: PartialMinimumBasis = PartialMinimumBasis.OUTSTANDING


@dataclass(frozen=True)
class EngineSettings:
    """Values that pricing, returns and the ledger depend on."""

    tax_rate: float = DEFAULT_TAX_RATE
    late_fee_per_day: float = DEFAULT_LATE_FEE_PER_DAY
    return_grace_hours: float = DEFAULT_RETURN_GRACE_HOURS
    currency: str = DEFAULT_CURRENCY
    payment_policy: PaymentPolicy = field(default_factory=PaymentPolicy)


@dataclass(frozen=True)
class AppConfig:
    """Static configuration values for RentalEngine."""

    app_name: str = APP_NAME
    organization_name: str = __company__


def _as_float(value: Any, default: float) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        return default


def _as_int(value: Any, default: int) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


def settings_from_dict(data: dict[str, Any]) -> EngineSettings:
    """Build settings from a plain mapping, falling back to defaults."""
    policy_data = data.get("payment_policy")
    if not isinstance(policy_data, dict):
        policy_data = {}
    try:
        basis = PartialMinimumBasis(
            policy_data.get("partial_minimum_basis", PartialMinimumBasis.OUTSTANDING)
        )
    except ValueError:
        basis = PartialMinimumBasis.OUTSTANDING
    policy = PaymentPolicy(
        max_partial_payments=_as_int(policy_data.get("max_partial_payments"), 1),
        min_partial_fraction=_as_float(policy_data.get("min_partial_fraction"), 0.5),
        partial_minimum_basis=basis,
    )
    return EngineSettings(
        tax_rate=_as_float(data.get("tax_rate"), DEFAULT_TAX_RATE),
        late_fee_per_day=_as_float(
            data.get("late_fee_per_day"), DEFAULT_LATE_FEE_PER_DAY
        ),
        return_grace_hours=_as_float(
            data.get("return_grace_hours"), DEFAULT_RETURN_GRACE_HOURS
        ),
        currency=str(data.get("currency") or DEFAULT_CURRENCY),
        payment_policy=policy,
    )


def settings_to_dict(settings: EngineSettings) -> dict[str, Any]:
    payload = asdict(settings)
    payload["payment_policy"]["partial_minimum_basis"] = (
        settings.payment_policy.partial_minimum_basis.value
    )
    return payload


def load_engine_settings(config_path: Path) -> EngineSettings:
    """Load engine settings from the JSON config file."""
    section = load_config_section(config_path, SETTINGS_KEY)
    if not section:
        return EngineSettings()
    return settings_from_dict(section)


def save_engine_settings(config_path: Path, settings: EngineSettings) -> None:
    save_config_section(config_path, SETTINGS_KEY, settings_to_dict(settings))
