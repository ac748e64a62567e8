"""Rental pricing by duration and rate tiers."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Optional

from rental_engine.config import (
    HOURLY_PRICING_MAX_HOURS,
    WEEKLY_BLOCK_DAYS,
    WEEKLY_BLOCK_DAYS_BILLED,
    EngineSettings,
)
from rental_engine.domain.intervals import RentalInterval, duration_days, duration_hours
from rental_engine.domain.models import PricingRule, Product
from rental_engine.services.errors import InvalidQuantity


def round_money(value: float) -> float:
    return round(float(value) + 0.0, 2)


def validate_quantity(quantity: object) -> int:
    if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity <= 0:
        raise InvalidQuantity(quantity)
    return quantity


@dataclass(frozen=True)
class PriceQuote:
    """Priced line plus the rate path that produced it."""

    line_total: float
    unit_price: float
    rule: PricingRule
    days: int
    hours: float
    multiplier: Optional[float] = None


@dataclass(frozen=True)
class OrderTotals:
    subtotal: float
    tax_amount: float
    discount_amount: float
    security_deposit: float
    total_amount: float


class PricingService:
    """Pure pricing; every input, settings included, is passed in."""

    def __init__(self, settings: Optional[EngineSettings] = None) -> None:
        self._settings = settings or EngineSettings()

    @property
    def tax_rate(self) -> float:
        return self._settings.tax_rate

    def price_line(
        self, product: Product, interval: RentalInterval, quantity: int
    ) -> PriceQuote:
        validate_quantity(quantity)
        hours = duration_hours(interval)
        days = duration_days(interval)

        if product.hourly_rate is not None and hours < HOURLY_PRICING_MAX_HOURS:
            unit = product.hourly_rate * math.ceil(hours)
            return self._quote(unit, quantity, PricingRule.HOURLY, days, hours)

        multiplier = product.multiplier_for(days)
        if multiplier is not None:
            unit = product.daily_rate * multiplier
            return self._quote(
                unit, quantity, PricingRule.FIXED_PERIOD, days, hours, multiplier
            )

        if days >= WEEKLY_BLOCK_DAYS:
            weeks = math.ceil(days / WEEKLY_BLOCK_DAYS)
            unit = product.daily_rate * WEEKLY_BLOCK_DAYS_BILLED * weeks
            return self._quote(unit, quantity, PricingRule.WEEKLY_BLOCK, days, hours)

        unit = product.daily_rate * days
        return self._quote(unit, quantity, PricingRule.DAILY, days, hours)

    def tax_for(self, subtotal: float) -> float:
        return round_money(subtotal * self._settings.tax_rate)

    def order_totals(
        self,
        subtotal: float,
        discount_amount: float = 0.0,
        security_deposit: float = 0.0,
    ) -> OrderTotals:
        """Tax is charged on the undiscounted subtotal, as at checkout."""
        subtotal = round_money(subtotal)
        discount_amount = round_money(min(max(discount_amount, 0.0), subtotal))
        tax_amount = self.tax_for(subtotal)
        security_deposit = round_money(security_deposit)
        total = round_money(subtotal + tax_amount - discount_amount + security_deposit)
        return OrderTotals(
            subtotal=subtotal,
            tax_amount=tax_amount,
            discount_amount=discount_amount,
            security_deposit=security_deposit,
            total_amount=total,
        )

    def _quote(
        self,
        unit_price: float,
        quantity: int,
        rule: PricingRule,
        days: int,
        hours: float,
        multiplier: Optional[float] = None,
    ) -> PriceQuote:
        return PriceQuote(
            line_total=round_money(unit_price * quantity),
            unit_price=round_money(unit_price),
            rule=rule,
            days=days,
            hours=hours,
            multiplier=multiplier,
        )
