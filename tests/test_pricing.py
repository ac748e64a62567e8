from datetime import datetime, timedelta

import pytest

from rental_engine.config import EngineSettings
from rental_engine.domain.intervals import RentalInterval
from rental_engine.domain.models import PricingRule, Product, RentalPeriod
from rental_engine.services.errors import InvalidQuantity
from rental_engine.services.pricing_service import PricingService

START = datetime(2025, 1, 1, 8, 0, 0)


def _product(**overrides) -> Product:
    values = dict(id=1, vendor_ref="v", name="Drill", daily_rate=100.0, total_qty=5)
    values.update(overrides)
    return Product(**values)


def _for(**delta) -> RentalInterval:
    return RentalInterval(START, START + timedelta(**delta))


def test_two_days_at_daily_rate():
    quote = PricingService().price_line(_product(), _for(days=2), 1)
    assert quote.line_total == 200
    assert quote.rule is PricingRule.DAILY


def test_ten_days_uses_weekly_blocks():
    quote = PricingService().price_line(_product(), _for(days=10), 1)
    assert quote.line_total == 1000
    assert quote.rule is PricingRule.WEEKLY_BLOCK


def test_hourly_rate_below_a_day():
    quote = PricingService().price_line(
        _product(hourly_rate=15.0), _for(hours=3, minutes=10), 2
    )
    assert quote.rule is PricingRule.HOURLY
    assert quote.unit_price == 60
    assert quote.line_total == 120


def test_hourly_rate_ignored_for_a_full_day():
    quote = PricingService().price_line(_product(hourly_rate=15.0), _for(hours=24), 1)
    assert quote.rule is PricingRule.DAILY
    assert quote.line_total == 100


def test_fixed_period_multiplier_wins_over_weekly_block():
    product = _product(periods=[RentalPeriod(id=1, product_id=1, days=7, multiplier=4.0)])
    quote = PricingService().price_line(product, _for(days=7), 3)
    assert quote.rule is PricingRule.FIXED_PERIOD
    assert quote.multiplier == 4.0
    assert quote.line_total == 1200


def test_partial_day_rounds_up():
    quote = PricingService().price_line(_product(), _for(days=2, hours=1), 1)
    assert quote.line_total == 300


@pytest.mark.parametrize("quantity", [0, -1, 1.5, True])
def test_quantity_must_be_positive_integer(quantity):
    with pytest.raises(InvalidQuantity):
        PricingService().price_line(_product(), _for(days=1), quantity)


def test_order_totals_tax_on_undiscounted_subtotal():
    totals = PricingService(EngineSettings(tax_rate=0.1)).order_totals(
        200.0, discount_amount=50.0, security_deposit=30.0
    )
    assert totals.tax_amount == 20
    assert totals.total_amount == 200


def test_order_totals_clamps_discount_to_subtotal():
    totals = PricingService(EngineSettings(tax_rate=0)).order_totals(30.0, 200.0)
    assert totals.discount_amount == 30
    assert totals.total_amount == 0
