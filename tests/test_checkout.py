from datetime import timedelta

import pytest

from rental_engine.config import EngineSettings
from rental_engine.domain.models import DeliveryInfo, DiscountType, OrderStatus, PricingRule
from rental_engine.services.errors import (
    CouponNotFound,
    InsufficientStock,
    ProductUnavailable,
    ValidationError,
)


@pytest.fixture
def settings() -> EngineSettings:
    return EngineSettings(tax_rate=0.1)


def test_cart_is_split_into_one_order_per_vendor(
    engine, catalog, interval, line_factory
):
    lines = [
        line_factory(catalog.camera, interval),
        line_factory(catalog.chair, interval, quantity=2),
        line_factory(catalog.lens, interval),
    ]
    orders = engine.commit_cart(lines, DeliveryInfo(delivery_address="12 Hill Rd"))

    assert [order.vendor_ref for order in orders] == ["vendor-a", "vendor-b"]
    vendor_a, vendor_b = orders
    assert vendor_a.status is OrderStatus.RENTAL_ORDER
    assert len(vendor_a.items) == 2
    assert vendor_a.subtotal == 260
    assert vendor_a.tax_amount == 26
    assert vendor_a.security_deposit == 50
    assert vendor_a.total_amount == 336
    assert vendor_a.delivery.delivery_address == "12 Hill Rd"
    assert vendor_b.subtotal == 160
    assert vendor_a.order_number.startswith("ORD-")

    stored = engine.order_service.get_order(vendor_a.id)
    assert stored.total_amount == 336
    assert {item.pricing_rule for item in stored.items} == {PricingRule.DAILY}


def test_stored_cart_is_cleared_after_checkout(engine, catalog, interval):
    cart = engine.cart_service
    cart.add_line("customer-1", catalog.chair.id, interval.start, interval.end, 2)
    cart.add_line("customer-1", catalog.camera.id, interval.start, interval.end, 1)

    orders = engine.checkout("customer-1")

    assert len(orders) == 2
    assert cart.list_lines("customer-1") == []


def test_failed_vendor_order_keeps_its_cart_lines(engine, catalog, interval):
    cart = engine.cart_service
    cart.add_line("customer-1", catalog.chair.id, interval.start, interval.end, 1)
    cart.add_line("customer-1", catalog.camera.id, interval.start, interval.end, 3)

    result = engine.checkout_service.commit(cart.list_lines("customer-1"))

    assert [order.vendor_ref for order in result.orders] == ["vendor-b"]
    error = result.failures["vendor-a"]
    assert isinstance(error, InsufficientStock)
    assert error.available == 2
    [remaining] = cart.list_lines("customer-1")
    assert remaining.product_id == catalog.camera.id


def test_insufficient_stock_reports_available(engine, catalog, interval, line_factory):
    with pytest.raises(InsufficientStock) as excinfo:
        engine.commit_cart([line_factory(catalog.tent, interval, quantity=2)])
    assert excinfo.value.product_id == catalog.tent.id
    assert excinfo.value.requested == 2
    assert excinfo.value.available == 1
    assert engine.order_service.list_orders() == []


def test_inactive_product_is_rejected(engine, catalog, interval, line_factory):
    engine.product_repo.set_active(catalog.tent.id, False)
    with pytest.raises(ProductUnavailable):
        engine.commit_cart([line_factory(catalog.tent, interval)])


def test_empty_and_mixed_carts_are_rejected(engine, catalog, interval, line_factory):
    with pytest.raises(ValidationError):
        engine.commit_cart([])
    with pytest.raises(ValidationError):
        engine.commit_cart(
            [
                line_factory(catalog.chair, interval, customer_ref="a"),
                line_factory(catalog.chair, interval, customer_ref="b"),
            ]
        )


def _coupon(engine, clock, code, discount_type, value, **kwargs):
    return engine.coupon_service.create_coupon(
        code,
        discount_type,
        value,
        clock() - timedelta(days=1),
        clock() + timedelta(days=30),
        **kwargs,
    )


def test_coupon_applies_per_order_and_is_counted(
    engine, clock, catalog, interval, line_factory
):
    _coupon(engine, clock, "SAVE10", DiscountType.PERCENT, 10)
    orders = engine.commit_cart(
        [line_factory(catalog.camera, interval), line_factory(catalog.chair, interval)],
        coupon_code=" save10 ",
    )

    assert [order.discount_amount for order in orders] == [20, 8]
    assert all(order.coupon_code == "SAVE10" for order in orders)
    assert orders[0].total_amount == 200 + 20 - 20 + 50
    assert engine.coupon_service.get("SAVE10").used_count == 2


def test_coupon_minimum_not_met_leaves_order_undiscounted(
    engine, clock, catalog, interval, line_factory
):
    _coupon(engine, clock, "BIG", DiscountType.FIXED, 50, min_order_amount=150)
    camera_order, chair_order = engine.commit_cart(
        [line_factory(catalog.camera, interval), line_factory(catalog.chair, interval)],
        coupon_code="BIG",
    )

    assert camera_order.discount_amount == 50
    assert chair_order.discount_amount == 0
    assert chair_order.coupon_code is None
    assert engine.coupon_service.get("BIG").used_count == 1


def test_unknown_coupon_fails_the_whole_commit(engine, catalog, interval, line_factory):
    with pytest.raises(CouponNotFound):
        engine.commit_cart([line_factory(catalog.chair, interval)], coupon_code="NOPE")
    assert engine.order_service.list_orders() == []


def test_quotation_with_manual_price(engine, catalog, interval, line_factory):
    order = engine.checkout_service.create_quotation(
        "customer-9",
        "vendor-b",
        [line_factory(catalog.chair, interval, quantity=5, customer_ref="customer-9")],
        notes="phone order",
        unit_prices={catalog.chair.id: 70.0},
    )

    assert order.status is OrderStatus.QUOTATION
    assert order.order_number.startswith("QUO-")
    assert order.subtotal == 350
    assert order.items[0].pricing_rule is PricingRule.MANUAL
    assert engine.check_availability(catalog.chair.id, interval) == 5


def test_quotation_rejects_other_vendors_products(
    engine, catalog, interval, line_factory
):
    with pytest.raises(ValidationError):
        engine.checkout_service.create_quotation(
            "customer-9", "vendor-b", [line_factory(catalog.camera, interval)]
        )


def test_replayed_cart_lines_are_not_booked_twice(engine, catalog, interval):
    cart = engine.cart_service
    cart.add_line("customer-1", catalog.chair.id, interval.start, interval.end, 2)
    lines = cart.list_lines("customer-1")

    [order] = engine.commit_cart(lines)
    with pytest.raises(ValidationError):
        engine.commit_cart(lines)

    assert [o.id for o in engine.order_service.list_orders()] == [order.id]
    assert engine.check_availability(catalog.chair.id, interval) == 8


def test_coupon_used_up_midway_leaves_later_order_undiscounted(
    engine, clock, catalog, interval, line_factory
):
    _coupon(engine, clock, "ONCE", DiscountType.FIXED, 10, usage_limit=1)
    camera_order, chair_order = engine.commit_cart(
        [line_factory(catalog.camera, interval), line_factory(catalog.chair, interval)],
        coupon_code="ONCE",
    )

    assert (camera_order.discount_amount, camera_order.coupon_code) == (10, "ONCE")
    assert (chair_order.discount_amount, chair_order.coupon_code) == (0, None)
    assert chair_order.total_amount == 80 + 8
    assert engine.coupon_service.get("ONCE").used_count == 1


def test_discount_survives_coupon_expiry(engine, clock, catalog, interval, line_factory):
    _coupon(engine, clock, "SAVE10", DiscountType.PERCENT, 10)
    [order] = engine.commit_cart(
        [line_factory(catalog.chair, interval)], coupon_code="SAVE10"
    )

    clock.advance(days=45)
    stored = engine.order_service.get_order(order.id)
    invoice = engine.create_invoice(order.id)

    assert stored.discount_amount == order.discount_amount == 8
    assert stored.total_amount == order.total_amount
    assert invoice.discount_amount == 8
