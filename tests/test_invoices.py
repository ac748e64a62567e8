import pytest

from rental_engine.config import EngineSettings
from rental_engine.domain.models import InvoiceStatus, OrderAction
from rental_engine.services.errors import (
    InvalidInvoiceState,
    InvoiceAlreadyExists,
    NotFoundError,
)


@pytest.fixture
def settings() -> EngineSettings:
    return EngineSettings(tax_rate=0, late_fee_per_day=100.0)


@pytest.fixture
def order(engine, catalog, interval, line_factory):
    [order] = engine.commit_cart([line_factory(catalog.tent, interval)])
    return order


def test_invoice_snapshots_order(engine, order):
    invoice = engine.create_invoice(order.id)

    assert invoice.status is InvoiceStatus.DRAFT
    assert invoice.invoice_number.startswith("INV-")
    assert invoice.total_amount == order.total_amount == 1000
    assert invoice.amount_paid == 0
    assert invoice.customer_ref == order.customer_ref
    assert engine.order_service.get_order(order.id).invoice_id == invoice.id


def test_one_invoice_per_order(engine, order):
    invoice = engine.create_invoice(order.id)
    with pytest.raises(InvoiceAlreadyExists) as excinfo:
        engine.create_invoice(order.id)
    assert excinfo.value.invoice_id == invoice.id


def test_quotation_and_cancelled_orders_are_not_invoiced(
    engine, catalog, interval, line_factory, order
):
    quotation = engine.checkout_service.create_quotation(
        "customer-1", "vendor-b", [line_factory(catalog.chair, interval)]
    )
    with pytest.raises(InvalidInvoiceState):
        engine.create_invoice(quotation.id)

    engine.transition(order.id, OrderAction.CANCEL)
    with pytest.raises(InvalidInvoiceState):
        engine.create_invoice(order.id)


def test_post_only_from_draft(engine, clock, order):
    invoice = engine.create_invoice(order.id)
    posted = engine.post_invoice(invoice.id)
    assert posted.status is InvoiceStatus.POSTED
    assert posted.posted_at == "2025-03-03T09:00:00"
    with pytest.raises(InvalidInvoiceState):
        engine.post_invoice(invoice.id)


def test_unknown_invoice(engine):
    with pytest.raises(NotFoundError):
        engine.post_invoice(42)


def test_return_fees_added_to_existing_invoice(engine, clock, order, interval):
    invoice = engine.post_invoice(engine.create_invoice(order.id).id)
    engine.register_payment(invoice.id, 1000)
    engine.transition(order.id, OrderAction.CONFIRM)
    engine.transition(order.id, OrderAction.PICK_UP)
    clock.now = interval.end
    clock.advance(hours=1)

    engine.transition(order.id, OrderAction.RETURN, damage_fee=75)

    updated = engine.invoice_service.get(invoice.id)
    assert updated.late_fee == 100
    assert updated.damage_fee == 75
    assert updated.total_amount == 1175
    assert updated.status is InvoiceStatus.PARTIALLY_PAID
    assert engine.order_service.get_order(order.id).total_amount == 1000


def test_invoice_created_after_return_includes_fees(engine, clock, order, interval):
    engine.transition(order.id, OrderAction.CONFIRM)
    engine.transition(order.id, OrderAction.PICK_UP)
    clock.now = interval.end
    clock.advance(days=1, hours=1)
    engine.transition(order.id, OrderAction.RETURN, damage_fee=10)

    invoice = engine.create_invoice(order.id)

    assert invoice.late_fee == 200
    assert invoice.damage_fee == 10
    assert invoice.total_amount == 1210
