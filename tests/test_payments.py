import pytest

from rental_engine.config import EngineSettings, PartialMinimumBasis, PaymentPolicy
from rental_engine.domain.models import InvoiceStatus
from rental_engine.services.errors import (
    InvalidInvoiceState,
    InvalidPaymentAmount,
    OverpaymentRejected,
    PartialPaymentNotAllowed,
    PartialPaymentTooSmall,
)


@pytest.fixture
def settings() -> EngineSettings:
    return EngineSettings(tax_rate=0)


@pytest.fixture
def invoice(engine, catalog, interval, line_factory):
    [order] = engine.commit_cart([line_factory(catalog.tent, interval)])
    return engine.post_invoice(engine.create_invoice(order.id).id)


def test_partial_then_full_payment(engine, invoice):
    assert invoice.total_amount == 1000

    first = engine.register_payment(invoice.id, 500, partial=True)
    assert first.status is InvoiceStatus.PARTIALLY_PAID
    assert first.amount_paid == 500

    with pytest.raises(PartialPaymentNotAllowed):
        engine.register_payment(invoice.id, 200, partial=True)

    final = engine.register_payment(invoice.id, 500)
    assert final.status is InvoiceStatus.PAID
    assert final.amount_paid == 1000
    assert [p.amount for p in engine.list_payments(invoice.id)] == [500, 500]
    assert engine.payment_service.outstanding(invoice.id) == 0


def test_undeclared_short_payment_counts_as_partial(engine, invoice):
    engine.register_payment(invoice.id, 600)
    [payment] = engine.list_payments(invoice.id)
    assert payment.partial is True
    with pytest.raises(PartialPaymentNotAllowed):
        engine.register_payment(invoice.id, 300)


def test_partial_below_half_of_outstanding(engine, invoice):
    with pytest.raises(PartialPaymentTooSmall) as excinfo:
        engine.register_payment(invoice.id, 499.99, partial=True)
    assert excinfo.value.minimum == 500
    assert engine.list_payments(invoice.id) == []


def test_overpayment_rejected(engine, invoice):
    with pytest.raises(OverpaymentRejected) as excinfo:
        engine.register_payment(invoice.id, 1000.01)
    assert excinfo.value.outstanding == 1000


@pytest.mark.parametrize("amount", [0, -10])
def test_non_positive_amount(engine, invoice, amount):
    with pytest.raises(InvalidPaymentAmount):
        engine.register_payment(invoice.id, amount)


def test_draft_and_paid_invoices_refuse_payment(engine, catalog, interval, line_factory):
    [order] = engine.commit_cart([line_factory(catalog.chair, interval)])
    draft = engine.create_invoice(order.id)
    with pytest.raises(InvalidInvoiceState):
        engine.register_payment(draft.id, 10)

    engine.post_invoice(draft.id)
    engine.register_payment(draft.id, draft.total_amount)
    with pytest.raises(InvalidInvoiceState):
        engine.register_payment(draft.id, 1)


@pytest.mark.parametrize(
    "settings",
    [
        EngineSettings(
            tax_rate=0,
            payment_policy=PaymentPolicy(
                max_partial_payments=2,
                partial_minimum_basis=PartialMinimumBasis.TOTAL,
            ),
        )
    ],
)
def test_policy_allows_more_partials_against_total(settings, engine, invoice):
    engine.register_payment(invoice.id, 500, partial=True)
    with pytest.raises(PartialPaymentTooSmall):
        engine.register_payment(invoice.id, 400, partial=True)
    second = engine.register_payment(invoice.id, 500, partial=True)
    assert second.status is InvoiceStatus.PAID
