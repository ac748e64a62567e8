"""Payment registration against posted invoices."""

from __future__ import annotations

import sqlite3
from typing import Optional

from rental_engine.config import EngineSettings, PartialMinimumBasis, PaymentPolicy
from rental_engine.db.connection import transaction
from rental_engine.domain.models import Invoice, InvoiceStatus, Payment
from rental_engine.logging_config import get_logger
from rental_engine.repositories.invoice_repo import InvoiceRepository
from rental_engine.repositories.payment_repo import PaymentRepository
from rental_engine.services.errors import (
    ConcurrentModification,
    InvalidInvoiceState,
    InvalidPaymentAmount,
    NotFoundError,
    OverpaymentRejected,
    PartialPaymentNotAllowed,
    PartialPaymentTooSmall,
    PaymentRejected,
)
from rental_engine.services.invoice_service import derive_status
from rental_engine.services.pricing_service import round_money
from rental_engine.utils.clock import Clock, to_iso, utc_now

PAYABLE_STATUSES = frozenset({InvoiceStatus.POSTED, InvoiceStatus.PARTIALLY_PAID})


class PaymentService:
    """Service for invoice payments.

    ``amount_paid`` on the invoice is always recomputed from the ledger.
    """

    def __init__(
        self,
        connection: sqlite3.Connection,
        settings: Optional[EngineSettings] = None,
        clock: Clock = utc_now,
    ) -> None:
        self._connection = connection
        self._connection.row_factory = sqlite3.Row
        self._invoices = InvoiceRepository(connection)
        self._payments = PaymentRepository(connection)
        self._policy: PaymentPolicy = (settings or EngineSettings()).payment_policy
        self._clock = clock
        self._logger = get_logger(self.__class__.__name__)

    def register_payment(
        self,
        invoice_id: int,
        amount: float,
        method: Optional[str] = "cash",
        partial: bool = False,
        note: Optional[str] = None,
    ) -> Invoice:
        if isinstance(amount, bool) or not isinstance(amount, (int, float)):
            raise InvalidPaymentAmount(amount)
        amount = round_money(amount)
        if amount <= 0:
            raise InvalidPaymentAmount(amount)
        try:
            with transaction(self._connection, immediate=True):
                invoice = self._load(invoice_id)
                if invoice.status not in PAYABLE_STATUSES:
                    raise InvalidInvoiceState(
                        f"Invoice {invoice.invoice_number} does not accept "
                        f"payments while {invoice.status.name}."
                    )
                outstanding = round_money(
                    invoice.total_amount - self._payments.get_paid_total(invoice_id)
                )
                if amount > outstanding:
                    raise OverpaymentRejected(amount, outstanding)
                is_partial = partial or amount < outstanding
                if is_partial:
                    self._check_partial(invoice, amount, outstanding)

                payment = self._payments.create(
                    invoice_id,
                    amount,
                    method,
                    to_iso(self._clock()),
                    is_partial,
                    note,
                )
                expected_version = invoice.version
                invoice.amount_paid = self._payments.get_paid_total(invoice_id)
                invoice.status = derive_status(invoice)
                if not self._invoices.save_changes(invoice, expected_version):
                    current = self._invoices.get(invoice_id)
                    raise ConcurrentModification(
                        "Invoice",
                        invoice_id,
                        expected_version,
                        current.version if current else None,
                    )
        except PaymentRejected as exc:
            self._logger.warning("Payment rejected invoice_id=%s: %s", invoice_id, exc)
            raise
        self._logger.info(
            "Payment %s registered invoice=%s amount=%.2f partial=%s status=%s",
            payment.id,
            invoice.invoice_number,
            amount,
            is_partial,
            invoice.status.value,
        )
        return invoice

    def list_payments(self, invoice_id: int) -> list[Payment]:
        self._load(invoice_id)
        return self._payments.list_by_invoice(invoice_id)

    def outstanding(self, invoice_id: int) -> float:
        invoice = self._load(invoice_id)
        return round_money(
            invoice.total_amount - self._payments.get_paid_total(invoice_id)
        )

    def _check_partial(self, invoice: Invoice, amount: float, outstanding: float) -> None:
        used = self._payments.count_partial(int(invoice.id))
        if used >= self._policy.max_partial_payments:
            raise PartialPaymentNotAllowed(int(invoice.id), used)
        if self._policy.partial_minimum_basis is PartialMinimumBasis.TOTAL:
            basis = invoice.total_amount
        else:
            basis = outstanding
        minimum = round_money(basis * self._policy.min_partial_fraction)
        if amount < minimum:
            raise PartialPaymentTooSmall(amount, minimum)

    def _load(self, invoice_id: int) -> Invoice:
        invoice = self._invoices.get(invoice_id)
        if invoice is None:
            raise NotFoundError(f"Invoice {invoice_id} not found.")
        return invoice
