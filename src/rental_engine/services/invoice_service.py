"""Invoice generation and status bookkeeping."""

from __future__ import annotations

import sqlite3
from typing import Optional

from rental_engine.db.connection import transaction
from rental_engine.domain.models import Invoice, InvoiceStatus, OrderStatus
from rental_engine.logging_config import get_logger
from rental_engine.repositories.invoice_repo import InvoiceRepository
from rental_engine.repositories.order_repo import OrderRepository
from rental_engine.services.errors import (
    ConcurrentModification,
    InvalidInvoiceState,
    InvoiceAlreadyExists,
    NotFoundError,
)
from rental_engine.services.pricing_service import round_money
from rental_engine.utils.clock import Clock, to_iso, utc_now
from rental_engine.utils.generators import generate_invoice_number

INVOICEABLE_STATUSES = frozenset(
    {
        OrderStatus.RENTAL_ORDER,
        OrderStatus.CONFIRMED,
        OrderStatus.PICKED_UP,
        OrderStatus.RETURNED,
    }
)


def derive_status(invoice: Invoice) -> InvoiceStatus:
    """Status of a posted invoice given what has been paid against it."""
    if invoice.status is InvoiceStatus.DRAFT:
        return InvoiceStatus.DRAFT
    paid = round_money(invoice.amount_paid)
    if paid >= round_money(invoice.total_amount):
        return InvoiceStatus.PAID
    if paid > 0:
        return InvoiceStatus.PARTIALLY_PAID
    return InvoiceStatus.POSTED


class InvoiceService:
    """Service for order invoices."""

    def __init__(self, connection: sqlite3.Connection, clock: Clock = utc_now) -> None:
        self._connection = connection
        self._connection.row_factory = sqlite3.Row
        self._invoices = InvoiceRepository(connection)
        self._orders = OrderRepository(connection)
        self._clock = clock
        self._logger = get_logger(self.__class__.__name__)

    def get(self, invoice_id: int) -> Invoice:
        invoice = self._invoices.get(invoice_id)
        if invoice is None:
            raise NotFoundError(f"Invoice {invoice_id} not found.")
        return invoice

    def get_by_order(self, order_id: int) -> Optional[Invoice]:
        return self._invoices.get_by_order(order_id)

    def create_invoice(self, order_id: int) -> Invoice:
        with transaction(self._connection, immediate=True):
            order = self._orders.get(order_id)
            if order is None:
                raise NotFoundError(f"Order {order_id} not found.")
            if order.status not in INVOICEABLE_STATUSES:
                raise InvalidInvoiceState(
                    f"Order {order.order_number} cannot be invoiced while "
                    f"{order.status.name}."
                )
            existing = self._invoices.get_by_order(order_id)
            if existing is not None:
                raise InvoiceAlreadyExists(order_id, int(existing.id))
            late_fee = damage_fee = 0.0
            if order.return_record is not None:
                late_fee = order.return_record.late_fee
                damage_fee = order.return_record.damage_fee
            invoice = Invoice(
                id=None,
                invoice_number=generate_invoice_number(),
                order_id=order_id,
                customer_ref=order.customer_ref,
                vendor_ref=order.vendor_ref,
                status=InvoiceStatus.DRAFT,
                subtotal=order.subtotal,
                tax_amount=order.tax_amount,
                discount_amount=order.discount_amount,
                security_deposit=order.security_deposit,
                late_fee=late_fee,
                damage_fee=damage_fee,
                total_amount=round_money(order.total_amount + late_fee + damage_fee),
                created_at=to_iso(self._clock()),
            )
            self._invoices.create(invoice)
        self._logger.info(
            "Invoice %s created for order %s total=%.2f",
            invoice.invoice_number,
            order.order_number,
            invoice.total_amount,
        )
        return invoice

    def post(self, invoice_id: int) -> Invoice:
        with transaction(self._connection, immediate=True):
            invoice = self.get(invoice_id)
            if invoice.status is not InvoiceStatus.DRAFT:
                raise InvalidInvoiceState(
                    f"Only draft invoices can be posted; invoice {invoice_id} "
                    f"is {invoice.status.name}."
                )
            expected_version = invoice.version
            invoice.posted_at = to_iso(self._clock())
            # zero-total invoices are settled as soon as they are posted
            invoice.status = InvoiceStatus.POSTED
            invoice.status = derive_status(invoice)
            self._save(invoice, expected_version)
        self._logger.info("Invoice %s posted", invoice.invoice_number)
        return invoice

    def apply_return_fees(
        self, order_id: int, late_fee: float, damage_fee: float
    ) -> Optional[Invoice]:
        """Add return charges to the order's invoice, if it has one.

        Runs inside the caller's transaction when there is one.
        """
        late_fee = round_money(late_fee)
        damage_fee = round_money(damage_fee)
        if late_fee == 0 and damage_fee == 0:
            return self._invoices.get_by_order(order_id)
        with transaction(self._connection, immediate=True):
            invoice = self._invoices.get_by_order(order_id)
            if invoice is None:
                return None
            expected_version = invoice.version
            invoice.late_fee = round_money(invoice.late_fee + late_fee)
            invoice.damage_fee = round_money(invoice.damage_fee + damage_fee)
            invoice.total_amount = round_money(
                invoice.total_amount + late_fee + damage_fee
            )
            invoice.status = derive_status(invoice)
            self._save(invoice, expected_version)
        self._logger.info(
            "Return fees added to invoice %s late=%.2f damage=%.2f",
            invoice.invoice_number,
            late_fee,
            damage_fee,
        )
        return invoice

    def _save(self, invoice: Invoice, expected_version: int) -> None:
        if not self._invoices.save_changes(invoice, expected_version):
            current = self._invoices.get(int(invoice.id))
            raise ConcurrentModification(
                "Invoice",
                int(invoice.id),
                expected_version,
                current.version if current else None,
            )
