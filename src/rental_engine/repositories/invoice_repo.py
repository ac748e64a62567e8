"""Repository for invoice persistence."""

from __future__ import annotations

import sqlite3
from typing import Optional

from rental_engine.domain.models import Invoice
from rental_engine.logging_config import get_logger
from rental_engine.repositories.mappers import invoice_from_row


class InvoiceRepository:
    """Data access for invoices. Writes run inside the caller's transaction."""

    def __init__(self, connection: sqlite3.Connection) -> None:
        self._connection = connection
        self._connection.row_factory = sqlite3.Row
        self._logger = get_logger(self.__class__.__name__)

    def create(self, invoice: Invoice) -> Invoice:
        try:
            cursor = self._connection.execute(
                """
                INSERT INTO invoices (
                    invoice_number,
                    order_id,
                    customer_ref,
                    vendor_ref,
                    status,
                    subtotal,
                    tax_amount,
                    discount_amount,
                    security_deposit,
                    late_fee,
                    damage_fee,
                    total_amount,
                    amount_paid,
                    version,
                    created_at,
                    posted_at
                )
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    invoice.invoice_number,
                    invoice.order_id,
                    invoice.customer_ref,
                    invoice.vendor_ref,
                    invoice.status.value,
                    invoice.subtotal,
                    invoice.tax_amount,
                    invoice.discount_amount,
                    invoice.security_deposit,
                    invoice.late_fee,
                    invoice.damage_fee,
                    invoice.total_amount,
                    invoice.amount_paid,
                    invoice.version,
                    invoice.created_at,
                    invoice.posted_at,
                ),
            )
        except Exception:
            self._logger.exception(
                "Failed to create invoice order_id=%s", invoice.order_id
            )
            raise
        invoice.id = int(cursor.lastrowid)
        return invoice

    def get(self, invoice_id: int) -> Optional[Invoice]:
        try:
            row = self._connection.execute(
                "SELECT * FROM invoices WHERE id = ?",
                (invoice_id,),
            ).fetchone()
        except Exception:
            self._logger.exception("Failed to fetch invoice id=%s", invoice_id)
            raise
        return invoice_from_row(row) if row else None

    def get_by_order(self, order_id: int) -> Optional[Invoice]:
        try:
            row = self._connection.execute(
                "SELECT * FROM invoices WHERE order_id = ?",
                (order_id,),
            ).fetchone()
        except Exception:
            self._logger.exception("Failed to fetch invoice order_id=%s", order_id)
            raise
        return invoice_from_row(row) if row else None

    def save_changes(self, invoice: Invoice, expected_version: int) -> bool:
        """Write the mutable columns if nobody bumped the version meanwhile."""
        try:
            cursor = self._connection.execute(
                """
                UPDATE invoices
                SET status = ?,
                    late_fee = ?,
                    damage_fee = ?,
                    total_amount = ?,
                    amount_paid = ?,
                    posted_at = ?,
                    version = version + 1
                WHERE id = ?
                  AND version = ?
                """,
                (
                    invoice.status.value,
                    invoice.late_fee,
                    invoice.damage_fee,
                    invoice.total_amount,
                    invoice.amount_paid,
                    invoice.posted_at,
                    invoice.id,
                    expected_version,
                ),
            )
        except Exception:
            self._logger.exception("Failed to update invoice id=%s", invoice.id)
            raise
        if cursor.rowcount > 0:
            invoice.version = expected_version + 1
            return True
        return False
