"""Repository for payments persistence."""

from __future__ import annotations

import sqlite3
from typing import Optional

from rental_engine.domain.models import Payment
from rental_engine.logging_config import get_logger
from rental_engine.repositories.mappers import payment_from_row


class PaymentRepository:
    """Append-only payment ledger."""

    def __init__(self, connection: sqlite3.Connection) -> None:
        self._connection = connection
        self._connection.row_factory = sqlite3.Row
        self._logger = get_logger(self.__class__.__name__)

    def list_by_invoice(self, invoice_id: int) -> list[Payment]:
        try:
            rows = self._connection.execute(
                """
                SELECT *
                FROM payments
                WHERE invoice_id = ?
                ORDER BY paid_at, id
                """,
                (invoice_id,),
            ).fetchall()
        except Exception:
            self._logger.exception("Failed to list payments invoice_id=%s", invoice_id)
            raise
        return [payment_from_row(row) for row in rows]

    def create(
        self,
        invoice_id: int,
        amount: float,
        method: Optional[str],
        paid_at: str,
        partial: bool,
        note: Optional[str] = None,
    ) -> Payment:
        try:
            cursor = self._connection.execute(
                """
                INSERT INTO payments (invoice_id, amount, method, paid_at, partial, note)
                VALUES (?, ?, ?, ?, ?, ?)
                """,
                (invoice_id, amount, method, paid_at, int(partial), note),
            )
        except Exception:
            self._logger.exception("Failed to create payment invoice_id=%s", invoice_id)
            raise
        return Payment(
            id=int(cursor.lastrowid),
            invoice_id=invoice_id,
            amount=amount,
            method=method,
            paid_at=paid_at,
            partial=partial,
            note=note,
        )

    def get_paid_total(self, invoice_id: int) -> float:
        try:
            row = self._connection.execute(
                """
                SELECT COALESCE(SUM(amount), 0) AS paid_total
                FROM payments
                WHERE invoice_id = ?
                """,
                (invoice_id,),
            ).fetchone()
        except Exception:
            self._logger.exception(
                "Failed to calculate paid total invoice_id=%s", invoice_id
            )
            raise
        return round(float(row["paid_total"] or 0), 2) if row else 0.0

    def count_partial(self, invoice_id: int) -> int:
        try:
            row = self._connection.execute(
                """
                SELECT COUNT(*) AS partial_count
                FROM payments
                WHERE invoice_id = ?
                  AND partial = 1
                """,
                (invoice_id,),
            ).fetchone()
        except Exception:
            self._logger.exception(
                "Failed to count partial payments invoice_id=%s", invoice_id
            )
            raise
        return int(row["partial_count"]) if row else 0
