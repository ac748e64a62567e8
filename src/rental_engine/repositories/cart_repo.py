"""Repository for customer cart lines."""

from __future__ import annotations

import sqlite3
from typing import Iterable, List, Optional

from rental_engine.domain.intervals import RentalInterval
from rental_engine.domain.models import CartLine
from rental_engine.logging_config import get_logger
from rental_engine.repositories.mappers import cart_line_from_row
from rental_engine.utils.clock import to_iso, utc_now


class CartRepo:
    """Data access for cart lines. Callers own the transaction."""

    def __init__(self, connection: sqlite3.Connection) -> None:
        self._connection = connection
        self._connection.row_factory = sqlite3.Row
        self._logger = get_logger(self.__class__.__name__)

    def list_for_customer(self, customer_ref: str) -> List[CartLine]:
        try:
            rows = self._connection.execute(
                """
                SELECT *
                FROM cart_items
                WHERE customer_ref = ?
                ORDER BY id
                """,
                (customer_ref,),
            ).fetchall()
        except Exception:
            self._logger.exception("Failed to list cart customer=%s", customer_ref)
            raise
        return [cart_line_from_row(row) for row in rows]

    def get_by_id(self, line_id: int) -> Optional[CartLine]:
        try:
            row = self._connection.execute(
                "SELECT * FROM cart_items WHERE id = ?",
                (line_id,),
            ).fetchone()
        except Exception:
            self._logger.exception("Failed to fetch cart line id=%s", line_id)
            raise
        return cart_line_from_row(row) if row else None

    def find_matching(
        self, customer_ref: str, product_id: int, interval: RentalInterval
    ) -> Optional[CartLine]:
        try:
            row = self._connection.execute(
                """
                SELECT *
                FROM cart_items
                WHERE customer_ref = ?
                  AND product_id = ?
                  AND start_at = ?
                  AND end_at = ?
                """,
                (customer_ref, product_id, interval.start_iso, interval.end_iso),
            ).fetchone()
        except Exception:
            self._logger.exception("Failed to match cart line customer=%s", customer_ref)
            raise
        return cart_line_from_row(row) if row else None

    def create(
        self,
        customer_ref: str,
        product_id: int,
        interval: RentalInterval,
        quantity: int,
        created_at: Optional[str] = None,
    ) -> CartLine:
        created_at = created_at or to_iso(utc_now())
        try:
            cursor = self._connection.execute(
                """
                INSERT INTO cart_items (
                    customer_ref,
                    product_id,
                    start_at,
                    end_at,
                    quantity,
                    created_at
                )
                VALUES (?, ?, ?, ?, ?, ?)
                """,
                (
                    customer_ref,
                    product_id,
                    interval.start_iso,
                    interval.end_iso,
                    quantity,
                    created_at,
                ),
            )
        except Exception:
            self._logger.exception("Failed to add cart line customer=%s", customer_ref)
            raise
        return CartLine(
            id=int(cursor.lastrowid),
            customer_ref=customer_ref,
            product_id=product_id,
            interval=interval,
            quantity=quantity,
            created_at=created_at,
        )

    def set_quantity(self, line_id: int, quantity: int) -> bool:
        try:
            cursor = self._connection.execute(
                "UPDATE cart_items SET quantity = ? WHERE id = ?",
                (quantity, line_id),
            )
        except Exception:
            self._logger.exception("Failed to update cart line id=%s", line_id)
            raise
        return cursor.rowcount > 0

    def delete_many(self, line_ids: Iterable[int]) -> int:
        ids = [int(line_id) for line_id in line_ids]
        if not ids:
            return 0
        placeholders = ", ".join(["?"] * len(ids))
        try:
            cursor = self._connection.execute(
                f"DELETE FROM cart_items WHERE id IN ({placeholders})",
                ids,
            )
        except Exception:
            self._logger.exception("Failed to delete cart lines ids=%s", ids)
            raise
        return cursor.rowcount

    def clear(self, customer_ref: str) -> int:
        try:
            cursor = self._connection.execute(
                "DELETE FROM cart_items WHERE customer_ref = ?",
                (customer_ref,),
            )
        except Exception:
            self._logger.exception("Failed to clear cart customer=%s", customer_ref)
            raise
        return cursor.rowcount
