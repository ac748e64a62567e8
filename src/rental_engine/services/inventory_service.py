"""Inventory availability calculations."""

from __future__ import annotations

import sqlite3
from datetime import date, datetime
from typing import Iterable, Optional

from rental_engine.domain.intervals import RentalInterval, overlaps
from rental_engine.domain.models import OrderStatus
from rental_engine.logging_config import get_logger
from rental_engine.services.errors import InsufficientStock, NotFoundError
from rental_engine.utils.clock import normalize_instant, to_iso

RequestedLine = tuple[int, RentalInterval, int]


class InventoryService:
    """Availability derived from non-cancelled order items; no stored counters."""

    def __init__(self, connection: sqlite3.Connection) -> None:
        self._connection = connection
        self._connection.row_factory = sqlite3.Row
        self._logger = get_logger(self.__class__.__name__)

    def get_reserved_qty(
        self,
        product_id: int,
        interval: RentalInterval,
        exclude_order_id: Optional[int] = None,
    ) -> int:
        params: list[object] = [
            product_id,
            OrderStatus.CANCELLED.value,
            interval.end_iso,
            interval.start_iso,
        ]
        exclude_clause = ""
        if exclude_order_id is not None:
            exclude_clause = "AND o.id <> ?"
            params.append(exclude_order_id)
        try:
            row = self._connection.execute(
                f"""
                SELECT COALESCE(SUM(oi.quantity), 0) AS reserved_qty
                FROM order_items oi
                JOIN orders o ON o.id = oi.order_id
                WHERE oi.product_id = ?
                  AND o.status <> ?
                  AND oi.start_at < ?
                  AND oi.end_at > ?
                  {exclude_clause}
                """,
                params,
            ).fetchone()
        except Exception:
            self._logger.exception(
                "Failed to fetch reserved qty for product_id=%s", product_id
            )
            raise
        return int(row["reserved_qty"]) if row else 0

    def available(
        self,
        product_id: int,
        interval: RentalInterval,
        exclude_order_id: Optional[int] = None,
    ) -> int:
        total_qty = self._total_qty(product_id)
        reserved_qty = self.get_reserved_qty(
            product_id, interval, exclude_order_id=exclude_order_id
        )
        return max(total_qty - reserved_qty, 0)

    def on_loan(
        self,
        product_id: int,
        reference: datetime | date | str,
    ) -> int:
        """Units whose booked interval contains ``reference``."""
        instant = to_iso(normalize_instant(reference))
        try:
            row = self._connection.execute(
                """
                SELECT COALESCE(SUM(oi.quantity), 0) AS reserved_qty
                FROM order_items oi
                JOIN orders o ON o.id = oi.order_id
                WHERE oi.product_id = ?
                  AND o.status <> ?
                  AND oi.start_at <= ?
                  AND oi.end_at > ?
                """,
                (product_id, OrderStatus.CANCELLED.value, instant, instant),
            ).fetchone()
        except Exception:
            self._logger.exception(
                "Failed to fetch qty on loan for product_id=%s", product_id
            )
            raise
        return int(row["reserved_qty"]) if row else 0

    def validate_lines(
        self,
        lines: Iterable[RequestedLine],
        exclude_order_id: Optional[int] = None,
    ) -> None:
        """Raise ``InsufficientStock`` for the first line that does not fit.

        Earlier lines of the same request count against later overlapping
        lines for the same product.
        """
        pending: list[RequestedLine] = []
        for product_id, interval, qty in lines:
            free_qty = self.available(
                product_id, interval, exclude_order_id=exclude_order_id
            )
            held_by_request = sum(
                other_qty
                for other_id, other_interval, other_qty in pending
                if other_id == product_id and overlaps(other_interval, interval)
            )
            remaining = max(free_qty - held_by_request, 0)
            if qty > remaining:
                self._logger.warning(
                    "Insufficient stock product_id=%s interval=%s requested=%s available=%s",
                    product_id,
                    interval,
                    qty,
                    remaining,
                )
                raise InsufficientStock(product_id, qty, remaining)
            pending.append((product_id, interval, qty))

    def _total_qty(self, product_id: int) -> int:
        try:
            row = self._connection.execute(
                "SELECT total_qty FROM products WHERE id = ?",
                (product_id,),
            ).fetchone()
        except Exception:
            self._logger.exception("Failed to fetch product for id=%s", product_id)
            raise
        if not row:
            raise NotFoundError(f"Product {product_id} not found.")
        return int(row["total_qty"])
