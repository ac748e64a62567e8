"""Repository helpers for order persistence."""

from __future__ import annotations

import sqlite3
from typing import Iterable, List, Optional

from rental_engine.domain.models import Order, OrderItem, OrderStatus, Pickup, Return
from rental_engine.logging_config import get_logger
from rental_engine.repositories.mappers import (
    order_from_row,
    order_item_from_row,
    order_item_to_record,
    order_to_record,
    pickup_from_row,
    return_from_row,
)

ORDER_COLUMNS = (
    "order_number",
    "customer_ref",
    "vendor_ref",
    "status",
    "subtotal",
    "tax_amount",
    "discount_amount",
    "coupon_code",
    "security_deposit",
    "total_amount",
    "delivery_method",
    "delivery_address",
    "billing_address",
    "notes",
    "version",
    "created_at",
    "updated_at",
    "confirmed_at",
)

ITEM_COLUMNS = (
    "order_id",
    "product_id",
    "start_at",
    "end_at",
    "quantity",
    "unit_price",
    "line_total",
    "pricing_rule",
)


def _insert_sql(table: str, columns: Iterable[str]) -> str:
    columns = tuple(columns)
    placeholders = ", ".join(["?"] * len(columns))
    return f"INSERT INTO {table} ({', '.join(columns)}) VALUES ({placeholders})"


class OrderRepository:
    """Data access for orders, their items and pickup/return records.

    Writes never commit: the calling service owns the transaction.
    """

    def __init__(self, connection: sqlite3.Connection) -> None:
        self._connection = connection
        self._connection.row_factory = sqlite3.Row
        self._logger = get_logger(self.__class__.__name__)

    def create(self, order: Order) -> Order:
        record = order_to_record(order)
        try:
            cursor = self._connection.execute(
                _insert_sql("orders", ORDER_COLUMNS),
                [record[column] for column in ORDER_COLUMNS],
            )
            order.id = int(cursor.lastrowid)
            for item in order.items:
                item.order_id = order.id
                item_record = order_item_to_record(item)
                item_cursor = self._connection.execute(
                    _insert_sql("order_items", ITEM_COLUMNS),
                    [item_record[column] for column in ITEM_COLUMNS],
                )
                item.id = int(item_cursor.lastrowid)
        except Exception:
            self._logger.exception("Failed to create order %s", order.order_number)
            raise
        return order

    def get(self, order_id: int) -> Optional[Order]:
        try:
            row = self._connection.execute(
                "SELECT * FROM orders WHERE id = ?",
                (order_id,),
            ).fetchone()
        except Exception:
            self._logger.exception("Failed to fetch order id=%s", order_id)
            raise
        if not row:
            return None
        order = order_from_row(row)
        order.items = self.list_items(order_id)
        order.pickup = self.get_pickup(order_id)
        order.return_record = self.get_return(order_id)
        order.invoice_id = self._invoice_id(order_id)
        return order

    def list_items(self, order_id: int) -> List[OrderItem]:
        try:
            rows = self._connection.execute(
                "SELECT * FROM order_items WHERE order_id = ? ORDER BY id",
                (order_id,),
            ).fetchall()
        except Exception:
            self._logger.exception("Failed to list items order_id=%s", order_id)
            raise
        return [order_item_from_row(row) for row in rows]

    def list_orders(
        self,
        *,
        customer_ref: Optional[str] = None,
        vendor_ref: Optional[str] = None,
        status: Optional[OrderStatus] = None,
    ) -> List[Order]:
        clauses: list[str] = []
        params: list[object] = []
        if customer_ref is not None:
            clauses.append("customer_ref = ?")
            params.append(customer_ref)
        if vendor_ref is not None:
            clauses.append("vendor_ref = ?")
            params.append(vendor_ref)
        if status is not None:
            clauses.append("status = ?")
            params.append(status.value)
        where = f"WHERE {' AND '.join(clauses)}" if clauses else ""
        try:
            rows = self._connection.execute(
                f"SELECT id FROM orders {where} ORDER BY created_at DESC, id DESC",
                params,
            ).fetchall()
        except Exception:
            self._logger.exception("Failed to list orders")
            raise
        return [order for order in (self.get(int(row["id"])) for row in rows) if order]

    def update_status(
        self,
        order_id: int,
        *,
        expected_status: OrderStatus,
        expected_version: int,
        new_status: OrderStatus,
        updated_at: str,
        confirmed_at: Optional[str] = None,
    ) -> bool:
        """Compare-and-swap on (status, version); False when the row moved on."""
        try:
            cursor = self._connection.execute(
                """
                UPDATE orders
                SET status = ?,
                    version = version + 1,
                    updated_at = ?,
                    confirmed_at = COALESCE(?, confirmed_at)
                WHERE id = ?
                  AND status = ?
                  AND version = ?
                """,
                (
                    new_status.value,
                    updated_at,
                    confirmed_at,
                    order_id,
                    expected_status.value,
                    expected_version,
                ),
            )
        except Exception:
            self._logger.exception("Failed to update status order_id=%s", order_id)
            raise
        return cursor.rowcount > 0

    def get_pickup(self, order_id: int) -> Optional[Pickup]:
        row = self._connection.execute(
            "SELECT * FROM pickups WHERE order_id = ?",
            (order_id,),
        ).fetchone()
        return pickup_from_row(row) if row else None

    def get_return(self, order_id: int) -> Optional[Return]:
        row = self._connection.execute(
            "SELECT * FROM returns WHERE order_id = ?",
            (order_id,),
        ).fetchone()
        return return_from_row(row) if row else None

    def create_pickup(
        self, order_id: int, picked_at: str, notes: Optional[str] = None
    ) -> Pickup:
        try:
            cursor = self._connection.execute(
                """
                INSERT INTO pickups (order_id, picked_at, notes)
                VALUES (?, ?, ?)
                """,
                (order_id, picked_at, notes),
            )
        except Exception:
            self._logger.exception("Failed to create pickup order_id=%s", order_id)
            raise
        return Pickup(
            id=int(cursor.lastrowid),
            order_id=order_id,
            picked_at=picked_at,
            notes=notes,
        )

    def create_return(self, record: Return) -> Return:
        try:
            cursor = self._connection.execute(
                """
                INSERT INTO returns (
                    order_id,
                    returned_at,
                    late_fee,
                    damage_fee,
                    delay_days,
                    notes
                )
                VALUES (?, ?, ?, ?, ?, ?)
                """,
                (
                    record.order_id,
                    record.returned_at,
                    record.late_fee,
                    record.damage_fee,
                    record.delay_days,
                    record.notes,
                ),
            )
        except Exception:
            self._logger.exception(
                "Failed to create return order_id=%s", record.order_id
            )
            raise
        record.id = int(cursor.lastrowid)
        return record

    def _invoice_id(self, order_id: int) -> Optional[int]:
        row = self._connection.execute(
            "SELECT id FROM invoices WHERE order_id = ?",
            (order_id,),
        ).fetchone()
        return int(row["id"]) if row else None
