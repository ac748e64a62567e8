"""Repository for product persistence."""

from __future__ import annotations

import sqlite3
from typing import Iterable, List, Optional

from rental_engine.db.connection import transaction
from rental_engine.domain.models import Product, RentalPeriod
from rental_engine.logging_config import get_logger
from rental_engine.repositories.mappers import period_from_row, product_from_row
from rental_engine.utils.clock import to_iso, utc_now


def _now_iso() -> str:
    return to_iso(utc_now())


class ProductRepo:
    """Catalog metadata the engine reads: rates, stock and period multipliers."""

    def __init__(self, connection: sqlite3.Connection) -> None:
        self._connection = connection
        self._connection.row_factory = sqlite3.Row
        self._logger = get_logger(self.__class__.__name__)

    def create(
        self,
        vendor_ref: str,
        name: str,
        daily_rate: float,
        total_qty: int,
        hourly_rate: Optional[float] = None,
        security_deposit: float = 0.0,
        active: bool = True,
        periods: Iterable[tuple[int, float]] = (),
    ) -> Product:
        created_at = _now_iso()
        try:
            with transaction(self._connection):
                cursor = self._connection.execute(
                    """
                    INSERT INTO products (
                        vendor_ref,
                        name,
                        daily_rate,
                        hourly_rate,
                        total_qty,
                        security_deposit,
                        active,
                        created_at,
                        updated_at
                    )
                    VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
                    """,
                    (
                        vendor_ref,
                        name,
                        daily_rate,
                        hourly_rate,
                        total_qty,
                        security_deposit,
                        int(active),
                        created_at,
                        created_at,
                    ),
                )
                product_id = int(cursor.lastrowid)
                saved_periods = [
                    self._insert_period(product_id, days, multiplier)
                    for days, multiplier in periods
                ]
        except Exception:
            self._logger.exception("Failed to create product name=%s", name)
            raise

        return Product(
            id=product_id,
            vendor_ref=vendor_ref,
            name=name,
            daily_rate=daily_rate,
            total_qty=total_qty,
            hourly_rate=hourly_rate,
            security_deposit=security_deposit,
            active=active,
            periods=saved_periods,
            created_at=created_at,
            updated_at=created_at,
        )

    def add_period(
        self,
        product_id: int,
        days: int,
        multiplier: float,
        name: Optional[str] = None,
    ) -> RentalPeriod:
        try:
            with transaction(self._connection):
                return self._insert_period(product_id, days, multiplier, name)
        except Exception:
            self._logger.exception(
                "Failed to add period product_id=%s days=%s", product_id, days
            )
            raise

    def _insert_period(
        self,
        product_id: int,
        days: int,
        multiplier: float,
        name: Optional[str] = None,
    ) -> RentalPeriod:
        label = name or f"{days} day(s)"
        cursor = self._connection.execute(
            """
            INSERT INTO product_periods (product_id, name, days, multiplier)
            VALUES (?, ?, ?, ?)
            """,
            (product_id, label, days, multiplier),
        )
        return RentalPeriod(
            id=int(cursor.lastrowid),
            product_id=product_id,
            days=days,
            multiplier=multiplier,
            name=label,
        )

    def update_stock(self, product_id: int, total_qty: int) -> bool:
        try:
            with transaction(self._connection):
                cursor = self._connection.execute(
                    """
                    UPDATE products
                    SET total_qty = ?,
                        updated_at = ?
                    WHERE id = ?
                    """,
                    (total_qty, _now_iso(), product_id),
                )
        except Exception:
            self._logger.exception("Failed to update stock product id=%s", product_id)
            raise
        return cursor.rowcount > 0

    def set_active(self, product_id: int, active: bool) -> bool:
        try:
            with transaction(self._connection):
                cursor = self._connection.execute(
                    """
                    UPDATE products
                    SET active = ?,
                        updated_at = ?
                    WHERE id = ?
                    """,
                    (int(active), _now_iso(), product_id),
                )
        except Exception:
            self._logger.exception("Failed to toggle product id=%s", product_id)
            raise
        return cursor.rowcount > 0

    def get_by_id(self, product_id: int) -> Optional[Product]:
        products = self.get_many([product_id])
        return products.get(int(product_id))

    def get_many(self, product_ids: Iterable[int]) -> dict[int, Product]:
        ids = sorted({int(product_id) for product_id in product_ids})
        if not ids:
            return {}
        placeholders = ", ".join(["?"] * len(ids))
        try:
            rows = self._connection.execute(
                f"SELECT * FROM products WHERE id IN ({placeholders})",
                ids,
            ).fetchall()
            period_rows = self._connection.execute(
                f"""
                SELECT *
                FROM product_periods
                WHERE product_id IN ({placeholders})
                ORDER BY days
                """,
                ids,
            ).fetchall()
        except Exception:
            self._logger.exception("Failed to load products ids=%s", ids)
            raise
        products = {int(row["id"]): product_from_row(row) for row in rows}
        for row in period_rows:
            period = period_from_row(row)
            products[int(period.product_id)].periods.append(period)
        return products

    def list_by_vendor(self, vendor_ref: str) -> List[Product]:
        try:
            rows = self._connection.execute(
                "SELECT id FROM products WHERE vendor_ref = ? ORDER BY name",
                (vendor_ref,),
            ).fetchall()
        except Exception:
            self._logger.exception("Failed to list products vendor=%s", vendor_ref)
            raise
        products = self.get_many(int(row["id"]) for row in rows)
        return sorted(products.values(), key=lambda product: product.name)

    def list_active(self) -> List[Product]:
        try:
            rows = self._connection.execute(
                "SELECT id FROM products WHERE active = 1"
            ).fetchall()
        except Exception:
            self._logger.exception("Failed to list active products")
            raise
        products = self.get_many(int(row["id"]) for row in rows)
        return sorted(products.values(), key=lambda product: product.name)
