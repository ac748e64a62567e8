"""Repository for coupons."""

from __future__ import annotations

import sqlite3
from typing import Optional

from rental_engine.db.connection import transaction
from rental_engine.domain.models import Coupon, DiscountType
from rental_engine.logging_config import get_logger
from rental_engine.repositories.mappers import coupon_from_row
from rental_engine.utils.clock import to_iso, utc_now


class CouponRepo:
    def __init__(self, connection: sqlite3.Connection) -> None:
        self._connection = connection
        self._connection.row_factory = sqlite3.Row
        self._logger = get_logger(self.__class__.__name__)

    def create(
        self,
        code: str,
        discount_type: DiscountType,
        discount_value: float,
        valid_from: str,
        valid_until: str,
        min_order_amount: Optional[float] = None,
        max_discount: Optional[float] = None,
        usage_limit: Optional[int] = None,
        active: bool = True,
        created_at: Optional[str] = None,
    ) -> Coupon:
        created_at = created_at or to_iso(utc_now())
        try:
            with transaction(self._connection):
                cursor = self._connection.execute(
                    """
                    INSERT INTO coupons (
                        code,
                        discount_type,
                        discount_value,
                        min_order_amount,
                        max_discount,
                        valid_from,
                        valid_until,
                        usage_limit,
                        active,
                        created_at
                    )
                    VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                    """,
                    (
                        code,
                        discount_type.value,
                        discount_value,
                        min_order_amount,
                        max_discount,
                        valid_from,
                        valid_until,
                        usage_limit,
                        int(active),
                        created_at,
                    ),
                )
        except Exception:
            self._logger.exception("Failed to create coupon code=%s", code)
            raise
        return Coupon(
            id=int(cursor.lastrowid),
            code=code,
            discount_type=discount_type,
            discount_value=discount_value,
            valid_from=valid_from,
            valid_until=valid_until,
            min_order_amount=min_order_amount,
            max_discount=max_discount,
            usage_limit=usage_limit,
            active=active,
            created_at=created_at,
        )

    def get_by_code(self, code: str) -> Optional[Coupon]:
        try:
            row = self._connection.execute(
                "SELECT * FROM coupons WHERE code = ?",
                (code,),
            ).fetchone()
        except Exception:
            self._logger.exception("Failed to fetch coupon code=%s", code)
            raise
        return coupon_from_row(row) if row else None

    def increment_usage(self, coupon_id: int) -> bool:
        """Count one use unless the usage limit is already reached."""
        try:
            cursor = self._connection.execute(
                """
                UPDATE coupons
                SET used_count = used_count + 1
                WHERE id = ?
                  AND (usage_limit IS NULL OR used_count < usage_limit)
                """,
                (coupon_id,),
            )
        except Exception:
            self._logger.exception("Failed to count coupon usage id=%s", coupon_id)
            raise
        return cursor.rowcount > 0
