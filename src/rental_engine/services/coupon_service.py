"""Coupon validation and discount evaluation."""

from __future__ import annotations

import sqlite3
from datetime import date, datetime
from typing import Optional

from rental_engine.domain.models import Coupon, DiscountType
from rental_engine.logging_config import get_logger
from rental_engine.repositories.coupon_repo import CouponRepo
from rental_engine.services.errors import (
    CouponExpired,
    CouponMinimumNotMet,
    CouponNotFound,
    CouponUsageLimitReached,
    ValidationError,
)
from rental_engine.services.pricing_service import round_money
from rental_engine.utils.clock import Clock, from_iso, normalize_instant, to_iso, utc_now


def normalize_code(code: str) -> str:
    return (code or "").strip().upper()


class CouponService:
    """Discounts are bounded by the amount they apply to."""

    def __init__(self, connection: sqlite3.Connection, clock: Clock = utc_now) -> None:
        self._connection = connection
        self._repo = CouponRepo(connection)
        self._clock = clock
        self._logger = get_logger(self.__class__.__name__)

    def create_coupon(
        self,
        code: str,
        discount_type: DiscountType | str,
        discount_value: float,
        valid_from: datetime | date | str,
        valid_until: datetime | date | str,
        *,
        min_order_amount: Optional[float] = None,
        max_discount: Optional[float] = None,
        usage_limit: Optional[int] = None,
        active: bool = True,
    ) -> Coupon:
        normalized = normalize_code(code)
        if not normalized:
            raise ValidationError("Coupon code is required.")
        discount_type = DiscountType(discount_type)
        if discount_value < 0:
            raise ValidationError("Coupon discount value cannot be negative.")
        if discount_type is DiscountType.PERCENT and discount_value > 100:
            raise ValidationError("Percent coupons cannot exceed 100%.")
        starts = normalize_instant(valid_from)
        ends = normalize_instant(valid_until)
        if ends < starts:
            raise ValidationError("Coupon validity ends before it starts.")
        return self._repo.create(
            normalized,
            discount_type,
            float(discount_value),
            to_iso(starts),
            to_iso(ends),
            min_order_amount=min_order_amount,
            max_discount=max_discount,
            usage_limit=usage_limit,
            active=active,
            created_at=to_iso(self._clock()),
        )

    def get(self, code: str) -> Optional[Coupon]:
        return self._repo.get_by_code(normalize_code(code))

    def resolve(self, code: str, now: Optional[datetime] = None) -> Coupon:
        """Return a coupon usable at ``now`` regardless of order amount."""
        normalized = normalize_code(code)
        coupon = self._repo.get_by_code(normalized) if normalized else None
        if coupon is None or not coupon.active:
            raise CouponNotFound(normalized)
        now = now or self._clock()
        if not from_iso(coupon.valid_from) <= now <= from_iso(coupon.valid_until):
            raise CouponExpired(coupon.code)
        if coupon.usage_limit is not None and coupon.used_count >= coupon.usage_limit:
            raise CouponUsageLimitReached(coupon.code, coupon.usage_limit)
        return coupon

    def discount_for(self, coupon: Coupon, amount: float) -> float:
        if coupon.min_order_amount is not None and amount < coupon.min_order_amount:
            raise CouponMinimumNotMet(coupon.code, amount, coupon.min_order_amount)
        if coupon.discount_type is DiscountType.PERCENT:
            discount = amount * coupon.discount_value / 100
            if coupon.max_discount is not None:
                discount = min(discount, coupon.max_discount)
        else:
            discount = coupon.discount_value
        return round_money(max(min(discount, amount), 0.0))

    def validate(self, code: str, amount: float, now: Optional[datetime] = None) -> float:
        coupon = self.resolve(code, now=now)
        return self.discount_for(coupon, float(amount))

    def redeem(self, coupon: Coupon) -> None:
        """Count one use; runs inside the caller's transaction."""
        if not self._repo.increment_usage(int(coupon.id)):
            raise CouponUsageLimitReached(coupon.code, coupon.usage_limit or 0)
        coupon.used_count += 1
