"""Seed demo catalog and coupons into the RentalEngine SQLite database."""

from __future__ import annotations

import argparse
import sqlite3
import sys
from dataclasses import dataclass, field
from datetime import timedelta
from pathlib import Path
from typing import Optional

REPO_ROOT = Path(__file__).resolve().parents[1]
SRC_ROOT = REPO_ROOT / "src"
if str(SRC_ROOT) not in sys.path:
    sys.path.insert(0, str(SRC_ROOT))

from rental_engine.db.connection import get_connection
from rental_engine.db.migrations import apply_migrations
from rental_engine.domain.models import DiscountType
from rental_engine.paths import get_db_path
from rental_engine.repositories.product_repo import ProductRepo
from rental_engine.services.coupon_service import CouponService
from rental_engine.utils.clock import utc_now

SEED_VENDOR = "vendor-rentpro"
SECOND_VENDOR = "vendor-homestyle"
COUPON_VALIDITY_DAYS = 30


@dataclass(frozen=True)
class ProductSeed:
    vendor_ref: str
    name: str
    daily_rate: float
    total_qty: int
    hourly_rate: Optional[float] = None
    security_deposit: float = 0.0
    periods: tuple[tuple[int, float], ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class CouponSeed:
    code: str
    discount_type: DiscountType
    discount_value: float
    min_order_amount: Optional[float]
    max_discount: Optional[float]
    usage_limit: Optional[int]


def _parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Seed demo data for RentalEngine")
    parser.add_argument(
        "--db",
        type=Path,
        default=None,
        help="Database file (defaults to the app data directory).",
    )
    parser.add_argument(
        "--reset",
        action="store_true",
        help="Remove the current database and recreate it before seeding.",
    )
    return parser.parse_args()


def _load_seed_products() -> list[ProductSeed]:
    return [
        ProductSeed(
            vendor_ref=SEED_VENDOR,
            name="Canon EOS R5 Camera",
            daily_rate=2500.0,
            total_qty=3,
            hourly_rate=150.0,
            security_deposit=5000.0,
            periods=((1, 1.0), (7, 5.0)),
        ),
        ProductSeed(
            vendor_ref=SEED_VENDOR,
            name="Sony A7 III",
            daily_rate=2000.0,
            total_qty=2,
            hourly_rate=120.0,
            security_deposit=4000.0,
            periods=((1, 1.0), (7, 5.0)),
        ),
        ProductSeed(
            vendor_ref=SECOND_VENDOR,
            name="Office Chair Ergonomic",
            daily_rate=500.0,
            total_qty=5,
            periods=((1, 1.0), (30, 20.0)),
        ),
    ]


def _load_seed_coupons() -> list[CouponSeed]:
    return [
        CouponSeed(
            code="WELCOME10",
            discount_type=DiscountType.PERCENT,
            discount_value=10.0,
            min_order_amount=1000.0,
            max_discount=500.0,
            usage_limit=100,
        ),
        CouponSeed(
            code="FLAT200",
            discount_type=DiscountType.FIXED,
            discount_value=200.0,
            min_order_amount=1500.0,
            max_discount=None,
            usage_limit=50,
        ),
    ]


def _seed_exists(connection: sqlite3.Connection) -> bool:
    row = connection.execute(
        "SELECT COUNT(*) AS total FROM products WHERE vendor_ref IN (?, ?)",
        (SEED_VENDOR, SECOND_VENDOR),
    ).fetchone()
    return bool(row and row["total"])


def main() -> None:
    args = _parse_args()
    db_path = args.db or get_db_path()
    if args.reset and db_path.exists():
        db_path.unlink()
        print(f"Database removed: {db_path}")

    print(f"Using database: {db_path}")
    connection = get_connection(db_path)
    try:
        apply_migrations(connection)
        if _seed_exists(connection) and not args.reset:
            print("Seed data already present. Use --reset to recreate the database.")
            return

        product_repo = ProductRepo(connection)
        for seed in _load_seed_products():
            product = product_repo.create(
                seed.vendor_ref,
                seed.name,
                seed.daily_rate,
                seed.total_qty,
                hourly_rate=seed.hourly_rate,
                security_deposit=seed.security_deposit,
                periods=seed.periods,
            )
            print(f"- Product {product.id}: {product.name} ({product.vendor_ref})")

        coupon_service = CouponService(connection)
        valid_from = utc_now()
        valid_until = valid_from + timedelta(days=COUPON_VALIDITY_DAYS)
        for seed in _load_seed_coupons():
            coupon_service.create_coupon(
                seed.code,
                seed.discount_type,
                seed.discount_value,
                valid_from,
                valid_until,
                min_order_amount=seed.min_order_amount,
                max_discount=seed.max_discount,
                usage_limit=seed.usage_limit,
            )
            print(f"- Coupon {seed.code}")
    finally:
        connection.close()

    print("Seed completed.")


if __name__ == "__main__":
    main()
