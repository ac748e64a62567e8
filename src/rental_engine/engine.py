"""Facade bundling the engine services behind one connection."""

from __future__ import annotations

import sqlite3
from dataclasses import dataclass
from datetime import date, datetime
from pathlib import Path
from typing import Iterable, Optional

from rental_engine.config import EngineSettings
from rental_engine.db.connection import get_connection
from rental_engine.db.migrations import apply_migrations
from rental_engine.domain.intervals import RentalInterval
from rental_engine.domain.models import (
    CartLine,
    DeliveryInfo,
    Invoice,
    Order,
    OrderAction,
    Payment,
)
from rental_engine.repositories.product_repo import ProductRepo
from rental_engine.services.cart_service import CartService
from rental_engine.services.checkout_service import CheckoutService
from rental_engine.services.coupon_service import CouponService
from rental_engine.services.errors import ValidationError
from rental_engine.services.inventory_service import InventoryService
from rental_engine.services.invoice_service import InvoiceService
from rental_engine.services.order_service import OrderService
from rental_engine.services.payment_service import PaymentService
from rental_engine.utils.clock import Clock, utc_now


@dataclass(frozen=True)
class RentalEngine:
    """Shared repositories and services for one connection.

    A connection belongs to one thread; workers build their own engine.
    """

    connection: sqlite3.Connection
    settings: EngineSettings
    product_repo: ProductRepo
    inventory_service: InventoryService
    cart_service: CartService
    checkout_service: CheckoutService
    order_service: OrderService
    invoice_service: InvoiceService
    payment_service: PaymentService
    coupon_service: CouponService

    @classmethod
    def from_connection(
        cls,
        connection: sqlite3.Connection,
        settings: Optional[EngineSettings] = None,
        clock: Clock = utc_now,
    ) -> "RentalEngine":
        settings = settings or EngineSettings()
        return cls(
            connection=connection,
            settings=settings,
            product_repo=ProductRepo(connection),
            inventory_service=InventoryService(connection),
            cart_service=CartService(connection, settings, clock=clock),
            checkout_service=CheckoutService(connection, settings, clock=clock),
            order_service=OrderService(connection, settings, clock=clock),
            invoice_service=InvoiceService(connection, clock=clock),
            payment_service=PaymentService(connection, settings, clock=clock),
            coupon_service=CouponService(connection, clock=clock),
        )

    @classmethod
    def open(
        cls,
        database_path: Path | str,
        settings: Optional[EngineSettings] = None,
        clock: Clock = utc_now,
    ) -> "RentalEngine":
        """Open (and migrate) the database at ``database_path``."""
        connection = get_connection(database_path)
        apply_migrations(connection)
        return cls.from_connection(connection, settings, clock=clock)

    def close(self) -> None:
        self.connection.close()

    def check_availability(
        self,
        product_id: int,
        interval: RentalInterval | tuple[datetime | date | str, datetime | date | str],
    ) -> int:
        if not isinstance(interval, RentalInterval):
            interval = RentalInterval.parse(*interval)
        return self.inventory_service.available(product_id, interval)

    def commit_cart(
        self,
        lines: Iterable[CartLine],
        delivery: Optional[DeliveryInfo] = None,
        coupon_code: Optional[str] = None,
    ) -> list[Order]:
        result = self.checkout_service.commit(lines, delivery, coupon_code)
        if not result.orders:
            result.raise_for_failures()
        return result.orders

    def checkout(
        self,
        customer_ref: str,
        delivery: Optional[DeliveryInfo] = None,
        coupon_code: Optional[str] = None,
    ) -> list[Order]:
        """Commit the customer's stored cart."""
        lines = self.cart_service.list_lines(customer_ref)
        if not lines:
            raise ValidationError(f"Cart for {customer_ref} is empty.")
        return self.commit_cart(lines, delivery, coupon_code)

    def transition(
        self, order_id: int, action: OrderAction | str, **effects
    ) -> Order:
        return self.order_service.transition(order_id, action, **effects)

    def create_invoice(self, order_id: int) -> Invoice:
        return self.invoice_service.create_invoice(order_id)

    def post_invoice(self, invoice_id: int) -> Invoice:
        return self.invoice_service.post(invoice_id)

    def register_payment(
        self,
        invoice_id: int,
        amount: float,
        partial: bool = False,
        method: str = "cash",
    ) -> Invoice:
        return self.payment_service.register_payment(
            invoice_id, amount, method=method, partial=partial
        )

    def list_payments(self, invoice_id: int) -> list[Payment]:
        return self.payment_service.list_payments(invoice_id)

    def validate_coupon(self, code: str, amount: float) -> float:
        return self.coupon_service.validate(code, amount)
