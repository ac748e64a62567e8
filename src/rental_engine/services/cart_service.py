"""Customer cart management."""

from __future__ import annotations

import sqlite3
from dataclasses import dataclass
from datetime import date, datetime
from typing import Optional

from rental_engine.config import EngineSettings
from rental_engine.db.connection import transaction
from rental_engine.domain.intervals import RentalInterval
from rental_engine.domain.models import CartLine
from rental_engine.logging_config import get_logger
from rental_engine.repositories.cart_repo import CartRepo
from rental_engine.repositories.product_repo import ProductRepo
from rental_engine.services.errors import NotFoundError, ProductUnavailable
from rental_engine.services.inventory_service import InventoryService
from rental_engine.services.pricing_service import (
    PriceQuote,
    PricingService,
    validate_quantity,
)
from rental_engine.utils.clock import Clock, to_iso, utc_now


@dataclass(frozen=True)
class CartLinePreview:
    line: CartLine
    available: int
    quote: PriceQuote

    @property
    def fits(self) -> bool:
        return self.line.quantity <= self.available


class CartService:
    """Cart lines reserve nothing; stock is only checked again at checkout."""

    def __init__(
        self,
        connection: sqlite3.Connection,
        settings: Optional[EngineSettings] = None,
        clock: Clock = utc_now,
    ) -> None:
        self._connection = connection
        self._connection.row_factory = sqlite3.Row
        self._clock = clock
        self._repo = CartRepo(connection)
        self._products = ProductRepo(connection)
        self._inventory = InventoryService(connection)
        self._pricing = PricingService(settings)
        self._logger = get_logger(self.__class__.__name__)

    def add_line(
        self,
        customer_ref: str,
        product_id: int,
        start: datetime | date | str,
        end: datetime | date | str,
        quantity: int = 1,
    ) -> CartLine:
        """Add a line, merging it into an identical product/interval line."""
        validate_quantity(quantity)
        interval = RentalInterval.parse(start, end)
        product = self._products.get_by_id(product_id)
        if product is None:
            raise NotFoundError(f"Product {product_id} not found.")
        if not product.active:
            raise ProductUnavailable(product_id)
        with transaction(self._connection):
            existing = self._repo.find_matching(customer_ref, product_id, interval)
            if existing is not None:
                existing.quantity += quantity
                self._repo.set_quantity(int(existing.id), existing.quantity)
                line = existing
            else:
                line = self._repo.create(
                    customer_ref,
                    product_id,
                    interval,
                    quantity,
                    created_at=to_iso(self._clock()),
                )
        self._logger.info(
            "Cart line %s customer=%s product_id=%s qty=%s",
            line.id,
            customer_ref,
            product_id,
            line.quantity,
        )
        return line

    def update_quantity(self, line_id: int, quantity: int) -> CartLine:
        validate_quantity(quantity)
        line = self._get_line(line_id)
        with transaction(self._connection):
            self._repo.set_quantity(line_id, quantity)
        line.quantity = quantity
        return line

    def remove_line(self, line_id: int) -> None:
        self._get_line(line_id)
        with transaction(self._connection):
            self._repo.delete_many([line_id])

    def clear(self, customer_ref: str) -> int:
        with transaction(self._connection):
            return self._repo.clear(customer_ref)

    def list_lines(self, customer_ref: str) -> list[CartLine]:
        return self._repo.list_for_customer(customer_ref)

    def preview(self, customer_ref: str) -> list[CartLinePreview]:
        """Advisory price and availability per line, as of now."""
        lines = self._repo.list_for_customer(customer_ref)
        products = self._products.get_many(line.product_id for line in lines)
        previews = []
        for line in lines:
            product = products.get(line.product_id)
            if product is None:
                raise NotFoundError(f"Product {line.product_id} not found.")
            previews.append(
                CartLinePreview(
                    line=line,
                    available=self._inventory.available(line.product_id, line.interval),
                    quote=self._pricing.price_line(product, line.interval, line.quantity),
                )
            )
        return previews

    def _get_line(self, line_id: int) -> CartLine:
        line = self._repo.get_by_id(line_id)
        if line is None:
            raise NotFoundError(f"Cart line {line_id} not found.")
        return line
