"""Conversion of cart lines into orders."""

from __future__ import annotations

import sqlite3
from dataclasses import dataclass, field
from typing import Iterable, Optional

from rental_engine.config import EngineSettings
from rental_engine.db.connection import transaction
from rental_engine.domain.models import (
    CartLine,
    Coupon,
    DeliveryInfo,
    Order,
    OrderItem,
    OrderStatus,
    PricingRule,
    Product,
)
from rental_engine.logging_config import get_logger
from rental_engine.repositories.cart_repo import CartRepo
from rental_engine.repositories.order_repo import OrderRepository
from rental_engine.repositories.product_repo import ProductRepo
from rental_engine.services.coupon_service import CouponService
from rental_engine.services.errors import (
    CouponMinimumNotMet,
    CouponUsageLimitReached,
    NotFoundError,
    ProductUnavailable,
    ServiceError,
    ValidationError,
)
from rental_engine.services.inventory_service import InventoryService
from rental_engine.services.pricing_service import (
    PricingService,
    round_money,
    validate_quantity,
)
from rental_engine.utils.clock import Clock, to_iso, utc_now
from rental_engine.utils.generators import generate_order_number, generate_quote_number


@dataclass
class CheckoutResult:
    """Orders created by one commit, plus the vendors whose order failed."""

    orders: list[Order] = field(default_factory=list)
    failures: dict[str, ServiceError] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return not self.failures

    def raise_for_failures(self) -> None:
        for error in self.failures.values():
            raise error


class CheckoutService:
    """Commits carts vendor by vendor, one serialized transaction per order."""

    def __init__(
        self,
        connection: sqlite3.Connection,
        settings: Optional[EngineSettings] = None,
        clock: Clock = utc_now,
    ) -> None:
        self._connection = connection
        self._connection.row_factory = sqlite3.Row
        self._clock = clock
        self._inventory = InventoryService(connection)
        self._pricing = PricingService(settings)
        self._coupons = CouponService(connection, clock=clock)
        self._products = ProductRepo(connection)
        self._orders = OrderRepository(connection)
        self._cart = CartRepo(connection)
        self._logger = get_logger(self.__class__.__name__)

    def commit(
        self,
        lines: Iterable[CartLine],
        delivery: Optional[DeliveryInfo] = None,
        coupon_code: Optional[str] = None,
    ) -> CheckoutResult:
        lines = list(lines)
        if not lines:
            raise ValidationError("Cart is empty.")
        customers = {line.customer_ref for line in lines}
        if len(customers) != 1:
            raise ValidationError("All cart lines must belong to the same customer.")
        customer_ref = customers.pop()
        for line in lines:
            validate_quantity(line.quantity)

        coupon = self._coupons.resolve(coupon_code) if coupon_code else None
        groups = self._group_by_vendor(lines)
        result = CheckoutResult()
        for vendor_ref, vendor_lines in groups.items():
            try:
                order = self._commit_vendor_order(
                    customer_ref,
                    vendor_ref,
                    vendor_lines,
                    delivery or DeliveryInfo(),
                    coupon,
                )
            except ServiceError as exc:
                self._logger.warning(
                    "Order for customer=%s vendor=%s aborted: %s",
                    customer_ref,
                    vendor_ref,
                    exc,
                )
                result.failures[vendor_ref] = exc
                continue
            result.orders.append(order)
        return result

    def create_quotation(
        self,
        customer_ref: str,
        vendor_ref: str,
        lines: Iterable[CartLine],
        *,
        notes: Optional[str] = None,
        unit_prices: Optional[dict[int, float]] = None,
    ) -> Order:
        """Draft an order on a vendor's behalf; it starts in QUOTATION."""
        lines = list(lines)
        if not lines:
            raise ValidationError("A quotation needs at least one line.")
        for line in lines:
            validate_quantity(line.quantity)
        with transaction(self._connection, immediate=True):
            products = self._load_products(line.product_id for line in lines)
            foreign = [
                line.product_id
                for line in lines
                if products[line.product_id].vendor_ref != vendor_ref
            ]
            if foreign:
                raise ValidationError(
                    f"Products {foreign} do not belong to vendor {vendor_ref}."
                )
            self._inventory.validate_lines(
                (line.product_id, line.interval, line.quantity) for line in lines
            )
            order = self._build_order(
                customer_ref,
                vendor_ref,
                lines,
                products,
                status=OrderStatus.QUOTATION,
                order_number=generate_quote_number(),
                delivery=DeliveryInfo(),
                unit_prices=unit_prices or {},
            )
            order.notes = notes
            self._orders.create(order)
        self._logger.info(
            "Quotation %s drafted for customer=%s vendor=%s",
            order.order_number,
            customer_ref,
            vendor_ref,
        )
        return order

    def _commit_vendor_order(
        self,
        customer_ref: str,
        vendor_ref: str,
        lines: list[CartLine],
        delivery: DeliveryInfo,
        coupon: Optional[Coupon],
    ) -> Order:
        with transaction(self._connection, immediate=True):
            products = self._load_products(line.product_id for line in lines)
            for line in lines:
                if not products[line.product_id].active:
                    raise ProductUnavailable(line.product_id)
            self._inventory.validate_lines(
                (line.product_id, line.interval, line.quantity) for line in lines
            )
            order = self._build_order(
                customer_ref,
                vendor_ref,
                lines,
                products,
                status=OrderStatus.RENTAL_ORDER,
                order_number=generate_order_number(),
                delivery=delivery,
                coupon=coupon,
            )
            self._orders.create(order)
            stored_ids = [line.id for line in lines if line.id is not None]
            if self._cart.delete_many(stored_ids) != len(stored_ids):
                raise ValidationError("Cart lines already checked out.")
        self._logger.info(
            "Order %s committed customer=%s vendor=%s total=%.2f",
            order.order_number,
            customer_ref,
            vendor_ref,
            order.total_amount,
        )
        return order

    def _build_order(
        self,
        customer_ref: str,
        vendor_ref: str,
        lines: list[CartLine],
        products: dict[int, Product],
        *,
        status: OrderStatus,
        order_number: str,
        delivery: DeliveryInfo,
        coupon: Optional[Coupon] = None,
        unit_prices: Optional[dict[int, float]] = None,
    ) -> Order:
        unit_prices = unit_prices or {}
        items: list[OrderItem] = []
        subtotal = 0.0
        deposit = 0.0
        for line in lines:
            product = products[line.product_id]
            if line.product_id in unit_prices:
                unit_price = round_money(unit_prices[line.product_id])
                line_total = round_money(unit_price * line.quantity)
                rule = PricingRule.MANUAL
            else:
                quote = self._pricing.price_line(product, line.interval, line.quantity)
                unit_price, line_total, rule = (
                    quote.unit_price,
                    quote.line_total,
                    quote.rule,
                )
            items.append(
                OrderItem(
                    id=None,
                    order_id=None,
                    product_id=line.product_id,
                    interval=line.interval,
                    quantity=line.quantity,
                    unit_price=unit_price,
                    line_total=line_total,
                    pricing_rule=rule,
                )
            )
            subtotal += line_total
            deposit += product.security_deposit * line.quantity

        discount = 0.0
        applied_code = None
        if coupon is not None:
            try:
                discount = self._coupons.discount_for(coupon, round_money(subtotal))
                self._coupons.redeem(coupon)
            except (CouponMinimumNotMet, CouponUsageLimitReached) as exc:
                discount = 0.0
                self._logger.info("Coupon skipped for vendor=%s: %s", vendor_ref, exc)
            else:
                applied_code = coupon.code

        totals = self._pricing.order_totals(subtotal, discount, deposit)
        now = to_iso(self._clock())
        return Order(
            id=None,
            order_number=order_number,
            customer_ref=customer_ref,
            vendor_ref=vendor_ref,
            status=status,
            subtotal=totals.subtotal,
            tax_amount=totals.tax_amount,
            total_amount=totals.total_amount,
            discount_amount=totals.discount_amount,
            coupon_code=applied_code,
            security_deposit=totals.security_deposit,
            delivery=delivery,
            items=items,
            created_at=now,
            updated_at=now,
        )

    def _group_by_vendor(self, lines: list[CartLine]) -> dict[str, list[CartLine]]:
        products = self._load_products(line.product_id for line in lines)
        groups: dict[str, list[CartLine]] = {}
        for line in lines:
            vendor_ref = products[line.product_id].vendor_ref
            groups.setdefault(vendor_ref, []).append(line)
        return groups

    def _load_products(self, product_ids: Iterable[int]) -> dict[int, Product]:
        ids = [int(product_id) for product_id in product_ids]
        products = self._products.get_many(ids)
        missing = sorted(set(ids) - set(products))
        if missing:
            raise NotFoundError(f"Products not found: {missing}.")
        return products
