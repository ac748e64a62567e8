"""Repositories for data access."""

from rental_engine.repositories.cart_repo import CartRepo
from rental_engine.repositories.coupon_repo import CouponRepo
from rental_engine.repositories.invoice_repo import InvoiceRepository
from rental_engine.repositories.mappers import (
    cart_line_from_row,
    coupon_from_row,
    invoice_from_row,
    order_from_row,
    order_item_from_row,
    order_item_to_record,
    order_to_record,
    payment_from_row,
    period_from_row,
    pickup_from_row,
    product_from_row,
    return_from_row,
)
from rental_engine.repositories.order_repo import OrderRepository
from rental_engine.repositories.payment_repo import PaymentRepository
from rental_engine.repositories.product_repo import ProductRepo

__all__ = [
    "CartRepo",
    "cart_line_from_row",
    "coupon_from_row",
    "CouponRepo",
    "invoice_from_row",
    "InvoiceRepository",
    "order_from_row",
    "order_item_from_row",
    "order_item_to_record",
    "order_to_record",
    "OrderRepository",
    "payment_from_row",
    "PaymentRepository",
    "period_from_row",
    "pickup_from_row",
    "product_from_row",
    "ProductRepo",
    "return_from_row",
]
