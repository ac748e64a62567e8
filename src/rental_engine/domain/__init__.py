"""Domain models for RentalEngine."""

from rental_engine.domain.intervals import (
    RentalInterval,
    contains,
    duration_days,
    duration_hours,
    overlaps,
)
from rental_engine.domain.models import (
    CartLine,
    Coupon,
    DeliveryInfo,
    DiscountType,
    Invoice,
    InvoiceStatus,
    Order,
    OrderAction,
    OrderItem,
    OrderStatus,
    Payment,
    Pickup,
    PricingRule,
    Product,
    RentalPeriod,
    Return,
)

__all__ = [
    "CartLine",
    "contains",
    "Coupon",
    "DeliveryInfo",
    "DiscountType",
    "duration_days",
    "duration_hours",
    "Invoice",
    "InvoiceStatus",
    "Order",
    "OrderAction",
    "OrderItem",
    "OrderStatus",
    "overlaps",
    "Payment",
    "Pickup",
    "PricingRule",
    "Product",
    "RentalInterval",
    "RentalPeriod",
    "Return",
]
