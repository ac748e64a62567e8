"""Domain dataclasses and enums."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional

from rental_engine.domain.intervals import RentalInterval


class OrderStatus(str, Enum):
    QUOTATION = "quotation"
    RENTAL_ORDER = "rental_order"
    CONFIRMED = "confirmed"
    PICKED_UP = "picked_up"
    RETURNED = "returned"
    CANCELLED = "cancelled"


class OrderAction(str, Enum):
    SUBMIT = "submit"
    CONFIRM = "confirm"
    PICK_UP = "pick_up"
    RETURN = "return"
    CANCEL = "cancel"


class InvoiceStatus(str, Enum):
    DRAFT = "draft"
    POSTED = "posted"
    PARTIALLY_PAID = "partially_paid"
    PAID = "paid"


class DiscountType(str, Enum):
    PERCENT = "percent"
    FIXED = "fixed"


class PricingRule(str, Enum):
    HOURLY = "hourly"
    FIXED_PERIOD = "fixed_period"
    WEEKLY_BLOCK = "weekly_block"
    DAILY = "daily"
    MANUAL = "manual"


@dataclass(slots=True)
class RentalPeriod:
    """Fixed-duration price: ``days`` of rental billed as ``multiplier`` days."""

    id: Optional[int]
    product_id: int
    days: int
    multiplier: float
    name: Optional[str] = None


@dataclass(slots=True)
class Product:
    id: Optional[int]
    vendor_ref: str
    name: str
    daily_rate: float
    total_qty: int
    hourly_rate: Optional[float] = None
    security_deposit: float = 0.0
    active: bool = True
    periods: list[RentalPeriod] = field(default_factory=list)
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    def multiplier_for(self, days: int) -> Optional[float]:
        for period in self.periods:
            if period.days == days:
                return period.multiplier
        return None


@dataclass(slots=True)
class CartLine:
    id: Optional[int]
    customer_ref: str
    product_id: int
    interval: RentalInterval
    quantity: int
    created_at: Optional[str] = None


@dataclass(frozen=True, slots=True)
class DeliveryInfo:
    method: str = "standard"
    delivery_address: Optional[str] = None
    billing_address: Optional[str] = None


@dataclass(slots=True)
class OrderItem:
    id: Optional[int]
    order_id: Optional[int]
    product_id: int
    interval: RentalInterval
    quantity: int
    unit_price: float
    line_total: float
    pricing_rule: Optional[PricingRule] = None


@dataclass(slots=True)
class Pickup:
    id: Optional[int]
    order_id: int
    picked_at: str
    notes: Optional[str] = None


@dataclass(slots=True)
class Return:
    id: Optional[int]
    order_id: int
    returned_at: str
    late_fee: float = 0.0
    damage_fee: float = 0.0
    delay_days: int = 0
    notes: Optional[str] = None


@dataclass(slots=True)
class Order:
    id: Optional[int]
    order_number: str
    customer_ref: str
    vendor_ref: str
    status: OrderStatus
    subtotal: float
    tax_amount: float
    total_amount: float
    discount_amount: float = 0.0
    coupon_code: Optional[str] = None
    security_deposit: float = 0.0
    delivery: DeliveryInfo = field(default_factory=DeliveryInfo)
    notes: Optional[str] = None
    version: int = 1
    items: list[OrderItem] = field(default_factory=list)
    pickup: Optional[Pickup] = None
    return_record: Optional[Return] = None
    invoice_id: Optional[int] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None
    confirmed_at: Optional[str] = None

    @property
    def latest_end(self) -> Optional[datetime]:
        if not self.items:
            return None
        return max(item.interval.end for item in self.items)


@dataclass(slots=True)
class Invoice:
    id: Optional[int]
    invoice_number: str
    order_id: int
    customer_ref: str
    vendor_ref: str
    status: InvoiceStatus
    subtotal: float
    tax_amount: float
    total_amount: float
    discount_amount: float = 0.0
    security_deposit: float = 0.0
    late_fee: float = 0.0
    damage_fee: float = 0.0
    amount_paid: float = 0.0
    version: int = 1
    created_at: Optional[str] = None
    posted_at: Optional[str] = None

    @property
    def outstanding(self) -> float:
        return round(self.total_amount - self.amount_paid, 2)


@dataclass(slots=True)
class Payment:
    id: Optional[int]
    invoice_id: int
    amount: float
    method: Optional[str]
    paid_at: str
    partial: bool = False
    note: Optional[str] = None


@dataclass(slots=True)
class Coupon:
    id: Optional[int]
    code: str
    discount_type: DiscountType
    discount_value: float
    valid_from: str
    valid_until: str
    min_order_amount: Optional[float] = None
    max_discount: Optional[float] = None
    usage_limit: Optional[int] = None
    used_count: int = 0
    active: bool = True
    created_at: Optional[str] = None
