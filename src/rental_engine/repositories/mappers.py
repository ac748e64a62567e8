"""SQLite row mappers for domain models."""

from __future__ import annotations

import sqlite3
from typing import Any, Dict, Optional

from rental_engine.domain.intervals import RentalInterval
from rental_engine.domain.models import (
    CartLine,
    Coupon,
    DeliveryInfo,
    DiscountType,
    Invoice,
    InvoiceStatus,
    Order,
    OrderItem,
    OrderStatus,
    Payment,
    Pickup,
    PricingRule,
    Product,
    RentalPeriod,
    Return,
)


def _row_value(row: sqlite3.Row, key: str) -> Any:
    return row[key] if key in row.keys() else None


def _optional_float(value: Any) -> Optional[float]:
    return float(value) if value is not None else None


def _interval(row: sqlite3.Row) -> RentalInterval:
    return RentalInterval.parse(row["start_at"], row["end_at"])


def product_from_row(row: sqlite3.Row) -> Product:
    return Product(
        id=_row_value(row, "id"),
        vendor_ref=row["vendor_ref"],
        name=row["name"],
        daily_rate=float(row["daily_rate"]),
        total_qty=int(row["total_qty"]),
        hourly_rate=_optional_float(_row_value(row, "hourly_rate")),
        security_deposit=float(_row_value(row, "security_deposit") or 0),
        active=bool(row["active"]),
        created_at=_row_value(row, "created_at"),
        updated_at=_row_value(row, "updated_at"),
    )


def period_from_row(row: sqlite3.Row) -> RentalPeriod:
    return RentalPeriod(
        id=_row_value(row, "id"),
        product_id=row["product_id"],
        days=int(row["days"]),
        multiplier=float(row["multiplier"]),
        name=_row_value(row, "name"),
    )


def cart_line_from_row(row: sqlite3.Row) -> CartLine:
    return CartLine(
        id=_row_value(row, "id"),
        customer_ref=row["customer_ref"],
        product_id=row["product_id"],
        interval=_interval(row),
        quantity=int(row["quantity"]),
        created_at=_row_value(row, "created_at"),
    )


def order_from_row(row: sqlite3.Row) -> Order:
    return Order(
        id=_row_value(row, "id"),
        order_number=row["order_number"],
        customer_ref=row["customer_ref"],
        vendor_ref=row["vendor_ref"],
        status=OrderStatus(row["status"]),
        subtotal=float(row["subtotal"]),
        tax_amount=float(row["tax_amount"]),
        total_amount=float(row["total_amount"]),
        discount_amount=float(_row_value(row, "discount_amount") or 0),
        coupon_code=_row_value(row, "coupon_code"),
        security_deposit=float(_row_value(row, "security_deposit") or 0),
        delivery=DeliveryInfo(
            method=_row_value(row, "delivery_method") or "standard",
            delivery_address=_row_value(row, "delivery_address"),
            billing_address=_row_value(row, "billing_address"),
        ),
        notes=_row_value(row, "notes"),
        version=int(_row_value(row, "version") or 1),
        created_at=_row_value(row, "created_at"),
        updated_at=_row_value(row, "updated_at"),
        confirmed_at=_row_value(row, "confirmed_at"),
    )


def order_to_record(order: Order) -> Dict[str, Any]:
    return {
        "id": order.id,
        "order_number": order.order_number,
        "customer_ref": order.customer_ref,
        "vendor_ref": order.vendor_ref,
        "status": order.status.value,
        "subtotal": order.subtotal,
        "tax_amount": order.tax_amount,
        "discount_amount": order.discount_amount,
        "coupon_code": order.coupon_code,
        "security_deposit": order.security_deposit,
        "total_amount": order.total_amount,
        "delivery_method": order.delivery.method,
        "delivery_address": order.delivery.delivery_address,
        "billing_address": order.delivery.billing_address,
        "notes": order.notes,
        "version": order.version,
        "created_at": order.created_at,
        "updated_at": order.updated_at,
        "confirmed_at": order.confirmed_at,
    }


def order_item_from_row(row: sqlite3.Row) -> OrderItem:
    raw_rule = _row_value(row, "pricing_rule")
    return OrderItem(
        id=_row_value(row, "id"),
        order_id=row["order_id"],
        product_id=row["product_id"],
        interval=_interval(row),
        quantity=int(row["quantity"]),
        unit_price=float(row["unit_price"]),
        line_total=float(row["line_total"]),
        pricing_rule=PricingRule(raw_rule) if raw_rule else None,
    )


def order_item_to_record(item: OrderItem) -> Dict[str, Any]:
    return {
        "id": item.id,
        "order_id": item.order_id,
        "product_id": item.product_id,
        "start_at": item.interval.start_iso,
        "end_at": item.interval.end_iso,
        "quantity": item.quantity,
        "unit_price": item.unit_price,
        "line_total": item.line_total,
        "pricing_rule": item.pricing_rule.value if item.pricing_rule else None,
    }


def pickup_from_row(row: sqlite3.Row) -> Pickup:
    return Pickup(
        id=_row_value(row, "id"),
        order_id=row["order_id"],
        picked_at=row["picked_at"],
        notes=_row_value(row, "notes"),
    )


def return_from_row(row: sqlite3.Row) -> Return:
    return Return(
        id=_row_value(row, "id"),
        order_id=row["order_id"],
        returned_at=row["returned_at"],
        late_fee=float(row["late_fee"]),
        damage_fee=float(row["damage_fee"]),
        delay_days=int(_row_value(row, "delay_days") or 0),
        notes=_row_value(row, "notes"),
    )


def invoice_from_row(row: sqlite3.Row) -> Invoice:
    return Invoice(
        id=_row_value(row, "id"),
        invoice_number=row["invoice_number"],
        order_id=row["order_id"],
        customer_ref=row["customer_ref"],
        vendor_ref=row["vendor_ref"],
        status=InvoiceStatus(row["status"]),
        subtotal=float(row["subtotal"]),
        tax_amount=float(row["tax_amount"]),
        total_amount=float(row["total_amount"]),
        discount_amount=float(_row_value(row, "discount_amount") or 0),
        security_deposit=float(_row_value(row, "security_deposit") or 0),
        late_fee=float(_row_value(row, "late_fee") or 0),
        damage_fee=float(_row_value(row, "damage_fee") or 0),
        amount_paid=float(row["amount_paid"]),
        version=int(_row_value(row, "version") or 1),
        created_at=_row_value(row, "created_at"),
        posted_at=_row_value(row, "posted_at"),
    )


def payment_from_row(row: sqlite3.Row) -> Payment:
    return Payment(
        id=_row_value(row, "id"),
        invoice_id=row["invoice_id"],
        amount=float(row["amount"]),
        method=_row_value(row, "method"),
        paid_at=row["paid_at"],
        partial=bool(_row_value(row, "partial") or 0),
        note=_row_value(row, "note"),
    )


def coupon_from_row(row: sqlite3.Row) -> Coupon:
    return Coupon(
        id=_row_value(row, "id"),
        code=row["code"],
        discount_type=DiscountType(row["discount_type"]),
        discount_value=float(row["discount_value"]),
        valid_from=row["valid_from"],
        valid_until=row["valid_until"],
        min_order_amount=_optional_float(_row_value(row, "min_order_amount")),
        max_discount=_optional_float(_row_value(row, "max_discount")),
        usage_limit=_row_value(row, "usage_limit"),
        used_count=int(_row_value(row, "used_count") or 0),
        active=bool(row["active"]),
        created_at=_row_value(row, "created_at"),
    )
