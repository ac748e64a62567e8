"""Custom service layer errors."""

from __future__ import annotations

from typing import Any, Optional


class ServiceError(Exception):
    """Base error for service-layer failures."""


class ValidationError(ServiceError):
    """Raised when a business rule validation fails."""


class NotFoundError(ServiceError):
    """Raised when an entity is not found."""


class InvalidInterval(ValidationError):
    def __init__(self, start: Any, end: Any) -> None:
        self.start = start
        self.end = end
        super().__init__(
            f"Invalid rental interval: end {end} must be after start {start}."
        )


class InvalidQuantity(ValidationError):
    def __init__(self, quantity: Any) -> None:
        self.quantity = quantity
        super().__init__(f"Invalid quantity {quantity}: must be at least 1.")


class InvalidPaymentAmount(ValidationError):
    def __init__(self, amount: Any) -> None:
        self.amount = amount
        super().__init__(f"Payment amount {amount} must be greater than zero.")


class ProductUnavailable(ValidationError):
    def __init__(self, product_id: int) -> None:
        self.product_id = product_id
        super().__init__(f"Product {product_id} is not available for rental.")


class InsufficientStock(ServiceError):
    """Raised when a line asks for more units than remain free."""

    def __init__(self, product_id: int, requested: int, available: int) -> None:
        self.product_id = product_id
        self.requested = requested
        self.available = available
        super().__init__(
            f"Insufficient stock for product {product_id}: "
            f"requested {requested}, available {available}."
        )


class InvalidTransition(ServiceError):
    """Raised when an order status change is not in the transition table."""

    def __init__(self, from_status: Any, to_status: Any) -> None:
        self.from_status = from_status
        self.to_status = to_status
        super().__init__(
            f"Cannot transition order from {_label(from_status)} "
            f"to {_label(to_status)}."
        )


class ConcurrentModification(ServiceError):
    def __init__(
        self,
        entity: str,
        entity_id: int,
        expected_version: Optional[int] = None,
        actual_version: Optional[int] = None,
    ) -> None:
        self.entity = entity
        self.entity_id = entity_id
        self.expected_version = expected_version
        self.actual_version = actual_version
        super().__init__(
            f"{entity} {entity_id} was modified concurrently "
            f"(expected version {expected_version}, found {actual_version})."
        )


class InvalidInvoiceState(ServiceError):
    """Raised when an invoice operation is not allowed in the current status."""


class InvoiceAlreadyExists(ServiceError):
    def __init__(self, order_id: int, invoice_id: int) -> None:
        self.order_id = order_id
        self.invoice_id = invoice_id
        super().__init__(
            f"Invoice {invoice_id} already exists for order {order_id}."
        )


class PaymentRejected(ServiceError):
    """Base error for payments refused by the ledger."""


class OverpaymentRejected(PaymentRejected):
    def __init__(self, amount: float, outstanding: float) -> None:
        self.amount = amount
        self.outstanding = outstanding
        super().__init__(
            f"Payment of {amount:.2f} exceeds the outstanding balance "
            f"of {outstanding:.2f}."
        )


class PartialPaymentNotAllowed(PaymentRejected):
    def __init__(self, invoice_id: int, partial_payments: int) -> None:
        self.invoice_id = invoice_id
        self.partial_payments = partial_payments
        super().__init__(
            f"Invoice {invoice_id} already has {partial_payments} partial "
            "payment(s); the remaining balance must be paid in full."
        )


class PartialPaymentTooSmall(PaymentRejected):
    def __init__(self, amount: float, minimum: float) -> None:
        self.amount = amount
        self.minimum = minimum
        super().__init__(
            f"Partial payment of {amount:.2f} is below the minimum of {minimum:.2f}."
        )


class CouponError(ServiceError):
    """Base error for coupons that cannot be applied."""

    def __init__(self, code: str, message: str) -> None:
        self.code = code
        super().__init__(message)


class CouponNotFound(CouponError):
    def __init__(self, code: str) -> None:
        super().__init__(code, f"Coupon {code!r} does not exist or is inactive.")


class CouponExpired(CouponError):
    def __init__(self, code: str) -> None:
        super().__init__(code, f"Coupon {code!r} is not valid at this time.")


class CouponUsageLimitReached(CouponError):
    def __init__(self, code: str, usage_limit: int) -> None:
        self.usage_limit = usage_limit
        super().__init__(code, f"Coupon {code!r} reached its usage limit.")


class CouponMinimumNotMet(CouponError):
    def __init__(self, code: str, amount: float, minimum: float) -> None:
        self.amount = amount
        self.minimum = minimum
        super().__init__(
            code,
            f"Coupon {code!r} requires a minimum amount of {minimum:.2f} "
            f"(got {amount:.2f}).",
        )


def _label(status: Any) -> str:
    return getattr(status, "name", None) or str(status)
