"""Human-readable document numbers."""

from __future__ import annotations

import time
import uuid

_BASE36 = "0123456789ABCDEFGHIJKLMNOPQRSTUVWXYZ"


def _base36(value: int) -> str:
    if value == 0:
        return "0"
    digits = []
    while value:
        value, remainder = divmod(value, 36)
        digits.append(_BASE36[remainder])
    return "".join(reversed(digits))


def _document_number(prefix: str) -> str:
    stamp = _base36(int(time.time() * 1000))
    return f"{prefix}-{stamp}-{uuid.uuid4().hex[:6].upper()}"


def generate_order_number() -> str:
    return _document_number("ORD")


def generate_quote_number() -> str:
    return _document_number("QUO")


def generate_invoice_number() -> str:
    return _document_number("INV")
