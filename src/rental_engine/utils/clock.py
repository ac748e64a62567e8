"""Time helpers shared by services and repositories."""

from __future__ import annotations

from datetime import date, datetime, time, timezone
from typing import Callable

from dateutil import parser

Clock = Callable[[], datetime]


def normalize_instant(value: datetime | date | str) -> datetime:
    """Return a naive UTC datetime truncated to whole seconds."""
    if isinstance(value, str):
        value = parser.isoparse(value)
    if not isinstance(value, datetime):
        value = datetime.combine(value, time.min)
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc).replace(tzinfo=None)
    return value.replace(microsecond=0)


def utc_now() -> datetime:
    return normalize_instant(datetime.now(timezone.utc))


def to_iso(value: datetime) -> str:
    return value.isoformat(timespec="seconds")


def from_iso(value: str) -> datetime:
    return normalize_instant(value)
