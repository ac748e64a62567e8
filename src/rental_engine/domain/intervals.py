"""Half-open rental intervals and the arithmetic around them."""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import date, datetime, timedelta

from rental_engine.services.errors import InvalidInterval
from rental_engine.utils.clock import normalize_instant, to_iso

ONE_DAY = timedelta(days=1)
ONE_HOUR = timedelta(hours=1)


@dataclass(frozen=True, slots=True)
class RentalInterval:
    """A ``[start, end)`` window; the end instant is not part of it."""

    start: datetime
    end: datetime

    def __post_init__(self) -> None:
        if self.end <= self.start:
            raise InvalidInterval(self.start, self.end)

    @classmethod
    def parse(
        cls, start: datetime | date | str, end: datetime | date | str
    ) -> "RentalInterval":
        try:
            start_at = normalize_instant(start)
            end_at = normalize_instant(end)
        except (TypeError, ValueError) as exc:
            raise InvalidInterval(start, end) from exc
        return cls(start_at, end_at)

    @property
    def start_iso(self) -> str:
        return to_iso(self.start)

    @property
    def end_iso(self) -> str:
        return to_iso(self.end)

    def __str__(self) -> str:
        return f"[{self.start_iso}, {self.end_iso})"


def overlaps(a: RentalInterval, b: RentalInterval) -> bool:
    """Touching endpoints do not overlap."""
    return a.start < b.end and b.start < a.end


def contains(interval: RentalInterval, instant: datetime) -> bool:
    return interval.start <= instant < interval.end


def duration_hours(interval: RentalInterval) -> float:
    return (interval.end - interval.start) / ONE_HOUR


def duration_days(interval: RentalInterval) -> int:
    days = math.ceil((interval.end - interval.start) / ONE_DAY)
    return max(days, 1)
