from datetime import datetime, timedelta, timezone

import pytest

from rental_engine.domain.intervals import (
    RentalInterval,
    contains,
    duration_days,
    duration_hours,
    overlaps,
)
from rental_engine.services.errors import InvalidInterval

T0 = datetime(2025, 1, 1, 10, 0, 0)


def _window(start_hours: float, end_hours: float) -> RentalInterval:
    return RentalInterval(T0 + timedelta(hours=start_hours), T0 + timedelta(hours=end_hours))


@pytest.mark.parametrize(
    ("a", "b", "expected"),
    [
        ((0, 10), (10, 20), False),
        ((0, 10), (9, 20), True),
        ((0, 10), (2, 5), True),
        ((5, 6), (0, 10), True),
        ((0, 10), (11, 12), False),
        ((0, 10), (0, 10), True),
    ],
)
def test_overlap_truth_table(a, b, expected):
    first, second = _window(*a), _window(*b)
    assert overlaps(first, second) is expected
    assert overlaps(second, first) is expected


def test_end_must_follow_start():
    with pytest.raises(InvalidInterval):
        RentalInterval(T0, T0)
    with pytest.raises(InvalidInterval):
        RentalInterval.parse("2025-01-02T00:00:00", "2025-01-01T00:00:00")


def test_parse_rejects_garbage():
    with pytest.raises(InvalidInterval):
        RentalInterval.parse("not a date", "2025-01-01")


def test_parse_normalizes_to_naive_utc_seconds():
    interval = RentalInterval.parse(
        datetime(2025, 1, 1, 12, 0, 0, 500, tzinfo=timezone(timedelta(hours=5, minutes=30))),
        "2025-01-02",
    )
    assert interval.start == datetime(2025, 1, 1, 6, 30, 0)
    assert interval.end == datetime(2025, 1, 2, 0, 0, 0)
    assert interval.start_iso == "2025-01-01T06:30:00"


def test_contains_is_half_open():
    window = _window(0, 10)
    assert contains(window, T0)
    assert not contains(window, T0 + timedelta(hours=10))


def test_durations():
    assert duration_hours(_window(0, 2.5)) == 2.5
    assert duration_days(_window(0, 2)) == 1
    assert duration_days(_window(0, 48)) == 2
    assert duration_days(_window(0, 49)) == 3
