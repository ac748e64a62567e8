from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from pathlib import Path
from typing import Callable, Optional

import pytest

from rental_engine.config import EngineSettings
from rental_engine.db.connection import get_connection
from rental_engine.db.migrations import apply_migrations
from rental_engine.domain.intervals import RentalInterval
from rental_engine.domain.models import CartLine, Product
from rental_engine.engine import RentalEngine
from rental_engine.repositories.product_repo import ProductRepo

NOW = datetime(2025, 3, 3, 9, 0, 0)


class FrozenClock:
    """Clock that only moves when a test says so."""

    def __init__(self, now: datetime = NOW) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


@dataclass
class Catalog:
    camera: Product
    lens: Product
    chair: Product
    tent: Product


@pytest.fixture
def db_path(tmp_path: Path) -> Path:
    path = tmp_path / "engine.db"
    connection = get_connection(path)
    try:
        apply_migrations(connection)
    finally:
        connection.close()
    return path


@pytest.fixture
def connection(db_path: Path):
    connection = get_connection(db_path)
    yield connection
    connection.close()


@pytest.fixture
def clock() -> FrozenClock:
    return FrozenClock()


@pytest.fixture
def settings() -> EngineSettings:
    return EngineSettings()


@pytest.fixture
def engine(connection, settings, clock) -> RentalEngine:
    return RentalEngine.from_connection(connection, settings, clock=clock)


@pytest.fixture
def make_engine(db_path: Path, clock: FrozenClock):
    """Engines on their own connection, closed at teardown."""
    opened: list[RentalEngine] = []

    def factory(settings: Optional[EngineSettings] = None) -> RentalEngine:
        engine = RentalEngine.from_connection(
            get_connection(db_path), settings, clock=clock
        )
        opened.append(engine)
        return engine

    yield factory
    for engine in opened:
        engine.close()


@pytest.fixture
def catalog(connection) -> Catalog:
    repo = ProductRepo(connection)
    return Catalog(
        camera=repo.create(
            "vendor-a",
            "Camera",
            100.0,
            2,
            hourly_rate=15.0,
            security_deposit=50.0,
        ),
        lens=repo.create("vendor-a", "Lens", 30.0, 1, periods=((7, 4.0),)),
        chair=repo.create("vendor-b", "Chair", 40.0, 10),
        tent=repo.create("vendor-b", "Tent", 500.0, 1),
    )


@pytest.fixture
def interval() -> RentalInterval:
    start = NOW + timedelta(days=1)
    return RentalInterval(start, start + timedelta(days=2))


@pytest.fixture
def line_factory() -> Callable[..., CartLine]:
    def factory(
        product: Product,
        interval: RentalInterval,
        quantity: int = 1,
        customer_ref: str = "customer-1",
    ) -> CartLine:
        return CartLine(
            id=None,
            customer_ref=customer_ref,
            product_id=int(product.id),
            interval=interval,
            quantity=quantity,
        )

    return factory
