import threading

import pytest

from rental_engine.db.connection import get_connection
from rental_engine.domain.models import CartLine, OrderAction, OrderStatus
from rental_engine.engine import RentalEngine
from rental_engine.services.errors import (
    ConcurrentModification,
    InsufficientStock,
    InvalidTransition,
    ServiceError,
)


def _race(db_path, clock, count, work):
    """Run ``work(engine, index)`` on ``count`` threads released together.

    Every thread opens and closes its own connection.
    """
    barrier = threading.Barrier(count)
    results: list[object] = [None] * count

    def runner(index: int) -> None:
        engine = RentalEngine.from_connection(get_connection(db_path), clock=clock)
        try:
            barrier.wait()
            results[index] = work(engine, index)
        except ServiceError as exc:
            results[index] = exc
        finally:
            engine.close()

    threads = [
        threading.Thread(target=runner, args=(index,)) for index in range(count)
    ]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join(timeout=60)
    return results


def test_last_unit_goes_to_exactly_one_customer(
    db_path, clock, make_engine, catalog, interval
):
    def book(engine, index):
        line = CartLine(
            id=None,
            customer_ref=f"customer-{index}",
            product_id=catalog.tent.id,
            interval=interval,
            quantity=1,
        )
        return engine.commit_cart([line])

    results = _race(db_path, clock, 2, book)

    winners = [result for result in results if isinstance(result, list)]
    losers = [result for result in results if isinstance(result, InsufficientStock)]
    assert len(winners) == 1
    assert len(losers) == 1
    assert losers[0].available == 0
    assert make_engine().check_availability(catalog.tent.id, interval) == 0


def test_stock_never_oversold_under_many_commits(
    db_path, clock, make_engine, catalog, interval
):
    def book(engine, index):
        line = CartLine(
            id=None,
            customer_ref=f"customer-{index}",
            product_id=catalog.chair.id,
            interval=interval,
            quantity=3,
        )
        return engine.commit_cart([line])

    results = _race(db_path, clock, 6, book)

    assert sum(isinstance(result, list) for result in results) == 3
    assert all(
        isinstance(result, (list, InsufficientStock)) for result in results
    )
    assert make_engine().check_availability(catalog.chair.id, interval) == 1


def test_concurrent_transitions_apply_once(
    db_path, clock, make_engine, catalog, interval
):
    setup = make_engine()
    [order] = setup.commit_cart(
        [
            CartLine(
                id=None,
                customer_ref="customer-1",
                product_id=catalog.camera.id,
                interval=interval,
                quantity=1,
            )
        ]
    )
    actions = [OrderAction.CONFIRM, OrderAction.CANCEL]

    def move(engine, index):
        return engine.transition(
            order.id, actions[index], expected_version=order.version
        )

    results = _race(db_path, clock, 2, move)

    applied = [result for result in results if not isinstance(result, ServiceError)]
    rejected = [result for result in results if isinstance(result, ServiceError)]
    assert len(applied) == 1
    assert isinstance(rejected[0], (ConcurrentModification, InvalidTransition))
    final = setup.order_service.get_order(order.id)
    assert final.status in (OrderStatus.CONFIRMED, OrderStatus.CANCELLED)
    assert final.version == order.version + 1


@pytest.mark.parametrize("threads", [4])
def test_concurrent_payments_never_overpay(
    db_path, clock, make_engine, catalog, interval, threads
):
    setup = make_engine()
    [order] = setup.commit_cart(
        [
            CartLine(
                id=None,
                customer_ref="customer-1",
                product_id=catalog.tent.id,
                interval=interval,
                quantity=1,
            )
        ]
    )
    invoice = setup.post_invoice(setup.create_invoice(order.id).id)

    results = _race(
        db_path,
        clock,
        threads,
        lambda engine, index: engine.register_payment(invoice.id, invoice.total_amount),
    )

    assert sum(not isinstance(result, ServiceError) for result in results) == 1
    assert setup.payment_service.outstanding(invoice.id) == 0
