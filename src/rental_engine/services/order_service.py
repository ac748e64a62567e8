"""Order lifecycle transitions and their side effects."""

from __future__ import annotations

import math
import sqlite3
from datetime import datetime, timedelta
from typing import Optional

from rental_engine.config import EngineSettings
from rental_engine.db.connection import transaction
from rental_engine.domain.intervals import ONE_DAY
from rental_engine.domain.models import Order, OrderAction, OrderStatus, Return
from rental_engine.domain.order_flow import action_for, next_status
from rental_engine.logging_config import get_logger
from rental_engine.repositories.order_repo import OrderRepository
from rental_engine.services.errors import (
    ConcurrentModification,
    InvalidTransition,
    NotFoundError,
    ValidationError,
)
from rental_engine.services.invoice_service import InvoiceService
from rental_engine.services.pricing_service import round_money
from rental_engine.utils.clock import Clock, to_iso, utc_now


def compute_late_fee(
    latest_end: Optional[datetime],
    returned_at: datetime,
    settings: EngineSettings,
) -> tuple[float, int]:
    """Return ``(late_fee, delay_days)`` for a return at ``returned_at``."""
    if latest_end is None:
        return 0.0, 0
    grace = timedelta(hours=settings.return_grace_hours)
    if returned_at <= latest_end + grace:
        return 0.0, 0
    delay_days = math.ceil((returned_at - latest_end) / ONE_DAY)
    return round_money(delay_days * settings.late_fee_per_day), delay_days


class OrderService:
    """Applies transitions under a write lock and a version check."""

    def __init__(
        self,
        connection: sqlite3.Connection,
        settings: Optional[EngineSettings] = None,
        clock: Clock = utc_now,
    ) -> None:
        self._connection = connection
        self._connection.row_factory = sqlite3.Row
        self._settings = settings or EngineSettings()
        self._clock = clock
        self._orders = OrderRepository(connection)
        self._invoices = InvoiceService(connection, clock=clock)
        self._logger = get_logger(self.__class__.__name__)

    def get_order(self, order_id: int) -> Order:
        order = self._orders.get(order_id)
        if order is None:
            raise NotFoundError(f"Order {order_id} not found.")
        return order

    def list_orders(
        self,
        *,
        customer_ref: Optional[str] = None,
        vendor_ref: Optional[str] = None,
        status: Optional[OrderStatus | str] = None,
    ) -> list[Order]:
        return self._orders.list_orders(
            customer_ref=customer_ref,
            vendor_ref=vendor_ref,
            status=OrderStatus(status) if status is not None else None,
        )

    def transition(
        self,
        order_id: int,
        action: OrderAction | str,
        *,
        expected_version: Optional[int] = None,
        notes: Optional[str] = None,
        damage_fee: float = 0.0,
        late_fee: Optional[float] = None,
    ) -> Order:
        action = OrderAction(action)
        if damage_fee < 0 or (late_fee is not None and late_fee < 0):
            raise ValidationError("Return fees cannot be negative.")
        try:
            with transaction(self._connection, immediate=True):
                order = self.get_order(order_id)
                if expected_version is not None and order.version != expected_version:
                    raise ConcurrentModification(
                        "Order", order_id, expected_version, order.version
                    )
                current = order.status
                target = next_status(current, action)
                now = self._clock()
                now_iso = to_iso(now)
                confirmed_at = now_iso if action is OrderAction.CONFIRM else None
                if not self._orders.update_status(
                    order_id,
                    expected_status=current,
                    expected_version=order.version,
                    new_status=target,
                    updated_at=now_iso,
                    confirmed_at=confirmed_at,
                ):
                    latest = self._orders.get(order_id)
                    raise ConcurrentModification(
                        "Order",
                        order_id,
                        order.version,
                        latest.version if latest else None,
                    )
                if action is OrderAction.PICK_UP:
                    order.pickup = self._orders.create_pickup(order_id, now_iso, notes)
                elif action is OrderAction.RETURN:
                    order.return_record = self._record_return(
                        order, now, notes, damage_fee, late_fee
                    )
                order.status = target
                order.version += 1
                order.updated_at = now_iso
                if confirmed_at:
                    order.confirmed_at = confirmed_at
        except (InvalidTransition, ConcurrentModification) as exc:
            self._logger.warning(
                "Transition %s rejected for order_id=%s: %s",
                action.value,
                order_id,
                exc,
            )
            raise
        self._logger.info(
            "Order %s %s -> %s",
            order.order_number,
            current.value,
            target.value,
        )
        return order

    def transition_to(
        self,
        order_id: int,
        target_status: OrderStatus | str,
        **effects: object,
    ) -> Order:
        """Move an order to ``target_status`` through the matching action."""
        order = self.get_order(order_id)
        action = action_for(order.status, OrderStatus(target_status))
        return self.transition(order_id, action, **effects)

    def _record_return(
        self,
        order: Order,
        returned_at: datetime,
        notes: Optional[str],
        damage_fee: float,
        operator_late_fee: Optional[float],
    ) -> Return:
        late_fee, delay_days = compute_late_fee(
            order.latest_end, returned_at, self._settings
        )
        if operator_late_fee is not None:
            late_fee = max(late_fee, round_money(operator_late_fee))
        record = self._orders.create_return(
            Return(
                id=None,
                order_id=int(order.id),
                returned_at=to_iso(returned_at),
                late_fee=late_fee,
                damage_fee=round_money(damage_fee),
                delay_days=delay_days,
                notes=notes,
            )
        )
        self._invoices.apply_return_fees(
            int(order.id), record.late_fee, record.damage_fee
        )
        if record.late_fee or record.damage_fee:
            self._logger.info(
                "Return fees for order %s late=%.2f (%s day(s)) damage=%.2f",
                order.order_number,
                record.late_fee,
                delay_days,
                record.damage_fee,
            )
        return record
