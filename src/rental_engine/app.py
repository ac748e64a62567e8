"""Command-line entry point."""

from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import Optional, Sequence

from rental_engine.config import AppConfig, load_engine_settings
from rental_engine.domain.intervals import RentalInterval
from rental_engine.domain.models import OrderAction
from rental_engine.engine import RentalEngine
from rental_engine.logging_config import configure_logging, get_logger
from rental_engine.paths import get_config_path, get_db_path
from rental_engine.services.errors import ServiceError


def _build_parser() -> argparse.ArgumentParser:
    config = AppConfig()
    parser = argparse.ArgumentParser(
        prog="rental-engine",
        description=f"{config.app_name} reservation and order lifecycle engine",
    )
    parser.add_argument(
        "--db",
        type=Path,
        default=None,
        help="SQLite database path (defaults to the app data directory).",
    )
    commands = parser.add_subparsers(dest="command", required=True)

    commands.add_parser("init-db", help="Create or migrate the database.")

    availability = commands.add_parser(
        "availability", help="Free units of a product over an interval."
    )
    availability.add_argument("product_id", type=int)
    availability.add_argument("start")
    availability.add_argument("end")

    transition = commands.add_parser("transition", help="Apply an order action.")
    transition.add_argument("order_id", type=int)
    transition.add_argument("action", choices=[action.value for action in OrderAction])
    transition.add_argument("--notes", default=None)
    transition.add_argument("--damage-fee", type=float, default=0.0)
    transition.add_argument("--late-fee", type=float, default=None)

    invoice = commands.add_parser("invoice", help="Invoice an order.")
    invoice.add_argument("order_id", type=int)
    invoice.add_argument("--post", action="store_true", help="Post right away.")

    pay = commands.add_parser("pay", help="Register a payment on an invoice.")
    pay.add_argument("invoice_id", type=int)
    pay.add_argument("amount", type=float)
    pay.add_argument("--partial", action="store_true")
    pay.add_argument("--method", default="cash")

    coupon = commands.add_parser("coupon", help="Evaluate a coupon for an amount.")
    coupon.add_argument("code")
    coupon.add_argument("amount", type=float)
    return parser


def _run(engine: RentalEngine, args: argparse.Namespace) -> None:
    if args.command == "init-db":
        print(f"Database ready at {args.db}")
    elif args.command == "availability":
        interval = RentalInterval.parse(args.start, args.end)
        free = engine.check_availability(args.product_id, interval)
        print(f"Product {args.product_id} {interval}: {free} available")
    elif args.command == "transition":
        effects = {"notes": args.notes}
        if args.action == OrderAction.RETURN.value:
            effects.update(damage_fee=args.damage_fee, late_fee=args.late_fee)
        order = engine.transition(args.order_id, args.action, **effects)
        print(f"Order {order.order_number} is now {order.status.value}")
    elif args.command == "invoice":
        invoice = engine.create_invoice(args.order_id)
        if args.post:
            invoice = engine.post_invoice(int(invoice.id))
        print(
            f"Invoice {invoice.invoice_number} ({invoice.status.value}) "
            f"total {invoice.total_amount:.2f}"
        )
    elif args.command == "pay":
        invoice = engine.register_payment(
            args.invoice_id, args.amount, partial=args.partial, method=args.method
        )
        print(
            f"Invoice {invoice.invoice_number} {invoice.status.value}: "
            f"paid {invoice.amount_paid:.2f} of {invoice.total_amount:.2f}"
        )
    elif args.command == "coupon":
        discount = engine.validate_coupon(args.code, args.amount)
        print(f"Discount {discount:.2f}")


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Run one engine command against the configured database."""
    args = _build_parser().parse_args(argv)
    configure_logging()
    logger = get_logger(__name__)
    args.db = args.db or get_db_path()
    settings = load_engine_settings(get_config_path())
    engine = RentalEngine.open(args.db, settings)
    logger.info("Running %s against %s", args.command, args.db)
    try:
        _run(engine, args)
    except ServiceError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 1
    finally:
        engine.close()
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
