"""Database migrations for SQLite schema versioning."""

from __future__ import annotations

from dataclasses import dataclass
import sqlite3

from rental_engine.db.connection import transaction


@dataclass(frozen=True)
class Migration:
    version: int
    script: str
    requires_foreign_keys_off: bool = False


MIGRATIONS: list[Migration] = [
    Migration(
        version=1,
        script="""
        CREATE TABLE IF NOT EXISTS products (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            vendor_ref TEXT NOT NULL,
            name TEXT NOT NULL,
            daily_rate REAL NOT NULL CHECK (daily_rate >= 0),
            hourly_rate REAL CHECK (hourly_rate IS NULL OR hourly_rate >= 0),
            total_qty INTEGER NOT NULL DEFAULT 0 CHECK (total_qty >= 0),
            security_deposit REAL NOT NULL DEFAULT 0 CHECK (security_deposit >= 0),
            active INTEGER NOT NULL DEFAULT 1,
            created_at TEXT,
            updated_at TEXT
        );

        CREATE TABLE IF NOT EXISTS product_periods (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            product_id INTEGER NOT NULL,
            name TEXT,
            days INTEGER NOT NULL CHECK (days > 0),
            multiplier REAL NOT NULL CHECK (multiplier > 0),
            FOREIGN KEY (product_id) REFERENCES products(id) ON DELETE CASCADE,
            UNIQUE (product_id, days)
        );

        CREATE TABLE IF NOT EXISTS cart_items (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            customer_ref TEXT NOT NULL,
            product_id INTEGER NOT NULL,
            start_at TEXT NOT NULL,
            end_at TEXT NOT NULL,
            quantity INTEGER NOT NULL CHECK (quantity >= 1),
            created_at TEXT,
            FOREIGN KEY (product_id) REFERENCES products(id),
            CHECK (end_at > start_at)
        );

        CREATE TABLE IF NOT EXISTS coupons (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            code TEXT NOT NULL UNIQUE,
            discount_type TEXT NOT NULL CHECK (discount_type IN ('percent', 'fixed')),
            discount_value REAL NOT NULL CHECK (discount_value >= 0),
            min_order_amount REAL,
            max_discount REAL,
            valid_from TEXT NOT NULL,
            valid_until TEXT NOT NULL,
            usage_limit INTEGER,
            used_count INTEGER NOT NULL DEFAULT 0,
            active INTEGER NOT NULL DEFAULT 1,
            created_at TEXT
        );

        CREATE INDEX IF NOT EXISTS idx_products_vendor_ref
            ON products(vendor_ref);
        CREATE INDEX IF NOT EXISTS idx_cart_items_customer_ref
            ON cart_items(customer_ref);
        """,
    ),
    Migration(
        version=2,
        script="""
        CREATE TABLE IF NOT EXISTS orders (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            order_number TEXT NOT NULL UNIQUE,
            customer_ref TEXT NOT NULL,
            vendor_ref TEXT NOT NULL,
            status TEXT NOT NULL CHECK (
                status IN (
                    'quotation',
                    'rental_order',
                    'confirmed',
                    'picked_up',
                    'returned',
                    'cancelled'
                )
            ),
            subtotal REAL NOT NULL DEFAULT 0 CHECK (subtotal >= 0),
            tax_amount REAL NOT NULL DEFAULT 0 CHECK (tax_amount >= 0),
            discount_amount REAL NOT NULL DEFAULT 0 CHECK (discount_amount >= 0),
            coupon_code TEXT,
            security_deposit REAL NOT NULL DEFAULT 0 CHECK (security_deposit >= 0),
            total_amount REAL NOT NULL DEFAULT 0 CHECK (total_amount >= 0),
            delivery_method TEXT,
            delivery_address TEXT,
            billing_address TEXT,
            notes TEXT,
            version INTEGER NOT NULL DEFAULT 1,
            created_at TEXT,
            updated_at TEXT,
            confirmed_at TEXT
        );

        CREATE TABLE IF NOT EXISTS order_items (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            order_id INTEGER NOT NULL,
            product_id INTEGER NOT NULL,
            start_at TEXT NOT NULL,
            end_at TEXT NOT NULL,
            quantity INTEGER NOT NULL CHECK (quantity >= 1),
            unit_price REAL NOT NULL DEFAULT 0,
            line_total REAL NOT NULL DEFAULT 0,
            pricing_rule TEXT,
            FOREIGN KEY (order_id) REFERENCES orders(id),
            FOREIGN KEY (product_id) REFERENCES products(id),
            CHECK (end_at > start_at)
        );

        CREATE TABLE IF NOT EXISTS pickups (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            order_id INTEGER NOT NULL UNIQUE,
            picked_at TEXT NOT NULL,
            notes TEXT,
            FOREIGN KEY (order_id) REFERENCES orders(id)
        );

        CREATE TABLE IF NOT EXISTS returns (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            order_id INTEGER NOT NULL UNIQUE,
            returned_at TEXT NOT NULL,
            late_fee REAL NOT NULL DEFAULT 0 CHECK (late_fee >= 0),
            damage_fee REAL NOT NULL DEFAULT 0 CHECK (damage_fee >= 0),
            delay_days INTEGER NOT NULL DEFAULT 0,
            notes TEXT,
            FOREIGN KEY (order_id) REFERENCES orders(id)
        );

        CREATE INDEX IF NOT EXISTS idx_orders_customer_ref
            ON orders(customer_ref);
        CREATE INDEX IF NOT EXISTS idx_orders_vendor_ref
            ON orders(vendor_ref);
        CREATE INDEX IF NOT EXISTS idx_orders_status
            ON orders(status);
        CREATE INDEX IF NOT EXISTS idx_order_items_order_id
            ON order_items(order_id);
        CREATE INDEX IF NOT EXISTS idx_order_items_product_window
            ON order_items(product_id, start_at, end_at);
        """,
    ),
    Migration(
        version=3,
        script="""
        CREATE TABLE IF NOT EXISTS invoices (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            invoice_number TEXT NOT NULL UNIQUE,
            order_id INTEGER NOT NULL UNIQUE,
            customer_ref TEXT NOT NULL,
            vendor_ref TEXT NOT NULL,
            status TEXT NOT NULL CHECK (
                status IN ('draft', 'posted', 'partially_paid', 'paid')
            ),
            subtotal REAL NOT NULL DEFAULT 0,
            tax_amount REAL NOT NULL DEFAULT 0,
            discount_amount REAL NOT NULL DEFAULT 0,
            security_deposit REAL NOT NULL DEFAULT 0,
            late_fee REAL NOT NULL DEFAULT 0,
            damage_fee REAL NOT NULL DEFAULT 0,
            total_amount REAL NOT NULL DEFAULT 0 CHECK (total_amount >= 0),
            amount_paid REAL NOT NULL DEFAULT 0 CHECK (amount_paid >= 0),
            version INTEGER NOT NULL DEFAULT 1,
            created_at TEXT,
            posted_at TEXT,
            FOREIGN KEY (order_id) REFERENCES orders(id),
            CHECK (amount_paid <= total_amount)
        );

        CREATE TABLE IF NOT EXISTS payments (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            invoice_id INTEGER NOT NULL,
            amount REAL NOT NULL CHECK (amount > 0),
            method TEXT,
            paid_at TEXT NOT NULL,
            partial INTEGER NOT NULL DEFAULT 0,
            note TEXT,
            FOREIGN KEY (invoice_id) REFERENCES invoices(id)
        );

        CREATE INDEX IF NOT EXISTS idx_invoices_status
            ON invoices(status);
        CREATE INDEX IF NOT EXISTS idx_payments_invoice_id
            ON payments(invoice_id);
        """,
    ),
]


def _fetch_schema_version(connection: sqlite3.Connection) -> int:
    connection.execute(
        """
        CREATE TABLE IF NOT EXISTS app_meta (
            schema_version INTEGER NOT NULL
        );
        """
    )
    row = connection.execute(
        "SELECT schema_version FROM app_meta LIMIT 1"
    ).fetchone()
    if row is None:
        connection.execute("INSERT INTO app_meta (schema_version) VALUES (0)")
        return 0
    return int(row[0])


def current_schema_version(connection: sqlite3.Connection) -> int:
    with transaction(connection):
        return _fetch_schema_version(connection)


def apply_migrations(connection: sqlite3.Connection) -> None:
    """Apply pending database migrations."""
    current_version = current_schema_version(connection)

    for migration in MIGRATIONS:
        if migration.version <= current_version:
            continue

        if migration.requires_foreign_keys_off:
            connection.execute("PRAGMA foreign_keys = OFF;")

        with transaction(connection):
            connection.executescript(migration.script)
            connection.execute(
                "UPDATE app_meta SET schema_version = ?",
                (migration.version,),
            )

        if migration.requires_foreign_keys_off:
            connection.execute("PRAGMA foreign_keys = ON;")

        current_version = migration.version
