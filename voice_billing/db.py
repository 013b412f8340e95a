# voice_billing/db.py
"""
Postgres connection + schema helpers.

Only plain psycopg2; repositories live next to the logic that uses them.
"""

import logging
from contextlib import contextmanager

import psycopg2
from psycopg2.extras import RealDictCursor

from voice_billing import config

logger = logging.getLogger(__name__)


@contextmanager
def get_conn():
    """
    Yield a connection; commit on success, rollback on error.
    """
    if not config.DATABASE_URL:
        raise RuntimeError("DATABASE_URL not configured")

    conn = psycopg2.connect(config.DATABASE_URL)
    try:
        yield conn
        conn.commit()
    except Exception:
        conn.rollback()
        raise
    finally:
        conn.close()


SCHEMA = [
    """
    CREATE TABLE IF NOT EXISTS users (
        id TEXT PRIMARY KEY,
        email TEXT,
        display_name TEXT,
        country TEXT,
        currency TEXT DEFAULT 'USD',
        created_at TIMESTAMPTZ DEFAULT now()
    );
    """,
    """
    CREATE TABLE IF NOT EXISTS service_templates (
        id SERIAL PRIMARY KEY,
        user_id TEXT NOT NULL,
        name TEXT NOT NULL,
        description TEXT NOT NULL DEFAULT '',
        unit_price NUMERIC(12, 2) NOT NULL DEFAULT 0,
        quantity NUMERIC(12, 2) NOT NULL DEFAULT 1,
        keywords TEXT NOT NULL DEFAULT '',
        category TEXT NOT NULL DEFAULT '',
        is_preferred BOOLEAN NOT NULL DEFAULT false,
        usage_count INTEGER NOT NULL DEFAULT 0,
        created_at TIMESTAMPTZ DEFAULT now(),
        updated_at TIMESTAMPTZ DEFAULT now()
    );
    """,
    "CREATE INDEX IF NOT EXISTS idx_service_templates_user ON service_templates (user_id);",
    """
    CREATE TABLE IF NOT EXISTS customers (
        id SERIAL PRIMARY KEY,
        user_id TEXT NOT NULL,
        display_name TEXT NOT NULL,
        first_name TEXT,
        last_name TEXT,
        email TEXT DEFAULT '',
        country TEXT DEFAULT '',
        notes TEXT,
        created_at TIMESTAMPTZ DEFAULT now()
    );
    """,
    """
    CREATE TABLE IF NOT EXISTS invoices (
        id SERIAL PRIMARY KEY,
        user_id TEXT NOT NULL,
        customer_id INTEGER REFERENCES customers(id) ON DELETE SET NULL,
        number TEXT NOT NULL,
        issue_date DATE NOT NULL,
        due_date DATE,
        po_number TEXT,
        currency TEXT NOT NULL DEFAULT 'USD',
        subtotal NUMERIC(12, 2) NOT NULL DEFAULT 0,
        tax_amount NUMERIC(12, 2) NOT NULL DEFAULT 0,
        total NUMERIC(12, 2) NOT NULL DEFAULT 0,
        status TEXT NOT NULL DEFAULT 'DRAFT',
        notes TEXT,
        created_at TIMESTAMPTZ DEFAULT now()
    );
    """,
    """
    CREATE TABLE IF NOT EXISTS invoice_items (
        id SERIAL PRIMARY KEY,
        invoice_id INTEGER NOT NULL REFERENCES invoices(id) ON DELETE CASCADE,
        description TEXT NOT NULL,
        quantity NUMERIC(12, 2) NOT NULL DEFAULT 1,
        unit_price NUMERIC(12, 2) NOT NULL DEFAULT 0,
        total NUMERIC(12, 2) NOT NULL DEFAULT 0
    );
    """,
    """
    CREATE TABLE IF NOT EXISTS payments (
        id SERIAL PRIMARY KEY,
        invoice_id INTEGER NOT NULL REFERENCES invoices(id) ON DELETE CASCADE,
        amount NUMERIC(12, 2) NOT NULL,
        payment_date DATE NOT NULL,
        payment_method TEXT NOT NULL DEFAULT 'CASH',
        notes TEXT,
        created_at TIMESTAMPTZ DEFAULT now()
    );
    """,
]


def init_db():
    """Create tables if missing (safe to call repeatedly)."""
    with get_conn() as conn, conn.cursor() as cur:
        for stmt in SCHEMA:
            cur.execute(stmt)
    logger.info("voice billing schema ready")


def get_user_currency(user_id: str):
    """
    Profile currency for a user, or None when unknown.
    """
    with get_conn() as conn, conn.cursor(cursor_factory=RealDictCursor) as cur:
        cur.execute("SELECT currency FROM users WHERE id = %s", (user_id,))
        row = cur.fetchone()
        if not row:
            return None
        return row.get("currency") or None
