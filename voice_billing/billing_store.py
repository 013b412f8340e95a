# voice_billing/billing_store.py
"""
Customers + invoices persistence used by the invoice actions.
"""

from typing import Dict, Any, List, Optional

from psycopg2.extras import RealDictCursor

from voice_billing.db import get_conn


class PostgresBillingStore:

    def __init__(self, conn_factory=get_conn):
        self._conn_factory = conn_factory

    # -------------------------
    # Users
    # -------------------------

    def get_user(self, user_id: str) -> Optional[Dict[str, Any]]:
        with self._conn_factory() as conn, conn.cursor(cursor_factory=RealDictCursor) as cur:
            cur.execute("SELECT id, country, currency FROM users WHERE id = %s", (user_id,))
            row = cur.fetchone()
            return dict(row) if row else None

    # -------------------------
    # Customers
    # -------------------------

    def list_customers(self, user_id: str) -> List[Dict[str, Any]]:
        with self._conn_factory() as conn, conn.cursor(cursor_factory=RealDictCursor) as cur:
            cur.execute("""
                SELECT id, display_name, first_name, last_name, email, country
                FROM customers
                WHERE user_id = %s
                ORDER BY display_name ASC
            """, (user_id,))
            return [dict(r) for r in cur.fetchall()]

    def find_customer(self, user_id: str, name: str) -> Optional[Dict[str, Any]]:
        """Case-insensitive 'contains' lookup on display name."""
        with self._conn_factory() as conn, conn.cursor(cursor_factory=RealDictCursor) as cur:
            cur.execute("""
                SELECT id, display_name, first_name, last_name, email, country
                FROM customers
                WHERE user_id = %s AND display_name ILIKE %s
                ORDER BY id ASC
                LIMIT 1
            """, (user_id, f"%{_escape_like(name)}%"))
            row = cur.fetchone()
            return dict(row) if row else None

    def create_customer(self, user_id: str, fields: Dict[str, Any]) -> Dict[str, Any]:
        with self._conn_factory() as conn, conn.cursor(cursor_factory=RealDictCursor) as cur:
            cur.execute("""
                INSERT INTO customers (user_id, display_name, first_name, last_name, email, country, notes)
                VALUES (%s, %s, %s, %s, %s, %s, %s)
                RETURNING id, display_name, first_name, last_name, email, country
            """, (
                user_id,
                fields["display_name"],
                fields.get("first_name", ""),
                fields.get("last_name", ""),
                fields.get("email", ""),
                fields.get("country", ""),
                fields.get("notes"),
            ))
            return dict(cur.fetchone())

    # -------------------------
    # Invoices
    # -------------------------

    def last_invoice_number(self, user_id: str) -> Optional[str]:
        with self._conn_factory() as conn, conn.cursor() as cur:
            cur.execute("""
                SELECT number FROM invoices
                WHERE user_id = %s
                ORDER BY length(number) DESC, number DESC
                LIMIT 1
            """, (user_id,))
            row = cur.fetchone()
            return row[0] if row else None

    def create_invoice(self, user_id: str, invoice: Dict[str, Any]) -> Dict[str, Any]:
        """
        Insert invoice + items in one transaction.
        """
        with self._conn_factory() as conn, conn.cursor(cursor_factory=RealDictCursor) as cur:
            cur.execute("""
                INSERT INTO invoices
                    (user_id, customer_id, number, issue_date, due_date, po_number, currency,
                     subtotal, tax_amount, total, status, notes)
                VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s)
                RETURNING id, number
            """, (
                user_id,
                invoice["customer_id"],
                invoice["number"],
                invoice["invoice_date"],
                invoice.get("due_date"),
                invoice.get("po_number"),
                invoice.get("currency", "USD"),
                invoice.get("subtotal", 0),
                invoice.get("tax_amount", 0),
                invoice.get("total", 0),
                invoice.get("status", "DRAFT"),
                invoice.get("notes"),
            ))
            created = dict(cur.fetchone())

            for item in invoice.get("items", []):
                cur.execute("""
                    INSERT INTO invoice_items (invoice_id, description, quantity, unit_price, total)
                    VALUES (%s, %s, %s, %s, %s)
                """, (
                    created["id"],
                    item["description"],
                    item.get("quantity", 1),
                    item.get("unit_price", 0),
                    item.get("total", 0),
                ))

            return created

    def find_invoice(self, user_id: str, number: str) -> Optional[Dict[str, Any]]:
        """Invoice by number, with the customer's email and display name."""
        with self._conn_factory() as conn, conn.cursor(cursor_factory=RealDictCursor) as cur:
            cur.execute("""
                SELECT i.id, i.number, i.status, i.total, i.currency, i.customer_id,
                       c.email AS customer_email, c.display_name AS customer_name
                FROM invoices i
                LEFT JOIN customers c ON c.id = i.customer_id
                WHERE i.user_id = %s AND i.number = %s
                ORDER BY i.id DESC
                LIMIT 1
            """, (user_id, number))
            row = cur.fetchone()
            return dict(row) if row else None

    def record_payment(self, invoice_id: int, payment: Dict[str, Any]):
        """
        Insert a payment and mark the invoice PAID in one transaction.
        """
        with self._conn_factory() as conn, conn.cursor() as cur:
            cur.execute("""
                INSERT INTO payments (invoice_id, amount, payment_date, payment_method, notes)
                VALUES (%s, %s, %s, %s, %s)
            """, (
                invoice_id,
                payment["amount"],
                payment["payment_date"],
                payment.get("payment_method", "CASH"),
                payment.get("notes"),
            ))
            cur.execute("UPDATE invoices SET status = 'PAID' WHERE id = %s", (invoice_id,))

    def set_invoice_status(self, invoice_id: int, status: str):
        with self._conn_factory() as conn, conn.cursor() as cur:
            cur.execute("UPDATE invoices SET status = %s WHERE id = %s", (status, invoice_id))


def _escape_like(value: str) -> str:
    # ILIKE treats % and _ as wildcards; backslash is the default escape
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
