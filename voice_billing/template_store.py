# voice_billing/template_store.py
"""
Postgres-backed storage for service templates.

Methods raise psycopg2 errors as-is; callers decide how soft to be.
"""

from typing import List, Optional, Dict, Any

from psycopg2.extras import RealDictCursor

from voice_billing.db import get_conn
from voice_billing.service_templates import ServiceTemplate


_COLUMNS = """
    id, user_id, name, description, unit_price, quantity, keywords,
    category, is_preferred, usage_count, created_at, updated_at
"""


class PostgresTemplateStore:

    def __init__(self, conn_factory=get_conn):
        self._conn_factory = conn_factory

    def find_all_by_user(self, user_id: str) -> List[ServiceTemplate]:
        """Templates for a user, preferred first, then most used."""
        with self._conn_factory() as conn, conn.cursor(cursor_factory=RealDictCursor) as cur:
            cur.execute(f"""
                SELECT {_COLUMNS}
                FROM service_templates
                WHERE user_id = %s
                ORDER BY is_preferred DESC, usage_count DESC, updated_at DESC, id ASC
            """, (user_id,))
            return [ServiceTemplate.from_dict(row) for row in cur.fetchall()]

    def get(self, user_id: str, template_id: int) -> Optional[ServiceTemplate]:
        with self._conn_factory() as conn, conn.cursor(cursor_factory=RealDictCursor) as cur:
            cur.execute(f"""
                SELECT {_COLUMNS}
                FROM service_templates
                WHERE id = %s AND user_id = %s
            """, (template_id, user_id))
            row = cur.fetchone()
            return ServiceTemplate.from_dict(row) if row else None

    def increment_usage(self, template_id: int) -> None:
        with self._conn_factory() as conn, conn.cursor() as cur:
            cur.execute("""
                UPDATE service_templates
                SET usage_count = usage_count + 1, updated_at = now()
                WHERE id = %s
            """, (template_id,))

    def create(self, fields: Dict[str, Any]) -> ServiceTemplate:
        with self._conn_factory() as conn, conn.cursor(cursor_factory=RealDictCursor) as cur:
            cur.execute(f"""
                INSERT INTO service_templates
                    (user_id, name, description, unit_price, quantity, keywords, category, is_preferred)
                VALUES (%s, %s, %s, %s, %s, %s, %s, %s)
                RETURNING {_COLUMNS}
            """, (
                fields["user_id"],
                fields["name"],
                fields.get("description") or "",
                fields.get("unit_price") or 0,
                fields.get("quantity") or 1,
                fields.get("keywords") or "",
                fields.get("category") or "",
                bool(fields.get("is_preferred", False)),
            ))
            return ServiceTemplate.from_dict(cur.fetchone())

    def set_preferred(self, user_id: str, template_id: int, is_preferred: bool) -> bool:
        with self._conn_factory() as conn, conn.cursor() as cur:
            cur.execute("""
                UPDATE service_templates
                SET is_preferred = %s
                WHERE id = %s AND user_id = %s
            """, (bool(is_preferred), template_id, user_id))
            return cur.rowcount > 0

    def add_keywords(self, user_id: str, template_id: int, keywords: str) -> Optional[ServiceTemplate]:
        """
        Append keywords to a template. Returns None if the template is not the user's.
        """
        template = self.get(user_id, template_id)
        if not template:
            return None

        existing = template.keywords or ""
        template.keywords = f"{existing}, {keywords}" if existing else keywords

        with self._conn_factory() as conn, conn.cursor() as cur:
            cur.execute(
                "UPDATE service_templates SET keywords = %s WHERE id = %s",
                (template.keywords, template_id),
            )
        return template
