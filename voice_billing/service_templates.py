"""
Service template data model

- In-memory representation of a saved line-item template
- No DB coupling (rows are converted in template_store)
- Learning signals: is_preferred, usage_count, updated_at
"""

from typing import Dict, Optional, Any
from datetime import datetime
from decimal import Decimal


CATEGORIES = [
    "plumbing",
    "electrical",
    "hvac",
    "consulting",
    "repair",
    "installation",
    "cleaning",
    "landscaping",
]

DEFAULT_CATEGORY = "general"


class ServiceTemplate:
    """
    Reusable, learned line-item definition owned by a user.
    """

    def __init__(
        self,
        user_id: str,
        name: str,
        description: str = "",
        unit_price: float = 0.0,
        quantity: float = 1.0,
        keywords: str = "",
        category: str = "",
        is_preferred: bool = False,
        usage_count: int = 0,
        id: Optional[int] = None,
        created_at: Optional[datetime] = None,
        updated_at: Optional[datetime] = None,
    ):
        self.id = id
        self.user_id = user_id

        self.name = name or ""
        self.description = description or ""
        self.unit_price = _to_float(unit_price, 0.0)
        self.quantity = _to_float(quantity, 1.0)

        self.keywords = keywords or ""
        self.category = category or ""

        self.is_preferred = bool(is_preferred)
        self.usage_count = int(usage_count or 0)

        self.created_at = created_at
        self.updated_at = updated_at

    def __repr__(self):
        return f"<ServiceTemplate id={self.id} name={self.name!r} usage={self.usage_count}>"

    # -------------------------
    # Serialization helpers
    # -------------------------

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "name": self.name,
            "description": self.description,
            "unit_price": self.unit_price,
            "quantity": self.quantity,
            "keywords": self.keywords,
            "category": self.category,
            "is_preferred": self.is_preferred,
            "usage_count": self.usage_count,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]):
        """
        Build from an API payload or a RealDictCursor row.
        """
        return cls(
            id=data.get("id"),
            user_id=data.get("user_id"),
            name=data.get("name"),
            description=data.get("description"),
            unit_price=data.get("unit_price", 0),
            quantity=data.get("quantity", 1),
            keywords=data.get("keywords"),
            category=data.get("category"),
            is_preferred=data.get("is_preferred", False),
            usage_count=data.get("usage_count", 0),
            created_at=data.get("created_at"),
            updated_at=data.get("updated_at"),
        )


def _to_float(value, default: float) -> float:
    if value is None or value == "":
        return default
    if isinstance(value, Decimal):
        return float(value)
    try:
        return float(value)
    except (TypeError, ValueError):
        return default
