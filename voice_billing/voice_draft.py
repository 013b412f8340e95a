"""
Voice invoice draft

- Ephemeral, accumulated across spoken segments
- No DB coupling, never persisted as-is
- validation-soft (non-blocking)
"""

from typing import Dict, List, Optional, Any
from datetime import date, datetime


SUPPORTED_CURRENCIES = {"USD", "AUD", "EUR", "GBP", "CAD", "NZD"}

FIELDS = [
    "customer",
    "amount",
    "currency",
    "description",
    "due_date",
    "invoice_date",
    "quantity",
    "unit_price",
    "po_number",
]

DATE_FIELDS = {"due_date", "invoice_date"}
NUMERIC_FIELDS = {"amount", "quantity", "unit_price"}

REQUIRED_FIELDS = ["customer", "amount"]


class VoiceInvoiceDraft:
    """
    Partial invoice built up from voice commands.

    Every field is optional; a field is only replaced when a new
    value was actually extracted.
    """

    def __init__(
        self,
        customer: Optional[str] = None,
        amount: Optional[float] = None,
        currency: Optional[str] = None,
        description: Optional[str] = None,
        due_date: Optional[date] = None,
        invoice_date: Optional[date] = None,
        quantity: Optional[float] = None,
        unit_price: Optional[float] = None,
        po_number: Optional[str] = None,
    ):
        self.customer = customer
        self.amount = amount
        self.currency = currency
        self.description = description
        self.due_date = due_date
        self.invoice_date = invoice_date
        self.quantity = quantity
        self.unit_price = unit_price
        self.po_number = po_number

    def __eq__(self, other):
        if not isinstance(other, VoiceInvoiceDraft):
            return NotImplemented
        return self.to_dict() == other.to_dict()

    def __repr__(self):
        filled = {k: v for k, v in self.to_dict().items() if v is not None}
        return f"<VoiceInvoiceDraft {filled}>"

    # -------------------------
    # Merge / lifecycle
    # -------------------------

    def merge(self, updates: Dict[str, Any]) -> "VoiceInvoiceDraft":
        """
        Return a new draft with non-None updates applied.
        """
        merged = self.copy()
        for key, value in (updates or {}).items():
            if key in FIELDS and value is not None:
                setattr(merged, key, value)
        return merged

    def copy(self) -> "VoiceInvoiceDraft":
        return VoiceInvoiceDraft(**{f: getattr(self, f) for f in FIELDS})

    def clear(self):
        for f in FIELDS:
            setattr(self, f, None)

    def is_empty(self) -> bool:
        return all(getattr(self, f) is None for f in FIELDS)

    # -------------------------
    # Validation (soft)
    # -------------------------

    def missing_fields(self) -> List[str]:
        return [f for f in REQUIRED_FIELDS if not getattr(self, f)]

    def is_complete(self) -> bool:
        """Customer and amount are the minimum to submit."""
        return not self.missing_fields()

    @property
    def validation_warnings(self) -> List[str]:
        """
        Collect warnings but DO NOT raise exceptions.
        """
        warnings = []

        if self.amount is not None and self.amount < 0:
            warnings.append("amount cannot be negative")

        if self.currency and self.currency not in SUPPORTED_CURRENCIES:
            warnings.append(f"currency {self.currency} not supported")

        if self.due_date and self.invoice_date and self.due_date < self.invoice_date:
            warnings.append("due_date is before invoice_date")

        return warnings

    # -------------------------
    # Serialization helpers
    # -------------------------

    def to_dict(self) -> Dict[str, Any]:
        data = {}
        for f in FIELDS:
            value = getattr(self, f)
            if f in DATE_FIELDS and value is not None:
                value = value.isoformat()
            data[f] = value
        return data

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]):
        """
        Create a draft from an API payload (dates as ISO strings).
        """
        data = data or {}
        values = {}
        for f in FIELDS:
            value = data.get(f)
            if f in DATE_FIELDS and value:
                value = _parse_date(value)
            elif f in NUMERIC_FIELDS and value is not None:
                value = _parse_number(value)
            values[f] = value
        return cls(**values)


def _parse_number(value) -> Optional[float]:
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def _parse_date(value) -> Optional[date]:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return datetime.fromisoformat(str(value)).date()
    except ValueError:
        return None
