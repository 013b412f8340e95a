"""
Voice Draft → Invoice Payload Adapter

Purpose:
- Turn an accumulated VoiceInvoiceDraft into an invoice creation payload
- Resolve the spoken customer name against the user's customers
- Handle partial / missing information gracefully
- NEVER persist or finalize invoices
"""

from datetime import date, timedelta
from typing import Dict, List, Any, Optional

from voice_billing import config
from voice_billing.voice_draft import VoiceInvoiceDraft


DEFAULT_DUE_DAYS = 7
DEFAULT_DESCRIPTION = "Service"


def build_invoice_payload(
    draft: VoiceInvoiceDraft,
    customers: List[Dict[str, Any]],
    next_number: str,
    default_currency: Optional[str] = None,
    transcript: str = "",
    today: Optional[date] = None,
) -> Dict[str, Any]:
    """
    Build an invoice payload from a voice draft.

    Returns:
    {
        status: "ready" | "incomplete" | "customer_not_found",
        invoice: dict (only when ready),
        missing_fields: list[str],
    }
    """

    missing_fields = draft.missing_fields()
    if missing_fields:
        return {
            "status": "incomplete",
            "missing_fields": missing_fields,
            "message": "Please provide at least customer name and amount",
        }

    customer = match_customer(draft.customer, customers)
    if not customer:
        return {
            "status": "customer_not_found",
            "missing_fields": ["customer"],
            "message": (
                f'Customer "{draft.customer}" not found. '
                "Please select from existing customers or add them first."
            ),
        }

    today = today or config.today()
    amount = draft.amount

    invoice = {
        "number": next_number,
        "customer_id": customer["id"],
        "currency": draft.currency or default_currency or "USD",
        "invoice_date": (draft.invoice_date or today).isoformat(),
        "due_date": (draft.due_date or today + timedelta(days=DEFAULT_DUE_DAYS)).isoformat(),
        "po_number": draft.po_number or None,
        "notes": f'Created via voice command: "{transcript}"',
        "subtotal": amount,
        "total": amount,
        "status": "DRAFT",
        "items": [{
            "description": draft.description or DEFAULT_DESCRIPTION,
            "quantity": draft.quantity or 1,
            "unit_price": draft.unit_price or amount,
            "total": amount,
        }],
    }

    return {
        "status": "ready",
        "invoice": invoice,
        "missing_fields": [],
    }


def match_customer(name: Optional[str], customers: List[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    """
    First customer whose display name contains the spoken name, or vice versa.
    """
    if not name:
        return None

    spoken = name.lower().strip()
    for customer in customers or []:
        display = (customer.get("display_name") or "").lower().strip()
        if not display:
            continue
        if spoken in display or display in spoken:
            return customer
    return None
