"""
Voice Draft Confirmation Response Builder

- Formats the current voice draft for user review
- Returns structured message objects only
- No side effects (no sending, no DB)
"""

from typing import Dict, Any, Optional

from voice_billing.voice_draft import VoiceInvoiceDraft


NOT_SPECIFIED = "Not specified"

CURRENCY_SYMBOLS = {
    "USD": "$",
    "AUD": "A$",
    "CAD": "C$",
    "NZD": "NZ$",
    "EUR": "€",
    "GBP": "£",
}


def build_voice_confirmation_response(
    draft: VoiceInvoiceDraft,
    default_currency: Optional[str] = None,
) -> Dict[str, Any]:
    """
    Build a preview of what the voice commands have captured so far.

    Args:
        draft (VoiceInvoiceDraft): merged draft
        default_currency (str, optional): profile currency for display

    Returns:
        dict: structured confirmation message
    """

    currency = draft.currency or default_currency or "USD"

    body_lines = [
        f"*Customer:* {draft.customer or NOT_SPECIFIED}",
        f"*Amount:* {format_currency(draft.amount, currency) if draft.amount else NOT_SPECIFIED}",
        f"*Currency:* {currency}",
        f"*Due date:* {draft.due_date.strftime('%b %d, %Y') if draft.due_date else NOT_SPECIFIED}",
        f"*Description:* {draft.description or NOT_SPECIFIED}",
    ]

    warnings = draft.validation_warnings
    if warnings:
        body_lines.append("")
        body_lines.extend(f"⚠️ {w}" for w in warnings)

    missing = draft.missing_fields()
    if missing:
        footer = "Please provide at least customer name and amount."
        options = [{"id": "edit", "label": "✏️ Edit invoice"}]
    else:
        footer = "Please confirm or edit the invoice."
        options = [
            {"id": "confirm", "label": "1️⃣ Create invoice"},
            {"id": "edit", "label": "2️⃣ Edit invoice"},
        ]

    options.append({"id": "clear", "label": "🗑️ Clear"})

    return {
        "type": "voice_invoice_confirmation",
        "header": "🎙️ *Voice Invoice Preview*",
        "body": "\n".join(body_lines),
        "footer": footer,
        "options": options,
        "meta": {
            "currency": currency,
            "missing_fields": missing,
            "can_submit": not missing,
        },
    }


def format_currency(amount, currency: str) -> str:
    symbol = CURRENCY_SYMBOLS.get(currency)
    if symbol:
        return f"{symbol}{amount:,.2f}"
    return f"{currency} {amount:,.2f}"
