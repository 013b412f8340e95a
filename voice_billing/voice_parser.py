"""
Voice Command → Invoice Draft Parser

Input:
- Final speech transcript segment (string)
- Draft accumulated from earlier segments
- User's profile currency

Output:
- New VoiceInvoiceDraft with freshly extracted fields merged in

This module:
- DOES NOT create invoices
- DOES NOT touch DB
- NEVER raises on text it cannot understand
"""

import re
from datetime import date, timedelta
from typing import Callable, Dict, List, Optional, Any

from voice_billing import config
from voice_billing.voice_draft import VoiceInvoiceDraft


FALLBACK_CURRENCY = "USD"

CUSTOMER_REGEX = re.compile(
    r"(?:invoice|bill)\s+(?:to|for)\s+([^,]+?)(?:\s+for\b|\s+\$|\s*,|$)",
    re.IGNORECASE,
)

AMOUNT_REGEX = re.compile(
    r"\$?(\d{1,3}(?:,\d{3})+(?:\.\d{2})?|\d+(?:\.\d{2})?)\s*(?:dollars?|bucks?)?",
    re.IGNORECASE,
)

CURRENCY_REGEX = re.compile(
    r"\b(?:create in |in |use )(usd|aud|eur|gbp|cad|nzd|dollars?|euros?|pounds?)\b",
    re.IGNORECASE,
)

# skips the "for" that introduces the customer ("invoice for ...")
DESCRIPTION_REGEX = re.compile(
    r"(?<!invoice )(?<!bill )\bfor\s+([^,]+?)(?:\s+due\b|\s+\$|\s*,|$)",
    re.IGNORECASE,
)

DUE_IN_DAYS_REGEX = re.compile(r"\bdue\s+in\s+(\d+)\s+days?\b", re.IGNORECASE)
DUE_NEXT_REGEX = re.compile(
    r"\bdue\s+next\s+(week|month|monday|tuesday|wednesday|thursday|friday|saturday|sunday)\b",
    re.IGNORECASE,
)
DUE_RELATIVE_DAY_REGEX = re.compile(r"\bdue\s+(today|tomorrow)\b", re.IGNORECASE)
NET_TERMS_REGEX = re.compile(r"\bnet\s+(\d+)\b", re.IGNORECASE)

CURRENCY_WORDS = {
    "usd": "USD",
    "dollar": "USD",
    "dollars": "USD",
    "eur": "EUR",
    "euro": "EUR",
    "euros": "EUR",
    "gbp": "GBP",
    "pound": "GBP",
    "pounds": "GBP",
    "aud": "AUD",
    "cad": "CAD",
    "nzd": "NZD",
}

WEEKDAYS = ["monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday"]

Extractor = Callable[[str, date], Any]


# -------------------------
# Public API
# -------------------------

def parse_voice_command(
    transcript: str,
    draft: Optional[VoiceInvoiceDraft] = None,
    default_currency: Optional[str] = None,
    today: Optional[date] = None,
) -> VoiceInvoiceDraft:
    """
    Extract invoice fields from a transcript and merge them into the draft.

    Fields not mentioned in this transcript keep their previous value.
    The input draft is not modified.
    """

    draft = draft or VoiceInvoiceDraft()
    today = today or config.today()
    text = _normalize(transcript)

    updates = extract_fields(text, today) if text else {}

    if not updates.get("currency") and not draft.currency:
        updates["currency"] = (default_currency or FALLBACK_CURRENCY).upper()

    return draft.merge(updates)


def extract_fields(text: str, today: date) -> Dict[str, Any]:
    """
    Run every field's extractors; first hit per field wins.
    """
    found = {}
    for field, extractors in EXTRACTORS.items():
        value = _first_match(extractors, text, today)
        if value is not None:
            found[field] = value
    return found


# -------------------------
# Extractors
# -------------------------

def extract_customer(text: str, today: date) -> Optional[str]:
    match = CUSTOMER_REGEX.search(text)
    if not match:
        return None
    return match.group(1).strip() or None


def extract_amount(text: str, today: date) -> Optional[float]:
    match = AMOUNT_REGEX.search(text)
    if not match:
        return None
    return float(match.group(1).replace(",", ""))


def extract_currency(text: str, today: date) -> Optional[str]:
    match = CURRENCY_REGEX.search(text)
    if not match:
        return None
    return CURRENCY_WORDS.get(match.group(1).lower())


def extract_description(text: str, today: date) -> Optional[str]:
    match = DESCRIPTION_REGEX.search(text)
    if not match:
        return None
    return match.group(1).strip() or None


def extract_due_in_days(text: str, today: date) -> Optional[date]:
    match = DUE_IN_DAYS_REGEX.search(text)
    if not match:
        return None
    return today + timedelta(days=int(match.group(1)))


def extract_due_next(text: str, today: date) -> Optional[date]:
    match = DUE_NEXT_REGEX.search(text)
    if not match:
        return None

    unit = match.group(1).lower()
    if unit == "week":
        return today + timedelta(days=7)
    if unit == "month":
        return today + timedelta(days=30)
    return next_weekday(today, WEEKDAYS.index(unit))


def extract_due_relative_day(text: str, today: date) -> Optional[date]:
    match = DUE_RELATIVE_DAY_REGEX.search(text)
    if not match:
        return None
    if match.group(1).lower() == "today":
        return today
    return today + timedelta(days=1)


def extract_net_terms(text: str, today: date) -> Optional[date]:
    match = NET_TERMS_REGEX.search(text)
    if not match:
        return None
    return today + timedelta(days=int(match.group(1)))


# per field, tried in order
EXTRACTORS: Dict[str, List[Extractor]] = {
    "customer": [extract_customer],
    "amount": [extract_amount],
    "currency": [extract_currency],
    "description": [extract_description],
    "due_date": [
        extract_due_in_days,
        extract_due_next,
        extract_due_relative_day,
        extract_net_terms,
    ],
}


# -------------------------
# Helpers
# -------------------------

def next_weekday(today: date, weekday: int) -> date:
    """
    Next occurrence of weekday (0=Monday) strictly after today.
    """
    days_ahead = (weekday - today.weekday()) % 7
    return today + timedelta(days=days_ahead or 7)


def _first_match(extractors: List[Extractor], text: str, today: date):
    for extractor in extractors:
        value = extractor(text, today)
        if value is not None:
            return value
    return None


def _normalize(transcript: Optional[str]) -> str:
    if not transcript or not isinstance(transcript, str):
        return ""
    return " ".join(transcript.split())
