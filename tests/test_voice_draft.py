from datetime import date

from voice_billing.confirmation_response import build_voice_confirmation_response, format_currency
from voice_billing.voice_draft import VoiceInvoiceDraft


def test_merge_only_overwrites_provided_fields():
    draft = VoiceInvoiceDraft(customer="John Smith", currency="USD")
    merged = draft.merge({"amount": 120.0, "customer": None, "unknown": "x"})

    assert merged.customer == "John Smith"
    assert merged.amount == 120.0
    assert not hasattr(merged, "unknown")
    assert draft.amount is None


def test_completeness():
    draft = VoiceInvoiceDraft(customer="John Smith")
    assert not draft.is_complete()
    assert draft.missing_fields() == ["amount"]

    draft.amount = 50
    assert draft.is_complete()


def test_clear_and_is_empty():
    draft = VoiceInvoiceDraft(customer="x", amount=1)
    assert not draft.is_empty()
    draft.clear()
    assert draft.is_empty()


def test_dict_round_trip_keeps_dates():
    draft = VoiceInvoiceDraft(customer="Jo", amount=10.5, due_date=date(2026, 10, 25))
    data = draft.to_dict()

    assert data["due_date"] == "2026-10-25"
    assert VoiceInvoiceDraft.from_dict(data) == draft


def test_from_dict_tolerates_bad_values():
    draft = VoiceInvoiceDraft.from_dict({"amount": "abc", "due_date": "not a date", "quantity": "2"})

    assert draft.amount is None
    assert draft.due_date is None
    assert draft.quantity == 2.0


def test_validation_warnings_are_soft():
    draft = VoiceInvoiceDraft(
        amount=-5,
        currency="JPY",
        invoice_date=date(2026, 10, 18),
        due_date=date(2026, 10, 1),
    )

    assert draft.validation_warnings == [
        "amount cannot be negative",
        "currency JPY not supported",
        "due_date is before invoice_date",
    ]


# -------------------------
# Preview
# -------------------------

def test_preview_for_incomplete_draft():
    response = build_voice_confirmation_response(VoiceInvoiceDraft(customer="John Smith"), "AUD")

    assert response["type"] == "voice_invoice_confirmation"
    assert "*Customer:* John Smith" in response["body"]
    assert "*Amount:* Not specified" in response["body"]
    assert response["meta"]["currency"] == "AUD"
    assert response["meta"]["can_submit"] is False
    assert [o["id"] for o in response["options"]] == ["edit", "clear"]


def test_preview_for_complete_draft():
    draft = VoiceInvoiceDraft(
        customer="John Smith", amount=1250, currency="GBP", due_date=date(2026, 10, 25),
    )
    response = build_voice_confirmation_response(draft)

    assert "*Amount:* £1,250.00" in response["body"]
    assert "*Due date:* Oct 25, 2026" in response["body"]
    assert response["meta"]["can_submit"] is True
    assert [o["id"] for o in response["options"]] == ["confirm", "edit", "clear"]


def test_format_currency_unknown_code():
    assert format_currency(12, "JPY") == "JPY 12.00"
