"""
Chatbot / voice invoice actions

Responsibilities:
- Dispatch chatbot actions (create_invoice, add_customer, mark_paid, send_invoice)
- Find or auto-create the customer
- Resolve each line item against the user's service templates
- Persist the invoice
- Replay voice commands cached while offline

Soft failures only: every action returns {success, message, data?}.
"""

import logging
from datetime import date, timedelta
from typing import Dict, Any, List, Optional

from voice_billing import config
from voice_billing.draft_adapter import DEFAULT_DESCRIPTION
from voice_billing.service_matching import find_or_create_service

logger = logging.getLogger(__name__)


AUTO_CREATED_NOTE = "Auto-created via Voice AI - Pending complete details"
ADDED_NOTE = "Added via Voice AI - Pending complete details"
PAYMENT_NOTE = "Payment recorded via AI assistant"
DEFAULT_ITEM_DESCRIPTION = "Service provided"
DEFAULT_PAYMENT_METHOD = "CASH"
DEFAULT_DUE_DAYS = 7

# service matches above this are worth telling the user about
ANNOUNCE_MATCH_CONFIDENCE = 0.8


# -------------------------
# Public API
# -------------------------

def dispatch_action(
    action_type: str,
    data: Dict[str, Any],
    user_id: str,
    billing_store,
    template_store,
    today: Optional[date] = None,
) -> Dict[str, Any]:
    """
    Entry point for chatbot actions.
    """
    if action_type == "create_invoice":
        return create_invoice(data, user_id, billing_store, template_store, today=today)

    if action_type == "add_customer":
        return add_customer(data, user_id, billing_store)

    if action_type == "mark_paid":
        return mark_invoice_paid(data, user_id, billing_store, today=today)

    if action_type == "send_invoice":
        return send_invoice(data, user_id, billing_store)

    return {
        "success": False,
        "error": "Invalid action type",
    }


def create_invoice(
    data: Dict[str, Any],
    user_id: str,
    billing_store,
    template_store,
    today: Optional[date] = None,
) -> Dict[str, Any]:
    """
    Create an invoice from a spoken/typed request, auto-creating the
    customer and the service template when needed.
    """
    customer_name = (data.get("customer_name") or "").strip()
    amount = data.get("amount")
    currency = data.get("currency") or "USD"
    description = data.get("description")

    if not customer_name or amount is None:
        return {
            "success": False,
            "message": "Please provide at least customer name and amount.",
        }

    today = today or config.today()

    try:
        customer, customer_created = _find_or_create_customer(billing_store, user_id, customer_name)
        number = next_invoice_number(billing_store.last_invoice_number(user_id))

        service_match = find_or_create_service(template_store, user_id, {
            "description": description or DEFAULT_ITEM_DESCRIPTION,
            "amount": amount,
            "service": description,
        })

        invoice = billing_store.create_invoice(user_id, {
            "customer_id": customer["id"],
            "number": number,
            "invoice_date": today.isoformat(),
            "due_date": _due_date(data.get("due_date"), today),
            "currency": currency,
            "subtotal": amount,
            "tax_amount": 0,
            "total": amount,
            "status": "DRAFT",
            "items": [line_item_from_match(service_match, description, amount)],
        })

    except Exception:
        logger.exception("create_invoice failed for user %s", user_id)
        return {
            "success": False,
            "message": "Failed to create invoice. Please try again.",
        }

    template = service_match.get("template")

    return {
        "success": True,
        "message": _build_created_message(number, customer_name, customer_created, service_match),
        "data": {
            "invoice_id": invoice["id"],
            "invoice_number": number,
            "customer_name": customer_name,
            "customer_created": customer_created,
            "service_created": service_match["created"],
            "service_matched": template is not None and not service_match["created"],
            "service_name": template.name if template else None,
            "amount": amount,
            "currency": currency,
        },
    }


def save_voice_invoice(
    invoice: Dict[str, Any],
    user_id: str,
    billing_store,
    template_store,
) -> Dict[str, Any]:
    """
    Persist a payload built by draft_adapter.build_invoice_payload,
    resolving every spoken line item against the service templates first.
    """
    try:
        items = []
        for item in invoice.get("items", []):
            description = (item.get("description") or "").strip()

            # placeholder description: nothing was said about the service
            if not description or description == DEFAULT_DESCRIPTION:
                items.append(dict(item))
                continue

            match = find_or_create_service(template_store, user_id, {
                "description": description,
                "amount": item.get("unit_price"),
            })
            resolved = line_item_from_match(
                match, description, item.get("total"), unit_price=item.get("unit_price"),
            )
            resolved["quantity"] = item.get("quantity") or resolved["quantity"]
            items.append(resolved)

        created = billing_store.create_invoice(user_id, {**invoice, "items": items})

    except Exception:
        logger.exception("save_voice_invoice failed for user %s", user_id)
        return {
            "success": False,
            "message": "Failed to create invoice from voice command",
        }

    return {
        "success": True,
        "message": "Voice invoice created successfully!",
        "data": {
            "invoice_id": created["id"],
            "invoice_number": created["number"],
        },
    }


def add_customer(data: Dict[str, Any], user_id: str, billing_store) -> Dict[str, Any]:
    customer_name = (data.get("customer_name") or "").strip()
    if not customer_name:
        return {"success": False, "message": "Customer name is required."}

    try:
        if billing_store.find_customer(user_id, customer_name):
            return {
                "success": False,
                "message": f'Customer "{customer_name}" already exists in your database.',
            }

        customer = billing_store.create_customer(
            user_id,
            _customer_fields(billing_store, user_id, customer_name, ADDED_NOTE),
        )

    except Exception:
        logger.exception("add_customer failed for user %s", user_id)
        return {
            "success": False,
            "message": "Failed to add customer. Please try again.",
        }

    return {
        "success": True,
        "message": (
            f'Customer "{customer_name}" added successfully with default settings. '
            "You can update their details later."
        ),
        "data": {
            "customer_id": customer["id"],
            "customer_name": customer_name,
            "pending_details": True,
        },
    }


def mark_invoice_paid(
    data: Dict[str, Any],
    user_id: str,
    billing_store,
    today: Optional[date] = None,
) -> Dict[str, Any]:
    """
    Record a full payment against an invoice and mark it PAID.
    """
    number = _invoice_number(data)
    if not number:
        return {"success": False, "message": "Please provide the invoice number."}

    payment_method = (data.get("payment_method") or DEFAULT_PAYMENT_METHOD).upper()
    today = today or config.today()

    try:
        invoice = billing_store.find_invoice(user_id, number)
        if not invoice:
            return {"success": False, "message": f"Invoice #{number} not found in your records."}

        if invoice["status"] == "PAID":
            return {"success": False, "message": f"Invoice #{number} is already marked as paid."}

        billing_store.record_payment(invoice["id"], {
            "amount": invoice["total"],
            "payment_date": today.isoformat(),
            "payment_method": payment_method,
            "notes": PAYMENT_NOTE,
        })

    except Exception:
        logger.exception("mark_paid failed for user %s", user_id)
        return {
            "success": False,
            "message": "Failed to mark invoice as paid. Please try again.",
        }

    logger.info("Invoice %s marked paid for user %s", number, user_id)
    return {
        "success": True,
        "message": f"Invoice #{number} marked as paid successfully.",
        "data": {
            "invoice_number": number,
            "amount": invoice["total"],
            "payment_method": payment_method,
        },
    }


def send_invoice(data: Dict[str, Any], user_id: str, billing_store) -> Dict[str, Any]:
    """
    Mark an invoice SENT. Delivery itself is handled outside this service;
    the customer must have an email address on file.
    """
    number = _invoice_number(data)
    if not number:
        return {"success": False, "message": "Please provide the invoice number."}

    try:
        invoice = billing_store.find_invoice(user_id, number)
        if not invoice:
            return {"success": False, "message": f"Invoice #{number} not found in your records."}

        email = (invoice.get("customer_email") or "").strip()
        if not email:
            return {
                "success": False,
                "message": (
                    f"Cannot send invoice #{number} - customer email not found. "
                    f"Please add an email address for {invoice.get('customer_name')}."
                ),
            }

        billing_store.set_invoice_status(invoice["id"], "SENT")

    except Exception:
        logger.exception("send_invoice failed for user %s", user_id)
        return {
            "success": False,
            "message": "Failed to send invoice. Please try again.",
        }

    return {
        "success": True,
        "message": f"Invoice #{number} sent successfully to {email}",
        "data": {
            "invoice_number": number,
            "customer_email": email,
            "customer_name": invoice.get("customer_name"),
        },
    }


def process_pending_commands(cache, user_id: str, billing_store, template_store) -> Dict[str, Any]:
    """
    Create invoices for offline voice commands that carry prepared invoice data.

    A command is marked processed only after its invoice was saved; failed
    ones stay pending for the next replay.
    """
    processed: List[str] = []
    failed: List[str] = []
    skipped = 0

    for command in cache.get_pending_commands(user_id):
        invoice = command.get("invoice_data")
        if not invoice:
            skipped += 1
            continue

        result = save_voice_invoice(invoice, user_id, billing_store, template_store)
        if result["success"]:
            cache.mark_as_processed(user_id, command["id"])
            processed.append(command["id"])
        else:
            failed.append(command["id"])

    if processed or failed:
        logger.info(
            "Replayed offline voice commands for %s: %s created, %s failed",
            user_id, len(processed), len(failed),
        )

    return {
        "processed": processed,
        "failed": failed,
        "skipped": skipped,
        "count": cache.get_command_count(user_id),
    }


def line_item_from_match(
    service_match: Dict[str, Any],
    description: Optional[str],
    amount,
    unit_price=None,
) -> Dict[str, Any]:
    """
    Line item from a resolver result. Falls back to the raw spoken values
    (unit_price, else amount) when the resolver found nothing usable.
    """
    template = service_match.get("template")

    if unit_price is None:
        unit_price = amount
    if template is not None and template.unit_price > 0:
        unit_price = template.unit_price

    return {
        "description": (template.description if template else None) or description or DEFAULT_ITEM_DESCRIPTION,
        "quantity": (template.quantity if template else None) or 1,
        "unit_price": unit_price,
        "total": amount,
    }


def next_invoice_number(last_number: Optional[str]) -> str:
    if not last_number:
        return "0001"
    try:
        return str(int(last_number) + 1).zfill(4)
    except ValueError:
        logger.warning("Non-numeric invoice number %r, restarting sequence", last_number)
        return "0001"


# -------------------------
# Internal helpers
# -------------------------

def _find_or_create_customer(billing_store, user_id: str, customer_name: str):
    customer = billing_store.find_customer(user_id, customer_name)
    if customer:
        return customer, False

    customer = billing_store.create_customer(
        user_id,
        _customer_fields(billing_store, user_id, customer_name, AUTO_CREATED_NOTE),
    )
    logger.info("Auto-created customer %r for user %s", customer_name, user_id)
    return customer, True


def _customer_fields(billing_store, user_id: str, customer_name: str, notes: str) -> Dict[str, Any]:
    user = billing_store.get_user(user_id) or {}
    parts = customer_name.split(" ")

    return {
        "display_name": customer_name,
        "first_name": parts[0] if parts else "",
        "last_name": " ".join(parts[1:]),
        "email": "",
        "country": user.get("country") or "",
        "notes": notes,
    }


def _invoice_number(data: Dict[str, Any]) -> str:
    # "#0042" and 42 both mean invoice 0042
    raw = str(data.get("invoice_number") or "").strip().lstrip("#")
    if raw.isdigit():
        return raw.zfill(4)
    return raw


def _due_date(value, today: date) -> str:
    if isinstance(value, date):
        return value.isoformat()
    if value:
        return str(value)
    return (today + timedelta(days=DEFAULT_DUE_DAYS)).isoformat()


def _build_created_message(number: str, customer_name: str, customer_created: bool, service_match) -> str:
    message = f"Invoice #{number} created successfully"
    additions = []

    template = service_match.get("template")

    if customer_created:
        additions.append(f"New customer '{customer_name}' was auto-created")

    if service_match.get("created"):
        additions.append(f"New service '{template.name}' was auto-created")
    elif template is not None and service_match.get("confidence", 0) > ANNOUNCE_MATCH_CONFIDENCE:
        additions.append(f"Matched existing service '{template.name}'")

    if additions:
        return f"{message}. {' and '.join(additions)}."
    return f"{message} for {customer_name}."
