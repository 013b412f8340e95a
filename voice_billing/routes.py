#!/usr/bin/env python3
"""
HTTP endpoints for service templates, voice parsing and chatbot actions
"""

import logging

from flask import request, jsonify

from voice_billing import config
from voice_billing.confirmation_response import build_voice_confirmation_response
from voice_billing.draft_adapter import build_invoice_payload
from voice_billing.invoice_actions import (
    dispatch_action,
    next_invoice_number,
    process_pending_commands,
    save_voice_invoice,
)
from voice_billing.service_matching import find_or_create_service
from voice_billing.voice_draft import VoiceInvoiceDraft
from voice_billing.voice_parser import parse_voice_command

logger = logging.getLogger(__name__)


def add_voice_billing_routes(app, template_store, billing_store, cache=None, currency_lookup=None):

    def _user_id():
        return (request.headers.get("X-User-Id") or "").strip() or None

    def _unauthorized():
        return jsonify({"error": "No user id provided"}), 401

    def _profile_currency(user_id):
        if currency_lookup is None:
            return config.DEFAULT_CURRENCY
        try:
            return currency_lookup(user_id) or config.DEFAULT_CURRENCY
        except Exception:
            logger.exception("currency lookup failed for %s", user_id)
            return config.DEFAULT_CURRENCY

    @app.route("/health", methods=["GET"])
    def health():
        return jsonify({"ok": True}), 200

    # -------------------------
    # Service templates
    # -------------------------

    @app.route("/api/service-templates", methods=["GET"])
    def api_list_service_templates():
        user_id = _user_id()
        if not user_id:
            return _unauthorized()
        try:
            templates = template_store.find_all_by_user(user_id)
            return jsonify([t.to_dict() for t in templates]), 200
        except Exception:
            logger.exception("Error fetching service templates")
            return jsonify({"error": "Internal server error"}), 500

    @app.route("/api/service-templates", methods=["POST"])
    def api_create_service_template():
        user_id = _user_id()
        if not user_id:
            return _unauthorized()

        data = request.get_json(silent=True) or {}
        if not data.get("name") or not data.get("description"):
            return jsonify({"error": "Name and description are required"}), 400

        try:
            template = template_store.create({
                "user_id": user_id,
                "name": data["name"],
                "description": data["description"],
                "unit_price": data.get("unit_price") or 0,
                "quantity": data.get("quantity") or 1,
                "category": data.get("category") or "",
                "keywords": data.get("keywords") or "",
                "is_preferred": data.get("is_preferred") or False,
            })
            return jsonify(template.to_dict()), 201
        except Exception:
            logger.exception("Error creating service template")
            return jsonify({"error": "Internal server error"}), 500

    @app.route("/api/service-templates/resolve", methods=["POST"])
    def api_resolve_service():
        user_id = _user_id()
        if not user_id:
            return _unauthorized()

        data = request.get_json(silent=True) or {}
        match = find_or_create_service(template_store, user_id, {
            "description": data.get("description"),
            "amount": data.get("amount"),
            "service": data.get("service"),
        })
        template = match["template"]
        return jsonify({**match, "template": template.to_dict() if template else None}), 200

    @app.route("/api/user-preferences", methods=["POST"])
    def api_user_preferences():
        user_id = _user_id()
        if not user_id:
            return _unauthorized()

        body = request.get_json(silent=True) or {}
        action = body.get("action")
        data = body.get("data") or {}

        try:
            if action == "mark_preferred":
                updated = template_store.set_preferred(user_id, data.get("template_id"), bool(data.get("is_preferred")))
                if not updated:
                    return jsonify({"error": "Service template not found"}), 404
                return jsonify({"success": True, "message": "Service preference updated"}), 200

            if action == "add_keyword":
                keywords = (data.get("keywords") or "").strip()
                if not keywords:
                    return jsonify({"error": "keywords required"}), 400
                template = template_store.add_keywords(user_id, data.get("template_id"), keywords)
                if not template:
                    return jsonify({"error": "Service template not found"}), 404
                return jsonify({"success": True, "message": "Keywords added to service"}), 200

        except Exception:
            logger.exception("Error updating user preferences")
            return jsonify({"error": "Internal server error"}), 500

        return jsonify({"error": "Invalid action"}), 400

    # -------------------------
    # Voice
    # -------------------------

    @app.route("/api/voice/parse", methods=["POST"])
    def api_voice_parse():
        user_id = _user_id()
        if not user_id:
            return _unauthorized()

        data = request.get_json(silent=True) or {}
        currency = _profile_currency(user_id)
        draft = parse_voice_command(
            data.get("transcript") or "",
            VoiceInvoiceDraft.from_dict(data.get("draft")),
            default_currency=currency,
        )
        return jsonify({
            "draft": draft.to_dict(),
            "preview": build_voice_confirmation_response(draft, currency),
        }), 200

    @app.route("/api/voice/invoice", methods=["POST"])
    def api_voice_invoice():
        user_id = _user_id()
        if not user_id:
            return _unauthorized()

        data = request.get_json(silent=True) or {}
        draft = VoiceInvoiceDraft.from_dict(data.get("draft"))

        try:
            customers = billing_store.list_customers(user_id)
            number = next_invoice_number(billing_store.last_invoice_number(user_id))
        except Exception:
            logger.exception("Error loading invoice creation data")
            return jsonify({"error": "Internal server error"}), 500

        payload = build_invoice_payload(
            draft,
            customers,
            number,
            default_currency=_profile_currency(user_id),
            transcript=data.get("transcript") or "",
        )
        if payload["status"] != "ready":
            return jsonify(payload), 400

        result = save_voice_invoice(payload["invoice"], user_id, billing_store, template_store)
        return jsonify(result), 201 if result["success"] else 500

    @app.route("/api/voice/commands", methods=["GET", "POST", "DELETE"])
    def api_voice_commands():
        user_id = _user_id()
        if not user_id:
            return _unauthorized()
        if cache is None:
            return jsonify({"error": "voice cache not configured"}), 503

        if request.method == "POST":
            data = request.get_json(silent=True) or {}
            if not data.get("transcript"):
                return jsonify({"error": "transcript required"}), 400
            command_id = cache.save_command(user_id, data["transcript"], data.get("invoice_data"))
            if not command_id:
                return jsonify({"error": "voice cache unavailable"}), 503
            return jsonify({"id": command_id}), 201

        if request.method == "DELETE":
            removed = cache.clear_processed(user_id)
            return jsonify({"removed": removed}), 200

        return jsonify({
            "pending": cache.get_pending_commands(user_id),
            "count": cache.get_command_count(user_id),
        }), 200

    @app.route("/api/voice/commands/process", methods=["POST"])
    def api_voice_commands_process():
        user_id = _user_id()
        if not user_id:
            return _unauthorized()
        if cache is None:
            return jsonify({"error": "voice cache not configured"}), 503

        result = process_pending_commands(cache, user_id, billing_store, template_store)
        return jsonify(result), 200

    @app.route("/api/voice/commands/<command_id>/processed", methods=["POST"])
    def api_voice_command_processed(command_id):
        user_id = _user_id()
        if not user_id:
            return _unauthorized()
        if cache is None:
            return jsonify({"error": "voice cache not configured"}), 503

        if not cache.mark_as_processed(user_id, command_id):
            return jsonify({"error": "not_found"}), 404
        return jsonify({"success": True}), 200

    # -------------------------
    # Chatbot
    # -------------------------

    @app.route("/api/chatbot/actions", methods=["POST"])
    def api_chatbot_actions():
        data = request.get_json(silent=True) or {}
        action_type = data.get("type")
        action_data = data.get("data")
        user_id = data.get("user_id") or _user_id()

        if not action_type or not action_data or not user_id:
            return jsonify({"error": "Action type, data, and user_id are required"}), 400

        result = dispatch_action(action_type, action_data, user_id, billing_store, template_store)
        if result.get("error"):
            return jsonify(result), 400
        return jsonify(result), 200
