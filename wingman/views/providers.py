from __future__ import annotations

import logging
from typing import Any

from flask import Blueprint, jsonify, request

from wingman.security import sanitize_text_input
from wingman.services.ai_connection import get_connector

logger = logging.getLogger(__name__)

providers_bp = Blueprint("providers", __name__, url_prefix="/api")


@providers_bp.get("/providers")
def list_providers() -> Any:
    connector = get_connector()
    return jsonify(
        {
            "success": True,
            "providers": connector.get_providers(),
            "default_provider": connector.get_default_provider(),
        }
    )


@providers_bp.post("/test-ai-connection")
def test_ai_connection() -> Any:
    payload = request.get_json(silent=True)
    if not isinstance(payload, dict) or not payload.get("provider") or not payload.get("api_key"):
        return jsonify({"success": False, "error": "Provider and API key are required"}), 400

    try:
        provider_id = sanitize_text_input(payload["provider"], "provider", max_length=64)
        api_key = sanitize_text_input(payload["api_key"], "api_key", max_length=512)
    except ValueError as exc:
        return jsonify({"success": False, "error": str(exc)}), 400

    result = get_connector().test_connection(provider_id, api_key)
    logger.info("Connection test for %s: %s", provider_id, result.result)
    return jsonify({"success": result.passed, **result.to_dict()})
