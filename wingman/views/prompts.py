from __future__ import annotations

from typing import Any

from flask import Blueprint, g, jsonify

from wingman.extensions import db
from wingman.models import Prompt
from wingman.security import json_object_payload, login_required, sanitize_text_input

prompts_bp = Blueprint("prompts", __name__, url_prefix="/api")


def _prompt_to_dict(prompt: Prompt) -> dict[str, Any]:
    return {
        "id": prompt.id,
        "name": prompt.name,
        "text": prompt.text,
        "created_at": prompt.created_at.isoformat() if prompt.created_at else None,
        "updated_at": prompt.updated_at.isoformat() if prompt.updated_at else None,
    }


def _owned_prompt(prompt_id: str) -> Prompt | None:
    return Prompt.query.filter_by(id=prompt_id, user_id=g.user_id).one_or_none()


@prompts_bp.get("/prompts")
@login_required
def list_prompts() -> Any:
    prompts = Prompt.query.filter_by(user_id=g.user_id).order_by(Prompt.updated_at.desc()).all()
    return jsonify({"success": True, "data": [_prompt_to_dict(prompt) for prompt in prompts]})


@prompts_bp.post("/prompts")
@login_required
def create_prompt() -> Any:
    payload = json_object_payload()
    if payload is None:
        return jsonify({"success": False, "error": "Invalid JSON payload"}), 400
    if not payload.get("name") or not payload.get("text"):
        return jsonify({"success": False, "error": "Prompt name and text are required"}), 400
    try:
        name = sanitize_text_input(payload["name"], "name", max_length=255)
        text = sanitize_text_input(payload["text"], "text", max_length=12000)
    except ValueError as exc:
        return jsonify({"success": False, "error": str(exc)}), 400

    prompt = Prompt(user_id=g.user_id, name=name, text=text)
    db.session.add(prompt)
    db.session.commit()
    return jsonify({"success": True, "data": _prompt_to_dict(prompt)}), 201


@prompts_bp.put("/prompts/<prompt_id>")
@login_required
def update_prompt(prompt_id: str) -> Any:
    payload = json_object_payload()
    if payload is None:
        return jsonify({"success": False, "error": "Invalid JSON payload"}), 400
    if not payload.get("name") and not payload.get("text"):
        return jsonify({"success": False, "error": "At least one field to update is required"}), 400

    prompt = _owned_prompt(prompt_id)
    if prompt is None:
        return jsonify({"success": False, "error": "Prompt not found"}), 404

    try:
        if payload.get("name"):
            prompt.name = sanitize_text_input(payload["name"], "name", max_length=255)
        if payload.get("text"):
            prompt.text = sanitize_text_input(payload["text"], "text", max_length=12000)
    except ValueError as exc:
        db.session.rollback()
        return jsonify({"success": False, "error": str(exc)}), 400

    db.session.commit()
    return jsonify({"success": True, "data": _prompt_to_dict(prompt)})


@prompts_bp.delete("/prompts/<prompt_id>")
@login_required
def delete_prompt(prompt_id: str) -> Any:
    prompt = _owned_prompt(prompt_id)
    if prompt is None:
        return jsonify({"success": False, "error": "Prompt not found"}), 404

    db.session.delete(prompt)
    db.session.commit()
    return jsonify({"success": True, "data": {"message": "Prompt deleted"}})
