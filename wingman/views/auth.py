from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

from flask import Blueprint, current_app, g, jsonify, request
from sqlalchemy.exc import IntegrityError

from wingman.extensions import db
from wingman.models import Provider, User
from wingman.security import (
    TOKEN_COOKIE,
    decode_reset_token,
    hash_password,
    issue_reset_token,
    issue_token,
    login_required,
    password_fingerprint,
    sanitize_text_input,
    validate_email,
    validate_password,
    verify_password,
)
from wingman.services.ai_connection import get_connector
from wingman.services.password_reset import send_reset_link

logger = logging.getLogger(__name__)

auth_bp = Blueprint("auth", __name__, url_prefix="/api")


@dataclass
class ValidationResult:
    ok: bool
    data: dict[str, Any] | None = None
    error: str | None = None


def _user_to_dict(user: User) -> dict[str, Any]:
    return {
        "id": user.id,
        "name": user.name,
        "email": user.email,
        "provider_id": user.provider_id,
        "profile_image": user.profile_image,
        "has_api_key": bool(user.api_key),
        "created_at": user.created_at.isoformat() if user.created_at else None,
    }


def _validate_account_payload(payload: Any, required: set[str], allow_password: bool = True) -> ValidationResult:
    if not isinstance(payload, dict):
        return ValidationResult(ok=False, error="Invalid JSON payload")

    missing = sorted(field for field in required if not payload.get(field))
    if missing:
        return ValidationResult(ok=False, error=f"Missing required fields: {', '.join(missing)}")

    data: dict[str, Any] = {}
    limits = {"name": 255, "email": 255, "api_key": 512, "provider_id": 64, "profile_image": 255}
    for key, max_length in limits.items():
        if payload.get(key) is None:
            continue
        try:
            data[key] = sanitize_text_input(payload[key], key, max_length=max_length)
        except ValueError as exc:
            return ValidationResult(ok=False, error=str(exc))

    if "email" in data:
        data["email"] = data["email"].lower()
        if not validate_email(data["email"]):
            return ValidationResult(ok=False, error="Invalid email format")

    if "password" in payload and not allow_password:
        return ValidationResult(ok=False, error="Use /api/change-password to change the password")

    if payload.get("password") is not None:
        password = payload["password"]
        if not isinstance(password, str):
            return ValidationResult(ok=False, error="password must be a string")
        try:
            validate_password(password)
        except ValueError as exc:
            return ValidationResult(ok=False, error=str(exc))
        data["password"] = password

    if "provider_id" in data and db.session.get(Provider, data["provider_id"]) is None:
        return ValidationResult(ok=False, error=f"Provider {data['provider_id']} is not configured")

    return ValidationResult(ok=True, data=data)


def _verify_credential(provider_id: str, api_key: str) -> str | None:
    """Run the connection test; return the failure message, or None on PASS."""
    result = get_connector().test_connection(provider_id, api_key)
    if result.passed:
        return None
    logger.info("API key verification failed for %s after %d attempt(s)", provider_id, result.attempts)
    return result.error or "AI connection test failed"


@auth_bp.post("/register")
def register() -> Any:
    validation = _validate_account_payload(
        request.get_json(silent=True),
        required={"name", "email", "password", "api_key"},
    )
    if not validation.ok:
        return jsonify({"success": False, "error": validation.error}), 400

    data = dict(validation.data)
    if User.query.filter_by(email=data["email"]).first() is not None:
        return jsonify({"success": False, "error": "Email already registered"}), 400

    provider_id = data.get("provider_id") or get_connector().get_default_provider()
    failure = _verify_credential(provider_id, data["api_key"])
    if failure:
        return jsonify({"success": False, "error": failure, "api_test": {"result": "FAIL"}}), 400

    user = User(
        name=data["name"],
        email=data["email"],
        password_hash=hash_password(data["password"]),
        api_key=data["api_key"],
        provider_id=provider_id,
        profile_image=data.get("profile_image"),
    )
    db.session.add(user)
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        return jsonify({"success": False, "error": "Email already registered"}), 400

    logger.info("Registered user %s", user.id)
    return jsonify({"success": True, "data": _user_to_dict(user), "api_test": {"result": "PASS"}}), 201


@auth_bp.post("/login")
def login() -> Any:
    payload = request.get_json(silent=True)
    if not isinstance(payload, dict) or not payload.get("email") or not payload.get("password"):
        return jsonify({"success": False, "error": "Missing email or password"}), 400

    email = str(payload["email"]).strip().lower()
    if not validate_email(email):
        return jsonify({"success": False, "error": "Invalid email format"}), 400

    user = User.query.filter_by(email=email).first()
    if user is None or not verify_password(user.password_hash, str(payload["password"])):
        return jsonify({"success": False, "error": "Invalid credentials"}), 401

    remember_me = bool(payload.get("remember_me"))
    token = issue_token(user.id, user.email, remember_me=remember_me)
    config = current_app.config
    max_age = config.get("REMEMBER_ME_TTL_SECONDS" if remember_me else "TOKEN_TTL_SECONDS", 3600)

    # The connection test is left to the settings page; login never blocks on it.
    response = jsonify(
        {
            "success": True,
            "data": _user_to_dict(user),
            "token": token,
            "api_test": {"result": "SKIPPED", "error": None},
        }
    )
    response.set_cookie(
        TOKEN_COOKIE,
        token,
        max_age=int(max_age),
        httponly=True,
        secure=not config.get("TESTING", False) and not config.get("DEBUG", False),
        samesite="Strict",
    )
    return response


@auth_bp.post("/logout")
def logout() -> Any:
    response = jsonify({"success": True, "data": {"message": "Logged out"}})
    response.delete_cookie(TOKEN_COOKIE)
    return response


@auth_bp.get("/account")
@login_required
def get_account() -> Any:
    user = db.session.get(User, g.user_id)
    if user is None:
        return jsonify({"success": False, "error": "User not found"}), 404
    return jsonify({"success": True, "data": _user_to_dict(user)})


@auth_bp.put("/account")
@login_required
def update_account() -> Any:
    user = db.session.get(User, g.user_id)
    if user is None:
        return jsonify({"success": False, "error": "User not found"}), 404

    validation = _validate_account_payload(request.get_json(silent=True), required=set(), allow_password=False)
    if not validation.ok:
        return jsonify({"success": False, "error": validation.error}), 400

    data = dict(validation.data)
    data.pop("email", None)

    key_changed = "api_key" in data and data["api_key"] != user.api_key
    provider_changed = "provider_id" in data and data["provider_id"] != user.provider_id
    if key_changed or provider_changed:
        provider_id = data.get("provider_id") or user.provider_id or get_connector().get_default_provider()
        failure = _verify_credential(provider_id, data.get("api_key", user.api_key))
        if failure:
            return jsonify({"success": False, "error": failure, "api_test": {"result": "FAIL"}}), 400

    for key, value in data.items():
        setattr(user, key, value)

    db.session.commit()
    return jsonify({"success": True, "data": _user_to_dict(user)})


@auth_bp.post("/change-password")
@login_required
def change_password() -> Any:
    user = db.session.get(User, g.user_id)
    if user is None:
        return jsonify({"success": False, "error": "User not found"}), 404

    payload = request.get_json(silent=True)
    if not isinstance(payload, dict):
        return jsonify({"success": False, "error": "Invalid JSON payload"}), 400
    current_password = payload.get("current_password")
    new_password = payload.get("new_password")
    if not (isinstance(current_password, str) and current_password and isinstance(new_password, str) and new_password):
        return jsonify({"success": False, "error": "Missing current password or new password"}), 400

    if not verify_password(user.password_hash, current_password):
        logger.warning("Rejected password change for user %s: wrong current password", user.id)
        return jsonify({"success": False, "error": "Current password is incorrect"}), 401
    try:
        validate_password(new_password)
    except ValueError as exc:
        return jsonify({"success": False, "error": str(exc)}), 400

    user.password_hash = hash_password(new_password)
    db.session.commit()
    logger.info("Password changed for user %s", user.id)
    return jsonify({"success": True, "data": {"message": "Password changed successfully"}})


@auth_bp.post("/forgot-password")
def forgot_password() -> Any:
    payload = request.get_json(silent=True)
    email = payload.get("email") if isinstance(payload, dict) else None
    if not isinstance(email, str) or not email.strip():
        return jsonify({"success": False, "error": "Email is required"}), 400

    email = email.strip().lower()
    if not validate_email(email):
        return jsonify({"success": False, "error": "Invalid email format"}), 400

    user = User.query.filter_by(email=email).first()
    if user is None:
        return jsonify({"success": False, "error": "Email not found"}), 404

    send_reset_link(user.email, issue_reset_token(user.id, user.password_hash))
    return jsonify({"success": True, "data": {"message": "Password reset link sent to your email"}})


@auth_bp.post("/reset-password")
def reset_password() -> Any:
    payload = request.get_json(silent=True)
    if not isinstance(payload, dict):
        return jsonify({"success": False, "error": "Invalid JSON payload"}), 400
    token = payload.get("token")
    password = payload.get("password")
    if not isinstance(token, str) or not isinstance(password, str) or not token or not password:
        return jsonify({"success": False, "error": "Missing token or password"}), 400

    try:
        validate_password(password)
    except ValueError as exc:
        return jsonify({"success": False, "error": str(exc)}), 400

    claims = decode_reset_token(token)
    user = db.session.get(User, claims[0]) if claims else None
    if user is None or password_fingerprint(user.password_hash) != claims[1]:
        return jsonify({"success": False, "error": "Invalid or expired reset token"}), 401

    user.password_hash = hash_password(password)
    db.session.commit()
    logger.info("Password reset for user %s", user.id)
    return jsonify({"success": True, "data": {"message": "Password reset successful"}})
