from __future__ import annotations

import hashlib
import re
import time
from functools import wraps
from typing import Any, Callable

import jwt
from flask import current_app, g, jsonify, request
from werkzeug.security import check_password_hash, generate_password_hash


_EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
MIN_PASSWORD_LENGTH = 8
TOKEN_COOKIE = "auth-token"
_TOKEN_ALGORITHM = "HS256"
ACCESS_TOKEN = "access"
RESET_TOKEN = "reset"


def sanitize_text_input(value: object, field_name: str, *, max_length: int = 8000) -> str:
    if not isinstance(value, str):
        raise ValueError(f"{field_name} must be a string")

    cleaned = value.replace("\x00", "").strip()
    if not cleaned:
        raise ValueError(f"{field_name} must be a non-empty string")
    if len(cleaned) > max_length:
        raise ValueError(f"{field_name} is too long")
    return cleaned


def json_object_payload() -> dict[str, Any] | None:
    """Return the JSON object body, {} when there is none, or None for any other JSON value."""
    payload = request.get_json(silent=True)
    if payload is None:
        return {}
    return payload if isinstance(payload, dict) else None


def validate_email(email: str) -> bool:
    return bool(_EMAIL_PATTERN.match(email))


def validate_password(password: str) -> None:
    if len(password) < MIN_PASSWORD_LENGTH:
        raise ValueError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters")


def hash_password(password: str) -> str:
    return generate_password_hash(password)


def verify_password(password_hash: str, password: str) -> bool:
    return check_password_hash(password_hash, password)


def _encode(claims: dict[str, Any], ttl: int) -> str:
    now = int(time.time())
    payload = {**claims, "iat": now, "exp": now + int(ttl)}
    return jwt.encode(payload, current_app.config["SECRET_KEY"], algorithm=_TOKEN_ALGORITHM)


def _decode(token: str, token_type: str) -> dict[str, Any] | None:
    try:
        payload = jwt.decode(token, current_app.config["SECRET_KEY"], algorithms=[_TOKEN_ALGORITHM])
    except jwt.PyJWTError as exc:
        current_app.logger.debug("token rejected: %s", exc)
        return None
    if payload.get("type") != token_type:
        return None
    return payload


def _subject(payload: dict[str, Any] | None) -> int | None:
    if payload is None:
        return None
    try:
        return int(payload["sub"])
    except (KeyError, TypeError, ValueError):
        return None


def issue_token(user_id: int, email: str, *, remember_me: bool = False) -> str:
    config = current_app.config
    ttl = config.get("REMEMBER_ME_TTL_SECONDS" if remember_me else "TOKEN_TTL_SECONDS", 3600)
    return _encode({"sub": str(user_id), "email": email, "type": ACCESS_TOKEN}, ttl)


def decode_token(token: str) -> int | None:
    """Return the user id carried by an access token, or None if it is invalid or expired."""
    return _subject(_decode(token, ACCESS_TOKEN))


def password_fingerprint(password_hash: str) -> str:
    return hashlib.sha256(password_hash.encode("utf-8")).hexdigest()[:16]


def issue_reset_token(user_id: int, password_hash: str) -> str:
    """Short-lived reset token, void once the password it was issued against changes."""
    ttl = current_app.config.get("RESET_TOKEN_TTL_SECONDS", 900)
    return _encode(
        {"sub": str(user_id), "type": RESET_TOKEN, "fp": password_fingerprint(password_hash)},
        ttl,
    )


def decode_reset_token(token: str) -> tuple[int, str] | None:
    """Return ``(user_id, fingerprint)`` for a valid reset token."""
    payload = _decode(token, RESET_TOKEN)
    user_id = _subject(payload)
    if user_id is None or not isinstance(payload.get("fp"), str):
        return None
    return user_id, payload["fp"]


def _request_token() -> str | None:
    header = request.headers.get("Authorization", "")
    if header.startswith("Bearer "):
        token = header.removeprefix("Bearer ").strip()
        if token:
            return token
    return request.cookies.get(TOKEN_COOKIE)


def login_required(view: Callable[..., Any]) -> Callable[..., Any]:
    @wraps(view)
    def wrapped(*args: Any, **kwargs: Any) -> Any:
        token = _request_token()
        user_id = decode_token(token) if token else None
        if user_id is None:
            return jsonify({"success": False, "error": "Authentication required"}), 401
        g.user_id = user_id
        return view(*args, **kwargs)

    return wrapped
