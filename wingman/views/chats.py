from __future__ import annotations

import logging
from datetime import datetime
from typing import Any

from flask import Blueprint, g, jsonify, request

from wingman.connectors import ConnectionAttemptResult, Message
from wingman.extensions import db, socketio
from wingman.models import Chat, ChatMessage, User
from wingman.security import decode_token, json_object_payload, login_required, sanitize_text_input
from wingman.services.ai_connection import get_connector

logger = logging.getLogger(__name__)

chats_bp = Blueprint("chats", __name__, url_prefix="/api")

_ROLES = {"user", "assistant"}


def _iso(value: datetime | None) -> str | None:
    return value.isoformat() if value else None


def _message_to_dict(message: ChatMessage) -> dict[str, Any]:
    return {
        "id": message.id,
        "chat_id": message.chat_id,
        "role": message.role,
        "content": message.content,
        "provider": message.provider,
        "timestamp": _iso(message.timestamp),
    }


def _chat_to_dict(chat: Chat, include_messages: bool = False) -> dict[str, Any]:
    data: dict[str, Any] = {
        "id": chat.id,
        "name": chat.name,
        "timestamp": _iso(chat.timestamp),
    }
    if include_messages:
        data["messages"] = [_message_to_dict(message) for message in chat.messages]
    return data


def _owned_chat(chat_id: str, user_id: int) -> Chat | None:
    return Chat.query.filter_by(id=chat_id, user_id=user_id).one_or_none()


def _add_message(chat: Chat, role: str, content: str, provider: str | None) -> ChatMessage:
    now = datetime.utcnow()
    message = ChatMessage(chat_id=chat.id, role=role, content=content, provider=provider, timestamp=now)
    db.session.add(message)
    chat.timestamp = now
    db.session.flush()
    return message


def exchange(
    user: User,
    chat: Chat,
    content: str,
    provider_id: str | None = None,
) -> tuple[ConnectionAttemptResult, ChatMessage, ChatMessage | None]:
    """Persist the user turn, ask the provider, and persist the reply on success."""
    connector = get_connector()
    if not isinstance(provider_id, str):
        provider_id = None
    provider_id = provider_id or user.provider_id or connector.get_default_provider()

    history = [
        Message(role=message.role, content=message.content)
        for message in chat.messages
        if message.role in _ROLES
    ]
    history.append(Message(role="user", content=content))

    user_message = _add_message(chat, "user", content, provider_id)
    db.session.commit()

    result = connector.connect(provider_id, user.api_key, history)
    if not result.success:
        logger.warning("Chat %s: provider %s failed: %s", chat.id, provider_id, result.error)
        return result, user_message, None

    assistant_message = _add_message(chat, "assistant", result.response, provider_id)
    db.session.commit()
    return result, user_message, assistant_message


@chats_bp.get("/chats")
@login_required
def list_chats() -> Any:
    chats = Chat.query.filter_by(user_id=g.user_id).order_by(Chat.timestamp.desc()).all()
    return jsonify({"success": True, "data": [_chat_to_dict(chat, include_messages=True) for chat in chats]})


@chats_bp.post("/chats")
@login_required
def create_chat() -> Any:
    payload = json_object_payload()
    if payload is None:
        return jsonify({"success": False, "error": "Invalid JSON payload"}), 400
    name = payload.get("name") or "New Chat"
    try:
        name = sanitize_text_input(name, "name", max_length=255)
    except ValueError as exc:
        return jsonify({"success": False, "error": str(exc)}), 400

    chat = Chat(user_id=g.user_id, name=name)
    db.session.add(chat)
    db.session.commit()
    logger.info("Created chat %s for user %s", chat.id, g.user_id)
    return jsonify({"success": True, "data": _chat_to_dict(chat, include_messages=True)}), 201


@chats_bp.delete("/chats")
@login_required
def delete_all_chats() -> Any:
    chats = Chat.query.filter_by(user_id=g.user_id).all()
    for chat in chats:
        db.session.delete(chat)
    db.session.commit()
    return jsonify({"success": True, "data": {"deleted": len(chats)}})


@chats_bp.put("/chats/<chat_id>")
@login_required
def rename_chat(chat_id: str) -> Any:
    chat = _owned_chat(chat_id, g.user_id)
    if chat is None:
        return jsonify({"success": False, "error": "Chat not found"}), 404

    payload = json_object_payload()
    if payload is None:
        return jsonify({"success": False, "error": "Invalid JSON payload"}), 400
    try:
        chat.name = sanitize_text_input(payload.get("name"), "name", max_length=255)
    except ValueError as exc:
        return jsonify({"success": False, "error": str(exc)}), 400

    db.session.commit()
    return jsonify({"success": True, "data": _chat_to_dict(chat)})


@chats_bp.delete("/chats/<chat_id>")
@login_required
def delete_chat(chat_id: str) -> Any:
    chat = _owned_chat(chat_id, g.user_id)
    if chat is None:
        return jsonify({"success": False, "error": "Chat not found"}), 404

    db.session.delete(chat)
    db.session.commit()
    return jsonify({"success": True, "data": {"message": "Chat deleted"}})


@chats_bp.get("/chats/<chat_id>/messages")
@login_required
def list_messages(chat_id: str) -> Any:
    chat = _owned_chat(chat_id, g.user_id)
    if chat is None:
        return jsonify({"success": False, "error": "Chat not found"}), 404
    return jsonify({"success": True, "data": [_message_to_dict(message) for message in chat.messages]})


@chats_bp.post("/chats/<chat_id>/messages")
@login_required
def add_message(chat_id: str) -> Any:
    chat = _owned_chat(chat_id, g.user_id)
    if chat is None:
        return jsonify({"success": False, "error": "Chat not found"}), 404

    payload = request.get_json(silent=True)
    if not isinstance(payload, dict):
        return jsonify({"success": False, "error": "Invalid JSON payload"}), 400
    if payload.get("role") not in _ROLES:
        return jsonify({"success": False, "error": "role must be 'user' or 'assistant'"}), 400
    try:
        content = sanitize_text_input(payload.get("content"), "content")
    except ValueError as exc:
        return jsonify({"success": False, "error": str(exc)}), 400

    provider = payload.get("provider")
    if not isinstance(provider, str) or not provider:
        provider = get_connector().get_default_provider()
    message = _add_message(chat, payload["role"], content, provider)
    db.session.commit()
    return jsonify({"success": True, "data": _message_to_dict(message), "chat": _chat_to_dict(chat)}), 201


@chats_bp.post("/chats/<chat_id>/send")
@login_required
def send_message(chat_id: str) -> Any:
    chat = _owned_chat(chat_id, g.user_id)
    if chat is None:
        return jsonify({"success": False, "error": "Chat not found"}), 404
    user = db.session.get(User, g.user_id)
    if user is None:
        return jsonify({"success": False, "error": "User not found"}), 404

    payload = json_object_payload()
    if payload is None:
        return jsonify({"success": False, "error": "Invalid JSON payload"}), 400
    try:
        content = sanitize_text_input(payload.get("content"), "content")
    except ValueError as exc:
        return jsonify({"success": False, "error": str(exc)}), 400

    result, user_message, assistant_message = exchange(user, chat, content, payload.get("provider"))
    if assistant_message is None:
        return (
            jsonify(
                {
                    "success": False,
                    "error": result.error,
                    "attempts": result.attempts,
                    "data": {"user_message": _message_to_dict(user_message)},
                }
            ),
            502,
        )

    return jsonify(
        {
            "success": True,
            "data": {
                "user_message": _message_to_dict(user_message),
                "assistant_message": _message_to_dict(assistant_message),
                "used_url": result.used_url,
                "attempts": result.attempts,
            },
        }
    )


@socketio.on("send_message", namespace="/")
def handle_send_message(data: Any) -> dict[str, Any]:
    if not isinstance(data, dict):
        return {"error": "Invalid payload"}
    token = data.get("token")
    user_id = decode_token(token) if isinstance(token, str) and token else None
    if user_id is None:
        return {"error": "Authentication required"}

    user = db.session.get(User, user_id)
    chat = _owned_chat(str(data.get("chat_id")), user_id)
    if user is None or chat is None:
        return {"error": "Chat not found"}

    try:
        content = sanitize_text_input(data.get("content"), "content")
    except ValueError as exc:
        return {"error": str(exc)}

    result, user_message, assistant_message = exchange(user, chat, content, data.get("provider"))
    if assistant_message is None:
        socketio.emit(
            "assistant_error",
            {"chat_id": chat.id, "error": result.error, "attempts": result.attempts},
            to=request.sid,
            namespace="/",
        )
    else:
        socketio.emit(
            "assistant_message",
            {**_message_to_dict(assistant_message), "used_url": result.used_url, "attempts": result.attempts},
            to=request.sid,
            namespace="/",
        )
    return {"chat_id": chat.id, "message_id": user_message.id}
