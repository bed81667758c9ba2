import uuid
from datetime import datetime

from .extensions import db


def _new_id(prefix: str) -> str:
    return f"{prefix}-{uuid.uuid4().hex[:16]}"


class BaseModel(db.Model):
    __abstract__ = True

    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
    updated_at = db.Column(
        db.DateTime,
        default=datetime.utcnow,
        onupdate=datetime.utcnow,
        nullable=False,
    )


class User(BaseModel):
    __tablename__ = "users"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False)
    email = db.Column(db.String(255), unique=True, nullable=False)
    password_hash = db.Column(db.String(255), nullable=False)
    api_key = db.Column(db.String(512), nullable=False)
    provider_id = db.Column(db.String(64), db.ForeignKey("ai_providers.id"), nullable=True)
    profile_image = db.Column(db.String(255), nullable=True)

    provider = db.relationship("Provider")
    chats = db.relationship("Chat", back_populates="user", cascade="all, delete-orphan")
    prompts = db.relationship("Prompt", back_populates="user", cascade="all, delete-orphan")


class Provider(BaseModel):
    __tablename__ = "ai_providers"

    id = db.Column(db.String(64), primary_key=True)
    name = db.Column(db.String(255), nullable=False)
    # JSON array text; legacy rows may hold a comma-joined list.
    base_urls = db.Column(db.Text, nullable=False)
    default_model = db.Column(db.String(255), nullable=False)
    requires_auth = db.Column(db.Boolean, nullable=False, default=True)
    auth_header = db.Column(db.String(128), nullable=True, default="Authorization")


class Chat(BaseModel):
    __tablename__ = "chats"

    id = db.Column(db.String(64), primary_key=True, default=lambda: _new_id("chat"))
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False)
    name = db.Column(db.String(255), nullable=False, default="New Chat")
    timestamp = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)

    user = db.relationship("User", back_populates="chats")
    messages = db.relationship(
        "ChatMessage",
        back_populates="chat",
        cascade="all, delete-orphan",
        order_by="ChatMessage.timestamp",
    )


class ChatMessage(BaseModel):
    __tablename__ = "chat_messages"

    id = db.Column(db.String(64), primary_key=True, default=lambda: _new_id("msg"))
    chat_id = db.Column(db.String(64), db.ForeignKey("chats.id"), nullable=False)
    role = db.Column(db.String(32), nullable=False)
    content = db.Column(db.Text, nullable=False)
    provider = db.Column(db.String(64), nullable=True)
    timestamp = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)

    chat = db.relationship("Chat", back_populates="messages")


class Prompt(BaseModel):
    __tablename__ = "prompts"

    id = db.Column(db.String(64), primary_key=True, default=lambda: _new_id("prompt"))
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False)
    name = db.Column(db.String(255), nullable=False)
    text = db.Column(db.Text, nullable=False)

    user = db.relationship("User", back_populates="prompts")
