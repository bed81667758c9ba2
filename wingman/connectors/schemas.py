"""Per-provider request/response wire formats.

Every stock provider speaks the OpenAI-compatible chat schema. Providers with a
divergent format register their own ``WireSchema`` under their provider id.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Sequence

from .types import Message, ProviderConfig

GENERATION_PARAMS: dict[str, Any] = {
    "temperature": 0.7,
    "max_tokens": 2048,
    "top_p": 0.9,
    "frequency_penalty": 0,
    "presence_penalty": 0,
}


@dataclass(frozen=True)
class ParsedResponse:
    ok: bool
    content: str | None = None
    error: str | None = None


@dataclass(frozen=True)
class WireSchema:
    name: str
    build_request: Callable[[ProviderConfig, Sequence[Message]], dict[str, Any]]
    parse_response: Callable[[ProviderConfig, Any], ParsedResponse]


def _build_chat_request(config: ProviderConfig, messages: Sequence[Message]) -> dict[str, Any]:
    return {
        "model": config.default_model,
        "messages": [message.to_dict() for message in messages],
        **GENERATION_PARAMS,
    }


def _parse_chat_response(config: ProviderConfig, data: Any) -> ParsedResponse:
    if not isinstance(data, dict):
        return ParsedResponse(ok=False, error="Invalid response from AI provider")

    choices = data.get("choices")
    if isinstance(choices, list) and choices and isinstance(choices[0], dict):
        message = choices[0].get("message")
        if isinstance(message, dict) and isinstance(message.get("content"), str):
            return ParsedResponse(ok=True, content=message["content"])

    error = data.get("error")
    if isinstance(error, dict):
        code = error.get("code") or "unknown"
        return ParsedResponse(
            ok=False,
            error=f"{config.name} API error: {error.get('message')} (code: {code})",
        )

    return ParsedResponse(ok=False, error="Invalid response from AI provider")


OPENAI_CHAT = WireSchema(
    name="openai-chat",
    build_request=_build_chat_request,
    parse_response=_parse_chat_response,
)

_SCHEMAS: dict[str, WireSchema] = {
    "qwen-plus": OPENAI_CHAT,
    "gpt-5.2-all": OPENAI_CHAT,
}


def register_schema(provider_id: str, schema: WireSchema) -> None:
    _SCHEMAS[provider_id] = schema


def schema_for(provider_id: str) -> WireSchema:
    return _SCHEMAS.get(provider_id, OPENAI_CHAT)
