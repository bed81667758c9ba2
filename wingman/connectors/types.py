from __future__ import annotations

import math
from dataclasses import dataclass
from enum import Enum
from typing import Any, Literal


class FailureReason(str, Enum):
    TIMEOUT = "timeout"
    CONNECTION_REFUSED = "connection-refused"
    CONNECTION_TIMEOUT = "connection-timeout"
    NETWORK_ERROR = "generic-network-error"


@dataclass(frozen=True)
class ProviderConfig:
    identifier: str
    name: str
    base_urls: tuple[str, ...]
    default_model: str
    requires_auth: bool = True
    auth_header: str | None = "Authorization"

    def __post_init__(self) -> None:
        if not self.base_urls:
            raise ValueError(f"Provider {self.identifier} has no base URLs")


@dataclass(frozen=True)
class Message:
    role: Literal["user", "assistant"]
    content: str

    def to_dict(self) -> dict[str, str]:
        return {"role": self.role, "content": self.content}


@dataclass(frozen=True)
class EndpointProbeResult:
    url: str
    reachable: bool
    latency: float = math.inf
    status_code: int = 0


@dataclass(frozen=True)
class ConnectionAttemptResult:
    success: bool
    response: str | None = None
    error: str | None = None
    used_url: str | None = None
    model: str | None = None
    attempts: int = 0

    def __post_init__(self) -> None:
        if self.success and (self.response is None or self.error is not None):
            raise ValueError("successful result requires a response and no error")
        if not self.success and (self.error is None or self.response is not None):
            raise ValueError("failed result requires an error and no response")
        if self.attempts < 0:
            raise ValueError("attempts must be >= 0")

    def to_dict(self) -> dict[str, Any]:
        return {
            "success": self.success,
            "response": self.response,
            "error": self.error,
            "used_url": self.used_url,
            "model": self.model,
            "attempts": self.attempts,
        }


@dataclass(frozen=True)
class TestConnectionResult:
    __test__ = False

    result: Literal["PASS", "FAIL"]
    response: str | None = None
    error: str | None = None
    used_url: str | None = None
    attempts: int = 0

    @property
    def passed(self) -> bool:
        return self.result == "PASS"

    def to_dict(self) -> dict[str, Any]:
        return {
            "result": self.result,
            "response": self.response,
            "error": self.error,
            "used_url": self.used_url,
            "attempts": self.attempts,
        }
