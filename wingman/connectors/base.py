from __future__ import annotations

from typing import Protocol

from .types import ProviderConfig


class ConnectorError(RuntimeError):
    """Raised when a connector operation fails."""


class ProviderNotConfigured(ConnectorError):
    """Raised when no usable configuration exists for a provider id."""

    def __init__(self, provider_id: str) -> None:
        super().__init__(f"Provider {provider_id} is not configured")
        self.provider_id = provider_id


class ProviderConfigSource(Protocol):
    """Read-only provider configuration store consumed by the connector."""

    def get_provider_config(self, provider_id: str) -> ProviderConfig | None:
        ...

    def get_default_provider_id(self) -> str | None:
        ...

    def list_providers(self) -> list[dict[str, str]]:
        ...
