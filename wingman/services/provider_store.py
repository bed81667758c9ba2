from __future__ import annotations

import json
import logging
from typing import Any

from wingman.connectors.types import ProviderConfig
from wingman.models import Provider

logger = logging.getLogger(__name__)


def parse_base_urls(raw: Any) -> tuple[str, ...]:
    """Normalize a stored ``base_urls`` value into a tuple of URLs.

    Accepts a JSON array string, a list, or a comma-joined string.
    """
    if raw is None:
        return ()
    if isinstance(raw, (list, tuple)):
        items = [str(item) for item in raw]
    else:
        text = raw.decode("utf-8") if isinstance(raw, bytes) else str(raw)
        try:
            decoded = json.loads(text)
        except ValueError:
            decoded = None
        if isinstance(decoded, list):
            items = [str(item) for item in decoded]
        elif isinstance(decoded, str):
            items = [decoded]
        else:
            items = text.split(",")
    return tuple(url.strip() for url in items if url and url.strip())


def provider_to_config(provider: Provider) -> ProviderConfig | None:
    base_urls = parse_base_urls(provider.base_urls)
    if not base_urls:
        logger.warning("Provider %s has no usable base URLs", provider.id)
        return None
    return ProviderConfig(
        identifier=provider.id,
        name=provider.name,
        base_urls=base_urls,
        default_model=provider.default_model,
        requires_auth=bool(provider.requires_auth),
        auth_header=provider.auth_header or None,
    )


class ProviderConfigStore:
    """Reads provider configuration from the ``ai_providers`` table.

    Must be called inside an application context.
    """

    def get_provider_config(self, provider_id: str) -> ProviderConfig | None:
        provider = Provider.query.filter_by(id=provider_id).one_or_none()
        if provider is None:
            return None
        return provider_to_config(provider)

    def get_default_provider_id(self) -> str | None:
        provider = Provider.query.order_by(Provider.created_at.asc(), Provider.id.asc()).first()
        return provider.id if provider else None

    def list_providers(self) -> list[dict[str, str]]:
        providers = Provider.query.order_by(Provider.created_at.asc(), Provider.id.asc()).all()
        return [{"id": provider.id, "name": provider.name} for provider in providers]
