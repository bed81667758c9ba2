from __future__ import annotations

from flask import Flask, current_app

from wingman.connectors import ProviderConnector
from wingman.services.provider_store import ProviderConfigStore

EXTENSION_KEY = "provider_connector"


def init_connector(app: Flask, connector: ProviderConnector | None = None) -> ProviderConnector:
    """Build the process-wide connector and attach it to ``app``."""
    if connector is None:
        connector = ProviderConnector(
            ProviderConfigStore(),
            probe_timeout=app.config.get("PROBE_TIMEOUT", 5.0),
            attempt_timeout=app.config.get("ATTEMPT_TIMEOUT", 30.0),
            fallback_provider_id=app.config.get("DEFAULT_PROVIDER", "qwen-plus"),
        )
    app.extensions[EXTENSION_KEY] = connector
    return connector


def get_connector() -> ProviderConnector:
    return current_app.extensions[EXTENSION_KEY]
