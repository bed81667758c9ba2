from .base import ConnectorError, ProviderConfigSource, ProviderNotConfigured
from .endpoints import normalize_endpoint, probe_endpoint, rank_endpoints
from .provider import ProviderConnector
from .types import (
    ConnectionAttemptResult,
    EndpointProbeResult,
    FailureReason,
    Message,
    ProviderConfig,
    TestConnectionResult,
)

__all__ = [
    "ConnectorError",
    "ProviderNotConfigured",
    "ProviderConfigSource",
    "ProviderConnector",
    "ProviderConfig",
    "Message",
    "EndpointProbeResult",
    "ConnectionAttemptResult",
    "TestConnectionResult",
    "FailureReason",
    "normalize_endpoint",
    "probe_endpoint",
    "rank_endpoints",
]
