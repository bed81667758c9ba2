from __future__ import annotations

import contextlib
import errno
import json
import logging
import socket
import threading
import time
from dataclasses import dataclass
from typing import Any, Callable, Sequence

import requests
from urllib3.exceptions import ReadTimeoutError

from wingman.logging_config import mask_secret

from .base import ProviderConfigSource, ProviderNotConfigured
from .endpoints import PROBE_TIMEOUT, normalize_endpoint, probe_endpoint, rank_endpoints
from .schemas import WireSchema, schema_for
from .types import (
    ConnectionAttemptResult,
    EndpointProbeResult,
    FailureReason,
    Message,
    ProviderConfig,
    TestConnectionResult,
)

logger = logging.getLogger(__name__)

ATTEMPT_TIMEOUT = 30.0
FALLBACK_PROVIDER_ID = "qwen-plus"
USER_AGENT = "Wingman AI Agent"
CANARY_MESSAGE = (
    "Hello, this is a test to verify API connectivity. "
    "Please respond with 'API test successful'."
)
_CHUNK_SIZE = 8192


@dataclass(frozen=True)
class _AttemptOutcome:
    ok: bool
    endpoint: str
    content: str | None = None
    error: str | None = None
    reason: FailureReason | None = None


def _chain_contains(exc: BaseException, predicate: Callable[[BaseException], bool]) -> bool:
    seen: set[int] = set()
    pending: list[Any] = [exc]
    while pending:
        current = pending.pop()
        if not isinstance(current, BaseException) or id(current) in seen:
            continue
        seen.add(id(current))
        if predicate(current):
            return True
        pending.extend([current.__cause__, current.__context__, *current.args])
        pending.append(getattr(current, "reason", None))
    return False


def _refused(exc: BaseException) -> bool:
    if isinstance(exc, ConnectionRefusedError):
        return True
    return isinstance(exc, OSError) and exc.errno == errno.ECONNREFUSED


def classify_transport_error(exc: requests.RequestException) -> FailureReason:
    # ConnectTimeout subclasses both ConnectionError and Timeout.
    if isinstance(exc, requests.ConnectTimeout):
        return FailureReason.CONNECTION_TIMEOUT
    if isinstance(exc, requests.Timeout):
        return FailureReason.TIMEOUT
    if isinstance(exc, requests.ConnectionError):
        # requests re-raises body read timeouts as ConnectionError.
        if _chain_contains(exc, lambda e: isinstance(e, ReadTimeoutError)):
            return FailureReason.TIMEOUT
        if _chain_contains(exc, _refused) or "Connection refused" in str(exc):
            return FailureReason.CONNECTION_REFUSED
    return FailureReason.NETWORK_ERROR


def _sever(response: requests.Response) -> None:
    """Unblock a read in progress on ``response`` from another thread."""
    connection = getattr(getattr(response, "raw", None), "connection", None)
    sock = getattr(connection, "sock", None)
    if sock is None:
        response.close()
        return
    # shutdown() wakes a blocked recv(); close() alone does not.
    with contextlib.suppress(OSError):
        sock.shutdown(socket.SHUT_RDWR)


def _read_body(response: requests.Response, deadline: float, timeout: float) -> bytes:
    """Read the whole body, giving up once ``deadline`` passes.

    A watchdog severs the connection at the deadline, so an upstream that
    trickles bytes cannot stretch the attempt past it.
    """
    expired = threading.Event()

    def _expire() -> None:
        expired.set()
        _sever(response)

    watchdog = threading.Timer(max(deadline - time.monotonic(), 0.0), _expire)
    watchdog.daemon = True
    watchdog.start()

    body = bytearray()
    try:
        for chunk in response.iter_content(chunk_size=_CHUNK_SIZE):
            if expired.is_set() or time.monotonic() > deadline:
                break
            body.extend(chunk)
    except requests.RequestException:
        if not expired.is_set():
            raise
    finally:
        watchdog.cancel()

    if expired.is_set() or time.monotonic() > deadline:
        raise requests.ReadTimeout(f"response body not received within {timeout}s")
    return bytes(body)


def _decode_json(body: bytes) -> Any:
    try:
        return json.loads(body.decode("utf-8")) if body else None
    except (UnicodeDecodeError, ValueError):
        return None


class ProviderConnector:
    """Chat-completion client that fails over across a provider's endpoints.

    One instance is built per process and handed to request handlers. It holds
    no per-call state, so concurrent ``connect`` calls do not interfere.
    """

    def __init__(
        self,
        store: ProviderConfigSource,
        probe_timeout: float = PROBE_TIMEOUT,
        attempt_timeout: float = ATTEMPT_TIMEOUT,
        fallback_provider_id: str = FALLBACK_PROVIDER_ID,
        probe: Callable[[str, float], EndpointProbeResult] = probe_endpoint,
        session_factory: Callable[[], requests.Session] = requests.Session,
    ) -> None:
        self.store = store
        self.probe_timeout = probe_timeout
        self.attempt_timeout = attempt_timeout
        self.fallback_provider_id = fallback_provider_id
        self._probe = probe
        self._session_factory = session_factory

    def resolve_config(self, provider_id: str) -> ProviderConfig:
        try:
            config = self.store.get_provider_config(provider_id)
        except Exception as exc:  # noqa: BLE001
            logger.error("Error getting provider config for %s: %s", provider_id, exc)
            raise ProviderNotConfigured(provider_id) from exc
        if config is None:
            raise ProviderNotConfigured(provider_id)
        return config

    def rank_endpoints(self, base_urls: Sequence[str]) -> list[str]:
        return rank_endpoints(base_urls, timeout=self.probe_timeout, probe=self._probe)

    def connect(
        self,
        provider_id: str,
        credential: str,
        messages: Sequence[Message],
    ) -> ConnectionAttemptResult:
        try:
            return self._connect(provider_id, credential, messages)
        except Exception as exc:  # noqa: BLE001
            logger.exception("Unexpected error connecting to %s", provider_id)
            return ConnectionAttemptResult(success=False, error=f"Unexpected error: {exc}")

    def _connect(
        self,
        provider_id: str,
        credential: str,
        messages: Sequence[Message],
    ) -> ConnectionAttemptResult:
        try:
            config = self.resolve_config(provider_id)
        except ProviderNotConfigured as exc:
            logger.warning("%s", exc)
            return ConnectionAttemptResult(success=False, error=str(exc), attempts=0)

        schema = schema_for(config.identifier)
        logger.info(
            "Starting connection to %s with %d endpoint(s)", provider_id, len(config.base_urls)
        )
        endpoints = self.rank_endpoints(config.base_urls)
        logger.info("Using endpoints in order: %s", ", ".join(endpoints))

        attempts = 0
        last_error = ""
        for base_url in endpoints:
            attempts += 1
            logger.info(
                "Attempt %d for %s via %s (model=%s, key=%s, messages=%d)",
                attempts,
                provider_id,
                base_url,
                config.default_model,
                mask_secret(credential),
                len(messages),
            )
            outcome = self._attempt(config, schema, base_url, credential, messages)
            if outcome.ok:
                logger.info("Connected to %s using %s", provider_id, outcome.endpoint)
                return ConnectionAttemptResult(
                    success=True,
                    response=outcome.content,
                    used_url=outcome.endpoint,
                    model=config.default_model,
                    attempts=attempts,
                )
            logger.warning(
                "Attempt %d for %s via %s failed (%s): %s",
                attempts,
                provider_id,
                base_url,
                outcome.reason.value if outcome.reason else "upstream",
                outcome.error,
            )
            last_error = outcome.error or ""

        logger.error("All %d attempt(s) to connect to %s failed", attempts, provider_id)
        return ConnectionAttemptResult(
            success=False,
            error=(
                f"Failed to connect to {provider_id} using all configured URLs "
                f"after {attempts} attempt(s). Last error: {last_error}. "
                "Please check your network connectivity or API key."
            ),
            model=config.default_model,
            attempts=attempts,
        )

    def _headers(self, config: ProviderConfig, credential: str) -> dict[str, str]:
        headers = {"Content-Type": "application/json", "User-Agent": USER_AGENT}
        if config.requires_auth and config.auth_header:
            headers[config.auth_header] = f"Bearer {credential}"
        return headers

    def _attempt(
        self,
        config: ProviderConfig,
        schema: WireSchema,
        base_url: str,
        credential: str,
        messages: Sequence[Message],
    ) -> _AttemptOutcome:
        endpoint = normalize_endpoint(base_url)
        payload = schema.build_request(config, messages)
        deadline = time.monotonic() + self.attempt_timeout

        # Closing the session on exit tears down the socket of an abandoned call.
        try:
            with self._session_factory() as session:
                response = session.post(
                    endpoint,
                    json=payload,
                    headers=self._headers(config, credential),
                    timeout=self.attempt_timeout,
                    stream=True,
                )
                try:
                    body = _read_body(response, deadline, self.attempt_timeout)
                finally:
                    response.close()
        except requests.RequestException as exc:
            reason = classify_transport_error(exc)
            return _AttemptOutcome(
                ok=False,
                endpoint=endpoint,
                error=self._transport_message(reason, endpoint, exc),
                reason=reason,
            )

        data = _decode_json(body)
        if not 200 <= response.status_code < 300:
            status = " ".join(str(part) for part in (response.status_code, response.reason) if part)
            error_body = json.dumps(data if data is not None else {})
            return _AttemptOutcome(
                ok=False,
                endpoint=endpoint,
                error=f"API request failed: {status}, {error_body}",
            )

        parsed = schema.parse_response(config, data)
        if not parsed.ok:
            return _AttemptOutcome(ok=False, endpoint=endpoint, error=parsed.error)
        return _AttemptOutcome(ok=True, endpoint=endpoint, content=parsed.content)

    def _transport_message(
        self, reason: FailureReason, endpoint: str, exc: requests.RequestException
    ) -> str:
        if reason is FailureReason.TIMEOUT:
            return f"Request timed out after {self.attempt_timeout:g}s"
        if reason is FailureReason.CONNECTION_TIMEOUT:
            return (
                f"Connection timeout: Unable to connect to {endpoint} "
                f"within {self.attempt_timeout:g}s"
            )
        if reason is FailureReason.CONNECTION_REFUSED:
            return f"Connection refused: {endpoint} is not accepting connections"
        return f"API call failed: {exc}"

    def test_connection(self, provider_id: str, credential: str) -> TestConnectionResult:
        result = self.connect(provider_id, credential, [Message(role="user", content=CANARY_MESSAGE)])
        if result.success:
            return TestConnectionResult(
                result="PASS",
                response=result.response,
                used_url=result.used_url,
                attempts=result.attempts,
            )
        return TestConnectionResult(
            result="FAIL",
            error=result.error,
            used_url=result.used_url,
            attempts=result.attempts,
        )

    def get_providers(self) -> list[dict[str, str]]:
        try:
            return [{"id": p["id"], "name": p["name"]} for p in self.store.list_providers()]
        except Exception as exc:  # noqa: BLE001
            logger.error("Error getting providers: %s", exc)
            return []

    def get_default_provider(self) -> str:
        try:
            return self.store.get_default_provider_id() or self.fallback_provider_id
        except Exception as exc:  # noqa: BLE001
            logger.error("Error getting default provider: %s", exc)
            return self.fallback_provider_id
