from __future__ import annotations

import logging
import math
import time
from concurrent.futures import ThreadPoolExecutor, wait
from typing import Callable, Sequence

import requests

from .types import EndpointProbeResult

logger = logging.getLogger(__name__)

COMPLETIONS_PATH = "/chat/completions"
PROBE_TIMEOUT = 5.0


def normalize_endpoint(base_url: str) -> str:
    """Return the chat-completions URL for ``base_url``; applying it twice is a no-op."""
    url = base_url.strip()
    if url.endswith("/"):
        url = url[:-1]
    if COMPLETIONS_PATH not in url:
        url += COMPLETIONS_PATH
    return url


def probe_endpoint(url: str, timeout: float = PROBE_TIMEOUT) -> EndpointProbeResult:
    started = time.monotonic()
    try:
        response = requests.head(url, timeout=timeout, allow_redirects=False)
    except requests.RequestException as exc:
        logger.warning("Endpoint %s is not accessible: %s", url, exc)
        return EndpointProbeResult(url=url, reachable=False, latency=math.inf, status_code=0)

    latency = time.monotonic() - started
    logger.debug("Endpoint %s answered %s in %.0fms", url, response.status_code, latency * 1000)
    return EndpointProbeResult(
        url=url,
        reachable=True,
        latency=latency,
        status_code=response.status_code,
    )


def rank_endpoints(
    base_urls: Sequence[str],
    timeout: float = PROBE_TIMEOUT,
    probe: Callable[[str, float], EndpointProbeResult] = probe_endpoint,
) -> list[str]:
    """Order endpoints by probe latency, dropping unreachable ones.

    All probes run concurrently and the whole probe phase is capped at
    ``timeout``: a probe still in flight at that point counts as unreachable
    and is left to finish in the background. When no endpoint answers, the
    input order is returned so that a real attempt is still made (some
    upstreams reject HEAD outright).
    """
    candidates = list(base_urls)
    if not candidates:
        return []

    pool = ThreadPoolExecutor(max_workers=len(candidates))
    try:
        futures = [pool.submit(probe, url, timeout) for url in candidates]
        done, _ = wait(futures, timeout=timeout)
    finally:
        pool.shutdown(wait=False, cancel_futures=True)

    results = []
    for url, future in zip(candidates, futures):
        if future in done:
            results.append(future.result())
        else:
            logger.warning("Endpoint %s did not answer within %gs", url, timeout)
            results.append(EndpointProbeResult(url=url, reachable=False))

    reachable = sorted((r for r in results if r.reachable), key=lambda r: r.latency)
    if not reachable:
        logger.info("No endpoint answered the probe; falling back to configured order")
        return candidates
    return [r.url for r in reachable]
