"""Shared HTTP plumbing for the POI and pictogram backends.

Requests go through one `requests.Session` with a common User-Agent. The
blocking call is pushed to a worker thread so the event loop keeps running
while a backend is slow.
"""

from __future__ import annotations

import asyncio
import logging
import os
from typing import Any, Optional

import requests

from pictomap.domain.errors import PermanentNetworkFailure, TransientNetworkFailure

logger = logging.getLogger(__name__)

# 409/429: Overpass rate limiting, 503/504: server busy or gateway timeout.
TRANSIENT_STATUSES = frozenset({409, 429, 503, 504})

PICTOMAP_USER_AGENT = os.getenv("PICTOMAP_USER_AGENT")
FALLBACK_UA = "pictomap/0.1 (contact: example@example.com)"
if PICTOMAP_USER_AGENT is None:
    logger.warning(
        "PICTOMAP_USER_AGENT not set in environment; using fallback UA. "
        "Public Overpass instances ask clients to identify themselves."
    )

DEFAULT_HEADERS = {
    "User-Agent": PICTOMAP_USER_AGENT or FALLBACK_UA,
    "Accept": "application/json",
}

_session = requests.Session()


def _get(
    url: str,
    *,
    params: dict[str, Any],
    headers: dict[str, str],
    timeout: float,
) -> requests.Response:
    return _session.get(url, params=params, headers=headers, timeout=timeout)


def check_response(resp: requests.Response, url: str) -> None:
    """Raise the matching NetworkFailure for a non-2xx response."""
    status = resp.status_code
    if 200 <= status < 300:
        return
    reason = getattr(resp, "reason", "") or ""
    message = f"HTTP {status} {reason} from {url[:80]}".strip()
    if status in TRANSIENT_STATUSES:
        raise TransientNetworkFailure(message, status=status)
    raise PermanentNetworkFailure(message, status=status)


async def get_json(
    url: str,
    *,
    params: Optional[dict[str, Any]] = None,
    headers: Optional[dict[str, str]] = None,
    timeout: float = 10.0,
) -> Any:
    """GET *url* off the event loop and decode the JSON body.

    Transport errors and undecodable bodies are permanent failures; only the
    statuses in TRANSIENT_STATUSES are worth retrying.
    """
    merged = dict(DEFAULT_HEADERS)
    if headers:
        merged.update(headers)
    try:
        resp = await asyncio.to_thread(
            _get, url, params=params or {}, headers=merged, timeout=timeout
        )
    except requests.RequestException as exc:
        raise PermanentNetworkFailure(f"Request to {url[:80]} failed: {exc}") from exc

    check_response(resp, url)
    try:
        return resp.json()
    except ValueError as exc:
        raise PermanentNetworkFailure(f"Invalid JSON from {url[:80]}: {exc}") from exc
