"""
Shared async retry utility with exponential backoff.

Used by all HTTP data-source clients (pump.fun, GMGN, Solana RPC).
Unlike a best-effort fetch, exhausted retries raise ``UpstreamUnavailable``:
a silently missing trade page would undercount every percentage
downstream, so callers decide explicitly where a failure may be absorbed.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Optional

import httpx

from ..errors import RpcRequestError, UpstreamUnavailable

logger = logging.getLogger(__name__)


def _parse_retry_after(resp: httpx.Response, default: float) -> float:
    """Extract wait time from a ``Retry-After`` header, or use *default*.

    Only the integer-seconds form is handled.
    """
    raw = resp.headers.get("retry-after")
    if raw is not None:
        try:
            return max(float(raw), 0.5)
        except (ValueError, TypeError):
            pass
    return default


async def async_http_get(
    client: httpx.AsyncClient,
    url: str,
    *,
    params: Optional[dict[str, Any]] = None,
    max_retries: int = 3,
    backoff_base: float = 1.0,
    label: str = "HTTP",
) -> Any:
    """GET *url* with retry + exponential backoff on 429 / transient errors.

    Returns parsed JSON on success. Raises ``UpstreamUnavailable`` on 403,
    on an unparseable body, or once retries are exhausted.
    """
    last_error = "no attempt made"
    for attempt in range(max_retries):
        try:
            resp = await client.get(url, params=params)
            if resp.status_code == 429:
                wait = _parse_retry_after(resp, backoff_base * (2 ** attempt))
                logger.warning("%s rate-limited, retry in %.1fs", label, wait)
                last_error = "rate-limited"
                await asyncio.sleep(wait)
                continue
            if resp.status_code == 403:
                logger.warning("%s 403 for %s – endpoint may block this request", label, url)
                raise UpstreamUnavailable(label, "HTTP 403")
            resp.raise_for_status()
            return resp.json()
        except httpx.HTTPStatusError as exc:
            logger.warning("%s HTTP %s for %s", label, exc.response.status_code, url)
            last_error = f"HTTP {exc.response.status_code}"
        except httpx.RequestError as exc:
            logger.warning("%s request failed: %s – %s", label, url, exc)
            last_error = str(exc) or type(exc).__name__
        except ValueError as exc:
            raise UpstreamUnavailable(label, f"invalid JSON body: {exc}") from exc
        if attempt < max_retries - 1:
            await asyncio.sleep(backoff_base * (2 ** attempt))
    raise UpstreamUnavailable(label, f"retries exhausted ({last_error})")


async def async_http_post_json(
    client: httpx.AsyncClient,
    url: str,
    *,
    json_payload: Any,
    max_retries: int = 3,
    backoff_base: float = 1.5,
    label: str = "RPC",
) -> Any:
    """POST a JSON-RPC *payload* with retry + exponential backoff.

    Returns the ``result`` member of the body on success. A JSON-RPC
    ``error`` member raises ``RpcRequestError``; a 403 or exhausted retries
    raise ``UpstreamUnavailable``.
    """
    last_error = "no attempt made"
    for attempt in range(max_retries):
        try:
            resp = await client.post(url, json=json_payload)
            if resp.status_code == 429:
                wait = _parse_retry_after(resp, backoff_base * (2 ** attempt))
                logger.warning("%s rate-limited, retry in %.1fs", label, wait)
                last_error = "rate-limited"
                await asyncio.sleep(wait)
                continue
            if resp.status_code == 403:
                logger.warning("%s 403 for %s – endpoint may block this method", label, url)
                raise UpstreamUnavailable(label, "HTTP 403")
            resp.raise_for_status()
            body = resp.json()
            if "error" in body:
                logger.warning("%s error: %s", label, body["error"])
                raise RpcRequestError(label, f"RPC error {body['error']}")
            return body.get("result", body)
        except httpx.HTTPStatusError as exc:
            logger.warning("%s HTTP %s", label, exc.response.status_code)
            last_error = f"HTTP {exc.response.status_code}"
        except httpx.RequestError as exc:
            logger.warning("%s request failed: %s", label, exc)
            last_error = str(exc) or type(exc).__name__
        except ValueError as exc:
            raise UpstreamUnavailable(label, f"invalid JSON body: {exc}") from exc
        if attempt < max_retries - 1:
            await asyncio.sleep(backoff_base * (2 ** attempt))
    raise UpstreamUnavailable(label, f"retries exhausted ({last_error})")
