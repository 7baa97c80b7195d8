"""Async HTTP transports for the Feishu open platform and the Notion API.

Every request goes through the same lifecycle:

1. Acquire a token-bucket slot (await if needed).
2. Send the request with the platform's auth headers.
3. On ``2xx`` -- return the parsed JSON body (Feishu: check the envelope).
4. On any other status -- raise the matching typed error.

There are no automatic retries.  A failed request raises and the caller
decides whether the failure is local (one node's metric) or fatal (one
document, one run).
"""

from __future__ import annotations

import asyncio
import json as _json
import sys
import time
from collections.abc import AsyncIterator
from typing import Any

import httpx

from mdbridge.config import MdBridgeConfig
from mdbridge.errors import (
    MdBridgeAPIError,
    MdBridgeAuthError,
    MdBridgeNetworkError,
    MdBridgeNotFoundError,
    MdBridgePermissionError,
    MdBridgeRateLimitError,
    MdBridgeServerError,
    MdBridgeValidationError,
)
from mdbridge.observability import NoopMetricsHook, get_logger

from .rate_limit import AsyncTokenBucket

log = get_logger("mdbridge.transport")

# Feishu business codes that map onto typed errors.
FEISHU_PERMISSION_CODES: frozenset[int] = frozenset({99991672})
FEISHU_AUTH_CODES: frozenset[int] = frozenset({99991661, 99991663, 99991664, 99991668})
FEISHU_RATE_LIMIT_CODES: frozenset[int] = frozenset({99991400})

# Refresh the tenant token this many seconds before it expires.
_TOKEN_REFRESH_MARGIN = 60.0


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _parse_retry_after(response: httpx.Response) -> float | None:
    raw = response.headers.get("retry-after")
    if raw is None:
        return None
    try:
        return float(raw)
    except (ValueError, TypeError):
        return None


def _response_body(response: httpx.Response) -> dict[str, Any]:
    try:
        body = response.json()
    except ValueError:
        return {}
    return body if isinstance(body, dict) else {}


def _raise_for_status(response: httpx.Response, method: str, path: str) -> None:
    """Raise the :class:`MdBridgeError` subclass matching a non-2xx status."""
    status = response.status_code
    body = _response_body(response)
    message = body.get("message") or body.get("msg") or response.text[:500]
    platform_code = body.get("code", "")
    context = {"status_code": status, "platform_code": platform_code}

    if status == 400:
        raise MdBridgeValidationError(
            message=f"Validation error on {method} {path}: {message}",
            context={**context, "body": body},
        )
    if status == 401:
        raise MdBridgeAuthError(
            message=f"Authentication failed on {method} {path}: {message}",
            context=context,
        )
    if status == 403:
        raise MdBridgePermissionError(
            message=f"Permission denied on {method} {path}: {message}",
            context={**context, "operation": f"{method} {path}"},
        )
    if status == 404:
        raise MdBridgeNotFoundError(
            message=f"Resource not found on {method} {path}: {message}",
            context={**context, "path": path},
        )
    if status == 429:
        raise MdBridgeRateLimitError(
            message=f"Rate limited on {method} {path}: {message}",
            context={**context, "retry_after": _parse_retry_after(response)},
        )
    if status >= 500:
        raise MdBridgeServerError(
            message=f"Server error {status} on {method} {path}: {message}",
            context=context,
        )
    raise MdBridgeValidationError(
        message=f"Client error {status} on {method} {path}: {message}",
        context={**context, "body": body},
    )


def _raise_for_feishu_code(body: dict[str, Any], method: str, path: str) -> None:
    """Raise for a Feishu envelope whose ``code`` is non-zero."""
    code = body.get("code")
    if code in (0, None):
        return
    msg = body.get("msg", "")
    context = {"platform_code": code, "data": body.get("data")}

    if code in FEISHU_PERMISSION_CODES:
        raise MdBridgePermissionError(
            message=(
                f"Feishu permission denied on {method} {path} (code={code}). "
                "Grant the app access to the wiki space or document."
            ),
            context={**context, "operation": f"{method} {path}"},
        )
    if code in FEISHU_AUTH_CODES:
        raise MdBridgeAuthError(
            message=f"Feishu rejected the access token on {method} {path}: {msg} (code={code})",
            context=context,
        )
    if code in FEISHU_RATE_LIMIT_CODES:
        raise MdBridgeRateLimitError(
            message=f"Feishu rate limit hit on {method} {path}: {msg} (code={code})",
            context=context,
        )
    raise MdBridgeAPIError(
        message=f"Feishu API error on {method} {path}: {msg} (code={code})",
        context=context,
    )


def _dump_payload(
    method: str,
    url: str,
    payload: Any | None,
    response_status: int | None,
    response_body: Any | None,
    secrets: list[str],
) -> None:
    """Write a redacted debug dump of the request/response to stderr."""
    from mdbridge.utils.redact import redact

    dump: dict[str, Any] = {"method": method, "url": url}
    if payload is not None:
        dump["request_body"] = payload
    if response_status is not None:
        dump["response_status"] = response_status
    if response_body is not None:
        dump["response_body"] = response_body
    print(
        _json.dumps(redact(dump, secrets), indent=2, default=str, ensure_ascii=False),
        file=sys.stderr,
    )


# ---------------------------------------------------------------------------
# Base transport
# ---------------------------------------------------------------------------

class BaseTransport:
    """Shared request lifecycle for both platforms.

    Parameters
    ----------
    config:
        Run configuration (rate limit, timeout, proxy, metrics, debug dump).
    base_url:
        Platform API root.
    headers:
        Default headers sent with every request.
    platform:
        Short platform name used in metric tags and log fields.
    """

    def __init__(
        self,
        config: MdBridgeConfig,
        *,
        base_url: str,
        headers: dict[str, str] | None = None,
        platform: str,
    ) -> None:
        self._config = config
        self._platform = platform
        self._bucket = AsyncTokenBucket(rate_rps=config.rate_limit_rps)
        self._metrics = config.metrics if config.metrics is not None else NoopMetricsHook()
        self._client = httpx.AsyncClient(
            base_url=base_url,
            headers=headers or {},
            timeout=httpx.Timeout(config.timeout_seconds),
            proxy=config.http_proxy,
        )

    async def _send(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        """Pace, send and account for one request; map non-2xx to errors."""
        tags = {"platform": self._platform, "method": method, "path": path}

        wait = await self._bucket.acquire()
        if wait > 0:
            self._metrics.timing("mdbridge.rate_limit_wait_ms", wait * 1000, tags=tags)

        t0 = time.monotonic()
        try:
            response = await self._client.request(method, path, **kwargs)
        except httpx.TransportError as exc:
            self._metrics.increment("mdbridge.requests_total", tags={**tags, "status": "error"})
            log.warning(
                "Request network error",
                extra={"extra_fields": {**tags, "op": "request", "error": str(exc)}},
            )
            raise MdBridgeNetworkError(
                message=f"Network error on {method} {path}: {exc}",
                context={"url": path},
                cause=exc,
            ) from exc
        elapsed_ms = (time.monotonic() - t0) * 1000

        status_tags = {**tags, "status": str(response.status_code)}
        self._metrics.increment("mdbridge.requests_total", tags=status_tags)
        self._metrics.timing("mdbridge.request_duration_ms", elapsed_ms, tags=status_tags)
        log.debug(
            "Request completed",
            extra={"extra_fields": {**status_tags, "op": "request", "elapsed_ms": round(elapsed_ms, 1)}},
        )

        if self._config.debug_dump_payload:
            payload = kwargs.get("json", kwargs.get("data"))
            _dump_payload(
                method, str(response.url), payload,
                response.status_code, _response_body(response) or response.text[:1000],
                self._config.secrets(),
            )

        if not 200 <= response.status_code < 300:
            self._raise_for_response(response, method, path)
        return response

    def _raise_for_response(self, response: httpx.Response, method: str, path: str) -> None:
        _raise_for_status(response, method, path)

    async def close(self) -> None:
        """Close the underlying HTTP client."""
        await self._client.aclose()


# ---------------------------------------------------------------------------
# Notion
# ---------------------------------------------------------------------------

class NotionTransport(BaseTransport):
    """Transport for the Notion API (bearer integration token)."""

    def __init__(self, config: MdBridgeConfig) -> None:
        super().__init__(
            config,
            base_url=config.notion_base_url,
            headers={
                "Authorization": f"Bearer {config.notion_token}",
                "Notion-Version": config.notion_version,
            },
            platform="notion",
        )

    async def request(self, method: str, path: str, **kwargs: Any) -> dict:
        """Execute a request and return the JSON body (``{}`` for empty bodies)."""
        response = await self._send(method, path, **kwargs)
        if response.status_code == 204 or not response.content:
            return {}
        result: dict = response.json()
        return result

    async def __aenter__(self) -> NotionTransport:
        return self

    async def __aexit__(self, *exc: object) -> None:
        await self.close()


# ---------------------------------------------------------------------------
# Feishu
# ---------------------------------------------------------------------------

class FeishuTransport(BaseTransport):
    """Transport for the Feishu open platform.

    A tenant access token is requested lazily from the app credentials,
    cached, and refreshed shortly before it expires.  Every response is a
    ``{"code": 0, "msg": "ok", "data": {...}}`` envelope; :meth:`request`
    returns ``data`` and raises on a non-zero ``code``.
    """

    def __init__(self, config: MdBridgeConfig) -> None:
        super().__init__(config, base_url=config.feishu_base_url, platform="feishu")
        self._tenant_token: str | None = None
        self._token_expires_at: float = 0.0
        self._token_lock = asyncio.Lock()

    def _raise_for_response(self, response: httpx.Response, method: str, path: str) -> None:
        # Feishu reports most failures inside the envelope, even on 4xx.
        body = _response_body(response)
        if body.get("code") not in (0, None):
            _raise_for_feishu_code(body, method, path)
        _raise_for_status(response, method, path)

    async def tenant_token(self) -> str:
        """Return a valid tenant access token, fetching one if needed."""
        async with self._token_lock:
            if self._tenant_token and time.monotonic() < self._token_expires_at:
                return self._tenant_token

            path = "/auth/v3/tenant_access_token/internal"
            response = await self._send("POST", path, json={
                "app_id": self._config.feishu_app_id,
                "app_secret": self._config.feishu_app_secret,
            })
            body = _response_body(response)
            _raise_for_feishu_code(body, "POST", path)
            token = body.get("tenant_access_token")
            if not token:
                raise MdBridgeAuthError(
                    message="Feishu did not return a tenant_access_token.",
                    context={"platform_code": body.get("code")},
                )
            expire = float(body.get("expire", 7200))
            self._tenant_token = token
            self._token_expires_at = time.monotonic() + max(expire - _TOKEN_REFRESH_MARGIN, 0.0)
            log.info("Obtained Feishu tenant access token", extra={"extra_fields": {"expire": expire}})
            return token

    async def request(self, method: str, path: str, **kwargs: Any) -> dict:
        """Execute an authenticated request and return the envelope's ``data``."""
        token = await self.tenant_token()
        headers = dict(kwargs.pop("headers", None) or {})
        headers["Authorization"] = f"Bearer {token}"
        response = await self._send(method, path, headers=headers, **kwargs)
        body = _response_body(response)
        _raise_for_feishu_code(body, method, path)
        data = body.get("data")
        return data if isinstance(data, dict) else {}

    async def paginate(
        self,
        path: str,
        *,
        params: dict[str, Any] | None = None,
        page_size: int | None = None,
    ) -> AsyncIterator[dict]:
        """Page through a Feishu list endpoint, yielding every item.

        Stops when ``has_more`` is false or a page comes back empty, and
        pauses ``page_delay`` seconds before fetching each further page.
        """
        query: dict[str, Any] = dict(params or {})
        query["page_size"] = page_size or self._config.page_size
        page_token = ""
        while True:
            if page_token:
                query["page_token"] = page_token
            data = await self.request("GET", path, params=query)
            items = data.get("items") or []
            if not items:
                break
            for item in items:
                yield item
            page_token = data.get("page_token") or ""
            if not data.get("has_more", False) or not page_token:
                break
            await asyncio.sleep(self._config.page_delay)

    async def __aenter__(self) -> FeishuTransport:
        return self

    async def __aexit__(self, *exc: object) -> None:
        await self.close()
