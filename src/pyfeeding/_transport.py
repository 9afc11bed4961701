"""HTTP transport for PostgREST-style table endpoints."""

from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import Mapping
from typing import Any, Protocol

import aiohttp

from pyfeeding._constants import USER_AGENT
from pyfeeding._redact import redact_for_log
from pyfeeding.config import FeedingConfig
from pyfeeding.exceptions import FeedingConfigError, FeedingTransportError

_logger = logging.getLogger(__name__)


class Transport(Protocol):
    """Structural transport interface used by the table endpoint modules.

    Having a protocol here makes it easy to pass test doubles while
    keeping the production implementation (`PostgrestTransport`) concrete.
    """

    async def request(
        self,
        method: str,
        table: str,
        *,
        params: Mapping[str, str] | None = None,
        json_body: Any = None,
        prefer: str | None = None,
    ) -> Any:
        ...


class PostgrestTransport:
    """Talks to ``{base_url}/rest/v1/{table}`` with API-key auth."""

    def __init__(self, config: FeedingConfig, http_session: aiohttp.ClientSession) -> None:
        if not config.base_url or not config.api_key:
            raise FeedingConfigError("PostgrestTransport requires base_url and api_key")
        self._config = config
        self._http = http_session
        self._base = f"{config.base_url.rstrip('/')}/rest/v1"
        self._timeout = aiohttp.ClientTimeout(total=config.request_timeout)

    def _headers(self, prefer: str | None) -> dict[str, str]:
        api_key = self._config.api_key or ""
        headers: dict[str, str] = {
            "apikey": api_key,
            "authorization": f"Bearer {api_key}",
            "accept": "application/json",
            "content-type": "application/json",
            "user-agent": USER_AGENT,
        }
        if prefer:
            headers["prefer"] = prefer
        return headers

    async def request(
        self,
        method: str,
        table: str,
        *,
        params: Mapping[str, str] | None = None,
        json_body: Any = None,
        prefer: str | None = None,
    ) -> Any:
        """Send one request and return the decoded JSON body (``None`` if empty)."""
        url = f"{self._base}/{table}"
        headers = self._headers(prefer)
        data = None if json_body is None else json.dumps(json_body, separators=(",", ":"))

        _logger.debug(
            "%s %s params=%s headers=%s body=%s",
            method,
            url,
            dict(params or {}),
            redact_for_log(headers),
            redact_for_log(json_body),
        )

        try:
            async with self._http.request(
                method,
                url,
                params=dict(params or {}),
                data=data,
                headers=headers,
                timeout=self._timeout,
            ) as resp:
                text = await resp.text()
                if not 200 <= resp.status < 300:
                    raise FeedingTransportError(
                        f"HTTP {resp.status} from {method} {table}: {text[:200]}",
                        status_code=resp.status,
                        endpoint=table,
                    )
        except FeedingTransportError:
            raise
        except (aiohttp.ClientError, asyncio.TimeoutError) as exc:
            raise FeedingTransportError(
                f"{method} {table} failed: {exc!r}",
                endpoint=table,
            ) from exc

        if not text.strip():
            return None
        try:
            return json.loads(text)
        except json.JSONDecodeError as exc:
            raise FeedingTransportError(
                f"Invalid JSON from {method} {table}: {text[:200]}",
                endpoint=table,
            ) from exc
