"""HTTP client for the 1inch Portfolio API."""

from __future__ import annotations

import json
import logging
from typing import Any, Dict, List, Optional, Tuple

import httpx

from oneinch_mcp.config import PortfolioApiSettings
from oneinch_mcp.normalizers import encode_query_params

logger = logging.getLogger(__name__)


class PortfolioApiError(Exception):
    """Portfolio request failed."""


class PortfolioHttpError(PortfolioApiError):
    """Portfolio API answered with a non-2xx status."""

    def __init__(self, status_code: int, body: str) -> None:
        super().__init__(f"Request failed: {status_code} - {body}")
        self.status_code = status_code
        self.body = body


class PortfolioParseError(PortfolioApiError):
    """Portfolio API answered 2xx with a body that is not JSON."""

    def __init__(self, reason: str) -> None:
        super().__init__(f"JSON parse failed: {reason}")
        self.reason = reason


class PortfolioTransportError(PortfolioApiError):
    """The request never produced a response."""

    def __init__(self, error: Exception) -> None:
        super().__init__(str(error) or error.__class__.__name__)
        self.error = error


class PortfolioApiClient:
    """Async client for the Portfolio v4 endpoints."""

    def __init__(
        self,
        settings: PortfolioApiSettings,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        if not settings.api_key:
            raise ValueError("ONEINCH_API_KEY is required")
        self.base_url = settings.portfolio_base_url.rstrip("/")
        self._client = httpx.AsyncClient(
            timeout=settings.timeout_seconds,
            transport=transport,
            headers={
                "Authorization": f"Bearer {settings.api_key}",
                "Accept": "application/json",
                "Content-Type": "application/json",
            },
        )

    def build_query(self, chain_id: int, params: Optional[Dict[str, Any]] = None) -> List[Tuple[str, str]]:
        query = [("chain_id", str(chain_id))]
        query.extend(encode_query_params(params or {}))
        return query

    def build_url(self, endpoint: str, chain_id: int, params: Optional[Dict[str, Any]] = None) -> httpx.URL:
        return httpx.URL(f"{self.base_url}{endpoint}", params=self.build_query(chain_id, params))

    async def fetch(self, endpoint: str, chain_id: int, params: Optional[Dict[str, Any]] = None) -> Any:
        """GET ``endpoint`` and return the decoded JSON body."""
        url = self.build_url(endpoint, chain_id, params)
        logger.debug("GET %s", url)
        try:
            async with self._client.stream("GET", url) as response:
                chunks = [chunk async for chunk in response.aiter_bytes()]
        except httpx.HTTPError as exc:
            logger.warning("Portfolio request to %s failed: %s", endpoint, exc)
            raise PortfolioTransportError(exc) from exc

        body = b"".join(chunks).decode("utf-8", errors="replace")
        if not 200 <= response.status_code < 300:
            logger.warning("Portfolio API returned %s for %s", response.status_code, endpoint)
            raise PortfolioHttpError(response.status_code, body)
        try:
            return json.loads(body)
        except json.JSONDecodeError as exc:
            logger.warning("Portfolio API returned invalid JSON for %s: %s", endpoint, exc)
            raise PortfolioParseError(str(exc)) from exc

    async def aclose(self) -> None:
        await self._client.aclose()
