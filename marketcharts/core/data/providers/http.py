"""
HTTP plumbing shared by the upstream price providers.

Wraps ``httpx.AsyncClient`` so providers only deal with decoded JSON
payloads and typed transport failures.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

import httpx

from marketcharts.core.exceptions import ParseError, TransportError
from marketcharts.core.logging import get_logger

logger = get_logger(__name__)


@dataclass
class HttpConfig:
    """Configuration for HTTP client behavior."""

    base_url: str
    timeout: float = 30.0
    max_redirects: int = 5
    verify_ssl: bool = True
    user_agent: str = "marketcharts/1.0.0"
    headers: dict[str, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        """Validate HTTP configuration."""
        if not self.base_url:
            raise ValueError("base_url cannot be empty")
        if self.timeout <= 0:
            raise ValueError("timeout must be positive")
        if self.max_redirects < 0:
            raise ValueError("max_redirects must be non-negative")


class HttpClient:
    """Lazily created ``httpx.AsyncClient`` bound to one upstream."""

    def __init__(
        self,
        http_config: HttpConfig,
        provider_name: str,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.http_config = http_config
        self.provider_name = provider_name
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    async def __aenter__(self) -> HttpClient:
        self._ensure_client()
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()

    def _ensure_client(self) -> httpx.AsyncClient:
        if self._client is None:
            headers = {
                "User-Agent": self.http_config.user_agent,
                **self.http_config.headers,
            }
            self._client = httpx.AsyncClient(
                base_url=self.http_config.base_url,
                timeout=httpx.Timeout(self.http_config.timeout),
                follow_redirects=True,
                max_redirects=self.http_config.max_redirects,
                verify=self.http_config.verify_ssl,
                headers=headers,
                transport=self._transport,
            )
        return self._client

    async def close(self) -> None:
        """Close HTTP client and cleanup resources."""
        if self._client:
            await self._client.aclose()
            self._client = None

    async def get(self, url: str, params: dict[str, Any] | None = None) -> httpx.Response:
        """Issue a GET request, mapping network failures to TransportError."""
        client = self._ensure_client()
        try:
            return await client.get(url, params=params)
        except httpx.HTTPError as exc:
            raise TransportError(
                f"{self.provider_name} request failed: {exc}",
                provider_name=self.provider_name,
                details={"url": url, "error_type": type(exc).__name__},
            ) from exc

    async def get_json(self, url: str, params: dict[str, Any] | None = None) -> Any:
        """GET ``url`` and decode a successful JSON body."""
        response = await self.get(url, params=params)
        if not response.is_success:
            raise TransportError(
                f"{self.provider_name} returned HTTP {response.status_code}",
                provider_name=self.provider_name,
                status_code=response.status_code,
                details={"url": url, "body": response.text[:200]},
            )
        try:
            return response.json()
        except ValueError as exc:
            raise ParseError(
                f"{self.provider_name} returned a non-JSON body",
                provider_name=self.provider_name,
                details={"url": url},
            ) from exc


__all__ = ["HttpClient", "HttpConfig"]
