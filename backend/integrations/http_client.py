"""
Base async HTTP client for integration adapters.

Shared request handling for the REST-backed adapters: one reusable
httpx.AsyncClient per adapter, JSON decoding, and translation of transport
and HTTP errors into LookupFailure.
"""

import logging
from typing import Any, Dict, Optional

import httpx

from pipeline.errors import LookupFailure

logger = logging.getLogger(__name__)


class BaseHTTPClient:
    """Base async HTTP client with common error handling."""

    capability = "unknown"

    def __init__(
        self,
        base_url: str,
        headers: Optional[Dict[str, str]] = None,
        timeout: float = 10.0,
        client: Optional[httpx.AsyncClient] = None
    ):
        """
        Initialize base client.

        Args:
            base_url: API base URL
            headers: Headers sent with every request
            timeout: Request timeout in seconds
            client: Preconfigured AsyncClient (tests inject a mock transport)
        """
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._client = client or httpx.AsyncClient(timeout=timeout, headers=headers or {})
        if client is not None and headers:
            self._client.headers.update(headers)

    async def _request(
        self,
        method: str,
        path: str,
        json: Optional[Dict[str, Any]] = None,
        params: Optional[Dict[str, Any]] = None
    ) -> Dict[str, Any]:
        """
        Make HTTP request and return parsed JSON.

        Args:
            method: HTTP method (GET, POST, etc.)
            path: API path (appended to base_url)
            json: JSON payload for POST/PUT requests
            params: Query parameters

        Returns:
            Parsed JSON response

        Raises:
            LookupFailure: On network failures or HTTP errors
        """
        url = f"{self.base_url}{path}"

        try:
            response = await self._client.request(method, url, json=json, params=params)
            response.raise_for_status()
            if not response.content:
                return {}
            return response.json()
        except httpx.HTTPStatusError as e:
            status_code = e.response.status_code
            error_text = e.response.text[:200] if e.response.text else ""
            raise LookupFailure(
                f"{self.capability} API returned error {status_code}: {error_text}",
                capability=self.capability,
            ) from e
        except httpx.RequestError as e:
            raise LookupFailure(
                f"{self.capability} API request failed: {e}",
                capability=self.capability,
            ) from e
        except ValueError as e:
            raise LookupFailure(
                f"{self.capability} API returned invalid JSON: {e}",
                capability=self.capability,
            ) from e

    async def aclose(self) -> None:
        await self._client.aclose()
