"""HTTP adapter shared by the remote store clients."""
from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict, Optional

import httpx

logger = logging.getLogger(__name__)


class HTTPAPIClient:
    """
    HTTP client adapter for API calls.

    Implements IAPIClient protocol. 5xx responses and transport errors are
    retried with linear backoff; 4xx responses raise immediately.
    """

    max_retries = 3
    backoff = 0.5

    def __init__(
        self,
        base_url: str,
        timeout: int = 60,
        headers: Optional[Dict[str, str]] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self._base_url = base_url
        self._timeout = timeout
        self._headers = headers or {}
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    async def __aenter__(self):
        self._client = httpx.AsyncClient(
            base_url=self._base_url,
            timeout=self._timeout,
            headers=self._headers,
            transport=self._transport,
        )
        return self

    async def __aexit__(self, *args):
        if self._client:
            await self._client.aclose()
            self._client = None

    async def get(self, endpoint: str) -> httpx.Response:
        return await self._request("GET", endpoint)

    async def post(self, endpoint: str, json: Optional[Dict] = None, **kwargs) -> httpx.Response:
        return await self._request("POST", endpoint, json=json, **kwargs)

    async def put(self, endpoint: str, json: Dict) -> httpx.Response:
        return await self._request("PUT", endpoint, json=json)

    async def _request(self, method: str, endpoint: str, **kwargs: Any) -> httpx.Response:
        if not self._client:
            raise RuntimeError("HTTPAPIClient not initialized. Use 'async with' context.")

        last_exception: Optional[Exception] = None

        for attempt in range(self.max_retries):
            try:
                response = await self._client.request(method, endpoint, **kwargs)

                if response.status_code >= 500 and attempt < self.max_retries - 1:
                    logger.debug("%s %s -> %d, retrying", method, endpoint, response.status_code)
                    await asyncio.sleep(self.backoff * (attempt + 1))
                    continue

                if response.status_code >= 400:
                    try:
                        error_detail = response.json()
                    except ValueError:
                        error_detail = response.text
                    raise RuntimeError(
                        f"API error {response.status_code} on {method} {endpoint}: {error_detail}"
                    )

                return response
            except (httpx.RequestError, httpx.TimeoutException) as exc:
                last_exception = exc
                if attempt < self.max_retries - 1:
                    logger.debug("%s %s failed (%s), retrying", method, endpoint, exc)
                    await asyncio.sleep(self.backoff * (attempt + 1))
                    continue
                raise

        if last_exception:
            raise last_exception
        raise RuntimeError(f"Failed to {method} {endpoint} after {self.max_retries} attempts")
