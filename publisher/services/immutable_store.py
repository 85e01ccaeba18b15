"""Immutable store gateway backed by HTTP API."""
from __future__ import annotations

import logging
from typing import Optional

import httpx

from ..errors import UploadError
from ..protocols import IAPIClient

logger = logging.getLogger(__name__)


class HTTPImmutableStore:
    """
    Append-only content store.

    Every upload yields a stable reference (transaction id). Re-uploading the
    same bytes under the same key is safe but creates a new transaction.
    """

    def __init__(self, api_client: IAPIClient, app_name: str, wallet: Optional[str] = None):
        self._api = api_client
        self._app_name = app_name
        self._wallet = wallet

    async def upload(self, data: bytes, key: str, credentials: Optional[str] = None) -> str:
        wallet = credentials or self._wallet
        headers = {
            "App-Name": self._app_name,
            "Content-Key": key,
            "Content-Type": "application/octet-stream",
        }
        if wallet:
            headers["Authorization"] = f"Bearer {wallet}"

        try:
            response = await self._api.post("/tx", content=data, headers=headers)
            payload = response.json()
        except (RuntimeError, httpx.HTTPError, ValueError) as exc:
            raise UploadError(f"upload of {key} failed: {exc}") from exc

        storage_ref = payload.get("id") if isinstance(payload, dict) else None
        if not storage_ref:
            raise UploadError(f"upload of {key} returned no transaction id")

        logger.info("Immutable store: %s -> %s", key, storage_ref)
        return storage_ref
