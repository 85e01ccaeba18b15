"""Metadata document store gateway backed by HTTP API."""
from __future__ import annotations

import logging
from typing import Any, Dict

import httpx

from ..errors import ReconcileError, RemoteUnavailable
from ..protocols import IAPIClient

logger = logging.getLogger(__name__)


class HTTPMetadataStore:
    """
    Repository for package metadata documents (streams).

    Writes replace the whole document; there is no partial patch.
    """

    def __init__(self, api_client: IAPIClient):
        self._api = api_client

    async def get_document(self, stream_id: str) -> Dict[str, Any]:
        try:
            response = await self._api.get(f"/streams/{stream_id}")
            payload = response.json()
        except (RuntimeError, httpx.HTTPError, ValueError) as exc:
            raise RemoteUnavailable(f"cannot read metadata stream {stream_id}: {exc}") from exc

        if not isinstance(payload, dict):
            raise RemoteUnavailable(f"metadata stream {stream_id} returned {type(payload).__name__}, not an object")
        document = payload.get("content") or {}
        if not isinstance(document, dict):
            raise RemoteUnavailable(f"metadata stream {stream_id} is not a document")
        return document

    async def set_document(self, stream_id: str, document: Dict[str, Any]) -> None:
        try:
            await self._api.put(f"/streams/{stream_id}", json={"content": document})
        except (RuntimeError, httpx.HTTPError) as exc:
            raise ReconcileError(f"cannot write metadata stream {stream_id}: {exc}") from exc
        logger.debug("Metadata store: wrote stream %s", stream_id)
