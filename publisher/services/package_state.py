"""Package state authority gateway backed by HTTP API."""
from __future__ import annotations

from typing import Any, Dict

import httpx

from ..errors import RemoteUnavailable
from ..models import PackageState, Reviewer
from ..protocols import IAPIClient


def parse_package_state(payload: Dict[str, Any]) -> PackageState:
    """
    Normalize a proposal payload into PackageState.

    Accepts the state either as a plain string or as a single-key object
    ({"readyToPublish": {}}), which is how the governance program encodes enums.
    """
    if not isinstance(payload, dict):
        raise ValueError(f"proposal payload must be an object, got {type(payload).__name__}")
    state = payload.get("state")
    if isinstance(state, dict):
        state = next(iter(state), "")
    reviewers = {
        key: Reviewer.from_dict(value)
        for key, value in (payload.get("reviewers") or {}).items()
        if value
    }
    return PackageState(
        proposal_id=int(payload["id"]),
        state=state or "",
        slug=payload.get("slug"),
        stream_id=payload.get("streamId"),
        creator=payload.get("creator"),
        reviewers=reviewers,
    )


class HTTPPackageStateAuthority:
    """Reads proposal state, creator and reviewers."""

    def __init__(self, api_client: IAPIClient):
        self._api = api_client

    async def get_package_state(self, proposal_id: int) -> PackageState:
        return await self._fetch(f"/proposals/{proposal_id}")

    async def get_package_by_slug(self, slug: str) -> PackageState:
        return await self._fetch(f"/proposals/by-slug/{slug}")

    async def _fetch(self, endpoint: str) -> PackageState:
        try:
            response = await self._api.get(endpoint)
            return parse_package_state(response.json())
        except (RuntimeError, httpx.HTTPError, ValueError, KeyError, TypeError) as exc:
            raise RemoteUnavailable(f"cannot read package state from {endpoint}: {exc}") from exc
