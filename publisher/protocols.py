"""
Protocols (Interfaces) for Dependency Inversion.

The pipeline consumes these; httpx adapters in publisher.services implement them.
"""
from typing import Any, Dict, Optional, Protocol, runtime_checkable

from .models import PackageState


@runtime_checkable
class IImmutableStore(Protocol):
    """Interface for append-only content storage."""

    async def upload(self, data: bytes, key: str, credentials: Optional[str] = None) -> str:
        """Store bytes under key and return the storage reference."""
        ...


@runtime_checkable
class IMetadataStore(Protocol):
    """Interface for the mutable document store (whole-document semantics)."""

    async def get_document(self, stream_id: str) -> Dict[str, Any]:
        """Read the full document."""
        ...

    async def set_document(self, stream_id: str, document: Dict[str, Any]) -> None:
        """Replace the full document."""
        ...


@runtime_checkable
class IPackageStateAuthority(Protocol):
    """Interface for the governance program holding package state."""

    async def get_package_state(self, proposal_id: int) -> PackageState:
        ...

    async def get_package_by_slug(self, slug: str) -> PackageState:
        ...


@runtime_checkable
class IAPIClient(Protocol):
    """Interface for API operations."""

    async def post(self, endpoint: str, json: Optional[Dict] = None, **kwargs) -> Any:
        """POST request to API."""
        ...

    async def put(self, endpoint: str, json: Dict) -> Any:
        """PUT request to API."""
        ...

    async def get(self, endpoint: str) -> Any:
        """GET request to API."""
        ...
