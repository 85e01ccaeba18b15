"""Services for publisher module."""
from .api_client import HTTPAPIClient
from .digest import blake3_bytes, blake3_file
from .immutable_store import HTTPImmutableStore
from .manifest_store import ManifestStore
from .metadata_store import HTTPMetadataStore
from .package_state import HTTPPackageStateAuthority, parse_package_state

__all__ = [
    "HTTPAPIClient",
    "HTTPImmutableStore",
    "HTTPMetadataStore",
    "HTTPPackageStateAuthority",
    "ManifestStore",
    "blake3_bytes",
    "blake3_file",
    "parse_package_state",
]
