"""Content digests (BLAKE3) for change detection."""
import asyncio
import logging
from pathlib import Path

from blake3 import blake3

logger = logging.getLogger(__name__)

CHUNK_SIZE = 65536


def blake3_bytes(data: bytes) -> str:
    """Hex BLAKE3 digest of an in-memory buffer."""
    return blake3(data).hexdigest()


async def blake3_file(path: Path) -> str:
    """Calculate BLAKE3 hash of file asynchronously (non-blocking).

    Read errors propagate as OSError.
    """
    def _hash_file():
        hasher = blake3()
        with open(path, "rb") as f:
            while True:
                chunk = f.read(CHUNK_SIZE)
                if not chunk:
                    break
                hasher.update(chunk)
        return hasher.hexdigest()

    digest = await asyncio.to_thread(_hash_file)
    logger.debug("digest %s -> %s...", path.name, digest[:16])
    return digest
