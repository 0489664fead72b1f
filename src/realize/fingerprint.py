"""Content fingerprints used to compare file contents."""

from __future__ import annotations

import hashlib
import io
from typing import BinaryIO

# Read in multiples of the 64-byte SHA-1 block size
CHUNK_SIZE_BYTES = 64 * 1024


def sha1_stream(stream: BinaryIO) -> str:
    """Compute the hex SHA-1 digest of everything left in a binary stream."""
    digest = hashlib.sha1(usedforsecurity=False)
    while chunk := stream.read(CHUNK_SIZE_BYTES):
        digest.update(chunk)
    return digest.hexdigest()


def sha1_bytes(contents: bytes) -> str:
    """Compute the hex SHA-1 digest of an in-memory byte string."""
    return sha1_stream(io.BytesIO(contents))
