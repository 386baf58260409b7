"""
Chunked Value Storage

Stores a serialized value that may exceed the per-entry ceiling of the
servers by splitting it over several physical keys:

    chunk 0: encode_key(key)        flags part_count = number of extra chunks
    chunk i: encode_key(key_s<i>)   flags part_count = 0

Writes are sequential. When one fails the logical key is deleted so the
reader never sees a partially written value as complete; chunks already
written after chunk 0 are left to expire.
"""

import logging
import math
from typing import Optional, Set

from ..backend.base import StoreBackend
from ..config.settings import settings
from ..protocol.flags import encode_flags

logger = logging.getLogger(__name__)


class ChunkedValueStore:
    """
    put/replace/delete of serialized values of any size.

    Attributes:
        backend: Key routing strategy and store primitives
        max_chunk_size: Largest payload written to a single entry
        nonexistent: Logical keys known to be absent (shared with the reader)
    """

    def __init__(self, backend: StoreBackend, nonexistent: Set[str],
                 max_chunk_size: Optional[int] = None):
        self.backend = backend
        self.nonexistent = nonexistent
        self.max_chunk_size = max_chunk_size or settings.MAX_CHUNK_SIZE

    def part_count(self, length: int) -> int:
        """Number of chunks needed after chunk 0 for a value of ``length`` bytes."""
        return max(math.ceil(length / self.max_chunk_size), 1) - 1

    def fits(self, length: int) -> bool:
        """Whether a value of ``length`` bytes can be stored at all."""
        return self.backend.large_items or length <= self.max_chunk_size

    def put(self, key: str, data: bytes, expire: int = 0) -> bool:
        """
        Store a value, splitting it when it exceeds max_chunk_size.

        Args:
            key: Logical key
            data: Serialized value
            expire: Expiration time in seconds (0 = never)

        Returns:
            True if every chunk was written
        """
        if not self.fits(len(data)):
            logger.warning(
                f"Not storing {key}: {len(data)} bytes exceeds "
                f"{self.max_chunk_size} and large items are disabled"
            )
            return False

        part_count = self.part_count(len(data))
        compressed = self.backend.compressed
        if part_count:
            logger.debug(f"Storing {key} in {part_count + 1} chunks")

        for index in range(part_count + 1):
            start = index * self.max_chunk_size
            chunk = data[start:start + self.max_chunk_size]
            flags = encode_flags(compressed, 0 if index else part_count)
            if not self.backend.set(self.backend.chunk_key(key, index), chunk, flags, expire):
                logger.warning(f"Failed writing chunk {index} of {key}, removing entry")
                self.backend.delete(self.backend.encode_key(key))
                return False

        self.nonexistent.discard(key)
        return True

    def replace(self, key: str, data: bytes, expire: int = 0) -> bool:
        """
        Store a value only if the logical key already exists.

        Returns:
            True on success, False if the key doesn't exist or the write failed
        """
        if len(data) > self.max_chunk_size:
            if not self.backend.large_items:
                return False
            if self.backend.get(self.backend.encode_key(key)) is None:
                return False
            return self.put(key, data, expire)

        flags = encode_flags(self.backend.compressed, 0)
        if not self.backend.replace(self.backend.encode_key(key), data, flags, expire):
            return False
        self.nonexistent.discard(key)
        return True

    def delete(self, key: str, timeout: int = 0) -> bool:
        """
        Delete the logical key's first chunk.

        Keys known to be absent are skipped without a round trip. Remaining
        chunks are orphaned; the read path treats the value as missing.
        """
        if key in self.nonexistent:
            return False
        return self.backend.delete(self.backend.encode_key(key), timeout)
