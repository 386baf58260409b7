"""
Batched Retrieval of Chunked Values

get_many() fetches any number of logical keys in at most two round trips:

1. get_multi on chunk 0 of every key; the flags of each hit say how many
   further chunks belong to it
2. one get_multi on every further chunk of every oversized value

Values are reassembled in chunk order. A value with a missing chunk is
deleted and reported absent, never returned truncated.
"""

import logging
from typing import Dict, Iterable, List, Optional, Set

from ..backend.base import Entry, StoreBackend
from ..protocol.flags import NOT_CHUNKED, decode_part_count

logger = logging.getLogger(__name__)


class MultiGetCoalescer:
    """Reads logical keys written by ChunkedValueStore."""

    def __init__(self, backend: StoreBackend, nonexistent: Set[str]):
        self.backend = backend
        self.nonexistent = nonexistent

    def get(self, key: str) -> Optional[bytes]:
        return self.get_many([key]).get(key)

    def get_many(self, keys: Iterable[str]) -> Dict[str, bytes]:
        """
        Fetch and reassemble many values.

        Args:
            keys: Logical keys, in the order results should be returned

        Returns:
            Mapping of the keys that were found to their payload bytes

        Raises:
            TypeError: If keys is a single string rather than a collection
        """
        if isinstance(keys, (str, bytes)):
            raise TypeError("get_many() takes a collection of keys, not a single key")
        keys = list(dict.fromkeys(keys))
        key_map = {key: self.backend.encode_key(key) for key in keys}

        first = self.backend.get_multi(key_map.values())
        if first is None:
            logger.warning(f"Multi-get of {len(keys)} keys failed")
            return {}

        parts: Dict[str, List[str]] = {}
        absent: List[str] = []
        for key, physical in key_map.items():
            hit = first.get(physical)
            if hit is None:
                absent.append(key)
                continue
            if not self.backend.large_items:
                continue
            part_count = decode_part_count(hit[1])
            if part_count == NOT_CHUNKED:
                # Entry not written by us
                first.pop(physical)
                absent.append(key)
            elif part_count > 0:
                parts[key] = [self.backend.chunk_key(key, i) for i in range(1, part_count + 1)]

        second: Dict[str, Entry] = {}
        if parts:
            missing = [physical for chunk_keys in parts.values() for physical in chunk_keys]
            logger.debug(f"Fetching {len(missing)} chunks for {len(parts)} oversized keys")
            fetched = self.backend.get_multi(missing)
            if fetched is None:
                logger.warning(f"Multi-get of {len(missing)} chunks failed")
                for key in parts:
                    first.pop(key_map[key], None)
            else:
                second = fetched

        out: Dict[str, bytes] = {}
        for key, physical in key_map.items():
            hit = first.get(physical)
            if hit is None:
                continue
            if key not in parts:
                out[key] = hit[0]
                continue
            chunks = [hit[0]]
            for chunk_key in parts[key]:
                chunk = second.get(chunk_key)
                if chunk is None:
                    break
                chunks.append(chunk[0])
            else:
                out[key] = b"".join(chunks)
                continue
            logger.warning(f"Chunk missing for {key}, removing corrupt entry")
            self.backend.delete(physical)
            absent.append(key)

        self.nonexistent.update(absent)
        self.nonexistent.difference_update(out)
        return out
