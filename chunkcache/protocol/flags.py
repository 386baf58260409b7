"""
Entry Flags Encoding

Memcache returns an opaque integer of flags with every entry. The bits below
FLAGS_RESERVED belong to the client library (the compression bit lives
there); the bits at and above it carry the chunk metadata of an entry:

    flags = compression_bits | (part_count + 1) << FLAGS_RESERVED

part_count is the number of chunks stored *after* chunk 0, so a value that
fits in a single entry has part_count 0 (field value 1). A field value of 0
decodes to NOT_CHUNKED, which is also what a missing entry decodes to.
"""

from dataclasses import dataclass
from typing import Optional

# Number of low bits reserved by the memcache client for its own flags
FLAGS_RESERVED = 16

# Client-owned bit asking for the payload to be compressed
COMPRESSED_BIT = 2

# part_count of an entry without chunk metadata, or of a missing entry
NOT_CHUNKED = -1


def encode_flags(compressed: bool, part_count: int) -> int:
    """
    Pack the compression bit and chunk count into a flags integer.

    Args:
        compressed: Whether the client should compress the payload
        part_count: Chunks following chunk 0 (NOT_CHUNKED for no metadata)

    Returns:
        The flags integer to send with the entry
    """
    if part_count < NOT_CHUNKED:
        raise ValueError(f"Invalid part_count: {part_count}")
    bits = COMPRESSED_BIT if compressed else 0
    return bits | (part_count + 1) << FLAGS_RESERVED


def decode_part_count(flags: Optional[int]) -> int:
    """Return the part_count stored in flags, NOT_CHUNKED for a missing entry."""
    if flags is None:
        return NOT_CHUNKED
    return (flags >> FLAGS_RESERVED) - 1


@dataclass(frozen=True)
class Flags:
    """
    Structured view of an entry's flags.

    Attributes:
        compressed: Compression bit owned by the client library
        part_count: Chunks stored after chunk 0, NOT_CHUNKED if unknown
    """
    compressed: bool = False
    part_count: int = NOT_CHUNKED

    @property
    def is_chunked(self) -> bool:
        return self.part_count > 0

    def encode(self) -> int:
        return encode_flags(self.compressed, self.part_count)

    @classmethod
    def decode(cls, flags: Optional[int]) -> "Flags":
        if flags is None:
            return cls()
        return cls(
            compressed=bool(flags & COMPRESSED_BIT),
            part_count=decode_part_count(flags),
        )
