"""Protocol module: flags encoding and value serialization."""

from .flags import (
    COMPRESSED_BIT,
    FLAGS_RESERVED,
    NOT_CHUNKED,
    Flags,
    decode_part_count,
    encode_flags,
)
from .serializer import serialize, unserialize

__all__ = [
    "COMPRESSED_BIT",
    "FLAGS_RESERVED",
    "NOT_CHUNKED",
    "Flags",
    "decode_part_count",
    "encode_flags",
    "serialize",
    "unserialize",
]
