"""
Externally Hashed Backend

For clients that distribute keys over the pool without a shared hashing
scheme of their own. The physical key is the md5 hex digest of prefix + key,
so every client instance places the same logical key on the same server.
"""

import hashlib

from .base import StoreBackend


class ExternalHashingBackend(StoreBackend):
    """Backend that sends md5(prefix + key) to the store."""

    def encode_key(self, key: str) -> str:
        return hashlib.md5((self.prefix + key).encode('utf-8')).hexdigest()
