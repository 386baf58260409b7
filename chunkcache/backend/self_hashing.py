"""
Self-Hashing Backend

For clients that prefix and hash keys themselves (consistent distribution
configured inside the client library). Keys are passed through untouched.
Values are never split: such clients store an item in one piece and give no
guarantee that all chunks of a value would be read back in one round.
"""

from .base import Client, StoreBackend


class SelfHashingBackend(StoreBackend):
    """Backend that leaves key hashing and prefixing to the client."""

    def __init__(self, client: Client, prefix: str, compressed: bool = False,
                 large_items: bool = True):
        super().__init__(client, prefix, compressed, large_items=False)

    def encode_key(self, key: str) -> str:
        return key
