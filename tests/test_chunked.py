"""
Tests for chunked value storage

These tests verify ChunkedValueStore:
- put() splits values larger than the chunk size over several keys
- oversized values are refused when large items are disabled
- a failed chunk write removes the entry
- replace() only overwrites existing entries
- delete() skips keys known to be absent

Run with: python -m pytest tests/test_chunked.py -v
"""

from unittest import mock

import pytest

from chunkcache.backend.external import ExternalHashingBackend
from chunkcache.backend.memory import MemoryClient
from chunkcache.cache.chunked import ChunkedValueStore
from chunkcache.cache.multiget import MultiGetCoalescer
from chunkcache.protocol.flags import COMPRESSED_BIT, Flags

from tests.conftest import CHUNK_SIZE


class TestPartCount:
    """Test the chunk arithmetic."""

    @pytest.mark.parametrize("length,expected", [
        (0, 0),
        (1, 0),
        (CHUNK_SIZE, 0),
        (CHUNK_SIZE + 1, 1),
        (CHUNK_SIZE * 2, 1),
        (CHUNK_SIZE * 2 + 1, 2),
    ])
    def test_part_count(self, chunked: ChunkedValueStore, length, expected):
        assert chunked.part_count(length) == expected


class TestPut:
    """Test put()."""

    def test_small_value_single_entry(self, chunked, reader, client: MemoryClient):
        assert chunked.put("key", b"hello") is True
        assert len(client) == 1
        assert reader.get("key") == b"hello"

    def test_small_value_flags(self, chunked, backend, client: MemoryClient):
        chunked.put("key", b"hello")
        _, flags = client.get(backend.encode_key("key"))
        assert Flags.decode(flags) == Flags(compressed=False, part_count=0)

    def test_oversized_value_split(self, chunked, reader, client: MemoryClient):
        """2 * chunk size + 1 bytes are written to exactly 3 keys."""
        data = bytes(range(256)) * 2
        data = data[:CHUNK_SIZE * 2 + 1]
        assert chunked.put("big", data) is True
        assert len(client) == 3
        assert reader.get("big") == data

    def test_chunk_layout(self, chunked, backend, client: MemoryClient):
        """Chunk 0 carries the part count, later chunks carry part_count 0."""
        data = b"a" * CHUNK_SIZE + b"b" * CHUNK_SIZE + b"c"
        chunked.put("big", data)

        first, flags0 = client.get(backend.chunk_key("big", 0))
        second, flags1 = client.get(backend.chunk_key("big", 1))
        third, flags2 = client.get(backend.chunk_key("big", 2))

        assert (first, second, third) == (b"a" * CHUNK_SIZE, b"b" * CHUNK_SIZE, b"c")
        assert Flags.decode(flags0).part_count == 2
        assert Flags.decode(flags1).part_count == 0
        assert Flags.decode(flags2).part_count == 0

    def test_exact_chunk_size_single_entry(self, chunked, client: MemoryClient):
        chunked.put("key", b"x" * CHUNK_SIZE)
        assert len(client) == 1

    def test_empty_value(self, chunked, reader, client: MemoryClient):
        """An empty payload still occupies chunk 0."""
        assert chunked.put("empty", b"") is True
        assert len(client) == 1
        assert reader.get("empty") == b""

    def test_compression_flag(self, client: MemoryClient, nonexistent):
        backend = ExternalHashingBackend(client, "test", compressed=True)
        store = ChunkedValueStore(backend, nonexistent, max_chunk_size=CHUNK_SIZE)
        store.put("big", b"z" * (CHUNK_SIZE + 1))
        for index in (0, 1):
            _, flags = client.get(backend.chunk_key("big", index))
            assert flags & COMPRESSED_BIT

    def test_put_clears_nonexistence(self, chunked, nonexistent):
        nonexistent.add("key")
        chunked.put("key", b"v")
        assert "key" not in nonexistent


class TestCapacity:
    """Test large-item support switched off."""

    def test_oversized_rejected(self, client: MemoryClient, nonexistent):
        backend = ExternalHashingBackend(client, "test", large_items=False)
        store = ChunkedValueStore(backend, nonexistent, max_chunk_size=CHUNK_SIZE)
        assert store.put("big", b"x" * (CHUNK_SIZE + 1)) is False
        assert len(client) == 0

    def test_small_value_accepted(self, client: MemoryClient, nonexistent):
        backend = ExternalHashingBackend(client, "test", large_items=False)
        store = ChunkedValueStore(backend, nonexistent, max_chunk_size=CHUNK_SIZE)
        assert store.put("key", b"x" * CHUNK_SIZE) is True

    def test_self_hashing_backend_never_splits(self, self_hashing_backend, nonexistent, client):
        store = ChunkedValueStore(self_hashing_backend, nonexistent, max_chunk_size=CHUNK_SIZE)
        assert store.put("big", b"x" * (CHUNK_SIZE + 1)) is False
        assert store.put("small", b"x") is True
        assert client.get("small") is not None


class TestPartialWrite:
    """Test a chunk write failing mid-sequence."""

    def test_failed_chunk_removes_entry(self, chunked, reader, backend, client: MemoryClient):
        real_set = client.set
        failing_key = backend.chunk_key("big", 2)

        def flaky_set(key, value, flags=0, expire=0):
            if key == failing_key:
                return False
            return real_set(key, value, flags, expire)

        with mock.patch.object(client, "set", side_effect=flaky_set):
            assert chunked.put("big", b"x" * (CHUNK_SIZE * 3)) is False

        assert client.get(backend.chunk_key("big", 0)) is None
        assert reader.get("big") is None

    def test_failed_first_chunk(self, chunked, client: MemoryClient):
        with mock.patch.object(client, "set", return_value=False):
            assert chunked.put("key", b"v") is False
        assert len(client) == 0


class TestReplace:
    """Test replace()."""

    def test_missing_key(self, chunked, client: MemoryClient):
        assert chunked.replace("key", b"v") is False
        assert len(client) == 0

    def test_existing_key(self, chunked, reader):
        chunked.put("key", b"old")
        assert chunked.replace("key", b"new") is True
        assert reader.get("key") == b"new"

    def test_oversized_missing_key(self, chunked, client: MemoryClient):
        assert chunked.replace("big", b"x" * (CHUNK_SIZE + 1)) is False
        assert len(client) == 0

    def test_oversized_existing_key(self, chunked, reader, client: MemoryClient):
        chunked.put("big", b"small")
        data = b"y" * (CHUNK_SIZE * 2)
        assert chunked.replace("big", data) is True
        assert len(client) == 2
        assert reader.get("big") == data

    def test_oversized_without_large_items(self, client: MemoryClient, nonexistent):
        backend = ExternalHashingBackend(client, "test", large_items=False)
        store = ChunkedValueStore(backend, nonexistent, max_chunk_size=CHUNK_SIZE)
        store.put("key", b"v")
        assert store.replace("key", b"x" * (CHUNK_SIZE + 1)) is False

    def test_chunked_value_shrinks(self, chunked, reader):
        """Replacing a chunked value with a small one marks it single-chunk."""
        chunked.put("big", b"x" * (CHUNK_SIZE * 2))
        assert chunked.replace("big", b"tiny") is True
        assert reader.get("big") == b"tiny"


class TestDelete:
    """Test delete()."""

    def test_delete_existing(self, chunked, reader):
        chunked.put("key", b"v")
        assert chunked.delete("key") is True
        assert reader.get("key") is None

    def test_delete_removes_first_chunk_only(self, chunked, client: MemoryClient):
        chunked.put("big", b"x" * (CHUNK_SIZE * 2 + 1))
        chunked.delete("big")
        assert len(client) == 2

    def test_known_absent_skips_round_trip(self, chunked, reader: MultiGetCoalescer,
                                           client: MemoryClient):
        """A key seen missing by the reader is not deleted again."""
        assert reader.get("ghost") is None
        with mock.patch.object(client, "delete", wraps=client.delete) as delete:
            assert chunked.delete("ghost") is False
        delete.assert_not_called()

    def test_delete_after_put_reaches_store(self, chunked, reader, client: MemoryClient):
        reader.get("key")
        chunked.put("key", b"v")
        with mock.patch.object(client, "delete", wraps=client.delete) as delete:
            assert chunked.delete("key") is True
        delete.assert_called_once()
