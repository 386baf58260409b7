"""
Pytest Configuration and Fixtures

This module provides shared fixtures and configuration for all tests.
"""

import pytest

from chunkcache.api import MemcacheApi
from chunkcache.backend.external import ExternalHashingBackend
from chunkcache.backend.memory import MemoryClient
from chunkcache.backend.self_hashing import SelfHashingBackend
from chunkcache.cache.chunked import ChunkedValueStore
from chunkcache.cache.lock import DistributedLock
from chunkcache.cache.multiget import MultiGetCoalescer
from chunkcache.config.settings import Settings

# Small chunks keep oversized test values cheap
CHUNK_SIZE = 100


class FakeClock:
    """Manually advanced time source for expiration tests."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def connected_client(**kwargs) -> MemoryClient:
    client = MemoryClient(**kwargs)
    client.add_server("localhost", 11211)
    return client


# ============================================================================
# Client Fixtures
# ============================================================================

@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def client(clock: FakeClock) -> MemoryClient:
    """A MemoryClient with one server registered (100 keys)."""
    return connected_client(max_size=100, clock=clock)


@pytest.fixture
def small_client() -> MemoryClient:
    """A MemoryClient with small capacity for eviction testing (5 keys)."""
    return connected_client(max_size=5)


# ============================================================================
# Backend Fixtures
# ============================================================================

@pytest.fixture
def backend(client: MemoryClient) -> ExternalHashingBackend:
    return ExternalHashingBackend(client, "test")


@pytest.fixture
def self_hashing_backend(client: MemoryClient) -> SelfHashingBackend:
    return SelfHashingBackend(client, "test")


@pytest.fixture
def nonexistent() -> set:
    return set()


@pytest.fixture
def chunked(backend, nonexistent) -> ChunkedValueStore:
    return ChunkedValueStore(backend, nonexistent, max_chunk_size=CHUNK_SIZE)


@pytest.fixture
def reader(backend, nonexistent) -> MultiGetCoalescer:
    return MultiGetCoalescer(backend, nonexistent)


@pytest.fixture
def locks(backend) -> DistributedLock:
    return DistributedLock(backend, timeout=30, suffix="_l")


# ============================================================================
# API Fixtures
# ============================================================================

@pytest.fixture
def test_settings() -> Settings:
    return Settings(
        HOSTSPEC=["localhost"],
        PORT=[11211],
        WEIGHT=[],
        PREFIX="test",
        BACKEND="external",
        COMPRESSION=False,
        COMPRESS_THRESHOLD=0,
        LARGE_ITEMS=True,
        MAX_CHUNK_SIZE=CHUNK_SIZE,
    )


@pytest.fixture
def api(test_settings: Settings) -> MemcacheApi:
    return MemcacheApi(MemoryClient, test_settings)


# ============================================================================
# Pytest Configuration
# ============================================================================

def pytest_configure(config):
    """Configure custom pytest markers."""
    config.addinivalue_line(
        "markers", "slow: marks tests as slow (deselect with '-m \"not slow\"')"
    )
    config.addinivalue_line(
        "markers", "integration: marks tests as integration tests"
    )
