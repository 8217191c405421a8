"""
Pytest configuration and fixtures for mnemonic keyring tests.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import AsyncGenerator, List, Optional

import asyncpg
import pytest
from dotenv import load_dotenv

from mnemonic_keyring import (
    CryptoKeyPair,
    InMemoryStorage,
    KeyManager,
    MnemonicCodec,
    PostgresStorage,
    RandomSource,
    SystemRandomSource,
    derive_keypair,
)

TEST_TABLE = "keyring_items_test"

# Fixed 128-bit seeds so derived keypairs are reproducible across runs
FIXED_ENTROPY = bytes(range(16))
OTHER_ENTROPY = bytes(range(16, 32))


class RecordingRandomSource(RandomSource):
    """System randomness that records how many bytes each fill requested."""

    def __init__(self) -> None:
        self.requests: List[int] = []
        self._inner = SystemRandomSource()

    def fill(self, buffer: Optional[bytearray]) -> Optional[bytearray]:
        if buffer is not None:
            self.requests.append(len(buffer))
        return self._inner.fill(buffer)


@pytest.fixture
def memory_storage() -> InMemoryStorage:
    """Create an in-memory storage instance for testing."""
    return InMemoryStorage()


@pytest.fixture
def random_source() -> RecordingRandomSource:
    return RecordingRandomSource()


@pytest.fixture(scope="session")
def codec() -> MnemonicCodec:
    return MnemonicCodec()


@pytest.fixture(scope="session")
def keypair() -> CryptoKeyPair:
    """2048-bit keypair derived once per session."""
    return derive_keypair(FIXED_ENTROPY, 2048)


@pytest.fixture(scope="session")
def other_keypair() -> CryptoKeyPair:
    return derive_keypair(OTHER_ENTROPY, 2048)


@pytest.fixture
def manager(memory_storage: InMemoryStorage, random_source: RecordingRandomSource) -> KeyManager:
    """Uninitialized manager on in-memory collaborators."""
    return KeyManager(storage=memory_storage, random_source=random_source)


@pytest.fixture
async def pg_pool() -> AsyncGenerator[asyncpg.Pool, None]:
    """Create a PostgreSQL connection pool for testing."""
    # Load environment from project root
    env_path = Path(__file__).parent.parent / ".env"
    load_dotenv(env_path)

    database_url = os.environ.get("KEYRING_DATABASE_URL") or os.environ.get("DATABASE_URL")
    if not database_url:
        pytest.skip("DATABASE_URL not set, skipping PostgreSQL tests")

    pool = await asyncpg.create_pool(database_url)
    if pool is None:
        pytest.skip("Failed to create PostgreSQL connection pool")

    yield pool

    await pool.execute(f"DROP TABLE IF EXISTS {TEST_TABLE}")
    await pool.close()


@pytest.fixture
async def postgres_storage(pg_pool: asyncpg.Pool) -> PostgresStorage:
    """Create a PostgreSQL storage instance with a fresh table."""
    storage = PostgresStorage(pg_pool, table=TEST_TABLE)
    await pg_pool.execute(f"DROP TABLE IF EXISTS {TEST_TABLE}")
    await storage.ensure_schema()
    return storage
