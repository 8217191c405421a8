"""
Platform selection for KeyManager collaborators.

- ``"memory"``: InMemoryStorage + SystemRandomSource (tests, scripts)
- ``"postgres"``: PostgresStorage on a caller-supplied asyncpg pool +
  SystemRandomSource
"""

from __future__ import annotations

import logging
from typing import Optional

import asyncpg

from .config import KeyringConfig
from .entropy import SystemRandomSource
from .errors import ConfigError
from .key_manager import KeyManager
from .keygen import ProgressCallback
from .postgres_storage import PostgresStorage
from .storage import InMemoryStorage, KeyStorage

logger = logging.getLogger(__name__)

PLATFORMS = ("memory", "postgres")


def create_key_manager(
    platform: str = "memory",
    *,
    pool: Optional[asyncpg.Pool] = None,
    config: Optional[KeyringConfig] = None,
    progress: Optional[ProgressCallback] = None,
) -> KeyManager:
    """
    Create a KeyManager with the collaborators for a platform.

    Args:
        platform: "memory" or "postgres"
        pool: asyncpg pool (required for "postgres")
        config: Settings; defaults to KeyringConfig()
        progress: Optional keygen progress callback

    Returns:
        KeyManager in the UNINITIALIZED state

    Raises:
        ConfigError: If the platform is unknown or a pool is missing
    """
    config = config if config is not None else KeyringConfig()

    storage: KeyStorage
    if platform == "memory":
        storage = InMemoryStorage()
    elif platform == "postgres":
        if pool is None:
            raise ConfigError("The postgres platform requires an asyncpg pool")
        storage = PostgresStorage(pool, table=config.storage_table)
    else:
        raise ConfigError(f"Unknown platform {platform!r}; expected one of {PLATFORMS}")

    logger.debug("Creating key manager for platform %s", platform)
    return KeyManager(
        storage=storage,
        random_source=SystemRandomSource(),
        platform=platform,
        default_key_size=config.default_key_size,
        storage_prefix=config.storage_prefix,
        progress=progress,
    )
