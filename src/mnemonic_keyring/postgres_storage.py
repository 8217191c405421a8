"""
PostgreSQL storage backend for key material.

This module provides:
- PostgresStorage: KeyStorage implementation on an asyncpg pool

Items live in a single key/value table:

    CREATE TABLE IF NOT EXISTS keyring_items (
        item_key   TEXT PRIMARY KEY,
        item_value TEXT NOT NULL,
        updated_at TIMESTAMPTZ NOT NULL DEFAULT now()
    )

Encryption at rest is left to the database, as with any secret store the
platform provides.
"""

from __future__ import annotations

import logging
import re
from typing import Optional

import asyncpg

from .errors import ConfigError, StorageError
from .storage import KeyStorage

logger = logging.getLogger(__name__)

DEFAULT_TABLE = "keyring_items"

_IDENTIFIER = re.compile(r"^[A-Za-z_][A-Za-z0-9_]{0,62}$")


class PostgresStorage(KeyStorage):
    """
    PostgreSQL storage backend for keyring items.
    """

    def __init__(self, pool: asyncpg.Pool, table: str = DEFAULT_TABLE) -> None:
        """
        Initialize PostgreSQL storage.

        Args:
            pool: asyncpg connection pool
            table: Table name (plain SQL identifier)

        Raises:
            ConfigError: If the table name is not a plain identifier
        """
        if not _IDENTIFIER.match(table):
            raise ConfigError(f"Invalid storage table name: {table!r}")
        self._pool = pool
        self._table = table

    @property
    def pool(self) -> asyncpg.Pool:
        """Get the connection pool."""
        return self._pool

    @property
    def table(self) -> str:
        return self._table

    async def ensure_schema(self) -> None:
        """Create the items table if it does not exist."""
        query = f"""
            CREATE TABLE IF NOT EXISTS {self._table} (
                item_key   TEXT PRIMARY KEY,
                item_value TEXT NOT NULL,
                updated_at TIMESTAMPTZ NOT NULL DEFAULT now()
            )
        """
        try:
            await self._pool.execute(query)
        except Exception as e:
            raise StorageError(f"Failed to create storage table: {e}")
        logger.debug("Storage table %s ready", self._table)

    async def get_item(self, key: str) -> Optional[str]:
        """
        Get a stored value.

        Args:
            key: Item name

        Returns:
            Value if found, None otherwise
        """
        query = f"SELECT item_value FROM {self._table} WHERE item_key = $1"
        try:
            row = await self._pool.fetchrow(query, key)
        except Exception as e:
            raise StorageError(f"Failed to get item: {e}")
        if row is None:
            return None
        return row["item_value"]

    async def set_item(self, key: str, value: str) -> None:
        """
        Insert or replace a value.

        Args:
            key: Item name
            value: Value to store
        """
        query = f"""
            INSERT INTO {self._table} (item_key, item_value, updated_at)
            VALUES ($1, $2, now())
            ON CONFLICT (item_key)
            DO UPDATE SET item_value = EXCLUDED.item_value, updated_at = now()
        """
        try:
            await self._pool.execute(query, key, value)
        except Exception as e:
            raise StorageError(f"Failed to set item: {e}")

    async def remove_item(self, key: str) -> None:
        """
        Delete a value if present.

        Args:
            key: Item name
        """
        query = f"DELETE FROM {self._table} WHERE item_key = $1"
        try:
            await self._pool.execute(query, key)
        except Exception as e:
            raise StorageError(f"Failed to remove item: {e}")
