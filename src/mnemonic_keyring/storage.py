"""
Storage abstractions for persisted key material.

This module provides:
- KeyStorage: Abstract async key/value protocol for storage backends
- InMemoryStorage: Thread-safe in-memory implementation for tests and scripts
- StorageKeys: Item names the key manager reads and writes
"""

from __future__ import annotations

import asyncio
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Dict, Optional

DEFAULT_STORAGE_PREFIX = "mnemonic_keyring"


@dataclass(frozen=True)
class StorageKeys:
    """Item names under a namespace prefix."""

    prefix: str = DEFAULT_STORAGE_PREFIX

    @property
    def private_key(self) -> str:
        return f"{self.prefix}.private_key"

    @property
    def public_key(self) -> str:
        return f"{self.prefix}.public_key"


class KeyStorage(ABC):
    """
    Abstract storage interface for string values keyed by opaque names.

    All methods are async to support both in-memory and database backends.
    Backends raise StorageError on failure; callers let it propagate.
    """

    @abstractmethod
    async def get_item(self, key: str) -> Optional[str]:
        """Get a value, or None if absent."""
        ...

    @abstractmethod
    async def set_item(self, key: str, value: str) -> None:
        """Store a value, replacing any existing one."""
        ...

    @abstractmethod
    async def remove_item(self, key: str) -> None:
        """Remove a value. Removing an absent key is not an error."""
        ...


class InMemoryStorage(KeyStorage):
    """
    Thread-safe in-memory storage implementation for testing.

    Uses asyncio.Lock for safe concurrent access.
    """

    def __init__(self) -> None:
        self._items: Dict[str, str] = {}
        self._lock = asyncio.Lock()

    async def get_item(self, key: str) -> Optional[str]:
        async with self._lock:
            return self._items.get(key)

    async def set_item(self, key: str, value: str) -> None:
        async with self._lock:
            self._items[key] = value

    async def remove_item(self, key: str) -> None:
        async with self._lock:
            self._items.pop(key, None)

    def __len__(self) -> int:
        return len(self._items)
