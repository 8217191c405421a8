"""
Runtime configuration loaded from the environment.

Variables (a ``.env`` file is honoured via python-dotenv):
- KEYRING_DATABASE_URL: PostgreSQL DSN (falls back to DATABASE_URL)
- KEYRING_STORAGE_TABLE: storage table name (default ``keyring_items``)
- KEYRING_STORAGE_PREFIX: item name prefix (default ``mnemonic_keyring``)
- KEYRING_DEFAULT_KEY_SIZE: RSA modulus size for recovery (default 2048)
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional, Union

from dotenv import load_dotenv

from .errors import ConfigError, InvalidKeySizeError
from .keygen import DEFAULT_KEY_SIZE, validate_key_size
from .postgres_storage import DEFAULT_TABLE
from .storage import DEFAULT_STORAGE_PREFIX


@dataclass(frozen=True)
class KeyringConfig:
    """Settings shared by the key manager factory and the benchmark."""

    database_url: Optional[str] = None
    storage_table: str = DEFAULT_TABLE
    storage_prefix: str = DEFAULT_STORAGE_PREFIX
    default_key_size: int = DEFAULT_KEY_SIZE

    def __post_init__(self) -> None:
        try:
            validate_key_size(self.default_key_size)
        except InvalidKeySizeError as e:
            raise ConfigError(f"Invalid default key size: {e}")
        if not self.storage_prefix:
            raise ConfigError("Storage prefix must not be empty")

    @classmethod
    def from_env(
        cls,
        environ: Optional[Mapping[str, str]] = None,
        env_file: Optional[Union[str, Path]] = None,
    ) -> KeyringConfig:
        """
        Build configuration from environment variables.

        Args:
            environ: Mapping to read instead of ``os.environ`` (no .env loading)
            env_file: Explicit .env path; defaults to python-dotenv's search

        Raises:
            ConfigError: If a value is invalid
        """
        if environ is None:
            load_dotenv(env_file)
            environ = os.environ

        raw_size = environ.get("KEYRING_DEFAULT_KEY_SIZE")
        if raw_size:
            try:
                key_size = int(raw_size)
            except ValueError:
                raise ConfigError(f"KEYRING_DEFAULT_KEY_SIZE must be an integer, got {raw_size!r}")
        else:
            key_size = DEFAULT_KEY_SIZE

        return cls(
            database_url=environ.get("KEYRING_DATABASE_URL") or environ.get("DATABASE_URL") or None,
            storage_table=environ.get("KEYRING_STORAGE_TABLE") or DEFAULT_TABLE,
            storage_prefix=environ.get("KEYRING_STORAGE_PREFIX") or DEFAULT_STORAGE_PREFIX,
            default_key_size=key_size,
        )
