"""
Exception classes for key derivation and hybrid encryption operations.

These are raised inside the engine. The public KeyManager surface and the
envelope open operations collapse them into ``False``/``None`` so callers
cannot tell which check failed. Messages never carry key material.
"""

from __future__ import annotations


class KeyringError(Exception):
    """Base exception for all keyring operations."""

    pass


class CryptoError(KeyringError):
    """Cryptographic operation failed (encryption, decryption, key wrapping)."""

    pass


class MnemonicError(KeyringError):
    """Mnemonic phrase could not be produced from the given entropy."""

    pass


class KeyDerivationError(KeyringError):
    """Deterministic keypair derivation failed."""

    pass


class InvalidKeySizeError(KeyDerivationError):
    """Requested RSA modulus size is outside the supported range."""

    pass


class StorageError(KeyringError):
    """Storage backend error (database, in-memory, etc.)."""

    pass


class SerializationError(KeyringError):
    """Serialization or deserialization error."""

    pass


class ConfigError(KeyringError):
    """Configuration error."""

    pass
