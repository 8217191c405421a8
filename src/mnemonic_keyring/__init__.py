"""
Mnemonic Keyring

Hybrid RSA-OAEP + AES-256-GCM encryption with keypairs that can be rebuilt
from a memorised BIP-39 word phrase.

Overview
--------
- **Mnemonic Codec**: checksummed entropy <-> word phrase mapping
- **Deterministic Key Generator**: same phrase, same RSA keypair, on any platform
- **Hybrid Envelope Cipher**: fresh AES-256 key per message, wrapped by RSA-OAEP
- **Key Manager**: stateful facade with pluggable storage and randomness

Quick Start
-----------
```python
import asyncio
from mnemonic_keyring import create_key_manager

async def main():
    manager = create_key_manager("memory")
    await manager.generate_keypair(2048)
    phrase = manager.mnemonic_phrase  # show to the user once

    blob = manager.encrypt_for_local_storage(b"Sensitive data")

    # Later, on another device
    restored = create_key_manager("memory")
    await restored.recover_from_mnemonic(phrase)
    assert restored.decrypt_from_local_storage(blob) == b"Sensitive data"

asyncio.run(main())
```

Modules
-------
- `mnemonic_codec`: word phrase encoding, decoding and validation
- `keygen`: deterministic RSA keypair derivation
- `crypto`: AES-256-GCM and RSA-OAEP primitives
- `envelope`: local-storage and transmission envelope formats
- `key_manager`: key lifecycle manager
- `storage` / `postgres_storage`: storage collaborators
- `entropy`: randomness collaborators
- `config` / `factory`: environment configuration and platform selection
- `errors`: error types and exception classes
"""

__version__ = "0.1.0"

# ============================================================================
# Crypto Exports
# ============================================================================

from .crypto import (
    AES_256_KEY_SIZE,
    NONCE_SIZE,
    TAG_SIZE,
    AesGcmCipher,
    EncryptedData,
    RsaOaepKeyWrap,
    SecureKey,
)

# ============================================================================
# Error Exports
# ============================================================================

from .errors import (
    ConfigError,
    CryptoError,
    InvalidKeySizeError,
    KeyDerivationError,
    KeyringError,
    MnemonicError,
    SerializationError,
    StorageError,
)

# ============================================================================
# Collaborator Exports
# ============================================================================

from .entropy import (
    RandomSource,
    SystemRandomSource,
)

from .storage import (
    InMemoryStorage,
    KeyStorage,
    StorageKeys,
)

from .postgres_storage import (
    PostgresStorage,
)

# ============================================================================
# Engine Exports
# ============================================================================

from .mnemonic_codec import (
    SUPPORTED_ENTROPY_LENGTHS,
    SUPPORTED_WORD_COUNTS,
    DecodeResult,
    MnemonicCodec,
)

from .keygen import (
    DEFAULT_KEY_SIZE,
    MIN_KEY_SIZE,
    PROTOCOL_VERSION,
    PUBLIC_EXPONENT,
    CryptoKeyPair,
    DeterministicStream,
    derive_keypair,
)

from .envelope import (
    HybridEnvelopeCipher,
    TransmissionPayload,
)

# ============================================================================
# Manager Exports (Primary API)
# ============================================================================

from .key_manager import (
    KeyManager,
    KeyState,
)

from .config import (
    KeyringConfig,
)

from .factory import (
    create_key_manager,
)

# ============================================================================
# Public API
# ============================================================================

__all__ = [
    # Version
    "__version__",
    # Crypto
    "AES_256_KEY_SIZE",
    "NONCE_SIZE",
    "TAG_SIZE",
    "AesGcmCipher",
    "EncryptedData",
    "RsaOaepKeyWrap",
    "SecureKey",
    # Errors
    "KeyringError",
    "CryptoError",
    "MnemonicError",
    "KeyDerivationError",
    "InvalidKeySizeError",
    "StorageError",
    "SerializationError",
    "ConfigError",
    # Collaborators
    "RandomSource",
    "SystemRandomSource",
    "KeyStorage",
    "InMemoryStorage",
    "StorageKeys",
    "PostgresStorage",
    # Engine
    "SUPPORTED_ENTROPY_LENGTHS",
    "SUPPORTED_WORD_COUNTS",
    "DecodeResult",
    "MnemonicCodec",
    "DEFAULT_KEY_SIZE",
    "MIN_KEY_SIZE",
    "PROTOCOL_VERSION",
    "PUBLIC_EXPONENT",
    "CryptoKeyPair",
    "DeterministicStream",
    "derive_keypair",
    "HybridEnvelopeCipher",
    "TransmissionPayload",
    # Manager (Primary API)
    "KeyManager",
    "KeyState",
    "KeyringConfig",
    "create_key_manager",
]
