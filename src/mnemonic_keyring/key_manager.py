"""
Key lifecycle manager.

This module provides:
- KeyManager: Stateful facade over mnemonic generation/recovery, deterministic
  RSA derivation and hybrid envelope encryption
- KeyState: UNINITIALIZED / READY lifecycle states

Lifecycle:
- UNINITIALIZED -> READY via generate_keypair, recover_from_mnemonic or
  load_stored_keys
- READY -> READY (new keypair) via the same calls
- READY -> UNINITIALIZED via clear_keys

Encrypt/decrypt calls on an UNINITIALIZED manager return None. Input and
cryptographic failures are reported as False/None; storage and randomness
failures propagate to the caller.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Union

from cryptography.exceptions import UnsupportedAlgorithm
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric.rsa import RSAPrivateKey

from .entropy import RandomSource
from .envelope import HybridEnvelopeCipher
from .errors import CryptoError, InvalidKeySizeError, KeyDerivationError
from .keygen import (
    DEFAULT_KEY_SIZE,
    MIN_KEY_SIZE,
    CryptoKeyPair,
    ProgressCallback,
    derive_keypair,
    entropy_length_for_key_size,
    validate_key_size,
)
from .mnemonic_codec import DecodeResult, MnemonicCodec, normalize_phrase
from .storage import DEFAULT_STORAGE_PREFIX, KeyStorage, StorageKeys

logger = logging.getLogger(__name__)

BytesLike = Union[bytes, bytearray, memoryview]


class KeyState(Enum):
    """Lifecycle state of a KeyManager."""

    UNINITIALIZED = "uninitialized"
    READY = "ready"

    def __str__(self) -> str:
        return self.value


@dataclass
class _ActiveKeys:
    """Keypair held while READY (in-memory only)."""

    keypair: CryptoKeyPair
    mnemonic_phrase: Optional[str]
    public_key_pem: str


class KeyManager:
    """
    Hybrid RSA + AES key manager with mnemonic backup.

    One keypair is active per instance. Instances share no state, but a single
    instance must not be used concurrently across a generate/recover call.
    """

    def __init__(
        self,
        storage: KeyStorage,
        random_source: RandomSource,
        *,
        platform: str = "memory",
        codec: Optional[MnemonicCodec] = None,
        default_key_size: int = DEFAULT_KEY_SIZE,
        storage_prefix: str = DEFAULT_STORAGE_PREFIX,
        persist: bool = True,
        progress: Optional[ProgressCallback] = None,
    ) -> None:
        """
        Initialize KeyManager.

        Args:
            storage: KeyStorage backend for persisted keys
            random_source: Source of entropy, symmetric keys and nonces
            platform: Name of the platform the collaborators were chosen for
            codec: Mnemonic codec (BIP-39 English by default)
            default_key_size: Modulus size used by recover_from_mnemonic
            storage_prefix: Namespace for stored item names
            persist: Write keys to storage after generate/recover
            progress: Optional callback receiving (stage, percent)
        """
        validate_key_size(default_key_size)
        self._storage = storage
        self._random = random_source
        self._platform = platform
        self._codec = codec if codec is not None else MnemonicCodec()
        self._cipher = HybridEnvelopeCipher(random_source)
        self._default_key_size = default_key_size
        self._keys = StorageKeys(storage_prefix)
        self._persist = persist
        self._progress = progress

        self._state = KeyState.UNINITIALIZED
        self._active: Optional[_ActiveKeys] = None

    # ------------------------------------------------------------------
    # Read-only state
    # ------------------------------------------------------------------

    @property
    def state(self) -> KeyState:
        return self._state

    @property
    def is_key_generated(self) -> bool:
        """True when a keypair is held."""
        return self._state is KeyState.READY

    @property
    def public_key_string(self) -> Optional[str]:
        """Active public key as PEM, or None."""
        if self._state is not KeyState.READY:
            return None
        return self._active.public_key_pem

    @property
    def mnemonic_phrase(self) -> Optional[str]:
        """Phrase backing the active keypair, if known in this session."""
        if self._state is not KeyState.READY:
            return None
        return self._active.mnemonic_phrase

    @property
    def key_size_bits(self) -> Optional[int]:
        if self._state is not KeyState.READY:
            return None
        return self._active.keypair.key_size_bits

    @property
    def platform(self) -> str:
        return self._platform

    @property
    def default_key_size(self) -> int:
        return self._default_key_size

    # ------------------------------------------------------------------
    # Generation and recovery
    # ------------------------------------------------------------------

    def _report(self, stage: str, percent: int) -> None:
        if self._progress is not None:
            self._progress(stage, percent)

    async def _derive(self, entropy: bytes, key_size_bits: int) -> CryptoKeyPair:
        # Prime search is CPU-bound; run it off the event loop.
        # The progress callback is invoked from the worker thread.
        return await asyncio.to_thread(
            derive_keypair, entropy, key_size_bits, self._progress
        )

    async def generate_keypair(self, key_size_bits: int = DEFAULT_KEY_SIZE) -> bool:
        """
        Generate a fresh mnemonic and derive a keypair from it.

        Callers using a non-default key_size_bits must keep that size next to
        the phrase and pass it back to recover_from_mnemonic.

        Args:
            key_size_bits: RSA modulus size, at least 2048

        Returns:
            True on success; False if the key size is rejected or derivation
            fails (state is left unchanged)
        """
        try:
            validate_key_size(key_size_bits)
        except InvalidKeySizeError:
            logger.warning(
                "Rejected key size %s (minimum %d)", key_size_bits, MIN_KEY_SIZE
            )
            return False

        self._report("entropy", 0)
        entropy = self._random.random_bytes(entropy_length_for_key_size(key_size_bits))

        self._report("mnemonic", 5)
        phrase = self._codec.encode(entropy)

        try:
            keypair = await self._derive(entropy, key_size_bits)
        except KeyDerivationError:
            logger.warning("Keypair derivation failed for %d-bit key", key_size_bits)
            return False

        await self._activate(keypair, phrase)
        logger.info("Generated %d-bit keypair", key_size_bits)
        return True

    def validate_mnemonic(self, phrase: str) -> DecodeResult:
        """Check a phrase without touching key state."""
        return self._codec.decode(phrase)

    async def recover_from_mnemonic(
        self, phrase: str, key_size_bits: Optional[int] = None
    ) -> bool:
        """
        Re-derive the keypair backed by a mnemonic phrase.

        The phrase does not record the modulus size. A phrase produced by
        generate_keypair with a non-default size must be recovered with that
        same key_size_bits; any other size yields a different keypair that
        cannot open data sealed under the original one.

        Args:
            phrase: Mnemonic phrase
            key_size_bits: Modulus size; defaults to the manager's default

        Returns:
            True on success; False for empty, malformed or mis-checksummed
            phrases or derivation failure (state is left unchanged)
        """
        result = self._codec.decode(phrase)
        if not result.ok:
            logger.warning("Mnemonic recovery rejected")
            return False

        size = key_size_bits if key_size_bits is not None else self._default_key_size
        try:
            keypair = await self._derive(result.entropy, size)
        except KeyDerivationError:
            logger.warning("Keypair derivation failed for %s-bit key", size)
            return False

        await self._activate(keypair, " ".join(normalize_phrase(phrase)))
        logger.info("Recovered %d-bit keypair from mnemonic", size)
        return True

    async def _activate(self, keypair: CryptoKeyPair, phrase: Optional[str]) -> None:
        public_pem = keypair.public_key_pem().decode("ascii")
        if self._persist:
            await self._storage.set_item(
                self._keys.private_key, keypair.private_key_pem().decode("ascii")
            )
            await self._storage.set_item(self._keys.public_key, public_pem)

        self._active = _ActiveKeys(
            keypair=keypair,
            mnemonic_phrase=phrase,
            public_key_pem=public_pem,
        )
        self._state = KeyState.READY

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    async def load_stored_keys(self) -> bool:
        """
        Restore the keypair last persisted to storage.

        The mnemonic is never stored, so mnemonic_phrase is None afterwards.

        Returns:
            True if a usable private key was loaded
        """
        pem = await self._storage.get_item(self._keys.private_key)
        if pem is None:
            return False

        try:
            private_key = serialization.load_pem_private_key(
                pem.encode("ascii"), password=None
            )
        except (ValueError, TypeError, UnicodeEncodeError, UnsupportedAlgorithm):
            logger.warning("Stored private key could not be loaded")
            return False

        if not isinstance(private_key, RSAPrivateKey) or private_key.key_size < MIN_KEY_SIZE:
            logger.warning("Stored private key is not a supported RSA key")
            return False

        keypair = CryptoKeyPair.from_private_key(private_key)
        self._active = _ActiveKeys(
            keypair=keypair,
            mnemonic_phrase=None,
            public_key_pem=keypair.public_key_pem().decode("ascii"),
        )
        self._state = KeyState.READY
        logger.info("Loaded %d-bit keypair from storage", keypair.key_size_bits)
        return True

    async def clear_keys(self) -> None:
        """Forget the active keypair and remove it from storage."""
        if self._persist:
            await self._storage.remove_item(self._keys.private_key)
            await self._storage.remove_item(self._keys.public_key)
        self._active = None
        self._state = KeyState.UNINITIALIZED
        logger.info("Cleared keypair")

    # ------------------------------------------------------------------
    # Encryption
    # ------------------------------------------------------------------

    def encrypt_for_local_storage(self, data: BytesLike) -> Optional[bytes]:
        """
        Seal data into a local-storage blob.

        Returns:
            Envelope bytes, or None if no keypair is held
        """
        if self._state is not KeyState.READY or not _is_bytes_like(data):
            return None
        try:
            return self._cipher.seal_local(self._active.keypair.public_key, bytes(data))
        except CryptoError:
            logger.debug("Local encryption failed")
            return None

    def decrypt_from_local_storage(self, data: BytesLike) -> Optional[bytes]:
        """
        Open a local-storage blob.

        Returns:
            Plaintext, or None if no keypair is held or the blob does not open
        """
        if self._state is not KeyState.READY or not _is_bytes_like(data):
            return None
        return self._cipher.open_local(self._active.keypair.private_key, data)

    def prepare_for_remote_transmission(self, data: BytesLike) -> Optional[bytes]:
        """
        Seal data for transmission.

        Returns:
            UTF-8 JSON bytes of {"encrypted_key": ..., "encrypted_data": ...},
            or None if no keypair is held
        """
        if self._state is not KeyState.READY or not _is_bytes_like(data):
            return None
        try:
            payload = self._cipher.seal_remote(self._active.keypair.public_key, bytes(data))
        except CryptoError:
            logger.debug("Remote encryption failed")
            return None
        return payload.to_bytes()

    def decrypt_remote_transmission_data(
        self, encrypted_key: str, encrypted_data: str
    ) -> Optional[bytes]:
        """
        Open a transmission payload from its two base64 fields.

        Returns:
            Plaintext, or None if no keypair is held or the payload does not open
        """
        if self._state is not KeyState.READY:
            return None
        return self._cipher.open_remote(
            self._active.keypair.private_key, encrypted_key, encrypted_data
        )

    def __repr__(self) -> str:
        return f"KeyManager(platform={self._platform!r}, state={self._state})"


def _is_bytes_like(data: object) -> bool:
    return isinstance(data, (bytes, bytearray, memoryview))
