"""
Symmetric and key-wrapping primitives behind the hybrid envelopes.

This module provides:
- SecureKey: AES data key held in a zeroable buffer
- EncryptedData: AES-GCM nonce plus ciphertext-with-tag
- AesGcmCipher: AES-256-GCM seal/open with nonces from a RandomSource
- RsaOaepKeyWrap: RSA-OAEP wrapping of data keys
"""

from __future__ import annotations

import base64
import binascii
from dataclasses import dataclass
from typing import Optional

from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric import padding
from cryptography.hazmat.primitives.asymmetric.rsa import RSAPrivateKey, RSAPublicKey
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from .entropy import RandomSource
from .errors import CryptoError

AES_256_KEY_SIZE: int = 32
NONCE_SIZE: int = 12
TAG_SIZE: int = 16  # appended to the ciphertext by AESGCM


class SecureKey:
    """
    One-shot AES-256 data key.

    The bytes live in a bytearray that is overwritten when the object is
    collected. CPython gives no timing guarantee for that, and copies made
    by as_bytes() are not tracked.
    """

    __slots__ = ("_bytes",)

    def __init__(self, key_bytes: bytes | bytearray) -> None:
        """
        Wrap raw key material.

        Args:
            key_bytes: Key bytes; AesGcmCipher only accepts 32
        """
        if not isinstance(key_bytes, (bytes, bytearray)):
            raise CryptoError("Key must be bytes or bytearray")
        self._bytes = bytearray(key_bytes)

    @classmethod
    def generate(cls, random_source: RandomSource) -> SecureKey:
        """Draw a fresh 32-byte key from the given random source."""
        return cls(random_source.random_bytes(AES_256_KEY_SIZE))

    def as_bytes(self) -> bytes:
        return bytes(self._bytes)

    def __len__(self) -> int:
        return len(self._bytes)

    def __repr__(self) -> str:
        return "SecureKey([REDACTED])"

    def __del__(self) -> None:
        buf = getattr(self, "_bytes", None)
        if buf is not None:
            buf[:] = bytes(len(buf))


@dataclass
class EncryptedData:
    """AES-GCM output: 12-byte nonce and ciphertext with its 16-byte tag."""

    nonce: bytes
    ciphertext: bytes

    def to_aead_blob(self) -> bytes:
        """Concatenate as nonce || ciphertext || tag."""
        return self.nonce + self.ciphertext

    @classmethod
    def from_aead_blob(cls, blob: bytes) -> EncryptedData:
        """
        Split a nonce || ciphertext || tag blob.

        Raises:
            CryptoError: If the blob cannot hold a nonce and a tag
        """
        blob = bytes(blob)
        if len(blob) < NONCE_SIZE + TAG_SIZE:
            raise CryptoError(f"AEAD blob too small: {len(blob)} bytes")
        return cls(nonce=blob[:NONCE_SIZE], ciphertext=blob[NONCE_SIZE:])

    def to_base64(self) -> str:
        return encode_base64(self.to_aead_blob())

    @classmethod
    def from_base64(cls, encoded: str) -> EncryptedData:
        """
        Parse a base64 AEAD blob.

        Raises:
            CryptoError: If the text is not strict base64 or the blob is short
        """
        return cls.from_aead_blob(decode_base64(encoded))


def _aead(key: SecureKey) -> AESGCM:
    if len(key) != AES_256_KEY_SIZE:
        raise CryptoError(f"Invalid key size: expected {AES_256_KEY_SIZE}, got {len(key)}")
    return AESGCM(key.as_bytes())


class AesGcmCipher:
    """
    AES-256-GCM with caller-supplied randomness.

    Nonces are drawn from the RandomSource passed to encrypt().
    """

    @staticmethod
    def encrypt(
        key: SecureKey,
        plaintext: bytes,
        random_source: RandomSource,
        aad: Optional[bytes] = None,
    ) -> EncryptedData:
        """
        Seal plaintext under a data key.

        Args:
            key: 32-byte data key
            plaintext: Bytes to seal
            random_source: Source of the 12-byte nonce
            aad: Optional associated data bound into the tag

        Returns:
            EncryptedData holding the nonce and ciphertext+tag

        Raises:
            CryptoError: If the key has the wrong size or sealing fails
        """
        aesgcm = _aead(key)
        nonce = random_source.random_bytes(NONCE_SIZE)
        try:
            ciphertext = aesgcm.encrypt(nonce, bytes(plaintext), aad)
        except Exception as e:
            raise CryptoError(f"Encryption error: {type(e).__name__}")
        return EncryptedData(nonce=nonce, ciphertext=ciphertext)

    @staticmethod
    def decrypt(
        key: SecureKey,
        encrypted: EncryptedData,
        aad: Optional[bytes] = None,
    ) -> bytes:
        """
        Open a sealed payload.

        Raises:
            CryptoError: On a size mismatch or a failed tag check
        """
        aesgcm = _aead(key)
        if len(encrypted.nonce) != NONCE_SIZE:
            raise CryptoError(f"Invalid nonce size: {len(encrypted.nonce)}")
        try:
            return aesgcm.decrypt(encrypted.nonce, encrypted.ciphertext, aad)
        except Exception:
            # Same message for every cause
            raise CryptoError("Decryption failed")


class RsaOaepKeyWrap:
    """
    RSA-OAEP (SHA-256, MGF1-SHA256) wrapping of symmetric keys.
    """

    @staticmethod
    def _padding() -> padding.OAEP:
        return padding.OAEP(
            mgf=padding.MGF1(algorithm=hashes.SHA256()),
            algorithm=hashes.SHA256(),
            label=None,
        )

    @staticmethod
    def wrap(public_key: RSAPublicKey, key: SecureKey) -> bytes:
        """
        Wrap a symmetric key with an RSA public key.

        Raises:
            CryptoError: If the key cannot be wrapped
        """
        try:
            return public_key.encrypt(key.as_bytes(), RsaOaepKeyWrap._padding())
        except Exception as e:
            raise CryptoError(f"Key wrap error: {type(e).__name__}")

    @staticmethod
    def unwrap(private_key: RSAPrivateKey, wrapped_key: bytes) -> SecureKey:
        """
        Unwrap a symmetric key with an RSA private key.

        Raises:
            CryptoError: If unwrapping fails or the key has the wrong size
        """
        try:
            key_bytes = private_key.decrypt(wrapped_key, RsaOaepKeyWrap._padding())
        except Exception:
            raise CryptoError("Key unwrap failed")

        if len(key_bytes) != AES_256_KEY_SIZE:
            raise CryptoError("Key unwrap failed")

        return SecureKey(key_bytes)


def decode_base64(encoded: str) -> bytes:
    """
    Strictly decode a standard base64 string.

    Raises:
        CryptoError: If the input is not valid base64
    """
    if not isinstance(encoded, (str, bytes)):
        raise CryptoError("Base64 input must be str or bytes")
    try:
        return base64.b64decode(encoded, validate=True)
    except (binascii.Error, ValueError):
        raise CryptoError("Base64 decode error")


def encode_base64(data: bytes) -> str:
    """Encode bytes as a standard base64 string."""
    return base64.standard_b64encode(data).decode("ascii")
