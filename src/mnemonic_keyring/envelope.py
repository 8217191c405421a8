"""
Hybrid RSA-OAEP + AES-256-GCM envelopes.

This module provides:
- HybridEnvelopeCipher: seal/open for local-storage and transmission formats
- TransmissionPayload: split-field payload for remote transmission

Formats (stable across versions):
- Local blob:  len(wrapped_key) u32be || wrapped_key || nonce(12) || ciphertext || tag(16)
- Transmission: {"encrypted_key": b64(wrapped_key),
                 "encrypted_data": b64(nonce || ciphertext || tag)}

Every open path returns ``None`` on any failure. Malformed framing, a bad
OAEP unwrap and a failed tag check are indistinguishable to the caller.
"""

from __future__ import annotations

import json
import logging
import struct
from dataclasses import dataclass
from typing import Optional, Tuple, Union

from cryptography.hazmat.primitives.asymmetric.rsa import RSAPrivateKey, RSAPublicKey

from .crypto import (
    NONCE_SIZE,
    TAG_SIZE,
    AesGcmCipher,
    EncryptedData,
    RsaOaepKeyWrap,
    SecureKey,
    decode_base64,
    encode_base64,
)
from .entropy import RandomSource
from .errors import CryptoError, SerializationError

logger = logging.getLogger(__name__)

_LENGTH_PREFIX = struct.Struct(">I")
LENGTH_PREFIX_SIZE = _LENGTH_PREFIX.size
MIN_LOCAL_ENVELOPE_SIZE = LENGTH_PREFIX_SIZE + NONCE_SIZE + TAG_SIZE


@dataclass
class TransmissionPayload:
    """Wrapped key and AEAD blob, each base64-encoded."""

    encrypted_key: str
    encrypted_data: str

    def to_dict(self) -> dict:
        return {
            "encrypted_key": self.encrypted_key,
            "encrypted_data": self.encrypted_data,
        }

    def to_json(self) -> str:
        """Serialize payload to JSON string."""
        return json.dumps(self.to_dict())

    def to_bytes(self) -> bytes:
        """Serialize payload to UTF-8 JSON bytes."""
        return self.to_json().encode("utf-8")

    @classmethod
    def from_json(cls, data: Union[str, bytes]) -> TransmissionPayload:
        """
        Deserialize payload from JSON.

        Raises:
            SerializationError: If the document is not a valid payload
        """
        try:
            obj = json.loads(data)
            encrypted_key = obj["encrypted_key"]
            encrypted_data = obj["encrypted_data"]
        except (ValueError, TypeError, KeyError):
            raise SerializationError("Failed to deserialize transmission payload")
        if not isinstance(encrypted_key, str) or not isinstance(encrypted_data, str):
            raise SerializationError("Transmission payload fields must be strings")
        return cls(encrypted_key=encrypted_key, encrypted_data=encrypted_data)


class HybridEnvelopeCipher:
    """
    Envelope encryption under an RSA keypair.

    Each seal draws a fresh AES-256 key and nonce from the random source and
    wraps the AES key with RSA-OAEP.
    """

    def __init__(self, random_source: RandomSource) -> None:
        """
        Initialize the cipher.

        Args:
            random_source: Source of symmetric keys and nonces
        """
        self._random = random_source

    def _seal(self, public_key: RSAPublicKey, plaintext: bytes) -> Tuple[bytes, EncryptedData]:
        data_key = SecureKey.generate(self._random)
        encrypted = AesGcmCipher.encrypt(data_key, plaintext, self._random)
        wrapped_key = RsaOaepKeyWrap.wrap(public_key, data_key)
        return wrapped_key, encrypted

    @staticmethod
    def _open(
        private_key: RSAPrivateKey, wrapped_key: bytes, encrypted: EncryptedData
    ) -> bytes:
        data_key = RsaOaepKeyWrap.unwrap(private_key, wrapped_key)
        return AesGcmCipher.decrypt(data_key, encrypted)

    def seal_local(self, public_key: RSAPublicKey, plaintext: bytes) -> bytes:
        """
        Encrypt plaintext into a single local-storage blob.

        Raises:
            CryptoError: If encryption fails
        """
        wrapped_key, encrypted = self._seal(public_key, plaintext)
        return _LENGTH_PREFIX.pack(len(wrapped_key)) + wrapped_key + encrypted.to_aead_blob()

    def open_local(self, private_key: RSAPrivateKey, blob: bytes) -> Optional[bytes]:
        """
        Decrypt a local-storage blob.

        Returns:
            Plaintext, or None if the blob is malformed, was sealed for
            another key, or fails authentication
        """
        if not isinstance(blob, (bytes, bytearray, memoryview)):
            return None
        blob = bytes(blob)
        if len(blob) < MIN_LOCAL_ENVELOPE_SIZE:
            logger.debug("Local envelope rejected")
            return None

        (key_length,) = _LENGTH_PREFIX.unpack_from(blob)
        body = blob[LENGTH_PREFIX_SIZE:]
        if key_length == 0 or key_length > len(body) - NONCE_SIZE - TAG_SIZE:
            logger.debug("Local envelope rejected")
            return None

        try:
            encrypted = EncryptedData.from_aead_blob(body[key_length:])
            return self._open(private_key, body[:key_length], encrypted)
        except CryptoError:
            logger.debug("Local envelope rejected")
            return None

    def seal_remote(self, public_key: RSAPublicKey, plaintext: bytes) -> TransmissionPayload:
        """
        Encrypt plaintext into a split-field transmission payload.

        Raises:
            CryptoError: If encryption fails
        """
        wrapped_key, encrypted = self._seal(public_key, plaintext)
        return TransmissionPayload(
            encrypted_key=encode_base64(wrapped_key),
            encrypted_data=encrypted.to_base64(),
        )

    def open_remote(
        self,
        private_key: RSAPrivateKey,
        encrypted_key: str,
        encrypted_data: str,
    ) -> Optional[bytes]:
        """
        Decrypt a transmission payload from its two base64 fields.

        Returns:
            Plaintext, or None on any decode, unwrap or authentication failure
        """
        try:
            wrapped_key = decode_base64(encrypted_key)
            encrypted = EncryptedData.from_base64(encrypted_data)
            return self._open(private_key, wrapped_key, encrypted)
        except CryptoError:
            logger.debug("Transmission payload rejected")
            return None
