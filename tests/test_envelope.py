"""
Tests for local-storage and transmission envelopes.
"""

from __future__ import annotations

import base64
import json
import struct
from typing import Optional

import pytest

from mnemonic_keyring import (
    AES_256_KEY_SIZE,
    NONCE_SIZE,
    TAG_SIZE,
    CryptoKeyPair,
    HybridEnvelopeCipher,
    RandomSource,
    SerializationError,
    SystemRandomSource,
    TransmissionPayload,
)
from mnemonic_keyring.envelope import MIN_LOCAL_ENVELOPE_SIZE


@pytest.fixture
def cipher() -> HybridEnvelopeCipher:
    return HybridEnvelopeCipher(SystemRandomSource())


class TestLocalEnvelope:
    @pytest.mark.parametrize("plaintext", [b"", b"hello world", bytes(range(256)) * 64])
    def test_round_trip(
        self, cipher: HybridEnvelopeCipher, keypair: CryptoKeyPair, plaintext: bytes
    ) -> None:
        blob = cipher.seal_local(keypair.public_key, plaintext)
        assert cipher.open_local(keypair.private_key, blob) == plaintext

    def test_layout(self, cipher: HybridEnvelopeCipher, keypair: CryptoKeyPair) -> None:
        blob = cipher.seal_local(keypair.public_key, b"payload")
        (key_length,) = struct.unpack(">I", blob[:4])
        assert key_length == 256
        assert len(blob) == 4 + key_length + NONCE_SIZE + len(b"payload") + TAG_SIZE

    def test_draws_key_and_nonce_from_random_source(
        self, random_source, keypair: CryptoKeyPair
    ) -> None:
        cipher = HybridEnvelopeCipher(random_source)
        cipher.seal_local(keypair.public_key, b"payload")
        assert random_source.requests == [AES_256_KEY_SIZE, NONCE_SIZE]

    def test_fresh_envelope_each_time(
        self, cipher: HybridEnvelopeCipher, keypair: CryptoKeyPair
    ) -> None:
        assert cipher.seal_local(keypair.public_key, b"same") != cipher.seal_local(
            keypair.public_key, b"same"
        )

    def test_accepts_bytearray(self, cipher: HybridEnvelopeCipher, keypair: CryptoKeyPair) -> None:
        blob = bytearray(cipher.seal_local(keypair.public_key, b"data"))
        assert cipher.open_local(keypair.private_key, blob) == b"data"

    @pytest.mark.parametrize("size", [0, 4, MIN_LOCAL_ENVELOPE_SIZE - 1])
    def test_too_short(self, cipher: HybridEnvelopeCipher, keypair: CryptoKeyPair, size: int) -> None:
        assert cipher.open_local(keypair.private_key, b"\x00" * size) is None

    def test_length_prefix_overruns_buffer(
        self, cipher: HybridEnvelopeCipher, keypair: CryptoKeyPair
    ) -> None:
        blob = cipher.seal_local(keypair.public_key, b"data")
        forged = struct.pack(">I", len(blob)) + blob[4:]
        assert cipher.open_local(keypair.private_key, forged) is None

    def test_zero_length_prefix(self, cipher: HybridEnvelopeCipher, keypair: CryptoKeyPair) -> None:
        assert cipher.open_local(keypair.private_key, b"\x00" * 100) is None

    def test_arbitrary_bytes(self, cipher: HybridEnvelopeCipher, keypair: CryptoKeyPair) -> None:
        assert cipher.open_local(keypair.private_key, b"\x01" * 100) is None

    @pytest.mark.parametrize("offset", [4, 4 + 256, -1])
    def test_tampering_is_rejected(
        self, cipher: HybridEnvelopeCipher, keypair: CryptoKeyPair, offset: int
    ) -> None:
        blob = bytearray(cipher.seal_local(keypair.public_key, b"authenticated"))
        blob[offset] ^= 0x80
        assert cipher.open_local(keypair.private_key, bytes(blob)) is None

    def test_wrong_key(
        self,
        cipher: HybridEnvelopeCipher,
        keypair: CryptoKeyPair,
        other_keypair: CryptoKeyPair,
    ) -> None:
        blob = cipher.seal_local(keypair.public_key, b"data")
        assert cipher.open_local(other_keypair.private_key, blob) is None

    def test_non_bytes_input(self, cipher: HybridEnvelopeCipher, keypair: CryptoKeyPair) -> None:
        assert cipher.open_local(keypair.private_key, "not bytes") is None  # type: ignore[arg-type]


class TestTransmissionEnvelope:
    def test_round_trip(self, cipher: HybridEnvelopeCipher, keypair: CryptoKeyPair) -> None:
        payload = cipher.seal_remote(keypair.public_key, b"remote payload")
        opened = cipher.open_remote(
            keypair.private_key, payload.encrypted_key, payload.encrypted_data
        )
        assert opened == b"remote payload"

    def test_fields_are_standard_base64(
        self, cipher: HybridEnvelopeCipher, keypair: CryptoKeyPair
    ) -> None:
        payload = cipher.seal_remote(keypair.public_key, b"remote payload")
        wrapped = base64.b64decode(payload.encrypted_key, validate=True)
        data = base64.b64decode(payload.encrypted_data, validate=True)
        assert len(wrapped) == 256
        assert len(data) == NONCE_SIZE + len(b"remote payload") + TAG_SIZE

    def test_swapped_fields(self, cipher: HybridEnvelopeCipher, keypair: CryptoKeyPair) -> None:
        payload = cipher.seal_remote(keypair.public_key, b"data")
        assert (
            cipher.open_remote(keypair.private_key, payload.encrypted_data, payload.encrypted_key)
            is None
        )

    def test_mixed_payloads(self, cipher: HybridEnvelopeCipher, keypair: CryptoKeyPair) -> None:
        first = cipher.seal_remote(keypair.public_key, b"first")
        second = cipher.seal_remote(keypair.public_key, b"second")
        assert (
            cipher.open_remote(keypair.private_key, first.encrypted_key, second.encrypted_data)
            is None
        )

    @pytest.mark.parametrize(
        "encrypted_key,encrypted_data",
        [("!!!", "AAAA"), ("AAAA", "!!!"), ("", ""), (None, None)],
    )
    def test_malformed_fields(
        self,
        cipher: HybridEnvelopeCipher,
        keypair: CryptoKeyPair,
        encrypted_key: object,
        encrypted_data: object,
    ) -> None:
        assert cipher.open_remote(keypair.private_key, encrypted_key, encrypted_data) is None  # type: ignore[arg-type]

    def test_wrong_key(
        self,
        cipher: HybridEnvelopeCipher,
        keypair: CryptoKeyPair,
        other_keypair: CryptoKeyPair,
    ) -> None:
        payload = cipher.seal_remote(keypair.public_key, b"data")
        assert (
            cipher.open_remote(
                other_keypair.private_key, payload.encrypted_key, payload.encrypted_data
            )
            is None
        )


class TestTransmissionPayload:
    def test_json_shape(self) -> None:
        payload = TransmissionPayload(encrypted_key="a2V5", encrypted_data="ZGF0YQ==")
        assert json.loads(payload.to_bytes().decode("utf-8")) == {
            "encrypted_key": "a2V5",
            "encrypted_data": "ZGF0YQ==",
        }

    def test_from_json(self) -> None:
        payload = TransmissionPayload(encrypted_key="a2V5", encrypted_data="ZGF0YQ==")
        assert TransmissionPayload.from_json(payload.to_bytes()) == payload
        assert TransmissionPayload.from_json(payload.to_json()) == payload

    @pytest.mark.parametrize(
        "document",
        ["not json", "[]", '{"encrypted_key": "a2V5"}', '{"encrypted_key": 1, "encrypted_data": 2}'],
    )
    def test_from_json_rejects(self, document: str) -> None:
        with pytest.raises(SerializationError):
            TransmissionPayload.from_json(document)


class CountingRandomSource(RandomSource):
    """Hands out 0x00, 0x01, 0x02, ... across successive fills."""

    def __init__(self) -> None:
        self._next = 0

    def fill(self, buffer: Optional[bytearray]) -> Optional[bytearray]:
        if buffer is None:
            return None
        for i in range(len(buffer)):
            buffer[i] = self._next & 0xFF
            self._next += 1
        return buffer


# Local envelope v1 for the session keypair: data key bytes(range(32)),
# nonce bytes(range(32, 44)), plaintext below. OAEP padding is randomized, so
# only the AEAD tail of a fresh seal is fixed.
VECTOR_PLAINTEXT = b"mnemonic-keyring local envelope v1"
LOCAL_ENVELOPE_V1 = bytes.fromhex(
    "0000010064857c364337a0960e6229cd84995062c623bef1ddf88027f46786a0"
    "cfb2e6cc0e232696e0c0eb87d70fe20c15e58450b03436a776b3c4c58e5af029"
    "feef77cbfa6aaa7c10f1bc84055e2843dcaaf682b23fa69baac3cd01341af7dc"
    "754848f49bb7dbcc4a361555b5cb223750e7c0a3f2b9cf5002342a8dcb603211"
    "b6b222a4954e8e280ae897234a45512b31ab88ffe0a29ee467f35c0b2c15f020"
    "45b7d7ebae5e6f7eede4503349adb016d84b7563f10033661a5333f07d76a3f2"
    "c19b880867932f469f1ddbfff0112ccca5700d886ab892168b860afaf68e255a"
    "dacb72f04b6fe117de0828903a8c5f03e258b8f24623ff47f9500801f23a13e2"
    "575950fc202122232425262728292a2bbf54c31d03f6736d371727b7b3719a9e"
    "f02583ffe6ec438b0280097e26fa3b2903bfb29c8fdb3d68eb7c6142f0394be2"
    "d8d6"
)
AEAD_V1 = bytes.fromhex(
    "202122232425262728292a2bbf54c31d03f6736d371727b7b3719a9ef02583ff"
    "e6ec438b0280097e26fa3b2903bfb29c8fdb3d68eb7c6142f0394be2d8d6"
)


class TestLocalEnvelopeVectors:
    def test_opens_stored_envelope(self, cipher: HybridEnvelopeCipher, keypair: CryptoKeyPair) -> None:
        assert cipher.open_local(keypair.private_key, LOCAL_ENVELOPE_V1) == VECTOR_PLAINTEXT

    def test_seal_layout_with_fixed_randomness(self, keypair: CryptoKeyPair) -> None:
        cipher = HybridEnvelopeCipher(CountingRandomSource())
        blob = cipher.seal_local(keypair.public_key, VECTOR_PLAINTEXT)

        assert blob[:4] == b"\x00\x00\x01\x00"
        assert len(blob) == len(LOCAL_ENVELOPE_V1)
        assert blob[4 + 256 :] == AEAD_V1
        assert cipher.open_local(keypair.private_key, blob) == VECTOR_PLAINTEXT
