"""
Deterministic RSA keypair derivation from mnemonic entropy.

This module provides:
- DeterministicStream: HKDF-keyed HMAC-SHA512 counter stream
- CryptoKeyPair: RSA keypair with its modulus size
- derive_keypair: entropy + key size -> CryptoKeyPair
- entropy_length_for_key_size: smallest mnemonic entropy for a key size

Derivation never touches the system RNG. The stream is the only source of
randomness for prime candidates and Miller-Rabin witnesses, so the same
(entropy, key size) pair always produces the same keypair on any platform.

Protocol v1:
- stream key = HKDF-SHA512(entropy, salt=KDF_SALT, info=KDF_INFO || K as u32be)
- block i    = HMAC-SHA512(stream key, i as u64be), i = 0, 1, ...
- candidates: ceil(bits/8) stream bytes, top two bits and low bit set
- trial division by primes < 2000, then 40 Miller-Rabin rounds
- d = e^-1 mod lcm(p-1, q-1), e = 65537, p > q
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from math import gcd
from typing import Callable, List, Optional

from cryptography.hazmat.primitives import hashes, hmac, serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from cryptography.hazmat.primitives.kdf.hkdf import HKDF

from .errors import InvalidKeySizeError, KeyDerivationError
from .mnemonic_codec import SUPPORTED_ENTROPY_LENGTHS

logger = logging.getLogger(__name__)

PROTOCOL_VERSION = 1
KDF_SALT = b"mnemonic-keyring/v1"
KDF_INFO = b"rsa-keygen"

PUBLIC_EXPONENT = 65537
MIN_KEY_SIZE = 2048
MAX_KEY_SIZE = 16384
DEFAULT_KEY_SIZE = 2048

MILLER_RABIN_ROUNDS = 40
MAX_PRIME_CANDIDATES = 100_000

# (max modulus bits, required entropy bits), NIST SP 800-57 Part 1 Table 2
_STRENGTH_TABLE = (
    (2048, 112),
    (3072, 128),
    (7680, 192),
    (15360, 256),
    (MAX_KEY_SIZE, 256),
)

ProgressCallback = Callable[[str, int], None]


def _small_primes(limit: int) -> List[int]:
    sieve = bytearray([1]) * limit
    sieve[0:2] = b"\x00\x00"
    for i in range(2, int(limit**0.5) + 1):
        if sieve[i]:
            sieve[i * i :: i] = bytearray(len(range(i * i, limit, i)))
    return [i for i in range(3, limit) if sieve[i]]


_SMALL_PRIMES = _small_primes(2000)


class DeterministicStream:
    """
    Unbounded pseudo-random byte stream keyed by entropy.

    Equal (entropy, key_size_bits) inputs give equal streams.
    """

    BLOCK_SIZE = 64

    def __init__(self, entropy: bytes, key_size_bits: int) -> None:
        hkdf = HKDF(
            algorithm=hashes.SHA512(),
            length=self.BLOCK_SIZE,
            salt=KDF_SALT,
            info=KDF_INFO + key_size_bits.to_bytes(4, "big"),
        )
        self._key = hkdf.derive(bytes(entropy))
        self._counter = 0
        self._buffer = bytearray()

    def _next_block(self) -> bytes:
        h = hmac.HMAC(self._key, hashes.SHA512())
        h.update(self._counter.to_bytes(8, "big"))
        self._counter += 1
        return h.finalize()

    def read(self, length: int) -> bytes:
        """Return the next ``length`` bytes of the stream."""
        while len(self._buffer) < length:
            self._buffer += self._next_block()
        out = bytes(self._buffer[:length])
        del self._buffer[:length]
        return out

    def randbits(self, bits: int) -> int:
        """Return a non-negative integer below ``2 ** bits``."""
        nbytes = (bits + 7) // 8
        value = int.from_bytes(self.read(nbytes), "big")
        return value >> (nbytes * 8 - bits)

    def randbelow(self, upper: int) -> int:
        """Return an integer in ``[0, upper)`` by rejection sampling."""
        bits = upper.bit_length()
        while True:
            value = self.randbits(bits)
            if value < upper:
                return value


@dataclass
class CryptoKeyPair:
    """RSA keypair derived from mnemonic entropy."""

    private_key: rsa.RSAPrivateKey
    public_key: rsa.RSAPublicKey
    key_size_bits: int

    @classmethod
    def from_private_key(cls, private_key: rsa.RSAPrivateKey) -> CryptoKeyPair:
        return cls(
            private_key=private_key,
            public_key=private_key.public_key(),
            key_size_bits=private_key.key_size,
        )

    def public_key_pem(self) -> bytes:
        """Public key as PEM SubjectPublicKeyInfo."""
        return self.public_key.public_bytes(
            encoding=serialization.Encoding.PEM,
            format=serialization.PublicFormat.SubjectPublicKeyInfo,
        )

    def private_key_pem(self) -> bytes:
        """Private key as unencrypted PKCS#8 PEM."""
        return self.private_key.private_bytes(
            encoding=serialization.Encoding.PEM,
            format=serialization.PrivateFormat.PKCS8,
            encryption_algorithm=serialization.NoEncryption(),
        )

    def private_key_der(self) -> bytes:
        """Private key as unencrypted PKCS#8 DER."""
        return self.private_key.private_bytes(
            encoding=serialization.Encoding.DER,
            format=serialization.PrivateFormat.PKCS8,
            encryption_algorithm=serialization.NoEncryption(),
        )

    def __repr__(self) -> str:
        return f"CryptoKeyPair(key_size_bits={self.key_size_bits}, private_key=[REDACTED])"


def required_entropy_bits(key_size_bits: int) -> int:
    """Entropy bits needed to back an RSA modulus of the given size."""
    for max_bits, strength in _STRENGTH_TABLE:
        if key_size_bits <= max_bits:
            return strength
    raise InvalidKeySizeError(f"Key size {key_size_bits} exceeds maximum {MAX_KEY_SIZE}")


def entropy_length_for_key_size(key_size_bits: int) -> int:
    """Smallest supported mnemonic entropy length (bytes) for a key size."""
    needed = required_entropy_bits(key_size_bits)
    for length in SUPPORTED_ENTROPY_LENGTHS:
        if length * 8 >= needed:
            return length
    raise InvalidKeySizeError(f"No supported entropy length covers {key_size_bits}-bit keys")


def validate_key_size(key_size_bits: int) -> None:
    """
    Check a requested modulus size.

    Raises:
        InvalidKeySizeError: If the size is below the floor, above the
            ceiling, or not a multiple of 8
    """
    if not isinstance(key_size_bits, int) or isinstance(key_size_bits, bool):
        raise InvalidKeySizeError("Key size must be an integer")
    if key_size_bits < MIN_KEY_SIZE:
        raise InvalidKeySizeError(
            f"Key size {key_size_bits} is below minimum {MIN_KEY_SIZE}"
        )
    if key_size_bits > MAX_KEY_SIZE:
        raise InvalidKeySizeError(f"Key size {key_size_bits} exceeds maximum {MAX_KEY_SIZE}")
    if key_size_bits % 8:
        raise InvalidKeySizeError(f"Key size {key_size_bits} is not a multiple of 8")


def _is_probable_prime(candidate: int, stream: DeterministicStream) -> bool:
    for p in _SMALL_PRIMES:
        if candidate % p == 0:
            return candidate == p

    d = candidate - 1
    s = 0
    while d % 2 == 0:
        d //= 2
        s += 1

    for _ in range(MILLER_RABIN_ROUNDS):
        a = 2 + stream.randbelow(candidate - 3)
        x = pow(a, d, candidate)
        if x == 1 or x == candidate - 1:
            continue
        for _ in range(s - 1):
            x = pow(x, 2, candidate)
            if x == candidate - 1:
                break
        else:
            return False
    return True


def _find_prime(
    stream: DeterministicStream,
    bits: int,
    accept: Callable[[int], bool],
) -> int:
    top_bits = 0b11 << (bits - 2)
    for attempt in range(1, MAX_PRIME_CANDIDATES + 1):
        candidate = stream.randbits(bits) | top_bits | 1
        if gcd(PUBLIC_EXPONENT, candidate - 1) != 1:
            continue
        if not _is_probable_prime(candidate, stream):
            continue
        if not accept(candidate):
            continue
        logger.debug("Found %d-bit prime after %d candidates", bits, attempt)
        return candidate
    raise KeyDerivationError(
        f"Prime search exhausted after {MAX_PRIME_CANDIDATES} candidates"
    )


def derive_keypair(
    entropy: bytes,
    key_size_bits: int = DEFAULT_KEY_SIZE,
    progress: Optional[ProgressCallback] = None,
) -> CryptoKeyPair:
    """
    Derive an RSA keypair deterministically from entropy.

    Args:
        entropy: Mnemonic entropy (the sole seed)
        key_size_bits: Modulus size, at least 2048
        progress: Optional callback receiving (stage, percent)

    Returns:
        CryptoKeyPair

    Raises:
        InvalidKeySizeError: If the key size is unsupported
        KeyDerivationError: If the entropy is too short or the prime search
            runs out of candidates
    """
    validate_key_size(key_size_bits)

    if not isinstance(entropy, (bytes, bytearray)):
        raise KeyDerivationError("Entropy must be bytes")
    needed = required_entropy_bits(key_size_bits)
    if len(entropy) * 8 < needed:
        raise KeyDerivationError(
            f"{len(entropy) * 8} bits of entropy is insufficient for "
            f"{key_size_bits}-bit keys (need {needed})"
        )

    def report(stage: str, percent: int) -> None:
        if progress is not None:
            progress(stage, percent)

    stream = DeterministicStream(bytes(entropy), key_size_bits)
    p_bits = (key_size_bits + 1) // 2
    q_bits = key_size_bits - p_bits
    min_distance = 1 << (key_size_bits // 2 - 100)

    report("prime_p", 10)
    p = _find_prime(stream, p_bits, lambda c: True)

    def accept_q(candidate: int) -> bool:
        if abs(p - candidate) < min_distance:
            return False
        return (p * candidate).bit_length() == key_size_bits

    report("prime_q", 50)
    q = _find_prime(stream, q_bits, accept_q)

    report("assemble", 90)
    if p < q:
        p, q = q, p
    n = p * q
    lam = (p - 1) * (q - 1) // gcd(p - 1, q - 1)
    d = pow(PUBLIC_EXPONENT, -1, lam)
    dmp1 = d % (p - 1)
    dmq1 = d % (q - 1)
    iqmp = pow(q, -1, p)

    numbers = rsa.RSAPrivateNumbers(
        p=p,
        q=q,
        d=d,
        dmp1=dmp1,
        dmq1=dmq1,
        iqmp=iqmp,
        public_numbers=rsa.RSAPublicNumbers(e=PUBLIC_EXPONENT, n=n),
    )
    try:
        private_key = numbers.private_key()
    except ValueError as e:
        raise KeyDerivationError(f"Derived key failed validation: {type(e).__name__}")

    report("done", 100)
    return CryptoKeyPair.from_private_key(private_key)
