"""
Checksummed word-phrase encoding of entropy.

Entropy of 16-32 bytes is mapped to 12-24 words of the BIP-39 English
wordlist. The trailing ``len(entropy) * 8 / 32`` bits of the bit stream are
the leading bits of SHA-256(entropy).
"""

from __future__ import annotations

import hashlib
import unicodedata
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence

from mnemonic import Mnemonic

from .errors import MnemonicError

WORDLIST_LANGUAGE = "english"
WORDLIST_SIZE = 2048
BITS_PER_WORD = 11

# Entropy byte length -> word count
SUPPORTED_ENTROPY_LENGTHS = (16, 20, 24, 28, 32)
SUPPORTED_WORD_COUNTS = tuple(
    (n * 8 + n * 8 // 32) // BITS_PER_WORD for n in SUPPORTED_ENTROPY_LENGTHS
)


@dataclass(frozen=True)
class DecodeResult:
    """Outcome of decoding a phrase: entropy on success, a reason otherwise."""

    entropy: Optional[bytes] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.entropy is not None

    @classmethod
    def failure(cls, reason: str) -> DecodeResult:
        return cls(entropy=None, error=reason)

    def __repr__(self) -> str:
        if self.ok:
            return "DecodeResult(ok=True)"
        return f"DecodeResult(ok=False, error={self.error!r})"


def _checksum_bits(entropy: bytes) -> int:
    return len(entropy) * 8 // 32


def normalize_phrase(phrase: str) -> List[str]:
    """Split a phrase into NFKD-normalised, lower-case words."""
    return unicodedata.normalize("NFKD", phrase).lower().split()


class MnemonicCodec:
    """
    Reversible mapping between entropy and mnemonic phrases.

    The wordlist is fixed per codec instance; phrases produced with one
    wordlist only decode with the same one.
    """

    def __init__(self, wordlist: Optional[Sequence[str]] = None) -> None:
        """
        Initialize the codec.

        Args:
            wordlist: 2048 unique words; defaults to the BIP-39 English list
        """
        if wordlist is None:
            wordlist = Mnemonic(WORDLIST_LANGUAGE).wordlist
        words = [unicodedata.normalize("NFKD", w).lower() for w in wordlist]
        if len(words) != WORDLIST_SIZE or len(set(words)) != WORDLIST_SIZE:
            raise MnemonicError(f"Wordlist must contain exactly {WORDLIST_SIZE} unique words")
        self._words = words
        self._index: Dict[str, int] = {w: i for i, w in enumerate(words)}

    @property
    def wordlist(self) -> List[str]:
        return list(self._words)

    def encode(self, entropy: bytes) -> str:
        """
        Encode entropy as a space-separated mnemonic phrase.

        Args:
            entropy: 16, 20, 24, 28 or 32 bytes

        Returns:
            Mnemonic phrase

        Raises:
            MnemonicError: If the entropy length is not supported
        """
        if not isinstance(entropy, (bytes, bytearray)):
            raise MnemonicError("Entropy must be bytes")
        if len(entropy) not in SUPPORTED_ENTROPY_LENGTHS:
            raise MnemonicError(
                f"Unsupported entropy length {len(entropy)}; "
                f"expected one of {SUPPORTED_ENTROPY_LENGTHS}"
            )

        entropy = bytes(entropy)
        cs_bits = _checksum_bits(entropy)
        digest = hashlib.sha256(entropy).digest()
        checksum = digest[0] >> (8 - cs_bits)

        total_bits = len(entropy) * 8 + cs_bits
        value = (int.from_bytes(entropy, "big") << cs_bits) | checksum

        words = []
        for shift in range(total_bits - BITS_PER_WORD, -1, -BITS_PER_WORD):
            words.append(self._words[(value >> shift) & (WORDLIST_SIZE - 1)])
        return " ".join(words)

    def decode(self, phrase: str) -> DecodeResult:
        """
        Decode a phrase back to its entropy.

        Never raises; every rejection is reported through the result.
        """
        if not isinstance(phrase, str):
            return DecodeResult.failure("phrase must be a string")

        words = normalize_phrase(phrase)
        if not words:
            return DecodeResult.failure("phrase is empty")
        if len(words) not in SUPPORTED_WORD_COUNTS:
            return DecodeResult.failure(
                f"unsupported word count {len(words)}; expected one of {SUPPORTED_WORD_COUNTS}"
            )

        value = 0
        for position, word in enumerate(words):
            index = self._index.get(word)
            if index is None:
                # Position only; the word itself is secret material.
                return DecodeResult.failure(f"word {position + 1} is not in the wordlist")
            value = (value << BITS_PER_WORD) | index

        total_bits = len(words) * BITS_PER_WORD
        cs_bits = total_bits // 33
        entropy_bits = total_bits - cs_bits

        entropy = (value >> cs_bits).to_bytes(entropy_bits // 8, "big")
        checksum = value & ((1 << cs_bits) - 1)
        expected = hashlib.sha256(entropy).digest()[0] >> (8 - cs_bits)
        if checksum != expected:
            return DecodeResult.failure("checksum mismatch")

        return DecodeResult(entropy=entropy)

    def is_valid(self, phrase: str) -> bool:
        """Return True if the phrase decodes cleanly."""
        return self.decode(phrase).ok
