"""
Randomness sources.

This module provides:
- RandomSource: Abstract fill-a-buffer interface for secure random bytes
- SystemRandomSource: OS CSPRNG implementation backed by ``secrets``

The engine never calls the OS RNG directly; it asks the RandomSource it was
constructed with, so each platform can inject its own implementation.
"""

from __future__ import annotations

import secrets
from abc import ABC, abstractmethod
from typing import Optional


class RandomSource(ABC):
    """
    Abstract source of cryptographically secure random bytes.

    Implementations fill a caller-provided buffer in place and return the
    same buffer. Passing ``None`` is a no-op that returns ``None``.
    """

    @abstractmethod
    def fill(self, buffer: Optional[bytearray]) -> Optional[bytearray]:
        """Fill ``buffer`` with random bytes in place."""
        ...

    def random_bytes(self, length: int) -> bytes:
        """
        Return ``length`` fresh random bytes.

        Args:
            length: Number of bytes to generate

        Returns:
            Random bytes of specified length
        """
        buffer = bytearray(length)
        self.fill(buffer)
        return bytes(buffer)


class SystemRandomSource(RandomSource):
    """Random source using the operating system CSPRNG."""

    def fill(self, buffer: Optional[bytearray]) -> Optional[bytearray]:
        if buffer is None:
            return buffer
        buffer[:] = secrets.token_bytes(len(buffer))
        return buffer
