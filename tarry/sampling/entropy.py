"""
Cryptographically secure uniform variates.

Every sampler draws its randomness from here. Floats are built directly from
random bits: 52 random mantissa bits are combined with the exponent of 1.0,
which gives a double in [1.0, 2.0); subtracting 1.0 maps it onto [0.0, 1.0)
with all 2**52 values equally likely and no modulo bias.
"""

import secrets
import struct
from typing import Protocol

import numpy as np

# Lower 52 bits of an IEEE 754 double (the fraction field).
MANTISSA_MASK = 0x000F_FFFF_FFFF_FFFF

# Biased exponent 1023, i.e. the bit pattern of 1.0 without a fraction.
EXPONENT_BITS = 0x3FF0_0000_0000_0000

_WORD = struct.Struct("<Q")
_DOUBLE = struct.Struct("<d")


class UniformSource(Protocol):
    """Anything the samplers can draw uniform variates from."""

    def uniform01(self) -> float: ...

    def uniform(self, low: float, high: float) -> float: ...


class SecureUniformSource:
    """Uniform variates backed by the operating system CSPRNG.

    Holds no state, so a single instance can be shared between threads.
    """

    def uniform01(self) -> float:
        """Return a uniformly distributed float in [0.0, 1.0)."""
        (word,) = _WORD.unpack(secrets.token_bytes(8))
        bits = (word & MANTISSA_MASK) | EXPONENT_BITS
        (value,) = _DOUBLE.unpack(_WORD.pack(bits))
        return value - 1.0

    def uniform(self, low: float, high: float) -> float:
        """Return a uniformly distributed float in [low, high).

        Returns ``low`` when both bounds are equal.

        Raises:
            ValueError: If ``low`` is greater than ``high``.
        """
        if low > high:
            raise ValueError(f"low ({low}) must not exceed high ({high})")
        if low == high:
            return low
        return low + (high - low) * self.uniform01()

    def integer(self, low: int, high: int) -> int:
        """Return a uniformly distributed integer in [low, high).

        Uses rejection-based bounded draws rather than a modulo reduction.
        Returns ``low`` when both bounds are equal.

        Raises:
            ValueError: If ``low`` is greater than ``high``.
        """
        if low > high:
            raise ValueError(f"low ({low}) must not exceed high ({high})")
        if low == high:
            return low
        return low + secrets.randbelow(high - low)

    def uniform01_array(self, count: int) -> np.ndarray:
        """Return ``count`` uniform floats in [0.0, 1.0) as a NumPy array."""
        if count < 0:
            raise ValueError(f"count must be non-negative, got {count}")
        words = np.frombuffer(secrets.token_bytes(8 * count), dtype="<u8")
        bits = (words & np.uint64(MANTISSA_MASK)) | np.uint64(EXPONENT_BITS)
        return bits.view("<f8") - 1.0

    def __repr__(self) -> str:
        return "SecureUniformSource()"


_DEFAULT_SOURCE = SecureUniformSource()


def default_source() -> SecureUniformSource:
    """Return the shared process-wide source."""
    return _DEFAULT_SOURCE
