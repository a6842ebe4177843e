"""
core/rng.py

Seedable pseudo-random streams.

A run must replay exactly from its seed, so the evolution never
touches system entropy. Both generators are plain 32-bit bit mixers:
the same seed always produces the same stream of floats in [0, 1).
"""

from __future__ import annotations
from abc import ABC, abstractmethod
from typing import Dict, Type

_MASK = 0xFFFFFFFF
_SCALE = 4294967296.0  # 2**32

# xorshift has an all-zero fixed point
_ZERO_SEED_REPLACEMENT = 0x9E3779B9


class SeededRandom(ABC):
    """
    Abstract base for deterministic 32-bit generators.

    Subclasses only provide the raw 32-bit output; the float
    helpers used by the evolutionary operators live here so that
    every generator draws in the same way.
    """

    def __init__(self, seed: int):
        self.seed = int(seed) & _MASK

    @abstractmethod
    def next_uint32(self) -> int:
        """Advance the state and return an unsigned 32-bit integer."""
        pass

    def next(self) -> float:
        """Return a float in [0, 1)."""
        return self.next_uint32() / _SCALE

    def uniform(self, low: float, high: float) -> float:
        return low + (high - low) * self.next()

    def signed(self) -> float:
        """Uniform float in [-1, 1)."""
        return self.next() * 2.0 - 1.0

    def integers(self, n: int) -> int:
        """Uniform index in [0, n)."""
        if n <= 0:
            raise ValueError(f"Cannot draw an index from an empty range (n={n})")
        return int(self.next() * n)

    def chance(self, probability: float) -> bool:
        """True with the given probability."""
        return self.next() < probability

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(seed={self.seed})"


class XorShift32(SeededRandom):
    """Marsaglia xorshift with the (13, 17, 5) triple."""

    def __init__(self, seed: int):
        super().__init__(seed)
        self.state = self.seed or _ZERO_SEED_REPLACEMENT

    def next_uint32(self) -> int:
        s = self.state
        s = (s ^ (s << 13)) & _MASK
        s ^= s >> 17
        s = (s ^ (s << 5)) & _MASK
        self.state = s
        return s


class Mulberry32(SeededRandom):
    """Tommy Ettinger's mulberry32 mixer."""

    def __init__(self, seed: int):
        super().__init__(seed)
        self.state = self.seed

    def next_uint32(self) -> int:
        self.state = (self.state + 0x6D2B79F5) & _MASK
        t = self.state
        t = ((t ^ (t >> 15)) * (t | 1)) & _MASK
        t ^= (t + (((t ^ (t >> 7)) * (t | 61)) & _MASK)) & _MASK
        return (t ^ (t >> 14)) & _MASK


RNG_REGISTRY: Dict[str, Type[SeededRandom]] = {
    "xorshift32": XorShift32,
    "mulberry32": Mulberry32,
}


def create_rng(name: str = "xorshift32", seed: int = 12345) -> SeededRandom:
    """Build a generator by registry name."""
    try:
        rng_cls = RNG_REGISTRY[name]
    except KeyError:
        raise ValueError(
            f"Unknown rng: {name} (choose from {sorted(RNG_REGISTRY)})"
        ) from None
    return rng_cls(seed)
