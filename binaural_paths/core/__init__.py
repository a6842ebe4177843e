"""
Core building blocks.

- geometry: Immutable planar points
- rng: Reproducible random streams
- curve: Control points to a smooth sampled path
"""

from .geometry import Point, lerp, distance
from .rng import SeededRandom, XorShift32, Mulberry32, create_rng
from .curve import sample_curve, build_path

__all__ = [
    "Point",
    "lerp",
    "distance",
    "SeededRandom",
    "XorShift32",
    "Mulberry32",
    "create_rng",
    "sample_curve",
    "build_path",
]
