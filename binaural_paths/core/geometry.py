"""
core/geometry.py

Planar point arithmetic.

Points are values: every operation returns a new Point,
so control points are never aliased across genomes.
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Iterable, Sequence
import math
import numpy as np


@dataclass(frozen=True)
class Point:
    """An immutable (x, y) position in the field plane."""
    x: float
    y: float

    def __add__(self, other: "Point") -> "Point":
        return Point(self.x + other.x, self.y + other.y)

    def __sub__(self, other: "Point") -> "Point":
        return Point(self.x - other.x, self.y - other.y)

    def __mul__(self, factor: float) -> "Point":
        return Point(self.x * factor, self.y * factor)

    __rmul__ = __mul__

    def distance_to(self, other: "Point") -> float:
        return math.hypot(self.x - other.x, self.y - other.y)

    def lerp(self, other: "Point", t: float) -> "Point":
        return Point(lerp(self.x, other.x, t), lerp(self.y, other.y, t))

    def to_array(self) -> np.ndarray:
        return np.array([self.x, self.y], dtype=float)

    def to_tuple(self) -> tuple:
        return (self.x, self.y)

    @classmethod
    def from_array(cls, values: Sequence[float]) -> "Point":
        if len(values) != 2:
            raise ValueError(f"Expected 2 coordinates, got {len(values)}")
        return cls(float(values[0]), float(values[1]))


def lerp(a: float, b: float, t: float) -> float:
    """Linear interpolation from a to b."""
    return a + (b - a) * t


def distance(a: Point, b: Point) -> float:
    """Euclidean distance between two points."""
    return a.distance_to(b)


def points_to_array(points: Iterable[Point]) -> np.ndarray:
    """Stack points into an (n, 2) float array."""
    return np.array([[p.x, p.y] for p in points], dtype=float).reshape(-1, 2)


def polyline_length(points: np.ndarray) -> float:
    """Sum of distances between consecutive rows of an (n, 2) array."""
    if len(points) < 2:
        return 0.0
    return float(np.linalg.norm(np.diff(points, axis=0), axis=1).sum())
