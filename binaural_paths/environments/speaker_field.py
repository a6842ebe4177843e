"""
environments/speaker_field.py

A flat world with two speakers, a start and a goal.

The loudness model is a declared heuristic, not acoustics:
inverse-square falloff softened by a small offset so a listener
standing on a speaker does not blow up the sum.

Inspired by:
- Inverse-square point sources
- Stereo panning (left/right balance)
"""

from __future__ import annotations
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Dict, Tuple, Union
import logging
import numpy as np

from binaural_paths.core.geometry import Point

logger = logging.getLogger(__name__)

PointInput = Union[Point, np.ndarray]


class TargetMode(Enum):
    """Which speaker the walker is rewarded for staying close to."""
    EITHER = "either"   # Whichever is louder at each sample
    LEFT = "left"
    RIGHT = "right"

    @classmethod
    def parse(cls, value: Union[str, "TargetMode"]) -> "TargetMode":
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            raise ValueError(
                f"Unknown target mode: {value!r} "
                f"(choose from {[m.value for m in cls]})"
            ) from None


@dataclass(frozen=True)
class Source:
    """A fixed point emitter."""
    name: str
    position: Point
    power: float = 1.0


@dataclass(frozen=True)
class FieldConfig:
    """Configuration for the loudness field."""
    epsilon: float = 0.2          # Distance offset, keeps intensity finite
    min_separation: float = 2.0   # Closest the two speakers may sit


def _as_coords(points: PointInput) -> np.ndarray:
    if isinstance(points, Point):
        return points.to_array()
    return np.asarray(points, dtype=float)


@dataclass(frozen=True)
class SpeakerField:
    """
    World geometry: endpoints A and B plus the left and right speakers.

    Immutable; repositioning returns a new field. All point queries
    accept either a single Point / (2,) array or an (n, 2) array and
    answer with a scalar or an (n,) array accordingly.
    """

    start: Point
    goal: Point
    left: Source
    right: Source
    config: FieldConfig = field(default_factory=FieldConfig)

    @classmethod
    def default(cls) -> "SpeakerField":
        """The reference scene."""
        return cls(
            start=Point(-16.0, 10.0),
            goal=Point(16.0, -8.0),
            left=Source("left", Point(-10.0, -6.0)),
            right=Source("right", Point(12.0, 6.0)),
        )

    # ---- field model ----

    def intensity(self, points: PointInput, source: Source):
        """power / (distance + epsilon)^2"""
        coords = _as_coords(points)
        d = np.linalg.norm(coords - source.position.to_array(), axis=-1)
        return source.power / (d + self.config.epsilon) ** 2

    def intensities(self, points: PointInput) -> Tuple[Any, Any]:
        """Left and right intensity at the given point(s)."""
        return self.intensity(points, self.left), self.intensity(points, self.right)

    def balance(self, points: PointInput):
        """
        Normalized left/right share of loudness.

        Returns a (left, right) tuple for a single point, or an
        (n, 2) array for many. Shares lie in [0, 1] and sum to 1.
        """
        il, ir = self.intensities(points)
        # Far from both speakers the intensities underflow to 0
        total = np.maximum(il + ir, np.finfo(float).tiny)
        shares = np.stack([il / total, ir / total], axis=-1)
        if shares.ndim == 1:
            return float(shares[0]), float(shares[1])
        return shares

    def reward(self, points: PointInput, mode: TargetMode = TargetMode.EITHER):
        """Per-sample reward under the given targeting mode."""
        if mode is TargetMode.LEFT:
            return self.intensity(points, self.left)
        if mode is TargetMode.RIGHT:
            return self.intensity(points, self.right)
        il, ir = self.intensities(points)
        return np.maximum(il, ir)

    # ---- geometry updates ----

    @property
    def separation(self) -> float:
        return self.left.position.distance_to(self.right.position)

    def reposition_sources(self, left: Point, right: Point) -> "SpeakerField":
        """
        Move both speakers, keeping them at least min_separation apart.

        If the requested positions are too close the right speaker is
        pushed away from the left one along the x axis.
        """
        min_sep = self.config.min_separation
        if left.distance_to(right) < min_sep:
            direction = 1.0 if right.x >= left.x else -1.0
            clamped = Point(left.x + direction * min_sep, right.y)
            logger.debug(
                f"Speakers {left.distance_to(right):.3f} apart (< {min_sep}); "
                f"right moved from {right.to_tuple()} to {clamped.to_tuple()}"
            )
            right = clamped

        return replace(
            self,
            left=replace(self.left, position=left),
            right=replace(self.right, position=right),
        )

    # ---- serialization ----

    def to_dict(self) -> Dict[str, Any]:
        return {
            "start": list(self.start.to_tuple()),
            "goal": list(self.goal.to_tuple()),
            "left": list(self.left.position.to_tuple()),
            "right": list(self.right.position.to_tuple()),
            "left_power": self.left.power,
            "right_power": self.right.power,
            "epsilon": self.config.epsilon,
            "min_separation": self.config.min_separation,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SpeakerField":
        """Build a field; missing keys fall back to the reference scene."""
        base = cls.default()
        config = FieldConfig(
            epsilon=float(data.get("epsilon", base.config.epsilon)),
            min_separation=float(data.get("min_separation", base.config.min_separation)),
        )

        def point(key: str, fallback: Point) -> Point:
            return Point.from_array(data[key]) if key in data else fallback

        staged = cls(
            start=point("start", base.start),
            goal=point("goal", base.goal),
            left=Source("left", base.left.position, float(data.get("left_power", 1.0))),
            right=Source("right", base.right.position, float(data.get("right_power", 1.0))),
            config=config,
        )
        # Route through the clamp so loaded speakers honour min_separation
        return staged.reposition_sources(
            point("left", base.left.position),
            point("right", base.right.position),
        )

    def __repr__(self) -> str:
        return (
            f"SpeakerField(start={self.start.to_tuple()}, "
            f"goal={self.goal.to_tuple()}, "
            f"left={self.left.position.to_tuple()}, "
            f"right={self.right.position.to_tuple()})"
        )
