"""
binaural_paths/evolution/genome.py

Genome representation for path evolution.

A genome is the handful of control points a path bends through.
The genome is the genotype; the sampled curve is the phenotype.
The endpoints A and B belong to the world, never to the genome.
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Any, Dict, Sequence, Tuple
import numpy as np

from binaural_paths.core.geometry import Point, points_to_array
from binaural_paths.core.rng import SeededRandom
from binaural_paths.environments.speaker_field import SpeakerField

UNEVALUATED = float("-inf")


@dataclass
class PathGenome:
    """
    Fixed-length list of control points plus a cached fitness.

    Control points are immutable Points held in a tuple; only
    `fitness` is ever written after construction.
    """

    control_points: Tuple[Point, ...]
    fitness: float = UNEVALUATED

    def __post_init__(self):
        self.control_points = tuple(
            p if isinstance(p, Point) else Point.from_array(p)
            for p in self.control_points
        )

    def __len__(self) -> int:
        return len(self.control_points)

    @property
    def evaluated(self) -> bool:
        return self.fitness != UNEVALUATED

    def copy(self) -> "PathGenome":
        """Copy by value, fitness included."""
        return PathGenome(self.control_points, self.fitness)

    def nodes(self, world: SpeakerField) -> Tuple[Point, ...]:
        """Full node list [A, *controls, B]."""
        return (world.start, *self.control_points, world.goal)

    def to_array(self) -> np.ndarray:
        return points_to_array(self.control_points)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": "PathGenome",
            "control_points": [list(p.to_tuple()) for p in self.control_points],
            "fitness": self.fitness,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PathGenome":
        return cls(
            control_points=tuple(Point.from_array(p) for p in data["control_points"]),
            fitness=float(data.get("fitness", UNEVALUATED)),
        )

    def mutate(
        self,
        rng: SeededRandom,
        probability: float = 0.25,
        scale: float = 4.0,
        secondary_ratio: float = 0.8,
    ) -> "PathGenome":
        """
        Box mutation on a copy.

        Each control point is nudged with the given probability by a
        uniform offset in [-scale, scale) on x and a narrower one on y.
        """
        points = []
        for p in self.control_points:
            if rng.chance(probability):
                dx = rng.signed() * scale
                dy = rng.signed() * scale * secondary_ratio
                p = Point(p.x + dx, p.y + dy)
            points.append(p)
        return PathGenome(tuple(points), self.fitness)

    @classmethod
    def random(
        cls,
        rng: SeededRandom,
        world: SpeakerField,
        count: int = 4,
        spread: Sequence[float] = (8.0, 6.0),
    ) -> "PathGenome":
        """
        Control points scattered around the straight line from A to B.

        Point i sits at fraction (i + 1) / (count + 1) of the way,
        jittered uniformly by up to `spread` on each axis.
        """
        spread_x, spread_y = spread
        points = []
        for i in range(count):
            base = world.start.lerp(world.goal, (i + 1) / (count + 1))
            x = base.x + rng.signed() * spread_x
            y = base.y + rng.signed() * spread_y
            points.append(Point(x, y))
        return cls(tuple(points))


def crossover(
    parent1: PathGenome,
    parent2: PathGenome,
    rng: SeededRandom,
) -> PathGenome:
    """
    Blend crossover between two genomes.

    Every index picks a direction (parent1 -> parent2 or back) and a
    fraction, then interpolates the two parents' control points.
    """
    if len(parent1) != len(parent2):
        raise ValueError(
            f"Cannot crossover genomes of different length "
            f"({len(parent1)} vs {len(parent2)})"
        )

    points = []
    for a, b in zip(parent1.control_points, parent2.control_points):
        from_first = rng.chance(0.5)
        t = rng.next()
        points.append(a.lerp(b, t) if from_first else b.lerp(a, t))
    return PathGenome(tuple(points))
