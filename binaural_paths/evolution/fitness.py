"""
binaural_paths/evolution/fitness.py

Fitness for candidate paths.

Fitness is what we optimize: how loud the walk is, minus how far it
wanders. The sum runs over a coarse sampling of the curve, since this
is the hot loop of every run.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, Dict
import numpy as np

from binaural_paths.core.curve import sample_curve
from binaural_paths.core.geometry import polyline_length
from binaural_paths.environments.speaker_field import SpeakerField, TargetMode

from .genome import PathGenome


@dataclass
class EvaluationResult:
    """
    Result of evaluating a genome.

    Carries the scalar fitness and the terms it was built from.
    """

    fitness: float
    reward_sum: float = 0.0
    length: float = 0.0
    length_penalty: float = 0.0
    goal_bonus: float = 0.0
    genome: PathGenome | None = None
    metadata: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        result = {
            "fitness": self.fitness,
            "reward_sum": self.reward_sum,
            "length": self.length,
            "length_penalty": self.length_penalty,
            "goal_bonus": self.goal_bonus,
            "metadata": self.metadata,
        }
        if self.genome is not None:
            result["genome"] = self.genome.to_dict()
        return result


class PathFitness:
    """
    Reward proximity to the speakers, penalize length.

        fitness = sum(reward) - length_weight * length / sample_steps + goal_bonus

    Every path reaches B by construction, so goal_bonus is a constant
    offset: it never changes the ranking, only the reported numbers.
    """

    def __init__(
        self,
        mode: TargetMode = TargetMode.EITHER,
        sample_steps: int = 80,
        length_weight: float = 0.25,
        goal_bonus: float = 1.0,
    ):
        if sample_steps < 2:
            raise ValueError(f"sample_steps must be >= 2, got {sample_steps}")
        self.mode = TargetMode.parse(mode)
        self.sample_steps = sample_steps
        self.length_weight = length_weight
        self.goal_bonus = goal_bonus

    def sample(self, genome: PathGenome, world: SpeakerField) -> np.ndarray:
        return sample_curve(genome.nodes(world), self.sample_steps)

    def evaluate(self, genome: PathGenome, world: SpeakerField) -> EvaluationResult:
        """Score a genome and cache the score on it."""
        points = self.sample(genome, world)

        reward_sum = float(np.sum(world.reward(points, self.mode)))
        length = polyline_length(points)
        penalty = self.length_weight * (length / self.sample_steps)
        fitness = reward_sum - penalty + self.goal_bonus

        genome.fitness = fitness
        return EvaluationResult(
            fitness=fitness,
            reward_sum=reward_sum,
            length=length,
            length_penalty=penalty,
            goal_bonus=self.goal_bonus,
            genome=genome,
            metadata={"mode": self.mode.value, "samples": self.sample_steps},
        )

    def score(self, genome: PathGenome, world: SpeakerField) -> float:
        return self.evaluate(genome, world).fitness
