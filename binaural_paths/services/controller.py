"""
binaural_paths/services/controller.py

Evolution driver.

The driver owns one run end to end:
1. Seeds a population (generation 0)
2. Evaluates every genome against the speaker field
3. Tracks the best-ever path and notifies listeners
4. Breeds the next generation until the budget is spent

Each call to step() is one complete generation. The host decides the
cadence: call it in a tight loop for batch work, or once per frame to
animate intermediate results.
"""

from __future__ import annotations

import json
import logging
import time
from dataclasses import dataclass, replace
from enum import Enum
from pathlib import Path
from typing import Any, Callable, Dict, Iterator, List, Optional, Tuple, Union

import numpy as np
import yaml

from binaural_paths.core.curve import sample_curve
from binaural_paths.core.geometry import Point
from binaural_paths.environments.speaker_field import SpeakerField, TargetMode
from binaural_paths.evolution.algorithms import (
    EvolutionaryAlgorithm,
    EvolutionConfig,
    create_algorithm,
)
from binaural_paths.evolution.fitness import PathFitness
from binaural_paths.evolution.genome import PathGenome

logger = logging.getLogger(__name__)

BestUpdatedCallback = Callable[[np.ndarray, np.ndarray], None]
GenerationCallback = Callable[[int, float], None]
ConvergedCallback = Callable[[np.ndarray, float], None]


class DriverState(Enum):
    """Lifecycle of a run."""
    IDLE = "idle"
    SEEDING = "seeding"
    EVALUATING = "evaluating"
    BREEDING = "breeding"
    CONVERGED = "converged"


@dataclass
class BestPath:
    """A render-ready best path: dense samples plus left/right balance."""
    points: np.ndarray      # (n, 2)
    balance: np.ndarray     # (n, 2), rows sum to 1
    fitness: float
    generation: int
    genome: PathGenome

    def to_dict(self) -> Dict[str, Any]:
        return {
            "points": self.points.tolist(),
            "balance": self.balance.tolist(),
            "fitness": self.fitness,
            "generation": self.generation,
            "genome": self.genome.to_dict(),
        }


def load_config(path: Union[str, Path]) -> Tuple[EvolutionConfig, SpeakerField, TargetMode]:
    """
    Load a run description from YAML.

    Expected top-level keys (all optional):
        evolution: EvolutionConfig fields
        world: start / goal / left / right as [x, y], epsilon, min_separation
        target_mode: either | left | right
    """
    with open(path) as f:
        data = yaml.safe_load(f) or {}

    config = EvolutionConfig.from_dict(data.get("evolution") or {})
    world = SpeakerField.from_dict(data.get("world") or {})
    mode = TargetMode.parse(data.get("target_mode") or TargetMode.EITHER)

    logger.info(f"Loaded run config from {path}")
    return config, world, mode


class EvolutionDriver:
    """
    Driver for one evolutionary path search at a time.

    All run state (random stream, population, best-ever) lives on the
    instance; independent drivers never share anything mutable.
    """

    def __init__(
        self,
        world: Optional[SpeakerField] = None,
        config: Optional[EvolutionConfig] = None,
        target_mode: Union[str, TargetMode] = TargetMode.EITHER,
    ):
        self.world = world or SpeakerField.default()
        self.config = config
        self.target_mode = TargetMode.parse(target_mode)

        self.state = DriverState.IDLE
        self.algorithm: Optional[EvolutionaryAlgorithm] = None
        self.fitness: Optional[PathFitness] = None
        self.history: List[Dict[str, Any]] = []
        self.converged = False
        self.start_time: Optional[float] = None

        self._best_updated_callbacks: List[BestUpdatedCallback] = []
        self._generation_callbacks: List[GenerationCallback] = []
        self._converged_callbacks: List[ConvergedCallback] = []

    @classmethod
    def from_config_file(cls, path: Union[str, Path]) -> "EvolutionDriver":
        config, world, mode = load_config(path)
        return cls(world=world, config=config, target_mode=mode)

    # ---- listeners ----

    def on_best_updated(self, callback: BestUpdatedCallback) -> None:
        """callback(sampled_path, per_point_balance) on every new best-ever."""
        self._best_updated_callbacks.append(callback)

    def on_generation_advanced(self, callback: GenerationCallback) -> None:
        """callback(generation_index, best_fitness) after every generation."""
        self._generation_callbacks.append(callback)

    def on_converged(self, callback: ConvergedCallback) -> None:
        """callback(final_best_path, final_best_fitness) once per finished run."""
        self._converged_callbacks.append(callback)

    # ---- run control ----

    @property
    def running(self) -> bool:
        return self.state is not DriverState.IDLE

    @property
    def generation(self) -> int:
        return self.algorithm.generation if self.algorithm is not None else 0

    def start_evolution(
        self,
        config: Optional[EvolutionConfig] = None,
        target_mode: Union[str, TargetMode, None] = None,
        seed: Optional[int] = None,
    ) -> None:
        """
        Begin a run.

        Args:
            config: Run parameters (default: previous config, else defaults)
            target_mode: Which speaker to favour (default: previous mode)
            seed: Override config.seed for this run

        Raises:
            ConfigurationError: If the config is invalid
            RuntimeError: If a run is already in progress
        """
        if self.running:
            raise RuntimeError("An evolution run is already in progress")

        config = config or self.config or EvolutionConfig()
        if seed is not None:
            config = replace(config, seed=seed)
        config.validate()

        if target_mode is not None:
            self.target_mode = TargetMode.parse(target_mode)

        self.config = config
        self.algorithm = create_algorithm(config, self.world)
        self.fitness = PathFitness(
            mode=self.target_mode,
            sample_steps=config.sample_steps,
            length_weight=config.length_weight,
            goal_bonus=config.goal_bonus,
        )
        self.history = []
        self.converged = False
        self.start_time = time.time()
        self.state = DriverState.SEEDING

        logger.info(
            f"Starting {config.algorithm} evolution: "
            f"{config.population_size} genomes x {config.generations} generations, "
            f"mode={self.target_mode.value}, seed={config.seed}"
        )

    def step(self) -> bool:
        """
        Execute one generation.

        Seeds on the first call, breeds afterwards, then evaluates and
        notifies listeners. Returns True while more generations remain.
        """
        if not self.running:
            raise RuntimeError("No evolution in progress; call start_evolution() first")

        gen_start = time.time()

        genomes = self.algorithm.ask()

        self.state = DriverState.EVALUATING
        results = [self.fitness.evaluate(genome, self.world) for genome in genomes]
        improved = self.algorithm.tell(results)

        generation = self.algorithm.generation
        population_best = self.algorithm.population.best.fitness
        done = generation >= self.config.generations

        stats = {
            **self.algorithm.history[-1],
            "population_best": population_best,
            "generation_time": time.time() - gen_start,
        }
        self.history.append(stats)

        logger.info(
            f"Generation {generation}: "
            f"best fitness: {population_best:.4f}, "
            f"mean fitness: {stats['mean_fitness']:.4f}"
        )

        # State is final before any listener runs
        self.state = DriverState.CONVERGED if done else DriverState.BREEDING
        try:
            if improved:
                logger.debug(
                    f"Generation {generation}: new best {self.algorithm.best_fitness:.4f}"
                )
                self._notify_best_updated()

            for callback in self._generation_callbacks:
                callback(generation, population_best)
        finally:
            if done:
                self._converge()

        return not done

    def iter_generations(self) -> Iterator[Dict[str, Any]]:
        """Advance one generation per iteration, yielding its statistics."""
        while self.running:
            self.step()
            yield self.history[-1]

    def run(
        self,
        config: Optional[EvolutionConfig] = None,
        target_mode: Union[str, TargetMode, None] = None,
        seed: Optional[int] = None,
    ) -> Dict[str, Any]:
        """
        Run to convergence without yielding.

        Starts a new run unless one is already in progress.

        Returns:
            Final statistics
        """
        if not self.running:
            self.start_evolution(config, target_mode, seed)

        while self.step():
            pass

        return self.summary()

    def stop(self) -> None:
        """Abandon the current run; no converged notification is sent."""
        if self.running:
            logger.info(f"Stopping evolution at generation {self.generation}")
        self.state = DriverState.IDLE

    def _converge(self) -> None:
        self.state = DriverState.CONVERGED
        self.converged = True

        best = self.best_path()
        logger.info(
            f"Evolution complete: {self.generation} generations, "
            f"{self.algorithm.evaluations} evaluations, "
            f"best fitness: {best.fitness:.4f}"
        )

        try:
            for callback in self._converged_callbacks:
                callback(best.points, best.fitness)
        finally:
            self.state = DriverState.IDLE

    def _notify_best_updated(self) -> None:
        if not self._best_updated_callbacks:
            return
        best = self.best_path()
        for callback in self._best_updated_callbacks:
            callback(best.points, best.balance)

    # ---- world ----

    def reposition_sources(self, left: Point, right: Point) -> Tuple[Point, Point]:
        """
        Move the speakers, keeping the minimum separation.

        Returns the positions actually applied, which differ from the
        request when the right speaker had to be pushed away.
        """
        self.world = self.world.reposition_sources(left, right)
        if self.running:
            self.algorithm.set_world(self.world, self.fitness)
            logger.info(
                f"Speakers moved mid-run; best fitness re-scored to "
                f"{self.algorithm.best_fitness:.4f}"
            )
        return self.world.left.position, self.world.right.position

    # ---- results ----

    def get_best(self) -> Tuple[Optional[PathGenome], float]:
        """Return best-ever genome and its fitness."""
        if self.algorithm is None:
            return None, float("-inf")
        return self.algorithm.get_best()

    def best_path(self, steps: Optional[int] = None) -> Optional[BestPath]:
        """Dense samples and balance for the best-ever genome."""
        genome, fitness = self.get_best()
        if genome is None:
            return None

        steps = steps or self.config.render_steps
        points = sample_curve(genome.nodes(self.world), steps)
        return BestPath(
            points=points,
            balance=self.world.balance(points),
            fitness=fitness,
            generation=self.generation,
            genome=genome,
        )

    def get_status(self) -> Dict[str, Any]:
        """Get current driver status."""
        elapsed = 0.0
        if self.start_time:
            elapsed = time.time() - self.start_time

        _, best_fitness = self.get_best()
        return {
            "state": self.state.value,
            "running": self.running,
            "converged": self.converged,
            "generation": self.generation,
            "total_evaluations": self.algorithm.evaluations if self.algorithm else 0,
            "best_fitness": best_fitness,
            "target_mode": self.target_mode.value,
            "elapsed_time": elapsed,
        }

    def summary(self) -> Dict[str, Any]:
        """Final (or current) run statistics."""
        best_genome, best_fitness = self.get_best()
        return {
            "total_generations": self.generation,
            "total_evaluations": self.algorithm.evaluations if self.algorithm else 0,
            "best_fitness": best_fitness,
            "best_genome": best_genome.to_dict() if best_genome else None,
            "algorithm": self.config.algorithm if self.config else None,
            "target_mode": self.target_mode.value,
            "converged": self.converged,
        }

    def save_summary(self, path: Union[str, Path]) -> None:
        """Write config, world, history and best genome to a JSON file."""
        report = {
            **self.summary(),
            "config": self.config.to_dict() if self.config else None,
            "world": self.world.to_dict(),
            "history": self.history,
        }

        with open(path, "w") as f:
            json.dump(report, f, indent=2)

        logger.info(f"Run summary saved to {path}")
