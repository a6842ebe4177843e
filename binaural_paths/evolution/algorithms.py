"""
evolution/algorithms.py

Evolutionary search over path genomes.

The loop per generation:
- Ask for candidates (seed or breed, fast)
- Evaluate candidates (sample curve + field, the hot loop)
- Tell results back (sort, track the best)

Algorithms:
- GeneticPathSearch: tournament selection, blend crossover, box mutation, elitism
- RandomSearch: independent random candidates each generation (baseline)
"""

from __future__ import annotations
from dataclasses import asdict, dataclass, fields
from typing import Dict, List, Any, Optional, Sequence, Tuple, Type
from abc import ABC, abstractmethod
import logging
import numbers
import numpy as np

from binaural_paths.core.rng import RNG_REGISTRY, SeededRandom, create_rng
from binaural_paths.environments.speaker_field import SpeakerField

from .genome import PathGenome, crossover
from .fitness import EvaluationResult, PathFitness

logger = logging.getLogger(__name__)


class ConfigurationError(ValueError):
    """Raised when an EvolutionConfig holds an unusable value."""


@dataclass
class EvolutionConfig:
    """Configuration for path evolution."""
    population_size: int = 28
    control_points: int = 4             # Control points between A and B
    generations: int = 45               # Breeding rounds after generation 0
    mutation_probability: float = 0.25  # Per control point
    mutation_scale: float = 4.0         # Max offset on x
    secondary_axis_ratio: float = 0.8   # y offset = x offset * ratio
    crossover_probability: float = 0.8
    tournament_size: int = 3
    sample_steps: int = 80              # Curve samples for fitness
    render_steps: int = 180             # Curve samples handed to listeners
    initial_spread: Tuple[float, float] = (8.0, 6.0)
    length_weight: float = 0.25
    goal_bonus: float = 1.0
    seed: int = 12345
    rng: str = "xorshift32"
    algorithm: str = "genetic"          # "genetic" or "random"

    def validate(self) -> None:
        """Raise ConfigurationError on the first bad field."""
        def require_int(name: str, minimum: int) -> None:
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, numbers.Integral):
                raise ConfigurationError(f"{name} must be an integer, got {value!r}")
            if value < minimum:
                raise ConfigurationError(f"{name} must be >= {minimum}, got {value}")

        def require_probability(name: str) -> None:
            value = getattr(self, name)
            if not isinstance(value, numbers.Real) or not 0.0 <= value <= 1.0:
                raise ConfigurationError(f"{name} must lie in [0, 1], got {value!r}")

        def require_non_negative(name: str, value: Any) -> None:
            if not isinstance(value, numbers.Real) or not value >= 0.0:
                raise ConfigurationError(f"{name} must be >= 0, got {value!r}")

        require_int("population_size", 1)
        require_int("control_points", 1)
        require_int("generations", 0)
        require_int("tournament_size", 1)
        require_int("sample_steps", 2)
        require_int("render_steps", 2)
        require_int("seed", 0)
        require_probability("mutation_probability")
        require_probability("crossover_probability")
        require_non_negative("mutation_scale", self.mutation_scale)
        require_non_negative("secondary_axis_ratio", self.secondary_axis_ratio)
        require_non_negative("length_weight", self.length_weight)
        if not isinstance(self.goal_bonus, numbers.Real):
            raise ConfigurationError(f"goal_bonus must be a number, got {self.goal_bonus!r}")

        spread = self.initial_spread
        if isinstance(spread, str) or not isinstance(spread, Sequence) or len(spread) != 2:
            raise ConfigurationError(f"initial_spread needs 2 values, got {spread!r}")
        for value in spread:
            require_non_negative("initial_spread", value)

        if not isinstance(self.rng, str) or self.rng not in RNG_REGISTRY:
            raise ConfigurationError(
                f"Unknown rng: {self.rng!r} (choose from {sorted(RNG_REGISTRY)})"
            )
        if not isinstance(self.algorithm, str) or self.algorithm not in ALGORITHMS:
            raise ConfigurationError(
                f"Unknown algorithm: {self.algorithm!r} (choose from {sorted(ALGORITHMS)})"
            )

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["initial_spread"] = list(self.initial_spread)
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "EvolutionConfig":
        """Build a config, ignoring (and logging) unknown keys."""
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            logger.warning(f"Ignoring unknown evolution config keys: {unknown}")

        kwargs = {k: v for k, v in data.items() if k in known}
        if "initial_spread" in kwargs:
            kwargs["initial_spread"] = tuple(kwargs["initial_spread"])
        return cls(**kwargs)


@dataclass
class Population:
    """
    One generation of genomes.

    Replaced wholesale every generation; never edited in place
    apart from sorting after evaluation.
    """

    genomes: List[PathGenome]
    generation: int = 0

    def __len__(self) -> int:
        return len(self.genomes)

    def __iter__(self):
        return iter(self.genomes)

    @property
    def best(self) -> PathGenome:
        """Top genome; only meaningful after sort_by_fitness()."""
        return self.genomes[0]

    def sort_by_fitness(self) -> None:
        """Descending by fitness; ties keep their order."""
        self.genomes.sort(key=lambda g: g.fitness, reverse=True)

    def fitnesses(self) -> np.ndarray:
        return np.array([g.fitness for g in self.genomes])


def tournament_select(
    genomes: Sequence[PathGenome],
    k: int,
    rng: SeededRandom,
) -> PathGenome:
    """
    Pick the fittest of k uniform draws (with replacement).

    Ties go to the earliest draw. Returns a copy.
    """
    best: Optional[PathGenome] = None
    for _ in range(k):
        candidate = genomes[rng.integers(len(genomes))]
        if best is None or candidate.fitness > best.fitness:
            best = candidate
    return best.copy()


class EvolutionaryAlgorithm(ABC):
    """
    Abstract base for path search algorithms.

    Owns its random stream and population; nothing is shared
    between instances.
    """

    def __init__(self, config: EvolutionConfig, world: SpeakerField):
        self.config = config
        self.world = world
        self.rng = create_rng(config.rng, config.seed)
        self.population: Optional[Population] = None
        self.evaluations = 0
        self.history: List[Dict[str, Any]] = []

        self.best_genome: Optional[PathGenome] = None
        self.best_fitness = float('-inf')

    @property
    def generation(self) -> int:
        return self.population.generation if self.population is not None else 0

    def random_genome(self) -> PathGenome:
        return PathGenome.random(
            self.rng,
            self.world,
            count=self.config.control_points,
            spread=self.config.initial_spread,
        )

    @abstractmethod
    def ask(self) -> List[PathGenome]:
        """
        Produce the next generation for evaluation.

        The first call seeds generation 0.
        """
        pass

    def tell(self, results: List[EvaluationResult]) -> bool:
        """
        Receive evaluation results for the genomes from ask().

        Returns True if the best-ever genome improved.
        """
        if self.population is None:
            raise RuntimeError("tell() called before ask()")
        if len(results) != len(self.population):
            raise ValueError(
                f"Expected {len(self.population)} results, got {len(results)}"
            )

        for genome, result in zip(self.population.genomes, results):
            genome.fitness = result.fitness
        self.population.sort_by_fitness()

        top = self.population.best
        improved = top.fitness > self.best_fitness
        if improved:
            self.best_genome = top.copy()
            self.best_fitness = top.fitness

        fitnesses = self.population.fitnesses()
        self.evaluations += len(results)
        self.history.append({
            'generation': self.generation,
            'mean_fitness': float(fitnesses.mean()),
            'max_fitness': float(fitnesses.max()),
            'min_fitness': float(fitnesses.min()),
            'best_overall': self.best_fitness,
        })
        return improved

    def get_best(self) -> Tuple[Optional[PathGenome], float]:
        """Return best-ever genome and its fitness."""
        return self.best_genome, self.best_fitness

    def set_world(self, world: SpeakerField, fitness: PathFitness) -> None:
        """
        Swap the world mid-run.

        The best-ever genome is re-scored so later comparisons are made
        against the same field. The current population keeps its old
        scores until the next evaluation.
        """
        self.world = world
        if self.best_genome is not None:
            self.best_fitness = fitness.score(self.best_genome, world)

    def get_statistics(self) -> Dict[str, Any]:
        """Get current algorithm statistics."""
        return {
            'generation': self.generation,
            'evaluations': self.evaluations,
            'algorithm': self.__class__.__name__,
            'best_fitness': self.best_fitness,
        }


class GeneticPathSearch(EvolutionaryAlgorithm):
    """
    Generational GA with single elitism.

    Each new generation starts with an unmodified copy of the
    previous best, then fills up with children: two tournament
    winners are blended (or one of them cloned), then mutated.
    """

    def ask(self) -> List[PathGenome]:
        if self.population is None:
            self.population = Population(
                [self.random_genome() for _ in range(self.config.population_size)],
                generation=0,
            )
        else:
            self.population = self._breed(self.population)
        return self.population.genomes

    def _breed(self, population: Population) -> Population:
        cfg = self.config
        rng = self.rng

        offspring = [population.best.copy()]
        while len(offspring) < cfg.population_size:
            p1 = tournament_select(population.genomes, cfg.tournament_size, rng)
            p2 = tournament_select(population.genomes, cfg.tournament_size, rng)

            if rng.chance(cfg.crossover_probability):
                child = crossover(p1, p2, rng)
            else:
                child = p1 if rng.chance(0.5) else p2

            child = child.mutate(
                rng,
                probability=cfg.mutation_probability,
                scale=cfg.mutation_scale,
                secondary_ratio=cfg.secondary_axis_ratio,
            )
            offspring.append(child)

        return Population(offspring, generation=population.generation + 1)

    def get_statistics(self) -> Dict[str, Any]:
        stats = super().get_statistics()
        stats.update({
            'mutation_probability': self.config.mutation_probability,
            'crossover_probability': self.config.crossover_probability,
            'tournament_size': self.config.tournament_size,
        })
        return stats


class RandomSearch(EvolutionaryAlgorithm):
    """
    Baseline: a fresh batch of random genomes every generation.

    Nothing is inherited; only the best-ever is remembered.
    Useful to see how much selection actually buys.
    """

    def ask(self) -> List[PathGenome]:
        generation = 0 if self.population is None else self.population.generation + 1
        self.population = Population(
            [self.random_genome() for _ in range(self.config.population_size)],
            generation=generation,
        )
        return self.population.genomes


ALGORITHMS: Dict[str, Type[EvolutionaryAlgorithm]] = {
    "genetic": GeneticPathSearch,
    "random": RandomSearch,
}


def create_algorithm(config: EvolutionConfig, world: SpeakerField) -> EvolutionaryAlgorithm:
    """Create the algorithm named by config.algorithm."""
    try:
        algorithm_cls = ALGORITHMS[config.algorithm]
    except KeyError:
        raise ConfigurationError(f"Unknown algorithm: {config.algorithm}") from None
    return algorithm_cls(config, world)
