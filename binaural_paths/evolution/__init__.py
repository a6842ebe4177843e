"""
binaural_paths/evolution/

Evolutionary search for paths between two speakers.

Key insight: evaluation dominates the cost.
- Generate candidates (seed or breed, cheap)
- Evaluate candidates (sample the curve, sum the field)
- Select and breed (cheap)

Algorithms:
- GeneticPathSearch: tournament selection, blend crossover, elitism
- RandomSearch: independent random candidates, for comparison
"""

from .algorithms import (
    ConfigurationError,
    EvolutionConfig,
    EvolutionaryAlgorithm,
    GeneticPathSearch,
    Population,
    RandomSearch,
    create_algorithm,
    tournament_select,
)
from .genome import PathGenome, crossover
from .fitness import EvaluationResult, PathFitness

__all__ = [
    "ConfigurationError",
    "EvolutionConfig",
    "EvolutionaryAlgorithm",
    "GeneticPathSearch",
    "Population",
    "RandomSearch",
    "create_algorithm",
    "tournament_select",
    "PathGenome",
    "crossover",
    "EvaluationResult",
    "PathFitness",
]
