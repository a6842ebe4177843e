"""
binaural_paths/services/

Run orchestration for path evolution.

Architecture:
- EvolutionDriver: Owns a run, steps generations, notifies listeners
- load_config: YAML run descriptions (evolution, world, target mode)

The driver has no rendering dependency. Hosts subscribe with
on_best_updated / on_generation_advanced / on_converged and decide
how often to call step().
"""

from .controller import (
    BestPath,
    DriverState,
    EvolutionDriver,
    load_config,
)

__all__ = [
    "BestPath",
    "DriverState",
    "EvolutionDriver",
    "load_config",
]
