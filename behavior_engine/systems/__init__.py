"""Engine systems: deterministic RNG."""

from behavior_engine.systems.rng import DeterministicRNG

__all__ = ["DeterministicRNG"]
