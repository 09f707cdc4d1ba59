"""Adaptive NPC behavior decision engine."""

from behavior_engine.ai.brain import AIBrain, CycleResult
from behavior_engine.ai.history import DecisionJournal
from behavior_engine.ai.ruleset import RuleSetConfig
from behavior_engine.config import EngineConfig
from behavior_engine.core.enums import BehaviorState, TargetSelectionStrategy, TargetType
from behavior_engine.core.models import AIRecord, BehaviorParams, DecisionFactors, Personality, Vector2
from behavior_engine.core.snapshot import WorldSnapshot
from behavior_engine.core.world_state import WorldState
from behavior_engine.engine.decision_loop import DecisionLoop
from behavior_engine.systems.rng import DeterministicRNG

__all__ = [
    "AIBrain",
    "AIRecord",
    "BehaviorParams",
    "BehaviorState",
    "CycleResult",
    "DecisionFactors",
    "DecisionJournal",
    "DecisionLoop",
    "DeterministicRNG",
    "EngineConfig",
    "Personality",
    "RuleSetConfig",
    "TargetSelectionStrategy",
    "TargetType",
    "Vector2",
    "WorldSnapshot",
    "WorldState",
]
