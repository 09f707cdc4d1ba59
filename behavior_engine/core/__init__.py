"""Core data models and world representation."""

from behavior_engine.core.enums import BehaviorState, Domain, IntentKind, TargetSelectionStrategy, TargetType
from behavior_engine.core.models import AIMemory, AIRecord, DecisionFactors, Health, Personality, Vector2
from behavior_engine.core.snapshot import PerceptionMemory, PerceptionView, WorldSnapshot
from behavior_engine.core.world_state import WorldState

__all__ = [
    "AIMemory",
    "AIRecord",
    "BehaviorState",
    "DecisionFactors",
    "Domain",
    "Health",
    "IntentKind",
    "PerceptionMemory",
    "PerceptionView",
    "Personality",
    "TargetSelectionStrategy",
    "TargetType",
    "Vector2",
    "WorldSnapshot",
    "WorldState",
]
