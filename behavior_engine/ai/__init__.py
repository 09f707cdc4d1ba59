"""AI layer: perception, rules, state machine, targeting and adaptation."""

from behavior_engine.ai.brain import AIBrain
from behavior_engine.ai.fuzzy import FuzzyEvaluator
from behavior_engine.ai.interrupts import InterruptPolicy
from behavior_engine.ai.perception import Perception
from behavior_engine.ai.rules import TransitionRule, TransitionRules
from behavior_engine.ai.targeting import TargetSelector, TargetSelectorConfig

__all__ = [
    "AIBrain",
    "FuzzyEvaluator",
    "InterruptPolicy",
    "Perception",
    "TargetSelector",
    "TargetSelectorConfig",
    "TransitionRule",
    "TransitionRules",
]
