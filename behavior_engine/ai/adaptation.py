"""Per-entity adaptation — oscillation damping and effectiveness reweighting.

RuleAdaptation never rewrites a rule set.  It keeps two feedback tables:

  - confidence multipliers, keyed by the state a rule proposes (its bucket),
    which scale the confidence of crisp and fuzzy proposals;
  - decision weights per state, a soft preference signal for callers.

Damping only ever shrinks multipliers; reweighting nudges weights by at most
0.05 per pass and keeps them within [0.1, 1.0].
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Sequence

from behavior_engine.core.enums import BehaviorState

if TYPE_CHECKING:
    from behavior_engine.ai.history import DecisionRecord
    from behavior_engine.config import EngineConfig
    from behavior_engine.core.models import Personality

logger = logging.getLogger(__name__)

DEFAULT_DECISION_WEIGHTS: dict[BehaviorState, float] = {
    BehaviorState.FLEE: 1.0,
    BehaviorState.ATTACK: 0.8,
    BehaviorState.HUNT: 0.7,
    BehaviorState.SEARCH: 0.6,
    BehaviorState.GUARD: 0.5,
    BehaviorState.FOLLOW: 0.5,
    BehaviorState.PATROL: 0.4,
    BehaviorState.WANDER: 0.3,
    BehaviorState.IDLE: 0.1,
}

MIN_WEIGHT = 0.1
MAX_WEIGHT = 1.0
WEIGHT_STEP = 0.1
NEUTRAL_WEIGHT = 0.5


def personality_alignment(state: BehaviorState, personality: Personality) -> float:
    """How well *state* suits *personality*, in [0, 1]."""
    p = personality
    if state is BehaviorState.ATTACK:
        return p.aggression
    if state is BehaviorState.FLEE:
        return 1.0 - p.courage
    if state is BehaviorState.HUNT:
        return (p.aggression + p.alertness) / 2.0
    if state is BehaviorState.SEARCH:
        return (p.intelligence + p.curiosity) / 2.0
    if state in (BehaviorState.GUARD, BehaviorState.FOLLOW):
        return p.loyalty
    if state is BehaviorState.PATROL:
        return p.alertness
    if state is BehaviorState.WANDER:
        return p.curiosity
    return 0.5


def personality_modifier(state: BehaviorState, personality: Personality) -> float:
    """Multiplier in [0.5, 1.0] expressing how eager *personality* is for *state*."""
    p = personality
    if state is BehaviorState.ATTACK:
        return 0.5 + p.aggression * 0.5
    if state is BehaviorState.FLEE:
        return 0.5 + (1.0 - p.courage) * 0.5
    if state is BehaviorState.HUNT:
        return 0.5 + p.aggression * 0.3 + p.alertness * 0.2
    if state is BehaviorState.SEARCH:
        return 0.5 + p.intelligence * 0.3 + p.curiosity * 0.2
    if state in (BehaviorState.GUARD, BehaviorState.FOLLOW):
        return 0.5 + p.loyalty * 0.5
    if state is BehaviorState.PATROL:
        return 0.5 + p.alertness * 0.3
    if state is BehaviorState.WANDER:
        return 0.5 + p.curiosity * 0.5
    return 1.0


def count_state_changes(records: Sequence[DecisionRecord]) -> int:
    """Adjacent pairs whose decision differs."""
    return sum(1 for a, b in zip(records, records[1:]) if a.decision != b.decision)


class RuleAdaptation:
    """Adaptive feedback tables for one entity."""

    __slots__ = ("_config", "_multipliers", "_weights", "damping_passes")

    def __init__(self, config: EngineConfig) -> None:
        self._config = config
        self._multipliers: dict[BehaviorState, float] = {}
        self._weights: dict[BehaviorState, float] = dict(DEFAULT_DECISION_WEIGHTS)
        self.damping_passes: int = 0

    # -- reads --

    def multiplier(self, state: BehaviorState) -> float:
        return self._multipliers.get(state, 1.0)

    def decision_weight(self, state: BehaviorState) -> float:
        return self._weights.get(state, NEUTRAL_WEIGHT)

    def preference(self, state: BehaviorState, personality: Personality) -> float:
        """Soft preference signal: decision weight scaled by temperament."""
        return self.decision_weight(state) * personality_modifier(state, personality)

    @property
    def multipliers(self) -> dict[BehaviorState, float]:
        return {s: self.multiplier(s) for s in BehaviorState if s is not BehaviorState.DEAD}

    @property
    def weights(self) -> dict[BehaviorState, float]:
        return dict(self._weights)

    # -- oscillation damping --

    def damp_oscillation(self, recent: Sequence[DecisionRecord]) -> bool:
        """Decay every bucket's multiplier when *recent* flips state too often.

        *recent* is the trailing window, newest first.  Returns True when
        damping was applied.  Multipliers never increase here.
        """
        changes = count_state_changes(recent)
        if changes <= self._config.oscillation_threshold:
            return False
        decay = self._config.oscillation_decay
        floor = self._config.min_confidence_multiplier
        for state in BehaviorState:
            if state is BehaviorState.DEAD:
                continue
            current = self.multiplier(state)
            self._multipliers[state] = max(floor, current * decay) if current > floor else current
        self.damping_passes += 1
        logger.debug("Oscillation damped (%d changes in %d decisions), pass %d",
                     changes, len(recent), self.damping_passes)
        return True

    # -- effectiveness --

    def effectiveness(self, record: DecisionRecord, personality: Personality) -> float:
        score = 0.5
        score += (record.confidence - 0.5) * 0.2
        score += (personality_alignment(record.decision, personality) - 0.5) * 0.3
        if record.execution_time < self._config.fast_decision_seconds:
            score += 0.1
        elif record.execution_time > self._config.slow_decision_seconds:
            score -= 0.1
        return max(0.0, min(1.0, score))

    def reweight(self, recent: Sequence[DecisionRecord], personality: Personality) -> dict[BehaviorState, float]:
        """Adjust weights of states seen at least twice in *recent*.  Returns the changes."""
        outcomes: dict[BehaviorState, list[float]] = {}
        for record in recent:
            outcomes.setdefault(record.decision, []).append(self.effectiveness(record, personality))

        changed: dict[BehaviorState, float] = {}
        for state, scores in outcomes.items():
            if len(scores) < 2:
                continue
            average = sum(scores) / len(scores)
            weight = self.decision_weight(state) + (average - 0.5) * WEIGHT_STEP
            weight = max(MIN_WEIGHT, min(MAX_WEIGHT, weight))
            self._weights[state] = weight
            changed[state] = weight
        return changed

    # -- combined pass --

    def learn(self, history: Sequence[DecisionRecord], personality: Personality) -> None:
        """One learning pass over an entity's history (oldest first)."""
        if len(history) < self._config.min_history_for_learning:
            return
        window = list(history)[-self._config.oscillation_window:]
        window.reverse()
        self.damp_oscillation(window)
        self.reweight(window, personality)

    def reset(self) -> None:
        self._multipliers.clear()
        self._weights = dict(DEFAULT_DECISION_WEIGHTS)
        self.damping_passes = 0
