"""Crisp transition rules — priority-ranked, first-registered wins ties.

A rule is data: ``(from_state, to_state, condition, priority)``.  The
evaluator filters rules by the current state and their condition and picks
the highest priority; among equal priorities the earliest registered rule
wins.  Nothing is proposed from DEAD.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Iterable, Iterator

from pydantic import BaseModel, ConfigDict, Field, field_validator

from behavior_engine.ai.conditions import (
    Condition, Flag, TraitThreshold, distance, health, lost_sight, sees_target,
)
from behavior_engine.core.enums import BehaviorState

if TYPE_CHECKING:
    from behavior_engine.core.models import DecisionFactors, Personality


def parse_state(value: object) -> object:
    """Accept ``"hunt"``/``"HUNT"`` as well as enum members and ints."""
    if isinstance(value, str):
        try:
            return BehaviorState[value.upper()]
        except KeyError:
            raise ValueError(f"unknown behavior state {value!r}") from None
    return value


class TransitionRule(BaseModel):
    """One crisp rule.  ``confidence`` is the rule's base confidence in [0, 1]."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    from_state: BehaviorState
    to_state: BehaviorState
    condition: Condition
    priority: int = Field(ge=0)
    confidence: float = Field(default=1.0, ge=0.0, le=1.0)
    name: str = ""

    @field_validator("from_state", "to_state", mode="before")
    @classmethod
    def coerce_state(cls, value: object) -> object:
        return parse_state(value)

    @field_validator("from_state")
    @classmethod
    def not_from_dead(cls, state: BehaviorState) -> BehaviorState:
        if state is BehaviorState.DEAD:
            raise ValueError("DEAD is terminal; no rule may leave it")
        return state

    @property
    def label(self) -> str:
        return self.name or f"{self.from_state.name}->{self.to_state.name}"

    def matches(self, current_state: BehaviorState, factors: DecisionFactors, personality: Personality) -> bool:
        return self.from_state == current_state and self.condition.evaluate(factors, personality)


class TransitionRules:
    """Ordered crisp rule set."""

    __slots__ = ("_rules",)

    def __init__(self, rules: Iterable[TransitionRule] = ()) -> None:
        self._rules: list[TransitionRule] = list(rules)

    @classmethod
    def default(cls) -> TransitionRules:
        return cls(default_transition_rules())

    def add_rule(self, rule: TransitionRule) -> None:
        self._rules.append(rule)

    def rules_from(self, state: BehaviorState) -> list[TransitionRule]:
        return [r for r in self._rules if r.from_state == state]

    def match(
        self,
        current_state: BehaviorState,
        factors: DecisionFactors,
        personality: Personality,
    ) -> TransitionRule | None:
        """Highest-priority matching rule; the first registered wins ties."""
        if current_state is BehaviorState.DEAD:
            return None
        best: TransitionRule | None = None
        for rule in self._rules:
            if rule.from_state != current_state:
                continue
            if best is not None and rule.priority <= best.priority:
                continue
            if rule.condition.evaluate(factors, personality):
                best = rule
        return best

    def evaluate(
        self,
        current_state: BehaviorState,
        factors: DecisionFactors,
        personality: Personality,
    ) -> BehaviorState | None:
        rule = self.match(current_state, factors, personality)
        return rule.to_state if rule is not None else None

    def __iter__(self) -> Iterator[TransitionRule]:
        return iter(self._rules)

    def __len__(self) -> int:
        return len(self._rules)


# ---------------------------------------------------------------------------
# Default policy
# ---------------------------------------------------------------------------

def _rule(from_state: BehaviorState, to_state: BehaviorState, condition, priority: int, name: str) -> TransitionRule:
    return TransitionRule(from_state=from_state, to_state=to_state,
                          condition=condition, priority=priority, name=name)


def default_transition_rules() -> list[TransitionRule]:
    """The stock rule set.  Thresholds are policy, not contract."""
    S = BehaviorState
    # Flee once health falls under half the personality's flee threshold.
    panic = TraitThreshold(factor="health_percentage", op="<", trait="courage",
                           invert=True, scale=0.5)
    spotted = sees_target() & distance("<", 10.0)

    return [
        _rule(S.IDLE, S.HUNT, spotted, 80, "idle_spot_target"),
        _rule(S.HUNT, S.ATTACK, distance("<=", 2.0), 90, "hunt_close_in"),
        _rule(S.ATTACK, S.FLEE, panic, 100, "attack_break_off"),
        _rule(S.HUNT, S.SEARCH, lost_sight() & distance(">", 15.0), 60, "hunt_lost_target"),
        _rule(S.HUNT, S.FLEE, panic, 100, "hunt_break_off"),
        _rule(S.PATROL, S.HUNT, spotted, 80, "patrol_spot_target"),
        _rule(S.WANDER, S.HUNT, spotted, 80, "wander_spot_target"),
        _rule(S.GUARD, S.HUNT, spotted, 80, "guard_spot_target"),
        _rule(S.SEARCH, S.HUNT, spotted, 70, "search_reacquire"),
        _rule(S.FLEE, S.HUNT,
              health(">", 0.5) & spotted & Flag(factor="is_outnumbered", expected=False),
              40, "flee_recovered"),
    ]
