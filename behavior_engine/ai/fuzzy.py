"""Membership functions and winner-take-all fuzzy rules.

Each rule ANDs its conditions with ``min``; a condition is the membership of
one factor variable in a named function, optionally negated (``1 - mu``).
The rule fires at ``strength * weight * conclusion.confidence`` and the
single strongest rule wins.  Ties go to the first registered rule, and a
winning confidence of zero is no proposal at all.

The evaluator is stateless: the same factors always give the same answer.
"""

from __future__ import annotations

import math
from typing import TYPE_CHECKING, Annotated, Callable, Iterable, Literal, Mapping, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from behavior_engine.ai.rules import parse_state
from behavior_engine.core.enums import BehaviorState

if TYPE_CHECKING:
    from behavior_engine.core.models import DecisionFactors


# ---------------------------------------------------------------------------
# Membership functions
# ---------------------------------------------------------------------------

class _Shape(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    def membership(self, x: float) -> float:
        raise NotImplementedError


class Triangular(_Shape):
    """Peak of 1 at *peak*, linear ramps to 0 at *low* and *high*.

    A shoulder (``low == peak`` or ``peak == high``) still gives 1 at the peak.
    """

    shape: Literal["triangular"] = "triangular"
    low: float
    peak: float
    high: float

    @model_validator(mode="after")
    def check_geometry(self) -> Triangular:
        if not self.low <= self.peak <= self.high or self.low == self.high:
            raise ValueError(f"triangular needs low <= peak <= high and low < high, got "
                             f"({self.low}, {self.peak}, {self.high})")
        return self

    def membership(self, x: float) -> float:
        if x == self.peak:
            return 1.0
        if x <= self.low or x >= self.high:
            return 0.0
        if x < self.peak:
            return (x - self.low) / (self.peak - self.low)
        return (self.high - x) / (self.high - self.peak)


class Trapezoidal(_Shape):
    """Flat top of 1 between *low_peak* and *high_peak*."""

    shape: Literal["trapezoidal"] = "trapezoidal"
    low: float
    low_peak: float
    high_peak: float
    high: float

    @model_validator(mode="after")
    def check_geometry(self) -> Trapezoidal:
        if not self.low <= self.low_peak <= self.high_peak <= self.high:
            raise ValueError(f"trapezoidal needs low <= low_peak <= high_peak <= high, got "
                             f"({self.low}, {self.low_peak}, {self.high_peak}, {self.high})")
        return self

    def membership(self, x: float) -> float:
        if self.low_peak <= x <= self.high_peak:
            return 1.0
        if x <= self.low or x >= self.high:
            return 0.0
        if x < self.low_peak:
            return (x - self.low) / (self.low_peak - self.low)
        return (self.high - x) / (self.high - self.high_peak)


class Gaussian(_Shape):
    shape: Literal["gaussian"] = "gaussian"
    center: float
    width: float = Field(gt=0.0)

    def membership(self, x: float) -> float:
        if math.isinf(x):
            return 0.0
        z = (x - self.center) / self.width
        return math.exp(-0.5 * z * z)


MembershipFunction = Annotated[Union[Triangular, Trapezoidal, Gaussian], Field(discriminator="shape")]


# ---------------------------------------------------------------------------
# Rules
# ---------------------------------------------------------------------------

# Fuzzy variable name -> DecisionFactors accessor
FUZZY_VARIABLES: dict[str, Callable[[DecisionFactors], float]] = {
    "health": lambda f: f.health_percentage,
    "distance": lambda f: f.distance_to_target,
    "threat": lambda f: f.current_threat_level,
    "energy": lambda f: f.energy_level,
    "enemies": lambda f: float(f.number_of_enemies),
    "allies": lambda f: float(f.number_of_allies),
    "time_in_state": lambda f: f.time_since_last_action,
}


class FuzzyCondition(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    variable: str
    membership_function: str
    negated: bool = False

    @field_validator("variable")
    @classmethod
    def check_variable(cls, name: str) -> str:
        if name not in FUZZY_VARIABLES:
            raise ValueError(f"unknown fuzzy variable {name!r}")
        return name


class FuzzyConclusion(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    state: BehaviorState
    confidence: float = Field(ge=0.0, le=1.0)

    @field_validator("state", mode="before")
    @classmethod
    def coerce_state(cls, value: object) -> object:
        return parse_state(value)


class FuzzyRule(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    conditions: tuple[FuzzyCondition, ...] = Field(min_length=1)
    conclusion: FuzzyConclusion
    weight: float = Field(default=1.0, ge=0.0)
    name: str = ""


class FuzzyEvaluator:
    """Stateless winner-take-all fuzzy inference over DecisionFactors."""

    __slots__ = ("_functions", "_rules")

    def __init__(self, functions: Mapping[str, MembershipFunction], rules: Iterable[FuzzyRule]) -> None:
        self._functions: dict[str, MembershipFunction] = dict(functions)
        self._rules: tuple[FuzzyRule, ...] = tuple(rules)
        for rule in self._rules:
            for cond in rule.conditions:
                if cond.membership_function not in self._functions:
                    raise ValueError(
                        f"fuzzy rule {rule.name or rule.conclusion.state.name!r} references "
                        f"undefined membership function {cond.membership_function!r}")

    @classmethod
    def default(cls) -> FuzzyEvaluator:
        return cls(default_membership_functions(), default_fuzzy_rules())

    @property
    def rules(self) -> tuple[FuzzyRule, ...]:
        return self._rules

    @property
    def functions(self) -> Mapping[str, MembershipFunction]:
        return self._functions

    def membership(self, function: str, value: float) -> float:
        return self._functions[function].membership(value)

    def rule_strength(self, rule: FuzzyRule, factors: DecisionFactors) -> float:
        strength = 1.0
        for cond in rule.conditions:
            mu = self.membership(cond.membership_function, FUZZY_VARIABLES[cond.variable](factors))
            if cond.negated:
                mu = 1.0 - mu
            strength = min(strength, mu)
        return strength

    def firing_strengths(self, factors: DecisionFactors) -> list[tuple[FuzzyRule, float]]:
        return [
            (rule, self.rule_strength(rule, factors) * rule.weight * rule.conclusion.confidence)
            for rule in self._rules
        ]

    def evaluate(self, factors: DecisionFactors) -> tuple[BehaviorState, float] | None:
        best_state: BehaviorState | None = None
        best = 0.0
        for rule, firing in self.firing_strengths(factors):
            if firing > best:
                best = firing
                best_state = rule.conclusion.state
        if best_state is None:
            return None
        return best_state, best


# ---------------------------------------------------------------------------
# Default table and rules
# ---------------------------------------------------------------------------

def default_membership_functions() -> dict[str, MembershipFunction]:
    return {
        "health_low": Triangular(low=0.0, peak=0.0, high=0.4),
        "health_medium": Triangular(low=0.2, peak=0.5, high=0.8),
        "health_high": Triangular(low=0.6, peak=1.0, high=1.0),
        "distance_close": Triangular(low=0.0, peak=0.0, high=3.0),
        "distance_medium": Triangular(low=2.0, peak=5.0, high=8.0),
        "distance_far": Triangular(low=6.0, peak=10.0, high=20.0),
        "threat_low": Triangular(low=0.0, peak=0.0, high=0.3),
        "threat_high": Triangular(low=0.5, peak=1.0, high=1.0),
    }


def default_fuzzy_rules() -> list[FuzzyRule]:
    def cond(variable: str, function: str) -> FuzzyCondition:
        return FuzzyCondition(variable=variable, membership_function=function)

    return [
        FuzzyRule(
            name="low_health_flee",
            conditions=(cond("health", "health_low"),),
            conclusion=FuzzyConclusion(state=BehaviorState.FLEE, confidence=0.9),
            weight=1.0,
        ),
        FuzzyRule(
            name="healthy_and_close_attack",
            conditions=(cond("health", "health_high"), cond("distance", "distance_close")),
            conclusion=FuzzyConclusion(state=BehaviorState.ATTACK, confidence=0.8),
            weight=0.9,
        ),
        FuzzyRule(
            name="threatened_at_range_hunt",
            conditions=(cond("distance", "distance_medium"), cond("threat", "threat_high")),
            conclusion=FuzzyConclusion(state=BehaviorState.HUNT, confidence=0.7),
            weight=0.8,
        ),
    ]
