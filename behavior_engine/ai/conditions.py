"""Tagged, serializable predicates over DecisionFactors.

Every condition is a frozen pydantic model carrying a ``kind`` tag, so a
rule set can be dumped with ``model_dump()`` and rebuilt with
``model_validate()``.  Conditions compose with ``&``, ``|`` and ``~``:

    cond = Flag(factor="has_line_of_sight") & Compare(factor="distance_to_target", op="<", value=10)
"""

from __future__ import annotations

import operator
from typing import TYPE_CHECKING, Annotated, Callable, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

from behavior_engine.core.models import BOOLEAN_FACTORS, NUMERIC_FACTORS, TRAIT_NAMES

if TYPE_CHECKING:
    from behavior_engine.core.models import DecisionFactors, Personality

Op = Literal["<", "<=", ">", ">=", "==", "!="]

_OPS: dict[str, Callable[[float, float], bool]] = {
    "<": operator.lt,
    "<=": operator.le,
    ">": operator.gt,
    ">=": operator.ge,
    "==": operator.eq,
    "!=": operator.ne,
}


class BaseCondition(BaseModel):
    """Common base: immutable, strict about unknown fields."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    def evaluate(self, factors: DecisionFactors, personality: Personality) -> bool:
        raise NotImplementedError

    def __and__(self, other: BaseCondition) -> AllOf:
        return AllOf(conditions=(self, other))

    def __or__(self, other: BaseCondition) -> AnyOf:
        return AnyOf(conditions=(self, other))

    def __invert__(self) -> Not:
        return Not(condition=self)


def _numeric_factor(name: str) -> str:
    if name not in NUMERIC_FACTORS:
        raise ValueError(f"unknown numeric factor {name!r}")
    return name


# ---------------------------------------------------------------------------
# Leaf conditions
# ---------------------------------------------------------------------------

class Compare(BaseCondition):
    """``factor <op> value``."""

    kind: Literal["compare"] = "compare"
    factor: str
    op: Op
    value: float

    @field_validator("factor")
    @classmethod
    def check_factor(cls, name: str) -> str:
        return _numeric_factor(name)

    def evaluate(self, factors: DecisionFactors, personality: Personality) -> bool:
        return _OPS[self.op](factors.value(self.factor), self.value)


class Flag(BaseCondition):
    """A boolean factor equals *expected*."""

    kind: Literal["flag"] = "flag"
    factor: str
    expected: bool = True

    @field_validator("factor")
    @classmethod
    def check_flag(cls, name: str) -> str:
        if name not in BOOLEAN_FACTORS:
            raise ValueError(f"unknown boolean factor {name!r}")
        return name

    def evaluate(self, factors: DecisionFactors, personality: Personality) -> bool:
        return bool(getattr(factors, self.factor)) is self.expected


class TraitThreshold(BaseCondition):
    """``factor <op> (trait or 1 - trait) * scale + offset``.

    Lets a rule's threshold follow the entity's personality, e.g. fleeing
    when health drops below half of ``1 - courage``.
    """

    kind: Literal["trait_threshold"] = "trait_threshold"
    factor: str
    op: Op
    trait: str
    invert: bool = False
    scale: float = 1.0
    offset: float = 0.0

    @field_validator("factor")
    @classmethod
    def check_factor(cls, name: str) -> str:
        return _numeric_factor(name)

    @field_validator("trait")
    @classmethod
    def check_trait(cls, name: str) -> str:
        if name not in TRAIT_NAMES:
            raise ValueError(f"unknown personality trait {name!r}")
        return name

    def threshold(self, personality: Personality) -> float:
        t = personality.trait(self.trait)
        if self.invert:
            t = 1.0 - t
        return t * self.scale + self.offset

    def evaluate(self, factors: DecisionFactors, personality: Personality) -> bool:
        return _OPS[self.op](factors.value(self.factor), self.threshold(personality))


class HasTarget(BaseCondition):
    kind: Literal["has_target"] = "has_target"

    def evaluate(self, factors: DecisionFactors, personality: Personality) -> bool:
        return factors.has_target


class NoTarget(BaseCondition):
    kind: Literal["no_target"] = "no_target"

    def evaluate(self, factors: DecisionFactors, personality: Personality) -> bool:
        return not factors.has_target


class Always(BaseCondition):
    kind: Literal["always"] = "always"

    def evaluate(self, factors: DecisionFactors, personality: Personality) -> bool:
        return True


class Never(BaseCondition):
    kind: Literal["never"] = "never"

    def evaluate(self, factors: DecisionFactors, personality: Personality) -> bool:
        return False


# ---------------------------------------------------------------------------
# Combinators
# ---------------------------------------------------------------------------

class AllOf(BaseCondition):
    kind: Literal["all"] = "all"
    conditions: tuple[Condition, ...]

    def evaluate(self, factors: DecisionFactors, personality: Personality) -> bool:
        return all(c.evaluate(factors, personality) for c in self.conditions)


class AnyOf(BaseCondition):
    kind: Literal["any"] = "any"
    conditions: tuple[Condition, ...]

    def evaluate(self, factors: DecisionFactors, personality: Personality) -> bool:
        return any(c.evaluate(factors, personality) for c in self.conditions)


class Not(BaseCondition):
    kind: Literal["not"] = "not"
    condition: Condition

    def evaluate(self, factors: DecisionFactors, personality: Personality) -> bool:
        return not self.condition.evaluate(factors, personality)


Condition = Annotated[
    Union[Compare, Flag, TraitThreshold, HasTarget, NoTarget, Always, Never, AllOf, AnyOf, Not],
    Field(discriminator="kind"),
]

for _model in (AllOf, AnyOf, Not):
    _model.model_rebuild()


# ---------------------------------------------------------------------------
# Shorthands used by the default rule set
# ---------------------------------------------------------------------------

def sees_target() -> Flag:
    return Flag(factor="has_line_of_sight")


def lost_sight() -> Flag:
    return Flag(factor="has_line_of_sight", expected=False)


def distance(op: Op, value: float) -> Compare:
    return Compare(factor="distance_to_target", op=op, value=value)


def health(op: Op, value: float) -> Compare:
    return Compare(factor="health_percentage", op=op, value=value)
