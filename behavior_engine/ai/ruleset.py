"""Crisp rules, fuzzy table and fuzzy rules as plain data.

    cfg = RuleSetConfig.model_validate({
        "crisp": [{"from_state": "idle", "to_state": "hunt", "priority": 80,
                   "condition": {"kind": "flag", "factor": "has_line_of_sight"}}],
        "membership_functions": {"health_low": {"shape": "triangular", "low": 0, "peak": 0, "high": 0.4}},
        "fuzzy": [...],
    })
    crisp, fuzzy = cfg.build()

Validation errors surface as pydantic ``ValidationError`` (a ``ValueError``)
before any record is touched.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, model_validator

from behavior_engine.ai.fuzzy import (
    FuzzyEvaluator, FuzzyRule, MembershipFunction,
    default_fuzzy_rules, default_membership_functions,
)
from behavior_engine.ai.rules import TransitionRule, TransitionRules, default_transition_rules


class RuleSetConfig(BaseModel):
    """Serializable bundle of every rule the engine evaluates."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    crisp: tuple[TransitionRule, ...] = ()
    membership_functions: dict[str, MembershipFunction] = Field(default_factory=dict)
    fuzzy: tuple[FuzzyRule, ...] = ()

    @model_validator(mode="after")
    def check_references(self) -> RuleSetConfig:
        for rule in self.fuzzy:
            for cond in rule.conditions:
                if cond.membership_function not in self.membership_functions:
                    raise ValueError(
                        f"fuzzy rule {rule.name!r} references undefined membership "
                        f"function {cond.membership_function!r}")
        return self

    @classmethod
    def default(cls) -> RuleSetConfig:
        return cls(
            crisp=tuple(default_transition_rules()),
            membership_functions=default_membership_functions(),
            fuzzy=tuple(default_fuzzy_rules()),
        )

    def build(self) -> tuple[TransitionRules, FuzzyEvaluator]:
        return TransitionRules(self.crisp), FuzzyEvaluator(self.membership_functions, self.fuzzy)
