"""Temporary, auditable adjustments to temperament.

Design:
  - Modifiers are lightweight dataclasses kept in an ordered list on the
    AIRecord; nothing mutates ``AIRecord.personality`` in place.
  - Each modifier targets one trait with a multiplier and an additive offset,
    and has a remaining duration in ticks (-1 = until removed).
  - The DecisionLoop ticks durations down and drops expired modifiers.
  - ``apply_modifiers`` folds the list over the base personality, in order,
    clamping each trait to [0, 1], right before factor sampling.
  - New families are added with factory functions below.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable

from behavior_engine.core.models import TRAIT_NAMES, Personality, clamp01


@dataclass(slots=True)
class PersonalityModifier:
    """One temporary adjustment to a single personality trait.

    The effective value is ``trait * multiplier + offset``.
    """

    trait: str
    remaining_ticks: int        # -1 = permanent until explicitly removed, >0 = timed
    source: str = ""            # Human-readable origin, e.g. "boss_phase_2"
    multiplier: float = 1.0
    offset: float = 0.0

    def __post_init__(self) -> None:
        if self.trait not in TRAIT_NAMES:
            raise ValueError(f"unknown personality trait {self.trait!r}")

    @property
    def expired(self) -> bool:
        return self.remaining_ticks == 0

    def tick(self) -> None:
        """Decrement remaining duration.  Does nothing if permanent (-1)."""
        if self.remaining_ticks > 0:
            self.remaining_ticks -= 1

    def apply(self, value: float) -> float:
        return value * self.multiplier + self.offset


def apply_modifiers(base: Personality, modifiers: Iterable[PersonalityModifier]) -> Personality:
    """Return *base* with every live modifier applied in list order."""
    values = {name: base.trait(name) for name in TRAIT_NAMES}
    touched = False
    for mod in modifiers:
        if mod.expired:
            continue
        values[mod.trait] = clamp01(mod.apply(values[mod.trait]))
        touched = True
    if not touched:
        return base
    return Personality(**values)


def tick_modifiers(modifiers: list[PersonalityModifier]) -> list[PersonalityModifier]:
    """Advance every modifier by one tick and return the expired ones (removed in place)."""
    expired: list[PersonalityModifier] = []
    for mod in modifiers:
        mod.tick()
        if mod.expired:
            expired.append(mod)
    if expired:
        modifiers[:] = [m for m in modifiers if not m.expired]
    return expired


# ---------------------------------------------------------------------------
# Factory helpers for common modifiers
# ---------------------------------------------------------------------------

def enrage(multiplier: float = 1.8, duration: int = 50, source: str = "enrage") -> list[PersonalityModifier]:
    """Aggression spike with reckless courage, as used for boss enrage phases."""
    return [
        PersonalityModifier("aggression", duration, source, multiplier=multiplier),
        PersonalityModifier("courage", duration, source, offset=0.3),
    ]


def panic(duration: int = 30, source: str = "panic") -> list[PersonalityModifier]:
    """Courage collapse, e.g. after the leader of a group dies."""
    return [
        PersonalityModifier("courage", duration, source, multiplier=0.3),
        PersonalityModifier("alertness", duration, source, offset=0.2),
    ]


def heightened_alert(duration: int = 40, source: str = "alarm") -> list[PersonalityModifier]:
    """Raised alertness after an alarm or a nearby disturbance."""
    return [PersonalityModifier("alertness", duration, source, multiplier=1.5, offset=0.1)]
