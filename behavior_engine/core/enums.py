"""Enumerations used throughout the engine."""

from __future__ import annotations

from enum import IntEnum, unique


@unique
class BehaviorState(IntEnum):
    """Finite-state-machine states for NPC behavior."""

    IDLE = 0
    PATROL = 1
    HUNT = 2
    ATTACK = 3
    FLEE = 4
    SEARCH = 5
    GUARD = 6
    FOLLOW = 7
    WANDER = 8
    DEAD = 9            # Terminal: nothing leaves this state

    @property
    def urgency(self) -> int:
        """Interrupt rank; a higher value may always displace a lower one."""
        return _URGENCY[self]

    @property
    def is_terminal(self) -> bool:
        return self is BehaviorState.DEAD


_URGENCY: dict[BehaviorState, int] = {
    BehaviorState.DEAD: 0,
    BehaviorState.IDLE: 1,
    BehaviorState.WANDER: 2,
    BehaviorState.PATROL: 3,
    BehaviorState.FOLLOW: 4,
    BehaviorState.GUARD: 5,
    BehaviorState.SEARCH: 6,
    BehaviorState.HUNT: 7,
    BehaviorState.ATTACK: 8,
    BehaviorState.FLEE: 9,
}


@unique
class TargetType(IntEnum):
    """How a candidate relates to the selecting entity."""

    PLAYER = 0
    ENEMY = 1
    NEUTRAL = 2
    ALLY = 3


@unique
class TargetSelectionStrategy(IntEnum):
    """Strategies the target selector can apply to a candidate list."""

    NEAREST = 0
    RANDOM = 1
    LAST_SEEN = 2
    HIGHEST_PRIORITY = 3
    WEAKEST = 4
    STRONGEST = 5
    MOST_THREATENING = 6


@unique
class IntentKind(IntEnum):
    """Movement/animation intents published for external collaborators."""

    HOLD = 0
    MOVE_TO = 1
    MOVE_AWAY = 2
    ENGAGE = 3


@unique
class Domain(IntEnum):
    """RNG domains for deterministic randomness isolation."""

    AI_DECISION = 0
    TARGET_SELECTION = 1
    WANDER = 2
    PATROL = 3
