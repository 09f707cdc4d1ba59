"""Interrupt policy — may a proposed state replace the running one right now?

Rules, in order:
  1. Nothing leaves DEAD and nothing re-enters the current state.
  2. A more urgent state (see ``BehaviorState.urgency``) always interrupts.
  3. Low-stakes states (IDLE, WANDER, PATROL) can always be interrupted.
  4. Target-bound states (HUNT, ATTACK) give way once their target is gone.
  5. Otherwise the running state must have lasted its minimum dwell time.

DEAD itself is never proposed; it is forced through ``AIRecord.force_dead``.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Mapping

from behavior_engine.core.enums import BehaviorState

if TYPE_CHECKING:
    from behavior_engine.core.models import AIRecord

logger = logging.getLogger(__name__)

FREELY_INTERRUPTIBLE: frozenset[BehaviorState] = frozenset({
    BehaviorState.IDLE,
    BehaviorState.WANDER,
    BehaviorState.PATROL,
})

TARGET_BOUND: frozenset[BehaviorState] = frozenset({BehaviorState.HUNT, BehaviorState.ATTACK})


class InterruptPolicy:
    """State-pair interrupt rules backed by per-state minimum dwell times."""

    __slots__ = ("_min_dwell",)

    def __init__(self, min_dwell: Mapping[BehaviorState, float] | None = None) -> None:
        self._min_dwell: dict[BehaviorState, float] = dict(min_dwell or {})

    def min_dwell(self, state: BehaviorState) -> float:
        return self._min_dwell.get(state, 0.0)

    def can_interrupt(
        self,
        current: BehaviorState,
        state_timer: float,
        new_state: BehaviorState,
        target_lost: bool = False,
    ) -> bool:
        if current is BehaviorState.DEAD or new_state is BehaviorState.DEAD:
            return False
        if new_state == current:
            return False
        if new_state.urgency > current.urgency:
            return True
        if current in FREELY_INTERRUPTIBLE:
            return True
        if target_lost and current in TARGET_BOUND:
            return True
        return state_timer >= self.min_dwell(current)

    def apply(self, record: AIRecord, new_state: BehaviorState | None, target_lost: bool = False) -> bool:
        """Transition *record* to *new_state* if allowed.  Returns True on a change."""
        if new_state is None:
            return False
        if not self.can_interrupt(record.current_state, record.state_timer, new_state, target_lost):
            if new_state != record.current_state:
                logger.debug("Entity %d: %s -> %s rejected after %.2fs",
                             record.entity, record.current_state.name, new_state.name, record.state_timer)
            return False
        return record.change_state(new_state)
