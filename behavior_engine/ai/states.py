"""Per-state behavior handlers — class-based, registered by BehaviorState.

Architecture:
  - AIContext bundles everything a handler may read (record, position,
    snapshot, config, rng, clock).  Adding context means extending AIContext,
    not every handler signature.
  - Each handler implements ``handle`` and returns a StateOutcome: an optional
    proposed next state, a movement intent for the external movement system,
    and whether the current target proved stale.
  - Proposals go through the InterruptPolicy like any other; handlers never
    assign ``current_state`` themselves.
  - Handlers may update the record's memory and per-state bookkeeping.

State machine (handler-driven exits; crisp/fuzzy rules add more):
  IDLE   → PATROL (timeout, has route) | WANDER (timeout, curious)
  PATROL → IDLE (no route)
  HUNT   → ATTACK (in range) | SEARCH (lost / timed out) | PATROL/IDLE (no target)
  ATTACK → HUNT (out of range) | SEARCH (target gone) | IDLE (no target, no memory)
  FLEE   → SEARCH (safe and healthy enough)
  SEARCH → PATROL/IDLE (gave up)
  GUARD  → PATROL (no post)
  FOLLOW → IDLE (no leader)
  WANDER → PATROL (leg over, has route, not curious)
  DEAD   → (nothing)
"""

from __future__ import annotations

import math
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from behavior_engine.ai.perception import Perception
from behavior_engine.core.enums import BehaviorState, Domain, IntentKind
from behavior_engine.core.models import HOLD, NO_TARGET_DISTANCE, MovementIntent, Vector2

if TYPE_CHECKING:
    from behavior_engine.config import EngineConfig
    from behavior_engine.core.models import AIRecord, Personality
    from behavior_engine.core.snapshot import WorldSnapshot
    from behavior_engine.systems.rng import DeterministicRNG


# =====================================================================
# AI Context: single object passed to every handler
# =====================================================================

@dataclass(slots=True)
class AIContext:
    """All data a state handler might need."""

    record: AIRecord
    position: Vector2
    snapshot: WorldSnapshot
    config: EngineConfig
    rng: DeterministicRNG
    personality: Personality
    now: float
    tick: int
    dt: float
    hostiles: list[int] = field(default_factory=list)

    @property
    def health_ratio(self) -> float:
        hp = self.snapshot.health_of(self.record.entity)
        return hp.ratio if hp is not None else 0.0

    def target_position(self) -> Vector2 | None:
        target = self.record.current_target
        if not self.snapshot.exists(target):
            return None
        return self.snapshot.positions[target]

    def nearest_threat(self) -> tuple[int, float] | None:
        return Perception.nearest(self.position, self.hostiles, self.snapshot)


@dataclass(frozen=True, slots=True)
class StateOutcome:
    next_state: BehaviorState | None = None
    intent: MovementIntent = HOLD
    clear_target: bool = False


STAY = StateOutcome()


def _move_to(destination: Vector2, reason: str, target: int | None = None) -> MovementIntent:
    return MovementIntent(IntentKind.MOVE_TO, destination=destination, target=target, reason=reason)


def _fallback_roam(ctx: AIContext) -> BehaviorState:
    """Where an entity with nothing to do goes."""
    return BehaviorState.PATROL if ctx.record.params.patrol_points else BehaviorState.IDLE


# =====================================================================
# Base handler
# =====================================================================

class StateHandler(ABC):
    """Abstract base for state handlers.

    Subclass and implement ``handle`` to define behaviour for a BehaviorState.
    """

    @abstractmethod
    def handle(self, ctx: AIContext) -> StateOutcome:
        ...


# =====================================================================
# Handler implementations
# =====================================================================

class IdleHandler(StateHandler):
    def handle(self, ctx: AIContext) -> StateOutcome:
        record = ctx.record
        if record.state_timer < record.params.idle_timeout:
            return STAY
        if record.params.patrol_points:
            return StateOutcome(BehaviorState.PATROL)
        if ctx.personality.curiosity > 0.5:
            return StateOutcome(BehaviorState.WANDER)
        return STAY


class PatrolHandler(StateHandler):
    def handle(self, ctx: AIContext) -> StateOutcome:
        params, memory = ctx.record.params, ctx.record.memory
        points = params.patrol_points
        if not points:
            return StateOutcome(BehaviorState.IDLE)

        memory.patrol_index %= len(points)
        memory.patrol_leg_time += ctx.dt
        if memory.patrol_leg_time >= params.patrol_leg_seconds:
            memory.patrol_index = (memory.patrol_index + 1) % len(points)
            memory.patrol_leg_time = 0.0
        return StateOutcome(intent=_move_to(points[memory.patrol_index], "Patrolling"))


class HuntHandler(StateHandler):
    def handle(self, ctx: AIContext) -> StateOutcome:
        record = ctx.record
        target = record.current_target
        if target is None:
            if record.memory.last_known_target_position is not None:
                return StateOutcome(BehaviorState.SEARCH)
            return StateOutcome(_fallback_roam(ctx))

        target_pos = ctx.target_position()
        if target_pos is None:
            return StateOutcome(BehaviorState.SEARCH, clear_target=True)

        record.memory.remember_target_position(target_pos, ctx.now)
        if ctx.position.distance(target_pos) <= record.params.attack_range:
            return StateOutcome(BehaviorState.ATTACK,
                                MovementIntent(IntentKind.ENGAGE, target_pos, target, "In range"))
        if record.state_timer >= record.params.hunt_timeout:
            return StateOutcome(BehaviorState.SEARCH)
        return StateOutcome(intent=_move_to(target_pos, f"Hunting {target}", target))


class AttackHandler(StateHandler):
    def handle(self, ctx: AIContext) -> StateOutcome:
        record = ctx.record
        target = record.current_target
        if target is None:
            if record.memory.last_known_target_position is not None:
                return StateOutcome(BehaviorState.SEARCH)
            return StateOutcome(BehaviorState.IDLE)

        target_pos = ctx.target_position()
        if target_pos is None:
            return StateOutcome(BehaviorState.SEARCH, clear_target=True)

        record.memory.remember_target_position(target_pos, ctx.now)
        if ctx.position.distance(target_pos) > record.params.attack_range:
            return StateOutcome(BehaviorState.HUNT, _move_to(target_pos, "Target out of range", target))
        return StateOutcome(intent=MovementIntent(IntentKind.ENGAGE, target_pos, target, f"Attacking {target}"))


class FleeHandler(StateHandler):
    def handle(self, ctx: AIContext) -> StateOutcome:
        params = ctx.record.params
        threat = ctx.nearest_threat()
        threat_distance = threat[1] if threat is not None else NO_TARGET_DISTANCE

        if threat_distance > params.flee_distance and ctx.health_ratio > ctx.personality.flee_threshold:
            return StateOutcome(BehaviorState.SEARCH)
        if threat is None:
            return STAY

        threat_pos = ctx.snapshot.positions[threat[0]]
        destination = Perception.point_away_from(ctx.position, threat_pos, params.flee_distance)
        return StateOutcome(intent=MovementIntent(
            IntentKind.MOVE_AWAY, destination, threat[0], f"Fleeing from {threat[0]}"))


class SearchHandler(StateHandler):
    def handle(self, ctx: AIContext) -> StateOutcome:
        record = ctx.record
        params, memory = record.params, record.memory
        last_known = memory.last_known_target_position

        if last_known is None:
            if record.state_timer >= params.idle_timeout:
                return StateOutcome(_fallback_roam(ctx))
            return STAY

        arrived = ctx.position.distance(last_known) < params.search_arrival_radius
        if arrived and record.state_timer >= params.search_timeout:
            memory.forget_target_position()
            return StateOutcome(_fallback_roam(ctx))
        if arrived:
            return STAY
        return StateOutcome(intent=_move_to(last_known, "Searching last known position"))


class GuardHandler(StateHandler):
    def handle(self, ctx: AIContext) -> StateOutcome:
        params = ctx.record.params
        post = params.guard_position
        if post is None:
            return StateOutcome(BehaviorState.PATROL)
        if ctx.position.distance(post) > params.guard_radius:
            return StateOutcome(intent=_move_to(post, "Returning to post"))
        return STAY


class FollowHandler(StateHandler):
    def handle(self, ctx: AIContext) -> StateOutcome:
        params = ctx.record.params
        leader = params.follow_target
        if leader is None or not ctx.snapshot.exists(leader):
            return StateOutcome(BehaviorState.IDLE)

        leader_pos = ctx.snapshot.positions[leader]
        distance = ctx.position.distance(leader_pos)
        if distance > params.follow_distance + 2.0:
            return StateOutcome(intent=_move_to(leader_pos, "Catching up", leader))
        if distance < params.follow_distance - 1.0:
            away = Perception.point_away_from(ctx.position, leader_pos, 1.0)
            return StateOutcome(intent=MovementIntent(IntentKind.MOVE_AWAY, away, leader, "Giving room"))
        return STAY


class WanderHandler(StateHandler):
    def handle(self, ctx: AIContext) -> StateOutcome:
        record = ctx.record
        params, memory = record.params, record.memory

        memory.wander_leg_time += ctx.dt
        if memory.wander_heading is None or memory.wander_leg_time >= params.wander_leg_seconds:
            if (memory.wander_heading is not None and params.patrol_points
                    and ctx.personality.curiosity < 0.7):
                return StateOutcome(BehaviorState.PATROL)
            angle = ctx.rng.next_float(Domain.WANDER, record.entity, ctx.tick) * 2.0 * math.pi
            memory.wander_heading = Vector2(math.cos(angle), math.sin(angle))
            memory.wander_leg_time = 0.0

        destination = ctx.position + memory.wander_heading.scaled(params.wander_radius)
        return StateOutcome(intent=_move_to(destination, "Wandering"))


class DeadHandler(StateHandler):
    def handle(self, ctx: AIContext) -> StateOutcome:
        return STAY


# =====================================================================
# Registry
# =====================================================================

STATE_HANDLERS: dict[BehaviorState, StateHandler] = {
    BehaviorState.IDLE: IdleHandler(),
    BehaviorState.PATROL: PatrolHandler(),
    BehaviorState.HUNT: HuntHandler(),
    BehaviorState.ATTACK: AttackHandler(),
    BehaviorState.FLEE: FleeHandler(),
    BehaviorState.SEARCH: SearchHandler(),
    BehaviorState.GUARD: GuardHandler(),
    BehaviorState.FOLLOW: FollowHandler(),
    BehaviorState.WANDER: WanderHandler(),
    BehaviorState.DEAD: DeadHandler(),
}
