"""Core data models: Vector2, Health, Personality, DecisionFactors, AIRecord."""

from __future__ import annotations

import math
from dataclasses import dataclass, field, replace
from typing import TYPE_CHECKING

from behavior_engine.core.enums import BehaviorState, IntentKind

if TYPE_CHECKING:
    from behavior_engine.ai.targeting import TargetSelectorConfig
    from behavior_engine.core.effects import PersonalityModifier


NO_TARGET_DISTANCE = math.inf

TRAIT_NAMES: tuple[str, ...] = (
    "aggression", "courage", "curiosity", "alertness", "loyalty", "intelligence",
)


def clamp01(value: float) -> float:
    return 0.0 if value < 0.0 else 1.0 if value > 1.0 else value


@dataclass(frozen=True, slots=True)
class Vector2:
    """Immutable 2D world-space position."""

    x: float = 0.0
    y: float = 0.0

    def __add__(self, other: Vector2) -> Vector2:
        return Vector2(self.x + other.x, self.y + other.y)

    def __sub__(self, other: Vector2) -> Vector2:
        return Vector2(self.x - other.x, self.y - other.y)

    def scaled(self, factor: float) -> Vector2:
        return Vector2(self.x * factor, self.y * factor)

    def length(self) -> float:
        return math.hypot(self.x, self.y)

    def normalized(self) -> Vector2:
        n = self.length()
        if n == 0.0:
            return Vector2()
        return Vector2(self.x / n, self.y / n)

    def distance(self, other: Vector2) -> float:
        """Euclidean distance over both axes."""
        return math.hypot(self.x - other.x, self.y - other.y)

    def __repr__(self) -> str:
        return f"({self.x:g}, {self.y:g})"


@dataclass(frozen=True, slots=True)
class Health:
    """Hit points as exposed by the world collaborator."""

    current: float
    max: float

    @property
    def ratio(self) -> float:
        if self.max <= 0:
            return 0.0
        return clamp01(self.current / self.max)

    @property
    def alive(self) -> bool:
        return self.current > 0


# ---------------------------------------------------------------------------
# Personality
# ---------------------------------------------------------------------------

@dataclass(frozen=True, slots=True)
class Personality:
    """Per-entity temperament.  Every trait lies in [0, 1]."""

    aggression: float = 0.5
    courage: float = 0.5
    curiosity: float = 0.5
    alertness: float = 0.5
    loyalty: float = 0.5
    intelligence: float = 0.5

    def __post_init__(self) -> None:
        for name in TRAIT_NAMES:
            value = getattr(self, name)
            if not 0.0 <= value <= 1.0:
                raise ValueError(f"personality trait {name}={value} outside [0, 1]")

    @property
    def flee_threshold(self) -> float:
        """Health ratio below which this personality wants out of a fight."""
        return 1.0 - self.courage

    def trait(self, name: str) -> float:
        if name not in TRAIT_NAMES:
            raise KeyError(name)
        return getattr(self, name)

    def with_trait(self, name: str, value: float) -> Personality:
        if name not in TRAIT_NAMES:
            raise KeyError(name)
        return replace(self, **{name: clamp01(value)})

    # -- presets --

    @classmethod
    def aggressive(cls) -> Personality:
        return cls(aggression=0.8, courage=0.7, intelligence=0.6,
                   alertness=0.7, loyalty=0.4, curiosity=0.3)

    @classmethod
    def defensive(cls) -> Personality:
        return cls(aggression=0.3, courage=0.6, intelligence=0.7,
                   alertness=0.8, loyalty=0.7, curiosity=0.4)

    @classmethod
    def cowardly(cls) -> Personality:
        return cls(aggression=0.2, courage=0.1, intelligence=0.6,
                   alertness=0.9, loyalty=0.3, curiosity=0.2)

    @classmethod
    def intelligent(cls) -> Personality:
        return cls(aggression=0.4, courage=0.6, intelligence=0.9,
                   alertness=0.8, loyalty=0.6, curiosity=0.8)

    @classmethod
    def berserker(cls) -> Personality:
        return cls(aggression=1.0, courage=0.9, intelligence=0.3,
                   alertness=0.5, loyalty=0.4, curiosity=0.1)


# ---------------------------------------------------------------------------
# Decision factors
# ---------------------------------------------------------------------------

NUMERIC_FACTORS: frozenset[str] = frozenset({
    "health_percentage",
    "distance_to_target",
    "number_of_enemies",
    "number_of_allies",
    "time_since_last_action",
    "current_threat_level",
    "energy_level",
})

BOOLEAN_FACTORS: frozenset[str] = frozenset({"has_line_of_sight", "is_outnumbered"})


@dataclass(frozen=True, slots=True)
class DecisionFactors:
    """Normalized summary of the world around one entity for one cycle.

    The defaults describe an entity that knows nothing: full health,
    no target, nobody around.
    """

    health_percentage: float = 1.0
    distance_to_target: float = NO_TARGET_DISTANCE
    has_line_of_sight: bool = False
    number_of_enemies: int = 0
    number_of_allies: int = 0
    is_outnumbered: bool = False
    time_since_last_action: float = 0.0
    current_threat_level: float = 0.0
    energy_level: float = 1.0

    @property
    def has_target(self) -> bool:
        return math.isfinite(self.distance_to_target)

    def value(self, name: str) -> float:
        """Look up a factor by field name (booleans read as 0/1)."""
        if name not in NUMERIC_FACTORS and name not in BOOLEAN_FACTORS:
            raise KeyError(name)
        return float(getattr(self, name))


# ---------------------------------------------------------------------------
# Memory
# ---------------------------------------------------------------------------

@dataclass(slots=True)
class AIMemory:
    """Bounded per-entity recollection of the world.

    ``known_enemies``/``known_allies`` map entity -> last time confirmed and
    keep insertion order, so the oldest entry is evicted first.
    """

    seen_entities: dict[int, tuple[Vector2, float]] = field(default_factory=dict)
    known_enemies: dict[int, float] = field(default_factory=dict)
    known_allies: dict[int, float] = field(default_factory=dict)
    last_known_target_position: Vector2 | None = None
    last_seen_target_time: float | None = None
    interesting_locations: list[tuple[Vector2, float]] = field(default_factory=list)
    threats: dict[int, tuple[float, float]] = field(default_factory=dict)   # entity -> (level, time)

    # Per-state movement bookkeeping (separate from state_timer)
    patrol_index: int = 0
    patrol_leg_time: float = 0.0
    wander_leg_time: float = 0.0
    wander_heading: Vector2 | None = None

    max_entities: int = 32
    max_locations: int = 5

    def remember_entity(self, entity: int, position: Vector2, now: float) -> None:
        _bounded_put(self.seen_entities, entity, (position, now), self.max_entities)

    def last_seen(self, entity: int) -> float | None:
        entry = self.seen_entities.get(entity)
        return entry[1] if entry is not None else None

    def has_seen_recently(self, entity: int, now: float, within: float) -> bool:
        seen = self.last_seen(entity)
        return seen is not None and now - seen <= within

    def remember_target_position(self, position: Vector2, now: float) -> None:
        self.last_known_target_position = position
        self.last_seen_target_time = now

    def forget_target_position(self) -> None:
        self.last_known_target_position = None
        self.last_seen_target_time = None

    def remember_enemy(self, entity: int, now: float) -> None:
        self.known_allies.pop(entity, None)
        _bounded_put(self.known_enemies, entity, now, self.max_entities)

    def remember_ally(self, entity: int, now: float) -> None:
        self.known_enemies.pop(entity, None)
        _bounded_put(self.known_allies, entity, now, self.max_entities)

    def add_threat(self, entity: int, level: float, now: float) -> None:
        _bounded_put(self.threats, entity, (level, now), self.max_entities)

    def add_interesting_location(self, position: Vector2, interest: float) -> None:
        """Insert or refresh a location, keeping the list ranked and capped."""
        locations = [(p, i) for p, i in self.interesting_locations if p != position]
        locations.append((position, interest))
        locations.sort(key=lambda item: item[1], reverse=True)
        del locations[self.max_locations:]
        self.interesting_locations = locations

    def cleanup(self, now: float, duration: float) -> None:
        """Forget everything older than *duration* seconds."""
        self.seen_entities = {
            eid: entry for eid, entry in self.seen_entities.items() if now - entry[1] < duration
        }
        self.known_enemies = {eid: t for eid, t in self.known_enemies.items() if now - t < duration}
        self.known_allies = {eid: t for eid, t in self.known_allies.items() if now - t < duration}
        self.threats = {eid: v for eid, v in self.threats.items() if now - v[1] < duration}
        if self.last_seen_target_time is not None and now - self.last_seen_target_time >= duration:
            self.forget_target_position()


def _bounded_put(store: dict, key: int, value: object, cap: int) -> None:
    """Insert as newest; evict the oldest entries first so *store* never exceeds *cap*."""
    store.pop(key, None)
    while store and len(store) >= cap:
        del store[next(iter(store))]
    store[key] = value


# ---------------------------------------------------------------------------
# Behavior parameters and intents
# ---------------------------------------------------------------------------

@dataclass(slots=True)
class BehaviorParams:
    """Per-entity tuning for the state handlers."""

    patrol_points: list[Vector2] = field(default_factory=list)
    guard_position: Vector2 | None = None
    follow_target: int | None = None

    flee_distance: float = 10.0
    attack_range: float = 2.0
    detection_range: float = 8.0
    follow_distance: float = 3.0
    guard_radius: float = 3.0
    wander_radius: float = 5.0

    idle_timeout: float = 5.0
    hunt_timeout: float = 10.0
    search_timeout: float = 15.0
    search_arrival_radius: float = 2.0
    patrol_leg_seconds: float = 3.0
    wander_leg_seconds: float = 8.0


@dataclass(frozen=True, slots=True)
class MovementIntent:
    """What the entity would like the movement system to do this tick."""

    kind: IntentKind
    destination: Vector2 | None = None
    target: int | None = None
    reason: str = ""


HOLD = MovementIntent(IntentKind.HOLD)


# ---------------------------------------------------------------------------
# AI record
# ---------------------------------------------------------------------------

@dataclass(slots=True)
class AIRecord:
    """Mutable per-entity AI state, owned by exactly one decision cycle at a time."""

    entity: int
    current_state: BehaviorState = BehaviorState.IDLE
    previous_state: BehaviorState | None = None
    state_timer: float = 0.0
    current_target: int | None = None
    personality: Personality = field(default_factory=Personality)
    modifiers: list[PersonalityModifier] = field(default_factory=list)
    memory: AIMemory = field(default_factory=AIMemory)
    params: BehaviorParams = field(default_factory=BehaviorParams)
    decision_factors: DecisionFactors = field(default_factory=DecisionFactors)
    intent: MovementIntent = HOLD
    target_selector: TargetSelectorConfig | None = None
    last_target_update: float | None = None
    enabled: bool = True

    @property
    def is_dead(self) -> bool:
        return self.current_state is BehaviorState.DEAD

    def change_state(self, new_state: BehaviorState) -> bool:
        """Enter *new_state*, resetting the state timer.  Returns False on a no-op."""
        if self.is_dead or new_state == self.current_state:
            return False
        self.previous_state = self.current_state
        self.current_state = new_state
        self.state_timer = 0.0
        return True

    def force_dead(self) -> bool:
        """Enter DEAD regardless of interrupt rules."""
        if self.is_dead:
            return False
        self.previous_state = self.current_state
        self.current_state = BehaviorState.DEAD
        self.state_timer = 0.0
        self.current_target = None
        self.intent = HOLD
        return True
