"""Immutable snapshot of the world as seen by the decision engine."""

from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import TYPE_CHECKING, Iterator, Mapping

from behavior_engine.core.models import Health, Vector2

if TYPE_CHECKING:
    from behavior_engine.core.world_state import WorldState

_EMPTY: Mapping = MappingProxyType({})

# Memories at or below this confidence are rumours, not knowledge.
RELIABLE_CONFIDENCE = 0.3


# ---------------------------------------------------------------------------
# Perception contract
# ---------------------------------------------------------------------------

@dataclass(frozen=True, slots=True)
class PerceptionMemory:
    """What the perception pipeline remembers about one entity."""

    entity: int
    last_known_position: Vector2
    last_seen_time: float
    threat_level: float = 0.0
    was_hostile: bool = False
    confidence: float = 1.0

    def age(self, now: float) -> float:
        return now - self.last_seen_time

    def is_reliable(self, now: float, max_age: float) -> bool:
        return self.age(now) < max_age and self.confidence > RELIABLE_CONFIDENCE


@dataclass(frozen=True, slots=True)
class PerceptionView:
    """Read-only perception memories of a single observer."""

    memories: Mapping[int, PerceptionMemory] = field(default_factory=lambda: _EMPTY)
    memory_duration: float = 30.0

    @classmethod
    def of(cls, memories: list[PerceptionMemory], memory_duration: float = 30.0) -> PerceptionView:
        return cls(MappingProxyType({m.entity: m for m in memories}), memory_duration)

    def get_memory(self, entity: int) -> PerceptionMemory | None:
        return self.memories.get(entity)

    def get_reliable_memories(self, now: float) -> list[PerceptionMemory]:
        return [m for m in self.memories.values() if m.is_reliable(now, self.memory_duration)]

    def get_hostile_memories(self, now: float) -> list[PerceptionMemory]:
        return [m for m in self.get_reliable_memories(now) if m.was_hostile]


# ---------------------------------------------------------------------------
# World snapshot
# ---------------------------------------------------------------------------

@dataclass(frozen=True, slots=True)
class WorldSnapshot:
    """Read-only view of the world, safe to share across worker threads.

    Every mapping is a MappingProxyType over a private copy, so a decision
    cycle can never observe (or cause) mutation mid-sample.
    """

    tick: int
    time: float
    positions: Mapping[int, Vector2]
    health: Mapping[int, Health]
    players: frozenset[int] = frozenset()
    names: Mapping[int, str] = field(default_factory=lambda: _EMPTY)
    energy: Mapping[int, float] = field(default_factory=lambda: _EMPTY)
    perceptions: Mapping[int, PerceptionView] = field(default_factory=lambda: _EMPTY)

    @classmethod
    def build(
        cls,
        tick: int,
        time: float,
        positions: Mapping[int, Vector2],
        health: Mapping[int, Health],
        players: frozenset[int] | set[int] = frozenset(),
        names: Mapping[int, str] | None = None,
        energy: Mapping[int, float] | None = None,
        perceptions: Mapping[int, PerceptionView] | None = None,
    ) -> WorldSnapshot:
        return cls(
            tick=tick,
            time=time,
            positions=MappingProxyType(dict(positions)),
            health=MappingProxyType(dict(health)),
            players=frozenset(players),
            names=MappingProxyType(dict(names or {})),
            energy=MappingProxyType(dict(energy or {})),
            perceptions=MappingProxyType(dict(perceptions or {})),
        )

    @classmethod
    def from_world(cls, world: WorldState) -> WorldSnapshot:
        return cls.build(
            tick=world.tick,
            time=world.time,
            positions=world.positions,
            health=world.health,
            players=world.players,
            names=world.names,
            energy=world.energy,
            perceptions=world.perceptions,
        )

    def exists(self, entity: int | None) -> bool:
        """An entity is live only while it has both a position and health."""
        return entity is not None and entity in self.positions and entity in self.health

    def entities(self) -> Iterator[int]:
        """Live entity ids in insertion order."""
        return (eid for eid in self.positions if eid in self.health)

    def position(self, entity: int | None) -> Vector2 | None:
        if entity is None:
            return None
        return self.positions.get(entity)

    def health_of(self, entity: int) -> Health | None:
        return self.health.get(entity)

    def is_player(self, entity: int) -> bool:
        return entity in self.players

    def name(self, entity: int) -> str:
        return self.names.get(entity, f"entity-{entity}")

    def energy_of(self, entity: int) -> float:
        return self.energy.get(entity, 1.0)

    def perception(self, entity: int) -> PerceptionView | None:
        return self.perceptions.get(entity)
