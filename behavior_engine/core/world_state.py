"""Mutable host-side world store that feeds snapshots to the DecisionLoop.

The decision engine never writes here; the host (movement, combat, spawning)
owns every mutation and hands the engine a WorldSnapshot each tick.
"""

from __future__ import annotations

from behavior_engine.core.models import Health, Vector2
from behavior_engine.core.snapshot import PerceptionView, WorldSnapshot


class WorldState:
    """Position/health/tag storage keyed by entity id."""

    __slots__ = (
        "tick", "tick_seconds", "positions", "health", "players",
        "names", "energy", "perceptions", "_next_entity_id",
    )

    def __init__(self, tick_seconds: float = 0.1) -> None:
        self.tick: int = 0
        self.tick_seconds: float = tick_seconds
        self.positions: dict[int, Vector2] = {}
        self.health: dict[int, Health] = {}
        self.players: set[int] = set()
        self.names: dict[int, str] = {}
        self.energy: dict[int, float] = {}
        self.perceptions: dict[int, PerceptionView] = {}
        self._next_entity_id: int = 1

    @property
    def time(self) -> float:
        """Simulated seconds since tick 0."""
        return self.tick * self.tick_seconds

    def allocate_entity_id(self) -> int:
        eid = self._next_entity_id
        self._next_entity_id += 1
        return eid

    def spawn(
        self,
        position: Vector2,
        health: Health | None = None,
        *,
        player: bool = False,
        name: str | None = None,
        entity: int | None = None,
    ) -> int:
        eid = entity if entity is not None else self.allocate_entity_id()
        self._next_entity_id = max(self._next_entity_id, eid + 1)
        self.positions[eid] = position
        self.health[eid] = health or Health(100.0, 100.0)
        if player:
            self.players.add(eid)
        if name is not None:
            self.names[eid] = name
        return eid

    def remove(self, entity: int) -> None:
        self.positions.pop(entity, None)
        self.health.pop(entity, None)
        self.players.discard(entity)
        self.names.pop(entity, None)
        self.energy.pop(entity, None)
        self.perceptions.pop(entity, None)

    def move(self, entity: int, position: Vector2) -> None:
        if entity in self.positions:
            self.positions[entity] = position

    def set_health(self, entity: int, current: float) -> None:
        hp = self.health.get(entity)
        if hp is not None:
            self.health[entity] = Health(max(0.0, min(current, hp.max)), hp.max)

    def damage(self, entity: int, amount: float) -> None:
        hp = self.health.get(entity)
        if hp is not None:
            self.set_health(entity, hp.current - amount)

    def set_energy(self, entity: int, value: float) -> None:
        self.energy[entity] = value

    def set_perception(self, entity: int, view: PerceptionView) -> None:
        self.perceptions[entity] = view

    def advance(self) -> None:
        self.tick += 1

    def snapshot(self) -> WorldSnapshot:
        return WorldSnapshot.from_world(self)
