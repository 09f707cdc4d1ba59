"""What an entity can see, and what it remembers.

All methods are stateless and operate on immutable snapshots.  Real
occlusion lives in the external perception pipeline; when an observer has a
PerceptionView, sight additionally requires a reliable memory of the target.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from behavior_engine.core.models import Vector2

if TYPE_CHECKING:
    from behavior_engine.core.models import AIMemory
    from behavior_engine.core.snapshot import PerceptionView, WorldSnapshot


class Perception:
    """Stateless perception utilities operating on immutable snapshots."""

    __slots__ = ()

    # ------------------------------------------------------------------
    # Vision
    # ------------------------------------------------------------------

    @staticmethod
    def has_line_of_sight(
        observer: int,
        target: int,
        distance: float,
        snapshot: WorldSnapshot,
        sight_radius: float,
        now: float,
    ) -> bool:
        """Range check, refined by the observer's perception memory when present."""
        if distance > sight_radius:
            return False
        view = snapshot.perception(observer)
        if view is None:
            return True
        memory = view.get_memory(target)
        return memory is not None and memory.is_reliable(now, view.memory_duration)

    @staticmethod
    def entities_within(
        observer: int,
        position: Vector2,
        candidates: list[int],
        snapshot: WorldSnapshot,
        radius: float,
    ) -> list[int]:
        """Live candidates (other than *observer*) within Euclidean *radius*."""
        result: list[int] = []
        for eid in candidates:
            if eid == observer:
                continue
            pos = snapshot.position(eid)
            if pos is None or not snapshot.exists(eid):
                continue
            if position.distance(pos) <= radius:
                result.append(eid)
        return result

    @staticmethod
    def nearest(
        position: Vector2,
        entities: list[int],
        snapshot: WorldSnapshot,
    ) -> tuple[int, float] | None:
        """Closest entity and its distance, tie-broken by list order."""
        best: tuple[int, float] | None = None
        for eid in entities:
            pos = snapshot.position(eid)
            if pos is None:
                continue
            d = position.distance(pos)
            if best is None or d < best[1]:
                best = (eid, d)
        return best

    # ------------------------------------------------------------------
    # Movement helpers (pure geometry, for intents)
    # ------------------------------------------------------------------

    @staticmethod
    def point_away_from(position: Vector2, threat: Vector2, distance: float) -> Vector2:
        """Point *distance* units from *position*, directly away from *threat*."""
        heading = (position - threat).normalized()
        if heading == Vector2():
            heading = Vector2(1.0, 0.0)
        return position + heading.scaled(distance)

    # ------------------------------------------------------------------
    # Memory sync
    # ------------------------------------------------------------------

    @staticmethod
    def sync_memory(memory: AIMemory, view: PerceptionView, now: float, snapshot: WorldSnapshot) -> None:
        """Rebuild known enemies/allies and interesting locations from *view*.

        Reliable hostile memories become known enemies and reliable friendly
        ones known allies (players are never allies).  Every confident
        sighting is ranked by ``threat * confidence`` into the capped
        interesting-locations list.
        """
        memory.known_enemies.clear()
        memory.known_allies.clear()
        for mem in view.get_reliable_memories(now):
            memory.remember_entity(mem.entity, mem.last_known_position, mem.last_seen_time)
            if mem.was_hostile:
                memory.remember_enemy(mem.entity, mem.last_seen_time)
            elif not snapshot.is_player(mem.entity):
                memory.remember_ally(mem.entity, mem.last_seen_time)

        memory.interesting_locations.clear()
        for mem in view.memories.values():
            if mem.confidence > 0.5:
                memory.add_interesting_location(mem.last_known_position, mem.threat_level * mem.confidence)
