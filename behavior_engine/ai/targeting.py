"""Target selection: candidate scoring and strategy dispatch.

Candidates are built in snapshot insertion order, so every "first wins"
tie-break below is deterministic.  ``RANDOM`` draws from the injected
DeterministicRNG; there is no hidden global generator.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from behavior_engine.core.enums import Domain, TargetSelectionStrategy, TargetType

if TYPE_CHECKING:
    from behavior_engine.core.models import AIMemory, Vector2
    from behavior_engine.core.snapshot import WorldSnapshot
    from behavior_engine.systems.rng import DeterministicRNG

# Sightings newer than this earn the "recently seen" priority bonus.
RECENTLY_SEEN_SECONDS = 10.0
# Remembered threat levels fade out over this many seconds.
THREAT_MEMORY_SECONDS = 30.0

_TYPE_PRIORITY: dict[TargetType, float] = {
    TargetType.PLAYER: 1.0,
    TargetType.ENEMY: 0.8,
    TargetType.NEUTRAL: 0.3,
    TargetType.ALLY: 0.1,
}

_TYPE_THREAT: dict[TargetType, float] = {
    TargetType.PLAYER: 0.8,
    TargetType.ENEMY: 0.6,
    TargetType.NEUTRAL: 0.2,
    TargetType.ALLY: 0.0,
}


@dataclass(frozen=True, slots=True)
class TargetSelectorConfig:
    """Which entities are fair game, how far away, and how to pick one."""

    target_types: frozenset[TargetType] = frozenset({TargetType.PLAYER, TargetType.ENEMY})
    strategy: TargetSelectionStrategy = TargetSelectionStrategy.NEAREST
    max_distance: float = 20.0

    def __post_init__(self) -> None:
        if not isinstance(self.strategy, TargetSelectionStrategy):
            try:
                if isinstance(self.strategy, str):
                    strategy = TargetSelectionStrategy[self.strategy.upper()]
                else:
                    strategy = TargetSelectionStrategy(self.strategy)
            except (KeyError, ValueError):
                raise ValueError(f"unknown target selection strategy {self.strategy!r}") from None
            object.__setattr__(self, "strategy", strategy)
        if self.max_distance <= 0:
            raise ValueError(f"max_distance must be positive, got {self.max_distance}")
        object.__setattr__(self, "target_types", frozenset(self.target_types))


@dataclass(frozen=True, slots=True)
class TargetInfo:
    """One scored candidate."""

    entity: int
    position: Vector2
    distance: float
    health_percentage: float
    threat_level: float
    priority: float
    last_seen: float | None
    target_type: TargetType


class TargetSelector:
    """Stateless scoring and selection."""

    __slots__ = ()

    # ------------------------------------------------------------------
    # Scoring
    # ------------------------------------------------------------------

    @staticmethod
    def classify(entity: int, snapshot: WorldSnapshot, memory: AIMemory, observer: int, now: float) -> TargetType:
        if snapshot.is_player(entity):
            return TargetType.PLAYER
        if entity in memory.known_enemies:
            return TargetType.ENEMY
        if entity in memory.known_allies:
            return TargetType.ALLY
        view = snapshot.perception(observer)
        if view is not None:
            mem = view.get_memory(entity)
            if mem is not None and mem.was_hostile and mem.is_reliable(now, view.memory_duration):
                return TargetType.ENEMY
        return TargetType.NEUTRAL

    @staticmethod
    def threat_score(
        target_type: TargetType,
        health_percentage: float,
        distance: float,
        memory: AIMemory,
        entity: int,
        now: float,
    ) -> float:
        threat = _TYPE_THREAT[target_type]
        threat += health_percentage * 0.3
        threat += (20.0 - min(distance, 20.0)) / 20.0 * 0.4
        remembered = memory.threats.get(entity)
        if remembered is not None:
            level, seen = remembered
            fade = 1.0 - min((now - seen) / THREAT_MEMORY_SECONDS, 1.0)
            threat += level * fade * 0.3
        return min(threat, 1.0)

    @staticmethod
    def priority_score(
        target_type: TargetType,
        threat_level: float,
        distance: float,
        health_percentage: float,
        memory: AIMemory,
        entity: int,
        now: float,
    ) -> float:
        priority = _TYPE_PRIORITY[target_type]
        priority += threat_level * 0.5
        priority += (10.0 - min(distance, 10.0)) / 10.0 * 0.3
        priority += (1.0 - health_percentage) * 0.2
        if memory.has_seen_recently(entity, now, RECENTLY_SEEN_SECONDS):
            priority += 0.3
        return priority

    # ------------------------------------------------------------------
    # Candidates
    # ------------------------------------------------------------------

    @classmethod
    def candidates(
        cls,
        entity: int,
        position: Vector2,
        config: TargetSelectorConfig,
        snapshot: WorldSnapshot,
        memory: AIMemory,
        now: float,
    ) -> list[TargetInfo]:
        """Live entities of a wanted type within ``config.max_distance``."""
        result: list[TargetInfo] = []
        for eid in snapshot.entities():
            if eid == entity:
                continue
            pos = snapshot.positions[eid]
            distance = position.distance(pos)
            if distance > config.max_distance:
                continue
            target_type = cls.classify(eid, snapshot, memory, entity, now)
            if target_type not in config.target_types:
                continue
            hp = snapshot.health[eid]
            if not hp.alive:
                continue
            health_pct = hp.ratio
            threat = cls.threat_score(target_type, health_pct, distance, memory, eid, now)
            result.append(TargetInfo(
                entity=eid,
                position=pos,
                distance=distance,
                health_percentage=health_pct,
                threat_level=threat,
                priority=cls.priority_score(target_type, threat, distance, health_pct, memory, eid, now),
                last_seen=memory.last_seen(eid),
                target_type=target_type,
            ))
        return result

    # ------------------------------------------------------------------
    # Selection
    # ------------------------------------------------------------------

    @staticmethod
    def select(
        entity: int,
        position: Vector2,
        config: TargetSelectorConfig,
        candidates: list[TargetInfo],
        memory: AIMemory,
        rng: DeterministicRNG | None = None,
        tick: int = 0,
    ) -> TargetInfo | None:
        """Apply ``config.strategy`` to *candidates*.  Empty list -> None.

        Every min/max keeps the first candidate on ties.
        """
        if not candidates:
            return None
        strategy = config.strategy
        S = TargetSelectionStrategy

        if strategy is S.NEAREST:
            return min(candidates, key=lambda t: t.distance)
        if strategy is S.HIGHEST_PRIORITY:
            return max(candidates, key=lambda t: t.priority)
        if strategy is S.WEAKEST:
            return min(candidates, key=lambda t: t.health_percentage)
        if strategy is S.STRONGEST:
            return max(candidates, key=lambda t: t.health_percentage)
        if strategy is S.MOST_THREATENING:
            return max(candidates, key=lambda t: t.threat_level)
        if strategy is S.LAST_SEEN:
            best: TargetInfo | None = None
            best_time = 0.0
            for cand in candidates:
                seen = memory.last_seen(cand.entity)
                if seen is not None and (best is None or seen > best_time):
                    best, best_time = cand, seen
            return best if best is not None else candidates[0]
        if strategy is S.RANDOM:
            if rng is None:
                raise ValueError("RANDOM target selection needs an injected RNG")
            return candidates[rng.choice_index(Domain.TARGET_SELECTION, entity, tick, len(candidates))]
        raise ValueError(f"unhandled target selection strategy {strategy!r}")

