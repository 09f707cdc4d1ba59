"""World state in, normalized DecisionFactors out."""

from __future__ import annotations

from typing import TYPE_CHECKING

from behavior_engine.ai.perception import Perception
from behavior_engine.core.models import NO_TARGET_DISTANCE, DecisionFactors, clamp01

if TYPE_CHECKING:
    from behavior_engine.config import EngineConfig
    from behavior_engine.core.models import AIRecord, Health, Vector2
    from behavior_engine.core.snapshot import WorldSnapshot

# Each visible enemy adds this much to the threat level.
THREAT_PER_ENEMY = 0.2


def threat_level(health_percentage: float, enemies: int) -> float:
    """Less health and more enemies mean more threat, capped to [0, 1]."""
    return clamp01((1.0 - health_percentage) + enemies * THREAT_PER_ENEMY)


def is_outnumbered(enemies: int, allies: int) -> bool:
    return enemies > allies + 1


class FactorSampler:
    """Pure function object; holds only configuration."""

    __slots__ = ("_config",)

    def __init__(self, config: EngineConfig) -> None:
        self._config = config

    def sample(
        self,
        entity: int,
        record: AIRecord,
        position: Vector2,
        health: Health | None,
        candidates: list[int],
        world: WorldSnapshot,
        now: float,
    ) -> DecisionFactors:
        """Build this cycle's factors for *entity*.

        *candidates* are the hostile entities the caller considers; those
        within detection range count as enemies.  Allies come from the
        record's memory and are confirmed against the snapshot.
        """
        health_pct = health.ratio if health is not None else 0.0

        distance = NO_TARGET_DISTANCE
        line_of_sight = False
        target = record.current_target
        if world.exists(target):
            distance = position.distance(world.positions[target])
            line_of_sight = Perception.has_line_of_sight(
                entity, target, distance, world, self._config.sight_radius, now)

        detection = record.params.detection_range
        enemies = len(Perception.entities_within(entity, position, candidates, world, detection))
        allies = len(Perception.entities_within(
            entity, position, list(record.memory.known_allies), world, detection))

        return DecisionFactors(
            health_percentage=health_pct,
            distance_to_target=distance,
            has_line_of_sight=line_of_sight,
            number_of_enemies=enemies,
            number_of_allies=allies,
            is_outnumbered=is_outnumbered(enemies, allies),
            time_since_last_action=record.state_timer,
            current_threat_level=threat_level(health_pct, enemies),
            energy_level=clamp01(world.energy_of(entity)),
        )
