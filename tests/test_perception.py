"""Tests for snapshots, perception helpers and factor sampling."""

import math
import os
import sys

import pytest

sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from behavior_engine.ai.factors import FactorSampler, is_outnumbered, threat_level
from behavior_engine.ai.perception import Perception
from behavior_engine.config import EngineConfig
from behavior_engine.core.models import AIMemory, AIRecord, Health, Vector2
from behavior_engine.core.snapshot import PerceptionMemory, PerceptionView, WorldSnapshot
from behavior_engine.core.world_state import WorldState


def _make_snapshot(positions, health=None, players=(), perceptions=None, time=0.0, energy=None):
    if health is None:
        health = {eid: Health(100, 100) for eid in positions}
    return WorldSnapshot.build(
        tick=0, time=time, positions=positions, health=health,
        players=set(players), perceptions=perceptions, energy=energy,
    )


def _make_memory(entity, pos, seen=0.0, threat=0.5, hostile=True, confidence=0.9):
    return PerceptionMemory(
        entity=entity,
        last_known_position=pos,
        last_seen_time=seen,
        threat_level=threat,
        was_hostile=hostile,
        confidence=confidence,
    )


# ---------------------------------------------------------------------------
# Snapshot / WorldState
# ---------------------------------------------------------------------------

class TestWorldSnapshot:
    def test_snapshot_is_isolated_from_world(self):
        world = WorldState()
        eid = world.spawn(Vector2(1, 1))
        snap = world.snapshot()
        world.move(eid, Vector2(5, 5))
        assert snap.position(eid) == Vector2(1, 1)
        with pytest.raises(TypeError):
            snap.positions[eid] = Vector2(0, 0)

    def test_exists_needs_position_and_health(self):
        snap = _make_snapshot({1: Vector2(0, 0)}, health={})
        assert not snap.exists(1)
        assert not snap.exists(None)

    def test_defaults(self):
        snap = _make_snapshot({1: Vector2(0, 0)})
        assert snap.energy_of(1) == 1.0
        assert snap.name(1) == "entity-1"
        assert snap.perception(1) is None

    def test_world_time_follows_ticks(self):
        world = WorldState(tick_seconds=0.1)
        for _ in range(5):
            world.advance()
        assert world.snapshot().time == pytest.approx(0.5)


class TestPerceptionView:
    def test_reliability(self):
        mem = _make_memory(2, Vector2(0, 0), seen=0.0, confidence=0.9)
        assert mem.is_reliable(10.0, 30.0)
        assert not mem.is_reliable(31.0, 30.0)
        assert not _make_memory(2, Vector2(0, 0), confidence=0.2).is_reliable(1.0, 30.0)

    def test_hostile_memories(self):
        view = PerceptionView.of([
            _make_memory(2, Vector2(0, 0), hostile=True),
            _make_memory(3, Vector2(1, 0), hostile=False),
        ])
        assert [m.entity for m in view.get_hostile_memories(1.0)] == [2]
        assert view.get_memory(9) is None


# ---------------------------------------------------------------------------
# Perception helpers
# ---------------------------------------------------------------------------

class TestPerception:
    def test_line_of_sight_is_range_limited(self):
        snap = _make_snapshot({1: Vector2(0, 0), 2: Vector2(5, 0)})
        assert Perception.has_line_of_sight(1, 2, 5.0, snap, 10.0, 0.0)
        assert not Perception.has_line_of_sight(1, 2, 12.0, snap, 10.0, 0.0)

    def test_line_of_sight_needs_reliable_memory_with_view(self):
        view = PerceptionView.of([_make_memory(3, Vector2(4, 0))])
        snap = _make_snapshot({1: Vector2(0, 0), 2: Vector2(5, 0), 3: Vector2(4, 0)}, perceptions={1: view})
        assert not Perception.has_line_of_sight(1, 2, 5.0, snap, 10.0, 0.0)
        assert Perception.has_line_of_sight(1, 3, 4.0, snap, 10.0, 0.0)

    def test_entities_within_excludes_self_and_missing(self):
        snap = _make_snapshot({1: Vector2(0, 0), 2: Vector2(3, 0), 3: Vector2(9, 0)})
        assert Perception.entities_within(1, Vector2(0, 0), [1, 2, 3, 4], snap, 5.0) == [2]

    def test_nearest_first_wins_ties(self):
        snap = _make_snapshot({2: Vector2(3, 0), 3: Vector2(0, 3)})
        assert Perception.nearest(Vector2(0, 0), [2, 3], snap) == (2, 3.0)
        assert Perception.nearest(Vector2(0, 0), [], snap) is None

    def test_point_away_from(self):
        p = Perception.point_away_from(Vector2(0, 0), Vector2(1, 0), 10.0)
        assert p.x == pytest.approx(-10.0) and p.y == pytest.approx(0.0)

    def test_sync_memory_rebuilds_from_view(self):
        view = PerceptionView.of([
            _make_memory(2, Vector2(3, 0), threat=0.8, hostile=True, confidence=0.9),
            _make_memory(3, Vector2(1, 1), threat=0.1, hostile=False, confidence=0.9),
            _make_memory(4, Vector2(7, 7), threat=0.9, hostile=True, confidence=0.2),
        ])
        snap = _make_snapshot({1: Vector2(0, 0), 2: Vector2(3, 0), 3: Vector2(1, 1), 4: Vector2(7, 7)})
        mem = AIMemory()
        mem.remember_enemy(99, 0.0)
        Perception.sync_memory(mem, view, 1.0, snap)
        assert list(mem.known_enemies) == [2]
        assert list(mem.known_allies) == [3]
        assert mem.interesting_locations[0] == (Vector2(3, 0), pytest.approx(0.72))
        assert len(mem.interesting_locations) == 2

    def test_players_are_never_allies(self):
        view = PerceptionView.of([_make_memory(2, Vector2(1, 0), hostile=False)])
        snap = _make_snapshot({1: Vector2(0, 0), 2: Vector2(1, 0)}, players={2})
        mem = AIMemory()
        Perception.sync_memory(mem, view, 0.0, snap)
        assert mem.known_allies == {}


# ---------------------------------------------------------------------------
# Factor sampling
# ---------------------------------------------------------------------------

class TestFactorHelpers:
    def test_threat_level(self):
        assert threat_level(1.0, 0) == 0.0
        assert threat_level(0.5, 1) == pytest.approx(0.7)
        assert threat_level(0.2, 5) == 1.0

    def test_outnumbered(self):
        assert not is_outnumbered(2, 1)
        assert is_outnumbered(3, 1)


class TestFactorSampler:
    def test_distance_to_target(self):
        snap = _make_snapshot({1: Vector2(0, 0), 2: Vector2(3, 4)}, players={2})
        rec = AIRecord(entity=1, current_target=2)
        f = FactorSampler(EngineConfig()).sample(1, rec, Vector2(0, 0), Health(100, 100), [2], snap, 0.0)
        assert f.distance_to_target == pytest.approx(5.0)
        assert f.has_line_of_sight
        assert f.number_of_enemies == 1
        assert f.current_threat_level == pytest.approx(0.2)

    def test_missing_target_uses_sentinel(self):
        snap = _make_snapshot({1: Vector2(0, 0)})
        rec = AIRecord(entity=1, current_target=42)
        f = FactorSampler(EngineConfig()).sample(1, rec, Vector2(0, 0), Health(50, 100), [], snap, 0.0)
        assert math.isinf(f.distance_to_target)
        assert not f.has_line_of_sight
        assert f.health_percentage == pytest.approx(0.5)

    def test_enemies_limited_to_detection_range(self):
        snap = _make_snapshot({1: Vector2(0, 0), 2: Vector2(3, 0), 3: Vector2(20, 0), 4: Vector2(1, 0)})
        rec = AIRecord(entity=1)
        rec.memory.remember_ally(4, 0.0)
        f = FactorSampler(EngineConfig()).sample(1, rec, Vector2(0, 0), Health(100, 100), [2, 3], snap, 0.0)
        assert f.number_of_enemies == 1
        assert f.number_of_allies == 1
        assert not f.is_outnumbered

    def test_energy_and_time_in_state(self):
        snap = _make_snapshot({1: Vector2(0, 0)}, energy={1: 0.25})
        rec = AIRecord(entity=1, state_timer=1.4)
        f = FactorSampler(EngineConfig()).sample(1, rec, Vector2(0, 0), Health(100, 100), [], snap, 0.0)
        assert f.energy_level == pytest.approx(0.25)
        assert f.time_since_last_action == pytest.approx(1.4)
