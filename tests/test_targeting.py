"""Tests for target selection — candidate building, scoring and strategies."""

import os
import sys

import pytest

sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from behavior_engine.ai.targeting import TargetInfo, TargetSelector, TargetSelectorConfig
from behavior_engine.core.enums import TargetSelectionStrategy, TargetType
from behavior_engine.core.models import AIMemory, Health, Vector2
from behavior_engine.core.snapshot import WorldSnapshot
from behavior_engine.systems.rng import DeterministicRNG

S = TargetSelectionStrategy
ORIGIN = Vector2(0, 0)


def _make_info(eid, distance, health=1.0, threat=0.5, priority=1.0, target_type=TargetType.ENEMY):
    return TargetInfo(
        entity=eid,
        position=Vector2(distance, 0),
        distance=distance,
        health_percentage=health,
        threat_level=threat,
        priority=priority,
        last_seen=None,
        target_type=target_type,
    )


def _select(strategy, candidates, memory=None, rng=None, tick=0):
    cfg = TargetSelectorConfig(strategy=strategy)
    return TargetSelector.select(1, ORIGIN, cfg, candidates, memory or AIMemory(), rng, tick)


class TestTargetSelectorConfig:
    def test_defaults(self):
        cfg = TargetSelectorConfig()
        assert cfg.strategy is S.NEAREST
        assert cfg.target_types == frozenset({TargetType.PLAYER, TargetType.ENEMY})
        assert cfg.max_distance == 20.0

    def test_strategy_by_name(self):
        assert TargetSelectorConfig(strategy="highest_priority").strategy is S.HIGHEST_PRIORITY

    def test_unknown_strategy_rejected(self):
        with pytest.raises(ValueError):
            TargetSelectorConfig(strategy="telepathic")
        with pytest.raises(ValueError):
            TargetSelectorConfig(strategy=42)

    def test_max_distance_positive(self):
        with pytest.raises(ValueError):
            TargetSelectorConfig(max_distance=0)


class TestStrategies:
    def test_nearest(self):
        cands = [_make_info(2, 5.0), _make_info(3, 2.0), _make_info(4, 8.0)]
        chosen = _select(S.NEAREST, cands)
        assert chosen.distance == 2.0
        assert chosen.entity == 3

    def test_nearest_first_wins_ties(self):
        cands = [_make_info(2, 3.0), _make_info(3, 3.0)]
        assert _select(S.NEAREST, cands).entity == 2

    def test_empty_is_none(self):
        for strategy in S:
            assert _select(strategy, [], rng=DeterministicRNG(1)) is None

    def test_highest_priority(self):
        cands = [_make_info(2, 1.0, priority=1.0), _make_info(3, 5.0, priority=1.6), _make_info(4, 2.0, priority=1.6)]
        assert _select(S.HIGHEST_PRIORITY, cands).entity == 3

    def test_weakest_and_strongest(self):
        cands = [_make_info(2, 1.0, health=0.7), _make_info(3, 2.0, health=0.2), _make_info(4, 3.0, health=0.9)]
        assert _select(S.WEAKEST, cands).entity == 3
        assert _select(S.STRONGEST, cands).entity == 4

    def test_most_threatening(self):
        cands = [_make_info(2, 1.0, threat=0.3), _make_info(3, 2.0, threat=0.95)]
        assert _select(S.MOST_THREATENING, cands).entity == 3

    def test_last_seen(self):
        mem = AIMemory()
        mem.remember_entity(2, Vector2(1, 0), 4.0)
        mem.remember_entity(3, Vector2(2, 0), 9.0)
        cands = [_make_info(2, 1.0), _make_info(3, 2.0), _make_info(4, 3.0)]
        assert _select(S.LAST_SEEN, cands, memory=mem).entity == 3

    def test_last_seen_falls_back_to_first(self):
        cands = [_make_info(5, 4.0), _make_info(6, 1.0)]
        assert _select(S.LAST_SEEN, cands).entity == 5

    def test_random_is_deterministic(self):
        cands = [_make_info(eid, float(eid)) for eid in range(2, 8)]
        rng = DeterministicRNG(42)
        picks = [_select(S.RANDOM, cands, rng=rng, tick=t).entity for t in range(30)]
        again = [_select(S.RANDOM, cands, rng=DeterministicRNG(42), tick=t).entity for t in range(30)]
        assert picks == again
        assert len(set(picks)) > 1

    def test_random_needs_rng(self):
        with pytest.raises(ValueError):
            _select(S.RANDOM, [_make_info(2, 1.0)])


class TestCandidates:
    def _snapshot(self):
        return WorldSnapshot.build(
            tick=0,
            time=0.0,
            positions={
                1: Vector2(0, 0),    # self
                2: Vector2(5, 0),    # player
                3: Vector2(2, 0),    # known enemy
                4: Vector2(8, 0),    # neutral
                5: Vector2(30, 0),   # player, too far
                6: Vector2(3, 0),    # known ally
            },
            health={eid: Health(100, 100) for eid in range(1, 7)},
            players={2, 5},
        )

    def test_filters_by_type_and_range(self):
        mem = AIMemory()
        mem.remember_enemy(3, 0.0)
        mem.remember_ally(6, 0.0)
        cands = TargetSelector.candidates(1, ORIGIN, TargetSelectorConfig(), self._snapshot(), mem, 0.0)
        assert [c.entity for c in cands] == [2, 3]
        assert cands[0].target_type is TargetType.PLAYER
        assert cands[1].target_type is TargetType.ENEMY

    def test_neutral_and_allies_on_request(self):
        mem = AIMemory()
        mem.remember_ally(6, 0.0)
        cfg = TargetSelectorConfig(target_types={TargetType.NEUTRAL, TargetType.ALLY})
        cands = TargetSelector.candidates(1, ORIGIN, cfg, self._snapshot(), mem, 0.0)
        assert [(c.entity, c.target_type) for c in cands] == [
            (3, TargetType.NEUTRAL), (4, TargetType.NEUTRAL), (6, TargetType.ALLY)]

    def test_dead_candidates_skipped(self):
        snap = WorldSnapshot.build(
            tick=0, time=0.0,
            positions={1: ORIGIN, 2: Vector2(1, 0)},
            health={1: Health(100, 100), 2: Health(0, 100)},
            players={2},
        )
        assert TargetSelector.candidates(1, ORIGIN, TargetSelectorConfig(), snap, AIMemory(), 0.0) == []

    def test_nearest_over_snapshot(self):
        snap = WorldSnapshot.build(
            tick=0, time=0.0,
            positions={1: ORIGIN, 2: Vector2(5, 0), 3: Vector2(2, 0), 4: Vector2(8, 0)},
            health={eid: Health(100, 100) for eid in range(1, 5)},
            players={2, 3, 4},
        )
        mem = AIMemory()
        cfg = TargetSelectorConfig()
        cands = TargetSelector.candidates(1, ORIGIN, cfg, snap, mem, 0.0)
        chosen = TargetSelector.select(1, ORIGIN, cfg, cands, mem)
        assert chosen.entity == 3
        assert chosen.distance == pytest.approx(2.0)


class TestScoring:
    def test_threat_score_capped(self):
        mem = AIMemory()
        mem.add_threat(2, 1.0, 0.0)
        assert TargetSelector.threat_score(TargetType.PLAYER, 1.0, 0.0, mem, 2, 0.0) == 1.0

    def test_threat_score_components(self):
        # 0.6 base + 0.5 * 0.3 health + (20 - 10) / 20 * 0.4 proximity
        score = TargetSelector.threat_score(TargetType.ENEMY, 0.5, 10.0, AIMemory(), 2, 0.0)
        assert score == pytest.approx(0.6 + 0.15 + 0.2)

    def test_remembered_threat_fades(self):
        mem = AIMemory()
        mem.add_threat(2, 0.5, 0.0)
        fresh = TargetSelector.threat_score(TargetType.NEUTRAL, 0.0, 20.0, mem, 2, 0.0)
        faded = TargetSelector.threat_score(TargetType.NEUTRAL, 0.0, 20.0, mem, 2, 15.0)
        assert fresh == pytest.approx(0.2 + 0.15)
        assert faded == pytest.approx(0.2 + 0.075)

    def test_priority_recently_seen_bonus(self):
        mem = AIMemory()
        mem.remember_entity(2, Vector2(0, 0), 0.0)
        base = TargetSelector.priority_score(TargetType.ENEMY, 0.0, 10.0, 1.0, AIMemory(), 2, 5.0)
        seen = TargetSelector.priority_score(TargetType.ENEMY, 0.0, 10.0, 1.0, mem, 2, 5.0)
        assert base == pytest.approx(0.8)
        assert seen == pytest.approx(1.1)

    def test_priority_prefers_wounded_and_close(self):
        far_healthy = TargetSelector.priority_score(TargetType.PLAYER, 0.5, 10.0, 1.0, AIMemory(), 2, 0.0)
        close_wounded = TargetSelector.priority_score(TargetType.PLAYER, 0.5, 0.0, 0.0, AIMemory(), 2, 0.0)
        assert close_wounded - far_healthy == pytest.approx(0.5)
