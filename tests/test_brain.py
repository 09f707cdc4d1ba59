"""Tests for the AIBrain decision cycle.

Covers:
- Idle -> Hunt -> Attack end-to-end against a player
- Crisp/fuzzy arbitration and adaptive multipliers
- Target selection, target loss and memory updates
- Forced death and the terminal DEAD state
- Determinism across identical runs
"""

import os
import sys

import pytest

sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from behavior_engine.ai.brain import AIBrain
from behavior_engine.ai.conditions import Always
from behavior_engine.ai.fuzzy import FuzzyCondition, FuzzyConclusion, FuzzyEvaluator, FuzzyRule, Triangular
from behavior_engine.ai.history import DecisionJournal, DecisionRecord
from behavior_engine.ai.rules import TransitionRule, TransitionRules
from behavior_engine.config import EngineConfig
from behavior_engine.core.enums import BehaviorState, IntentKind
from behavior_engine.core.models import AIRecord, BehaviorParams, DecisionFactors, Health, Personality, Vector2
from behavior_engine.core.world_state import WorldState
from behavior_engine.systems.rng import DeterministicRNG

S = BehaviorState


def _make_brain(config=None, crisp=None, fuzzy=None, clock=None):
    config = config or EngineConfig()
    journal = DecisionJournal(config)
    kwargs = {}
    if clock is not None:
        kwargs["clock"] = clock
    return AIBrain(config, DeterministicRNG(config.world_seed), journal, crisp=crisp, fuzzy=fuzzy, **kwargs)


def _make_world(npc_pos=Vector2(0, 0), player_pos=Vector2(5, 0)):
    world = WorldState(tick_seconds=0.1)
    npc = world.spawn(npc_pos, name="goblin")
    player = world.spawn(player_pos, player=True, name="hero") if player_pos is not None else None
    return world, npc, player


def _fuzzy_on_full_health(state, confidence):
    functions = {"full": Triangular(low=0.0, peak=1.0, high=1.0)}
    rule = FuzzyRule(
        conditions=(FuzzyCondition(variable="health", membership_function="full"),),
        conclusion=FuzzyConclusion(state=state, confidence=confidence),
    )
    return FuzzyEvaluator(functions, [rule])


def _crisp_always(from_state, to_state, confidence):
    return TransitionRules([TransitionRule(
        from_state=from_state, to_state=to_state, condition=Always(), priority=10, confidence=confidence,
    )])


# ---------------------------------------------------------------------------
# End to end
# ---------------------------------------------------------------------------

class TestEndToEnd:
    def test_idle_hunt_attack(self):
        world, npc, player = _make_world()
        brain = _make_brain()
        rec = AIRecord(entity=npc)

        result = brain.decide(rec, world.snapshot())
        assert result.previous_state is S.IDLE
        assert result.state is S.HUNT
        assert result.transitioned
        assert rec.current_target == player
        assert rec.decision_factors.distance_to_target == pytest.approx(5.0)
        assert rec.intent.kind is IntentKind.MOVE_TO
        assert result.decision.source == "crisp"
        assert result.decision.rule == "idle_spot_target"

        world.move(player, Vector2(1.5, 0))
        world.advance()
        world.advance()
        result = brain.decide(rec, world.snapshot())
        assert result.state is S.ATTACK
        assert rec.intent.kind is IntentKind.ENGAGE
        assert rec.memory.last_known_target_position == Vector2(1.5, 0)

    def test_nothing_around_stays_idle(self):
        world, npc, _ = _make_world(player_pos=None)
        brain = _make_brain()
        rec = AIRecord(entity=npc)
        result = brain.decide(rec, world.snapshot())
        assert result.state is S.IDLE
        assert not result.transitioned
        assert result.decision is None
        assert brain.journal.get_statistics(npc) is None

    def test_decision_recorded(self):
        world, npc, _ = _make_world()
        brain = _make_brain()
        rec = AIRecord(entity=npc)
        brain.decide(rec, world.snapshot())
        stats = brain.journal.get_statistics(npc)
        assert stats.total_decisions == 1
        assert stats.most_common_decision is S.HUNT


# ---------------------------------------------------------------------------
# Arbitration
# ---------------------------------------------------------------------------

class TestArbitration:
    def test_fuzzy_wins_when_more_confident(self):
        world, npc, _ = _make_world(player_pos=None)
        brain = _make_brain(crisp=_crisp_always(S.IDLE, S.PATROL, 0.5),
                            fuzzy=_fuzzy_on_full_health(S.GUARD, 0.9))
        rec = AIRecord(entity=npc)
        result = brain.decide(rec, world.snapshot())
        assert result.decision.decision is S.GUARD
        assert result.decision.source == "fuzzy"
        assert result.decision.confidence == pytest.approx(0.9)
        assert rec.current_state is S.GUARD

    def test_crisp_wins_ties(self):
        world, npc, _ = _make_world(player_pos=None)
        brain = _make_brain(crisp=_crisp_always(S.IDLE, S.PATROL, 0.9),
                            fuzzy=_fuzzy_on_full_health(S.GUARD, 0.9))
        result = brain.decide(AIRecord(entity=npc), world.snapshot())
        assert result.decision.decision is S.PATROL
        assert result.decision.source == "crisp"

    def test_weak_fuzzy_ignored(self):
        world, npc, _ = _make_world(player_pos=None)
        brain = _make_brain(crisp=TransitionRules(), fuzzy=_fuzzy_on_full_health(S.GUARD, 0.2))
        result = brain.decide(AIRecord(entity=npc), world.snapshot())
        assert result.decision is None
        assert result.state is S.IDLE

    def test_multipliers_scale_confidence(self):
        world, npc, _ = _make_world(player_pos=None)
        brain = _make_brain(crisp=_crisp_always(S.IDLE, S.PATROL, 0.8), fuzzy=FuzzyEvaluator({}, []))
        flips = [DecisionRecord(float(i), (S.HUNT, S.SEARCH)[i % 2], 1.0, DecisionFactors(), 0.0) for i in range(5)]
        assert brain.journal.adaptation(npc).damp_oscillation(flips)
        result = brain.decide(AIRecord(entity=npc), world.snapshot())
        assert result.decision.confidence == pytest.approx(0.72)

    def test_execution_time_uses_clock(self):
        world, npc, _ = _make_world()
        readings = iter([10.0, 10.25])
        brain = _make_brain(clock=lambda: next(readings))
        result = brain.decide(AIRecord(entity=npc), world.snapshot())
        assert result.decision.execution_time == pytest.approx(0.25)


# ---------------------------------------------------------------------------
# Targets
# ---------------------------------------------------------------------------

class TestTargeting:
    def test_out_of_range_player_is_not_targeted(self):
        world, npc, _ = _make_world(player_pos=Vector2(25, 0))
        rec = AIRecord(entity=npc)
        _make_brain().decide(rec, world.snapshot())
        assert rec.current_target is None

    def test_target_kept_between_updates(self):
        world, npc, player = _make_world()
        other = world.spawn(Vector2(3, 0), player=True)
        brain = _make_brain()
        rec = AIRecord(entity=npc)
        brain.decide(rec, world.snapshot())
        assert rec.current_target == other
        world.move(other, Vector2(9, 0))
        world.advance()
        world.advance()
        brain.decide(rec, world.snapshot())
        assert rec.current_target == other           # update interval not yet elapsed
        for _ in range(4):
            world.advance()
        brain.decide(rec, world.snapshot())
        assert rec.current_target == player

    def test_lost_target_leads_to_search(self):
        world, npc, player = _make_world(player_pos=Vector2(1, 0))
        brain = _make_brain()
        rec = AIRecord(entity=npc, current_state=S.ATTACK, current_target=player)
        brain.decide(rec, world.snapshot())
        assert rec.current_state is S.ATTACK
        world.remove(player)
        world.advance()
        world.advance()
        result = brain.decide(rec, world.snapshot())
        assert result.state is S.SEARCH
        assert rec.current_target is None
        assert rec.memory.last_known_target_position == Vector2(1, 0)


# ---------------------------------------------------------------------------
# Death
# ---------------------------------------------------------------------------

class TestDeath:
    def test_zero_health_forces_dead(self):
        world, npc, _ = _make_world()
        world.set_health(npc, 0)
        brain = _make_brain()
        rec = AIRecord(entity=npc, current_state=S.HUNT, current_target=2)
        result = brain.decide(rec, world.snapshot())
        assert result.state is S.DEAD
        assert rec.current_target is None
        assert rec.intent.kind is IntentKind.HOLD

    def test_dead_is_terminal(self):
        world, npc, _ = _make_world()
        brain = _make_brain(crisp=TransitionRules([
            TransitionRule(from_state=s, to_state=S.IDLE if s is not S.IDLE else S.HUNT,
                           condition=Always(), priority=100)
            for s in S if s is not S.DEAD
        ]))
        rec = AIRecord(entity=npc)
        brain.kill(rec)
        for _ in range(10):
            assert brain.decide(rec, world.snapshot()) is None
            world.advance()
        assert rec.current_state is S.DEAD


# ---------------------------------------------------------------------------
# Behavior over time
# ---------------------------------------------------------------------------

class TestOverTime:
    def _run(self, seed, cycles=60):
        config = EngineConfig(world_seed=seed)
        world, npc, _ = _make_world(player_pos=None)
        brain = _make_brain(config)
        rec = AIRecord(entity=npc, personality=Personality(curiosity=0.9))
        trace = []
        for _ in range(cycles):
            brain.decide(rec, world.snapshot())
            trace.append((rec.current_state, rec.intent))
            world.advance()
            world.advance()
        return trace

    def test_identical_runs_match(self):
        assert self._run(7) == self._run(7)

    def test_curious_idler_starts_wandering(self):
        trace = self._run(7)
        states = [s for s, _ in trace]
        assert S.WANDER in states
        assert states.index(S.WANDER) >= 24   # idle_timeout of 5s at 0.2s per cycle

    def test_patrol_route_followed(self):
        world, npc, _ = _make_world(player_pos=None)
        brain = _make_brain()
        points = [Vector2(5, 0), Vector2(5, 5)]
        rec = AIRecord(entity=npc, current_state=S.PATROL, params=BehaviorParams(patrol_points=points))
        seen = set()
        for _ in range(40):
            brain.decide(rec, world.snapshot())
            seen.add(rec.intent.destination)
            world.advance()
            world.advance()
        assert seen == set(points)

    def test_flees_when_badly_hurt(self):
        world, npc, player = _make_world(player_pos=Vector2(1, 0))
        world.set_health(npc, 10)
        brain = _make_brain()
        rec = AIRecord(entity=npc, current_state=S.ATTACK, current_target=player)
        result = brain.decide(rec, world.snapshot())
        assert result.state is S.FLEE
        assert rec.intent.kind is IntentKind.MOVE_AWAY

    def test_health_checked_each_cycle(self):
        world, npc, _ = _make_world()
        world.health[npc] = Health(50, 100)
        rec = AIRecord(entity=npc)
        _make_brain().decide(rec, world.snapshot())
        assert rec.decision_factors.health_percentage == pytest.approx(0.5)
