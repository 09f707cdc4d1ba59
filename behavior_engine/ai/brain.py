"""AIBrain — one adaptive decision cycle for one entity.

Hybrid architecture:
  1. The crisp TransitionRules and the FuzzyEvaluator each propose a next
     state from freshly sampled DecisionFactors.  Both confidences are scaled
     by the entity's adaptive multipliers; the higher wins and crisp wins
     ties.  Fuzzy conclusions under ``min_fuzzy_confidence`` are ignored.
  2. The winning proposal is recorded in the DecisionJournal and applied
     through the InterruptPolicy.
  3. The handler for the (possibly new) state runs once and may propose its
     own exit, again through the InterruptPolicy.
  4. The journal's learning pass damps oscillation and reweights states.

The brain holds no per-entity state; everything mutable lives in the
AIRecord (owned by the caller for the duration of the cycle) and in the
entity's own journal bucket.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import TYPE_CHECKING, Callable

from behavior_engine.ai.factors import FactorSampler
from behavior_engine.ai.fuzzy import FuzzyEvaluator
from behavior_engine.ai.history import DecisionRecord
from behavior_engine.ai.interrupts import InterruptPolicy
from behavior_engine.ai.perception import Perception
from behavior_engine.ai.rules import TransitionRules
from behavior_engine.ai.states import STATE_HANDLERS, AIContext
from behavior_engine.ai.targeting import TargetSelector, TargetSelectorConfig
from behavior_engine.core.effects import apply_modifiers
from behavior_engine.core.enums import BehaviorState, TargetType
from behavior_engine.core.models import MovementIntent

if TYPE_CHECKING:
    from behavior_engine.ai.history import DecisionJournal
    from behavior_engine.config import EngineConfig
    from behavior_engine.core.models import AIRecord, DecisionFactors, Personality, Vector2
    from behavior_engine.core.snapshot import WorldSnapshot
    from behavior_engine.systems.rng import DeterministicRNG

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class Proposal:
    state: BehaviorState
    confidence: float
    source: str
    rule: str = ""


@dataclass(frozen=True, slots=True)
class CycleResult:
    """What happened to one entity during one decision cycle."""

    entity: int
    previous_state: BehaviorState
    state: BehaviorState
    transitioned: bool
    decision: DecisionRecord | None
    intent: MovementIntent


class AIBrain:
    """Runs decision cycles.  Safe to share across workers."""

    __slots__ = (
        "_config", "_rng", "_journal", "_crisp", "_fuzzy",
        "_policy", "_sampler", "_clock", "_default_selector",
    )

    def __init__(
        self,
        config: EngineConfig,
        rng: DeterministicRNG,
        journal: DecisionJournal,
        crisp: TransitionRules | None = None,
        fuzzy: FuzzyEvaluator | None = None,
        policy: InterruptPolicy | None = None,
        clock: Callable[[], float] = time.perf_counter,
    ) -> None:
        self._config = config
        self._rng = rng
        self._journal = journal
        self._crisp = crisp if crisp is not None else TransitionRules.default()
        self._fuzzy = fuzzy if fuzzy is not None else FuzzyEvaluator.default()
        self._policy = policy if policy is not None else InterruptPolicy(config.min_dwell_seconds)
        self._sampler = FactorSampler(config)
        self._clock = clock
        self._default_selector = TargetSelectorConfig()

    @property
    def journal(self) -> DecisionJournal:
        return self._journal

    @property
    def policy(self) -> InterruptPolicy:
        return self._policy

    # ------------------------------------------------------------------
    # Cycle
    # ------------------------------------------------------------------

    def decide(self, record: AIRecord, snapshot: WorldSnapshot) -> CycleResult | None:
        """Run one cycle for *record*.  Returns None when the entity is skipped."""
        if not record.enabled or record.is_dead:
            return None
        entity = record.entity
        position = snapshot.position(entity)
        health = snapshot.health_of(entity)
        if position is None or health is None:
            return None

        previous = record.current_state
        if not health.alive:
            self.kill(record)
            return CycleResult(entity, previous, record.current_state, True, None, record.intent)

        now, tick = snapshot.time, snapshot.tick
        dt = self._config.decision_interval_seconds
        record.state_timer += dt
        personality = apply_modifiers(record.personality, record.modifiers)

        # --- Memory upkeep ---
        record.memory.cleanup(now, self._config.memory_duration_seconds)
        view = snapshot.perception(entity)
        if view is not None:
            Perception.sync_memory(record.memory, view, now, snapshot)

        hostiles = self._hostiles(record, snapshot)
        self._update_target(record, position, snapshot, now, tick)

        # --- Proposal ---
        started = self._clock()
        factors = self._sampler.sample(entity, record, position, health, hostiles, snapshot, now)
        record.decision_factors = factors
        proposal = self._propose(record, factors, personality)
        elapsed = max(0.0, self._clock() - started)

        decision: DecisionRecord | None = None
        transitioned = False
        if proposal is not None:
            decision = DecisionRecord(
                timestamp=now,
                decision=proposal.state,
                confidence=proposal.confidence,
                factors=factors,
                execution_time=elapsed,
                source=proposal.source,
                rule=proposal.rule,
            )
            self._journal.record(entity, decision)
            transitioned = self._transition(record, proposal.state, snapshot, proposal.rule or proposal.source)

        # --- Per-state behavior ---
        ctx = AIContext(
            record=record,
            position=position,
            snapshot=snapshot,
            config=self._config,
            rng=self._rng,
            personality=personality,
            now=now,
            tick=tick,
            dt=dt,
            hostiles=hostiles,
        )
        outcome = STATE_HANDLERS[record.current_state].handle(ctx)
        if outcome.clear_target:
            record.current_target = None
        record.intent = outcome.intent
        if outcome.next_state is not None:
            if self._transition(record, outcome.next_state, snapshot, "handler"):
                transitioned = True

        # A target that vanished this tick must not survive into the next cycle.
        if record.current_target is not None and not snapshot.exists(record.current_target):
            record.current_target = None

        # --- Learning ---
        history = self._journal.history(entity)
        if history is not None:
            self._journal.adaptation(entity).learn(list(history), personality)

        return CycleResult(entity, previous, record.current_state, transitioned, decision, record.intent)

    def kill(self, record: AIRecord) -> bool:
        """Force DEAD, bypassing the interrupt policy."""
        if record.force_dead():
            logger.info("Entity %d died in %s", record.entity, record.previous_state.name)
            return True
        return False

    # ------------------------------------------------------------------
    # Steps
    # ------------------------------------------------------------------

    def _propose(self, record: AIRecord, factors: DecisionFactors, personality: Personality) -> Proposal | None:
        adaptation = self._journal.adaptation(record.entity)

        crisp: Proposal | None = None
        rule = self._crisp.match(record.current_state, factors, personality)
        if rule is not None:
            confidence = min(1.0, rule.confidence * adaptation.multiplier(rule.to_state))
            crisp = Proposal(rule.to_state, confidence, "crisp", rule.label)

        fuzzy: Proposal | None = None
        result = self._fuzzy.evaluate(factors)
        if result is not None:
            state, confidence = result
            confidence = min(1.0, confidence * adaptation.multiplier(state))
            if confidence >= self._config.min_fuzzy_confidence:
                fuzzy = Proposal(state, confidence, "fuzzy")

        if crisp is not None and fuzzy is not None:
            return fuzzy if fuzzy.confidence > crisp.confidence else crisp
        return crisp if crisp is not None else fuzzy

    def _transition(self, record: AIRecord, new_state: BehaviorState, snapshot: WorldSnapshot, why: str) -> bool:
        target_lost = not snapshot.exists(record.current_target)
        old = record.current_state
        if not self._policy.apply(record, new_state, target_lost):
            return False
        memory = record.memory
        if new_state is BehaviorState.PATROL:
            memory.patrol_leg_time = 0.0
        elif new_state is BehaviorState.WANDER:
            memory.wander_leg_time = 0.0
            memory.wander_heading = None
        logger.debug("Entity %d (%s): %s -> %s [%s]",
                     record.entity, snapshot.name(record.entity), old.name, new_state.name, why)
        return True

    @staticmethod
    def _hostiles(record: AIRecord, snapshot: WorldSnapshot) -> list[int]:
        """Players and remembered enemies that are still in the world."""
        known = record.memory.known_enemies
        return [
            eid for eid in snapshot.entities()
            if eid != record.entity and (snapshot.is_player(eid) or eid in known)
        ]

    def _update_target(self, record: AIRecord, position: Vector2, snapshot: WorldSnapshot,
                       now: float, tick: int) -> None:
        current = record.current_target
        due = (
            record.last_target_update is None
            or current is None
            or not snapshot.exists(current)
            or now - record.last_target_update >= self._config.target_update_interval_seconds
        )
        if not due:
            return
        record.last_target_update = now

        config = record.target_selector or self._default_selector
        memory = record.memory
        candidates = TargetSelector.candidates(record.entity, position, config, snapshot, memory, now)
        chosen = TargetSelector.select(record.entity, position, config, candidates, memory, self._rng, tick)
        if chosen is None:
            if current is not None:
                logger.debug("Entity %d lost target %d", record.entity, current)
            record.current_target = None
            return

        record.current_target = chosen.entity
        memory.remember_entity(chosen.entity, chosen.position, now)
        if chosen.target_type is TargetType.PLAYER:
            memory.remember_target_position(chosen.position, now)
        if chosen.threat_level > 0.5:
            memory.add_threat(chosen.entity, chosen.threat_level, now)
