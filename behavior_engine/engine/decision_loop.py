"""DecisionLoop — cadence driver for AI decision cycles.

Per-tick cycle:
  1. Upkeep: tick personality modifiers, force DEAD on health <= 0
     (records still owned by a timed-out cycle are left alone)
  2. Decide: on cadence ticks, hand every eligible entity to the WorkerPool
     in ascending entity order (inline when num_workers <= 1)
  3. Record: emit TransitionEvents, prune decision history by age
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Iterator

from behavior_engine.core.effects import tick_modifiers
from behavior_engine.core.enums import BehaviorState
from behavior_engine.engine.worker_pool import WorkerPool
from behavior_engine.utils.event_log import EventLog, TransitionEvent

if TYPE_CHECKING:
    from behavior_engine.ai.brain import AIBrain, CycleResult
    from behavior_engine.ai.history import DecisionJournal
    from behavior_engine.config import EngineConfig
    from behavior_engine.core.models import AIRecord
    from behavior_engine.core.snapshot import WorldSnapshot
    from behavior_engine.core.world_state import WorldState

logger = logging.getLogger(__name__)


class DecisionLoop:
    """Owns the registered AIRecords and drives the brain at a fixed cadence.

    The loop never mutates the world; the host advances the WorldState,
    applies movement intents and hands the loop a fresh snapshot each tick.
    """

    __slots__ = ("_config", "_brain", "_journal", "_worker_pool", "_events", "_records", "_last_results")

    def __init__(
        self,
        config: EngineConfig,
        brain: AIBrain,
        journal: DecisionJournal,
        worker_pool: WorkerPool | None = None,
        event_log: EventLog | None = None,
    ) -> None:
        self._config = config
        self._brain = brain
        self._journal = journal
        self._worker_pool = worker_pool if worker_pool is not None else WorkerPool(config, brain)
        self._events = event_log if event_log is not None else EventLog()
        self._records: dict[int, AIRecord] = {}
        self._last_results: list[CycleResult] = []

    @property
    def events(self) -> EventLog:
        return self._events

    @property
    def journal(self) -> DecisionJournal:
        return self._journal

    @property
    def last_results(self) -> list[CycleResult]:
        """Cycle results from the most recent cadence tick."""
        return self._last_results

    # ------------------------------------------------------------------
    # Registration
    # ------------------------------------------------------------------

    def register(self, record: AIRecord) -> AIRecord:
        if record.entity in self._records:
            raise ValueError(f"Entity {record.entity} is already registered")
        record.memory.max_entities = self._config.max_known_entities
        record.memory.max_locations = self._config.max_interesting_locations
        self._records[record.entity] = record
        self._journal.ensure(record.entity)
        logger.info("Registered entity %d in %s", record.entity, record.current_state.name)
        return record

    def unregister(self, entity: int) -> AIRecord | None:
        record = self._records.pop(entity, None)
        self._journal.clear_entity(entity)
        if record is not None:
            logger.info("Unregistered entity %d (%s)", entity, record.current_state.name)
        return record

    def get(self, entity: int) -> AIRecord | None:
        return self._records.get(entity)

    @property
    def records(self) -> dict[int, AIRecord]:
        return self._records

    def __contains__(self, entity: int) -> bool:
        return entity in self._records

    def __iter__(self) -> Iterator[AIRecord]:
        return iter(self._records.values())

    def __len__(self) -> int:
        return len(self._records)

    # ------------------------------------------------------------------
    # Ticking
    # ------------------------------------------------------------------

    def is_decision_tick(self, tick: int) -> bool:
        return tick % self._config.decision_interval_ticks == 0

    def step(self, snapshot: WorldSnapshot) -> list[CycleResult]:
        """Process one tick.  Returns the cycle results (empty off-cadence)."""
        tick = snapshot.tick
        events = self._upkeep(snapshot)

        results: list[CycleResult] = []
        if self.is_decision_tick(tick):
            eligible = [
                self._records[eid] for eid in sorted(self._records)
                if self._records[eid].enabled and not self._records[eid].is_dead
            ]
            for record in eligible:
                self._journal.ensure(record.entity)
            results = self._worker_pool.dispatch(eligible, snapshot)

            for result in results:
                if result.transitioned and result.state != result.previous_state:
                    events.append(TransitionEvent(
                        tick=tick,
                        entity=result.entity,
                        from_state=result.previous_state,
                        to_state=result.state,
                        source=self._source_of(result),
                    ))
            self._journal.prune(snapshot.time)
            self._last_results = results

        if events:
            self._events.append_many(events)
        return results

    def run(self, world: WorldState, ticks: int) -> None:
        """Drive *ticks* ticks against *world*, advancing it after each one."""
        logger.info("=== Decision loop started (%d entities, %d ticks) ===", len(self._records), ticks)
        for _ in range(ticks):
            self.step(world.snapshot())
            world.advance()
        logger.info("=== Decision loop finished at tick %d ===", world.tick)

    def shutdown(self) -> None:
        self._worker_pool.shutdown()

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _upkeep(self, snapshot: WorldSnapshot) -> list[TransitionEvent]:
        events: list[TransitionEvent] = []
        for eid in sorted(self._records):
            record = self._records[eid]
            if self._worker_pool.is_busy(eid):
                continue
            for expired in tick_modifiers(record.modifiers):
                logger.debug("Entity %d: modifier %s on %s expired", eid, expired.source, expired.trait)
            health = snapshot.health_of(eid)
            if health is not None and not health.alive and not record.is_dead:
                previous = record.current_state
                if self._brain.kill(record):
                    events.append(TransitionEvent(snapshot.tick, eid, previous, BehaviorState.DEAD, "death"))
        return events

    @staticmethod
    def _source_of(result: CycleResult) -> str:
        decision = result.decision
        if result.state is BehaviorState.DEAD:
            return "death"
        if decision is not None and decision.decision == result.state:
            return decision.rule or decision.source
        return "handler"
