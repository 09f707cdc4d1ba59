"""Parallel worker pool for AI decision cycles."""

from __future__ import annotations

import logging
from concurrent.futures import Future, ThreadPoolExecutor, TimeoutError, as_completed
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from behavior_engine.ai.brain import AIBrain, CycleResult
    from behavior_engine.config import EngineConfig
    from behavior_engine.core.models import AIRecord
    from behavior_engine.core.snapshot import WorldSnapshot

logger = logging.getLogger(__name__)


class WorkerPool:
    """Manages a ThreadPoolExecutor that runs decision cycles in parallel.

    Workers receive the shared immutable WorldSnapshot and exactly one
    AIRecord each.  A cycle that outlives ``worker_timeout_seconds`` keeps
    running and keeps ownership of its record: the record is skipped by later
    dispatches until that cycle finishes, and the late result is returned by
    the first dispatch that sees it done.

    Results come back sorted by entity id so callers see a stable order
    regardless of completion order.
    """

    __slots__ = ("_config", "_brain", "_executor", "_in_flight")

    def __init__(self, config: EngineConfig, brain: AIBrain) -> None:
        self._config = config
        self._brain = brain
        self._executor = ThreadPoolExecutor(
            max_workers=max(1, config.num_workers),
            thread_name_prefix="ai-worker",
        )
        self._in_flight: dict[int, Future[CycleResult | None]] = {}

    def is_busy(self, entity: int) -> bool:
        """True while a timed-out cycle for *entity* is still running."""
        future = self._in_flight.get(entity)
        return future is not None and not future.done()

    def dispatch(self, records: list[AIRecord], snapshot: WorldSnapshot) -> list[CycleResult]:
        """Run one cycle for every record in *records* and collect the results.

        Blocks until all workers finish or time out.  Uses inline execution
        when num_workers <= 1 to avoid threading overhead.
        """
        results = self._collect_late(snapshot.tick)

        # Fast path: single-worker mode, run inline
        if self._config.num_workers <= 1:
            for record in records:
                result = self._run_one(record, snapshot)
                if result is not None:
                    results.append(result)
            return results

        futures: dict[Future[CycleResult | None], int] = {}
        for record in records:
            if record.entity in self._in_flight:
                logger.debug("Tick %d: entity %d still thinking, skipping turn", snapshot.tick, record.entity)
                continue
            future = self._executor.submit(self._brain.decide, record, snapshot)
            futures[future] = record.entity

        try:
            for future in as_completed(futures, timeout=self._config.worker_timeout_seconds):
                self._append_result(future, futures[future], snapshot.tick, results)
        except TimeoutError:
            pending = sorted(eid for f, eid in futures.items() if not f.done())
            for f, eid in futures.items():
                if not f.done():
                    self._in_flight[eid] = f
            logger.warning("Tick %d: %d decision cycles timed out: %s", snapshot.tick, len(pending), pending)

        results.sort(key=lambda r: r.entity)
        return results

    def shutdown(self) -> None:
        self._executor.shutdown(wait=False, cancel_futures=True)
        self._in_flight.clear()

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _run_one(self, record: AIRecord, snapshot: WorldSnapshot) -> CycleResult | None:
        try:
            return self._brain.decide(record, snapshot)
        except Exception:
            logger.exception("Tick %d: decision cycle failed for entity %d, skipping turn",
                             snapshot.tick, record.entity)
            return None

    def _collect_late(self, tick: int) -> list[CycleResult]:
        results: list[CycleResult] = []
        for eid in sorted(self._in_flight):
            future = self._in_flight[eid]
            if future.done():
                del self._in_flight[eid]
                self._append_result(future, eid, tick, results)
        return results

    @staticmethod
    def _append_result(future: Future[CycleResult | None], entity: int, tick: int,
                       results: list[CycleResult]) -> None:
        try:
            result = future.result()
        except Exception:
            logger.exception("Tick %d: worker failed for entity %d, skipping turn", tick, entity)
            return
        if result is not None:
            results.append(result)
