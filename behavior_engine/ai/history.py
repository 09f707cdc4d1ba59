"""Decision history: bounded per-entity records plus aggregate statistics.

The DecisionJournal is an arena keyed by entity id.  Each entity owns its
own DecisionHistory and RuleAdaptation, so a worker appending for one
entity never touches another entity's bucket.  Buckets are created under a
lock (``ensure``), normally on the loop thread before workers start.
"""

from __future__ import annotations

import logging
import threading
from collections import Counter, deque
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Iterator

from behavior_engine.ai.adaptation import RuleAdaptation
from behavior_engine.core.enums import BehaviorState

if TYPE_CHECKING:
    from behavior_engine.config import EngineConfig
    from behavior_engine.core.models import DecisionFactors

logger = logging.getLogger(__name__)

RECENT_IN_STATS = 5


@dataclass(frozen=True, slots=True)
class DecisionRecord:
    """One proposal the engine acted on (or tried to)."""

    timestamp: float            # simulated seconds
    decision: BehaviorState
    confidence: float
    factors: DecisionFactors
    execution_time: float       # wall seconds spent deciding
    source: str = "crisp"       # "crisp" | "fuzzy"
    rule: str = ""


class DecisionHistory:
    """Fixed-capacity FIFO of DecisionRecords for one entity."""

    __slots__ = ("_records",)

    def __init__(self, capacity: int) -> None:
        self._records: deque[DecisionRecord] = deque(maxlen=capacity)

    @property
    def capacity(self) -> int:
        return self._records.maxlen or 0

    def append(self, record: DecisionRecord) -> None:
        self._records.append(record)

    def recent(self, count: int) -> list[DecisionRecord]:
        """Up to *count* records, newest first."""
        out: list[DecisionRecord] = []
        for record in reversed(self._records):
            if len(out) >= count:
                break
            out.append(record)
        return out

    def prune(self, cutoff: float) -> int:
        """Drop records older than *cutoff*.  Returns how many went."""
        dropped = 0
        while self._records and self._records[0].timestamp < cutoff:
            self._records.popleft()
            dropped += 1
        return dropped

    def clear(self) -> None:
        self._records.clear()

    def __iter__(self) -> Iterator[DecisionRecord]:
        return iter(self._records)

    def __len__(self) -> int:
        return len(self._records)


@dataclass(frozen=True, slots=True)
class DecisionStatistics:
    total_decisions: int
    average_confidence: float
    average_execution_time: float
    state_distribution: dict[BehaviorState, int]
    most_common_decision: BehaviorState
    decisions_per_minute: float
    recent_decisions: tuple[DecisionRecord, ...]


@dataclass(frozen=True, slots=True)
class SystemDecisionStatistics:
    total_entities_with_decisions: int = 0
    total_decisions: int = 0
    average_decisions_per_entity: float = 0.0
    average_execution_time: float = 0.0
    average_confidence: float = 0.0
    global_state_distribution: dict[BehaviorState, int] = field(default_factory=dict)


class DecisionJournal:
    """Arena of per-entity histories and adaptation tables."""

    __slots__ = ("_config", "_histories", "_adaptations", "_lock")

    def __init__(self, config: EngineConfig) -> None:
        self._config = config
        self._histories: dict[int, DecisionHistory] = {}
        self._adaptations: dict[int, RuleAdaptation] = {}
        self._lock = threading.Lock()

    # ------------------------------------------------------------------
    # Buckets
    # ------------------------------------------------------------------

    def ensure(self, entity: int) -> DecisionHistory:
        history = self._histories.get(entity)
        if history is not None:
            return history
        with self._lock:
            history = self._histories.get(entity)
            if history is None:
                history = DecisionHistory(self._config.max_history_per_entity)
                self._histories[entity] = history
                self._adaptations[entity] = RuleAdaptation(self._config)
            return history

    def history(self, entity: int) -> DecisionHistory | None:
        return self._histories.get(entity)

    def adaptation(self, entity: int) -> RuleAdaptation:
        self.ensure(entity)
        return self._adaptations[entity]

    def __contains__(self, entity: int) -> bool:
        return entity in self._histories

    def __len__(self) -> int:
        return len(self._histories)

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def record(self, entity: int, record: DecisionRecord) -> None:
        """Append, evicting the oldest record beyond capacity."""
        self.ensure(entity).append(record)

    def prune(self, now: float) -> int:
        """Drop records older than the retention window across all entities."""
        cutoff = now - self._config.history_retention_seconds
        dropped = sum(h.prune(cutoff) for h in self._histories.values())
        if dropped:
            logger.debug("Pruned %d decision records older than %.1fs", dropped, cutoff)
        return dropped

    def clear_entity(self, entity: int) -> None:
        with self._lock:
            self._histories.pop(entity, None)
            self._adaptations.pop(entity, None)

    def clear_all(self) -> None:
        with self._lock:
            self._histories.clear()
            self._adaptations.clear()

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def recent(self, entity: int, count: int) -> list[DecisionRecord]:
        history = self._histories.get(entity)
        return history.recent(count) if history is not None else []

    def get_statistics(self, entity: int) -> DecisionStatistics | None:
        history = self._histories.get(entity)
        if history is None or len(history) == 0:
            return None
        records = list(history)
        total = len(records)
        counts = Counter(r.decision for r in records)

        span = records[-1].timestamp - records[0].timestamp if total > 1 else 0.0
        if span <= 0.0:
            span = 1.0

        return DecisionStatistics(
            total_decisions=total,
            average_confidence=sum(r.confidence for r in records) / total,
            average_execution_time=sum(r.execution_time for r in records) / total,
            state_distribution=dict(counts),
            most_common_decision=counts.most_common(1)[0][0],
            decisions_per_minute=total * 60.0 / span,
            recent_decisions=tuple(history.recent(RECENT_IN_STATS)),
        )

    def get_system_statistics(self) -> SystemDecisionStatistics:
        histories = [h for h in self._histories.values() if len(h)]
        if not histories:
            return SystemDecisionStatistics()
        counts: Counter[BehaviorState] = Counter()
        total = 0
        confidence = 0.0
        exec_time = 0.0
        for history in histories:
            for record in history:
                total += 1
                confidence += record.confidence
                exec_time += record.execution_time
                counts[record.decision] += 1
        return SystemDecisionStatistics(
            total_entities_with_decisions=len(histories),
            total_decisions=total,
            average_decisions_per_entity=total / len(histories),
            average_execution_time=exec_time / total,
            average_confidence=confidence / total,
            global_state_distribution=dict(counts),
        )
