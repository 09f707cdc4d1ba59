"""Engine configuration with sensible defaults."""

from __future__ import annotations

from dataclasses import dataclass, field

from behavior_engine.core.enums import BehaviorState


def _default_min_dwell() -> dict[BehaviorState, float]:
    # Seconds a state must run before a lower-urgency proposal may replace it.
    return {
        BehaviorState.ATTACK: 1.0,
        BehaviorState.FLEE: 2.0,
        BehaviorState.HUNT: 0.5,
        BehaviorState.SEARCH: 1.0,
        BehaviorState.GUARD: 0.5,
        BehaviorState.FOLLOW: 0.5,
    }


@dataclass(frozen=True)
class EngineConfig:
    """Immutable construction-time configuration for the decision engine."""

    # Timing
    tick_seconds: float = 0.1
    decision_interval_ticks: int = 2       # 0.2 s at the default tick length
    target_update_interval_ticks: int = 5

    # History
    max_history_per_entity: int = 20
    history_retention_seconds: float = 60.0
    oscillation_window: int = 5
    oscillation_threshold: int = 3
    oscillation_decay: float = 0.9
    min_confidence_multiplier: float = 0.05
    min_history_for_learning: int = 3
    min_fuzzy_confidence: float = 0.3    # weaker fuzzy conclusions are ignored

    # Perception
    sight_radius: float = 10.0
    detection_range: float = 8.0
    memory_duration_seconds: float = 30.0
    max_known_entities: int = 32
    max_interesting_locations: int = 5

    # Interrupts
    min_dwell_seconds: dict[BehaviorState, float] = field(default_factory=_default_min_dwell)

    # Effectiveness
    fast_decision_seconds: float = 0.05
    slow_decision_seconds: float = 0.2

    # Workers
    world_seed: int = 42
    num_workers: int = 1
    worker_timeout_seconds: float = 2.0

    # Logging
    log_level: str = "INFO"

    def __post_init__(self) -> None:
        if self.tick_seconds <= 0:
            raise ValueError(f"tick_seconds must be positive, got {self.tick_seconds}")
        if self.decision_interval_ticks < 1:
            raise ValueError(f"decision_interval_ticks must be >= 1, got {self.decision_interval_ticks}")
        if self.target_update_interval_ticks < 1:
            raise ValueError(
                f"target_update_interval_ticks must be >= 1, got {self.target_update_interval_ticks}")
        if self.max_history_per_entity < 1:
            raise ValueError(f"max_history_per_entity must be >= 1, got {self.max_history_per_entity}")
        if self.oscillation_window < 2:
            raise ValueError(f"oscillation_window must be >= 2, got {self.oscillation_window}")
        if not 0.0 < self.oscillation_decay <= 1.0:
            raise ValueError(f"oscillation_decay must be in (0, 1], got {self.oscillation_decay}")
        for name in ("history_retention_seconds", "sight_radius", "detection_range", "memory_duration_seconds"):
            if getattr(self, name) <= 0:
                raise ValueError(f"{name} must be positive, got {getattr(self, name)}")
        if self.max_known_entities < 1:
            raise ValueError(f"max_known_entities must be >= 1, got {self.max_known_entities}")
        if self.max_interesting_locations < 1:
            raise ValueError(f"max_interesting_locations must be >= 1, got {self.max_interesting_locations}")

    @property
    def decision_interval_seconds(self) -> float:
        return self.decision_interval_ticks * self.tick_seconds

    @property
    def target_update_interval_seconds(self) -> float:
        return self.target_update_interval_ticks * self.tick_seconds
