"""Engine layer: decision cadence and worker pool."""

from behavior_engine.engine.decision_loop import DecisionLoop
from behavior_engine.engine.worker_pool import WorkerPool

__all__ = ["DecisionLoop", "WorkerPool"]
