"""Domain-separated deterministic RNG using xxhash.

Decision outcomes for tick T depend only on the seed and the snapshot at T;
the order in which entities (or worker threads) run must not matter.

Formula: RNG_Value = Hash(Seed, Domain, EntityID, Tick, Salt)
"""

from __future__ import annotations

import struct

import xxhash

from behavior_engine.core.enums import Domain


class DeterministicRNG:
    """Stateless domain-separated pseudo-random number generator.

    Each call is a pure function of its arguments, so one instance can be
    handed to every subsystem that needs randomness and to every worker.
    """

    __slots__ = ("_seed",)

    _MAX_UINT64 = (1 << 64) - 1

    def __init__(self, seed: int) -> None:
        self._seed = seed

    @property
    def seed(self) -> int:
        return self._seed

    def _hash(self, domain: Domain, entity_id: int, tick: int, salt: int) -> int:
        payload = struct.pack("<qiqqi", self._seed, domain.value, entity_id, tick, salt)
        return xxhash.xxh64(payload).intdigest()

    def next_float(self, domain: Domain, entity_id: int, tick: int, salt: int = 0) -> float:
        """Return a deterministic float in [0.0, 1.0)."""
        return self._hash(domain, entity_id, tick, salt) / (self._MAX_UINT64 + 1)

    def next_int(self, domain: Domain, entity_id: int, tick: int, low: int, high: int, salt: int = 0) -> int:
        """Return a deterministic integer in [low, high] inclusive."""
        f = self.next_float(domain, entity_id, tick, salt)
        return low + int(f * (high - low + 1))

    def next_bool(self, domain: Domain, entity_id: int, tick: int, probability: float = 0.5, salt: int = 0) -> bool:
        """Return True with the given probability."""
        return self.next_float(domain, entity_id, tick, salt) < probability

    def choice_index(self, domain: Domain, entity_id: int, tick: int, count: int, salt: int = 0) -> int:
        """Uniform index into a sequence of length *count* (> 0)."""
        if count <= 0:
            raise ValueError("choice_index needs a non-empty sequence")
        return self.next_int(domain, entity_id, tick, 0, count - 1, salt)
