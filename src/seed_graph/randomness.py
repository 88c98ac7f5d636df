"""
RandomSource - the single random handle passed through a generation run.

Every importer and the event synthesizer draw from the RandomSource they are
given instead of module-level random state, so a seeded run is reproducible
and nothing outside the run is affected by it.

Usage:
    with RandomSource.scoped(seed=42) as source:
        source.reseed()              # before each table
        source.rng.integers(0, 10)   # numpy draws
        source.fake.name()           # Faker draws
        source.object_id()           # 24-char hex id
"""

from __future__ import annotations

from contextlib import contextmanager
from datetime import datetime, timedelta
from typing import Iterator, Sequence, TypeVar

import numpy as np
from faker import Faker

T = TypeVar("T")


class RandomSource:
    """
    Seedable bundle of a NumPy generator and a Faker instance.

    Attributes:
        seed: Seed applied by reseed(), or None for an unseeded run
        rng: NumPy random generator
        fake: Faker instance (en_US)
    """

    def __init__(self, seed: int | None = None) -> None:
        self.seed = seed
        self.rng: np.random.Generator = np.random.default_rng(seed)
        self.fake = Faker("en_US")
        if seed is not None:
            self.fake.seed_instance(seed)
        self._closed = False

    @classmethod
    @contextmanager
    def scoped(cls, seed: int | None = None) -> Iterator["RandomSource"]:
        """Yield a RandomSource that is closed when the block exits, even on error."""
        source = cls(seed)
        try:
            yield source
        finally:
            source.close()

    @property
    def closed(self) -> bool:
        return self._closed

    def close(self) -> None:
        self._closed = True

    def reseed(self) -> None:
        """
        Reset both generators to the run seed.

        Called before every table so the set of chosen tables does not change
        the values generated for any one table. No-op for unseeded runs.
        """
        if self.seed is None:
            return
        self.rng = np.random.default_rng(self.seed)
        self.fake.seed_instance(self.seed)

    def random_bytes(self, size: int) -> bytes:
        return self.rng.bytes(size)

    def object_id(self) -> str:
        """Return a 24-character hex identifier (ObjectId-shaped)."""
        return self.random_bytes(12).hex()

    def uuid(self) -> str:
        return str(self.fake.uuid4())

    def integer(self, low: int, high: int) -> int:
        """Uniform integer in the closed range [low, high]."""
        return int(self.rng.integers(low, high + 1))

    def chance(self, probability: float) -> bool:
        return bool(self.rng.random() < probability)

    def choice(self, items: Sequence[T]) -> T:
        return items[int(self.rng.integers(0, len(items)))]

    def weighted_choice(self, items: Sequence[T], weights: Sequence[float]) -> T:
        p = np.asarray(weights, dtype=float)
        return items[int(self.rng.choice(len(items), p=p / p.sum()))]

    def sample(self, items: Sequence[T], k: int) -> list[T]:
        """Pick `k` distinct items (fewer if `items` is shorter)."""
        k = min(k, len(items))
        indices = self.rng.choice(len(items), size=k, replace=False)
        return [items[int(i)] for i in indices]

    def datetime_between(self, start: datetime, end: datetime) -> datetime:
        """Uniform instant in [start, end], truncated to whole seconds."""
        if end <= start:
            return start
        span = (end - start).total_seconds()
        return start + timedelta(seconds=int(self.rng.random() * span))
