"""
Injectable random source for the generator.

Everything random in generation goes through a RandomSource so tests can
substitute a scripted sequence and assert exact outputs.
"""

import random
from abc import ABC, abstractmethod
from typing import List, Optional, Sequence, TypeVar

T = TypeVar("T")


class RandomSource(ABC):
    """Strategy interface for random decisions."""

    @abstractmethod
    def index(self, n: int) -> int:
        """Uniform index in [0, n). `n` is always positive."""
        pass

    @abstractmethod
    def ratio(self, numerator: int, denominator: int) -> bool:
        """True with probability numerator/denominator."""
        pass

    def choice(self, items: Sequence[T]) -> T:
        return items[self.index(len(items))]

    def int_in(self, low: int, high: int) -> int:
        """Uniform integer in [low, high]."""
        return low + self.index(high - low + 1)


class SeededRandom(RandomSource):
    def __init__(self, seed: Optional[int] = None):
        self.seed = seed
        self._rng = random.Random(seed)

    def index(self, n: int) -> int:
        return self._rng.randrange(n)

    def ratio(self, numerator: int, denominator: int) -> bool:
        return self._rng.randrange(denominator) < numerator


class ScriptedRandom(RandomSource):
    """
    Replays fixed decisions. Indices are taken modulo `n`; once the script is
    exhausted every index is 0 and every ratio is `default_ratio`.
    """

    def __init__(self, indices: Optional[List[int]] = None, ratios: Optional[List[bool]] = None, default_ratio: bool = True):
        self._indices = list(indices or [])
        self._ratios = list(ratios or [])
        self._default_ratio = default_ratio

    def index(self, n: int) -> int:
        if self._indices:
            return self._indices.pop(0) % n
        return 0

    def ratio(self, numerator: int, denominator: int) -> bool:
        if self._ratios:
            return self._ratios.pop(0)
        return self._default_ratio
