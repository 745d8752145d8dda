"""Explicit seeded random source.

Every random draw in parsecheck goes through a SeededRandom passed in by
the caller; there is no module-level random state. Integer draws are
``floor(random() * n)`` so a sequence depends only on the seed and the
order of draws, never on how a range is sampled internally.

Python 3.13+.
"""

import random
from collections.abc import Sequence

__all__ = ["SeededRandom"]


class SeededRandom:
    """Deterministic random source owned by one trial.

    Thread Safety:
        Not thread-safe. Each trial creates its own instance.

    Example:
        >>> rng = SeededRandom(42)
        >>> rng.below(3)
        1
    """

    __slots__ = ("_random", "seed")

    def __init__(self, seed: int) -> None:
        self.seed = seed
        self._random = random.Random(seed)

    def random(self) -> float:
        """Next float in [0.0, 1.0)."""
        return self._random.random()

    def below(self, n: int) -> int:
        """Integer uniform in [0, n).

        Raises:
            ValueError: If n < 1
        """
        if n < 1:
            msg = f"Upper bound must be >= 1, got {n}"
            raise ValueError(msg)
        return min(int(self._random.random() * n), n - 1)

    def between(self, low: int, high: int) -> int:
        """Integer uniform in [low, high] inclusive."""
        return low + self.below(high - low + 1)

    def choice[T](self, items: Sequence[T]) -> T:
        """Uniform element of a non-empty sequence."""
        return items[self.below(len(items))]

    def weighted(self, weights: Sequence[int]) -> int:
        """Index drawn with probability proportional to its weight.

        Raises:
            ValueError: If no weight is positive
        """
        total = sum(weights)
        if total <= 0:
            msg = "At least one weight must be positive"
            raise ValueError(msg)
        draw = self.below(total)
        for index, weight in enumerate(weights):
            if draw < weight:
                return index
            draw -= weight
        return len(weights) - 1
