"""
Percentile bootstrap confidence intervals for a mean.
"""

import random
from collections.abc import Sequence
from dataclasses import dataclass

DEFAULT_SAMPLES = 1000
LOWER_PERCENTILE = 0.05
UPPER_PERCENTILE = 0.95


@dataclass(frozen=True, slots=True)
class ConfidenceInterval:
    lo: float
    hi: float
    mean: float

    def format(self, percent: bool = True) -> str:
        if percent:
            return f"{self.mean * 100:.1f}%  [{self.lo * 100:.1f}%, {self.hi * 100:.1f}%]"
        return f"{self.mean:.3f}  [{self.lo:.3f}, {self.hi:.3f}]"


def bootstrap_ci(
    values: Sequence[float],
    samples: int = DEFAULT_SAMPLES,
    rng: random.Random | None = None,
) -> ConfidenceInterval:
    """
    90% bootstrap interval of the mean of `values`.

    Resamples with replacement `samples` times and reports the 5th and 95th
    percentile of the resampled means. Pass a seeded `random.Random` for
    reproducible intervals.
    """
    if not values or samples <= 0:
        return ConfidenceInterval(0.0, 0.0, 0.0)

    rng = rng or random.Random()
    count = len(values)
    means = sorted(sum(rng.choices(values, k=count)) / count for _ in range(samples))
    return ConfidenceInterval(
        lo=means[int(samples * LOWER_PERCENTILE)],
        hi=means[min(int(samples * UPPER_PERCENTILE), samples - 1)],
        mean=sum(means) / samples,
    )


def intervals_overlap(a: ConfidenceInterval, b: ConfidenceInterval) -> bool:
    return a.lo <= b.hi and b.lo <= a.hi
