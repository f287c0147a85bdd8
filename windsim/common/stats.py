# -*- coding: utf-8 -*-
"""Small statistics helpers shared by the sampler, the baker and the delta field.

Quartiles use plain order statistics on the sorted halves of the data: the
median of an even count averages the two middle values and, for an odd count,
both halves include the median element. This keeps the box plot of a handful
of samples stable and easy to verify by hand.
"""
from __future__ import annotations

from dataclasses import dataclass
import math
from typing import Sequence, Tuple

import numpy as np


def gaussian(x, scalar: float = 1.0, offset: float = 0.0, width: float = 1.0):
    """Gaussian bell ``scalar * exp(-(x - offset)^2 / (2 width^2))``.

    ``width`` is floored at 1.0 so a zero nearest-distance never divides by
    zero. Works on scalars and numpy arrays alike.
    """
    safe_width = max(1.0, float(width))
    return scalar * np.exp(-((x - offset) ** 2) / (2.0 * safe_width * safe_width))


def median_indices(length: int) -> Tuple[int, int]:
    """Return the (lower, upper) middle indices for ``length`` sorted values."""
    lower = int(math.ceil(length / 2.0) - 1)
    upper = int(math.floor(length / 2.0))
    return lower, upper


def median(values: Sequence[float], left: int = 0, right: int | None = None) -> float:
    """Median of the sorted slice ``values[left:right]``."""
    if right is None:
        right = len(values)
    if right < left:
        raise ValueError("right index cannot precede left index")
    count = right - left
    if count == 0:
        return 0.0
    if count < 2:
        return float(values[left])
    lo, hi = median_indices(count)
    return (float(values[left + lo]) + float(values[left + hi])) / 2.0


def quartile1(values: Sequence[float]) -> float:
    """First quartile of already sorted ``values``."""
    lower, _ = median_indices(len(values))
    return median(values, 0, lower + 1)


def quartile3(values: Sequence[float]) -> float:
    """Third quartile of already sorted ``values``."""
    _, upper = median_indices(len(values))
    return median(values, upper, len(values))


def standard_deviation(values: Sequence[float]) -> float:
    if len(values) == 0:
        return 0.0
    return float(np.std(np.asarray(values, dtype=np.float64)))


@dataclass
class BoxPlot:
    median: float
    q1: float
    q3: float
    min: float
    max: float
    count: int = 0
    outliers: int = 0

    @property
    def iqr(self) -> float:
        return self.q3 - self.q1


def box_plot(values: Sequence[float], whisker: float = 1.5) -> BoxPlot:
    """Summarize ``values`` (any order) as a Tukey box plot.

    Whiskers sit at ``q1 - whisker*iqr`` and ``q3 + whisker*iqr``, pulled in to
    the observed extremes when the data does not reach them.
    """
    data = np.sort(np.asarray(values, dtype=np.float64).ravel())
    n = int(data.size)
    if n == 0:
        return BoxPlot(0.0, 0.0, 0.0, 0.0, 0.0, 0, 0)
    q1 = quartile1(data)
    q3 = quartile3(data)
    iqr = q3 - q1
    lo = max(float(data[0]), q1 - whisker * iqr)
    hi = min(float(data[-1]), q3 + whisker * iqr)
    outliers = int(np.count_nonzero((data < lo) | (data > hi)))
    return BoxPlot(median(data), q1, q3, lo, hi, n, outliers)


__all__ = [
    "gaussian",
    "median_indices",
    "median",
    "quartile1",
    "quartile3",
    "standard_deviation",
    "BoxPlot",
    "box_plot",
]
