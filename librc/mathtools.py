"""
Small numerical helpers: intervals, running statistics and vector scalings.
"""

import math
from dataclasses import dataclass

import numpy as np

@dataclass(frozen=True)
class Interval:
    r"""Closed real interval $[\min, \max]$."""

    min: float
    max: float

    def __post_init__(self):
        if self.min > self.max:
            raise ValueError(f"Interval min {self.min} is greater than max {self.max}")

    @property
    def span(self) -> float:
        return self.max - self.min

    @property
    def mid(self) -> float:
        return self.min + self.span / 2

    def belongs(self, value: float) -> bool:
        return self.min <= value <= self.max

    def rescale(self, value, fromInterval: "Interval"):
        r"""
        Linearly maps `value` (scalar or array) from `fromInterval` into this interval.
        A degenerate source interval maps everything to this interval's mid point.
        """
        if fromInterval.span == 0:
            return np.full_like(value, self.mid, dtype=float) if np.ndim(value) else self.mid
        return self.min + (value - fromInterval.min) / fromInterval.span * self.span

INT_N1P1 = Interval(-1.0, 1.0)
"""Interval $[-1, 1]$, range of analog and normalized values."""
INT_ZP1 = Interval(0.0, 1.0)
"""Interval $[0, 1]$, range of spikes and probabilities."""

class RunningStat:
    """Running sum, extremes, mean and standard deviation of a stream of samples."""

    def __init__(self) -> None:
        self.reset()

    def reset(self) -> None:
        self.count = 0
        self.sum = 0.0
        self.sumSq = 0.0
        self.min = math.inf
        self.max = -math.inf
        self.nonzeroCount = 0

    def addSample(self, value: float) -> None:
        self.count += 1
        self.sum += value
        self.sumSq += value * value
        self.min = min(self.min, value)
        self.max = max(self.max, value)
        if value != 0:
            self.nonzeroCount += 1

    def addSamples(self, values) -> None:
        for v in np.ravel(values):
            self.addSample(float(v))

    def merge(self, other: "RunningStat") -> None:
        self.count += other.count
        self.sum += other.sum
        self.sumSq += other.sumSq
        self.min = min(self.min, other.min)
        self.max = max(self.max, other.max)
        self.nonzeroCount += other.nonzeroCount

    @property
    def mean(self) -> float:
        return self.sum / self.count if self.count > 0 else 0.0

    @property
    def variance(self) -> float:
        if self.count == 0:
            return 0.0
        return max(self.sumSq / self.count - self.mean ** 2, 0.0)

    @property
    def stdDev(self) -> float:
        return math.sqrt(self.variance)

    @property
    def rootMeanSquare(self) -> float:
        return math.sqrt(self.sumSq / self.count) if self.count > 0 else 0.0

    @property
    def span(self) -> float:
        return self.max - self.min if self.count > 0 else 0.0

class BinErrStat:
    """
    Binary decision errors of computed against ideal values, both split on `binBorder`.
    `binValErrStat[b]` holds the errors on samples whose ideal value is in bin `b`.
    """

    def __init__(self, binBorder: float) -> None:
        self.binBorder = binBorder
        self.totalErrStat = RunningStat()
        self.binValErrStat = (RunningStat(), RunningStat())

    def update(self, computed, ideal) -> None:
        for c, i in zip(np.ravel(computed), np.ravel(ideal)):
            idealBin = 1 if i >= self.binBorder else 0
            computedBin = 1 if c >= self.binBorder else 0
            err = 0.0 if idealBin == computedBin else 1.0
            self.totalErrStat.addSample(err)
            self.binValErrStat[idealBin].addSample(err)

    @property
    def errCount(self) -> int:
        return int(self.totalErrStat.sum)

    @property
    def errRate(self) -> float:
        return self.totalErrStat.mean

    def merge(self, other: "BinErrStat") -> None:
        self.totalErrStat.merge(other.totalErrStat)
        for b in (0, 1):
            self.binValErrStat[b].merge(other.binValErrStat[b])

def scaleToNewSum(v: np.ndarray, newSum: float = 1.0) -> np.ndarray:
    """Scales non-negative vector `v` to sum `newSum`; a zero-sum vector becomes uniform."""
    v = np.asarray(v, dtype=float)
    s = np.sum(v)
    if s == 0:
        return np.full(v.shape, newSum / v.size)
    return v * (newSum / s)

def softmax(v: np.ndarray) -> np.ndarray:
    v = np.asarray(v, dtype=float)
    e = np.exp(v - np.max(v))
    return e / np.sum(e)

def revertMinMax(v: np.ndarray) -> np.ndarray:
    """Maps the minimum of `v` to its maximum and vice versa (`min + max - v`)."""
    v = np.asarray(v, dtype=float)
    return np.min(v) + np.max(v) - v

def firstArgMax(v) -> int:
    """Index of the maximum of `v`, first index on ties."""
    return int(np.argmax(np.asarray(v)))
