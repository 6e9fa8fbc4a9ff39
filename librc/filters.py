r"""
Feature filters normalize natural feature values into a working range and back.

+ `RealFeatureFilter` : optional standardization, then linear rescaling from the observed
    feature range (optionally widened by a 10% reserve) into the output range.
+ `BinFeatureFilter` : binary values $\{0, 1\}$ mapped to the bounds of the output range.
"""

import numpy as np

from librc.mathtools import Interval, RunningStat, INT_N1P1

class FeatureFilterBase:
    outputRange: Interval

    def __init__(self, outputRange: Interval = INT_N1P1) -> None:
        self.outputRange = outputRange
        self.stat = RunningStat()

    def reset(self) -> None:
        self.stat.reset()

    def update(self, sample) -> None:
        self.stat.addSamples(sample)

    def fit(self, samples) -> "FeatureFilterBase":
        self.reset()
        self.update(samples)
        return self

    def apply(self, value):
        raise NotImplementedError

    def applyReverse(self, value):
        raise NotImplementedError

class RealFeatureFilter(FeatureFilterBase):
    RANGE_RESERVE_COEFF = 0.1

    def __init__(self, outputRange: Interval = INT_N1P1, standardize: bool = True, keepReserve: bool = True) -> None:
        super().__init__(outputRange)
        self.standardize = standardize
        self.keepReserve = keepReserve

    @property
    def _stdDev(self) -> float:
        sd = self.stat.stdDev
        return sd if sd > 0 else 1.0

    @property
    def featureRange(self) -> Interval:
        if self.stat.count == 0:
            return Interval(0.0, 0.0)
        if self.standardize:
            mean = self.stat.mean
            hi = max(abs((self.stat.min - mean) / self._stdDev), abs((self.stat.max - mean) / self._stdDev))
            low, high = -hi, hi
        else:
            low, high = self.stat.min, self.stat.max
        if self.keepReserve:
            addSpan = ((high - low) / 2) * self.RANGE_RESERVE_COEFF
            low -= addSpan
            high += addSpan
        return Interval(low, high)

    def apply(self, value):
        value = np.asarray(value, dtype=float)
        if self.standardize:
            value = (value - self.stat.mean) / self._stdDev
        return self.outputRange.rescale(value, self.featureRange)

    def applyReverse(self, value):
        featureRange = self.featureRange
        value = np.asarray(value, dtype=float)
        if featureRange.span == 0:
            value = np.full_like(value, featureRange.mid)
        else:
            value = featureRange.rescale(value, self.outputRange)
        if self.standardize:
            value = value * self._stdDev + self.stat.mean
        return value

class BinFeatureFilter(FeatureFilterBase):
    BIN_BORDER = 0.5
    """Border of natural binary values."""

    def apply(self, value):
        value = np.asarray(value, dtype=float)
        return np.where(value >= self.BIN_BORDER, self.outputRange.max, self.outputRange.min)

    def applyReverse(self, value):
        value = np.asarray(value, dtype=float)
        return np.where(value >= self.outputRange.mid, 1.0, 0.0)

def createFilter(featureType: str, outputRange: Interval = INT_N1P1) -> FeatureFilterBase:
    """Filter for `'real'` (standardized, with reserve) or `'binary'` features."""
    if featureType == 'real':
        return RealFeatureFilter(outputRange, standardize=True, keepReserve=True)
    elif featureType == 'binary':
        return BinFeatureFilter(outputRange)
    raise ValueError(f"Unknown feature type {featureType}")
