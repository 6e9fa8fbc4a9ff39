r"""
One-takes-all groups resolve a set of classification readout units to a single winner.

+ **Basic** : member results are mapped from $[-1, 1]$ to $[0, 1]$, scaled to sum 1 and the
    highest one wins.
+ **ClusterChain** : a probabilistic cluster chain, trained on the member units' results,
    computes the class probabilities.
"""

from typing import List, Sequence

import numpy as np

from librc.cluster import ClusterChain, ClusterChainBuilder
from librc.console import getLogger
from librc.datautils import VectorBundle
from librc.filters import BinFeatureFilter, FeatureFilterBase
from librc.mathtools import INT_N1P1, INT_ZP1, scaleToNewSum, firstArgMax
from librc.network import OutputType, BuildController, EpochDoneCallback
from librc.readout_unit import CompositeResult
from librc.settings import DecisionMethod, OneTakesAllGroupSettings
from librc.validation import InvalidOperationError, NotTrainedError, AlreadyBuiltError, ValidationError

log = getLogger("readout")

class OneTakesAllGroup:
    memberIdxs: List[int]
    """Readout layer indexes of the member units, in decision order."""

    def __init__(self, index: int, name: str, memberIdxs: Sequence[int], settings: OneTakesAllGroupSettings) -> None:
        if len(memberIdxs) < 2:
            raise ValidationError(f"Group {name} needs at least 2 members", field="memberIdxs", value=memberIdxs)
        self.index = index
        self.name = name
        self.memberIdxs = list(memberIdxs)
        self.settings = settings
        self.probabilisticChain = None

    @property
    def decisionMethod(self) -> DecisionMethod:
        return self.settings.decisionMethod

    @property
    def ready(self) -> bool:
        if self.decisionMethod == DecisionMethod.BASIC:
            return True
        return not self.probabilisticChain is None and self.probabilisticChain.built

    def reset(self) -> None:
        self.probabilisticChain = None

    def createInputVector(self, unitResults: Sequence[CompositeResult]) -> np.ndarray:
        """Concatenates the members' final results and/or sub-results, as configured."""
        d = self.settings.decision
        return np.concatenate([
            unitResults[m].flatten(d.useReadoutUnitsFinalResult, d.useReadoutUnitsSubResults) 
            for m in self.memberIdxs
        ])

    def createOutputVector(self, idealVector, filters: Sequence[FeatureFilterBase]) -> np.ndarray:
        """Natural binary ideal values of the members (normalized layer ideal vector in)."""
        return np.array([float(filters[m].applyReverse(idealVector[m])) for m in self.memberIdxs])

    def build(
        self, 
        unitResults: Sequence[Sequence[CompositeResult]], 
        idealVectors, 
        filters: Sequence[FeatureFilterBase], 
        rng=0, 
        controller: BuildController = None, 
        onEpochDone: EpochDoneCallback = None,
    ) -> ClusterChain:
        """
        Trains the probabilistic decision chain.

        + `unitResults` : per sample, the composite results of all layer units.
        + `idealVectors` : per sample, the normalized ideal outputs of all layer units.
        + `filters` : output filters of all layer units.
        """
        if self.decisionMethod != DecisionMethod.CLUSTER_CHAIN:
            raise InvalidOperationError(f"Group {self.name} uses the basic decision method and can not be built")
        if self.ready:
            raise AlreadyBuiltError(f"Group {self.name} is already built")

        bundle = VectorBundle()
        for results, ideal in zip(unitResults, idealVectors):
            bundle.addPair(self.createInputVector(results), self.createOutputVector(ideal, filters))

        chainFilters = [BinFeatureFilter(INT_ZP1) for _ in self.memberIdxs]
        builder = ClusterChainBuilder(
            f"OTAG-{self.name}", self.settings.decision.clusterChain, OutputType.PROBABILISTIC, 
            rng=rng, controller=controller, onEpochDone=onEpochDone,
        )
        self.probabilisticChain = builder.build(bundle, chainFilters)
        log.info("One-takes-all group %s built", self.name)
        return self.probabilisticChain

    def compute(self, unitResults: Sequence[CompositeResult]):
        """
        Returns `(winner, groupResult)`: the position of the winning member in `memberIdxs` and
        the group composite result (class probabilities).
        """
        if self.decisionMethod == DecisionMethod.BASIC:
            p = np.array([INT_ZP1.rescale(unitResults[m].result[0], INT_N1P1) for m in self.memberIdxs])
            p = scaleToNewSum(p)
            groupResult = CompositeResult(p)
        else:
            if not self.ready:
                raise NotTrainedError(f"Group {self.name} is not built")
            p, subResults = self.probabilisticChain.compute(self.createInputVector(unitResults))
            groupResult = CompositeResult(p, subResults)
        winner = firstArgMax(INT_N1P1.rescale(groupResult.result, INT_ZP1))
        return winner, groupResult
