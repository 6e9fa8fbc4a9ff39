r"""
The readout layer maps reservoir predictors to task outputs.

`ReadoutLayer.build()` normalizes the training data, builds one `ReadoutUnit` per output
field and trains the one-takes-all groups using a probabilistic cluster chain. 
`ReadoutLayer.compute()` returns the natural output vector, where the members of each 
one-takes-all group are resolved to 1 (winner) and 0 (others).
"""

from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Dict, List, Optional

import numpy as np
from rich.table import Table
from rich import box

from librc.console import console, getLogger
from librc.datautils import VectorBundle
from librc.filters import FeatureFilterBase, RealFeatureFilter, createFilter
from librc.mathtools import INT_N1P1
from librc.network import BuildController, EpochDoneCallback
from librc.onetakesall import OneTakesAllGroup
from librc.predictors import PredictorsMapper
from librc.readout_unit import ReadoutUnit, CompositeResult
from librc.settings import ReadoutLayerSettings, TaskType, DecisionMethod
from librc.validation import (
    AlreadyBuiltError, NotTrainedError, LengthMismatchError, ValidationError, checkLength
)

log = getLogger("readout")

@dataclass
class ReadoutUnitOverview:
    name: str
    task: TaskType
    natPrecisionErrStat: object
    nrmPrecisionErrStat: object
    binaryErrStat: object = None

class RegressionOverview:
    """Testing error statistics of the readout units gathered during `ReadoutLayer.build()`."""

    def __init__(self, units: List[ReadoutUnitOverview]) -> None:
        self.units = units

    def table(self) -> Table:
        """ Construct a `rich` table of the readout units errors. """
        table = Table(title="RegressionOverview", box=box.SIMPLE_HEAD)

        table.add_column("Unit", justify="left")
        table.add_column("Task", justify="center")
        table.add_column("Samples", justify="center")
        table.add_column("Avg abs err (natural)", justify="center")
        table.add_column("Max abs err (natural)", justify="center")
        table.add_column("Avg abs err (normalized)", justify="center")
        table.add_column("Binary errors", justify="center")

        for u in self.units:
            binErr = "-"
            if not u.binaryErrStat is None:
                binErr = f"{u.binaryErrStat.errCount}/{u.binaryErrStat.totalErrStat.count} ({u.binaryErrStat.errRate:.2%})"
            table.add_row(
                u.name, u.task.value, str(u.natPrecisionErrStat.count),
                str(np.round(u.natPrecisionErrStat.mean, 6)), str(np.round(u.natPrecisionErrStat.max, 6)),
                str(np.round(u.nrmPrecisionErrStat.mean, 6)), binErr,
            )

        return table

    def report(self) -> str:
        """Plain text rendering of `table()`."""
        with console.capture() as capture:
            console.print(self.table())
        return capture.get()

    def print(self) -> None:
        """ Print `rich` table of contents. """
        console.print(self.table())

@dataclass
class ReadoutData:
    dataVector: np.ndarray
    """Natural output values."""
    nrmDataVector: np.ndarray
    """Normalized output values after the one-takes-all decisions."""
    unitResults: List[CompositeResult]
    groupResults: Dict[str, CompositeResult] = field(default_factory=dict)
    groupWinners: Dict[str, str] = field(default_factory=dict)
    """Name of the winning unit of each group."""

class ReadoutLayer:
    DATA_RANGE = INT_N1P1
    """Working range of the normalized predictors and outputs."""

    units: List[ReadoutUnit]
    groups: List[OneTakesAllGroup]

    def __init__(self, settings: ReadoutLayerSettings, maxWorkers: Optional[int] = None) -> None:
        self.settings = settings
        self.maxWorkers = maxWorkers
        self.reset()

    def reset(self) -> None:
        """Drops all trained state."""
        s = self.settings
        self.units = [ReadoutUnit(i, u.name, u.task, s.unitChain(u)) for i, u in enumerate(s.units)]
        self.groups = [
            OneTakesAllGroup(i, g.name, [s.unitIdx(m) for m in g.members], g) for i, g in enumerate(s.groups)
        ]
        self.predictorsMapper = None
        self.predictorFilters: List[FeatureFilterBase] = []
        self.outputFilters: List[FeatureFilterBase] = []
        self.trained = False

    @property
    def numOfUnits(self) -> int:
        return len(self.units)

    def _normalizePredictors(self, x) -> np.ndarray:
        nrm = np.array([float(f.apply(v)) for f, v in zip(self.predictorFilters, x)])
        nrm[~self.predictorsMapper.generalSwitches] = np.nan
        return nrm

    def _normalizeOutputs(self, y) -> np.ndarray:
        return np.array([float(f.apply(v)) for f, v in zip(self.outputFilters, y)])

    def build(
        self, 
        bundle: VectorBundle, 
        predictorsMapper: PredictorsMapper = None, 
        controller: BuildController = None, 
        onEpochDone: EpochDoneCallback = None, 
        seed=0,
    ) -> RegressionOverview:
        r"""
        Builds the readout layer.

        + `bundle` : natural predictors and ideal outputs (one output per readout unit).
        + `predictorsMapper` : selection of predictors per unit, default all predictors for all units.
        + `controller` : network build controller, default `librc.network.defaultBuildController`.
        + `onEpochDone` : callback `(progress, foundBetter)` invoked after each training epoch.
        + `seed` : seed of the data shuffling and fold reshuffling.
        """
        if self.trained:
            raise AlreadyBuiltError("Readout layer is already built, call reset() first")
        # drop units left built by an interrupted build
        self.reset()
        bundle.check()
        if bundle.inputLength == 0:
            raise ValidationError("Number of predictors must be greater than 0", field="inputVectors", value=0)
        if bundle.outputLength != self.numOfUnits:
            raise LengthMismatchError(
                f"Number of ideal outputs ({bundle.outputLength}) differs from the number of readout units ({self.numOfUnits})",
                field="outputVectors", value=bundle.outputLength
            )
        if predictorsMapper is None:
            predictorsMapper = PredictorsMapper(bundle.inputLength)
        elif predictorsMapper.numOfPredictors != bundle.inputLength:
            raise LengthMismatchError(
                "Predictors mapper does not match the number of predictors", 
                field="predictorsMapper", value=predictorsMapper.numOfPredictors
            )
        self.predictorsMapper = predictorsMapper
        rng = np.random.default_rng(seed)

        # filters
        X = bundle.inputMatrix()
        Y = bundle.outputMatrix()
        with ThreadPoolExecutor(max_workers=self.maxWorkers) as pool:
            self.predictorFilters = list(pool.map(
                lambda i: RealFeatureFilter(self.DATA_RANGE, standardize=True, keepReserve=True).fit(X[:, i]),
                range(X.shape[1])
            ))
            self.outputFilters = list(pool.map(
                lambda i: createFilter(
                    'binary' if self.units[i].task == TaskType.CLASSIFICATION else 'real', self.DATA_RANGE
                ).fit(Y[:, i]),
                range(Y.shape[1])
            ))

            # normalization
            nrmInputs = list(pool.map(self._normalizePredictors, bundle.inputVectors))
            nrmOutputs = list(pool.map(self._normalizeOutputs, bundle.outputVectors))

        data = VectorBundle(nrmInputs, nrmOutputs)
        data.shuffle(rng)

        # readout units
        unitResults = [[None] * self.numOfUnits for _ in range(len(data))]
        for unit in self.units:
            unitInputs = predictorsMapper.createVectorCollection(unit.name, data.inputVectors)
            unitBundle = VectorBundle(unitInputs, [y[[unit.index]] for y in data.outputVectors])
            unit.build(unitBundle, [self.outputFilters[unit.index]], rng=rng, controller=controller, onEpochDone=onEpochDone)
            for sampleIdx, x in enumerate(unitInputs):
                unitResults[sampleIdx][unit.index] = unit.compute(x)

        # one-takes-all groups
        for group in self.groups:
            if group.decisionMethod == DecisionMethod.CLUSTER_CHAIN:
                group.build(
                    unitResults, data.outputVectors, self.outputFilters, 
                    rng=rng, controller=controller, onEpochDone=onEpochDone,
                )

        self.trained = True
        log.info("Readout layer built: %d units, %d groups, %d samples", self.numOfUnits, len(self.groups), len(data))

        return RegressionOverview([
            ReadoutUnitOverview(
                u.name, u.task, u.chain.errorStats.natPrecisionErrStat, 
                u.chain.errorStats.nrmPrecisionErrStat, u.chain.errorStats.binaryErrStat,
            ) for u in self.units
        ])

    def compute(self, predictors):
        """Returns `(naturalOutputVector, ReadoutData)` for a natural predictor vector."""
        if not self.trained:
            raise NotTrainedError("Readout layer is not trained")
        predictors = np.asarray(predictors, dtype=float).ravel()
        checkLength(predictors, len(self.predictorFilters), "predictors")

        nrm = self._normalizePredictors(predictors)
        unitResults = [u.compute(self.predictorsMapper.createVector(u.name, nrm)) for u in self.units]
        nrmOutput = np.array([r.result[0] for r in unitResults])

        groupResults = {}
        groupWinners = {}
        for group in self.groups:
            winner, groupResult = group.compute(unitResults)
            for pos, m in enumerate(group.memberIdxs):
                nrmOutput[m] = self.DATA_RANGE.max if pos == winner else self.DATA_RANGE.min
            groupResults[group.name] = groupResult
            groupWinners[group.name] = self.units[group.memberIdxs[winner]].name

        output = np.array([float(f.applyReverse(v)) for f, v in zip(self.outputFilters, nrmOutput)])
        return output, ReadoutData(output, nrmOutput, unitResults, groupResults, groupWinners)

    def computeBatch(self, predictors) -> np.ndarray:
        """Natural outputs of each row of a predictor matrix."""
        return np.vstack([self.compute(x)[0] for x in np.atleast_2d(predictors)])
