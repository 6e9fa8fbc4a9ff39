from typing import Optional, Sequence

import numpy as np

from librc.cluster import ClusterChain, ClusterChainBuilder
from librc.console import getLogger
from librc.datautils import VectorBundle
from librc.filters import FeatureFilterBase
from librc.network import OutputType, BuildController, EpochDoneCallback
from librc.settings import TaskType, ClusterChainSettings
from librc.validation import AlreadyBuiltError, NotTrainedError

log = getLogger("readout")

class CompositeResult:
    """A result vector with optional sub-results (e.g. outputs of the cluster members)."""

    def __init__(self, result, subResults: Optional[Sequence] = None) -> None:
        self.result = np.asarray(result, dtype=float).ravel()
        self.subResults = None if subResults is None else [np.asarray(s, dtype=float).ravel() for s in subResults]

    def flatten(self, finalResult: bool = True, subResults: bool = True) -> np.ndarray:
        parts = []
        if finalResult:
            parts.append(self.result)
        if subResults and not self.subResults is None:
            parts.extend(self.subResults)
        return np.concatenate(parts) if len(parts) > 0 else np.empty(0)

    def __repr__(self) -> str:
        n = 0 if self.subResults is None else len(self.subResults)
        return f"CompositeResult(result={self.result}, subResults={n})"

def taskOutputType(task: TaskType) -> OutputType:
    return OutputType.REAL if task == TaskType.FORECAST else OutputType.SINGLE_BOOL

class ReadoutUnit:
    chain: Optional[ClusterChain]
    """Trained cluster chain, `None` until built."""

    def __init__(self, index: int, name: str, task: TaskType, chainSettings: ClusterChainSettings) -> None:
        self.index = index
        self.name = name
        self.task = task
        self.chainSettings = chainSettings
        self.chain = None

    @property
    def outputType(self) -> OutputType:
        return taskOutputType(self.task)

    @property
    def ready(self) -> bool:
        return not self.chain is None and self.chain.built

    def reset(self) -> None:
        self.chain = None

    def build(
        self, 
        bundle: VectorBundle, 
        filters: Sequence[FeatureFilterBase] = None, 
        rng=0, 
        controller: BuildController = None, 
        onEpochDone: EpochDoneCallback = None,
    ) -> ClusterChain:
        """Builds the cluster chain on normalized predictors and single-column normalized ideal values."""
        if self.ready:
            raise AlreadyBuiltError(f"Readout unit {self.name} is already built")
        builder = ClusterChainBuilder(
            f"{self.name}", self.chainSettings, self.outputType, rng=rng, 
            controller=controller, onEpochDone=onEpochDone,
        )
        self.chain = builder.build(bundle, filters)
        log.info("Readout unit %s (%s) built", self.name, self.task.value)
        return self.chain

    def compute(self, predictors) -> CompositeResult:
        if not self.ready:
            raise NotTrainedError(f"Readout unit {self.name} is not built")
        output, subResults = self.chain.compute(predictors)
        return CompositeResult(output, subResults)
