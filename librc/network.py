r"""
Trained non-recurrent networks for the readout layer.

A `RidgeNetwork` is a single linear layer $y = a + W' x$ followed by an output 
transformation depending on its `OutputType`. A `RidgeTrainer` tries one ridge
penalty $\lambda$ per epoch and a `NetworkBuilder` keeps the best epoch according to 
a build controller.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Callable

import numpy as np
from numba import njit

from librc.console import getLogger
from librc.datautils import VectorBundle
from librc.mathtools import Interval, RunningStat, BinErrStat, INT_N1P1, INT_ZP1, scaleToNewSum
from librc.settings import RidgeNetworkSettings
from librc.validation import ValidationError, InvalidOperationError

log = getLogger("network")

class OutputType(Enum):
    SINGLE_BOOL = "singlebool"
    """Single binary decision in $[-1, 1]$."""
    PROBABILISTIC = "probabilistic"
    """Probabilities of mutually exclusive classes in $[0, 1]$."""
    REAL = "real"
    """Real values in $[-1, 1]$."""

    @property
    def outputRange(self) -> Interval:
        return INT_ZP1 if self == OutputType.PROBABILISTIC else INT_N1P1

    @property
    def hasBinErrorStats(self) -> bool:
        return self != OutputType.REAL

## RIDGE ---------------------------------------------------------------

def ridge(X: np.ndarray, Y: np.ndarray, Lambda=None):
    r"""
    Ridge regression of $Y$ on $X$ with an unpenalized intercept. Returns the
    $(1 + K) \times M$ coefficient matrix whose first row is the intercept.

    + If $\lambda < 10^{-12}$ the least squares solution on $[1, X]$ is used.
    + Otherwise `nb_ridge` solves the penalized normal equations on centered data.
    """
    # sanity checks
    Tx, Kx = X.shape
    Ty, _  = Y.shape
    assert Tx == Ty, "Shapes of X and Y non compatible"

    L = 0.0 if Lambda is None else float(Lambda)
    assert L >= 0, "Lambda must be a nonnegative scalar"

    if L < 1e-12:
        V = np.hstack((np.ones((Tx, 1)), X))
        W = np.linalg.lstsq(V, Y, rcond=None)[0]
    else:
        W = nb_ridge(np.ascontiguousarray(X, dtype=np.float64), np.ascontiguousarray(Y, dtype=np.float64), L)

    return W

@njit
def nb_ridge(X, Y, L):
    T, K = X.shape
    M = Y.shape[1]

    # column means
    mX = np.zeros(K)
    mY = np.zeros(M)
    for t in range(T):
        for k in range(K):
            mX[k] += X[t, k]
        for m in range(M):
            mY[m] += Y[t, m]
    mX /= T
    mY /= T

    Xc = X - mX
    Yc = Y - mY
    W = np.linalg.solve((Xc.T @ Xc) / T + L * np.eye(K), (Xc.T @ Yc) / T)
    a = mY - W.T @ mX

    out = np.empty((K + 1, M))
    out[0, :] = a
    out[1:, :] = W
    return out

## NETWORK -------------------------------------------------------------

class RidgeNetwork:
    def __init__(self, numInputs: int, numOutputs: int, outputType: OutputType) -> None:
        assert numInputs >= 1 and numOutputs >= 1
        self.numInputs = numInputs
        self.numOutputs = numOutputs
        self.outputType = outputType
        self.W = np.zeros((numInputs + 1, numOutputs))

    def setWeights(self, W: np.ndarray) -> None:
        assert W.shape == self.W.shape, f"Weights must have shape {self.W.shape}"
        self.W = np.array(W, dtype=float)

    def copy(self) -> "RidgeNetwork":
        net = RidgeNetwork(self.numInputs, self.numOutputs, self.outputType)
        net.W = self.W.copy()
        return net

    def _transform(self, Y: np.ndarray) -> np.ndarray:
        r = self.outputType.outputRange
        Y = np.clip(Y, r.min, r.max)
        if self.outputType == OutputType.PROBABILISTIC and self.numOutputs > 1:
            Y = np.apply_along_axis(scaleToNewSum, 1, Y)
        return Y

    def computeBatch(self, X: np.ndarray) -> np.ndarray:
        X = np.atleast_2d(X)
        if X.shape[1] != self.numInputs:
            raise ValidationError(
                f"Incorrect number of network inputs: expected {self.numInputs}, found {X.shape[1]}", 
                field="input", value=X.shape[1]
            )
        return self._transform(self.W[0, :] + X @ self.W[1:, :])

    def compute(self, x) -> np.ndarray:
        return self.computeBatch(np.asarray(x, dtype=float).reshape((1, -1)))[0, :]

    def weightsStat(self) -> RunningStat:
        stat = RunningStat()
        stat.addSamples(self.W)
        return stat

class RidgeTrainer:
    r"""
    Tries the penalties of `settings.lambdas` in turn, one per epoch. 
    Stops after the last penalty or when two consecutive penalties differ by less than $10^{-10}$.
    """

    STOP_LAMBDA_DIFFERENCE = 1e-10

    def __init__(self, net: RidgeNetwork, bundle: VectorBundle, settings: RidgeNetworkSettings) -> None:
        if len(bundle) == 0:
            raise InvalidOperationError("Can not create trainer: missing training samples")
        self.net = net
        self.settings = settings
        self._X = bundle.inputMatrix()
        self._Y = bundle.outputMatrix()
        self.maxAttempt = 1
        self.attempt = 1
        self.maxAttemptEpoch = len(settings.lambdas)
        self.attemptEpoch = 0
        self.currLambda = None
        self.infoMessage = ""

    def nextAttempt(self) -> bool:
        # only one attempt makes sense
        return False

    def iteration(self) -> bool:
        if self.attemptEpoch == self.maxAttemptEpoch:
            return False
        newLambda = self.settings.lambdas[self.attemptEpoch]
        if self.attemptEpoch > 0 and abs(self.currLambda - newLambda) < self.STOP_LAMBDA_DIFFERENCE:
            return False
        self.currLambda = newLambda
        self.attemptEpoch += 1
        self.infoMessage = f"lambda={self.currLambda}"
        self.net.setWeights(ridge(self._X, self._Y, self.currLambda))
        return True

## TRAINED NETWORK AND BUILDER -----------------------------------------

def batchErrorStat(net: RidgeNetwork, bundle: VectorBundle):
    """Absolute errors of all computed output values, and the computed outputs."""
    computed = net.computeBatch(bundle.inputMatrix())
    stat = RunningStat()
    stat.addSamples(np.abs(computed - bundle.outputMatrix()))
    return stat, computed

class TrainedNetwork:
    def __init__(self, name: str, outputType: OutputType, network: RidgeNetwork) -> None:
        self.name = name
        self.outputType = outputType
        self.network = network
        self.trainerInfoMessage = ""
        self.trainingErrorStat = RunningStat()
        self.testingErrorStat = RunningStat()
        self.trainingBinErrorStat = None
        self.testingBinErrorStat = None
        self.combinedPrecisionError = np.inf
        self.combinedBinaryError = np.inf

    @property
    def hasBinErrorStats(self) -> bool:
        return self.outputType.hasBinErrorStats

    @property
    def numOutputs(self) -> int:
        return self.network.numOutputs

    def compute(self, x) -> np.ndarray:
        return self.network.compute(x)

    @classmethod
    def evaluate(cls, name, outputType, net: RidgeNetwork, trainingBundle: VectorBundle, testingBundle: VectorBundle):
        r"""Snapshot of `net` with its training/testing statistics. Combined errors are the worse of the two."""
        tn = cls(name, outputType, net.copy())
        border = outputType.outputRange.mid

        tn.trainingErrorStat, trainComputed = batchErrorStat(net, trainingBundle)
        tn.combinedPrecisionError = tn.trainingErrorStat.mean
        if outputType.hasBinErrorStats:
            tn.trainingBinErrorStat = BinErrStat(border)
            tn.trainingBinErrorStat.update(trainComputed, trainingBundle.outputMatrix())
            tn.combinedBinaryError = tn.trainingBinErrorStat.totalErrStat.sum

        tn.testingErrorStat, testComputed = batchErrorStat(net, testingBundle)
        tn.combinedPrecisionError = max(tn.combinedPrecisionError, tn.testingErrorStat.mean)
        if outputType.hasBinErrorStats:
            tn.testingBinErrorStat = BinErrStat(border)
            tn.testingBinErrorStat.update(testComputed, testingBundle.outputMatrix())
            tn.combinedBinaryError = max(tn.combinedBinaryError, tn.testingBinErrorStat.totalErrStat.sum)
        return tn

@dataclass
class BuildProgress:
    networkName: str
    attempt: int
    maxAttempt: int
    attemptEpoch: int
    maxAttemptEpoch: int
    currNetwork: TrainedNetwork
    currNetworkLastImprovementEpoch: int
    bestNetwork: TrainedNetwork
    bestNetworkAttempt: int
    bestNetworkAttemptEpoch: int

@dataclass
class BuildInstr:
    currentIsBetter: bool = False
    stopCurrentAttempt: bool = False
    stopProcess: bool = False

BuildController = Callable[[BuildProgress], BuildInstr]
EpochDoneCallback = Callable[[BuildProgress, bool], None]

def isBetter(candidate: TrainedNetwork, currentBest: TrainedNetwork) -> bool:
    """
    Binary errors decide first (combined, then testing and training false-class errors),
    numerical precision otherwise.
    """
    if candidate.hasBinErrorStats:
        keys = (
            lambda n: n.combinedBinaryError,
            lambda n: n.testingBinErrorStat.binValErrStat[0].sum,
            lambda n: n.trainingBinErrorStat.binValErrStat[0].sum,
        )
        for key in keys:
            if key(candidate) > key(currentBest):
                return False
            elif key(candidate) < key(currentBest):
                return True
    return candidate.combinedPrecisionError < currentBest.combinedPrecisionError

def defaultBuildController(progress: BuildProgress) -> BuildInstr:
    """Keeps the better network and stops once the best one makes no binary errors and precision worsens."""
    curr = progress.currNetwork
    best = progress.bestNetwork
    return BuildInstr(
        currentIsBetter=isBetter(curr, best),
        stopProcess=(
            curr.hasBinErrorStats and 
            best.trainingBinErrorStat.totalErrStat.sum == 0 and 
            best.testingBinErrorStat.totalErrStat.sum == 0 and 
            curr.combinedPrecisionError > best.combinedPrecisionError
        ),
    )

class NetworkBuilder:
    def __init__(
        self, 
        networkName: str, 
        settings: RidgeNetworkSettings, 
        outputType: OutputType, 
        trainingBundle: VectorBundle, 
        testingBundle: VectorBundle, 
        controller: BuildController = None, 
        onEpochDone: EpochDoneCallback = None,
    ) -> None:
        for b in (trainingBundle, testingBundle):
            b.check()
            r = outputType.outputRange
            Y = b.outputMatrix()
            if np.any(Y < r.min) or np.any(Y > r.max):
                raise ValidationError(
                    f"Ideal outputs of {networkName} are outside {r}", field="outputVectors", value=(Y.min(), Y.max())
                )
        self.networkName = networkName
        self.settings = settings
        self.outputType = outputType
        self.trainingBundle = trainingBundle
        self.testingBundle = testingBundle
        self.controller = defaultBuildController if controller is None else controller
        self.onEpochDone = onEpochDone

    def build(self) -> TrainedNetwork:
        net = RidgeNetwork(self.trainingBundle.inputLength, self.trainingBundle.outputLength, self.outputType)
        trainer = RidgeTrainer(net, self.trainingBundle, self.settings)
        binary = self.outputType.hasBinErrorStats

        bestNetwork = None
        bestAttempt = 0
        bestAttemptEpoch = 0
        lastImprovementEpoch = 0
        lastImprovementPrecision = 0.0
        lastImprovementBinary = 0.0

        while trainer.iteration():
            curr = TrainedNetwork.evaluate(
                self.networkName, self.outputType, net, self.trainingBundle, self.testingBundle
            )
            curr.trainerInfoMessage = trainer.infoMessage

            # restart improvement tracking on a new attempt
            if trainer.attemptEpoch == 1:
                lastImprovementEpoch = 1
                lastImprovementPrecision = curr.combinedPrecisionError
                lastImprovementBinary = curr.combinedBinaryError
            if bestNetwork is None:
                bestNetwork = curr
                bestAttempt = trainer.attempt
                bestAttemptEpoch = trainer.attemptEpoch
            if (binary and curr.combinedBinaryError < lastImprovementBinary) or curr.combinedPrecisionError < lastImprovementPrecision:
                lastImprovementPrecision = curr.combinedPrecisionError
                lastImprovementBinary = curr.combinedBinaryError
                lastImprovementEpoch = trainer.attemptEpoch

            progress = BuildProgress(
                self.networkName, trainer.attempt, trainer.maxAttempt, trainer.attemptEpoch, 
                trainer.maxAttemptEpoch, curr, lastImprovementEpoch, bestNetwork, bestAttempt, bestAttemptEpoch,
            )
            instr = self.controller(progress)
            if instr.currentIsBetter:
                bestNetwork = curr
                bestAttempt = trainer.attempt
                bestAttemptEpoch = trainer.attemptEpoch
                progress.bestNetwork = bestNetwork
                progress.bestNetworkAttempt = bestAttempt
                progress.bestNetworkAttemptEpoch = bestAttemptEpoch

            log.debug(
                "%s epoch %d/%d %s: precision %.6f, best %.6f", self.networkName, trainer.attemptEpoch, 
                trainer.maxAttemptEpoch, trainer.infoMessage, curr.combinedPrecisionError, bestNetwork.combinedPrecisionError
            )
            if not self.onEpochDone is None:
                self.onEpochDone(progress, instr.currentIsBetter)

            if instr.stopProcess:
                break
            elif instr.stopCurrentAttempt:
                if not trainer.nextAttempt():
                    break

        return bestNetwork
