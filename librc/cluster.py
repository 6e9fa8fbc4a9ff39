r"""
Clusters of trained networks and chains of clusters.

A `NetworkCluster` holds the networks trained on the cross-validation folds and combines
their outputs with weights derived from their training/testing metrics. In a `ClusterChain`
each member of cluster $i+1$ receives the original input concatenated with the outputs of 
the members of cluster $i$ trained on the same fold (same scope ID).
"""

import math
from typing import List, Sequence, Tuple

import numpy as np

from librc.console import getLogger
from librc.crossval import folderize
from librc.datautils import VectorBundle
from librc.filters import FeatureFilterBase
from librc.mathtools import Interval, RunningStat, BinErrStat, INT_ZP1, scaleToNewSum, softmax, revertMinMax
from librc.matgen import makeRng
from librc.network import OutputType, TrainedNetwork, NetworkBuilder, BuildController, EpochDoneCallback
from librc.settings import ClusterSettings, ClusterChainSettings
from librc.validation import ValidationError, InvalidOperationError, NotTrainedError

log = getLogger("cluster")

SCOPE_ID_REPETITION_STRIDE = 1000000

class ClusterErrStatistics:
    """Absolute errors of cluster members on their testing folds, natural and normalized."""

    def __init__(self, clusterName: str, outputType: OutputType) -> None:
        self.clusterName = clusterName
        self.natPrecisionErrStat = RunningStat()
        self.nrmPrecisionErrStat = RunningStat()
        self.binaryErrStat = BinErrStat(outputType.outputRange.mid) if outputType.hasBinErrorStats else None

    def update(self, nrmComputed: float, nrmIdeal: float, natComputed: float, natIdeal: float) -> None:
        self.natPrecisionErrStat.addSample(abs(natComputed - natIdeal))
        self.nrmPrecisionErrStat.addSample(abs(nrmComputed - nrmIdeal))
        if not self.binaryErrStat is None:
            self.binaryErrStat.update(nrmComputed, nrmIdeal)

    def merge(self, other: "ClusterErrStatistics") -> None:
        self.natPrecisionErrStat.merge(other.natPrecisionErrStat)
        self.nrmPrecisionErrStat.merge(other.nrmPrecisionErrStat)
        if not self.binaryErrStat is None and not other.binaryErrStat is None:
            self.binaryErrStat.merge(other.binaryErrStat)

class NetworkCluster:
    def __init__(self, name: str, outputType: OutputType, settings: ClusterSettings = ClusterSettings()) -> None:
        self.name = name
        self.outputType = outputType
        self.settings = settings
        self.errorStats = ClusterErrStatistics(name, outputType)
        self.members: List[TrainedNetwork] = []
        self.memberScopeIDs: List[int] = []
        self.memberWeights = None

    @property
    def finalized(self) -> bool:
        return not self.memberWeights is None

    @property
    def numOfMembers(self) -> int:
        return len(self.members)

    @property
    def numOfOutputs(self) -> int:
        return self.members[0].numOutputs if len(self.members) > 0 else 0

    @property
    def outputRange(self) -> Interval:
        return self.outputType.outputRange

    def addMember(self, net: TrainedNetwork, scopeID: int, testData: VectorBundle, filters: Sequence[FeatureFilterBase] = None) -> None:
        """Adds a member and updates the cluster statistics with its results on `testData`."""
        if self.finalized:
            raise InvalidOperationError(f"Cluster {self.name} is already finalized")
        if net.outputType != self.outputType:
            raise ValidationError("Inconsistent output type of the network to be added", field="net", value=net.outputType)
        if len(self.members) > 0 and net.numOutputs != self.numOfOutputs:
            raise ValidationError(
                "Number of outputs of the network differs from already clustered networks", field="net", value=net.numOutputs
            )
        self.members.append(net)
        self.memberScopeIDs.append(scopeID)

        computed = net.network.computeBatch(testData.inputMatrix())
        ideal = testData.outputMatrix()
        for i in range(computed.shape[0]):
            for j in range(computed.shape[1]):
                natComputed = float(filters[j].applyReverse(computed[i, j])) if filters else computed[i, j]
                natIdeal = float(filters[j].applyReverse(ideal[i, j])) if filters else ideal[i, j]
                self.errorStats.update(computed[i, j], ideal[i, j], natComputed, natIdeal)

    def _initMemberWeights(self) -> np.ndarray:
        n = self.numOfMembers
        if n == 1:
            return np.ones(1)
        s = self.settings
        binary = self.outputType.hasBinErrorStats

        def metrics(errStat, binErrStat):
            samples = np.array([errStat(m).count for m in self.members], dtype=float)
            precision = np.array([errStat(m).mean for m in self.members])
            if binary:
                misrecognized = np.array([1 - binErrStat(m).binValErrStat[0].mean for m in self.members])
                unrecognized = np.array([1 - binErrStat(m).binValErrStat[1].mean for m in self.members])
            else:
                misrecognized = np.ones(n)
                unrecognized = np.ones(n)
            return (
                s.samplesWeight * scaleToNewSum(samples) 
                + s.precisionWeight * scaleToNewSum(revertMinMax(precision)) 
                + s.misrecognizedFalseWeight * scaleToNewSum(misrecognized) 
                + s.unrecognizedTrueWeight * scaleToNewSum(unrecognized)
            )

        w = (
            s.trainingGroupWeight * metrics(lambda m: m.trainingErrorStat, lambda m: m.trainingBinErrorStat) 
            + s.testingGroupWeight * metrics(lambda m: m.testingErrorStat, lambda m: m.testingBinErrorStat)
        )
        return softmax(w)

    def finalize(self) -> None:
        if self.finalized:
            raise InvalidOperationError(f"Cluster {self.name} was already finalized")
        if self.numOfMembers == 0:
            raise InvalidOperationError(f"Cluster {self.name} has no members")
        self.memberWeights = self._initMemberWeights()

    def computeMembers(self, x, precomputations: List[Tuple[int, np.ndarray]] = None) -> List[Tuple[int, np.ndarray]]:
        """`(scopeID, output)` of each member; members get `x` extended by the precomputations of their scope."""
        x = np.asarray(x, dtype=float)
        outputs = []
        for net, scopeID in zip(self.members, self.memberScopeIDs):
            netInput = x
            if not precomputations is None:
                extra = [p for sid, p in precomputations if sid == scopeID]
                if len(extra) > 0:
                    netInput = np.concatenate([x] + extra)
            outputs.append((scopeID, net.compute(netInput)))
        return outputs

    def compositeOutput(self, memberOutputs: List[Tuple[int, np.ndarray]]) -> np.ndarray:
        Y = np.vstack([o for _, o in memberOutputs])
        if self.outputType == OutputType.REAL:
            return self.memberWeights @ Y
        # mix probabilities
        P = INT_ZP1.rescale(Y, self.outputRange)
        p = self.memberWeights @ P
        if p.size > 1:
            p = scaleToNewSum(p)
        return self.outputRange.rescale(p, INT_ZP1)

    def compute(self, x, precomputations=None):
        """Returns the composite output and the member outputs."""
        if not self.finalized:
            raise NotTrainedError(f"Cluster {self.name} is not finalized")
        memberOutputs = self.computeMembers(x, precomputations)
        return self.compositeOutput(memberOutputs), memberOutputs

class ClusterChain:
    def __init__(self, name: str, outputType: OutputType) -> None:
        self.name = name
        self.outputType = outputType
        self.clusters: List[NetworkCluster] = []

    @property
    def built(self) -> bool:
        return len(self.clusters) > 0 and all(c.finalized for c in self.clusters)

    @property
    def outputRange(self) -> Interval:
        return self.outputType.outputRange

    @property
    def errorStats(self) -> ClusterErrStatistics:
        """Statistics of the last cluster, whose output is the chain output."""
        return self.clusters[-1].errorStats

    @property
    def numOfSubResults(self) -> int:
        return sum(c.numOfMembers for c in self.clusters)

    def addCluster(self, cluster: NetworkCluster) -> None:
        if not cluster.finalized:
            raise InvalidOperationError(f"Cluster {cluster.name} is not finalized")
        self.clusters.append(cluster)

    def compute(self, x):
        """
        Returns `(output, subResults)`: the output of the last cluster and the outputs of
        all members of all clusters, in chain order.
        """
        if not self.built:
            raise NotTrainedError(f"Cluster chain {self.name} is not built")
        subResults = []
        precomputations = None
        output = None
        for cluster in self.clusters:
            output, memberOutputs = cluster.compute(x, precomputations)
            subResults.extend(o for _, o in memberOutputs)
            precomputations = memberOutputs
        return output, subResults

class ClusterChainBuilder:
    def __init__(
        self, 
        chainName: str, 
        settings: ClusterChainSettings, 
        outputType: OutputType, 
        rng=0, 
        controller: BuildController = None, 
        onEpochDone: EpochDoneCallback = None,
    ) -> None:
        self.chainName = chainName
        self.settings = settings
        self.outputType = outputType
        self.rng = makeRng(rng)
        self.controller = controller
        self.onEpochDone = onEpochDone

    def build(self, bundle: VectorBundle, filters: Sequence[FeatureFilterBase] = None) -> ClusterChain:
        r"""
        Cross-validated training of all clusters: for each repetition the data are split in
        folds, and for each cluster, testing fold and network configuration a network is trained
        on the remaining folds and added to the cluster with scope ID 
        $\textnormal{repetition} \cdot 10^6 + \textnormal{fold}$. 
        """
        bundle.check()
        chain = ClusterChain(self.chainName, self.outputType)
        clusters = [NetworkCluster(self.chainName, self.outputType, c) for c in self.settings.clusters]
        cv = self.settings.crossvalidation
        boolBorder = math.nan if self.outputType == OutputType.REAL else chain.outputRange.mid
        localBundle = bundle.copy()

        for rep in range(cv.repetitions):
            folds = folderize(localBundle, cv.foldDataRatio, boolBorder)
            numFolds = min(len(folds) if cv.folds <= 0 else cv.folds, len(folds))
            currFolds = [f.copy() for f in folds]
            for clusterIdx, (cluster, clusterCfg) in enumerate(zip(clusters, self.settings.clusters)):
                nextFolds = []
                for testIdx in range(numFolds):
                    training = VectorBundle()
                    for foldIdx, fold in enumerate(currFolds):
                        if foldIdx != testIdx:
                            training.add(fold)
                    nextFold = folds[testIdx].copy()
                    for netIdx, netCfg in enumerate(clusterCfg.networks):
                        netName = f"{self.chainName}#C{clusterIdx + 1}R{rep + 1}F{testIdx + 1}N{netIdx + 1}"
                        builder = NetworkBuilder(
                            netName, netCfg, self.outputType, training, currFolds[testIdx], 
                            controller=self.controller, onEpochDone=self.onEpochDone,
                        )
                        tn = builder.build()
                        cluster.addMember(tn, rep * SCOPE_ID_REPETITION_STRIDE + testIdx, currFolds[testIdx], filters)
                        # next cluster inputs
                        computed = tn.network.computeBatch(currFolds[testIdx].inputMatrix())
                        nextFold.inputVectors = [np.concatenate((x, c)) for x, c in zip(nextFold.inputVectors, computed)]
                    nextFolds.append(nextFold)
                log.debug("%s: cluster %d repetition %d trained on %d folds", self.chainName, clusterIdx + 1, rep + 1, numFolds)
                currFolds = nextFolds
            if rep < cv.repetitions - 1:
                localBundle.shuffle(self.rng)

        for cluster in clusters:
            cluster.finalize()
            chain.addCluster(cluster)
        return chain
