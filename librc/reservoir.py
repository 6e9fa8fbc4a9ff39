"""
Reservoir instance: a neuron arena wired by input, pool and inter-pool connections,
simulated cycle by cycle to produce predictors for the readout layer.
"""

from dataclasses import dataclass, field
from typing import List, Tuple

import numpy as np
from rich.table import Table
from rich import box

from librc.console import console, getLogger
from librc.datautils import pd_data_prep
from librc.mathtools import Interval, INT_N1P1
from librc.matgen import makeRng, weightGenerator, delayGenerator, spectralRadius
from librc.neuron import NeuronBase, NeuronRole, NeuronSignalType, InputNeuron, AnalogNeuron, SpikingNeuron
from librc.synapse import StaticSynapse, DynamicSynapse
from librc.topology import PoolSettings, InterPoolConnectionSettings, ConnectionBank, applySchemas, connectPools
from librc.ufuncs import identity, radbas, retanh, softplus, sigmoid
from librc.validation import ValidationError, InvalidOperationError, checkRange, checkLength

log = getLogger("reservoir")

ACTIVATIONS = {
    'tanh': np.tanh,
    'identity': identity,
    'radbas': radbas,
    'retanh': retanh,
    'softplus': softplus,
    'sigmoid': sigmoid,
}

@dataclass(frozen=True)
class SynapseSettings:
    model: str = "static"
    """Either `'static'` or `'dynamic'`."""
    inputWeight: Tuple[float, float] = (-1.0, 1.0)
    """Uniform range of input synapse weights."""
    internalWeight: Tuple[float, float] = (-1.0, 1.0)
    """Uniform range of internal synapse weights."""
    maxInputDelay: int = 0
    maxInternalDelay: int = 0
    dynamics: dict = field(default_factory=dict)
    """Keyword arguments of `DynamicSynapse` (`tauFacilitation`, `tauRecovery`, `restingEfficacy`, `tauDecay`)."""

    def __post_init__(self):
        if not self.model in ("static", "dynamic"):
            raise ValidationError(f"Unknown synapse model {self.model}", field="model", value=self.model)
        checkRange(self.maxInputDelay, "maxInputDelay", 0)
        checkRange(self.maxInternalDelay, "maxInternalDelay", 0)

@dataclass(frozen=True)
class InputConnectionSettings:
    inputIdx: int
    """Index of the input field."""
    poolName: str
    density: float = 1.0
    """Share of the pool neurons receiving the input."""

    def __post_init__(self):
        checkRange(self.density, "density", 0, 1, lowOpen=True)

@dataclass(frozen=True)
class ReservoirSettings:
    inputCount: int
    pools: Tuple[PoolSettings, ...]
    inputConnections: Tuple[InputConnectionSettings, ...] = ()
    interPoolConnections: Tuple[InterPoolConnectionSettings, ...] = ()
    synapse: SynapseSettings = SynapseSettings()
    spectralRadius: float = None
    """Target spectral radius of the internal weights towards analog neurons, `None` to keep weights."""
    inputRange: Interval = INT_N1P1

    def __post_init__(self):
        checkRange(self.inputCount, "inputCount", 1)
        if len(self.pools) == 0:
            raise ValidationError("Reservoir must contain at least one pool", field="pools", value=self.pools)
        names = [p.name for p in self.pools]
        if len(set(names)) != len(names):
            raise ValidationError("Duplicate pool names", field="pools", value=names)
        for c in self.inputConnections:
            if not c.poolName in names:
                raise ValidationError(f"Unknown pool {c.poolName}", field="inputConnections", value=c.poolName)
            checkRange(c.inputIdx, "inputIdx", 0, self.inputCount - 1)
        for c in self.interPoolConnections:
            for name in (c.sourcePool, c.targetPool):
                if not name in names:
                    raise ValidationError(f"Unknown pool {name}", field="interPoolConnections", value=name)
        if not self.spectralRadius is None:
            checkRange(self.spectralRadius, "spectralRadius", 0, lowOpen=True)

    def poolIdx(self, name: str) -> int:
        return [p.name for p in self.pools].index(name)

def _makeNeuron(index: int, group) -> NeuronBase:
    role = NeuronRole.EXCITATORY if group.role == "excitatory" else NeuronRole.INHIBITORY
    params = dict(group.params)
    if group.activation == "analog":
        if isinstance(params.get('activation', None), str):
            params['activation'] = ACTIVATIONS[params['activation']]
        return AnalogNeuron(index, role, **params)
    return SpikingNeuron(index, role, **params)

class ReservoirInstance:
    neurons: List[NeuronBase]
    """Neuron arena: input neurons first, then the pool neurons in pool order."""
    poolNeurons: List[List[int]]
    """Arena indexes of the neurons of each pool."""

    def __init__(self, settings: ReservoirSettings, seed=None) -> None:
        self.settings = settings
        rng = makeRng(seed)

        # neuron arena
        self.neurons = [InputNeuron(i, settings.inputRange) for i in range(settings.inputCount)]
        self.poolNeurons = []
        for pool in settings.pools:
            idxs = []
            for group, count in zip(pool.groups, pool.groupCounts()):
                for _ in range(count):
                    idx = len(self.neurons)
                    self.neurons.append(_makeNeuron(idx, group))
                    idxs.append(idx)
            self.poolNeurons.append(idxs)

        # connection banks
        self.inputBank = ConnectionBank(len(self.neurons))
        self.internalBank = ConnectionBank(len(self.neurons))

        syn = settings.synapse
        def makeSynapseFactory(weightRange):
            def makeSynapse(source, target):
                weight = float(weightGenerator(1, weightRange[0], weightRange[1], seed=rng)[0])
                if syn.model == "dynamic":
                    return DynamicSynapse(self.neurons, source, target, weight, **syn.dynamics)
                return StaticSynapse(self.neurons, source, target, weight)
            return makeSynapse

        makeInputSynapse = makeSynapseFactory(syn.inputWeight)
        makeInternalSynapse = makeSynapseFactory(syn.internalWeight)

        # input connections
        for c in settings.inputConnections:
            targets = list(self.poolNeurons[settings.poolIdx(c.poolName)])
            rng.shuffle(targets)
            for target in targets[:int(round(len(targets) * c.density))]:
                self.inputBank.set(c.inputIdx, target, makeInputSynapse(c.inputIdx, target))

        # pools interconnection
        for pool, idxs in zip(settings.pools, self.poolNeurons):
            applySchemas(self.internalBank, idxs, pool.interconnection, makeInternalSynapse, rng)

        # pool to pool connections
        for c in settings.interPoolConnections:
            connectPools(
                self.internalBank,
                self.poolNeurons[settings.poolIdx(c.sourcePool)],
                self.poolNeurons[settings.poolIdx(c.targetPool)],
                c, makeInternalSynapse, rng,
            )

        # delays
        for bank, maxDelay in ((self.inputBank, syn.maxInputDelay), (self.internalBank, syn.maxInternalDelay)):
            synapses = list(bank.synapses())
            if maxDelay > 0 and len(synapses) > 0:
                for s, d in zip(synapses, delayGenerator(len(synapses), maxDelay, seed=rng)):
                    s.setDelay(int(d))

        if not settings.spectralRadius is None:
            self.rescaleSpectralRadius(settings.spectralRadius)

        log.info(
            "Reservoir built: %d neurons, %d input and %d internal synapses", 
            self.size, self.inputBank.count, self.internalBank.count
        )

    @property
    def inputCount(self) -> int:
        return self.settings.inputCount

    @property
    def size(self) -> int:
        """Number of reservoir (non-input) neurons."""
        return len(self.neurons) - self.inputCount

    def analogWeightMatrix(self) -> np.ndarray:
        r"""Matrix $W$ with $W_{ij}$ the weight of the internal synapse $j \to i$ towards analog neuron $i$."""
        K = self.inputCount
        W = np.zeros((self.size, self.size))
        for s in self.internalBank.synapses():
            if s.targetNeuron.outputType == NeuronSignalType.ANALOG:
                W[s.targetIdx - K, s.sourceIdx - K] = s.weight
        return W

    def rescaleSpectralRadius(self, radius: float) -> None:
        """Rescale synapses towards analog neurons so that their weight matrix has spectral radius `radius`."""
        maxEigenvalue = spectralRadius(self.analogWeightMatrix())
        if maxEigenvalue == 0:
            raise InvalidOperationError("Can not rescale weights to a spectral radius: maximum eigenvalue is 0")
        scale = radius / maxEigenvalue
        for s in self.internalBank.synapses():
            if s.targetNeuron.outputType == NeuronSignalType.ANALOG:
                s.rescale(scale)
        log.debug("Weights rescaled by %.6f to spectral radius %.4f", scale, radius)

    def reset(self, statistics: bool = True) -> None:
        for n in self.neurons:
            n.reset(statistics)
        for bank in (self.inputBank, self.internalBank):
            for s in bank.synapses():
                s.reset(statistics)

    def compute(self, input, collectStatistics: bool = False) -> np.ndarray:
        """Runs one cycle on the input vector and returns the outputs of the reservoir neurons."""
        input = np.ravel(np.asarray(input, dtype=float))
        checkLength(input, self.inputCount, "input")

        # input neurons
        for i in range(self.inputCount):
            self.neurons[i].newStimulation(float(input[i]), 0.0)
            self.neurons[i].recompute(collectStatistics)

        # gather stimulation from the previous cycle outputs
        stimuli = np.zeros((len(self.neurons), 2))
        for n in range(self.inputCount, len(self.neurons)):
            stimuli[n, 0] = sum(s.getSignal(collectStatistics) for s in self.inputBank[n].values())
            stimuli[n, 1] = sum(s.getSignal(collectStatistics) for s in self.internalBank[n].values())

        # then update
        out = np.empty(self.size)
        for n in range(self.inputCount, len(self.neurons)):
            neuron = self.neurons[n]
            neuron.newStimulation(stimuli[n, 0], stimuli[n, 1])
            neuron.recompute(collectStatistics)
            out[n - self.inputCount] = neuron.outputSignal
        return out

    def collectPredictors(self, input, burnin: int = 0, reset: bool = True, collectStatistics: bool = False) -> np.ndarray:
        r"""
        Runs the reservoir over a $T \times K$ input (`numpy` array or `pandas` frame) and 
        returns the $(T - \textnormal{burnin}) \times N$ matrix of reservoir outputs.

        + `burnin` : number of initial cycles discarded.
        + `reset` : reset neurons and synapses before running.
        """
        Z, _ = pd_data_prep(input)
        assert Z.shape[1] == self.inputCount, "Input is not compatible with the reservoir input count"
        assert burnin >= 0, "burnin must be a non-negative integer"
        if reset:
            self.reset(False)

        T = Z.shape[0]
        X = np.empty((T, self.size))
        for t in range(T):
            X[t, :] = self.compute(Z[t, :], collectStatistics)
        return X[burnin:, ]

    def table(self) -> Table:
        """ Construct a `rich` table of the reservoir pools. """
        table = Table(title="ReservoirInstance", box=box.SIMPLE_HEAD)

        table.add_column("Pool", justify="left")
        table.add_column("Neurons", justify="center")
        table.add_column("Analog", justify="center")
        table.add_column("Spiking", justify="center")
        table.add_column("Internal synapses", justify="center")

        for pool, idxs in zip(self.settings.pools, self.poolNeurons):
            analog = sum(1 for i in idxs if self.neurons[i].outputType == NeuronSignalType.ANALOG)
            synapses = sum(len(self.internalBank[i]) for i in idxs)
            table.add_row(pool.name, str(len(idxs)), str(analog), str(len(idxs) - analog), str(synapses))

        return table

    def print(self) -> None:
        """ Print `rich` table of contents. """
        console.print(self.table())
