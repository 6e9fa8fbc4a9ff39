"""
Reservoir neurons. Each neuron exposes a read-only `outputSignal` for the current
cycle, which synapses read when propagating signals.
"""

from enum import Enum

import numpy as np

from librc.mathtools import Interval, RunningStat, INT_N1P1, INT_ZP1
from librc.validation import checkRange

class NeuronRole(Enum):
    INPUT = "input"
    EXCITATORY = "excitatory"
    INHIBITORY = "inhibitory"

class NeuronSignalType(Enum):
    SPIKE = "spike"
    ANALOG = "analog"

class NeuronBase:
    index: int
    """Position of the neuron in the reservoir arena."""
    role: NeuronRole
    outputType: NeuronSignalType
    outputRange: Interval

    def __init__(self, index: int, role: NeuronRole, outputType: NeuronSignalType, outputRange: Interval) -> None:
        self.index = index
        self.role = role
        self.outputType = outputType
        self.outputRange = outputRange
        self.outputStat = RunningStat()
        self.reset(True)

    def reset(self, statistics: bool = True) -> None:
        self.outputSignal = 0.0
        # cycles elapsed since the last spike
        self.outputSignalLeak = 0
        self.afterFirstSpike = False
        self._stimuli = 0.0
        if statistics:
            self.outputStat.reset()

    def newStimulation(self, iStimuli: float, rStimuli: float) -> None:
        """Store input (`iStimuli`) and reservoir (`rStimuli`) stimulation for the next `recompute`."""
        self._stimuli = iStimuli + rStimuli

    def recompute(self, collectStatistics: bool = False) -> None:
        self._compute()
        if collectStatistics:
            self.outputStat.addSample(self.outputSignal)

    def _compute(self) -> None:
        raise NotImplementedError

    def __repr__(self) -> str:
        return f"{type(self).__name__}(index={self.index}, role={self.role.value})"

class InputNeuron(NeuronBase):
    """Passes the current external input value through unchanged."""

    def __init__(self, index: int, inputRange: Interval = INT_N1P1) -> None:
        super().__init__(index, NeuronRole.INPUT, NeuronSignalType.ANALOG, inputRange)

    def _compute(self) -> None:
        self.outputSignal = float(np.clip(self._stimuli, self.outputRange.min, self.outputRange.max))

class AnalogNeuron(NeuronBase):
    r"""
    Leaky analog neuron with output in $[-1, 1]$:

    $$ y_t = r\, y_{t-1} + (1 - r)\, \sigma(s_t + b) $$

    where $r$ is `retainmentRate`, $\sigma$ the activation and $b$ the `bias`.
    """

    def __init__(
        self, 
        index: int, 
        role: NeuronRole = NeuronRole.EXCITATORY, 
        activation=np.tanh, 
        retainmentRate: float = 0.0, 
        bias: float = 0.0,
    ) -> None:
        checkRange(retainmentRate, "retainmentRate", 0, 1)
        self.activation = activation
        self.retainmentRate = retainmentRate
        self.bias = bias
        super().__init__(index, role, NeuronSignalType.ANALOG, INT_N1P1)

    def _compute(self) -> None:
        y = float(self.activation(self._stimuli + self.bias))
        y = self.retainmentRate * self.outputSignal + (1 - self.retainmentRate) * y
        self.outputSignal = float(np.clip(y, -1, 1))

class SpikingNeuron(NeuronBase):
    r"""
    Leaky integrate-and-fire neuron emitting spikes (1) or nothing (0).
    The membrane potential decays by `decayRate` each cycle; crossing `firingThreshold`
    emits a spike and resets the membrane to `resetPotential` for `refractoryPeriods` cycles.
    """

    def __init__(
        self,
        index: int,
        role: NeuronRole = NeuronRole.EXCITATORY,
        firingThreshold: float = 0.5,
        resetPotential: float = 0.0,
        decayRate: float = 0.2,
        refractoryPeriods: int = 1,
        bias: float = 0.0,
    ) -> None:
        checkRange(decayRate, "decayRate", 0, 1)
        checkRange(refractoryPeriods, "refractoryPeriods", 0)
        self.firingThreshold = firingThreshold
        self.resetPotential = resetPotential
        self.decayRate = decayRate
        self.refractoryPeriods = refractoryPeriods
        self.bias = bias
        super().__init__(index, role, NeuronSignalType.SPIKE, INT_ZP1)

    def reset(self, statistics: bool = True) -> None:
        super().reset(statistics)
        self.membranePotential = self.resetPotential
        self._refractory = 0

    def _compute(self) -> None:
        if self.afterFirstSpike:
            self.outputSignalLeak += 1
        if self._refractory > 0:
            self._refractory -= 1
            self.outputSignal = 0.0
            return
        self.membranePotential = (1 - self.decayRate) * self.membranePotential + self._stimuli + self.bias
        if self.membranePotential >= self.firingThreshold:
            self.outputSignal = 1.0
            self.outputSignalLeak = 0
            self.afterFirstSpike = True
            self.membranePotential = self.resetPotential
            self._refractory = self.refractoryPeriods
        else:
            self.outputSignal = 0.0
