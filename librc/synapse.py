r"""
Synapses propagate the output signal of a source neuron to a target neuron,
with a fixed delay, a weight whose sign and range conversion depend on the kinds of
the two neurons, and a multiplicative efficacy modelling short-term plasticity.

Neurons live in the reservoir arena (a sequence indexed by neuron position) and 
synapses refer to them through their arena indexes.
"""

import math
from typing import Sequence

from librc.mathtools import RunningStat
from librc.neuron import NeuronBase, NeuronRole, NeuronSignalType
from librc.sigqueue import SignalQueue
from librc.validation import ValidationError

class BaseSynapse:
    sourceIdx: int
    """Arena index of the source neuron."""
    targetIdx: int
    """Arena index of the target neuron."""
    weight: float
    """Signed weight, adjusted at construction to the kinds of the connected neurons."""
    delay: int
    """Number of cycles the signal is held back."""

    def __init__(
        self, 
        neurons: Sequence[NeuronBase], 
        sourceIdx: int, 
        targetIdx: int, 
        weight: float, 
        delay: int = 0,
    ) -> None:
        r"""
        The weight and the conversion constants `add`, `div` (transmitted value is
        $(s + \textnormal{add}) / \textnormal{div} \cdot w$) are set according to:

        | source | source type | target type | weight | conversion |
        |---|---|---|---|---|
        | input | any | spike | $\lvert w \rvert$ | to $[0, 1]$ |
        | input | any | analog | $w$ | identity |
        | reservoir | spike | spike | $\pm \lvert w \rvert$ | identity |
        | reservoir | spike | analog | $w$ | $\textnormal{add} = t_{min} - s_{min}$, $\textnormal{div} = s_{span} / t_{span}$ |
        | reservoir | analog | spike | $\pm \lvert w \rvert$ | to $[0, 1]$ |
        | reservoir | analog | analog | $w$ | identity |

        where $\pm$ is negative for inhibitory sources.
        """
        self._neurons = neurons
        self.sourceIdx = sourceIdx
        self.targetIdx = targetIdx
        source = self.sourceNeuron
        target = self.targetNeuron
        sign = -1.0 if source.role == NeuronRole.INHIBITORY else 1.0
        toSpike = target.outputType == NeuronSignalType.SPIKE

        if source.role == NeuronRole.INPUT:
            if toSpike:
                weight = abs(weight)
                self._add, self._div = self._toUnitRange(source)
            else:
                self._add, self._div = 0.0, 1.0
        elif source.outputType == NeuronSignalType.SPIKE:
            if toSpike:
                weight = abs(weight) * sign
                self._add, self._div = 0.0, 1.0
            else:
                self._add = target.outputRange.min - source.outputRange.min
                self._div = source.outputRange.span / target.outputRange.span
        else:
            if toSpike:
                weight = abs(weight) * sign
                self._add, self._div = self._toUnitRange(source)
            else:
                self._add, self._div = 0.0, 1.0

        self.weight = float(weight)
        self.efficacyStat = RunningStat()
        self.delay = 0
        self._queue = SignalQueue(1)
        self.setDelay(delay)

    @staticmethod
    def _toUnitRange(neuron: NeuronBase):
        if neuron.outputRange.span == 0:
            raise ValidationError("Source neuron has a degenerate output range", field="sourceIdx", value=neuron.index)
        return -neuron.outputRange.min, neuron.outputRange.span

    @property
    def sourceNeuron(self) -> NeuronBase:
        return self._neurons[self.sourceIdx]

    @property
    def targetNeuron(self) -> NeuronBase:
        return self._neurons[self.targetIdx]

    @property
    def queueCount(self) -> int:
        return self._queue.count

    def setDelay(self, delay: int) -> None:
        """Sets the delay; the queue is resized to `delay + 1` and emptied."""
        if delay < 0:
            raise ValidationError("Synapse delay must be non-negative", field="delay", value=delay)
        self.delay = int(delay)
        self._queue.resize(self.delay + 1)

    def rescale(self, scale: float) -> None:
        self.weight *= scale

    def reset(self, clearStatistics: bool = True) -> None:
        self._queue.reset()
        if clearStatistics:
            self.efficacyStat.reset()

    def getPreSynapticEfficacy(self) -> float:
        return 1.0

    def getPostSynapticEfficacy(self) -> float:
        return 1.0

    def getSignal(self, collectStatistics: bool = False) -> float:
        """
        Enqueues the current (converted and weighted) source signal and returns the
        signal leaving the delay line, or 0 while the line is still filling.
        """
        sourceSignal = self.sourceNeuron.outputSignal
        if sourceSignal == 0:
            self._queue.enqueue((0.0, 1.0))
        else:
            weighted = ((sourceSignal + self._add) / self._div) * self.weight
            self._queue.enqueue((weighted, self.getPreSynapticEfficacy()))

        if not self._queue.full:
            return 0.0

        weighted, preEfficacy = self._queue.dequeue()
        if weighted == 0:
            return 0.0
        efficacy = preEfficacy * self.getPostSynapticEfficacy()
        if collectStatistics:
            self.efficacyStat.addSample(efficacy)
        return weighted * efficacy

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.sourceIdx} -> {self.targetIdx}, weight={self.weight:.4f}, delay={self.delay})"

class StaticSynapse(BaseSynapse):
    """Synapse with constant unit efficacy."""

class DynamicSynapse(BaseSynapse):
    r"""
    Synapse with short-term plasticity. When the source neuron spikes, the pre-synaptic
    efficacy follows facilitation/depression dynamics driven by the number of cycles $l$
    since the source's last spike:

    $$
    \begin{aligned}
        x &= e^{-l / \tau_f}, & u &= x + u_0 (1 - x) \\\
        y &= e^{-l / \tau_r}, & a &\leftarrow a (1 - u) y + 1 - y
    \end{aligned}
    $$

    returning $u \cdot a$. When the target neuron spikes, the post-synaptic efficacy decays
    as $e^{-l' / \tau_d}$ with $l'$ the cycles since the target's last spike.
    """

    def __init__(
        self,
        neurons: Sequence[NeuronBase],
        sourceIdx: int,
        targetIdx: int,
        weight: float,
        delay: int = 0,
        tauFacilitation: float = 1200.0,
        tauRecovery: float = 125.0,
        restingEfficacy: float = 0.05,
        tauDecay: float = 10.0,
    ) -> None:
        for name, tau in (("tauFacilitation", tauFacilitation), ("tauRecovery", tauRecovery), ("tauDecay", tauDecay)):
            if tau <= 0:
                raise ValidationError(f"{name} must be positive", field=name, value=tau)
        self.tauFacilitation = tauFacilitation
        self.tauRecovery = tauRecovery
        self.restingEfficacy = restingEfficacy
        self.tauDecay = tauDecay
        super().__init__(neurons, sourceIdx, targetIdx, weight, delay)
        self._applyPreSynaptic = self.sourceNeuron.outputType == NeuronSignalType.SPIKE
        self._applyPostSynaptic = self.targetNeuron.outputType == NeuronSignalType.SPIKE
        self._resetEfficacy()

    def _resetEfficacy(self) -> None:
        self._utilization = self.restingEfficacy
        self._availableFraction = 1.0

    def reset(self, clearStatistics: bool = True) -> None:
        super().reset(clearStatistics)
        self._resetEfficacy()

    def getPreSynapticEfficacy(self) -> float:
        if not self._applyPreSynaptic:
            return 1.0
        leak = self.sourceNeuron.outputSignalLeak
        x = math.exp(-(leak / self.tauFacilitation))
        self._utilization = x + self.restingEfficacy * (1.0 - x)
        y = math.exp(-(leak / self.tauRecovery))
        self._availableFraction = self._availableFraction * (1.0 - self._utilization) * y + 1.0 - y
        return self._utilization * self._availableFraction

    def getPostSynapticEfficacy(self) -> float:
        if not self._applyPostSynaptic:
            return 1.0
        return math.exp(-(self.targetNeuron.outputSignalLeak / self.tauDecay))
