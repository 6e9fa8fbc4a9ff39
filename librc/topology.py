r"""
Pool topology: neuron groups, pool settings and interconnection schemas.

Interconnection schemas form a closed set of variants (`SchemaKind`) applied in order
to a pool. Each schema has a `replaceExistingConnections` flag (a later schema may 
overwrite an existing connection between the same pair of neurons) and a number of
`repetitions`.
"""

import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Dict, List, Sequence, Tuple

import numpy as np

from librc.console import getLogger
from librc.validation import ValidationError, checkName, checkRange

log = getLogger("topology")

class SchemaKind(Enum):
    RANDOM = "randomSchema"
    CHAIN = "chainSchema"
    DOUBLE_TWISTED_TOROID = "doubleTwistedToroidSchema"
    EMPTY = "emptySchema"

@dataclass(frozen=True)
class RandomSchemaSettings:
    density: float = 0.1
    """Share of the pool neurons connected to each target neuron."""
    allowSelfConnection: bool = True
    constantNumOfConnections: bool = False
    r"""If `False`, the number of connections of each target fluctuates by $\pm 1$."""
    replaceExistingConnections: bool = True
    repetitions: int = 1
    kind = SchemaKind.RANDOM

    def __post_init__(self):
        checkRange(self.density, "density", 0, 1, lowOpen=True)
        checkRange(self.repetitions, "repetitions", 1)

@dataclass(frozen=True)
class ChainSchemaSettings:
    ratio: float = 1.0
    """Share of the pool neurons taking part in the chain."""
    circle: bool = True
    """Connect the last chained neuron to the first one."""
    replaceExistingConnections: bool = True
    repetitions: int = 1
    kind = SchemaKind.CHAIN

    def __post_init__(self):
        checkRange(self.ratio, "ratio", 0, 1, lowOpen=True)
        checkRange(self.repetitions, "repetitions", 1)

@dataclass(frozen=True)
class DoubleTwistedToroidSchemaSettings:
    ratio: float = 1.0
    """Share of the pool neurons placed on the toroid."""
    lDiagonalSelf: bool = False
    """Self-connect neurons on the main diagonal of the toroid grid."""
    rDiagonalSelf: bool = False
    """Self-connect neurons on the anti-diagonal of the toroid grid."""
    replaceExistingConnections: bool = True
    repetitions: int = 1
    kind = SchemaKind.DOUBLE_TWISTED_TOROID

    def __post_init__(self):
        checkRange(self.ratio, "ratio", 0, 1, lowOpen=True)
        checkRange(self.repetitions, "repetitions", 1)

@dataclass(frozen=True)
class EmptySchemaSettings:
    replaceExistingConnections: bool = True
    """If `True`, all existing connections within the pool are removed."""
    repetitions: int = 1
    kind = SchemaKind.EMPTY

SCHEMA_CLASSES = {
    SchemaKind.RANDOM: RandomSchemaSettings,
    SchemaKind.CHAIN: ChainSchemaSettings,
    SchemaKind.DOUBLE_TWISTED_TOROID: DoubleTwistedToroidSchemaSettings,
    SchemaKind.EMPTY: EmptySchemaSettings,
}

def schemaFromConfig(tag: str, attrs: dict = None):
    """
    Build schema settings from a tag name (`'randomSchema'`, `'chainSchema'`, 
    `'doubleTwistedToroidSchema'`, `'emptySchema'`) and a dictionary of attributes.
    """
    try:
        kind = SchemaKind(tag)
    except ValueError:
        raise ValidationError(f"Unsupported interconnection schema {tag}", field="schema", value=tag)
    attrs = {} if attrs is None else dict(attrs)
    try:
        return SCHEMA_CLASSES[kind](**attrs)
    except TypeError as e:
        raise ValidationError(f"Invalid attributes for {tag}: {e}", field="schema", value=attrs) from e

@dataclass(frozen=True)
class NeuronGroupSettings:
    name: str
    activation: str = "analog"
    """Either `'analog'` or `'spiking'`."""
    role: str = "excitatory"
    """Either `'excitatory'` or `'inhibitory'`."""
    relShare: float = 1.0
    """Relative share of the pool occupied by the group."""
    params: dict = field(default_factory=dict)
    """Keyword arguments forwarded to the neuron constructor."""

    def __post_init__(self):
        checkName(self.name, "group name")
        if not self.activation in ("analog", "spiking"):
            raise ValidationError(f"Unknown activation {self.activation}", field="activation", value=self.activation)
        if not self.role in ("excitatory", "inhibitory"):
            raise ValidationError(f"Unknown neuron role {self.role}", field="role", value=self.role)
        checkRange(self.relShare, "relShare", 0, lowOpen=True)

@dataclass(frozen=True)
class PoolSettings:
    name: str
    size: int
    groups: Tuple[NeuronGroupSettings, ...] = (NeuronGroupSettings("analog"),)
    interconnection: Tuple = (RandomSchemaSettings(),)
    """Ordered interconnection schemas."""

    def __post_init__(self):
        checkName(self.name, "pool name")
        checkRange(self.size, "pool size", 1)
        if len(self.groups) == 0:
            raise ValidationError("Pool must contain at least one neuron group", field="groups", value=self.groups)
        names = [g.name for g in self.groups]
        if len(set(names)) != len(names):
            raise ValidationError(f"Duplicate neuron group names in pool {self.name}", field="groups", value=names)

    def groupCounts(self) -> Tuple[int, ...]:
        """
        Number of neurons of each group: shares are floored, and the remaining neurons
        go to the groups with the largest fractional parts (first group on ties).
        """
        shares = np.array([g.relShare for g in self.groups], dtype=float)
        exact = self.size * shares / np.sum(shares)
        counts = np.floor(exact).astype(int)
        remainder = self.size - int(np.sum(counts))
        order = np.argsort(-(exact - counts), kind="stable")
        for i in order[:remainder]:
            counts[i] += 1
        return tuple(int(c) for c in counts)

@dataclass(frozen=True)
class InterPoolConnectionSettings:
    sourcePool: str
    targetPool: str
    targetConnectionDensity: float = 0.1
    """Share of the target pool neurons receiving connections."""
    sourceConnectionDensity: float = 0.1
    """Share of the source pool connected to each receiving neuron."""
    constantNumOfConnections: bool = False

    def __post_init__(self):
        checkRange(self.targetConnectionDensity, "targetConnectionDensity", 0, 1, lowOpen=True)
        checkRange(self.sourceConnectionDensity, "sourceConnectionDensity", 0, 1, lowOpen=True)

SynapseFactory = Callable[[int, int], object]

class ConnectionBank:
    r"""
    Per-target connection map: `bank[target][source] -> synapse`, keyed by arena indexes.
    At most one synapse exists for each (source, target) pair.
    """

    def __init__(self, size: int) -> None:
        self._conns: List[Dict[int, object]] = [dict() for _ in range(size)]

    def __len__(self) -> int:
        return len(self._conns)

    def __getitem__(self, target: int) -> Dict[int, object]:
        return self._conns[target]

    def set(self, source: int, target: int, synapse, replace: bool = False) -> bool:
        """Adds the connection; an existing one is overwritten only if `replace`."""
        conns = self._conns[target]
        if source in conns and not replace:
            return False
        conns[source] = synapse
        return True

    def remove(self, source: int, target: int) -> None:
        self._conns[target].pop(source, None)

    def contains(self, source: int, target: int) -> bool:
        return source in self._conns[target]

    def synapses(self):
        for conns in self._conns:
            yield from conns.values()

    @property
    def count(self) -> int:
        return sum(len(c) for c in self._conns)

def _fluctuation(rng: np.random.Generator) -> int:
    return int(rng.choice([-1, 0, 1], p=[0.25, 0.5, 0.25]))

def connectNeuron(
        bank: ConnectionBank, 
        target: int, 
        sources: Sequence[int], 
        numOfSynapses: int, 
        makeSynapse: SynapseFactory, 
        rng: np.random.Generator, 
        allowSelfConnection: bool = True, 
        replace: bool = False,
    ) -> int:
    """
    Connects `numOfSynapses` distinct sources, drawn at random without replacement, to `target`.
    A candidate refused by the bank is discarded and the next one is drawn.
    Returns the number of connections made.
    """
    buffer = [s for s in sources if allowSelfConnection or s != target]
    made = 0
    for _ in range(numOfSynapses):
        while len(buffer) > 0:
            source = buffer.pop(int(rng.integers(0, len(buffer))))
            if bank.set(source, target, makeSynapse(source, target), replace):
                made += 1
                break
    return made

def connectRandomSchema(bank, poolNeurons, schema: RandomSchemaSettings, makeSynapse, rng) -> None:
    for _ in range(schema.repetitions):
        for target in poolNeurons:
            n = int(round(len(poolNeurons) * schema.density))
            if not schema.constantNumOfConnections and n > 2:
                n += _fluctuation(rng)
            connectNeuron(
                bank, target, poolNeurons, n, makeSynapse, rng,
                allowSelfConnection=schema.allowSelfConnection, 
                replace=schema.replaceExistingConnections,
            )

def connectChainSchema(bank, poolNeurons, schema: ChainSchemaSettings, makeSynapse, rng) -> None:
    for _ in range(schema.repetitions):
        chainLength = int(round(schema.ratio * len(poolNeurons)))
        if chainLength < 2:
            return
        chain = list(poolNeurons)
        rng.shuffle(chain)
        chain = chain[:chainLength]

        pairs = [(chain[i], chain[i + 1]) for i in range(len(chain) - 1)]
        if schema.circle:
            pairs.append((chain[-1], chain[0]))
        for source, target in pairs:
            bank.set(source, target, makeSynapse(source, target), schema.replaceExistingConnections)

def toroidPairs(nodes: Sequence[int], lDiagonalSelf: bool = False, rDiagonalSelf: bool = False) -> List[Tuple[int, int]]:
    r"""
    (source, target) pairs of a double twisted toroid laid out on a grid of 
    $\lfloor \sqrt{n} \rfloor$ rows. Each node receives from its right neighbour (the row end
    wraps to the start of the next row) and from its lower neighbour (the bottom row wraps to 
    the top row shifted by one column). Nodes beyond the full grid are left out.
    """
    n = len(nodes)
    if n < 2:
        return []
    rows = int(math.floor(math.sqrt(n)))
    cols = n // rows
    size = rows * cols
    pairs = []
    for r in range(rows):
        for c in range(cols):
            k = r * cols + c
            target = nodes[k]
            right = nodes[(k + 1) % size]
            if r < rows - 1:
                down = nodes[(r + 1) * cols + c]
            else:
                down = nodes[(c + 1) % cols]
            pairs.append((right, target))
            if down != right:
                pairs.append((down, target))
            if lDiagonalSelf and r == c:
                pairs.append((target, target))
            if rDiagonalSelf and c == cols - 1 - r and not (lDiagonalSelf and r == c):
                pairs.append((target, target))
    return pairs

def connectToroidSchema(bank, poolNeurons, schema: DoubleTwistedToroidSchemaSettings, makeSynapse, rng) -> None:
    for _ in range(schema.repetitions):
        count = int(round(schema.ratio * len(poolNeurons)))
        if count < 2:
            return
        nodes = list(poolNeurons)
        rng.shuffle(nodes)
        for source, target in toroidPairs(nodes[:count], schema.lDiagonalSelf, schema.rDiagonalSelf):
            bank.set(source, target, makeSynapse(source, target), schema.replaceExistingConnections)

def connectEmptySchema(bank, poolNeurons, schema: EmptySchemaSettings, makeSynapse, rng) -> None:
    if not schema.replaceExistingConnections:
        return
    members = set(poolNeurons)
    for target in poolNeurons:
        for source in [s for s in bank[target] if s in members]:
            bank.remove(source, target)

SCHEMA_CONNECTORS = {
    SchemaKind.RANDOM: connectRandomSchema,
    SchemaKind.CHAIN: connectChainSchema,
    SchemaKind.DOUBLE_TWISTED_TOROID: connectToroidSchema,
    SchemaKind.EMPTY: connectEmptySchema,
}

def applySchemas(bank: ConnectionBank, poolNeurons: Sequence[int], schemas, makeSynapse: SynapseFactory, rng) -> None:
    """Applies the schemas to the pool in order."""
    for schema in schemas:
        before = bank.count
        SCHEMA_CONNECTORS[schema.kind](bank, poolNeurons, schema, makeSynapse, rng)
        log.debug("%s applied: %d -> %d connections", schema.kind.value, before, bank.count)

def connectPools(
        bank: ConnectionBank, 
        sourceNeurons: Sequence[int], 
        targetNeurons: Sequence[int], 
        cfg: InterPoolConnectionSettings, 
        makeSynapse: SynapseFactory, 
        rng,
    ) -> None:
    """Connects a random share of the target pool neurons to random source pool neurons."""
    targets = list(targetNeurons)
    rng.shuffle(targets)
    numOfTargets = int(round(len(targets) * cfg.targetConnectionDensity))
    for target in targets[:numOfTargets]:
        n = int(round(len(sourceNeurons) * cfg.sourceConnectionDensity))
        if not cfg.constantNumOfConnections and n > 2:
            n += _fluctuation(rng)
        connectNeuron(bank, target, sourceNeurons, n, makeSynapse, rng, allowSelfConnection=False, replace=False)
