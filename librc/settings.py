r"""
Readout layer configuration.

All settings are `dataclasses` checked at construction. `ReadoutLayerSettings.fromDict()`
builds a complete configuration from nested dictionaries, e.g.

```python
cfg = ReadoutLayerSettings.fromDict({
    'units': [
        {'name': 'price', 'task': 'forecast'},
        {'name': 'up', 'task': 'classification'},
        {'name': 'down', 'task': 'classification'},
    ],
    'groups': [
        {'name': 'direction', 'members': ['up', 'down'], 'decision': {'method': 'basic'}},
    ],
})
```

Units without an explicit `clusterChain` use the task default chain of the layer.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Tuple, Union

from librc.validation import ValidationError, checkName, checkRange

class TaskType(Enum):
    FORECAST = "forecast"
    CLASSIFICATION = "classification"

class DecisionMethod(Enum):
    BASIC = "basic"
    CLUSTER_CHAIN = "clusterchain"

@dataclass(frozen=True)
class CrossvalidationSettings:
    foldDataRatio: float = 0.1
    """Share of the samples in each testing fold, in $(0, 0.5]$."""
    folds: int = 0
    """Number of folds to process, `0` for all of them."""
    repetitions: int = 1
    """Number of repetitions of the whole fold cycle, reshuffling data in between."""

    def __post_init__(self):
        checkRange(self.foldDataRatio, "foldDataRatio", 0, 0.5, lowOpen=True)
        checkRange(self.folds, "folds", 0)
        checkRange(self.repetitions, "repetitions", 1)

    @classmethod
    def fromDict(cls, cfg: dict) -> "CrossvalidationSettings":
        return cls(**cfg)

DEFAULT_LAMBDAS = (0.0, 1e-6, 1e-5, 1e-4, 1e-3, 1e-2, 1e-1, 1.0)

@dataclass(frozen=True)
class RidgeNetworkSettings:
    lambdas: Tuple[float, ...] = DEFAULT_LAMBDAS
    """Ridge penalties tried in turn, one per training epoch."""

    def __post_init__(self):
        if len(self.lambdas) == 0:
            raise ValidationError("At least one ridge penalty is required", field="lambdas", value=self.lambdas)
        for L in self.lambdas:
            checkRange(L, "lambda", 0)

    @classmethod
    def fromDict(cls, cfg: dict) -> "RidgeNetworkSettings":
        cfg = dict(cfg)
        if 'lambdas' in cfg:
            cfg['lambdas'] = tuple(float(L) for L in cfg['lambdas'])
        return cls(**cfg)

@dataclass(frozen=True)
class ClusterSettings:
    networks: Tuple[RidgeNetworkSettings, ...] = (RidgeNetworkSettings(),)
    """Network configurations; one member is trained per configuration and fold."""
    trainingGroupWeight: float = 1.0
    testingGroupWeight: float = 1.0
    samplesWeight: float = 1.0
    precisionWeight: float = 1.0
    misrecognizedFalseWeight: float = 1.0
    unrecognizedTrueWeight: float = 0.0

    def __post_init__(self):
        if len(self.networks) == 0:
            raise ValidationError("Cluster needs at least one network configuration", field="networks", value=self.networks)
        for name in ("trainingGroupWeight", "testingGroupWeight", "samplesWeight", "precisionWeight", 
                     "misrecognizedFalseWeight", "unrecognizedTrueWeight"):
            checkRange(getattr(self, name), name, 0)

    @classmethod
    def fromDict(cls, cfg: dict) -> "ClusterSettings":
        cfg = dict(cfg)
        if 'networks' in cfg:
            cfg['networks'] = tuple(RidgeNetworkSettings.fromDict(n) for n in cfg['networks'])
        return cls(**cfg)

@dataclass(frozen=True)
class ClusterChainSettings:
    crossvalidation: CrossvalidationSettings = CrossvalidationSettings()
    clusters: Tuple[ClusterSettings, ...] = (ClusterSettings(),)

    def __post_init__(self):
        if len(self.clusters) == 0:
            raise ValidationError("Cluster chain needs at least one cluster", field="clusters", value=self.clusters)

    @classmethod
    def fromDict(cls, cfg: dict) -> "ClusterChainSettings":
        cfg = dict(cfg)
        if 'crossvalidation' in cfg:
            cfg['crossvalidation'] = CrossvalidationSettings.fromDict(cfg['crossvalidation'])
        if 'clusters' in cfg:
            cfg['clusters'] = tuple(ClusterSettings.fromDict(c) for c in cfg['clusters'])
        return cls(**cfg)

@dataclass(frozen=True)
class ReadoutUnitSettings:
    name: str
    task: TaskType = TaskType.FORECAST
    clusterChain: Optional[ClusterChainSettings] = None
    """`None` to use the layer default chain of the task."""

    def __post_init__(self):
        checkName(self.name, "readout unit name")

    @classmethod
    def fromDict(cls, cfg: dict) -> "ReadoutUnitSettings":
        return cls(
            name=cfg.get('name'),
            task=TaskType(cfg.get('task', 'forecast')),
            clusterChain=None if cfg.get('clusterChain') is None else ClusterChainSettings.fromDict(cfg['clusterChain']),
        )

@dataclass(frozen=True)
class BasicDecisionSettings:
    method = DecisionMethod.BASIC

@dataclass(frozen=True)
class ClusterChainDecisionSettings:
    clusterChain: ClusterChainSettings = ClusterChainSettings()
    """Probabilistic cluster chain deciding the winner."""
    useReadoutUnitsFinalResult: bool = True
    useReadoutUnitsSubResults: bool = True
    method = DecisionMethod.CLUSTER_CHAIN

    def __post_init__(self):
        if not self.useReadoutUnitsFinalResult and not self.useReadoutUnitsSubResults:
            raise ValidationError(
                "At least one of final results or sub-results of the member units must be used", 
                field="useReadoutUnitsFinalResult", value=False
            )

def decisionFromDict(cfg: dict) -> Union[BasicDecisionSettings, ClusterChainDecisionSettings]:
    cfg = dict(cfg)
    try:
        method = DecisionMethod(cfg.pop('method', 'basic'))
    except ValueError as e:
        raise ValidationError(str(e), field="method", value=cfg) from e
    if method == DecisionMethod.BASIC:
        return BasicDecisionSettings()
    if 'clusterChain' in cfg:
        cfg['clusterChain'] = ClusterChainSettings.fromDict(cfg['clusterChain'])
    return ClusterChainDecisionSettings(**cfg)

@dataclass(frozen=True)
class OneTakesAllGroupSettings:
    name: str
    members: Tuple[str, ...]
    """Names of the member (classification) readout units."""
    decision: Union[BasicDecisionSettings, ClusterChainDecisionSettings] = BasicDecisionSettings()

    def __post_init__(self):
        checkName(self.name, "group name")
        if len(self.members) < 2:
            raise ValidationError(f"Group {self.name} needs at least 2 members", field="members", value=self.members)
        if len(set(self.members)) != len(self.members):
            raise ValidationError(f"Duplicate members in group {self.name}", field="members", value=self.members)

    @property
    def decisionMethod(self) -> DecisionMethod:
        return self.decision.method

    @classmethod
    def fromDict(cls, cfg: dict) -> "OneTakesAllGroupSettings":
        return cls(
            name=cfg.get('name'),
            members=tuple(cfg.get('members', ())),
            decision=decisionFromDict(cfg.get('decision', {})),
        )

def defaultForecastChain() -> ClusterChainSettings:
    return ClusterChainSettings(CrossvalidationSettings(0.1, 0, 1), (ClusterSettings(),))

def defaultClassificationChain() -> ClusterChainSettings:
    return ClusterChainSettings(
        CrossvalidationSettings(0.1, 0, 1), 
        (ClusterSettings(unrecognizedTrueWeight=1.0),),
    )

@dataclass(frozen=True)
class ReadoutLayerSettings:
    units: Tuple[ReadoutUnitSettings, ...]
    groups: Tuple[OneTakesAllGroupSettings, ...] = ()
    forecastChain: ClusterChainSettings = field(default_factory=defaultForecastChain)
    """Default cluster chain of forecast units."""
    classificationChain: ClusterChainSettings = field(default_factory=defaultClassificationChain)
    """Default cluster chain of classification units."""

    def __post_init__(self):
        if len(self.units) == 0:
            raise ValidationError("Readout layer needs at least one readout unit", field="units", value=self.units)
        names = self.unitNames
        if len(set(names)) != len(names):
            raise ValidationError("Duplicate readout unit names", field="units", value=names)
        groupNames = [g.name for g in self.groups]
        if len(set(groupNames)) != len(groupNames):
            raise ValidationError("Duplicate group names", field="groups", value=groupNames)
        used = set()
        for g in self.groups:
            for m in g.members:
                if not m in names:
                    raise ValidationError(f"Group {g.name} refers to unknown unit {m}", field="members", value=m)
                if self.units[names.index(m)].task != TaskType.CLASSIFICATION:
                    raise ValidationError(f"Group {g.name} member {m} is not a classification unit", field="members", value=m)
                if m in used:
                    raise ValidationError(f"Unit {m} belongs to more than one group", field="members", value=m)
                used.add(m)

    @property
    def unitNames(self):
        return [u.name for u in self.units]

    def unitIdx(self, name: str) -> int:
        return self.unitNames.index(name)

    def unitChain(self, unit: ReadoutUnitSettings) -> ClusterChainSettings:
        if not unit.clusterChain is None:
            return unit.clusterChain
        return self.forecastChain if unit.task == TaskType.FORECAST else self.classificationChain

    @classmethod
    def fromDict(cls, cfg: dict) -> "ReadoutLayerSettings":
        kwargs = dict(
            units=tuple(ReadoutUnitSettings.fromDict(u) for u in cfg.get('units', ())),
            groups=tuple(OneTakesAllGroupSettings.fromDict(g) for g in cfg.get('groups', ())),
        )
        if 'forecastChain' in cfg:
            kwargs['forecastChain'] = ClusterChainSettings.fromDict(cfg['forecastChain'])
        if 'classificationChain' in cfg:
            kwargs['classificationChain'] = ClusterChainSettings.fromDict(cfg['classificationChain'])
        return cls(**kwargs)
