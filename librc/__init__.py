r"""
# What is LibRC ?

A reservoir computing library: recurrent reservoirs of analog and spiking neurons 
feeding a trained readout layer, for forecasting and classification.

Currently we implement:

+ Reservoir:
  + `ReservoirInstance` built from `ReservoirSettings` (pools of neuron groups, input and inter-pool connections)
  + Interconnection schemas: random, chain, double twisted toroid and empty
  + Static and dynamic (short-term plasticity) synapses with signal delays
  + Spectral radius rescaling of analog weights
+ Readout layer:
  + `ReadoutLayer` with one `ReadoutUnit` per output field (forecast or classification)
  + Cross-validated chains of clusters of ridge regression networks
  + One-takes-all groups of classification units (basic or cluster chain decision)
  + Per unit predictor selection with `PredictorsMapper`

# Basic Usage

## Collecting predictors

```python
import numpy as np
from librc.topology import PoolSettings, RandomSchemaSettings
from librc.reservoir import ReservoirSettings, InputConnectionSettings, ReservoirInstance

settings = ReservoirSettings(
    inputCount=1,
    pools=(PoolSettings("main", 50, interconnection=(RandomSchemaSettings(density=0.2),)),),
    inputConnections=(InputConnectionSettings(0, "main", density=0.5),),
    spectralRadius=0.9,
)
reservoir = ReservoirInstance(settings, seed=1234)

X = reservoir.collectPredictors(np.sin(np.linspace(0, 20, 300)), burnin=50)
```

## Training the readout layer

```python
from librc.datautils import VectorBundle
from librc.settings import ReadoutLayerSettings
from librc.readout import ReadoutLayer

layer = ReadoutLayer(ReadoutLayerSettings.fromDict({
    'units': [{'name': 'next', 'task': 'forecast'}],
}))
overview = layer.build(VectorBundle.fromData(X[:-1], X[1:, 0]))
overview.print()

output, data = layer.compute(X[-1])
```

Logging goes through the standard `logging` loggers `librc.*`; call 
`librc.console.enableConsoleLogging()` to print them on the `rich` console.
"""

from librc.console import console, enableConsoleLogging
from librc.datautils import VectorBundle
from librc.predictors import PredictorsMapper
from librc.readout import ReadoutLayer
from librc.reservoir import ReservoirInstance
