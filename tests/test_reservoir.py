#
#
#

import sys
import os
import unittest
import numpy as np
import pandas as pd

sys.path.append(os.path.join(os.path.dirname(__file__), "../"))

from librc.reservoir import ReservoirSettings, ReservoirInstance, InputConnectionSettings, SynapseSettings
from librc.topology import PoolSettings, NeuronGroupSettings, RandomSchemaSettings, ChainSchemaSettings, InterPoolConnectionSettings
from librc.matgen import spectralRadius
from librc.validation import ValidationError, LengthMismatchError

def make_settings(**kwargs):
    pools = (
        PoolSettings("A", 20, interconnection=(RandomSchemaSettings(density=0.2), )),
        PoolSettings("B", 10, groups=(
            NeuronGroupSettings("exc", "spiking", "excitatory", 4),
            NeuronGroupSettings("inh", "spiking", "inhibitory", 1),
        ), interconnection=(ChainSchemaSettings(), )),
    )
    return ReservoirSettings(
        inputCount=2,
        pools=pools,
        inputConnections=(InputConnectionSettings(0, "A"), InputConnectionSettings(1, "B", 0.5)),
        interPoolConnections=(InterPoolConnectionSettings("A", "B", 0.5, 0.2), ),
        **kwargs
    )

class TestReservoir(unittest.TestCase):

    def test_build(self):
        res = ReservoirInstance(make_settings(), seed=123)
        self.assertEqual(res.size, 30)
        self.assertEqual(len(res.neurons), 32)
        self.assertEqual(res.inputBank.count, 25)
        self.assertGreater(res.internalBank.count, 0)

    def test_settings_validation(self):
        pools = (PoolSettings("A", 5), )
        self.assertRaises(ValidationError, ReservoirSettings, 1, pools, (InputConnectionSettings(0, "Z"), ))
        self.assertRaises(ValidationError, ReservoirSettings, 1, pools, (InputConnectionSettings(1, "A"), ))
        self.assertRaises(ValidationError, ReservoirSettings, 1, (PoolSettings("A", 5), PoolSettings("A", 5)))
        self.assertRaises(ValidationError, SynapseSettings, "plastic")

    def test_spectral_radius(self):
        res = ReservoirInstance(make_settings(spectralRadius=0.9), seed=123)
        self.assertAlmostEqual(spectralRadius(res.analogWeightMatrix()), 0.9)

    def test_collect_predictors(self):
        res = ReservoirInstance(make_settings(synapse=SynapseSettings(maxInternalDelay=2)), seed=1)
        rng = np.random.default_rng(0)
        Z = rng.uniform(-1, 1, (50, 2))

        X = res.collectPredictors(Z, burnin=10)
        self.assertEqual(X.shape, (40, 30))
        self.assertTrue(np.all(np.abs(X) <= 1))

        # reset makes runs repeatable
        X2 = res.collectPredictors(pd.DataFrame(Z), burnin=10)
        self.assertTrue(np.allclose(X, X2))

    def test_seed(self):
        Z = np.random.default_rng(0).uniform(-1, 1, (20, 2))
        X1 = ReservoirInstance(make_settings(), seed=7).collectPredictors(Z)
        X2 = ReservoirInstance(make_settings(), seed=7).collectPredictors(Z)
        self.assertTrue(np.allclose(X1, X2))

    def test_dynamic_synapses(self):
        res = ReservoirInstance(make_settings(synapse=SynapseSettings("dynamic", dynamics={"tauDecay": 5})), seed=3)
        X = res.collectPredictors(np.ones((10, 2)) * 0.5)
        self.assertEqual(X.shape, (10, 30))

    def test_wrong_input(self):
        res = ReservoirInstance(make_settings(), seed=1)
        self.assertRaises(LengthMismatchError, res.compute, [0.1, 0.2, 0.3])

    def test_table(self):
        res = ReservoirInstance(make_settings(), seed=1)
        self.assertEqual(res.table().row_count, 2)

if __name__ == '__main__':
    unittest.main()
