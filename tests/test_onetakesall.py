#
#
#

import sys
import os
import unittest
import numpy as np

sys.path.append(os.path.join(os.path.dirname(__file__), "../"))

from librc.filters import BinFeatureFilter
from librc.onetakesall import OneTakesAllGroup
from librc.readout_unit import CompositeResult
from librc.settings import (
    OneTakesAllGroupSettings, ClusterChainDecisionSettings, ClusterChainSettings, CrossvalidationSettings,
)
from librc.validation import InvalidOperationError, NotTrainedError, ValidationError

class TestOneTakesAllGroup(unittest.TestCase):

    def test_basic_decision(self):
        group = OneTakesAllGroup(0, "g", [0, 1], OneTakesAllGroupSettings("g", ("a", "b")))
        self.assertTrue(group.ready)
        winner, result = group.compute([CompositeResult([0.9]), CompositeResult([-0.9])])
        self.assertEqual(winner, 0)
        self.assertAlmostEqual(float(np.sum(result.result)), 1.0)
        self.assertTrue(np.allclose(result.result, [0.95, 0.05]))

        winner, _ = group.compute([CompositeResult([-0.2]), CompositeResult([-0.1]), CompositeResult([0.5])])
        self.assertEqual(winner, 1)

    def test_basic_tie(self):
        group = OneTakesAllGroup(0, "g", [1, 0], OneTakesAllGroupSettings("g", ("a", "b")))
        winner, result = group.compute([CompositeResult([-1.]), CompositeResult([-1.])])
        self.assertEqual(winner, 0)
        self.assertTrue(np.allclose(result.result, [0.5, 0.5]))

    def test_basic_not_buildable(self):
        group = OneTakesAllGroup(0, "g", [0, 1], OneTakesAllGroupSettings("g", ("a", "b")))
        self.assertRaises(InvalidOperationError, group.build, [], [], [])
        self.assertRaises(ValidationError, OneTakesAllGroup, 0, "g", [0], OneTakesAllGroupSettings("g", ("a", "b")))

    def test_cluster_chain_decision(self):
        decision = ClusterChainDecisionSettings(
            ClusterChainSettings(CrossvalidationSettings(0.2)), useReadoutUnitsSubResults=False
        )
        group = OneTakesAllGroup(0, "g", [0, 1], OneTakesAllGroupSettings("g", ("a", "b"), decision))
        self.assertFalse(group.ready)

        rng = np.random.default_rng(5)
        unitResults, ideals = [], []
        for i in range(40):
            first = i % 2 == 0
            s = 0.8 if first else -0.8
            unitResults.append([
                CompositeResult([s + rng.uniform(-0.1, 0.1)], [[0.]]), 
                CompositeResult([-s + rng.uniform(-0.1, 0.1)], [[0.]]),
            ])
            ideals.append(np.array([1., -1.]) if first else np.array([-1., 1.]))
        filters = [BinFeatureFilter(), BinFeatureFilter()]

        self.assertTrue(np.array_equal(group.createInputVector(unitResults[0]), [unitResults[0][0].result[0], unitResults[0][1].result[0]]))
        self.assertTrue(np.array_equal(group.createOutputVector(ideals[0], filters), [1., 0.]))

        self.assertRaises(NotTrainedError, group.compute, unitResults[0])
        chain = group.build(unitResults, ideals, filters, rng=1)
        self.assertTrue(group.ready)
        self.assertEqual(chain.name, "OTAG-g")

        winner, result = group.compute([CompositeResult([0.7], [[0.]]), CompositeResult([-0.9], [[0.]])])
        self.assertEqual(winner, 0)
        self.assertAlmostEqual(float(np.sum(result.result)), 1.0)
        winner, _ = group.compute([CompositeResult([-0.7], [[0.]]), CompositeResult([0.75], [[0.]])])
        self.assertEqual(winner, 1)

if __name__ == '__main__':
    unittest.main()
