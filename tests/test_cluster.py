#
#
#

import sys
import os
import unittest
import numpy as np

sys.path.append(os.path.join(os.path.dirname(__file__), "../"))

from librc.cluster import NetworkCluster, ClusterChain, ClusterChainBuilder
from librc.datautils import VectorBundle
from librc.network import OutputType, RidgeNetwork, TrainedNetwork
from librc.settings import ClusterChainSettings, ClusterSettings, CrossvalidationSettings, RidgeNetworkSettings
from librc.validation import ValidationError, InvalidOperationError, NotTrainedError

def make_bundle(T, seed, binary=False):
    rng = np.random.default_rng(seed)
    X = rng.uniform(-0.4, 0.4, (T, 2))
    if binary:
        Y = (X[:, [0]] > 0).astype(float)
    else:
        Y = 0.5 * X[:, [0]] - 0.3 * X[:, [1]] + 0.1
    return VectorBundle(list(X), list(Y))

def constant_member(name, value, outputType=OutputType.REAL):
    net = RidgeNetwork(1, 1, outputType)
    net.setWeights(np.array([[value], [0.]]))
    return TrainedNetwork(name, outputType, net)

class TestNetworkCluster(unittest.TestCase):

    def test_single_member(self):
        cluster = NetworkCluster("C", OutputType.REAL)
        cluster.addMember(constant_member("a", 0.3), 0, VectorBundle([[0.]], [[0.3]]))
        self.assertRaises(NotTrainedError, cluster.compute, [0.])
        cluster.finalize()
        self.assertRaises(InvalidOperationError, cluster.finalize)
        output, members = cluster.compute([0.])
        self.assertAlmostEqual(float(output[0]), 0.3)
        self.assertEqual(len(members), 1)
        self.assertEqual(cluster.errorStats.nrmPrecisionErrStat.max, 0.0)

    def test_weighted_members(self):
        cluster = NetworkCluster("C", OutputType.REAL)
        testData = VectorBundle([[0.], [0.]], [[0.2], [0.2]])
        cluster.addMember(constant_member("a", 0.2), 0, testData)
        cluster.addMember(constant_member("b", 0.6), 1, testData)
        # training statistics of unevaluated members are empty
        for m in cluster.members:
            m.trainingErrorStat.addSample(abs(float(m.compute([0.])[0]) - 0.2))
            m.testingErrorStat.addSample(abs(float(m.compute([0.])[0]) - 0.2))
        cluster.finalize()
        self.assertAlmostEqual(float(np.sum(cluster.memberWeights)), 1.0)
        self.assertGreater(cluster.memberWeights[0], cluster.memberWeights[1])
        output, _ = cluster.compute([0.])
        self.assertTrue(0.2 < output[0] < 0.4)

    def test_inconsistent_member(self):
        cluster = NetworkCluster("C", OutputType.REAL)
        testData = VectorBundle([[0.]], [[0.]])
        self.assertRaises(ValidationError, cluster.addMember, constant_member("p", 0.5, OutputType.PROBABILISTIC), 0, testData)

class TestClusterChain(unittest.TestCase):

    def test_real_chain(self):
        settings = ClusterChainSettings(
            CrossvalidationSettings(0.2, 0, 1), 
            (ClusterSettings(), ClusterSettings(networks=(RidgeNetworkSettings((0.0, 1e-3)), ))),
        )
        chain = ClusterChainBuilder("chain", settings, OutputType.REAL).build(make_bundle(50, 1))
        self.assertTrue(chain.built)
        self.assertEqual(len(chain.clusters), 2)
        self.assertEqual(chain.numOfSubResults, 10)
        # second cluster members take the first cluster outputs as extra inputs
        self.assertEqual(chain.clusters[1].members[0].network.numInputs, 3)

        test = make_bundle(10, 2)
        for x, y in zip(test.inputVectors, test.outputVectors):
            output, subResults = chain.compute(x)
            self.assertAlmostEqual(float(output[0]), float(y[0]), places=6)
            self.assertEqual(len(subResults), 10)

    def test_probabilistic_chain(self):
        settings = ClusterChainSettings(CrossvalidationSettings(0.25, 2, 2), (ClusterSettings(unrecognizedTrueWeight=1.0), ))
        chain = ClusterChainBuilder("chain", settings, OutputType.PROBABILISTIC, rng=3).build(make_bundle(40, 1, True))
        self.assertEqual(chain.numOfSubResults, 4)
        scopes = chain.clusters[0].memberScopeIDs
        self.assertEqual(scopes, [0, 1, 1000000, 1000001])
        self.assertGreater(chain.compute([0.35, 0.])[0][0], 0.5)
        self.assertLess(chain.compute([-0.35, 0.])[0][0], 0.5)
        self.assertIsNotNone(chain.errorStats.binaryErrStat)

    def test_member_names(self):
        settings = ClusterChainSettings(
            CrossvalidationSettings(0.25, 0, 1), 
            (ClusterSettings(networks=(RidgeNetworkSettings((0.0, )), RidgeNetworkSettings((1e-3, )))), ),
        )
        names = []
        ClusterChainBuilder(
            "chain", settings, OutputType.REAL, onEpochDone=lambda p, better: names.append(p.networkName)
        ).build(make_bundle(40, 1))
        self.assertEqual(len(names), 8)
        self.assertEqual(len(set(names)), 8)
        self.assertIn("chain#C1R1F1N1", names)
        self.assertIn("chain#C1R1F4N2", names)

    def test_not_built(self):
        self.assertRaises(NotTrainedError, ClusterChain("chain", OutputType.REAL).compute, [0.])

if __name__ == '__main__':
    unittest.main()
