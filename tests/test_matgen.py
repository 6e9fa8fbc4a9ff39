#
#
#

import sys
import os
import unittest
import warnings
import numpy as np

sys.path.append(os.path.join(os.path.dirname(__file__), "../"))

from librc.matgen import makeRng, weightGenerator, delayGenerator, spectralRadius

class TestMatgen(unittest.TestCase):

    def test_weights(self):
        W = weightGenerator((20, 5), -0.5, 0.25, seed=1)
        self.assertEqual(W.shape, (20, 5))
        self.assertTrue(np.all((W >= -0.5) & (W <= 0.25)))
        self.assertTrue(np.array_equal(W, weightGenerator((20, 5), -0.5, 0.25, seed=1)))
        self.assertEqual(weightGenerator(3, seed=1).shape, (3, ))
        self.assertRaises(ValueError, weightGenerator, (2, 2, 2), seed=1)

    def test_delays(self):
        d = delayGenerator(200, 3, seed=2)
        self.assertEqual(set(d.tolist()), {0, 1, 2, 3})
        self.assertTrue(np.all(delayGenerator(10, 0, seed=2) == 0))

    def test_spectral_radius(self):
        self.assertAlmostEqual(spectralRadius(np.diag([0.5, -2.0, 1.0])), 2.0)
        self.assertAlmostEqual(spectralRadius(np.array([[0., 1.], [-1., 0.]])), 1.0)
        self.assertEqual(spectralRadius(np.zeros((0, 0))), 0.0)

    def test_rng(self):
        rng = np.random.default_rng(0)
        self.assertIs(makeRng(rng), rng)
        with warnings.catch_warnings(record=True) as w:
            warnings.simplefilter("always")
            makeRng(None)
            self.assertEqual(len(w), 1)

if __name__ == '__main__':
    unittest.main()
