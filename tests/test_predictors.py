#
#
#

import sys
import os
import unittest
import numpy as np

sys.path.append(os.path.join(os.path.dirname(__file__), "../"))

from librc.predictors import PredictorsMapper
from librc.validation import ValidationError, LengthMismatchError

class TestPredictorsMapper(unittest.TestCase):

    def test_all_enabled(self):
        mapper = PredictorsMapper(4)
        self.assertEqual(mapper.numOfPredictors, 4)
        self.assertEqual(mapper.numOfEnabledPredictors, 4)
        self.assertTrue(np.array_equal(mapper.createVector("u", [1, 2, 3, 4]), [1, 2, 3, 4]))

    def test_unit_map(self):
        mapper = PredictorsMapper([True, False, True, True])
        mapper.add("u", [True, True, False, True])
        self.assertEqual(mapper.numOfUnitPredictors("u"), 2)
        self.assertEqual(mapper.numOfUnitPredictors("v"), 3)
        self.assertTrue(np.array_equal(mapper.createVector("u", [1, 2, 3, 4]), [1, 4]))
        self.assertTrue(np.array_equal(mapper.createVector("v", [1, 2, 3, 4]), [1, 3, 4]))
        vectors = mapper.createVectorCollection("u", [[1, 2, 3, 4], [5, 6, 7, 8]])
        self.assertEqual(len(vectors), 2)
        self.assertTrue(np.array_equal(vectors[1], [5, 8]))

    def test_errors(self):
        self.assertRaises(ValidationError, PredictorsMapper, 0)
        self.assertRaises(ValidationError, PredictorsMapper, [False, False])
        mapper = PredictorsMapper([True, False, True])
        self.assertRaises(LengthMismatchError, mapper.add, "u", [True, True])
        self.assertRaises(ValidationError, mapper.add, "u", [False, True, False])
        mapper.add("u", [True, True, False])
        self.assertRaises(ValidationError, mapper.add, "u", [True, True, True])
        self.assertRaises(LengthMismatchError, mapper.createVector, "u", [1, 2])

if __name__ == '__main__':
    unittest.main()
