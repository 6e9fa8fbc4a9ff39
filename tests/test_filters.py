#
#
#

import sys
import os
import unittest
import numpy as np
import pandas as pd

sys.path.append(os.path.join(os.path.dirname(__file__), "../"))

from librc.filters import RealFeatureFilter, BinFeatureFilter, createFilter
from librc.crossval import FoldSplit, folderize, binaryClasses
from librc.datautils import VectorBundle, pd_data_prep
from librc.mathtools import Interval, INT_ZP1
from librc.validation import ValidationError, LengthMismatchError

class TestFilters(unittest.TestCase):

    def test_real_filter_reserve(self):
        f = RealFeatureFilter().fit([0., 1., 2., 3., 4.])
        self.assertAlmostEqual(float(f.apply(4.)), 1 / 1.1)
        self.assertAlmostEqual(float(f.apply(0.)), -1 / 1.1)
        self.assertAlmostEqual(float(f.apply(2.)), 0.0)

    def test_real_filter_reverse(self):
        values = np.array([3.5, -2., 10., 0.25])
        for standardize in (True, False):
            f = RealFeatureFilter(Interval(0, 1), standardize=standardize).fit(values)
            y = f.apply(values)
            self.assertTrue(np.all((y > 0) & (y < 1)))
            self.assertTrue(np.allclose(f.applyReverse(y), values))

    def test_real_filter_constant(self):
        f = RealFeatureFilter(standardize=False, keepReserve=False).fit([5., 5., 5.])
        self.assertAlmostEqual(float(f.apply(5.)), 0.0)
        self.assertAlmostEqual(float(f.applyReverse(0.3)), 5.0)

    def test_bin_filter(self):
        f = createFilter('binary')
        self.assertIsInstance(f, BinFeatureFilter)
        self.assertTrue(np.array_equal(f.apply([0., 1.]), [-1., 1.]))
        self.assertTrue(np.array_equal(f.applyReverse([-0.2, 0.3]), [0., 1.]))
        g = BinFeatureFilter(INT_ZP1)
        self.assertTrue(np.array_equal(g.applyReverse([0.49, 0.5]), [0., 1.]))
        self.assertRaises(ValueError, createFilter, 'ordinal')

class TestFolds(unittest.TestCase):

    def test_sequential_folds(self):
        split = FoldSplit(23, 0.1)
        folds = split.folds()
        self.assertEqual(split.n_splits, 11)
        self.assertEqual(sorted(i for f in folds for i in f), list(range(23)))
        self.assertEqual(folds[0], [0, 1, 22])
        for train, test in split:
            self.assertEqual(len(train) + len(test), 23)
            self.assertFalse(set(train) & set(test))

    def test_stratified_folds(self):
        classes = np.array([0] * 10 + [1] * 10)
        split = FoldSplit(20, 0.25, classes)
        self.assertEqual(split.n_splits, 4)
        for fold in split.folds():
            self.assertEqual(len(fold), 5)
            self.assertEqual(len(set(classes[fold])), 2)

    def test_binary_classes(self):
        labels = binaryClasses([np.array([0.2]), np.array([0.7]), np.array([0.1, 0.9, 0.0])], 0.5)
        self.assertTrue(np.array_equal(labels, [0, 1, 1]))

    def test_folderize(self):
        bundle = VectorBundle([[i] for i in range(10)], [[i % 2] for i in range(10)])
        folds = folderize(bundle, 0.2, 0.5)
        self.assertEqual(len(folds), 5)
        for fold in folds:
            self.assertEqual(sorted(float(y[0]) for y in fold.outputVectors), [0., 1.])
        self.assertRaises(ValidationError, folderize, VectorBundle([[1.]], [[1.]]), 0.2)

class TestVectorBundle(unittest.TestCase):

    def test_from_data(self):
        X = pd.DataFrame(np.arange(12.).reshape((6, 2)))
        Y = pd.Series(np.arange(6.))
        bundle = VectorBundle.fromData(X, Y)
        self.assertEqual(len(bundle), 6)
        self.assertEqual((bundle.inputLength, bundle.outputLength), (2, 1))
        self.assertEqual(bundle.outputMatrix().shape, (6, 1))

    def test_shuffle_keeps_pairs(self):
        bundle = VectorBundle([[i, i] for i in range(8)], [[2 * i] for i in range(8)])
        bundle.shuffle(np.random.default_rng(1))
        for x, y in zip(bundle.inputVectors, bundle.outputVectors):
            self.assertEqual(2 * x[0], y[0])

    def test_lengths(self):
        bundle = VectorBundle([[1., 2.]], [[1.]])
        self.assertRaises(LengthMismatchError, bundle.addPair, [1.], [1.])
        self.assertRaises(LengthMismatchError, VectorBundle, [[1.]], [])
        self.assertRaises(ValidationError, VectorBundle().check)

    def test_data_prep(self):
        v, idx = pd_data_prep(np.ones(4))
        self.assertEqual(v.shape, (4, 1))
        self.assertEqual(len(idx), 4)

if __name__ == '__main__':
    unittest.main()
