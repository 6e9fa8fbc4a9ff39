#
#
#

import sys
import os
import unittest
import warnings
import numpy as np

sys.path.append(os.path.join(os.path.dirname(__file__), "../"))

from librc.topology import (
    NeuronGroupSettings, PoolSettings, ConnectionBank, 
    RandomSchemaSettings, ChainSchemaSettings, DoubleTwistedToroidSchemaSettings, EmptySchemaSettings,
    SchemaKind, schemaFromConfig, applySchemas, toroidPairs, connectPools, InterPoolConnectionSettings,
)
from librc.validation import ValidationError

def make_pair(source, target):
    return (source, target)

class TestPoolSettings(unittest.TestCase):

    def test_group_counts(self):
        pool = PoolSettings("P", 10, groups=(
            NeuronGroupSettings("a", relShare=1),
            NeuronGroupSettings("b", relShare=1),
            NeuronGroupSettings("c", relShare=1),
        ))
        counts = pool.groupCounts()
        self.assertEqual(sum(counts), 10)
        self.assertEqual(counts, (4, 3, 3))

    def test_invalid_pool(self):
        self.assertRaises(ValidationError, PoolSettings, "", 10)
        self.assertRaises(ValidationError, PoolSettings, "P", 0)
        self.assertRaises(ValidationError, PoolSettings, "P", 10, (NeuronGroupSettings("a"), NeuronGroupSettings("a")))
        self.assertRaises(ValidationError, NeuronGroupSettings, "a", "quantum")

    def test_docstrings_compile_cleanly(self):
        import librc.topology
        path = librc.topology.__file__
        with open(path) as f:
            source = f.read()
        with warnings.catch_warnings():
            warnings.simplefilter("error")
            compile(source, path, "exec")

    def test_schema_from_config(self):
        schema = schemaFromConfig("chainSchema", {"ratio": 0.5, "circle": False})
        self.assertIsInstance(schema, ChainSchemaSettings)
        self.assertEqual(schema.kind, SchemaKind.CHAIN)
        self.assertFalse(schema.circle)
        self.assertRaises(ValidationError, schemaFromConfig, "starSchema")
        self.assertRaises(ValidationError, schemaFromConfig, "randomSchema", {"shape": 1})
        self.assertRaises(ValidationError, schemaFromConfig, "randomSchema", {"density": 0})

class TestSchemas(unittest.TestCase):

    def setUp(self):
        self.rng = np.random.default_rng(1)
        self.pool = list(range(10))

    def test_bank_replace(self):
        bank = ConnectionBank(3)
        self.assertTrue(bank.set(0, 1, "a"))
        self.assertFalse(bank.set(0, 1, "b"))
        self.assertEqual(bank[1][0], "a")
        self.assertTrue(bank.set(0, 1, "b", replace=True))
        self.assertEqual(bank[1][0], "b")
        self.assertEqual(bank.count, 1)
        bank.remove(0, 1)
        self.assertFalse(bank.contains(0, 1))

    def test_random_schema(self):
        bank = ConnectionBank(10)
        schema = RandomSchemaSettings(density=0.4, allowSelfConnection=False, constantNumOfConnections=True)
        applySchemas(bank, self.pool, [schema], make_pair, self.rng)
        for target in self.pool:
            self.assertEqual(len(bank[target]), 4)
            self.assertFalse(bank.contains(target, target))

    def test_random_schema_fluctuation(self):
        bank = ConnectionBank(10)
        applySchemas(bank, self.pool, [RandomSchemaSettings(density=0.5)], make_pair, self.rng)
        for target in self.pool:
            self.assertIn(len(bank[target]), (4, 5, 6))

    def test_chain_schema(self):
        bank = ConnectionBank(10)
        applySchemas(bank, self.pool, [ChainSchemaSettings()], make_pair, self.rng)
        self.assertEqual(bank.count, 10)
        for target in self.pool:
            self.assertEqual(len(bank[target]), 1)

        bank = ConnectionBank(10)
        applySchemas(bank, self.pool, [ChainSchemaSettings(ratio=0.5, circle=False)], make_pair, self.rng)
        self.assertEqual(bank.count, 4)

    def test_toroid_pairs(self):
        pairs = toroidPairs(list(range(9)))
        self.assertEqual(len(pairs), 17)
        self.assertEqual(len(set(pairs)), 17)
        self.assertIn((1, 0), pairs)
        self.assertIn((3, 0), pairs)
        # row end wraps to the next row, bottom row to the top row shifted
        self.assertIn((3, 2), pairs)
        self.assertIn((1, 6), pairs)
        diag = toroidPairs(list(range(9)), lDiagonalSelf=True)
        self.assertEqual(len(diag), 20)
        self.assertIn((4, 4), diag)
        self.assertEqual(toroidPairs([0]), [])

    def test_toroid_schema(self):
        bank = ConnectionBank(9)
        applySchemas(bank, list(range(9)), [DoubleTwistedToroidSchemaSettings()], make_pair, self.rng)
        self.assertEqual(bank.count, 17)

    def test_empty_schema(self):
        bank = ConnectionBank(10)
        schemas = [ChainSchemaSettings(), EmptySchemaSettings(replaceExistingConnections=False)]
        applySchemas(bank, self.pool, schemas, make_pair, self.rng)
        self.assertEqual(bank.count, 10)
        applySchemas(bank, self.pool, [EmptySchemaSettings()], make_pair, self.rng)
        self.assertEqual(bank.count, 0)

    def test_keep_existing(self):
        bank = ConnectionBank(10)
        for t in self.pool:
            bank.set((t + 1) % 10, t, "old")
        schema = RandomSchemaSettings(density=1.0, replaceExistingConnections=False, constantNumOfConnections=True)
        applySchemas(bank, self.pool, [schema], make_pair, self.rng)
        for t in self.pool:
            self.assertEqual(bank[t][(t + 1) % 10], "old")

    def test_connect_pools(self):
        bank = ConnectionBank(20)
        cfg = InterPoolConnectionSettings("A", "B", targetConnectionDensity=0.5, sourceConnectionDensity=0.2, constantNumOfConnections=True)
        connectPools(bank, list(range(10)), list(range(10, 20)), cfg, make_pair, self.rng)
        targets = [t for t in range(10, 20) if len(bank[t]) > 0]
        self.assertEqual(len(targets), 5)
        for t in targets:
            self.assertEqual(len(bank[t]), 2)
            self.assertTrue(all(s < 10 for s in bank[t]))

if __name__ == '__main__':
    unittest.main()
