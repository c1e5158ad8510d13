import unittest

import numpy as np

from src.skainet.domain import DataBatch, DType
from src.skainet.infrastructure.context import ExecutionConfig, ExecutionContext
from src.skainet.infrastructure.datasets import ArrayDataset


class TestArrayDataset(unittest.TestCase):
    def setUp(self):
        self.ctx = ExecutionContext(ExecutionConfig(seed=7))
        self.x = np.arange(20, dtype=np.float64).reshape(10, 2)
        self.y = np.arange(10)
        self.ds = ArrayDataset(self.x, self.y, self.ctx)

    def test_size_and_samples(self):
        self.assertEqual(self.ds.x_size, 10)
        self.assertEqual(len(self.ds), 10)
        np.testing.assert_array_equal(self.ds.get_x(3).to_numpy(), [6.0, 7.0])
        self.assertEqual(int(self.ds.get_y(3).to_numpy()), 3)

    def test_default_dtypes(self):
        self.assertIs(self.ds.x_dtype, DType.FP32)
        self.assertIs(self.ds.y_dtype, DType.INT32)
        self.assertIs(self.ds.get_y(0).dtype, DType.INT32)

    def test_explicit_dtypes(self):
        ds = ArrayDataset(self.x, self.y, self.ctx, x_dtype=DType.FP16, y_dtype=DType.FP32)
        self.assertIs(ds.get_x(0).dtype, DType.FP16)
        self.assertIs(ds.create_batch([0, 1]).y.dtype, DType.FP32)

    def test_split(self):
        first, second = self.ds.split(0.7)
        self.assertEqual((first.x_size, second.x_size), (7, 3))
        np.testing.assert_array_equal(second.get_x(0).to_numpy(), [14.0, 15.0])
        self.assertIs(second.y_dtype, DType.INT32)

    def test_split_rejects_bad_ratio(self):
        for ratio in (0.0, 1.0, -0.5, 2.0):
            with self.assertRaises(ValueError):
                self.ds.split(ratio)

    def test_shuffle_keeps_pairs(self):
        shuffled = self.ds.shuffle()
        self.assertEqual(shuffled.x_size, 10)
        ys = sorted(int(shuffled.get_y(i).to_numpy()) for i in range(10))
        self.assertEqual(ys, list(range(10)))
        for i in range(10):
            x = shuffled.get_x(i).to_numpy()
            self.assertEqual(x[0], 2.0 * float(shuffled.get_y(i).to_numpy()))

    def test_shuffle_is_seeded(self):
        a = ArrayDataset(self.x, self.y, ExecutionContext(ExecutionConfig(seed=3))).shuffle()
        b = ArrayDataset(self.x, self.y, ExecutionContext(ExecutionConfig(seed=3))).shuffle()
        self.assertEqual(
            [int(a.get_y(i).to_numpy()) for i in range(10)],
            [int(b.get_y(i).to_numpy()) for i in range(10)],
        )

    def test_batches(self):
        batches = list(self.ds.batch_iterator(4))
        self.assertEqual([b.size for b in batches], [4, 4, 2])
        self.assertIsInstance(batches[0], DataBatch)
        self.assertEqual(tuple(batches[0].x.shape), (4, 2))
        np.testing.assert_array_equal(batches[2].y.to_numpy(), [8, 9])

    def test_batches_drop_last(self):
        self.assertEqual([b.size for b in self.ds.batch_iterator(4, drop_last=True)], [4, 4])

    def test_batch_size_must_be_positive(self):
        with self.assertRaises(ValueError):
            list(self.ds.batch_iterator(0))

    def test_mismatched_rows(self):
        with self.assertRaises(ValueError):
            ArrayDataset(self.x, self.y[:5], self.ctx)
        with self.assertRaises(ValueError):
            ArrayDataset(np.float64(1.0), self.y, self.ctx)


if __name__ == "__main__":
    unittest.main()
