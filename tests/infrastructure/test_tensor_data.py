import unittest

import numpy as np

from src.skainet.domain import All, DType, Index, Range, ShapeIndexError, ValueRangeError
from src.skainet.infrastructure.tensor.data import (
    DenseTensorData,
    PackedInt4TensorData,
    PackedTernaryTensorData,
    TensorDataFactory,
    ViewTensorData,
    VoidTensorData,
)
from src.skainet.domain import OperationNotImplementedError


class TestDenseTensorData(unittest.TestCase):
    def test_zero_filled_by_default(self):
        data = DenseTensorData((2, 3), DType.FP32)
        self.assertEqual(data.to_numpy().shape, (2, 3))
        self.assertTrue(np.all(data.to_numpy() == 0))

    def test_get_set_round_trip(self):
        data = DenseTensorData((2, 2), DType.INT8)
        data.set(1, 0, value=-7)
        self.assertEqual(data.get(1, 0), -7)
        self.assertEqual(data.get(0, 1), 0)

    def test_set_out_of_range_raises(self):
        data = DenseTensorData((2,), DType.INT8)
        with self.assertRaises(ValueRangeError):
            data.set(0, value=200)
        with self.assertRaises(ValueRangeError):
            data.set(0, value=1.5)

    def test_get_out_of_bounds_raises(self):
        data = DenseTensorData((2, 2), DType.FP32)
        with self.assertRaises(ShapeIndexError):
            data.get(2, 0)
        with self.assertRaises(ShapeIndexError):
            data.get(0)

    def test_buffer_size_mismatch(self):
        with self.assertRaises(ValueError):
            DenseTensorData((2, 2), DType.FP32, np.zeros(3))

    def test_packed_dtype_rejected(self):
        with self.assertRaises(ValueError):
            DenseTensorData((2,), DType.INT4)

    def test_to_numpy_returns_copy(self):
        data = DenseTensorData((2,), DType.FP32, np.array([1.0, 2.0]))
        arr = data.to_numpy()
        arr[0] = 99.0
        self.assertEqual(data.get(0), 1.0)


class TestViewTensorData(unittest.TestCase):
    def setUp(self):
        self.parent = DenseTensorData((3, 4), DType.FP32, np.arange(12, dtype=np.float32))

    def test_range_and_all(self):
        view = ViewTensorData.from_slices(self.parent, [Range(1, 3), All()])
        self.assertEqual(view.shape, (2, 4))
        np.testing.assert_array_equal(view.to_numpy(), np.arange(12).reshape(3, 4)[1:3])

    def test_index_drops_axis(self):
        view = ViewTensorData.from_slices(self.parent, [All(), Index(2)])
        self.assertEqual(view.shape, (3,))
        np.testing.assert_array_equal(view.to_numpy(), [2.0, 6.0, 10.0])

    def test_stepped_range(self):
        view = ViewTensorData.from_slices(self.parent, [Index(0), Range(0, None, 2)])
        np.testing.assert_array_equal(view.to_numpy(), [0.0, 2.0])

    def test_writes_are_visible_in_parent(self):
        view = ViewTensorData.from_slices(self.parent, [Index(1), Range(1, 3)])
        view.set(0, value=-1.0)
        self.assertEqual(self.parent.get(1, 1), -1.0)
        self.parent.set(1, 2, value=42.0)
        self.assertEqual(view.get(1), 42.0)

    def test_too_many_descriptors(self):
        with self.assertRaises(ShapeIndexError):
            ViewTensorData.from_slices(self.parent, [All(), All(), All()])

    def test_out_of_bounds_descriptor(self):
        with self.assertRaises(ShapeIndexError):
            ViewTensorData.from_slices(self.parent, [Index(3)])

    def test_materialize_detaches(self):
        view = ViewTensorData.from_slices(self.parent, [Index(0)])
        copy = view.materialize()
        self.parent.set(0, 0, value=100.0)
        self.assertEqual(copy.get(0), 0.0)

    def test_permuted(self):
        view = ViewTensorData.permuted(self.parent, [1, 0])
        self.assertEqual(view.shape, (4, 3))
        np.testing.assert_array_equal(view.to_numpy(), np.arange(12).reshape(3, 4).T)


class TestPackedInt4(unittest.TestCase):
    def test_nibble_order(self):
        data = PackedInt4TensorData((2,), np.array([0x5D], dtype=np.uint8))
        # low nibble 0xD is -3, high nibble 0x5 is 5
        self.assertEqual(data.get(0), -3)
        self.assertEqual(data.get(1), 5)
        np.testing.assert_array_equal(data.to_numpy(), [-3, 5])

    def test_from_numpy_packs(self):
        data = PackedInt4TensorData.from_numpy(np.array([-3, 5, 7]))
        self.assertEqual(data.buffer.tolist(), [0x5D, 0x07])

    def test_set_preserves_neighbour(self):
        data = PackedInt4TensorData.from_numpy(np.array([1, 2, 3, 4]))
        data.set(1, value=-8)
        np.testing.assert_array_equal(data.to_numpy(), [1, -8, 3, 4])

    def test_out_of_range(self):
        with self.assertRaises(ValueRangeError):
            PackedInt4TensorData.from_numpy(np.array([8]))
        data = PackedInt4TensorData((2,))
        with self.assertRaises(ValueRangeError):
            data.set(0, value=-9)

    def test_buffer_size_checked(self):
        with self.assertRaises(ValueError):
            PackedInt4TensorData((4,), np.zeros(1, dtype=np.uint8))


class TestPackedTernary(unittest.TestCase):
    def test_codes(self):
        data = PackedTernaryTensorData.from_numpy(np.array([1, 0, -1, 1]))
        self.assertEqual(data.buffer.tolist(), [0b01100001])
        np.testing.assert_array_equal(data.to_numpy(), [1, 0, -1, 1])

    def test_partial_byte(self):
        data = PackedTernaryTensorData.from_numpy(np.array([-1, -1, 0, 1, 1]))
        self.assertEqual(data.buffer.size, 2)
        self.assertEqual(data.get(4), 1)

    def test_reserved_code_raises(self):
        data = PackedTernaryTensorData((4,), np.array([0b00000011], dtype=np.uint8))
        with self.assertRaises(ValueRangeError):
            data.get(0)
        with self.assertRaises(ValueRangeError):
            data.to_numpy()
        self.assertEqual(data.get(1), 0)

    def test_rejects_values_outside_set(self):
        with self.assertRaises(ValueRangeError):
            PackedTernaryTensorData.from_numpy(np.array([2]))

    def test_set(self):
        data = PackedTernaryTensorData((3,))
        data.set(2, value=-1)
        np.testing.assert_array_equal(data.to_numpy(), [0, 0, -1])


class TestVoidTensorData(unittest.TestCase):
    def test_shape_only(self):
        data = VoidTensorData((2, 3), DType.FP16)
        self.assertEqual(data.shape, (2, 3))
        self.assertIs(data.dtype, DType.FP16)
        with self.assertRaises(OperationNotImplementedError):
            data.get(0, 0)
        with self.assertRaises(OperationNotImplementedError):
            data.to_numpy()


class TestTensorDataFactory(unittest.TestCase):
    def setUp(self):
        self.factory = TensorDataFactory()

    def test_zeros_picks_backing(self):
        self.assertIsInstance(self.factory.zeros((3,), DType.INT4), PackedInt4TensorData)
        self.assertIsInstance(self.factory.zeros((3,), DType.TERNARY), PackedTernaryTensorData)
        self.assertIsInstance(self.factory.zeros((3,), DType.INT8), DenseTensorData)

    def test_full_and_ones(self):
        np.testing.assert_array_equal(self.factory.full((2,), DType.INT32, 7).to_numpy(), [7, 7])
        np.testing.assert_array_equal(self.factory.ones((2,), DType.INT4).to_numpy(), [1, 1])

    def test_from_array_with_shape(self):
        data = self.factory.from_array([1, 2, 3, 4], DType.FP32, (2, 2))
        self.assertEqual(data.shape, (2, 2))
        with self.assertRaises(ValueError):
            self.factory.from_array([1, 2, 3], DType.FP32, (2, 2))

    def test_from_array_range_checked(self):
        with self.assertRaises(ValueRangeError):
            self.factory.from_array([300], DType.INT8)

    def test_bytes_fp32_little_endian(self):
        raw = np.array([1.5, -2.0], dtype="<f4").tobytes()
        data = self.factory.from_bytes(raw, DType.FP32, (2,))
        np.testing.assert_array_equal(data.to_numpy(), [1.5, -2.0])
        self.assertEqual(self.factory.to_bytes(data), raw)

    def test_bytes_int4(self):
        data = self.factory.from_bytes(b"\x5d", DType.INT4, (2,))
        np.testing.assert_array_equal(data.to_numpy(), [-3, 5])
        self.assertEqual(self.factory.to_bytes(data), b"\x5d")

    def test_bytes_length_mismatch(self):
        with self.assertRaises(ValueError):
            self.factory.from_bytes(b"\x00\x00\x00", DType.FP32, (1,))
        with self.assertRaises(ValueError):
            self.factory.from_bytes(b"\x00", DType.INT4, (3,))

    def test_random_is_seeded(self):
        a = self.factory.random_normal((4,), DType.FP32, np.random.default_rng(3))
        b = self.factory.random_normal((4,), DType.FP32, np.random.default_rng(3))
        np.testing.assert_array_equal(a.to_numpy(), b.to_numpy())
        with self.assertRaises(TypeError):
            self.factory.random_uniform((2,), DType.INT8, np.random.default_rng(0))


if __name__ == "__main__":
    unittest.main()
