import unittest

from src.skainet.domain import Shape, ShapeIndexError, row_major_strides


class TestShape(unittest.TestCase):
    def test_volume_rank_and_strides(self):
        s = Shape(2, 3, 4)
        self.assertEqual(s.rank, 3)
        self.assertEqual(s.volume, 24)
        self.assertEqual(s.strides, (12, 4, 1))

    def test_scalar_shape_has_volume_one(self):
        s = Shape()
        self.assertEqual(s.rank, 0)
        self.assertEqual(s.volume, 1)

    def test_accepts_single_iterable(self):
        self.assertEqual(Shape([2, 3]), Shape(2, 3))
        self.assertEqual(Shape((2, 3)), (2, 3))

    def test_rejects_negative_dimension(self):
        with self.assertRaises(ValueError):
            Shape(2, -1)

    def test_index_is_row_major(self):
        s = Shape(2, 3, 4)
        self.assertEqual(s.index([0, 0, 0]), 0)
        self.assertEqual(s.index([1, 2, 3]), 23)
        self.assertEqual(s.index([0, 1, 0]), 4)

    def test_unravel_inverts_index(self):
        s = Shape(2, 3, 4)
        for flat in (0, 5, 17, 23):
            self.assertEqual(s.index(s.unravel(flat)), flat)

    def test_index_out_of_bounds_raises(self):
        s = Shape(2, 3)
        with self.assertRaises(ShapeIndexError):
            s.index([2, 0])
        with self.assertRaises(ShapeIndexError):
            s.index([0, -1])

    def test_index_rank_mismatch_raises(self):
        with self.assertRaises(ShapeIndexError):
            Shape(2, 3).index([1])

    def test_shape_index_error_is_index_error(self):
        with self.assertRaises(IndexError):
            Shape(4).index([4])

    def test_normalize_axis(self):
        s = Shape(2, 3, 4)
        self.assertEqual(s.normalize_axis(-1), 2)
        self.assertEqual(s.normalize_axis(0), 0)
        with self.assertRaises(ShapeIndexError):
            s.normalize_axis(3)

    def test_slicing_returns_shape(self):
        tail = Shape(2, 3, 4)[1:]
        self.assertIsInstance(tail, Shape)
        self.assertEqual(tail, (3, 4))
        self.assertEqual(Shape(2, 3, 4)[-1], 4)

    def test_hashable_and_iterable(self):
        self.assertEqual(len({Shape(2, 3), Shape([2, 3])}), 1)
        self.assertEqual(list(Shape(5, 6)), [5, 6])

    def test_row_major_strides(self):
        self.assertEqual(row_major_strides((2, 3, 4)), (12, 4, 1))
        self.assertEqual(row_major_strides(()), ())


if __name__ == "__main__":
    unittest.main()
