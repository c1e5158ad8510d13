"""
Strided numpy-backed tensor storage.

`StridedTensorData` stores elements in a flat 1-D numpy buffer and addresses
them through ``offset + sum(index[i] * strides[i])``. Dense data and views
share this addressing scheme; they differ only in how the shape, strides and
offset are derived and in who owns the buffer.
"""

from __future__ import annotations

from typing import Sequence, Union

import numpy as np

from ....domain._dtype import DType
from ....domain._errors import ShapeIndexError, ValueRangeError
from ....domain._shape import Shape

Number = Union[int, float]

_NUMPY_DTYPES: dict[DType, type] = {
    DType.FP32: np.float32,
    DType.FP16: np.float16,
    DType.INT32: np.int32,
    DType.INT8: np.int8,
    # packed types decode to int8 values
    DType.INT4: np.int8,
    DType.TERNARY: np.int8,
}


def numpy_dtype(dtype: DType) -> np.dtype:
    """
    Return the numpy element type used to hold decoded values of `dtype`.
    """
    return np.dtype(_NUMPY_DTYPES[dtype])


def check_value(value: Number, dtype: DType) -> None:
    """
    Reject scalars that `dtype` cannot represent.

    Raises
    ------
    ValueRangeError
        If an integer dtype would need to clamp, wrap or truncate `value`.
    """
    if dtype.is_floating:
        return
    if not dtype.can_represent(value):
        raise ValueRangeError(value, dtype, f"expected an integer in [{dtype.min_value}, {dtype.max_value}]")


def check_array(values: np.ndarray, dtype: DType) -> None:
    """
    Vectorized `check_value` for whole arrays.
    """
    if dtype.is_floating or values.size == 0:
        return
    arr = np.asarray(values)
    if arr.dtype.kind == "f":
        bad = ~np.isfinite(arr) | (arr != np.round(arr))
        if bad.any():
            raise ValueRangeError(arr[bad].flat[0].item(), dtype, "non-integral value")
    bad = (arr < dtype.min_value) | (arr > dtype.max_value)
    if bad.any():
        raise ValueRangeError(
            arr[bad].flat[0].item(),
            dtype,
            f"expected integers in [{dtype.min_value}, {dtype.max_value}]",
        )


class StridedTensorData:
    """
    Flat buffer addressed through shape, strides and offset.

    Parameters
    ----------
    buffer : np.ndarray
        One-dimensional backing store.
    shape : Shape
        Logical shape.
    dtype : DType
        Element type.
    strides : Sequence[int]
        Element strides, one per axis.
    offset : int
        Element offset of index ``(0, ..., 0)``.
    """

    def __init__(
        self,
        buffer: np.ndarray,
        shape: Shape,
        dtype: DType,
        strides: Sequence[int],
        offset: int,
    ) -> None:
        if buffer.ndim != 1:
            raise ValueError(f"Backing buffer must be one-dimensional, got ndim={buffer.ndim}")
        self._buffer = buffer
        self._shape = shape
        self._dtype = dtype
        self._strides = tuple(int(s) for s in strides)
        self._offset = int(offset)
        if len(self._strides) != shape.rank:
            raise ValueError(f"Expected {shape.rank} strides, got {len(self._strides)}")

    @property
    def buffer(self) -> np.ndarray:
        """The flat backing store (shared with views)."""
        return self._buffer

    @property
    def shape(self) -> Shape:
        return self._shape

    @property
    def dtype(self) -> DType:
        return self._dtype

    @property
    def strides(self) -> tuple[int, ...]:
        return self._strides

    @property
    def offset(self) -> int:
        return self._offset

    @property
    def is_contiguous(self) -> bool:
        """Whether the data occupies the buffer in canonical row-major order."""
        return self._offset == 0 and self._strides == self._shape.strides

    def _flat_index(self, indices: Sequence[int]) -> int:
        dims = self._shape.dimensions
        if len(indices) != len(dims):
            raise ShapeIndexError(tuple(indices), dims, bound=len(dims))
        flat = self._offset
        for axis, (i, dim, stride) in enumerate(zip(indices, dims, self._strides)):
            if not 0 <= i < dim:
                raise ShapeIndexError(i, dims, axis=axis, bound=dim)
            flat += i * stride
        return flat

    def get(self, *indices: int) -> Number:
        """
        Read one element.

        Raises
        ------
        ShapeIndexError
            On rank mismatch or an out-of-range index.
        """
        return self._buffer[self._flat_index(indices)].item()

    def set(self, *indices: int, value: Number) -> None:
        """
        Write one element in place.

        Raises
        ------
        ShapeIndexError
            On rank mismatch or an out-of-range index.
        ValueRangeError
            If an integer dtype cannot represent `value`.
        """
        flat = self._flat_index(indices)
        check_value(value, self._dtype)
        self._buffer[flat] = value

    def to_numpy(self) -> np.ndarray:
        """
        Gather the addressed elements into a new C-contiguous array.
        """
        dims = self._shape.dimensions
        if self._shape.volume == 0:
            return np.empty(dims, dtype=self._buffer.dtype)
        itemsize = self._buffer.itemsize
        strided = np.lib.stride_tricks.as_strided(
            self._buffer[self._offset :],
            shape=dims,
            strides=tuple(s * itemsize for s in self._strides),
            writeable=False,
        )
        return np.array(strided, copy=True, order="C")

    def materialize(self) -> "StridedTensorData":
        """
        Copy the addressed elements into new dense data.
        """
        from ._dense import DenseTensorData

        return DenseTensorData(self._shape, self._dtype, self.to_numpy().reshape(-1))

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}(shape={tuple(self._shape)}, dtype={self._dtype.name}, "
            f"strides={self._strides}, offset={self._offset})"
        )
