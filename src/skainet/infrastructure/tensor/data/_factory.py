"""
Construction of tensor data for every dtype.

`TensorDataFactory` picks the right backing for a dtype (dense numpy buffer
or packed bytes) and converts between raw little-endian bytes and tensor
data. Weight loaders hand their byte arrays to `from_bytes`; the factory
does not define a file format.

Byte layouts
------------
==========  =====================================
FP32        little-endian IEEE 754 single (``<f4``)
FP16        little-endian IEEE 754 half (``<f2``)
INT32       little-endian two's complement (``<i4``)
INT8        two's complement bytes (``i1``)
INT4        packed nibbles, low nibble first
TERNARY     packed 2-bit codes, lowest bits first
==========  =====================================
"""

from __future__ import annotations

from typing import Any, Iterable, Optional, Union

import numpy as np

from ....domain._dtype import DType
from ....domain._shape import Shape
from ._dense import DenseTensorData
from ._packed import PackedInt4TensorData, PackedTensorData, PackedTernaryTensorData
from ._strided import StridedTensorData, check_array

ShapeLike = Union[Shape, Iterable[int]]
TensorData = Union[StridedTensorData, PackedTensorData]

_WIRE_DTYPES: dict[DType, str] = {
    DType.FP32: "<f4",
    DType.FP16: "<f2",
    DType.INT32: "<i4",
    DType.INT8: "i1",
}

_PACKED: dict[DType, type[PackedTensorData]] = {
    DType.INT4: PackedInt4TensorData,
    DType.TERNARY: PackedTernaryTensorData,
}


def _as_shape(shape: ShapeLike) -> Shape:
    return shape if isinstance(shape, Shape) else Shape(shape)


class TensorDataFactory:
    """
    Stateless builder of tensor data backings.
    """

    def zeros(self, shape: ShapeLike, dtype: DType) -> TensorData:
        shape = _as_shape(shape)
        if dtype.is_packed:
            return _PACKED[dtype](shape)
        return DenseTensorData(shape, dtype)

    def ones(self, shape: ShapeLike, dtype: DType) -> TensorData:
        return self.full(shape, dtype, 1)

    def full(self, shape: ShapeLike, dtype: DType, value: Union[int, float]) -> TensorData:
        shape = _as_shape(shape)
        return self.from_array(np.full(shape.dimensions, value), dtype)

    def from_array(
        self,
        values: Any,
        dtype: DType,
        shape: Optional[ShapeLike] = None,
    ) -> TensorData:
        """
        Build data from array-like values.

        The values are copied. Integer and packed dtypes reject values they
        cannot represent instead of wrapping them.

        Parameters
        ----------
        values : Any
            Nested sequences, scalars or numpy arrays.
        dtype : DType
            Target element type.
        shape : Optional[ShapeLike]
            Target shape; defaults to the shape of `values`. Must have the
            same volume as `values`.
        """
        arr = np.asarray(values)
        target = _as_shape(arr.shape if shape is None else shape)
        if arr.size != target.volume:
            raise ValueError(f"Got {arr.size} values for shape {tuple(target)}")
        if dtype.is_packed:
            return _PACKED[dtype].from_numpy(arr, target)
        check_array(arr, dtype)
        return DenseTensorData(target, dtype, np.array(arr, copy=True).reshape(-1))

    def from_bytes(self, data: bytes, dtype: DType, shape: ShapeLike) -> TensorData:
        """
        Decode little-endian bytes into tensor data.

        Raises
        ------
        ValueError
            If the byte count does not match the shape and dtype.
        """
        shape = _as_shape(shape)
        expected = shape.volume * dtype.bits // 8 if not dtype.is_packed else dtype.bytes_for(shape.volume)
        if len(data) != expected:
            raise ValueError(
                f"{dtype.name} data of shape {tuple(shape)} needs {expected} bytes, got {len(data)}"
            )
        if dtype.is_packed:
            return _PACKED[dtype](shape, np.frombuffer(data, dtype=np.uint8).copy())
        arr = np.frombuffer(data, dtype=np.dtype(_WIRE_DTYPES[dtype]))
        return DenseTensorData(shape, dtype, np.array(arr, copy=True))

    def to_bytes(self, data: TensorData) -> bytes:
        """
        Encode tensor data as little-endian bytes (inverse of `from_bytes`).
        """
        if isinstance(data, PackedTensorData):
            return data.buffer.tobytes()
        return data.to_numpy().astype(np.dtype(_WIRE_DTYPES[data.dtype]), copy=False).tobytes(order="C")

    def random_normal(
        self,
        shape: ShapeLike,
        dtype: DType,
        rng: np.random.Generator,
        mean: float = 0.0,
        std: float = 1.0,
    ) -> TensorData:
        """Sample floating data from a normal distribution."""
        if not dtype.is_floating:
            raise TypeError(f"random_normal requires a floating dtype, got {dtype.name}")
        shape = _as_shape(shape)
        return self.from_array(rng.normal(mean, std, size=shape.dimensions), dtype)

    def random_uniform(
        self,
        shape: ShapeLike,
        dtype: DType,
        rng: np.random.Generator,
        low: float = 0.0,
        high: float = 1.0,
    ) -> TensorData:
        """Sample floating data from a uniform distribution."""
        if not dtype.is_floating:
            raise TypeError(f"random_uniform requires a floating dtype, got {dtype.name}")
        shape = _as_shape(shape)
        return self.from_array(rng.uniform(low, high, size=shape.dimensions), dtype)
