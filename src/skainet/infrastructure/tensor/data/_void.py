"""
Shape-only tensor storage used by the void backend.
"""

from __future__ import annotations

from typing import Iterable, Union

from ....domain._dtype import DType
from ....domain._errors import OperationNotImplementedError
from ....domain._shape import Shape


class VoidTensorData:
    """
    Tensor data that carries a shape and dtype but no values.

    Any value access raises `OperationNotImplementedError`.
    """

    def __init__(self, shape: Union[Shape, Iterable[int]], dtype: DType) -> None:
        self._shape = shape if isinstance(shape, Shape) else Shape(shape)
        self._dtype = dtype

    @property
    def shape(self) -> Shape:
        return self._shape

    @property
    def dtype(self) -> DType:
        return self._dtype

    @property
    def strides(self) -> tuple[int, ...]:
        return self._shape.strides

    @property
    def offset(self) -> int:
        return 0

    def get(self, *indices: int):
        raise OperationNotImplementedError("get", "void", "void data holds no values")

    def set(self, *indices: int, value) -> None:
        raise OperationNotImplementedError("set", "void", "void data holds no values")

    def to_numpy(self):
        raise OperationNotImplementedError("to_numpy", "void", "void data holds no values")

    def materialize(self) -> "VoidTensorData":
        return self

    def __repr__(self) -> str:
        return f"VoidTensorData(shape={tuple(self._shape)}, dtype={self._dtype.name})"
