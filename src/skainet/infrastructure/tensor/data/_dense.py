"""
Dense tensor storage.

Dense data owns a contiguous buffer holding exactly ``shape.volume``
elements at offset 0 with canonical row-major strides.
"""

from __future__ import annotations

from typing import Iterable, Optional, Union

import numpy as np

from ....domain._dtype import DType
from ....domain._shape import Shape
from ._strided import StridedTensorData, check_array, numpy_dtype


class DenseTensorData(StridedTensorData):
    """
    Contiguous row-major tensor storage.

    Parameters
    ----------
    shape : Shape | Iterable[int]
        Logical shape.
    dtype : DType
        Element type. Packed dtypes use their own backings.
    buffer : Optional[np.ndarray]
        Flat values to adopt (converted to the dtype's numpy type). When
        omitted, a zero-filled buffer is allocated.

    Raises
    ------
    ValueError
        If `buffer` does not hold exactly ``shape.volume`` elements.
    """

    def __init__(
        self,
        shape: Union[Shape, Iterable[int]],
        dtype: DType,
        buffer: Optional[np.ndarray] = None,
    ) -> None:
        if dtype.is_packed:
            raise ValueError(f"{dtype.name} data must use a packed backing")
        shape = shape if isinstance(shape, Shape) else Shape(shape)
        np_dtype = numpy_dtype(dtype)
        if buffer is None:
            buffer = np.zeros(shape.volume, dtype=np_dtype)
        else:
            buffer = np.asarray(buffer).reshape(-1)
            if buffer.size != shape.volume:
                raise ValueError(
                    f"Buffer holds {buffer.size} elements but shape {tuple(shape)} "
                    f"needs {shape.volume}"
                )
            check_array(buffer, dtype)
            buffer = buffer.astype(np_dtype, copy=False)
        super().__init__(buffer, shape, dtype, shape.strides, 0)

    def materialize(self) -> "DenseTensorData":
        return DenseTensorData(self._shape, self._dtype, self._buffer.copy())

    def to_numpy(self) -> np.ndarray:
        return self._buffer.reshape(self._shape.dimensions).copy()
