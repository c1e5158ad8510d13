"""
Tensor data backings.

- `DenseTensorData`: contiguous numpy buffer.
- `ViewTensorData`: zero-copy strided window into another backing.
- `PackedInt4TensorData` / `PackedTernaryTensorData`: bit-packed bytes.
- `VoidTensorData`: shape and dtype only.
- `TensorDataFactory`: dtype-aware construction and byte decoding.
"""

from ._dense import DenseTensorData
from ._factory import TensorData, TensorDataFactory
from ._packed import PackedInt4TensorData, PackedTensorData, PackedTernaryTensorData
from ._strided import StridedTensorData, check_array, check_value, numpy_dtype
from ._view import ViewTensorData
from ._void import VoidTensorData

__all__ = [
    "DenseTensorData",
    "PackedInt4TensorData",
    "PackedTensorData",
    "PackedTernaryTensorData",
    "StridedTensorData",
    "TensorData",
    "TensorDataFactory",
    "ViewTensorData",
    "VoidTensorData",
    "check_array",
    "check_value",
    "numpy_dtype",
]
