"""
Tensor operation backends.

- `CpuTensorOps`: NumPy kernels.
- `VoidTensorOps`: shape and dtype inference without values.
- `MockTensorOps`: call-recording double for tests.
"""

from ._cpu_ops import CpuTensorOps
from ._mock_ops import MockCall, MockTensorOps
from ._void_ops import VoidTensorOps

__all__ = [
    "CpuTensorOps",
    "MockCall",
    "MockTensorOps",
    "VoidTensorOps",
]
