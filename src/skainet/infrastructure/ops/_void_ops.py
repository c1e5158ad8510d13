"""
Shape-only tensor operations.

`VoidTensorOps` computes output shapes and dtypes with the same rules as the
CPU kernels but never touches values. Results carry `VoidTensorData`, whose
element access raises `OperationNotImplementedError`. This backend is useful
for tracing network structure and validating shapes without allocating
storage.
"""

from __future__ import annotations

from typing import Optional, Sequence

from ...domain._dtype import DType
from ...domain._errors import DTypeConversionError, DTypeMismatchError
from ..tensor._tensor import Tensor
from ..tensor.data import VoidTensorData
from . import _shape_inference as shapes


class VoidTensorOps:
    """
    Operations backend that only propagates shapes and dtypes.
    """

    backend = "void"

    def empty(self, shape: Sequence[int], dtype: DType = DType.FP32) -> Tensor:
        """Create a value-less tensor bound to this backend."""
        return Tensor(VoidTensorData(shape, dtype), self)

    def _out(self, shape: Sequence[int], dtype: DType) -> Tensor:
        return Tensor(VoidTensorData(shape, dtype), self)

    @staticmethod
    def _same_dtype(op: str, *tensors: Tensor) -> DType:
        if len({t.dtype for t in tensors}) != 1:
            raise DTypeMismatchError(op, [t.dtype for t in tensors])
        return tensors[0].dtype

    @staticmethod
    def _require_float(op: str, t: Tensor) -> None:
        if not t.dtype.is_floating:
            raise TypeError(f"{op} requires a floating dtype, got {t.dtype.name}")

    def _binary(self, op: str, a: Tensor, b: Tensor) -> Tensor:
        dtype = self._same_dtype(op, a, b)
        return self._out(shapes.broadcast_shapes(op, tuple(a.shape), tuple(b.shape)), dtype)

    def add(self, a: Tensor, b: Tensor) -> Tensor:
        return self._binary("add", a, b)

    def subtract(self, a: Tensor, b: Tensor) -> Tensor:
        return self._binary("subtract", a, b)

    def multiply(self, a: Tensor, b: Tensor) -> Tensor:
        return self._binary("multiply", a, b)

    def divide(self, a: Tensor, b: Tensor) -> Tensor:
        return self._binary("divide", a, b)

    def matmul(self, a: Tensor, b: Tensor) -> Tensor:
        dtype = self._same_dtype("matmul", a, b)
        return self._out(shapes.matmul_shape(tuple(a.shape), tuple(b.shape)), dtype)

    def transpose(self, tensor: Tensor) -> Tensor:
        return self._out(shapes.transpose_shape(tuple(tensor.shape)), tensor.dtype)

    def conv2d(
        self,
        input: Tensor,
        weight: Tensor,
        bias: Optional[Tensor] = None,
        stride=1,
        padding=0,
        dilation=1,
        groups: int = 1,
    ) -> Tensor:
        operands = (input, weight) if bias is None else (input, weight, bias)
        dtype = self._same_dtype("conv2d", *operands)
        out = shapes.conv2d_shape(
            tuple(input.shape), tuple(weight.shape), stride, padding, dilation, groups
        )
        return self._out(out, dtype)

    def max_pool2d(self, input: Tensor, kernel_size, stride=None, padding=0) -> Tensor:
        return self._out(
            shapes.pool2d_shape(tuple(input.shape), kernel_size, stride, padding), input.dtype
        )

    def reshape(self, tensor: Tensor, new_shape: Sequence[int]) -> Tensor:
        return self._out(shapes.reshape_shape(tuple(tensor.shape), new_shape), tensor.dtype)

    def flatten(self, tensor: Tensor, start_dim: int = 0, end_dim: int = -1) -> Tensor:
        return self._out(
            shapes.flatten_shape(tuple(tensor.shape), start_dim, end_dim), tensor.dtype
        )

    def concat(self, tensors: Sequence[Tensor], dim: int = 0) -> Tensor:
        dtype = self._same_dtype("concat", *tensors)
        return self._out(shapes.concat_shape([tuple(t.shape) for t in tensors], dim), dtype)

    def split(self, tensor: Tensor, split_size: int, dim: int = 0) -> list[Tensor]:
        return [
            self._out(s, tensor.dtype)
            for s in shapes.split_shapes(tuple(tensor.shape), split_size, dim)
        ]

    def squeeze(self, tensor: Tensor, dim: Optional[int] = None) -> Tensor:
        return self._out(shapes.squeeze_shape(tuple(tensor.shape), dim), tensor.dtype)

    def unsqueeze(self, tensor: Tensor, dim: int) -> Tensor:
        return self._out(shapes.unsqueeze_shape(tuple(tensor.shape), dim), tensor.dtype)

    def _same(self, tensor: Tensor) -> Tensor:
        return self._out(tuple(tensor.shape), tensor.dtype)

    def _float_same(self, op: str, tensor: Tensor) -> Tensor:
        self._require_float(op, tensor)
        return self._same(tensor)

    def relu(self, tensor: Tensor) -> Tensor:
        return self._same(tensor)

    def softmax(self, tensor: Tensor, dim: int = -1) -> Tensor:
        shapes.normalize_dim(dim, tensor.rank, "softmax")
        return self._float_same("softmax", tensor)

    def sigmoid(self, tensor: Tensor) -> Tensor:
        return self._float_same("sigmoid", tensor)

    def tanh(self, tensor: Tensor) -> Tensor:
        return self._float_same("tanh", tensor)

    def silu(self, tensor: Tensor) -> Tensor:
        return self._float_same("silu", tensor)

    def gelu(self, tensor: Tensor) -> Tensor:
        return self._float_same("gelu", tensor)

    def sum(self, tensor: Tensor, dim: Optional[int] = None, keepdim: bool = False) -> Tensor:
        return self._out(shapes.reduce_shape(tuple(tensor.shape), dim, keepdim), tensor.dtype)

    def mean(self, tensor: Tensor, dim: Optional[int] = None, keepdim: bool = False) -> Tensor:
        self._require_float("mean", tensor)
        return self._out(shapes.reduce_shape(tuple(tensor.shape), dim, keepdim), tensor.dtype)

    def variance(self, tensor: Tensor, dim: Optional[int] = None, keepdim: bool = False) -> Tensor:
        self._require_float("variance", tensor)
        return self._out(shapes.reduce_shape(tuple(tensor.shape), dim, keepdim), tensor.dtype)

    def sqrt(self, tensor: Tensor) -> Tensor:
        return self._float_same("sqrt", tensor)

    def exp(self, tensor: Tensor) -> Tensor:
        return self._float_same("exp", tensor)

    def convert(self, tensor: Tensor, dtype: DType) -> Tensor:
        if not tensor.dtype.is_convertible_to(dtype):
            raise DTypeConversionError(tensor.dtype, dtype)
        return self._out(tuple(tensor.shape), dtype)
