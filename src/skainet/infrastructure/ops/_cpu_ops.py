"""
Dense CPU tensor operations (NumPy backend).

`CpuTensorOps` implements the full `ITensorOps` capability set on top of
NumPy. Each operation gathers its operands into fresh arrays, computes, and
wraps the result into new dense (or packed) tensor data, so operands are
never modified.

Numeric policy
--------------
- Binary operations broadcast with numpy rules and require equal dtypes;
  mixed dtypes must be converted explicitly with `convert`.
- Integer dtypes are computed in int64 and range-checked before storing;
  values that do not fit raise `ValueRangeError` instead of wrapping.
- Integer division floors and rejects zero divisors.
- Transcendental operations (softmax, sigmoid, tanh, silu, gelu, mean,
  variance, sqrt, exp) require a floating dtype.
"""

from __future__ import annotations

import math
import warnings
from typing import Optional, Sequence

import numpy as np

from ...domain._dtype import DType
from ...domain._errors import DTypeConversionError, DTypeMismatchError
from ..tensor._tensor import Tensor
from ..tensor.data import TensorDataFactory
from . import _shape_inference as shapes
from .conv2d_cpu import conv2d_forward_cpu
from .pool2d_cpu import maxpool2d_forward_cpu

_GELU_C = math.sqrt(2.0 / math.pi)


def stable_sigmoid(x: np.ndarray) -> np.ndarray:
    """Overflow-free logistic function."""
    out = np.empty_like(x)
    pos = x >= 0
    out[pos] = 1.0 / (1.0 + np.exp(-x[pos]))
    e = np.exp(x[~pos])
    out[~pos] = e / (1.0 + e)
    return out


def softmax_values(x: np.ndarray, axis: int) -> np.ndarray:
    shifted = x - np.max(x, axis=axis, keepdims=True)
    e = np.exp(shifted)
    return e / np.sum(e, axis=axis, keepdims=True)


class CpuTensorOps:
    """
    NumPy implementation of the tensor operations capability set.

    Parameters
    ----------
    factory : Optional[TensorDataFactory]
        Builder used for result storage. A default factory is created when
        omitted.
    """

    backend = "cpu"

    def __init__(self, factory: Optional[TensorDataFactory] = None) -> None:
        self._factory = factory or TensorDataFactory()

    # ------------------------------------------------------------------
    # helpers
    # ------------------------------------------------------------------
    def _wrap(self, values: np.ndarray, dtype: DType) -> Tensor:
        return Tensor(self._factory.from_array(values, dtype), self)

    @staticmethod
    def _values(t: Tensor) -> np.ndarray:
        arr = t.to_numpy()
        return arr if t.dtype.is_floating else arr.astype(np.int64)

    @staticmethod
    def _same_dtype(op: str, *tensors: Tensor) -> DType:
        dtypes = {t.dtype for t in tensors}
        if len(dtypes) != 1:
            raise DTypeMismatchError(op, [t.dtype for t in tensors])
        return tensors[0].dtype

    @staticmethod
    def _require_float(op: str, t: Tensor) -> None:
        if not t.dtype.is_floating:
            raise TypeError(f"{op} requires a floating dtype, got {t.dtype.name}")

    def _binary(self, op: str, a: Tensor, b: Tensor, fn) -> Tensor:
        dtype = self._same_dtype(op, a, b)
        shapes.broadcast_shapes(op, tuple(a.shape), tuple(b.shape))
        return self._wrap(fn(self._values(a), self._values(b)), dtype)

    def _float_unary(self, op: str, t: Tensor, fn) -> Tensor:
        self._require_float(op, t)
        with np.errstate(over="ignore"):
            return self._wrap(fn(t.to_numpy()), t.dtype)

    # ------------------------------------------------------------------
    # arithmetic
    # ------------------------------------------------------------------
    def add(self, a: Tensor, b: Tensor) -> Tensor:
        return self._binary("add", a, b, np.add)

    def subtract(self, a: Tensor, b: Tensor) -> Tensor:
        return self._binary("subtract", a, b, np.subtract)

    def multiply(self, a: Tensor, b: Tensor) -> Tensor:
        return self._binary("multiply", a, b, np.multiply)

    def divide(self, a: Tensor, b: Tensor) -> Tensor:
        if a.dtype.is_floating:
            with np.errstate(divide="ignore", invalid="ignore"):
                return self._binary("divide", a, b, np.true_divide)

        def _floor_div(x: np.ndarray, y: np.ndarray) -> np.ndarray:
            if np.any(y == 0):
                raise ZeroDivisionError("integer division by zero")
            return np.floor_divide(x, y)

        return self._binary("divide", a, b, _floor_div)

    # ------------------------------------------------------------------
    # linear algebra / nn
    # ------------------------------------------------------------------
    def matmul(self, a: Tensor, b: Tensor) -> Tensor:
        dtype = self._same_dtype("matmul", a, b)
        shapes.matmul_shape(tuple(a.shape), tuple(b.shape))
        return self._wrap(np.matmul(self._values(a), self._values(b)), dtype)

    def transpose(self, tensor: Tensor) -> Tensor:
        values = tensor.to_numpy()
        if values.ndim >= 2:
            values = np.swapaxes(values, -1, -2)
        return self._wrap(values, tensor.dtype)

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
        y = conv2d_forward_cpu(
            self._values(input),
            self._values(weight),
            None if bias is None else self._values(bias),
            stride,
            padding,
            dilation,
            groups,
        )
        return self._wrap(y, dtype)

    def max_pool2d(self, input: Tensor, kernel_size, stride=None, padding=0) -> Tensor:
        y, _ = maxpool2d_forward_cpu(self._values(input), kernel_size, stride, padding)
        return self._wrap(y, input.dtype)

    # ------------------------------------------------------------------
    # shape
    # ------------------------------------------------------------------
    def reshape(self, tensor: Tensor, new_shape: Sequence[int]) -> Tensor:
        target = shapes.reshape_shape(tuple(tensor.shape), new_shape)
        return self._wrap(tensor.to_numpy().reshape(target), tensor.dtype)

    def flatten(self, tensor: Tensor, start_dim: int = 0, end_dim: int = -1) -> Tensor:
        target = shapes.flatten_shape(tuple(tensor.shape), start_dim, end_dim)
        return self._wrap(tensor.to_numpy().reshape(target), tensor.dtype)

    def concat(self, tensors: Sequence[Tensor], dim: int = 0) -> Tensor:
        dtype = self._same_dtype("concat", *tensors)
        shapes.concat_shape([tuple(t.shape) for t in tensors], dim)
        return self._wrap(np.concatenate([t.to_numpy() for t in tensors], axis=dim), dtype)

    def split(self, tensor: Tensor, split_size: int, dim: int = 0) -> list[Tensor]:
        pieces = shapes.split_shapes(tuple(tensor.shape), split_size, dim)
        axis = shapes.normalize_dim(dim, tensor.rank, "split")
        values = tensor.to_numpy()
        out = []
        start = 0
        for piece in pieces:
            stop = start + piece[axis]
            index = [slice(None)] * tensor.rank
            index[axis] = slice(start, stop)
            out.append(self._wrap(values[tuple(index)], tensor.dtype))
            start = stop
        return out

    def squeeze(self, tensor: Tensor, dim: Optional[int] = None) -> Tensor:
        target = shapes.squeeze_shape(tuple(tensor.shape), dim)
        return self._wrap(tensor.to_numpy().reshape(target), tensor.dtype)

    def unsqueeze(self, tensor: Tensor, dim: int) -> Tensor:
        target = shapes.unsqueeze_shape(tuple(tensor.shape), dim)
        return self._wrap(tensor.to_numpy().reshape(target), tensor.dtype)

    # ------------------------------------------------------------------
    # activations
    # ------------------------------------------------------------------
    def relu(self, tensor: Tensor) -> Tensor:
        values = tensor.to_numpy()
        return self._wrap(np.maximum(values, np.zeros((), dtype=values.dtype)), tensor.dtype)

    def softmax(self, tensor: Tensor, dim: int = -1) -> Tensor:
        axis = shapes.normalize_dim(dim, tensor.rank, "softmax")
        return self._float_unary("softmax", tensor, lambda x: softmax_values(x, axis))

    def sigmoid(self, tensor: Tensor) -> Tensor:
        return self._float_unary("sigmoid", tensor, stable_sigmoid)

    def tanh(self, tensor: Tensor) -> Tensor:
        return self._float_unary("tanh", tensor, np.tanh)

    def silu(self, tensor: Tensor) -> Tensor:
        return self._float_unary("silu", tensor, lambda x: x * stable_sigmoid(x))

    def gelu(self, tensor: Tensor) -> Tensor:
        # tanh approximation
        return self._float_unary(
            "gelu",
            tensor,
            lambda x: 0.5 * x * (1.0 + np.tanh(_GELU_C * (x + 0.044715 * x**3))),
        )

    # ------------------------------------------------------------------
    # reductions / element-wise math
    # ------------------------------------------------------------------
    def sum(self, tensor: Tensor, dim: Optional[int] = None, keepdim: bool = False) -> Tensor:
        shapes.reduce_shape(tuple(tensor.shape), dim, keepdim)
        values = np.sum(self._values(tensor), axis=dim, keepdims=keepdim)
        return self._wrap(np.asarray(values), tensor.dtype)

    def mean(self, tensor: Tensor, dim: Optional[int] = None, keepdim: bool = False) -> Tensor:
        shapes.reduce_shape(tuple(tensor.shape), dim, keepdim)
        return self._float_unary(
            "mean", tensor, lambda x: np.asarray(np.mean(x, axis=dim, keepdims=keepdim))
        )

    def variance(self, tensor: Tensor, dim: Optional[int] = None, keepdim: bool = False) -> Tensor:
        """Population variance (no Bessel correction)."""
        shapes.reduce_shape(tuple(tensor.shape), dim, keepdim)
        return self._float_unary(
            "variance", tensor, lambda x: np.asarray(np.var(x, axis=dim, keepdims=keepdim))
        )

    def sqrt(self, tensor: Tensor) -> Tensor:
        with np.errstate(invalid="ignore"):
            return self._float_unary("sqrt", tensor, np.sqrt)

    def exp(self, tensor: Tensor) -> Tensor:
        return self._float_unary("exp", tensor, np.exp)

    # ------------------------------------------------------------------
    # dtype
    # ------------------------------------------------------------------
    def convert(self, tensor: Tensor, dtype: DType) -> Tensor:
        """
        Convert to `dtype` following the conversion table.

        Floating values are rounded to the nearest integer when converting
        to an integer dtype; values outside the target range raise
        `ValueRangeError`.

        Raises
        ------
        DTypeConversionError
            If the pair is not in the conversion table.
        """
        source = tensor.dtype
        if not source.is_convertible_to(dtype):
            raise DTypeConversionError(source, dtype)
        values = tensor.to_numpy()
        if source.is_floating and not dtype.is_floating:
            values = np.rint(values)
        if dtype is DType.FP16 and source is not DType.FP16:
            narrowed = values.astype(np.float16)
            overflow = np.isinf(narrowed) & np.isfinite(values)
            if overflow.any():
                warnings.warn(
                    f"{int(overflow.sum())} value(s) overflowed to inf converting "
                    f"{source.name} to FP16",
                    RuntimeWarning,
                    stacklevel=2,
                )
            values = narrowed
        return self._wrap(values, dtype)
