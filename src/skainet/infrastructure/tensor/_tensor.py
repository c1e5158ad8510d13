"""
Concrete Tensor implementation.

A `Tensor` is the composition of exactly one tensor data backing and exactly
one operations binding. Arithmetic and every other numeric method are plain
method calls forwarded to the bound ops object, so dispatch does not depend
on any ambient scope; Python operators (``+``, ``-``, ``*``, ``/``, ``@``)
are aliases of the corresponding methods.

Design notes
------------
- Public operations return new tensors and never modify their operands.
- Tensors hash and compare by identity so they can key gradient maps and
  tape bookkeeping.
- `slice` returns a view tensor sharing storage with this tensor; writes
  through either are visible in both.
"""

from __future__ import annotations

from typing import Any, Optional, Sequence, Union

import numpy as np

from ...domain._dtype import DType
from ...domain._shape import Shape
from ...domain._tensor import ITensor, ITensorData
from ...domain._tensor_ops import ITensorOps
from .data import StridedTensorData, TensorDataFactory, ViewTensorData

Number = Union[int, float]
Operand = Union["Tensor", Number]

_FACTORY = TensorDataFactory()


class Tensor(ITensor):
    """
    Tensor bound to a data backing and an operations implementation.

    Parameters
    ----------
    data : ITensorData
        Storage of the tensor's values.
    ops : ITensorOps
        Operations binding that computes on this tensor.
    requires_grad : bool, optional
        Whether gradient tapes treat this tensor as watched. Defaults to False.
    name : Optional[str], optional
        Optional label used in traces and reprs.
    """

    def __init__(
        self,
        data: ITensorData,
        ops: ITensorOps,
        *,
        requires_grad: bool = False,
        name: Optional[str] = None,
    ) -> None:
        self._data = data
        self._ops = ops
        self._requires_grad = bool(requires_grad)
        self._name = name

    # ------------------------------------------------------------------
    # Identity / metadata
    # ------------------------------------------------------------------
    @property
    def data(self) -> ITensorData:
        return self._data

    @property
    def ops(self) -> ITensorOps:
        return self._ops

    @property
    def shape(self) -> Shape:
        return self._data.shape

    @property
    def dtype(self) -> DType:
        return self._data.dtype

    @property
    def rank(self) -> int:
        return self._data.shape.rank

    @property
    def volume(self) -> int:
        return self._data.shape.volume

    @property
    def requires_grad(self) -> bool:
        return self._requires_grad

    @requires_grad.setter
    def requires_grad(self, value: bool) -> None:
        self._requires_grad = bool(value)

    @property
    def name(self) -> Optional[str]:
        return self._name

    def with_ops(self, ops: ITensorOps) -> "Tensor":
        """Return a tensor sharing this data but bound to `ops`."""
        return Tensor(self._data, ops, requires_grad=self._requires_grad, name=self._name)

    # ------------------------------------------------------------------
    # Element access / conversion
    # ------------------------------------------------------------------
    def __getitem__(self, indices: Union[int, tuple[int, ...]]) -> Number:
        if not isinstance(indices, tuple):
            indices = (indices,)
        return self._data.get(*indices)

    def to_numpy(self) -> np.ndarray:
        """Return the values as a newly allocated numpy array."""
        return self._data.to_numpy()

    def tolist(self) -> Any:
        return self.to_numpy().tolist()

    def item(self) -> Number:
        """Return the single value of a one-element tensor."""
        if self.volume != 1:
            raise ValueError(f"item() requires a one-element tensor, got shape {tuple(self.shape)}")
        return self.to_numpy().reshape(-1)[0].item()

    def slice(self, *descriptors: Any) -> "Tensor":
        """
        Return a zero-copy view tensor.

        Parameters
        ----------
        *descriptors
            One `All` / `Range` / `Index` (or Python ``slice`` / ``int``) per
            leading axis.
        """
        if not isinstance(self._data, StridedTensorData):
            raise TypeError(f"{type(self._data).__name__} does not support views")
        return Tensor(ViewTensorData.from_slices(self._data, descriptors), self._ops)

    def materialize(self) -> "Tensor":
        """Return a tensor owning an independent copy of the values."""
        return Tensor(self._data.materialize(), self._ops, requires_grad=self._requires_grad)

    def _lift(self, other: Operand) -> "Tensor":
        if isinstance(other, Tensor):
            return other
        return Tensor(_FACTORY.from_array(other, self.dtype), self._ops)

    # ------------------------------------------------------------------
    # Arithmetic
    # ------------------------------------------------------------------
    def add(self, other: Operand) -> "Tensor":
        return self._ops.add(self, self._lift(other))

    def subtract(self, other: Operand) -> "Tensor":
        return self._ops.subtract(self, self._lift(other))

    def multiply(self, other: Operand) -> "Tensor":
        return self._ops.multiply(self, self._lift(other))

    def divide(self, other: Operand) -> "Tensor":
        return self._ops.divide(self, self._lift(other))

    def matmul(self, other: "Tensor") -> "Tensor":
        return self._ops.matmul(self, other)

    __add__ = add
    __sub__ = subtract
    __mul__ = multiply
    __truediv__ = divide
    __matmul__ = matmul

    def __radd__(self, other: Number) -> "Tensor":
        return self._ops.add(self._lift(other), self)

    def __rsub__(self, other: Number) -> "Tensor":
        return self._ops.subtract(self._lift(other), self)

    def __rmul__(self, other: Number) -> "Tensor":
        return self._ops.multiply(self._lift(other), self)

    def __rtruediv__(self, other: Number) -> "Tensor":
        return self._ops.divide(self._lift(other), self)

    # ------------------------------------------------------------------
    # Linear algebra / nn
    # ------------------------------------------------------------------
    def transpose(self) -> "Tensor":
        return self._ops.transpose(self)

    def t(self) -> "Tensor":
        """Alias of `transpose`."""
        return self._ops.transpose(self)

    def conv2d(self, weight: "Tensor", bias: Optional["Tensor"] = None, **kwargs: Any) -> "Tensor":
        return self._ops.conv2d(self, weight, bias, **kwargs)

    def max_pool2d(self, kernel_size: Any, stride: Any = None, padding: Any = 0) -> "Tensor":
        return self._ops.max_pool2d(self, kernel_size, stride, padding)

    # ------------------------------------------------------------------
    # Shape
    # ------------------------------------------------------------------
    def reshape(self, *new_shape: Any) -> "Tensor":
        if len(new_shape) == 1 and isinstance(new_shape[0], (tuple, list, Shape)):
            new_shape = tuple(new_shape[0])
        return self._ops.reshape(self, new_shape)

    def flatten(self, start_dim: int = 0, end_dim: int = -1) -> "Tensor":
        return self._ops.flatten(self, start_dim, end_dim)

    def split(self, split_size: int, dim: int = 0) -> list["Tensor"]:
        return self._ops.split(self, split_size, dim)

    def squeeze(self, dim: Optional[int] = None) -> "Tensor":
        return self._ops.squeeze(self, dim)

    def unsqueeze(self, dim: int) -> "Tensor":
        return self._ops.unsqueeze(self, dim)

    # ------------------------------------------------------------------
    # Activations
    # ------------------------------------------------------------------
    def relu(self) -> "Tensor":
        return self._ops.relu(self)

    def softmax(self, dim: int = -1) -> "Tensor":
        return self._ops.softmax(self, dim)

    def sigmoid(self) -> "Tensor":
        return self._ops.sigmoid(self)

    def tanh(self) -> "Tensor":
        return self._ops.tanh(self)

    def silu(self) -> "Tensor":
        return self._ops.silu(self)

    def gelu(self) -> "Tensor":
        return self._ops.gelu(self)

    # ------------------------------------------------------------------
    # Reductions / element-wise math / dtype
    # ------------------------------------------------------------------
    def sum(self, dim: Optional[int] = None, keepdim: bool = False) -> "Tensor":
        return self._ops.sum(self, dim, keepdim)

    def mean(self, dim: Optional[int] = None, keepdim: bool = False) -> "Tensor":
        return self._ops.mean(self, dim, keepdim)

    def variance(self, dim: Optional[int] = None, keepdim: bool = False) -> "Tensor":
        return self._ops.variance(self, dim, keepdim)

    def sqrt(self) -> "Tensor":
        return self._ops.sqrt(self)

    def exp(self) -> "Tensor":
        return self._ops.exp(self)

    def convert(self, dtype: DType) -> "Tensor":
        return self._ops.convert(self, dtype)

    # ------------------------------------------------------------------
    # Identity semantics
    # ------------------------------------------------------------------
    __hash__ = object.__hash__

    def __eq__(self, other: object) -> bool:
        return self is other

    def __len__(self) -> int:
        if self.rank == 0:
            raise TypeError("len() of a 0-d tensor")
        return self.shape[0]

    __iter__ = None

    def __repr__(self) -> str:
        label = f", name={self._name!r}" if self._name else ""
        return (
            f"Tensor(shape={tuple(self.shape)}, dtype={self.dtype.name}, "
            f"ops={type(self._ops).__name__}{label})"
        )


def concat(tensors: Sequence[Tensor], dim: int = 0) -> Tensor:
    """
    Concatenate tensors along `dim` using the first tensor's ops binding.
    """
    if not tensors:
        raise ValueError("concat requires at least one tensor")
    return tensors[0].ops.concat(list(tensors), dim)
