"""
Tensor operations capability set.

`ITensorOps` lists every numeric operation a backend must provide. Concrete
implementations (dense CPU kernels, shape-only void backend, mock, recording
wrapper) are interchangeable: a tensor is bound to one of them and dispatches
its methods to it.

Every operation returns new tensors and leaves its operands untouched.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Optional, Protocol, Sequence, Union, runtime_checkable

from ._dtype import DType

if TYPE_CHECKING:
    from ._tensor import ITensor

IntPair = Union[int, tuple[int, int]]


@runtime_checkable
class ITensorOps(Protocol):
    """
    Backend-agnostic tensor operations.

    Notes
    -----
    Binary arithmetic broadcasts its operands following numpy rules and
    requires both operands to share a dtype.
    """

    # arithmetic
    def add(self, a: "ITensor", b: "ITensor") -> "ITensor": ...

    def subtract(self, a: "ITensor", b: "ITensor") -> "ITensor": ...

    def multiply(self, a: "ITensor", b: "ITensor") -> "ITensor": ...

    def divide(self, a: "ITensor", b: "ITensor") -> "ITensor": ...

    # linear algebra / nn
    def matmul(self, a: "ITensor", b: "ITensor") -> "ITensor": ...

    def transpose(self, tensor: "ITensor") -> "ITensor": ...

    def conv2d(
        self,
        input: "ITensor",
        weight: "ITensor",
        bias: Optional["ITensor"] = None,
        stride: IntPair = 1,
        padding: IntPair = 0,
        dilation: IntPair = 1,
        groups: int = 1,
    ) -> "ITensor": ...

    def max_pool2d(
        self,
        input: "ITensor",
        kernel_size: IntPair,
        stride: Optional[IntPair] = None,
        padding: IntPair = 0,
    ) -> "ITensor": ...

    # shape
    def reshape(self, tensor: "ITensor", new_shape: Sequence[int]) -> "ITensor": ...

    def flatten(self, tensor: "ITensor", start_dim: int = 0, end_dim: int = -1) -> "ITensor": ...

    def concat(self, tensors: Sequence["ITensor"], dim: int = 0) -> "ITensor": ...

    def split(self, tensor: "ITensor", split_size: int, dim: int = 0) -> list["ITensor"]: ...

    def squeeze(self, tensor: "ITensor", dim: Optional[int] = None) -> "ITensor": ...

    def unsqueeze(self, tensor: "ITensor", dim: int) -> "ITensor": ...

    # activations
    def relu(self, tensor: "ITensor") -> "ITensor": ...

    def softmax(self, tensor: "ITensor", dim: int = -1) -> "ITensor": ...

    def sigmoid(self, tensor: "ITensor") -> "ITensor": ...

    def tanh(self, tensor: "ITensor") -> "ITensor": ...

    def silu(self, tensor: "ITensor") -> "ITensor": ...

    def gelu(self, tensor: "ITensor") -> "ITensor": ...

    # reductions and element-wise math
    def sum(self, tensor: "ITensor", dim: Optional[int] = None, keepdim: bool = False) -> "ITensor": ...

    def mean(self, tensor: "ITensor", dim: Optional[int] = None, keepdim: bool = False) -> "ITensor": ...

    def variance(
        self, tensor: "ITensor", dim: Optional[int] = None, keepdim: bool = False
    ) -> "ITensor": ...

    def sqrt(self, tensor: "ITensor") -> "ITensor": ...

    def exp(self, tensor: "ITensor") -> "ITensor": ...

    # dtype
    def convert(self, tensor: "ITensor", dtype: DType) -> "ITensor": ...


# Names of every method in the capability set, in declaration order.
TENSOR_OPS_METHODS: tuple[str, ...] = (
    "add",
    "subtract",
    "multiply",
    "divide",
    "matmul",
    "transpose",
    "conv2d",
    "max_pool2d",
    "reshape",
    "flatten",
    "concat",
    "split",
    "squeeze",
    "unsqueeze",
    "relu",
    "softmax",
    "sigmoid",
    "tanh",
    "silu",
    "gelu",
    "sum",
    "mean",
    "variance",
    "sqrt",
    "exp",
    "convert",
)
