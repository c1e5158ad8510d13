"""
Tape-recording tensor operations.

`RecordingTensorOps` wraps another ops implementation. Every call is
computed by the wrapped backend; results are rebound to the recording ops
(so chained calls keep recording) and the call is recorded as an operation
value into every recording tape of a `TapeStack`.

When no tape is recording, calls cost only the forwarding.
"""

from __future__ import annotations

from typing import Any, Optional, Sequence

from ...domain._dtype import DType
from ...domain._operation import IOperation
from ...domain._tensor_ops import ITensorOps
from ..tensor._tensor import Tensor
from . import _operations as ops
from ._tape import TapeStack


class RecordingTensorOps:
    """
    Parameters
    ----------
    base : ITensorOps
        Backend that computes the values.
    tape_stack : TapeStack
        Stack whose recording tapes receive the operations.
    """

    def __init__(self, base: ITensorOps, tape_stack: TapeStack) -> None:
        self._base = base
        self._stack = tape_stack

    @property
    def base(self) -> ITensorOps:
        return self._base

    @property
    def tape_stack(self) -> TapeStack:
        return self._stack

    @property
    def backend(self) -> str:
        return f"recording({getattr(self._base, 'backend', type(self._base).__name__)})"

    def _bind(self, tensor: Tensor) -> Tensor:
        return tensor if tensor.ops is self else tensor.with_ops(self)

    def _run(self, operation: IOperation, inputs: Sequence[Tensor], result: Any) -> Any:
        if isinstance(result, list):
            outputs = [self._bind(t) for t in result]
        else:
            outputs = [self._bind(result)]
        if self._stack.is_recording:
            self._stack.record(operation, list(inputs), outputs)
        return outputs if isinstance(result, list) else outputs[0]

    # arithmetic
    def add(self, a: Tensor, b: Tensor) -> Tensor:
        return self._run(ops.AddOperation(), (a, b), self._base.add(a, b))

    def subtract(self, a: Tensor, b: Tensor) -> Tensor:
        return self._run(ops.SubtractOperation(), (a, b), self._base.subtract(a, b))

    def multiply(self, a: Tensor, b: Tensor) -> Tensor:
        return self._run(ops.MultiplyOperation(), (a, b), self._base.multiply(a, b))

    def divide(self, a: Tensor, b: Tensor) -> Tensor:
        return self._run(ops.DivideOperation(), (a, b), self._base.divide(a, b))

    # linear algebra / nn
    def matmul(self, a: Tensor, b: Tensor) -> Tensor:
        return self._run(ops.MatMulOperation(), (a, b), self._base.matmul(a, b))

    def transpose(self, tensor: Tensor) -> Tensor:
        return self._run(ops.TransposeOperation(), (tensor,), self._base.transpose(tensor))

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
        operation = ops.Conv2dOperation(
            stride=stride, padding=padding, dilation=dilation, groups=groups
        )
        operands = (input, weight) if bias is None else (input, weight, bias)
        result = self._base.conv2d(input, weight, bias, stride, padding, dilation, groups)
        return self._run(operation, operands, result)

    def max_pool2d(self, input: Tensor, kernel_size, stride=None, padding=0) -> Tensor:
        operation = ops.MaxPool2dOperation(kernel_size=kernel_size, stride=stride, padding=padding)
        return self._run(
            operation, (input,), self._base.max_pool2d(input, kernel_size, stride, padding)
        )

    # shape
    def reshape(self, tensor: Tensor, new_shape: Sequence[int]) -> Tensor:
        operation = ops.ReshapeOperation(new_shape=tuple(new_shape))
        return self._run(operation, (tensor,), self._base.reshape(tensor, new_shape))

    def flatten(self, tensor: Tensor, start_dim: int = 0, end_dim: int = -1) -> Tensor:
        operation = ops.FlattenOperation(start_dim=start_dim, end_dim=end_dim)
        return self._run(operation, (tensor,), self._base.flatten(tensor, start_dim, end_dim))

    def concat(self, tensors: Sequence[Tensor], dim: int = 0) -> Tensor:
        return self._run(
            ops.ConcatOperation(dim=dim), tuple(tensors), self._base.concat(list(tensors), dim)
        )

    def split(self, tensor: Tensor, split_size: int, dim: int = 0) -> list[Tensor]:
        operation = ops.SplitOperation(split_size=split_size, dim=dim)
        return self._run(operation, (tensor,), list(self._base.split(tensor, split_size, dim)))

    def squeeze(self, tensor: Tensor, dim: Optional[int] = None) -> Tensor:
        return self._run(ops.SqueezeOperation(dim=dim), (tensor,), self._base.squeeze(tensor, dim))

    def unsqueeze(self, tensor: Tensor, dim: int) -> Tensor:
        return self._run(
            ops.UnsqueezeOperation(dim=dim), (tensor,), self._base.unsqueeze(tensor, dim)
        )

    # activations
    def relu(self, tensor: Tensor) -> Tensor:
        return self._run(ops.ReluOperation(), (tensor,), self._base.relu(tensor))

    def softmax(self, tensor: Tensor, dim: int = -1) -> Tensor:
        return self._run(ops.SoftmaxOperation(dim=dim), (tensor,), self._base.softmax(tensor, dim))

    def sigmoid(self, tensor: Tensor) -> Tensor:
        return self._run(ops.SigmoidOperation(), (tensor,), self._base.sigmoid(tensor))

    def tanh(self, tensor: Tensor) -> Tensor:
        return self._run(ops.TanhOperation(), (tensor,), self._base.tanh(tensor))

    def silu(self, tensor: Tensor) -> Tensor:
        return self._run(ops.SiluOperation(), (tensor,), self._base.silu(tensor))

    def gelu(self, tensor: Tensor) -> Tensor:
        return self._run(ops.GeluOperation(), (tensor,), self._base.gelu(tensor))

    # reductions / element-wise math
    def sum(self, tensor: Tensor, dim: Optional[int] = None, keepdim: bool = False) -> Tensor:
        operation = ops.SumOperation(dim=dim, keepdim=keepdim)
        return self._run(operation, (tensor,), self._base.sum(tensor, dim, keepdim))

    def mean(self, tensor: Tensor, dim: Optional[int] = None, keepdim: bool = False) -> Tensor:
        operation = ops.MeanOperation(dim=dim, keepdim=keepdim)
        return self._run(operation, (tensor,), self._base.mean(tensor, dim, keepdim))

    def variance(self, tensor: Tensor, dim: Optional[int] = None, keepdim: bool = False) -> Tensor:
        operation = ops.VarianceOperation(dim=dim, keepdim=keepdim)
        return self._run(operation, (tensor,), self._base.variance(tensor, dim, keepdim))

    def sqrt(self, tensor: Tensor) -> Tensor:
        return self._run(ops.SqrtOperation(), (tensor,), self._base.sqrt(tensor))

    def exp(self, tensor: Tensor) -> Tensor:
        return self._run(ops.ExpOperation(), (tensor,), self._base.exp(tensor))

    # dtype
    def convert(self, tensor: Tensor, dtype: DType) -> Tensor:
        return self._run(
            ops.ConvertOperation(dtype=dtype.name), (tensor,), self._base.convert(tensor, dtype)
        )
