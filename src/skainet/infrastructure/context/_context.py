"""
Execution context.

An `ExecutionContext` is the explicit bundle a computation is built
against: the tensor operations per dtype, the data factory, the operation
registry, the tape stack and a seeded random generator. Nothing here is
global; two contexts never share tapes or ops.

Tensors created by a context are bound to `RecordingTensorOps` wrapping the
context backend, so their operations are recorded whenever one of the
context's tapes is recording.

Example
-------
    ctx = ExecutionContext(ExecutionConfig(seed=0))
    x = ctx.tensor([[1.0, 2.0]])
    w = ctx.randn((2, 3), requires_grad=True)
    with ctx.gradient_tape() as tape:
        loss = (x @ w).relu().sum()
    grads = tape.compute_gradients(loss, [w])
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Any, Callable, Iterator, Mapping, Optional, Sequence, Union

import numpy as np

from ...domain._dtype import DType
from ...domain._errors import OperationValidationError
from ...domain._operation import IOperation, TensorSpec
from ...domain._tensor_ops import ITensorOps
from ..graph._gradient_tape import GradientTape
from ..graph._recording_ops import RecordingTensorOps
from ..graph._registry import OperationRegistry, default_operation_registry
from ..graph._tape import ExecutionTape, TapeStack
from ..ops._cpu_ops import CpuTensorOps
from ..ops._void_ops import VoidTensorOps
from ..tensor._tensor import Tensor
from ..tensor.data import TensorData, TensorDataFactory
from ._config import ExecutionConfig, ExecutionMode

logger = logging.getLogger(__name__)

OpsArg = Union[ITensorOps, Mapping[DType, ITensorOps], None]


def spec_of(tensor: Tensor, name: str) -> TensorSpec:
    """Describe a tensor as a `TensorSpec`."""
    return TensorSpec(name, tuple(tensor.shape), tensor.dtype.name, tensor.requires_grad)


class ExecutionContext:
    """
    Parameters
    ----------
    config : Optional[ExecutionConfig]
        Defaults to ``ExecutionConfig()``.
    ops : ITensorOps | Mapping[DType, ITensorOps] | None
        Backend for every dtype, or per dtype. Dtypes missing from a
        mapping use the mode's default backend.
    factory : Optional[TensorDataFactory]
        Builder for tensor storage.
    registry : Optional[OperationRegistry]
        Registry used to resolve operation names; a fresh default registry
        when omitted.
    """

    def __init__(
        self,
        config: Optional[ExecutionConfig] = None,
        ops: OpsArg = None,
        factory: Optional[TensorDataFactory] = None,
        registry: Optional[OperationRegistry] = None,
    ) -> None:
        self.config = config or ExecutionConfig()
        self.factory = factory or TensorDataFactory()
        self.registry = registry or default_operation_registry()
        self.tape_stack = TapeStack()
        self.rng = np.random.default_rng(self.config.seed)

        default_base: ITensorOps = (
            VoidTensorOps() if self.config.mode is ExecutionMode.GRAPH else CpuTensorOps(self.factory)
        )
        if ops is None:
            per_dtype: Mapping[DType, ITensorOps] = {}
        elif isinstance(ops, Mapping):
            per_dtype = dict(ops)
        else:
            per_dtype = {}
            default_base = ops
        self._default_ops = RecordingTensorOps(default_base, self.tape_stack)
        self._ops = {
            dtype: RecordingTensorOps(base, self.tape_stack) for dtype, base in per_dtype.items()
        }

    # ------------------------------------------------------------------
    # ops
    # ------------------------------------------------------------------
    @property
    def mode(self) -> ExecutionMode:
        return self.config.mode

    @property
    def default_dtype(self) -> DType:
        return self.config.default_dtype

    @property
    def ops(self) -> RecordingTensorOps:
        return self.ops_for(self.config.default_dtype)

    def ops_for(self, dtype: DType) -> RecordingTensorOps:
        return self._ops.get(dtype, self._default_ops)

    # ------------------------------------------------------------------
    # tensor constructors
    # ------------------------------------------------------------------
    def wrap(
        self, data: TensorData, *, requires_grad: bool = False, name: Optional[str] = None
    ) -> Tensor:
        """Bind existing data to this context's ops."""
        return Tensor(data, self.ops_for(data.dtype), requires_grad=requires_grad, name=name)

    def tensor(
        self,
        values: Any,
        dtype: Optional[DType] = None,
        *,
        shape: Optional[Sequence[int]] = None,
        requires_grad: bool = False,
        name: Optional[str] = None,
    ) -> Tensor:
        dtype = dtype or self.config.default_dtype
        data = self.factory.from_array(values, dtype, shape)
        return self.wrap(data, requires_grad=requires_grad, name=name)

    def zeros(
        self, shape: Sequence[int], dtype: Optional[DType] = None, *, requires_grad: bool = False
    ) -> Tensor:
        data = self.factory.zeros(shape, dtype or self.config.default_dtype)
        return self.wrap(data, requires_grad=requires_grad)

    def ones(
        self, shape: Sequence[int], dtype: Optional[DType] = None, *, requires_grad: bool = False
    ) -> Tensor:
        data = self.factory.ones(shape, dtype or self.config.default_dtype)
        return self.wrap(data, requires_grad=requires_grad)

    def full(
        self,
        shape: Sequence[int],
        value: Union[int, float],
        dtype: Optional[DType] = None,
        *,
        requires_grad: bool = False,
    ) -> Tensor:
        data = self.factory.full(shape, dtype or self.config.default_dtype, value)
        return self.wrap(data, requires_grad=requires_grad)

    def randn(
        self,
        shape: Sequence[int],
        dtype: Optional[DType] = None,
        *,
        mean: float = 0.0,
        std: float = 1.0,
        requires_grad: bool = False,
    ) -> Tensor:
        """Normal samples drawn from the context generator."""
        data = self.factory.random_normal(
            shape, dtype or self.config.default_dtype, self.rng, mean, std
        )
        return self.wrap(data, requires_grad=requires_grad)

    def rand(
        self,
        shape: Sequence[int],
        dtype: Optional[DType] = None,
        *,
        low: float = 0.0,
        high: float = 1.0,
        requires_grad: bool = False,
    ) -> Tensor:
        """Uniform samples drawn from the context generator."""
        data = self.factory.random_uniform(
            shape, dtype or self.config.default_dtype, self.rng, low, high
        )
        return self.wrap(data, requires_grad=requires_grad)

    def from_bytes(self, data: bytes, dtype: DType, shape: Sequence[int]) -> Tensor:
        """Decode little-endian bytes (see `TensorDataFactory.from_bytes`)."""
        return self.wrap(self.factory.from_bytes(data, dtype, shape))

    # ------------------------------------------------------------------
    # recording
    # ------------------------------------------------------------------
    def create_tape(self) -> ExecutionTape:
        return ExecutionTape()

    def create_gradient_tape(self, gradients_enabled: bool = True) -> GradientTape:
        return GradientTape(gradients_enabled)

    def start_recording(self, tape: Optional[ExecutionTape] = None) -> ExecutionTape:
        """Push `tape` (a new one when omitted) and start it."""
        tape = self.tape_stack.push_tape(tape if tape is not None else self.create_tape())
        tape.start_recording()
        return tape

    def stop_recording(self) -> Optional[ExecutionTape]:
        """Stop and pop the innermost tape; None when no tape is active."""
        tape = self.tape_stack.pop_tape()
        if tape is not None:
            tape.stop_recording()
        return tape

    @contextmanager
    def recording(self, tape: Optional[ExecutionTape] = None) -> Iterator[ExecutionTape]:
        """Record every operation run inside the block."""
        tape = self.start_recording(tape)
        try:
            yield tape
        finally:
            if self.tape_stack.current_tape is tape:
                self.stop_recording()
            else:
                tape.stop_recording()

    @contextmanager
    def gradient_tape(self, watch: Sequence[Tensor] = ()) -> Iterator[GradientTape]:
        """Record into a new gradient tape watching `watch`."""
        tape = self.create_gradient_tape()
        tape.watch(list(watch))
        with self.recording(tape):
            yield tape

    def trace(self, fn: Callable[..., Any], *inputs: Any, **kwargs: Any) -> tuple[Any, ExecutionTape]:
        """Run `fn` under a new tape; return its result and the tape."""
        with self.recording() as tape:
            result = fn(*inputs, **kwargs)
        return result, tape

    # ------------------------------------------------------------------
    # operations
    # ------------------------------------------------------------------
    def execute_operation(
        self,
        operation: Union[IOperation, str],
        inputs: Sequence[Tensor],
        parameters: Optional[Mapping[str, Any]] = None,
    ) -> list[Tensor]:
        """
        Validate and run an operation, recording it once.

        Parameters
        ----------
        operation : IOperation | str
            Operation value, or a registered name created with `parameters`.
        inputs : Sequence[Tensor]
            Operands.

        Raises
        ------
        OperationValidationError
            If the operation rejects the input specs.
        UnknownOperationError
            If `operation` is a name that is not registered.
        """
        if isinstance(operation, str):
            operation = self.registry.create_operation(operation, parameters or {})
        elif parameters:
            operation = operation.clone(parameters)
        specs = [spec_of(t, f"{operation.name}_input_{i}") for i, t in enumerate(inputs)]
        result = operation.validate_inputs(specs)
        if not result.is_valid:
            raise OperationValidationError(operation.name, result.errors)

        # run on the unwrapped backends so the kernels do not record themselves
        unwrapped = [
            t.with_ops(t.ops.base) if isinstance(t.ops, RecordingTensorOps) else t for t in inputs
        ]
        outputs = operation.execute(unwrapped)
        # pass-through operations hand back their operands
        index = {id(u): original for u, original in zip(unwrapped, inputs)}
        bound = [
            index[id(t)] if id(t) in index else Tensor(t.data, self.ops_for(t.dtype))
            for t in outputs
        ]
        self.tape_stack.record(operation, list(inputs), bound)
        return bound

    def __repr__(self) -> str:
        return (
            f"ExecutionContext(mode={self.config.mode.value}, "
            f"default_dtype={self.config.default_dtype.name}, tapes={len(self.tape_stack)})"
        )
