"""
Built-in operation kinds.

Each class declares its name, type tag, arity, parameters and shape rule;
execution dispatches to the ops binding of the first input tensor, so the
same operation value runs on the CPU backend, the void backend or a mock.

Type tags
---------
- ``input``: graph entry points
- ``math``: element-wise arithmetic and element-wise math
- ``linalg``: matmul, transpose
- ``nn``: conv2d, max_pool2d
- ``shape``: reshape, flatten, concat, split, squeeze, unsqueeze
- ``activation``: relu, softmax, sigmoid, tanh, silu, gelu
- ``reduction``: sum, mean, variance
- ``cast``: dtype conversion
"""

from __future__ import annotations

from typing import Sequence

from ...domain._dtype import DType
from ...domain._errors import OperationValidationError
from ...domain._operation import TensorSpec
from ..ops import _shape_inference as shapes
from ._operation_base import REQUIRED, BaseOperation


class InputOperation(BaseOperation):
    """Graph entry point; passes an optional input through unchanged."""

    NAME = "input"
    TYPE = "input"
    DESCRIPTION = "Graph input placeholder"
    ARITY = (0, 1)
    SUPPORTS_GRADIENTS = False

    def _infer_shapes(self, input_shapes):
        return list(input_shapes)

    def _output_count(self, inputs):
        return len(inputs)

    def infer_outputs(self, inputs: Sequence[TensorSpec]) -> list[TensorSpec]:
        result = self.validate_inputs(inputs)
        if not result.is_valid:
            raise OperationValidationError(self.NAME, result.errors)
        return list(inputs)

    def _execute(self, inputs):
        return inputs


# ---------------------------------------------------------------------------
# element-wise arithmetic
# ---------------------------------------------------------------------------
class _BinaryOperation(BaseOperation):
    TYPE = "math"
    ARITY = (2, 2)

    def _infer_shapes(self, input_shapes):
        return [shapes.broadcast_shapes(self.NAME, input_shapes[0], input_shapes[1])]

    def _execute(self, inputs):
        a, b = inputs
        return [getattr(a.ops, self.NAME)(a, b)]


class AddOperation(_BinaryOperation):
    NAME = "add"
    DESCRIPTION = "Element-wise addition with broadcasting"


class SubtractOperation(_BinaryOperation):
    NAME = "subtract"
    DESCRIPTION = "Element-wise subtraction with broadcasting"


class MultiplyOperation(_BinaryOperation):
    NAME = "multiply"
    DESCRIPTION = "Element-wise multiplication with broadcasting"


class DivideOperation(_BinaryOperation):
    NAME = "divide"
    DESCRIPTION = "Element-wise division with broadcasting"


# ---------------------------------------------------------------------------
# linear algebra
# ---------------------------------------------------------------------------
class MatMulOperation(BaseOperation):
    """
    Matrix product of two 2-D inputs ``(m, k) @ (k, n) -> (m, n)``.
    """

    NAME = "matmul"
    TYPE = "linalg"
    DESCRIPTION = "Matrix multiplication"
    ARITY = (2, 2)

    def _validate(self, inputs, errors):
        for i, spec in enumerate(inputs):
            if spec.shape is not None and len(spec.shape) != 2:
                errors.append(
                    f"matmul: input {i} ('{spec.name}') must be 2-D, got shape {spec.shape}"
                )
        if errors:
            return
        a, b = inputs
        if a.shape is not None and b.shape is not None:
            cols, rows = a.shape[1], b.shape[0]
            if cols is not None and rows is not None and cols != rows:
                errors.append(
                    f"matmul: inner dimensions differ: input 0 ('{a.name}') has {cols} columns, "
                    f"input 1 ('{b.name}') has {rows} rows"
                )

    def _infer_shapes(self, input_shapes):
        return [shapes.matmul_shape(input_shapes[0], input_shapes[1])]

    def _execute(self, inputs):
        a, b = inputs
        return [a.ops.matmul(a, b)]


class TransposeOperation(BaseOperation):
    NAME = "transpose"
    TYPE = "linalg"
    DESCRIPTION = "Swap the last two axes"

    def _infer_shapes(self, input_shapes):
        return [shapes.transpose_shape(input_shapes[0])]

    def _execute(self, inputs):
        return [inputs[0].ops.transpose(inputs[0])]


# ---------------------------------------------------------------------------
# nn
# ---------------------------------------------------------------------------
class Conv2dOperation(BaseOperation):
    """
    NCHW convolution of ``(input, weight[, bias])``.
    """

    NAME = "conv2d"
    TYPE = "nn"
    DESCRIPTION = "2-D convolution (NCHW)"
    ARITY = (2, 3)
    DEFAULTS = {"stride": 1, "padding": 0, "dilation": 1, "groups": 1}

    def _validate(self, inputs, errors):
        if len(inputs) == 3 and inputs[1].shape is not None and inputs[2].shape is not None:
            c_out = inputs[1].shape[0] if inputs[1].shape else None
            if tuple(inputs[2].shape) != (c_out,):
                errors.append(
                    f"conv2d: input 2 ('{inputs[2].name}') must have shape ({c_out},), "
                    f"got {inputs[2].shape}"
                )

    def _infer_shapes(self, input_shapes):
        p = self.parameters
        return [
            shapes.conv2d_shape(
                input_shapes[0], input_shapes[1], p["stride"], p["padding"], p["dilation"], p["groups"]
            )
        ]

    def _execute(self, inputs):
        x, w = inputs[0], inputs[1]
        bias = inputs[2] if len(inputs) == 3 else None
        return [x.ops.conv2d(x, w, bias, **dict(self.parameters))]


class MaxPool2dOperation(BaseOperation):
    NAME = "max_pool2d"
    TYPE = "nn"
    DESCRIPTION = "2-D max pooling (NCHW)"
    DEFAULTS = {"kernel_size": REQUIRED, "stride": None, "padding": 0}

    def _infer_shapes(self, input_shapes):
        p = self.parameters
        return [shapes.pool2d_shape(input_shapes[0], p["kernel_size"], p["stride"], p["padding"])]

    def _execute(self, inputs):
        p = self.parameters
        return [inputs[0].ops.max_pool2d(inputs[0], p["kernel_size"], p["stride"], p["padding"])]


# ---------------------------------------------------------------------------
# shape
# ---------------------------------------------------------------------------
class ReshapeOperation(BaseOperation):
    NAME = "reshape"
    TYPE = "shape"
    DESCRIPTION = "Reshape to new_shape (one -1 may be inferred)"
    DEFAULTS = {"new_shape": REQUIRED}

    def _infer_shapes(self, input_shapes):
        return [shapes.reshape_shape(input_shapes[0], self.parameters["new_shape"])]

    def _execute(self, inputs):
        return [inputs[0].ops.reshape(inputs[0], tuple(self.parameters["new_shape"]))]


class FlattenOperation(BaseOperation):
    NAME = "flatten"
    TYPE = "shape"
    DESCRIPTION = "Merge axes start_dim..end_dim"
    DEFAULTS = {"start_dim": 0, "end_dim": -1}

    def _infer_shapes(self, input_shapes):
        p = self.parameters
        return [shapes.flatten_shape(input_shapes[0], p["start_dim"], p["end_dim"])]

    def _execute(self, inputs):
        p = self.parameters
        return [inputs[0].ops.flatten(inputs[0], p["start_dim"], p["end_dim"])]


class ConcatOperation(BaseOperation):
    NAME = "concat"
    TYPE = "shape"
    DESCRIPTION = "Concatenate inputs along dim"
    ARITY = (1, None)
    DEFAULTS = {"dim": 0}

    def _infer_shapes(self, input_shapes):
        return [shapes.concat_shape(list(input_shapes), self.parameters["dim"])]

    def _execute(self, inputs):
        return [inputs[0].ops.concat(inputs, self.parameters["dim"])]


class SplitOperation(BaseOperation):
    NAME = "split"
    TYPE = "shape"
    DESCRIPTION = "Split into chunks of split_size along dim"
    DEFAULTS = {"split_size": REQUIRED, "dim": 0}

    def _infer_shapes(self, input_shapes):
        p = self.parameters
        return shapes.split_shapes(input_shapes[0], p["split_size"], p["dim"])

    def _output_count(self, inputs):
        # unknown without a shape; callers see a single placeholder
        return 1

    def _execute(self, inputs):
        p = self.parameters
        return inputs[0].ops.split(inputs[0], p["split_size"], p["dim"])


class SqueezeOperation(BaseOperation):
    NAME = "squeeze"
    TYPE = "shape"
    DESCRIPTION = "Remove size-1 axes"
    DEFAULTS = {"dim": None}

    def _infer_shapes(self, input_shapes):
        return [shapes.squeeze_shape(input_shapes[0], self.parameters["dim"])]

    def _execute(self, inputs):
        return [inputs[0].ops.squeeze(inputs[0], self.parameters["dim"])]


class UnsqueezeOperation(BaseOperation):
    NAME = "unsqueeze"
    TYPE = "shape"
    DESCRIPTION = "Insert a size-1 axis at dim"
    DEFAULTS = {"dim": REQUIRED}

    def _infer_shapes(self, input_shapes):
        return [shapes.unsqueeze_shape(input_shapes[0], self.parameters["dim"])]

    def _execute(self, inputs):
        return [inputs[0].ops.unsqueeze(inputs[0], self.parameters["dim"])]


# ---------------------------------------------------------------------------
# activations
# ---------------------------------------------------------------------------
class _UnaryOperation(BaseOperation):
    """Shape-preserving operation forwarding to the same-named ops method."""

    def _execute(self, inputs):
        return [getattr(inputs[0].ops, self.NAME)(inputs[0])]


class ReluOperation(_UnaryOperation):
    NAME = "relu"
    TYPE = "activation"
    DESCRIPTION = "max(x, 0)"


class SigmoidOperation(_UnaryOperation):
    NAME = "sigmoid"
    TYPE = "activation"
    DESCRIPTION = "1 / (1 + exp(-x))"
    FLOAT_ONLY = True


class TanhOperation(_UnaryOperation):
    NAME = "tanh"
    TYPE = "activation"
    DESCRIPTION = "Hyperbolic tangent"
    FLOAT_ONLY = True


class SiluOperation(_UnaryOperation):
    NAME = "silu"
    TYPE = "activation"
    DESCRIPTION = "x * sigmoid(x)"
    FLOAT_ONLY = True


class GeluOperation(_UnaryOperation):
    NAME = "gelu"
    TYPE = "activation"
    DESCRIPTION = "Gaussian error linear unit (tanh approximation)"
    FLOAT_ONLY = True


class SoftmaxOperation(BaseOperation):
    NAME = "softmax"
    TYPE = "activation"
    DESCRIPTION = "Normalized exponential along dim"
    DEFAULTS = {"dim": -1}
    FLOAT_ONLY = True

    def _infer_shapes(self, input_shapes):
        shapes.normalize_dim(self.parameters["dim"], len(input_shapes[0]), self.NAME)
        return [input_shapes[0]]

    def _execute(self, inputs):
        return [inputs[0].ops.softmax(inputs[0], self.parameters["dim"])]


# ---------------------------------------------------------------------------
# element-wise math / reductions
# ---------------------------------------------------------------------------
class SqrtOperation(_UnaryOperation):
    NAME = "sqrt"
    TYPE = "math"
    DESCRIPTION = "Element-wise square root"
    FLOAT_ONLY = True


class ExpOperation(_UnaryOperation):
    NAME = "exp"
    TYPE = "math"
    DESCRIPTION = "Element-wise exponential"
    FLOAT_ONLY = True


class _ReductionOperation(BaseOperation):
    TYPE = "reduction"
    DEFAULTS = {"dim": None, "keepdim": False}

    def _infer_shapes(self, input_shapes):
        p = self.parameters
        return [shapes.reduce_shape(input_shapes[0], p["dim"], p["keepdim"])]

    def _execute(self, inputs):
        p = self.parameters
        return [getattr(inputs[0].ops, self.NAME)(inputs[0], p["dim"], p["keepdim"])]


class SumOperation(_ReductionOperation):
    NAME = "sum"
    DESCRIPTION = "Sum over dim (all axes when None)"


class MeanOperation(_ReductionOperation):
    NAME = "mean"
    DESCRIPTION = "Mean over dim (all axes when None)"
    FLOAT_ONLY = True


class VarianceOperation(_ReductionOperation):
    NAME = "variance"
    DESCRIPTION = "Population variance over dim (all axes when None)"
    FLOAT_ONLY = True


# ---------------------------------------------------------------------------
# cast
# ---------------------------------------------------------------------------
class ConvertOperation(BaseOperation):
    NAME = "convert"
    TYPE = "cast"
    DESCRIPTION = "Convert to another dtype following the conversion table"
    DEFAULTS = {"dtype": REQUIRED}

    def _target(self) -> DType:
        target = self.parameters["dtype"]
        return target if isinstance(target, DType) else DType.from_name(target)

    def _validate(self, inputs, errors):
        if self.parameters["dtype"] is REQUIRED:
            return
        try:
            target = self._target()
        except ValueError as exc:
            errors.append(f"convert: {exc}")
            return
        try:
            source = DType.from_name(inputs[0].dtype)
        except ValueError:
            return
        if not source.is_convertible_to(target):
            errors.append(
                f"convert: input 0 ('{inputs[0].name}') cannot convert {source.name} to {target.name}"
            )

    def _output_dtype(self, inputs):
        return self._target().name

    def _execute(self, inputs):
        return [inputs[0].ops.convert(inputs[0], self._target())]


BUILTIN_OPERATIONS: tuple[type[BaseOperation], ...] = (
    InputOperation,
    AddOperation,
    SubtractOperation,
    MultiplyOperation,
    DivideOperation,
    MatMulOperation,
    TransposeOperation,
    Conv2dOperation,
    MaxPool2dOperation,
    ReshapeOperation,
    FlattenOperation,
    ConcatOperation,
    SplitOperation,
    SqueezeOperation,
    UnsqueezeOperation,
    ReluOperation,
    SoftmaxOperation,
    SigmoidOperation,
    TanhOperation,
    SiluOperation,
    GeluOperation,
    SumOperation,
    MeanOperation,
    VarianceOperation,
    SqrtOperation,
    ExpOperation,
    ConvertOperation,
)
