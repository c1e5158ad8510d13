"""
Backward (vector-Jacobian product) rules keyed by operation name.

A rule receives the recorded operation, the forward input and output values
and the gradient of every output, and returns one gradient per input (None
for inputs that are not differentiable, such as integer tensors).

Rules are registered with a decorator:

    @BackwardRules.register("relu")
    def _relu(op, inputs, outputs, grads):
        ...

Broadcasting
------------
Element-wise rules reduce the upstream gradient back to each operand's shape
with `sum_to_shape`, undoing numpy broadcasting.
"""

from __future__ import annotations

import math
from typing import Callable, ClassVar, Dict, Optional, Sequence, TypeVar

import numpy as np

from ...domain._errors import OperationNotImplementedError
from ...domain._operation import IOperation
from ..ops import _shape_inference as shapes
from ..ops._cpu_ops import stable_sigmoid
from ..ops.conv2d_cpu import conv2d_backward_cpu
from ..ops.pool2d_cpu import maxpool2d_backward_cpu, maxpool2d_forward_cpu

Grads = list[Optional[np.ndarray]]
Rule = Callable[[IOperation, Sequence[np.ndarray], Sequence[np.ndarray], Sequence[np.ndarray]], Grads]
R = TypeVar("R", bound=Rule)

_GELU_C = math.sqrt(2.0 / math.pi)


def sum_to_shape(grad: np.ndarray, shape: Sequence[int]) -> np.ndarray:
    """
    Reduce a broadcast gradient to `shape` by summing broadcast axes.
    """
    shape = tuple(shape)
    if grad.shape == shape:
        return grad
    extra = grad.ndim - len(shape)
    if extra > 0:
        grad = grad.sum(axis=tuple(range(extra)))
    axes = tuple(i for i, dim in enumerate(shape) if dim == 1 and grad.shape[i] != 1)
    if axes:
        grad = grad.sum(axis=axes, keepdims=True)
    return grad.reshape(shape)


class BackwardRules:
    """
    Registry of backward rules.
    """

    RULES: ClassVar[Dict[str, Rule]] = {}

    @classmethod
    def register(cls, *names: str, overwrite: bool = False) -> Callable[[R], R]:
        """
        Decorator registering a rule under one or more operation names.
        """
        if not names or not all(isinstance(n, str) and n for n in names):
            raise ValueError("Backward rule names must be non-empty strings")

        def decorator(func: R) -> R:
            for name in names:
                if not overwrite and name in cls.RULES:
                    raise ValueError(f"Backward rule already registered: {name!r}")
                cls.RULES[name] = func
            return func

        return decorator

    @classmethod
    def has(cls, name: str) -> bool:
        return name in cls.RULES

    @classmethod
    def get(cls, name: str) -> Rule:
        """
        Raises
        ------
        OperationNotImplementedError
            If no rule is registered for `name`.
        """
        try:
            return cls.RULES[name]
        except KeyError:
            raise OperationNotImplementedError(name, "gradient", "no backward rule") from None

    @classmethod
    def available(cls) -> tuple[str, ...]:
        return tuple(sorted(cls.RULES))


# ---------------------------------------------------------------------------
# identity / arithmetic
# ---------------------------------------------------------------------------
@BackwardRules.register("input")
def _input(op, inputs, outputs, grads):
    return list(grads[: len(inputs)])


@BackwardRules.register("add")
def _add(op, inputs, outputs, grads):
    a, b = inputs
    g = grads[0]
    return [sum_to_shape(g, a.shape), sum_to_shape(g, b.shape)]


@BackwardRules.register("subtract")
def _subtract(op, inputs, outputs, grads):
    a, b = inputs
    g = grads[0]
    return [sum_to_shape(g, a.shape), sum_to_shape(-g, b.shape)]


@BackwardRules.register("multiply")
def _multiply(op, inputs, outputs, grads):
    a, b = inputs
    g = grads[0]
    return [sum_to_shape(g * b, a.shape), sum_to_shape(g * a, b.shape)]


@BackwardRules.register("divide")
def _divide(op, inputs, outputs, grads):
    a, b = inputs
    g = grads[0]
    return [sum_to_shape(g / b, a.shape), sum_to_shape(-g * a / (b * b), b.shape)]


# ---------------------------------------------------------------------------
# linear algebra
# ---------------------------------------------------------------------------
@BackwardRules.register("matmul")
def _matmul(op, inputs, outputs, grads):
    a, b = inputs
    g = grads[0]
    a2 = a[np.newaxis, :] if a.ndim == 1 else a
    b2 = b[:, np.newaxis] if b.ndim == 1 else b
    if b.ndim == 1:
        g = np.expand_dims(g, -1)
    if a.ndim == 1:
        g = np.expand_dims(g, -2)
    ga = g @ np.swapaxes(b2, -1, -2)
    gb = np.swapaxes(a2, -1, -2) @ g
    ga = sum_to_shape(ga, a2.shape).reshape(a.shape)
    gb = sum_to_shape(gb, b2.shape).reshape(b.shape)
    return [ga, gb]


@BackwardRules.register("transpose")
def _transpose(op, inputs, outputs, grads):
    g = grads[0]
    return [np.swapaxes(g, -1, -2) if g.ndim >= 2 else g]


# ---------------------------------------------------------------------------
# nn
# ---------------------------------------------------------------------------
@BackwardRules.register("conv2d")
def _conv2d(op, inputs, outputs, grads):
    p = op.parameters
    x, w = inputs[0], inputs[1]
    b = inputs[2] if len(inputs) == 3 else None
    gx, gw, gb = conv2d_backward_cpu(
        x, w, b, grads[0], p["stride"], p["padding"], p["dilation"], p["groups"]
    )
    return [gx, gw] if b is None else [gx, gw, gb]


@BackwardRules.register("max_pool2d")
def _max_pool2d(op, inputs, outputs, grads):
    p = op.parameters
    x = inputs[0]
    _, argmax = maxpool2d_forward_cpu(x, p["kernel_size"], p["stride"], p["padding"])
    gx = maxpool2d_backward_cpu(grads[0], argmax, x_shape=x.shape, padding=p["padding"])
    return [gx]


# ---------------------------------------------------------------------------
# shape
# ---------------------------------------------------------------------------
@BackwardRules.register("reshape", "flatten", "squeeze", "unsqueeze")
def _reshape_like(op, inputs, outputs, grads):
    return [grads[0].reshape(inputs[0].shape)]


@BackwardRules.register("concat")
def _concat(op, inputs, outputs, grads):
    axis = shapes.normalize_dim(op.parameters["dim"], inputs[0].ndim, "concat")
    bounds = np.cumsum([x.shape[axis] for x in inputs])[:-1]
    return list(np.split(grads[0], bounds, axis=axis))


@BackwardRules.register("split")
def _split(op, inputs, outputs, grads):
    axis = shapes.normalize_dim(op.parameters["dim"], inputs[0].ndim, "split")
    return [np.concatenate(list(grads), axis=axis)]


# ---------------------------------------------------------------------------
# activations
# ---------------------------------------------------------------------------
@BackwardRules.register("relu")
def _relu(op, inputs, outputs, grads):
    return [grads[0] * (inputs[0] > 0)]


@BackwardRules.register("sigmoid")
def _sigmoid(op, inputs, outputs, grads):
    y = outputs[0]
    return [grads[0] * y * (1.0 - y)]


@BackwardRules.register("tanh")
def _tanh(op, inputs, outputs, grads):
    y = outputs[0]
    return [grads[0] * (1.0 - y * y)]


@BackwardRules.register("silu")
def _silu(op, inputs, outputs, grads):
    x = inputs[0]
    s = stable_sigmoid(x)
    return [grads[0] * (s + x * s * (1.0 - s))]


@BackwardRules.register("gelu")
def _gelu(op, inputs, outputs, grads):
    # derivative of the tanh approximation
    x = inputs[0]
    t = np.tanh(_GELU_C * (x + 0.044715 * x**3))
    dt = (1.0 - t * t) * _GELU_C * (1.0 + 3 * 0.044715 * x * x)
    return [grads[0] * (0.5 * (1.0 + t) + 0.5 * x * dt)]


@BackwardRules.register("softmax")
def _softmax(op, inputs, outputs, grads):
    y = outputs[0]
    g = grads[0]
    axis = shapes.normalize_dim(op.parameters["dim"], y.ndim, "softmax")
    return [y * (g - np.sum(g * y, axis=axis, keepdims=True))]


# ---------------------------------------------------------------------------
# reductions / element-wise math
# ---------------------------------------------------------------------------
def _expand_reduced(g: np.ndarray, x: np.ndarray, dim: Optional[int], keepdim: bool) -> np.ndarray:
    if dim is not None and not keepdim:
        g = np.expand_dims(g, shapes.normalize_dim(dim, x.ndim, "reduce"))
    return np.broadcast_to(g, x.shape)


def _reduced_count(x: np.ndarray, dim: Optional[int]) -> int:
    return x.size if dim is None else x.shape[dim]


@BackwardRules.register("sum")
def _sum(op, inputs, outputs, grads):
    p = op.parameters
    x = inputs[0]
    return [np.array(_expand_reduced(grads[0], x, p["dim"], p["keepdim"]))]


@BackwardRules.register("mean")
def _mean(op, inputs, outputs, grads):
    p = op.parameters
    x = inputs[0]
    g = _expand_reduced(grads[0], x, p["dim"], p["keepdim"])
    return [g / _reduced_count(x, p["dim"])]


@BackwardRules.register("variance")
def _variance(op, inputs, outputs, grads):
    p = op.parameters
    x = inputs[0]
    n = _reduced_count(x, p["dim"])
    centered = x - np.mean(x, axis=p["dim"], keepdims=True)
    g = _expand_reduced(grads[0], x, p["dim"], p["keepdim"])
    return [g * 2.0 * centered / n]


@BackwardRules.register("sqrt")
def _sqrt(op, inputs, outputs, grads):
    return [grads[0] / (2.0 * outputs[0])]


@BackwardRules.register("exp")
def _exp(op, inputs, outputs, grads):
    return [grads[0] * outputs[0]]


@BackwardRules.register("convert")
def _convert(op, inputs, outputs, grads):
    x = inputs[0]
    if not np.issubdtype(x.dtype, np.floating):
        return [None]
    return [grads[0].astype(x.dtype)]
