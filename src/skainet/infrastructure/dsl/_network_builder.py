"""
Fluent network definition.

`NetworkBuilder` assembles a `Sequential` while tracking the per-sample
shape flowing between layers, so size mistakes are reported while the
network is being defined rather than on the first forward pass:

    net = (
        NetworkBuilder(context)
        .input(1, 28, 28)
        .conv2d(8, 3, padding=1, activation="relu")
        .max_pool2d(2)
        .flatten()
        .dense(128, activation="relu")
        .dense(10, activation="softmax")
        .build()
    )

Layers get default names ``"<kind>-<position>"`` unless one is given.
"""

from __future__ import annotations

import logging
import math
from typing import Any, Callable, Dict, Optional, Union

from typing_extensions import Self

from ...domain._errors import ShapeMismatchError
from .._module import Module
from ..layers import (
    GELU,
    Conv2d,
    Flatten,
    LayerNormalization,
    Linear,
    MaxPool2d,
    ReLU,
    SiLU,
    Sigmoid,
    Softmax,
    Tanh,
)
from ..models._sequential import Sequential
from ..ops import _shape_inference as shapes
from ..ops._shape_inference import IntPair, _pair

logger = logging.getLogger(__name__)

ACTIVATIONS: Dict[str, Callable[[], Module]] = {
    "relu": ReLU,
    "sigmoid": Sigmoid,
    "tanh": Tanh,
    "silu": SiLU,
    "gelu": GELU,
    "softmax": Softmax,
}


class NetworkDefinitionError(ValueError):
    """
    Raised when a layer cannot follow the layers defined before it.

    Attributes
    ----------
    layer : str
        Name of the offending layer.
    constraint : str
        The violated requirement.
    """

    def __init__(self, layer: str, constraint: str) -> None:
        self.layer = layer
        self.constraint = constraint
        super().__init__(f"layer '{layer}': {constraint}")


class NetworkBuilder:
    """
    Parameters
    ----------
    context : ExecutionContext
        Context the parameterized layers allocate in.
    """

    def __init__(self, context: Any) -> None:
        self.context = context
        self._layers: list[Module] = []
        self._shape: Optional[tuple[int, ...]] = None

    @property
    def sample_shape(self) -> Optional[tuple[int, ...]]:
        """Per-sample shape after the layers defined so far."""
        return self._shape

    def _name(self, name: Optional[str], kind: str) -> str:
        return name or f"{kind}-{len(self._layers)}"

    def _require_input(self, layer: str) -> tuple[int, ...]:
        if self._shape is None:
            raise NetworkDefinitionError(layer, "input() must be defined before any layer")
        return self._shape

    def _append(self, module: Module) -> None:
        self._layers.append(module)
        logger.debug("network: %s -> sample shape %s", module.name, self._shape)

    def input(self, *dims: int) -> Self:
        """Declare the per-sample input shape (batch axis excluded)."""
        if self._shape is not None:
            raise NetworkDefinitionError("input", "input() may only be defined once")
        if not dims or any(int(d) <= 0 for d in dims):
            raise NetworkDefinitionError("input", f"dimensions must be positive, got {dims}")
        self._shape = tuple(int(d) for d in dims)
        return self

    def dense(
        self,
        units: int,
        *,
        activation: Union[str, Module, None] = None,
        bias: bool = True,
        weight_init: str = "xavier_uniform",
        name: Optional[str] = None,
    ) -> Self:
        """
        Append a `Linear` layer (and optionally an activation).

        Raises
        ------
        NetworkDefinitionError
            If there is no input yet, the incoming sample is not flat, or
            `units` is not positive.
        """
        layer = self._name(name, "linear")
        shape = self._require_input(layer)
        if len(shape) != 1:
            raise NetworkDefinitionError(
                layer, f"dense needs a flat input, got sample shape {shape}; add flatten() first"
            )
        if int(units) <= 0:
            raise NetworkDefinitionError(layer, f"units must be positive, got {units}")
        self._append(
            Linear(
                shape[0],
                int(units),
                context=self.context,
                bias=bias,
                weight_init=weight_init,
                name=layer,
            )
        )
        self._shape = (int(units),)
        if activation is not None:
            self.activation(activation)
        return self

    def _spatial(self, layer: str, kind: str) -> tuple[int, ...]:
        shape = self._require_input(layer)
        if len(shape) != 3:
            raise NetworkDefinitionError(
                layer, f"{kind} needs a (channels, height, width) sample, got {shape}"
            )
        return shape

    def conv2d(
        self,
        out_channels: int,
        kernel_size: IntPair,
        *,
        stride: IntPair = 1,
        padding: IntPair = 0,
        dilation: IntPair = 1,
        groups: int = 1,
        activation: Union[str, Module, None] = None,
        bias: bool = True,
        weight_init: str = "kaiming_uniform",
        name: Optional[str] = None,
    ) -> Self:
        """
        Append a `Conv2d` layer (and optionally an activation).

        The incoming sample must be ``(C, H, W)``; it becomes
        ``(out_channels, H_out, W_out)``.

        Raises
        ------
        NetworkDefinitionError
            If there is no input yet, the sample is not 3-D, or the kernel
            does not fit the padded sample.
        """
        layer = self._name(name, "conv2d")
        channels, height, width = self._spatial(layer, "conv2d")
        if int(out_channels) <= 0:
            raise NetworkDefinitionError(layer, f"out_channels must be positive, got {out_channels}")
        if int(groups) <= 0 or channels % int(groups) or int(out_channels) % int(groups):
            raise NetworkDefinitionError(
                layer, f"groups={groups} must divide {channels} and {out_channels} channels"
            )
        k_h, k_w = _pair(kernel_size)
        try:
            out = shapes.conv2d_shape(
                (1, channels, height, width),
                (int(out_channels), channels // int(groups), k_h, k_w),
                stride,
                padding,
                dilation,
                int(groups),
            )
        except ShapeMismatchError as exc:
            raise NetworkDefinitionError(layer, str(exc)) from exc
        self._append(
            Conv2d(
                channels,
                int(out_channels),
                (k_h, k_w),
                context=self.context,
                stride=stride,
                padding=padding,
                dilation=dilation,
                groups=int(groups),
                bias=bias,
                weight_init=weight_init,
                name=layer,
            )
        )
        self._shape = tuple(out[1:])
        if activation is not None:
            self.activation(activation)
        return self

    def max_pool2d(
        self,
        kernel_size: IntPair,
        *,
        stride: Optional[IntPair] = None,
        padding: IntPair = 0,
        name: Optional[str] = None,
    ) -> Self:
        """
        Append a `MaxPool2d` layer; channels are kept and the spatial
        dimensions shrink to the window count.
        """
        layer = self._name(name, "maxpool2d")
        channels, height, width = self._spatial(layer, "max_pool2d")
        try:
            out = shapes.pool2d_shape((1, channels, height, width), kernel_size, stride, padding)
        except ShapeMismatchError as exc:
            raise NetworkDefinitionError(layer, str(exc)) from exc
        self._append(MaxPool2d(kernel_size, stride=stride, padding=padding, name=layer))
        self._shape = tuple(out[1:])
        return self

    def activation(self, activation: Union[str, Module], *, name: Optional[str] = None) -> Self:
        """
        Append an activation given by name (``"relu"``, ``"softmax"``, ...)
        or as a module.
        """
        layer = self._name(name, "activation")
        self._require_input(layer)
        if isinstance(activation, Module):
            module = activation
        else:
            try:
                factory = ACTIVATIONS[str(activation).lower()]
            except KeyError:
                raise NetworkDefinitionError(
                    layer,
                    f"unknown activation {activation!r}; expected one of {sorted(ACTIVATIONS)}",
                ) from None
            module = factory()
        self._append(module)
        return self

    def flatten(self, *, name: Optional[str] = None) -> Self:
        """Merge every per-sample dimension into one."""
        layer = self._name(name, "flatten")
        shape = self._require_input(layer)
        self._append(Flatten(start_dim=1, end_dim=-1, name=layer))
        self._shape = (math.prod(shape),)
        return self

    def layer_norm(self, *, eps: float = 1e-5, name: Optional[str] = None) -> Self:
        """Normalize over the whole per-sample shape."""
        layer = self._name(name, "layernorm")
        shape = self._require_input(layer)
        self._append(LayerNormalization(shape, context=self.context, eps=eps, name=layer))
        return self

    def add(self, module: Module, *, output_shape: Optional[tuple[int, ...]] = None) -> Self:
        """
        Append a custom module.

        `output_shape` declares the per-sample shape it produces; the
        current shape is kept when omitted.
        """
        self._require_input(module.name)
        self._append(module)
        if output_shape is not None:
            self._shape = tuple(int(d) for d in output_shape)
        return self

    def build(self, name: Optional[str] = None) -> Sequential:
        """
        Raises
        ------
        NetworkDefinitionError
            If no input or no layer was defined.
        """
        self._require_input(name or "network")
        if not self._layers:
            raise NetworkDefinitionError(name or "network", "at least one layer is required")
        net = Sequential(name=name)
        for module in self._layers:
            net.add(module)
        return net


def network(context: Any, *dims: int) -> NetworkBuilder:
    """Start a builder with its input shape already declared."""
    return NetworkBuilder(context).input(*dims)
