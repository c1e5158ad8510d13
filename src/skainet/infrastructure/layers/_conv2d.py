"""
Two-dimensional convolution layer (NCHW).
"""

from __future__ import annotations

from typing import Any, Dict, Optional

from ...domain._dtype import DType
from ...domain._errors import ShapeMismatchError
from .._module import Module
from ..module._serialization_core import register_module
from ..ops._shape_inference import IntPair, _pair
from ..tensor._tensor import Tensor
from ._parameters import create_parameter


@register_module()
class Conv2d(Module):
    """
    Convolve an ``(N, C_in, H, W)`` input with a learned kernel bank.

    Parameters
    ----------
    in_channels : int
        Channels of the incoming tensor.
    out_channels : int
        Channels produced.
    kernel_size : int or tuple[int, int]
        Kernel height and width; one integer is used for both.
    context : ExecutionContext
        Context the parameters are allocated in.
    stride, padding, dilation : int or tuple[int, int], optional
        Window hyperparameters. Default to 1, 0 and 1.
    groups : int, optional
        Channel groups; both channel counts must be divisible by it.
    bias : bool, optional
        Whether to add a learned per-channel bias. Defaults to True.
    weight_init : str, optional
        Registered initializer for the kernel. Defaults to
        ``"kaiming_uniform"``; the bias always starts at zero.
    dtype : Optional[DType], optional
        Parameter dtype; the context default when omitted.
    name : Optional[str], optional
        Module name.

    Notes
    -----
    `weight` is laid out ``[out_channels, in_channels / groups, K_h, K_w]``
    and `bias` ``[out_channels]``.
    """

    def __init__(
        self,
        in_channels: int,
        out_channels: int,
        kernel_size: IntPair,
        *,
        context: Any,
        stride: IntPair = 1,
        padding: IntPair = 0,
        dilation: IntPair = 1,
        groups: int = 1,
        bias: bool = True,
        weight_init: str = "kaiming_uniform",
        dtype: Optional[DType] = None,
        name: Optional[str] = None,
    ) -> None:
        super().__init__(name)
        if int(in_channels) <= 0 or int(out_channels) <= 0:
            raise ValueError(
                f"{self.name}: in_channels and out_channels must be positive, "
                f"got {in_channels} and {out_channels}"
            )
        if int(groups) <= 0 or int(in_channels) % int(groups) or int(out_channels) % int(groups):
            raise ValueError(
                f"{self.name}: groups={groups} must divide in_channels={in_channels} "
                f"and out_channels={out_channels}"
            )
        self.in_channels = int(in_channels)
        self.out_channels = int(out_channels)
        self.kernel_size = _pair(kernel_size)
        if min(self.kernel_size) <= 0:
            raise ValueError(f"{self.name}: kernel_size must be positive, got {kernel_size}")
        self.stride = _pair(stride)
        self.padding = _pair(padding)
        self.dilation = _pair(dilation)
        self.groups = int(groups)
        self.weight_init = weight_init
        self.weight = create_parameter(
            context,
            (self.out_channels, self.in_channels // self.groups) + self.kernel_size,
            weight_init,
            dtype=dtype,
            name=f"{self.name}.weight",
        )
        if bias:
            self.bias = create_parameter(
                context, (self.out_channels,), "zeros", dtype=dtype, name=f"{self.name}.bias"
            )
        else:
            self.bias = None

    def forward(self, x: Tensor) -> Tensor:
        """
        Raises
        ------
        ShapeMismatchError
            If `x` is not 4-D with `in_channels` channels.
        """
        if x.rank != 4 or x.shape[1] != self.in_channels:
            raise ShapeMismatchError(
                self.name,
                [tuple(x.shape), tuple(self.weight.shape)],
                f"expected (N, {self.in_channels}, H, W) input",
            )
        return x.conv2d(
            self.weight,
            self.bias,
            stride=self.stride,
            padding=self.padding,
            dilation=self.dilation,
            groups=self.groups,
        )

    def get_config(self) -> Dict[str, Any]:
        return {
            "in_channels": self.in_channels,
            "out_channels": self.out_channels,
            "kernel_size": list(self.kernel_size),
            "stride": list(self.stride),
            "padding": list(self.padding),
            "dilation": list(self.dilation),
            "groups": self.groups,
            "bias": self.bias is not None,
            "weight_init": self.weight_init,
            "dtype": self.weight.dtype.name,
            "name": self.name,
        }

    @classmethod
    def from_config(cls, cfg: Dict[str, Any], context: Any = None) -> "Conv2d":
        return cls(
            int(cfg["in_channels"]),
            int(cfg["out_channels"]),
            tuple(cfg["kernel_size"]),
            context=context,
            stride=tuple(cfg.get("stride", (1, 1))),
            padding=tuple(cfg.get("padding", (0, 0))),
            dilation=tuple(cfg.get("dilation", (1, 1))),
            groups=int(cfg.get("groups", 1)),
            bias=bool(cfg.get("bias", True)),
            weight_init=str(cfg.get("weight_init", "kaiming_uniform")),
            dtype=DType[cfg["dtype"]] if "dtype" in cfg else None,
            name=cfg.get("name"),
        )
