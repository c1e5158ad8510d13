"""
Max pooling module.
"""

from __future__ import annotations

from typing import Any, Dict, Optional

from .._module import Module
from ..module._serialization_core import register_module
from ..ops._shape_inference import IntPair, _pair
from ..tensor._tensor import Tensor


@register_module()
class MaxPool2d(Module):
    """
    Take the maximum over each spatial window of an NCHW input.

    `stride` defaults to the kernel size (non-overlapping windows);
    `padding` may be at most half the kernel.
    """

    def __init__(
        self,
        kernel_size: IntPair,
        stride: Optional[IntPair] = None,
        padding: IntPair = 0,
        name: Optional[str] = None,
    ) -> None:
        super().__init__(name)
        self.kernel_size = _pair(kernel_size)
        self.stride = self.kernel_size if stride is None else _pair(stride)
        self.padding = _pair(padding)

    def forward(self, x: Tensor) -> Tensor:
        return x.max_pool2d(self.kernel_size, self.stride, self.padding)

    def get_config(self) -> Dict[str, Any]:
        return {
            "kernel_size": list(self.kernel_size),
            "stride": list(self.stride),
            "padding": list(self.padding),
            "name": self.name,
        }

    @classmethod
    def from_config(cls, cfg: Dict[str, Any], context: Any = None) -> "MaxPool2d":
        return cls(
            tuple(cfg["kernel_size"]),
            stride=tuple(cfg["stride"]) if cfg.get("stride") is not None else None,
            padding=tuple(cfg.get("padding", (0, 0))),
            name=cfg.get("name"),
        )
