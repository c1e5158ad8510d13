"""
Flatten module.
"""

from __future__ import annotations

from typing import Any, Dict, Optional

from .._module import Module
from ..module._serialization_core import register_module
from ..tensor._tensor import Tensor


@register_module()
class Flatten(Module):
    """
    Merge dimensions `start_dim` through `end_dim` into one.

    The default keeps the leading batch axis: ``(N, C, H, W) -> (N, C*H*W)``.
    """

    def __init__(self, start_dim: int = 1, end_dim: int = -1, name: Optional[str] = None) -> None:
        super().__init__(name)
        self.start_dim = int(start_dim)
        self.end_dim = int(end_dim)

    def forward(self, x: Tensor) -> Tensor:
        return x.flatten(self.start_dim, self.end_dim)

    def get_config(self) -> Dict[str, Any]:
        return {"start_dim": self.start_dim, "end_dim": self.end_dim}

    @classmethod
    def from_config(cls, cfg: Dict[str, Any], context: Any = None) -> "Flatten":
        return cls(start_dim=int(cfg.get("start_dim", 1)), end_dim=int(cfg.get("end_dim", -1)))
