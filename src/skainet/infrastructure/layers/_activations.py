"""
Activation modules.

Each module wraps the tensor method of the same name; none holds
parameters. `Softmax` keeps its normalization axis in its configuration.
"""

from __future__ import annotations

from typing import Any, Dict, Optional

from ...domain.model._stateless_mixin import StatelessConfigMixin
from .._module import Module
from ..module._serialization_core import register_module
from ..tensor._tensor import Tensor


@register_module()
class ReLU(StatelessConfigMixin, Module):
    """``max(x, 0)`` element-wise."""

    def forward(self, x: Tensor) -> Tensor:
        return x.relu()


@register_module()
class Sigmoid(StatelessConfigMixin, Module):
    def forward(self, x: Tensor) -> Tensor:
        return x.sigmoid()


@register_module()
class Tanh(StatelessConfigMixin, Module):
    def forward(self, x: Tensor) -> Tensor:
        return x.tanh()


@register_module()
class SiLU(StatelessConfigMixin, Module):
    """``x * sigmoid(x)``."""

    def forward(self, x: Tensor) -> Tensor:
        return x.silu()


@register_module()
class GELU(StatelessConfigMixin, Module):
    """Gaussian error linear unit (tanh approximation)."""

    def forward(self, x: Tensor) -> Tensor:
        return x.gelu()


@register_module()
class Softmax(Module):
    """
    Softmax along `dim`.

    Parameters
    ----------
    dim : int, optional
        Normalization axis. Defaults to the last axis.
    """

    def __init__(self, dim: int = -1, name: Optional[str] = None) -> None:
        super().__init__(name)
        self.dim = int(dim)

    def forward(self, x: Tensor) -> Tensor:
        return x.softmax(self.dim)

    def get_config(self) -> Dict[str, Any]:
        return {"dim": self.dim}

    @classmethod
    def from_config(cls, cfg: Dict[str, Any], context: Any = None) -> "Softmax":
        return cls(dim=int(cfg.get("dim", -1)))
