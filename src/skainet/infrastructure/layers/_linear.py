"""
Fully-connected layer.
"""

from __future__ import annotations

from typing import Any, Dict, Optional

from ...domain._dtype import DType
from ...domain._errors import ShapeMismatchError
from .._module import Module
from ..module._serialization_core import register_module
from ..tensor._tensor import Tensor
from ._parameters import create_parameter


@register_module()
class Linear(Module):
    """
    Affine map ``y = x @ weight.T + bias``.

    Parameters
    ----------
    in_features : int
        Size of the last input dimension.
    out_features : int
        Size of the last output dimension.
    context : ExecutionContext
        Context the parameters are allocated in.
    bias : bool, optional
        Whether to add a learned bias. Defaults to True.
    weight_init : str, optional
        Registered initializer for the weight. Defaults to
        ``"xavier_uniform"``; the bias always starts at zero.
    dtype : Optional[DType], optional
        Parameter dtype; the context default when omitted.
    name : Optional[str], optional
        Module name.

    Notes
    -----
    `weight` is laid out ``[out_features, in_features]`` and `bias`
    ``[out_features]``.
    """

    def __init__(
        self,
        in_features: int,
        out_features: int,
        *,
        context: Any,
        bias: bool = True,
        weight_init: str = "xavier_uniform",
        dtype: Optional[DType] = None,
        name: Optional[str] = None,
    ) -> None:
        super().__init__(name)
        if int(in_features) <= 0 or int(out_features) <= 0:
            raise ValueError(
                f"{self.name}: in_features and out_features must be positive, "
                f"got {in_features} and {out_features}"
            )
        self.in_features = int(in_features)
        self.out_features = int(out_features)
        self.weight_init = weight_init
        self.weight = create_parameter(
            context,
            (self.out_features, self.in_features),
            weight_init,
            dtype=dtype,
            name=f"{self.name}.weight",
        )
        if bias:
            self.bias = create_parameter(
                context, (self.out_features,), "zeros", dtype=dtype, name=f"{self.name}.bias"
            )
        else:
            self.bias = None

    def forward(self, x: Tensor) -> Tensor:
        """
        Raises
        ------
        ShapeMismatchError
            If the last input dimension is not `in_features`.
        """
        if x.rank == 0 or x.shape[-1] != self.in_features:
            raise ShapeMismatchError(
                self.name,
                [tuple(x.shape), (self.out_features, self.in_features)],
                f"expected last input dimension {self.in_features}",
            )
        y = x @ self.weight.t()
        if self.bias is not None:
            y = y + self.bias
        return y

    def get_config(self) -> Dict[str, Any]:
        return {
            "in_features": self.in_features,
            "out_features": self.out_features,
            "bias": self.bias is not None,
            "weight_init": self.weight_init,
            "dtype": self.weight.dtype.name,
            "name": self.name,
        }

    @classmethod
    def from_config(cls, cfg: Dict[str, Any], context: Any = None) -> "Linear":
        return cls(
            int(cfg["in_features"]),
            int(cfg["out_features"]),
            context=context,
            bias=bool(cfg.get("bias", True)),
            weight_init=str(cfg.get("weight_init", "xavier_uniform")),
            dtype=DType[cfg["dtype"]] if "dtype" in cfg else None,
            name=cfg.get("name"),
        )
