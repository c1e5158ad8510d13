"""
Layer normalization.

The forward pass is composed from tensor operations (`mean`, `variance`,
`sqrt`, element-wise arithmetic), so it is recorded on tapes and
differentiated by the gradient tape like any other computation:

    y = (x - mean(x)) / sqrt(var(x) + eps) * gamma + beta

The statistics are taken over the trailing `normalized_shape` dimensions,
which are flattened into one axis for the reduction.
"""

from __future__ import annotations

import math
from typing import Any, Dict, Iterable, Optional, Tuple, Union

from ...domain._dtype import DType
from ...domain._errors import ShapeMismatchError
from .._module import Module
from ..module._serialization_core import register_module
from ..tensor._tensor import Tensor
from ._parameters import create_parameter


def _as_tuple_ints(shape: Union[int, Iterable[int]]) -> Tuple[int, ...]:
    if isinstance(shape, int):
        return (shape,)
    return tuple(int(d) for d in shape)


@register_module()
class LayerNormalization(Module):
    """
    Layer normalization over the last ``len(normalized_shape)`` dimensions.

    Parameters
    ----------
    normalized_shape : int | Iterable[int]
        Shape of the trailing dimensions to normalize.
    context : ExecutionContext
        Context the affine parameters are allocated in. May be None when
        `elementwise_affine` is False.
    eps : float, default=1e-5
        Added to the variance before the square root.
    elementwise_affine : bool, default=True
        If True, learnable `gamma` (ones) and `beta` (zeros) of shape
        `normalized_shape` are applied after normalization.
    """

    def __init__(
        self,
        normalized_shape: Union[int, Iterable[int]],
        *,
        context: Any = None,
        eps: float = 1e-5,
        elementwise_affine: bool = True,
        dtype: Optional[DType] = None,
        name: Optional[str] = None,
    ) -> None:
        super().__init__(name)
        self.normalized_shape = _as_tuple_ints(normalized_shape)
        if not self.normalized_shape or any(d <= 0 for d in self.normalized_shape):
            raise ValueError(
                f"{self.name}: normalized_shape must be non-empty and positive, "
                f"got {self.normalized_shape}"
            )
        self.eps = float(eps)
        self.elementwise_affine = bool(elementwise_affine)

        if self.elementwise_affine:
            self.gamma = create_parameter(
                context, self.normalized_shape, "ones", dtype=dtype, name=f"{self.name}.gamma"
            )
            self.beta = create_parameter(
                context, self.normalized_shape, "zeros", dtype=dtype, name=f"{self.name}.beta"
            )
        else:
            self.gamma = None
            self.beta = None

    def forward(self, x: Tensor) -> Tensor:
        """
        Raises
        ------
        ShapeMismatchError
            If the trailing input dimensions differ from `normalized_shape`.
        """
        k = len(self.normalized_shape)
        if x.rank < k or tuple(x.shape[-k:]) != self.normalized_shape:
            raise ShapeMismatchError(
                self.name,
                [tuple(x.shape), self.normalized_shape],
                f"trailing dimensions must equal {self.normalized_shape}",
            )

        prefix = tuple(x.shape[:-k])
        flat = x.reshape(prefix + (math.prod(self.normalized_shape),))
        mean = flat.mean(dim=-1, keepdim=True)
        var = flat.variance(dim=-1, keepdim=True)
        normalized = (flat - mean) / (var + self.eps).sqrt()
        y = normalized.reshape(prefix + self.normalized_shape)

        if self.elementwise_affine:
            y = y * self.gamma + self.beta
        return y

    def get_config(self) -> Dict[str, Any]:
        cfg: Dict[str, Any] = {
            "normalized_shape": list(self.normalized_shape),
            "eps": self.eps,
            "elementwise_affine": self.elementwise_affine,
            "name": self.name,
        }
        if self.gamma is not None:
            cfg["dtype"] = self.gamma.dtype.name
        return cfg

    @classmethod
    def from_config(cls, cfg: Dict[str, Any], context: Any = None) -> "LayerNormalization":
        return cls(
            tuple(int(d) for d in cfg["normalized_shape"]),
            context=context,
            eps=float(cfg.get("eps", 1e-5)),
            elementwise_affine=bool(cfg.get("elementwise_affine", True)),
            dtype=DType[cfg["dtype"]] if "dtype" in cfg else None,
            name=cfg.get("name"),
        )
