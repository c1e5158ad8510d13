from ._tensor import Tensor, concat

__all__ = [
    "Tensor",
    "concat",
]
