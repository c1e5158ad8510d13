from ._graphviz import DotGraph, draw_dot, trace
from ._stablehlo import StableHloModule, element_type, tensor_type, to_stablehlo

__all__ = [
    "DotGraph",
    "draw_dot",
    "trace",
    "StableHloModule",
    "element_type",
    "tensor_type",
    "to_stablehlo",
]
