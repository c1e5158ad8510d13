"""
Neural network layers.

Parameterized layers (`Linear`, `Conv2d`, `LayerNormalization`) allocate
their parameters in an `ExecutionContext`; activations, `MaxPool2d` and
`Flatten` are stateless.
"""

from ._activations import GELU, ReLU, SiLU, Sigmoid, Softmax, Tanh
from ._conv2d import Conv2d
from ._flatten import Flatten
from ._layernorm import LayerNormalization
from ._linear import Linear
from ._maxpool2d import MaxPool2d
from ._parameters import create_parameter

__all__ = [
    "Conv2d",
    "Flatten",
    "GELU",
    "LayerNormalization",
    "Linear",
    "MaxPool2d",
    "ReLU",
    "SiLU",
    "Sigmoid",
    "Softmax",
    "Tanh",
    "create_parameter",
]
