"""
Constant weight initializers.

- ``zeros``: every element set to zero (biases, deterministic setups).
- ``ones``: every element set to one (normalization scales).

The generator argument is accepted for a uniform signature and unused.
"""

import numpy as np

from ..._parameter import Parameter
from ._base import WeightInitializer


@WeightInitializer.register_initializer("zeros")
def zeros(param: Parameter, rng: np.random.Generator) -> Parameter:
    param.copy_from_numpy(np.zeros(tuple(param.shape)))
    return param


@WeightInitializer.register_initializer("ones")
def ones(param: Parameter, rng: np.random.Generator) -> Parameter:
    param.copy_from_numpy(np.ones(tuple(param.shape)))
    return param
