"""
Kaiming (He) weight initializers.

Implemented variants
--------------------
- ``kaiming_uniform``:
    ``U(-sqrt(6/fan_in), +sqrt(6/fan_in))`` (ReLU gain).
- ``kaiming_normal``:
    Zero-mean normal with ``std = sqrt(2 / fan_in)``.
"""

import math

import numpy as np

from ....domain.utils._weight_initialization import _calculate_fan_in_and_fan_out
from ..._parameter import Parameter
from ._base import WeightInitializer


@WeightInitializer.register_initializer("kaiming_uniform")
def kaiming_uniform(param: Parameter, rng: np.random.Generator) -> Parameter:
    fan_in, _ = _calculate_fan_in_and_fan_out(tuple(param.shape))
    bound = math.sqrt(6.0 / float(max(1, fan_in)))
    param.copy_from_numpy(rng.uniform(-bound, bound, size=tuple(param.shape)))
    return param


@WeightInitializer.register_initializer("kaiming_normal")
def kaiming_normal(param: Parameter, rng: np.random.Generator) -> Parameter:
    """
    Apply Kaiming (He) normal initialization for ReLU networks.

    Weights are drawn from ``N(0, 2 / fan_in)``.
    """
    fan_in, _ = _calculate_fan_in_and_fan_out(tuple(param.shape))
    std = math.sqrt(2.0 / float(max(1, fan_in)))
    param.copy_from_numpy(rng.normal(0.0, std, size=tuple(param.shape)))
    return param
