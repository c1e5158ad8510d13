"""
Xavier/Glorot weight initializers.

Implemented variants
--------------------
- ``xavier_uniform``:
    ``U(-sqrt(6/(fan_in+fan_out)), +sqrt(6/(fan_in+fan_out)))``.
- ``xavier_normal``:
    Zero-mean normal with ``std = sqrt(2 / (fan_in + fan_out))``.

Fan-in and fan-out are computed from the parameter shape via
``_calculate_fan_in_and_fan_out``.
"""

import math

import numpy as np

from ....domain.utils._weight_initialization import _calculate_fan_in_and_fan_out
from ..._parameter import Parameter
from ._base import WeightInitializer


def _fans(param: Parameter) -> tuple[int, int]:
    fan_in, fan_out = _calculate_fan_in_and_fan_out(tuple(param.shape))
    return max(1, int(fan_in)), max(1, int(fan_out))


@WeightInitializer.register_initializer("xavier_uniform")
def xavier_uniform(param: Parameter, rng: np.random.Generator) -> Parameter:
    """
    Apply Xavier (Glorot) uniform initialization.

    Parameters
    ----------
    param:
        The parameter to initialize in place.
    rng:
        Source of randomness.

    Returns
    -------
    Parameter
        The initialized parameter (same object).
    """
    fan_in, fan_out = _fans(param)
    bound = math.sqrt(6.0 / float(fan_in + fan_out))
    param.copy_from_numpy(rng.uniform(-bound, bound, size=tuple(param.shape)))
    return param


@WeightInitializer.register_initializer("xavier_normal")
def xavier_normal(param: Parameter, rng: np.random.Generator) -> Parameter:
    """
    Apply Xavier (Glorot) normal initialization.

    Weights are drawn from ``N(0, std^2)`` with
    ``std = sqrt(2 / (fan_in + fan_out))``.
    """
    fan_in, fan_out = _fans(param)
    std = math.sqrt(2.0 / float(fan_in + fan_out))
    param.copy_from_numpy(rng.normal(0.0, std, size=tuple(param.shape)))
    return param
