"""
Parameter allocation shared by the parameterized layers.
"""

from __future__ import annotations

from typing import Any, Optional, Sequence

from ...domain._dtype import DType
from .._parameter import Parameter
from ..utils.weight_initializer import WeightInitializer


def create_parameter(
    context: Any,
    shape: Sequence[int],
    initializer: str,
    *,
    dtype: Optional[DType] = None,
    name: Optional[str] = None,
) -> Parameter:
    """
    Allocate a parameter bound to `context` and fill it with `initializer`.

    Parameters
    ----------
    context : ExecutionContext
        Supplies storage, ops (so uses of the parameter are recorded on the
        context's tapes) and the random generator.
    shape : Sequence[int]
        Parameter shape.
    initializer : str
        Registered `WeightInitializer` name.
    """
    if context is None:
        raise ValueError(f"parameter {name or ''!r} needs an execution context")
    init = WeightInitializer(initializer)
    dtype = dtype or context.default_dtype
    if not dtype.is_floating:
        raise TypeError(f"parameters must be floating point, got {dtype.name}")
    data = context.factory.zeros(tuple(shape), dtype)
    param = Parameter(data, context.ops_for(dtype), name=name)
    return init(param, context.rng)
