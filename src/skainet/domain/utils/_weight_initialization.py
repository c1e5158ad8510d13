"""
Shared helpers for weight initialization.

This module defines the abstract `_WeightInitializer` dispatcher contract and
the fan-in / fan-out computation strategies use to scale their
distributions. The registry of concrete strategies lives in the
infrastructure layer.
"""

from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, Sequence


class _WeightInitializer(ABC):
    """
    Abstract base class for weight initializer dispatchers.

    Design notes
    ------------
    - Initializers are identified by string names.
    - Each initializer is a callable ``(tensor, rng) -> tensor`` that
      overwrites the tensor's values in place and returns it.
    """

    INITIALIZERS: Dict[str, Callable] = {}

    def __init__(self, initializer_name: str) -> None:
        ...

    @classmethod
    @abstractmethod
    def register_initializer(cls, name: str, *, overwrite: bool = False) -> Callable:
        """Return a decorator registering an initializer under `name`."""

    @abstractmethod
    def __call__(self, tensor: Any, rng: Any) -> Any:
        """Apply the selected initializer to `tensor`."""


def _calculate_fan_in_and_fan_out(shape: Sequence[int]) -> tuple[int, int]:
    """
    Compute fan-in and fan-out values for a weight shape.

    Parameters
    ----------
    shape:
        Shape of the weight tensor. Linear weights are laid out as
        ``(out_features, in_features)`` and convolution kernels as
        ``(out_channels, in_channels, k1, k2, ...)``.

    Returns
    -------
    tuple[int, int]
        A tuple of (fan_in, fan_out).
    """
    shape = tuple(int(d) for d in shape)
    if len(shape) == 0:
        return 1, 1  # scalar
    if len(shape) == 1:
        # bias-like vector
        return shape[0], shape[0]
    if len(shape) == 2:
        fan_out, fan_in = shape
        return fan_in, fan_out

    receptive_field = 1
    for d in shape[2:]:
        receptive_field *= d
    return shape[1] * receptive_field, shape[0] * receptive_field
