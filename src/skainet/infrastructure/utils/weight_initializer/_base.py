"""
Weight initializer registry and dispatch utilities.

This module defines the concrete `WeightInitializer` used by the layers to
apply registered weight initialization strategies (Xavier, Kaiming,
constants) to `Parameter` instances.

Usage example
-------------
Registering an initializer:

    @WeightInitializer.register_initializer("kaiming_uniform")
    def kaiming_uniform(param, rng):
        ...

Applying an initializer:

    init = WeightInitializer("kaiming_uniform")
    init(weight, context.rng)

Notes
-----
- Registration keys must be unique unless explicitly overwritten.
- Randomness comes only from the generator passed in, so a seeded
  `ExecutionContext` reproduces the same weights.
"""

from __future__ import annotations

from typing import Callable, ClassVar, Dict, TypeVar

import numpy as np

from ....domain.utils._weight_initialization import _WeightInitializer
from ..._parameter import Parameter

Initializer = Callable[[Parameter, np.random.Generator], Parameter]
T = TypeVar("T", bound=Initializer)


class WeightInitializer(_WeightInitializer):
    """
    Registry-backed weight initializer dispatcher.

    Parameters
    ----------
    initializer_name : str
        Registered strategy name.

    Raises
    ------
    ValueError
        If `initializer_name` is not registered.
    """

    INITIALIZERS: ClassVar[Dict[str, Initializer]] = {}

    def __init__(self, initializer_name: str) -> None:
        try:
            self._initializer: Initializer = self.INITIALIZERS[initializer_name]
        except KeyError as e:
            available = ", ".join(sorted(self.INITIALIZERS)) or "<none>"
            raise ValueError(
                f"Unsupported initializer name: {initializer_name!r}. "
                f"Available: {available}"
            ) from e
        self.name = initializer_name

    @classmethod
    def register_initializer(cls, name: str, *, overwrite: bool = False) -> Callable[[T], T]:
        """
        Decorator to register a weight initializer under `name`.

        Parameters
        ----------
        name:
            Registry key used to retrieve the initializer later.
        overwrite:
            If False (default), raises if `name` is already registered.
        """
        if not isinstance(name, str) or not name:
            raise ValueError("Initializer name must be a non-empty string")

        def decorator(func: T) -> T:
            if not overwrite and name in cls.INITIALIZERS:
                raise ValueError(f"Initializer already registered: {name!r}")
            cls.INITIALIZERS[name] = func
            return func

        return decorator

    @classmethod
    def available(cls) -> tuple[str, ...]:
        """Return registered initializer names (sorted)."""
        return tuple(sorted(cls.INITIALIZERS))

    @classmethod
    def get(cls, name: str) -> Initializer:
        return cls.INITIALIZERS[name]

    def __call__(self, tensor: Parameter, rng: np.random.Generator) -> Parameter:
        return self._initializer(tensor, rng)
