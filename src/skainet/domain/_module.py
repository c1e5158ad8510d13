"""
Module (layer) interface definitions.

This module defines the domain-level interface for neural network modules
(layers) using structural subtyping via `typing.Protocol`.

Module polymorphism is expressed over a small capability set: a module can
run a forward pass, list its child modules, and report its name. Any object
with those three members is a valid module, independent of inheritance.
"""

from __future__ import annotations

from typing import Protocol, Sequence, runtime_checkable

from ._tensor import ITensor


@runtime_checkable
class IModule(Protocol):
    """
    Domain-level module (layer) interface.

    Notes
    -----
    - `modules` lists direct children only; containers expose their layers in
      execution order.
    - This interface is safe to use with `isinstance` checks due to the
      `@runtime_checkable` decorator.
    """

    @property
    def name(self) -> str:
        """Human-readable module name."""
        ...

    @property
    def modules(self) -> Sequence["IModule"]:
        """Direct child modules."""
        ...

    def forward(self, x: ITensor) -> ITensor:
        """
        Execute the forward computation of the module.

        Parameters
        ----------
        x : ITensor
            Input tensor to the module.

        Returns
        -------
        ITensor
            Output tensor produced by the module.
        """
        ...
