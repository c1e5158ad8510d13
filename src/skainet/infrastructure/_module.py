"""
Infrastructure module base class.

This module provides a concrete `Module` implementation that satisfies the
domain-level `IModule` protocol. It implements common conveniences used by
neural network layers, including:

- parameter registration and storage
- submodule registration and storage
- recursive parameter traversal (`parameters`, `named_parameters`)
- `__call__` forwarding to `forward`

Subclasses are concrete layers (Linear, activations, LayerNormalization) and
containers (Sequential).
"""

from __future__ import annotations

from typing import Any, Dict, Iterator, Optional

from ..domain._module import IModule
from ._parameter import Parameter


class Module(IModule):
    """
    Infrastructure base class for layers/modules.

    Parameters
    ----------
    name : Optional[str], optional
        Human-readable name. Defaults to the class name.

    Notes
    -----
    - Parameters and submodules can be registered explicitly (register_*) or
      implicitly by assigning them as attributes, e.g.:

          self.weight = Parameter(...)
          self.block = Sequential(...)

    - Assigning None to a registered attribute unregisters it.
    """

    def __init__(self, name: Optional[str] = None) -> None:
        super().__setattr__("_parameters", {})
        super().__setattr__("_modules", {})
        super().__setattr__("_name", name or type(self).__name__)

    def __setattr__(self, name: str, value: Any) -> None:
        if name in {"_parameters", "_modules", "_name"}:
            super().__setattr__(name, value)
            return

        if value is None:
            self._parameters.pop(name, None)
            self._modules.pop(name, None)
        elif isinstance(value, Parameter):
            self._parameters[name] = value
        elif isinstance(value, Module):
            self._modules[name] = value
        super().__setattr__(name, value)

    @property
    def name(self) -> str:
        return self._name

    @property
    def modules(self) -> list["Module"]:
        """Direct child modules in registration order."""
        return list(self._modules.values())

    def register_parameter(self, name: str, param: Optional[Parameter]) -> None:
        """
        Register a parameter with this module.

        If `param` is None, nothing is registered. An existing entry with the
        same name is overwritten.
        """
        if param is None:
            return
        self._parameters[name] = param
        super().__setattr__(name, param)

    def register_module(self, name: str, module: Optional["Module"]) -> None:
        """
        Register a child module with this module.

        If `module` is None, nothing is registered.
        """
        if module is None:
            return
        self._modules[name] = module
        super().__setattr__(name, module)

    def parameters(self) -> Iterator[Parameter]:
        """
        Iterate over this module's parameters, then its children's.
        """
        for p in self._parameters.values():
            yield p
        for m in self._modules.values():
            yield from m.parameters()

    def named_parameters(self, prefix: str = "") -> Iterator[tuple[str, Parameter]]:
        """
        Iterate over ``(qualified_name, parameter)`` pairs, recursively.

        Names are dot-joined registration names, e.g. ``"0.weight"``.
        """
        base = prefix + "." if prefix else ""
        for name, p in self._parameters.items():
            yield (f"{base}{name}", p)
        for child_name, child in self._modules.items():
            yield from child.named_parameters(f"{base}{child_name}")

    def zero_grad(self) -> None:
        for p in self.parameters():
            p.zero_grad()

    def forward(self, x):
        """
        Execute the forward computation of the module.

        Subclasses must implement this.
        """
        raise NotImplementedError

    def __call__(self, x):
        return self.forward(x)

    def get_config(self) -> Dict[str, Any]:
        """
        Return a JSON-serializable configuration for this module.

        Raises
        ------
        NotImplementedError
            If the module does not support configuration export.
        """
        raise NotImplementedError(
            f"{self.__class__.__name__} does not implement get_config(). "
            "This module cannot be serialized."
        )

    @classmethod
    def from_config(cls, cfg: Dict[str, Any], context: Any = None) -> "Module":
        """
        Reconstruct a module from a configuration dictionary.

        Parameterized layers need `context` (an `ExecutionContext`) to
        allocate their parameters.

        Raises
        ------
        NotImplementedError
            If the module does not support configuration import.
        """
        raise NotImplementedError(
            f"{cls.__name__} does not implement from_config(). "
            "This module cannot be deserialized."
        )

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self._name!r})"
