"""
Sequential container module.

`Sequential` composes a list of child `Module` objects and applies them in
order:

    y = L_n(...L_2(L_1(x)))

Notes
-----
- The `_layers` list is the authoritative ordered view used by `forward()`.
  After configuration import, `_post_load()` rebuilds `_layers` from
  `_modules`.
"""

from __future__ import annotations

from typing import Any, Dict, Iterator, List, Optional

from .._module import Module
from ..module._serialization_core import register_module
from ..tensor._tensor import Tensor


@register_module()
class Sequential(Module):
    """
    Sequential container.

    Parameters
    ----------
    *layers : Module
        Zero or more child modules appended in order.
    name : Optional[str], optional
        Module name.
    """

    def __init__(self, *layers: Module, name: Optional[str] = None) -> None:
        super().__init__(name)
        self._layers: List[Module] = []
        for layer in layers:
            self.add(layer)

    def add(self, layer: Module, name: Optional[str] = None) -> "Sequential":
        """
        Append a module and register it as a submodule.

        If `name` is omitted, the insertion index ("0", "1", ...) is used.

        Raises
        ------
        TypeError
            If `layer` is not a `Module`.
        ValueError
            If `name` conflicts with an existing submodule.
        """
        if not isinstance(layer, Module):
            raise TypeError(f"Sequential.add expects a Module, got: {type(layer)}")
        layer_name = name if name is not None else str(len(self._layers))
        if layer_name in self._modules:
            raise ValueError(f"Duplicate layer name '{layer_name}' in Sequential.")
        self._layers.append(layer)
        self._modules[layer_name] = layer
        return self

    def forward(self, x: Tensor) -> Tensor:
        out = x
        for layer in self._layers:
            out = layer(out)
        return out

    def _post_load(self) -> None:
        self._layers = list(self._modules.values())

    def get_config(self) -> Dict[str, Any]:
        # children are stored in the module tree
        return {"name": self.name}

    @classmethod
    def from_config(cls, cfg: Dict[str, Any], context: Any = None) -> "Sequential":
        return cls(name=cfg.get("name"))

    def __len__(self) -> int:
        return len(self._layers)

    def __iter__(self) -> Iterator[Module]:
        return iter(self._layers)

    def __getitem__(self, idx: int) -> Module:
        return self._layers[idx]
