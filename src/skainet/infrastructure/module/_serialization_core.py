"""
Module configuration trees.

`module_to_config` turns a module into a JSON-serializable tree and
`module_from_config` rebuilds it. Each node has the form

    {
      "type": "Linear",
      "config": {...},
      "children": { "0": <node>, "1": <node>, ... }
    }

Only classes decorated with `register_module` can be rebuilt. Parameter
values are not part of the tree; see `state_payload`.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Optional, Type

logger = logging.getLogger(__name__)

_MODULE_REGISTRY: dict[str, Type[Any]] = {}


def register_module(name: Optional[str] = None) -> Callable[[Type[Any]], Type[Any]]:
    """
    Decorator to register a Module class for configuration import.

    Parameters
    ----------
    name : Optional[str]
        Registry key; the class name when omitted.
    """

    def deco(cls: Type[Any]) -> Type[Any]:
        key = name or cls.__name__
        _MODULE_REGISTRY[key] = cls
        logger.debug("registered module type %r", key)
        return cls

    return deco


def registered_modules() -> tuple[str, ...]:
    return tuple(sorted(_MODULE_REGISTRY))


def module_to_config(m: Any) -> dict[str, Any]:
    """
    Convert a module into a JSON-serializable configuration tree.
    """
    get_cfg = getattr(m, "get_config", None)
    cfg = get_cfg() if callable(get_cfg) else {}

    children: dict[str, Any] = {}
    submods = getattr(m, "_modules", None)
    if isinstance(submods, dict):
        for name, child in submods.items():
            children[name] = module_to_config(child)

    return {"type": m.__class__.__name__, "config": cfg, "children": children}


def module_from_config(node: dict[str, Any], context: Any = None) -> Any:
    """
    Rebuild a module from a configuration tree.

    Parameters
    ----------
    node : dict
        Tree produced by `module_to_config`.
    context : ExecutionContext, optional
        Passed to each `from_config`; parameterized layers need it.

    Raises
    ------
    ValueError
        If a node names an unregistered type, or carries children for a
        module that cannot hold them.
    """
    type_name = str(node["type"])
    if type_name not in _MODULE_REGISTRY:
        raise ValueError(
            f"Unknown module type '{type_name}'. Register it via @register_module."
        )
    cls = _MODULE_REGISTRY[type_name]
    cfg = node.get("config", {}) or {}
    m = cls.from_config(cfg, context)

    children = node.get("children", {}) or {}
    if children:
        if not isinstance(getattr(m, "_modules", None), dict):
            raise ValueError(f"Module '{type_name}' cannot accept children (no _modules dict).")
        for name, child_node in children.items():
            m._modules[str(name)] = module_from_config(child_node, context)

    post = getattr(m, "_post_load", None)
    if callable(post):
        post()
    return m
