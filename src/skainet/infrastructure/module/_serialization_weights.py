"""
Parameter value payloads.

`state_payload` captures every parameter of a module as a base64 payload
keyed by its qualified name (``"0.weight"``); `load_state_payload` writes
such a mapping back in place.
"""

from __future__ import annotations

from typing import Any, Dict

from ..encoding._b64 import payload_to_data, tensor_to_payload


def state_payload(model: Any) -> Dict[str, Dict[str, Any]]:
    """
    Extract parameters into payloads keyed by parameter name.
    """
    named_params = getattr(model, "named_parameters", None)
    if not callable(named_params):
        raise AttributeError("Model must implement named_parameters().")
    return {str(name): tensor_to_payload(p) for name, p in named_params()}


def load_state_payload(model: Any, payloads: Dict[str, Dict[str, Any]]) -> None:
    """
    In-place load of parameters from payloads.

    Raises
    ------
    KeyError
        If a parameter key is missing from `payloads`.
    ValueError
        If a payload's shape or dtype does not match the parameter.
    """
    named_params = getattr(model, "named_parameters", None)
    if not callable(named_params):
        raise AttributeError("Model must implement named_parameters().")

    for name, p in named_params():
        key = str(name)
        if key not in payloads:
            raise KeyError(f"Missing parameter in payload: '{key}'")
        data = payload_to_data(payloads[key])
        if tuple(data.shape) != tuple(p.shape):
            raise ValueError(
                f"Shape mismatch for '{key}': model {tuple(p.shape)} vs payload {tuple(data.shape)}"
            )
        if data.dtype is not p.dtype:
            raise ValueError(
                f"DType mismatch for '{key}': model {p.dtype.name} vs payload {data.dtype.name}"
            )
        p.copy_from_numpy(data.to_numpy())
