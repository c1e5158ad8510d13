"""
Base64 tensor payloads.

A payload is a JSON-safe dictionary describing one tensor:

    {
      "b64": "<base64 of the little-endian bytes>",
      "dtype": "FP32",
      "shape": [2, 3]
    }

The bytes use the same layout `TensorDataFactory.from_bytes` decodes, so
packed INT4 / TERNARY tensors round-trip without unpacking.
"""

from __future__ import annotations

import base64
from typing import Any, Dict

from ...domain._dtype import DType
from ..tensor._tensor import Tensor
from ..tensor.data import TensorData, TensorDataFactory

_FACTORY = TensorDataFactory()


def bytes_to_b64_str(b: bytes) -> str:
    """
    Encode raw bytes into a base64 ASCII string (JSON-safe).
    """
    return base64.b64encode(b).decode("ascii")


def b64_str_to_bytes(s: str) -> bytes:
    """
    Decode a base64 ASCII string back into raw bytes.
    """
    return base64.b64decode(s.encode("ascii"))


def tensor_to_payload(tensor: Tensor) -> Dict[str, Any]:
    """
    Serialize a tensor's values into a JSON-safe payload.
    """
    return {
        "b64": bytes_to_b64_str(_FACTORY.to_bytes(tensor.data)),
        "dtype": tensor.dtype.name,
        "shape": list(tensor.shape),
    }


def payload_to_data(payload: Dict[str, Any]) -> TensorData:
    """
    Decode a payload into tensor data.

    Raises
    ------
    KeyError
        If the payload lacks "b64", "dtype" or "shape".
    ValueError
        If the dtype name is unknown or the byte count does not match.
    """
    try:
        dtype = DType[str(payload["dtype"])]
    except KeyError:
        if "dtype" not in payload:
            raise
        raise ValueError(f"Unknown dtype in payload: {payload['dtype']!r}") from None
    shape = tuple(int(x) for x in payload["shape"])
    return _FACTORY.from_bytes(b64_str_to_bytes(str(payload["b64"])), dtype, shape)


def payload_to_tensor(payload: Dict[str, Any], context: Any) -> Tensor:
    """
    Decode a payload into a tensor bound to `context` (an `ExecutionContext`).
    """
    return context.wrap(payload_to_data(payload))
