from ._b64 import (
    b64_str_to_bytes,
    bytes_to_b64_str,
    payload_to_data,
    payload_to_tensor,
    tensor_to_payload,
)

__all__ = [
    "b64_str_to_bytes",
    "bytes_to_b64_str",
    "payload_to_data",
    "payload_to_tensor",
    "tensor_to_payload",
]
