from ._serialization_core import (
    module_from_config,
    module_to_config,
    register_module,
    registered_modules,
)
from ._serialization_weights import load_state_payload, state_payload

__all__ = [
    "load_state_payload",
    "module_from_config",
    "module_to_config",
    "register_module",
    "registered_modules",
    "state_payload",
]
