"""
Stateless configuration mixin.

This module defines `StatelessConfigMixin`, a helper mixin for modules whose
behavior does not depend on any configurable hyperparameters.

It provides no-op serialization and deserialization hooks, allowing stateless
layers (fixed activations, structural layers) to participate uniformly in
model configuration export and reconstruction without special cases.
"""

from typing import Any, Dict

from typing_extensions import Self


class StatelessConfigMixin:
    """
    Mixin providing configuration hooks for stateless modules.
    """

    def get_config(self) -> Dict[str, Any]:
        """
        Return a JSON-serializable configuration dictionary.

        Returns
        -------
        Dict[str, Any]
            An empty configuration dictionary.
        """
        return {}

    @classmethod
    def from_config(cls, cfg: Dict[str, Any], context: Any = None) -> Self:
        """
        Reconstruct the module from a configuration dictionary.

        The configuration and the execution context are ignored; a default
        instance of the class is returned.
        """
        return cls()
