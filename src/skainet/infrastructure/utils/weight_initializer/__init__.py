"""
Weight initialization public API.

Importing this package registers the built-in strategies (``xavier_uniform``,
``xavier_normal``, ``kaiming_uniform``, ``kaiming_normal``, ``zeros``,
``ones``) into the `WeightInitializer` registry.
"""

from ._base import WeightInitializer
from ._constants import ones, zeros
from ._kaiming import kaiming_normal, kaiming_uniform
from ._xavier import xavier_normal, xavier_uniform

__all__ = [
    "WeightInitializer",
    "kaiming_normal",
    "kaiming_uniform",
    "ones",
    "xavier_normal",
    "xavier_uniform",
    "zeros",
]
