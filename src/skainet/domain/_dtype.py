"""
Element data types.

`DType` is a closed enumeration of the numeric element kinds a tensor can
hold. Each member knows its bit width, signedness and representable range,
and the enumeration encodes two policies:

- a closed conversion table (`is_convertible_to`): conversions outside the
  table are rejected so precision loss stays explicit at the type level;
- a common-precision rule (`common_precision_with`): floating types dominate
  integer types and wider types dominate narrower ones.

Notes
-----
The sub-byte types (`INT4`, `TERNARY`) are stored packed; see
`skainet.infrastructure.tensor.data` for the bit layouts.
"""

from __future__ import annotations

import math
from enum import Enum
from typing import Union

from ._errors import DTypePromotionError

# Whitelisted conversions besides the identity.
_CONVERSIONS: frozenset[tuple[str, str]] = frozenset(
    {
        ("FP32", "FP16"),
        ("FP16", "FP32"),
        ("INT32", "INT8"),
        ("INT8", "INT32"),
        ("INT8", "INT4"),
        ("INT4", "INT8"),
        ("FP32", "INT32"),
        ("INT32", "FP32"),
        ("FP16", "INT32"),
        ("INT32", "FP16"),
        ("TERNARY", "INT8"),
        ("INT8", "TERNARY"),
    }
)

# Highest precedence first.
_PRECEDENCE: tuple[str, ...] = ("FP32", "FP16", "INT32", "INT8", "INT4")

_ALIASES: dict[str, str] = {
    "FP32": "FP32",
    "F32": "FP32",
    "FLOAT32": "FP32",
    "FP16": "FP16",
    "F16": "FP16",
    "FLOAT16": "FP16",
    "INT32": "INT32",
    "I32": "INT32",
    "INT8": "INT8",
    "I8": "INT8",
    "INT4": "INT4",
    "I4": "INT4",
    "TERNARY": "TERNARY",
}


class DType(Enum):
    """
    Closed set of tensor element kinds.

    Members are declared as ``(bits, is_signed, is_floating, min, max)``.
    """

    FP32 = (32, True, True, -3.4028234663852886e38, 3.4028234663852886e38)
    FP16 = (16, True, True, -65504.0, 65504.0)
    INT32 = (32, True, False, -(2**31), 2**31 - 1)
    INT8 = (8, True, False, -128, 127)
    INT4 = (4, True, False, -8, 7)
    TERNARY = (2, True, False, -1, 1)

    def __init__(
        self,
        bits: int,
        is_signed: bool,
        is_floating: bool,
        min_value: Union[int, float],
        max_value: Union[int, float],
    ) -> None:
        self.bits = bits
        self.is_signed = is_signed
        self.is_floating = is_floating
        self.min_value = min_value
        self.max_value = max_value

    @property
    def is_packed(self) -> bool:
        """Whether several elements share one storage byte."""
        return self.bits < 8

    def bytes_for(self, count: int) -> int:
        """
        Number of storage bytes needed for `count` elements.
        """
        return (count * self.bits + 7) // 8

    def can_represent(self, value: Union[int, float]) -> bool:
        """
        Whether `value` lies inside this dtype's representable range.

        Integer dtypes additionally require a finite integral value. Floating
        dtypes accept non-finite values.
        """
        if not math.isfinite(value):
            return self.is_floating
        if not self.is_floating and float(value) != int(value):
            return False
        return self.min_value <= value <= self.max_value

    def is_convertible_to(self, target: "DType") -> bool:
        """
        Check whether values of this dtype may be converted to `target`.

        Parameters
        ----------
        target : DType
            Destination element type.

        Returns
        -------
        bool
            True for the identity and for whitelisted pairs only.
        """
        if self is target:
            return True
        return (self.name, target.name) in _CONVERSIONS

    def common_precision_with(self, other: "DType") -> "DType":
        """
        Resolve the dtype two operands should be computed in.

        Floating types dominate integer types; within a kind the wider type
        dominates.

        Raises
        ------
        DTypePromotionError
            If `other` is not a `DType`.
        """
        if not isinstance(other, DType):
            raise DTypePromotionError(self, other)
        if self is other:
            return self
        for name in _PRECEDENCE:
            if name in (self.name, other.name):
                return DType[name]
        raise DTypePromotionError(self, other)

    @classmethod
    def from_name(cls, name: str) -> "DType":
        """
        Look up a dtype by member name or common alias.

        Examples
        --------
        ``DType.from_name("fp32")``, ``DType.from_name("Float32")`` and
        ``DType.from_name("FP32")`` all return `DType.FP32`.
        """
        key = _ALIASES.get(str(name).strip().upper())
        if key is None:
            raise ValueError(
                f"Unknown dtype name: {name!r}. Known: {', '.join(m.name for m in cls)}"
            )
        return cls[key]

    def __repr__(self) -> str:
        return f"DType.{self.name}"
