"""
Per-axis slice descriptors used to build zero-copy tensor views.

A view is described by one descriptor per parent axis:

- `All` keeps the axis unchanged;
- `Range(start, end, step)` keeps ``ceil((end - start) / step)`` positions;
- `Index(i)` removes the axis and only contributes to the view offset.

Positions may be negative, in which case they count from the end of the axis
(as with Python sequences).
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Union

from ._errors import ShapeIndexError


@dataclass(frozen=True)
class All:
    """Keep the full axis."""

    def resolve(self, dim: int, axis: int, shape: tuple[int, ...]) -> tuple[int, int, int]:
        return 0, dim, 1


@dataclass(frozen=True)
class Range:
    """
    Keep positions ``start, start + step, ...`` strictly below `end`.

    Attributes
    ----------
    start : int
        First position (inclusive).
    end : Optional[int]
        Stop position (exclusive); None means the end of the axis.
    step : int
        Positive stride between kept positions.
    """

    start: int
    end: Optional[int]
    step: int = 1

    def __post_init__(self) -> None:
        if self.step <= 0:
            raise ValueError(f"Range step must be positive, got {self.step}")

    def resolve(self, dim: int, axis: int, shape: tuple[int, ...]) -> tuple[int, int, int]:
        """
        Resolve against an axis of size `dim`.

        Returns
        -------
        tuple[int, int, int]
            ``(start, length, step)`` in absolute positions.
        """
        start = self.start + dim if self.start < 0 else self.start
        if self.end is None:
            end = dim
        else:
            end = self.end + dim if self.end < 0 else self.end
        if not 0 <= start <= dim:
            raise ShapeIndexError(self.start, shape, axis=axis, bound=dim)
        if not start <= end <= dim:
            raise ShapeIndexError(self.end, shape, axis=axis, bound=dim)
        length = -(-(end - start) // self.step)
        return start, length, self.step


@dataclass(frozen=True)
class Index:
    """Select a single position and drop the axis."""

    index: int

    def resolve(self, dim: int, axis: int, shape: tuple[int, ...]) -> int:
        position = self.index + dim if self.index < 0 else self.index
        if not 0 <= position < dim:
            raise ShapeIndexError(self.index, shape, axis=axis, bound=dim)
        return position


SliceDescriptor = Union[All, Range, Index]


def as_descriptor(item: object) -> SliceDescriptor:
    """
    Convert Python indexing syntax into a slice descriptor.

    ``int`` becomes `Index`, a ``slice`` becomes `Range` (``slice(None)``
    becomes `All`), and descriptors pass through unchanged.
    """
    if isinstance(item, (All, Range, Index)):
        return item
    if isinstance(item, slice):
        if item.start is None and item.stop is None and item.step in (None, 1):
            return All()
        return Range(item.start or 0, item.stop, item.step or 1)
    if hasattr(item, "__index__"):
        return Index(item.__index__())  # type: ignore[attr-defined]
    raise TypeError(f"Unsupported slice descriptor: {item!r}")
