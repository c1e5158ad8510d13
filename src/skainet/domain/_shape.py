"""
Immutable tensor shapes.

`Shape` is an ordered vector of non-negative dimension sizes. It owns the
row-major (C order) index arithmetic shared by every tensor backing: volume,
rank, strides, and the mapping from an index tuple to a flat offset.
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import Iterator, Sequence, Union, overload

from ._errors import ShapeIndexError


def _coerce_dim(value: object) -> int:
    # numpy integers satisfy __index__
    try:
        dim = value.__index__()  # type: ignore[attr-defined]
    except (AttributeError, TypeError):
        raise ValueError(f"Shape dimensions must be integers, got {value!r}") from None
    if dim < 0:
        raise ValueError(f"Shape dimensions must be non-negative, got {dim}")
    return dim


def row_major_strides(dims: Sequence[int]) -> tuple[int, ...]:
    """
    Compute row-major element strides for the given dimensions.

    Parameters
    ----------
    dims : Sequence[int]
        Dimension sizes.

    Returns
    -------
    tuple[int, ...]
        Strides where ``stride[-1] == 1`` and
        ``stride[i] == stride[i + 1] * dims[i + 1]``.
    """
    strides = [1] * len(dims)
    for i in range(len(dims) - 2, -1, -1):
        strides[i] = strides[i + 1] * dims[i + 1]
    return tuple(strides)


class Shape:
    """
    Immutable dimension vector.

    A Shape can be constructed from positional sizes (``Shape(2, 3)``) or
    from a single iterable (``Shape([2, 3])``). The dimensions are copied
    into a tuple, so mutating the caller's list afterwards has no effect.

    Notes
    -----
    - The empty shape ``Shape()`` describes a scalar and has volume 1.
    - Equality and hashing are structural over the dimensions.
    """

    __slots__ = ("_dims", "_strides")

    def __init__(self, *dimensions: Union[int, Iterable[int]]) -> None:
        if len(dimensions) == 1 and isinstance(dimensions[0], Iterable):
            source = tuple(dimensions[0])  # type: ignore[arg-type]
        else:
            source = dimensions
        self._dims: tuple[int, ...] = tuple(_coerce_dim(d) for d in source)
        self._strides: tuple[int, ...] = row_major_strides(self._dims)

    @property
    def dimensions(self) -> tuple[int, ...]:
        """Dimension sizes as a tuple."""
        return self._dims

    @property
    def rank(self) -> int:
        """Number of dimensions."""
        return len(self._dims)

    @property
    def volume(self) -> int:
        """Product of the dimensions (1 for a scalar shape)."""
        volume = 1
        for d in self._dims:
            volume *= d
        return volume

    @property
    def strides(self) -> tuple[int, ...]:
        """Row-major element strides."""
        return self._strides

    def index(self, indices: Sequence[int]) -> int:
        """
        Map an index tuple to its row-major flat offset.

        Parameters
        ----------
        indices : Sequence[int]
            One index per axis.

        Returns
        -------
        int
            Flat offset in ``[0, volume)``.

        Raises
        ------
        ShapeIndexError
            If the number of indices differs from the rank or any index is
            outside ``[0, dimensions[axis])``.
        """
        indices = tuple(indices)
        if len(indices) != len(self._dims):
            raise ShapeIndexError(indices, self._dims, bound=len(self._dims))
        offset = 0
        for axis, (i, dim, stride) in enumerate(zip(indices, self._dims, self._strides)):
            if not 0 <= i < dim:
                raise ShapeIndexError(i, self._dims, axis=axis, bound=dim)
            offset += i * stride
        return offset

    def unravel(self, flat: int) -> tuple[int, ...]:
        """
        Inverse of `index`: map a flat offset back to an index tuple.
        """
        if not 0 <= flat < self.volume:
            raise ShapeIndexError(flat, self._dims, axis=0, bound=self.volume)
        out = []
        for stride in self._strides:
            q, flat = divmod(flat, stride)
            out.append(q)
        return tuple(out)

    def normalize_axis(self, axis: int) -> int:
        """
        Resolve a possibly negative axis against this rank.
        """
        rank = len(self._dims)
        resolved = axis + rank if axis < 0 else axis
        if not 0 <= resolved < rank:
            raise ShapeIndexError(
                axis,
                self._dims,
                axis=axis,
                bound=rank,
                message=f"Axis {axis} is out of range for rank {rank} (shape {self._dims}).",
            )
        return resolved

    # ------------------------------------------------------------------
    # Sequence protocol
    # ------------------------------------------------------------------
    def __len__(self) -> int:
        return len(self._dims)

    def __iter__(self) -> Iterator[int]:
        return iter(self._dims)

    @overload
    def __getitem__(self, item: int) -> int: ...

    @overload
    def __getitem__(self, item: slice) -> "Shape": ...

    def __getitem__(self, item):
        if isinstance(item, slice):
            return Shape(self._dims[item])
        return self._dims[item]

    def __eq__(self, other: object) -> bool:
        if isinstance(other, Shape):
            return self._dims == other._dims
        if isinstance(other, tuple):
            return self._dims == other
        return NotImplemented

    def __hash__(self) -> int:
        return hash(self._dims)

    def __repr__(self) -> str:
        return f"Shape{self._dims}" if len(self._dims) != 1 else f"Shape({self._dims[0]},)"
