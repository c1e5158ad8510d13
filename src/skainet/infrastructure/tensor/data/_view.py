"""
Zero-copy views over strided tensor storage.

A view shares its parent's backing buffer and carries its own shape, strides
and offset. Every element access goes through the same address formula as
the parent, so writes through a view are visible in the parent and vice
versa. Views of views compose by deriving from the parent's strides and
offset.

Notes
-----
The view keeps a reference to the data it was derived from but does not
manage its lifetime; treat the parent as read-only while a view is being
written through.
"""

from __future__ import annotations

from typing import Sequence

from ....domain._errors import ShapeIndexError
from ....domain._shape import Shape
from ....domain._slice import All, Index, as_descriptor
from ._strided import StridedTensorData


class ViewTensorData(StridedTensorData):
    """
    Strided window into another `StridedTensorData`.

    Parameters
    ----------
    parent : StridedTensorData
        Data whose buffer is shared.
    shape : Shape
        Derived shape.
    strides : Sequence[int]
        Derived strides, in elements of the shared buffer.
    offset : int
        Derived offset, in elements of the shared buffer.

    Raises
    ------
    ShapeIndexError
        If the addressable range falls outside the parent buffer.
    """

    def __init__(
        self,
        parent: StridedTensorData,
        shape: Shape,
        strides: Sequence[int],
        offset: int,
    ) -> None:
        super().__init__(parent.buffer, shape, parent.dtype, strides, offset)
        self._parent = parent
        if shape.volume > 0:
            last = offset + sum((d - 1) * s for d, s in zip(shape, self._strides))
            if offset < 0 or last >= parent.buffer.size:
                raise ShapeIndexError(
                    (offset, last),
                    tuple(shape),
                    message=(
                        f"View range [{offset}, {last}] exceeds parent buffer of "
                        f"{parent.buffer.size} elements."
                    ),
                )

    @property
    def parent(self) -> StridedTensorData:
        """The data this view was derived from."""
        return self._parent

    @classmethod
    def from_slices(cls, parent: StridedTensorData, descriptors: Sequence[object]) -> "ViewTensorData":
        """
        Derive a view from one slice descriptor per parent axis.

        Parameters
        ----------
        parent : StridedTensorData
            Data to view.
        descriptors : Sequence[object]
            `All`, `Range`, `Index`, or the equivalent Python ``slice`` /
            ``int``. Missing trailing axes are treated as `All`.

        Returns
        -------
        ViewTensorData
            The derived view. `Index` axes are removed from the shape.
        """
        dims = parent.shape.dimensions
        if len(descriptors) > len(dims):
            raise ShapeIndexError(
                tuple(descriptors),
                dims,
                bound=len(dims),
                message=f"Got {len(descriptors)} slice descriptors for rank {len(dims)} shape {dims}.",
            )
        resolved = [as_descriptor(d) for d in descriptors]
        resolved += [All()] * (len(dims) - len(resolved))

        shape: list[int] = []
        strides: list[int] = []
        offset = parent.offset
        for axis, (desc, dim, stride) in enumerate(zip(resolved, dims, parent.strides)):
            if isinstance(desc, Index):
                offset += desc.resolve(dim, axis, dims) * stride
                continue
            start, length, step = desc.resolve(dim, axis, dims)
            shape.append(length)
            strides.append(stride * step)
            offset += start * stride
        return cls(parent, Shape(shape), strides, offset)

    @classmethod
    def permuted(cls, parent: StridedTensorData, axes: Sequence[int]) -> "ViewTensorData":
        """
        Reorder the axes of `parent` without copying.
        """
        rank = parent.shape.rank
        normalized = [parent.shape.normalize_axis(a) for a in axes]
        if sorted(normalized) != list(range(rank)):
            raise ValueError(f"axes {tuple(axes)} are not a permutation of range({rank})")
        shape = Shape(parent.shape[a] for a in normalized)
        strides = [parent.strides[a] for a in normalized]
        return cls(parent, shape, strides, parent.offset)
