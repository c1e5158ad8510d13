"""
Tensor interface definitions.

This module defines the domain-level contracts for tensor storage and tensors
using structural typing:

- `ITensorData` is an indexed value container bound to a `Shape` and a
  `DType`. Dense, view, packed and void backings all satisfy it.
- `ITensor` is the composition of one `ITensorData` with one bound
  `ITensorOps` implementation.

Notes
-----
Neither protocol refers to a concrete array library. Infrastructure
implementations expose their numeric buffers through `to_numpy()` so kernels
can operate on them, but domain code only relies on `get`/`set`.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Protocol, Union, runtime_checkable

from ._dtype import DType
from ._shape import Shape

if TYPE_CHECKING:
    from ._tensor_ops import ITensorOps

Number = Union[int, float]


@runtime_checkable
class ITensorData(Protocol):
    """
    Indexed multi-dimensional value container.

    Notes
    -----
    - `get` and `set` take one integer index per axis and fail with
      `ShapeIndexError` when the index tuple does not address an element.
    - `set` on integer and packed dtypes rejects values outside the dtype's
      range instead of wrapping them.
    """

    @property
    def shape(self) -> Shape:
        """Logical shape of the data."""
        ...

    @property
    def dtype(self) -> DType:
        """Element type of the data."""
        ...

    @property
    def strides(self) -> tuple[int, ...]:
        """Element strides used to address the backing store."""
        ...

    @property
    def offset(self) -> int:
        """Element offset of index ``(0, ..., 0)`` in the backing store."""
        ...

    def get(self, *indices: int) -> Number:
        """Read the element at `indices`."""
        ...

    def set(self, *indices: int, value: Number) -> None:
        """Write `value` at `indices`."""
        ...

    def materialize(self) -> "ITensorData":
        """Return an independent dense copy of the data."""
        ...

    def to_numpy(self) -> Any:
        """Return the values as a freshly allocated array."""
        ...


@runtime_checkable
class ITensor(Protocol):
    """
    Tensor interface.

    A tensor pairs exactly one `ITensorData` with exactly one `ITensorOps`
    binding. Numeric methods dispatch to the bound ops object, so the same
    tensor API works with dense CPU kernels, shape-only backends, mocks or
    recording wrappers.
    """

    @property
    def data(self) -> ITensorData:
        """The tensor's storage."""
        ...

    @property
    def ops(self) -> "ITensorOps":
        """The operations binding used to compute on this tensor."""
        ...

    @property
    def shape(self) -> Shape:
        """Logical shape."""
        ...

    @property
    def dtype(self) -> DType:
        """Element type."""
        ...

    @property
    def requires_grad(self) -> bool:
        """Whether gradient tapes treat this tensor as watched."""
        ...

    def to_numpy(self) -> Any:
        """Return the values as a freshly allocated array."""
        ...
