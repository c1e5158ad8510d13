"""
Trainable parameter tensors.

`Parameter` is a `Tensor` that modules own and optimizers update. It adds a
gradient slot and the two in-place writes the training loop needs
(`copy_from_numpy`, `copy_from`); every other operation behaves exactly
like a plain tensor, including tape recording through its bound ops.
"""

from __future__ import annotations

from typing import Optional

import numpy as np

from ..domain._errors import ShapeMismatchError
from ..domain._tensor import ITensorData
from ..domain._tensor_ops import ITensorOps
from .tensor._tensor import Tensor
from .tensor.data import TensorDataFactory

_FACTORY = TensorDataFactory()


class Parameter(Tensor):
    """
    Tensor subclass representing a trainable parameter.

    Parameters
    ----------
    data : ITensorData
        Initial storage.
    ops : ITensorOps
        Operations binding; use the context's ops so the parameter's
        operations are recorded on that context's tapes.
    requires_grad : bool, optional
        Defaults to True.
    name : Optional[str], optional
        Label used in reprs and weight payloads.

    Notes
    -----
    - `grad` is None until a gradient is set or accumulated.
    - Parameters hash by identity, so they can key gradient maps.
    """

    def __init__(
        self,
        data: ITensorData,
        ops: ITensorOps,
        *,
        requires_grad: bool = True,
        name: Optional[str] = None,
    ) -> None:
        super().__init__(data, ops, requires_grad=requires_grad, name=name)
        self._grad: Optional[Tensor] = None

    @classmethod
    def from_tensor(cls, tensor: Tensor, *, name: Optional[str] = None) -> "Parameter":
        """Wrap an existing tensor's data and ops as a parameter."""
        return cls(tensor.data, tensor.ops, requires_grad=True, name=name or tensor.name)

    @property
    def grad(self) -> Optional[Tensor]:
        return self._grad

    def zero_grad(self) -> None:
        """Clear the stored gradient."""
        self._grad = None

    def set_grad(self, grad: Optional[Tensor]) -> None:
        """
        Replace the stored gradient.

        Raises
        ------
        ShapeMismatchError
            If `grad` does not have this parameter's shape.
        """
        if grad is not None and tuple(grad.shape) != tuple(self.shape):
            raise ShapeMismatchError("set_grad", [tuple(self.shape), tuple(grad.shape)])
        self._grad = grad

    def accumulate_grad(self, grad: Tensor) -> None:
        """Add `grad` to the stored gradient (or store it when empty)."""
        if self._grad is None:
            self.set_grad(grad)
            return
        if tuple(grad.shape) != tuple(self.shape):
            raise ShapeMismatchError("accumulate_grad", [tuple(self.shape), tuple(grad.shape)])
        total = self._grad.to_numpy() + grad.to_numpy()
        self._grad = Tensor(_FACTORY.from_array(total, self.dtype), self.ops)

    def copy_from_numpy(self, values: np.ndarray) -> None:
        """
        Overwrite the parameter values in place.

        Raises
        ------
        ShapeMismatchError
            If `values` does not have this parameter's shape.
        """
        values = np.asarray(values)
        if values.shape != tuple(self.shape):
            raise ShapeMismatchError("copy_from_numpy", [tuple(self.shape), values.shape])
        self._data = _FACTORY.from_array(values, self.dtype)

    def copy_from(self, other: Tensor) -> None:
        """Overwrite the parameter values with those of `other`."""
        self.copy_from_numpy(other.to_numpy())

    def __repr__(self) -> str:
        label = f", name={self.name!r}" if self.name else ""
        return f"Parameter(shape={tuple(self.shape)}, dtype={self.dtype.name}{label})"
