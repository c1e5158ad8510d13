"""
In-memory dataset backed by numpy arrays.
"""

from __future__ import annotations

from typing import Any, Optional

import numpy as np

from ...domain._dataset import DataBatch, Dataset
from ...domain._dtype import DType
from ..tensor._tensor import Tensor


def _default_dtype(values: np.ndarray, context: Any) -> DType:
    if np.issubdtype(values.dtype, np.integer) or np.issubdtype(values.dtype, np.bool_):
        return DType.INT32
    return context.default_dtype


class ArrayDataset(Dataset[Tensor]):
    """
    Samples are the rows (leading axis) of `x` and `y`.

    Parameters
    ----------
    x, y : array-like
        Inputs and targets with the same number of rows.
    context : ExecutionContext
        Binds the produced tensors and supplies the shuffling generator.
    x_dtype, y_dtype : Optional[DType]
        Tensor dtypes. Integer arrays default to INT32, others to the
        context default dtype.

    Raises
    ------
    ValueError
        If `x` and `y` have different row counts or are 0-d.
    """

    def __init__(
        self,
        x: Any,
        y: Any,
        context: Any,
        *,
        x_dtype: Optional[DType] = None,
        y_dtype: Optional[DType] = None,
    ) -> None:
        self._x = np.asarray(x)
        self._y = np.asarray(y)
        if self._x.ndim == 0 or self._y.ndim == 0:
            raise ValueError("ArrayDataset needs arrays with a leading sample axis")
        if self._x.shape[0] != self._y.shape[0]:
            raise ValueError(
                f"x has {self._x.shape[0]} samples but y has {self._y.shape[0]}"
            )
        self.context = context
        self.x_dtype = x_dtype or _default_dtype(self._x, context)
        self.y_dtype = y_dtype or _default_dtype(self._y, context)

    def _derived(self, x: np.ndarray, y: np.ndarray) -> "ArrayDataset":
        return ArrayDataset(x, y, self.context, x_dtype=self.x_dtype, y_dtype=self.y_dtype)

    @property
    def x_size(self) -> int:
        return int(self._x.shape[0])

    def get_x(self, index: int) -> Tensor:
        return self.context.tensor(self._x[index], self.x_dtype)

    def get_y(self, index: int) -> Tensor:
        return self.context.tensor(self._y[index], self.y_dtype)

    def split(self, ratio: float) -> tuple["ArrayDataset", "ArrayDataset"]:
        """
        The first ``floor(x_size * ratio)`` samples form the first part.

        Raises
        ------
        ValueError
            If `ratio` is not strictly between 0 and 1.
        """
        if not 0.0 < ratio < 1.0:
            raise ValueError(f"split ratio must be in (0, 1), got {ratio}")
        cut = int(self.x_size * ratio)
        return (
            self._derived(self._x[:cut], self._y[:cut]),
            self._derived(self._x[cut:], self._y[cut:]),
        )

    def shuffle(self) -> "ArrayDataset":
        order = self.context.rng.permutation(self.x_size)
        return self._derived(self._x[order], self._y[order])

    def create_batch(self, indices: list[int]) -> DataBatch[Tensor]:
        rows = np.asarray(indices, dtype=np.int64)
        return DataBatch(
            self.context.tensor(self._x[rows], self.x_dtype),
            self.context.tensor(self._y[rows], self.y_dtype),
        )
