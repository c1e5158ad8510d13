"""
Stochastic Gradient Descent (SGD) optimizer.

The optimizer updates `Parameter` instances in place from their gradients:
either the gradients stored on the parameters (`p.grad`) or a gradient map
as returned by `GradientTape.compute_gradients`.

Design notes
------------
- Parameters without a gradient are skipped, so frozen weights and partial
  graphs need no special handling.
- Updates are computed on numpy values and written with `copy_from_numpy`,
  so an optimizer step is never recorded on an active tape.
"""

from __future__ import annotations

import logging
from typing import Iterable, Mapping, Optional

import numpy as np

from .._parameter import Parameter
from ..tensor._tensor import Tensor

logger = logging.getLogger(__name__)


class SGD:
    """
    Stochastic Gradient Descent optimizer.

    Update rule
    -----------
    For each parameter ``p`` with gradient ``g``:

    - If ``weight_decay > 0`` (classical L2 regularization):
        ``g <- g + weight_decay * p``
    - Parameter update:
        ``p <- p - lr * g``

    Parameters
    ----------
    params : Iterable[Parameter]
        Parameters to be optimized.
    lr : float, optional
        Learning rate. Must be positive. Defaults to 1e-3.
    weight_decay : float, optional
        Classical L2 weight decay coefficient. Must be non-negative.

    Raises
    ------
    ValueError
        If ``lr <= 0`` or ``weight_decay < 0``.
    """

    def __init__(
        self,
        params: Iterable[Parameter],
        *,
        lr: float = 1e-3,
        weight_decay: float = 0.0,
    ) -> None:
        self.params = list(params)
        self.lr = float(lr)
        self.weight_decay = float(weight_decay)

        if self.lr <= 0.0:
            raise ValueError(f"lr must be > 0, got {self.lr}")
        if self.weight_decay < 0.0:
            raise ValueError(f"weight_decay must be >= 0, got {self.weight_decay}")

    def zero_grad(self) -> None:
        for p in self.params:
            p.zero_grad()

    def step(self, gradients: Optional[Mapping[Tensor, Optional[Tensor]]] = None) -> None:
        """
        Apply one update.

        Parameters
        ----------
        gradients : Optional[Mapping[Tensor, Optional[Tensor]]]
            Gradient per parameter. When omitted, each parameter's stored
            `grad` is used. Entries mapped to None are skipped.
        """
        for p in self.params:
            g = p.grad if gradients is None else gradients.get(p)
            if g is None:
                continue

            values = p.to_numpy()
            grad = g.to_numpy()
            if self.weight_decay != 0.0:
                grad = grad + self.weight_decay * values
            p.copy_from_numpy(values - self.lr * grad)
        logger.debug("sgd step over %d parameter(s)", len(self.params))
