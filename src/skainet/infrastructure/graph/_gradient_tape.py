"""
Reverse-mode differentiation over a recorded tape.

`GradientTape` is an `ExecutionTape` that also tracks which tensors are of
interest (`watch`). `compute_gradients` walks the recorded operations from
the last to the first, applying the backward rule of each operation that
lies between a watched source and a target, and accumulates the gradient of
any tensor consumed more than once.

Example
-------
    tape = context.create_gradient_tape()
    tape.watch(w)
    tape.start_recording()
    loss = (x @ w).relu().sum()
    tape.stop_recording()
    grads = tape.compute_gradients(loss, [w])
"""

from __future__ import annotations

import logging
from typing import Optional, Sequence, Union

import numpy as np

from ...domain._errors import GradientError
from ...domain._tensor import ITensor
from ..tensor._tensor import Tensor
from ..tensor.data import TensorDataFactory
from ._backward_rules import BackwardRules
from ._tape import ExecutionTape

logger = logging.getLogger(__name__)

_FACTORY = TensorDataFactory()

TensorOrMany = Union[ITensor, Sequence[ITensor]]


def _as_list(values: TensorOrMany) -> list[ITensor]:
    if isinstance(values, (list, tuple)):
        return list(values)
    return [values]


class GradientTape(ExecutionTape):
    """
    Execution tape with reverse-mode gradient computation.

    Parameters
    ----------
    gradients_enabled : bool
        When False, `compute_gradients` raises `GradientError`.
    """

    def __init__(self, gradients_enabled: bool = True) -> None:
        super().__init__()
        self.gradients_enabled = gradients_enabled
        self._watched: dict[int, ITensor] = {}

    def _empty_like(self) -> "GradientTape":
        tape = GradientTape(self.gradients_enabled)
        tape._watched = dict(self._watched)
        return tape

    # ------------------------------------------------------------------
    # watch set
    # ------------------------------------------------------------------
    def watch(self, tensors: TensorOrMany) -> None:
        for t in _as_list(tensors):
            self._watched[id(t)] = t

    def stop_watching(self, tensors: TensorOrMany) -> None:
        for t in _as_list(tensors):
            self._watched.pop(id(t), None)

    @property
    def watched(self) -> tuple[ITensor, ...]:
        return tuple(self._watched.values())

    def is_watched(self, tensor: ITensor) -> bool:
        """Explicitly watched, or flagged ``requires_grad``."""
        return id(tensor) in self._watched or bool(getattr(tensor, "requires_grad", False))

    def clear(self) -> None:
        super().clear()
        self._watched.clear()

    # ------------------------------------------------------------------
    # gradients
    # ------------------------------------------------------------------
    def compute_gradients(
        self,
        targets: TensorOrMany,
        sources: TensorOrMany,
        output_gradients: Optional[TensorOrMany] = None,
    ) -> dict[ITensor, Optional[Tensor]]:
        """
        Gradients of the sum of `targets` with respect to each source.

        Parameters
        ----------
        targets : ITensor | Sequence[ITensor]
            Tensors produced by recorded operations (or sources themselves).
        sources : ITensor | Sequence[ITensor]
            Watched floating-point tensors.
        output_gradients : Optional[ITensor | Sequence[ITensor]]
            Seed gradient per target; ones when omitted.

        Returns
        -------
        dict[ITensor, Optional[Tensor]]
            Gradient per source, shaped like the source; None when the
            source does not influence any target.

        Raises
        ------
        GradientError
            If gradients are disabled, a source is not watched or not
            floating point, or the seeds do not match the targets.
        OperationNotImplementedError
            If an operation on the gradient path has no backward rule.
        """
        if not self.gradients_enabled:
            raise GradientError("gradients are disabled on this tape")
        target_list = _as_list(targets)
        source_list = _as_list(sources)
        for src in source_list:
            if not self.is_watched(src):
                raise GradientError(f"source {src!r} is not watched by this tape")
            if not src.dtype.is_floating:
                raise GradientError(f"source {src!r} must be floating point, got {src.dtype.name}")

        grads: dict[int, np.ndarray] = {}
        seeds = None if output_gradients is None else _as_list(output_gradients)
        if seeds is not None and len(seeds) != len(target_list):
            raise GradientError(
                f"got {len(seeds)} output gradient(s) for {len(target_list)} target(s)"
            )
        for i, target in enumerate(target_list):
            seed = (
                np.ones(tuple(target.shape), dtype=np.float64)
                if seeds is None
                else np.asarray(seeds[i].to_numpy(), dtype=np.float64)
            )
            if seed.shape != tuple(target.shape):
                raise GradientError(
                    f"output gradient shape {seed.shape} does not match target shape "
                    f"{tuple(target.shape)}"
                )
            _accumulate(grads, id(target), seed)

        records = [r for r in self._records if r.has_tensors]
        reachable = {id(s) for s in source_list}
        active = []
        for record in records:
            in_ids = {id(t) for t in record.input_tensors}
            # pass-through records (graph inputs) return their operands
            if all(id(t) in in_ids for t in record.output_tensors):
                continue
            if reachable.intersection(in_ids):
                reachable.update(id(t) for t in record.output_tensors)
                active.append(record)

        for record in reversed(active):
            out_ids = [id(t) for t in record.output_tensors]
            if not any(i in grads for i in out_ids):
                continue
            rule = BackwardRules.get(record.operation.name)
            inputs = [t.to_numpy() for t in record.input_tensors]
            outputs = [t.to_numpy() for t in record.output_tensors]
            upstream = [
                grads.get(i, np.zeros(o.shape, dtype=np.float64)) for i, o in zip(out_ids, outputs)
            ]
            local = rule(record.operation, inputs, outputs, upstream)
            for tensor, grad in zip(record.input_tensors, local):
                if grad is None or id(tensor) not in reachable or not tensor.dtype.is_floating:
                    continue
                _accumulate(grads, id(tensor), np.asarray(grad, dtype=np.float64))

        result: dict[ITensor, Optional[Tensor]] = {}
        for src in source_list:
            grad = grads.get(id(src))
            if grad is None:
                logger.debug("gradient: source %r not connected to any target", src)
                result[src] = None
                continue
            data = _FACTORY.from_array(grad.reshape(tuple(src.shape)), src.dtype)
            result[src] = Tensor(data, src.ops)
        return result

    def gradient(self, target: ITensor, source: ITensor) -> Optional[Tensor]:
        """Convenience for a single target and source."""
        return self.compute_gradients(target, [source])[source]


def _accumulate(grads: dict[int, np.ndarray], key: int, value: np.ndarray) -> None:
    if key in grads:
        grads[key] = grads[key] + value
    else:
        grads[key] = value
