"""
Error taxonomy for skainet.

This module defines the exceptions raised by the tensor, operation, tape and
graph layers. Every error subclasses a builtin exception type so callers can
catch either the precise skainet error or the builtin family it belongs to
(e.g. `IndexError` for bounds violations).

Errors carry the structured context that produced them (failing index, axis,
dtypes, operation name) as attributes in addition to the formatted message.

Notes
-----
Operation validation during graph construction does not raise. It returns a
`ValidationResult` instead; `OperationValidationError` is only raised when an
Invalid operation is executed or asked to infer its outputs.
"""

from __future__ import annotations

from typing import Any, Optional, Sequence


class ShapeIndexError(IndexError):
    """
    Raised when an index tuple does not address an element of a shape.

    Attributes
    ----------
    index : Any
        The offending index (or index tuple on rank mismatch).
    axis : Optional[int]
        Axis on which the bound was violated, or None for rank mismatch.
    bound : Optional[int]
        Size of the violated axis, or the expected rank on rank mismatch.
    shape : tuple[int, ...]
        Dimensions of the shape being indexed.
    """

    def __init__(
        self,
        index: Any,
        shape: Sequence[int],
        *,
        axis: Optional[int] = None,
        bound: Optional[int] = None,
        message: Optional[str] = None,
    ) -> None:
        self.index = index
        self.axis = axis
        self.bound = bound
        self.shape = tuple(shape)
        if message is None:
            if axis is None:
                message = (
                    f"Index {index!r} has wrong rank for shape {self.shape} "
                    f"(expected {len(self.shape)} indices)."
                )
            else:
                message = (
                    f"Index {index!r} is out of bounds for axis {axis} with size "
                    f"{bound} (shape {self.shape})."
                )
        super().__init__(message)


class ShapeMismatchError(ValueError):
    """
    Raised when operand shapes are incompatible for an operation.
    """

    def __init__(self, op: str, shapes: Sequence[Any], detail: str = "") -> None:
        self.op = op
        self.shapes = tuple(tuple(s) for s in shapes)
        suffix = f": {detail}" if detail else ""
        super().__init__(f"{op}: incompatible shapes {self.shapes}{suffix}")


class ValueRangeError(ValueError):
    """
    Raised when a value cannot be represented by an integer or packed dtype.

    Values are never clamped or wrapped.
    """

    def __init__(self, value: Any, dtype: Any, detail: str = "") -> None:
        self.value = value
        self.dtype = dtype
        suffix = f" ({detail})" if detail else ""
        super().__init__(
            f"Value {value!r} is out of range for dtype {getattr(dtype, 'name', dtype)}"
            f"{suffix}."
        )


class DTypeMismatchError(TypeError):
    """
    Raised when an operation receives operands of different dtypes.
    """

    def __init__(self, op: str, dtypes: Sequence[Any]) -> None:
        self.op = op
        self.dtypes = tuple(dtypes)
        names = ", ".join(getattr(d, "name", str(d)) for d in self.dtypes)
        super().__init__(f"{op}: dtype mismatch ({names}); convert operands explicitly.")


class DTypeConversionError(TypeError):
    """
    Raised when a conversion outside the dtype conversion table is requested.
    """

    def __init__(self, source: Any, target: Any) -> None:
        self.source = source
        self.target = target
        super().__init__(
            f"Conversion from {getattr(source, 'name', source)} to "
            f"{getattr(target, 'name', target)} is not supported."
        )


class DTypePromotionError(TypeError):
    """
    Raised when no common precision can be determined for two dtypes.
    """

    def __init__(self, a: Any, b: Any) -> None:
        self.a = a
        self.b = b
        super().__init__(f"No common precision rule for {a!r} and {b!r}.")


class UnknownOperationError(LookupError):
    """
    Raised when an operation name is not registered.
    """

    def __init__(self, name: str, available: Sequence[str] = ()) -> None:
        self.name = name
        self.available = tuple(available)
        listing = ", ".join(self.available) or "<none>"
        super().__init__(f"Unknown operation: {name!r}. Registered: {listing}")


class OperationValidationError(ValueError):
    """
    Raised when an operation is executed or inferred on invalid inputs.

    Attributes
    ----------
    operation : str
        Name of the operation.
    errors : tuple[str, ...]
        Every validation failure that was collected.
    """

    def __init__(self, operation: str, errors: Sequence[str]) -> None:
        self.operation = operation
        self.errors = tuple(errors)
        super().__init__(f"{operation}: invalid inputs: " + "; ".join(self.errors))


class OperationNotImplementedError(NotImplementedError):
    """
    Raised when an operation is requested on a backend that does not
    implement it.

    Attributes
    ----------
    op : str
        The name of the operation that was attempted.
    backend : str
        The backend (or subsystem) lacking the implementation.
    """

    def __init__(self, op: str, backend: str, detail: str = "") -> None:
        self.op = op
        self.backend = backend
        suffix = f" ({detail})" if detail else ""
        super().__init__(f"{op} is not implemented for backend '{backend}'{suffix}.")


class GraphStructureError(RuntimeError):
    """
    Raised when a compute graph mutation would break its structure.
    """


class GraphCycleError(GraphStructureError):
    """
    Raised when a topological order is requested for a cyclic graph.
    """

    def __init__(self, remaining: Sequence[str]) -> None:
        self.remaining = tuple(remaining)
        super().__init__(
            "Graph contains a cycle; nodes left unordered: " + ", ".join(self.remaining)
        )


class GradientError(RuntimeError):
    """
    Raised when gradients are requested for sources the tape cannot
    differentiate.
    """


class ReplayError(RuntimeError):
    """
    Raised when a tape cannot be replayed.
    """
