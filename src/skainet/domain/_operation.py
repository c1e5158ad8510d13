"""
Operation contracts.

An operation is an immutable value object: a name, a type tag, a parameter
mapping, and behavior (validation, output inference, execution, cloning).
The same operation value can be executed eagerly or merely recorded on a
tape or placed in a compute graph.

`TensorSpec` describes a tensor without holding data, so graphs can be built
and validated before any tensor exists. Validation returns a
`ValidationResult` (`Valid` or `Invalid`) rather than raising, which lets a
graph builder collect every failure before aborting.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import (
    TYPE_CHECKING,
    Any,
    Mapping,
    Optional,
    Protocol,
    Sequence,
    runtime_checkable,
)

from typing_extensions import Self

if TYPE_CHECKING:
    from ._tensor import ITensor


@dataclass(frozen=True)
class TensorSpec:
    """
    Lightweight tensor descriptor.

    Attributes
    ----------
    name : str
        Identifier of the described value (unique within a graph or tape).
    shape : Optional[tuple[int, ...]]
        Dimensions, or None when unknown. Individual dims may also be None.
    dtype : str
        Name of the element type (e.g. ``"FP32"``).
    requires_grad : bool
        Whether gradients should flow to the described value.
    metadata : Mapping[str, Any]
        Free-form annotations; excluded from equality.
    """

    name: str
    shape: Optional[tuple[Optional[int], ...]]
    dtype: str = "FP32"
    requires_grad: bool = False
    metadata: Mapping[str, Any] = field(default_factory=dict, compare=False, hash=False)

    def __post_init__(self) -> None:
        if self.shape is not None and not isinstance(self.shape, tuple):
            object.__setattr__(self, "shape", tuple(self.shape))

    @property
    def rank(self) -> Optional[int]:
        """Number of dimensions, or None when the shape is unknown."""
        return None if self.shape is None else len(self.shape)

    def with_name(self, name: str) -> "TensorSpec":
        """Return a copy of this spec under a different name."""
        return TensorSpec(name, self.shape, self.dtype, self.requires_grad, dict(self.metadata))


class ValidationResult:
    """
    Outcome of validating operation inputs or a graph.

    Use `is_valid` (or truthiness) to branch; `errors` lists every collected
    failure and is empty for `Valid`.
    """

    errors: tuple[str, ...] = ()

    @property
    def is_valid(self) -> bool:
        return not self.errors

    def __bool__(self) -> bool:
        return self.is_valid

    @staticmethod
    def of(errors: Sequence[str]) -> "ValidationResult":
        """Build `Valid` when `errors` is empty, otherwise `Invalid`."""
        return Invalid(tuple(errors)) if errors else Valid()

    def merge(self, other: "ValidationResult") -> "ValidationResult":
        """Combine the failures of two results."""
        return ValidationResult.of(self.errors + other.errors)


@dataclass(frozen=True)
class Valid(ValidationResult):
    """Successful validation."""


@dataclass(frozen=True)
class Invalid(ValidationResult):
    """Failed validation carrying every collected reason."""

    errors: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        if not isinstance(self.errors, tuple):
            object.__setattr__(self, "errors", tuple(self.errors))
        if not self.errors:
            raise ValueError("Invalid requires at least one error")


@runtime_checkable
class IOperation(Protocol):
    """
    Named, typed computation.

    Notes
    -----
    - `validate_inputs` never raises; it returns a `ValidationResult`.
    - `infer_outputs` is a pure function of the input specs.
    - `execute` computes on real tensors through their bound ops.
    """

    @property
    def name(self) -> str: ...

    @property
    def type(self) -> str: ...

    @property
    def parameters(self) -> Mapping[str, Any]: ...

    @property
    def description(self) -> str: ...

    def validate_inputs(self, inputs: Sequence[TensorSpec]) -> ValidationResult: ...

    def infer_outputs(self, inputs: Sequence[TensorSpec]) -> list[TensorSpec]: ...

    def execute(self, inputs: Sequence["ITensor"]) -> list["ITensor"]: ...

    def clone(self, new_parameters: Optional[Mapping[str, Any]] = None) -> Self: ...

    def serialize(self) -> dict[str, Any]: ...
