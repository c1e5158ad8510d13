"""
Base class for concrete operations.

`BaseOperation` turns a few class-level declarations into the full operation
contract:

- ``NAME`` / ``TYPE``: identity of the operation kind;
- ``ARITY``: accepted input count as ``(min, max)`` (``max`` may be None);
- ``DEFAULTS``: accepted parameters and their defaults (`REQUIRED` marks a
  parameter without a default);
- ``FLOAT_ONLY``: whether inputs must be floating point;
- `_infer_shapes`: the shape rule, shared with the kernels.

Validation collects every failure into a `ValidationResult` and never
raises; `infer_outputs` and `execute` raise `OperationValidationError` when
the inputs are invalid.
"""

from __future__ import annotations

from types import MappingProxyType
from typing import Any, ClassVar, Mapping, Optional, Sequence

from typing_extensions import Self

from ...domain._dtype import DType
from ...domain._errors import OperationValidationError, ShapeMismatchError
from ...domain._operation import TensorSpec, ValidationResult
from ...domain._tensor import ITensor


class _Required:
    def __repr__(self) -> str:
        return "REQUIRED"


REQUIRED: Any = _Required()


def _freeze(value: Any) -> Any:
    if isinstance(value, Mapping):
        return tuple(sorted((k, _freeze(v)) for k, v in value.items()))
    if isinstance(value, (list, tuple)):
        return tuple(_freeze(v) for v in value)
    return value


def _dtype_of(spec: TensorSpec) -> Optional[DType]:
    try:
        return DType.from_name(spec.dtype)
    except ValueError:
        return None


class BaseOperation:
    """
    Immutable operation value.

    Parameters
    ----------
    parameters : Optional[Mapping[str, Any]]
        Parameter overrides; merged over ``DEFAULTS``.
    **kwargs
        Additional parameter overrides.

    Raises
    ------
    ValueError
        If a parameter name is not declared in ``DEFAULTS``.
    """

    NAME: ClassVar[str] = ""
    TYPE: ClassVar[str] = ""
    DESCRIPTION: ClassVar[str] = ""
    ARITY: ClassVar[tuple[int, Optional[int]]] = (1, 1)
    DEFAULTS: ClassVar[Mapping[str, Any]] = {}
    FLOAT_ONLY: ClassVar[bool] = False
    SUPPORTS_GRADIENTS: ClassVar[bool] = True

    def __init__(self, parameters: Optional[Mapping[str, Any]] = None, **kwargs: Any) -> None:
        merged = dict(self.DEFAULTS)
        supplied = dict(parameters or {})
        supplied.update(kwargs)
        unknown = sorted(set(supplied) - set(self.DEFAULTS))
        if unknown:
            raise ValueError(f"{self.NAME}: unknown parameter(s) {', '.join(unknown)}")
        merged.update(supplied)
        self._parameters: Mapping[str, Any] = MappingProxyType(merged)

    # ------------------------------------------------------------------
    # identity
    # ------------------------------------------------------------------
    @property
    def name(self) -> str:
        return self.NAME

    @property
    def type(self) -> str:
        return self.TYPE

    @property
    def parameters(self) -> Mapping[str, Any]:
        return self._parameters

    @property
    def description(self) -> str:
        return self.DESCRIPTION or f"{self.NAME} ({self.TYPE})"

    def _param(self, key: str) -> Any:
        return self._parameters[key]

    # ------------------------------------------------------------------
    # validation / inference
    # ------------------------------------------------------------------
    def validate_inputs(self, inputs: Sequence[TensorSpec]) -> ValidationResult:
        """
        Check arity, parameters, dtypes and shapes of `inputs`.

        Returns
        -------
        ValidationResult
            `Valid`, or `Invalid` listing every failure with the operation
            name and the offending input.
        """
        errors: list[str] = []
        low, high = self.ARITY
        count = len(inputs)
        if count < low or (high is not None and count > high):
            expected = str(low) if low == high else f"{low}..{'n' if high is None else high}"
            errors.append(f"{self.NAME}: expected {expected} input(s), got {count}")
            return ValidationResult.of(errors)

        for key, value in self._parameters.items():
            if value is REQUIRED:
                errors.append(f"{self.NAME}: missing required parameter '{key}'")

        dtypes = [_dtype_of(spec) for spec in inputs]
        for i, (spec, dtype) in enumerate(zip(inputs, dtypes)):
            if dtype is None:
                errors.append(f"{self.NAME}: input {i} ('{spec.name}') has unknown dtype {spec.dtype!r}")
            elif self.FLOAT_ONLY and not dtype.is_floating:
                errors.append(
                    f"{self.NAME}: input {i} ('{spec.name}') must be floating point, got {dtype.name}"
                )
        if len({d for d in dtypes if d is not None}) > 1 and self._uniform_dtypes():
            listing = ", ".join(f"{i}:{spec.dtype}" for i, spec in enumerate(inputs))
            errors.append(f"{self.NAME}: inputs must share a dtype (got {listing})")

        self._validate(inputs, errors)

        if not errors and all(spec.shape is not None for spec in inputs):
            try:
                self._infer_shapes([spec.shape for spec in inputs])
            except ShapeMismatchError as exc:
                errors.append(str(exc))
            except (TypeError, ValueError) as exc:
                errors.append(f"{self.NAME}: {exc}")
        return ValidationResult.of(errors)

    def _uniform_dtypes(self) -> bool:
        return True

    def _validate(self, inputs: Sequence[TensorSpec], errors: list[str]) -> None:
        """Hook for operation-specific checks."""

    def _infer_shapes(self, shapes: Sequence[tuple]) -> list[tuple]:
        """Return one output shape per output."""
        return [shapes[0]]

    def _output_dtype(self, inputs: Sequence[TensorSpec]) -> str:
        return inputs[0].dtype if inputs else "FP32"

    def infer_outputs(self, inputs: Sequence[TensorSpec]) -> list[TensorSpec]:
        """
        Derive output specs from input specs without side effects.

        Raises
        ------
        OperationValidationError
            If `validate_inputs` reports the inputs as invalid.
        """
        result = self.validate_inputs(inputs)
        if not result.is_valid:
            raise OperationValidationError(self.NAME, result.errors)
        if any(spec.shape is None for spec in inputs):
            shapes: list[Optional[tuple]] = [None] * self._output_count(inputs)
        else:
            shapes = self._infer_shapes([spec.shape for spec in inputs])
        requires_grad = any(spec.requires_grad for spec in inputs)
        dtype = self._output_dtype(inputs)
        return [
            TensorSpec(f"{self.NAME}_output_{i}", shape, dtype, requires_grad)
            for i, shape in enumerate(shapes)
        ]

    def _output_count(self, inputs: Sequence[TensorSpec]) -> int:
        return 1

    # ------------------------------------------------------------------
    # execution
    # ------------------------------------------------------------------
    def execute(self, inputs: Sequence[ITensor]) -> list[ITensor]:
        """
        Compute the outputs through the first input's ops binding.

        Raises
        ------
        OperationValidationError
            On wrong arity or a missing required parameter.
        """
        low, high = self.ARITY
        if len(inputs) < low or (high is not None and len(inputs) > high):
            raise OperationValidationError(
                self.NAME, [f"expected {low}..{high} input(s), got {len(inputs)}"]
            )
        missing = [k for k, v in self._parameters.items() if v is REQUIRED]
        if missing:
            raise OperationValidationError(
                self.NAME, [f"missing required parameter '{k}'" for k in missing]
            )
        return list(self._execute(list(inputs)))

    def _execute(self, inputs: list[ITensor]) -> Sequence[ITensor]:
        raise NotImplementedError

    # ------------------------------------------------------------------
    # value semantics
    # ------------------------------------------------------------------
    def clone(self, new_parameters: Optional[Mapping[str, Any]] = None) -> Self:
        """
        Copy this operation, optionally replacing its parameters.
        """
        params = dict(self._parameters) if new_parameters is None else dict(new_parameters)
        return type(self)(params)

    def serialize(self) -> dict[str, Any]:
        return {"name": self.NAME, "type": self.TYPE, "parameters": dict(self._parameters)}

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, BaseOperation):
            return NotImplemented
        return (
            self.NAME == other.NAME
            and self.TYPE == other.TYPE
            and dict(self._parameters) == dict(other._parameters)
        )

    def __hash__(self) -> int:
        return hash((self.NAME, self.TYPE, _freeze(dict(self._parameters))))

    def __repr__(self) -> str:
        params = ", ".join(f"{k}={v!r}" for k, v in self._parameters.items())
        return f"{type(self).__name__}({params})"
