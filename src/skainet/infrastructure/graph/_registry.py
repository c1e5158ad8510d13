"""
Operation registry.

`OperationRegistry` maps operation names to factories so operations can be
created (and deserialized) by name. A registry is an ordinary object: build
one with `default_operation_registry()` and pass it where it is needed. No
module-level registry is shared between callers.

Metadata
--------
Each factory describes its operation with `OperationMetadata` (type tag,
description, placeholder input/output specs, parameter specs, whether
gradients are supported). Metadata is what documentation and tooling read;
the compute core only needs `create`.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Mapping, Optional, Protocol, Sequence, runtime_checkable

from ...domain._errors import UnknownOperationError
from ...domain._operation import IOperation, TensorSpec
from ._operation_base import REQUIRED, BaseOperation
from ._operations import BUILTIN_OPERATIONS

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ParameterSpec:
    """
    Description of one operation parameter.

    Attributes
    ----------
    name : str
        Parameter key.
    type : str
        Human-readable type name (``"int"``, ``"tuple"``, ``"any"``...).
    required : bool
        Whether the parameter has no default.
    default_value : Any
        Default used when the parameter is omitted.
    description : str
        Free-form documentation.
    constraints : tuple[str, ...]
        Human-readable constraints.
    """

    name: str
    type: str = "any"
    required: bool = False
    default_value: Any = None
    description: str = ""
    constraints: tuple[str, ...] = ()


@dataclass(frozen=True)
class OperationMetadata:
    """Descriptive information about an operation kind."""

    name: str
    type: str
    description: str
    input_specs: tuple[TensorSpec, ...] = ()
    output_specs: tuple[TensorSpec, ...] = ()
    parameter_specs: tuple[ParameterSpec, ...] = ()
    supports_gradients: bool = True
    additional_metadata: Mapping[str, Any] = field(default_factory=dict, compare=False)


@runtime_checkable
class OperationFactory(Protocol):
    """Creates operations of one kind."""

    def create(self, parameters: Mapping[str, Any]) -> IOperation: ...

    def get_metadata(self) -> OperationMetadata: ...


class ClassOperationFactory:
    """
    Factory for a `BaseOperation` subclass; metadata is derived from the
    class declarations.
    """

    def __init__(self, operation_class: type[BaseOperation]) -> None:
        self._cls = operation_class

    def create(self, parameters: Mapping[str, Any]) -> BaseOperation:
        return self._cls(dict(parameters))

    def get_metadata(self) -> OperationMetadata:
        cls = self._cls
        low, high = cls.ARITY
        count = low if high is None else high
        params = tuple(
            ParameterSpec(
                name=key,
                type="any" if default is REQUIRED or default is None else type(default).__name__,
                required=default is REQUIRED,
                default_value=None if default is REQUIRED else default,
            )
            for key, default in cls.DEFAULTS.items()
        )
        inputs = tuple(TensorSpec(f"input_{i}", None, "FP32") for i in range(count))
        return OperationMetadata(
            name=cls.NAME,
            type=cls.TYPE,
            description=cls.DESCRIPTION,
            input_specs=inputs,
            output_specs=(TensorSpec("output_0", None, "FP32"),),
            parameter_specs=params,
            supports_gradients=cls.SUPPORTS_GRADIENTS,
            additional_metadata={"arity": (low, high), "float_only": cls.FLOAT_ONLY},
        )


class OperationRegistry:
    """
    Name-keyed collection of operation factories.
    """

    def __init__(self) -> None:
        self._factories: dict[str, OperationFactory] = {}

    def register_operation(
        self, name: str, factory: OperationFactory, *, overwrite: bool = False
    ) -> None:
        """
        Register `factory` under `name`.

        Raises
        ------
        ValueError
            If `name` is empty, or already registered and `overwrite` is
            False.
        """
        if not isinstance(name, str) or not name:
            raise ValueError("Operation name must be a non-empty string")
        if not overwrite and name in self._factories:
            raise ValueError(f"Operation already registered: {name!r}")
        self._factories[name] = factory
        logger.debug("registered operation %r", name)

    def register_class(self, operation_class: type[BaseOperation], *, overwrite: bool = False) -> None:
        """Register a `BaseOperation` subclass under its ``NAME``."""
        self.register_operation(
            operation_class.NAME, ClassOperationFactory(operation_class), overwrite=overwrite
        )

    def unregister_operation(self, name: str) -> bool:
        """Remove `name`; return whether it was registered."""
        return self._factories.pop(name, None) is not None

    def is_registered(self, name: str) -> bool:
        return name in self._factories

    @property
    def registered_operations(self) -> tuple[str, ...]:
        """Registered names in registration order."""
        return tuple(self._factories)

    def _factory(self, name: str) -> OperationFactory:
        try:
            return self._factories[name]
        except KeyError:
            raise UnknownOperationError(name, self.registered_operations) from None

    def create_operation(self, name: str, parameters: Optional[Mapping[str, Any]] = None) -> IOperation:
        """
        Create an operation by name.

        Raises
        ------
        UnknownOperationError
            If `name` is not registered.
        """
        return self._factory(name).create(dict(parameters or {}))

    def get_operation_metadata(self, name: str) -> OperationMetadata:
        return self._factory(name).get_metadata()

    def get_all_operation_metadata(self) -> list[OperationMetadata]:
        return [factory.get_metadata() for factory in self._factories.values()]

    def deserialize_operation(self, data: Mapping[str, Any]) -> IOperation:
        """
        Recreate an operation from the output of ``operation.serialize()``.

        Raises
        ------
        ValueError
            If `data` has no ``"name"`` entry.
        UnknownOperationError
            If the name is not registered.
        """
        if "name" not in data:
            raise ValueError("Serialized operation is missing 'name'")
        return self.create_operation(str(data["name"]), data.get("parameters") or {})

    def __contains__(self, name: object) -> bool:
        return name in self._factories

    def __len__(self) -> int:
        return len(self._factories)


def default_operation_registry(extra: Sequence[type[BaseOperation]] = ()) -> OperationRegistry:
    """
    Build a new registry holding the built-in operation kinds.

    Parameters
    ----------
    extra : Sequence[type[BaseOperation]]
        Additional operation classes to register after the built-ins.
    """
    registry = OperationRegistry()
    for cls in (*BUILTIN_OPERATIONS, *extra):
        registry.register_class(cls)
    return registry
