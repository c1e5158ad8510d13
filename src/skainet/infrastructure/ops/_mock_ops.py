"""
Call-recording tensor operations for tests.

`MockTensorOps` logs every call it receives. A call returns a scripted
result when one is configured for the operation name, otherwise it is
forwarded to a delegate backend; with neither, it raises
`OperationNotImplementedError` rather than inventing a value.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Mapping, Optional, Union

from ...domain._errors import OperationNotImplementedError
from ...domain._tensor_ops import TENSOR_OPS_METHODS, ITensorOps


@dataclass(frozen=True)
class MockCall:
    """One recorded invocation."""

    name: str
    args: tuple[Any, ...]
    kwargs: Mapping[str, Any] = field(default_factory=dict)


class MockTensorOps:
    """
    Tensor operations double.

    Parameters
    ----------
    delegate : Optional[ITensorOps]
        Backend that handles calls without a scripted result.
    results : Optional[Mapping[str, Any]]
        Scripted results keyed by operation name. A callable result is
        invoked with the call's arguments.
    """

    backend = "mock"

    def __init__(
        self,
        delegate: Optional[ITensorOps] = None,
        results: Optional[Mapping[str, Union[Any, Callable[..., Any]]]] = None,
    ) -> None:
        self._delegate = delegate
        self._results = dict(results or {})
        self.calls: list[MockCall] = []

    def script(self, name: str, result: Any) -> None:
        """Set the scripted result for `name`."""
        if name not in TENSOR_OPS_METHODS:
            raise ValueError(f"Unknown tensor operation: {name!r}")
        self._results[name] = result

    def calls_to(self, name: str) -> list[MockCall]:
        return [c for c in self.calls if c.name == name]

    def reset(self) -> None:
        self.calls.clear()

    def _dispatch(self, name: str, args: tuple[Any, ...], kwargs: dict[str, Any]) -> Any:
        self.calls.append(MockCall(name, args, kwargs))
        if name in self._results:
            result = self._results[name]
            return result(*args, **kwargs) if callable(result) else result
        if self._delegate is not None:
            return getattr(self._delegate, name)(*args, **kwargs)
        raise OperationNotImplementedError(name, self.backend, "no scripted result or delegate")

    # ------------------------------------------------------------------
    # ITensorOps surface
    # ------------------------------------------------------------------
    def add(self, *args: Any, **kwargs: Any) -> Any:
        return self._dispatch("add", args, kwargs)

    def subtract(self, *args: Any, **kwargs: Any) -> Any:
        return self._dispatch("subtract", args, kwargs)

    def multiply(self, *args: Any, **kwargs: Any) -> Any:
        return self._dispatch("multiply", args, kwargs)

    def divide(self, *args: Any, **kwargs: Any) -> Any:
        return self._dispatch("divide", args, kwargs)

    def matmul(self, *args: Any, **kwargs: Any) -> Any:
        return self._dispatch("matmul", args, kwargs)

    def transpose(self, *args: Any, **kwargs: Any) -> Any:
        return self._dispatch("transpose", args, kwargs)

    def conv2d(self, *args: Any, **kwargs: Any) -> Any:
        return self._dispatch("conv2d", args, kwargs)

    def max_pool2d(self, *args: Any, **kwargs: Any) -> Any:
        return self._dispatch("max_pool2d", args, kwargs)

    def reshape(self, *args: Any, **kwargs: Any) -> Any:
        return self._dispatch("reshape", args, kwargs)

    def flatten(self, *args: Any, **kwargs: Any) -> Any:
        return self._dispatch("flatten", args, kwargs)

    def concat(self, *args: Any, **kwargs: Any) -> Any:
        return self._dispatch("concat", args, kwargs)

    def split(self, *args: Any, **kwargs: Any) -> Any:
        return self._dispatch("split", args, kwargs)

    def squeeze(self, *args: Any, **kwargs: Any) -> Any:
        return self._dispatch("squeeze", args, kwargs)

    def unsqueeze(self, *args: Any, **kwargs: Any) -> Any:
        return self._dispatch("unsqueeze", args, kwargs)

    def relu(self, *args: Any, **kwargs: Any) -> Any:
        return self._dispatch("relu", args, kwargs)

    def softmax(self, *args: Any, **kwargs: Any) -> Any:
        return self._dispatch("softmax", args, kwargs)

    def sigmoid(self, *args: Any, **kwargs: Any) -> Any:
        return self._dispatch("sigmoid", args, kwargs)

    def tanh(self, *args: Any, **kwargs: Any) -> Any:
        return self._dispatch("tanh", args, kwargs)

    def silu(self, *args: Any, **kwargs: Any) -> Any:
        return self._dispatch("silu", args, kwargs)

    def gelu(self, *args: Any, **kwargs: Any) -> Any:
        return self._dispatch("gelu", args, kwargs)

    def sum(self, *args: Any, **kwargs: Any) -> Any:
        return self._dispatch("sum", args, kwargs)

    def mean(self, *args: Any, **kwargs: Any) -> Any:
        return self._dispatch("mean", args, kwargs)

    def variance(self, *args: Any, **kwargs: Any) -> Any:
        return self._dispatch("variance", args, kwargs)

    def sqrt(self, *args: Any, **kwargs: Any) -> Any:
        return self._dispatch("sqrt", args, kwargs)

    def exp(self, *args: Any, **kwargs: Any) -> Any:
        return self._dispatch("exp", args, kwargs)

    def convert(self, *args: Any, **kwargs: Any) -> Any:
        return self._dispatch("convert", args, kwargs)
