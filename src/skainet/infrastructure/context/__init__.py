from ._config import (
    ENV_DEFAULT_DTYPE,
    ENV_EXECUTION_MODE,
    ENV_SEED,
    ExecutionConfig,
    ExecutionMode,
)
from ._context import ExecutionContext, spec_of

__all__ = [
    "ENV_DEFAULT_DTYPE",
    "ENV_EXECUTION_MODE",
    "ENV_SEED",
    "ExecutionConfig",
    "ExecutionContext",
    "ExecutionMode",
    "spec_of",
]
