"""
Execution configuration.

`ExecutionConfig` is a plain value; `ExecutionConfig.from_env` builds one
from environment variables:

=========================  ===========================================
``SKAINET_DEFAULT_DTYPE``  dtype name (``FP32``, ``fp16``, ``int8``...)
``SKAINET_SEED``           integer seed for the context RNG
``SKAINET_EXECUTION_MODE`` ``eager`` or ``graph``
=========================  ===========================================
"""

from __future__ import annotations

import os
from dataclasses import dataclass, replace
from enum import Enum
from typing import Any, Mapping, Optional

from typing_extensions import Self

from ...domain._dtype import DType

ENV_DEFAULT_DTYPE = "SKAINET_DEFAULT_DTYPE"
ENV_SEED = "SKAINET_SEED"
ENV_EXECUTION_MODE = "SKAINET_EXECUTION_MODE"


class ExecutionMode(Enum):
    """
    EAGER computes values with the CPU backend; GRAPH only propagates
    shapes and dtypes (void backend) while operations are recorded.
    """

    EAGER = "eager"
    GRAPH = "graph"

    @classmethod
    def from_name(cls, name: str) -> "ExecutionMode":
        try:
            return cls(name.strip().lower())
        except ValueError:
            choices = ", ".join(m.value for m in cls)
            raise ValueError(f"Unknown execution mode {name!r}; expected one of {choices}") from None


@dataclass(frozen=True)
class ExecutionConfig:
    """
    Attributes
    ----------
    default_dtype : DType
        Dtype used by tensor constructors when none is given.
    seed : Optional[int]
        Seed of the context random generator (None for OS entropy).
    mode : ExecutionMode
        Backend selection.
    """

    default_dtype: DType = DType.FP32
    seed: Optional[int] = None
    mode: ExecutionMode = ExecutionMode.EAGER

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> Self:
        """
        Read configuration from `environ` (``os.environ`` by default).

        Raises
        ------
        ValueError
            If a variable holds an unparseable value.
        """
        env = os.environ if environ is None else environ
        config = cls()
        dtype = env.get(ENV_DEFAULT_DTYPE, "").strip()
        if dtype:
            config = replace(config, default_dtype=DType.from_name(dtype))
        seed = env.get(ENV_SEED, "").strip()
        if seed:
            try:
                config = replace(config, seed=int(seed))
            except ValueError:
                raise ValueError(f"{ENV_SEED} must be an integer, got {seed!r}") from None
        mode = env.get(ENV_EXECUTION_MODE, "").strip()
        if mode:
            config = replace(config, mode=ExecutionMode.from_name(mode))
        return config

    def get_config(self) -> dict[str, Any]:
        return {
            "default_dtype": self.default_dtype.name,
            "seed": self.seed,
            "mode": self.mode.value,
        }

    @classmethod
    def from_config(cls, cfg: Mapping[str, Any]) -> Self:
        return cls(
            default_dtype=DType.from_name(cfg.get("default_dtype", "FP32")),
            seed=cfg.get("seed"),
            mode=ExecutionMode.from_name(cfg.get("mode", "eager")),
        )
