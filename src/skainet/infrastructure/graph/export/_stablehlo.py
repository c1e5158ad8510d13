"""
StableHLO (MLIR text) export for a subset of operations.

Graph inputs become function arguments; ``add``, ``matmul`` (as
``dot_general``) and ``relu`` (as ``maximum`` against a zero constant) are
lowered. Every other operation kind is emitted as a comment so the rest of
the graph still exports.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from ....domain._dtype import DType
from ....domain._operation import TensorSpec
from .._compute_graph import ComputeGraph, GraphNode

logger = logging.getLogger(__name__)

_ELEMENT_TYPES = {
    DType.FP32: "f32",
    DType.FP16: "f16",
    DType.INT32: "i32",
    DType.INT8: "i8",
    DType.INT4: "i4",
}
_EXTRA_ELEMENT_TYPES = {"FP64": "f64", "F64": "f64", "I64": "i64", "INT64": "i64"}


@dataclass(frozen=True)
class StableHloModule:
    """MLIR module text."""

    content: str

    def __str__(self) -> str:
        return self.content


def element_type(dtype: str) -> str:
    """
    MLIR element type for a dtype name; unknown names fall back to ``f32``
    with a logged warning.
    """
    extra = _EXTRA_ELEMENT_TYPES.get(dtype.upper())
    if extra is not None:
        return extra
    try:
        mapped = _ELEMENT_TYPES.get(DType.from_name(dtype))
    except ValueError:
        mapped = None
    if mapped is None:
        logger.warning("no StableHLO element type for dtype %r; using f32", dtype)
        return "f32"
    return mapped


def tensor_type(spec: Optional[TensorSpec]) -> str:
    """``tensor<AxBxf32>``; unknown dimensions print as ``?``."""
    if spec is None:
        return "tensor<*xf32>"
    elem = element_type(spec.dtype)
    if spec.shape is None:
        return f"tensor<*x{elem}>"
    dims = "x".join("?" if d is None else str(d) for d in spec.shape)
    return f"tensor<{dims}x{elem}>" if dims else f"tensor<{elem}>"


def _is_input(node: GraphNode) -> bool:
    return node.operation.type == "input" or node.operation.name == "input"


def _operands(graph: ComputeGraph, node: GraphNode, values: dict[str, str]) -> list[str]:
    incoming = sorted(
        (e for e in graph.edges if e.destination.id == node.id),
        key=lambda e: e.destination_input_index,
    )
    return [values[e.source.id] for e in incoming if e.source.id in values]


def to_stablehlo(graph: ComputeGraph, function_name: str = "main") -> StableHloModule:
    """
    Export `graph` as a StableHLO module.

    Raises
    ------
    GraphCycleError
        If the graph is cyclic.
    """
    order = graph.get_topological_order()
    inputs = [node for node in order if _is_input(node)]

    def _input_spec(node: GraphNode, idx: int) -> TensorSpec:
        return node.output_specs[0] if node.output_specs else TensorSpec(f"arg{idx}", (), "FP32")

    signature = ", ".join(
        f"%arg{idx}: {tensor_type(_input_spec(node, idx))}" for idx, node in enumerate(inputs)
    )
    lines = ["module {", f"  func.func @{function_name}({signature}) -> () {{"]

    values: dict[str, str] = {}
    for idx, node in enumerate(inputs):
        values[node.id] = f"%arg{idx}"
        if node.output_specs:
            spec = node.output_specs[0]
            lines.append(f"    // input {node.id}: {spec.name} : {tensor_type(spec)}")

    counter = 0

    def _next() -> str:
        nonlocal counter
        name = f"%v{counter}"
        counter += 1
        return name

    for node in order:
        if _is_input(node):
            continue
        operands = _operands(graph, node, values)
        out = node.output_specs[0] if node.output_specs else None
        ty = tensor_type(out)
        kind = node.operation.name.lower()
        if kind == "add":
            if len(operands) != 2:
                lines.append(f"    // Unsupported add arity for node {node.id}")
                continue
            result = _next()
            lines.append(f"    {result} = stablehlo.add {operands[0]}, {operands[1]} : {ty}")
        elif kind == "matmul":
            if len(operands) != 2:
                lines.append(f"    // Unsupported matmul arity for node {node.id}")
                continue
            result = _next()
            lines.append(f"    {result} = stablehlo.dot_general {operands[0]}, {operands[1]}")
            lines.append(f"      contracting_dims = [[-1], [-2]] : {ty}")
        elif kind == "relu":
            if len(operands) != 1:
                lines.append(f"    // Unsupported relu arity for node {node.id}")
                continue
            zero = _next()
            result = _next()
            lines.append(f"    {zero} = stablehlo.constant dense<0.0> : {ty}")
            lines.append(f"    {result} = stablehlo.maximum {operands[0]}, {zero} : {ty}")
        else:
            lines.append(
                f"    // Unsupported op {node.operation.name} "
                f"(type={node.operation.type}) for node {node.id}"
            )
            continue
        values[node.id] = result

    lines.extend(["    return", "  }", "}"])
    return StableHloModule("\n".join(lines) + "\n")
