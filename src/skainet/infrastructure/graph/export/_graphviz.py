"""
Graphviz DOT rendering of compute graphs.

The output is a pure function of the graph: nodes and edges are emitted in
the graph's insertion order.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Iterable, Optional

from .._compute_graph import ComputeGraph, GraphNode

_UNSAFE_ID = re.compile(r"[^a-zA-Z0-9_]")
_RANKDIRS = ("LR", "TB")


@dataclass(frozen=True)
class DotGraph:
    """DOT source text."""

    content: str

    def __str__(self) -> str:
        return self.content


def _dot_id(node_id: str) -> str:
    return _UNSAFE_ID.sub("_", node_id)


def _node_attributes(node: GraphNode) -> str:
    kind = node.operation.type
    if kind == "input":
        return "shape=record, style=filled, fillcolor=lightblue"
    if kind == "math":
        return "shape=circle"
    return "shape=record"


def trace(
    graph: ComputeGraph, output_nodes: Optional[Iterable[GraphNode]] = None
) -> tuple[list[GraphNode], list[tuple[GraphNode, GraphNode]]]:
    """
    Collect nodes and (producer, consumer) pairs to draw.

    Without `output_nodes` every node is traced; otherwise only the nodes
    the given outputs transitively depend on.
    """
    nodes: list[GraphNode] = []
    edges: list[tuple[GraphNode, GraphNode]] = []
    seen_edges: set[tuple[str, str]] = set()

    def _add_edge(src: GraphNode, dst: GraphNode) -> None:
        key = (src.id, dst.id)
        if key not in seen_edges:
            seen_edges.add(key)
            edges.append((src, dst))

    if output_nodes is None:
        nodes = list(graph.nodes)
        for node in nodes:
            for parent in graph.get_input_nodes(node):
                _add_edge(parent, node)
        return nodes, edges

    seen: set[str] = set()
    stack = list(output_nodes)[::-1]
    while stack:
        node = stack.pop()
        if node.id in seen:
            continue
        seen.add(node.id)
        nodes.append(node)
        parents = graph.get_input_nodes(node)
        for parent in parents:
            _add_edge(parent, node)
        stack.extend(reversed(parents))
    return nodes, edges


def draw_dot(
    graph: ComputeGraph,
    output_nodes: Optional[Iterable[GraphNode]] = None,
    rankdir: str = "LR",
) -> DotGraph:
    """
    Render `graph` (or the part feeding `output_nodes`) as DOT.

    Parameters
    ----------
    graph : ComputeGraph
        Graph to render.
    output_nodes : Optional[Iterable[GraphNode]]
        Restrict the drawing to the backward closure of these nodes.
    rankdir : str
        ``"LR"`` or ``"TB"``.

    Raises
    ------
    ValueError
        If `rankdir` is not one of ``LR`` / ``TB``.
    """
    if rankdir not in _RANKDIRS:
        raise ValueError(f"rankdir must be one of {_RANKDIRS}, got {rankdir!r}")
    nodes, edges = trace(graph, output_nodes)

    lines = ["digraph {", f"    rankdir={rankdir};"]
    for node in nodes:
        node_id = _dot_id(node.id)
        label = f"{node.operation.name} | {node.id}"
        lines.append(f'    {node_id} [label="{label}", {_node_attributes(node)}];')
        params = node.operation.parameters
        if params:
            op_id = f"{node_id}_op"
            text = "\\n".join(f"{key}: {value}" for key, value in params.items())
            lines.append(f'    {op_id} [label="{text}", shape=box, style=dashed];')
            lines.append(f"    {op_id} -> {node_id} [style=dotted];")
    for src, dst in edges:
        lines.append(f"    {_dot_id(src.id)} -> {_dot_id(dst.id)};")
    lines.append("}")
    return DotGraph("\n".join(lines) + "\n")
