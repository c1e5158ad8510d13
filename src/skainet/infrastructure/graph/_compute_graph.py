"""
Directed acyclic compute graphs.

`ComputeGraph` stores nodes and edges in insertion order, so every query
(and every export built on top of them) is deterministic. `add_node` and
`add_edge` refuse duplicate ids and dangling endpoints; a graph assembled
through the constructor is accepted as given and checked by `validate`.
"""

from __future__ import annotations

import logging
from collections import Counter, deque
from dataclasses import dataclass, field, replace
from typing import Any, Iterable, Mapping, Optional, Union

from ...domain._errors import GraphCycleError, GraphStructureError
from ...domain._operation import IOperation, TensorSpec, ValidationResult

logger = logging.getLogger(__name__)


@dataclass(frozen=True, eq=False)
class GraphNode:
    """
    Graph vertex wrapping one operation. Nodes compare and hash by id.
    """

    id: str
    operation: IOperation
    input_specs: tuple[TensorSpec, ...] = ()
    output_specs: tuple[TensorSpec, ...] = ()
    metadata: Mapping[str, Any] = field(default_factory=dict)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, GraphNode):
            return NotImplemented
        return self.id == other.id

    def __hash__(self) -> int:
        return hash(("node", self.id))


@dataclass(frozen=True, eq=False)
class GraphEdge:
    """
    Data flow from ``source.outputs[source_output_index]`` to
    ``destination.inputs[destination_input_index]``. Edges compare and hash
    by id.
    """

    id: str
    source: GraphNode
    destination: GraphNode
    source_output_index: int = 0
    destination_input_index: int = 0
    tensor_spec: Optional[TensorSpec] = None

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, GraphEdge):
            return NotImplemented
        return self.id == other.id

    def __hash__(self) -> int:
        return hash(("edge", self.id))


NodeRef = Union[GraphNode, str]
EdgeRef = Union[GraphEdge, str]


def _id(ref: Union[NodeRef, EdgeRef]) -> str:
    return ref if isinstance(ref, str) else ref.id


class ComputeGraph:
    """
    Mutable DAG of `GraphNode` / `GraphEdge`.

    Parameters
    ----------
    nodes, edges : Iterable
        Initial contents, taken as given (see `validate`).
    """

    def __init__(self, nodes: Iterable[GraphNode] = (), edges: Iterable[GraphEdge] = ()) -> None:
        self._nodes: list[GraphNode] = list(nodes)
        self._edges: list[GraphEdge] = list(edges)

    @property
    def nodes(self) -> tuple[GraphNode, ...]:
        return tuple(self._nodes)

    @property
    def edges(self) -> tuple[GraphEdge, ...]:
        return tuple(self._edges)

    # ------------------------------------------------------------------
    # mutation
    # ------------------------------------------------------------------
    def add_node(self, node: GraphNode) -> GraphNode:
        """
        Append `node` and return it.

        Raises
        ------
        GraphStructureError
            If a node with the same id exists.
        """
        if any(n.id == node.id for n in self._nodes):
            raise GraphStructureError(f"Node with id '{node.id}' already exists")
        self._nodes.append(node)
        return node

    def add_edge(self, edge: GraphEdge) -> GraphEdge:
        """
        Append `edge` and return it.

        Raises
        ------
        GraphStructureError
            If an edge with the same id exists or an endpoint is not in the
            graph.
        """
        if any(e.id == edge.id for e in self._edges):
            raise GraphStructureError(f"Edge with id '{edge.id}' already exists")
        if edge.source not in self._nodes:
            raise GraphStructureError(f"Source node '{edge.source.id}' not found in graph")
        if edge.destination not in self._nodes:
            raise GraphStructureError(f"Destination node '{edge.destination.id}' not found in graph")
        self._edges.append(edge)
        return edge

    def remove_node(self, node: NodeRef) -> bool:
        """Remove a node and every edge touching it; return whether it existed."""
        node_id = _id(node)
        if not any(n.id == node_id for n in self._nodes):
            return False
        self._edges = [
            e for e in self._edges if e.source.id != node_id and e.destination.id != node_id
        ]
        self._nodes = [n for n in self._nodes if n.id != node_id]
        return True

    def remove_edge(self, edge: EdgeRef) -> bool:
        edge_id = _id(edge)
        before = len(self._edges)
        self._edges = [e for e in self._edges if e.id != edge_id]
        return len(self._edges) != before

    def remove_output_nodes(self) -> list[GraphNode]:
        """Remove the current sink nodes (and their edges); return them."""
        sinks = self.get_output_nodes()
        for node in sinks:
            self.remove_node(node)
        return sinks

    def clear(self) -> None:
        self._edges.clear()
        self._nodes.clear()

    def copy(self) -> "ComputeGraph":
        """
        Return a graph with its own node and edge collections; edges point
        at the copied nodes.
        """
        copied = [replace(n, metadata=dict(n.metadata)) for n in self._nodes]
        nodes = {n.id: n for n in copied}
        edges = [
            replace(
                e,
                source=nodes.get(e.source.id, e.source),
                destination=nodes.get(e.destination.id, e.destination),
            )
            for e in self._edges
        ]
        return ComputeGraph(copied, edges)

    # ------------------------------------------------------------------
    # queries
    # ------------------------------------------------------------------
    def get_node(self, node_id: str) -> Optional[GraphNode]:
        for node in self._nodes:
            if node.id == node_id:
                return node
        return None

    def get_input_nodes(self, node: Optional[NodeRef] = None) -> list[GraphNode]:
        """
        Without `node`: nodes with no incoming edge. With `node`: the
        sources of its incoming edges.
        """
        if node is None:
            targets = {e.destination.id for e in self._edges}
            return [n for n in self._nodes if n.id not in targets]
        node_id = _id(node)
        return [e.source for e in self._edges if e.destination.id == node_id]

    def get_output_nodes(self, node: Optional[NodeRef] = None) -> list[GraphNode]:
        """
        Without `node`: nodes with no outgoing edge. With `node`: the
        destinations of its outgoing edges.
        """
        if node is None:
            sources = {e.source.id for e in self._edges}
            return [n for n in self._nodes if n.id not in sources]
        node_id = _id(node)
        return [e.destination for e in self._edges if e.source.id == node_id]

    def get_dependencies(self, node: NodeRef) -> list[GraphNode]:
        """Every node `node` transitively depends on, nearest first."""
        seen: set[str] = {_id(node)}
        order: list[GraphNode] = []
        queue = deque([_id(node)])
        while queue:
            current = queue.popleft()
            for parent in self.get_input_nodes(current):
                if parent.id not in seen:
                    seen.add(parent.id)
                    order.append(parent)
                    queue.append(parent.id)
        return order

    def get_topological_order(self) -> list[GraphNode]:
        """
        Kahn's algorithm; ties resolve in insertion order.

        Raises
        ------
        GraphCycleError
            If the graph contains a cycle.
        """
        in_degree = {n.id: 0 for n in self._nodes}
        successors: dict[str, list[GraphNode]] = {n.id: [] for n in self._nodes}
        for edge in self._edges:
            if edge.source.id in in_degree and edge.destination.id in in_degree:
                in_degree[edge.destination.id] += 1
                successors[edge.source.id].append(edge.destination)

        queue = deque(n for n in self._nodes if in_degree[n.id] == 0)
        result: list[GraphNode] = []
        while queue:
            current = queue.popleft()
            result.append(current)
            for nxt in successors[current.id]:
                in_degree[nxt.id] -= 1
                if in_degree[nxt.id] == 0:
                    queue.append(nxt)

        if len(result) != len(self._nodes):
            done = {n.id for n in result}
            raise GraphCycleError([n.id for n in self._nodes if n.id not in done])
        return result

    def validate(self) -> ValidationResult:
        """
        Check structural soundness.

        Reports duplicate ids, edges with endpoints outside the graph, edge
        indices outside the endpoint specs, edge specs disagreeing with the
        source output spec, and cycles. Unconnected nodes are only logged.
        """
        errors: list[str] = []
        node_ids = [n.id for n in self._nodes]
        dup_nodes = sorted(i for i, n in Counter(node_ids).items() if n > 1)
        if dup_nodes:
            errors.append(f"Duplicate node ids: {dup_nodes}")
        edge_ids = [e.id for e in self._edges]
        dup_edges = sorted(i for i, n in Counter(edge_ids).items() if n > 1)
        if dup_edges:
            errors.append(f"Duplicate edge ids: {dup_edges}")

        known = set(node_ids)
        for edge in self._edges:
            if edge.source.id not in known:
                errors.append(f"Edge '{edge.id}' references missing source node '{edge.source.id}'")
            if edge.destination.id not in known:
                errors.append(
                    f"Edge '{edge.id}' references missing destination node '{edge.destination.id}'"
                )
            errors.extend(_edge_consistency(edge))

        if not dup_nodes:
            try:
                self.get_topological_order()
            except GraphCycleError as exc:
                errors.append(str(exc))

        connected = {e.source.id for e in self._edges} | {e.destination.id for e in self._edges}
        orphans = [i for i in node_ids if i not in connected]
        if orphans and len(self._nodes) > 1:
            logger.warning("graph has unconnected nodes: %s", orphans)
        return ValidationResult.of(errors)

    def __len__(self) -> int:
        return len(self._nodes)

    def __contains__(self, node: object) -> bool:
        if isinstance(node, (GraphNode, str)):
            return any(n.id == _id(node) for n in self._nodes)
        return False

    def __repr__(self) -> str:
        return f"ComputeGraph(nodes={len(self._nodes)}, edges={len(self._edges)})"


def _edge_consistency(edge: GraphEdge) -> list[str]:
    errors = []
    outputs = edge.source.output_specs
    inputs = edge.destination.input_specs
    if edge.source_output_index < 0 or (outputs and edge.source_output_index >= len(outputs)):
        errors.append(
            f"Edge '{edge.id}' reads output {edge.source_output_index} of '{edge.source.id}', "
            f"which has {len(outputs)} output(s)"
        )
    if edge.destination_input_index < 0 or (inputs and edge.destination_input_index >= len(inputs)):
        errors.append(
            f"Edge '{edge.id}' feeds input {edge.destination_input_index} of "
            f"'{edge.destination.id}', which has {len(inputs)} input(s)"
        )
    if edge.tensor_spec is not None and outputs and 0 <= edge.source_output_index < len(outputs):
        produced = outputs[edge.source_output_index]
        if edge.tensor_spec.dtype != produced.dtype or (
            edge.tensor_spec.shape is not None
            and produced.shape is not None
            and tuple(edge.tensor_spec.shape) != tuple(produced.shape)
        ):
            errors.append(
                f"Edge '{edge.id}' carries {edge.tensor_spec.shape}/{edge.tensor_spec.dtype} but "
                f"'{edge.source.id}' produces {produced.shape}/{produced.dtype}"
            )
    return errors
