"""
Execution tapes.

An `ExecutionTape` is an append-only log of operations recorded during a
computation pass. It has two states, idle and recording; recording an
operation while idle is a silent no-op (the call returns None).

Each recorded operation receives a sequence number from the tape's counter.
`clear()` resets the counter to zero, so sequence numbers are unique only
within one recording epoch of one tape.

Tensor references
-----------------
When operations are recorded with tensors (the usual path through
`RecordingTensorOps`) the record keeps the tensors next to their specs.
`replay`, `prune` and the gradient tape follow data flow through tensor
identity. Records made from specs alone follow data flow through spec
names and cannot be replayed.

Graph derivation
----------------
`to_compute_graph` connects each recorded operation to its immediate
predecessor in recorded order (whenever both have outputs / inputs). This
does not reconstruct true data dependencies for branching or reconvergent
tapes; it is a known limitation kept for compatibility with linear tapes.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from typing import Any, Hashable, Iterable, Iterator, Mapping, Optional, Sequence, Union

from ...domain._errors import ReplayError
from ...domain._operation import IOperation, TensorSpec
from ...domain._tensor import ITensor
from ._compute_graph import ComputeGraph, GraphEdge, GraphNode

logger = logging.getLogger(__name__)

Recordable = Union[ITensor, TensorSpec]

# shape operations that are no-ops when the output shape equals the input shape
_IDENTITY_SHAPE_OPS = frozenset({"reshape", "flatten", "squeeze", "unsqueeze"})


@dataclass(frozen=True)
class RecordedOperation:
    """
    One entry of an execution tape.

    Attributes
    ----------
    operation : IOperation
        The operation value that was executed.
    inputs, outputs : tuple[TensorSpec, ...]
        Specs describing the operands and results.
    sequence : int
        Position assigned by the tape's counter.
    metadata : Mapping[str, Any]
        Free-form annotations.
    input_tensors, output_tensors : Optional[tuple]
        The concrete tensors, when the operation was recorded with tensors.
    """

    operation: IOperation
    inputs: tuple[TensorSpec, ...]
    outputs: tuple[TensorSpec, ...]
    sequence: int
    metadata: Mapping[str, Any] = field(default_factory=dict, compare=False)
    input_tensors: Optional[tuple[ITensor, ...]] = field(default=None, compare=False, repr=False)
    output_tensors: Optional[tuple[ITensor, ...]] = field(default=None, compare=False, repr=False)

    @property
    def has_tensors(self) -> bool:
        return self.input_tensors is not None and self.output_tensors is not None

    def input_keys(self) -> list[Hashable]:
        return _value_keys(self.inputs, self.input_tensors)

    def output_keys(self) -> list[Hashable]:
        return _value_keys(self.outputs, self.output_tensors)


def _value_keys(specs: Sequence[TensorSpec], tensors: Optional[Sequence[ITensor]]) -> list[Hashable]:
    if tensors is not None:
        return [id(t) for t in tensors]
    return [("spec", spec.name) for spec in specs]


def _to_specs(
    values: Sequence[Recordable], prefix: str, sequence: int
) -> tuple[tuple[TensorSpec, ...], Optional[tuple[ITensor, ...]]]:
    if not values:
        return (), ()
    if all(isinstance(v, TensorSpec) for v in values):
        return tuple(values), None
    if any(isinstance(v, TensorSpec) for v in values):
        raise TypeError("Cannot mix tensors and tensor specs in one recorded operation")
    specs = tuple(
        TensorSpec(
            f"{prefix}_{sequence}_{i}",
            tuple(t.shape),
            t.dtype.name,
            bool(getattr(t, "requires_grad", False)),
        )
        for i, t in enumerate(values)
    )
    return specs, tuple(values)


class ExecutionTape:
    """
    Append-only log of recorded operations.
    """

    def __init__(self) -> None:
        self._records: list[RecordedOperation] = []
        self._recording = False
        self._sequence = 0

    # ------------------------------------------------------------------
    # state
    # ------------------------------------------------------------------
    def start_recording(self) -> None:
        self._recording = True
        logger.debug("tape %#x: recording started", id(self))

    def stop_recording(self) -> None:
        self._recording = False
        logger.debug("tape %#x: recording stopped (%d operations)", id(self), len(self._records))

    @property
    def is_recording(self) -> bool:
        return self._recording

    @property
    def operations(self) -> tuple[RecordedOperation, ...]:
        return tuple(self._records)

    def __len__(self) -> int:
        return len(self._records)

    def __iter__(self) -> Iterator[RecordedOperation]:
        return iter(tuple(self._records))

    # ------------------------------------------------------------------
    # recording
    # ------------------------------------------------------------------
    def record_operation(
        self,
        operation: IOperation,
        inputs: Sequence[Recordable],
        outputs: Sequence[Recordable],
        metadata: Optional[Mapping[str, Any]] = None,
    ) -> Optional[RecordedOperation]:
        """
        Append `operation` when the tape is recording.

        Parameters
        ----------
        operation : IOperation
            The executed operation.
        inputs, outputs : Sequence[ITensor | TensorSpec]
            Operands and results, either all tensors or all specs. Tensors
            are described by specs named ``input_{seq}_{i}`` and
            ``output_{seq}_{i}``.
        metadata : Optional[Mapping[str, Any]]
            Annotations stored with the record.

        Returns
        -------
        Optional[RecordedOperation]
            The new record, or None when the tape is idle.
        """
        if not self._recording:
            return None
        sequence = self._sequence
        input_specs, input_tensors = _to_specs(list(inputs), "input", sequence)
        output_specs, output_tensors = _to_specs(list(outputs), "output", sequence)
        record = RecordedOperation(
            operation=operation,
            inputs=input_specs,
            outputs=output_specs,
            sequence=sequence,
            metadata=dict(metadata or {}),
            input_tensors=input_tensors,
            output_tensors=output_tensors,
        )
        self._records.append(record)
        self._sequence += 1
        return record

    def clear(self) -> None:
        """Drop every record and reset the sequence counter to zero."""
        self._records.clear()
        self._sequence = 0
        logger.debug("tape %#x: cleared", id(self))

    # ------------------------------------------------------------------
    # derivations
    # ------------------------------------------------------------------
    def _empty_like(self) -> "ExecutionTape":
        return type(self)()

    def _derived(self, records: Iterable[RecordedOperation]) -> "ExecutionTape":
        tape = self._empty_like()
        tape._records = list(records)
        tape._sequence = self._sequence
        tape._recording = self._recording
        return tape

    def copy(self) -> "ExecutionTape":
        """Return an independent tape with identical contents and state."""
        return self._derived(self._records)

    def prune(self, keep_outputs: Optional[Sequence[Union[ITensor, str]]] = None) -> "ExecutionTape":
        """
        Return a tape keeping only operations that contribute to `keep_outputs`.

        Parameters
        ----------
        keep_outputs : Optional[Sequence[ITensor | str]]
            Result tensors (or output spec names) to keep alive. Defaults to
            the outputs of the last recorded operation.
        """
        if not self._records:
            return self._derived(())
        if keep_outputs is None:
            needed = set(self._records[-1].output_keys())
        else:
            needed = {("spec", v) if isinstance(v, str) else id(v) for v in keep_outputs}

        kept: list[RecordedOperation] = []
        for record in reversed(self._records):
            if needed.intersection(record.output_keys()):
                kept.append(record)
                needed.update(record.input_keys())
        kept.reverse()
        logger.debug("prune: kept %d of %d operations", len(kept), len(self._records))
        return self._derived(kept)

    def optimize(self) -> "ExecutionTape":
        """
        Prune dead operations, then drop identity shape operations.

        A reshape / flatten / squeeze / unsqueeze whose output shape equals
        its input shape is removed; later operations consuming its output
        read its input instead.
        """
        pruned = self.prune()
        substitutes: dict[Hashable, tuple[TensorSpec, Optional[ITensor]]] = {}
        out: list[RecordedOperation] = []
        for record in pruned._records:
            record = _substitute_inputs(record, substitutes)
            if (
                record.operation.name in _IDENTITY_SHAPE_OPS
                and len(record.inputs) == 1
                and len(record.outputs) == 1
                and record.inputs[0].shape is not None
                and record.inputs[0].shape == record.outputs[0].shape
            ):
                source_tensor = record.input_tensors[0] if record.input_tensors else None
                substitutes[record.output_keys()[0]] = (record.inputs[0], source_tensor)
                continue
            out.append(record)
        logger.debug("optimize: %d -> %d operations", len(self._records), len(out))
        return self._derived(out)

    def replay(self) -> list[ITensor]:
        """
        Re-execute the recorded operations in order.

        Outputs of earlier replayed operations replace the original tensors
        in later operations' inputs; tensors not produced on the tape are
        used as recorded. This tape does not record while replaying.

        Returns
        -------
        list[ITensor]
            Replayed outputs that no later operation consumes.

        Raises
        ------
        ReplayError
            If an operation was recorded without tensor references.
        """
        for record in self._records:
            if not record.has_tensors:
                raise ReplayError(
                    f"operation #{record.sequence} ({record.operation.name}) was recorded "
                    "without tensors and cannot be replayed"
                )
        consumed: set[int] = set()
        for record in self._records:
            consumed.update(id(t) for t in record.input_tensors)

        was_recording = self._recording
        self._recording = False
        try:
            env: dict[int, ITensor] = {}
            results: list[ITensor] = []
            for record in self._records:
                inputs = [env.get(id(t), t) for t in record.input_tensors]
                outputs = record.operation.execute(inputs)
                if len(outputs) != len(record.output_tensors):
                    raise ReplayError(
                        f"operation #{record.sequence} ({record.operation.name}) produced "
                        f"{len(outputs)} output(s), recorded {len(record.output_tensors)}"
                    )
                for original, fresh in zip(record.output_tensors, outputs):
                    env[id(original)] = fresh
                    if id(original) not in consumed:
                        results.append(fresh)
            return results
        finally:
            self._recording = was_recording

    def to_compute_graph(self) -> ComputeGraph:
        """
        Derive a compute graph: one node per record, one edge per adjacent
        pair of records.

        Each edge carries the producer's first output spec renamed to the
        consumer's first input name.
        """
        graph = ComputeGraph()
        previous: Optional[GraphNode] = None
        previous_sequence = 0
        for record in self._records:
            node = GraphNode(
                id=f"node_{record.sequence}",
                operation=record.operation,
                input_specs=record.inputs,
                output_specs=record.outputs,
                metadata=dict(record.metadata),
            )
            graph.add_node(node)
            if previous is not None and previous.output_specs and node.input_specs:
                graph.add_edge(
                    GraphEdge(
                        id=f"edge_{previous_sequence}_to_{record.sequence}",
                        source=previous,
                        destination=node,
                        source_output_index=0,
                        destination_input_index=0,
                        tensor_spec=previous.output_specs[0].with_name(
                            node.input_specs[0].name
                        ),
                    )
                )
            previous = node
            previous_sequence = record.sequence
        logger.debug(
            "tape %#x: derived graph with %d nodes, %d edges",
            id(self),
            len(graph.nodes),
            len(graph.edges),
        )
        return graph

    def __repr__(self) -> str:
        state = "recording" if self._recording else "idle"
        return f"{type(self).__name__}({state}, operations={len(self._records)})"


def _substitute_inputs(
    record: RecordedOperation, substitutes: Mapping[Hashable, tuple[TensorSpec, Optional[ITensor]]]
) -> RecordedOperation:
    keys = record.input_keys()
    if not any(k in substitutes for k in keys):
        return record
    specs = list(record.inputs)
    tensors = list(record.input_tensors) if record.input_tensors is not None else None
    for i, key in enumerate(keys):
        if key in substitutes:
            spec, tensor = substitutes[key]
            specs[i] = spec
            if tensors is not None and tensor is not None:
                tensors[i] = tensor
    return replace(
        record,
        inputs=tuple(specs),
        input_tensors=tuple(tensors) if tensors is not None else None,
    )


class TapeStack:
    """
    Stack of tapes modelling nested recording scopes.

    Every tape in the stack that is recording receives recorded operations,
    so an outer scope sees the operations of an inner one.
    """

    def __init__(self) -> None:
        self._tapes: list[ExecutionTape] = []

    def push_tape(self, tape: ExecutionTape) -> ExecutionTape:
        self._tapes.append(tape)
        return tape

    def pop_tape(self) -> Optional[ExecutionTape]:
        """Remove and return the innermost tape, or None when empty."""
        return self._tapes.pop() if self._tapes else None

    @property
    def current_tape(self) -> Optional[ExecutionTape]:
        return self._tapes[-1] if self._tapes else None

    @property
    def tapes(self) -> tuple[ExecutionTape, ...]:
        return tuple(self._tapes)

    @property
    def is_recording(self) -> bool:
        """True iff any tape in the stack is recording."""
        return any(tape.is_recording for tape in self._tapes)

    def clear(self) -> None:
        self._tapes.clear()

    def record(
        self,
        operation: IOperation,
        inputs: Sequence[Recordable],
        outputs: Sequence[Recordable],
    ) -> list[RecordedOperation]:
        """Record into every recording tape; return the new records."""
        records = []
        for tape in self._tapes:
            record = tape.record_operation(operation, inputs, outputs)
            if record is not None:
                records.append(record)
        return records

    def __len__(self) -> int:
        return len(self._tapes)
