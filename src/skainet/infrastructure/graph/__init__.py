"""
Operations, tapes, compute graphs and differentiation.
"""

from ._backward_rules import BackwardRules, sum_to_shape
from ._compute_graph import ComputeGraph, GraphEdge, GraphNode
from ._gradient_tape import GradientTape
from ._operation_base import REQUIRED, BaseOperation
from ._operations import (
    InputOperation,
    AddOperation,
    SubtractOperation,
    MultiplyOperation,
    DivideOperation,
    MatMulOperation,
    TransposeOperation,
    Conv2dOperation,
    MaxPool2dOperation,
    ReshapeOperation,
    FlattenOperation,
    ConcatOperation,
    SplitOperation,
    SqueezeOperation,
    UnsqueezeOperation,
    ReluOperation,
    SigmoidOperation,
    TanhOperation,
    SiluOperation,
    GeluOperation,
    SoftmaxOperation,
    SqrtOperation,
    ExpOperation,
    SumOperation,
    MeanOperation,
    VarianceOperation,
    ConvertOperation,
    BUILTIN_OPERATIONS,
)
from ._recording_ops import RecordingTensorOps
from ._registry import (
    ClassOperationFactory,
    OperationFactory,
    OperationMetadata,
    OperationRegistry,
    ParameterSpec,
    default_operation_registry,
)
from ._tape import ExecutionTape, RecordedOperation, TapeStack

__all__ = [
    "BUILTIN_OPERATIONS",
    "REQUIRED",
    "BackwardRules",
    "BaseOperation",
    "ClassOperationFactory",
    "ComputeGraph",
    "ExecutionTape",
    "GradientTape",
    "GraphEdge",
    "GraphNode",
    "OperationFactory",
    "OperationMetadata",
    "OperationRegistry",
    "ParameterSpec",
    "RecordedOperation",
    "RecordingTensorOps",
    "TapeStack",
    "default_operation_registry",
    "sum_to_shape",
    "InputOperation",
    "AddOperation",
    "SubtractOperation",
    "MultiplyOperation",
    "DivideOperation",
    "MatMulOperation",
    "TransposeOperation",
    "Conv2dOperation",
    "MaxPool2dOperation",
    "ReshapeOperation",
    "FlattenOperation",
    "ConcatOperation",
    "SplitOperation",
    "SqueezeOperation",
    "UnsqueezeOperation",
    "ReluOperation",
    "SigmoidOperation",
    "TanhOperation",
    "SiluOperation",
    "GeluOperation",
    "SoftmaxOperation",
    "SqrtOperation",
    "ExpOperation",
    "SumOperation",
    "MeanOperation",
    "VarianceOperation",
    "ConvertOperation",
]
