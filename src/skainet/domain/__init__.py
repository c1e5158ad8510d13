"""
Framework-agnostic contracts and value types.

The domain layer holds shapes, dtypes, slice descriptors, errors and the
structural interfaces (`typing.Protocol`) implemented by the infrastructure
layer. It does not depend on any array library.
"""

from ._dtype import DType
from ._dataset import DataBatch, Dataset
from ._errors import (
    DTypeConversionError,
    DTypeMismatchError,
    DTypePromotionError,
    GradientError,
    GraphCycleError,
    GraphStructureError,
    OperationNotImplementedError,
    OperationValidationError,
    ReplayError,
    ShapeIndexError,
    ShapeMismatchError,
    UnknownOperationError,
    ValueRangeError,
)
from ._module import IModule
from ._operation import Invalid, IOperation, TensorSpec, Valid, ValidationResult
from ._shape import Shape, row_major_strides
from ._slice import All, Index, Range, SliceDescriptor, as_descriptor
from ._tensor import ITensor, ITensorData, Number
from ._tensor_ops import TENSOR_OPS_METHODS, ITensorOps

__all__ = [
    "All",
    "DataBatch",
    "Dataset",
    "DType",
    "DTypeConversionError",
    "DTypeMismatchError",
    "DTypePromotionError",
    "GradientError",
    "GraphCycleError",
    "GraphStructureError",
    "IModule",
    "Index",
    "Invalid",
    "IOperation",
    "ITensor",
    "ITensorData",
    "ITensorOps",
    "Number",
    "OperationNotImplementedError",
    "OperationValidationError",
    "Range",
    "ReplayError",
    "Shape",
    "TENSOR_OPS_METHODS",
    "ShapeIndexError",
    "ShapeMismatchError",
    "SliceDescriptor",
    "TensorSpec",
    "UnknownOperationError",
    "Valid",
    "ValidationResult",
    "ValueRangeError",
    "as_descriptor",
    "row_major_strides",
]
