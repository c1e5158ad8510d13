import unittest

import numpy as np

from src.skainet.domain import DType, Invalid, OperationValidationError, TensorSpec, Valid
from src.skainet.infrastructure.graph import (
    BUILTIN_OPERATIONS,
    AddOperation,
    Conv2dOperation,
    ConvertOperation,
    InputOperation,
    MatMulOperation,
    MaxPool2dOperation,
    ReluOperation,
    ReshapeOperation,
    SigmoidOperation,
    SoftmaxOperation,
    SplitOperation,
    SumOperation,
)
from src.skainet.infrastructure.ops import CpuTensorOps
from src.skainet.infrastructure.tensor import Tensor
from src.skainet.infrastructure.tensor.data import TensorDataFactory

_FACTORY = TensorDataFactory()


def cpu_tensor(values, dtype: DType = DType.FP32) -> Tensor:
    return Tensor(_FACTORY.from_array(np.asarray(values), dtype), CpuTensorOps())


class TestMatMulOperation(unittest.TestCase):
    def test_inner_dimension_mismatch_is_invalid(self):
        result = MatMulOperation().validate_inputs(
            [TensorSpec("a", (2, 3)), TensorSpec("b", (4, 5))]
        )
        self.assertIsInstance(result, Invalid)
        self.assertTrue(any("inner dimensions differ" in e for e in result.errors))

    def test_infer_outputs(self):
        (out,) = MatMulOperation().infer_outputs([TensorSpec("a", (2, 3)), TensorSpec("b", (3, 5))])
        self.assertEqual(out.shape, (2, 5))
        self.assertEqual(out.dtype, "FP32")
        self.assertEqual(out.name, "matmul_output_0")

    def test_rank_must_be_two(self):
        result = MatMulOperation().validate_inputs(
            [TensorSpec("a", (2, 3, 4)), TensorSpec("b", (4, 5))]
        )
        self.assertFalse(result.is_valid)
        self.assertTrue(any("must be 2-D" in e for e in result.errors))

    def test_infer_outputs_raises_when_invalid(self):
        with self.assertRaises(OperationValidationError):
            MatMulOperation().infer_outputs([TensorSpec("a", (2, 3)), TensorSpec("b", (4, 5))])

    def test_execute(self):
        (out,) = MatMulOperation().execute([cpu_tensor(np.ones((2, 3))), cpu_tensor(np.ones((3, 5)))])
        np.testing.assert_allclose(out.to_numpy(), np.full((2, 5), 3.0))


class TestOperationValidation(unittest.TestCase):
    def test_validate_never_raises_on_bad_arity(self):
        result = AddOperation().validate_inputs([TensorSpec("a", (2,))])
        self.assertFalse(result.is_valid)
        self.assertIn("expected 2 input(s), got 1", result.errors[0])

    def test_dtype_mismatch_collected(self):
        result = AddOperation().validate_inputs(
            [TensorSpec("a", (2,), "FP32"), TensorSpec("b", (2,), "INT8")]
        )
        self.assertFalse(result.is_valid)

    def test_float_only_operation(self):
        result = SigmoidOperation().validate_inputs([TensorSpec("x", (2,), "INT32")])
        self.assertFalse(result.is_valid)
        self.assertTrue(ReluOperation().validate_inputs([TensorSpec("x", (2,), "INT32")]).is_valid)

    def test_broadcast_shapes(self):
        (out,) = AddOperation().infer_outputs([TensorSpec("a", (4, 1)), TensorSpec("b", (3,))])
        self.assertEqual(out.shape, (4, 3))

    def test_unknown_shape_propagates(self):
        (out,) = ReluOperation().infer_outputs([TensorSpec("x", None)])
        self.assertIsNone(out.shape)

    def test_requires_grad_propagates(self):
        (out,) = ReluOperation().infer_outputs([TensorSpec("x", (2,), requires_grad=True)])
        self.assertTrue(out.requires_grad)

    def test_missing_required_parameter(self):
        result = ReshapeOperation().validate_inputs([TensorSpec("x", (2, 3))])
        self.assertFalse(result.is_valid)
        with self.assertRaises(OperationValidationError):
            ReshapeOperation().execute([cpu_tensor(np.zeros((2, 3)))])

    def test_unknown_parameter_rejected(self):
        with self.assertRaises(ValueError):
            ReluOperation(alpha=0.1)

    def test_conv2d_and_pool_shapes(self):
        (out,) = Conv2dOperation(stride=2, padding=1).infer_outputs(
            [TensorSpec("x", (1, 3, 8, 8)), TensorSpec("w", (4, 3, 3, 3))]
        )
        self.assertEqual(out.shape, (1, 4, 4, 4))
        (pooled,) = MaxPool2dOperation(kernel_size=2).infer_outputs([TensorSpec("x", (1, 4, 4, 4))])
        self.assertEqual(pooled.shape, (1, 4, 2, 2))

    def test_conv2d_unknown_kernel_dims_propagate(self):
        op = Conv2dOperation()
        inputs = [TensorSpec("x", (1, 1, 5, 5)), TensorSpec("w", (1, 1, None, None))]
        self.assertIsInstance(op.validate_inputs(inputs), Valid)
        (out,) = op.infer_outputs(inputs)
        self.assertEqual(out.shape, (1, 1, None, None))

    def test_conv2d_bad_parameter_types_are_invalid(self):
        result = Conv2dOperation(stride=None).validate_inputs(
            [TensorSpec("x", (1, 1, 5, 5)), TensorSpec("w", (1, 1, 3, 3))]
        )
        self.assertIsInstance(result, Invalid)

    def test_split_outputs(self):
        outs = SplitOperation(split_size=2, dim=1).infer_outputs([TensorSpec("x", (3, 5))])
        self.assertEqual([o.shape for o in outs], [(3, 2), (3, 2), (3, 1)])

    def test_reduction_shape(self):
        (out,) = SumOperation(dim=0, keepdim=True).infer_outputs([TensorSpec("x", (3, 5))])
        self.assertEqual(out.shape, (1, 5))

    def test_softmax_dim_checked(self):
        self.assertFalse(SoftmaxOperation(dim=3).validate_inputs([TensorSpec("x", (2, 2))]).is_valid)

    def test_convert(self):
        op = ConvertOperation(dtype="FP16")
        (out,) = op.infer_outputs([TensorSpec("x", (2,), "FP32")])
        self.assertEqual(out.dtype, "FP16")
        invalid = ConvertOperation(dtype="INT4").validate_inputs([TensorSpec("x", (2,), "FP32")])
        self.assertFalse(invalid.is_valid)
        (converted,) = ConvertOperation(dtype=DType.INT32).execute([cpu_tensor([1.6])])
        self.assertIs(converted.dtype, DType.INT32)


class TestInputOperation(unittest.TestCase):
    def test_pass_through(self):
        x = cpu_tensor([1.0])
        self.assertIs(InputOperation().execute([x])[0], x)
        spec = TensorSpec("x", (2,))
        self.assertEqual(InputOperation().infer_outputs([spec]), [spec])

    def test_no_inputs(self):
        self.assertIsInstance(InputOperation().validate_inputs([]), Valid)
        self.assertEqual(InputOperation().execute([]), [])


class TestOperationValueSemantics(unittest.TestCase):
    def test_clone_replaces_parameters(self):
        op = SoftmaxOperation(dim=0)
        clone = op.clone({"dim": 1})
        self.assertEqual(op.parameters["dim"], 0)
        self.assertEqual(clone.parameters["dim"], 1)
        self.assertEqual(op.clone(), op)

    def test_parameters_are_read_only(self):
        with self.assertRaises(TypeError):
            SoftmaxOperation().parameters["dim"] = 2

    def test_serialize(self):
        self.assertEqual(
            ReshapeOperation(new_shape=(2, 3)).serialize(),
            {"name": "reshape", "type": "shape", "parameters": {"new_shape": (2, 3)}},
        )

    def test_equality_and_hash(self):
        self.assertEqual(SumOperation(dim=1), SumOperation(dim=1))
        self.assertNotEqual(SumOperation(dim=1), SumOperation(dim=0))
        self.assertEqual(len({ReshapeOperation(new_shape=[2]), ReshapeOperation(new_shape=[2])}), 1)

    def test_builtin_names_are_unique(self):
        names = [cls.NAME for cls in BUILTIN_OPERATIONS]
        self.assertEqual(len(names), len(set(names)))
        self.assertEqual(len(names), 27)


if __name__ == "__main__":
    unittest.main()
