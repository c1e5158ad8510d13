import unittest

import numpy as np

from src.skainet.domain import DType, ShapeMismatchError
from src.skainet.infrastructure._module import Module
from src.skainet.infrastructure._parameter import Parameter
from src.skainet.infrastructure.context import ExecutionConfig, ExecutionContext
from src.skainet.infrastructure.layers import create_parameter
from src.skainet.infrastructure.utils import WeightInitializer


class Affine(Module):
    def __init__(self, context, name=None):
        super().__init__(name)
        self.scale = create_parameter(context, (3,), "ones", name="scale")
        self.shift = create_parameter(context, (3,), "zeros", name="shift")

    def forward(self, x):
        return x * self.scale + self.shift


class Stack(Module):
    def __init__(self, context):
        super().__init__()
        self.first = Affine(context)
        self.second = Affine(context)

    def forward(self, x):
        return self.second(self.first(x))


class TestParameter(unittest.TestCase):
    def setUp(self):
        self.ctx = ExecutionContext(ExecutionConfig(seed=0))

    def test_requires_grad_by_default(self):
        p = Parameter.from_tensor(self.ctx.tensor([1.0, 2.0]), name="p")
        self.assertTrue(p.requires_grad)
        self.assertIsNone(p.grad)
        self.assertEqual(p.name, "p")

    def test_set_and_accumulate_grad(self):
        p = Parameter.from_tensor(self.ctx.zeros((2,)))
        p.accumulate_grad(self.ctx.tensor([1.0, 2.0]))
        p.accumulate_grad(self.ctx.tensor([0.5, 0.5]))
        np.testing.assert_allclose(p.grad.to_numpy(), [1.5, 2.5])
        p.zero_grad()
        self.assertIsNone(p.grad)
        with self.assertRaises(ShapeMismatchError):
            p.set_grad(self.ctx.zeros((3,)))

    def test_copy_from_numpy(self):
        p = Parameter.from_tensor(self.ctx.zeros((2, 2)))
        p.copy_from_numpy(np.eye(2))
        np.testing.assert_array_equal(p.to_numpy(), np.eye(2))
        with self.assertRaises(ShapeMismatchError):
            p.copy_from_numpy(np.zeros(3))

    def test_repr(self):
        p = Parameter.from_tensor(self.ctx.zeros((2,)), name="w")
        self.assertEqual(repr(p), "Parameter(shape=(2,), dtype=FP32, name='w')")

    def test_create_parameter_rejects_integer_dtype(self):
        with self.assertRaises(TypeError):
            create_parameter(self.ctx, (2,), "zeros", dtype=DType.INT8)
        with self.assertRaises(ValueError):
            create_parameter(None, (2,), "zeros")


class TestModule(unittest.TestCase):
    def setUp(self):
        self.ctx = ExecutionContext(ExecutionConfig(seed=0))

    def test_attribute_registration(self):
        m = Affine(self.ctx)
        self.assertEqual(len(list(m.parameters())), 2)
        m.shift = None
        self.assertEqual(len(list(m.parameters())), 1)

    def test_named_parameters_are_qualified(self):
        names = [name for name, _ in Stack(self.ctx).named_parameters()]
        self.assertEqual(names, ["first.scale", "first.shift", "second.scale", "second.shift"])

    def test_children(self):
        stack = Stack(self.ctx)
        self.assertEqual([m.name for m in stack.modules], ["Affine", "Affine"])
        self.assertEqual(stack.name, "Stack")

    def test_call_runs_forward(self):
        out = Stack(self.ctx)(self.ctx.tensor([1.0, 2.0, 3.0]))
        np.testing.assert_allclose(out.to_numpy(), [1.0, 2.0, 3.0])

    def test_zero_grad(self):
        stack = Stack(self.ctx)
        for p in stack.parameters():
            p.set_grad(self.ctx.ones((3,)))
        stack.zero_grad()
        self.assertTrue(all(p.grad is None for p in stack.parameters()))

    def test_base_forward_and_config_not_implemented(self):
        with self.assertRaises(NotImplementedError):
            Module()(self.ctx.tensor([1.0]))
        with self.assertRaises(NotImplementedError):
            Module().get_config()


class TestWeightInitializers(unittest.TestCase):
    def setUp(self):
        self.ctx = ExecutionContext(ExecutionConfig(seed=0))

    def test_builtins_available(self):
        for name in ("xavier_uniform", "xavier_normal", "kaiming_uniform", "kaiming_normal", "zeros", "ones"):
            self.assertIn(name, WeightInitializer.available())

    def test_unknown_name(self):
        with self.assertRaises(ValueError):
            WeightInitializer("orthogonal")

    def test_xavier_uniform_bound(self):
        p = create_parameter(self.ctx, (30, 20), "xavier_uniform")
        bound = np.sqrt(6.0 / (20 + 30))
        self.assertLessEqual(float(np.abs(p.to_numpy()).max()), bound + 1e-6)

    def test_kaiming_uniform_bound(self):
        p = create_parameter(self.ctx, (16, 8), "kaiming_uniform")
        self.assertLessEqual(float(np.abs(p.to_numpy()).max()), np.sqrt(6.0 / 8) + 1e-6)

    def test_normal_initializers_are_random(self):
        p = create_parameter(self.ctx, (64, 64), "kaiming_normal")
        values = p.to_numpy()
        self.assertGreater(float(values.std()), 0.0)
        self.assertAlmostEqual(float(values.std()), np.sqrt(2.0 / 64), delta=0.03)

    def test_seeded_contexts_reproduce_weights(self):
        a = create_parameter(ExecutionContext(ExecutionConfig(seed=5)), (4, 4), "xavier_normal")
        b = create_parameter(ExecutionContext(ExecutionConfig(seed=5)), (4, 4), "xavier_normal")
        np.testing.assert_array_equal(a.to_numpy(), b.to_numpy())

    def test_register_custom(self):
        @WeightInitializer.register_initializer("test_twos")
        def twos(param, rng):
            param.copy_from_numpy(np.full(tuple(param.shape), 2.0))
            return param

        try:
            p = create_parameter(self.ctx, (2,), "test_twos")
            np.testing.assert_array_equal(p.to_numpy(), [2.0, 2.0])
            with self.assertRaises(ValueError):
                WeightInitializer.register_initializer("test_twos")(twos)
        finally:
            WeightInitializer.INITIALIZERS.pop("test_twos", None)


if __name__ == "__main__":
    unittest.main()
