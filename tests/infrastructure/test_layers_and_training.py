import unittest

import numpy as np

from src.skainet.domain import DType, ShapeMismatchError
from src.skainet.infrastructure.context import ExecutionConfig, ExecutionContext
from src.skainet.infrastructure.layers import (
    GELU,
    Conv2d,
    Flatten,
    LayerNormalization,
    Linear,
    MaxPool2d,
    ReLU,
    SiLU,
    Sigmoid,
    Softmax,
    Tanh,
)
from src.skainet.infrastructure.models import Sequential
from src.skainet.infrastructure.optimizers import SGD


class TestLinear(unittest.TestCase):
    def setUp(self):
        self.ctx = ExecutionContext(ExecutionConfig(seed=1))

    def test_parameter_shapes_and_names(self):
        layer = Linear(4, 3, context=self.ctx, name="fc")
        self.assertEqual(tuple(layer.weight.shape), (3, 4))
        self.assertEqual(tuple(layer.bias.shape), (3,))
        self.assertEqual(layer.weight.name, "fc.weight")
        np.testing.assert_array_equal(layer.bias.to_numpy(), np.zeros(3))

    def test_forward_matches_affine_map(self):
        layer = Linear(4, 3, context=self.ctx)
        layer.bias.copy_from_numpy(np.array([0.5, -1.0, 2.0]))
        x = self.ctx.randn((5, 4))
        expected = x.to_numpy() @ layer.weight.to_numpy().T + layer.bias.to_numpy()
        out = layer(x)
        self.assertEqual(tuple(out.shape), (5, 3))
        np.testing.assert_allclose(out.to_numpy(), expected, rtol=1e-5, atol=1e-6)

    def test_without_bias(self):
        layer = Linear(2, 2, context=self.ctx, bias=False)
        self.assertIsNone(layer.bias)
        self.assertEqual(len(list(layer.parameters())), 1)
        layer.weight.copy_from_numpy(np.array([[1.0, 2.0], [3.0, 4.0]]))
        out = layer(self.ctx.tensor([[1.0, 1.0]]))
        np.testing.assert_allclose(out.to_numpy(), [[3.0, 7.0]])

    def test_wrong_input_width(self):
        layer = Linear(4, 3, context=self.ctx)
        with self.assertRaises(ShapeMismatchError):
            layer(self.ctx.zeros((2, 5)))

    def test_invalid_features(self):
        with self.assertRaises(ValueError):
            Linear(0, 3, context=self.ctx)

    def test_config(self):
        layer = Linear(4, 3, context=self.ctx, bias=False, name="head")
        self.assertEqual(
            layer.get_config(),
            {
                "in_features": 4,
                "out_features": 3,
                "bias": False,
                "weight_init": "xavier_uniform",
                "dtype": "FP32",
                "name": "head",
            },
        )
        clone = Linear.from_config(layer.get_config(), context=self.ctx)
        self.assertEqual(clone.get_config(), layer.get_config())

    def test_fp16_parameters(self):
        layer = Linear(2, 2, context=self.ctx, dtype=DType.FP16)
        self.assertIs(layer.weight.dtype, DType.FP16)


def conv2d_reference(x, w, b, padding):
    xp = np.pad(x, ((0, 0), (0, 0), (padding, padding), (padding, padding)))
    n, _, h, wd = xp.shape
    c_out, _, k_h, k_w = w.shape
    out = np.zeros((n, c_out, h - k_h + 1, wd - k_w + 1))
    for i in range(out.shape[2]):
        for j in range(out.shape[3]):
            patch = xp[:, :, i : i + k_h, j : j + k_w]
            out[:, :, i, j] = np.einsum("nchw,ochw->no", patch, w)
    return out + b.reshape(1, -1, 1, 1)


class TestConv2d(unittest.TestCase):
    def setUp(self):
        self.ctx = ExecutionContext(ExecutionConfig(seed=2))

    def test_parameter_shapes_and_names(self):
        layer = Conv2d(3, 8, 3, context=self.ctx, name="conv")
        self.assertEqual(tuple(layer.weight.shape), (8, 3, 3, 3))
        self.assertEqual(tuple(layer.bias.shape), (8,))
        self.assertEqual(layer.weight.name, "conv.weight")
        self.assertEqual(layer.kernel_size, (3, 3))
        np.testing.assert_array_equal(layer.bias.to_numpy(), np.zeros(8))

    def test_grouped_weight_shape(self):
        layer = Conv2d(4, 6, (3, 1), context=self.ctx, groups=2, bias=False)
        self.assertEqual(tuple(layer.weight.shape), (6, 2, 3, 1))
        self.assertIsNone(layer.bias)

    def test_forward_matches_reference(self):
        layer = Conv2d(2, 3, 3, context=self.ctx, padding=1)
        layer.bias.copy_from_numpy(np.array([0.5, -1.0, 2.0]))
        x = self.ctx.randn((2, 2, 5, 5))
        expected = conv2d_reference(
            x.to_numpy(), layer.weight.to_numpy(), layer.bias.to_numpy(), padding=1
        )
        out = layer(x)
        self.assertEqual(tuple(out.shape), (2, 3, 5, 5))
        np.testing.assert_allclose(out.to_numpy(), expected, rtol=1e-4, atol=1e-5)

    def test_wrong_input_channels(self):
        layer = Conv2d(3, 2, 3, context=self.ctx)
        with self.assertRaises(ShapeMismatchError):
            layer(self.ctx.zeros((1, 2, 5, 5)))
        with self.assertRaises(ShapeMismatchError):
            layer(self.ctx.zeros((3, 5, 5)))

    def test_invalid_arguments(self):
        with self.assertRaises(ValueError):
            Conv2d(0, 2, 3, context=self.ctx)
        with self.assertRaises(ValueError):
            Conv2d(3, 4, 3, context=self.ctx, groups=2)
        with self.assertRaises(ValueError):
            Conv2d(1, 1, 0, context=self.ctx)

    def test_config_round_trip(self):
        layer = Conv2d(2, 4, (3, 2), context=self.ctx, stride=2, padding=(1, 0), name="c1")
        cfg = layer.get_config()
        self.assertEqual(cfg["kernel_size"], [3, 2])
        self.assertEqual(cfg["stride"], [2, 2])
        self.assertEqual(cfg["padding"], [1, 0])
        self.assertEqual(cfg["weight_init"], "kaiming_uniform")
        clone = Conv2d.from_config(cfg, context=self.ctx)
        self.assertEqual(clone.get_config(), cfg)

    def test_gradients_flow_to_kernel_and_bias(self):
        layer = Conv2d(1, 2, 2, context=self.ctx)
        params = list(layer.parameters())
        x = self.ctx.randn((3, 1, 4, 4))
        with self.ctx.gradient_tape(watch=params) as tape:
            loss = layer(x).sum()
        grads = tape.compute_gradients(loss, params)
        # every output position contributes once per batch item
        np.testing.assert_allclose(grads[layer.bias].to_numpy(), [27.0, 27.0])
        gw = grads[layer.weight].to_numpy()
        self.assertEqual(gw.shape, (2, 1, 2, 2))
        patch_sums = [
            x.to_numpy()[:, 0, u : u + 3, v : v + 3].sum() for u in range(2) for v in range(2)
        ]
        np.testing.assert_allclose(gw[0].ravel(), patch_sums, rtol=1e-4)
        np.testing.assert_allclose(gw[1], gw[0])


class TestMaxPool2d(unittest.TestCase):
    def setUp(self):
        self.ctx = ExecutionContext()

    def test_takes_window_maximum(self):
        x = self.ctx.tensor(np.arange(16.0).reshape(1, 1, 4, 4))
        out = MaxPool2d(2)(x)
        np.testing.assert_array_equal(out.to_numpy(), [[[[5.0, 7.0], [13.0, 15.0]]]])

    def test_overlapping_windows(self):
        out = MaxPool2d(3, stride=1)(self.ctx.zeros((2, 3, 5, 5)))
        self.assertEqual(tuple(out.shape), (2, 3, 3, 3))

    def test_config_round_trip(self):
        pool = MaxPool2d((2, 3), padding=1, name="pool")
        cfg = pool.get_config()
        self.assertEqual(cfg, {"kernel_size": [2, 3], "stride": [2, 3], "padding": [1, 1], "name": "pool"})
        self.assertEqual(MaxPool2d.from_config(cfg).get_config(), cfg)
        self.assertEqual(list(pool.parameters()), [])


class TestLayerNormalization(unittest.TestCase):
    def setUp(self):
        self.ctx = ExecutionContext(ExecutionConfig(seed=2))

    def test_normalizes_trailing_dimension(self):
        norm = LayerNormalization(8, context=self.ctx)
        x = self.ctx.randn((4, 8), mean=3.0, std=2.0)
        y = norm(x).to_numpy()
        np.testing.assert_allclose(y.mean(axis=-1), np.zeros(4), atol=1e-5)
        np.testing.assert_allclose(y.var(axis=-1), np.ones(4), atol=1e-3)

    def test_multi_dimensional_normalized_shape(self):
        norm = LayerNormalization((2, 3), context=self.ctx)
        x = self.ctx.randn((5, 2, 3))
        y = norm(x).to_numpy()
        self.assertEqual(y.shape, (5, 2, 3))
        np.testing.assert_allclose(y.reshape(5, 6).mean(axis=-1), np.zeros(5), atol=1e-5)

    def test_affine_parameters_apply(self):
        norm = LayerNormalization(2, context=self.ctx)
        norm.gamma.copy_from_numpy(np.array([2.0, 2.0]))
        norm.beta.copy_from_numpy(np.array([1.0, 1.0]))
        y = norm(self.ctx.tensor([[0.0, 2.0]])).to_numpy()
        np.testing.assert_allclose(y, [[-1.0, 3.0]], atol=1e-3)

    def test_trailing_shape_mismatch(self):
        norm = LayerNormalization(4, context=self.ctx)
        with self.assertRaises(ShapeMismatchError):
            norm(self.ctx.zeros((2, 3)))

    def test_without_affine_needs_no_context(self):
        norm = LayerNormalization(3, elementwise_affine=False)
        self.assertEqual(list(norm.parameters()), [])
        self.assertNotIn("dtype", norm.get_config())


class TestActivationModules(unittest.TestCase):
    def setUp(self):
        self.ctx = ExecutionContext()
        self.x = self.ctx.tensor([[-1.0, 0.0, 2.0]])

    def test_activations_delegate_to_tensor_methods(self):
        np.testing.assert_allclose(ReLU()(self.x).to_numpy(), [[0.0, 0.0, 2.0]])
        np.testing.assert_allclose(
            Sigmoid()(self.x).to_numpy(), 1.0 / (1.0 + np.exp([[1.0, 0.0, -2.0]])), rtol=1e-6
        )
        np.testing.assert_allclose(Tanh()(self.x).to_numpy(), np.tanh([[-1.0, 0.0, 2.0]]), rtol=1e-6)
        silu = SiLU()(self.x).to_numpy()
        self.assertAlmostEqual(float(silu[0, 1]), 0.0)
        gelu = GELU()(self.x).to_numpy()
        self.assertAlmostEqual(float(gelu[0, 2]), 1.9545977, places=4)

    def test_softmax_rows_sum_to_one(self):
        out = Softmax()(self.x).to_numpy()
        np.testing.assert_allclose(out.sum(axis=-1), [1.0], rtol=1e-6)
        self.assertEqual(Softmax(dim=0).get_config(), {"dim": 0})

    def test_stateless_configs(self):
        self.assertEqual(ReLU().get_config(), {})
        self.assertIsInstance(GELU.from_config({}), GELU)

    def test_flatten(self):
        x = self.ctx.zeros((2, 3, 4))
        self.assertEqual(tuple(Flatten()(x).shape), (2, 12))
        self.assertEqual(Flatten(0, 1).get_config(), {"start_dim": 0, "end_dim": 1})


class TestSequential(unittest.TestCase):
    def setUp(self):
        self.ctx = ExecutionContext(ExecutionConfig(seed=3))

    def test_forward_applies_layers_in_order(self):
        first = Linear(3, 4, context=self.ctx)
        second = Linear(4, 2, context=self.ctx)
        model = Sequential(first, ReLU(), second)
        x = self.ctx.randn((6, 3))
        expected = second(ReLU()(first(x))).to_numpy()
        np.testing.assert_allclose(model(x).to_numpy(), expected, rtol=1e-6)
        self.assertEqual(len(model), 3)
        self.assertIs(model[2], second)

    def test_children_are_named_by_index(self):
        model = Sequential(Linear(2, 2, context=self.ctx), ReLU())
        names = [name for name, _ in model.named_parameters()]
        self.assertEqual(names, ["0.weight", "0.bias"])

    def test_add_rejects_non_modules_and_duplicates(self):
        model = Sequential()
        with self.assertRaises(TypeError):
            model.add("relu")
        model.add(ReLU(), name="act")
        with self.assertRaises(ValueError):
            model.add(Tanh(), name="act")

    def test_empty_sequential_is_identity(self):
        x = self.ctx.tensor([1.0, 2.0])
        self.assertIs(Sequential()(x), x)


class TestSGD(unittest.TestCase):
    def setUp(self):
        self.ctx = ExecutionContext(ExecutionConfig(seed=4))

    def test_step_uses_stored_gradients(self):
        layer = Linear(2, 1, context=self.ctx, bias=False)
        layer.weight.copy_from_numpy(np.array([[1.0, -1.0]]))
        layer.weight.set_grad(self.ctx.tensor([[0.5, 0.5]]))
        SGD(layer.parameters(), lr=0.1).step()
        np.testing.assert_allclose(layer.weight.to_numpy(), [[0.95, -1.05]], rtol=1e-6)

    def test_weight_decay(self):
        layer = Linear(1, 1, context=self.ctx, bias=False)
        layer.weight.copy_from_numpy(np.array([[2.0]]))
        layer.weight.set_grad(self.ctx.tensor([[1.0]]))
        SGD(layer.parameters(), lr=0.5, weight_decay=0.5).step()
        np.testing.assert_allclose(layer.weight.to_numpy(), [[1.0]])

    def test_parameters_without_gradient_are_skipped(self):
        layer = Linear(2, 2, context=self.ctx)
        before = layer.bias.to_numpy().copy()
        SGD(layer.parameters(), lr=1.0).step()
        np.testing.assert_array_equal(layer.bias.to_numpy(), before)

    def test_invalid_hyperparameters(self):
        with self.assertRaises(ValueError):
            SGD([], lr=0.0)
        with self.assertRaises(ValueError):
            SGD([], weight_decay=-1.0)

    def test_zero_grad(self):
        layer = Linear(1, 1, context=self.ctx)
        opt = SGD(layer.parameters())
        layer.weight.set_grad(self.ctx.ones((1, 1)))
        opt.zero_grad()
        self.assertIsNone(layer.weight.grad)

    def test_training_reduces_loss(self):
        model = Sequential(Linear(2, 8, context=self.ctx), Tanh(), Linear(8, 1, context=self.ctx))
        params = list(model.parameters())
        opt = SGD(params, lr=0.1)
        rng = np.random.default_rng(0)
        inputs = rng.normal(size=(32, 2))
        targets = inputs[:, :1] - 0.5 * inputs[:, 1:]
        x = self.ctx.tensor(inputs)
        y = self.ctx.tensor(targets)

        def loss_and_grads():
            with self.ctx.gradient_tape(watch=params) as tape:
                diff = model(x) - y
                loss = (diff * diff).mean()
            return float(loss.to_numpy()), tape.compute_gradients(loss, params)

        first, grads = loss_and_grads()
        for _ in range(50):
            opt.step(grads)
            _, grads = loss_and_grads()
        last, _ = loss_and_grads()
        self.assertLess(last, first * 0.5)


if __name__ == "__main__":
    unittest.main()
