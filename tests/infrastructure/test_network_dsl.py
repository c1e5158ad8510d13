import unittest

import numpy as np

from src.skainet.infrastructure.context import ExecutionConfig, ExecutionContext
from src.skainet.infrastructure.dsl import NetworkBuilder, NetworkDefinitionError, network
from src.skainet.infrastructure.layers import (
    Conv2d,
    Flatten,
    LayerNormalization,
    Linear,
    MaxPool2d,
    ReLU,
    Softmax,
)
from src.skainet.infrastructure.models import Sequential


class TestNetworkBuilder(unittest.TestCase):
    def setUp(self):
        self.ctx = ExecutionContext(ExecutionConfig(seed=0))

    def test_builds_sequential_with_tracked_shapes(self):
        builder = (
            NetworkBuilder(self.ctx)
            .input(1, 4, 4)
            .flatten()
            .dense(8, activation="relu")
            .dense(3, activation="softmax")
        )
        self.assertEqual(builder.sample_shape, (3,))
        net = builder.build()
        self.assertIsInstance(net, Sequential)
        self.assertEqual(
            [type(m) for m in net], [Flatten, Linear, ReLU, Linear, Softmax]
        )
        self.assertEqual(tuple(net[1].weight.shape), (8, 16))

        out = net(self.ctx.randn((2, 1, 4, 4)))
        self.assertEqual(tuple(out.shape), (2, 3))
        np.testing.assert_allclose(out.to_numpy().sum(axis=-1), [1.0, 1.0], rtol=1e-5)

    def test_default_layer_names(self):
        net = NetworkBuilder(self.ctx).input(4).dense(2).dense(1, name="head").build()
        self.assertEqual([m.name for m in net], ["linear-0", "head"])
        self.assertEqual(net[0].weight.name, "linear-0.weight")

    def test_layer_norm_covers_sample_shape(self):
        net = NetworkBuilder(self.ctx).input(6).layer_norm().build()
        self.assertIsInstance(net[0], LayerNormalization)
        self.assertEqual(net[0].normalized_shape, (6,))

    def test_custom_module_with_declared_shape(self):
        builder = NetworkBuilder(self.ctx).input(2, 3).add(Flatten(), output_shape=(6,))
        net = builder.dense(1).build()
        self.assertEqual(tuple(net(self.ctx.zeros((5, 2, 3))).shape), (5, 1))

    def test_activation_module_instance(self):
        net = NetworkBuilder(self.ctx).input(3).activation(ReLU()).build()
        self.assertIsInstance(net[0], ReLU)

    def test_network_shortcut(self):
        builder = network(self.ctx, 5)
        self.assertEqual(builder.sample_shape, (5,))

    def test_conv_pool_network_tracks_spatial_shape(self):
        builder = NetworkBuilder(self.ctx).input(1, 8, 8).conv2d(4, 3, padding=1, activation="relu")
        self.assertEqual(builder.sample_shape, (4, 8, 8))
        builder.max_pool2d(2)
        self.assertEqual(builder.sample_shape, (4, 4, 4))
        net = builder.flatten().dense(3).build()
        self.assertEqual(
            [m.name for m in net], ["conv2d-0", "ReLU", "maxpool2d-2", "flatten-3", "linear-4"]
        )
        self.assertIsInstance(net[0], Conv2d)
        self.assertIsInstance(net[2], MaxPool2d)
        self.assertEqual(tuple(net[0].weight.shape), (4, 1, 3, 3))
        self.assertEqual(tuple(net[4].weight.shape), (3, 64))
        self.assertEqual(tuple(net(self.ctx.randn((2, 1, 8, 8))).shape), (2, 3))

    def test_conv_stride_shrinks_sample(self):
        builder = NetworkBuilder(self.ctx).input(3, 9, 9).conv2d(2, 3, stride=2)
        self.assertEqual(builder.sample_shape, (2, 4, 4))

    def test_conv_requires_spatial_sample(self):
        with self.assertRaises(NetworkDefinitionError) as cm:
            NetworkBuilder(self.ctx).input(8).conv2d(2, 3)
        self.assertEqual(cm.exception.layer, "conv2d-0")
        self.assertIn("(channels, height, width)", str(cm.exception))
        with self.assertRaises(NetworkDefinitionError):
            NetworkBuilder(self.ctx).input(8).max_pool2d(2)

    def test_conv_kernel_larger_than_sample(self):
        with self.assertRaises(NetworkDefinitionError) as cm:
            NetworkBuilder(self.ctx).input(1, 4, 4).conv2d(2, 5)
        self.assertIn("kernel larger", cm.exception.constraint)

    def test_pool_window_larger_than_sample(self):
        builder = NetworkBuilder(self.ctx).input(1, 3, 3)
        with self.assertRaises(NetworkDefinitionError):
            builder.max_pool2d(4)
        self.assertEqual(builder.sample_shape, (1, 3, 3))

    def test_layer_before_input(self):
        with self.assertRaises(NetworkDefinitionError) as cm:
            NetworkBuilder(self.ctx).dense(3)
        self.assertIn("input() must be defined before any layer", str(cm.exception))
        self.assertEqual(cm.exception.layer, "linear-0")

    def test_input_defined_twice(self):
        with self.assertRaises(NetworkDefinitionError):
            NetworkBuilder(self.ctx).input(3).input(3)

    def test_non_positive_input(self):
        with self.assertRaises(NetworkDefinitionError):
            NetworkBuilder(self.ctx).input(0)
        with self.assertRaises(NetworkDefinitionError):
            NetworkBuilder(self.ctx).input()

    def test_dense_requires_flat_sample(self):
        with self.assertRaises(NetworkDefinitionError) as cm:
            NetworkBuilder(self.ctx).input(2, 2).dense(4)
        self.assertIn("flatten()", str(cm.exception))

    def test_dense_requires_positive_units(self):
        with self.assertRaises(NetworkDefinitionError):
            NetworkBuilder(self.ctx).input(2).dense(0)

    def test_unknown_activation(self):
        with self.assertRaises(NetworkDefinitionError) as cm:
            NetworkBuilder(self.ctx).input(2).activation("swish")
        self.assertIn("unknown activation", str(cm.exception))

    def test_build_without_layers(self):
        with self.assertRaises(NetworkDefinitionError):
            NetworkBuilder(self.ctx).input(2).build()
        with self.assertRaises(NetworkDefinitionError):
            NetworkBuilder(self.ctx).build()

    def test_definition_error_is_value_error(self):
        self.assertTrue(issubclass(NetworkDefinitionError, ValueError))


if __name__ == "__main__":
    unittest.main()
