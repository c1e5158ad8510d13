import json
import unittest

import numpy as np

from src.skainet.domain import DType
from src.skainet.infrastructure.context import ExecutionConfig, ExecutionContext
from src.skainet.infrastructure.encoding import (
    b64_str_to_bytes,
    bytes_to_b64_str,
    payload_to_data,
    payload_to_tensor,
    tensor_to_payload,
)
from src.skainet.infrastructure.layers import LayerNormalization, Linear, ReLU, Softmax
from src.skainet.infrastructure.models import Sequential
from src.skainet.infrastructure.module import (
    load_state_payload,
    module_from_config,
    module_to_config,
    registered_modules,
    state_payload,
)


class TestModuleConfig(unittest.TestCase):
    def setUp(self):
        self.ctx = ExecutionContext(ExecutionConfig(seed=11))
        self.model = Sequential(
            Linear(3, 4, context=self.ctx),
            ReLU(),
            LayerNormalization(4, context=self.ctx),
            Softmax(dim=-1),
        )

    def test_tree_layout(self):
        tree = module_to_config(self.model)
        self.assertEqual(tree["type"], "Sequential")
        self.assertEqual(list(tree["children"]), ["0", "1", "2", "3"])
        self.assertEqual(tree["children"]["0"]["type"], "Linear")
        self.assertEqual(tree["children"]["0"]["config"]["in_features"], 3)
        self.assertEqual(tree["children"]["1"], {"type": "ReLU", "config": {}, "children": {}})

    def test_round_trip_through_json(self):
        tree = json.loads(json.dumps(module_to_config(self.model)))
        rebuilt = module_from_config(tree, self.ctx)
        self.assertIsInstance(rebuilt, Sequential)
        self.assertEqual(len(rebuilt), 4)
        self.assertEqual(module_to_config(rebuilt), module_to_config(self.model))
        self.assertEqual(tuple(rebuilt(self.ctx.zeros((2, 3))).shape), (2, 4))

    def test_unknown_type(self):
        with self.assertRaises(ValueError):
            module_from_config({"type": "Conv9d", "config": {}, "children": {}})

    def test_children_on_leaf_module(self):
        class Leaf:
            @classmethod
            def from_config(cls, cfg, context=None):
                return cls()

        from src.skainet.infrastructure.module import register_module

        register_module("TestLeaf")(Leaf)
        node = {"type": "TestLeaf", "config": {}, "children": {"0": {"type": "ReLU"}}}
        with self.assertRaises(ValueError):
            module_from_config(node)

    def test_builtin_layers_registered(self):
        for name in (
            "Linear",
            "Conv2d",
            "MaxPool2d",
            "LayerNormalization",
            "ReLU",
            "Softmax",
            "Flatten",
            "Sequential",
        ):
            self.assertIn(name, registered_modules())


class TestStatePayload(unittest.TestCase):
    def setUp(self):
        self.ctx = ExecutionContext(ExecutionConfig(seed=12))

    def _model(self):
        return Sequential(Linear(2, 3, context=self.ctx), ReLU(), Linear(3, 1, context=self.ctx))

    def test_keys_are_qualified_names(self):
        payloads = state_payload(self._model())
        self.assertEqual(sorted(payloads), ["0.bias", "0.weight", "2.bias", "2.weight"])
        self.assertEqual(payloads["0.weight"]["shape"], [3, 2])
        self.assertEqual(payloads["0.weight"]["dtype"], "FP32")

    def test_load_restores_weights(self):
        source = self._model()
        target = self._model()
        payloads = json.loads(json.dumps(state_payload(source)))
        load_state_payload(target, payloads)
        for (_, a), (_, b) in zip(source.named_parameters(), target.named_parameters()):
            np.testing.assert_array_equal(a.to_numpy(), b.to_numpy())
        x = self.ctx.randn((4, 2))
        np.testing.assert_allclose(source(x).to_numpy(), target(x).to_numpy())

    def test_missing_key(self):
        payloads = state_payload(self._model())
        del payloads["2.bias"]
        with self.assertRaises(KeyError):
            load_state_payload(self._model(), payloads)

    def test_shape_mismatch(self):
        payloads = state_payload(self._model())
        payloads["0.bias"] = tensor_to_payload(self.ctx.zeros((4,)))
        with self.assertRaises(ValueError):
            load_state_payload(self._model(), payloads)

    def test_dtype_mismatch(self):
        payloads = state_payload(self._model())
        payloads["0.bias"] = tensor_to_payload(self.ctx.zeros((3,), DType.FP16))
        with self.assertRaises(ValueError):
            load_state_payload(self._model(), payloads)


class TestB64Payloads(unittest.TestCase):
    def setUp(self):
        self.ctx = ExecutionContext()

    def test_bytes_helpers(self):
        self.assertEqual(bytes_to_b64_str(b"\x00\x01\x02"), "AAEC")
        self.assertEqual(b64_str_to_bytes("AAEC"), b"\x00\x01\x02")

    def test_fp32_payload_is_little_endian(self):
        payload = tensor_to_payload(self.ctx.tensor([1.0]))
        self.assertEqual(payload, {"b64": "AACAPw==", "dtype": "FP32", "shape": [1]})

    def test_packed_payload_keeps_packed_bytes(self):
        t = self.ctx.tensor([1, 0, -1, 1], DType.TERNARY)
        payload = tensor_to_payload(t)
        self.assertEqual(b64_str_to_bytes(payload["b64"]), bytes([0b01100001]))
        np.testing.assert_array_equal(payload_to_data(payload).to_numpy(), [1, 0, -1, 1])

    def test_payload_to_tensor_binds_context(self):
        tensor = payload_to_tensor(tensor_to_payload(self.ctx.tensor([[1.0, 2.0]])), self.ctx)
        self.assertEqual(tuple(tensor.shape), (1, 2))
        np.testing.assert_array_equal((tensor + 1.0).to_numpy(), [[2.0, 3.0]])

    def test_bad_payloads(self):
        with self.assertRaises(ValueError):
            payload_to_data({"b64": "AACAPw==", "dtype": "FP128", "shape": [1]})
        with self.assertRaises(KeyError):
            payload_to_data({"b64": "AACAPw==", "shape": [1]})
        with self.assertRaises(ValueError):
            payload_to_data({"b64": "AACAPw==", "dtype": "FP32", "shape": [2]})


if __name__ == "__main__":
    unittest.main()
