import unittest

from src.skainet.domain import UnknownOperationError
from src.skainet.infrastructure.graph import (
    REQUIRED,
    BaseOperation,
    ClassOperationFactory,
    OperationRegistry,
    ReluOperation,
    ReshapeOperation,
    default_operation_registry,
)


class ScaleOperation(BaseOperation):
    NAME = "scale"
    TYPE = "math"
    DESCRIPTION = "Multiply by a constant"
    DEFAULTS = {"factor": REQUIRED}

    def _execute(self, inputs):
        x = inputs[0]
        return [x * self.parameters["factor"]]


class TestOperationRegistry(unittest.TestCase):
    def setUp(self):
        self.registry = default_operation_registry()

    def test_builtins_registered(self):
        for name in ("input", "add", "matmul", "conv2d", "softmax", "convert"):
            self.assertTrue(self.registry.is_registered(name))
            self.assertIn(name, self.registry)
        self.assertEqual(len(self.registry), 27)

    def test_create_operation(self):
        op = self.registry.create_operation("reshape", {"new_shape": (3, 2)})
        self.assertEqual(op, ReshapeOperation(new_shape=(3, 2)))

    def test_unknown_name(self):
        with self.assertRaises(UnknownOperationError):
            self.registry.create_operation("does_not_exist")
        with self.assertRaises(LookupError):
            self.registry.get_operation_metadata("does_not_exist")

    def test_duplicate_registration(self):
        with self.assertRaises(ValueError):
            self.registry.register_class(ReluOperation)
        self.registry.register_class(ReluOperation, overwrite=True)

    def test_empty_name_rejected(self):
        with self.assertRaises(ValueError):
            self.registry.register_operation("", ClassOperationFactory(ReluOperation))

    def test_unregister(self):
        self.assertTrue(self.registry.unregister_operation("relu"))
        self.assertFalse(self.registry.unregister_operation("relu"))
        self.assertFalse(self.registry.is_registered("relu"))

    def test_custom_operation(self):
        registry = default_operation_registry(extra=[ScaleOperation])
        op = registry.create_operation("scale", {"factor": 2.0})
        self.assertEqual(op.parameters["factor"], 2.0)
        self.assertNotIn("scale", self.registry)

    def test_metadata(self):
        meta = self.registry.get_operation_metadata("max_pool2d")
        self.assertEqual(meta.name, "max_pool2d")
        by_name = {p.name: p for p in meta.parameter_specs}
        self.assertTrue(by_name["kernel_size"].required)
        self.assertFalse(by_name["padding"].required)
        self.assertEqual(by_name["padding"].default_value, 0)
        self.assertFalse(self.registry.get_operation_metadata("input").supports_gradients)
        self.assertEqual(len(self.registry.get_all_operation_metadata()), 27)

    def test_deserialize_round_trip(self):
        op = self.registry.create_operation("sum", {"dim": 1, "keepdim": True})
        self.assertEqual(self.registry.deserialize_operation(op.serialize()), op)

    def test_deserialize_requires_name(self):
        with self.assertRaises(ValueError):
            self.registry.deserialize_operation({"parameters": {}})

    def test_registries_are_independent(self):
        other = OperationRegistry()
        self.assertEqual(len(other), 0)
        self.assertFalse(other.is_registered("add"))


if __name__ == "__main__":
    unittest.main()
