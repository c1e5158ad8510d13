import unittest

from src.skainet.domain import TensorSpec
from src.skainet.infrastructure.graph import (
    ComputeGraph,
    GraphEdge,
    GraphNode,
    InputOperation,
    MatMulOperation,
    ReluOperation,
    SigmoidOperation,
    SoftmaxOperation,
)
from src.skainet.infrastructure.graph.export import (
    draw_dot,
    element_type,
    tensor_type,
    to_stablehlo,
    trace,
)


def build_mlp_graph() -> ComputeGraph:
    a = GraphNode("a", InputOperation(), (), (TensorSpec("a", (2, 3)),))
    b = GraphNode("b", InputOperation(), (), (TensorSpec("b", (3, 4)),))
    mm = GraphNode(
        "mm",
        MatMulOperation(),
        (TensorSpec("a", (2, 3)), TensorSpec("b", (3, 4))),
        (TensorSpec("mm_out", (2, 4)),),
    )
    act = GraphNode("act", ReluOperation(), (TensorSpec("mm_out", (2, 4)),), (TensorSpec("act_out", (2, 4)),))
    graph = ComputeGraph()
    for n in (a, b, mm, act):
        graph.add_node(n)
    graph.add_edge(GraphEdge("e0", a, mm, 0, 0))
    graph.add_edge(GraphEdge("e1", b, mm, 0, 1))
    graph.add_edge(GraphEdge("e2", mm, act, 0, 0))
    return graph


class TestStableHloExport(unittest.TestCase):
    def test_module_text(self):
        text = str(to_stablehlo(build_mlp_graph()))
        lines = text.splitlines()
        self.assertEqual(lines[0], "module {")
        self.assertEqual(
            lines[1], "  func.func @main(%arg0: tensor<2x3xf32>, %arg1: tensor<3x4xf32>) -> () {"
        )
        self.assertIn("    // input a: a : tensor<2x3xf32>", lines)
        self.assertIn("    %v0 = stablehlo.dot_general %arg0, %arg1", lines)
        self.assertIn("      contracting_dims = [[-1], [-2]] : tensor<2x4xf32>", lines)
        self.assertIn("    %v1 = stablehlo.constant dense<0.0> : tensor<2x4xf32>", lines)
        self.assertIn("    %v2 = stablehlo.maximum %v0, %v1 : tensor<2x4xf32>", lines)
        self.assertEqual(lines[-3:], ["    return", "  }", "}"])

    def test_function_name(self):
        text = to_stablehlo(build_mlp_graph(), function_name="forward").content
        self.assertIn("func.func @forward(", text)

    def test_unsupported_operation_is_commented(self):
        graph = build_mlp_graph()
        act = graph.get_node("act")
        sig = GraphNode("sig", SigmoidOperation(), act.output_specs, (TensorSpec("s", (2, 4)),))
        graph.add_node(sig)
        graph.add_edge(GraphEdge("e3", act, sig))
        text = to_stablehlo(graph).content
        self.assertIn("    // Unsupported op sigmoid (type=activation) for node sig", text)

    def test_element_types(self):
        self.assertEqual(element_type("FP32"), "f32")
        self.assertEqual(element_type("FP16"), "f16")
        self.assertEqual(element_type("INT8"), "i8")
        self.assertEqual(element_type("INT4"), "i4")
        self.assertEqual(element_type("F64"), "f64")
        self.assertEqual(element_type("INT64"), "i64")

    def test_unknown_element_type_falls_back(self):
        with self.assertLogs(level="WARNING"):
            self.assertEqual(element_type("BF16"), "f32")

    def test_tensor_type(self):
        self.assertEqual(tensor_type(TensorSpec("x", (2, None), "INT32")), "tensor<2x?xi32>")
        self.assertEqual(tensor_type(TensorSpec("x", ())), "tensor<f32>")
        self.assertEqual(tensor_type(TensorSpec("x", None)), "tensor<*xf32>")


class TestGraphvizExport(unittest.TestCase):
    def test_dot_text(self):
        text = str(draw_dot(build_mlp_graph()))
        lines = text.splitlines()
        self.assertEqual(lines[:2], ["digraph {", "    rankdir=LR;"])
        self.assertIn(
            '    a [label="input | a", shape=record, style=filled, fillcolor=lightblue];', lines
        )
        self.assertIn('    mm [label="matmul | mm", shape=record];', lines)
        self.assertIn("    a -> mm;", lines)
        self.assertIn("    mm -> act;", lines)
        self.assertEqual(lines[-1], "}")

    def test_parameters_box(self):
        graph = build_mlp_graph()
        act = graph.get_node("act")
        sm = GraphNode("sm", SoftmaxOperation(dim=-1), act.output_specs, act.output_specs)
        graph.add_node(sm)
        graph.add_edge(GraphEdge("e3", act, sm))
        text = draw_dot(graph, rankdir="TB").content
        self.assertIn("rankdir=TB;", text)
        self.assertIn('    sm_op [label="dim: -1", shape=box, style=dashed];', text)
        self.assertIn("    sm_op -> sm [style=dotted];", text)

    def test_invalid_rankdir(self):
        with self.assertRaises(ValueError):
            draw_dot(build_mlp_graph(), rankdir="RL")

    def test_trace_restricted_to_outputs(self):
        graph = build_mlp_graph()
        nodes, edges = trace(graph, [graph.get_node("mm")])
        self.assertEqual({n.id for n in nodes}, {"mm", "a", "b"})
        self.assertEqual(len(edges), 2)
        all_nodes, all_edges = trace(graph)
        self.assertEqual(len(all_nodes), 4)
        self.assertEqual(len(all_edges), 3)


if __name__ == "__main__":
    unittest.main()
