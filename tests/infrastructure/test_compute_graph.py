import unittest

from src.skainet.domain import GraphCycleError, GraphStructureError, TensorSpec
from src.skainet.infrastructure.graph import (
    ComputeGraph,
    GraphEdge,
    GraphNode,
    InputOperation,
    ReluOperation,
    SigmoidOperation,
)


def node(node_id: str, operation, shape=(2, 2)) -> GraphNode:
    inputs = () if operation.name == "input" else (TensorSpec(f"{node_id}_in", shape),)
    return GraphNode(node_id, operation, inputs, (TensorSpec(f"{node_id}_out", shape),))


def edge(src: GraphNode, dst: GraphNode) -> GraphEdge:
    return GraphEdge(f"{src.id}->{dst.id}", src, dst, tensor_spec=src.output_specs[0])


class TestComputeGraph(unittest.TestCase):
    def setUp(self):
        self.a = node("A", InputOperation())
        self.b = node("B", ReluOperation())
        self.c = node("C", SigmoidOperation())
        self.graph = ComputeGraph()
        for n in (self.a, self.b, self.c):
            self.graph.add_node(n)
        self.graph.add_edge(edge(self.a, self.b))
        self.graph.add_edge(edge(self.b, self.c))

    def test_topological_order(self):
        self.assertEqual([n.id for n in self.graph.get_topological_order()], ["A", "B", "C"])

    def test_cycle_detected(self):
        # bypasses add_edge checks through the constructor
        cyclic = ComputeGraph(self.graph.nodes, self.graph.edges + (edge(self.c, self.a),))
        result = cyclic.validate()
        self.assertFalse(result.is_valid)
        with self.assertRaises(GraphCycleError):
            cyclic.get_topological_order()

    def test_cycle_through_add_edge(self):
        self.graph.add_edge(edge(self.c, self.a))
        self.assertFalse(self.graph.validate().is_valid)
        with self.assertRaises(GraphCycleError):
            self.graph.get_topological_order()

    def test_inputs_outputs(self):
        self.assertEqual(self.graph.get_input_nodes(), [self.a])
        self.assertEqual(self.graph.get_output_nodes(), [self.c])
        self.assertEqual(self.graph.get_input_nodes("B"), [self.a])
        self.assertEqual(self.graph.get_output_nodes(self.b), [self.c])

    def test_dependencies(self):
        self.assertEqual([n.id for n in self.graph.get_dependencies("C")], ["B", "A"])
        self.assertEqual(self.graph.get_dependencies(self.a), [])

    def test_duplicate_node(self):
        with self.assertRaises(GraphStructureError):
            self.graph.add_node(node("A", ReluOperation()))

    def test_edge_to_missing_node(self):
        ghost = node("Z", ReluOperation())
        with self.assertRaises(GraphStructureError):
            self.graph.add_edge(edge(self.a, ghost))

    def test_duplicate_edge(self):
        with self.assertRaises(GraphStructureError):
            self.graph.add_edge(edge(self.a, self.b))

    def test_validate_reports_each_duplicate_id_once(self):
        nodes = self.graph.nodes + (node("A", ReluOperation()), node("A", ReluOperation()))
        edges = self.graph.edges + (edge(self.a, self.b),)
        errors = ComputeGraph(nodes, edges).validate().errors
        self.assertIn("Duplicate node ids: ['A']", errors)
        self.assertIn("Duplicate edge ids: ['A->B']", errors)

    def test_validate_scales_to_long_chains(self):
        nodes = [node("n0", InputOperation())]
        nodes += [node(f"n{i}", ReluOperation()) for i in range(1, 2000)]
        edges = [edge(a, b) for a, b in zip(nodes, nodes[1:])]
        self.assertTrue(ComputeGraph(nodes, edges).validate().is_valid)

    def test_remove_node_drops_edges(self):
        self.assertTrue(self.graph.remove_node("B"))
        self.assertEqual(len(self.graph.edges), 0)
        self.assertFalse(self.graph.remove_node("B"))
        self.assertNotIn("B", self.graph)

    def test_remove_edge(self):
        self.assertTrue(self.graph.remove_edge("A->B"))
        self.assertFalse(self.graph.remove_edge("A->B"))

    def test_remove_output_nodes(self):
        removed = self.graph.remove_output_nodes()
        self.assertEqual(removed, [self.c])
        self.assertEqual(self.graph.get_output_nodes(), [self.b])

    def test_copy_is_independent(self):
        copy = self.graph.copy()
        copy.remove_node("C")
        self.assertEqual(len(self.graph), 3)
        self.assertEqual(len(copy), 2)
        self.assertIs(copy.edges[0].destination, copy.get_node("B"))

    def test_validate_reports_spec_mismatch(self):
        bad = GraphEdge("bad", self.a, self.c, tensor_spec=TensorSpec("x", (9,), "INT8"))
        graph = ComputeGraph(self.graph.nodes, self.graph.edges + (bad,))
        result = graph.validate()
        self.assertFalse(result.is_valid)
        self.assertTrue(any("'bad'" in e for e in result.errors))

    def test_validate_reports_missing_endpoint(self):
        ghost = node("Z", ReluOperation())
        graph = ComputeGraph([self.a], [edge(self.a, ghost)])
        self.assertFalse(graph.validate().is_valid)

    def test_orphans_only_logged(self):
        self.graph.add_node(node("D", ReluOperation()))
        with self.assertLogs(level="WARNING"):
            result = self.graph.validate()
        self.assertTrue(result.is_valid)

    def test_node_equality_by_id(self):
        self.assertEqual(self.a, node("A", ReluOperation()))
        self.assertIn(self.a, self.graph)
        self.assertIsNone(self.graph.get_node("missing"))

    def test_clear(self):
        self.graph.clear()
        self.assertEqual(len(self.graph), 0)
        self.assertEqual(self.graph.edges, ())


if __name__ == "__main__":
    unittest.main()
