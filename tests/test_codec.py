"""
Unit tests for the element codec.
"""

import json
import tempfile
import unittest
from pathlib import Path

from codelpg.graph.codec import ElementCodec
from codelpg.graph.model import Edge, Graph, Node
from codelpg.graph.schema import EdgeLabel


def _sample_graph() -> Graph:
    graph = Graph("sample")
    graph.add_node(Node("A.B", "Type", properties={"kind": "class", "docComment": ""}))
    graph.add_node(Node("A.B.M", "Operation", properties={"kind": "method"}))
    graph.add_or_get_edge("A.B", "A.B.M", "encapsulates")
    graph.add_or_get_edge("A.B.M", "A.B.M", EdgeLabel.INVOKES)
    graph.add_or_get_edge("A.B.M", "A.B.M", EdgeLabel.INVOKES)
    return graph


class TestElementEncoding(unittest.TestCase):
    """Tests for encoding graphs into the element format."""

    def setUp(self):
        self.codec = ElementCodec()

    def test_encode_graph_shape(self):
        """Test the nested elements/nodes/edges layout."""
        encoded = self.codec.encode_graph(_sample_graph())

        self.assertEqual(list(encoded.keys()), ["elements"])
        self.assertEqual(len(encoded["elements"]["nodes"]), 2)
        self.assertEqual(len(encoded["elements"]["edges"]), 2)

    def test_encode_node(self):
        """Test node data fields."""
        node = Node("A.B", "Type", properties={"kind": "class"})

        data = self.codec.encode_node(node)["data"]

        self.assertEqual(data, {"id": "A.B", "labels": ["Type"], "properties": {"kind": "class"}})

    def test_encode_edge(self):
        """Test edge data fields and display ID."""
        edge = Edge("A.B.M", "A.B.N", EdgeLabel.INVOKES)
        edge.increment()

        data = self.codec.encode_edge(edge)["data"]

        self.assertEqual(data["id"], "A.B.M-invokes-A.B.N")
        self.assertEqual(data["source"], "A.B.M")
        self.assertEqual(data["target"], "A.B.N")
        self.assertEqual(data["label"], "invokes")
        self.assertEqual(data["properties"]["weight"], 2)

    def test_to_json(self):
        """Test JSON serialization."""
        text = self.codec.to_json(_sample_graph())
        data = json.loads(text)

        ids = [element["data"]["id"] for element in data["elements"]["nodes"]]
        self.assertEqual(ids, ["A.B", "A.B.M"])

    def test_write_to_file(self):
        """Test writing a document named after the base name."""
        with tempfile.TemporaryDirectory() as tmpdir:
            path = self.codec.write_to_file(_sample_graph(), tmpdir, "sample")

            self.assertEqual(path, Path(tmpdir) / "sample.json")
            with open(path) as f:
                data = json.load(f)
            self.assertIn("elements", data)


class TestElementDecoding(unittest.TestCase):
    """Tests for decoding single elements."""

    def setUp(self):
        self.codec = ElementCodec()

    def test_node_round_trip(self):
        """Test that a node survives encode then decode."""
        node = Node(
            "A.B.M",
            "Operation",
            "Constructor",
            properties={
                "kind": "constructor",
                "parameterPosition": 2,
                "tags": ["a", "b"],
                "extra": {"nested": 1.5},
            },
        )

        decoded = self.codec.decode_node(self.codec.encode_node(node))

        self.assertEqual(decoded.id, node.id)
        self.assertEqual(decoded.labels, node.labels)
        self.assertEqual(decoded.properties, node.properties)

    def test_edge_round_trip_from_json_text(self):
        """Test that an edge survives encode, JSON and decode."""
        edge = Edge("A.B", "x#NumMethods", EdgeLabel.MEASURES, {"value": 2})
        text = json.dumps(self.codec.encode_edge(edge))

        decoded = self.codec.decode_edge(text)

        self.assertEqual(decoded.key, edge.key)
        self.assertEqual(decoded.id, edge.id)
        self.assertEqual(decoded.properties, {"weight": 1, "value": 2})

    def test_null_properties_dropped(self):
        """Test that null property values are not reconstructed."""
        element = {"data": {"id": "n", "labels": ["Type"], "properties": {"docComment": None}}}

        decoded = self.codec.decode_node(element)

        self.assertNotIn("docComment", decoded.properties)

    def test_full_decode_not_supported(self):
        """Test that whole-graph and collection decoding fail explicitly."""
        encoded = self.codec.encode_graph(_sample_graph())

        with self.assertRaises(NotImplementedError):
            self.codec.decode_graph(encoded)
        with self.assertRaises(NotImplementedError):
            self.codec.decode_nodes(encoded["elements"]["nodes"])
        with self.assertRaises(NotImplementedError):
            self.codec.decode_edges(encoded["elements"]["edges"])


if __name__ == "__main__":
    unittest.main()
