"""
Element codec for property graphs.

Encodes a graph into the nested element format::

    {"elements": {"nodes": [{"data": {...}}, ...],
                  "edges": [{"data": {...}}, ...]}}

Single nodes and edges can be decoded back. Decoding whole graphs or
node/edge collections is not supported yet, so a full round trip of a
graph document is not guaranteed.
"""

import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Union

from codelpg.graph.model import Edge, Graph, Node

logger = logging.getLogger(__name__)

Element = Dict[str, Any]


class ElementCodec:
    """Encoder/decoder for the nested element wire format."""

    def __init__(self, indent: int = 2):
        self.indent = indent

    def encode_graph(self, graph: Graph) -> Element:
        """Encode a whole graph."""
        return {
            "elements": {
                "nodes": self.encode_nodes(graph.iter_nodes()),
                "edges": self.encode_edges(graph.iter_edges()),
            }
        }

    def encode_nodes(self, nodes) -> List[Element]:
        return [self.encode_node(node) for node in nodes]

    def encode_edges(self, edges) -> List[Element]:
        return [self.encode_edge(edge) for edge in edges]

    def encode_node(self, node: Node) -> Element:
        return {
            "data": {
                "id": node.id,
                "labels": list(node.labels),
                "properties": dict(node.properties),
            }
        }

    def encode_edge(self, edge: Edge) -> Element:
        return {
            "data": {
                "id": edge.id,
                "source": edge.source_id,
                "target": edge.target_id,
                "label": edge.label,
                "properties": dict(edge.properties),
            }
        }

    def decode_graph(self, encoded_graph: Union[Element, str]) -> Graph:
        raise NotImplementedError("Decoding a whole graph is not supported")

    def decode_nodes(self, encoded_nodes: Union[List[Element], str]) -> List[Node]:
        raise NotImplementedError("Decoding a node collection is not supported")

    def decode_edges(self, encoded_edges: Union[List[Element], str]) -> List[Edge]:
        raise NotImplementedError("Decoding an edge collection is not supported")

    def decode_node(self, encoded_node: Union[Element, str]) -> Node:
        """
        Rebuild a node from its element.

        Args:
            encoded_node: Element dict or its JSON text.

        Returns:
            Node with the encoded ID, labels and properties.
        """
        data = self._load(encoded_node)["data"]
        node = Node(str(data["id"]), *[str(label) for label in data.get("labels", [])])
        node.properties.update(self._decode_properties(data.get("properties")))
        return node

    def decode_edge(self, encoded_edge: Union[Element, str]) -> Edge:
        """
        Rebuild an edge from its element.

        The display ID is derived again from source, label and target.
        """
        data = self._load(encoded_edge)["data"]
        edge = Edge(str(data["source"]), str(data["target"]), str(data["label"]))
        edge.properties.update(self._decode_properties(data.get("properties")))
        return edge

    def to_json(self, graph: Graph) -> str:
        """Serialize a graph document to JSON text."""
        return json.dumps(self.encode_graph(graph), indent=self.indent)

    def write_to_file(self, graph: Graph, directory: Union[str, Path], base_name: str) -> Path:
        """
        Write the graph document to ``{directory}/{base_name}.json``.

        Returns:
            Path of the written file.
        """
        path = Path(directory) / f"{base_name}.json"
        self.write(graph, path)
        return path

    def write(self, graph: Graph, path: Union[str, Path]) -> None:
        """Write the graph document to an explicit file path."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w", encoding="utf-8") as f:
            f.write(self.to_json(graph))
        logger.info(f"Graph '{graph.name}' written to {path}")

    @staticmethod
    def _load(encoded: Union[Element, str]) -> Element:
        if isinstance(encoded, str):
            return json.loads(encoded)
        return encoded

    @staticmethod
    def _decode_properties(properties: Any) -> Dict[str, Any]:
        decoded = {}
        for key, value in (properties or {}).items():
            if value is None:
                continue
            if isinstance(value, list):
                decoded[key] = list(value)
            elif isinstance(value, dict):
                decoded[key] = dict(value)
            else:
                decoded[key] = value
        return decoded
