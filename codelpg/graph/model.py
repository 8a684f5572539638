"""
Labeled property graph data structures.

Nodes are identified by their ID alone; edges by the triple
(source, target, label). Repeated edges collapse into one edge whose
``weight`` counts the occurrences.
"""

import logging
from typing import Any, Dict, Iterable, Iterator, List, Optional, Tuple

import networkx as nx

logger = logging.getLogger(__name__)

EdgeKey = Tuple[str, str, str]


class Node:
    """
    Node in the property graph.

    Carries an ordered, duplicate-free list of labels and a property map.
    Two nodes are equal iff their IDs are equal.
    """

    __slots__ = ("id", "labels", "properties")

    def __init__(
        self,
        node_id: str,
        *labels: str,
        properties: Optional[Dict[str, Any]] = None,
    ):
        self.id = node_id
        self.labels: List[str] = []
        for label in labels:
            self.add_label(label)
        self.properties: Dict[str, Any] = dict(properties or {})

    def add_label(self, label: str) -> None:
        if label not in self.labels:
            self.labels.append(label)

    def has_label(self, label: str) -> bool:
        return label in self.labels

    def __eq__(self, other):
        if isinstance(other, Node):
            return self.id == other.id
        return NotImplemented

    def __hash__(self):
        return hash(self.id)

    def __repr__(self):
        return f"Node({self.id!r}, labels={self.labels!r})"


class Edge:
    """
    Edge in the property graph.

    Properties always contain ``weight``. Two edges are equal iff their
    (source, target, label) triples match.
    """

    __slots__ = ("source_id", "target_id", "label", "properties")

    def __init__(
        self,
        source_id: str,
        target_id: str,
        label: str,
        properties: Optional[Dict[str, Any]] = None,
    ):
        self.source_id = source_id
        self.target_id = target_id
        self.label = label
        self.properties: Dict[str, Any] = {"weight": 1}
        if properties:
            self.properties.update(properties)

    @property
    def id(self) -> str:
        """Display ID of the edge."""
        return f"{self.source_id}-{self.label}-{self.target_id}"

    @property
    def key(self) -> EdgeKey:
        return (self.source_id, self.target_id, self.label)

    @property
    def weight(self) -> int:
        return self.properties.get("weight", 1)

    def increment(self, amount: int = 1) -> None:
        """Record another occurrence of this relationship."""
        self.properties["weight"] = self.weight + amount

    def __eq__(self, other):
        if isinstance(other, Edge):
            return self.key == other.key
        return NotImplemented

    def __hash__(self):
        return hash(self.key)

    def __repr__(self):
        return f"Edge({self.id!r}, weight={self.weight})"


class Graph:
    """
    Labeled property graph.

    Wraps a NetworkX multi-digraph keyed by edge label, so each
    (source, target, label) triple maps to exactly one stored edge.
    Edges may be added before their endpoints exist; such dangling
    edges are removed by remove_dangling_edges().
    """

    def __init__(self, name: str = ""):
        self.name = name
        self._graph = nx.MultiDiGraph()
        self._nodes: Dict[str, Node] = {}
        self._label_index: Dict[str, Dict[str, None]] = {}

    @property
    def node_count(self) -> int:
        """Number of nodes in the graph."""
        return len(self._nodes)

    @property
    def edge_count(self) -> int:
        """Number of edges in the graph."""
        return self._graph.number_of_edges()

    @property
    def nodes(self) -> List[Node]:
        return list(self._nodes.values())

    @property
    def edges(self) -> List[Edge]:
        return list(self.iter_edges())

    def add_node(self, node: Node) -> Node:
        """
        Add a node unless one with the same ID already exists.

        Args:
            node: Node to add.

        Returns:
            The node held by the graph for this ID; on duplicates this is
            the node inserted first.
        """
        existing = self._nodes.get(node.id)
        if existing is not None:
            return existing

        self._nodes[node.id] = node
        self._graph.add_node(node.id)
        for label in node.labels:
            self._label_index.setdefault(label, {})[node.id] = None
        return node

    def has_node(self, node_id: str) -> bool:
        return node_id in self._nodes

    def find_by_id(self, node_id: str) -> Optional[Node]:
        """Get a node by ID, or None."""
        return self._nodes.get(node_id)

    def find_nodes_with_label(self, label: str) -> List[Node]:
        """Get all nodes carrying a label, in insertion order."""
        node_ids = self._label_index.get(label, {})
        return [self._nodes[nid] for nid in node_ids]

    def add_or_get_edge(
        self,
        source_id: str,
        target_id: str,
        label: str,
        increment: bool = True,
        **properties: Any,
    ) -> Edge:
        """
        Add an edge, or return the existing one for the same triple.

        Args:
            source_id: ID of the source node.
            target_id: ID of the target node.
            label: Relationship label.
            increment: Bump the weight of an existing edge.
            **properties: Properties set when the edge is created.

        Returns:
            The edge stored for (source_id, target_id, label).
        """
        existing = self.find_edge(source_id, target_id, label)
        if existing is not None:
            if increment:
                existing.increment()
            return existing

        edge = Edge(source_id, target_id, label, properties)
        self._graph.add_edge(source_id, target_id, key=label, edge=edge)
        return edge

    def add_edge(self, edge: Edge) -> Edge:
        """Add an edge object, merging it into an existing one by weight."""
        existing = self.find_edge(*edge.key)
        if existing is not None:
            existing.increment(edge.weight)
            return existing
        self._graph.add_edge(edge.source_id, edge.target_id, key=edge.label, edge=edge)
        return edge

    def find_edge(self, source_id: str, target_id: str, label: str) -> Optional[Edge]:
        """Get the edge for a triple, or None."""
        if not self._graph.has_edge(source_id, target_id, key=label):
            return None
        return self._graph.edges[source_id, target_id, label]["edge"]

    def has_edge(self, source_id: str, target_id: str, label: str) -> bool:
        return self._graph.has_edge(source_id, target_id, key=label)

    def edges_with_label(self, label: str) -> List[Edge]:
        """Get all edges carrying a label."""
        return [edge for edge in self.iter_edges() if edge.label == label]

    def remove_edge(self, source_id: str, target_id: str, label: str) -> bool:
        if not self._graph.has_edge(source_id, target_id, key=label):
            return False
        self._graph.remove_edge(source_id, target_id, key=label)
        return True

    def remove_dangling_edges(self) -> int:
        """
        Discard every edge whose source or target is not a node.

        Also drops the placeholder vertices NetworkX created for those
        endpoints. Running it twice is the same as running it once.

        Returns:
            Number of edges removed.
        """
        dangling = [
            (source_id, target_id, label)
            for source_id, target_id, label in self._graph.edges(keys=True)
            if source_id not in self._nodes or target_id not in self._nodes
        ]
        self._graph.remove_edges_from(dangling)

        placeholders = [nid for nid in self._graph.nodes if nid not in self._nodes]
        self._graph.remove_nodes_from(placeholders)

        if dangling:
            logger.debug(f"Removed {len(dangling)} dangling edges from '{self.name}'")
        return len(dangling)

    def iter_nodes(self) -> Iterator[Node]:
        """Iterate over all nodes."""
        yield from self._nodes.values()

    def iter_edges(self) -> Iterator[Edge]:
        """Iterate over all edges."""
        for _, _, data in self._graph.edges(data=True):
            yield data["edge"]

    def neighbors(self, node_id: str, label: Optional[str] = None) -> List[Node]:
        """Target nodes of outgoing edges, optionally filtered by label."""
        if node_id not in self._graph:
            return []
        result = []
        for _, target_id, key in self._graph.out_edges(node_id, keys=True):
            if label is not None and key != label:
                continue
            target = self._nodes.get(target_id)
            if target is not None and target not in result:
                result.append(target)
        return result

    def get_label_distribution(self) -> Dict[str, Dict[str, int]]:
        """Get distribution of node labels and edge labels."""
        edge_labels: Dict[str, int] = {}
        for _, _, key in self._graph.edges(keys=True):
            edge_labels[key] = edge_labels.get(key, 0) + 1
        return {
            "nodes": {
                label: len(node_ids)
                for label, node_ids in self._label_index.items()
            },
            "edges": edge_labels,
        }

    def get_statistics(self) -> Dict[str, Any]:
        """Get graph statistics."""
        if self.node_count == 0:
            return {
                "node_count": 0,
                "edge_count": self.edge_count,
                "label_distribution": self.get_label_distribution(),
            }

        return {
            "node_count": self.node_count,
            "edge_count": self.edge_count,
            "label_distribution": self.get_label_distribution(),
            "density": nx.density(self._graph),
            "connected_components": (
                nx.number_weakly_connected_components(self._graph)
            ),
        }

    def get_networkx_graph(self) -> nx.MultiDiGraph:
        """Get the underlying NetworkX graph."""
        return self._graph

    @classmethod
    def of(cls, name: str, nodes: Iterable[Node] = (), edges: Iterable[Edge] = ()) -> "Graph":
        """Build a graph from ready-made nodes and edges."""
        graph = cls(name)
        for node in nodes:
            graph.add_node(node)
        for edge in edges:
            graph.add_edge(edge)
        return graph
