"""
Labeled property graph construction and serialization.

Provides the node/edge model with its identity and deduplication
rules, the label schemas, and the nested element codec.
"""

from codelpg.graph.model import Graph, Node, Edge
from codelpg.graph.codec import ElementCodec
from codelpg.graph.schema import (
    GraphSchema,
    NodeLabel,
    EdgeLabel,
    FULL_SCHEMA,
    COMPACT_SCHEMA,
    get_schema,
)

__all__ = [
    "Graph",
    "Node",
    "Edge",
    "ElementCodec",
    "GraphSchema",
    "NodeLabel",
    "EdgeLabel",
    "FULL_SCHEMA",
    "COMPACT_SCHEMA",
    "get_schema",
]
