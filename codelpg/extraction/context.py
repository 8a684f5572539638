"""
Per-run extraction context.

Holds the graph under construction, the provider it is built from and
the symbol-to-node registries the phases share. Nodes are only ever
created through the context so that every entity kind gets its ID and
property set in one place.
"""

import posixpath
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Union

from codelpg.core.config import ExtractionConfig
from codelpg.graph.model import Graph, Node
from codelpg.graph.schema import GraphSchema, NodeLabel
from codelpg.semantic.provider import SemanticModelProvider
from codelpg.semantic.symbols import (
    FieldSymbol,
    MethodKind,
    MethodSymbol,
    NamespaceSymbol,
    ParameterSymbol,
    SyntaxReference,
    TypeSymbol,
)
from codelpg.utils.naming import normalize_symbol_id


@dataclass
class ExtractionContext:
    """Shared state of one extraction run."""

    graph: Graph
    provider: SemanticModelProvider
    schema: GraphSchema
    options: ExtractionConfig
    project_node: Optional[Node] = None
    file_nodes: Dict[str, Node] = field(default_factory=dict)
    folder_nodes: Dict[str, Node] = field(default_factory=dict)
    scope_nodes: Dict[NamespaceSymbol, Node] = field(default_factory=dict)
    type_nodes: Dict[TypeSymbol, Node] = field(default_factory=dict)
    method_nodes: Dict[MethodSymbol, Node] = field(default_factory=dict)
    field_nodes: Dict[FieldSymbol, Node] = field(default_factory=dict)
    metric_nodes: Dict[str, Node] = field(default_factory=dict)

    @property
    def sources(self) -> List[str]:
        return self.provider.sources

    def owner_node(self, symbol: Union[FieldSymbol, MethodSymbol]) -> Optional[Node]:
        """Node of the type or namespace a member belongs to."""
        owner = symbol.owner
        if isinstance(owner, TypeSymbol):
            return self.type_nodes.get(owner)
        if isinstance(owner, NamespaceSymbol):
            return self.scope_nodes.get(owner)
        return None

    def add_project(self) -> Node:
        node = Node(self.graph.name, NodeLabel.PROJECT, properties={
            "simpleName": self.graph.name,
            "qualifiedName": ", ".join(self.sources),
            "kind": "project",
        })
        self.project_node = self.graph.add_node(node)
        return self.project_node

    def add_file(self, path: str) -> Node:
        node = self.file_nodes.get(path)
        if node is None:
            node = self.graph.add_node(Node(path, NodeLabel.FILE, properties={
                "simpleName": posixpath.basename(path),
                "qualifiedName": path,
                "kind": "file",
            }))
            self.file_nodes[path] = node
        return node

    def add_folder(self, path: str) -> Node:
        node = self.folder_nodes.get(path)
        if node is None:
            node = self.graph.add_node(Node(path, NodeLabel.FOLDER, properties={
                "simpleName": posixpath.basename(path) or path,
                "qualifiedName": path,
                "kind": "folder",
            }))
            self.folder_nodes[path] = node
        return node

    def add_scope(self, namespace: NamespaceSymbol) -> Node:
        node = Node(
            normalize_symbol_id(namespace.qualified_name),
            *self.schema.scope_labels,
            properties={
                "simpleName": namespace.name,
                "qualifiedName": namespace.qualified_name,
                "kind": "namespace",
            },
        )
        if namespace.is_external:
            node.properties["external"] = True
        node = self.graph.add_node(node)
        self.scope_nodes[namespace] = node
        return node

    def add_type(self, symbol: TypeSymbol) -> Node:
        node = Node(
            normalize_symbol_id(symbol.qualified_name),
            *self.schema.type_labels,
            properties={
                "simpleName": symbol.name,
                "qualifiedName": symbol.qualified_name,
                "kind": symbol.type_kind.value,
                "visibility": symbol.accessibility.value,
                "docComment": symbol.documentation,
            },
        )
        if symbol.is_external:
            node.properties["external"] = True
        node = self.graph.add_node(node)
        self.type_nodes[symbol] = node
        return node

    def add_field(self, symbol: FieldSymbol) -> Node:
        source_text = ""
        if symbol.declaration is not None:
            source_text = symbol.declaration.tree.text_of(symbol.declaration.node)

        node = self.graph.add_node(Node(
            normalize_symbol_id(symbol.qualified_name),
            NodeLabel.VARIABLE,
            properties={
                "simpleName": symbol.name,
                "qualifiedName": symbol.qualified_name,
                "kind": "field",
                "visibility": symbol.accessibility.value,
                "sourceText": source_text,
                "docComment": symbol.documentation,
            },
        ))
        self.field_nodes[symbol] = node
        return node

    def add_method(self, symbol: MethodSymbol) -> Node:
        labels = (
            self.schema.constructor_labels
            if symbol.method_kind == MethodKind.CONSTRUCTOR
            else self.schema.operation_labels
        )
        source_text = ""
        if symbol.declaration is not None:
            source_text = symbol.declaration.tree.text_of(symbol.declaration.node)
        signature = ", ".join(p.qualified_name for p in symbol.parameters)

        node = self.graph.add_node(Node(
            normalize_symbol_id(symbol.qualified_name),
            *labels,
            properties={
                "simpleName": symbol.name,
                "qualifiedName": f"{symbol.qualified_name}({signature})",
                "kind": symbol.method_kind.value,
                "visibility": symbol.accessibility.value,
                "sourceText": source_text,
                "docComment": symbol.documentation,
            },
        ))
        self.method_nodes[symbol] = node
        return node

    def add_parameter(self, operation: Node, parameter: ParameterSymbol) -> Node:
        return self.graph.add_node(Node(
            f"{operation.id}:param:{parameter.name}",
            NodeLabel.VARIABLE,
            properties={
                "simpleName": parameter.name,
                "qualifiedName": parameter.qualified_name,
                "kind": "parameter",
                "visibility": "public",
                "parameterPosition": parameter.ordinal,
            },
        ))

    def add_script(self, field_node: Node, initializer: SyntaxReference) -> Node:
        """Script node holding the initializer expression of a field."""
        script_id = f"{field_node.id}.initializer"
        return self.graph.add_node(Node(script_id, NodeLabel.SCRIPT, properties={
            "simpleName": "initializer",
            "qualifiedName": script_id,
            "kind": "initializer",
            "sourceText": initializer.tree.text_of(initializer.node),
        }))

    def add_metric(self, name: str, display_name: str) -> Node:
        """Graph-wide Metric node ``{graph}#{name}``."""
        node = self.metric_nodes.get(name)
        if node is None:
            node = self.graph.add_node(Node(
                f"{self.graph.name}#{name}",
                NodeLabel.METRIC,
                properties={
                    "simpleName": name,
                    "qualifiedName": display_name,
                    "kind": "metric",
                },
            ))
            self.metric_nodes[name] = node
        return node
