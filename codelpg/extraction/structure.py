"""
Structural extraction phases.

Builds the containment skeleton of the graph: the project, its folders
and files, the namespace tree, the declared types, and the inheritance
and nesting relationships between those types.
"""

import posixpath
from typing import Any, Dict, List, Tuple

from codelpg.core.pipeline import PipelineStage, PipelineState
from codelpg.extraction.context import ExtractionContext
from codelpg.graph.schema import EdgeLabel
from codelpg.semantic.provider import SyntaxCategory
from codelpg.semantic.symbols import NamespaceSymbol, TypeSymbol


class ExtractionStage(PipelineStage):
    """Base class for phases working on the shared extraction context."""

    def context(self, state: PipelineState) -> ExtractionContext:
        return state.data["context"]


class FilesystemStage(ExtractionStage):
    """
    Pipeline stage mapping syntax trees onto the filesystem.

    Creates a File node per syntax tree path, a Folder node per distinct
    directory, and a Project node including every top-level folder.
    """

    @property
    def name(self) -> str:
        return "filesystem"

    def execute(self, state: PipelineState) -> Tuple[Dict[str, Any], Dict[str, Any]]:
        context = self.context(state)
        graph = context.graph

        for tree in context.provider.iter_trees():
            try:
                file_node = context.add_file(tree.path)
                folder_node = context.add_folder(posixpath.dirname(tree.path))
                graph.add_or_get_edge(folder_node.id, file_node.id, EdgeLabel.CONTAINS, increment=False)
            except Exception as e:
                self.skip_entity(state, tree.path, e)

        project = context.add_project()
        for path, folder in list(context.folder_nodes.items()):
            parent = posixpath.dirname(path)
            if parent != path and parent in context.folder_nodes:
                graph.add_or_get_edge(context.folder_nodes[parent].id, folder.id, EdgeLabel.CONTAINS)
            else:
                graph.add_or_get_edge(project.id, folder.id, EdgeLabel.INCLUDES)

        metrics = {
            "files": len(context.file_nodes),
            "folders": len(context.folder_nodes),
        }
        return {"project": project.id}, metrics


class ScopeStage(ExtractionStage):
    """
    Pipeline stage creating Scope nodes for the namespace tree.

    The global namespace never gets a node. Namespaces outside the
    analyzed sources are walked only when external symbols are included.
    """

    @property
    def name(self) -> str:
        return "scopes"

    @property
    def dependencies(self) -> List[str]:
        return ["filesystem"]

    def execute(self, state: PipelineState) -> Tuple[Dict[str, Any], Dict[str, Any]]:
        context = self.context(state)
        root = context.provider.global_namespace()

        pending: List[Tuple[NamespaceSymbol, Any]] = [(root, None)]
        while pending:
            namespace, parent = pending.pop()
            if not namespace.is_global:
                if namespace.is_external and not context.options.include_external:
                    continue
                try:
                    self._add_scope(context, namespace, parent)
                except Exception as e:
                    self.skip_entity(state, namespace.qualified_name, e)
                    continue

            children = namespace.child_namespaces()
            pending.extend((child, namespace) for child in reversed(children))

        return {"scopes": len(context.scope_nodes)}, {"scopes": len(context.scope_nodes)}

    def _add_scope(self, context: ExtractionContext, namespace: NamespaceSymbol, parent) -> None:
        if namespace in context.scope_nodes:
            return
        node = context.add_scope(namespace)
        parent_node = context.scope_nodes.get(parent) if parent is not None else None
        if parent_node is not None:
            context.graph.add_or_get_edge(parent_node.id, node.id, context.schema.scope_encloses)


class TypeStage(ExtractionStage):
    """
    Pipeline stage creating Type nodes for declared types.

    Each type is declared by the file of its first declaration and
    enclosed by its namespace's Scope node.
    """

    @property
    def name(self) -> str:
        return "types"

    @property
    def dependencies(self) -> List[str]:
        return ["scopes"]

    def execute(self, state: PipelineState) -> Tuple[Dict[str, Any], Dict[str, Any]]:
        context = self.context(state)
        provider = context.provider

        for tree in provider.iter_trees():
            for declaration in provider.declarations(tree, SyntaxCategory.TYPE_DECLARATION):
                try:
                    symbol = provider.declared_symbol(tree, declaration)
                    if not isinstance(symbol, TypeSymbol) or symbol in context.type_nodes:
                        continue
                    self._add_type(context, symbol, tree.path)
                except Exception as e:
                    self.skip_entity(state, f"type declaration in {tree.path}", e)

        external = 0
        if context.options.include_external:
            for symbol in provider.external_types():
                if symbol.is_root or symbol in context.type_nodes:
                    continue
                try:
                    self._add_type(context, symbol, None)
                    external += 1
                except Exception as e:
                    self.skip_entity(state, symbol.qualified_name, e)

        metrics = {"types": len(context.type_nodes), "external_types": external}
        return {"types": len(context.type_nodes)}, metrics

    def _add_type(self, context: ExtractionContext, symbol: TypeSymbol, path) -> None:
        graph = context.graph
        node = context.add_type(symbol)

        file_node = context.file_nodes.get(path) if path is not None else None
        if file_node is not None:
            graph.add_or_get_edge(file_node.id, node.id, EdgeLabel.DECLARES)

        scope_node = context.scope_nodes.get(symbol.namespace)
        if scope_node is not None:
            graph.add_or_get_edge(scope_node.id, node.id, context.schema.scope_encloses)


class InheritanceStage(ExtractionStage):
    """Pipeline stage linking known types to their supertypes and nested types."""

    @property
    def name(self) -> str:
        return "inheritance"

    @property
    def dependencies(self) -> List[str]:
        return ["types"]

    def execute(self, state: PipelineState) -> Tuple[Dict[str, Any], Dict[str, Any]]:
        context = self.context(state)
        graph = context.graph
        specializations = 0
        nestings = 0

        for symbol, node in list(context.type_nodes.items()):
            try:
                for nested in symbol.nested:
                    nested_node = context.type_nodes.get(nested)
                    if nested_node is not None:
                        graph.add_or_get_edge(node.id, nested_node.id, context.schema.type_encloses)
                        nestings += 1

                supertypes = []
                base_type = symbol.base_type
                if base_type is not None and not base_type.is_root:
                    supertypes.append(base_type)
                supertypes.extend(i for i in symbol.interfaces if not i.is_root)

                for supertype in supertypes:
                    super_node = context.type_nodes.get(supertype)
                    if super_node is not None:
                        graph.add_or_get_edge(node.id, super_node.id, EdgeLabel.SPECIALIZES)
                        specializations += 1
            except Exception as e:
                self.skip_entity(state, symbol.qualified_name, e)

        metrics = {"specializations": specializations, "nestings": nestings}
        return metrics, metrics
