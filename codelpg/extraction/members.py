"""
Member extraction phase.

Creates Variable nodes for fields and Operation nodes for methods,
constructors and free functions, together with their parameters,
declared types and return types.
"""

from typing import Any, Dict, List, Tuple

from codelpg.core.pipeline import PipelineState
from codelpg.extraction.context import ExtractionContext
from codelpg.extraction.structure import ExtractionStage
from codelpg.semantic.provider import SyntaxCategory
from codelpg.semantic.symbols import FieldSymbol, MethodSymbol, SyntaxTree


class MemberStage(ExtractionStage):
    """
    Pipeline stage for fields, operations and parameters.

    Members owned by a namespace (module functions and variables) are
    attached to the namespace's Scope node.
    """

    @property
    def name(self) -> str:
        return "members"

    @property
    def dependencies(self) -> List[str]:
        return ["inheritance"]

    def execute(self, state: PipelineState) -> Tuple[Dict[str, Any], Dict[str, Any]]:
        context = self.context(state)
        parameters = 0

        for tree in context.provider.iter_trees():
            self._add_fields(state, context, tree)
            parameters += self._add_operations(state, context, tree)

        metrics = {
            "fields": len(context.field_nodes),
            "operations": len(context.method_nodes),
            "parameters": parameters,
        }
        return metrics, metrics

    def _add_fields(self, state: PipelineState, context: ExtractionContext, tree: SyntaxTree) -> None:
        provider = context.provider
        graph = context.graph

        for declaration in provider.declarations(tree, SyntaxCategory.FIELD_DECLARATION):
            try:
                symbol = provider.declared_symbol(tree, declaration)
                if not isinstance(symbol, FieldSymbol) or symbol in context.field_nodes:
                    continue

                node = context.add_field(symbol)
                owner = context.owner_node(symbol)
                if owner is not None:
                    graph.add_or_get_edge(owner.id, node.id, context.schema.field_member)

                type_node = context.type_nodes.get(symbol.field_type)
                if type_node is not None:
                    graph.add_or_get_edge(node.id, type_node.id, context.schema.typed)
            except Exception as e:
                self.skip_entity(state, f"field declaration in {tree.path}", e)

    def _add_operations(self, state: PipelineState, context: ExtractionContext, tree: SyntaxTree) -> int:
        provider = context.provider
        graph = context.graph
        parameters = 0

        for declaration in provider.declarations(tree, SyntaxCategory.METHOD_DECLARATION):
            try:
                symbol = provider.declared_symbol(tree, declaration)
                if not isinstance(symbol, MethodSymbol) or symbol in context.method_nodes:
                    continue

                node = context.add_method(symbol)
                owner = context.owner_node(symbol)
                if owner is not None:
                    graph.add_or_get_edge(owner.id, node.id, context.schema.operation_member)

                if not symbol.returns_void:
                    return_node = context.type_nodes.get(symbol.return_type)
                    if return_node is not None:
                        graph.add_or_get_edge(node.id, return_node.id, context.schema.returns)

                for parameter in symbol.parameters:
                    parameter_node = context.add_parameter(node, parameter)
                    graph.add_or_get_edge(parameter_node.id, node.id, context.schema.parameterizes)
                    type_node = context.type_nodes.get(parameter.parameter_type)
                    if type_node is not None:
                        graph.add_or_get_edge(parameter_node.id, type_node.id, context.schema.typed)
                    parameters += 1
            except Exception as e:
                self.skip_entity(state, f"operation declaration in {tree.path}", e)

        return parameters
