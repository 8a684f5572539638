"""
Usage-resolution phase.

Revisits every known operation's declaration and links it to the
operations it invokes, the types it instantiates and the fields it
uses, plus the method it overrides. Field initializers that call or
construct something get a Script node carrying those edges.
"""

from typing import Any, Dict, List, Tuple

from codelpg.core.pipeline import PipelineState
from codelpg.extraction.context import ExtractionContext
from codelpg.extraction.structure import ExtractionStage
from codelpg.graph.model import Node
from codelpg.graph.schema import EdgeLabel
from codelpg.semantic.provider import SyntaxCategory
from codelpg.semantic.symbols import FieldSymbol, MethodSymbol, SyntaxReference


class UsageStage(ExtractionStage):
    """
    Pipeline stage resolving invocations, instantiations and field usages.

    Only targets that already have a node become edges. A syntax node
    that fails to resolve is recorded and skipped.
    """

    @property
    def name(self) -> str:
        return "usages"

    @property
    def dependencies(self) -> List[str]:
        return ["members"]

    def execute(self, state: PipelineState) -> Tuple[Dict[str, Any], Dict[str, Any]]:
        context = self.context(state)
        graph = context.graph
        overrides = 0

        for method, node in list(context.method_nodes.items()):
            if method.declaration is None:
                continue
            try:
                self._link_references(state, context, node.id, method.declaration, uses=True)

                overridden = context.method_nodes.get(method.overridden)
                if overridden is not None:
                    graph.add_or_get_edge(node.id, overridden.id, EdgeLabel.OVERRIDES)
                    overrides += 1
            except Exception as e:
                self.skip_entity(state, method.qualified_name, e)

        scripts = 0
        if context.options.field_initializers:
            for field_symbol, node in list(context.field_nodes.items()):
                if field_symbol.initializer is None:
                    continue
                try:
                    if self._add_initializer_script(state, context, field_symbol, node):
                        scripts += 1
                except Exception as e:
                    self.skip_entity(state, field_symbol.qualified_name, e)

        metrics = {
            "invokes": len(graph.edges_with_label(EdgeLabel.INVOKES)),
            "instantiates": len(graph.edges_with_label(EdgeLabel.INSTANTIATES)),
            "uses": len(graph.edges_with_label(EdgeLabel.USES)),
            "overrides": overrides,
            "scripts": scripts,
        }
        return metrics, metrics

    def _link_references(
        self,
        state: PipelineState,
        context: ExtractionContext,
        source_id: str,
        reference: SyntaxReference,
        uses: bool,
    ) -> None:
        provider = context.provider
        graph = context.graph
        tree = reference.tree

        for call in provider.body_nodes(reference, SyntaxCategory.INVOCATION):
            try:
                target = provider.symbol_info(tree, call)
                target_node = context.method_nodes.get(target) if isinstance(target, MethodSymbol) else None
                if target_node is not None:
                    graph.add_or_get_edge(source_id, target_node.id, EdgeLabel.INVOKES)
            except Exception as e:
                self.skip_entity(state, _location(source_id, call), e)

        for creation in provider.body_nodes(reference, SyntaxCategory.OBJECT_CREATION):
            try:
                type_node = context.type_nodes.get(provider.type_info(tree, creation))
                if type_node is not None:
                    graph.add_or_get_edge(source_id, type_node.id, EdgeLabel.INSTANTIATES)
            except Exception as e:
                self.skip_entity(state, _location(source_id, creation), e)

        if not uses:
            return

        # Qualified accesses and bare names are separate detection paths
        for category in (SyntaxCategory.MEMBER_ACCESS, SyntaxCategory.IDENTIFIER):
            for access in provider.body_nodes(reference, category):
                try:
                    target = provider.symbol_info(tree, access)
                    field_node = context.field_nodes.get(target) if isinstance(target, FieldSymbol) else None
                    if field_node is not None:
                        graph.add_or_get_edge(source_id, field_node.id, EdgeLabel.USES)
                except Exception as e:
                    self.skip_entity(state, _location(source_id, access), e)

    def _add_initializer_script(
        self,
        state: PipelineState,
        context: ExtractionContext,
        field_symbol: FieldSymbol,
        field_node: Node,
    ) -> bool:
        """Attach a Script node when the initializer invokes or instantiates a known target."""
        provider = context.provider
        reference = field_symbol.initializer
        tree = reference.tree

        invokes_known = any(
            context.method_nodes.get(provider.symbol_info(tree, call)) is not None
            for call in provider.body_nodes(reference, SyntaxCategory.INVOCATION)
        )
        creates_known = any(
            context.type_nodes.get(provider.type_info(tree, creation)) is not None
            for creation in provider.body_nodes(reference, SyntaxCategory.OBJECT_CREATION)
        )
        if not invokes_known and not creates_known:
            return False

        script = context.add_script(field_node, reference)
        context.graph.add_or_get_edge(field_node.id, script.id, EdgeLabel.HAS_SCRIPT)
        self._link_references(state, context, script.id, reference, uses=False)
        return True


def _location(source_id: str, node: Any) -> str:
    line = getattr(node, "lineno", None)
    return f"{source_id} (line {line})" if line is not None else source_id
