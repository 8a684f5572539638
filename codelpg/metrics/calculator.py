"""
Halstead metrics calculator.

Counts operators and operands of every operation a provider exposes,
then aggregates the per-operation records bottom-up: operations into
their owning types, types into their namespaces.
"""

import logging
from typing import Any, Callable, Dict, List

from codelpg.core.exceptions import MetricsError, PipelineError
from codelpg.metrics.halstead import HalsteadMetrics
from codelpg.semantic.provider import SemanticModelProvider, SyntaxCategory, TokenCategory
from codelpg.semantic.symbols import MethodSymbol, TypeSymbol
from codelpg.utils.naming import normalize_symbol_id, owning_namespace_id, owning_type_id

logger = logging.getLogger(__name__)


class HalsteadCalculator:
    """
    Computes Halstead metrics over a semantic model.

    Records are returned methods first, then classes, then namespaces;
    within each level they keep the order in which their first member
    was measured.
    """

    def __init__(self, provider: SemanticModelProvider):
        self.provider = provider

    def analyze(self) -> List[HalsteadMetrics]:
        """
        Measure every declared operation and aggregate the results.

        Operations whose lookup or measurement fails are logged and left
        out.

        Returns:
            Method records followed by class and namespace aggregates.

        Raises:
            MetricsError: If the provider cannot load its sources.
        """
        method_metrics = []
        seen = set()

        try:
            trees = list(self.provider.iter_trees())
        except PipelineError as e:
            raise MetricsError(
                f"Cannot load sources for Halstead metrics: {e}",
                details={"sources": self.provider.sources, **e.details},
            ) from e

        for tree in trees:
            for node in self.provider.declarations(tree, SyntaxCategory.METHOD_DECLARATION):
                try:
                    symbol = self.provider.declared_symbol(tree, node)
                    if not isinstance(symbol, MethodSymbol) or symbol in seen:
                        continue
                    seen.add(symbol)
                    method_metrics.append(self.measure(symbol))
                except Exception as e:
                    line = getattr(node, "lineno", "?")
                    logger.warning(f"Skipping Halstead metrics at {tree.path}:{line}: {e}")

        class_metrics = self._aggregate(method_metrics, owning_type_id, "class")
        namespace_metrics = self._aggregate(class_metrics, owning_namespace_id, "namespace")

        logger.info(
            f"Computed Halstead metrics: {len(method_metrics)} methods, "
            f"{len(class_metrics)} classes, {len(namespace_metrics)} namespaces"
        )
        return method_metrics + class_metrics + namespace_metrics

    def measure(self, method: MethodSymbol) -> HalsteadMetrics:
        """
        Measure a single operation.

        Identifiers that resolve to a type are counted a second time as
        type-name operands.
        """
        operators = set()
        operands = set()
        total_operators = 0
        total_operands = 0
        tree = method.declaration.tree if method.declaration is not None else None

        for token in self.provider.halstead_tokens(method):
            if token.is_operand:
                operands.add(token.text)
                total_operands += 1
                if (
                    token.category == TokenCategory.IDENTIFIER
                    and token.node is not None
                    and tree is not None
                    and isinstance(self.provider.symbol_info(tree, token.node), TypeSymbol)
                ):
                    operands.add(token.text)
                    total_operands += 1
            else:
                text = token.text
                if token.category == TokenCategory.KEYWORD:
                    text = self.provider.canonical_keyword(text)
                operators.add(text)
                total_operators += 1

        return HalsteadMetrics.from_counts(
            element_id=normalize_symbol_id(method.qualified_name),
            element_kind="method",
            n1=len(operators),
            n2=len(operands),
            N1=total_operators,
            N2=total_operands,
        )

    @staticmethod
    def to_dicts(records: List[HalsteadMetrics], nan_replacement: Any = -1) -> List[Dict[str, Any]]:
        """Export records as property maps."""
        return [record.to_dict(nan_replacement) for record in records]

    @staticmethod
    def _aggregate(
        records: List[HalsteadMetrics],
        key: Callable[[str], str],
        kind: str,
    ) -> List[HalsteadMetrics]:
        groups: Dict[str, List[HalsteadMetrics]] = {}
        for record in records:
            groups.setdefault(key(record.element_id), []).append(record)
        return [
            HalsteadMetrics.aggregate(group_id, kind, members)
            for group_id, members in groups.items()
        ]
