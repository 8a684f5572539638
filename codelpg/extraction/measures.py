"""
Metric and reconciliation phases.

Attaches the graph-wide NumMethods and NumStatements Metric nodes,
optionally folds Halstead records into the graph, and finally sweeps
every edge left pointing at a node that was never created.
"""

from typing import Any, Dict, List, Tuple

import numpy as np

from codelpg.core.pipeline import PipelineState
from codelpg.extraction.context import ExtractionContext
from codelpg.extraction.structure import ExtractionStage
from codelpg.graph.schema import EdgeLabel
from codelpg.metrics.calculator import HalsteadCalculator
from codelpg.metrics.halstead import AGGREGATE_VOCABULARY, HalsteadMetrics

# Exported Halstead quantity -> Metric node display name
HALSTEAD_QUANTITIES = {
    "vocabulary": "Halstead Vocabulary",
    "length": "Halstead Length",
    "volume": "Halstead Volume",
    "difficulty": "Halstead Difficulty",
    "effort": "Halstead Effort",
    "estimatedBugs": "Halstead Estimated Bugs",
}


class MetricStage(ExtractionStage):
    """
    Pipeline stage attaching metric values through ``measures`` edges.

    Every declared type measures NumMethods with the number of its
    operations; every operation measures NumStatements with the number
    of top-level statements in its body.
    """

    @property
    def name(self) -> str:
        return "metrics"

    @property
    def dependencies(self) -> List[str]:
        return ["usages"]

    def execute(self, state: PipelineState) -> Tuple[Dict[str, Any], Dict[str, Any]]:
        context = self.context(state)
        graph = context.graph

        num_methods = context.add_metric("NumMethods", "Number of Methods")
        counts: Dict[Any, int] = {}
        for method in context.method_nodes:
            if method.container is not None:
                counts[method.container] = counts.get(method.container, 0) + 1

        for symbol, node in context.type_nodes.items():
            if symbol.is_external:
                continue
            graph.add_or_get_edge(
                node.id, num_methods.id, EdgeLabel.MEASURES,
                increment=False, value=counts.get(symbol, 0),
            )

        num_statements = context.add_metric("NumStatements", "Number of Statements")
        for method, node in context.method_nodes.items():
            try:
                value = context.provider.body_statement_count(method)
            except Exception as e:
                self.skip_entity(state, method.qualified_name, e)
                continue
            graph.add_or_get_edge(
                node.id, num_statements.id, EdgeLabel.MEASURES,
                increment=False, value=value,
            )

        records: List[HalsteadMetrics] = []
        if context.options.include_halstead:
            records = HalsteadCalculator(context.provider).analyze()
            self._fold_halstead(context, records)

        metrics = {
            "measures": len(graph.edges_with_label(EdgeLabel.MEASURES)),
            "halstead_records": len(records),
        }
        return {"halstead": records}, metrics

    def _fold_halstead(self, context: ExtractionContext, records: List[HalsteadMetrics]) -> None:
        """
        Add one Metric node per record kind and Halstead quantity, and
        link each measured element to it.

        A module can carry both a class-level record (its functions) and
        a namespace-level record (its classes) under the same ID, so the
        kind is part of the Metric node ID.
        """
        graph = context.graph
        for record in records:
            exported = record.to_dict(nan_replacement=np.nan)
            for quantity, display_name in HALSTEAD_QUANTITIES.items():
                value = exported[quantity]
                if np.isnan(value):
                    continue
                if quantity == "vocabulary" and value == AGGREGATE_VOCABULARY:
                    continue
                metric = context.add_metric(
                    f"Halstead.{record.element_kind}.{quantity}",
                    f"{display_name} ({record.element_kind})",
                )
                graph.add_or_get_edge(
                    record.element_id, metric.id, EdgeLabel.MEASURES,
                    increment=False, value=value,
                )


class ReconcileStage(ExtractionStage):
    """Pipeline stage removing edges whose endpoints are not nodes."""

    @property
    def name(self) -> str:
        return "reconcile"

    @property
    def dependencies(self) -> List[str]:
        return ["metrics"]

    def execute(self, state: PipelineState) -> Tuple[Dict[str, Any], Dict[str, Any]]:
        graph = self.context(state).graph
        removed = graph.remove_dangling_edges()
        metrics = {
            "removed_edges": removed,
            "nodes": graph.node_count,
            "edges": graph.edge_count,
        }
        return metrics, metrics
