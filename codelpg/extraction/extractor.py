"""
Graph extractor.

Runs the extraction phases in order over one semantic-model provider
and returns the finished property graph.
"""

import logging
from pathlib import Path
from typing import Optional

from codelpg.core.config import Config, PipelineConfig
from codelpg.core.exceptions import ExtractionError
from codelpg.core.pipeline import Pipeline, PipelineState
from codelpg.extraction.context import ExtractionContext
from codelpg.extraction.measures import MetricStage, ReconcileStage
from codelpg.extraction.members import MemberStage
from codelpg.extraction.structure import (
    FilesystemStage,
    InheritanceStage,
    ScopeStage,
    TypeStage,
)
from codelpg.extraction.usages import UsageStage
from codelpg.graph.model import Graph
from codelpg.graph.schema import get_schema
from codelpg.semantic.provider import SemanticModelProvider

logger = logging.getLogger(__name__)

PHASES = [
    "filesystem",
    "scopes",
    "types",
    "inheritance",
    "members",
    "usages",
    "metrics",
    "reconcile",
]


class GraphExtractor:
    """
    Builds a labeled property graph from a semantic-model provider.

    Every call to extract() starts from empty registries, so one
    extractor can be reused for several runs.
    """

    def __init__(
        self,
        provider: SemanticModelProvider,
        name: Optional[str] = None,
        config: PipelineConfig = None,
    ):
        self.provider = provider
        self.config = config or Config.get()
        self.name = name or default_graph_name(provider)
        self.last_state: Optional[PipelineState] = None

        try:
            self.schema = get_schema(self.config.extraction.schema)
        except ValueError as e:
            raise ExtractionError(str(e), details={"schema": self.config.extraction.schema}) from e

        self.pipeline = self._create_pipeline()

    def _create_pipeline(self) -> Pipeline:
        """Create and configure the extraction pipeline."""
        pipeline = Pipeline(self.config)

        pipeline.register_stage(FilesystemStage(self.config))
        pipeline.register_stage(ScopeStage(self.config))
        pipeline.register_stage(TypeStage(self.config))
        pipeline.register_stage(InheritanceStage(self.config))
        pipeline.register_stage(MemberStage(self.config))
        pipeline.register_stage(UsageStage(self.config))
        pipeline.register_stage(MetricStage(self.config))
        pipeline.register_stage(ReconcileStage(self.config))

        pipeline.set_execution_order(list(PHASES))
        return pipeline

    def extract(self) -> Graph:
        """
        Run all phases and return the graph.

        Returns:
            The complete graph; no edge references a missing node.

        Raises:
            ExtractionError: If any phase fails as a whole. No partial
                graph is returned in that case.
        """
        graph = Graph(self.name)
        state = self.pipeline.create_state(", ".join(self.provider.sources))
        state.data["context"] = ExtractionContext(
            graph=graph,
            provider=self.provider,
            schema=self.schema,
            options=self.config.extraction,
        )
        self.last_state = state

        self.pipeline.run(state)

        if state.errors:
            logger.warning(f"Extraction of '{self.name}' skipped {len(state.errors)} entities")
        logger.info(
            f"Extracted graph '{self.name}': {graph.node_count} nodes, {graph.edge_count} edges"
        )
        return graph


def default_graph_name(provider: SemanticModelProvider) -> str:
    """Name a graph after its first source root."""
    if not provider.sources:
        return "graph"
    path = Path(provider.sources[0]).resolve()
    return path.stem if path.is_file() else path.name
