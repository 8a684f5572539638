"""
Graph extraction module.

Provides the extraction phases, run as pipeline stages, and the
extractor that drives them over a semantic-model provider.
"""

from codelpg.extraction.context import ExtractionContext
from codelpg.extraction.extractor import GraphExtractor, PHASES, default_graph_name
from codelpg.extraction.structure import (
    ExtractionStage,
    FilesystemStage,
    ScopeStage,
    TypeStage,
    InheritanceStage,
)
from codelpg.extraction.members import MemberStage
from codelpg.extraction.usages import UsageStage
from codelpg.extraction.measures import MetricStage, ReconcileStage

__all__ = [
    "ExtractionContext",
    "GraphExtractor",
    "PHASES",
    "default_graph_name",
    "ExtractionStage",
    "FilesystemStage",
    "ScopeStage",
    "TypeStage",
    "InheritanceStage",
    "MemberStage",
    "UsageStage",
    "MetricStage",
    "ReconcileStage",
]
