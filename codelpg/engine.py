"""
Main engine for the code property graph extractor.

Provides a high-level interface that validates sources, creates the
semantic-model provider, runs the extraction pipeline and writes the
resulting graph document.
"""

import json
import logging
import sys
from pathlib import Path
from typing import List, Optional, Sequence, Union

from codelpg.core.config import Config, PipelineConfig
from codelpg.core.exceptions import OutputError, SourceValidationError
from codelpg.extraction.extractor import GraphExtractor
from codelpg.graph.codec import ElementCodec
from codelpg.graph.model import Graph
from codelpg.metrics.calculator import HalsteadCalculator
from codelpg.metrics.halstead import HalsteadMetrics
from codelpg.semantic.provider import SemanticModelProvider
from codelpg.semantic.registry import ProviderRegistry
from codelpg.utils.validation import validate_path

logger = logging.getLogger(__name__)


class GraphExtractionEngine:
    """
    Main engine for property graph extraction.

    Wraps provider creation, extraction, Halstead analysis and output
    behind a few calls.
    """

    def __init__(self, config: PipelineConfig = None):
        self.config = config or Config.get()
        self.codec = ElementCodec(indent=self.config.output.indent)

    def create_provider(self, sources: Sequence[str]) -> SemanticModelProvider:
        """
        Create the configured language provider over validated sources.

        Raises:
            SourceValidationError: If a source path is unusable.
            LanguageNotSupportedError: If no provider handles the language.
        """
        if not sources:
            raise SourceValidationError("", "No source paths given")

        for source in sources:
            is_valid, error = validate_path(source, self.config.source.extensions)
            if not is_valid:
                raise SourceValidationError(source, error)

        language = self.config.source.language
        logger.debug(f"Creating {language} provider for {len(sources)} source(s)")
        return ProviderRegistry.create(language, sources, self.config)

    def extract(self, sources: Sequence[str], name: Optional[str] = None) -> Graph:
        """
        Extract the property graph of one or more source roots.

        Args:
            sources: Source directories or files analyzed together.
            name: Graph name; defaults to the first source's name.

        Returns:
            The extracted graph.
        """
        logger.info(f"Starting extraction: sources={list(sources)}")
        provider = self.create_provider(sources)
        extractor = GraphExtractor(provider, name=name, config=self.config)
        return extractor.extract()

    def halstead(self, sources: Sequence[str]) -> List[HalsteadMetrics]:
        """Compute Halstead records for the given sources."""
        provider = self.create_provider(sources)
        return HalsteadCalculator(provider).analyze()

    def write(self, graph: Graph, destination: Optional[Union[str, Path]] = None) -> None:
        """
        Write the graph document to a file, or to stdout when no
        destination is given.

        Raises:
            OutputError: If the destination cannot be written.
        """
        destination = destination or self.config.output.destination
        if destination is None:
            sys.stdout.write(self.codec.to_json(graph))
            sys.stdout.write("\n")
            return

        try:
            self.codec.write(graph, destination)
        except OSError as e:
            raise OutputError(
                f"Cannot write graph to {destination}: {e}",
                details={"destination": str(destination)},
            ) from e

    def write_records(
        self,
        records: List[HalsteadMetrics],
        destination: Optional[Union[str, Path]] = None,
    ) -> None:
        """Write Halstead records as a JSON list."""
        data = HalsteadCalculator.to_dicts(records, self.config.metrics.nan_replacement)
        text = json.dumps(data, indent=self.config.output.indent)
        if destination is None:
            sys.stdout.write(text)
            sys.stdout.write("\n")
            return

        path = Path(destination)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(text, encoding="utf-8")
        except OSError as e:
            raise OutputError(
                f"Cannot write metrics to {destination}: {e}",
                details={"destination": str(destination)},
            ) from e


def extract_graph(
    sources: Sequence[str],
    name: Optional[str] = None,
    config: PipelineConfig = None,
) -> Graph:
    """
    Convenience function to extract the graph of a codebase.

    Args:
        sources: Source directories or files.
        name: Optional graph name.
        config: Optional configuration.

    Returns:
        The extracted graph.
    """
    engine = GraphExtractionEngine(config)
    return engine.extract(sources, name)
