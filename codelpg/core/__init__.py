"""
Core module containing pipeline orchestration, configuration, and base classes.
"""

from codelpg.core.config import Config, PipelineConfig
from codelpg.core.pipeline import Pipeline, PipelineStage, PipelineState
from codelpg.core.exceptions import (
    PipelineError,
    ExtractionError,
    ProviderError,
    MetricsError,
    OutputError,
    LanguageNotSupportedError,
    SourceValidationError,
)

__all__ = [
    "Config",
    "PipelineConfig",
    "Pipeline",
    "PipelineStage",
    "PipelineState",
    "PipelineError",
    "ExtractionError",
    "ProviderError",
    "MetricsError",
    "OutputError",
    "LanguageNotSupportedError",
    "SourceValidationError",
]
