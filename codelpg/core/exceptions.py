"""
Custom exceptions for the graph extraction engine.

Provides a hierarchy of exceptions for the different pipeline stages,
enabling precise error handling and clear failure reporting.
"""


class PipelineError(Exception):
    """Base exception for all pipeline-related errors."""

    def __init__(self, message: str, stage: str = None, details: dict = None):
        super().__init__(message)
        self.stage = stage
        self.details = details or {}

    def __str__(self):
        base_msg = super().__str__()
        if self.stage:
            return f"[{self.stage}] {base_msg}"
        return base_msg


class ExtractionError(PipelineError):
    """Raised when graph extraction fails as a whole."""

    def __init__(self, message: str, details: dict = None):
        super().__init__(message, stage="Extraction", details=details)


class ProviderError(PipelineError):
    """Raised when a semantic-model provider cannot load its sources."""

    def __init__(self, message: str, details: dict = None):
        super().__init__(message, stage="Provider", details=details)


class MetricsError(PipelineError):
    """Raised when metrics computation fails."""

    def __init__(self, message: str, details: dict = None):
        super().__init__(message, stage="Metrics", details=details)


class OutputError(PipelineError):
    """Raised when the graph document cannot be written."""

    def __init__(self, message: str, details: dict = None):
        super().__init__(message, stage="Output", details=details)


class LanguageNotSupportedError(ProviderError):
    """Raised when no provider is registered for a language."""

    def __init__(self, language: str):
        super().__init__(
            f"No semantic-model provider available for language: {language}",
            details={"language": language}
        )


class SourceValidationError(ProviderError):
    """Raised when a source path cannot be analyzed."""

    def __init__(self, path: str, reason: str):
        super().__init__(
            f"Source validation failed: {reason}",
            details={"path": path, "reason": reason}
        )
