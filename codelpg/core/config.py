"""
Configuration management for the graph extraction engine.

Provides centralized configuration for all pipeline stages with
sensible defaults and validation.
"""

import os
import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional

from dotenv import load_dotenv


@dataclass
class SourceConfig:
    """Configuration for source discovery."""

    # Patterns to ignore during file discovery
    ignore_patterns: List[str] = field(default_factory=lambda: [
        "__pycache__", ".git", ".svn", ".hg",
        "node_modules", ".venv", "venv", "env",
        ".idea", ".vscode", ".DS_Store", "*.egg-info",
        "build", "dist", ".tox", ".mypy_cache", ".pytest_cache",
    ])

    # Maximum file size to process (in bytes)
    max_file_size: int = 1024 * 1024  # 1MB

    # Source file extensions handed to the provider
    extensions: List[str] = field(default_factory=lambda: [".py"])

    # Provider language used when none is given explicitly
    language: str = "python"


@dataclass
class ExtractionConfig:
    """Configuration for graph extraction."""

    # Walk symbols declared outside the analyzed source set
    include_external: bool = False

    # Label vocabulary: "full" or "compact"
    schema: str = "full"

    # Fold Halstead records into the graph as Metric nodes
    include_halstead: bool = False

    # Emit Script nodes for field initializers that call or construct
    field_initializers: bool = True


@dataclass
class MetricsConfig:
    """Configuration for Halstead metrics export."""

    # Replacement for undefined (NaN) values on export
    nan_replacement: float = -1


@dataclass
class OutputConfig:
    """Configuration for graph document output."""

    # Destination file path; None writes to standard output
    destination: Optional[str] = None

    # JSON indentation
    indent: int = 2


@dataclass
class PipelineConfig:
    """Master configuration combining all stage configurations."""

    source: SourceConfig = field(default_factory=SourceConfig)
    extraction: ExtractionConfig = field(default_factory=ExtractionConfig)
    metrics: MetricsConfig = field(default_factory=MetricsConfig)
    output: OutputConfig = field(default_factory=OutputConfig)

    # Enable verbose logging
    verbose: bool = False


class Config:
    """
    Central configuration manager providing access to all settings.

    Supports loading from environment variables and configuration files.
    """

    _instance: Optional["Config"] = None
    _config: PipelineConfig = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
            cls._instance._config = PipelineConfig()
        return cls._instance

    @classmethod
    def get(cls) -> PipelineConfig:
        """Get the current pipeline configuration."""
        if cls._instance is None:
            cls()
        return cls._instance._config

    @classmethod
    def reset(cls) -> PipelineConfig:
        """Restore the default configuration."""
        instance = cls()
        instance._config = PipelineConfig()
        return instance._config

    @classmethod
    def load_from_file(cls, config_path: str) -> PipelineConfig:
        """
        Load configuration from a JSON file.

        Args:
            config_path: Path to the configuration file.

        Returns:
            Loaded PipelineConfig instance.
        """
        config_path = Path(config_path)
        if not config_path.exists():
            raise FileNotFoundError(f"Configuration file not found: {config_path}")

        with open(config_path, "r") as f:
            data = json.load(f)

        instance = cls()
        instance._config = cls._dict_to_config(data)
        return instance._config

    @classmethod
    def load_from_env(cls, dotenv_path: Optional[str] = None) -> PipelineConfig:
        """
        Load configuration from environment variables.

        Variables are prefixed with CODELPG_. A .env file is read first
        when present; variables already set in the environment win.

        Args:
            dotenv_path: Optional explicit path to a .env file.

        Returns:
            PipelineConfig with environment overrides applied.
        """
        load_dotenv(dotenv_path=dotenv_path, override=False)

        instance = cls()
        config = instance._config

        if os.getenv("CODELPG_INCLUDE_EXTERNAL"):
            config.extraction.include_external = _env_flag("CODELPG_INCLUDE_EXTERNAL")

        if os.getenv("CODELPG_SCHEMA"):
            config.extraction.schema = os.getenv("CODELPG_SCHEMA")

        if os.getenv("CODELPG_HALSTEAD"):
            config.extraction.include_halstead = _env_flag("CODELPG_HALSTEAD")

        if os.getenv("CODELPG_LANGUAGE"):
            config.source.language = os.getenv("CODELPG_LANGUAGE")

        if os.getenv("CODELPG_OUTPUT"):
            config.output.destination = os.getenv("CODELPG_OUTPUT")

        if os.getenv("CODELPG_VERBOSE"):
            config.verbose = _env_flag("CODELPG_VERBOSE")

        return config

    @staticmethod
    def _dict_to_config(data: dict) -> PipelineConfig:
        """Convert a dictionary to PipelineConfig."""
        config = PipelineConfig()

        if "source" in data:
            config.source = SourceConfig(**data["source"])

        if "extraction" in data:
            config.extraction = ExtractionConfig(**data["extraction"])

        if "metrics" in data:
            config.metrics = MetricsConfig(**data["metrics"])

        if "output" in data:
            config.output = OutputConfig(**data["output"])

        if "verbose" in data:
            config.verbose = data["verbose"]

        return config

    @classmethod
    def save_to_file(cls, config_path: str) -> None:
        """
        Save current configuration to a JSON file.

        Args:
            config_path: Path to save the configuration file.
        """
        config_path = Path(config_path)
        config_path.parent.mkdir(parents=True, exist_ok=True)

        config = cls.get()
        data = cls._config_to_dict(config)

        with open(config_path, "w") as f:
            json.dump(data, f, indent=2)

    @staticmethod
    def _config_to_dict(config: PipelineConfig) -> dict:
        """Convert PipelineConfig to a dictionary."""
        return {
            "source": {
                "ignore_patterns": config.source.ignore_patterns,
                "max_file_size": config.source.max_file_size,
                "extensions": config.source.extensions,
                "language": config.source.language,
            },
            "extraction": {
                "include_external": config.extraction.include_external,
                "schema": config.extraction.schema,
                "include_halstead": config.extraction.include_halstead,
                "field_initializers": config.extraction.field_initializers,
            },
            "metrics": {
                "nan_replacement": config.metrics.nan_replacement,
            },
            "output": {
                "destination": config.output.destination,
                "indent": config.output.indent,
            },
            "verbose": config.verbose,
        }


def _env_flag(name: str) -> bool:
    return os.getenv(name, "").lower() in ("true", "1", "yes")
