"""
Utility functions and helpers.

Provides common utilities used across the codebase.
"""

from codelpg.utils.logging_config import setup_logging
from codelpg.utils.validation import validate_path
from codelpg.utils.naming import (
    GLOBAL_SCOPE,
    normalize_symbol_id,
    owning_type_id,
    owning_namespace_id,
)

__all__ = [
    "setup_logging",
    "validate_path",
    "GLOBAL_SCOPE",
    "normalize_symbol_id",
    "owning_type_id",
    "owning_namespace_id",
]
