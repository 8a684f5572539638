"""
Input validation utilities.

Provides validation functions for source paths.
"""

import os
from pathlib import Path
from typing import Iterable, Optional, Tuple


def validate_path(path: str, extensions: Iterable[str] = (".py",)) -> Tuple[bool, Optional[str]]:
    """
    Validate a local source path.

    A source is either a readable directory or a readable file with
    one of the given extensions.

    Args:
        path: Path to validate.
        extensions: Accepted file extensions for single-file sources.

    Returns:
        Tuple of (is_valid, error_message).
    """
    if not path:
        return False, "Path cannot be empty"

    try:
        path_obj = Path(path).resolve()
    except (OSError, RuntimeError) as e:
        return False, f"Invalid path format: {e}"

    if not path_obj.exists():
        return False, f"Path does not exist: {path}"

    if path_obj.is_file() and path_obj.suffix not in tuple(extensions):
        return False, f"Unsupported source file: {path}"

    if not os.access(path_obj, os.R_OK):
        return False, f"Path is not readable: {path}"

    return True, None
