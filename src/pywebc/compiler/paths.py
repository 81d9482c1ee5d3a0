"""Helpers for component file paths."""

from __future__ import annotations

import posixpath
from pathlib import Path
from typing import Optional, Union

# Component key for input given as a string rather than a file
RAW_INPUT_PATH = "_webc_raw_input_string"


def normalize_path(file_path: Optional[Union[str, Path]]) -> Optional[str]:
    """Return a forward-slash path relative to the project, without a leading ./"""
    if file_path is None:
        return None
    normalized = posixpath.normpath(str(file_path).replace("\\", "/"))
    if normalized.startswith("./"):
        normalized = normalized[2:]
    return normalized


def relative_to_file(file_path: str, relative_to: Optional[str]) -> str:
    """Resolve `file_path` against the directory holding `relative_to`."""
    if relative_to:
        return normalize_path(posixpath.join(posixpath.dirname(relative_to), file_path)) or file_path
    return normalize_path(file_path) or file_path


def is_in_directory(file_path: Union[str, Path], directory: Union[str, Path]) -> bool:
    resolved = Path(directory).resolve()
    candidate = (resolved / file_path).resolve()
    return candidate == resolved or resolved in candidate.parents
