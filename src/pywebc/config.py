"""Project configuration from the [tool.pywebc] table of pyproject.toml."""

from __future__ import annotations

import json
import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

from pywebc.exceptions import ConfigError

PROJECT_MARKERS = ("pyproject.toml", ".git")


def find_project_root(start: Optional[Path] = None) -> Path:
    """Walk up from `start` to the first directory holding a project marker."""
    current = (start or Path.cwd()).resolve()
    for candidate in (current, *current.parents):
        if any((candidate / marker).exists() for marker in PROJECT_MARKERS):
            return candidate
    return current


def load_data_file(path: Path) -> Dict[str, Any]:
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        raise ConfigError(f"Could not read global data from {path}: {e}") from e
    if not isinstance(data, dict):
        raise ConfigError(f"Global data in {path} must be a JSON object")
    return data


@dataclass
class WebCConfig:
    project_root: Path = field(default_factory=Path.cwd)
    components: List[str] = field(default_factory=list)
    ignores: List[str] = field(default_factory=list)
    aliases: Dict[str, str] = field(default_factory=dict)
    bundler_mode: bool = True
    data_file: Optional[Path] = None
    out_dir: Optional[Path] = None

    @classmethod
    def load(cls, project_root: Optional[Path] = None) -> "WebCConfig":
        root = project_root or find_project_root()
        pyproject = root / "pyproject.toml"
        if not pyproject.exists():
            return cls(project_root=root)

        try:
            with pyproject.open("rb") as f:
                document = tomllib.load(f)
        except tomllib.TOMLDecodeError as e:
            raise ConfigError(f"Could not parse {pyproject}: {e}") from e

        return cls.from_mapping(document.get("tool", {}).get("pywebc", {}), root)

    @classmethod
    def from_mapping(cls, table: Dict[str, Any], project_root: Path) -> "WebCConfig":
        components = table.get("components", [])
        if isinstance(components, str):
            components = [components]
        if not isinstance(components, list):
            raise ConfigError("[tool.pywebc] components must be a glob or a list of globs")

        aliases = table.get("aliases", {})
        if not isinstance(aliases, dict):
            raise ConfigError("[tool.pywebc] aliases must be a table")

        data_file = table.get("data")
        out_dir = table.get("out_dir")
        return cls(
            project_root=project_root,
            components=list(components),
            ignores=list(table.get("ignores", [])),
            aliases=dict(aliases),
            bundler_mode=bool(table.get("bundler_mode", True)),
            data_file=project_root / data_file if data_file else None,
            out_dir=project_root / out_dir if out_dir else None,
        )

    def load_data(self) -> Dict[str, Any]:
        if self.data_file is None:
            return {}
        return load_data_file(self.data_file)
