"""Resolution of component references and external asset files."""

import asyncio
import posixpath
import re
from pathlib import Path
from typing import Dict, Optional
from urllib.parse import urlparse

from pywebc.compiler.paths import is_in_directory, normalize_path, relative_to_file
from pywebc.exceptions import InvalidReferenceError

DEFAULT_ALIASES = {"npm": "./node_modules/"}
COMPONENT_SUFFIX = ".webc"

_ALIAS_PATTERN = re.compile(r"^([^:]+):")


class ModuleResolution:
    """Resolves `webc:import` references to component files.

    Aliased references (`npm:@scope/pkg`) resolve from the project root,
    everything else from the requesting component. References may never
    leave the project root.
    """

    def __init__(
        self,
        aliases: Optional[Dict[str, str]] = None,
        project_root: Optional[Path] = None,
    ) -> None:
        self.aliases = dict(DEFAULT_ALIASES)
        self.aliases.update(aliases or {})
        self.project_root = project_root or Path.cwd()
        self.tag_name: Optional[str] = None

    def set_tag_name(self, tag_name: Optional[str]) -> None:
        self.tag_name = tag_name

    def has_valid_alias(self, full_path: str) -> bool:
        return any(full_path.startswith(f"{alias}:") for alias in self.aliases)

    @staticmethod
    def get_alias(full_path: str) -> Optional[str]:
        match = _ALIAS_PATTERN.match(full_path)
        if match:
            return match.group(1)
        return None

    def resolve_aliases(self, full_path: str) -> str:
        alias = self.get_alias(full_path)
        if alias is None:
            return normalize_path(full_path) or full_path
        if alias not in self.aliases:
            known = ", ".join(self.aliases)
            raise InvalidReferenceError(
                f"Invalid WebC aliased import path, requested: {full_path} (known aliases: {known})"
            )
        unprefixed = full_path[len(alias) + 1 :]
        return normalize_path(posixpath.join(self.aliases[alias], unprefixed)) or unprefixed

    def check_local_path(self, resolved_path: str) -> None:
        if not is_in_directory(resolved_path, self.project_root):
            raise InvalidReferenceError(
                f"Invalid import reference (must be in the project root), received: {resolved_path}"
            )

    def resolve(self, full_path: str, relative_to: Optional[str] = None) -> str:
        if self.get_alias(full_path) is not None:
            resolved = self.resolve_aliases(full_path)
        else:
            resolved = relative_to_file(full_path, relative_to)

        self.check_local_path(resolved)

        if resolved.endswith(COMPONENT_SUFFIX):
            return resolved
        if self.tag_name:
            return f"{resolved}/{self.tag_name}{COMPONENT_SUFFIX}"
        return resolved


class FileSystemCache:
    """Reads external stylesheets and scripts once per path."""

    def __init__(self, project_root: Optional[Path] = None) -> None:
        self.project_root = project_root or Path.cwd()
        self.contents: Dict[str, str] = {}

    @staticmethod
    def is_full_url(file_path: str) -> bool:
        parsed = urlparse(file_path)
        return bool(parsed.scheme and parsed.netloc) or file_path.startswith("//")

    async def read(self, file_path: str, relative_to: Optional[str] = None) -> str:
        if self.is_full_url(file_path):
            raise InvalidReferenceError(
                'Full URLs in <script> and <link rel="stylesheet"> are not yet supported without webc:keep.',
                relative_to,
            )

        resolved = relative_to_file(file_path, relative_to)
        if not is_in_directory(resolved, self.project_root):
            raise InvalidReferenceError(
                f"Invalid path {resolved} is not in the working directory.", relative_to
            )

        if resolved not in self.contents:
            target = self.project_root / resolved
            self.contents[resolved] = await asyncio.to_thread(
                target.read_text, encoding="utf-8"
            )
        return self.contents[resolved]
