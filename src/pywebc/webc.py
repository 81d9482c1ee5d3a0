"""Public entry point: configure an input, components and helpers, then compile or stream."""

from __future__ import annotations

import asyncio
import glob
import logging
from dataclasses import dataclass
from fnmatch import fnmatch
from pathlib import Path, PurePosixPath
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Sequence, Union

from pywebc.compiler.nodes import Node
from pywebc.compiler.paths import normalize_path
from pywebc.compiler.registry import ComponentRegistry, get_rendering_mode
from pywebc.compiler.serializer import AstSerializer, CompilationResult, Transform
from pywebc.compiler.streams import Channel
from pywebc.exceptions import ComponentNameCollisionError, WebCError
from pywebc.runtime.evaluator import ExpressionEvaluator
from pywebc.runtime.resolution import ModuleResolution

logger = logging.getLogger(__name__)

ComponentSource = Union[str, Sequence[str], Mapping[str, str]]

_GLOB_CHARACTERS = set("*?[]{}!")


def is_glob(pattern: str) -> bool:
    return any(char in _GLOB_CHARACTERS for char in pattern)


@dataclass
class Setup:
    tree: Node
    serializer: AstSerializer


class WebC:
    """Compiles one page or component file (or string) with its components.

    Usage:
        page = WebC(file="index.webc")
        page.define_components("components/**/*.webc")
        result = await page.compile(data={"title": "Home"})
    """

    def __init__(
        self,
        file: Optional[str] = None,
        input: Optional[str] = None,
        ignores: Optional[Iterable[str]] = None,
        project_root: Optional[Path] = None,
        evaluator: Optional[ExpressionEvaluator] = None,
        registry: Optional[ComponentRegistry] = None,
    ) -> None:
        self.project_root = project_root or Path.cwd()
        self.ignores = list(ignores or [])
        self.evaluator = evaluator
        self.registry = registry
        self.file_path: Optional[str] = None
        self.raw_input: Optional[str] = input
        self.custom_transforms: Dict[str, Transform] = {}
        self.custom_helpers: Dict[str, Callable[..., Any]] = {}
        self.custom_scoped_helpers: Dict[str, Callable[..., Any]] = {}
        self.global_components: Dict[str, str] = {}
        self.aliases: Dict[str, str] = {}
        self.uid_function: Optional[Callable[[], str]] = None
        self.bundler_mode = True
        self._cached_content: Optional[str] = None

        if file:
            self.set_input_path(file)

    def set_input_path(self, file: str) -> None:
        self.file_path = normalize_path(file)
        self._cached_content = None

    def set_content(self, content: str, file_path: Optional[str] = None) -> None:
        self.raw_input = content
        if file_path:
            self.file_path = normalize_path(file_path)

    def set_registry(self, registry: ComponentRegistry) -> None:
        """Share precompiled components between several inputs."""
        self.registry = registry

    def set_transform(self, name: str, callback: Transform) -> None:
        self.custom_transforms[name] = callback

    def set_helper(self, name: str, callback: Callable[..., Any], scoped: bool = False) -> None:
        if scoped:
            self.custom_scoped_helpers[name] = callback
        else:
            self.custom_helpers[name] = callback

    def set_alias(self, name: str, folder: str) -> None:
        self.aliases[name] = folder

    def set_uid_function(self, function: Callable[[], str]) -> None:
        self.uid_function = function

    def set_bundler_mode(self, mode: bool) -> None:
        self.bundler_mode = bool(mode)

    # Components

    def find_glob(self, pattern: str) -> List[str]:
        matches = []
        for match in sorted(glob.glob(pattern, root_dir=self.project_root, recursive=True)):
            file_path = normalize_path(match) or match
            if any(fnmatch(file_path, ignore) for ignore in self.ignores):
                continue
            matches.append(file_path)
        return matches

    def get_components_map(self, components: ComponentSource) -> Dict[str, str]:
        """Turn a glob, a list of globs and paths, or a mapping into name -> path."""
        if isinstance(components, Mapping):
            return {name: normalize_path(path) or path for name, path in components.items()}

        entries = [components] if isinstance(components, str) else list(components)
        resolver = ModuleResolution(self.aliases, self.project_root)
        files: Dict[str, None] = {}
        for entry in entries:
            if resolver.has_valid_alias(entry):
                entry = resolver.resolve_aliases(entry)
            if is_glob(entry):
                files.update(dict.fromkeys(self.find_glob(entry)))
            else:
                files[normalize_path(entry) or entry] = None

        mapping: Dict[str, str] = {}
        for file_path in files:
            name = PurePosixPath(file_path).stem
            if name in mapping:
                raise ComponentNameCollisionError(
                    f'Global component name collision on "{name}" between: {mapping[name]} and {file_path}'
                )
            mapping[name] = file_path
        return mapping

    def define_components(self, components: ComponentSource) -> None:
        for name, file_path in self.get_components_map(components).items():
            existing = self.global_components.get(name)
            if existing and existing != file_path:
                raise ComponentNameCollisionError(
                    f'Global component name collision on "{name}" between: {existing} and {file_path}'
                )
            self.global_components[name] = file_path
        logger.debug("Defined %d global components", len(self.global_components))

    # Input

    async def _get_raw_content(self) -> str:
        if self.raw_input is not None:
            return self.raw_input
        if self.file_path:
            if self._cached_content is None:
                self._cached_content = await asyncio.to_thread(
                    (self.project_root / self.file_path).read_text, encoding="utf-8"
                )
            return self._cached_content
        raise WebCError("Missing a set_content or set_input_path call to set the input.")

    async def setup(
        self,
        data: Optional[Mapping[str, Any]] = None,
        components: Optional[ComponentSource] = None,
    ) -> Setup:
        content = await self._get_raw_content()
        mode = get_rendering_mode(content)

        serializer = AstSerializer(
            self.file_path,
            registry=self.registry,
            evaluator=self.evaluator,
            project_root=self.project_root,
        )
        tree = serializer.registry.parser.get(content)
        serializer.set_bundler_mode(self.bundler_mode)
        serializer.set_mode(mode)
        serializer.set_content(content)
        serializer.set_data(data)
        if self.aliases:
            serializer.set_aliases(self.aliases)
        if self.uid_function:
            serializer.set_uid_function(self.uid_function)
        for name, callback in self.custom_transforms.items():
            serializer.set_transform(name, callback)
        serializer.set_helpers(self.custom_helpers)
        serializer.set_helpers(self.custom_scoped_helpers, scoped=True)

        await serializer.set_components_by_file_path(self.global_components)
        if components:
            await serializer.set_components_by_file_path(self.get_components_map(components))

        logger.debug("Set up %s in %s mode", serializer.file_path, mode)
        return Setup(tree=tree, serializer=serializer)

    async def compile(
        self,
        data: Optional[Mapping[str, Any]] = None,
        components: Optional[ComponentSource] = None,
        slots: Optional[Mapping[str, str]] = None,
    ) -> CompilationResult:
        setup = await self.setup(data, components)
        return await setup.serializer.compile(setup.tree, slots)

    async def stream(
        self,
        data: Optional[Mapping[str, Any]] = None,
        components: Optional[ComponentSource] = None,
        slots: Optional[Mapping[str, str]] = None,
    ) -> Dict[str, Channel]:
        """Start compiling and return one channel per output kind.

        Channels close when compilation ends. A failure is raised from
        every channel.
        """
        setup = await self.setup(data, components)
        streams = setup.serializer.streams
        streams.start()

        async def run() -> None:
            try:
                await setup.serializer.compile(setup.tree, slots)
            except Exception as e:
                logger.debug("Streamed compilation of %s failed: %s", setup.serializer.file_path, e)
            finally:
                streams.end()

        streams.task = asyncio.create_task(run())
        return streams.get()

    async def get_components(
        self,
        data: Optional[Mapping[str, Any]] = None,
        components: Optional[ComponentSource] = None,
    ) -> List[str]:
        """Component files this input uses, without rendering it."""
        setup = await self.setup(data, components)
        return await setup.serializer.get_component_list(setup.tree)
