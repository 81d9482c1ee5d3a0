"""Component registry: tag names, precompiled definitions and their memoization."""

from __future__ import annotations

import asyncio
import logging
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, FrozenSet, Mapping, Optional, Tuple, Union

from pywebc.compiler.data_cascade import DataCascade
from pywebc.compiler.nodes import Attribute, Node
from pywebc.compiler.parser import ParserCache
from pywebc.compiler.paths import normalize_path
from pywebc.compiler.query import (
    ROOT_MODE_OVERRIDE,
    AstQuery,
    Attrs,
    Transforms,
)
from pywebc.compiler.scoping import ScopeOverrides, compute_scope_id
from pywebc.exceptions import EvaluationError, UnregisteredComponentError
from pywebc.runtime.evaluator import ExpressionEvaluator, PythonEvaluator

logger = logging.getLogger(__name__)

PAGE_MODE = "page"
COMPONENT_MODE = "component"

_PAGE_START = re.compile(r"^\s*<(!doctype|html)", re.IGNORECASE)


def get_rendering_mode(content: str) -> str:
    """Documents that open with a doctype or <html> keep their document tags."""
    if _PAGE_START.match(content):
        return PAGE_MODE
    return COMPONENT_MODE


@dataclass(frozen=True)
class ComponentDefinition:
    file_path: str
    tree: Node
    content: str
    mode: str
    scope_id: Optional[str]
    ignore_root_tag: bool
    root_attribute_mode: Optional[str]
    root_attributes: Tuple[Attribute, ...]
    slot_targets: FrozenSet[str]
    setup_result: Mapping[str, Any] = field(default_factory=dict)
    has_shadow_root: bool = False


@dataclass(frozen=True)
class PlainTag:
    name: str


@dataclass(frozen=True)
class ComponentTag:
    name: str
    definition: ComponentDefinition


TagLookup = Union[PlainTag, ComponentTag]


@dataclass
class _Pending:
    future: "asyncio.Future[ComponentDefinition]"


@dataclass(frozen=True)
class _Ready:
    definition: ComponentDefinition


class ComponentRegistry:
    """Maps tag names to component files and files to precompiled definitions.

    Each file is precompiled at most once: concurrent requests for a file
    that is still being processed wait on the same future.
    """

    def __init__(
        self,
        evaluator: Optional[ExpressionEvaluator] = None,
        project_root: Optional[Path] = None,
        parser: Optional[ParserCache] = None,
    ) -> None:
        self.evaluator = evaluator or PythonEvaluator()
        self.project_root = project_root or Path.cwd()
        self.parser = parser or ParserCache()
        self.query = AstQuery()
        self.scope_overrides = ScopeOverrides()
        self.components: Dict[str, str] = {}
        self._entries: Dict[str, Union[_Pending, _Ready]] = {}

    def has(self, file_path: str) -> bool:
        return isinstance(self._entries.get(file_path), _Ready)

    def get(self, file_path: Optional[str]) -> Optional[ComponentDefinition]:
        entry = self._entries.get(file_path) if file_path else None
        if isinstance(entry, _Ready):
            return entry.definition
        return None

    def is_component(self, tag_name: Optional[str]) -> bool:
        return bool(tag_name) and tag_name in self.components

    def resolve(self, tag_name: Optional[str]) -> TagLookup:
        if not tag_name or tag_name not in self.components:
            return PlainTag(tag_name or "")
        file_path = self.components[tag_name]
        definition = self.get(file_path)
        if definition is None:
            raise UnregisteredComponentError(
                f"Component at {file_path} (<{tag_name}>) was used before it was precompiled.",
                file_path,
            )
        return ComponentTag(tag_name, definition)

    async def register(self, components: Mapping[str, str], cascade: DataCascade) -> None:
        """Add name -> file entries and precompile every file concurrently."""
        paths = {}
        for name, file_path in components.items():
            normalized = normalize_path(file_path) or file_path
            self.components[name.lower()] = normalized
            paths[normalized] = None
        await asyncio.gather(*(self.precompile(path, cascade) for path in paths))

    async def read(self, file_path: str) -> str:
        return await asyncio.to_thread(
            (self.project_root / file_path).read_text, encoding="utf-8"
        )

    def prepare_tree(self, tree: Node) -> None:
        """Record implied attributes for nodes of a freshly parsed tree."""
        for node in tree.walk():
            if node in self.query.synthetic or not node.is_element:
                continue
            if self.query.get_attribute_value(
                node, Attrs.TYPE
            ) == Transforms.RENDER and not self.query.has_attribute(node, Attrs.IS):
                self.query.synthetic.add(node, Attribute(Attrs.IS, "template"))

    async def precompile(
        self,
        file_path: str,
        cascade: DataCascade,
        tree: Optional[Node] = None,
        content: Optional[str] = None,
        mode: Optional[str] = None,
    ) -> ComponentDefinition:
        entry = self._entries.get(file_path)
        if isinstance(entry, _Ready):
            return entry.definition
        if isinstance(entry, _Pending):
            return await entry.future

        future: "asyncio.Future[ComponentDefinition]" = asyncio.get_running_loop().create_future()
        self._entries[file_path] = _Pending(future)
        try:
            definition = await self._build(file_path, cascade, tree, content, mode)
        except asyncio.CancelledError:
            del self._entries[file_path]
            future.cancel()
            raise
        except Exception as e:
            del self._entries[file_path]
            future.set_exception(e)
            # Waiters re-raise it; the original caller raises below
            future.exception()
            raise

        self._entries[file_path] = _Ready(definition)
        future.set_result(definition)
        return definition

    async def _build(
        self,
        file_path: str,
        cascade: DataCascade,
        tree: Optional[Node],
        content: Optional[str],
        mode: Optional[str],
    ) -> ComponentDefinition:
        if tree is None:
            if content is None:
                content = await self.read(file_path)
            tree = self.parser.get(content)
        if mode is None:
            mode = get_rendering_mode(content or "")
        self.prepare_tree(tree)

        query = self.query
        scope_id = compute_scope_id(query, tree, file_path, self.scope_overrides)
        root_mode = None
        for node in query.get_top_level_nodes(tree, attribute_names=[Attrs.ROOT]):
            root_mode = query.get_root_node_mode(node)
            if root_mode == ROOT_MODE_OVERRIDE:
                break

        definition = ComponentDefinition(
            file_path=file_path,
            tree=tree,
            content=content or "",
            mode=mode,
            scope_id=scope_id,
            ignore_root_tag=self.ignore_component_parent_tag(tree),
            root_attribute_mode=root_mode,
            root_attributes=tuple(query.get_root_attributes(tree, scope_id)),
            slot_targets=frozenset(query.get_slot_targets(tree)),
            setup_result=await self.get_setup_script_value(tree, file_path, cascade),
            has_shadow_root=query.has_declarative_shadow_dom(tree),
        )
        logger.debug(
            "Precompiled %s (scope=%s, host tag %s)",
            file_path,
            scope_id,
            "elided" if definition.ignore_root_tag else "kept",
        )
        return definition

    async def get_setup_script_value(
        self, tree: Node, file_path: str, cascade: DataCascade
    ) -> Dict[str, Any]:
        nodes = self.query.get_top_level_nodes(
            tree, tag_names=["script"], attribute_names=[Attrs.SETUP]
        )
        if not nodes:
            return {}

        script = "\n".join("".join(self.query.get_text_content(node)) for node in nodes)
        try:
            return await self.evaluator.evaluate_setup(script, cascade.get_data(True), file_path)
        except EvaluationError:
            raise
        except Exception as e:
            raise EvaluationError(
                f"Evaluating <script {Attrs.SETUP}> failed.\nOriginal error message: {e}",
                file_path,
            ) from e

    def ignore_component_parent_tag(self, tree: Node) -> bool:
        """Whether call sites of this component drop their host tag."""
        query = self.query
        top_level = query.get_top_level_nodes(tree)

        for node in top_level:
            if query.get_root_node_mode(node) == ROOT_MODE_OVERRIDE:
                return True
        for node in top_level:
            if query.has_attribute(node, Attrs.ROOT):
                return False

        for node in top_level:
            tag_name = query.get_tag_name(node)
            if tag_name == "style" or query.is_script_node(tag_name, node):
                if query.has_text_content(node) or query.get_external_source(tag_name, node):
                    return False
            elif query.get_external_source(tag_name, node):
                return False

        return not query.has_declarative_shadow_dom(tree)
