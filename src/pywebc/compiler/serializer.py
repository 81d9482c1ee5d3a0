"""Walks template trees and serializes them to HTML, CSS and JS."""

from __future__ import annotations

import inspect
import logging
import secrets
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, Awaitable, Callable, Dict, List, Mapping, Optional, Sequence, Tuple, Union

from pywebc.compiler.assets import ASSET_KINDS, DEFAULT_BUCKET, AssetCollector, AssetManager
from pywebc.compiler.attributes import (
    CONTENT_PROPERTIES,
    EvaluatedAttribute,
    attributes_to_data,
    evaluate_attributes,
    evaluate_expression,
    literal,
    merge_attributes,
    serialize_attributes,
)
from pywebc.compiler.css import CssPrefixer
from pywebc.compiler.data_cascade import DataCascade
from pywebc.compiler.directives import ConditionalChain, iterate_loop, parse_loop
from pywebc.compiler.graph import DependencyGraph
from pywebc.compiler.nodes import Node, NodeKind
from pywebc.compiler.parser import VOID_ELEMENTS, parse
from pywebc.compiler.paths import RAW_INPUT_PATH, normalize_path
from pywebc.compiler.query import ROOT_MODE_OVERRIDE, Attrs, Transforms
from pywebc.compiler.registry import (
    COMPONENT_MODE,
    PAGE_MODE,
    ComponentDefinition,
    ComponentRegistry,
    ComponentTag,
)
from pywebc.compiler.streams import Streams
from pywebc.exceptions import (
    CircularDependencyError,
    ConflictingContentDirectivesError,
    EvaluationError,
    TransformError,
    WebCError,
)
from pywebc.runtime.escape import escape_text
from pywebc.runtime.evaluator import ExpressionEvaluator
from pywebc.runtime.resolution import FileSystemCache, ModuleResolution

logger = logging.getLogger(__name__)

STREAM_NAMES = ("html",) + ASSET_KINDS


def default_uid() -> str:
    return "webc-" + secrets.token_urlsafe(4)[:5]


@dataclass(frozen=True)
class DataContext:
    """Where a piece of markup was authored, which decides what it can see."""

    component: Optional[str]
    props: Mapping[str, Any] = field(default_factory=dict)
    loop: Mapping[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class SlotAssignment:
    nodes: Tuple[Node, ...]
    context: DataContext
    slots: Mapping[str, "SlotAssignment"] = field(default_factory=dict)
    html: Optional[str] = None

    @property
    def is_empty(self) -> bool:
        return not self.nodes and not self.html


Slots = Mapping[str, SlotAssignment]


@dataclass(frozen=True)
class CompileOptions:
    data: DataContext
    assets: AssetCollector
    components: DependencyGraph
    closest_parent_component: Optional[str] = None
    host_component_context: Optional[str] = None
    host_attributes: Tuple[EvaluatedAttribute, ...] = ()
    raw_mode: bool = False
    is_slotted_content: bool = False
    current_transform_types: Tuple[str, ...] = ()
    rendering_mode: Optional[str] = None


@dataclass(frozen=True)
class TransformContext:
    type: str
    file_path: Optional[str]
    component: Optional[ComponentDefinition]
    data: Mapping[str, Any]
    helpers: Mapping[str, Callable[..., Any]]


Transform = Callable[..., Union[str, Awaitable[str]]]


@dataclass
class CompilationResult:
    html: str
    css: List[str]
    js: List[str]
    components: List[str]
    buckets: Dict[str, Dict[str, List[str]]] = field(default_factory=dict)


async def _resolve(value: Any) -> Any:
    if inspect.isawaitable(value):
        return await value
    return value


def _accepts_context(callback: Callable[..., Any]) -> bool:
    try:
        parameters = list(inspect.signature(callback).parameters.values())
    except (TypeError, ValueError):
        return True
    if any(p.kind is inspect.Parameter.VAR_POSITIONAL for p in parameters):
        return True
    positional = [
        p
        for p in parameters
        if p.kind in (inspect.Parameter.POSITIONAL_ONLY, inspect.Parameter.POSITIONAL_OR_KEYWORD)
    ]
    return len(positional) >= 2


class AstSerializer:
    """Compiles one input document, resolving components as it goes."""

    def __init__(
        self,
        file_path: Optional[str] = None,
        registry: Optional[ComponentRegistry] = None,
        evaluator: Optional[ExpressionEvaluator] = None,
        project_root: Optional[Path] = None,
    ) -> None:
        self.file_path = normalize_path(file_path) or RAW_INPUT_PATH
        self.registry = registry or ComponentRegistry(evaluator=evaluator, project_root=project_root)
        self.evaluator = evaluator or self.registry.evaluator
        self.query = self.registry.query
        self.project_root = project_root or self.registry.project_root
        self.data_cascade = DataCascade()
        self.file_cache = FileSystemCache(self.project_root)
        self.streams = Streams(STREAM_NAMES)
        self.transforms: Dict[str, Transform] = {
            Transforms.SCOPED: self._transform_scoped,
            Transforms.RENDER: self._transform_render,
        }
        self.aliases: Dict[str, str] = {}
        self.bundler_mode = True
        self.mode = COMPONENT_MODE
        self.content = ""
        self.uid_function: Callable[[], str] = default_uid

    def set_bundler_mode(self, mode: bool) -> None:
        self.bundler_mode = bool(mode)

    def set_mode(self, mode: str) -> None:
        self.mode = PAGE_MODE if mode == PAGE_MODE else COMPONENT_MODE

    def set_content(self, content: str) -> None:
        self.content = content

    def set_data(self, data: Optional[Mapping[str, Any]] = None) -> None:
        self.data_cascade.set_global_data(data)

    def set_helpers(self, helpers: Mapping[str, Callable[..., Any]], scoped: bool = False) -> None:
        for name, callback in helpers.items():
            self.data_cascade.set_helper(name, callback, scoped=scoped)

    def set_transform(self, name: str, callback: Transform) -> None:
        self.transforms[name] = callback

    def set_aliases(self, aliases: Optional[Mapping[str, str]] = None) -> None:
        self.aliases = dict(aliases or {})

    def set_uid_function(self, function: Callable[[], str]) -> None:
        self.uid_function = function

    async def set_components_by_file_path(self, components: Optional[Mapping[str, str]]) -> None:
        if components:
            await self.registry.register(components, self.data_cascade)

    def is_top_level_component(self, file_path: Optional[str]) -> bool:
        return file_path == self.file_path

    def get_mode(self, file_path: Optional[str]) -> str:
        definition = self.registry.get(file_path)
        if definition is not None:
            return definition.mode
        return self.mode

    def get_rendering_mode(self, options: CompileOptions) -> str:
        return options.rendering_mode or self.get_mode(options.closest_parent_component)

    def _output(self, content: str, stream_enabled: bool) -> str:
        if stream_enabled:
            self.streams.output("html", content)
        return content

    # Data

    def _authored_path(self, options: CompileOptions) -> str:
        return options.data.component or self.file_path

    def get_data(
        self,
        options: CompileOptions,
        attributes: Optional[Mapping[str, Any]] = None,
        context: Optional[DataContext] = None,
    ) -> Mapping[str, Any]:
        context = context or options.data
        definition = self.registry.get(context.component)
        setup = definition.setup_result if definition else {}
        return self.data_cascade.get_data(
            self.is_top_level_component(context.component),
            attributes,
            context.loop,
            context.props,
            setup,
            host_attributes=context.props,
        )

    async def evaluate(self, raw_name: str, expression: str, options: CompileOptions) -> Any:
        return await evaluate_expression(
            self.evaluator,
            raw_name,
            expression,
            self.get_data(options),
            self._authored_path(options),
        )

    # Transforms

    def get_transform_types(self, node: Node) -> List[str]:
        types: List[str] = []
        value = self.query.get_attribute_value(node, Attrs.TYPE)
        if value:
            for name in value.split(","):
                name = name.strip()
                if name and name in self.transforms and name not in types:
                    types.append(name)
        if self.query.has_attribute(node, Attrs.SCOPED) and Transforms.SCOPED not in types:
            types.append(Transforms.SCOPED)
        return types

    async def transform_content(
        self, content: str, types: Sequence[str], options: CompileOptions
    ) -> str:
        component = self.registry.get(options.closest_parent_component)
        data = self.get_data(options)
        for name in types:
            context = TransformContext(
                type=name,
                file_path=options.closest_parent_component,
                component=component,
                data=data,
                helpers=self.data_cascade.get_helpers(),
            )
            callback = self.transforms[name]
            if _accepts_context(callback):
                result = callback(content, context)
            else:
                result = callback(content)
            result = await _resolve(result)
            content = "" if result is None else str(result)
        return content

    def _transform_scoped(self, content: str, context: TransformContext) -> str:
        if context.component is None or not context.component.scope_id:
            raise TransformError(
                f"Could not find any top level <style {Attrs.SCOPED}> in component: {context.file_path}",
                context.file_path,
            )
        prefixer = CssPrefixer(context.component.scope_id)
        prefixer.set_file_path(context.file_path)
        return prefixer.process(content)

    async def _transform_render(self, content: str, context: TransformContext) -> str:
        try:
            result = await self.evaluator.evaluate_render(content, context.data, context.file_path)
        except WebCError:
            raise
        except Exception as e:
            raise EvaluationError(
                f'Evaluating a webc:type="{Transforms.RENDER}" script failed.\n'
                f"Original error message: {e}",
                context.file_path,
            ) from e
        return "" if result is None else str(result)

    async def compile_string(
        self, content: str, node: Node, slots: Slots, options: CompileOptions
    ) -> str:
        """Process markup produced at compile time as WebC."""
        if self.query.has_attribute(node, Attrs.RAW) or "<" not in content:
            return content
        tree = parse(content)
        self.registry.prepare_tree(tree)
        string_options = replace(
            options,
            rendering_mode=COMPONENT_MODE,
            raw_mode=False,
            current_transform_types=(),
        )
        return await self.compile_node(tree, slots, string_options, stream_enabled=False)

    # Tags

    def is_bundled_tag(self, tag_name: Optional[str], node: Node) -> bool:
        return self.bundler_mode and (
            tag_name == "style"
            or self.query.is_script_node(tag_name, node)
            or self.query.is_link_stylesheet_node(tag_name, node)
        )

    def get_aggregate_asset_key(self, tag_name: Optional[str], node: Node) -> Optional[str]:
        if not self.bundler_mode:
            return None
        if tag_name == "style" or self.query.is_link_stylesheet_node(tag_name, node):
            return "css"
        if self.query.is_script_node(tag_name, node):
            return "js"
        return None

    def is_tag_ignored(
        self,
        node: Node,
        tag_name: Optional[str],
        component: Optional[ComponentDefinition],
        rendering_mode: str,
        options: CompileOptions,
    ) -> bool:
        query = self.query
        if query.has_attribute(node, Attrs.KEEP):
            return False
        if query.has_attribute(node, Attrs.ROOT) and query.get_root_node_mode(node) != ROOT_MODE_OVERRIDE:
            return True
        if query.has_attribute(node, Attrs.NOKEEP):
            return True
        if options.raw_mode:
            return False

        bundled = self.is_bundled_tag(tag_name, node)
        if not bundled and query.has_any_attribute(node, CONTENT_PROPERTIES):
            return False
        if query.has_attribute(node, Attrs.TYPE):
            return True
        if component is not None and component.ignore_root_tag:
            return True
        if rendering_mode == COMPONENT_MODE and tag_name in ("html", "head", "body"):
            return True
        if tag_name == "slot":
            return True
        return bundled

    async def import_component(
        self, reference: str, tag_name: Optional[str], options: CompileOptions
    ) -> ComponentDefinition:
        file_path = self._resolve_import(reference, tag_name, self._authored_path(options))
        return await self.registry.precompile(file_path, self.data_cascade)

    def _resolve_import(self, reference: str, tag_name: Optional[str], owner: str) -> str:
        resolver = ModuleResolution(self.aliases, self.project_root)
        resolver.set_tag_name(tag_name)
        # Input given as a string resolves from the project root
        return resolver.resolve(reference, None if owner == RAW_INPUT_PATH else owner)

    async def _start_tag_attributes(
        self,
        node: Node,
        component: Optional[ComponentDefinition],
        is_matching_slot_source: bool,
        options: CompileOptions,
    ) -> Tuple[List[EvaluatedAttribute], Dict[str, Any]]:
        query = self.query
        path = self._authored_path(options)
        attributes = await evaluate_attributes(
            query.attributes(node), self.get_data(options), self.evaluator, path
        )

        props: Dict[str, Any] = {}
        if component is not None:
            props = attributes_to_data(merge_attributes(attributes))
            props.setdefault("uid", self.uid_function())
            if component.root_attribute_mode != ROOT_MODE_OVERRIDE:
                root_context = DataContext(component.file_path, props)
                attributes.extend(
                    await evaluate_attributes(
                        component.root_attributes,
                        self.get_data(options, context=root_context),
                        self.evaluator,
                        component.file_path,
                    )
                )

        if query.has_attribute(node, Attrs.ROOT):
            parent = self.registry.get(options.closest_parent_component)
            if parent is not None and parent.ignore_root_tag:
                if parent.scope_id:
                    attributes.append(literal("class", parent.scope_id))
                attributes.extend(options.host_attributes)

        merged = merge_attributes(attributes)
        if is_matching_slot_source:
            merged = [attr for attr in merged if attr.name != "slot"]
        return merged, props

    async def get_prop_content(
        self, node: Node, tag_name: Optional[str], slots: Slots, options: CompileOptions
    ) -> Optional[str]:
        """Content from @html, @text or @raw, or None when the node uses none of them."""
        present = [name for name in CONTENT_PROPERTIES if self.query.has_attribute(node, name)]
        if not present:
            return None
        if len(present) > 1:
            raise ConflictingContentDirectivesError(
                f"Node {tag_name} cannot have more than one {Attrs.HTML}, {Attrs.TEXT}, "
                f"or {Attrs.RAWHTML} properties. Pick one!",
                self._authored_path(options),
            )

        name = present[0]
        value = await self.evaluate(name, self.query.get_attribute_value(node, name) or "", options)
        if value is None:
            value = ""
        if name == Attrs.TEXT:
            return escape_text(value)
        if name == Attrs.RAWHTML:
            return str(value)
        return await self.compile_string(str(value), node, slots, options)

    # Components and slots

    def add_component_dependency(
        self, component: ComponentDefinition, tag_name: Optional[str], options: CompileOptions
    ) -> CompileOptions:
        graph = options.components
        file_path = component.file_path
        graph.add_node(file_path)

        owner = options.closest_parent_component
        if owner:
            graph.add_node(owner)
            # Content passed through slots may nest a component inside itself
            if not options.is_slotted_content and (
                owner == file_path or file_path in graph.dependants_of(owner)
            ):
                raise CircularDependencyError(
                    f"Circular dependency error: You cannot use <{tag_name}> inside the definition for {owner}",
                    owner,
                )
            graph.add_dependency(owner, file_path)

        return replace(options, closest_parent_component=file_path, host_component_context=owner)

    def get_slotted_content_nodes(
        self, node: Node, slots: Slots, options: CompileOptions, default_html: Optional[str]
    ) -> Dict[str, SlotAssignment]:
        named: Dict[str, List[Node]] = {}
        default: List[Node] = []
        for child in node.child_nodes:
            name = self.query.get_attribute_value(child, "slot") if child.is_element else None
            if name:
                named.setdefault(name, []).append(child)
            else:
                default.append(child)

        assignments = {
            name: SlotAssignment(tuple(nodes), options.data, slots)
            for name, nodes in named.items()
        }
        assignments["default"] = SlotAssignment(tuple(default), options.data, slots, default_html)
        return assignments

    async def get_content_for_slot(
        self, node: Node, slots: Slots, options: CompileOptions, stream_enabled: bool
    ) -> str:
        name = self.query.get_attribute_value(node, "name") or "default"
        assignment = slots.get(name)
        if assignment is None or assignment.is_empty:
            return await self.get_child_content(node, slots, options, stream_enabled)

        slot_options = replace(options, data=assignment.context, is_slotted_content=True)
        content = await self.compile_children(
            assignment.nodes, assignment.slots, slot_options, stream_enabled
        )
        if assignment.html:
            content += self._output(assignment.html, stream_enabled)
        return content

    async def get_content_for_template(
        self, node: Node, slots: Slots, options: CompileOptions
    ) -> str:
        query = self.query
        if query.has_attribute(node, Attrs.RAW) or query.has_attribute(node, Attrs.TYPE):
            content = node.source or ""
        else:
            # <template webc:root> is processed as WebC, any other <template> verbatim
            template_options = replace(
                options,
                raw_mode=options.raw_mode or not query.has_attribute(node, Attrs.ROOT),
                current_transform_types=(),
            )
            content = await self.compile_node(node.content, slots, template_options, False)

        if not options.current_transform_types:
            return content
        return await self.transform_content(content, options.current_transform_types, options)

    # Walk

    async def compile_children(
        self,
        nodes: Sequence[Node],
        slots: Slots,
        options: CompileOptions,
        stream_enabled: bool = True,
    ) -> str:
        """Compile sibling nodes one after another in document order.

        Siblings are not gathered concurrently: streamed chunks, dependency
        edges and collected fragments are produced in source order.
        """
        chain = ConditionalChain(
            self.query,
            lambda name, expression: self.evaluate(name, expression, options),
            self._authored_path(options),
        )
        content = []
        for child in nodes:
            if not options.raw_mode and not await chain.admit(child):
                continue
            content.append(await self.compile_node(child, slots, options, stream_enabled))
        return "".join(content)

    async def get_child_content(
        self, parent: Node, slots: Slots, options: CompileOptions, stream_enabled: bool = True
    ) -> str:
        return await self.compile_children(parent.child_nodes, slots, options, stream_enabled)

    async def compile_node(
        self, node: Node, slots: Slots, options: CompileOptions, stream_enabled: bool = True
    ) -> str:
        if node.kind in (NodeKind.DOCUMENT, NodeKind.FRAGMENT):
            return await self.get_child_content(node, slots, options, stream_enabled)

        if node.kind is NodeKind.TEXT:
            content = node.data
            if options.current_transform_types:
                content = await self.transform_content(
                    content, options.current_transform_types, options
                )
                parent = node.parent
                if parent is not None and parent.is_element and self.query.get_tag_name(parent) == "template":
                    content = await self.compile_string(content, parent, slots, options)
            return self._output(content, stream_enabled)

        if node.kind is NodeKind.COMMENT:
            return self._output(f"<!--{node.data}-->", stream_enabled)

        if node.kind is NodeKind.DOCTYPE:
            if self.get_rendering_mode(options) == PAGE_MODE:
                return self._output(f"<!{node.data}>", stream_enabled)
            return ""

        if not options.raw_mode and self.query.has_attribute(node, Attrs.LOOP):
            return await self.compile_loop(node, slots, options, stream_enabled)
        return await self.compile_element(node, slots, options, stream_enabled)

    async def compile_loop(
        self, node: Node, slots: Slots, options: CompileOptions, stream_enabled: bool
    ) -> str:
        spec = parse_loop(self.query.get_attribute_value(node, Attrs.LOOP) or "")
        source = await self.evaluate(Attrs.LOOP, spec.source, options)
        try:
            repetitions = list(iterate_loop(spec, source))
        except TypeError as e:
            raise EvaluationError(
                f"webc:for source `{spec.source}` is not iterable: {e}",
                self._authored_path(options),
            ) from e

        content = []
        for bindings in repetitions:
            loop = dict(options.data.loop)
            loop.update(bindings)
            loop_options = replace(options, data=replace(options.data, loop=loop))
            content.append(await self.compile_element(node, slots, loop_options, stream_enabled))
        return "".join(content)

    async def compile_element(
        self, node: Node, slots: Slots, options: CompileOptions, stream_enabled: bool
    ) -> str:
        query = self.query
        if not options.raw_mode and query.has_attribute(node, Attrs.SETUP):
            return ""

        tag_name = query.get_tag_name(node)
        transform_types = self.get_transform_types(node)
        if transform_types:
            options = replace(options, current_transform_types=tuple(transform_types))
        if query.has_attribute(node, Attrs.RAW):
            options = replace(options, raw_mode=True)
        rendering_mode = self.get_rendering_mode(options)

        component: Optional[ComponentDefinition] = None
        if not options.raw_mode:
            reference = query.get_attribute_value(node, Attrs.IMPORT)
            if reference:
                component = await self.import_component(reference, tag_name, options)
            else:
                lookup = self.registry.resolve(tag_name)
                if isinstance(lookup, ComponentTag):
                    component = lookup.definition

        is_matching_slot_source = False
        slot_source = query.get_attribute_value(node, "slot")
        if not options.raw_mode and options.is_slotted_content and slot_source:
            parent = self.registry.get(options.closest_parent_component)
            is_matching_slot_source = parent is not None and slot_source in parent.slot_targets

        ignored = self.is_tag_ignored(node, tag_name, component, rendering_mode, options)
        attributes, props = await self._start_tag_attributes(
            node, component, is_matching_slot_source, options
        )

        content: List[str] = []
        if not ignored:
            content.append(self._output(f"<{tag_name}{serialize_attributes(attributes)}>", stream_enabled))

        prop_content = None
        if not options.raw_mode:
            prop_content = await self.get_prop_content(node, tag_name, slots, options)
        asset_key = None
        if not options.raw_mode and not query.has_attribute(node, Attrs.KEEP):
            asset_key = self.get_aggregate_asset_key(tag_name, node)

        component_has_content: Optional[bool] = None
        child_options = options
        if component is not None:
            component_options = self.add_component_dependency(component, tag_name, options)
            component_slots = self.get_slotted_content_nodes(node, slots, options, prop_content)
            foreshadow = await self.compile_node(
                component.tree,
                component_slots,
                replace(
                    component_options,
                    data=DataContext(component.file_path, props),
                    host_attributes=tuple(attributes),
                    is_slotted_content=False,
                    current_transform_types=(),
                    rendering_mode=None,
                ),
                stream_enabled,
            )
            component_has_content = bool(foreshadow.strip())
            content.append(foreshadow)
            # Light DOM fallback keeps the caller's data
            child_options = replace(component_options, is_slotted_content=True)
        elif prop_content is not None and not asset_key:
            component_has_content = bool(prop_content.strip())
            content.append(self._output(prop_content, stream_enabled))

        if not component_has_content:
            external_source = None if options.raw_mode else query.get_external_source(tag_name, node)

            if not options.raw_mode and tag_name == "slot":
                content.append(
                    await self.get_content_for_slot(
                        node, slots, replace(options, is_slotted_content=True), stream_enabled
                    )
                )
            elif node.content is not None:
                template = await self.get_content_for_template(node, slots, options)
                if transform_types:
                    template = await self.compile_string(template, node, slots, options)
                content.append(self._output(template, stream_enabled))
            elif node.child_nodes or external_source or (asset_key and prop_content):
                if options.raw_mode:
                    content.append(
                        await self.get_child_content(node, slots, child_options, stream_enabled)
                    )
                elif tag_name == "template" and options.current_transform_types:
                    children = await self.get_child_content(node, slots, child_options, False)
                    content.append(self._output(children, stream_enabled))
                elif asset_key:
                    await self._collect_asset(
                        node, asset_key, external_source, prop_content, slots, child_options
                    )
                else:
                    content.append(
                        await self.get_child_content(node, slots, child_options, stream_enabled)
                    )

        if not ignored and tag_name not in VOID_ELEMENTS:
            content.append(self._output(f"</{tag_name}>", stream_enabled))
        return "".join(content)

    async def _collect_asset(
        self,
        node: Node,
        asset_key: str,
        external_source: Optional[str],
        prop_content: Optional[str],
        slots: Slots,
        options: CompileOptions,
    ) -> None:
        owner = options.closest_parent_component or self.file_path
        if external_source:
            relative_to = None if owner == RAW_INPUT_PATH else owner
            child_content = await self.file_cache.read(external_source, relative_to)
            if options.current_transform_types:
                child_content = await self.transform_content(
                    child_content, options.current_transform_types, options
                )
        else:
            child_content = await self.get_child_content(node, slots, options, False)
        if prop_content:
            child_content += prop_content
        if not child_content.strip():
            return

        bucket = self.query.get_attribute_value(node, Attrs.BUCKET) or DEFAULT_BUCKET
        options.assets.add(asset_key, owner, bucket, child_content)

    async def compile(
        self, tree: Node, slots: Optional[Mapping[str, str]] = None
    ) -> CompilationResult:
        graph = DependencyGraph()
        graph.add_node(self.file_path)
        options = CompileOptions(
            data=DataContext(self.file_path, {"uid": self.uid_function()}),
            assets=AssetCollector(),
            components=graph,
            closest_parent_component=self.file_path,
        )

        try:
            if not self.registry.has(self.file_path):
                await self.registry.precompile(
                    self.file_path, self.data_cascade, tree=tree, content=self.content, mode=self.mode
                )
            top_level_slots = self._parse_slots(slots, options)
            logger.debug("Compiling %s", self.file_path)
            html = await self.compile_node(tree, top_level_slots, options)

            manager = AssetManager(graph)
            result = CompilationResult(
                html=html,
                css=[],
                js=[],
                components=[
                    entry for entry in manager.ordered_component_list if entry != RAW_INPUT_PATH
                ],
            )
            if self.bundler_mode:
                for kind in ASSET_KINDS:
                    ordered = manager.get_ordered_assets(options.assets.fragments[kind])
                    setattr(result, kind, ordered.pop(DEFAULT_BUCKET))
                    result.buckets[kind] = ordered
                    for entry in getattr(result, kind):
                        self.streams.output(kind, entry)
            return result
        except Exception as e:
            self.streams.error(e)
            raise

    def _parse_slots(
        self, slots: Optional[Mapping[str, str]], options: CompileOptions
    ) -> Dict[str, SlotAssignment]:
        assignments: Dict[str, SlotAssignment] = {}
        for name, markup in (slots or {}).items():
            fragment = parse(markup)
            self.registry.prepare_tree(fragment)
            assignments[name] = SlotAssignment(tuple(fragment.child_nodes), options.data)
        return assignments

    async def get_component_list(self, tree: Node) -> List[str]:
        """Component files used by `tree`, nearest first, without rendering."""
        if not self.registry.has(self.file_path):
            await self.registry.precompile(
                self.file_path, self.data_cascade, tree=tree, content=self.content, mode=self.mode
            )
        graph = DependencyGraph()
        graph.add_node(self.file_path)
        await self._collect_components(tree, self.file_path, graph)
        return [
            entry
            for entry in AssetManager(graph).ordered_component_list
            if entry != RAW_INPUT_PATH
        ]

    async def _collect_components(self, tree: Node, owner: str, graph: DependencyGraph) -> None:
        for node in tree.walk():
            if not node.is_element or self.query.has_attribute(node, Attrs.RAW):
                continue
            tag_name = self.query.get_tag_name(node)
            reference = self.query.get_attribute_value(node, Attrs.IMPORT)
            if reference:
                file_path = self._resolve_import(reference, tag_name, owner)
                definition = await self.registry.precompile(file_path, self.data_cascade)
            else:
                lookup = self.registry.resolve(tag_name)
                if not isinstance(lookup, ComponentTag):
                    continue
                definition = lookup.definition

            known = definition.file_path in graph
            graph.add_dependency(owner, definition.file_path)
            if not known and definition.file_path != owner:
                await self._collect_components(definition.tree, definition.file_path, graph)
