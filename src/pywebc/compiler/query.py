"""Read-only queries over parsed template trees."""

import weakref
from typing import Iterable, List, Optional, Sequence, Set, Tuple

from pywebc.compiler.nodes import Attribute, Node, NodeKind


class Attrs:
    """Directive vocabulary."""

    PREFIX = "webc:"
    TYPE = "webc:type"
    KEEP = "webc:keep"
    NOKEEP = "webc:nokeep"
    RAW = "webc:raw"
    IS = "webc:is"
    ROOT = "webc:root"
    IMPORT = "webc:import"
    SCOPED = "webc:scoped"
    SETUP = "webc:setup"
    BUCKET = "webc:bucket"
    IF = "webc:if"
    ELSEIF = "webc:elseif"
    ELSE = "webc:else"
    LOOP = "webc:for"
    HTML = "@html"
    TEXT = "@text"
    RAWHTML = "@raw"


class Transforms:
    SCOPED = "css:scoped"
    RENDER = "render"


ROOT_MODE_MERGE = ""
ROOT_MODE_OVERRIDE = "override"


class SyntheticAttributes:
    """Attributes implied for a node without touching the shared tree."""

    def __init__(self) -> None:
        self._table: "weakref.WeakKeyDictionary[Node, Tuple[Attribute, ...]]" = (
            weakref.WeakKeyDictionary()
        )

    def add(self, node: Node, *attributes: Attribute) -> None:
        self._table[node] = self._table.get(node, ()) + tuple(attributes)

    def get(self, node: Node) -> Tuple[Attribute, ...]:
        return self._table.get(node, ())

    def __contains__(self, node: Node) -> bool:
        return node in self._table


class AstQuery:
    def __init__(self, synthetic: Optional[SyntheticAttributes] = None) -> None:
        self.synthetic = synthetic or SyntheticAttributes()

    def attributes(self, node: Node) -> Tuple[Attribute, ...]:
        if not node.is_element:
            return ()
        return node.attributes + self.synthetic.get(node)

    def has_attribute(self, node: Node, name: str) -> bool:
        return any(attr.name == name for attr in self.attributes(node))

    def get_attribute_value(self, node: Node, name: str) -> Optional[str]:
        for attr in self.attributes(node):
            if attr.name == name:
                return attr.value
        return None

    def has_any_attribute(self, node: Node, names: Iterable[str]) -> bool:
        return any(self.has_attribute(node, name) for name in names)

    def get_tag_name(self, node: Node) -> Optional[str]:
        alias = self.get_attribute_value(node, Attrs.IS)
        if alias:
            return alias.lower()
        return node.tag

    def get_text_content(self, node: Node) -> List[str]:
        return [child.data for child in node.child_nodes if child.is_text]

    def has_text_content(self, node: Node) -> bool:
        return any(text.strip() for text in self.get_text_content(node))

    def is_script_node(self, tag_name: Optional[str], node: Node) -> bool:
        return tag_name == "script" and not self.has_attribute(node, Attrs.SETUP)

    def is_link_stylesheet_node(self, tag_name: Optional[str], node: Node) -> bool:
        return tag_name == "link" and self.get_attribute_value(node, "rel") == "stylesheet"

    def get_external_source(self, tag_name: Optional[str], node: Node) -> Optional[str]:
        if self.is_link_stylesheet_node(tag_name, node):
            return self.get_attribute_value(node, "href")
        if self.is_script_node(tag_name, node):
            return self.get_attribute_value(node, "src")
        return None

    def is_declarative_shadow_dom_node(self, node: Node) -> bool:
        return self.get_tag_name(node) == "template" and (
            self.has_attribute(node, "shadowroot")
            or self.has_attribute(node, "shadowrootmode")
        )

    def get_root_node_mode(self, node: Node) -> Optional[str]:
        mode = self.get_attribute_value(node, Attrs.ROOT)
        if mode is None:
            return None
        if mode == ROOT_MODE_OVERRIDE:
            return ROOT_MODE_OVERRIDE
        return ROOT_MODE_MERGE

    def get_top_level_nodes(
        self,
        tree: Node,
        tag_names: Sequence[str] = (),
        attribute_names: Sequence[str] = (),
    ) -> List[Node]:
        """Element children of the document, looking through <html>, <head> and <body>."""
        candidates: List[Node] = []
        for child in tree.child_nodes:
            if child.is_element and child.tag == "html":
                for section in child.child_nodes:
                    if section.is_element and section.tag in ("head", "body"):
                        candidates.extend(section.child_nodes)
                    else:
                        candidates.append(section)
            else:
                candidates.append(child)

        nodes = []
        for node in candidates:
            if not node.is_element:
                continue
            if tag_names and self.get_tag_name(node) not in tag_names:
                continue
            if attribute_names and not all(
                self.has_attribute(node, name) for name in attribute_names
            ):
                continue
            nodes.append(node)
        return nodes

    def find_all_elements(self, tree: Node, tag_name: str) -> List[Node]:
        return [
            node
            for node in tree.walk()
            if node.is_element and self.get_tag_name(node) == tag_name
        ]

    def get_slot_targets(self, tree: Node) -> Set[str]:
        targets = set()
        for slot in self.find_all_elements(tree, "slot"):
            name = self.get_attribute_value(slot, "name")
            if name:
                targets.add(name)
        return targets

    def get_root_attributes(self, tree: Node, scope_id: Optional[str]) -> List[Attribute]:
        attributes: List[Attribute] = []
        for node in self.get_top_level_nodes(tree, attribute_names=[Attrs.ROOT]):
            attributes.extend(
                attr for attr in self.attributes(node) if attr.name != Attrs.ROOT
            )
        if scope_id:
            attributes.append(Attribute("class", scope_id))
        return attributes

    def has_declarative_shadow_dom(self, tree: Node) -> bool:
        """Whether a declarative shadow root appears anywhere in `tree`."""
        return any(
            self.is_declarative_shadow_dom_node(node)
            for node in tree.walk()
            if node.is_element
        )

    @staticmethod
    def is_document(node: Node) -> bool:
        return node.kind in (NodeKind.DOCUMENT, NodeKind.FRAGMENT)
