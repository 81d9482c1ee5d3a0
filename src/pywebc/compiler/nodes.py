"""Parsed template tree."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Iterator, List, Optional, Tuple


class NodeKind(Enum):
    DOCUMENT = "#document"
    FRAGMENT = "#document-fragment"
    ELEMENT = "element"
    TEXT = "#text"
    COMMENT = "#comment"
    DOCTYPE = "#doctype"


@dataclass(frozen=True)
class Attribute:
    name: str
    value: str = ""


@dataclass(eq=False)
class Node:
    """A node in a parsed template.

    Trees are shared between every call site of a component, so nothing
    mutates a node once the parser has finished with it. Nodes hash by
    identity which makes them usable as side-table keys.
    """

    kind: NodeKind
    tag: Optional[str] = None
    attributes: Tuple[Attribute, ...] = ()
    children: List["Node"] = field(default_factory=list)
    data: str = ""
    # Children of a <template> element live in their own fragment
    content: Optional["Node"] = None
    # Inner markup exactly as authored, used by webc:raw and scripted blocks
    source: Optional[str] = None
    parent: Optional["Node"] = field(default=None, repr=False)
    line: int = 0
    column: int = 0

    @property
    def is_element(self) -> bool:
        return self.kind is NodeKind.ELEMENT

    @property
    def is_text(self) -> bool:
        return self.kind is NodeKind.TEXT

    @property
    def is_comment(self) -> bool:
        return self.kind is NodeKind.COMMENT

    @property
    def child_nodes(self) -> List["Node"]:
        if self.content is not None:
            return self.content.children
        return self.children

    def walk(self) -> Iterator["Node"]:
        """Depth-first iteration over this node and its descendants."""
        yield self
        for child in self.child_nodes:
            yield from child.walk()
