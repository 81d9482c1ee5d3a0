"""HTML tree builder for WebC templates."""

import logging
from html.parser import HTMLParser
from typing import Dict, List, Optional, Tuple

from pywebc.compiler.nodes import Attribute, Node, NodeKind

logger = logging.getLogger(__name__)

VOID_ELEMENTS = {
    "area",
    "base",
    "br",
    "col",
    "embed",
    "hr",
    "img",
    "input",
    "link",
    "meta",
    "param",
    "source",
    "track",
    "wbr",
}


class TreeBuilder(HTMLParser):
    """Builds a Node tree while keeping text exactly as authored.

    Character references are re-emitted untouched so text content never
    needs re-escaping on output. Every element remembers the raw markup
    between its start and end tags.
    """

    def __init__(self, content: str) -> None:
        super().__init__(convert_charrefs=False)
        self.content = content
        self.document = Node(kind=NodeKind.DOCUMENT)
        self._stack: List[Node] = [self.document]
        self._inner_start: Dict[int, int] = {}
        self._line_offsets = [0]
        for index, char in enumerate(content):
            if char == "\n":
                self._line_offsets.append(index + 1)

    def build(self) -> Node:
        self.feed(self.content)
        self.close()
        while len(self._stack) > 1:
            self._finish(self._stack.pop(), len(self.content))
        return self.document

    def _offset(self) -> int:
        line, column = self.getpos()
        return self._line_offsets[line - 1] + column

    def _container(self) -> Node:
        top = self._stack[-1]
        if top.content is not None:
            return top.content
        return top

    def _append(self, node: Node) -> None:
        parent = self._container()
        node.parent = parent
        parent.children.append(node)

    def _element(self, tag: str, attrs: List[Tuple[str, Optional[str]]]) -> Node:
        line, column = self.getpos()
        node = Node(
            kind=NodeKind.ELEMENT,
            tag=tag,
            attributes=tuple(
                Attribute(name, value if value is not None else "")
                for name, value in attrs
            ),
            line=line,
            column=column,
        )
        if tag == "template":
            node.content = Node(kind=NodeKind.FRAGMENT, parent=node)
        return node

    def _finish(self, node: Node, end: int) -> None:
        start = self._inner_start.pop(id(node), end)
        node.source = self.content[start:end]

    def handle_starttag(self, tag: str, attrs: List[Tuple[str, Optional[str]]]) -> None:
        node = self._element(tag, attrs)
        self._append(node)
        if tag in VOID_ELEMENTS:
            node.source = ""
            return
        start_text = self.get_starttag_text() or ""
        self._inner_start[id(node)] = self._offset() + len(start_text)
        self._stack.append(node)

    def handle_startendtag(self, tag: str, attrs: List[Tuple[str, Optional[str]]]) -> None:
        node = self._element(tag, attrs)
        node.source = ""
        self._append(node)

    def handle_endtag(self, tag: str) -> None:
        for index in range(len(self._stack) - 1, 0, -1):
            if self._stack[index].tag == tag:
                break
        else:
            if tag not in VOID_ELEMENTS:
                logger.debug("Ignoring stray end tag </%s>", tag)
            return

        end = self._offset()
        while len(self._stack) > index:
            self._finish(self._stack.pop(), end)

    def handle_data(self, data: str) -> None:
        parent = self._container()
        if parent.children and parent.children[-1].kind is NodeKind.TEXT:
            parent.children[-1].data += data
            return
        line, column = self.getpos()
        self._append(Node(kind=NodeKind.TEXT, data=data, line=line, column=column))

    def handle_entityref(self, name: str) -> None:
        self.handle_data(f"&{name};")

    def handle_charref(self, name: str) -> None:
        self.handle_data(f"&#{name};")

    def handle_comment(self, data: str) -> None:
        self._append(Node(kind=NodeKind.COMMENT, data=data))

    def handle_decl(self, decl: str) -> None:
        self._append(Node(kind=NodeKind.DOCTYPE, data=decl))

    def handle_pi(self, data: str) -> None:
        self.handle_data(f"<?{data}>")

    def unknown_decl(self, data: str) -> None:
        self.handle_data(f"<![{data}]>")


def parse(content: str) -> Node:
    """Parse markup into a document node."""
    return TreeBuilder(content).build()


class ParserCache:
    """Parsed trees keyed by their source text."""

    def __init__(self) -> None:
        self._cache: Dict[str, Node] = {}

    def get(self, content: str) -> Node:
        tree = self._cache.get(content)
        if tree is None:
            tree = parse(content)
            self._cache[content] = tree
        return tree

    def __len__(self) -> int:
        return len(self._cache)

    def clear(self) -> None:
        self._cache.clear()

