import unittest

from pywebc.compiler.nodes import NodeKind
from pywebc.compiler.parser import ParserCache, parse


class TestParser(unittest.TestCase):
    def test_entities_kept_as_authored(self) -> None:
        tree = parse("<p>Fish &amp; chips &#169;</p>")
        p = tree.children[0]
        self.assertEqual(len(p.children), 1)
        self.assertEqual(p.children[0].data, "Fish &amp; chips &#169;")

    def test_attributes_in_order(self) -> None:
        tree = parse('<my-el webc:if="ok" :title="name" hidden></my-el>')
        node = tree.children[0]
        self.assertEqual(
            [(a.name, a.value) for a in node.attributes],
            [("webc:if", "ok"), (":title", "name"), ("hidden", "")],
        )

    def test_inner_source(self) -> None:
        tree = parse("<div>\n  <b>bold</b> &amp; more\n</div>")
        self.assertEqual(tree.children[0].source, "\n  <b>bold</b> &amp; more\n")

    def test_template_children_live_in_content(self) -> None:
        tree = parse("<template><p>inside</p></template>")
        template = tree.children[0]
        self.assertEqual(template.children, [])
        self.assertIsNotNone(template.content)
        self.assertEqual(template.content.kind, NodeKind.FRAGMENT)
        self.assertEqual(template.child_nodes[0].tag, "p")
        self.assertEqual(template.source, "<p>inside</p>")

    def test_void_elements_have_no_children(self) -> None:
        tree = parse('<img src="a.png"><p>after</p>')
        self.assertEqual([node.tag for node in tree.children], ["img", "p"])

    def test_doctype_and_comments(self) -> None:
        tree = parse("<!doctype html><!-- note --><html></html>")
        kinds = [node.kind for node in tree.children]
        self.assertEqual(kinds, [NodeKind.DOCTYPE, NodeKind.COMMENT, NodeKind.ELEMENT])
        self.assertEqual(tree.children[0].data, "doctype html")
        self.assertEqual(tree.children[1].data, " note ")

    def test_script_text_is_raw(self) -> None:
        tree = parse("<script>if (a < b) { go(); }</script>")
        self.assertEqual(tree.children[0].children[0].data, "if (a < b) { go(); }")

    def test_unclosed_elements_are_closed(self) -> None:
        tree = parse("<div><span>open")
        div = tree.children[0]
        self.assertEqual(div.children[0].tag, "span")
        self.assertEqual(div.source, "<span>open")

    def test_parents_and_walk(self) -> None:
        tree = parse("<ul><li>a</li><li>b</li></ul>")
        tags = [node.tag for node in tree.walk() if node.kind is NodeKind.ELEMENT]
        self.assertEqual(tags, ["ul", "li", "li"])
        li = tree.children[0].children[0]
        self.assertIs(li.parent, tree.children[0])


def test_parser_cache_reuses_trees() -> None:
    """One tree per distinct source string."""
    cache = ParserCache()
    first = cache.get("<p>x</p>")
    assert cache.get("<p>x</p>") is first
    assert cache.get("<p>y</p>") is not first
    assert len(cache) == 2
    cache.clear()
    assert cache.get("<p>x</p>") is not first
