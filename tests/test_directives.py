import asyncio
import unittest

from pywebc.compiler.directives import ConditionalChain, iterate_loop, parse_loop
from pywebc.compiler.parser import parse
from pywebc.compiler.query import AstQuery
from pywebc.exceptions import EvaluationError, OrphanedDirectiveError


class TestLoops(unittest.TestCase):
    def test_parse_sequence_form(self) -> None:
        spec = parse_loop("item of items")
        self.assertEqual(spec.keys, ["item"])
        self.assertEqual(spec.source, "items")
        self.assertFalse(spec.over_mapping)

    def test_parse_mapping_form_unwraps_key_list(self) -> None:
        spec = parse_loop("(key, value, index) in {'a': 1}")
        self.assertEqual(spec.keys, ["key", "value", "index"])
        self.assertEqual(spec.source, "{'a': 1}")
        self.assertTrue(spec.over_mapping)

    def test_invalid_value(self) -> None:
        with self.assertRaises(EvaluationError):
            parse_loop("items")

    def test_iterate_sequence(self) -> None:
        spec = parse_loop("value, index of items")
        self.assertEqual(
            list(iterate_loop(spec, ["a", "b"])),
            [{"value": "a", "index": 0}, {"value": "b", "index": 1}],
        )

    def test_iterate_mapping(self) -> None:
        spec = parse_loop("key, value in data")
        self.assertEqual(
            list(iterate_loop(spec, {"x": 1, "y": 2})),
            [{"key": "x", "value": 1}, {"key": "y", "value": 2}],
        )

    def test_set_index_is_undefined(self) -> None:
        spec = parse_loop("value, index of data")
        self.assertEqual(list(iterate_loop(spec, {"only"})), [{"value": "only", "index": None}])

    def test_none_source(self) -> None:
        with self.assertRaises(EvaluationError):
            list(iterate_loop(parse_loop("x of missing"), None))


class TestConditionalChain(unittest.TestCase):
    def run_chain(self, markup: str, values: dict) -> list:
        tree = parse(markup)

        async def evaluate(name: str, expression: str):
            return values[expression]

        async def run() -> list:
            chain = ConditionalChain(AstQuery(), evaluate, "page.webc")
            admitted = []
            for node in tree.children:
                if await chain.admit(node) and node.is_element:
                    admitted.append(node.children[0].data)
            return admitted

        return asyncio.run(run())

    def test_first_truthy_member_wins(self) -> None:
        markup = '<p webc:if="a">A</p>\n<p webc:elseif="b">B</p><!-- c --><p webc:else>C</p>'
        self.assertEqual(self.run_chain(markup, {"a": False, "b": True}), ["B"])
        self.assertEqual(self.run_chain(markup, {"a": True, "b": True}), ["A"])
        self.assertEqual(self.run_chain(markup, {"a": False, "b": False}), ["C"])

    def test_plain_sibling_ends_chain(self) -> None:
        markup = '<p webc:if="a">A</p><p>plain</p>'
        self.assertEqual(self.run_chain(markup, {"a": False}), ["plain"])

    def test_orphaned_else(self) -> None:
        with self.assertRaises(OrphanedDirectiveError) as ctx:
            self.run_chain("<p>plain</p><p webc:else>C</p>", {})
        self.assertIn("webc:else", str(ctx.exception))
        self.assertIn("page.webc", str(ctx.exception))

    def test_orphaned_elseif(self) -> None:
        with self.assertRaises(OrphanedDirectiveError):
            self.run_chain('<p webc:elseif="b">B</p>', {"b": True})
