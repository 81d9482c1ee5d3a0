import asyncio
import unittest

from pywebc.compiler.attributes import (
    EvaluatedAttribute,
    Evaluation,
    Privacy,
    attributes_to_data,
    evaluate_attribute,
    literal,
    merge_attributes,
    peek_attribute,
    render_attributes,
    serialize_attributes,
)
from pywebc.compiler.nodes import Attribute
from pywebc.exceptions import EvaluationError
from pywebc.runtime.evaluator import PythonEvaluator


class TestPeekAttribute(unittest.TestCase):
    def test_prefix_forms(self) -> None:
        self.assertEqual(peek_attribute("title"), ("title", Evaluation.LITERAL, Privacy.PUBLIC))
        self.assertEqual(peek_attribute("webc:if"), ("webc:if", Evaluation.LITERAL, Privacy.PRIVATE))
        self.assertEqual(peek_attribute("@label"), ("label", Evaluation.LITERAL, Privacy.PRIVATE))
        self.assertEqual(peek_attribute(":title"), ("title", Evaluation.SCRIPT, Privacy.PUBLIC))
        self.assertEqual(peek_attribute(":@label"), ("label", Evaluation.SCRIPT, Privacy.PRIVATE))
        self.assertEqual(peek_attribute("@html"), ("@html", Evaluation.SCRIPT, Privacy.PRIVATE))


class TestMergeAttributes(unittest.TestCase):
    def test_class_values_deduplicated(self) -> None:
        merged = merge_attributes([literal("class", "a b"), literal("class", "b c")])
        self.assertEqual(len(merged), 1)
        self.assertEqual(merged[0].value, "a b c")

    def test_style_values_joined(self) -> None:
        merged = merge_attributes([literal("style", "color: red;"), literal("style", "margin: 0")])
        self.assertEqual(merged[0].value, "color: red; margin: 0")

    def test_last_writer_wins_keeps_position(self) -> None:
        merged = merge_attributes(
            [literal("id", "one"), literal("title", "t"), literal("id", "two")]
        )
        self.assertEqual([(a.name, a.value) for a in merged], [("id", "two"), ("title", "t")])


class TestSerializeAttributes(unittest.TestCase):
    def test_public_only(self) -> None:
        attributes = [
            literal("id", "main"),
            literal("hidden", True),
            literal("disabled", ""),
            literal("missing", None),
            literal("off", False),
        ]
        attributes.append(
            EvaluatedAttribute("secret", "x", raw_name="@secret", privacy=Privacy.PRIVATE)
        )
        self.assertEqual(serialize_attributes(attributes), ' id="main" hidden disabled')

    def test_escaping(self) -> None:
        self.assertEqual(
            render_attributes({"title": 'say "hi" & <bye>'}),
            ' title="say &quot;hi&quot; &amp; &lt;bye&gt;"',
        )


class TestEvaluateAttribute(unittest.TestCase):
    def setUp(self) -> None:
        self.evaluator = PythonEvaluator()

    def test_dynamic_attribute(self) -> None:
        result = asyncio.run(
            evaluate_attribute(Attribute(":title", "name.upper()"), {"name": "ada"}, self.evaluator)
        )
        self.assertEqual(result.name, "title")
        self.assertEqual(result.value, "ADA")
        self.assertTrue(result.is_public)

    def test_reserved_word_hint(self) -> None:
        with self.assertRaises(EvaluationError) as ctx:
            asyncio.run(
                evaluate_attribute(Attribute(":class", "class + ' x'"), {}, self.evaluator)
            )
        self.assertIn("`class` is a reserved word in Python", str(ctx.exception))

    def test_failure_names_expression(self) -> None:
        with self.assertRaises(EvaluationError) as ctx:
            asyncio.run(evaluate_attribute(Attribute(":title", "1 / 0"), {}, self.evaluator))
        self.assertIn('`:title="1 / 0"`', str(ctx.exception))
        self.assertIsInstance(ctx.exception.__cause__, ZeroDivisionError)


def test_attributes_to_data_exposes_snake_case() -> None:
    """Dashed names are readable as identifiers; directives never become props."""
    data = attributes_to_data(
        [
            literal("aria-label", "Close"),
            EvaluatedAttribute("webc:if", "True", raw_name="webc:if", privacy=Privacy.PRIVATE),
        ]
    )
    assert data == {"aria-label": "Close", "aria_label": "Close"}
