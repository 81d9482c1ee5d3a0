import asyncio
import unittest

from pywebc.exceptions import EvaluationError
from pywebc.runtime.evaluator import ExpressionEvaluator, PythonEvaluator


class TestPythonEvaluator(unittest.IsolatedAsyncioTestCase):
    def setUp(self) -> None:
        self.evaluator = PythonEvaluator()

    async def evaluate(self, expression: str, data: dict):
        names = self.evaluator.free_names(expression)
        return await self.evaluator.evaluate(expression, names, data)

    def test_is_an_expression_evaluator(self) -> None:
        self.assertIsInstance(self.evaluator, ExpressionEvaluator)

    def test_free_names(self) -> None:
        self.assertEqual(
            self.evaluator.free_names("[x * n for x in items]"), {"n", "items"}
        )

    async def test_missing_names_are_none(self) -> None:
        self.assertIsNone(await self.evaluate("missing", {}))
        self.assertEqual(await self.evaluate("len(items)", {"items": [1, 2]}), 2)

    async def test_this_reads_any_key(self) -> None:
        self.assertEqual(await self.evaluate("this['class']", {"class": "big"}), "big")

    async def test_awaitable_results_are_awaited(self) -> None:
        async def fetch(value):
            await asyncio.sleep(0)
            return value * 2

        self.assertEqual(await self.evaluate("fetch(21)", {"fetch": fetch}), 42)

    async def test_setup_returns_new_bindings(self) -> None:
        result = await self.evaluator.evaluate_setup(
            "import math\ntotal = base + 1\ndef shout(s):\n    return s.upper()",
            {"base": 1},
        )
        self.assertEqual(result["total"], 2)
        self.assertEqual(result["shout"]("a"), "A")
        self.assertNotIn("base", result)

    async def test_render_calls_render_function(self) -> None:
        script = """
        def render(data):
            return f"<b>{data['label']}</b>"
        """
        self.assertEqual(
            await self.evaluator.evaluate_render(script, {"label": "hi"}), "<b>hi</b>"
        )

    async def test_render_without_callable(self) -> None:
        with self.assertRaises(EvaluationError):
            await self.evaluator.evaluate_render("x = 1", {})

    def test_syntax_error(self) -> None:
        with self.assertRaises(EvaluationError):
            self.evaluator.free_names("a +")
