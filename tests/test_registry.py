import asyncio
import shutil
import tempfile
import unittest
from pathlib import Path

from pywebc.compiler.data_cascade import DataCascade
from pywebc.compiler.registry import (
    PAGE_MODE,
    ComponentRegistry,
    ComponentTag,
    PlainTag,
    get_rendering_mode,
)
from pywebc.compiler.scoping import get_digest
from pywebc.exceptions import EvaluationError, ScopeCollisionError, UnregisteredComponentError


class TestComponentRegistry(unittest.IsolatedAsyncioTestCase):
    def setUp(self) -> None:
        self.test_dir = tempfile.mkdtemp()
        self.root = Path(self.test_dir).resolve()
        self.registry = ComponentRegistry(project_root=self.root)
        self.cascade = DataCascade()

    def tearDown(self) -> None:
        shutil.rmtree(self.test_dir)

    def write(self, name: str, content: str) -> str:
        (self.root / name).write_text(content, encoding="utf-8")
        return name

    async def test_precompile_once_under_concurrency(self) -> None:
        self.write("card.webc", "<p>card</p>")
        reads = []
        original = self.registry.read

        async def counting_read(file_path: str) -> str:
            reads.append(file_path)
            await asyncio.sleep(0)
            return await original(file_path)

        self.registry.read = counting_read  # type: ignore[method-assign]
        first, second = await asyncio.gather(
            self.registry.precompile("card.webc", self.cascade),
            self.registry.precompile("card.webc", self.cascade),
        )
        self.assertIs(first, second)
        self.assertEqual(reads, ["card.webc"])
        self.assertTrue(self.registry.has("card.webc"))

    async def test_register_lowercases_and_resolves(self) -> None:
        self.write("card.webc", "<p>card</p>")
        await self.registry.register({"My-Card": "./card.webc"}, self.cascade)
        lookup = self.registry.resolve("my-card")
        self.assertIsInstance(lookup, ComponentTag)
        self.assertEqual(lookup.definition.file_path, "card.webc")
        self.assertEqual(self.registry.resolve("div"), PlainTag("div"))

    async def test_unregistered_component(self) -> None:
        self.registry.components["late-card"] = "late.webc"
        with self.assertRaises(UnregisteredComponentError):
            self.registry.resolve("late-card")

    async def test_host_tag_policy(self) -> None:
        cases = {
            "plain.webc": ("<p>markup only</p>", True),
            "styled.webc": ("<style>p{}</style><p>x</p>", False),
            "empty-style.webc": ("<style> </style><p>x</p>", True),
            "script.webc": ("<script>go()</script>", False),
            "script-src.webc": ('<script src="x.js"></script>', False),
            "linked.webc": ('<link rel="stylesheet" href="a.css">', False),
            "root.webc": ('<div webc:root class="x">x</div>', False),
            "override.webc": ('<div webc:root="override">x</div>', True),
            "shadow.webc": ('<template shadowrootmode="open"><p>x</p></template>', False),
            "nested-shadow.webc": (
                '<div><template shadowrootmode="open"><p>x</p></template></div>',
                False,
            ),
            "setup.webc": ("<script webc:setup>x = 1</script><p>x</p>", True),
        }
        for name, (content, ignored) in cases.items():
            self.write(name, content)
            definition = await self.registry.precompile(name, self.cascade)
            self.assertEqual(definition.ignore_root_tag, ignored, name)

    async def test_scope_id_and_root_attributes(self) -> None:
        self.write("scoped.webc", "<style webc:scoped>p { color: red; }</style><p>x</p>")
        definition = await self.registry.precompile("scoped.webc", self.cascade)
        scope = get_digest("p { color: red; }")
        self.assertEqual(definition.scope_id, scope)
        self.assertTrue(scope.startswith("w"))
        self.assertEqual(len(scope), 9)
        self.assertEqual([(a.name, a.value) for a in definition.root_attributes], [("class", scope)])

    async def test_scope_override_collision(self) -> None:
        self.write("one.webc", '<style webc:scoped="shared">p{}</style>')
        self.write("two.webc", '<style webc:scoped="shared">a{}</style>')
        first = await self.registry.precompile("one.webc", self.cascade)
        self.assertEqual(first.scope_id, "shared")
        with self.assertRaises(ScopeCollisionError):
            await self.registry.precompile("two.webc", self.cascade)
        self.assertFalse(self.registry.has("two.webc"))

    async def test_setup_script_bindings(self) -> None:
        self.cascade.set_helper("double", lambda n: n * 2)
        self.write("setup.webc", "<script webc:setup>\nlimit = double(21)\n</script>")
        definition = await self.registry.precompile("setup.webc", self.cascade)
        self.assertEqual(definition.setup_result["limit"], 42)

    async def test_setup_script_failure(self) -> None:
        self.write("broken.webc", "<script webc:setup>raise ValueError('nope')</script>")
        with self.assertRaises(EvaluationError) as ctx:
            await self.registry.precompile("broken.webc", self.cascade)
        self.assertIn("nope", str(ctx.exception))
        self.assertIn("broken.webc", str(ctx.exception))

    def test_rendering_mode(self) -> None:
        self.assertEqual(get_rendering_mode("<!DOCTYPE html><p>"), PAGE_MODE)
        self.assertEqual(get_rendering_mode("  <html><body>"), PAGE_MODE)
        self.assertEqual(get_rendering_mode("<p>hi</p>"), "component")
