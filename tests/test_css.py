import unittest

from pywebc.compiler.css import CssPrefixer, minify_css


class TestCssPrefixer(unittest.TestCase):
    def setUp(self) -> None:
        self.prefixer = CssPrefixer("wabc")

    def test_descendant_prefix(self) -> None:
        self.assertEqual(self.prefixer.process("p { color: red; }"), ".wabc p{color:red}")

    def test_selector_list_and_combinators(self) -> None:
        self.assertEqual(
            self.prefixer.process("a, b > c { margin: 0 }"),
            ".wabc a,.wabc b>c{margin:0}",
        )

    def test_host(self) -> None:
        self.assertEqual(self.prefixer.process(":host { display: block }"), ".wabc{display:block}")
        self.assertEqual(self.prefixer.process(":host span { color: blue }"), ".wabc span{color:blue}")

    def test_host_function(self) -> None:
        self.assertEqual(
            self.prefixer.process(":host(.active) span { color: blue }"),
            ".wabc.active span{color:blue}",
        )

    def test_host_context_untouched(self) -> None:
        self.assertEqual(
            self.prefixer.process(":host-context(.dark) p { color: white }"),
            ":host-context(.dark) p{color:white}",
        )

    def test_functional_pseudo_class_prefixed_once(self) -> None:
        self.assertEqual(
            self.prefixer.process(":not(.x) p { color: red }"),
            ".wabc :not(.x) p{color:red}",
        )

    def test_media_query_rules_are_prefixed(self) -> None:
        self.assertEqual(
            self.prefixer.process("@media (min-width: 600px) { p { margin: 0 } }"),
            "@media (min-width: 600px){.wabc p{margin:0}}",
        )

    def test_keyframes_untouched(self) -> None:
        self.assertEqual(
            self.prefixer.process("@keyframes spin { from { opacity: 0 } to { opacity: 1 } }"),
            "@keyframes spin{from{opacity:0}to{opacity:1}}",
        )

    def test_important(self) -> None:
        self.assertEqual(
            self.prefixer.process("p { color: red !important }"),
            ".wabc p{color:red!important}",
        )

    def test_idempotent(self) -> None:
        once = self.prefixer.process(":host { display: block } p { color: red }")
        self.assertEqual(self.prefixer.process(once), once)

    def test_empty_prefix_rejected(self) -> None:
        with self.assertRaises(ValueError):
            CssPrefixer("")

    def test_minify_without_prefix(self) -> None:
        self.assertEqual(minify_css("p  >  a { color : red ; }"), "p>a{color:red}")


if __name__ == "__main__":
    unittest.main()
