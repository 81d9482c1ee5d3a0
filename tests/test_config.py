import json
import shutil
import tempfile
import unittest
from pathlib import Path

from pywebc.config import WebCConfig, find_project_root
from pywebc.exceptions import ConfigError


class TestConfig(unittest.TestCase):
    def setUp(self) -> None:
        self.test_dir = tempfile.mkdtemp()
        self.tmp_path = Path(self.test_dir).resolve()

    def tearDown(self) -> None:
        shutil.rmtree(self.test_dir)

    def test_default_config(self) -> None:
        config = WebCConfig.load(self.tmp_path)
        self.assertEqual(config.project_root, self.tmp_path)
        self.assertEqual(config.components, [])
        self.assertTrue(config.bundler_mode)
        self.assertIsNone(config.out_dir)
        self.assertEqual(config.load_data(), {})

    def test_tool_table(self) -> None:
        (self.tmp_path / "pyproject.toml").write_text(
            """
[tool.pywebc]
components = "components/**/*.webc"
ignores = ["components/drafts/*"]
bundler_mode = false
data = "site.json"
out_dir = "dist"

[tool.pywebc.aliases]
ui = "./lib/ui/"
""",
            encoding="utf-8",
        )
        (self.tmp_path / "site.json").write_text(json.dumps({"title": "Site"}), encoding="utf-8")

        config = WebCConfig.load(self.tmp_path)
        self.assertEqual(config.components, ["components/**/*.webc"])
        self.assertEqual(config.ignores, ["components/drafts/*"])
        self.assertFalse(config.bundler_mode)
        self.assertEqual(config.aliases, {"ui": "./lib/ui/"})
        self.assertEqual(config.out_dir, self.tmp_path / "dist")
        self.assertEqual(config.load_data(), {"title": "Site"})

    def test_invalid_toml(self) -> None:
        (self.tmp_path / "pyproject.toml").write_text("[tool.pywebc\n", encoding="utf-8")
        with self.assertRaises(ConfigError):
            WebCConfig.load(self.tmp_path)

    def test_invalid_data_file(self) -> None:
        (self.tmp_path / "pyproject.toml").write_text(
            '[tool.pywebc]\ndata = "list.json"\n', encoding="utf-8"
        )
        (self.tmp_path / "list.json").write_text("[1, 2]", encoding="utf-8")
        with self.assertRaises(ConfigError):
            WebCConfig.load(self.tmp_path).load_data()

    def test_find_project_root(self) -> None:
        (self.tmp_path / "pyproject.toml").touch()
        nested = self.tmp_path / "pages" / "blog"
        nested.mkdir(parents=True)
        self.assertEqual(find_project_root(nested), self.tmp_path)


if __name__ == "__main__":
    unittest.main()
