import asyncio
from pathlib import Path

import pytest

from pywebc.compiler.paths import is_in_directory, normalize_path, relative_to_file
from pywebc.exceptions import InvalidReferenceError
from pywebc.runtime.resolution import FileSystemCache, ModuleResolution


def test_normalize_path() -> None:
    assert normalize_path("./components/../components/card.webc") == "components/card.webc"
    assert normalize_path("components\\card.webc") == "components/card.webc"
    assert normalize_path(None) is None


def test_relative_to_file() -> None:
    assert relative_to_file("card.webc", "pages/index.webc") == "pages/card.webc"
    assert relative_to_file("../card.webc", "pages/index.webc") == "card.webc"
    assert relative_to_file("./card.webc", None) == "card.webc"


def test_is_in_directory(tmp_path: Path) -> None:
    assert is_in_directory("a/b.webc", tmp_path)
    assert not is_in_directory("../b.webc", tmp_path)


def test_resolve_relative_and_aliased(tmp_path: Path) -> None:
    resolver = ModuleResolution({"ui": "./lib/ui/"}, tmp_path)
    assert resolver.resolve("nav.webc", "pages/index.webc") == "pages/nav.webc"
    assert resolver.resolve("ui:button.webc", "pages/index.webc") == "lib/ui/button.webc"
    assert resolver.resolve("npm:@scope/pkg/card.webc") == "node_modules/@scope/pkg/card.webc"


def test_resolve_directory_uses_tag_name(tmp_path: Path) -> None:
    resolver = ModuleResolution(project_root=tmp_path)
    resolver.set_tag_name("fancy-card")
    assert resolver.resolve("npm:fancy") == "node_modules/fancy/fancy-card.webc"


def test_resolve_errors(tmp_path: Path) -> None:
    resolver = ModuleResolution(project_root=tmp_path)
    with pytest.raises(InvalidReferenceError) as excinfo:
        resolver.resolve("nope:card.webc")
    assert "known aliases: npm" in str(excinfo.value)
    with pytest.raises(InvalidReferenceError):
        resolver.resolve("../../card.webc", "pages/index.webc")


def test_file_system_cache(tmp_path: Path) -> None:
    (tmp_path / "styles").mkdir()
    (tmp_path / "styles" / "a.css").write_text("a{}", encoding="utf-8")
    cache = FileSystemCache(tmp_path)

    assert asyncio.run(cache.read("a.css", "styles/card.webc")) == "a{}"
    assert cache.contents == {"styles/a.css": "a{}"}

    with pytest.raises(InvalidReferenceError):
        asyncio.run(cache.read("https://example.com/a.css"))
    with pytest.raises(InvalidReferenceError):
        asyncio.run(cache.read("../secret.css"))
