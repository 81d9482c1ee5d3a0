"""Compile one input with project configuration and write the outputs."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from pathlib import Path, PurePosixPath
from typing import Any, List, Mapping, Optional, Sequence, Tuple

from pywebc.compiler.serializer import CompilationResult
from pywebc.config import WebCConfig
from pywebc.webc import WebC

logger = logging.getLogger(__name__)


@dataclass
class BuildSummary:
    input: str
    components: int
    css: int
    js: int
    written: List[Path] = field(default_factory=list)
    out_dir: Optional[Path] = None


def create_webc(
    input_path: str,
    config: WebCConfig,
    components: Sequence[str] = (),
    bundler_mode: Optional[bool] = None,
) -> WebC:
    page = WebC(file=input_path, ignores=config.ignores, project_root=config.project_root)
    for name, folder in config.aliases.items():
        page.set_alias(name, folder)
    globs = list(config.components) + list(components)
    if globs:
        page.define_components(globs)
    page.set_bundler_mode(config.bundler_mode if bundler_mode is None else bundler_mode)
    return page


def _write(path: Path, content: str, written: List[Path]) -> None:
    path.write_text(content, encoding="utf-8")
    written.append(path)


def write_outputs(
    name: str, result: CompilationResult, out_dir: Path
) -> List[Path]:
    """Write <name>.html plus <name>.css and <name>.js when there is anything to bundle."""
    out_dir.mkdir(parents=True, exist_ok=True)
    written: List[Path] = []
    _write(out_dir / f"{name}.html", result.html, written)
    if result.css:
        _write(out_dir / f"{name}.css", "\n".join(result.css), written)
    if result.js:
        _write(out_dir / f"{name}.js", "\n".join(result.js), written)
    for kind, buckets in result.buckets.items():
        for bucket, entries in buckets.items():
            _write(out_dir / f"{name}.{bucket}.{kind}", "\n".join(entries), written)
    return written


async def build_file(
    input_path: str,
    config: WebCConfig,
    components: Sequence[str] = (),
    data: Optional[Mapping[str, Any]] = None,
    out_dir: Optional[Path] = None,
    bundler_mode: Optional[bool] = None,
) -> Tuple[CompilationResult, BuildSummary]:
    page = create_webc(input_path, config, components, bundler_mode)
    result = await page.compile(data=data)

    summary = BuildSummary(
        input=input_path,
        components=len([entry for entry in result.components if entry != page.file_path]),
        css=len(result.css),
        js=len(result.js),
        out_dir=out_dir,
    )
    if out_dir is not None:
        name = PurePosixPath(input_path).stem
        summary.written = await asyncio.to_thread(write_outputs, name, result, out_dir)
        logger.info("Wrote %d files to %s", len(summary.written), out_dir)
    return result, summary


async def list_components(
    input_path: str, config: WebCConfig, components: Sequence[str] = ()
) -> List[str]:
    page = create_webc(input_path, config, components)
    return await page.get_components()
