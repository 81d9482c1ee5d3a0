import asyncio
from pathlib import Path

import pytest

from pywebc import OrphanedDirectiveError, WebC
from pywebc.compiler.streams import Channel


@pytest.mark.asyncio
async def test_stream_matches_compile(tmp_path: Path) -> None:
    (tmp_path / "my-comp.webc").write_text("<style>p{}</style><p>Hi</p>", encoding="utf-8")
    markup = "<main><my-comp></my-comp><script>go()</script></main>"

    page = WebC(input=markup, project_root=tmp_path)
    page.define_components({"my-comp": "my-comp.webc"})
    compiled = await page.compile()

    channels = await page.stream()
    assert set(channels) == {"html", "css", "js"}
    html = await channels["html"].read()
    css = [chunk async for chunk in channels["css"]]
    js = [chunk async for chunk in channels["js"]]

    assert html == compiled.html == "<main><my-comp><p>Hi</p></my-comp></main>"
    assert css == compiled.css == ["p{}"]
    assert js == compiled.js == ["go()"]


@pytest.mark.asyncio
async def test_stream_error_is_raised_from_every_channel(tmp_path: Path) -> None:
    page = WebC(input="<style>p{}</style><p>ok</p><p webc:else>no</p>", project_root=tmp_path)
    channels = await page.stream()
    for name in ("html", "css", "js"):
        with pytest.raises(OrphanedDirectiveError):
            await channels[name].read()


def test_channel_closes_once() -> None:
    """Chunks pushed after close are dropped."""

    async def run() -> str:
        channel = Channel("html")
        channel.push("a")
        channel.push("b")
        channel.close()
        channel.push("c")
        channel.close()
        return await channel.read()

    assert asyncio.run(run()) == "ab"
