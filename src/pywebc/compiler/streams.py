"""Per-kind output channels for streamed compilation."""

import asyncio
from typing import AsyncIterator, Dict, Iterable, Optional, Union

_END = object()


class _Failure:
    def __init__(self, error: BaseException) -> None:
        self.error = error


class Channel:
    """An async iterator of string chunks written by the compiler."""

    def __init__(self, name: str) -> None:
        self.name = name
        self._queue: "asyncio.Queue[Union[str, _Failure, object]]" = asyncio.Queue()
        self.closed = False

    def push(self, chunk: str) -> None:
        if not self.closed:
            self._queue.put_nowait(chunk)

    def fail(self, error: BaseException) -> None:
        if not self.closed:
            self._queue.put_nowait(_Failure(error))

    def close(self) -> None:
        if not self.closed:
            self.closed = True
            self._queue.put_nowait(_END)

    def __aiter__(self) -> AsyncIterator[str]:
        return self._chunks()

    async def _chunks(self) -> AsyncIterator[str]:
        while True:
            item = await self._queue.get()
            if item is _END:
                return
            if isinstance(item, _Failure):
                raise item.error
            yield item

    async def read(self) -> str:
        """Wait for the channel to close and return everything written to it."""
        return "".join([chunk async for chunk in self])


class Streams:
    def __init__(self, names: Iterable[str]) -> None:
        self.names = list(names)
        self.channels: Dict[str, Channel] = {}
        self.started = False
        self.task: Optional["asyncio.Task[None]"] = None

    def start(self) -> None:
        self.channels = {name: Channel(name) for name in self.names}
        self.started = True

    def get(self) -> Dict[str, Channel]:
        return dict(self.channels)

    def output(self, name: str, content: str) -> None:
        if self.started and content:
            self.channels[name].push(content)

    def error(self, error: BaseException) -> None:
        """Fail every channel with `error`."""
        if self.started:
            for channel in self.channels.values():
                channel.fail(error)

    def end(self) -> None:
        for channel in self.channels.values():
            channel.close()
