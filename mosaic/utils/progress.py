"""Progress events and the adapters used to forward them to a consumer."""

import inspect
import queue
from dataclasses import dataclass
from typing import Any, Callable, Iterator, Optional, Union

ProgressCallback = Callable[["ProgressEvent"], Any]


@dataclass(frozen=True)
class ProgressEvent:
    stage: str
    file_name: str
    downloaded: int
    total: Optional[int] = None
    url: Optional[str] = None

    @property
    def percentage(self) -> Optional[float]:
        if not self.total:
            return None
        return min(100.0, self.downloaded * 100.0 / self.total)


async def report_progress(callback: Optional[ProgressCallback], event: ProgressEvent):
    """Invoke ``callback`` with ``event``, awaiting it when it is a coroutine function."""
    if callback is None:
        return
    result = callback(event)
    if inspect.isawaitable(result):
        await result


class ProgressChannel:
    """Thread-safe, never blocking bridge from a producer to a UI consumer.

    The producer passes ``channel.send`` as its progress callback; the consumer
    polls ``drain()`` (for example from a UI timer). Events sent after
    ``close()`` are silently dropped so a producer finishing late never fails.
    """

    _CLOSED = object()

    def __init__(self):
        self._queue: "queue.SimpleQueue[Union[ProgressEvent, object]]" = queue.SimpleQueue()
        self._closed = False

    def send(self, event: ProgressEvent):
        if not self._closed:
            self._queue.put(event)

    def close(self):
        if not self._closed:
            self._closed = True
            self._queue.put(self._CLOSED)

    @property
    def closed(self) -> bool:
        return self._closed

    def drain(self) -> Iterator[ProgressEvent]:
        """Yield every pending event without waiting."""
        while True:
            try:
                item = self._queue.get_nowait()
            except queue.Empty:
                return
            if item is self._CLOSED:
                return
            yield item
