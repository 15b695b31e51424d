import asyncio
import codecs
import threading
from typing import Callable, Union

from stdforward.errors import ConsumerClosedError


class CallbackWriter:
    def __init__(self, write_fn: Callable[[bytes], None]):
        self._write_fn = write_fn

    def write(self, data: bytes) -> int:
        self._write_fn(data)
        return len(data)


class LineEmitter:
    """Turns forwarded chunks into complete lines.

    Chunks may split lines and multi-byte characters anywhere; both are
    reassembled before ``emit_fn`` sees them. Empty lines are skipped and a
    trailing ``\\r`` is stripped.
    """

    def __init__(self, emit_fn: Callable[[str], None], encoding: str = "utf-8"):
        self._emit_fn = emit_fn
        self._decoder = codecs.getincrementaldecoder(encoding)("replace")
        self._buffer = ""
        self._lock = threading.Lock()

    def write(self, data: Union[bytes, str]) -> int:
        if not data:
            return 0
        with self._lock:
            if isinstance(data, bytes):
                self._buffer += self._decoder.decode(data)
            else:
                self._buffer += data
            while "\n" in self._buffer:
                line, self._buffer = self._buffer.split("\n", 1)
                line = line.rstrip("\r")
                if line:
                    self._emit_fn(line)
        return len(data)

    def flush(self) -> None:
        with self._lock:
            self._buffer += self._decoder.decode(b"", final=True)
            if self._buffer:
                line = self._buffer.rstrip("\r")
                if line:
                    self._emit_fn(line)
                self._buffer = ""


class QueueWriter:
    """Hands chunks to an asyncio queue owned by another thread's loop.

    ``write`` never blocks the copy loop: items are queued with
    ``call_soon_threadsafe`` and dropped, counted in ``dropped``, when the
    queue is full. Each item is a ``(tag, data)`` tuple.
    """

    def __init__(self, loop: asyncio.AbstractEventLoop, queue: asyncio.Queue, tag: str = ""):
        self._loop = loop
        self._queue = queue
        self.tag = tag
        self.dropped = 0
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def write(self, data: bytes) -> int:
        if self._closed:
            raise ConsumerClosedError(f"consumer {self.tag or 'queue'} is closed")
        self._loop.call_soon_threadsafe(self._put, bytes(data))
        return len(data)

    def close(self) -> None:
        self._closed = True

    def _put(self, data: bytes) -> None:
        if self._closed:
            return
        try:
            self._queue.put_nowait((self.tag, data))
        except asyncio.QueueFull:
            self.dropped += 1
