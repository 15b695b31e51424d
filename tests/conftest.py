import io
import threading
import types

import pytest

import stdforward
from stdforward import StreamForwarder


class Collector:
    """Consumer that records every chunk and lets tests wait for delivery."""

    def __init__(self):
        self.chunks = []
        self._cond = threading.Condition()

    def write(self, data: bytes) -> int:
        with self._cond:
            self.chunks.append(bytes(data))
            self._cond.notify_all()
        return len(data)

    @property
    def data(self) -> bytes:
        with self._cond:
            return b"".join(self.chunks)

    def wait_for(self, size: int, timeout: float = 5.0) -> bool:
        with self._cond:
            return self._cond.wait_for(
                lambda: sum(len(chunk) for chunk in self.chunks) >= size, timeout
            )


class FailingWriter:
    def __init__(self):
        self.calls = 0

    def write(self, data: bytes) -> int:
        self.calls += 1
        raise OSError("broken pipe")


def text_stream() -> io.TextIOWrapper:
    return io.TextIOWrapper(io.BytesIO(), encoding="utf-8")


@pytest.fixture
def collector_cls():
    return Collector


@pytest.fixture
def failing_writer():
    return FailingWriter()


@pytest.fixture
def namespace():
    return types.SimpleNamespace(stdout=text_stream(), stderr=text_stream())


@pytest.fixture
def forwarder(namespace):
    fwd = StreamForwarder("stdout", namespace=namespace)
    yield fwd
    fwd.close()


@pytest.fixture
def process_streams():
    yield
    stdforward.shutdown()
