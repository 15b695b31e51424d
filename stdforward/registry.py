import sys
import threading
from enum import Enum
from typing import Dict, Union

from stdforward.forwarder import DEFAULT_READ_SIZE, StreamForwarder


class Stream(str, Enum):
    STDOUT = "stdout"
    STDERR = "stderr"


StreamLike = Union[Stream, str]

_forwarders: Dict[Stream, StreamForwarder] = {}
_install_lock = threading.Lock()
_read_size = DEFAULT_READ_SIZE


def as_stream(stream: StreamLike) -> Stream:
    try:
        return Stream(stream)
    except ValueError:
        choices = ", ".join(item.value for item in Stream)
        raise ValueError(f"unknown stream {stream!r}, expected one of: {choices}") from None


def configure(read_size: int) -> None:
    """Set the pipe read size used by forwarders created from now on."""
    global _read_size
    if read_size <= 0:
        raise ValueError("read_size must be positive")
    with _install_lock:
        _read_size = read_size


def get_forwarder(stream: StreamLike) -> StreamForwarder:
    key = as_stream(stream)
    with _install_lock:
        forwarder = _forwarders.get(key)
        if forwarder is None:
            forwarder = StreamForwarder(key.value, read_size=_read_size)
            _forwarders[key] = forwarder
    return forwarder


def get_stream(stream: StreamLike):
    """Return the handle writes to ``stream`` should go through right now."""
    return getattr(sys, as_stream(stream).value)


def register_consumer(stream: StreamLike, consumer_id: str, writer) -> None:
    get_forwarder(stream).register(consumer_id, writer)


def unregister_consumer(stream: StreamLike, consumer_id: str) -> None:
    get_forwarder(stream).unregister(consumer_id)


# Shorthands for the two streams.
def add_stdout_writer(consumer_id: str, writer) -> None:
    register_consumer(Stream.STDOUT, consumer_id, writer)


def remove_stdout_writer(consumer_id: str) -> None:
    unregister_consumer(Stream.STDOUT, consumer_id)


def add_stderr_writer(consumer_id: str, writer) -> None:
    register_consumer(Stream.STDERR, consumer_id, writer)


def remove_stderr_writer(consumer_id: str) -> None:
    unregister_consumer(Stream.STDERR, consumer_id)


def shutdown() -> None:
    """Close every process-wide forwarder and restore the real streams.

    The next registration on a stream starts a fresh interception.
    """
    with _install_lock:
        forwarders = list(_forwarders.values())
        _forwarders.clear()
    for forwarder in forwarders:
        forwarder.close()
