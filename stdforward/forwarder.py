import io
import logging
import os
import sys
import threading
from typing import Any, Dict, List, Optional

from stdforward.errors import ConsumerExistsError, ForwarderClosedError, InterceptionError
from stdforward.locks import ReadWriteLock


LOGGER = logging.getLogger(__name__)

DEFAULT_READ_SIZE = 32 * 1024
CLOSE_TIMEOUT_SECONDS = 5.0


class StreamForwarder:
    """Forwards everything written to one process output stream.

    The first registration swaps the stream handle held by ``namespace``
    (``sys`` by default) for the write end of an OS pipe. A daemon thread
    drains the read end and hands each chunk to :meth:`write`, which copies
    it to the original stream and then to every registered consumer.

    Anything that kept a reference to the original handle before the swap,
    such as a ``logging.StreamHandler`` built earlier, keeps writing to the
    original destination and is never forwarded.

    Handlers created after the swap write into the pipe instead. A logging
    handler bound to an intercepted stderr therefore feeds the warnings this
    class logs for a failing consumer back into the same pipe, once per
    broadcast, for as long as the consumer keeps failing. Bind such handlers
    to ``sys.__stderr__`` or create them before the first registration.
    """

    def __init__(self, name: str, namespace: Any = None, read_size: int = DEFAULT_READ_SIZE):
        self.name = name
        self._namespace = namespace if namespace is not None else sys
        self._read_size = read_size

        self._real = None
        self._encoding = "utf-8"
        self._writers: Dict[str, Any] = {}
        self._lock = ReadWriteLock()

        self._once_lock = threading.Lock()
        self._intercepted = False
        self._closed = False
        self._pipe_writer: Optional[io.TextIOWrapper] = None
        self._thread: Optional[threading.Thread] = None

    @property
    def intercepted(self) -> bool:
        return self._intercepted

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def real_stream(self):
        return self._real

    def consumer_ids(self) -> List[str]:
        with self._lock.read_locked():
            return sorted(self._writers)

    def ensure_intercepted(self) -> None:
        if self._intercepted and not self._closed:
            return
        with self._once_lock:
            if self._closed:
                raise ForwarderClosedError(f"{self.name} forwarder is closed")
            if self._intercepted:
                return

            real = getattr(self._namespace, self.name)
            try:
                read_fd, write_fd = os.pipe()
            except OSError as exc:
                raise InterceptionError(f"Can't redirect {self.name}: {exc}") from exc

            encoding = getattr(real, "encoding", None) or "utf-8"
            pipe_writer = io.TextIOWrapper(
                _PipeWriter(write_fd),
                encoding=encoding,
                errors="backslashreplace",
                line_buffering=True,
                write_through=True,
            )
            self._real = real
            self._encoding = encoding

            thread = threading.Thread(
                target=self._copy_loop,
                args=(read_fd,),
                name=f"stdforward-{self.name}",
                daemon=True,
            )
            try:
                thread.start()
            except RuntimeError as exc:
                pipe_writer.close()
                os.close(read_fd)
                self._real = None
                raise InterceptionError(f"Can't start {self.name} copy loop: {exc}") from exc

            flush = getattr(real, "flush", None)
            if flush is not None:
                flush()
            setattr(self._namespace, self.name, pipe_writer)

            self._pipe_writer = pipe_writer
            self._thread = thread
            self._intercepted = True
            LOGGER.debug("Intercepted %s", self.name)

    def register(self, consumer_id: str, writer, replace: bool = True) -> None:
        """Forward the stream to ``writer`` under ``consumer_id``.

        Registering an id again replaces its writer, unless ``replace`` is
        false, in which case :class:`ConsumerExistsError` is raised. Raises
        :class:`InterceptionError` when the stream could not be redirected
        and :class:`ForwarderClosedError` after :meth:`close`; nothing is
        registered in either case.
        """
        self.ensure_intercepted()
        with self._lock.write_locked():
            if self._closed:
                raise ForwarderClosedError(f"{self.name} forwarder is closed")
            if not replace and consumer_id in self._writers:
                raise ConsumerExistsError(
                    f"consumer {consumer_id!r} is already registered on {self.name}"
                )
            self._writers[consumer_id] = writer

    def unregister(self, consumer_id: str, writer=None) -> None:
        """Stop forwarding to ``consumer_id``.

        With ``writer`` given, the entry is only removed while it still
        points at that writer.
        """
        with self._lock.write_locked():
            if writer is not None and self._writers.get(consumer_id) is not writer:
                return
            self._writers.pop(consumer_id, None)

    def write(self, data: bytes) -> int:
        # Write to regular output first
        written = 0
        try:
            written = self._write_real(data)
        except Exception as exc:  # pylint: disable=broad-except
            LOGGER.warning("Failed to write to regular %s: %s", self.name, exc)

        with self._lock.read_locked():
            for consumer_id, writer in self._writers.items():
                try:
                    writer.write(data)
                except Exception as exc:  # pylint: disable=broad-except
                    LOGGER.warning(
                        "Failed to forward %s to %s: %s", self.name, consumer_id, exc
                    )
        return written

    def close(self) -> None:
        """Restore the original stream and stop the copy loop.

        Output still sitting in the pipe is delivered before the copy loop
        exits. The forwarder cannot be used for registrations afterwards.
        """
        with self._once_lock:
            if self._closed:
                return
            self._closed = True
            if not self._intercepted:
                return

            if getattr(self._namespace, self.name, None) is self._pipe_writer:
                setattr(self._namespace, self.name, self._real)
            self._pipe_writer.close()

        self._thread.join(CLOSE_TIMEOUT_SECONDS)
        if self._thread.is_alive():
            LOGGER.warning("Copy loop for %s did not stop after close", self.name)

    def _write_real(self, data: bytes) -> int:
        real = self._real
        if real is None:
            return 0
        buffer = getattr(real, "buffer", None)
        if buffer is not None:
            real.flush()
            written = buffer.write(data)
            buffer.flush()
        elif isinstance(real, io.TextIOBase):
            real.write(data.decode(self._encoding, "replace"))
            real.flush()
            written = len(data)
        else:
            written = real.write(data)
            flush = getattr(real, "flush", None)
            if flush is not None:
                flush()
        return len(data) if written is None else written

    def _copy_loop(self, read_fd: int) -> None:
        try:
            while True:
                try:
                    data = os.read(read_fd, self._read_size)
                except OSError as exc:
                    LOGGER.warning("Reading redirected %s failed: %s", self.name, exc)
                    return
                if not data:
                    LOGGER.debug("Redirected %s reached end of stream", self.name)
                    return
                try:
                    self.write(data)
                except Exception as exc:  # pylint: disable=broad-except
                    LOGGER.warning("Forwarding some %s messages failed: %s", self.name, exc)
        finally:
            os.close(read_fd)


class _PipeWriter(io.RawIOBase):
    """Raw writer for the pipe end that retries short writes."""

    def __init__(self, fd: int):
        self._fd = fd

    def writable(self) -> bool:
        return True

    def fileno(self) -> int:
        return self._fd

    def write(self, data) -> int:
        view = memoryview(data).cast("B")
        total = 0
        while total < len(view):
            total += os.write(self._fd, view[total:])
        return total

    def close(self) -> None:
        if not self.closed:
            try:
                os.close(self._fd)
            finally:
                super().close()
