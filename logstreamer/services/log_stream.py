import asyncio
import codecs
import logging
import threading
import uuid
from dataclasses import dataclass, field
from typing import AsyncGenerator, Callable, Dict, Iterable, List

from stdforward import QueueWriter, Stream, StreamForwarder, as_stream, get_forwarder

from logstreamer.config import APISettings
from logstreamer.models.events import SSEEvent


LOGGER = logging.getLogger(__name__)


def generate_client_id() -> str:
    return f"client_{uuid.uuid4().hex}"


def parse_streams(value: Iterable[str]) -> List[Stream]:
    if isinstance(value, str):
        value = value.split(",")
    streams: List[Stream] = []
    for item in value:
        item = item.strip()
        if not item:
            continue
        stream = as_stream(item)
        if stream not in streams:
            streams.append(stream)
    if not streams:
        raise ValueError("at least one stream is required")
    return streams


@dataclass
class LogSubscription:
    client_id: str
    queue: asyncio.Queue
    writers: Dict[Stream, QueueWriter] = field(default_factory=dict)
    decoders: Dict[Stream, codecs.IncrementalDecoder] = field(default_factory=dict)
    closed: bool = False
    _close_lock: threading.Lock = field(default_factory=threading.Lock, init=False, repr=False)

    @property
    def streams(self) -> List[Stream]:
        return list(self.writers)

    @property
    def dropped(self) -> int:
        return sum(writer.dropped for writer in self.writers.values())

    def decode(self, stream: Stream, chunk: bytes) -> str:
        decoder = self.decoders.get(stream)
        if decoder is None:
            decoder = codecs.getincrementaldecoder("utf-8")("replace")
            self.decoders[stream] = decoder
        return decoder.decode(chunk)

    def mark_closed(self) -> bool:
        """Return True for the first caller only."""
        with self._close_lock:
            if self.closed:
                return False
            self.closed = True
            return True


class LogStreamService:
    def __init__(
        self,
        settings: APISettings,
        forwarder_lookup: Callable[[Stream], StreamForwarder] = get_forwarder,
    ):
        self.settings = settings
        self._forwarder_lookup = forwarder_lookup

    def subscribe(self, client_id: str, streams: List[Stream]) -> LogSubscription:
        """Register queue consumers for ``client_id`` on every stream.

        Must be called from the event loop that will drain the queue. An id
        already taken on one of the streams raises
        :class:`~stdforward.ConsumerExistsError`. On any failure the streams
        already registered are released again and the error propagates.
        """
        loop = asyncio.get_running_loop()
        queue: asyncio.Queue = asyncio.Queue(maxsize=self.settings.stream_queue_size)
        subscription = LogSubscription(client_id=client_id, queue=queue)
        try:
            for stream in streams:
                writer = QueueWriter(loop, queue, tag=stream.value)
                self._forwarder_lookup(stream).register(client_id, writer, replace=False)
                subscription.writers[stream] = writer
        except Exception:
            self.unsubscribe(subscription)
            raise
        LOGGER.info(
            "Client %s subscribed to %s",
            client_id,
            ", ".join(stream.value for stream in subscription.streams),
        )
        return subscription

    def unsubscribe(self, subscription: LogSubscription) -> None:
        """Release the consumers of ``subscription``. Safe to call repeatedly."""
        if not subscription.mark_closed():
            return
        for stream, writer in subscription.writers.items():
            writer.close()
            self._forwarder_lookup(stream).unregister(subscription.client_id, writer)
        LOGGER.info(
            "Client %s unsubscribed (%d chunks dropped)",
            subscription.client_id,
            subscription.dropped,
        )

    async def stream_events(self, subscription: LogSubscription) -> AsyncGenerator[str, None]:
        try:
            yield SSEEvent(
                event="stream_start",
                data={
                    "client_id": subscription.client_id,
                    "streams": [stream.value for stream in subscription.streams],
                },
            ).format()

            while True:
                try:
                    tag, chunk = await asyncio.wait_for(
                        subscription.queue.get(),
                        timeout=self.settings.stream_heartbeat_seconds,
                    )
                except asyncio.TimeoutError:
                    yield ": heartbeat\n\n"
                    continue

                stream = Stream(tag)
                text = subscription.decode(stream, chunk)
                if not text:
                    continue
                yield SSEEvent(
                    event="log",
                    data={
                        "client_id": subscription.client_id,
                        "stream": stream.value,
                        "text": text,
                        "dropped": subscription.dropped,
                    },
                ).format()
        finally:
            self.unsubscribe(subscription)

    def list_consumers(self) -> List[Dict]:
        items = []
        for stream in Stream:
            forwarder = self._forwarder_lookup(stream)
            items.append(
                {
                    "stream": stream.value,
                    "intercepted": forwarder.intercepted,
                    "consumers": forwarder.consumer_ids(),
                }
            )
        return items
