import asyncio
import threading

import pytest

from stdforward import CallbackWriter, ConsumerClosedError, LineEmitter, QueueWriter


def test_callback_writer_passes_bytes():
    seen = []
    writer = CallbackWriter(seen.append)

    assert writer.write(b"abc") == 3
    assert seen == [b"abc"]


def test_line_emitter_joins_split_lines():
    lines = []
    emitter = LineEmitter(lines.append)

    emitter.write(b"applying ")
    emitter.write(b"GPO 1\r\nappl")
    emitter.write(b"ying GPO 2\n\n")

    assert lines == ["applying GPO 1", "applying GPO 2"]


def test_line_emitter_joins_split_characters():
    lines = []
    emitter = LineEmitter(lines.append)
    encoded = "café ✓\n".encode("utf-8")

    for idx in range(len(encoded)):
        emitter.write(encoded[idx : idx + 1])

    assert lines == ["café ✓"]


def test_line_emitter_flush_emits_partial_line():
    lines = []
    emitter = LineEmitter(lines.append)

    emitter.write(b"done\nno newline")
    assert lines == ["done"]

    emitter.flush()
    assert lines == ["done", "no newline"]
    emitter.flush()
    assert lines == ["done", "no newline"]


def test_line_emitter_accepts_text():
    lines = []
    emitter = LineEmitter(lines.append)

    emitter.write("one\ntwo\n")

    assert lines == ["one", "two"]


def test_queue_writer_delivers_from_other_thread():
    async def scenario():
        loop = asyncio.get_running_loop()
        queue: asyncio.Queue = asyncio.Queue()
        writer = QueueWriter(loop, queue, tag="stdout")

        thread = threading.Thread(target=writer.write, args=(b"chunk",))
        thread.start()
        thread.join()

        return await asyncio.wait_for(queue.get(), timeout=5)

    assert asyncio.run(scenario()) == ("stdout", b"chunk")


def test_queue_writer_drops_when_full():
    async def scenario():
        loop = asyncio.get_running_loop()
        queue: asyncio.Queue = asyncio.Queue(maxsize=1)
        writer = QueueWriter(loop, queue, tag="stdout")

        writer.write(b"kept")
        writer.write(b"dropped")
        await asyncio.sleep(0)
        await asyncio.sleep(0)

        return writer.dropped, queue.qsize(), queue.get_nowait()

    dropped, size, item = asyncio.run(scenario())
    assert dropped == 1
    assert size == 1
    assert item == ("stdout", b"kept")


def test_queue_writer_rejects_writes_after_close():
    async def scenario():
        loop = asyncio.get_running_loop()
        writer = QueueWriter(loop, asyncio.Queue(), tag="stderr")
        writer.close()
        assert writer.closed
        with pytest.raises(ConsumerClosedError):
            writer.write(b"late")

    asyncio.run(scenario())
