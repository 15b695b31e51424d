import sys

import pytest

import stdforward
from stdforward import InterceptionError, Stream
from stdforward import forwarder as forwarder_module


pytestmark = pytest.mark.usefixtures("process_streams")


def test_client_receives_gpo_line(capsys, collector_cls):
    collector = collector_cls()
    stdforward.register_consumer("stdout", "client-1", collector)

    print("applying GPO 1")

    assert collector.wait_for(len(b"applying GPO 1\n"))
    stdforward.shutdown()
    assert collector.data == b"applying GPO 1\n"
    assert capsys.readouterr().out == "applying GPO 1\n"


def test_unregistered_client_stops_receiving(capsys, collector_cls):
    client, watcher = collector_cls(), collector_cls()
    stdforward.register_consumer(Stream.STDOUT, "client-1", client)
    stdforward.register_consumer(Stream.STDOUT, "watcher", watcher)

    print("a")
    assert watcher.wait_for(2)
    stdforward.unregister_consumer(Stream.STDOUT, "client-1")
    print("b")
    assert watcher.wait_for(4)

    assert client.data == b"a\n"
    assert watcher.data == b"a\nb\n"
    stdforward.shutdown()
    assert capsys.readouterr().out == "a\nb\n"


def test_stderr_is_forwarded_separately(capsys, collector_cls):
    out, err = collector_cls(), collector_cls()
    stdforward.add_stdout_writer("client-1", out)
    stdforward.add_stderr_writer("client-1", err)

    sys.stderr.write("oops\n")
    assert err.wait_for(5)
    stdforward.remove_stderr_writer("client-1")
    stdforward.remove_stdout_writer("client-1")
    stdforward.shutdown()

    assert err.data == b"oops\n"
    assert out.data == b""
    captured = capsys.readouterr()
    assert captured.err == "oops\n"
    assert captured.out == ""


def test_get_stream_follows_interception(collector_cls):
    original = sys.stdout
    assert stdforward.get_stream("stdout") is original

    stdforward.register_consumer("stdout", "client-1", collector_cls())

    assert stdforward.get_stream("stdout") is sys.stdout
    assert sys.stdout is not original
    assert stdforward.get_forwarder("stdout").real_stream is original

    stdforward.shutdown()
    assert sys.stdout is original


def test_get_forwarder_is_shared():
    assert stdforward.get_forwarder("stdout") is stdforward.get_forwarder(Stream.STDOUT)
    assert stdforward.get_forwarder("stdout") is not stdforward.get_forwarder("stderr")


def test_unknown_stream_is_rejected(collector_cls):
    with pytest.raises(ValueError):
        stdforward.get_forwarder("stdin")
    with pytest.raises(ValueError):
        stdforward.register_consumer("bogus", "client-1", collector_cls())


def test_unregister_without_registration_does_not_intercept():
    original = sys.stderr

    stdforward.unregister_consumer("stderr", "never-registered")

    assert sys.stderr is original
    assert not stdforward.get_forwarder("stderr").intercepted


def test_register_consumer_reports_interception_failure(monkeypatch, collector_cls):
    original = sys.stdout

    def broken_pipe():
        raise OSError("no pipes left")

    monkeypatch.setattr(forwarder_module.os, "pipe", broken_pipe)
    with pytest.raises(InterceptionError):
        stdforward.register_consumer("stdout", "client-1", collector_cls())

    assert sys.stdout is original
    assert stdforward.get_forwarder("stdout").consumer_ids() == []


def test_configure_rejects_bad_read_size():
    with pytest.raises(ValueError):
        stdforward.configure(read_size=0)
