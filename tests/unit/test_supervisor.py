"""
Unit tests for ConnectionSupervisor, driven by a scripted listener.
"""

import asyncio
import errno
import logging
import time

import pytest

from helloserver import ServerConfig
from helloserver.core import supervisor as supervisor_module
from helloserver.core.supervisor import ConnectionSupervisor, RunSummary, SupervisorState


class ScriptedListener:
    """
    Listener double: accept() returns (or raises) the next scripted item.

    Records every call so tests can check bind/accept/close ordering.
    """

    def __init__(self, script, bind_error=None):
        self.script = list(script)
        self.bind_error = bind_error
        self.calls = []

    def bind(self):
        self.calls.append("bind")
        if self.bind_error is not None:
            raise self.bind_error

    async def accept(self):
        self.calls.append("accept")
        item = self.script.pop(0)
        if isinstance(item, BaseException):
            raise item
        return item

    def close(self):
        self.calls.append("close")


def make_config(capacity: int) -> ServerConfig:
    return ServerConfig(port=0, capacity=capacity)


class TestAcceptLoop:
    """Tests for the LISTENING → ACCEPTING → DRAINING → TERMINATED cycle."""

    @pytest.mark.asyncio
    async def test_ten_connections(self, memory_stream, payload_dir):
        """Test capacity 10 with 10 accepts finishes exactly 10 tasks."""
        streams = [memory_stream("GET / HTTP/1.1") for _ in range(10)]
        listener = ScriptedListener(streams)
        config = ServerConfig(port=0, capacity=10, payload_dir=payload_dir)
        supervisor = ConnectionSupervisor(config, listener=listener)

        summary = await supervisor.run()

        assert summary == RunSummary(accepted=10, accept_errors=0, completed=10, failed=0)
        assert supervisor.state is SupervisorState.TERMINATED
        assert len(supervisor.tasks) == 10
        assert all(task.done() for task in supervisor.tasks)
        assert all(stream.closed for stream in streams)
        assert all(stream.written.startswith(b"HTTP/1.1 200 OK\r\n") for stream in streams)

    @pytest.mark.asyncio
    async def test_exactly_capacity_accepts(self, memory_stream):
        """Test the loop stops after capacity attempts even if more could come."""
        listener = ScriptedListener([memory_stream() for _ in range(5)])
        supervisor = ConnectionSupervisor(make_config(3), listener=listener)

        await supervisor.run()

        assert listener.calls == ["bind", "accept", "accept", "accept", "close"]
        assert len(listener.script) == 2

    @pytest.mark.asyncio
    async def test_accept_error_counts_as_attempt(self, memory_stream, caplog):
        """Test a failed accept is logged and the loop carries on."""
        ok_stream = memory_stream("GET / HTTP/1.1")
        listener = ScriptedListener([
            ConnectionAbortedError(errno.ECONNABORTED, "aborted"),
            ok_stream,
            OSError(errno.EMFILE, "Too many open files"),
        ])
        supervisor = ConnectionSupervisor(make_config(3), listener=listener)

        with caplog.at_level(logging.ERROR, logger="helloserver"):
            summary = await supervisor.run()

        assert summary.accept_errors == 2
        assert summary.accepted == 1
        assert summary.attempts == 3
        assert summary.completed == 1
        assert ok_stream.closed
        assert "Accept error on attempt 1" in caplog.text
        assert "Accept error on attempt 3" in caplog.text

    @pytest.mark.asyncio
    async def test_bind_error_is_fatal(self):
        """Test a bind failure propagates before any accept."""
        listener = ScriptedListener([], bind_error=OSError(errno.EADDRINUSE, "in use"))
        supervisor = ConnectionSupervisor(make_config(3), listener=listener)

        with pytest.raises(OSError) as exc_info:
            await supervisor.run()

        assert exc_info.value.errno == errno.EADDRINUSE
        assert listener.calls == ["bind"]
        assert supervisor.tasks == []
        assert supervisor.state is SupervisorState.LISTENING


    @pytest.mark.asyncio
    async def test_unexpected_accept_error_drains_spawned_tasks(self, memory_stream):
        """Test tasks spawned before an accept crash finish before the error escapes."""
        async def handler(stream):
            await asyncio.sleep(0.2)
            await stream.write_response(b"done")

        stream = memory_stream("GET / HTTP/1.1")
        listener = ScriptedListener([stream, RuntimeError("accept exploded")])
        supervisor = ConnectionSupervisor(make_config(3), handler=handler, listener=listener)

        with pytest.raises(RuntimeError, match="accept exploded"):
            await supervisor.run()

        assert len(supervisor.tasks) == 1
        assert supervisor.tasks[0].done()
        assert stream.writes == [b"done"]
        assert stream.closed
        assert supervisor.summary.completed == 1
        assert supervisor.state is SupervisorState.TERMINATED
        assert listener.calls == ["bind", "accept", "accept", "close"]


class TestServe:

    @pytest.mark.asyncio
    async def test_serve_runs_supervisor(self, monkeypatch, memory_stream, payload_dir):
        """Test serve() builds a supervisor from config and returns its summary."""
        streams = [memory_stream("GET / HTTP/1.1"), memory_stream("")]
        listener = ScriptedListener(streams)
        monkeypatch.setattr(supervisor_module, "TCPListener", lambda host, port, backlog: listener)

        config = ServerConfig(port=0, capacity=2, payload_dir=payload_dir)
        summary = await supervisor_module.serve(config)

        assert summary == RunSummary(accepted=2, accept_errors=0, completed=2, failed=0)
        assert streams[0].written.startswith(b"HTTP/1.1 200 OK\r\n")
        assert streams[1].written.startswith(b"HTTP/1.1 404 NOT FOUND\r\n")


class TestTaskFailures:
    """Tests that one connection's failure never escapes its task."""

    @pytest.mark.asyncio
    async def test_read_and_write_failures_are_reported(self, memory_stream, failing_stream, caplog):
        streams = [
            failing_stream(read_error=ConnectionResetError(errno.ECONNRESET, "reset")),
            memory_stream("GET / HTTP/1.1"),
            failing_stream(write_error=BrokenPipeError(errno.EPIPE, "Broken pipe")),
        ]
        supervisor = ConnectionSupervisor(make_config(3), listener=ScriptedListener(streams))

        with caplog.at_level(logging.INFO, logger="helloserver"):
            summary = await supervisor.run()

        assert summary.completed == 1
        assert summary.failed == 2
        assert summary.finished == 3
        assert streams[0].write_attempts == 0
        assert all(stream.closed for stream in streams)
        assert "Request 1 failed" in caplog.text
        assert "Completed request 2." in caplog.text
        assert "Request 3 failed" in caplog.text

    @pytest.mark.asyncio
    async def test_missing_payload_is_reported(self, memory_stream, tmp_path):
        config = ServerConfig(port=0, capacity=1, payload_dir=tmp_path)
        stream = memory_stream("GET / HTTP/1.1")
        supervisor = ConnectionSupervisor(config, listener=ScriptedListener([stream]))

        summary = await supervisor.run()

        assert summary.failed == 1
        assert stream.writes == []
        assert stream.closed

    @pytest.mark.asyncio
    async def test_unexpected_exception_is_logged(self, memory_stream, caplog):
        """Test a handler bug is logged with traceback during drain, not raised."""
        async def broken_handler(stream):
            raise RuntimeError("boom")

        stream = memory_stream()
        supervisor = ConnectionSupervisor(
            make_config(1), handler=broken_handler, listener=ScriptedListener([stream])
        )

        with caplog.at_level(logging.ERROR, logger="helloserver"):
            summary = await supervisor.run()

        assert summary.failed == 1
        assert stream.closed
        assert "connection-1 crashed" in caplog.text
        assert "RuntimeError: boom" in caplog.text


class TestConcurrency:
    """Tests that connections are handled concurrently."""

    @pytest.mark.asyncio
    async def test_slow_connection_does_not_block_others(self, memory_stream):
        finished = []

        async def handler(stream):
            request = await stream.read_request()
            if request == "slow":
                await asyncio.sleep(0.5)
            finished.append(request)

        streams = [memory_stream("slow"), memory_stream("fast"), memory_stream("fast")]
        supervisor = ConnectionSupervisor(
            make_config(3), handler=handler, listener=ScriptedListener(streams)
        )

        started = time.monotonic()
        summary = await supervisor.run()
        elapsed = time.monotonic() - started

        assert summary.completed == 3
        assert finished == ["fast", "fast", "slow"]
        assert elapsed < 1.0

    @pytest.mark.asyncio
    async def test_drain_waits_for_every_task(self, memory_stream):
        """Test run() returns only after the slowest task is done."""
        async def handler(stream):
            await asyncio.sleep(0.2)
            await stream.write_response(b"done")

        streams = [memory_stream(), memory_stream()]
        supervisor = ConnectionSupervisor(
            make_config(2), handler=handler, listener=ScriptedListener(streams)
        )

        started = time.monotonic()
        await supervisor.run()

        assert time.monotonic() - started >= 0.2
        assert all(stream.writes == [b"done"] for stream in streams)
