"""
Tests for the ASGI response hijacker.

Verifies that the hijacker:
- Holds the start message until the handler has piped the response
- Applies header edits before the first body byte
- Forwards the body unchanged or through one transform
- Writes exactly one terminal body message on every path
- Releases the response when the handler fails and reports the error
"""

import pytest
from unittest.mock import AsyncMock

from camouflage.errors import InterceptionError, StreamError
from camouflage.hijack.hijacker import ExchangeState, ResponseHijacker
from camouflage.stream import ReplaceStream

START = {
    "type": "http.response.start",
    "status": 200,
    "headers": [(b"content-type", b"text/plain"), (b"content-length", b"11")],
}


def body(data: bytes, more_body: bool = False):
    return {"type": "http.response.body", "body": data, "more_body": more_body}


class Recorder:
    def __init__(self):
        self.messages = []

    async def __call__(self, message):
        self.messages.append(message)

    @property
    def body(self) -> bytes:
        return b"".join(
            m.get("body", b"") for m in self.messages if m["type"] == "http.response.body"
        )

    @property
    def terminal_count(self) -> int:
        return sum(
            1
            for m in self.messages
            if m["type"] == "http.response.body" and not m.get("more_body", False)
        )


def piping(transform_factory=None, edit=None):
    async def handler(response):
        if edit is not None:
            edit(response)
        response.pipe(transform_factory() if transform_factory else None)

    return handler


class TestPassThrough:
    @pytest.mark.asyncio
    async def test_forwards_unchanged(self):
        sent = Recorder()
        hijacker = ResponseHijacker(sent, piping())

        await hijacker.send(START)
        await hijacker.send(body(b"hello", more_body=True))
        await hijacker.send(body(b" world"))
        await hijacker.finish()

        assert sent.messages[0]["headers"] == START["headers"]
        assert sent.body == b"hello world"
        assert sent.terminal_count == 1
        assert hijacker.state is ExchangeState.TERMINATED

    @pytest.mark.asyncio
    async def test_handler_runs_once_at_start(self):
        sent = Recorder()
        handler = AsyncMock(side_effect=lambda response: response.pipe())
        hijacker = ResponseHijacker(sent, handler)

        await hijacker.send(START)
        assert hijacker.state is ExchangeState.REWRITING
        await hijacker.send(body(b"x"))

        handler.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_nothing_is_sent_before_handler_pipes(self):
        sent = Recorder()
        seen = []

        async def handler(response):
            seen.append(list(sent.messages))
            response.pipe()

        hijacker = ResponseHijacker(sent, handler)
        await hijacker.send(START)

        assert seen == [[]]
        assert len(sent.messages) == 1


class TestTransform:
    @pytest.mark.asyncio
    async def test_header_edits_are_sent_with_start(self):
        sent = Recorder()

        def edit(response):
            del response.headers["content-length"]
            response.headers["x-rewritten"] = "1"

        hijacker = ResponseHijacker(sent, piping(edit=edit))
        await hijacker.send(START)
        await hijacker.send(body(b"hello world"))

        start = sent.messages[0]
        assert (b"content-length", b"11") not in start["headers"]
        assert (b"x-rewritten", b"1") in start["headers"]

    @pytest.mark.asyncio
    async def test_status_edit(self):
        sent = Recorder()

        def edit(response):
            response.status = 203

        hijacker = ResponseHijacker(sent, piping(edit=edit))
        await hijacker.send(START)

        assert sent.messages[0]["status"] == 203

    @pytest.mark.asyncio
    async def test_body_goes_through_transform(self):
        sent = Recorder()
        hijacker = ResponseHijacker(sent, piping(lambda: ReplaceStream("foo", "bar")))

        await hijacker.send(START)
        await hijacker.send(body(b"a fo", more_body=True))
        await hijacker.send(body(b"o b"))
        await hijacker.finish()

        assert sent.body == b"a bar b"
        assert sent.terminal_count == 1

    @pytest.mark.asyncio
    async def test_empty_intermediate_output_is_not_forwarded(self):
        sent = Recorder()
        hijacker = ResponseHijacker(sent, piping(lambda: ReplaceStream("foo", "bar")))

        await hijacker.send(START)
        await hijacker.send(body(b"fo", more_body=True))

        assert len(sent.messages) == 1

    @pytest.mark.asyncio
    async def test_finish_writes_terminal_message_if_app_did_not(self):
        sent = Recorder()
        hijacker = ResponseHijacker(sent, piping(lambda: ReplaceStream("foo", "bar")))

        await hijacker.send(START)
        await hijacker.send(body(b"xx fo", more_body=True))
        await hijacker.finish()

        assert sent.body == b"xx fo"
        assert sent.terminal_count == 1
        assert hijacker.state is ExchangeState.TERMINATED

    @pytest.mark.asyncio
    async def test_finish_does_not_terminate_twice(self):
        sent = Recorder()
        hijacker = ResponseHijacker(sent, piping())

        await hijacker.send(START)
        await hijacker.send(body(b"done"))
        await hijacker.finish()

        assert sent.terminal_count == 1

    @pytest.mark.asyncio
    async def test_pathsend_ends_the_response(self):
        sent = Recorder()
        hijacker = ResponseHijacker(sent, piping())

        await hijacker.send(START)
        await hijacker.send({"type": "http.response.pathsend", "path": "/srv/index.html"})
        await hijacker.finish()

        assert [m["type"] for m in sent.messages] == [
            "http.response.start",
            "http.response.pathsend",
        ]
        assert hijacker.state is ExchangeState.TERMINATED

    @pytest.mark.asyncio
    async def test_zerocopysend_with_more_body_keeps_rewriting(self):
        sent = Recorder()
        hijacker = ResponseHijacker(sent, piping())

        await hijacker.send(START)
        await hijacker.send({"type": "http.response.zerocopysend", "file": 3, "more_body": True})
        assert hijacker.state is ExchangeState.REWRITING

        await hijacker.send({"type": "http.response.zerocopysend", "file": 3, "more_body": False})
        await hijacker.finish()

        assert hijacker.state is ExchangeState.TERMINATED
        assert sent.terminal_count == 0
        assert len(sent.messages) == 3

    @pytest.mark.asyncio
    async def test_abort_drops_pending_bytes(self):
        sent = Recorder()
        stream = ReplaceStream("foo", "bar")
        hijacker = ResponseHijacker(sent, piping(lambda: stream))

        await hijacker.send(START)
        await hijacker.send(body(b"fo", more_body=True))

        assert hijacker.abort() is True
        assert stream.closed
        assert sent.body == b""
        assert hijacker.state is ExchangeState.TERMINATED
        assert hijacker.abort() is False

    @pytest.mark.asyncio
    async def test_failing_client_write_raises_stream_error(self):
        send = AsyncMock(side_effect=[None, OSError("broken pipe")])
        stream = ReplaceStream("foo", "bar")
        hijacker = ResponseHijacker(send, piping(lambda: stream))

        await hijacker.send(START)
        with pytest.raises(StreamError):
            await hijacker.send(body(b"foo"))

        assert stream.closed
        assert hijacker.state is ExchangeState.TERMINATED


class TestInterceptionErrors:
    @pytest.mark.asyncio
    async def test_handler_error_releases_response(self):
        sent = Recorder()

        async def handler(response):
            response.headers["x-partial"] = "1"
            raise RuntimeError("boom")

        hijacker = ResponseHijacker(sent, handler)
        await hijacker.send(START)
        await hijacker.send(body(b"hello world"))

        assert hijacker.released
        assert sent.messages[0] == START
        assert sent.body == b"hello world"
        assert sent.terminal_count == 1

        with pytest.raises(InterceptionError) as exc_info:
            await hijacker.finish()
        assert isinstance(exc_info.value.__cause__, RuntimeError)

    @pytest.mark.asyncio
    async def test_handler_that_does_not_pipe_is_an_error(self):
        sent = Recorder()
        hijacker = ResponseHijacker(sent, AsyncMock())

        await hijacker.send(START)
        await hijacker.send(body(b"ok"))

        assert sent.body == b"ok"
        with pytest.raises(InterceptionError):
            await hijacker.finish()

    @pytest.mark.asyncio
    async def test_piping_twice_is_an_error(self):
        sent = Recorder()

        async def handler(response):
            response.pipe()
            response.pipe()

        hijacker = ResponseHijacker(sent, handler)
        await hijacker.send(START)

        assert hijacker.released
        with pytest.raises(InterceptionError):
            await hijacker.finish()

    @pytest.mark.asyncio
    async def test_body_before_start_cannot_be_hijacked(self):
        sent = Recorder()
        handler = AsyncMock()
        hijacker = ResponseHijacker(sent, handler)

        with pytest.raises(InterceptionError):
            await hijacker.send(body(b"too early"))

        assert sent.messages == []
        handler.assert_not_awaited()
