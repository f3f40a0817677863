"""
ASGI response hijacking.

``ResponseHijacker`` sits between a downstream ASGI app and the real ``send``
callable. When the app starts its response, the ``http.response.start``
message is held back and a ``HijackedResponse`` handle is passed to the hijack
handler. The handler may edit status and headers on the handle and must then
call ``pipe()`` exactly once, either without a transform (the body is forwarded
unchanged) or with a single transform stage that every body chunk is passed
through.

Lifecycle of one exchange:

    normal -> intercepted -> rewriting -> terminated

If the handler fails, the hijacker lets go of the response (``unhijack``): the
original start message is forwarded untouched, the rest of the body passes
straight through, and the failure is raised from ``finish()`` once the app is
done, so the client always gets a complete response and the error still
reaches the host pipeline.
"""

import logging
from enum import Enum
from typing import Awaitable, Callable, Optional, Protocol

from starlette.datastructures import MutableHeaders
from starlette.types import Message, Send

from camouflage.errors import InterceptionError, StreamError

logger = logging.getLogger("uvicorn.error")

# Extension messages that carry the body themselves instead of http.response.body
BODY_BYPASS_MESSAGES = {"http.response.pathsend", "http.response.zerocopysend"}


class ExchangeState(str, Enum):
    """States a hijacked response exchange moves through."""

    NORMAL = "normal"
    INTERCEPTED = "intercepted"
    REWRITING = "rewriting"
    TERMINATED = "terminated"


class BodyTransform(Protocol):
    def feed(self, chunk: bytes) -> bytes: ...

    def flush(self) -> bytes: ...

    def close(self) -> None: ...


class HijackedResponse:
    """
    Handle on an intercepted response, before anything has been sent.

    ``headers`` is a copy of the response headers; edits are only applied when
    the response is piped, so a failing handler cannot leave half rewritten
    headers behind.
    """

    def __init__(self, message: Message):
        self.status: int = message["status"]
        self.headers = MutableHeaders(raw=list(message.get("headers", [])))
        self.transform: Optional[BodyTransform] = None
        self.piped = False

    def pipe(self, transform: Optional[BodyTransform] = None) -> None:
        """Release the response to the client, optionally through ``transform``."""
        if self.piped:
            raise InterceptionError("Hijacked response was already piped")
        self.piped = True
        self.transform = transform


HijackHandler = Callable[[HijackedResponse], Awaitable[None]]


class ResponseHijacker:
    def __init__(self, send: Send, on_hijack: HijackHandler):
        self._send = send
        self._on_hijack = on_hijack
        self._transform: Optional[BodyTransform] = None
        self._released = False
        self.state = ExchangeState.NORMAL
        self.error: Optional[InterceptionError] = None

    @property
    def released(self) -> bool:
        return self._released

    async def send(self, message: Message) -> None:
        """The ``send`` callable handed to the downstream app."""
        if self._released or self.state is ExchangeState.TERMINATED:
            await self._send(message)
        elif self.state is ExchangeState.NORMAL:
            await self._intercept(message)
        elif message["type"] == "http.response.body":
            await self._send_body(message)
        elif message["type"] in BODY_BYPASS_MESSAGES:
            # pathsend always ends the response, zerocopysend unless more_body
            if not message.get("more_body", False):
                self._discard()
            await self._send(message)
        else:
            await self._send(message)

    async def _intercept(self, message: Message) -> None:
        if message["type"] != "http.response.start":
            raise InterceptionError(
                f"Cannot hijack response: got {message['type']!r} before http.response.start"
            )

        self.state = ExchangeState.INTERCEPTED
        response = HijackedResponse(message)
        try:
            await self._on_hijack(response)
            if not response.piped:
                raise InterceptionError("Hijack handler returned without piping the response")
        except Exception as e:
            if isinstance(e, InterceptionError):
                error = e
            else:
                error = InterceptionError(f"Hijack handler failed: {e}")
                error.__cause__ = e
            logger.error(f"[Camouflage-Hijack] {error}", exc_info=e)
            self.error = error
            await self.unhijack(message)
            return

        self.state = ExchangeState.REWRITING
        self._transform = response.transform
        await self._send(
            {**message, "status": response.status, "headers": response.headers.raw}
        )

    async def unhijack(self, message: Message) -> None:
        """Stop intercepting and send the original start message as is."""
        self._released = True
        self._transform = None
        self.state = ExchangeState.TERMINATED
        await self._send(message)

    async def _send_body(self, message: Message) -> None:
        body = message.get("body", b"")
        more_body = message.get("more_body", False)

        if self._transform is not None:
            body = self._transform.feed(body)
            if not more_body:
                body += self._transform.flush()
            elif not body:
                return

        if not more_body:
            self.state = ExchangeState.TERMINATED
        try:
            await self._send({**message, "body": body, "more_body": more_body})
        except Exception as e:
            self._discard()
            raise StreamError(f"Failed to write response body: {e}") from e

    def _discard(self) -> None:
        if self._transform is not None:
            self._transform.close()
            self._transform = None
        self.state = ExchangeState.TERMINATED

    async def finish(self) -> None:
        """
        Complete the exchange after the downstream app returned.

        Writes the terminal body message if the app never did, then raises the
        interception error recorded by a failed handler, if any.
        """
        if self.state is ExchangeState.REWRITING:
            tail = self._transform.flush() if self._transform is not None else b""
            self._transform = None
            self.state = ExchangeState.TERMINATED
            await self._send({"type": "http.response.body", "body": tail, "more_body": False})

        if self.error is not None:
            raise self.error

    def abort(self) -> bool:
        """
        Give up on a response whose body was being rewritten.

        Held back bytes are dropped, not sent. Returns True if a body stream
        was interrupted.
        """
        if self.state is not ExchangeState.REWRITING:
            return False
        self._discard()
        return True
