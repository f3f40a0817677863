import asyncio
import logging
from typing import Any, Optional

from opentelemetry import trace
from starlette.types import ASGIApp, Receive, Scope, Send

from camouflage.errors import StreamError
from camouflage.hijack import ExchangeState, HijackedResponse, ResponseHijacker
from camouflage.http import ScopeRequest, absolute_url, accepts
from camouflage.stream import ReplaceStream

from .options import RewriteOptions
from .origin import origin
from .request_rewriter import rewrite
from .snapshot import AddressSnapshot, capture_snapshot, restore_snapshot

logger = logging.getLogger("uvicorn.error")
tracer = trace.get_tracer(__name__)

# Key in scope["state"], readable downstream as request.state.camouflage_rewrite_original_url
ORIGINAL_URL_STATE_KEY = "camouflage_rewrite_original_url"

# ASGI extensions that let a response skip http.response.body messages
BODY_BYPASS_EXTENSIONS = {"http.response.pathsend", "http.response.zerocopysend"}


class CamouflageRewriteMiddleware:
    """
    Serve a backend configured for an internal URL under the URL the client used.

    Requests are rewritten so the downstream app sees the configured ``url``;
    responses are hijacked and every occurrence of ``url`` in the headers
    (``rewrite_headers``) and the body (``rewrite_content``) is replaced with
    the origin of the request as the client sent it.

    Usage:
        app.add_middleware(
            CamouflageRewriteMiddleware,
            url="http://backend.internal/base/",
            rewrite_content=True,
        )
    """

    def __init__(self, app: ASGIApp, options: Any = None, **config):
        self.app = app
        self.options = RewriteOptions.build(options, **config)
        if self.options.enabled:
            logger.info(
                f"[Camouflage] Rewriting {self.options.url} "
                f"(headers={self.options.rewrite_headers}, content={self.options.rewrite_content}, "
                f"media_types={self.options.media_types}, ignore={self.options.ignore})"
            )

    def should_process(self, request: ScopeRequest) -> bool:
        if not self.options.enabled:
            return False
        if self.options.media_types:
            accept = request.headers.get("accept")
            return any(accepts(accept, media_type) for media_type in self.options.media_types)
        return True

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        request = ScopeRequest(scope)
        if not self.should_process(request):
            await self.app(scope, receive, send)
            return

        original_url = absolute_url(request, include_query=False)
        scope.setdefault("state", {})[ORIGINAL_URL_STATE_KEY] = original_url

        if self.options.rewrite_content and scope.get("extensions"):
            # file responses must arrive as body messages to be rewritten
            scope["extensions"] = {
                name: value
                for name, value in scope["extensions"].items()
                if name not in BODY_BYPASS_EXTENSIONS
            }

        snapshot = capture_snapshot(request)
        rewrite(self.options, request)
        logger.debug(
            f"[Camouflage] {original_url} -> {request.headers.get('host')}{request.original_path}"
        )

        async def on_hijack(response: HijackedResponse) -> None:
            await self.rewrite_response(request, snapshot, response)

        hijacker = ResponseHijacker(send, on_hijack)
        try:
            await self.app(scope, receive, hijacker.send)
        except asyncio.CancelledError:
            hijacker.abort()
            raise
        except Exception as e:
            if hijacker.error is not None:
                logger.warning(
                    f"[Camouflage] {hijacker.error} was superseded by a downstream error: {e}"
                )
            if hijacker.abort():
                raise StreamError(f"Response body failed while rewriting: {e}") from e
            restore_snapshot(request, snapshot)
            raise

        if hijacker.state is ExchangeState.NORMAL:
            # no response was started, so the hijack handler never restored the request
            restore_snapshot(request, snapshot)
        await hijacker.finish()

    async def rewrite_response(
        self,
        request: ScopeRequest,
        snapshot: AddressSnapshot,
        response: HijackedResponse,
    ) -> None:
        """Hijack handler: restore the request and rewrite the response for its origin."""
        with tracer.start_as_current_span("camouflage.rewrite_response") as span:
            restore_snapshot(request, snapshot)

            url = absolute_url(request)
            span.set_attribute("camouflage.original_url", url)

            ignore_pattern = self.options.ignore_pattern
            if ignore_pattern is not None and ignore_pattern.search(url):
                logger.debug(f"[Camouflage] Ignoring {url}")
                span.set_attribute("camouflage.ignored", True)
                response.pipe()
                return

            request_origin = origin(url)
            span.set_attribute("camouflage.request_origin", request_origin)
            span.set_attribute("camouflage.rewrite_headers", self.options.rewrite_headers)
            span.set_attribute("camouflage.rewrite_content", self.options.rewrite_content)

            if self.options.rewrite_headers:
                rewrite_headers(response, self.options.url, request_origin)

            transform = None
            if self.options.rewrite_content:
                transform = self.content_transform(response, request_origin)

            response.pipe(transform)

    def content_transform(
        self, response: HijackedResponse, request_origin: str
    ) -> Optional[ReplaceStream]:
        encoding = response.headers.get("content-encoding", "identity").strip().lower()
        if encoding != "identity":
            logger.debug(f"[Camouflage] Not rewriting {encoding}-encoded body")
            return None

        # the rewritten length is not known up front
        if "content-length" in response.headers:
            del response.headers["content-length"]
        return ReplaceStream(self.options.url, request_origin)


def rewrite_headers(response: HijackedResponse, search: str, replacement: str) -> None:
    """Replace ``search`` in every header value, keeping repeated headers and their order."""
    raw = response.headers.raw
    needle = search.encode("latin-1")
    substitute = replacement.encode("latin-1")
    for index, (name, value) in enumerate(raw):
        if needle in value:
            raw[index] = (name, value.replace(needle, substitute))
