import posixpath
import re

from .options import RewriteOptions
from .snapshot import FORWARDED_HOST, FORWARDED_PROTO

_SLASHES = re.compile(r"/+")


def join_paths(*segments: str) -> str:
    """
    Join URL path segments, collapsing duplicate slashes and dot segments.

    A trailing slash on the joined path is kept.
    """
    joined = "/".join(segment for segment in segments if segment)
    if not joined:
        return "/"
    joined = _SLASHES.sub("/", joined)
    normalized = posixpath.normpath(joined)
    if joined.endswith("/") and not normalized.endswith("/"):
        normalized += "/"
    return normalized


def rewrite(options: RewriteOptions, request) -> None:
    """
    Make the request look as if it had been sent to the configured URL.

    Host and forwarded headers point at the configured host, and the configured
    path is prepended to the base and original paths. The request path is left
    alone. Calling this twice on one request prefixes the paths twice.
    """
    parts = options.url_parts
    host = parts.netloc.rpartition("@")[2]

    headers = request.headers
    headers["host"] = host
    headers[FORWARDED_HOST] = host
    headers[FORWARDED_PROTO] = f"{parts.scheme}:"

    # ASGI root_path carries no trailing slash, "" for the root
    request.base_path = join_paths(parts.path, request.base_path).rstrip("/")
    request.original_path = join_paths(parts.path, request.original_path)
