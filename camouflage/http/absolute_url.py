"""
Absolute URL of the current request, as the client addressed it.

Forwarded headers set by a fronting proxy take precedence over the Host header
and the connection scheme, the first entry winning when a proxy chain appended
several comma separated values.
"""

from typing import Optional

from .scope_request import ScopeRequest


def _first_value(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    first = value.split(",")[0].strip()
    return first or None


def request_scheme(request: ScopeRequest) -> str:
    proto = _first_value(request.headers.get("x-forwarded-proto"))
    if proto:
        # forwarded proto may carry a trailing colon, e.g. "https:"
        return proto.rstrip(":").lower()
    return request.scheme


def request_host(request: ScopeRequest) -> str:
    host = _first_value(request.headers.get("x-forwarded-host"))
    if host:
        return host
    host = request.headers.get("host")
    if host:
        return host
    return request.server_host or "localhost"


def absolute_url(request: ScopeRequest, include_query: bool = True) -> str:
    """Build ``scheme://host/path[?query]`` from the request's current headers."""
    url = f"{request_scheme(request)}://{request_host(request)}{request.original_path}"
    query = request.query_string
    if include_query and query:
        url = f"{url}?{query}"
    return url
