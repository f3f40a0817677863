from .absolute_url import absolute_url, request_host, request_scheme
from .negotiation import accepts
from .scope_request import ScopeRequest

__all__ = [
    "absolute_url",
    "request_host",
    "request_scheme",
    "accepts",
    "ScopeRequest",
]
