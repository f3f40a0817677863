from .hijacker import (
    BodyTransform,
    ExchangeState,
    HijackedResponse,
    HijackHandler,
    ResponseHijacker,
)

__all__ = [
    "BodyTransform",
    "ExchangeState",
    "HijackedResponse",
    "HijackHandler",
    "ResponseHijacker",
]
