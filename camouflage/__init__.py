from .errors import (
    CamouflageError,
    ConfigurationError,
    InterceptionError,
    StreamError,
)
from .rewrite import (
    CamouflageRewriteMiddleware,
    RewriteOptions,
    capture_snapshot,
    origin,
    restore_snapshot,
    rewrite,
)

__all__ = [
    "CamouflageError",
    "ConfigurationError",
    "InterceptionError",
    "StreamError",
    "CamouflageRewriteMiddleware",
    "RewriteOptions",
    "capture_snapshot",
    "origin",
    "restore_snapshot",
    "rewrite",
]
