from .middleware import (
    ORIGINAL_URL_STATE_KEY,
    CamouflageRewriteMiddleware,
    rewrite_headers,
)
from .options import RewriteOptions
from .origin import origin
from .request_rewriter import join_paths, rewrite
from .snapshot import AddressSnapshot, capture_snapshot, restore_snapshot

__all__ = [
    "ORIGINAL_URL_STATE_KEY",
    "CamouflageRewriteMiddleware",
    "rewrite_headers",
    "RewriteOptions",
    "origin",
    "join_paths",
    "rewrite",
    "AddressSnapshot",
    "capture_snapshot",
    "restore_snapshot",
]
