"""
Accept header negotiation for a single media type.

A media type is acceptable when the most specific matching media range in the
Accept header (exact type, then ``type/*``, then ``*/*``) has a non-zero
quality. A missing or empty Accept header accepts everything.
"""

import logging
import mimetypes
from dataclasses import dataclass
from typing import List, Optional

logger = logging.getLogger("uvicorn.error")


@dataclass
class MediaRange:
    type: str
    subtype: str
    q: float = 1.0

    @property
    def specificity(self) -> int:
        if self.type == "*":
            return 0
        if self.subtype == "*":
            return 1
        return 2

    def matches(self, type_: str, subtype: str) -> bool:
        if self.type != "*" and self.type != type_:
            return False
        return self.subtype == "*" or self.subtype == subtype


def parse_accept(accept: str) -> List[MediaRange]:
    ranges = []
    for entry in accept.split(","):
        entry = entry.strip()
        if not entry:
            continue
        media, *params = [p.strip() for p in entry.split(";")]
        if "/" not in media:
            # tolerate the bare "*" some clients send
            if media != "*":
                continue
            media = "*/*"
        type_, subtype = media.lower().split("/", 1)
        q = 1.0
        for param in params:
            name, _, value = param.partition("=")
            if name.strip().lower() == "q":
                try:
                    q = float(value.strip())
                except ValueError:
                    q = 0.0
        ranges.append(MediaRange(type_, subtype, q))
    return ranges


def normalize_media_type(media_type: str) -> Optional[str]:
    """Resolve shorthands like ``json`` or ``.html`` to a full MIME type."""
    media_type = media_type.strip().lower()
    if "/" in media_type:
        return media_type.split(";")[0].strip()
    guessed, _ = mimetypes.guess_type(f"file.{media_type.lstrip('.')}")
    return guessed


def accepts(accept: Optional[str], media_type: str) -> bool:
    """Return True if a request with this Accept header takes ``media_type``."""
    if not accept or not accept.strip():
        return True

    resolved = normalize_media_type(media_type)
    if resolved is None:
        logger.debug(f"[Camouflage] Unknown media type shorthand: {media_type}")
        return False
    type_, _, subtype = resolved.partition("/")

    best = None
    for media_range in parse_accept(accept):
        if not media_range.matches(type_, subtype):
            continue
        if best is None or media_range.specificity > best.specificity:
            best = media_range
        elif media_range.specificity == best.specificity and media_range.q > best.q:
            best = media_range

    return best is not None and best.q > 0
