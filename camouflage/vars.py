import os
from typing import Optional

from camouflage.rewrite.options import RewriteOptions

SERVICE_NAME = os.getenv("SERVICE_NAME", "camouflage-rewrite")

# URL the backend believes it is served under; unset disables rewriting
CAMOUFLAGE_URL = os.environ.get("CAMOUFLAGE_URL", "")
CAMOUFLAGE_MEDIA_TYPES = [
    t.strip() for t in os.environ.get("CAMOUFLAGE_MEDIA_TYPES", "").split(",") if t.strip()
]
CAMOUFLAGE_IGNORE = os.environ.get("CAMOUFLAGE_IGNORE", "")
CAMOUFLAGE_REWRITE_HEADERS = (
    os.environ.get("CAMOUFLAGE_REWRITE_HEADERS", "false").lower() == "true"
)
CAMOUFLAGE_REWRITE_CONTENT = (
    os.environ.get("CAMOUFLAGE_REWRITE_CONTENT", "false").lower() == "true"
)
CAMOUFLAGE_STATIC_DIR = os.environ.get("CAMOUFLAGE_STATIC_DIR", "")


def options_from_env() -> Optional[RewriteOptions]:
    """Rewrite options from the CAMOUFLAGE_* variables, None when no URL is set."""
    if not CAMOUFLAGE_URL:
        return None
    return RewriteOptions.build(
        url=CAMOUFLAGE_URL,
        media_types=CAMOUFLAGE_MEDIA_TYPES or None,
        ignore=CAMOUFLAGE_IGNORE or None,
        rewrite_headers=CAMOUFLAGE_REWRITE_HEADERS,
        rewrite_content=CAMOUFLAGE_REWRITE_CONTENT,
    )
