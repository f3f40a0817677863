import logging
from typing import Any

from fastapi import FastAPI
from fastapi.staticfiles import StaticFiles

from camouflage.rewrite import CamouflageRewriteMiddleware, RewriteOptions
from camouflage.vars import CAMOUFLAGE_STATIC_DIR, SERVICE_NAME, options_from_env

logger = logging.getLogger("uvicorn.error")


def create_app(options: Any = None, static_dir: str = CAMOUFLAGE_STATIC_DIR) -> FastAPI:
    """
    Build the FastAPI host app with the rewrite middleware installed.

    Without explicit ``options`` the CAMOUFLAGE_* environment variables are used.
    """
    app = FastAPI(title=SERVICE_NAME)

    # validate here so a bad configuration fails before the first request
    if options is None:
        options = options_from_env()
    else:
        options = RewriteOptions.build(options)
    if options is None:
        logger.info("[Camouflage] No CAMOUFLAGE_URL set, serving without rewriting")
    app.add_middleware(CamouflageRewriteMiddleware, options=options)

    @app.get("/healthz")
    async def healthz():
        return {"status": "ok", "service": SERVICE_NAME}

    if static_dir:
        logger.info(f"[Camouflage] Serving static files from {static_dir}")
        app.mount("/", StaticFiles(directory=static_dir, html=True), name="static")

    return app


app = create_app()
