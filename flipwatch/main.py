# flipwatch/main.py
from __future__ import annotations

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .config import settings
from .logging_config import configure_logging
from .middleware.request_context import RequestContextMiddleware
from .routers.health import router as health_router
from .routers.sync import router as sync_router

API_PREFIX = "/api"


def _cors_origins() -> list[str]:
    val = settings.cors_allow_origins
    if isinstance(val, str):
        return [o.strip() for o in val.split(",") if o.strip()] or ["*"]
    return list(val) or ["*"]


def create_app() -> FastAPI:
    """Admin surface: health, market list, watermark state and manual sync triggers."""
    configure_logging()

    app = FastAPI(title="Flipwatch Sync", version="0.1.0")

    app.add_middleware(RequestContextMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=_cors_origins(),
        allow_credentials=True,
        allow_methods=["GET", "POST"],
        allow_headers=["*"],
    )

    app.include_router(health_router, prefix=API_PREFIX)
    app.include_router(sync_router, prefix=API_PREFIX)
    return app


app = create_app()
