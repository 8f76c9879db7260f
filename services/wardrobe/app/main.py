"""FastAPI application entrypoint."""
from __future__ import annotations

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from .api import agents, feedback, gaps, items, stylist
from .config import get_settings
from .observability.log_config import configure_logging
from .observability.otel import configure_telemetry
from .persistence.db import dispose_engine, init_db


def create_app() -> FastAPI:
    settings = get_settings()
    app = FastAPI(
        title="Wardrobe Agents",
        version="0.1.0",
        docs_url="/docs",
        redoc_url=None,
    )

    configure_logging()
    configure_telemetry()

    @app.on_event("startup")
    async def _startup() -> None:  # pragma: no cover - FastAPI lifecycle
        await init_db()

    @app.on_event("shutdown")
    async def _shutdown() -> None:  # pragma: no cover - FastAPI lifecycle
        await dispose_engine()

    @app.exception_handler(Exception)
    async def _generic_exception_handler(request: Request, exc: Exception):  # pragma: no cover - fallback
        return JSONResponse(
            status_code=500,
            content={
                "error": "InternalServerError",
                "message": str(exc),
                "remediation": "Retry the request; check /agents/status if the failure persists",
            },
        )

    app.include_router(stylist.router)
    app.include_router(gaps.router)
    app.include_router(items.router)
    app.include_router(feedback.router)
    app.include_router(agents.router)

    @app.get("/healthz")
    async def healthcheck():
        return {"status": "ok", "environment": settings.environment}

    return app


app = create_app()


__all__ = ["app", "create_app"]
