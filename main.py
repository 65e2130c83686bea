"""
main.py
-------
FastAPI application factory and entry point.

Application lifecycle:
  1. App is created by create_application().
  2. lifespan context manager runs on startup / shutdown.
  3. Routers are registered: central administration plus one lifecycle
     router per entity type.
  4. Exception handlers render domain errors and normalise unexpected ones.

Run with:
    uvicorn main:app --reload              # development
    uvicorn main:app --workers 4           # production (no --reload)
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from bizcore.api.routes import entities, tenants
from bizcore.core.config import settings
from bizcore.core.exceptions import BizcoreError
from bizcore.core.logging import configure_logging, get_logger, start_request_context
from bizcore.db.session import engine
from bizcore.db.tenant_router import tenant_router

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator:
    """
    Startup / shutdown lifecycle hook.

    Startup:
      - Configure structured logging

    Shutdown:
      - Dispose the central engine and every tenant pool
    """
    configure_logging()
    logger.info(
        "Starting up",
        app=settings.APP_NAME,
        env=settings.APP_ENV,
        debug=settings.DEBUG,
    )
    yield
    logger.info("Shutting down, disposing DB engines")
    await tenant_router.dispose()
    await engine.dispose()


def create_application() -> FastAPI:
    app = FastAPI(
        title=settings.APP_NAME,
        description=(
            "Multi-tenant business backend: domain-based tenant resolution, "
            "one database per tenant, and a shared trash/restore lifecycle "
            "for every entity."
        ),
        version="1.0.0",
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )

    # ── CORS ─────────────────────────────────────────────────────────────────
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.ALLOWED_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["X-Tenant-Id", "X-Tenant-Slug"],
    )

    # ── Request context ───────────────────────────────────────────────────────
    @app.middleware("http")
    async def request_context(request: Request, call_next):
        """
        Fresh log context per request, and X-Tenant-Id / X-Tenant-Slug on
        every response of a resolved tenant, error responses included.
        """
        start_request_context(
            host=request.headers.get("host", ""),
            method=request.method,
            path=request.url.path,
        )
        response = await call_next(request)
        tenant = getattr(request.state, "tenant", None)
        if tenant is not None:
            response.headers["X-Tenant-Id"] = tenant.id
            response.headers["X-Tenant-Slug"] = tenant.slug
        return response

    # ── Routers ───────────────────────────────────────────────────────────────
    app.include_router(tenants.router)
    for router in entities.routers:
        app.include_router(router)

    # ── Exception Handlers ────────────────────────────────────────────────────

    @app.exception_handler(BizcoreError)
    async def domain_exception_handler(
        request: Request, exc: BizcoreError
    ) -> JSONResponse:
        logger.info(
            "Request rejected",
            path=request.url.path,
            method=request.method,
            code=exc.code,
            detail=exc.detail,
        )
        return JSONResponse(
            status_code=exc.status_code,
            content={"detail": exc.detail, "code": exc.code},
        )

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(
        request: Request, exc: Exception
    ) -> JSONResponse:
        logger.error(
            "Unhandled exception",
            path=request.url.path,
            method=request.method,
            error=str(exc),
            exc_info=True,
        )
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"detail": "Internal server error"},
        )

    # ── Health Check ──────────────────────────────────────────────────────────

    @app.get("/health", tags=["Health"], summary="Service health check")
    async def health() -> dict:
        return {"status": "ok", "app": settings.APP_NAME, "env": settings.APP_ENV}

    return app


app = create_application()
