"""FastAPI application factory"""

from contextlib import asynccontextmanager
from fastapi import FastAPI
from prometheus_client import generate_latest, CONTENT_TYPE_LATEST
from starlette.responses import Response

from fd_catalog.api.middleware import RequestIDMiddleware, MetricsMiddleware
from fd_catalog.api.v1 import issuers, schemes, quotes
from fd_catalog.infrastructure.database.models import Base
from fd_catalog.infrastructure.database.session import engine
from fd_catalog.infrastructure.observability.logging import setup_logging
from fd_catalog.config import settings

# Setup structured logging
setup_logging(settings.log_level)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Tables are created on startup; test clients bind their own engine
    Base.metadata.create_all(bind=engine)
    yield


def create_app() -> FastAPI:
    """Create and configure FastAPI application"""
    app = FastAPI(
        title="FD Catalog",
        description="Fixed-deposit issuer catalog and rate/maturity quoting",
        version="0.1.0",
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )

    # Add middleware (order matters: last added = first executed)
    app.add_middleware(MetricsMiddleware)
    app.add_middleware(RequestIDMiddleware)

    # Health check endpoint
    @app.get("/health")
    def health_check():
        return {"status": "ok", "service": settings.service_name}

    # Prometheus metrics endpoint
    @app.get("/metrics")
    def metrics():
        return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)

    # Register API routers
    app.include_router(issuers.router, prefix="/v1/fd", tags=["issuers"])
    app.include_router(schemes.router, prefix="/v1/fd", tags=["schemes"])
    app.include_router(quotes.router, prefix="/v1/fd", tags=["quotes"])

    return app


app = create_app()
