"""
Pawsitive Petsitting - FastAPI application.

Serves the lobby (list/create/delete sessions), per-day AI summaries and the
activity SMS endpoint. Live session state is synced by clients directly
against the document store; see ``pawsitive.core.sync_engine``.
"""

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .api import notifications_router, sessions_router
from .config import settings
from .core.errors import ConfigurationMissingError, ErrorKind, StoreError
from .core.logging_config import setup_logging
from .middleware import RequestLoggingMiddleware
from .storage import DocumentGateway, create_gateway

logger = logging.getLogger(__name__)

STATUS_BY_KIND = {
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.PERMISSION_DENIED: 403,
    ErrorKind.CONFIGURATION_MISSING: 503,
    ErrorKind.UNKNOWN: 502,
}


async def open_gateway() -> Optional[DocumentGateway]:
    """
    Create and connect the configured document store.

    Returns None when credentials are missing; session routes then answer 503
    instead of the whole app failing to start.
    """
    try:
        gateway = create_gateway(settings)
        await gateway.init()
    except ConfigurationMissingError as e:
        logger.error(f"Document store not configured: {e}")
        return None
    logger.info(f"Document store ready: {settings.storage_type}")
    return gateway


@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging(settings)
    app.state.gateway = await open_gateway()
    logger.info(
        f"Starting {settings.app_name} v{settings.app_version} "
        f"(debug={settings.debug}, join links -> {settings.public_base_url})"
    )
    yield
    logger.info(f"Shutting down {settings.app_name}")


app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    description="Shared pet-sitting activity tracker",
    lifespan=lifespan
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
if settings.log_api_requests:
    app.add_middleware(RequestLoggingMiddleware)

app.include_router(sessions_router)
app.include_router(notifications_router)


@app.exception_handler(StoreError)
async def handle_store_error(request: Request, exc: StoreError):
    """Classified store failures become HTTP errors with the kind attached."""
    logger.error(f"Store error on {request.url.path}: {exc}")
    return JSONResponse(
        status_code=STATUS_BY_KIND.get(exc.kind, 502),
        content={"error_code": exc.kind.value, "detail": str(exc)},
    )


@app.get("/")
async def root():
    return {
        "app": settings.app_name,
        "version": settings.app_version,
        "status": "running",
    }


@app.get("/health")
async def health_check(request: Request):
    configured = getattr(request.app.state, "gateway", None) is not None
    return {
        "status": "healthy" if configured else "unconfigured",
        "storage": settings.storage_type,
        "version": settings.app_version
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "pawsitive.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.debug
    )
