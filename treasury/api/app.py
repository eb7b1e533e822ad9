"""FastAPI application for the treasury ledger."""

import logging
import time
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

from treasury.api.dashboard import router as dashboard_router
from treasury.api.dues import router as dues_router
from treasury.api.errors import register_error_handlers
from treasury.api.members import router as members_router
from treasury.api.payments import router as payments_router
from treasury.api.transactions import router as transactions_router
from treasury.services.config import settings
from treasury.services.db import async_engine, init_models

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Manage application lifecycle (startup and shutdown)."""
    await init_models()
    logger.info("Database tables initialized")
    yield
    await async_engine.dispose()
    logger.info("Application shutting down")


app = FastAPI(
    title=settings.api_title,
    description="Dues and payment reconciliation for community treasuries",
    version=settings.api_version,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def log_request_timing(request: Request, call_next):
    """Log each request with its duration and principal at DEBUG level."""
    start_time = time.time()
    response = await call_next(request)
    if logger.isEnabledFor(logging.DEBUG):
        duration_ms = int((time.time() - start_time) * 1000)
        logger.debug(
            f"API {request.method} {request.url.path}: {response.status_code} "
            f"user={request.headers.get('x-user-id', '?')} "
            f"org={request.headers.get('x-organization-id', '?')} {duration_ms}ms"
        )
    return response


register_error_handlers(app)

app.include_router(members_router)
app.include_router(dues_router)
app.include_router(payments_router)
app.include_router(transactions_router)
app.include_router(dashboard_router)


@app.get("/health")
async def health_check() -> dict:
    """Health check endpoint for monitoring."""
    return {"status": "ok"}


__all__ = ["app"]
