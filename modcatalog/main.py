"""
Mod catalog API.

Wires the routers, middleware and exception handlers together and manages
the connection pool and token sweeper across the application lifetime.
"""

import asyncio
import logging
from typing import Optional

import asyncpg
from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from starlette.exceptions import HTTPException as StarletteHTTPException

from .config import settings
from .db import close_resources, init_resources, state
from .dependencies import build_admin_token_service, build_user_token_service
from .exceptions import (
    ModCatalogException,
    app_exception_handler,
    global_exception_handler,
    http_exception_handler,
    storage_exception_handler,
    validation_exception_handler,
)
from .logging_config import setup_logging
from .middleware import (
    AuditLogMiddleware,
    BodySizeLimitMiddleware,
    RequestTrackingMiddleware,
    SecurityHeadersMiddleware,
)
from .repositories.log_repository import LogRepository
from .routers import admin_router, auth_router, category_router, log_router, mod_router
from .schema import ensure_schema
from .seed_data import seed_data
from .services.token_service import run_token_sweeper

logger = logging.getLogger(__name__)

app = FastAPI(
    title="Mod Catalog API",
    description="Mod catalog with user ratings, admin curation and API audit logs",
    version="1.0.0"
)

def _audit_log_repo() -> Optional[LogRepository]:
    if state.pg_pool is None:
        return None
    return LogRepository(state.pg_pool)

# Middleware added last runs first
app.add_middleware(AuditLogMiddleware, log_repo_factory=_audit_log_repo)
# oversized bodies are refused before the audit log reads them
app.add_middleware(BodySizeLimitMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE"],
    allow_headers=["Content-Type", "Authorization"],
)
app.add_middleware(SecurityHeadersMiddleware)
app.add_middleware(RequestTrackingMiddleware)

app.add_exception_handler(ModCatalogException, app_exception_handler)
app.add_exception_handler(StarletteHTTPException, http_exception_handler)
app.add_exception_handler(RequestValidationError, validation_exception_handler)
app.add_exception_handler(asyncpg.PostgresError, storage_exception_handler)
app.add_exception_handler(Exception, global_exception_handler)

app.include_router(auth_router.router)
app.include_router(admin_router.router)
app.include_router(category_router.router)
app.include_router(mod_router.router)
app.include_router(log_router.router)

_sweeper_task: Optional[asyncio.Task] = None

@app.on_event("startup")
async def startup():
    """Open the pool, create tables, seed defaults and start the token sweeper"""
    global _sweeper_task

    setup_logging(settings.LOG_LEVEL)
    await init_resources()
    await ensure_schema(state.pg_pool)
    await seed_data(state.pg_pool)

    token_services = [
        build_user_token_service(state.pg_pool),
        build_admin_token_service(state.pg_pool),
    ]
    _sweeper_task = asyncio.create_task(
        run_token_sweeper(token_services, settings.TOKEN_SWEEP_INTERVAL_SECONDS)
    )
    logger.info("Mod catalog API started", extra={"detail": {"port": settings.PORT}})

@app.on_event("shutdown")
async def shutdown():
    global _sweeper_task

    if _sweeper_task:
        _sweeper_task.cancel()
        try:
            await _sweeper_task
        except asyncio.CancelledError:
            pass
        _sweeper_task = None
    await close_resources()
    logger.info("Mod catalog API stopped")

@app.get("/health")
async def health_check():
    return {"status": "healthy"}

if __name__ == "__main__":
    import uvicorn

    uvicorn.run("modcatalog.main:app", host="0.0.0.0", port=settings.PORT)
