# main.py
# Role: Application entry point for the ledger.
#       Prepares the database schema, configures logging, runs pending
#       migrations on startup, maps ledger errors to HTTP responses and
#       registers all route modules.

"""
Main FastAPI app for the personal cash ledger.

Here we only:
- create the FastAPI app
- create / upgrade DB tables
- run migrations on startup
- translate ledger errors into HTTP status codes
- include route modules
"""

from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from db import engine, ensure_schema
from app.deps import get_store
from app.errors import (
    DuplicateNameError,
    InsufficientBalanceError,
    LedgerError,
    NotFoundError,
    StorageFailure,
    ValidationError,
)
from app.logging_setup import configure_logging
from app.routes_accounts import router as accounts_router
from app.routes_root import router as root_router
from app.routes_settings import router as settings_router
from app.routes_store import router as store_router
from app.routes_transactions import router as transactions_router


# -------------------------------------------------------------------
# App & DB setup
# -------------------------------------------------------------------

configure_logging()
logger = structlog.get_logger(__name__)

# Create database tables (only if they don't exist yet) and add the columns
# an older database is missing. Safe to run on every start.
ensure_schema(engine)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Idempotent: finished migration phases are skipped
    app.dependency_overrides.get(get_store, get_store)().initialize()
    yield


# FastAPI application instance
app = FastAPI(title="Pocket Ledger", lifespan=lifespan)


# -------------------------------------------------------------------
# Error mapping
# -------------------------------------------------------------------

_STATUS_BY_ERROR = [
    (ValidationError, 422),
    (DuplicateNameError, 409),
    (InsufficientBalanceError, 409),
    (NotFoundError, 404),
    (StorageFailure, 503),
]


@app.exception_handler(LedgerError)
async def ledger_error_handler(request: Request, exc: LedgerError):
    status_code = next(
        (code for cls, code in _STATUS_BY_ERROR if isinstance(exc, cls)),
        400,
    )
    if status_code >= 500:
        logger.error("storage_failure", path=request.url.path, error=str(exc))
    return JSONResponse(
        status_code=status_code,
        content={"error": type(exc).__name__, "detail": str(exc)},
    )


# -------------------------------------------------------------------
# Include routers
# -------------------------------------------------------------------

# Health / migration status
app.include_router(root_router)

# Legacy flat-shape API on the default account
app.include_router(store_router)

# Accounts and account-scoped transactions
app.include_router(accounts_router)

# Global history, single-transaction edits, stats
app.include_router(transactions_router)

# Theme preference, maintenance
app.include_router(settings_router)
