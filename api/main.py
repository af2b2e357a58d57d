"""Taskboard API: FastAPI entry point.

Registers middleware, exception handlers, routers, and lifecycle hooks.
"""

import logging
import os
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from api.middleware import CurrentUserMiddleware
from core.database import close_db, init_db
from core.logging_setup import setup_logging
from taskboard.errors import ConflictError, StoreError, TaskboardError

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Settings
# ---------------------------------------------------------------------------

CORS_ORIGINS = os.getenv(
    "CORS_ORIGINS", "http://localhost:5173,http://localhost:3000"
).split(",")
CREATE_TABLES = os.getenv("DB_CREATE_TABLES", "false").lower() == "true"
VERSION = "0.1.0"


# ---------------------------------------------------------------------------
# Lifespan
# ---------------------------------------------------------------------------

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application startup/shutdown hooks."""
    setup_logging()
    if CREATE_TABLES:
        await init_db()
    logger.info("Taskboard API started")
    yield
    await close_db()
    logger.info("Taskboard API shutting down")


# ---------------------------------------------------------------------------
# App
# ---------------------------------------------------------------------------

app = FastAPI(
    title="Taskboard",
    description="Tasks with deadlines, shared workspaces and role-based collaboration",
    version=VERSION,
    lifespan=lifespan,
)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Identity header
app.add_middleware(CurrentUserMiddleware)


# ---------------------------------------------------------------------------
# Error mapping
# ---------------------------------------------------------------------------

@app.exception_handler(TaskboardError)
async def taskboard_error_handler(request: Request, exc: TaskboardError):
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.exception_handler(IntegrityError)
async def integrity_error_handler(request: Request, exc: IntegrityError):
    logger.warning("Integrity error on %s %s: %s", request.method, request.url.path, exc.orig)
    error = ConflictError("The record was changed by another request")
    return JSONResponse(status_code=error.status_code, content=error.to_dict())


@app.exception_handler(SQLAlchemyError)
async def store_error_handler(request: Request, exc: SQLAlchemyError):
    logger.exception("Store failure on %s %s", request.method, request.url.path)
    error = StoreError()
    return JSONResponse(status_code=error.status_code, content=error.to_dict())


# ---------------------------------------------------------------------------
# Routers
# ---------------------------------------------------------------------------

from taskboard.router import router as taskboard_router  # noqa: E402

app.include_router(taskboard_router, prefix="/api", tags=["Taskboard"])


# ---------------------------------------------------------------------------
# Health & root
# ---------------------------------------------------------------------------

@app.get("/health")
async def health():
    return {"status": "healthy", "version": VERSION}


@app.get("/")
async def root():
    return {
        "name": "Taskboard",
        "version": VERSION,
        "docs": "/docs",
    }
