# main.py
import os
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.exceptions import RequestValidationError
from fastapi.responses import FileResponse
from fastapi.staticfiles import StaticFiles
from starlette.exceptions import HTTPException as StarletteHTTPException
from sqlalchemy.exc import IntegrityError

from stockroom.routers import (
    auth_router,
    activity_router,
    user_router,
    product_router,
    transaction_router,
    inventory_router,
    export_router,
    backup_router,
)

from stockroom.core.config import (
    APP_ENV,
    APP_VERSION,
    IS_PRODUCTION,
    CORS_ORIGINS,
    FRONTEND_DIST,
    BACKUP_DIR,
    ENABLE_SCHEDULER,
)
from stockroom.core.db import Database, build_database
from stockroom.core.scheduler import build_scheduler
from stockroom.core.exceptions import AppException
from stockroom.core.logging import setup_logging
from stockroom.middleware.request_logging import request_logging_middleware
from stockroom.services.backups.backup_service import BackupService
from stockroom.core.error_handlers import (
    app_exception_handler,
    validation_exception_handler,
    http_exception_handler,
    integrity_error_handler,
    unhandled_exception_handler,
)

APP_NAME = "Stockroom – Inventory Ledger API"
API_PREFIX = "/api"

# ------------------------------------------------------------------------------
# LOGGING
# ------------------------------------------------------------------------------
setup_logging()
logger = logging.getLogger(__name__)


# ------------------------------------------------------------------------------
# LIFESPAN
# ------------------------------------------------------------------------------
@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Starting application", extra={"environment": APP_ENV})
    database: Database = app.state.db

    # SQLite deployments are single file and self provisioning
    if APP_ENV == "development" or database.is_sqlite:
        await database.create_all()
        logger.info("Database tables ensured")
    else:
        logger.info("Table creation skipped (%s)", APP_ENV)

    scheduler = None
    if ENABLE_SCHEDULER and database.is_sqlite:
        scheduler = build_scheduler(app.state.backup_service)
        scheduler.start()
        logger.info("Backup scheduler started")
    else:
        logger.info("Backup scheduler disabled")

    yield

    logger.info("Shutting down application")
    if scheduler is not None and scheduler.running:
        scheduler.shutdown()
    await database.dispose()


# ------------------------------------------------------------------------------
# FRONT END
# ------------------------------------------------------------------------------
def _mount_frontend(app: FastAPI, dist: str):
    index_file = os.path.join(dist, "index.html")
    assets_dir = os.path.join(dist, "assets")

    if os.path.isdir(assets_dir):
        app.mount("/assets", StaticFiles(directory=assets_dir), name="assets")

    @app.get("/{full_path:path}", include_in_schema=False)
    async def spa_fallback(full_path: str):
        if full_path.startswith(API_PREFIX.lstrip("/") + "/"):
            raise StarletteHTTPException(status_code=404, detail="Not Found")

        candidate = os.path.realpath(os.path.join(dist, full_path))
        if full_path and candidate.startswith(os.path.realpath(dist)) and os.path.isfile(candidate):
            return FileResponse(candidate)
        return FileResponse(index_file)


# ------------------------------------------------------------------------------
# APP FACTORY
# ------------------------------------------------------------------------------
def create_app(
    database: Database | None = None,
    backup_service: BackupService | None = None,
    frontend_dist: str | None = None,
) -> FastAPI:
    app = FastAPI(
        title=APP_NAME,
        description="Inventory management backed by an append-only stock ledger",
        version=APP_VERSION,
        docs_url="/docs" if not IS_PRODUCTION else None,
        redoc_url=None,
        lifespan=lifespan,
    )

    app.state.db = database or build_database()
    app.state.backup_service = backup_service or BackupService.for_database(app.state.db, BACKUP_DIR)

    # --------------------------------------------------------------------------
    # EXCEPTION HANDLERS
    # --------------------------------------------------------------------------
    app.add_exception_handler(AppException, app_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(IntegrityError, integrity_error_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)

    # --------------------------------------------------------------------------
    # MIDDLEWARE
    # --------------------------------------------------------------------------
    app.middleware("http")(request_logging_middleware)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # --------------------------------------------------------------------------
    # HEALTH CHECK
    # --------------------------------------------------------------------------
    @app.get(f"{API_PREFIX}/health", tags=["Health"])
    async def health_check():
        return {
            "status": "ok",
            "service": "stockroom-api",
            "environment": APP_ENV,
            "version": APP_VERSION,
            "database": "sqlite" if app.state.db.is_sqlite else "postgres",
        }

    # --------------------------------------------------------------------------
    # ROUTERS
    # --------------------------------------------------------------------------
    for router in (
        auth_router,
        user_router,
        activity_router,
        product_router,
        transaction_router,
        inventory_router,
        export_router,
        backup_router,
    ):
        app.include_router(router, prefix=API_PREFIX)

    dist = FRONTEND_DIST if frontend_dist is None else frontend_dist
    if dist and os.path.isfile(os.path.join(dist, "index.html")):
        _mount_frontend(app, dist)
        logger.info("Serving front end from %s", dist)
    else:
        app.add_api_route("/", health_check, methods=["GET"], tags=["Health"])

    return app


app = create_app()
