# stockroom/core/db.py

import logging
import os
import ssl
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import Request
from sqlalchemy import event
from sqlalchemy.engine import make_url
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.orm import sessionmaker, declarative_base

from stockroom.core.config import (
    DATABASE_URL,
    DB_POOL_SIZE,
    DB_MAX_OVERFLOW,
    DB_POOL_TIMEOUT,
    DB_SSL_VERIFY,
    DB_ECHO_POOL,
)
from stockroom.core.exceptions import StoreFailureError
from stockroom.constants.error_codes import ErrorCode

logger = logging.getLogger(__name__)

# =====================================================
# BASE
# =====================================================
Base = declarative_base()


# =====================================================
# CONNECTION CONFIG
# =====================================================
def _connection_args(is_sqlite: bool) -> tuple[dict, dict]:
    if is_sqlite:
        return {"check_same_thread": False}, {}

    ssl_ctx = ssl.create_default_context()

    if not DB_SSL_VERIFY:
        ssl_ctx.check_hostname = False
        ssl_ctx.verify_mode = ssl.CERT_NONE

    connect_args = {
        "ssl": ssl_ctx,
        # Disable prepared statements (pgbouncer / asyncpg stability)
        "statement_cache_size": 0,
        "prepared_statement_cache_size": 0,
    }

    pool_args = {
        "pool_size": DB_POOL_SIZE,
        "max_overflow": DB_MAX_OVERFLOW,
        "pool_timeout": DB_POOL_TIMEOUT,
        "pool_pre_ping": True,
    }
    return connect_args, pool_args


def _enable_sqlite_foreign_keys(dbapi_connection, _):
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


# =====================================================
# STORE HANDLE
# =====================================================
class Database:
    """Owns one async engine and its session factory.

    Built once by the application factory (or by a script / test) and
    passed around explicitly; request handlers reach it through
    ``app.state.db``.
    """

    def __init__(self, url: str = DATABASE_URL, *, echo: bool = False):
        self.url = make_url(url)
        self.is_sqlite = self.url.get_backend_name() == "sqlite"

        if self.is_sqlite and self.sqlite_path:
            directory = os.path.dirname(os.path.abspath(self.sqlite_path))
            os.makedirs(directory, exist_ok=True)

        connect_args, pool_args = _connection_args(self.is_sqlite)

        self.engine = create_async_engine(
            url,
            echo=echo,                 # NEVER enable in prod
            echo_pool=DB_ECHO_POOL,    # debugging only
            future=True,
            connect_args=connect_args,
            **pool_args,
        )

        if self.is_sqlite:
            event.listen(
                self.engine.sync_engine,
                "connect",
                _enable_sqlite_foreign_keys,
            )

        self.session_factory = sessionmaker(
            bind=self.engine,
            class_=AsyncSession,
            autoflush=False,
            autocommit=False,
            expire_on_commit=False,
        )

    @property
    def sqlite_path(self) -> str | None:
        if not self.is_sqlite:
            return None
        database = self.url.database
        if not database or database == ":memory:":
            return None
        return database

    def session(self) -> AsyncSession:
        return self.session_factory()

    async def create_all(self):
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    async def dispose(self):
        await self.engine.dispose()

    def __repr__(self):
        return f"<Database url={self.url.render_as_string(hide_password=True)}>"


def build_database() -> Database:
    return Database(DATABASE_URL)


# =====================================================
# DEPENDENCY
# =====================================================
async def get_db(request: Request) -> AsyncGenerator[AsyncSession, None]:
    database: Database = request.app.state.db
    async with database.session() as session:
        yield session


# =====================================================
# UNIT OF WORK
# =====================================================
@asynccontextmanager
async def unit_of_work(session: AsyncSession):
    """Commit everything done inside the block, or nothing.

    Any exception rolls the session back before it propagates.
    Store errors are surfaced as ``StoreFailureError``.
    """
    try:
        yield session
        await session.commit()

    except IntegrityError as exc:
        await session.rollback()
        logger.warning("Unit of work rejected by constraint", extra={"error": str(exc.orig)})
        raise StoreFailureError(
            409,
            "Database constraint violation",
            ErrorCode.CONFLICT,
        ) from exc

    except SQLAlchemyError as exc:
        await session.rollback()
        logger.exception("Unit of work failed")
        raise StoreFailureError(
            500,
            "Database operation failed",
            ErrorCode.STORE_FAILURE,
        ) from exc

    except Exception:
        await session.rollback()
        raise


# =====================================================
# MODEL IMPORT
# =====================================================
import stockroom.models  # noqa

