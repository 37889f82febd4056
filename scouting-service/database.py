# database.py
import logging
from typing import Optional

from sqlalchemy import event
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from models import Base

logger = logging.getLogger(__name__)

# SQLSTATE codes (PostgreSQL / asyncpg)
_PG_CONSTRAINT_KINDS = {
    "23505": "unique",
    "23503": "foreign_key",
    "23502": "not_null",
    "23514": "check",
}

# Extended result code names (sqlite3 on Python 3.11+)
_SQLITE_CONSTRAINT_KINDS = {
    "SQLITE_CONSTRAINT_UNIQUE": "unique",
    "SQLITE_CONSTRAINT_PRIMARYKEY": "unique",
    "SQLITE_CONSTRAINT_FOREIGNKEY": "foreign_key",
    "SQLITE_CONSTRAINT_NOTNULL": "not_null",
    "SQLITE_CONSTRAINT_CHECK": "check",
}


class ConstraintViolation(Exception):
    """An integrity error classified by the kind of constraint that failed."""

    def __init__(self, kind: str, constraint: Optional[str] = None):
        super().__init__(f"{kind} constraint violated" + (f": {constraint}" if constraint else ""))
        self.kind = kind
        self.constraint = constraint


def classify_integrity_error(exc: IntegrityError) -> ConstraintViolation:
    orig = exc.orig
    sqlstate = getattr(orig, "sqlstate", None) or getattr(orig, "pgcode", None)
    if sqlstate in _PG_CONSTRAINT_KINDS:
        cause = orig.__cause__ or orig
        return ConstraintViolation(_PG_CONSTRAINT_KINDS[sqlstate], getattr(cause, "constraint_name", None))

    errorname = getattr(orig, "sqlite_errorname", None) or getattr(orig.__cause__, "sqlite_errorname", None)
    if errorname in _SQLITE_CONSTRAINT_KINDS:
        return ConstraintViolation(_SQLITE_CONSTRAINT_KINDS[errorname])

    return ConstraintViolation("unknown")


class Database:
    """
    Owns the async engine and the session factory.

    Built once per process and handed to the app; ``connect`` runs at startup
    and ``disconnect`` at shutdown.
    """

    def __init__(self, url: str, echo: bool = False):
        self.engine = create_async_engine(url, echo=echo)
        self.session_factory = async_sessionmaker(
            bind=self.engine, class_=AsyncSession, expire_on_commit=False
        )
        if self.engine.dialect.name == "sqlite":
            event.listen(self.engine.sync_engine, "connect", _set_sqlite_pragmas)

    async def connect(self, create_tables: bool = True) -> None:
        if create_tables:
            async with self.engine.begin() as conn:
                await conn.run_sync(Base.metadata.create_all)
            logger.info("Database tables created successfully.")
        logger.info("Database connected (%s).", self.engine.url.render_as_string(hide_password=True))

    async def disconnect(self) -> None:
        await self.engine.dispose()
        logger.info("Database disconnected.")

    def session(self) -> AsyncSession:
        return self.session_factory()


def _set_sqlite_pragmas(dbapi_connection, connection_record):
    cur = dbapi_connection.cursor()
    cur.execute("PRAGMA foreign_keys=ON;")
    cur.execute("PRAGMA busy_timeout=5000;")
    cur.close()
