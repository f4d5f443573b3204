from sqlalchemy import event, text
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine
from sqlalchemy.orm import declarative_base
from typing import Any, Dict, List, Optional, Sequence
import logging
import os

from .sql import bindings

# Module-scoped logger for pool lifecycle messages
_logger = logging.getLogger("lightbnb.db")


# Basic truthy parser for env flags (1, true, yes, on)
def _truthy(val: Optional[str]) -> bool:
    if val is None:
        return False
    return val.strip().lower() in {"1", "true", "t", "yes", "y", "on"}


def normalize_url(url: str) -> str:
    """
    Point bare PostgreSQL URLs at the asyncpg driver.

    Hosting providers hand out postgres:// URLs; SQLAlchemy's async engine needs an async driver.
    """
    if url.startswith("postgres://"):
        url = url.replace("postgres://", "postgresql://", 1)
    if url.startswith("postgresql://"):
        url = url.replace("postgresql://", "postgresql+asyncpg://", 1)
    return url


# DATABASE_URL defaults to a local SQLite file at ./lightbnb.db (relative to the working directory).
# Override via the DATABASE_URL environment variable for staging/production.
DATABASE_URL = normalize_url(os.getenv("DATABASE_URL", "sqlite+aiosqlite:///./lightbnb.db"))


def _sqlite_pragmas(dbapi_connection, connection_record) -> None:
    # Enforce foreign keys and make LIKE case-sensitive, as on PostgreSQL
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.execute("PRAGMA case_sensitive_like=ON")
    cursor.close()


def build_engine(url: str = DATABASE_URL, **kwargs: Any) -> AsyncEngine:
    """
    Build the async SQLAlchemy engine (and its connection pool) for `url`.

    - SQLite (dev/local/tests): foreign keys and case-sensitive LIKE are switched on per connection.
    - Server DBs (e.g., Postgres): enable safe pooling to avoid stale or dropped connections under load.
    Extra keyword arguments (e.g. poolclass) are passed through to create_async_engine.
    """
    url = normalize_url(url)
    kwargs.setdefault("echo", _truthy(os.getenv("SQL_ECHO")))
    if url.startswith("sqlite"):
        engine = create_async_engine(url, **kwargs)
        event.listen(engine.sync_engine, "connect", _sqlite_pragmas)
        return engine

    if "poolclass" not in kwargs:
        kwargs.setdefault("pool_pre_ping", True)
        kwargs.setdefault("pool_recycle", 280)  # recycle connections periodically to drop ones the server closed
        kwargs.setdefault("pool_size", 10)
        kwargs.setdefault("max_overflow", 20)
    return create_async_engine(url, **kwargs)


class EnginePool:
    """
    Connection pool handle consumed by the query gateway.

    Exposes one capability, execute(sql, params) -> rows. Each call borrows a pooled
    connection for a single statement inside its own transaction (committed on success,
    rolled back on error) and returns the rows as plain dicts.
    """

    def __init__(self, engine: AsyncEngine) -> None:
        self.engine = engine

    async def execute(self, sql: str, params: Sequence[Any] = ()) -> List[Dict[str, Any]]:
        async with self.engine.begin() as conn:
            result = await conn.execute(text(sql), bindings(params))
            if not result.returns_rows:
                return []
            return [dict(row) for row in result.mappings().all()]


# Base class for table declarations via SQLAlchemy's declarative API
Base = declarative_base()

# Process-wide engine, created lazily so importing the package never opens connections
_engine: Optional[AsyncEngine] = None


def get_engine() -> AsyncEngine:
    global _engine
    if _engine is None:
        _engine = build_engine(DATABASE_URL)
        _logger.info("Database engine created for %s", _engine.url.render_as_string(hide_password=True))
    return _engine


def get_gateway():
    """
    Return a QueryGateway bound to the process-wide pool.

    Usable directly or as a web-framework dependency; the gateway is stateless, so a new
    instance per request costs nothing.
    """
    from .gateway import QueryGateway

    return QueryGateway(EnginePool(get_engine()))


async def init_models(engine: Optional[AsyncEngine] = None) -> None:
    """Create all tables. Intended for local SQLite and tests; production schemas are managed externally."""
    from . import models  # noqa: F401  (registers tables on Base.metadata)

    engine = engine or get_engine()
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def drop_models(engine: Optional[AsyncEngine] = None) -> None:
    from . import models  # noqa: F401

    engine = engine or get_engine()
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


async def dispose() -> None:
    """Release pooled connections on shutdown."""
    global _engine
    if _engine is not None:
        await _engine.dispose()
        _engine = None
