# Pytest configuration for the data-access tests.
# Each test gets a fresh SQLite file driven through aiosqlite; coroutines run via asyncio.run.
import asyncio
import os
from typing import Any, Dict, Iterator, List, Sequence

import pytest
from sqlalchemy.ext.asyncio import AsyncEngine
from sqlalchemy.pool import NullPool

# Test-time environment: never touch a developer's database
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///./test.db")
os.environ.setdefault("SQL_ECHO", "false")

import sys
# Ensure the repo root is on sys.path so 'lightbnb' resolves when running pytest from the repo root
ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)

from lightbnb.db import EnginePool, build_engine, init_models  # noqa: E402
from lightbnb.gateway import QueryGateway  # noqa: E402


def run(coro):
    """Drive a coroutine to completion on a fresh event loop."""
    return asyncio.run(coro)


@pytest.fixture()
def engine(tmp_path) -> Iterator[AsyncEngine]:
    """
    Async engine over a per-test SQLite file with the schema created.

    NullPool closes connections on release, so no connection outlives the
    event loop of the asyncio.run call that opened it.
    """
    eng = build_engine(f"sqlite+aiosqlite:///{tmp_path / 'lightbnb.db'}", poolclass=NullPool)
    run(init_models(eng))
    yield eng
    run(eng.dispose())


@pytest.fixture()
def gateway(engine: AsyncEngine) -> QueryGateway:
    return QueryGateway(EnginePool(engine))


class RecordingPool:
    """Fake pool: records every (sql, params) it receives and replays canned rows or an error."""

    def __init__(self, rows: Sequence[Dict[str, Any]] = (), error: Exception | None = None) -> None:
        self.rows = list(rows)
        self.error = error
        self.calls: List[tuple] = []

    async def execute(self, sql: str, params: Sequence[Any]) -> List[Dict[str, Any]]:
        self.calls.append((sql, list(params)))
        if self.error is not None:
            raise self.error
        return [dict(r) for r in self.rows]


@pytest.fixture()
def recording_pool() -> RecordingPool:
    return RecordingPool()
