"""
Tests for PostgresStore.create_user retries against a scripted connection pool.

No database is needed: the pool hands out a fake connection whose transaction
can fail on exit the way a dropped connection does after COMMIT was sent.
"""

import os
import sys
from contextlib import asynccontextmanager
from pathlib import Path

# CRITICAL: Set Windows event loop policy FIRST, before other imports
if sys.platform == "win32":
    import asyncio

    asyncio.set_event_loop_policy(asyncio.WindowsSelectorEventLoopPolicy())

try:
    BASE_DIR = Path(__file__).resolve().parents[1]
except NameError:
    BASE_DIR = Path(os.getcwd())

sys.path.insert(0, str(BASE_DIR))

import psycopg
import pytest

import persistence.error_handling.retry_decorators as retry_decorators
from persistence.store.postgres_store import PostgresStore


class ScriptedConnection:
    def __init__(self, pool):
        self.pool = pool

    @asynccontextmanager
    async def transaction(self):
        yield
        if self.pool.commit_errors:
            raise self.pool.commit_errors.pop(0)

    async def execute(self, query, params=()):
        self.pool.executed.append((" ".join(query.split()), params))
        if self.pool.execute_errors:
            raise self.pool.execute_errors.pop(0)


class ScriptedPool:
    def __init__(self, commit_errors=None, execute_errors=None):
        self.commit_errors = list(commit_errors or [])
        self.execute_errors = list(execute_errors or [])
        self.executed = []

    @asynccontextmanager
    async def connection(self):
        yield ScriptedConnection(self)


@pytest.fixture
def pg_store(monkeypatch):
    async def no_cleanup():
        return None

    monkeypatch.setattr(retry_decorators, "RETRY_MAX_DELAY", 0)
    monkeypatch.setattr(retry_decorators, "force_close_pools", no_cleanup)

    store = PostgresStore()

    async def fake_get_user(user_id):
        return {"id": user_id, "email": "retry@example.com", "name": "Retry"}

    monkeypatch.setattr(store, "get_user", fake_get_user)
    return store


def use_pool(monkeypatch, store, pool):
    async def get_pool():
        return pool

    monkeypatch.setattr(store, "_get_pool", get_pool)


@pytest.mark.asyncio
async def test_create_user_retry_after_lost_commit_reuses_id(pg_store, monkeypatch):
    pool = ScriptedPool(
        commit_errors=[psycopg.OperationalError("server closed the connection unexpectedly")]
    )
    use_pool(monkeypatch, pg_store, pool)

    user = await pg_store.create_user("Retry@Example.com", "Retry", "hash")

    profile_inserts = [params for query, params in pool.executed if "INTO user_profiles" in query]
    stats_inserts = [params for query, params in pool.executed if "INTO user_stats" in query]
    assert len(profile_inserts) == 2
    assert len(stats_inserts) == 2
    assert profile_inserts[0][0] == profile_inserts[1][0] == user["id"]
    assert stats_inserts[0][0] == stats_inserts[1][0] == user["id"]
    assert profile_inserts[0][1] == "retry@example.com"
    for query, _ in pool.executed:
        assert "ON CONFLICT" in query
    assert any("ON CONFLICT (id) DO NOTHING" in query for query, _ in pool.executed)


@pytest.mark.asyncio
async def test_create_user_duplicate_email_is_value_error(pg_store, monkeypatch):
    pool = ScriptedPool(
        execute_errors=[psycopg.errors.UniqueViolation("duplicate key value violates unique constraint")]
    )
    use_pool(monkeypatch, pg_store, pool)

    with pytest.raises(ValueError, match="User already exists with this email"):
        await pg_store.create_user("taken@example.com", "Taken", "hash")

    assert len(pool.executed) == 1


@pytest.mark.asyncio
async def test_create_user_gives_up_after_retries(pg_store, monkeypatch):
    lost = psycopg.OperationalError("server closed the connection unexpectedly")
    pool = ScriptedPool(commit_errors=[lost] * 10)
    use_pool(monkeypatch, pg_store, pool)

    with pytest.raises(psycopg.OperationalError):
        await pg_store.create_user("down@example.com", "Down", "hash")

    user_ids = {params[0] for query, params in pool.executed}
    assert len(user_ids) == 1
