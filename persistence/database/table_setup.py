"""PostgreSQL Schema Setup

Creates the application tables, indexes and the realtime change triggers.

Tables:
    user_profiles   one row per user (email unique), profile/preferences JSONB
    user_stats      one row per user, stats JSONB (XP, level, streak, ...)
    roadmaps        one row per saved roadmap, full document in data JSONB
    user_progress   one row per (user, roadmap, module, task)
    achievements    one row per (user, achievement)
    user_sessions   24h session tokens

Every row belongs to exactly one user through a foreign key to
user_profiles(id) with ON DELETE CASCADE.

Triggers on user_progress and user_stats call pg_notify('realtime_changes')
with {table, type, user_id, new, old}; the realtime listener forwards these
payloads to subscribed clients.

All statements are idempotent (IF NOT EXISTS / OR REPLACE) and run on a
dedicated autocommit connection.
"""

from __future__ import annotations

from api.utils.debug import print__persistence_debug
from persistence.config import REALTIME_CHANNEL
from persistence.database.connection import get_direct_connection

# ==============================================================================
# DDL
# ==============================================================================
TABLE_STATEMENTS = [
    """
    CREATE TABLE IF NOT EXISTS user_profiles (
        id TEXT PRIMARY KEY,
        email TEXT NOT NULL UNIQUE,
        name TEXT NOT NULL,
        password_hash TEXT NOT NULL,
        profile JSONB NOT NULL DEFAULT '{}'::jsonb,
        preferences JSONB NOT NULL DEFAULT '{}'::jsonb,
        api_keys JSONB NOT NULL DEFAULT '{}'::jsonb,
        created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
        updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
    );
    """,
    """
    CREATE TABLE IF NOT EXISTS user_stats (
        user_id TEXT PRIMARY KEY REFERENCES user_profiles(id) ON DELETE CASCADE,
        stats JSONB NOT NULL,
        updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
    );
    """,
    """
    CREATE TABLE IF NOT EXISTS roadmaps (
        id TEXT PRIMARY KEY,
        user_id TEXT NOT NULL REFERENCES user_profiles(id) ON DELETE CASCADE,
        title TEXT NOT NULL,
        description TEXT,
        difficulty TEXT,
        category TEXT,
        ai_provider TEXT,
        is_public BOOLEAN NOT NULL DEFAULT FALSE,
        likes INTEGER NOT NULL DEFAULT 0,
        data JSONB NOT NULL,
        created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
        updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
    );
    """,
    """
    CREATE TABLE IF NOT EXISTS user_progress (
        id SERIAL PRIMARY KEY,
        user_id TEXT NOT NULL REFERENCES user_profiles(id) ON DELETE CASCADE,
        roadmap_id TEXT NOT NULL REFERENCES roadmaps(id) ON DELETE CASCADE,
        module_id TEXT NOT NULL,
        task_id TEXT NOT NULL,
        completed BOOLEAN NOT NULL DEFAULT FALSE,
        time_spent INTEGER NOT NULL DEFAULT 0,
        completed_at TIMESTAMPTZ,
        updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
        UNIQUE (user_id, roadmap_id, module_id, task_id)
    );
    """,
    """
    CREATE TABLE IF NOT EXISTS achievements (
        id SERIAL PRIMARY KEY,
        user_id TEXT NOT NULL REFERENCES user_profiles(id) ON DELETE CASCADE,
        achievement_id TEXT NOT NULL,
        data JSONB NOT NULL,
        earned_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
        UNIQUE (user_id, achievement_id)
    );
    """,
    """
    CREATE TABLE IF NOT EXISTS user_sessions (
        token TEXT PRIMARY KEY,
        user_id TEXT NOT NULL REFERENCES user_profiles(id) ON DELETE CASCADE,
        expires_at TIMESTAMPTZ NOT NULL,
        created_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
    );
    """,
]

# Columns added after the first release; no-ops on fresh databases
COLUMN_STATEMENTS = [
    "ALTER TABLE user_profiles ADD COLUMN IF NOT EXISTS api_keys JSONB NOT NULL DEFAULT '{}'::jsonb;",
]

INDEX_STATEMENTS = [
    "CREATE INDEX IF NOT EXISTS idx_roadmaps_user_id ON roadmaps(user_id);",
    "CREATE INDEX IF NOT EXISTS idx_roadmaps_public ON roadmaps(is_public, likes DESC, created_at DESC);",
    "CREATE INDEX IF NOT EXISTS idx_user_progress_user_roadmap ON user_progress(user_id, roadmap_id);",
    "CREATE INDEX IF NOT EXISTS idx_achievements_user_id ON achievements(user_id);",
    "CREATE INDEX IF NOT EXISTS idx_user_sessions_expires_at ON user_sessions(expires_at);",
    "CREATE INDEX IF NOT EXISTS idx_user_sessions_user_id ON user_sessions(user_id);",
]

NOTIFY_FUNCTION = f"""
CREATE OR REPLACE FUNCTION notify_realtime_change() RETURNS trigger AS $$
DECLARE
    payload json;
BEGIN
    IF TG_OP = 'DELETE' THEN
        payload := json_build_object(
            'table', TG_TABLE_NAME,
            'type', TG_OP,
            'user_id', OLD.user_id,
            'new', NULL,
            'old', row_to_json(OLD)
        );
    ELSIF TG_OP = 'INSERT' THEN
        payload := json_build_object(
            'table', TG_TABLE_NAME,
            'type', TG_OP,
            'user_id', NEW.user_id,
            'new', row_to_json(NEW),
            'old', NULL
        );
    ELSE
        payload := json_build_object(
            'table', TG_TABLE_NAME,
            'type', TG_OP,
            'user_id', NEW.user_id,
            'new', row_to_json(NEW),
            'old', row_to_json(OLD)
        );
    END IF;
    PERFORM pg_notify('{REALTIME_CHANNEL}', payload::text);
    RETURN COALESCE(NEW, OLD);
END;
$$ LANGUAGE plpgsql;
"""

NOTIFY_TABLES = ["user_progress", "user_stats"]


async def table_exists(conn, table_name):
    """Check if a table exists in the public schema."""
    async with conn.cursor() as cur:
        await cur.execute(
            """
            SELECT EXISTS (
                SELECT FROM information_schema.tables
                WHERE table_schema = 'public' AND table_name = %s
            );
            """,
            (table_name,),
        )
        result = await cur.fetchone()
        return bool(result and result[0])


async def setup_change_triggers(conn):
    """Install the pg_notify trigger on the tables that drive realtime sync."""
    await conn.execute(NOTIFY_FUNCTION)
    for table in NOTIFY_TABLES:
        trigger_name = f"{table}_realtime_change"
        await conn.execute(f"DROP TRIGGER IF EXISTS {trigger_name} ON {table};")
        await conn.execute(
            f"CREATE TRIGGER {trigger_name} "
            f"AFTER INSERT OR UPDATE OR DELETE ON {table} "
            f"FOR EACH ROW EXECUTE FUNCTION notify_realtime_change();"
        )
    print__persistence_debug(f"TRIGGERS READY: realtime triggers on {NOTIFY_TABLES}")


async def setup_tables():
    """Create all tables, indexes and realtime triggers if they are missing."""
    print__persistence_debug("TABLE SETUP START: Creating application tables")
    async with get_direct_connection(autocommit=True) as conn:
        if await table_exists(conn, "user_sessions"):
            print__persistence_debug(
                "SKIP TABLES: 'user_sessions' already exists, ensuring indexes and triggers only"
            )
        else:
            for statement in TABLE_STATEMENTS:
                await conn.execute(statement)

        for statement in COLUMN_STATEMENTS:
            await conn.execute(statement)

        for statement in INDEX_STATEMENTS:
            await conn.execute(statement)

        await setup_change_triggers(conn)

    print__persistence_debug("TABLE SETUP COMPLETE: All tables ready")
