"""PostgreSQL-backed store.

Uses the shared AsyncConnectionPool (created lazily, recreated after
connection failures by the retry decorator). Every public method is wrapped in
retry_on_ssl_connection_error. Change events for user_progress and user_stats
are emitted by database triggers, not by this class.
"""

from __future__ import annotations

import uuid

import psycopg
from psycopg.rows import dict_row
from psycopg.types.json import Jsonb

from api.utils.debug import print__persistence_debug
from persistence.config import DEFAULT_MAX_RETRIES
from persistence.database.pool_manager import close_connection_pool, create_connection_pool
from persistence.database.table_setup import setup_tables
from persistence.error_handling.retry_decorators import retry_on_ssl_connection_error
from persistence.records import (
    build_leaderboard_entry,
    build_public_user,
    build_session,
    default_preferences,
    default_profile,
    default_stats,
    merge_api_keys,
    merge_stats,
    to_iso,
)
from persistence.store.base import BaseStore

USER_SELECT = """
    SELECT p.id, p.email, p.name, p.profile, p.preferences, p.created_at, s.stats
    FROM user_profiles p
    LEFT JOIN user_stats s ON s.user_id = p.id
"""


def _row_to_user(row):
    if row is None:
        return None
    return build_public_user(
        row["id"],
        row["email"],
        row["name"],
        row["profile"],
        row["preferences"],
        row["stats"],
        row["created_at"],
    )


def _row_to_roadmap(row):
    roadmap = dict(row["data"])
    roadmap.update(
        {
            "id": row["id"],
            "userId": row["user_id"],
            "isPublic": row["is_public"],
            "likes": row["likes"],
            "createdAt": to_iso(row["created_at"]),
            "updatedAt": to_iso(row["updated_at"]),
        }
    )
    return roadmap


def progress_row_to_record(row: dict) -> dict:
    """Map a user_progress row (query result or trigger payload) to a record."""
    return {
        "userId": row["user_id"],
        "roadmapId": row["roadmap_id"],
        "moduleId": row["module_id"],
        "taskId": row["task_id"],
        "completed": row["completed"],
        "timeSpent": row["time_spent"],
        "completedAt": to_iso(row["completed_at"]),
        "updatedAt": to_iso(row["updated_at"]),
    }


class PostgresStore(BaseStore):
    mode = "postgres"

    def __init__(self):
        super().__init__()
        self.pool = None

    async def open(self):
        await setup_tables()
        self.pool = await create_connection_pool()

    async def close(self):
        await close_connection_pool(self.pool)
        self.pool = None

    async def _get_pool(self):
        if self.pool is None:
            print__persistence_debug("POOL MISSING: Recreating connection pool")
            self.pool = await create_connection_pool()
        return self.pool

    async def _fetchone(self, query, params=()):
        pool = await self._get_pool()
        async with pool.connection() as conn:
            async with conn.cursor(row_factory=dict_row) as cur:
                await cur.execute(query, params)
                return await cur.fetchone()

    async def _fetchall(self, query, params=()):
        pool = await self._get_pool()
        async with pool.connection() as conn:
            async with conn.cursor(row_factory=dict_row) as cur:
                await cur.execute(query, params)
                return await cur.fetchall()

    async def _execute(self, query, params=()):
        """Run a write statement in its own transaction, returning the first row if any."""
        pool = await self._get_pool()
        async with pool.connection() as conn:
            async with conn.transaction():
                async with conn.cursor(row_factory=dict_row) as cur:
                    await cur.execute(query, params)
                    if cur.description is None:
                        return cur.rowcount
                    return await cur.fetchone()

    @retry_on_ssl_connection_error(max_retries=DEFAULT_MAX_RETRIES)
    async def ping(self) -> bool:
        row = await self._fetchone("SELECT 1 AS ok")
        return bool(row and row["ok"] == 1)

    # ==========================================================================
    # USERS
    # ==========================================================================
    async def create_user(self, email: str, name: str, password_hash: str) -> dict:
        """Insert a user and its stats row.

        The id is chosen once, outside the retried insert, and re-inserting an
        existing id is a no-op. A retry after a commit whose acknowledgement
        was lost therefore succeeds.
        """
        user_id = uuid.uuid4().hex
        try:
            await self._insert_user(user_id, email, name, password_hash)
        except psycopg.errors.UniqueViolation as exc:
            raise ValueError("User already exists with this email") from exc
        print__persistence_debug(f"👤 Created user {user_id}")
        return await self.get_user(user_id)

    @retry_on_ssl_connection_error(max_retries=DEFAULT_MAX_RETRIES)
    async def _insert_user(self, user_id: str, email: str, name: str, password_hash: str):
        pool = await self._get_pool()
        async with pool.connection() as conn:
            async with conn.transaction():
                await conn.execute(
                    """
                    INSERT INTO user_profiles (id, email, name, password_hash, profile, preferences)
                    VALUES (%s, %s, %s, %s, %s, %s)
                    ON CONFLICT (id) DO NOTHING
                    """,
                    (
                        user_id,
                        email.lower(),
                        name,
                        password_hash,
                        Jsonb(default_profile()),
                        Jsonb(default_preferences()),
                    ),
                )
                await conn.execute(
                    "INSERT INTO user_stats (user_id, stats) VALUES (%s, %s) ON CONFLICT (user_id) DO NOTHING",
                    (user_id, Jsonb(default_stats())),
                )

    @retry_on_ssl_connection_error(max_retries=DEFAULT_MAX_RETRIES)
    async def get_user(self, user_id: str):
        return _row_to_user(await self._fetchone(USER_SELECT + " WHERE p.id = %s", (user_id,)))

    @retry_on_ssl_connection_error(max_retries=DEFAULT_MAX_RETRIES)
    async def get_user_by_email(self, email: str):
        return _row_to_user(
            await self._fetchone(USER_SELECT + " WHERE p.email = %s", (email.lower(),))
        )

    @retry_on_ssl_connection_error(max_retries=DEFAULT_MAX_RETRIES)
    async def get_password_hash(self, email: str):
        row = await self._fetchone(
            "SELECT password_hash FROM user_profiles WHERE email = %s", (email.lower(),)
        )
        return row["password_hash"] if row else None

    @retry_on_ssl_connection_error(max_retries=DEFAULT_MAX_RETRIES)
    async def update_profile(self, user_id: str, fields: dict):
        profile_fields = {k: v for k, v in fields.items() if k != "name"}
        row = await self._execute(
            """
            UPDATE user_profiles
            SET name = COALESCE(%s, name),
                profile = profile || %s,
                updated_at = NOW()
            WHERE id = %s
            RETURNING id
            """,
            (fields.get("name"), Jsonb(profile_fields), user_id),
        )
        if not row:
            return None
        return await self.get_user(user_id)

    @retry_on_ssl_connection_error(max_retries=DEFAULT_MAX_RETRIES)
    async def get_api_keys(self, user_id: str) -> dict:
        row = await self._fetchone("SELECT api_keys FROM user_profiles WHERE id = %s", (user_id,))
        return dict(row["api_keys"] or {}) if row else {}

    @retry_on_ssl_connection_error(max_retries=DEFAULT_MAX_RETRIES)
    async def update_api_keys(self, user_id: str, keys: dict):
        pool = await self._get_pool()
        async with pool.connection() as conn:
            async with conn.transaction():
                async with conn.cursor(row_factory=dict_row) as cur:
                    await cur.execute(
                        "SELECT api_keys FROM user_profiles WHERE id = %s FOR UPDATE", (user_id,)
                    )
                    row = await cur.fetchone()
                    if not row:
                        return None
                    merged = merge_api_keys(row["api_keys"], keys)
                    await cur.execute(
                        "UPDATE user_profiles SET api_keys = %s, updated_at = NOW() WHERE id = %s",
                        (Jsonb(merged), user_id),
                    )
        return merged

    @retry_on_ssl_connection_error(max_retries=DEFAULT_MAX_RETRIES)
    async def update_preferences(self, user_id: str, prefs: dict):
        row = await self._execute(
            """
            UPDATE user_profiles
            SET preferences = preferences || %s, updated_at = NOW()
            WHERE id = %s
            RETURNING id
            """,
            (Jsonb(prefs), user_id),
        )
        if not row:
            return None
        return await self.get_user(user_id)

    # ==========================================================================
    # STATS
    # ==========================================================================
    @retry_on_ssl_connection_error(max_retries=DEFAULT_MAX_RETRIES)
    async def get_stats(self, user_id: str):
        row = await self._fetchone("SELECT stats FROM user_stats WHERE user_id = %s", (user_id,))
        return merge_stats(row["stats"]) if row else None

    @retry_on_ssl_connection_error(max_retries=DEFAULT_MAX_RETRIES)
    async def save_stats(self, user_id: str, stats: dict) -> dict:
        await self._execute(
            """
            INSERT INTO user_stats (user_id, stats, updated_at)
            VALUES (%s, %s, NOW())
            ON CONFLICT (user_id) DO UPDATE
            SET stats = EXCLUDED.stats, updated_at = NOW()
            """,
            (user_id, Jsonb(stats)),
        )
        return merge_stats(stats)

    @retry_on_ssl_connection_error(max_retries=DEFAULT_MAX_RETRIES)
    async def list_leaderboard(self, limit: int = 10) -> list:
        rows = await self._fetchall(
            """
            SELECT p.name, p.profile, s.stats
            FROM user_profiles p
            LEFT JOIN user_stats s ON s.user_id = p.id
            ORDER BY COALESCE((s.stats->>'experiencePoints')::int, 0) DESC
            LIMIT %s
            """,
            (limit,),
        )
        return [
            build_leaderboard_entry(rank, row["name"], row["profile"], row["stats"])
            for rank, row in enumerate(rows, start=1)
        ]

    # ==========================================================================
    # ROADMAPS
    # ==========================================================================
    @retry_on_ssl_connection_error(max_retries=DEFAULT_MAX_RETRIES)
    async def save_roadmap(self, roadmap: dict, touch: bool = True) -> dict:
        data = {
            k: v
            for k, v in roadmap.items()
            if k not in ("id", "userId", "isPublic", "likes", "createdAt", "updatedAt")
        }
        row = await self._execute(
            """
            INSERT INTO roadmaps (id, user_id, title, description, difficulty, category,
                                  ai_provider, is_public, likes, data, created_at, updated_at)
            VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s, %s, COALESCE(%s::timestamptz, NOW()), NOW())
            ON CONFLICT (id) DO UPDATE
            SET title = EXCLUDED.title,
                description = EXCLUDED.description,
                difficulty = EXCLUDED.difficulty,
                category = EXCLUDED.category,
                ai_provider = EXCLUDED.ai_provider,
                is_public = EXCLUDED.is_public,
                likes = EXCLUDED.likes,
                data = EXCLUDED.data,
                updated_at = CASE WHEN %s::boolean THEN NOW() ELSE roadmaps.updated_at END
            RETURNING *
            """,
            (
                roadmap["id"],
                roadmap["userId"],
                roadmap.get("title") or "",
                roadmap.get("description"),
                roadmap.get("difficulty"),
                roadmap.get("category"),
                roadmap.get("aiProvider"),
                bool(roadmap.get("isPublic", False)),
                int(roadmap.get("likes", 0)),
                Jsonb(data),
                roadmap.get("createdAt"),
                touch,
            ),
        )
        return _row_to_roadmap(row)

    @retry_on_ssl_connection_error(max_retries=DEFAULT_MAX_RETRIES)
    async def get_roadmap(self, roadmap_id: str):
        row = await self._fetchone("SELECT * FROM roadmaps WHERE id = %s", (roadmap_id,))
        return _row_to_roadmap(row) if row else None

    @retry_on_ssl_connection_error(max_retries=DEFAULT_MAX_RETRIES)
    async def list_user_roadmaps(self, user_id: str) -> list:
        rows = await self._fetchall(
            "SELECT * FROM roadmaps WHERE user_id = %s ORDER BY created_at DESC", (user_id,)
        )
        return [_row_to_roadmap(row) for row in rows]

    @retry_on_ssl_connection_error(max_retries=DEFAULT_MAX_RETRIES)
    async def list_public_roadmaps(self, category=None, difficulty=None, offset=0, limit=12):
        conditions = ["is_public = TRUE"]
        params = []
        if category:
            conditions.append("category = %s")
            params.append(category)
        if difficulty:
            conditions.append("difficulty = %s")
            params.append(difficulty)
        where = " AND ".join(conditions)

        count_row = await self._fetchone(
            f"SELECT COUNT(*) AS total FROM roadmaps WHERE {where}", tuple(params)
        )
        rows = await self._fetchall(
            f"""
            SELECT * FROM roadmaps WHERE {where}
            ORDER BY likes DESC, created_at DESC
            OFFSET %s LIMIT %s
            """,
            tuple(params + [offset, limit]),
        )
        return [_row_to_roadmap(row) for row in rows], count_row["total"]

    @retry_on_ssl_connection_error(max_retries=DEFAULT_MAX_RETRIES)
    async def delete_roadmap(self, roadmap_id: str) -> bool:
        deleted = await self._execute("DELETE FROM roadmaps WHERE id = %s", (roadmap_id,))
        return bool(deleted)

    # ==========================================================================
    # PROGRESS
    # ==========================================================================
    @retry_on_ssl_connection_error(max_retries=DEFAULT_MAX_RETRIES)
    async def upsert_progress(self, record: dict) -> dict:
        row = await self._execute(
            """
            INSERT INTO user_progress (user_id, roadmap_id, module_id, task_id,
                                       completed, time_spent, completed_at, updated_at)
            VALUES (%s, %s, %s, %s, %s, %s, %s::timestamptz, NOW())
            ON CONFLICT (user_id, roadmap_id, module_id, task_id) DO UPDATE
            SET completed = EXCLUDED.completed,
                time_spent = EXCLUDED.time_spent,
                completed_at = EXCLUDED.completed_at,
                updated_at = NOW()
            RETURNING *
            """,
            (
                record["userId"],
                record["roadmapId"],
                record["moduleId"],
                record["taskId"],
                bool(record.get("completed")),
                int(record.get("timeSpent") or 0),
                record.get("completedAt"),
            ),
        )
        return progress_row_to_record(row)

    @retry_on_ssl_connection_error(max_retries=DEFAULT_MAX_RETRIES)
    async def list_progress(self, user_id: str, roadmap_id=None) -> list:
        if roadmap_id is None:
            rows = await self._fetchall(
                "SELECT * FROM user_progress WHERE user_id = %s ORDER BY updated_at DESC",
                (user_id,),
            )
        else:
            rows = await self._fetchall(
                """
                SELECT * FROM user_progress
                WHERE user_id = %s AND roadmap_id = %s
                ORDER BY updated_at DESC
                """,
                (user_id, roadmap_id),
            )
        return [progress_row_to_record(row) for row in rows]

    # ==========================================================================
    # ACHIEVEMENTS
    # ==========================================================================
    @retry_on_ssl_connection_error(max_retries=DEFAULT_MAX_RETRIES)
    async def list_achievements(self, user_id: str) -> list:
        rows = await self._fetchall(
            "SELECT data FROM achievements WHERE user_id = %s ORDER BY earned_at DESC",
            (user_id,),
        )
        return [dict(row["data"]) for row in rows]

    @retry_on_ssl_connection_error(max_retries=DEFAULT_MAX_RETRIES)
    async def add_achievement(self, user_id: str, achievement: dict) -> bool:
        inserted = await self._execute(
            """
            INSERT INTO achievements (user_id, achievement_id, data, earned_at)
            VALUES (%s, %s, %s, COALESCE(%s::timestamptz, NOW()))
            ON CONFLICT (user_id, achievement_id) DO NOTHING
            """,
            (user_id, achievement["id"], Jsonb(achievement), achievement.get("earnedAt")),
        )
        return bool(inserted)

    # ==========================================================================
    # SESSIONS
    # ==========================================================================
    @retry_on_ssl_connection_error(max_retries=DEFAULT_MAX_RETRIES)
    async def create_session(self, user_id: str, token: str, expires_at) -> dict:
        row = await self._execute(
            """
            INSERT INTO user_sessions (token, user_id, expires_at)
            VALUES (%s, %s, %s)
            RETURNING token, user_id, expires_at, created_at
            """,
            (token, user_id, expires_at),
        )
        return build_session(row["token"], row["user_id"], row["expires_at"], row["created_at"])

    @retry_on_ssl_connection_error(max_retries=DEFAULT_MAX_RETRIES)
    async def get_session(self, token: str):
        row = await self._fetchone(
            "SELECT token, user_id, expires_at, created_at FROM user_sessions WHERE token = %s",
            (token,),
        )
        if not row:
            return None
        return build_session(row["token"], row["user_id"], row["expires_at"], row["created_at"])

    @retry_on_ssl_connection_error(max_retries=DEFAULT_MAX_RETRIES)
    async def delete_session(self, token: str) -> bool:
        deleted = await self._execute("DELETE FROM user_sessions WHERE token = %s", (token,))
        return bool(deleted)

    @retry_on_ssl_connection_error(max_retries=DEFAULT_MAX_RETRIES)
    async def list_user_sessions(self, user_id: str, now) -> list:
        rows = await self._fetchall(
            """
            SELECT token, user_id, expires_at, created_at FROM user_sessions
            WHERE user_id = %s AND expires_at > %s
            ORDER BY created_at
            """,
            (user_id, now),
        )
        return [
            build_session(r["token"], r["user_id"], r["expires_at"], r["created_at"])
            for r in rows
        ]

    @retry_on_ssl_connection_error(max_retries=DEFAULT_MAX_RETRIES)
    async def delete_expired_sessions(self, now) -> list:
        pool = await self._get_pool()
        async with pool.connection() as conn:
            async with conn.transaction():
                async with conn.cursor(row_factory=dict_row) as cur:
                    await cur.execute(
                        """
                        DELETE FROM user_sessions WHERE expires_at <= %s
                        RETURNING token, user_id, expires_at, created_at
                        """,
                        (now,),
                    )
                    rows = await cur.fetchall()
        return [
            build_session(r["token"], r["user_id"], r["expires_at"], r["created_at"])
            for r in rows
        ]
