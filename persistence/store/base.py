"""Store interface implemented by PostgresStore and MemoryStore.

All methods are coroutines. Records are plain dicts with camelCase keys, the
same shape the API returns.
"""

from __future__ import annotations

from typing import Callable, Optional

ChangeCallback = Callable[[str, str, str, Optional[dict], Optional[dict]], None]


class BaseStore:
    """Async persistence interface.

    ``mode`` is "postgres" or "memory". ``change_callback`` receives
    ``(table, event_type, user_id, new, old)``; the in-memory store calls it on
    every progress/stats write, while the Postgres store relies on triggers and
    the LISTEN connection instead.
    """

    mode = "base"

    def __init__(self):
        self.change_callback: Optional[ChangeCallback] = None

    async def open(self):
        pass

    async def close(self):
        pass

    async def ping(self) -> bool:
        raise NotImplementedError

    # Users
    async def create_user(self, email: str, name: str, password_hash: str) -> dict:
        raise NotImplementedError

    async def get_user(self, user_id: str) -> Optional[dict]:
        raise NotImplementedError

    async def get_user_by_email(self, email: str) -> Optional[dict]:
        raise NotImplementedError

    async def get_password_hash(self, email: str) -> Optional[str]:
        raise NotImplementedError

    async def update_profile(self, user_id: str, fields: dict) -> Optional[dict]:
        raise NotImplementedError

    async def update_preferences(self, user_id: str, prefs: dict) -> Optional[dict]:
        raise NotImplementedError

    async def get_api_keys(self, user_id: str) -> dict:
        """Stored provider keys. Never part of a user record."""
        raise NotImplementedError

    async def update_api_keys(self, user_id: str, keys: dict) -> Optional[dict]:
        """Merge ``keys`` into the stored keys; an empty value removes that key."""
        raise NotImplementedError

    # Stats
    async def get_stats(self, user_id: str) -> Optional[dict]:
        raise NotImplementedError

    async def save_stats(self, user_id: str, stats: dict) -> dict:
        raise NotImplementedError

    async def list_leaderboard(self, limit: int = 10) -> list:
        raise NotImplementedError

    # Roadmaps
    async def save_roadmap(self, roadmap: dict, touch: bool = True) -> dict:
        """Insert or replace. With ``touch=False`` updatedAt keeps its stored value."""
        raise NotImplementedError

    async def get_roadmap(self, roadmap_id: str) -> Optional[dict]:
        raise NotImplementedError

    async def list_user_roadmaps(self, user_id: str) -> list:
        raise NotImplementedError

    async def list_public_roadmaps(
        self,
        category: Optional[str] = None,
        difficulty: Optional[str] = None,
        offset: int = 0,
        limit: int = 12,
    ) -> tuple:
        raise NotImplementedError

    async def delete_roadmap(self, roadmap_id: str) -> bool:
        raise NotImplementedError

    # Progress
    async def upsert_progress(self, record: dict) -> dict:
        raise NotImplementedError

    async def list_progress(self, user_id: str, roadmap_id: Optional[str] = None) -> list:
        raise NotImplementedError

    # Achievements
    async def list_achievements(self, user_id: str) -> list:
        raise NotImplementedError

    async def add_achievement(self, user_id: str, achievement: dict) -> bool:
        raise NotImplementedError

    # Sessions
    async def create_session(self, user_id: str, token: str, expires_at) -> dict:
        raise NotImplementedError

    async def get_session(self, token: str) -> Optional[dict]:
        raise NotImplementedError

    async def delete_session(self, token: str) -> bool:
        raise NotImplementedError

    async def list_user_sessions(self, user_id: str, now) -> list:
        """Sessions of ``user_id`` still valid at ``now``."""
        raise NotImplementedError

    async def delete_expired_sessions(self, now) -> list:
        raise NotImplementedError

    def emit_change(
        self,
        table: str,
        event_type: str,
        user_id: str,
        new: Optional[dict],
        old: Optional[dict],
    ) -> None:
        if self.change_callback is not None:
            self.change_callback(table, event_type, user_id, new, old)
