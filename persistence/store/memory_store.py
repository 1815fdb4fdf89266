"""In-memory store used when PostgreSQL is not configured or unreachable.

Same interface as PostgresStore. Progress and stats writes publish change
events directly through ``change_callback`` since there is no pg_notify.
Data lives for the lifetime of the process.
"""

from __future__ import annotations

import asyncio
import copy
import uuid

from api.utils.debug import print__persistence_debug
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
    utc_now,
)
from persistence.sessions import is_session_expired
from persistence.store.base import BaseStore


class MemoryStore(BaseStore):
    mode = "memory"

    def __init__(self):
        super().__init__()
        self._users = {}
        self._emails = {}
        self._stats = {}
        self._roadmaps = {}
        self._progress = {}
        self._achievements = {}
        self._sessions = {}
        self._lock = asyncio.Lock()

    async def ping(self) -> bool:
        return True

    # ==========================================================================
    # USERS
    # ==========================================================================
    def _public_user(self, user_id: str):
        row = self._users.get(user_id)
        if row is None:
            return None
        return build_public_user(
            row["id"],
            row["email"],
            row["name"],
            row["profile"],
            row["preferences"],
            self._stats.get(user_id),
            row["created_at"],
        )

    async def create_user(self, email: str, name: str, password_hash: str) -> dict:
        async with self._lock:
            email = email.lower()
            if email in self._emails:
                raise ValueError("User already exists with this email")
            user_id = uuid.uuid4().hex
            self._users[user_id] = {
                "id": user_id,
                "email": email,
                "name": name,
                "password_hash": password_hash,
                "profile": default_profile(),
                "preferences": default_preferences(),
                "api_keys": {},
                "created_at": utc_now(),
            }
            self._emails[email] = user_id
            self._stats[user_id] = default_stats()
        print__persistence_debug(f"👤 [memory] Created user {user_id}")
        self.emit_change("user_stats", "INSERT", user_id, copy.deepcopy(self._stats[user_id]), None)
        return self._public_user(user_id)

    async def get_user(self, user_id: str):
        return self._public_user(user_id)

    async def get_user_by_email(self, email: str):
        user_id = self._emails.get(email.lower())
        return self._public_user(user_id) if user_id else None

    async def get_password_hash(self, email: str):
        user_id = self._emails.get(email.lower())
        if user_id is None:
            return None
        return self._users[user_id]["password_hash"]

    async def update_profile(self, user_id: str, fields: dict):
        row = self._users.get(user_id)
        if row is None:
            return None
        for key, value in fields.items():
            if key == "name":
                row["name"] = value
            else:
                row["profile"][key] = copy.deepcopy(value)
        return self._public_user(user_id)

    async def update_preferences(self, user_id: str, prefs: dict):
        row = self._users.get(user_id)
        if row is None:
            return None
        row["preferences"].update(prefs)
        return self._public_user(user_id)

    async def get_api_keys(self, user_id: str) -> dict:
        row = self._users.get(user_id)
        return dict(row["api_keys"]) if row else {}

    async def update_api_keys(self, user_id: str, keys: dict):
        row = self._users.get(user_id)
        if row is None:
            return None
        row["api_keys"] = merge_api_keys(row["api_keys"], keys)
        return dict(row["api_keys"])

    # ==========================================================================
    # STATS
    # ==========================================================================
    async def get_stats(self, user_id: str):
        if user_id not in self._stats:
            return None
        return merge_stats(self._stats[user_id])

    async def save_stats(self, user_id: str, stats: dict) -> dict:
        old = copy.deepcopy(self._stats.get(user_id))
        self._stats[user_id] = copy.deepcopy(stats)
        self.emit_change(
            "user_stats",
            "UPDATE" if old is not None else "INSERT",
            user_id,
            copy.deepcopy(stats),
            old,
        )
        return merge_stats(stats)

    async def list_leaderboard(self, limit: int = 10) -> list:
        ranked = sorted(
            self._users.values(),
            key=lambda row: merge_stats(self._stats.get(row["id"]))["experiencePoints"],
            reverse=True,
        )[:limit]
        return [
            build_leaderboard_entry(
                rank, row["name"], row["profile"], self._stats.get(row["id"])
            )
            for rank, row in enumerate(ranked, start=1)
        ]

    # ==========================================================================
    # ROADMAPS
    # ==========================================================================
    async def save_roadmap(self, roadmap: dict, touch: bool = True) -> dict:
        stored = copy.deepcopy(roadmap)
        if touch or not stored.get("updatedAt"):
            stored["updatedAt"] = to_iso(utc_now())
        stored.setdefault("createdAt", stored["updatedAt"])
        self._roadmaps[stored["id"]] = stored
        return copy.deepcopy(stored)

    async def get_roadmap(self, roadmap_id: str):
        roadmap = self._roadmaps.get(roadmap_id)
        return copy.deepcopy(roadmap) if roadmap else None

    async def list_user_roadmaps(self, user_id: str) -> list:
        items = [r for r in self._roadmaps.values() if r.get("userId") == user_id]
        items.sort(key=lambda r: r.get("createdAt") or "", reverse=True)
        return copy.deepcopy(items)

    async def list_public_roadmaps(self, category=None, difficulty=None, offset=0, limit=12):
        items = [r for r in self._roadmaps.values() if r.get("isPublic")]
        if category:
            items = [r for r in items if r.get("category") == category]
        if difficulty:
            items = [r for r in items if r.get("difficulty") == difficulty]
        items.sort(
            key=lambda r: (r.get("likes", 0), r.get("createdAt") or ""), reverse=True
        )
        return copy.deepcopy(items[offset : offset + limit]), len(items)

    async def delete_roadmap(self, roadmap_id: str) -> bool:
        if self._roadmaps.pop(roadmap_id, None) is None:
            return False
        for key in [k for k in self._progress if k[1] == roadmap_id]:
            del self._progress[key]
        return True

    # ==========================================================================
    # PROGRESS
    # ==========================================================================
    async def upsert_progress(self, record: dict) -> dict:
        key = (record["userId"], record["roadmapId"], record["moduleId"], record["taskId"])
        old = copy.deepcopy(self._progress.get(key))
        stored = copy.deepcopy(record)
        stored["updatedAt"] = to_iso(utc_now())
        self._progress[key] = stored
        self.emit_change(
            "user_progress",
            "UPDATE" if old is not None else "INSERT",
            record["userId"],
            copy.deepcopy(stored),
            old,
        )
        return copy.deepcopy(stored)

    async def list_progress(self, user_id: str, roadmap_id=None) -> list:
        return copy.deepcopy(
            [
                record
                for key, record in self._progress.items()
                if key[0] == user_id and (roadmap_id is None or key[1] == roadmap_id)
            ]
        )

    # ==========================================================================
    # ACHIEVEMENTS
    # ==========================================================================
    async def list_achievements(self, user_id: str) -> list:
        items = list(self._achievements.get(user_id, {}).values())
        items.sort(key=lambda a: a.get("earnedAt") or "", reverse=True)
        return copy.deepcopy(items)

    async def add_achievement(self, user_id: str, achievement: dict) -> bool:
        earned = self._achievements.setdefault(user_id, {})
        if achievement["id"] in earned:
            return False
        earned[achievement["id"]] = copy.deepcopy(achievement)
        return True

    # ==========================================================================
    # SESSIONS
    # ==========================================================================
    async def create_session(self, user_id: str, token: str, expires_at) -> dict:
        session = build_session(token, user_id, expires_at, utc_now())
        self._sessions[token] = session
        return dict(session)

    async def get_session(self, token: str):
        session = self._sessions.get(token)
        return dict(session) if session else None

    async def delete_session(self, token: str) -> bool:
        return self._sessions.pop(token, None) is not None

    async def list_user_sessions(self, user_id: str, now) -> list:
        return [
            dict(s)
            for s in self._sessions.values()
            if s["userId"] == user_id and not is_session_expired(s, now)
        ]

    async def delete_expired_sessions(self, now) -> list:
        expired = [s for s in self._sessions.values() if is_session_expired(s, now)]
        for session in expired:
            del self._sessions[session["token"]]
        return [dict(s) for s in expired]
