"""Record defaults and shaping helpers shared by both store implementations."""

from __future__ import annotations

import copy
from datetime import datetime, timezone

# ==============================================================================
# DEFAULTS
# ==============================================================================
DEFAULT_STATS = {
    "streak": 0,
    "totalCompleted": 0,
    "level": 1,
    "experiencePoints": 0,
    "weeklyGoal": 10,
    "weeklyProgress": 0,
    "roadmapsCompleted": 0,
    "totalStudyTime": 0,
    "globalRanking": 999999,
    "attendedContests": 0,
    "problemsSolved": {"easy": 0, "medium": 0, "hard": 0, "total": 0},
    "activeLearningDays": [],
    "lastActiveDate": None,
}

DEFAULT_PREFERENCES = {
    "emailNotifications": True,
    "weeklyDigest": True,
    "achievementAlerts": True,
    "theme": "light",
}

DEFAULT_PROFILE = {
    "profileImage": "",
    "bio": "",
    "location": "",
    "githubUsername": "",
    "twitterUsername": "",
    "learningGoals": [],
}

# Fields a user may change through the profile endpoint
PROFILE_FIELDS = [
    "name",
    "profileImage",
    "bio",
    "location",
    "githubUsername",
    "twitterUsername",
    "learningGoals",
]

THEMES = ["light", "dark", "system"]

API_KEY_PROVIDERS = ["openai", "gemini", "perplexity"]


def default_stats() -> dict:
    return copy.deepcopy(DEFAULT_STATS)


def default_preferences() -> dict:
    return copy.deepcopy(DEFAULT_PREFERENCES)


def default_profile() -> dict:
    return copy.deepcopy(DEFAULT_PROFILE)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def to_iso(value) -> str | None:
    """Render datetimes as ISO strings, passing strings and None through."""
    if value is None:
        return None
    if isinstance(value, datetime):
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return value.isoformat()
    return str(value)


def merge_stats(stats: dict | None) -> dict:
    """Fill missing counters with defaults so older rows stay readable."""
    merged = default_stats()
    if stats:
        merged.update(copy.deepcopy(stats))
        solved = default_stats()["problemsSolved"]
        solved.update(merged.get("problemsSolved") or {})
        merged["problemsSolved"] = solved
    return merged


def build_public_user(
    user_id: str,
    email: str,
    name: str,
    profile: dict | None,
    preferences: dict | None,
    stats: dict | None,
    created_at,
) -> dict:
    """Shape a user record for API responses. The password hash is never included."""
    user = {"id": user_id, "email": email, "name": name}
    merged_profile = default_profile()
    merged_profile.update(profile or {})
    user.update(merged_profile)

    merged_preferences = default_preferences()
    merged_preferences.update(preferences or {})

    user["stats"] = merge_stats(stats)
    user["preferences"] = merged_preferences
    user["createdAt"] = to_iso(created_at)
    return user


def merge_api_keys(stored: dict | None, updates: dict) -> dict:
    """Apply key updates. None leaves a key as is, an empty string removes it."""
    merged = {p: k for p, k in (stored or {}).items() if p in API_KEY_PROVIDERS and k}
    for provider in API_KEY_PROVIDERS:
        value = updates.get(provider)
        if value is None:
            continue
        value = value.strip()
        if value:
            merged[provider] = value
        else:
            merged.pop(provider, None)
    return merged


def build_session(token: str, user_id: str, expires_at, created_at) -> dict:
    return {
        "token": token,
        "userId": user_id,
        "expiresAt": to_iso(expires_at),
        "createdAt": to_iso(created_at),
    }


def build_leaderboard_entry(rank: int, name: str, profile: dict | None, stats: dict | None) -> dict:
    stats = merge_stats(stats)
    return {
        "rank": rank,
        "name": name,
        "profileImage": (profile or {}).get("profileImage"),
        "experiencePoints": stats["experiencePoints"],
        "level": stats["level"],
    }


def build_roadmap_record(data: dict, user_id: str) -> dict:
    """Attach ownership and fill the sharing counters a stored roadmap needs."""
    roadmap = dict(data)
    roadmap["userId"] = user_id
    roadmap.setdefault("progress", 0)
    roadmap.setdefault("isPublic", False)
    roadmap.setdefault("likes", 0)
    roadmap.setdefault("forks", 0)
    roadmap.setdefault("views", 0)
    roadmap.setdefault("tags", [])
    roadmap.setdefault("modules", [])
    roadmap.setdefault("forkedFrom", None)
    roadmap.setdefault("createdAt", to_iso(utc_now()))
    return roadmap
