"""User stats arithmetic: XP, level, streak and task counters.

All functions mutate the stats dict in place (the shape of
persistence.records.DEFAULT_STATS) and are pure otherwise, so routes can load
stats, apply changes and save them in one write.

XP per task difficulty: Hard 30, Medium 20, anything else 10.
Level: experiencePoints // 300 + 1, never decreasing.
Streak: counted in calendar days (UTC).
"""

from __future__ import annotations

from datetime import date, datetime, timezone
from typing import Optional

from api.utils.debug import print__progress_debug

XP_PER_LEVEL = 300
XP_BY_DIFFICULTY = {"hard": 30, "medium": 20}
DEFAULT_TASK_XP = 10
SOLVED_BUCKETS = ("easy", "medium", "hard")


def xp_for_difficulty(difficulty: Optional[str]) -> int:
    return XP_BY_DIFFICULTY.get((difficulty or "").lower(), DEFAULT_TASK_XP)


def _to_date(value) -> Optional[date]:
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return datetime.fromisoformat(str(value).replace("Z", "+00:00")).date()


def day_of_year(day: date) -> int:
    return day.timetuple().tm_yday


def update_streak(stats: dict, now: Optional[datetime] = None) -> dict:
    """Advance the streak for activity at ``now``.

    No previous activity starts the streak at 1, the next calendar day adds
    one, a longer gap resets to 1 and the same day leaves it unchanged.
    """
    now = now or datetime.now(timezone.utc)
    today = now.date()
    last_active = _to_date(stats.get("lastActiveDate"))

    if last_active is None:
        stats["streak"] = 1
    else:
        days_diff = (today - last_active).days
        if days_diff == 1:
            stats["streak"] = stats.get("streak", 0) + 1
        elif days_diff > 1:
            stats["streak"] = 1

    stats["lastActiveDate"] = now.isoformat()

    active_days = stats.setdefault("activeLearningDays", [])
    doy = day_of_year(today)
    if doy not in active_days:
        active_days.append(doy)
    return stats


def update_level(stats: dict) -> bool:
    """Raise the level to match XP. Returns True on level-up."""
    new_level = stats.get("experiencePoints", 0) // XP_PER_LEVEL + 1
    if new_level > stats.get("level", 1):
        stats["level"] = new_level
        print__progress_debug(f"🆙 Level up to {new_level}")
        return True
    return False


def add_study_time(stats: dict, minutes) -> dict:
    if minutes:
        stats["totalStudyTime"] = stats.get("totalStudyTime", 0) + int(minutes)
    return stats


def apply_task_completion(
    stats: dict,
    difficulty: Optional[str],
    time_spent=0,
    now: Optional[datetime] = None,
) -> bool:
    """Record a newly completed task. Returns True on level-up."""
    stats["totalCompleted"] = stats.get("totalCompleted", 0) + 1
    stats["weeklyProgress"] = stats.get("weeklyProgress", 0) + 1
    stats["experiencePoints"] = stats.get("experiencePoints", 0) + xp_for_difficulty(
        difficulty
    )

    bucket = (difficulty or "easy").lower()
    solved = stats.setdefault("problemsSolved", {"easy": 0, "medium": 0, "hard": 0, "total": 0})
    if bucket in SOLVED_BUCKETS:
        solved[bucket] = solved.get(bucket, 0) + 1
        solved["total"] = solved.get("total", 0) + 1

    add_study_time(stats, time_spent)
    update_streak(stats, now)
    return update_level(stats)


def apply_task_uncompletion(stats: dict, difficulty: Optional[str]) -> dict:
    """Undo a completion. Counters never go below zero and the level is kept."""
    stats["totalCompleted"] = max(0, stats.get("totalCompleted", 0) - 1)
    stats["weeklyProgress"] = max(0, stats.get("weeklyProgress", 0) - 1)
    stats["experiencePoints"] = max(
        0, stats.get("experiencePoints", 0) - xp_for_difficulty(difficulty)
    )

    bucket = (difficulty or "easy").lower()
    solved = stats.setdefault("problemsSolved", {"easy": 0, "medium": 0, "hard": 0, "total": 0})
    if bucket in SOLVED_BUCKETS:
        solved[bucket] = max(0, solved.get(bucket, 0) - 1)
        solved["total"] = max(0, solved.get("total", 0) - 1)

    update_level(stats)
    return stats


def apply_roadmap_generation(stats: dict, xp: int) -> bool:
    """Reward generating a roadmap while signed in. Returns True on level-up."""
    stats["experiencePoints"] = stats.get("experiencePoints", 0) + xp
    stats["roadmapsCompleted"] = stats.get("roadmapsCompleted", 0) + 1
    return update_level(stats)
