"""Static achievement catalog and threshold matching."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Iterable, Optional

from api.utils.debug import print__progress_debug
from progress_tracking.stats import update_level

ACHIEVEMENT_CATALOG = [
    {
        "id": "first-steps",
        "title": "First Steps",
        "description": "Complete your first task",
        "icon": "Star",
        "category": "completion",
        "difficulty": "bronze",
        "criteria": {"type": "tasks_completed", "value": 1},
        "points": 50,
    },
    {
        "id": "week-warrior",
        "title": "Week Warrior",
        "description": "Maintain a 7-day learning streak",
        "icon": "Flame",
        "category": "streak",
        "difficulty": "silver",
        "criteria": {"type": "streak_days", "value": 7},
        "points": 100,
    },
    {
        "id": "module-master",
        "title": "Module Master",
        "description": "Complete 5 learning modules",
        "icon": "Target",
        "category": "completion",
        "difficulty": "silver",
        "criteria": {"type": "tasks_completed", "value": 5},
        "points": 75,
    },
    {
        "id": "road-runner",
        "title": "Road Runner",
        "description": "Complete your first roadmap",
        "icon": "Trophy",
        "category": "special",
        "difficulty": "gold",
        "criteria": {"type": "roadmaps_completed", "value": 1},
        "points": 200,
    },
    {
        "id": "marathon-runner",
        "title": "Marathon Runner",
        "description": "Maintain a 30-day learning streak",
        "icon": "Flame",
        "category": "streak",
        "difficulty": "gold",
        "criteria": {"type": "streak_days", "value": 30},
        "points": 300,
    },
    {
        "id": "speedster",
        "title": "Speedster",
        "description": "Complete 25 tasks",
        "icon": "Zap",
        "category": "completion",
        "difficulty": "gold",
        "criteria": {"type": "tasks_completed", "value": 25},
        "points": 250,
    },
    {
        "id": "century-club",
        "title": "Century Club",
        "description": "Complete 100 tasks",
        "icon": "Star",
        "category": "milestone",
        "difficulty": "platinum",
        "criteria": {"type": "tasks_completed", "value": 100},
        "points": 500,
    },
    {
        "id": "time-master",
        "title": "Time Master",
        "description": "Study for 100 hours total",
        "icon": "Clock",
        "category": "time",
        "difficulty": "platinum",
        "criteria": {"type": "time_spent", "value": 6000},
        "points": 400,
    },
]

# criteria type -> stats counter compared against the threshold
CRITERIA_COUNTERS = {
    "tasks_completed": "totalCompleted",
    "streak_days": "streak",
    "roadmaps_completed": "roadmapsCompleted",
    "time_spent": "totalStudyTime",
}


def is_earned(achievement: dict, stats: dict) -> bool:
    criteria = achievement["criteria"]
    counter = CRITERIA_COUNTERS.get(criteria["type"])
    if counter is None:
        return False
    return stats.get(counter, 0) >= criteria["value"]


def check_achievements(
    stats: dict, earned_ids: Iterable[str], now: Optional[datetime] = None
) -> list:
    """Return newly earned achievement records, awarding their XP into ``stats``.

    Each record has id, title, description, category, icon, difficulty,
    points, earnedAt and isCompleted.
    """
    now = now or datetime.now(timezone.utc)
    earned_ids = set(earned_ids)
    new_achievements = []

    for achievement in ACHIEVEMENT_CATALOG:
        if achievement["id"] in earned_ids or not is_earned(achievement, stats):
            continue
        stats["experiencePoints"] = stats.get("experiencePoints", 0) + achievement["points"]
        new_achievements.append(
            {
                "id": achievement["id"],
                "title": achievement["title"],
                "description": achievement["description"],
                "category": achievement["category"],
                "icon": achievement["icon"],
                "difficulty": achievement["difficulty"],
                "points": achievement["points"],
                "earnedAt": now.isoformat(),
                "isCompleted": True,
            }
        )
        print__progress_debug(f"🏆 Achievement earned: {achievement['id']}")

    if new_achievements:
        update_level(stats)
    return new_achievements
