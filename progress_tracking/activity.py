"""Activity calendar and progress summary views."""

from __future__ import annotations

from datetime import date, timedelta


def build_activity_calendar(stats: dict, year: int) -> dict:
    """One entry per day of ``year``; a day is active if its day-of-year was recorded."""
    active_days = set(stats.get("activeLearningDays") or [])
    activity_data = []

    current = date(year, 1, 1)
    end = date(year, 12, 31)
    while current <= end:
        has_activity = current.timetuple().tm_yday in active_days
        activity_data.append(
            {
                "date": current.isoformat(),
                "hasActivity": has_activity,
                "activityLevel": 1 if has_activity else 0,
                "tasksCompleted": 1 if has_activity else 0,
            }
        )
        current += timedelta(days=1)

    return {
        "year": year,
        "totalDays": len(activity_data),
        "activeDays": len([d for d in activity_data if d["hasActivity"]]),
        "currentStreak": stats.get("streak", 0),
        "activityData": activity_data,
    }


def build_progress_summary(roadmaps: list, stats: dict) -> dict:
    def analytics(roadmap, key):
        return (roadmap.get("analytics") or {}).get(key, 0)

    return {
        "totalRoadmaps": len(roadmaps),
        "activeRoadmaps": len([r for r in roadmaps if (r.get("progress") or 0) < 100]),
        "completedRoadmaps": len([r for r in roadmaps if (r.get("progress") or 0) == 100]),
        "totalTasks": sum(analytics(r, "totalTasks") for r in roadmaps),
        "completedTasks": sum(analytics(r, "completedTasks") for r in roadmaps),
        "totalTimeSpent": sum(analytics(r, "totalTimeSpent") for r in roadmaps),
        "userStats": stats,
        "streak": stats.get("streak", 0),
        "level": stats.get("level", 1),
        "experiencePoints": stats.get("experiencePoints", 0),
    }
