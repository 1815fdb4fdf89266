"""Roadmap progress arithmetic over the modules/tasks document."""

from __future__ import annotations

import copy
import re
from datetime import datetime, timezone
from typing import Optional

from persistence.sessions import random_base36

HOURS_PATTERN = re.compile(r"(\d+(?:\.\d+)?)")


def _iter_tasks(roadmap: dict):
    for module in roadmap.get("modules") or []:
        for task in module.get("tasks") or []:
            yield module, task


def parse_hours(value) -> float:
    """Read the leading number of an estimate such as "5 hours"; 0 if absent."""
    if isinstance(value, (int, float)):
        return float(value)
    match = HOURS_PATTERN.search(str(value or ""))
    return float(match.group(1)) if match else 0.0


def calculate_progress(roadmap: dict) -> float:
    """Set ``progress`` (percent of completed tasks) and ``analytics``."""
    total_tasks = 0
    completed_tasks = 0
    total_time_spent = 0

    for _, task in _iter_tasks(roadmap):
        total_tasks += 1
        if task.get("completed"):
            completed_tasks += 1
        total_time_spent += task.get("timeSpent") or 0

    progress = (completed_tasks / total_tasks) * 100 if total_tasks > 0 else 0
    roadmap["progress"] = progress
    roadmap["analytics"] = {
        "totalTasks": total_tasks,
        "completedTasks": completed_tasks,
        "totalTimeSpent": total_time_spent,
        "averageTaskTime": total_time_spent / completed_tasks if completed_tasks > 0 else 0,
        "completionRate": progress,
    }
    return progress


def find_task(roadmap: dict, module_id: str, task_id: str):
    """Return (module, task) or raise LookupError."""
    module = next(
        (m for m in roadmap.get("modules") or [] if str(m.get("id")) == str(module_id)),
        None,
    )
    if module is None:
        raise LookupError("Module not found")
    task = next(
        (t for t in module.get("tasks") or [] if str(t.get("id")) == str(task_id)),
        None,
    )
    if task is None:
        raise LookupError("Task not found")
    return module, task


def set_task_completion(
    roadmap: dict,
    module_id: str,
    task_id: str,
    completed: bool,
    time_spent: Optional[int] = None,
    now: Optional[datetime] = None,
) -> dict:
    """Apply a task update to the roadmap in place.

    Returns a dict describing the transition: module, task, was_completed,
    newly_completed, newly_uncompleted, progress and module_completed.
    """
    now = now or datetime.now(timezone.utc)
    module, task = find_task(roadmap, module_id, task_id)

    was_completed = bool(task.get("completed"))
    task["completed"] = bool(completed)
    if time_spent:
        task["timeSpent"] = (task.get("timeSpent") or 0) + time_spent

    if completed and not was_completed:
        task["completedAt"] = now.isoformat()
    elif not completed and was_completed:
        task["completedAt"] = None

    all_tasks_completed = all(t.get("completed") for t in module.get("tasks") or [])
    if all_tasks_completed and not module.get("completed"):
        module["completed"] = True
        module["completedAt"] = now.isoformat()
    elif not all_tasks_completed and module.get("completed"):
        module["completed"] = False
        module["completedAt"] = None

    progress = calculate_progress(roadmap)
    return {
        "module": module,
        "task": task,
        "was_completed": was_completed,
        "newly_completed": bool(completed) and not was_completed,
        "newly_uncompleted": not completed and was_completed,
        "progress": progress,
        "module_completed": bool(module.get("completed")),
    }


def get_roadmap_stats(roadmap: dict) -> dict:
    modules = roadmap.get("modules") or []
    stats = {
        "totalModules": len(modules),
        "completedModules": len([m for m in modules if m.get("completed")]),
        "totalTasks": 0,
        "completedTasks": 0,
        "progress": roadmap.get("progress", 0),
        "estimatedTimeRemaining": 0,
    }
    for module in modules:
        tasks = module.get("tasks") or []
        stats["totalTasks"] += len(tasks)
        stats["completedTasks"] += len([t for t in tasks if t.get("completed")])
        if not module.get("completed") and module.get("estimatedTime"):
            stats["estimatedTimeRemaining"] += parse_hours(module["estimatedTime"])
    return stats


def fork_roadmap(roadmap: dict, user_id: str) -> dict:
    """Copy a roadmap for ``user_id`` with all completion state reset."""
    forked = copy.deepcopy(roadmap)
    for module in forked.get("modules") or []:
        module["completed"] = False
        module["completedAt"] = None
        for task in module.get("tasks") or []:
            task["completed"] = False
            task["completedAt"] = None
            task["timeSpent"] = 0

    forked.update(
        {
            "id": random_base36(9),
            "title": f"{roadmap.get('title', '')} (Fork)",
            "userId": user_id,
            "forkedFrom": roadmap["id"],
            "progress": 0,
            "isPublic": False,
            "likes": 0,
            "forks": 0,
            "views": 0,
            "createdAt": datetime.now(timezone.utc).isoformat(),
        }
    )
    forked.pop("updatedAt", None)
    calculate_progress(forked)
    return forked
