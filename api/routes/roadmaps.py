"""
MODULE_DESCRIPTION: Roadmap Endpoints - Storage, Sharing and Task Progress

Roadmaps are stored as whole documents (modules and tasks inline). Task
progress is written three times per update:
    - the task/module flags inside the roadmap document
    - one user_progress row per (user, roadmap, module, task)
    - the user's stats (XP, counters, streak, level)
The last two writes publish realtime change events to the owner's clients.

/roadmap/public/browse and /roadmap/user/{user_id} are declared before
/roadmap/{roadmap_id} so they are not captured by the id route.
"""

# CRITICAL: Set Windows event loop policy FIRST, before any other imports
# This must be the very first thing that happens to fix psycopg compatibility
import os
import sys

if sys.platform == "win32":
    import asyncio

    asyncio.set_event_loop_policy(asyncio.WindowsSelectorEventLoopPolicy())

# Load environment variables early
from dotenv import load_dotenv

load_dotenv()

# Constants
try:
    from pathlib import Path

    BASE_DIR = Path(__file__).resolve().parents[2]
except NameError:
    BASE_DIR = Path(os.getcwd()).parents[0]

import asyncio
import math
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from api.dependencies.auth import get_current_user, get_optional_user
from api.helpers import ensure_own_user, ensure_roadmap_visible, internal_error_response
from api.models.requests import (
    LikeRequest,
    SaveRoadmapRequest,
    TaskProgressRequest,
    VisibilityRequest,
)
from api.models.responses import ProgressUpdateResponse, PublicRoadmapsResponse
from api.utils.debug import print__progress_debug, print__roadmap_debug
from persistence.records import build_roadmap_record, to_iso, utc_now
from persistence.sessions import random_base36
from persistence.store.factory import get_global_store
from progress_tracking.roadmap_progress import (
    calculate_progress,
    fork_roadmap,
    get_roadmap_stats,
    set_task_completion,
)
from progress_tracking.stats import apply_task_completion, apply_task_uncompletion
from roadmap_ai.vector_store import delete_roadmap_embedding

router = APIRouter(prefix="/roadmap", tags=["roadmap"])


async def _load_roadmap(store, roadmap_id: str) -> dict:
    roadmap = await store.get_roadmap(roadmap_id)
    if roadmap is None:
        raise HTTPException(status_code=404, detail="Roadmap not found")
    return roadmap


def _ensure_owner(roadmap: dict, user: dict):
    if str(roadmap.get("userId")) != str(user["id"]):
        raise HTTPException(status_code=403, detail="Access denied")


# ==============================================================================
# CREATE / LIST
# ==============================================================================
@router.post("", status_code=201)
async def save_roadmap(request: SaveRoadmapRequest, user: dict = Depends(get_current_user)):
    store = await get_global_store()
    data = request.model_dump(exclude_none=True)

    if data.get("id"):
        existing = await store.get_roadmap(data["id"])
        if existing is not None:
            _ensure_owner(existing, user)
    else:
        data["id"] = random_base36(9)

    try:
        roadmap = build_roadmap_record(data, user["id"])
        calculate_progress(roadmap)
        saved = await store.save_roadmap(roadmap)
    except Exception as e:
        return internal_error_response(e, "Failed to save roadmap")

    print__roadmap_debug(f"💾 Roadmap {saved['id']} saved by {user['id']}")
    return saved


@router.get("/user/{user_id}")
async def list_user_roadmaps(user_id: str, user: dict = Depends(get_current_user)):
    ensure_own_user(user_id, user)
    store = await get_global_store()
    return {"roadmaps": await store.list_user_roadmaps(user_id)}


@router.get("/public/browse", response_model=PublicRoadmapsResponse)
async def browse_public_roadmaps(
    page: int = Query(1, ge=1),
    limit: int = Query(12, ge=1, le=100),
    category: Optional[str] = None,
    difficulty: Optional[str] = None,
):
    store = await get_global_store()
    roadmaps, total = await store.list_public_roadmaps(
        category=category,
        difficulty=difficulty,
        offset=(page - 1) * limit,
        limit=limit,
    )
    return {
        "roadmaps": roadmaps,
        "totalPages": math.ceil(total / limit),
        "currentPage": page,
        "total": total,
    }


# ==============================================================================
# SINGLE ROADMAP
# ==============================================================================
@router.get("/{roadmap_id}")
async def get_roadmap(roadmap_id: str, user: Optional[dict] = Depends(get_optional_user)):
    store = await get_global_store()
    roadmap = await _load_roadmap(store, roadmap_id)

    ensure_roadmap_visible(roadmap, user)

    roadmap["views"] = (roadmap.get("views") or 0) + 1
    return await store.save_roadmap(roadmap, touch=False)


@router.get("/{roadmap_id}/stats")
async def get_stats(roadmap_id: str, user: Optional[dict] = Depends(get_optional_user)):
    store = await get_global_store()
    roadmap = await _load_roadmap(store, roadmap_id)

    ensure_roadmap_visible(roadmap, user)
    return get_roadmap_stats(roadmap)


@router.put("/{roadmap_id}/progress", response_model=ProgressUpdateResponse)
async def update_task_progress(
    roadmap_id: str, request: TaskProgressRequest, user: dict = Depends(get_current_user)
):
    store = await get_global_store()
    roadmap = await _load_roadmap(store, roadmap_id)
    _ensure_owner(roadmap, user)

    try:
        result = set_task_completion(
            roadmap, request.moduleId, request.taskId, request.completed, request.timeSpent
        )
    except LookupError as e:
        raise HTTPException(status_code=404, detail=str(e))

    try:
        await store.save_roadmap(roadmap)

        task = result["task"]
        await store.upsert_progress(
            {
                "userId": user["id"],
                "roadmapId": roadmap_id,
                "moduleId": request.moduleId,
                "taskId": request.taskId,
                "completed": request.completed,
                "timeSpent": task.get("timeSpent") or 0,
                "completedAt": task.get("completedAt"),
            }
        )

        level_up = False
        stats = await store.get_stats(user["id"])
        if stats is not None and (result["newly_completed"] or result["newly_uncompleted"]):
            if result["newly_completed"]:
                level_up = apply_task_completion(
                    stats, task.get("difficulty"), request.timeSpent or 0
                )
            else:
                apply_task_uncompletion(stats, task.get("difficulty"))
            await store.save_stats(user["id"], stats)
    except HTTPException:
        raise
    except Exception as e:
        return internal_error_response(e, "Failed to update progress")

    print__progress_debug(
        f"📈 {roadmap_id}: task {request.taskId} completed={request.completed} "
        f"progress={result['progress']:.1f}%"
    )
    return {
        "success": True,
        "progress": result["progress"],
        "moduleCompleted": result["module_completed"],
        "levelUp": level_up,
    }


# ==============================================================================
# SHARING
# ==============================================================================
@router.post("/{roadmap_id}/fork", status_code=201)
async def fork(roadmap_id: str, user: dict = Depends(get_current_user)):
    store = await get_global_store()
    original = await _load_roadmap(store, roadmap_id)

    ensure_roadmap_visible(original, user)

    forked = await store.save_roadmap(fork_roadmap(original, user["id"]))
    original["forks"] = (original.get("forks") or 0) + 1
    await store.save_roadmap(original, touch=False)

    print__roadmap_debug(f"🍴 {user['id']} forked {roadmap_id} as {forked['id']}")
    return forked


@router.put("/{roadmap_id}/visibility")
async def set_visibility(
    roadmap_id: str, request: VisibilityRequest, user: dict = Depends(get_current_user)
):
    store = await get_global_store()
    roadmap = await _load_roadmap(store, roadmap_id)
    _ensure_owner(roadmap, user)

    roadmap["isPublic"] = request.isPublic
    if request.isPublic and not roadmap.get("sharedAt"):
        roadmap["sharedAt"] = to_iso(utc_now())
    saved = await store.save_roadmap(roadmap)
    return {"success": True, "isPublic": saved["isPublic"]}


@router.post("/{roadmap_id}/like")
async def like(roadmap_id: str, request: LikeRequest, user: dict = Depends(get_current_user)):
    store = await get_global_store()
    roadmap = await _load_roadmap(store, roadmap_id)
    ensure_roadmap_visible(roadmap, user)

    likes = roadmap.get("likes") or 0
    roadmap["likes"] = likes + 1 if request.action == "like" else max(0, likes - 1)
    saved = await store.save_roadmap(roadmap, touch=False)
    return {"success": True, "likes": saved["likes"]}


@router.delete("/{roadmap_id}")
async def delete_roadmap(roadmap_id: str, user: dict = Depends(get_current_user)):
    store = await get_global_store()
    roadmap = await _load_roadmap(store, roadmap_id)
    _ensure_owner(roadmap, user)

    await store.delete_roadmap(roadmap_id)

    loop = asyncio.get_event_loop()
    await loop.run_in_executor(None, delete_roadmap_embedding, roadmap_id)

    print__roadmap_debug(f"🗑️ Roadmap {roadmap_id} deleted by {user['id']}")
    return {"success": True, "message": "Roadmap deleted successfully"}
