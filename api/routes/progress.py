"""Progress summary, activity calendar, achievements and progress records (owner-only)."""

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

from datetime import datetime, timezone
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from api.dependencies.auth import get_current_user
from api.helpers import ensure_own_user, internal_error_response
from api.models.responses import CheckAchievementsResponse
from api.utils.debug import print__progress_debug
from persistence.store.factory import get_global_store
from progress_tracking.achievements import check_achievements
from progress_tracking.activity import build_activity_calendar, build_progress_summary

router = APIRouter(prefix="/progress", tags=["progress"])


async def _load_stats(store, user_id: str) -> dict:
    stats = await store.get_stats(user_id)
    if stats is None:
        raise HTTPException(status_code=404, detail="User not found")
    return stats


@router.get("/{user_id}/summary")
async def get_summary(user_id: str, user: dict = Depends(get_current_user)):
    ensure_own_user(user_id, user)
    store = await get_global_store()
    roadmaps = await store.list_user_roadmaps(user_id)
    stats = await _load_stats(store, user_id)
    return build_progress_summary(roadmaps, stats)


@router.get("/{user_id}/activity")
async def get_activity(
    user_id: str,
    year: Optional[int] = Query(None, ge=1970, le=9999),
    user: dict = Depends(get_current_user),
):
    ensure_own_user(user_id, user)
    store = await get_global_store()
    stats = await _load_stats(store, user_id)
    return build_activity_calendar(stats, year or datetime.now(timezone.utc).year)


@router.post("/{user_id}/check-achievements", response_model=CheckAchievementsResponse)
async def check_user_achievements(user_id: str, user: dict = Depends(get_current_user)):
    ensure_own_user(user_id, user)

    try:
        store = await get_global_store()
        stats = await _load_stats(store, user_id)
        earned = await store.list_achievements(user_id)

        new_achievements = check_achievements(stats, [a["id"] for a in earned])
        for achievement in new_achievements:
            await store.add_achievement(user_id, achievement)
        if new_achievements:
            await store.save_stats(user_id, stats)
            print__progress_debug(
                f"🏆 {user_id} earned {len(new_achievements)} new achievement(s)"
            )

        return {
            "newAchievements": new_achievements,
            "totalEarned": len(earned) + len(new_achievements),
        }
    except HTTPException:
        raise
    except Exception as e:
        return internal_error_response(e, "Failed to check achievements")


@router.get("/{user_id}/achievements")
async def list_achievements(user_id: str, user: dict = Depends(get_current_user)):
    ensure_own_user(user_id, user)
    store = await get_global_store()
    return {"achievements": await store.list_achievements(user_id)}


@router.get("/{user_id}/records")
async def list_records(
    user_id: str,
    roadmapId: Optional[str] = None,
    user: dict = Depends(get_current_user),
):
    ensure_own_user(user_id, user)
    store = await get_global_store()
    return {"progress": await store.list_progress(user_id, roadmapId)}
