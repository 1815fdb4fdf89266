"""User profile, preferences and stats endpoints (all owner-only except the leaderboard)."""

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

from fastapi import APIRouter, Depends, HTTPException, Query

from api.dependencies.auth import get_current_user
from api.helpers import ensure_own_user, internal_error_response
from api.models.requests import (
    PreferencesUpdateRequest,
    ProfileUpdateRequest,
    StatsUpdateRequest,
)
from api.utils.debug import print__progress_debug
from persistence.store.factory import get_global_store
from progress_tracking.stats import update_level, update_streak

router = APIRouter(prefix="/user", tags=["user"])


@router.put("/profile/{user_id}")
async def update_profile(
    user_id: str, request: ProfileUpdateRequest, user: dict = Depends(get_current_user)
):
    ensure_own_user(user_id, user)

    fields = request.model_dump(exclude_unset=True, exclude_none=True)
    api_keys = fields.pop("apiKeys", None)
    store = await get_global_store()

    if api_keys is not None:
        # stored keys are write-only; responses never carry them
        if await store.update_api_keys(user_id, api_keys) is None:
            raise HTTPException(status_code=404, detail="User not found")

    updated = await store.update_profile(user_id, fields)
    if updated is None:
        raise HTTPException(status_code=404, detail="User not found")
    return {"success": True, "user": updated}


@router.put("/preferences/{user_id}")
async def update_preferences(
    user_id: str, request: PreferencesUpdateRequest, user: dict = Depends(get_current_user)
):
    ensure_own_user(user_id, user)

    prefs = request.model_dump(exclude_unset=True, exclude_none=True)
    store = await get_global_store()
    updated = await store.update_preferences(user_id, prefs)
    if updated is None:
        raise HTTPException(status_code=404, detail="User not found")
    return {"success": True, "preferences": updated["preferences"]}


@router.get("/stats/{user_id}")
async def get_stats(user_id: str, user: dict = Depends(get_current_user)):
    ensure_own_user(user_id, user)

    store = await get_global_store()
    stats = await store.get_stats(user_id)
    if stats is None:
        raise HTTPException(status_code=404, detail="User not found")
    return {"stats": stats}


@router.put("/stats/{user_id}")
async def update_stats(
    user_id: str, request: StatsUpdateRequest, user: dict = Depends(get_current_user)
):
    """Overwrite known counters, then refresh the streak and level."""
    ensure_own_user(user_id, user)

    try:
        store = await get_global_store()
        stats = await store.get_stats(user_id)
        if stats is None:
            raise HTTPException(status_code=404, detail="User not found")

        stats.update(request.model_dump(exclude_unset=True, exclude_none=True))
        update_streak(stats)
        leveled_up = update_level(stats)
        stats = await store.save_stats(user_id, stats)
        print__progress_debug(f"📊 Stats updated for {user_id} (level up: {leveled_up})")
        return {"success": True, "stats": stats, "leveledUp": leveled_up}
    except HTTPException:
        raise
    except Exception as e:
        return internal_error_response(e, "Failed to update stats")


@router.get("/leaderboard")
async def get_leaderboard(limit: int = Query(10, ge=1, le=100)):
    store = await get_global_store()
    return {"leaderboard": await store.list_leaderboard(limit)}
