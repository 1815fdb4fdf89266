"""
MODULE_DESCRIPTION: AI Endpoints - Roadmap Generation, Chat, Classification

POST /ai/generate-roadmap works anonymously. With a valid token the roadmap
is also saved for the caller, who earns ROADMAP_GENERATION_XP; a failure
while saving is logged and the generated roadmap is still returned.

Provider keys are looked up per request: a key sent in ``apiKeys`` first,
then the key stored on the signed-in caller's profile (PUT /user/profile),
then the server's environment key. Keys sent with a request are never stored.

improve-roadmap answers 404 for a private roadmap unless the caller owns it.
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

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import JSONResponse

from api.config.settings import ROADMAP_GENERATION_XP
from api.dependencies.auth import get_optional_user
from api.helpers import ensure_roadmap_visible, traceback_json_response
from api.models.requests import (
    ChatRequest,
    ClassifyTopicRequest,
    GenerateRoadmapRequest,
    ImproveRoadmapRequest,
    SimilarRoadmapsRequest,
)
from api.models.responses import (
    ChatResponse,
    ClassifyTopicResponse,
    ImproveRoadmapResponse,
    SimilarRoadmapsResponse,
)
from api.utils.debug import print__ai_router_debug, print__roadmap_debug
from api.utils.memory import log_comprehensive_error
from persistence.records import build_roadmap_record
from persistence.store.factory import get_global_store
from progress_tracking.stats import apply_roadmap_generation
from roadmap_ai import router as ai_router
from roadmap_ai.classifier import classify_topic, explain_recommendation
from roadmap_ai.models import select_api_keys

router = APIRouter(prefix="/ai", tags=["ai"])


async def _api_keys(request_keys, user: Optional[dict]) -> dict:
    """Keys sent with the request, then the keys stored on the caller's profile.

    Providers left without a key fall back to the server environment.
    """
    sent = request_keys.model_dump(exclude_none=True) if request_keys is not None else {}
    stored = {}
    if user is not None:
        store = await get_global_store()
        stored = await store.get_api_keys(user["id"])
    return select_api_keys(sent, stored)


def _ai_error_response(e: Exception, detail: str):
    resp = traceback_json_response(e)
    if resp:
        return resp
    return JSONResponse(status_code=500, content={"detail": detail, "message": str(e)})


async def save_generated_roadmap(roadmap: dict, user: dict) -> Optional[dict]:
    """Persist ``roadmap`` for ``user`` and award the generation XP."""
    store = await get_global_store()
    saved = await store.save_roadmap(build_roadmap_record(roadmap, user["id"]))

    stats = await store.get_stats(user["id"])
    if stats is not None:
        level_up = apply_roadmap_generation(stats, ROADMAP_GENERATION_XP)
        await store.save_stats(user["id"], stats)
        if level_up:
            print__roadmap_debug(f"🎉 User {user['id']} leveled up to {stats['level']}")

    print__roadmap_debug(f"💾 Roadmap {saved['id']} saved for user {user['id']}")
    return saved


@router.post("/generate-roadmap")
async def generate_roadmap(
    request: GenerateRoadmapRequest, user: Optional[dict] = Depends(get_optional_user)
):
    try:
        api_keys = await _api_keys(request.apiKeys, user)
        roadmap = await ai_router.generate_roadmap(request.topic, api_keys)
    except Exception as e:
        log_comprehensive_error("generate_roadmap", e)
        return _ai_error_response(e, "Failed to generate roadmap")

    if user is None:
        print__ai_router_debug("ℹ️ Anonymous roadmap generation - not saving")
        return roadmap

    try:
        return await save_generated_roadmap(roadmap, user)
    except Exception as e:
        log_comprehensive_error("save_generated_roadmap", e)
        return roadmap


@router.post("/chat", response_model=ChatResponse)
async def chat(request: ChatRequest, user: Optional[dict] = Depends(get_optional_user)):
    try:
        api_keys = await _api_keys(request.apiKeys, user)
        return await ai_router.generate_chat_response(
            request.message, request.context or "", api_keys
        )
    except Exception as e:
        log_comprehensive_error("ai_chat", e)
        return _ai_error_response(e, "Failed to get AI response")


@router.post("/classify-topic", response_model=ClassifyTopicResponse)
async def classify(request: ClassifyTopicRequest):
    provider = classify_topic(request.topic)
    return {
        "topic": request.topic,
        "recommendedProvider": provider,
        "explanation": explain_recommendation(request.topic, provider),
    }


@router.post("/improve-roadmap", response_model=ImproveRoadmapResponse)
async def improve_roadmap(
    request: ImproveRoadmapRequest, user: Optional[dict] = Depends(get_optional_user)
):
    store = await get_global_store()
    roadmap = await store.get_roadmap(request.roadmapId)
    if roadmap is None:
        raise HTTPException(status_code=404, detail="Roadmap not found")
    ensure_roadmap_visible(roadmap, user)

    try:
        api_keys = await _api_keys(request.apiKeys, user)
        response = await ai_router.improve_roadmap(roadmap, request.feedback, api_keys)
    except Exception as e:
        log_comprehensive_error("improve_roadmap", e)
        return _ai_error_response(e, "Failed to generate improvements")

    return {
        "roadmapId": request.roadmapId,
        "suggestions": response["response"],
        "provider": response["provider"],
    }


@router.post("/similar-roadmaps", response_model=SimilarRoadmapsResponse)
async def similar_roadmaps(request: SimilarRoadmapsRequest):
    similar = await ai_router.find_similar_roadmaps(request.topic, request.limit)
    return {"topic": request.topic, "similar": similar}
