"""
MODULE_DESCRIPTION: Root Endpoint - API Welcome and Endpoint Catalog

GET / is public and does no database access. It returns the API name,
version, status and a categorized list of endpoints so that a new client can
discover the API without reading the docs.
"""

from datetime import datetime

from fastapi import APIRouter

# ==============================================================================
# FASTAPI ROUTER INITIALIZATION
# ==============================================================================
router = APIRouter()


# ==============================================================================
# API ENDPOINT: ROOT / API DOCUMENTATION
# ==============================================================================
@router.get("/", tags=["root"])
async def api_root():
    return {
        "name": "AI Learning Roadmap API",
        "version": "1.0.0",
        "description": (
            "Generate AI learning roadmaps, track progress and sync it "
            "across devices in real time."
        ),
        "status": "operational",
        "timestamp": datetime.now().isoformat(),
        "documentation": {
            "swagger_ui": "/docs",
            "redoc": "/redoc",
            "openapi_schema": "/openapi.json",
        },
        "auth_endpoints": {
            "POST /auth/register": "Create an account",
            "POST /auth/login": "Sign in",
            "GET /auth/me": "Current user",
            "POST /auth/logout": "Sign out",
            "GET /auth/session": "Validate the X-Session-Token session",
        },
        "ai_endpoints": {
            "POST /ai/generate-roadmap": "Generate a roadmap for a topic",
            "POST /ai/chat": "Ask the learning assistant",
            "POST /ai/classify-topic": "Which provider a topic is routed to",
            "POST /ai/improve-roadmap": "Improvement suggestions for a roadmap",
            "POST /ai/similar-roadmaps": "Roadmaps similar to a topic",
        },
        "roadmap_endpoints": {
            "POST /roadmap": "Save a roadmap",
            "GET /roadmap/user/{user_id}": "Own roadmaps",
            "GET /roadmap/public/browse": "Public roadmaps",
            "PUT /roadmap/{id}/progress": "Complete or reopen a task",
        },
        "progress_endpoints": {
            "GET /progress/{user_id}/summary": "Progress summary",
            "GET /progress/{user_id}/activity": "Activity calendar",
            "POST /progress/{user_id}/check-achievements": "Award achievements",
        },
        "realtime_endpoints": {
            "WS /realtime/ws?token=<JWT>": "Progress and stats updates",
            "GET /realtime/status": "Realtime availability",
        },
        "system_endpoints": {
            "GET /health": "Service health",
        },
    }
