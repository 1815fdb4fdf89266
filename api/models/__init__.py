"""
Data models package for the API server.

This package contains Pydantic models for request/response validation
of the AI Roadmap API.
"""

# Import request models
from .requests import (
    ChatRequest,
    ClassifyTopicRequest,
    GenerateRoadmapRequest,
    ImproveRoadmapRequest,
    LikeRequest,
    LoginRequest,
    PreferencesUpdateRequest,
    ProfileUpdateRequest,
    RegisterRequest,
    SaveRoadmapRequest,
    SimilarRoadmapsRequest,
    StatsUpdateRequest,
    TaskProgressRequest,
    UserApiKeys,
    VisibilityRequest,
)

# Import response models
from .responses import (
    AuthResponse,
    ChatResponse,
    CheckAchievementsResponse,
    ClassifyTopicResponse,
    ImproveRoadmapResponse,
    ProgressUpdateResponse,
    PublicRoadmapsResponse,
    RealtimeStatusResponse,
    SessionInfo,
    SimilarRoadmapsResponse,
)

# Export all models for easier access
__all__ = [
    # Request models
    "ChatRequest",
    "ClassifyTopicRequest",
    "GenerateRoadmapRequest",
    "ImproveRoadmapRequest",
    "LikeRequest",
    "LoginRequest",
    "PreferencesUpdateRequest",
    "ProfileUpdateRequest",
    "RegisterRequest",
    "SaveRoadmapRequest",
    "SimilarRoadmapsRequest",
    "StatsUpdateRequest",
    "TaskProgressRequest",
    "UserApiKeys",
    "VisibilityRequest",
    # Response models
    "AuthResponse",
    "ChatResponse",
    "CheckAchievementsResponse",
    "ClassifyTopicResponse",
    "ImproveRoadmapResponse",
    "ProgressUpdateResponse",
    "PublicRoadmapsResponse",
    "RealtimeStatusResponse",
    "SessionInfo",
    "SimilarRoadmapsResponse",
]
