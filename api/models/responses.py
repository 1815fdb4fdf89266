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

# Standard imports
from typing import List, Optional

from pydantic import BaseModel, Field


# ============================================================
# RESPONSE MODELS
# ============================================================
class SessionInfo(BaseModel):
    token: str
    userId: str
    expiresAt: str
    createdAt: Optional[str] = None


class AuthResponse(BaseModel):
    """Returned by /auth/register and /auth/login."""

    message: str
    token: str = Field(description="JWT for the Authorization header")
    user: dict
    session: SessionInfo


class ClassifyTopicResponse(BaseModel):
    topic: str
    recommendedProvider: str = Field(examples=["openai"])
    explanation: str


class ChatResponse(BaseModel):
    response: str
    provider: str


class ImproveRoadmapResponse(BaseModel):
    roadmapId: str
    suggestions: str
    provider: str


class SimilarRoadmap(BaseModel):
    roadmapId: Optional[str] = None
    title: Optional[str] = None
    description: Optional[str] = None
    similarity: float


class SimilarRoadmapsResponse(BaseModel):
    topic: str
    similar: List[SimilarRoadmap]


class PublicRoadmapsResponse(BaseModel):
    roadmaps: List[dict]
    totalPages: int
    currentPage: int
    total: int


class ProgressUpdateResponse(BaseModel):
    success: bool
    progress: float
    moduleCompleted: bool
    levelUp: bool = False


class CheckAchievementsResponse(BaseModel):
    newAchievements: List[dict]
    totalEarned: int


class RealtimeStatusResponse(BaseModel):
    available: bool
    mode: Optional[str] = None
    reason: Optional[str] = None
    channels: int
    connections: int
