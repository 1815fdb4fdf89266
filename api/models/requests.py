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
import re
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, StrictBool, field_validator

from api.config.settings import PASSWORD_MIN_LENGTH

EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


def _not_blank(value: str, label: str) -> str:
    if not value or not value.strip():
        raise ValueError(f"{label} cannot be empty or only whitespace")
    return value.strip()


# ============================================================
# AUTH REQUEST MODELS
# ============================================================
class RegisterRequest(BaseModel):
    """Request model for creating an account."""

    email: str = Field(..., max_length=320, examples=["ada@example.com"])
    password: str = Field(..., min_length=PASSWORD_MIN_LENGTH, max_length=128)
    name: str = Field(..., min_length=1, max_length=100, examples=["Ada Lovelace"])

    @field_validator("email")
    @classmethod
    def validate_email(cls, v):
        v = v.strip().lower()
        if not EMAIL_PATTERN.match(v):
            raise ValueError("Please provide a valid email")
        return v

    @field_validator("name")
    @classmethod
    def validate_name(cls, v):
        return _not_blank(v, "Name")


class LoginRequest(BaseModel):
    email: str = Field(..., max_length=320)
    password: str = Field(..., min_length=1)

    @field_validator("email")
    @classmethod
    def validate_email(cls, v):
        v = v.strip().lower()
        if not EMAIL_PATTERN.match(v):
            raise ValueError("Please provide a valid email")
        return v


# ============================================================
# USER REQUEST MODELS
# ============================================================
class UserApiKeys(BaseModel):
    """Provider keys. Sent per request, or stored on the profile.

    An empty string removes a stored key.
    """

    model_config = ConfigDict(extra="ignore")

    openai: Optional[str] = Field(None, max_length=500)
    gemini: Optional[str] = Field(None, max_length=500)
    perplexity: Optional[str] = Field(None, max_length=500)


class ProfileUpdateRequest(BaseModel):
    """Profile fields a user may change. Unknown keys are dropped."""

    model_config = ConfigDict(extra="ignore")

    name: Optional[str] = Field(None, min_length=1, max_length=100)
    profileImage: Optional[str] = Field(None, max_length=2048)
    bio: Optional[str] = Field(None, max_length=500)
    location: Optional[str] = Field(None, max_length=100)
    githubUsername: Optional[str] = Field(None, max_length=100)
    twitterUsername: Optional[str] = Field(None, max_length=100)
    learningGoals: Optional[List[str]] = None
    apiKeys: Optional[UserApiKeys] = None

    @field_validator("name")
    @classmethod
    def validate_name(cls, v):
        if v is None:
            return v
        return _not_blank(v, "Name")


class PreferencesUpdateRequest(BaseModel):
    model_config = ConfigDict(extra="ignore")

    emailNotifications: Optional[StrictBool] = None
    weeklyDigest: Optional[StrictBool] = None
    achievementAlerts: Optional[StrictBool] = None
    theme: Optional[Literal["light", "dark", "system"]] = None


# ============================================================
# AI REQUEST MODELS
# ============================================================
class GenerateRoadmapRequest(BaseModel):
    topic: str = Field(
        ...,
        min_length=1,
        max_length=500,
        description="Topic to build a learning roadmap for",
        examples=["Dynamic programming for interviews"],
    )
    apiKeys: Optional[UserApiKeys] = None

    @field_validator("topic")
    @classmethod
    def validate_topic(cls, v):
        return _not_blank(v, "Topic")


class ChatRequest(BaseModel):
    message: str = Field(..., min_length=1, max_length=10000)
    context: Optional[str] = Field(None, max_length=10000)
    apiKeys: Optional[UserApiKeys] = None

    @field_validator("message")
    @classmethod
    def validate_message(cls, v):
        return _not_blank(v, "Message")


class ClassifyTopicRequest(BaseModel):
    topic: str = Field(..., min_length=1, max_length=500)

    @field_validator("topic")
    @classmethod
    def validate_topic(cls, v):
        return _not_blank(v, "Topic")


class ImproveRoadmapRequest(BaseModel):
    roadmapId: str = Field(..., min_length=1, max_length=100)
    feedback: Optional[str] = Field(None, max_length=5000)
    apiKeys: Optional[UserApiKeys] = None


class SimilarRoadmapsRequest(BaseModel):
    topic: str = Field(..., min_length=1, max_length=500)
    limit: int = Field(3, ge=1, le=20)

    @field_validator("topic")
    @classmethod
    def validate_topic(cls, v):
        return _not_blank(v, "Topic")


# ============================================================
# ROADMAP REQUEST MODELS
# ============================================================
class SaveRoadmapRequest(BaseModel):
    """A client-supplied roadmap document. Extra keys are kept as-is."""

    model_config = ConfigDict(extra="allow")

    id: Optional[str] = Field(None, max_length=100)
    title: str = Field(..., min_length=1, max_length=300)
    description: Optional[str] = None
    difficulty: Optional[Literal["beginner", "intermediate", "advanced"]] = None
    estimatedDuration: Optional[str] = None
    aiProvider: Optional[Literal["openai", "gemini", "perplexity"]] = None
    category: Optional[str] = None
    modules: List[dict] = Field(default_factory=list)
    tags: List[str] = Field(default_factory=list)
    isPublic: bool = False


class TaskProgressRequest(BaseModel):
    moduleId: str = Field(..., min_length=1)
    taskId: str = Field(..., min_length=1)
    completed: bool
    timeSpent: Optional[int] = Field(None, ge=0, description="Minutes spent on the task")

    @field_validator("moduleId", "taskId", mode="before")
    @classmethod
    def coerce_ids(cls, v):
        # generated roadmaps may carry numeric ids
        return str(v) if isinstance(v, int) else v


class VisibilityRequest(BaseModel):
    isPublic: bool


class LikeRequest(BaseModel):
    action: Literal["like", "unlike"]


class StatsUpdateRequest(BaseModel):
    """Direct stats overrides. Only known counters are accepted."""

    model_config = ConfigDict(extra="ignore")

    streak: Optional[int] = Field(None, ge=0)
    totalCompleted: Optional[int] = Field(None, ge=0)
    experiencePoints: Optional[int] = Field(None, ge=0)
    weeklyGoal: Optional[int] = Field(None, ge=0)
    weeklyProgress: Optional[int] = Field(None, ge=0)
    roadmapsCompleted: Optional[int] = Field(None, ge=0)
    totalStudyTime: Optional[int] = Field(None, ge=0)
    globalRanking: Optional[int] = Field(None, ge=0)
    attendedContests: Optional[int] = Field(None, ge=0)
