"""Shared fixtures: a fresh in-memory store, realtime hub and API client per test."""

import json
import os
import sys
from pathlib import Path

# CRITICAL: Set Windows event loop policy FIRST, before other imports
if sys.platform == "win32":
    import asyncio

    asyncio.set_event_loop_policy(asyncio.WindowsSelectorEventLoopPolicy())

# Resolve base directory (project root)
try:
    BASE_DIR = Path(__file__).resolve().parents[1]
except NameError:  # Fallback if __file__ not defined
    BASE_DIR = Path(os.getcwd())

# Make project root importable
if str(BASE_DIR) not in sys.path:
    sys.path.insert(0, str(BASE_DIR))

import httpx
import pytest
import pytest_asyncio

from api.config.settings import rate_limit_storage, throttle_semaphores
from persistence.store.factory import create_memory_store, set_global_store
from realtime.hub import reset_realtime_hub
from realtime.rooms import reset_connection_manager
from tests.helpers import FakeLLMFactory, sample_roadmap


@pytest.fixture(autouse=True)
def isolated_state(monkeypatch):
    """Memory store, empty hub/rooms, no rate limiting and no external services."""
    import api.routes.roadmaps as roadmap_routes
    import api.utils.rate_limiting as rate_limiting
    from roadmap_ai import router as ai_router

    monkeypatch.setattr(rate_limiting, "RATE_LIMIT_BURST", 100_000)
    monkeypatch.setattr(rate_limiting, "RATE_LIMIT_REQUESTS", 100_000)
    rate_limit_storage.clear()
    throttle_semaphores.clear()

    monkeypatch.setattr(ai_router, "enhance_with_youtube_videos", lambda roadmap: roadmap)
    monkeypatch.setattr(ai_router, "add_roadmap_embedding", lambda *args: True)
    monkeypatch.setattr(ai_router, "search_similar_roadmaps", lambda embedding, limit: [])
    monkeypatch.setattr(roadmap_routes, "delete_roadmap_embedding", lambda roadmap_id: True)

    async def fake_embedding(text, api_key=None):
        return [0.1] * 8

    monkeypatch.setattr(ai_router, "generate_embedding", fake_embedding)

    hub = reset_realtime_hub()
    reset_connection_manager()
    store = set_global_store(create_memory_store())

    yield store

    set_global_store(None)
    hub.cleanup()


@pytest.fixture
def store(isolated_state):
    return isolated_state


@pytest_asyncio.fixture
async def client():
    from api.main import app

    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as async_client:
        yield async_client


@pytest.fixture
def fake_llm(monkeypatch):
    """Install a FakeLLMFactory as the router's get_llm.

    Usage: factory = fake_llm(responses={"openai": "..."}, errors={"gemini": Exception()})
    """
    from roadmap_ai import router as ai_router

    def install(responses=None, errors=None):
        factory = FakeLLMFactory(responses, errors)
        monkeypatch.setattr(ai_router, "get_llm", factory)
        return factory

    return install


@pytest.fixture
def roadmap_json():
    """A provider answer: the sample roadmap wrapped in a markdown fence."""
    body = sample_roadmap()
    return f"```json\n{json.dumps(body)}\n```"
