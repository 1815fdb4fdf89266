"""AI routes: roadmap generation, chat, topic classification, improvements and similarity.
Providers are replaced with FakeLLMFactory through the fake_llm fixture.
"""

import os
import sys
from pathlib import Path

# CRITICAL: Set Windows event loop policy FIRST, before other imports
if sys.platform == "win32":
    import asyncio

    asyncio.set_event_loop_policy(asyncio.WindowsSelectorEventLoopPolicy())

# Resolve base directory (project root)
try:
    BASE_DIR = Path(__file__).resolve().parents[2]
except NameError:  # Fallback if __file__ not defined
    BASE_DIR = Path(os.getcwd()).parents[0]

# Make project root importable
sys.path.insert(0, str(BASE_DIR))

import pytest

from roadmap_ai import router as ai_router
from tests.helpers import auth_headers, register_user, sample_roadmap


@pytest.mark.asyncio
async def test_generate_anonymous_is_not_saved(client, store, fake_llm, roadmap_json):
    fake_llm(responses={"openai": roadmap_json})

    response = await client.post("/ai/generate-roadmap", json={"topic": "Learn Python"})

    assert response.status_code == 200
    roadmap = response.json()
    assert roadmap["title"] == "Python Programming Mastery"
    assert roadmap["progress"] == 0
    assert "userId" not in roadmap
    assert await store.get_roadmap(roadmap["id"]) is None


@pytest.mark.asyncio
async def test_generate_signed_in_saves_and_awards_xp(client, store, fake_llm, roadmap_json):
    user, token, _ = await register_user(client)
    fake_llm(responses={"openai": roadmap_json})

    response = await client.post(
        "/ai/generate-roadmap", json={"topic": "Learn Python"}, headers=auth_headers(token)
    )

    assert response.status_code == 200
    roadmap = response.json()
    assert roadmap["userId"] == user["id"]
    assert roadmap["isPublic"] is False
    assert (await store.get_roadmap(roadmap["id"]))["title"] == "Python Programming Mastery"
    stats = await store.get_stats(user["id"])
    assert stats["experiencePoints"] == 50
    assert stats["roadmapsCompleted"] == 1


@pytest.mark.asyncio
async def test_generate_uses_request_api_keys(client, fake_llm, roadmap_json):
    factory = fake_llm(responses={"openai": roadmap_json})

    await client.post(
        "/ai/generate-roadmap",
        json={"topic": "Learn Python", "apiKeys": {"openai": "sk-from-request"}},
    )

    assert factory.requested[0][1]["api_key"] == "sk-from-request"


async def store_api_keys(client, user, token, keys):
    response = await client.put(
        f"/user/profile/{user['id']}", json={"apiKeys": keys}, headers=auth_headers(token)
    )
    assert response.status_code == 200, response.text


API_KEY_ORDER_CASES = [
    {"test_id": "KEYS-001", "stored": {"openai": "sk-stored"}, "sent": None, "expected": "sk-stored"},
    {"test_id": "KEYS-002", "stored": {"openai": "sk-stored"}, "sent": {"openai": "sk-sent"}, "expected": "sk-sent"},
    {"test_id": "KEYS-003", "stored": {"gemini": "g-stored"}, "sent": None, "expected": None},
    {"test_id": "KEYS-004", "stored": {}, "sent": {"openai": ""}, "expected": None},
]


@pytest.mark.asyncio
@pytest.mark.parametrize("case", API_KEY_ORDER_CASES, ids=[c["test_id"] for c in API_KEY_ORDER_CASES])
async def test_generate_api_key_lookup_order(client, fake_llm, roadmap_json, case):
    user, token, _ = await register_user(client)
    if case["stored"]:
        await store_api_keys(client, user, token, case["stored"])
    factory = fake_llm(responses={"openai": roadmap_json})

    body = {"topic": "Learn Python"}
    if case["sent"] is not None:
        body["apiKeys"] = case["sent"]
    response = await client.post("/ai/generate-roadmap", json=body, headers=auth_headers(token))

    assert response.status_code == 200
    assert factory.requested[0][1]["api_key"] == case["expected"]


@pytest.mark.asyncio
async def test_chat_uses_stored_api_key(client, fake_llm):
    user, token, _ = await register_user(client)
    await store_api_keys(client, user, token, {"perplexity": "pplx-stored"})
    factory = fake_llm(responses={"perplexity": "Markets are up."})

    response = await client.post(
        "/ai/chat", json={"message": "Stock market investing"}, headers=auth_headers(token)
    )

    assert response.status_code == 200
    provider, kwargs = factory.requested[0]
    assert provider == "perplexity"
    assert kwargs["api_key"] == "pplx-stored"


@pytest.mark.asyncio
async def test_stored_api_keys_are_not_used_for_anonymous_calls(client, fake_llm, roadmap_json):
    user, token, _ = await register_user(client)
    await store_api_keys(client, user, token, {"openai": "sk-stored"})
    client.cookies.clear()
    factory = fake_llm(responses={"openai": roadmap_json})

    await client.post("/ai/generate-roadmap", json={"topic": "Learn Python"})

    assert factory.requested[0][1]["api_key"] is None


@pytest.mark.asyncio
async def test_generate_falls_back_to_openai(client, fake_llm, roadmap_json):
    factory = fake_llm(
        responses={"openai": roadmap_json}, errors={"gemini": RuntimeError("quota")}
    )

    response = await client.post("/ai/generate-roadmap", json={"topic": "Photography basics"})

    assert response.status_code == 200
    assert [p for p, _ in factory.requested] == ["gemini", "openai"]


@pytest.mark.asyncio
async def test_generate_failure_returns_500(client, fake_llm, monkeypatch):
    monkeypatch.delenv("DEBUG_TRACEBACK", raising=False)
    fake_llm(errors={"gemini": RuntimeError("down"), "openai": RuntimeError("also down")})

    response = await client.post("/ai/generate-roadmap", json={"topic": "Yoga and meditation"})

    assert response.status_code == 500
    assert response.json() == {
        "detail": "Failed to generate roadmap",
        "message": "All AI providers failed to generate roadmap",
    }


@pytest.mark.asyncio
async def test_generate_rejects_blank_topic(client, fake_llm):
    factory = fake_llm()

    response = await client.post("/ai/generate-roadmap", json={"topic": "   "})

    assert response.status_code == 422
    assert factory.requested == []


@pytest.mark.asyncio
async def test_chat(client, fake_llm):
    factory = fake_llm(responses={"perplexity": "Rates moved up this week."})

    response = await client.post(
        "/ai/chat", json={"message": "Stock market investing", "context": "weekly review"}
    )

    assert response.status_code == 200
    assert response.json() == {"response": "Rates moved up this week.", "provider": "perplexity"}
    assert [p for p, _ in factory.requested] == ["perplexity"]


@pytest.mark.asyncio
async def test_chat_failure(client, fake_llm, monkeypatch):
    monkeypatch.delenv("DEBUG_TRACEBACK", raising=False)
    fake_llm(errors={"openai": RuntimeError("OpenAI API key not configured")})

    response = await client.post("/ai/chat", json={"message": "Explain Python generators"})

    assert response.status_code == 500
    assert response.json()["detail"] == "Failed to get AI response"
    assert response.json()["message"] == "OpenAI API key not configured"


CLASSIFY_CASES = [
    {"test_id": "CLASSIFY-001", "topic": "Learn Python", "provider": "openai"},
    {"test_id": "CLASSIFY-002", "topic": "Photography basics", "provider": "gemini"},
    {"test_id": "CLASSIFY-003", "topic": "Cryptocurrency news", "provider": "perplexity"},
]


@pytest.mark.asyncio
@pytest.mark.parametrize("case", CLASSIFY_CASES, ids=[c["test_id"] for c in CLASSIFY_CASES])
async def test_classify_topic(client, case):
    response = await client.post("/ai/classify-topic", json={"topic": case["topic"]})

    assert response.status_code == 200
    data = response.json()
    assert data["topic"] == case["topic"]
    assert data["recommendedProvider"] == case["provider"]
    assert case["provider"].upper() in data["explanation"]


@pytest.mark.asyncio
async def test_improve_roadmap(client, store, fake_llm):
    await store.save_roadmap(sample_roadmap(id="r1", userId="owner", isPublic=True))
    factory = fake_llm(responses={"openai": "Add a project module."})

    response = await client.post(
        "/ai/improve-roadmap", json={"roadmapId": "r1", "feedback": "More projects"}
    )

    assert response.status_code == 200
    assert response.json() == {
        "roadmapId": "r1",
        "suggestions": "Add a project module.",
        "provider": "openai",
    }
    assert "More projects" in factory.llms["openai"][0].calls[0][1].content


@pytest.mark.asyncio
async def test_improve_private_roadmap_is_owner_only(client, fake_llm):
    _, owner_token, _ = await register_user(client, "owner@example.com")
    roadmap = (
        await client.post("/roadmap", json=sample_roadmap(), headers=auth_headers(owner_token))
    ).json()
    _, other_token, _ = await register_user(client, "other@example.com")
    factory = fake_llm(responses={"openai": "Add a capstone."})
    body = {"roadmapId": roadmap["id"], "feedback": "More practice"}

    response = await client.post("/ai/improve-roadmap", json=body, headers=auth_headers(other_token))
    assert response.status_code == 404
    assert response.json()["detail"] == "Roadmap not found"

    client.cookies.clear()
    response = await client.post("/ai/improve-roadmap", json=body)
    assert response.status_code == 404
    assert factory.requested == []

    response = await client.post("/ai/improve-roadmap", json=body, headers=auth_headers(owner_token))
    assert response.status_code == 200
    assert response.json()["suggestions"] == "Add a capstone."


@pytest.mark.asyncio
async def test_improve_unknown_roadmap(client, fake_llm):
    factory = fake_llm()

    response = await client.post("/ai/improve-roadmap", json={"roadmapId": "missing"})

    assert response.status_code == 404
    assert response.json()["detail"] == "Roadmap not found"
    assert factory.requested == []


@pytest.mark.asyncio
async def test_similar_roadmaps(client, monkeypatch):
    seen = {}

    def search(embedding, limit):
        seen["limit"] = limit
        return [{"roadmapId": "r1", "title": "Rust", "description": "Systems", "similarity": 0.82}]

    monkeypatch.setattr(ai_router, "search_similar_roadmaps", search)

    response = await client.post("/ai/similar-roadmaps", json={"topic": "Rust", "limit": 4})

    assert response.status_code == 200
    assert response.json() == {
        "topic": "Rust",
        "similar": [
            {"roadmapId": "r1", "title": "Rust", "description": "Systems", "similarity": 0.82}
        ],
    }
    assert seen["limit"] == 4
