"""
Tests for the AI router: provider routing, JSON parsing, the single
OpenAI fallback, chat message building and the embedding helpers.
Chat models are replaced by FakeLLMFactory; nothing leaves the process.
"""

import json
import os
import sys
from pathlib import Path

# CRITICAL: Set Windows event loop policy FIRST, before other imports
if sys.platform == "win32":
    import asyncio

    asyncio.set_event_loop_policy(asyncio.WindowsSelectorEventLoopPolicy())

try:
    BASE_DIR = Path(__file__).resolve().parents[1]
except NameError:
    BASE_DIR = Path(os.getcwd())

sys.path.insert(0, str(BASE_DIR))

import pytest
from langchain_core.messages import HumanMessage, SystemMessage

from roadmap_ai import router as ai_router
from roadmap_ai.models import (
    EMBEDDING_DIMENSIONS,
    EMBEDDING_MODEL,
    PERPLEXITY_BASE_URL,
    PERPLEXITY_MODEL,
    ProviderNotConfiguredError,
    get_llm,
    resolve_api_key,
    select_api_keys,
)
from roadmap_ai.prompts import (
    CHAT_SYSTEM_PROMPT,
    PERPLEXITY_CHAT_SYSTEM_PROMPT,
    build_roadmap_prompt,
)
from roadmap_ai.router import (
    RoadmapGenerationError,
    build_chat_messages,
    generate_chat_response,
    generate_roadmap,
    improve_roadmap,
    message_text,
    parse_roadmap_json,
)
from tests.helpers import sample_roadmap

# conftest replaces this on the module for every test
real_generate_embedding = ai_router.generate_embedding


# ==============================================================================
# PARSING
# ==============================================================================
PARSE_CASES = [
    {"test_id": "PARSE-001", "wrap": "```json\n{body}\n```"},
    {"test_id": "PARSE-002", "wrap": "```\n{body}\n```"},
    {"test_id": "PARSE-003", "wrap": "{body}"},
    {"test_id": "PARSE-004", "wrap": "Here is your roadmap:\n```json\n{body}\n```\nEnjoy!"},
]


@pytest.mark.parametrize("case", PARSE_CASES, ids=[c["test_id"] for c in PARSE_CASES])
def test_parse_roadmap_json(case):
    body = json.dumps({"title": "T", "modules": []})
    roadmap = parse_roadmap_json(case["wrap"].replace("{body}", body), "openai")
    assert roadmap == {"title": "T", "modules": []}


@pytest.mark.parametrize("content", ["not json at all", "", "[1, 2, 3]", None])
def test_parse_roadmap_json_invalid(content):
    with pytest.raises(RoadmapGenerationError, match="Invalid response format from Gemini"):
        parse_roadmap_json(content, "gemini")


def test_message_text_flattens_parts():
    assert message_text("plain") == "plain"
    assert message_text([{"type": "text", "text": "a"}, "b", {"type": "image"}]) == "ab"
    assert message_text(None) == ""


def test_roadmap_prompts_name_the_provider():
    for provider in ("openai", "gemini", "perplexity"):
        prompt = build_roadmap_prompt(provider, "Rust")
        assert '"Rust"' in prompt
        assert f'"aiProvider": "{provider}"' in prompt
        assert '"youtubeSearch"' in prompt


# ==============================================================================
# GENERATION
# ==============================================================================
@pytest.mark.asyncio
async def test_generate_roadmap_uses_classified_provider(fake_llm, roadmap_json):
    factory = fake_llm(responses={"openai": roadmap_json})

    roadmap = await generate_roadmap("Learn Python")

    assert [p for p, _ in factory.requested] == ["openai"]
    kwargs = factory.requested[0][1]
    assert kwargs["max_tokens"] == 3000
    assert kwargs["temperature"] == 0.7
    assert kwargs["api_key"] is None
    assert roadmap["title"] == "Python Programming Mastery"
    assert roadmap["progress"] == 0
    assert len(roadmap["id"]) == 9
    assert roadmap["createdAt"]
    prompt = factory.llms["openai"][0].calls[0][0]
    assert isinstance(prompt, HumanMessage)
    assert "Learn Python" in prompt.content


@pytest.mark.asyncio
async def test_generate_roadmap_passes_user_key(fake_llm, roadmap_json):
    factory = fake_llm(responses={"openai": roadmap_json})

    await generate_roadmap("Learn Python", {"openai": "sk-user", "gemini": "g-user"})

    assert factory.requested[0][1]["api_key"] == "sk-user"


@pytest.mark.asyncio
async def test_generate_roadmap_falls_back_to_openai(fake_llm, roadmap_json):
    factory = fake_llm(
        responses={"openai": roadmap_json},
        errors={"gemini": RuntimeError("quota exceeded")},
    )

    roadmap = await generate_roadmap("Photography basics", {"openai": "sk-user"})

    assert [p for p, _ in factory.requested] == ["gemini", "openai"]
    assert factory.requested[1][1]["api_key"] == "sk-user"
    assert roadmap["title"] == "Python Programming Mastery"


@pytest.mark.asyncio
async def test_generate_roadmap_falls_back_on_bad_json(fake_llm, roadmap_json):
    factory = fake_llm(
        responses={"perplexity": "I cannot answer that", "openai": roadmap_json}
    )

    roadmap = await generate_roadmap("Cryptocurrency news")

    assert [p for p, _ in factory.requested] == ["perplexity", "openai"]
    assert roadmap["modules"][0]["id"] == "m1"


@pytest.mark.asyncio
async def test_generate_roadmap_openai_failure_is_not_retried(fake_llm):
    factory = fake_llm(errors={"openai": RuntimeError("boom")})

    with pytest.raises(RuntimeError, match="boom"):
        await generate_roadmap("Learn Python")

    assert [p for p, _ in factory.requested] == ["openai"]


@pytest.mark.asyncio
async def test_generate_roadmap_all_providers_fail(fake_llm):
    factory = fake_llm(
        errors={"gemini": RuntimeError("down"), "openai": RuntimeError("also down")}
    )

    with pytest.raises(RoadmapGenerationError, match="All AI providers failed to generate roadmap"):
        await generate_roadmap("Yoga and meditation")

    assert [p for p, _ in factory.requested] == ["gemini", "openai"]


@pytest.mark.asyncio
async def test_generate_roadmap_enriches_and_indexes(fake_llm, roadmap_json, monkeypatch):
    fake_llm(responses={"openai": roadmap_json})
    indexed = []

    def enrich(roadmap):
        roadmap["enriched"] = True
        return roadmap

    monkeypatch.setattr(ai_router, "enhance_with_youtube_videos", enrich)
    monkeypatch.setattr(
        ai_router,
        "add_roadmap_embedding",
        lambda roadmap_id, title, description, embedding: indexed.append(
            (roadmap_id, title, len(embedding))
        )
        or True,
    )

    roadmap = await generate_roadmap("Learn Python")

    assert roadmap["enriched"] is True
    assert indexed == [(roadmap["id"], "Python Programming Mastery", 8)]


@pytest.mark.asyncio
async def test_store_roadmap_embedding_failure_is_not_fatal(monkeypatch):
    def broken(*args):
        raise RuntimeError("chromadb down")

    monkeypatch.setattr(ai_router, "add_roadmap_embedding", broken)

    stored = await ai_router.store_roadmap_embedding({"id": "abc", "title": "T"})

    assert stored is False


# ==============================================================================
# CHAT
# ==============================================================================
def test_build_chat_messages_per_provider():
    gemini = build_chat_messages("gemini", "How?", "drawing")
    assert len(gemini) == 1
    assert isinstance(gemini[0], HumanMessage)
    assert gemini[0].content == "Context: drawing\n\nQuestion: How?"

    openai = build_chat_messages("openai", "How?", "")
    assert isinstance(openai[0], SystemMessage)
    assert openai[0].content == CHAT_SYSTEM_PROMPT

    perplexity = build_chat_messages("perplexity", "How?", "")
    assert perplexity[0].content == PERPLEXITY_CHAT_SYSTEM_PROMPT


@pytest.mark.asyncio
async def test_generate_chat_response(fake_llm):
    factory = fake_llm(responses={"gemini": [{"type": "text", "text": "Use soft light."}]})

    result = await generate_chat_response("Photography basics tips", "lighting")

    assert result == {"response": "Use soft light.", "provider": "gemini"}
    assert factory.requested[0][1]["max_tokens"] == 1000
    messages = factory.llms["gemini"][0].calls[0]
    assert messages[0].content == "Context: lighting\n\nQuestion: Photography basics tips"


@pytest.mark.asyncio
async def test_generate_chat_response_has_no_fallback(fake_llm):
    factory = fake_llm(errors={"perplexity": RuntimeError("rate limited")})

    with pytest.raises(RuntimeError, match="rate limited"):
        await generate_chat_response("Stock market investing")

    assert [p for p, _ in factory.requested] == ["perplexity"]


@pytest.mark.asyncio
async def test_improve_roadmap(fake_llm):
    factory = fake_llm(responses={"openai": "Add a testing module."})

    result = await improve_roadmap(sample_roadmap(), "Too short")

    assert result == {"response": "Add a testing module.", "provider": "openai"}
    user_message = factory.llms["openai"][0].calls[0][1].content
    assert user_message.startswith("Context: roadmap improvement")
    assert "Title: Python Programming Mastery" in user_message
    assert "Current Modules: 2" in user_message
    assert "User Feedback: Too short" in user_message


# ==============================================================================
# EMBEDDINGS AND SIMILARITY
# ==============================================================================
@pytest.mark.asyncio
async def test_generate_embedding_returns_zero_vector_on_failure(monkeypatch):
    def no_client(api_key=None):
        raise ProviderNotConfiguredError("openai")

    monkeypatch.setattr(ai_router, "get_embedding_client", no_client)

    embedding = await real_generate_embedding("anything")

    assert embedding == [0.0] * EMBEDDING_DIMENSIONS


@pytest.mark.asyncio
async def test_generate_embedding_uses_client(monkeypatch):
    class Item:
        embedding = [0.5, 0.25]

    class Response:
        data = [Item()]

    class Embeddings:
        def __init__(self):
            self.calls = []

        async def create(self, model, input):
            self.calls.append((model, input))
            return Response()

    class Client:
        embeddings = Embeddings()

    monkeypatch.setattr(ai_router, "get_embedding_client", lambda api_key=None: Client())

    embedding = await real_generate_embedding("Learn Rust")

    assert embedding == [0.5, 0.25]
    assert Client.embeddings.calls == [(EMBEDDING_MODEL, "Learn Rust")]


@pytest.mark.asyncio
async def test_find_similar_roadmaps(monkeypatch):
    seen = {}

    def search(embedding, limit):
        seen["limit"] = limit
        return [{"roadmapId": "r1", "title": "Rust", "description": "", "similarity": 0.9}]

    monkeypatch.setattr(ai_router, "search_similar_roadmaps", search)

    results = await ai_router.find_similar_roadmaps("Rust")

    assert seen["limit"] == 3
    assert results[0]["roadmapId"] == "r1"


@pytest.mark.asyncio
async def test_find_similar_roadmaps_swallows_errors(monkeypatch):
    def search(embedding, limit):
        raise RuntimeError("down")

    monkeypatch.setattr(ai_router, "search_similar_roadmaps", search)

    assert await ai_router.find_similar_roadmaps("Rust") == []


# ==============================================================================
# MODELS
# ==============================================================================
def test_resolve_api_key_prefers_user_key(monkeypatch):
    monkeypatch.setenv("OPENAI_API_KEY", "sk-env")
    assert resolve_api_key("openai", "sk-user") == "sk-user"
    assert resolve_api_key("openai") == "sk-env"


def test_resolve_api_key_gemini_env_names(monkeypatch):
    monkeypatch.delenv("GOOGLE_GEMINI_API_KEY", raising=False)
    monkeypatch.setenv("GOOGLE_API_KEY", "g-env")
    assert resolve_api_key("gemini") == "g-env"


def test_resolve_api_key_missing(monkeypatch):
    monkeypatch.delenv("PERPLEXITY_API_KEY", raising=False)
    with pytest.raises(ProviderNotConfiguredError, match="Perplexity API key not configured"):
        resolve_api_key("perplexity")


SELECT_KEYS_CASES = [
    {"test_id": "SELECT-001", "sent": None, "stored": None, "expected": {}},
    {"test_id": "SELECT-002", "sent": None, "stored": {"openai": "sk-stored"}, "expected": {"openai": "sk-stored"}},
    {"test_id": "SELECT-003", "sent": {"openai": "sk-sent"}, "stored": {"openai": "sk-stored"}, "expected": {"openai": "sk-sent"}},
    {"test_id": "SELECT-004", "sent": {"openai": ""}, "stored": {"openai": "sk-stored"}, "expected": {"openai": "sk-stored"}},
    {"test_id": "SELECT-005", "sent": {"gemini": "g-sent"}, "stored": {"openai": "sk-stored"}, "expected": {"openai": "sk-stored", "gemini": "g-sent"}},
]


@pytest.mark.parametrize("case", SELECT_KEYS_CASES, ids=[c["test_id"] for c in SELECT_KEYS_CASES])
def test_select_api_keys(case):
    assert select_api_keys(case["sent"], case["stored"]) == case["expected"]


def test_get_llm_perplexity_uses_openai_compatible_endpoint():
    llm = get_llm("perplexity", api_key="pplx-test", max_tokens=100)
    assert llm.openai_api_base == PERPLEXITY_BASE_URL
    assert llm.model_name == PERPLEXITY_MODEL
    assert llm.max_tokens == 100
