"""AI router: picks a provider for a topic and turns its answer into a roadmap.

Generation flow:
    topic -> classify_topic -> provider prompt -> llm.ainvoke -> JSON parse
    -> id/createdAt/progress -> YouTube enrichment -> embedding upsert

A failing non-OpenAI provider is retried once with OpenAI. Chat requests are
never retried with another provider.
"""

import asyncio
import json
import re
from datetime import datetime, timezone
from typing import Optional

from langchain_core.messages import HumanMessage, SystemMessage

from api.utils.debug import print__ai_router_debug
from persistence.sessions import random_base36
from roadmap_ai.classifier import classify_topic
from roadmap_ai.models import (
    EMBEDDING_DIMENSIONS,
    EMBEDDING_MODEL,
    PROVIDER_DISPLAY_NAMES,
    get_embedding_client,
    get_llm,
)
from roadmap_ai.prompts import (
    CHAT_SYSTEM_PROMPT,
    IMPROVEMENT_CONTEXT,
    PERPLEXITY_CHAT_SYSTEM_PROMPT,
    build_chat_user_content,
    build_improvement_prompt,
    build_roadmap_prompt,
)
from roadmap_ai.vector_store import add_roadmap_embedding, search_similar_roadmaps
from roadmap_ai.youtube import enhance_with_youtube_videos

ROADMAP_TEMPERATURE = 0.7
ROADMAP_MAX_TOKENS = 3000
CHAT_MAX_TOKENS = 1000
SIMILAR_ROADMAPS_LIMIT = 3
FALLBACK_PROVIDER = "openai"

CODE_FENCE_PATTERN = re.compile(r"```(?:json)?\s*(.*?)\s*```", re.DOTALL)


class RoadmapGenerationError(Exception):
    """Raised when no provider produced a usable roadmap."""


# ==============================================================================
# HELPERS
# ==============================================================================
def generate_id() -> str:
    return random_base36(9)


def message_text(content) -> str:
    """Flatten a chat model's content (string or list of parts) into text."""
    if isinstance(content, str):
        return content
    parts = []
    for part in content or []:
        if isinstance(part, str):
            parts.append(part)
        elif isinstance(part, dict) and part.get("type", "text") == "text":
            parts.append(part.get("text", ""))
    return "".join(parts)


def parse_roadmap_json(content: str, provider: str) -> dict:
    """Parse the model answer, tolerating markdown code fences around the JSON."""
    text = (content or "").strip()
    fenced = CODE_FENCE_PATTERN.search(text)
    if fenced:
        text = fenced.group(1)

    try:
        roadmap = json.loads(text)
    except (TypeError, ValueError):
        roadmap = None

    if not isinstance(roadmap, dict):
        print__ai_router_debug(f"❌ Failed to parse {provider} response: {content[:500] if content else content}")
        raise RoadmapGenerationError(
            f"Invalid response format from {PROVIDER_DISPLAY_NAMES.get(provider, provider)}"
        )
    return roadmap


async def _ask(provider: str, messages: list, max_tokens: int, api_key: Optional[str]) -> str:
    llm = get_llm(
        provider,
        temperature=ROADMAP_TEMPERATURE,
        max_tokens=max_tokens,
        api_key=api_key,
    )
    result = await llm.ainvoke(messages)
    return message_text(result.content)


# ==============================================================================
# EMBEDDINGS AND SIMILARITY
# ==============================================================================
async def generate_embedding(text: str, api_key: Optional[str] = None) -> list:
    """Embed ``text``; a zero vector is returned when embedding fails."""
    try:
        client = get_embedding_client(api_key)
        response = await client.embeddings.create(model=EMBEDDING_MODEL, input=text)
        return response.data[0].embedding
    except Exception as e:
        print__ai_router_debug(f"❌ Error generating embedding: {e}")
        return [0.0] * EMBEDDING_DIMENSIONS


async def store_roadmap_embedding(roadmap: dict, api_key: Optional[str] = None) -> bool:
    try:
        embedding = await generate_embedding(
            f"{roadmap.get('title', '')} {roadmap.get('description', '')}", api_key
        )
        loop = asyncio.get_event_loop()
        stored = await loop.run_in_executor(
            None,
            lambda: add_roadmap_embedding(
                roadmap["id"],
                roadmap.get("title", ""),
                roadmap.get("description", ""),
                embedding,
            ),
        )
    except Exception as e:
        print__ai_router_debug(f"⚠️ Could not save roadmap embedding: {e}")
        return False

    if stored:
        print__ai_router_debug(f"✅ Roadmap embedding saved for {roadmap['id']}")
    else:
        print__ai_router_debug(f"⚠️ Could not save roadmap embedding for {roadmap['id']}")
    return stored


async def find_similar_roadmaps(topic: str, limit: int = SIMILAR_ROADMAPS_LIMIT) -> list:
    try:
        embedding = await generate_embedding(topic)
        loop = asyncio.get_event_loop()
        return await loop.run_in_executor(
            None, lambda: search_similar_roadmaps(embedding, limit)
        )
    except Exception as e:
        print__ai_router_debug(f"❌ Error finding similar roadmaps: {e}")
        return []


# ==============================================================================
# ROADMAP GENERATION
# ==============================================================================
async def generate_with_provider(
    provider: str, topic: str, api_key: Optional[str] = None
) -> dict:
    """Generate, enrich and index a roadmap with one specific provider."""
    prompt = build_roadmap_prompt(provider, topic)
    content = await _ask(provider, [HumanMessage(content=prompt)], ROADMAP_MAX_TOKENS, api_key)

    roadmap = parse_roadmap_json(content, provider)
    roadmap["id"] = generate_id()
    roadmap["createdAt"] = datetime.now(timezone.utc).isoformat()
    roadmap["progress"] = 0

    # requests-based enrichment runs in a worker thread
    loop = asyncio.get_event_loop()
    roadmap = await loop.run_in_executor(None, enhance_with_youtube_videos, roadmap)

    await store_roadmap_embedding(roadmap)
    return roadmap


async def generate_roadmap(topic: str, user_api_keys: Optional[dict] = None) -> dict:
    user_api_keys = user_api_keys or {}
    provider = classify_topic(topic)
    print__ai_router_debug(f'🧭 Routing topic "{topic}" to {provider}')

    try:
        return await generate_with_provider(provider, topic, user_api_keys.get(provider))
    except Exception as e:
        print__ai_router_debug(f"❌ Error with {provider}: {e}")
        if provider == FALLBACK_PROVIDER:
            raise

    print__ai_router_debug(f"🔄 Falling back to {FALLBACK_PROVIDER}...")
    try:
        return await generate_with_provider(
            FALLBACK_PROVIDER, topic, user_api_keys.get(FALLBACK_PROVIDER)
        )
    except Exception as fallback_error:
        print__ai_router_debug(f"❌ Fallback to {FALLBACK_PROVIDER} failed: {fallback_error}")
        raise RoadmapGenerationError(
            "All AI providers failed to generate roadmap"
        ) from fallback_error


# ==============================================================================
# CHAT
# ==============================================================================
def build_chat_messages(provider: str, message: str, context: str) -> list:
    user_content = build_chat_user_content(message, context)
    if provider == "gemini":
        return [HumanMessage(content=user_content)]
    system_prompt = (
        PERPLEXITY_CHAT_SYSTEM_PROMPT if provider == "perplexity" else CHAT_SYSTEM_PROMPT
    )
    return [SystemMessage(content=system_prompt), HumanMessage(content=user_content)]


async def generate_chat_response(
    message: str, context: Optional[str] = None, user_api_keys: Optional[dict] = None
) -> dict:
    user_api_keys = user_api_keys or {}
    provider = classify_topic(message)
    print__ai_router_debug(f"💬 Chat routed to {provider}")

    try:
        response = await _ask(
            provider,
            build_chat_messages(provider, message, context or ""),
            CHAT_MAX_TOKENS,
            user_api_keys.get(provider),
        )
    except Exception as e:
        print__ai_router_debug(f"❌ Error with {provider}: {e}")
        raise

    return {"response": response, "provider": provider}


async def improve_roadmap(
    roadmap: dict, feedback: Optional[str] = None, user_api_keys: Optional[dict] = None
) -> dict:
    return await generate_chat_response(
        build_improvement_prompt(roadmap, feedback), IMPROVEMENT_CONTEXT, user_api_keys
    )
