"""LLM model configuration and initialization.

This module provides functions for creating the chat models of the three
roadmap providers and the embedding client. All returned chat models support
both sync (invoke) and async (ainvoke) operations.

API keys sent with a request override the keys stored on the user profile,
which override the environment keys. A provider with no key at all raises
ProviderNotConfiguredError.
"""

import os
from dotenv import load_dotenv

# Load environment variables
load_dotenv()

from langchain_openai import ChatOpenAI
from openai import AsyncOpenAI
from typing import Optional

OPENAI_MODEL = os.environ.get("OPENAI_MODEL", "gpt-4")
GEMINI_MODEL = os.environ.get("GEMINI_MODEL", "gemini-1.5-flash")
PERPLEXITY_MODEL = os.environ.get("PERPLEXITY_MODEL", "sonar")
EMBEDDING_MODEL = os.environ.get("EMBEDDING_MODEL", "text-embedding-ada-002")
EMBEDDING_DIMENSIONS = 1536

PERPLEXITY_BASE_URL = "https://api.perplexity.ai"

PROVIDER_DISPLAY_NAMES = {
    "openai": "OpenAI",
    "gemini": "Gemini",
    "perplexity": "Perplexity",
}


class ProviderNotConfiguredError(Exception):
    """Raised when neither the user nor the environment supplies a provider key."""

    def __init__(self, provider: str):
        self.provider = provider
        super().__init__(
            f"{PROVIDER_DISPLAY_NAMES.get(provider, provider)} API key not configured"
        )


def select_api_keys(request_keys: Optional[dict], stored_keys: Optional[dict]) -> dict:
    """Per provider, the key sent with the request wins over the stored user key."""
    keys = {p: k for p, k in (stored_keys or {}).items() if k}
    keys.update({p: k for p, k in (request_keys or {}).items() if k})
    return keys


def resolve_api_key(provider: str, user_api_key: Optional[str] = None) -> str:
    """Pick the user key first, then the environment key for ``provider``."""
    if user_api_key:
        return user_api_key

    if provider == "openai":
        api_key = os.getenv("OPENAI_API_KEY")
    elif provider == "gemini":
        api_key = os.getenv("GOOGLE_GEMINI_API_KEY") or os.getenv("GOOGLE_API_KEY")
    elif provider == "perplexity":
        api_key = os.getenv("PERPLEXITY_API_KEY")
    else:
        api_key = None

    if not api_key:
        raise ProviderNotConfiguredError(provider)
    return api_key


# ===============================================================================
# OpenAI Chat Models
# ===============================================================================
def get_openai_llm(
    model_name: str = OPENAI_MODEL,
    temperature: Optional[float] = 0.7,
    max_tokens: Optional[int] = None,
    api_key: Optional[str] = None,
) -> ChatOpenAI:
    """Get an instance of OpenAI Chat LLM.

    Args:
        model_name (str): OpenAI model name (e.g., "gpt-4", "gpt-4o")
        temperature (Optional[float]): Temperature setting for generation randomness
        max_tokens (Optional[int]): Upper bound on generated tokens
        api_key (Optional[str]): User key overriding OPENAI_API_KEY

    Returns:
        ChatOpenAI: Configured LLM instance with async support
    """
    kwargs = {
        "model": model_name,
        "api_key": resolve_api_key("openai", api_key),
    }

    if temperature is not None:
        kwargs["temperature"] = temperature
    if max_tokens is not None:
        kwargs["max_tokens"] = max_tokens

    return ChatOpenAI(**kwargs)


# ===============================================================================
# Google Gemini Models
# ===============================================================================
def get_gemini_llm(
    model_name: str = GEMINI_MODEL,
    temperature: float = 0.7,
    max_tokens: Optional[int] = None,
    api_key: Optional[str] = None,
):
    """Get an instance of Google Gemini LLM with standard configuration.

    Args:
        model_name (str): The Gemini model name (e.g., "gemini-1.5-flash", "gemini-1.5-pro")
        temperature (float): Temperature setting for generation randomness
        max_tokens (Optional[int]): Upper bound on generated tokens
        api_key (Optional[str]): User key overriding GOOGLE_GEMINI_API_KEY / GOOGLE_API_KEY

    Returns:
        ChatGoogleGenerativeAI: Configured LLM instance with async support
    """
    from langchain_google_genai import ChatGoogleGenerativeAI

    kwargs = {
        "model": model_name,
        "temperature": temperature,
        "google_api_key": resolve_api_key("gemini", api_key),
    }
    if max_tokens is not None:
        kwargs["max_output_tokens"] = max_tokens

    return ChatGoogleGenerativeAI(**kwargs)


# ===============================================================================
# Perplexity Models (OpenAI-compatible API)
# ===============================================================================
def get_perplexity_llm(
    model_name: str = PERPLEXITY_MODEL,
    temperature: Optional[float] = 0.7,
    max_tokens: Optional[int] = None,
    api_key: Optional[str] = None,
) -> ChatOpenAI:
    """Get an instance of a Perplexity model through its OpenAI-compatible API.

    Returns:
        ChatOpenAI: Configured LLM instance with async support
    """
    kwargs = {
        "model": model_name,
        "api_key": resolve_api_key("perplexity", api_key),
        "base_url": PERPLEXITY_BASE_URL,
    }

    if temperature is not None:
        kwargs["temperature"] = temperature
    if max_tokens is not None:
        kwargs["max_tokens"] = max_tokens

    return ChatOpenAI(**kwargs)


def get_llm(provider: str, **kwargs):
    """Dispatch to the getter of ``provider``; unknown providers use OpenAI."""
    if provider == "gemini":
        return get_gemini_llm(**kwargs)
    if provider == "perplexity":
        return get_perplexity_llm(**kwargs)
    return get_openai_llm(**kwargs)


# ===============================================================================
# Embeddings
# ===============================================================================
def get_embedding_client(api_key: Optional[str] = None) -> AsyncOpenAI:
    """Get an async OpenAI client for the embeddings endpoint."""
    return AsyncOpenAI(api_key=resolve_api_key("openai", api_key))
