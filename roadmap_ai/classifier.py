"""Keyword topic classifier that picks the provider for a topic."""

OPENAI_KEYWORDS = [
    "programming", "coding", "software", "development", "algorithm", "data structure",
    "web development", "frontend", "backend", "fullstack", "javascript", "python",
    "java", "react", "node", "express", "database", "sql", "mongodb", "api",
    "framework", "library", "git", "devops", "cloud", "aws", "docker", "kubernetes",
    "machine learning", "ai", "deep learning", "neural network", "tensorflow",
    "computer science", "dsa", "leetcode", "system design", "architecture",
]  # fmt: skip

GEMINI_KEYWORDS = [
    "design", "creative", "art", "drawing", "painting", "music", "writing",
    "content creation", "video editing", "photography", "graphic design",
    "ui design", "ux design", "animation", "storytelling", "marketing",
    "branding", "social media", "cooking", "recipe", "lifestyle", "fitness",
    "health", "wellness", "meditation", "yoga", "travel", "language learning",
]  # fmt: skip

PERPLEXITY_KEYWORDS = [
    "news", "current events", "trends", "market analysis", "stock market",
    "cryptocurrency", "blockchain", "finance", "economics", "research",
    "academic", "scientific", "medical", "healthcare", "technology trends",
    "startup", "business", "entrepreneurship", "industry analysis",
    "seo", "digital marketing", "analytics", "growth hacking",
]  # fmt: skip

# Scan order matters: plain substring matching, first hit wins.
TOPIC_CLASSIFIER = [
    ("openai", OPENAI_KEYWORDS),
    ("gemini", GEMINI_KEYWORDS),
    ("perplexity", PERPLEXITY_KEYWORDS),
]

DEFAULT_PROVIDER = "openai"


def classify_topic(topic: str) -> str:
    """Return the provider for ``topic``: openai, gemini or perplexity."""
    topic_lower = (topic or "").lower()
    for provider, keywords in TOPIC_CLASSIFIER:
        for keyword in keywords:
            if keyword in topic_lower:
                return provider
    return DEFAULT_PROVIDER


def explain_recommendation(topic: str, provider: str) -> str:
    return (
        f'Based on the topic "{topic}", we recommend using '
        f"{provider.upper()} for the best results."
    )
