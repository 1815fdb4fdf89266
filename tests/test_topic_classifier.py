"""
Tests for the keyword topic classifier.
Each topic is routed to exactly one provider; openai keywords are scanned
first, then gemini, then perplexity, with openai as the default.
"""

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

from roadmap_ai.classifier import (
    GEMINI_KEYWORDS,
    OPENAI_KEYWORDS,
    PERPLEXITY_KEYWORDS,
    classify_topic,
    explain_recommendation,
)

CLASSIFICATION_CASES = [
    {"test_id": "CLS-001", "topic": "Learn Python", "expected": "openai"},
    {"test_id": "CLS-002", "topic": "Kubernetes for beginners", "expected": "openai"},
    {"test_id": "CLS-003", "topic": "MACHINE LEARNING", "expected": "openai"},
    {"test_id": "CLS-004", "topic": "Photography basics", "expected": "gemini"},
    {"test_id": "CLS-005", "topic": "Yoga and meditation", "expected": "gemini"},
    {"test_id": "CLS-006", "topic": "Stock market investing", "expected": "perplexity"},
    {"test_id": "CLS-007", "topic": "Cryptocurrency news", "expected": "perplexity"},
    {"test_id": "CLS-008", "topic": "Underwater basket weaving", "expected": "openai"},
    {"test_id": "CLS-009", "topic": "", "expected": "openai"},
    # openai keywords win over later lists
    {"test_id": "CLS-010", "topic": "UI design with React", "expected": "openai"},
    # "digital marketing" contains "git", an openai keyword
    {"test_id": "CLS-011", "topic": "Digital marketing", "expected": "openai"},
]


@pytest.mark.parametrize(
    "case", CLASSIFICATION_CASES, ids=[c["test_id"] for c in CLASSIFICATION_CASES]
)
def test_classify_topic(case):
    assert classify_topic(case["topic"]) == case["expected"]


def test_classify_topic_handles_none():
    assert classify_topic(None) == "openai"


def test_keyword_lists_are_lower_case():
    for keyword in OPENAI_KEYWORDS + GEMINI_KEYWORDS + PERPLEXITY_KEYWORDS:
        assert keyword == keyword.lower()


def test_explain_recommendation():
    assert explain_recommendation("Photography basics", "gemini") == (
        'Based on the topic "Photography basics", we recommend using '
        "GEMINI for the best results."
    )
