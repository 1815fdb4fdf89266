"""Test helpers and utilities for the test suite."""

import copy
from datetime import datetime
from typing import Any, Dict, List

from dotenv import load_dotenv

load_dotenv()

from api.auth.jwt_auth import create_access_token

TEST_PASSWORD = "secret123"


def print_test_status(message: str):
    """Print test status messages with timestamp."""
    timestamp = datetime.now().strftime("%H:%M:%S.%f")[:-3]
    print(f"[{timestamp}] {message}")


class BaseTestResults:
    """Collects per-case results so a failing table test reports every case."""

    def __init__(self):
        self.results: List[Dict[str, Any]] = []
        self.errors: List[Dict[str, Any]] = []

    def add_result(self, test_id: str, description: str, success: bool, detail: Any = None):
        self.results.append(
            {
                "test_id": test_id,
                "description": description,
                "success": success,
                "detail": detail,
                "timestamp": datetime.now().isoformat(),
            }
        )
        status = "✅" if success else "❌"
        print_test_status(f"{status} {test_id}: {description}")

    def add_error(self, test_id: str, description: str, error: Exception):
        self.errors.append(
            {
                "test_id": test_id,
                "description": description,
                "error": str(error),
                "error_type": type(error).__name__,
            }
        )
        print_test_status(f"❌ Test {test_id} failed: {error}")

    def failed(self) -> list:
        return [r["test_id"] for r in self.results if not r["success"]] + [
            e["test_id"] for e in self.errors
        ]

    def assert_all_passed(self):
        assert not self.failed(), f"Failed cases: {self.failed()}"


# ==============================================================================
# AUTH
# ==============================================================================
def create_test_jwt_token(user: dict) -> str:
    """Issue a real app token for a user record."""
    return create_access_token(user)


def auth_headers(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}


async def register_user(client, email="learner@example.com", name="Test Learner"):
    """Register through the API and return (user, token, session)."""
    response = await client.post(
        "/auth/register",
        json={"email": email, "password": TEST_PASSWORD, "name": name},
    )
    assert response.status_code == 201, response.text
    data = response.json()
    return data["user"], data["token"], data["session"]


# ==============================================================================
# SAMPLE DATA
# ==============================================================================
SAMPLE_ROADMAP = {
    "title": "Python Programming Mastery",
    "description": "From basics to advanced Python",
    "difficulty": "beginner",
    "estimatedDuration": "6 weeks",
    "aiProvider": "openai",
    "category": "programming",
    "tags": ["python"],
    "modules": [
        {
            "id": "m1",
            "title": "Basics",
            "estimatedTime": "5 hours",
            "completed": False,
            "tasks": [
                {
                    "id": "t1",
                    "title": "Variables",
                    "difficulty": "Easy",
                    "completed": False,
                    "resources": {"youtubeSearch": "python variables"},
                },
                {
                    "id": "t2",
                    "title": "Functions",
                    "difficulty": "Medium",
                    "completed": False,
                },
            ],
        },
        {
            "id": "m2",
            "title": "Advanced",
            "estimatedTime": "10 hours",
            "completed": False,
            "tasks": [
                {"id": "t3", "title": "Decorators", "difficulty": "Hard", "completed": False},
            ],
        },
    ],
}


def sample_roadmap(**overrides) -> dict:
    roadmap = copy.deepcopy(SAMPLE_ROADMAP)
    roadmap.update(overrides)
    return roadmap


# ==============================================================================
# FAKE AI PROVIDERS
# ==============================================================================
class FakeMessage:
    def __init__(self, content):
        self.content = content


class FakeLLM:
    """Stands in for a langchain chat model; records the messages it was given."""

    def __init__(self, provider: str, response=None, error: Exception = None):
        self.provider = provider
        self.response = response
        self.error = error
        self.calls = []

    async def ainvoke(self, messages):
        self.calls.append(messages)
        if self.error is not None:
            raise self.error
        return FakeMessage(self.response)


class FakeLLMFactory:
    """Replacement for roadmap_ai.router.get_llm with per-provider behavior."""

    def __init__(self, responses: dict = None, errors: dict = None):
        self.responses = responses or {}
        self.errors = errors or {}
        self.requested = []
        self.llms = {}

    def __call__(self, provider, **kwargs):
        self.requested.append((provider, kwargs))
        llm = FakeLLM(provider, self.responses.get(provider), self.errors.get(provider))
        self.llms.setdefault(provider, []).append(llm)
        return llm


class FakeCollection:
    """Minimal chromadb collection used by the vector store tests."""

    def __init__(self, name="roadmap_embeddings", query_result=None, fail=False):
        self.name = name
        self.metadata = {"hnsw:space": "cosine"}
        self.items = {}
        self.query_result = query_result
        self.fail = fail
        self.queries = []

    def _check(self):
        if self.fail:
            raise RuntimeError("chromadb unavailable")

    def upsert(self, ids, embeddings, metadatas):
        self._check()
        for item_id, embedding, metadata in zip(ids, embeddings, metadatas):
            self.items[item_id] = {"embedding": embedding, "metadata": metadata}

    def query(self, query_embeddings, n_results, include):
        self._check()
        self.queries.append({"n_results": n_results, "include": include})
        return self.query_result or {"metadatas": [[]], "distances": [[]]}

    def delete(self, ids):
        self._check()
        for item_id in ids:
            self.items.pop(item_id, None)

    def count(self):
        self._check()
        return len(self.items)
