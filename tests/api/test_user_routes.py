"""User routes: profile, preferences, stats and the leaderboard."""

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

from tests.helpers import auth_headers, register_user

OWNER_ONLY_ENDPOINTS = [
    {"test_id": "USER-001", "method": "PUT", "path": "/user/profile/{other}", "json": {"bio": "x"}},
    {"test_id": "USER-002", "method": "PUT", "path": "/user/preferences/{other}", "json": {"theme": "dark"}},
    {"test_id": "USER-003", "method": "GET", "path": "/user/stats/{other}", "json": None},
    {"test_id": "USER-004", "method": "PUT", "path": "/user/stats/{other}", "json": {"streak": 1}},
]


@pytest.mark.asyncio
@pytest.mark.parametrize("case", OWNER_ONLY_ENDPOINTS, ids=[c["test_id"] for c in OWNER_ONLY_ENDPOINTS])
async def test_other_users_data_is_forbidden(client, case):
    _, token, _ = await register_user(client, "me@example.com")
    other, _, _ = await register_user(client, "other@example.com")

    response = await client.request(
        case["method"],
        case["path"].format(other=other["id"]),
        json=case["json"],
        headers=auth_headers(token),
    )

    assert response.status_code == 403
    assert response.json()["detail"] == "Access denied"


@pytest.mark.asyncio
async def test_update_profile(client):
    user, token, _ = await register_user(client)

    response = await client.put(
        f"/user/profile/{user['id']}",
        json={
            "name": "Renamed",
            "bio": "Learning every day",
            "learningGoals": ["Rust", "Go"],
            "email": "ignored@example.com",
        },
        headers=auth_headers(token),
    )

    assert response.status_code == 200
    updated = response.json()["user"]
    assert updated["name"] == "Renamed"
    assert updated["bio"] == "Learning every day"
    assert updated["learningGoals"] == ["Rust", "Go"]
    assert updated["email"] == user["email"]


@pytest.mark.asyncio
async def test_profile_api_keys_are_stored_but_never_returned(client, store):
    user, token, _ = await register_user(client)

    response = await client.put(
        f"/user/profile/{user['id']}",
        json={"bio": "Keys saved", "apiKeys": {"openai": "sk-stored-openai", "gemini": "g-stored"}},
        headers=auth_headers(token),
    )

    assert response.status_code == 200
    assert response.json()["user"]["bio"] == "Keys saved"
    assert await store.get_api_keys(user["id"]) == {
        "openai": "sk-stored-openai",
        "gemini": "g-stored",
    }

    me = await client.get("/auth/me", headers=auth_headers(token))
    for body in (response.text, me.text):
        assert "apiKeys" not in body
        assert "api_keys" not in body
        assert "sk-stored-openai" not in body
        assert "g-stored" not in body


@pytest.mark.asyncio
async def test_profile_api_key_can_be_removed(client, store):
    user, token, _ = await register_user(client)
    url = f"/user/profile/{user['id']}"
    await client.put(
        url, json={"apiKeys": {"openai": "sk-old", "perplexity": "pplx-old"}}, headers=auth_headers(token)
    )

    response = await client.put(url, json={"apiKeys": {"openai": ""}}, headers=auth_headers(token))

    assert response.status_code == 200
    assert await store.get_api_keys(user["id"]) == {"perplexity": "pplx-old"}


@pytest.mark.asyncio
async def test_update_preferences(client):
    user, token, _ = await register_user(client)

    response = await client.put(
        f"/user/preferences/{user['id']}",
        json={"theme": "dark", "weeklyDigest": False},
        headers=auth_headers(token),
    )

    assert response.status_code == 200
    assert response.json()["preferences"] == {
        "emailNotifications": True,
        "weeklyDigest": False,
        "achievementAlerts": True,
        "theme": "dark",
    }


@pytest.mark.asyncio
async def test_update_preferences_rejects_unknown_theme(client):
    user, token, _ = await register_user(client)

    response = await client.put(
        f"/user/preferences/{user['id']}", json={"theme": "neon"}, headers=auth_headers(token)
    )

    assert response.status_code == 422


@pytest.mark.asyncio
async def test_get_and_update_stats(client):
    user, token, _ = await register_user(client)

    response = await client.get(f"/user/stats/{user['id']}", headers=auth_headers(token))
    assert response.status_code == 200
    assert response.json()["stats"]["experiencePoints"] == 0

    response = await client.put(
        f"/user/stats/{user['id']}",
        json={"experiencePoints": 650, "weeklyGoal": 15},
        headers=auth_headers(token),
    )
    assert response.status_code == 200
    data = response.json()
    assert data["leveledUp"] is True
    assert data["stats"]["level"] == 3
    assert data["stats"]["weeklyGoal"] == 15
    assert data["stats"]["streak"] == 1
    assert data["stats"]["lastActiveDate"]


@pytest.mark.asyncio
async def test_leaderboard(client):
    first, first_token, _ = await register_user(client, "first@example.com", "First")
    await register_user(client, "second@example.com", "Second")
    await client.put(
        f"/user/stats/{first['id']}",
        json={"experiencePoints": 900},
        headers=auth_headers(first_token),
    )

    response = await client.get("/user/leaderboard", params={"limit": 5})

    assert response.status_code == 200
    board = response.json()["leaderboard"]
    assert [entry["name"] for entry in board] == ["First", "Second"]
    assert board[0] == {
        "rank": 1,
        "name": "First",
        "profileImage": "",
        "experiencePoints": 900,
        "level": 4,
    }
