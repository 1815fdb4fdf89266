"""Session tokens: generation, fixed 24h expiry and validation.

The session token is separate from the JWT. It is stored in user_sessions,
checked by GET /auth/session and swept by the session monitor.
"""

from __future__ import annotations

import secrets
import string
import time
from datetime import datetime, timedelta, timezone

from api.config.settings import SESSION_DURATION_HOURS
from api.utils.debug import print__session_debug

BASE36_ALPHABET = string.digits + string.ascii_lowercase


def random_base36(length: int = 9) -> str:
    return "".join(secrets.choice(BASE36_ALPHABET) for _ in range(length))


def generate_session_token() -> str:
    """Return ``session_<epoch-ms>_<9 random base36 chars>``."""
    return f"session_{int(time.time() * 1000)}_{random_base36(9)}"


def get_session_expiry(now: datetime | None = None) -> datetime:
    now = now or datetime.now(timezone.utc)
    return now + timedelta(hours=SESSION_DURATION_HOURS)


def _as_datetime(value) -> datetime:
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=timezone.utc)
    parsed = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)


def is_session_expired(session: dict | None, now: datetime | None = None) -> bool:
    """A missing session counts as expired."""
    if not session or not session.get("expiresAt"):
        return True
    now = now or datetime.now(timezone.utc)
    expired = _as_datetime(session["expiresAt"]) <= now
    if expired:
        print__session_debug(f"⌛ Session expired for user {session.get('userId')}")
    return expired


async def create_user_session(store, user_id: str) -> dict:
    """Create and persist a new 24h session for the user."""
    token = generate_session_token()
    session = await store.create_session(user_id, token, get_session_expiry())
    print__session_debug(f"✅ Session created for user {user_id}")
    return session


async def validate_session(store, token: str) -> tuple[dict | None, str | None]:
    """Return (session, None) when valid, else (None, reason).

    Expired sessions are deleted as a side effect.
    """
    session = await store.get_session(token)
    if session is None:
        return None, "Session not found"
    if is_session_expired(session):
        await store.delete_session(token)
        return None, "Session expired"
    return session, None
