# CRITICAL: Set Windows event loop policy FIRST, before any other imports
# This must be the very first thing that happens to fix psycopg compatibility
import os
import sys

if sys.platform == "win32":
    import asyncio

    asyncio.set_event_loop_policy(asyncio.WindowsSelectorEventLoopPolicy())

# Load environment variables early
from dotenv import load_dotenv

load_dotenv()

# Constants
try:
    from pathlib import Path

    BASE_DIR = Path(__file__).resolve().parents[2]
except NameError:
    BASE_DIR = Path(os.getcwd()).parents[0]

import hashlib
import hmac
import secrets
from datetime import datetime, timedelta, timezone

# Standard imports
import jwt
from fastapi import HTTPException

# Import constants from api.config.settings
from api.config.settings import JWT_ALGORITHM, JWT_EXPIRES_DAYS, JWT_SECRET

# Import debug utilities
from api.utils.debug import print__token_debug

PBKDF2_DIGEST = "sha256"
PBKDF2_ITERATIONS = 200_000
PASSWORD_HASH_PREFIX = "pbkdf2_sha256"


# ============================================================
# PASSWORD HASHING
# ============================================================
def _pbkdf2_hash(password: str, salt_hex: str, iterations: int) -> str:
    return hashlib.pbkdf2_hmac(
        PBKDF2_DIGEST,
        password.encode("utf-8"),
        bytes.fromhex(salt_hex),
        iterations,
    ).hex()


def hash_password(password: str) -> str:
    """Return ``pbkdf2_sha256$<iterations>$<salt hex>$<hash hex>``."""
    salt_hex = secrets.token_bytes(16).hex()
    derived = _pbkdf2_hash(password, salt_hex, PBKDF2_ITERATIONS)
    return f"{PASSWORD_HASH_PREFIX}${PBKDF2_ITERATIONS}${salt_hex}${derived}"


def verify_password(password: str, stored_hash: str) -> bool:
    try:
        prefix, iterations, salt_hex, expected = (stored_hash or "").split("$")
        if prefix != PASSWORD_HASH_PREFIX:
            return False
        derived = _pbkdf2_hash(password, salt_hex, int(iterations))
    except ValueError:
        return False
    return hmac.compare_digest(expected, derived)


# ============================================================
# AUTHENTICATION - JWT ISSUE AND VERIFICATION
# ============================================================
def create_access_token(user: dict, now: datetime = None) -> str:
    """Issue an HS256 token for ``user`` valid for JWT_EXPIRES_DAYS days."""
    now = now or datetime.now(timezone.utc)
    payload = {
        "sub": str(user["id"]),
        "email": user.get("email"),
        "name": user.get("name"),
        "iat": now,
        "exp": now + timedelta(days=JWT_EXPIRES_DAYS),
    }
    return jwt.encode(payload, JWT_SECRET, algorithm=JWT_ALGORITHM)


def verify_app_jwt(token: str) -> dict:
    """Decode an app-issued token, raising 401 for anything unusable."""
    # JWT tokens must have exactly 3 parts separated by dots (header.payload.signature)
    if not token or len(token.split(".")) != 3:
        raise HTTPException(status_code=401, detail="Invalid JWT token format")

    try:
        payload = jwt.decode(token, JWT_SECRET, algorithms=[JWT_ALGORITHM])
    except jwt.ExpiredSignatureError:
        print__token_debug("JWT token has expired")
        raise HTTPException(status_code=401, detail="Token has expired")
    except jwt.InvalidTokenError as e:
        print__token_debug(f"JWT validation failed: {e}")
        raise HTTPException(status_code=401, detail="Invalid token")

    if not payload.get("sub"):
        print__token_debug("JWT token has no subject")
        raise HTTPException(status_code=401, detail="Invalid token")

    print__token_debug(f"✅ JWT verified for user {payload['sub']}")
    return payload
