"""
MODULE_DESCRIPTION: Authentication Dependencies - JWT Token Verification for FastAPI

===================================================================================
PURPOSE AND OVERVIEW
===================================================================================
FastAPI dependency functions that authenticate incoming API requests with the
app-issued JWT. The token is read from the "Authorization: Bearer <token>"
header, or from the httpOnly auth_token cookie set at register/login.

Authentication Flow:
    1. Extract the token (header first, then cookie)
    2. Validate header format (must be "Bearer <token>")
    3. verify_app_jwt() checks signature and expiry
    4. Load the user from the global store by the token subject
    5. Return the public user dict (never the password hash)
    6. Raise HTTPException(401) if any step fails

get_optional_user is the same flow for routes that work anonymously
(roadmap generation): no token yields None, a bad token still yields 401.
"""

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

# Standard imports
from typing import Optional

from fastapi import Cookie, Header, HTTPException

# Import JWT verification function
from api.auth.jwt_auth import verify_app_jwt
from api.config.settings import AUTH_COOKIE_NAME

# Import debug utilities
from api.utils.debug import print__token_debug
from api.utils.memory import log_comprehensive_error
from persistence.store.factory import get_global_store


# ==============================================================================
# TOKEN EXTRACTION
# ==============================================================================
def extract_token(authorization: Optional[str], cookie_token: Optional[str]) -> Optional[str]:
    """Return the bearer token from the header, else the cookie, else None."""
    if authorization:
        if not authorization.startswith("Bearer "):
            print__token_debug("❌ AUTH ERROR: Invalid authorization header format")
            raise HTTPException(
                status_code=401,
                detail="Invalid Authorization header format. Expected 'Bearer <token>'",
            )
        auth_parts = authorization.split(" ", 1)
        if len(auth_parts) != 2 or not auth_parts[1].strip():
            print__token_debug("❌ AUTH ERROR: Malformed authorization header")
            raise HTTPException(status_code=401, detail="Invalid Authorization header format")
        return auth_parts[1].strip()

    if cookie_token:
        print__token_debug("🍪 AUTH TOKEN: Using auth_token cookie")
        return cookie_token

    return None


async def authenticate_token(token: str) -> dict:
    """Verify ``token`` and load its user; 401 if the user no longer exists."""
    payload = verify_app_jwt(token)
    store = await get_global_store()
    user = await store.get_user(payload["sub"])
    if user is None:
        print__token_debug(f"❌ AUTH ERROR: User {payload['sub']} not found")
        raise HTTPException(status_code=401, detail="User not found")
    return user


# ==============================================================================
# AUTHENTICATION DEPENDENCIES
# ==============================================================================
async def get_current_user(
    authorization: Optional[str] = Header(None),
    auth_token: Optional[str] = Cookie(None, alias=AUTH_COOKIE_NAME),
):
    """Extract and verify the JWT, returning the authenticated public user.

    Raises:
        HTTPException(401): Missing token, malformed header, invalid or
            expired token, or a user that no longer exists.
    """
    try:
        print__token_debug("🔑 AUTHENTICATION START: Beginning user authentication process")

        token = extract_token(authorization, auth_token)
        if not token:
            print__token_debug("❌ AUTH ERROR: No authorization header or cookie provided")
            raise HTTPException(status_code=401, detail="Missing Authorization header")

        user = await authenticate_token(token)
        print__token_debug(f"✅ AUTH SUCCESS: User authenticated successfully - {user['email']}")
        return user

    except HTTPException:
        raise
    except Exception as e:
        print__token_debug(f"❌ AUTH EXCEPTION: {type(e).__name__}: {str(e)}")
        log_comprehensive_error("authentication", e)
        raise HTTPException(status_code=401, detail="Authentication failed")


async def get_optional_user(
    authorization: Optional[str] = Header(None),
    auth_token: Optional[str] = Cookie(None, alias=AUTH_COOKIE_NAME),
):
    """Like get_current_user, but anonymous requests get None."""
    if not authorization and not auth_token:
        return None
    return await get_current_user(authorization, auth_token)
