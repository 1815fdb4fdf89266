"""
MODULE_DESCRIPTION: Authentication Endpoints - Register, Login, Sessions

Two credentials are issued at register/login:
    - a JWT (JWT_EXPIRES_DAYS, 7 days) returned in the body and set as the
      httpOnly auth_token cookie; it authenticates API calls
    - a session token ("session_<ms>_<base36>") stored in user_sessions with
      a fixed 24h lifetime; the client sends it as X-Session-Token to
      /auth/session and the session monitor expires it
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

from typing import Optional

from fastapi import APIRouter, Depends, Header, HTTPException, Response
from fastapi.responses import JSONResponse

from api.auth.jwt_auth import create_access_token, hash_password, verify_password
from api.config.settings import (
    AUTH_COOKIE_NAME,
    AUTH_COOKIE_SECURE,
    JWT_EXPIRES_DAYS,
)
from api.dependencies.auth import get_current_user
from api.helpers import ensure_own_user, internal_error_response
from api.models.requests import LoginRequest, RegisterRequest
from api.models.responses import AuthResponse
from api.utils.debug import print__session_debug, print__token_debug
from persistence.sessions import create_user_session, validate_session
from persistence.store.factory import get_global_store

router = APIRouter(prefix="/auth", tags=["auth"])


def _set_auth_cookie(response: Response, token: str):
    response.set_cookie(
        key=AUTH_COOKIE_NAME,
        value=token,
        httponly=True,
        secure=AUTH_COOKIE_SECURE,
        samesite="lax",
        max_age=JWT_EXPIRES_DAYS * 24 * 60 * 60,
    )


# ==============================================================================
# REGISTER / LOGIN
# ==============================================================================
@router.post("/register", status_code=201, response_model=AuthResponse)
async def register(request: RegisterRequest, response: Response):
    store = await get_global_store()

    if await store.get_user_by_email(request.email):
        raise HTTPException(status_code=400, detail="User already exists with this email")

    try:
        user = await store.create_user(
            request.email, request.name, hash_password(request.password)
        )
    except ValueError as e:
        # concurrent signup with the same email
        raise HTTPException(status_code=400, detail=str(e))

    token = create_access_token(user)
    session = await create_user_session(store, user["id"])
    _set_auth_cookie(response, token)

    print__token_debug(f"✅ New user registered: {user['id']}")
    return {
        "message": "User registered successfully",
        "token": token,
        "user": user,
        "session": session,
    }


@router.post("/login", response_model=AuthResponse)
async def login(request: LoginRequest, response: Response):
    store = await get_global_store()

    password_hash = await store.get_password_hash(request.email)
    if password_hash is None or not verify_password(request.password, password_hash):
        print__token_debug(f"❌ Failed login for {request.email}")
        raise HTTPException(status_code=401, detail="Invalid email or password")

    user = await store.get_user_by_email(request.email)
    token = create_access_token(user)
    session = await create_user_session(store, user["id"])
    _set_auth_cookie(response, token)

    return {
        "message": "Login successful",
        "token": token,
        "user": user,
        "session": session,
    }


# ==============================================================================
# CURRENT USER / LOGOUT
# ==============================================================================
@router.get("/me")
async def get_me(user: dict = Depends(get_current_user)):
    return {"user": user}


@router.post("/logout")
async def logout(
    response: Response,
    x_session_token: Optional[str] = Header(None),
):
    if x_session_token:
        try:
            store = await get_global_store()
            await store.delete_session(x_session_token)
        except Exception as e:
            print__session_debug(f"⚠️ Could not delete session on logout: {e}")

    response.delete_cookie(AUTH_COOKIE_NAME)
    return {"success": True, "message": "Logged out successfully"}


@router.get("/profile/{user_id}")
async def get_profile(user_id: str, user: dict = Depends(get_current_user)):
    ensure_own_user(user_id, user)
    return user


# ==============================================================================
# SESSION VALIDATION
# ==============================================================================
@router.get("/session")
async def check_session(x_session_token: Optional[str] = Header(None)):
    if not x_session_token:
        raise HTTPException(status_code=401, detail="Session not found")

    try:
        store = await get_global_store()
        session, error = await validate_session(store, x_session_token)
    except Exception as e:
        return internal_error_response(e, "Failed to validate session")

    if error:
        raise HTTPException(status_code=401, detail=error)

    user = await store.get_user(session["userId"])
    if user is None:
        raise HTTPException(status_code=401, detail="Session not found")
    return JSONResponse(content={"valid": True, "session": session, "user": user})
