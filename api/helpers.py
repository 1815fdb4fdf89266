"""
MODULE_DESCRIPTION: API Helper Functions - Error Response Formatting

===================================================================================
PURPOSE AND OVERVIEW
===================================================================================

Utility functions shared by the route modules of the AI Roadmap API:

    - traceback_json_response(): detailed JSON error body (with traceback)
      when DEBUG_TRACEBACK=1, None otherwise so the caller falls back to a
      safe production error
    - internal_error_response(): the caller side of that pattern in one call
    - ensure_own_user(): 403 "Access denied" when a path user id is not the
      caller
    - ensure_roadmap_visible(): 404 "Roadmap not found" for a private roadmap
      unless the caller owns it

Security Warning:
    Only enable DEBUG_TRACEBACK=1 in development environments. Tracebacks
    expose file paths and implementation details.
"""

import os
import traceback
from typing import Optional

from fastapi import HTTPException
from fastapi.responses import JSONResponse


def traceback_json_response(e, status_code=500, context=None):
    """Return a JSONResponse with the traceback of ``e`` when DEBUG_TRACEBACK=1.

    Args:
        e: The exception that occurred
        status_code: HTTP status code for the response (default: 500)
        context: Optional label of the failing operation

    Returns:
        JSONResponse with error details and traceback if DEBUG_TRACEBACK=1,
        None otherwise (caller should handle fallback to production error response)
    """
    if os.environ.get("DEBUG_TRACEBACK") == "1":
        tb_str = "".join(traceback.format_exception(type(e), e, e.__traceback__))

        response_content = {
            "detail": str(e),
            "traceback": tb_str,
        }
        if context:
            response_content["context"] = context

        return JSONResponse(status_code=status_code, content=response_content)

    return None


def internal_error_response(e, detail: str, status_code=500, context=None):
    """Debug response when enabled, else a generic ``{"detail": detail}`` body."""
    response = traceback_json_response(e, status_code, context)
    if response:
        return response
    return JSONResponse(status_code=status_code, content={"detail": detail})


def ensure_own_user(user_id: str, current_user: dict):
    if str(user_id) != str(current_user.get("id")):
        raise HTTPException(status_code=403, detail="Access denied")


def ensure_roadmap_visible(roadmap: dict, current_user: Optional[dict]):
    is_owner = current_user is not None and str(roadmap.get("userId")) == str(
        current_user.get("id")
    )
    if not roadmap.get("isPublic") and not is_owner:
        raise HTTPException(status_code=404, detail="Roadmap not found")
