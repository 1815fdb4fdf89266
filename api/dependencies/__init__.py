"""
Dependencies package for the API server.

This package contains FastAPI dependencies for authentication of the AI
Roadmap API.
"""

# Import authentication dependencies
from .auth import get_current_user, get_optional_user

# Export all dependencies for easier access
__all__ = ["get_current_user", "get_optional_user"]
