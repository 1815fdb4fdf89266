"""
Authentication package for the API server.

This package contains app-issued JWT handling and password hashing for the
AI Roadmap API.
"""

# Import JWT authentication functions
from .jwt_auth import create_access_token, hash_password, verify_app_jwt, verify_password

# Export all authentication functions for easier access
__all__ = [
    "create_access_token",
    "hash_password",
    "verify_app_jwt",
    "verify_password",
]
