"""
API package for the AI Learning Roadmap application.

This package contains the modular FastAPI server: configuration, auth,
middleware, exception handlers, request/response models and routes.
"""

__version__ = "1.0.0"

# Don't import anything during package initialization to avoid import errors
# that could prevent the API server from starting.
# Individual modules will import what they need when they need it.

__all__ = []
