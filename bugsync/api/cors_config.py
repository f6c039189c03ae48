"""CORS configuration for the bug service.

Browsers running the bug tracker UI call the service cross-origin, so the
allowed origins come from the environment with localhost added in debug mode.
"""

import os
from typing import List


def get_allowed_origins() -> List[str]:
    """
    Get list of allowed CORS origins.

    Environment Variables:
        ALLOWED_ORIGINS: Comma-separated list of allowed origins
        DEBUG: If "true", adds the local development UI origins

    Returns:
        List of allowed origin URLs
    """
    env_origins = os.getenv("ALLOWED_ORIGINS", "")
    origins = [origin.strip() for origin in env_origins.split(",") if origin.strip()]

    if os.getenv("DEBUG", "false").lower() == "true":
        origins.extend([
            "http://localhost:3000",
            "http://127.0.0.1:3000",
        ])

    return origins


def get_allowed_methods() -> List[str]:
    return ["GET", "POST", "PUT", "DELETE", "OPTIONS"]


def get_allowed_headers() -> List[str]:
    return [
        "Content-Type",
        "Accept",
        "Origin",
        "Cache-Control",
        "X-Requested-With",
    ]


def get_cors_config() -> dict:
    """Keyword arguments for FastAPI's CORSMiddleware, read at call time."""
    return {
        "allow_origins": get_allowed_origins(),
        "allow_credentials": False,
        "allow_methods": get_allowed_methods(),
        "allow_headers": get_allowed_headers(),
        "max_age": 600,  # Cache preflight requests for 10 minutes
    }
