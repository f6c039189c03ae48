"""API module - FastAPI persistence service."""

from .server import app, create_app
from . import bugs

__all__ = ["app", "create_app", "bugs"]
