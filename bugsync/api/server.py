"""FastAPI server for the bug persistence service."""

import os
import logging
from datetime import datetime, timezone
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel

from ..db import connect_db, close_db
from . import bugs as bugs_module
from .cors_config import get_cors_config
from .errors import register_error_handlers

# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Manage the database connection."""
    logger.info("Connecting to MongoDB...")
    await connect_db()
    logger.info("MongoDB connected")

    yield

    await close_db()


class HealthResponse(BaseModel):
    """Health check response."""
    status: str
    timestamp: str
    environment: str


def create_app() -> FastAPI:
    """Create the FastAPI application."""
    app = FastAPI(
        title="Bug Tracker Service",
        description="Persistence service for tracked bugs",
        version="0.1.0",
        lifespan=lifespan,
    )

    cors_config = get_cors_config()
    logger.info(f"Configuring CORS for origins: {cors_config['allow_origins']}")
    app.add_middleware(CORSMiddleware, **cors_config)

    register_error_handlers(app)
    app.include_router(bugs_module.router)

    @app.get("/")
    async def root():
        return {"message": "Bug tracker service is running"}

    @app.get("/api/health", response_model=HealthResponse)
    async def health_check():
        """Check service health."""
        return HealthResponse(
            status="OK",
            timestamp=datetime.now(timezone.utc).isoformat(),
            environment=os.getenv("ENVIRONMENT", "development"),
        )

    return app


app = create_app()


# CLI entry point
def main():
    """Run the server."""
    import uvicorn

    host = os.getenv("HOST", "0.0.0.0")
    port = int(os.getenv("PORT", "5000"))

    uvicorn.run(
        "bugsync.api.server:app",
        host=host,
        port=port,
        reload=os.getenv("DEBUG", "false").lower() == "true",
    )


if __name__ == "__main__":
    main()
