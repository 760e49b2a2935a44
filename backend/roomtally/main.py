"""
RoomTally Backend API

FastAPI application for room-dimension capture, normalization and totals.
"""

from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .api.session import router as session_router
from .core.config import Settings, settings as default_settings
from .services.session import RoomSession


def create_app(settings: Optional[Settings] = None, session: Optional[RoomSession] = None) -> FastAPI:
    """Build the application around one explicitly-owned room session."""
    settings = settings or default_settings

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        yield
        await app.state.session.aclose()

    app = FastAPI(
        title=settings.app_name,
        description="""
## RoomTally API

Room-dimension capture with unit-aware normalization.

### Core Principle: Zero Means Missing

Every dimension passes through one normalizer:
- Feet-and-inches text (`12'6"`) and plain decimals are accepted
- Values are rounded to one decimal place
- A value that rounds to zero is stored as missing, never as 0

### Current Capabilities

- **Rooms**: Add, edit, remove, reorder and sort rooms
- **Units**: Convert the whole session between feet and meters, all or nothing
- **Ingestion**: Load rooms from JSON of any common shape, or from an image via the extraction service
- **Submission**: Send finalized rooms for analysis (door count, artifacts)
- **Export**: Download the room table as Excel or CSV
        """,
        version=settings.app_version,
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )
    app.state.session = session or RoomSession(settings)

    # Configure CORS for the presentation layer
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Include API routers
    app.include_router(session_router, prefix="/api/v1")

    @app.get("/")
    async def root():
        """Root endpoint with API information."""
        return {
            "name": settings.app_name,
            "version": settings.app_version,
            "description": "Room-dimension normalization and totals API",
            "docs": "/docs",
            "health": "/health",
        }

    @app.get("/health")
    async def health():
        """Global health check endpoint."""
        return {
            "status": "ok",
            "app": settings.app_name,
            "version": settings.app_version,
        }

    return app


app = create_app()
