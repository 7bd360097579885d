"""
FastAPI application entry point.

Run with: uvicorn pictomap.api.main:app --reload
"""
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

# Load environment variables from .env (optional) before other imports that read env
env_path = Path(__file__).resolve().parents[2] / ".env"
load_dotenv(env_path)

from pictomap.api.routes import overlay as overlay_routes
from pictomap.overlay import build_overlay
from pictomap.services.map_surface import HeadlessMapSurface
from pictomap.services.orchestrator import OverlayOrchestrator


def create_app(overlay: Optional[OverlayOrchestrator] = None) -> FastAPI:
    """Build the API around one overlay (a default headless one if omitted)."""
    app = FastAPI(
        title="Pictomap API",
        description="Accessible pictogram markers for points of interest",
        version="0.1.0",
    )

    # CORS middleware for map frontends
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.state.overlay = overlay or build_overlay(HeadlessMapSurface())
    app.include_router(overlay_routes.router, prefix="/overlay", tags=["overlay"])

    @app.on_event("startup")
    async def startup_event():
        """Subscribe the overlay to view changes and run the first update."""
        app.state.overlay.start()

    @app.on_event("shutdown")
    async def shutdown_event():
        app.state.overlay.stop()

    @app.get("/")
    async def root():
        """Health check endpoint."""
        return {"status": "ok", "service": "Pictomap API"}

    @app.get("/health")
    async def health():
        """Health check endpoint."""
        return {"status": "healthy", "state": app.state.overlay.state.value}

    return app


app = create_app()
