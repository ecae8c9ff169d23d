"""
Vision Canvas Server
====================

FastAPI server for composing token-sized text canvases.

Features:
- Canvas sized in 32px tokens, with overflow prediction on every edit
- Word or character wrapping
- PNG export that carries the full editing state in a zTXt chunk
- Import of exported PNG or JSON files to resume editing
"""

import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .config import AppConfig, PIXEL_SIZE, MIN_TOKENS, MAX_TOKENS, MIN_FONT_SIZE, MAX_FONT_SIZE

config = AppConfig()

# Configure logging
logging.basicConfig(
    level=getattr(logging, config.log_level, logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)

# Import canvas components
from .canvas.glyph_metrics import PillowGlyphMetrics
from .canvas.state_manager import StateManager
from .services.export_service import ExportService

# Import API routers
from .api import canvas_routes


# Shared service instances
state_manager: StateManager = None
export_service: ExportService = None


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager."""
    global state_manager, export_service

    logger.info("[VISION-CANVAS] Starting up...")

    # One metrics provider so prediction and rendering share font faces
    metrics = PillowGlyphMetrics(font_path=config.font_path)

    state_manager = StateManager(
        sessions_dir=config.sessions_dir,
        metrics=metrics,
        policy=config.overflow_policy,
        warning_timeout=config.warning_timeout
    )

    export_service = ExportService(
        metrics=metrics,
        file_prefix=config.file_prefix,
        embed_metadata=config.embed_metadata
    )

    # Inject into route modules
    canvas_routes.state_manager = state_manager
    canvas_routes.export_service = export_service

    logger.info(f"[VISION-CANVAS] Services initialized (overflow policy: {config.overflow_policy.value})")

    yield

    logger.info("[VISION-CANVAS] Shutting down...")


# Create FastAPI app
app = FastAPI(
    title="Vision Canvas",
    description="Token-sized text canvas with lossless PNG round-tripping",
    version="1.0.0",
    lifespan=lifespan
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Allow all origins for development
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include API routers
app.include_router(canvas_routes.router)


@app.get("/")
async def root():
    """Return API info."""
    return {
        "service": "Vision Canvas",
        "version": "1.0.0",
        "status": "running",
        "endpoints": {
            "session": "/api/canvas/session",
            "state": "/api/canvas/state/{session_id}",
            "settings": "/api/canvas/settings/{session_id}",
            "text": "/api/canvas/text/{session_id}",
            "export_image": "/api/canvas/export/{session_id}/image",
            "export_data": "/api/canvas/export/{session_id}/data",
            "import": "/api/canvas/import"
        }
    }


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {
        "status": "healthy",
        "service": "vision-canvas",
        "overflow_policy": config.overflow_policy.value
    }


@app.get("/api/info")
async def api_info():
    """Get canvas limits."""
    return {
        "service": "Vision Canvas",
        "version": "1.0.0",
        "canvas": {
            "pixel_size": PIXEL_SIZE,
            "tokens_range": [MIN_TOKENS, MAX_TOKENS],
            "font_size_range": [MIN_FONT_SIZE, MAX_FONT_SIZE],
            "wrap_modes": ["word", "char"]
        }
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "vision_canvas.server:app",
        host="0.0.0.0",
        port=8080,
        reload=True
    )
