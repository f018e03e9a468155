"""
API module for the forum media and rate limiting service.
"""
import time
import logging
import platform

import PIL
import psutil
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from fastapi.middleware.cors import CORSMiddleware

from forumkit import config
from forumkit.api.v1 import router as v1_router
from forumkit.core.errors import DecodeError, EncodeError, ValidationError
from forumkit.core.rate_limit import RateLimiter

# Set up logging
logger = logging.getLogger(__name__)


def create_app(rate_limiter: RateLimiter = None) -> FastAPI:
    """
    Build the FastAPI application.

    Args:
        rate_limiter: Limiter shared by every request (a new one is created if omitted)
    """
    app = FastAPI(
        title="Forum Media API",
        description="""
        Photo compression and admission control for the forum:
        - Photo validation, compression and thumbnailing
        - Per-role photo quotas
        - Sliding-window rate limits for posting, reporting and searching
        """,
        version=config.VERSION
    )
    app.state.rate_limiter = rate_limiter or RateLimiter()
    app.state.started_at = time.time()

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(v1_router, prefix="/api")

    @app.exception_handler(ValidationError)
    async def validation_error_handler(request: Request, exc: ValidationError):
        status_code = 413 if exc.too_large else 400
        return JSONResponse(status_code=status_code, content={"detail": str(exc)})

    @app.exception_handler(DecodeError)
    async def decode_error_handler(request: Request, exc: DecodeError):
        logger.warning(f"Rejected undecodable image: {exc}")
        return JSONResponse(
            status_code=422,
            content={"detail": "The image could not be read. It may be corrupt or in an unsupported format."}
        )

    @app.exception_handler(EncodeError)
    async def encode_error_handler(request: Request, exc: EncodeError):
        logger.error(f"Image encoding failed: {exc}")
        return JSONResponse(status_code=500, content={"detail": "The image could not be processed."})

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        """Global exception handler for unexpected errors."""
        logger.error(f"Unhandled exception: {str(exc)}", exc_info=True)
        return JSONResponse(
            status_code=500,
            content={"detail": "An unexpected error occurred"}
        )

    @app.get("/health")
    async def health_check():
        """Check if the API is running."""
        return {"status": "healthy", "version": config.VERSION}

    @app.get("/health/detailed")
    async def detailed_health_check(request: Request):
        """
        Provides detailed health information including system metrics and limiter state.
        """
        limiter: RateLimiter = request.app.state.rate_limiter
        return {
            "status": "healthy",
            "version": config.VERSION,
            "system": {
                "cpu_usage": psutil.cpu_percent(interval=None),
                "memory_usage": psutil.virtual_memory().percent,
                "python_version": platform.python_version(),
                "platform": platform.platform(),
                "pillow_version": PIL.__version__,
            },
            "rate_limiter": {"tracked_keys": len(limiter)},
            "uptime_seconds": round(time.time() - request.app.state.started_at, 2),
            "timestamp": time.time()
        }

    return app


app = create_app()
