"""
Main application entry point for the Formapro training platform.

This module builds the FastAPI application: CORS, error handlers, the
login throttle and the module routers mounted under the API prefix.

Usage:
    - Direct: python -m formapro.main
    - ASGI server: uvicorn formapro.main:app
"""

import os
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from redis.asyncio import Redis

from formapro import __version__
from formapro.api import main_router
from formapro.common.error_handling import register_exception_handlers
from formapro.common.logger import app_logger
from formapro.common.rate_limiter import LoginThrottle, RateLimiter
from formapro.config import settings
from formapro.database.init_db import close_database, initialize_database

# Setup module logger
logger = app_logger.getChild("main")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Open the database on startup; dispose of it and the Redis client on shutdown."""
    try:
        await initialize_database(
            database_url=settings.DATABASE_URL,
            echo=settings.SQL_ECHO,
        )
        logger.info("Application startup complete")
    except Exception as e:
        logger.error(f"Failed to initialize application: {str(e)}")
        raise

    yield

    try:
        await close_database()
        if app.state.rate_limiter.redis is not None:
            await app.state.rate_limiter.redis.aclose()
        logger.info("Application shutdown complete")
    except Exception as e:
        logger.error(f"Error during application shutdown: {str(e)}")
        raise


def create_app(limiter: Optional[RateLimiter] = None) -> FastAPI:
    """
    Create the FastAPI application.

    Args:
        limiter: Counter store for the login throttle. Defaults to Redis when
            REDIS_URL is set, in-memory otherwise.
    """
    app = FastAPI(
        title=settings.PROJECT_NAME,
        description="Corporate training platform API with AI-generated evaluations",
        version=__version__,
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.ALLOW_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_exception_handlers(app, production=settings.is_production)

    if limiter is None:
        redis = Redis.from_url(settings.REDIS_URL) if settings.REDIS_URL else None
        limiter = RateLimiter(redis)
    app.state.rate_limiter = limiter
    app.state.login_throttle = LoginThrottle(
        limiter,
        max_attempts=settings.LOGIN_MAX_ATTEMPTS,
        window_seconds=settings.LOGIN_WINDOW_SECONDS,
        trusted_proxies=settings.TRUSTED_PROXIES,
    )

    app.include_router(main_router, prefix=settings.API_PREFIX)

    @app.get("/")
    async def root():
        """Root endpoint."""
        return {"message": f"Welcome to {settings.PROJECT_NAME} API", "version": __version__}

    logger.info(f"Application initialized with {len(app.routes)} routes")
    return app


app = create_app()

logger.info(f"Environment: {settings.ENV}")

# Entry point for running the application directly
if __name__ == "__main__":
    import uvicorn

    host = os.environ.get("HOST", "0.0.0.0")
    port = int(os.environ.get("PORT", 8000))
    reload_enabled = os.environ.get("RELOAD", "false").lower() == "true"

    logger.info(f"Starting server on {host}:{port} (reload: {reload_enabled})")

    uvicorn.run(
        "formapro.main:app",
        host=host,
        port=port,
        reload=reload_enabled,
        log_level="info"
    )
