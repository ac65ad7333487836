"""
FastAPI Application Entry Point.

Fleet Operations Backend: vehicle deployment lifecycle and driver shift
analytics.
"""

import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI, Depends, HTTPException
from fastapi.exceptions import RequestValidationError
from backend.app.core.config import settings
from backend.app.api.v1.router import router as api_v1_router
from backend.app.core.dependencies import get_current_user
from backend.app.core.jwt import create_access_token
from backend.app.core.observability import ObservabilityMiddleware
from backend.app.core.redis_client import redis_client, ping_redis
from backend.app.db.session import create_all_tables
from backend.app.models.enums import UserRole
from backend.app.core.exceptions import (
    AppException,
    app_exception_handler,
    http_exception_handler,
    validation_exception_handler,
    generic_exception_handler
)

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Lifespan context manager for application startup/shutdown.

    1. Creates database tables on startup.
    2. Closes the Redis connection pool on shutdown.
    """
    await create_all_tables()
    logger.info("%s %s started", settings.app_name, settings.api_version)
    yield
    await redis_client.aclose()


# Initialize FastAPI application
app = FastAPI(
    title=settings.app_name,
    version=settings.api_version,
    debug=settings.debug,
    description="Vehicle deployment lifecycle and driver shift analytics",
    lifespan=lifespan,
)

app.add_middleware(ObservabilityMiddleware)

# Register global exception handlers
app.add_exception_handler(AppException, app_exception_handler)
app.add_exception_handler(HTTPException, http_exception_handler)
app.add_exception_handler(RequestValidationError, validation_exception_handler)
app.add_exception_handler(Exception, generic_exception_handler)


@app.get("/health", tags=["Health"])
async def health_check():
    """
    Health check endpoint.

    Returns:
        dict: Status, application information and Redis reachability
    """
    return {
        "status": "healthy",
        "app_name": settings.app_name,
        "version": settings.api_version,
        "redis": "up" if await ping_redis() else "down",
    }


# Include API v1 router
app.include_router(api_v1_router, prefix=f"/{settings.api_version}")


@app.get("/", tags=["Root"])
async def root():
    return {
        "message": "Welcome to Fleet Operations Backend API",
        "docs": "/docs",
        "health": "/health",
    }


# Development token endpoint; real tokens come from the identity provider
@app.post("/auth/test-token", tags=["Authentication"])
async def generate_test_token(username: str = "test_user", role: UserRole = UserRole.PILOT, user_id: int = 1):
    """Generate a test JWT token (disabled unless debug is on)."""
    if not settings.debug:
        raise HTTPException(status_code=404, detail="Not found")

    token = create_access_token(username, role, user_id=user_id)
    return {
        "access_token": token,
        "token_type": "bearer",
        "username": username,
        "role": role.value,
    }


@app.get("/auth/me", tags=["Authentication"])
async def whoami(current_user: dict = Depends(get_current_user)):
    """Echo the authenticated token payload."""
    return {"authenticated_user": current_user}
