"""
FastAPI application initialization and configuration.
"""

import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from core.config import settings
from database.engine import init_db, close_db
from api.routes import health
from api.routes.v1 import admin, applications, auth, jobs, notifications

from core.middleware import (
    ErrorHandlingMiddleware,
    setup_error_handlers,
    StructuredLoggingMiddleware,
    setup_logging,
    RateLimitMiddleware,
    create_rate_limiter,
)

# Setup structured logging (do this first, before anything else)
setup_logging(
    log_level=settings.log_level,
    json_logs=settings.json_logs,
)

logger = logging.getLogger(__name__)

# Redis connects on first use; closed in the lifespan
rate_limiter = create_rate_limiter(settings.redis_url) if settings.rate_limit_enabled else None


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Manage application lifespan events."""
    logger.info(f"Starting {settings.app_name} in {settings.app_env} environment")
    await init_db()

    yield

    logger.info(f"Shutting down {settings.app_name}")
    if rate_limiter is not None:
        await rate_limiter.close()
    await close_db()


app = FastAPI(
    title=settings.app_name,
    description="Job board API: jobs, applications, review workflow and notifications",
    version="0.1.0",
    docs_url="/docs" if settings.debug else None,
    redoc_url="/redoc" if settings.debug else None,
    lifespan=lifespan,
)

# Setup error handlers (before middleware)
setup_error_handlers(app, debug=settings.debug)

# Add middleware (the last one added runs first)
# 1. Error handling middleware (catches anything the handlers did not)
app.add_middleware(
    ErrorHandlingMiddleware,
    debug=settings.debug,
)

# 2. Structured logging middleware
app.add_middleware(
    StructuredLoggingMiddleware,
    log_request_body=settings.log_request_body,
    max_body_size=settings.log_max_body_size,
)

# 3. Rate limiting on the credential endpoints
if rate_limiter is not None:
    app.add_middleware(
        RateLimitMiddleware,
        max_requests=settings.auth_rate_limit_per_minute,
        window_seconds=60,
        paths=[
            f"{settings.api_v1_prefix}/auth/login",
            f"{settings.api_v1_prefix}/auth/register",
        ],
        key_prefix=f"{settings.app_name}:ratelimit",
        limiter=rate_limiter,
    )

# 4. CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Health check routes
app.include_router(health.router, tags=["Health"])

# API v1 routes
for router in (auth.router, jobs.router, applications.router, notifications.router, admin.router):
    app.include_router(router, prefix=settings.api_v1_prefix)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "api.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.debug,
        log_level=settings.log_level.lower(),
    )
