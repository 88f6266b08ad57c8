"""
FastAPI application entry point.

This module creates and configures the FastAPI application.
Using an application factory pattern (create_app function) because:
- Easier to test with different configurations
- Explicit about initialization order
- Can create multiple app instances if needed (e.g., for testing)

For local development:
    uvicorn src.main:app --reload

For production:
    gunicorn src.main:app -w 4 -k uvicorn.workers.UvicornWorker
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .api.routes import auth, config, connections, cron, health, rewards, sessions, timezone, users
from .config.settings import get_backend_config, get_settings

# Configure logging
logging.basicConfig(
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    level=logging.INFO,
)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.

    Resolves backend credentials once on startup. Outside mock mode a
    missing URL or anon key raises ConfigurationError here, so the process
    refuses to start instead of failing on the first request.
    """
    # Startup
    settings = get_settings()

    logger.info(
        "AthleteMind API starting",
        extra={
            "version": settings.api_version,
            "mock_mode": {
                "supabase": settings.supabase_mock_mode,
                "geolocation": settings.geolocation_mock_mode,
            }
        }
    )

    backend = get_backend_config()
    logger.info(
        "Backend configured",
        extra={"url_source": backend.url_source, "anon_key_source": backend.anon_key_source}
    )

    yield

    # Shutdown
    logger.info("AthleteMind API shutting down")


def create_app() -> FastAPI:
    """
    Application factory.

    Creates and configures the FastAPI application.
    This function is called once at startup (in production) or
    multiple times (in tests with different configurations).
    """
    settings = get_settings()

    app = FastAPI(
        title=settings.api_title,
        version=settings.api_version,
        description="""
        Training schedules, sessions, and coach/athlete connections.

        ## Authentication

        Sign in with `POST /api/v1/auth/login`. Authenticated endpoints take
        the access token as a bearer token or the `sb-access-token` cookie.

        ## Workflow

        1. **Preview**: `POST /api/v1/sessions/materialize`
           - Expand weekly rules over a date range without storing anything

        2. **Generate**: `POST /api/v1/sessions/generate`
           - Create the coming week of sessions from your schedule

        3. **Follow a session**: `GET /api/v1/sessions/{session_id}/state`
           - Check-in, training, and reflection steps

        4. **Connect**: `POST /api/v1/connections`
           - Send a request to a coach or athlete by user code
        """,
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )

    # CORS middleware
    # Configure allowed origins via CORS_ORIGINS environment variable
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Include routers
    app.include_router(
        health.router,
        prefix="/health",
        tags=["Health"],
    )

    app.include_router(
        config.router,
        prefix="/api/v1/config",
        tags=["Config"],
    )

    app.include_router(
        auth.router,
        prefix="/api/v1/auth",
        tags=["Auth"],
    )

    app.include_router(
        sessions.router,
        prefix="/api/v1/sessions",
        tags=["Sessions"],
    )

    app.include_router(
        cron.router,
        prefix="/api/v1/cron",
        tags=["Cron"],
    )

    app.include_router(
        users.router,
        prefix="/api/v1/users",
        tags=["Users"],
    )

    app.include_router(
        connections.router,
        prefix="/api/v1/connections",
        tags=["Connections"],
    )

    app.include_router(
        timezone.router,
        prefix="/api/v1",
        tags=["Timezone"],
    )

    app.include_router(
        rewards.router,
        prefix="/api/v1/rewards",
        tags=["Rewards"],
    )

    # Root endpoint
    @app.get("/", include_in_schema=False)
    async def root():
        """Root endpoint - points at the docs."""
        return {
            "message": "AthleteMind API",
            "version": settings.api_version,
            "docs": "/docs",
            "health": "/health",
        }

    # Global exception handler
    @app.exception_handler(Exception)
    async def global_exception_handler(request, exc):
        """
        Catch-all exception handler.

        In production, this prevents stack traces from leaking to clients.
        We log the full error server-side but return a generic message.
        """
        logger.error(
            "Unhandled exception",
            extra={
                "path": request.url.path,
                "method": request.method,
                "error": str(exc),
            },
            exc_info=exc,
        )

        return JSONResponse(
            status_code=500,
            content={
                "detail": "Internal server error. Please contact support if this persists."
            }
        )

    logger.info(
        "FastAPI application created",
        extra={
            "title": settings.api_title,
            "version": settings.api_version,
        }
    )

    return app


# Create the application instance
# This is what uvicorn/gunicorn will import
app = create_app()


# For debugging/development
if __name__ == "__main__":
    import uvicorn

    settings = get_settings()

    uvicorn.run(
        "src.main:app",
        host="0.0.0.0",
        port=8000,
        reload=True,
        log_level=settings.log_level.lower(),
    )
