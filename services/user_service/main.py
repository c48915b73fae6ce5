"""
User Service Main Application

Microservice handling registration, authentication and account management.
"""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from services.user_service.api import auth
from shared.api.errors import register_exception_handlers
from shared.api.middleware import LoggingMiddleware
from shared.config import settings
from shared.database import Database
from shared.logging_config import configure_logging

logger = structlog.get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager."""
    configure_logging()
    logger.info("Starting User Service")

    database = Database(
        settings.async_database_url,
        echo=settings.debug,
        pool_size=settings.db_pool_size,
        max_overflow=settings.db_max_overflow,
    )
    await database.init()
    app.state.database = database

    try:
        yield
    finally:
        await database.close()
        logger.info("User Service shutdown complete")


app = FastAPI(
    title="Room Booking User Service",
    description="Registration, authentication and account management",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(LoggingMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=settings.cors_allow_credentials,
    allow_methods=["*"],
    allow_headers=["*"],
)
register_exception_handlers(app)

# Include routers
app.include_router(auth.router, prefix=f"{settings.api_v1_prefix}/auth", tags=["Authentication"])


@app.get("/health")
async def health_check() -> dict[str, str]:
    """Health check endpoint."""
    return {"status": "healthy", "service": "user_service"}


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "services.user_service.main:app",
        host="0.0.0.0",
        port=settings.user_service_port,
        reload=settings.debug,
    )
