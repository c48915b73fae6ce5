"""
Booking Service Main Application

Microservice for rooms, room schedules and bookings.
"""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from services.booking_service.api import bookings, rooms, schedules
from services.booking_service.coordinator import BookingCoordinator
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
    logger.info("Starting Booking Service")

    database = Database(
        settings.async_database_url,
        echo=settings.debug,
        pool_size=settings.db_pool_size,
        max_overflow=settings.db_max_overflow,
    )
    await database.init()
    app.state.database = database
    app.state.coordinator = BookingCoordinator(database)

    try:
        yield
    finally:
        await database.close()
        logger.info("Booking Service shutdown complete")


app = FastAPI(
    title="Room Booking Service",
    description="Rooms, schedules and bookings with exclusive slot reservation",
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
app.include_router(bookings.router, prefix=settings.api_v1_prefix)
app.include_router(rooms.router, prefix=settings.api_v1_prefix)
app.include_router(schedules.router, prefix=settings.api_v1_prefix)


@app.get("/health")
async def health_check() -> dict[str, str]:
    """Health check endpoint."""
    return {"status": "healthy", "service": "booking_service"}


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "services.booking_service.main:app",
        host="0.0.0.0",
        port=settings.booking_service_port,
        reload=settings.debug,
    )
