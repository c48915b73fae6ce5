"""
Booking Service Dependencies
"""

from fastapi import Request

from services.booking_service.coordinator import BookingCoordinator


def get_coordinator(request: Request) -> BookingCoordinator:
    """Booking coordinator created by the application lifespan."""
    return request.app.state.coordinator
