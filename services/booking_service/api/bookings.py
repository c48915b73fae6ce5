"""
Booking API Endpoints

Thin HTTP layer over the booking coordinator.
"""

from datetime import date
from uuid import UUID

import structlog
from fastapi import APIRouter, Depends, Query, status

from services.booking_service.coordinator import BookingCoordinator
from services.booking_service.dependencies import get_coordinator
from services.booking_service.models import BookingStatus
from services.booking_service.schemas import (
    BookingCreate,
    BookingResponse,
    CancelBookingResponse,
)
from services.user_service.dependencies import get_current_user, require_admin
from services.user_service.models import UserModel
from shared.domain.exceptions import AuthorizationError

router = APIRouter(prefix="/bookings", tags=["bookings"])
logger = structlog.get_logger(__name__)


@router.post("", response_model=BookingResponse, status_code=status.HTTP_201_CREATED)
async def create_booking(
    request: BookingCreate,
    current_user: UserModel = Depends(get_current_user),
    coordinator: BookingCoordinator = Depends(get_coordinator),
) -> BookingResponse:
    """
    Book a room schedule for the current user.

    Raises:
        EntityNotFoundError: If the schedule does not exist
        ValidationError: If the schedule starts in the past
        ConflictError: If the schedule is already booked
    """
    booking = await coordinator.create_booking(
        room_schedule_id=request.room_schedule_id,
        user_id=current_user.id,
        purpose=request.purpose,
    )
    return BookingResponse.model_validate(booking)


@router.post("/cancel/{booking_id}", response_model=CancelBookingResponse)
async def cancel_booking(
    booking_id: UUID,
    version: int | None = Query(default=None, ge=1, description="Last seen booking version"),
    current_user: UserModel = Depends(get_current_user),
    coordinator: BookingCoordinator = Depends(get_coordinator),
) -> CancelBookingResponse:
    """
    Cancel one of the current user's bookings.

    Raises:
        EntityNotFoundError: If the booking does not exist
        AuthorizationError: If the booking belongs to someone else
        BadRequestError: If the booking is already cancelled
        ConflictError: If the booking changed since ``version``
    """
    result = await coordinator.cancel_booking(
        booking_id, current_user.id, expected_version=version
    )
    return CancelBookingResponse(
        message="Booking cancelled successfully",
        booking=BookingResponse.model_validate(result.booking),
        deleted=result.deleted,
    )


@router.get("/my-bookings", response_model=list[BookingResponse])
async def my_bookings(
    booking_status: BookingStatus | None = Query(default=None, alias="status"),
    current_user: UserModel = Depends(get_current_user),
    coordinator: BookingCoordinator = Depends(get_coordinator),
) -> list[BookingResponse]:
    """List the current user's bookings, newest first."""
    bookings = await coordinator.get_bookings_by_user_id(current_user.id, status=booking_status)
    return [BookingResponse.model_validate(b) for b in bookings]


@router.get("", response_model=list[BookingResponse])
async def list_bookings(
    _: UserModel = Depends(require_admin),
    coordinator: BookingCoordinator = Depends(get_coordinator),
) -> list[BookingResponse]:
    """List every booking (admin only)."""
    bookings = await coordinator.get_all_bookings()
    return [BookingResponse.model_validate(b) for b in bookings]


@router.get("/date/{day}", response_model=list[BookingResponse])
async def bookings_by_date(
    day: date,
    _: UserModel = Depends(require_admin),
    coordinator: BookingCoordinator = Depends(get_coordinator),
) -> list[BookingResponse]:
    """List bookings whose schedule starts on ``day`` (admin only)."""
    bookings = await coordinator.get_bookings_by_date(day)
    return [BookingResponse.model_validate(b) for b in bookings]


@router.get("/user/{user_id}", response_model=list[BookingResponse])
async def bookings_by_user(
    user_id: UUID,
    _: UserModel = Depends(require_admin),
    coordinator: BookingCoordinator = Depends(get_coordinator),
) -> list[BookingResponse]:
    """List a user's bookings (admin only)."""
    bookings = await coordinator.get_bookings_by_user_id(user_id)
    return [BookingResponse.model_validate(b) for b in bookings]


@router.get("/detail/{booking_id}", response_model=BookingResponse)
async def get_booking(
    booking_id: UUID,
    current_user: UserModel = Depends(get_current_user),
    coordinator: BookingCoordinator = Depends(get_coordinator),
) -> BookingResponse:
    """Get a booking visible to its owner and to admins."""
    booking = await coordinator.get_booking_by_id(booking_id)

    if booking.user_id != current_user.id and not current_user.is_admin:
        raise AuthorizationError(
            "Not authorized to view this booking", resource="booking", action="read"
        )

    return BookingResponse.model_validate(booking)


@router.get("/{room_name}", response_model=list[BookingResponse])
async def bookings_by_room(
    room_name: str,
    start_date: date | None = None,
    end_date: date | None = None,
    _: UserModel = Depends(get_current_user),
    coordinator: BookingCoordinator = Depends(get_coordinator),
) -> list[BookingResponse]:
    """
    List bookings for a room between two dates.

    Both dates default to today. Declared last so the fixed paths above win;
    room names that would collide with them are rejected at room creation.
    """
    bookings = await coordinator.get_bookings_by_room_name(
        room_name, start_date=start_date, end_date=end_date
    )
    return [BookingResponse.model_validate(b) for b in bookings]
