"""
Booking Service Schemas

Pydantic request and response models shared by the booking service routers.
"""

from datetime import datetime, timezone
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator

from services.booking_service.models import (
    BookingStatus,
    RoomStatus,
    ScheduleStatus,
)
from services.user_service.models import UserRole


def to_naive_utc(value: datetime) -> datetime:
    """Convert an aware datetime to naive UTC; naive values are taken as UTC already."""
    if value.tzinfo is not None:
        return value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


# Room names that collide with fixed routes under /bookings
RESERVED_ROOM_NAMES = frozenset({"my-bookings"})


def _check_room_name(value: str | None) -> str | None:
    if value is not None and value.lower() in RESERVED_ROOM_NAMES:
        raise ValueError(f"'{value}' is reserved and cannot be used as a room name")
    return value


class ORMModel(BaseModel):
    model_config = ConfigDict(from_attributes=True)


# Buildings and rooms
class BuildingCreate(BaseModel):
    """Create building request."""

    name: str = Field(..., min_length=1, max_length=200)
    address: str = Field(default="", max_length=255)
    floors: int = Field(default=1, ge=1)


class BuildingResponse(ORMModel):
    id: UUID
    name: str
    address: str
    floors: int


class RoomCreate(BaseModel):
    """Create room request."""

    name: str = Field(..., min_length=1, max_length=100)
    building_id: UUID
    capacity: int = Field(..., ge=1)
    floor: int = Field(..., ge=0)
    status: RoomStatus = RoomStatus.AVAILABLE

    @field_validator("name")
    @classmethod
    def reject_reserved_name(cls, v: str) -> str:
        return _check_room_name(v)


class RoomUpdate(BaseModel):
    """Update room request. Omitted fields are left unchanged."""

    name: str | None = Field(default=None, min_length=1, max_length=100)
    building_id: UUID | None = None
    capacity: int | None = Field(default=None, ge=1)
    floor: int | None = Field(default=None, ge=0)
    status: RoomStatus | None = None

    @field_validator("name")
    @classmethod
    def reject_reserved_name(cls, v: str | None) -> str | None:
        return _check_room_name(v)


class RoomResponse(ORMModel):
    id: UUID
    name: str
    capacity: int
    floor: int
    status: RoomStatus
    building: BuildingResponse


# Schedules
class ScheduleCreate(BaseModel):
    """Create schedule request."""

    room_id: UUID
    start_time: datetime
    end_time: datetime

    @field_validator("start_time", "end_time")
    @classmethod
    def normalize_timezone(cls, v: datetime) -> datetime:
        return to_naive_utc(v)


class ScheduleUpdate(BaseModel):
    """
    Update schedule request.

    Only the time window can change; reservation status belongs to bookings.
    """

    start_time: datetime | None = None
    end_time: datetime | None = None

    @field_validator("start_time", "end_time")
    @classmethod
    def normalize_timezone(cls, v: datetime | None) -> datetime | None:
        return to_naive_utc(v) if v is not None else None


class ScheduleResponse(ORMModel):
    id: UUID
    room_id: UUID
    start_time: datetime
    end_time: datetime
    status: ScheduleStatus
    room: RoomResponse


class ScheduleDetailResponse(ScheduleResponse):
    booking_count: int = 0
    active_booking_id: UUID | None = None


# Bookings
class BookingCreate(BaseModel):
    """Create booking request."""

    room_schedule_id: UUID
    purpose: str = Field(..., min_length=3, max_length=200)


class UserSummary(ORMModel):
    id: UUID
    email: str
    first_name: str
    last_name: str
    role: UserRole


class BookingResponse(ORMModel):
    """Booking with its owner and schedule, room and building."""

    id: UUID
    room_schedule_id: UUID
    user_id: UUID
    purpose: str
    status: BookingStatus
    version: int
    created_at: datetime
    updated_at: datetime
    user: UserSummary
    room_schedule: ScheduleResponse


class CancelBookingResponse(BaseModel):
    message: str
    booking: BookingResponse
    deleted: bool = False
