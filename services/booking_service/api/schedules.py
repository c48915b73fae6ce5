"""
Room Schedule API endpoints.

Schedules are the reservable time windows of a room. Their status is written by
the booking coordinator only; these endpoints manage the time windows.
"""

from datetime import date, datetime
from uuid import UUID

import structlog
from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from services.booking_service.coordinator import day_bounds
from services.booking_service.models import (
    BookingModel,
    BookingStatus,
    RoomModel,
    RoomScheduleModel,
    ScheduleStatus,
)
from services.booking_service.repository import BookingRepository
from services.booking_service.schemas import (
    ScheduleCreate,
    ScheduleDetailResponse,
    ScheduleResponse,
    ScheduleUpdate,
    to_naive_utc,
)
from services.user_service.dependencies import get_current_user, require_admin
from services.user_service.models import UserModel
from shared.database import get_db
from shared.domain.exceptions import ConflictError, EntityNotFoundError, ValidationError

router = APIRouter(prefix="/schedules", tags=["schedules"])
logger = structlog.get_logger(__name__)


def _check_window(start_time: datetime, end_time: datetime) -> None:
    if end_time <= start_time:
        raise ValidationError(
            "End time must be after start time",
            field="end_time",
            value=end_time.isoformat(),
        )


async def _get_schedule_or_404(db: AsyncSession, schedule_id: UUID) -> RoomScheduleModel:
    result = await db.execute(
        select(RoomScheduleModel)
        .where(RoomScheduleModel.id == schedule_id)
        .execution_options(populate_existing=True)
    )
    schedule = result.unique().scalar_one_or_none()
    if schedule is None:
        raise EntityNotFoundError(
            "RoomSchedule", str(schedule_id), message="Room schedule not found"
        )
    return schedule


async def _ensure_slot_free(
    db: AsyncSession, room_id: UUID, start_time: datetime, exclude_id: UUID | None = None
) -> None:
    stmt = select(RoomScheduleModel.id).where(
        RoomScheduleModel.room_id == room_id,
        RoomScheduleModel.start_time == start_time,
    )
    if exclude_id is not None:
        stmt = stmt.where(RoomScheduleModel.id != exclude_id)
    if (await db.execute(stmt)).first() is not None:
        raise ConflictError(
            "A schedule for this room already starts at that time",
            context={"room_id": str(room_id), "start_time": start_time.isoformat()},
        )


@router.post("", response_model=ScheduleResponse, status_code=status.HTTP_201_CREATED)
async def create_schedule(
    request: ScheduleCreate,
    _: UserModel = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> ScheduleResponse:
    """
    Create a schedule for a room (admin only).

    Raises:
        EntityNotFoundError: If the room does not exist
        ValidationError: If the window ends before it starts
        ConflictError: If the room already has a schedule starting then
    """
    if await db.get(RoomModel, request.room_id) is None:
        raise EntityNotFoundError("Room", str(request.room_id), message="Room not found")

    _check_window(request.start_time, request.end_time)
    await _ensure_slot_free(db, request.room_id, request.start_time)

    schedule = RoomScheduleModel(
        room_id=request.room_id,
        start_time=request.start_time,
        end_time=request.end_time,
        status=ScheduleStatus.AVAILABLE,
    )
    db.add(schedule)

    try:
        await db.commit()
    except IntegrityError as e:
        await db.rollback()
        raise ConflictError("A schedule for this room already starts at that time", cause=e)

    logger.info(
        "Schedule created",
        schedule_id=str(schedule.id),
        room_id=str(schedule.room_id),
        start_time=schedule.start_time.isoformat(),
    )
    return ScheduleResponse.model_validate(await _get_schedule_or_404(db, schedule.id))


@router.get("/available", response_model=list[ScheduleResponse])
async def list_available_schedules(
    start_time: datetime,
    end_time: datetime,
    db: AsyncSession = Depends(get_db),
) -> list[ScheduleResponse]:
    """List AVAILABLE schedules lying entirely inside a time range."""
    start_time, end_time = to_naive_utc(start_time), to_naive_utc(end_time)
    _check_window(start_time, end_time)

    result = await db.execute(
        select(RoomScheduleModel)
        .where(
            RoomScheduleModel.status == ScheduleStatus.AVAILABLE,
            RoomScheduleModel.start_time >= start_time,
            RoomScheduleModel.end_time <= end_time,
        )
        .order_by(RoomScheduleModel.start_time)
    )
    return [ScheduleResponse.model_validate(s) for s in result.unique().scalars().all()]


@router.get("/room/{room_name}", response_model=list[ScheduleResponse])
async def list_room_schedules(
    room_name: str,
    day: date | None = Query(default=None, alias="date"),
    _: UserModel = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> list[ScheduleResponse]:
    """List a room's schedules for one day, today if no date is given."""
    starts_from, starts_until = day_bounds(day or datetime.utcnow().date())

    result = await db.execute(
        select(RoomScheduleModel)
        .join(RoomModel, RoomScheduleModel.room_id == RoomModel.id)
        .where(
            RoomModel.name == room_name,
            RoomScheduleModel.start_time >= starts_from,
            RoomScheduleModel.start_time <= starts_until,
        )
        .order_by(RoomScheduleModel.start_time)
    )
    return [ScheduleResponse.model_validate(s) for s in result.unique().scalars().all()]


@router.get("", response_model=list[ScheduleResponse])
async def list_schedules(
    limit: int = Query(default=50, ge=1, le=500),
    offset: int = Query(default=0, ge=0),
    _: UserModel = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> list[ScheduleResponse]:
    """List schedules ordered by start time."""
    result = await db.execute(
        select(RoomScheduleModel)
        .order_by(RoomScheduleModel.start_time, RoomScheduleModel.id)
        .limit(limit)
        .offset(offset)
    )
    return [ScheduleResponse.model_validate(s) for s in result.unique().scalars().all()]


@router.get("/{schedule_id}", response_model=ScheduleDetailResponse)
async def get_schedule(
    schedule_id: UUID, db: AsyncSession = Depends(get_db)
) -> ScheduleDetailResponse:
    """Get a schedule with its room and booking summary."""
    schedule = await _get_schedule_or_404(db, schedule_id)

    result = await db.execute(
        select(BookingModel.id, BookingModel.status).where(
            BookingModel.room_schedule_id == schedule_id
        )
    )
    rows = result.all()
    active_id = next((row.id for row in rows if row.status != BookingStatus.CANCELLED), None)

    response = ScheduleDetailResponse.model_validate(schedule)
    response.booking_count = len(rows)
    response.active_booking_id = active_id
    return response


@router.put("/{schedule_id}", response_model=ScheduleResponse)
async def update_schedule(
    schedule_id: UUID,
    request: ScheduleUpdate,
    _: UserModel = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> ScheduleResponse:
    """
    Change a schedule's time window (admin only).

    Raises:
        EntityNotFoundError: If the schedule does not exist
        ValidationError: If the resulting window ends before it starts
        ConflictError: If the room already has a schedule at the new start time
    """
    if request.start_time is None and request.end_time is None:
        raise ValidationError("At least one of start_time or end_time is required")

    schedule = await _get_schedule_or_404(db, schedule_id)

    start_time = request.start_time or schedule.start_time
    end_time = request.end_time or schedule.end_time
    _check_window(start_time, end_time)

    if start_time != schedule.start_time:
        await _ensure_slot_free(db, schedule.room_id, start_time, exclude_id=schedule_id)

    schedule.start_time = start_time
    schedule.end_time = end_time

    try:
        await db.commit()
    except IntegrityError as e:
        await db.rollback()
        raise ConflictError("A schedule for this room already starts at that time", cause=e)

    logger.info("Schedule updated", schedule_id=str(schedule_id))
    return ScheduleResponse.model_validate(await _get_schedule_or_404(db, schedule_id))


@router.delete("/{schedule_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_schedule(
    schedule_id: UUID,
    _: UserModel = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> Response:
    """
    Delete a schedule (admin only).

    Cancelled bookings that still reference the schedule are removed with it.

    Raises:
        EntityNotFoundError: If the schedule does not exist
        ConflictError: If an active booking references the schedule
    """
    schedule = await _get_schedule_or_404(db, schedule_id)
    bookings = BookingRepository(db)

    if await bookings.count_active_bookings(schedule_id):
        raise ConflictError(
            "Cannot delete a schedule with an active booking",
            context={"schedule_id": str(schedule_id)},
        )

    removed = await bookings.delete_cancelled_for_schedule(schedule_id)
    await db.delete(schedule)
    await db.commit()

    logger.info("Schedule deleted", schedule_id=str(schedule_id), cancelled_bookings=removed)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
