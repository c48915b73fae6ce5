"""
Booking Service Repository

Database access layer for bookings and room schedules. Every method runs inside
the session it was given; transaction boundaries belong to the caller.
"""

from datetime import datetime
from uuid import UUID

import structlog
from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from services.booking_service.models import (
    BookingModel,
    BookingStatus,
    RoomModel,
    RoomScheduleModel,
    ScheduleStatus,
)
from shared.domain.exceptions import ConcurrencyError

logger = structlog.get_logger(__name__)


class RoomScheduleRepository:
    """Repository for room schedule data access."""

    def __init__(self, session: AsyncSession):
        """
        Initialize repository.

        Args:
            session: Database session
        """
        self.session = session

    async def get_schedule(
        self, schedule_id: UUID, for_update: bool = False
    ) -> RoomScheduleModel | None:
        """
        Get a schedule by ID.

        Args:
            schedule_id: Schedule UUID
            for_update: Lock the schedule row until the transaction ends

        Returns:
            RoomScheduleModel or None
        """
        stmt = select(RoomScheduleModel).where(RoomScheduleModel.id == schedule_id)
        if for_update:
            stmt = stmt.with_for_update(of=RoomScheduleModel)
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def set_status(self, schedule: RoomScheduleModel, status: ScheduleStatus) -> None:
        """Write the reservation status of a schedule."""
        if schedule.status != status:
            logger.debug(
                "Schedule status changed",
                schedule_id=str(schedule.id),
                old=schedule.status.value,
                new=status.value,
            )
        schedule.status = status
        schedule.updated_at = datetime.utcnow()
        await self.session.flush()


class BookingRepository:
    """Repository for booking data access."""

    def __init__(self, session: AsyncSession):
        """
        Initialize repository.

        Args:
            session: Database session
        """
        self.session = session

    async def create_booking(
        self, room_schedule_id: UUID, user_id: UUID, purpose: str
    ) -> BookingModel:
        """
        Insert an active booking.

        Args:
            room_schedule_id: Schedule being reserved
            user_id: Booking owner
            purpose: Free-text purpose

        Returns:
            BookingModel: Created booking with user and schedule details loaded
        """
        booking = BookingModel(
            room_schedule_id=room_schedule_id,
            user_id=user_id,
            purpose=purpose,
            status=BookingStatus.COMPLETED,
            version=1,
        )

        self.session.add(booking)
        await self.session.flush()

        logger.info(
            "Booking created",
            booking_id=str(booking.id),
            room_schedule_id=str(room_schedule_id),
            user_id=str(user_id),
        )

        return await self.get_booking(booking.id, refresh=True)

    async def get_booking(self, booking_id: UUID, refresh: bool = False) -> BookingModel | None:
        """
        Get booking by ID with user, schedule, room and building joined.

        Args:
            booking_id: Booking UUID
            refresh: Overwrite any state already held by the session

        Returns:
            BookingModel or None
        """
        stmt = select(BookingModel).where(BookingModel.id == booking_id)
        if refresh:
            stmt = stmt.execution_options(populate_existing=True)
        result = await self.session.execute(stmt)
        return result.unique().scalar_one_or_none()

    async def find_active_booking(
        self, room_schedule_id: UUID, exclude_id: UUID | None = None
    ) -> BookingModel | None:
        """Return any booking on the schedule whose status is not CANCELLED."""
        stmt = select(BookingModel).where(
            BookingModel.room_schedule_id == room_schedule_id,
            BookingModel.status != BookingStatus.CANCELLED,
        )
        if exclude_id is not None:
            stmt = stmt.where(BookingModel.id != exclude_id)
        result = await self.session.execute(stmt.limit(1))
        return result.unique().scalar_one_or_none()

    async def count_active_bookings(
        self, room_schedule_id: UUID, exclude_id: UUID | None = None
    ) -> int:
        """Count bookings on the schedule whose status is not CANCELLED."""
        stmt = select(func.count(BookingModel.id)).where(
            BookingModel.room_schedule_id == room_schedule_id,
            BookingModel.status != BookingStatus.CANCELLED,
        )
        if exclude_id is not None:
            stmt = stmt.where(BookingModel.id != exclude_id)
        result = await self.session.execute(stmt)
        return result.scalar() or 0

    async def delete_booking(self, booking_id: UUID, read_version: int) -> None:
        """
        Remove a booking row if it still carries the version the caller read.

        Raises:
            ConcurrencyError: If the row changed or vanished since it was read
        """
        result = await self.session.execute(
            delete(BookingModel)
            .where(BookingModel.id == booking_id, BookingModel.version == read_version)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            raise ConcurrencyError(
                context={"entity_id": str(booking_id), "read_version": read_version},
            )
        logger.info("Booking deleted", booking_id=str(booking_id))

    async def delete_cancelled_for_schedule(self, room_schedule_id: UUID) -> int:
        """Remove cancelled bookings that still reference a schedule."""
        result = await self.session.execute(
            select(BookingModel).where(
                BookingModel.room_schedule_id == room_schedule_id,
                BookingModel.status == BookingStatus.CANCELLED,
            )
        )
        bookings = result.unique().scalars().all()
        for booking in bookings:
            await self.session.delete(booking)
        await self.session.flush()
        return len(bookings)

    async def list_bookings(
        self,
        user_id: UUID | None = None,
        status: BookingStatus | None = None,
        starts_from: datetime | None = None,
        starts_until: datetime | None = None,
        room_name: str | None = None,
    ) -> list[BookingModel]:
        """
        List bookings, newest first.

        Args:
            user_id: Only bookings owned by this user
            status: Only bookings in this status
            starts_from: Schedule start time lower bound (inclusive)
            starts_until: Schedule start time upper bound (inclusive)
            room_name: Only bookings for the room with this name

        Returns:
            list of BookingModel
        """
        stmt = select(BookingModel)

        if starts_from is not None or starts_until is not None or room_name is not None:
            stmt = stmt.join(
                RoomScheduleModel, BookingModel.room_schedule_id == RoomScheduleModel.id
            )
            if starts_from is not None:
                stmt = stmt.where(RoomScheduleModel.start_time >= starts_from)
            if starts_until is not None:
                stmt = stmt.where(RoomScheduleModel.start_time <= starts_until)
            if room_name is not None:
                stmt = stmt.join(RoomModel, RoomScheduleModel.room_id == RoomModel.id).where(
                    RoomModel.name == room_name
                )

        if user_id is not None:
            stmt = stmt.where(BookingModel.user_id == user_id)
        if status is not None:
            stmt = stmt.where(BookingModel.status == status)

        stmt = stmt.order_by(BookingModel.created_at.desc())

        result = await self.session.execute(stmt)
        return list(result.unique().scalars().all())
