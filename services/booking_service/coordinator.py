"""
Booking Coordinator

Owns the booking lifecycle and the reservation status of room schedules.

Guarantees at most one active booking per schedule:
- the schedule row is locked for the duration of a create
- active bookings are checked before insert
- a partial unique index rejects a second active booking at the store
- cancellation is a version compare-and-swap
"""

from collections.abc import Callable
from dataclasses import dataclass
from datetime import date, datetime, time
from uuid import UUID

import structlog
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from services.booking_service.models import BookingModel, BookingStatus, ScheduleStatus
from services.booking_service.repository import BookingRepository, RoomScheduleRepository
from shared.concurrency.locking import OptimisticConcurrencyControl
from shared.database import Database
from shared.domain.exceptions import (
    AuthorizationError,
    BadRequestError,
    ConflictError,
    DatabaseError,
    EntityNotFoundError,
    ErrorCode,
    ValidationError,
)

logger = structlog.get_logger(__name__)


@dataclass
class CancellationResult:
    """Outcome of a cancellation."""

    booking: BookingModel
    deleted: bool
    schedule_released: bool


def day_bounds(day: date) -> tuple[datetime, datetime]:
    """First and last instant of a calendar day."""
    return datetime.combine(day, time.min), datetime.combine(day, time.max)


class BookingCoordinator:
    """
    Service coordinating bookings against room schedules.

    Every public operation runs in its own transaction; nothing is shared between
    calls except the database.
    """

    def __init__(self, database: Database, clock: Callable[[], datetime] | None = None):
        """
        Initialize booking coordinator.

        Args:
            database: Persistence handle
            clock: Returns the current naive UTC time
        """
        self.database = database
        self.clock = clock or datetime.utcnow

    async def create_booking(
        self, room_schedule_id: UUID, user_id: UUID, purpose: str
    ) -> BookingModel:
        """
        Reserve a schedule for a user.

        Args:
            room_schedule_id: Schedule to reserve
            user_id: Booking owner
            purpose: Free-text purpose

        Returns:
            BookingModel: The new booking, status COMPLETED, version 1

        Raises:
            EntityNotFoundError: If the schedule does not exist
            ValidationError: If the schedule starts in the past
            ConflictError: If the schedule already has an active booking
            DatabaseError: On unexpected persistence failure
        """
        logger.info(
            "Creating booking",
            room_schedule_id=str(room_schedule_id),
            user_id=str(user_id),
        )

        try:
            async with self.database.transaction() as session:
                schedules = RoomScheduleRepository(session)
                bookings = BookingRepository(session)

                schedule = await schedules.get_schedule(room_schedule_id, for_update=True)
                if schedule is None:
                    raise EntityNotFoundError(
                        "RoomSchedule",
                        str(room_schedule_id),
                        message="Room schedule not found",
                    )

                if schedule.start_time < self.clock():
                    raise ValidationError(
                        "Cannot book a time slot in the past",
                        field="start_time",
                        value=schedule.start_time.isoformat(),
                    )

                if await bookings.find_active_booking(room_schedule_id) is not None:
                    raise self._slot_taken(room_schedule_id)

                booking = await bookings.create_booking(room_schedule_id, user_id, purpose)
                await schedules.set_status(schedule, ScheduleStatus.RESERVED)
        except IntegrityError as e:
            raise self._slot_taken(room_schedule_id, cause=e)
        except SQLAlchemyError as e:
            logger.exception("Booking creation failed", room_schedule_id=str(room_schedule_id))
            raise DatabaseError("Failed to create booking", operation="create_booking", cause=e)

        return booking

    async def cancel_booking(
        self,
        booking_id: UUID,
        requester_id: UUID,
        expected_version: int | None = None,
    ) -> CancellationResult:
        """
        Cancel a booking on behalf of its owner.

        A COMPLETED booking whose time window has fully elapsed is deleted;
        any other active booking is marked CANCELLED. The schedule goes back to
        AVAILABLE once no active booking references it.

        Args:
            booking_id: Booking to cancel
            requester_id: User asking for the cancellation
            expected_version: Version the caller last saw, if any

        Returns:
            CancellationResult

        Raises:
            EntityNotFoundError: If the booking does not exist
            AuthorizationError: If the requester does not own the booking
            BadRequestError: If the booking is already cancelled
            ConcurrencyError: If the booking changed since it was read
            DatabaseError: On unexpected persistence failure
        """
        logger.info(
            "Cancelling booking",
            booking_id=str(booking_id),
            requester_id=str(requester_id),
        )

        try:
            async with self.database.transaction() as session:
                schedules = RoomScheduleRepository(session)
                bookings = BookingRepository(session)

                booking = await bookings.get_booking(booking_id)
                if booking is None:
                    raise EntityNotFoundError(
                        "Booking", str(booking_id), message="Booking not found"
                    )

                if booking.user_id != requester_id:
                    raise AuthorizationError(
                        "Not authorized to cancel this booking",
                        resource="booking",
                        action="cancel",
                    )

                if booking.status == BookingStatus.CANCELLED:
                    raise BadRequestError(
                        "This booking is already cancelled", rule_name="cancel_once"
                    )

                read_version = booking.version
                if expected_version is not None:
                    OptimisticConcurrencyControl.check_version(
                        expected_version, read_version, str(booking_id)
                    )

                schedule_id = booking.room_schedule_id
                now = self.clock()
                deleted = (
                    booking.status == BookingStatus.COMPLETED
                    and booking.room_schedule.end_time <= now
                )

                if deleted:
                    await bookings.delete_booking(booking_id, read_version)
                else:
                    await OptimisticConcurrencyControl.compare_and_swap(
                        session,
                        BookingModel,
                        booking_id,
                        read_version,
                        status=BookingStatus.CANCELLED,
                        updated_at=now,
                    )
                    booking = await bookings.get_booking(booking_id, refresh=True)

                schedule = await schedules.get_schedule(schedule_id, for_update=True)
                remaining = await bookings.count_active_bookings(schedule_id, exclude_id=booking_id)
                released = remaining == 0
                if schedule is not None:
                    await schedules.set_status(
                        schedule, ScheduleStatus.AVAILABLE if released else ScheduleStatus.RESERVED
                    )
        except IntegrityError as e:
            raise ConflictError(
                "Booking was modified by another request",
                error_code=ErrorCode.CONCURRENT_MODIFICATION,
                retryable=True,
                cause=e,
            )
        except SQLAlchemyError as e:
            logger.exception("Booking cancellation failed", booking_id=str(booking_id))
            raise DatabaseError("Failed to cancel booking", operation="cancel_booking", cause=e)

        logger.info(
            "Booking cancelled",
            booking_id=str(booking_id),
            deleted=deleted,
            schedule_released=released,
        )

        return CancellationResult(booking=booking, deleted=deleted, schedule_released=released)

    async def get_booking_by_id(self, booking_id: UUID) -> BookingModel:
        """
        Get a booking with its user, schedule, room and building.

        Raises:
            EntityNotFoundError: If the booking does not exist
        """
        async with self.database.session() as session:
            booking = await BookingRepository(session).get_booking(booking_id)

        if booking is None:
            raise EntityNotFoundError("Booking", str(booking_id), message="Booking not found")
        return booking

    async def get_bookings_by_user_id(
        self, user_id: UUID, status: BookingStatus | None = None
    ) -> list[BookingModel]:
        """Bookings owned by a user, newest first."""
        async with self.database.session() as session:
            return await BookingRepository(session).list_bookings(user_id=user_id, status=status)

    async def get_all_bookings(self) -> list[BookingModel]:
        """Every booking, newest first."""
        async with self.database.session() as session:
            return await BookingRepository(session).list_bookings()

    async def get_bookings_by_date(self, day: date) -> list[BookingModel]:
        """Bookings whose schedule starts on the given day."""
        starts_from, starts_until = day_bounds(day)
        async with self.database.session() as session:
            return await BookingRepository(session).list_bookings(
                starts_from=starts_from, starts_until=starts_until
            )

    async def get_bookings_by_room_name(
        self,
        room_name: str,
        start_date: date | None = None,
        end_date: date | None = None,
    ) -> list[BookingModel]:
        """
        Bookings for a room whose schedule starts within a date range.

        Args:
            room_name: Room name
            start_date: First day of the range, today if omitted
            end_date: Last day of the range, today if omitted
        """
        today = self.clock().date()
        starts_from, _ = day_bounds(start_date or today)
        _, starts_until = day_bounds(end_date or today)

        async with self.database.session() as session:
            return await BookingRepository(session).list_bookings(
                room_name=room_name, starts_from=starts_from, starts_until=starts_until
            )

    @staticmethod
    def _slot_taken(room_schedule_id: UUID, cause: Exception | None = None) -> ConflictError:
        return ConflictError(
            "This time slot is already booked",
            error_code=ErrorCode.SLOT_ALREADY_BOOKED,
            context={"room_schedule_id": str(room_schedule_id)},
            cause=cause,
        )
