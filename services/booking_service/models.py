"""
Booking Service Database Models

SQLAlchemy models for buildings, rooms, room schedules and bookings.
"""

import enum
from datetime import datetime
from uuid import UUID, uuid4

from sqlalchemy import (
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    Uuid,
    text,
)
from sqlalchemy import Enum as SQLEnum
from sqlalchemy.orm import Mapped, mapped_column, relationship

from services.user_service.models import UserModel
from shared.database.sql import Base


class RoomStatus(str, enum.Enum):
    """Operational state of a room."""

    AVAILABLE = "AVAILABLE"
    MAINTENANCE = "MAINTENANCE"
    OCCUPIED = "OCCUPIED"


class ScheduleStatus(str, enum.Enum):
    """Reservation state of a schedule slot."""

    AVAILABLE = "AVAILABLE"
    RESERVED = "RESERVED"


class BookingStatus(str, enum.Enum):
    """
    Booking lifecycle state.

    COMPLETED is the status a booking gets on creation and means the booking is
    active and confirmed.
    """

    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"


class BuildingModel(Base):
    """Building database model."""

    __tablename__ = "buildings"

    id: Mapped[UUID] = mapped_column(Uuid(as_uuid=True), primary_key=True, default=uuid4)
    name: Mapped[str] = mapped_column(String(200), nullable=False, unique=True, index=True)
    address: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    floors: Mapped[int] = mapped_column(Integer, nullable=False, default=1)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, onupdate=datetime.utcnow
    )


class RoomModel(Base):
    """Room database model."""

    __tablename__ = "rooms"

    id: Mapped[UUID] = mapped_column(Uuid(as_uuid=True), primary_key=True, default=uuid4)
    building_id: Mapped[UUID] = mapped_column(
        Uuid(as_uuid=True), ForeignKey("buildings.id"), nullable=False, index=True
    )
    name: Mapped[str] = mapped_column(String(100), nullable=False, unique=True, index=True)
    capacity: Mapped[int] = mapped_column(Integer, nullable=False)
    floor: Mapped[int] = mapped_column(Integer, nullable=False)
    status: Mapped[RoomStatus] = mapped_column(
        SQLEnum(RoomStatus, name="room_status_enum"),
        default=RoomStatus.AVAILABLE,
        nullable=False,
    )

    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, onupdate=datetime.utcnow
    )

    building: Mapped[BuildingModel] = relationship(lazy="joined", innerjoin=True)


class RoomScheduleModel(Base):
    """
    One reservable time window for one room.

    The status column is owned by the booking coordinator.
    """

    __tablename__ = "room_schedules"
    __table_args__ = (
        UniqueConstraint("room_id", "start_time", name="uq_room_schedules_room_start"),
        CheckConstraint("end_time > start_time", name="ck_room_schedules_time_order"),
    )

    id: Mapped[UUID] = mapped_column(Uuid(as_uuid=True), primary_key=True, default=uuid4)
    room_id: Mapped[UUID] = mapped_column(
        Uuid(as_uuid=True), ForeignKey("rooms.id"), nullable=False, index=True
    )
    start_time: Mapped[datetime] = mapped_column(DateTime, nullable=False, index=True)
    end_time: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    status: Mapped[ScheduleStatus] = mapped_column(
        SQLEnum(ScheduleStatus, name="schedule_status_enum"),
        default=ScheduleStatus.AVAILABLE,
        nullable=False,
    )

    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, onupdate=datetime.utcnow
    )

    room: Mapped[RoomModel] = relationship(lazy="joined", innerjoin=True)


class BookingModel(Base):
    """
    Booking database model.

    At most one booking per schedule may be in a status other than CANCELLED;
    the partial unique index enforces it independently of the coordinator's check.
    """

    __tablename__ = "bookings"
    __table_args__ = (
        Index(
            "uq_bookings_active_schedule",
            "room_schedule_id",
            unique=True,
            postgresql_where=text("status <> 'CANCELLED'"),
            sqlite_where=text("status <> 'CANCELLED'"),
        ),
    )

    id: Mapped[UUID] = mapped_column(Uuid(as_uuid=True), primary_key=True, default=uuid4)
    room_schedule_id: Mapped[UUID] = mapped_column(
        Uuid(as_uuid=True), ForeignKey("room_schedules.id"), nullable=False, index=True
    )
    user_id: Mapped[UUID] = mapped_column(
        Uuid(as_uuid=True), ForeignKey("users.id"), nullable=False, index=True
    )
    purpose: Mapped[str] = mapped_column(Text, nullable=False, default="")

    status: Mapped[BookingStatus] = mapped_column(
        SQLEnum(BookingStatus, name="booking_status_enum"),
        default=BookingStatus.COMPLETED,
        nullable=False,
        index=True,
    )
    version: Mapped[int] = mapped_column(Integer, nullable=False, default=1)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, onupdate=datetime.utcnow
    )

    user: Mapped[UserModel] = relationship(lazy="joined", innerjoin=True)
    room_schedule: Mapped[RoomScheduleModel] = relationship(lazy="joined", innerjoin=True)
