"""Shared fixtures: a throwaway SQLite database per test, seeded users and rooms."""

from collections.abc import AsyncIterator
from datetime import datetime, timedelta

import pytest
from httpx import ASGITransport, AsyncClient

from services.booking_service.coordinator import BookingCoordinator
from services.booking_service.main import app as booking_app
from services.booking_service.models import (
    BuildingModel,
    RoomModel,
    RoomScheduleModel,
    ScheduleStatus,
)
from services.user_service.auth_utils import jwt_manager
from services.user_service.main import app as user_app
from services.user_service.models import UserModel, UserRole
from services.user_service.repository import UserRepository
from shared.database import Database

PASSWORD = "Secret@123"


class FrozenClock:
    """Naive UTC clock the tests move by hand."""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


@pytest.fixture
def clock() -> FrozenClock:
    return FrozenClock(datetime(2030, 5, 20, 7, 0))


@pytest.fixture
async def database(tmp_path) -> AsyncIterator[Database]:
    db = Database(f"sqlite+aiosqlite:///{tmp_path / 'booking.db'}")
    await db.init()
    yield db
    await db.close()


@pytest.fixture
def coordinator(database, clock) -> BookingCoordinator:
    return BookingCoordinator(database, clock=clock)


async def _make_user(database: Database, email: str, role: UserRole = UserRole.USER) -> UserModel:
    async with database.transaction() as session:
        return await UserRepository(session).create_user(
            email=email,
            password=PASSWORD,
            first_name="Test",
            last_name=email.split("@")[0],
            role=role,
        )


@pytest.fixture
async def user(database) -> UserModel:
    return await _make_user(database, "alice@hcmut.edu.vn")


@pytest.fixture
async def other_user(database) -> UserModel:
    return await _make_user(database, "bob@hcmut.edu.vn")


@pytest.fixture
async def admin(database) -> UserModel:
    return await _make_user(database, "admin@hcmut.edu.vn", role=UserRole.ADMIN)


def auth_headers(user: UserModel) -> dict[str, str]:
    token = jwt_manager.create_access_token(
        user_id=user.id, email=user.email, role=user.role.value
    )
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
async def room(database) -> RoomModel:
    async with database.transaction() as session:
        building = BuildingModel(name="H6", address="Di An campus", floors=8)
        session.add(building)
        await session.flush()
        room = RoomModel(name="H6-101", building_id=building.id, capacity=40, floor=1)
        session.add(room)
    return room


async def make_schedule(
    database: Database, room: RoomModel, start_time: datetime, hours: int = 2
) -> RoomScheduleModel:
    async with database.transaction() as session:
        schedule = RoomScheduleModel(
            room_id=room.id,
            start_time=start_time,
            end_time=start_time + timedelta(hours=hours),
            status=ScheduleStatus.AVAILABLE,
        )
        session.add(schedule)
    return schedule


@pytest.fixture
async def schedule(database, room, clock) -> RoomScheduleModel:
    """A two-hour slot starting two hours after the frozen now."""
    return await make_schedule(database, room, clock.now + timedelta(hours=2))


async def load_schedule(database: Database, schedule_id) -> RoomScheduleModel:
    async with database.session() as session:
        return await session.get(RoomScheduleModel, schedule_id)


@pytest.fixture
async def booking_client(database, coordinator) -> AsyncIterator[AsyncClient]:
    booking_app.state.database = database
    booking_app.state.coordinator = coordinator
    transport = ASGITransport(app=booking_app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


@pytest.fixture
async def user_client(database) -> AsyncIterator[AsyncClient]:
    user_app.state.database = database
    transport = ASGITransport(app=user_app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
