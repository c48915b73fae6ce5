"""
Room and Building API endpoints.
"""

from uuid import UUID

import structlog
from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from services.booking_service.models import (
    BuildingModel,
    RoomModel,
    RoomScheduleModel,
    RoomStatus,
)
from services.booking_service.schemas import (
    BuildingCreate,
    BuildingResponse,
    RoomCreate,
    RoomResponse,
    RoomUpdate,
)
from services.user_service.dependencies import require_admin
from services.user_service.models import UserModel
from shared.database import get_db
from shared.domain.exceptions import ConflictError, EntityNotFoundError

router = APIRouter(prefix="/rooms", tags=["rooms"])
logger = structlog.get_logger(__name__)


async def _get_room_or_404(db: AsyncSession, room_id: UUID) -> RoomModel:
    result = await db.execute(
        select(RoomModel)
        .where(RoomModel.id == room_id)
        .execution_options(populate_existing=True)
    )
    room = result.unique().scalar_one_or_none()
    if room is None:
        raise EntityNotFoundError("Room", str(room_id), message="Room not found")
    return room


async def _ensure_building(db: AsyncSession, building_id: UUID) -> None:
    if await db.get(BuildingModel, building_id) is None:
        raise EntityNotFoundError("Building", str(building_id), message="Building not found")


async def _ensure_unique_name(db: AsyncSession, name: str, exclude_id: UUID | None = None) -> None:
    stmt = select(RoomModel.id).where(RoomModel.name == name)
    if exclude_id is not None:
        stmt = stmt.where(RoomModel.id != exclude_id)
    if (await db.execute(stmt)).first() is not None:
        raise ConflictError(f"Room '{name}' already exists", context={"name": name})


@router.get("/buildings", response_model=list[BuildingResponse])
async def list_buildings(db: AsyncSession = Depends(get_db)) -> list[BuildingResponse]:
    """List all buildings."""
    result = await db.execute(select(BuildingModel).order_by(BuildingModel.name))
    return [BuildingResponse.model_validate(b) for b in result.scalars().all()]


@router.post(
    "/buildings", response_model=BuildingResponse, status_code=status.HTTP_201_CREATED
)
async def create_building(
    request: BuildingCreate,
    _: UserModel = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> BuildingResponse:
    """
    Create a building (admin only).

    Raises:
        ConflictError: If a building with this name exists
    """
    existing = await db.execute(select(BuildingModel.id).where(BuildingModel.name == request.name))
    if existing.first() is not None:
        raise ConflictError(f"Building '{request.name}' already exists", context={"name": request.name})

    building = BuildingModel(name=request.name, address=request.address, floors=request.floors)
    db.add(building)

    try:
        await db.commit()
    except IntegrityError as e:
        await db.rollback()
        raise ConflictError(f"Building '{request.name}' already exists", cause=e)

    logger.info("Building created", building_id=str(building.id), name=building.name)
    return BuildingResponse.model_validate(building)


@router.get("", response_model=list[RoomResponse])
async def list_rooms(
    building_id: UUID | None = None,
    room_status: RoomStatus | None = Query(default=None, alias="status"),
    min_capacity: int | None = Query(default=None, ge=1),
    q: str | None = Query(default=None, description="Case-insensitive name filter"),
    db: AsyncSession = Depends(get_db),
) -> list[RoomResponse]:
    """
    List all rooms with optional filters.

    Args:
        building_id: Filter by building
        room_status: Filter by room status
        min_capacity: Minimum capacity required
        q: Substring of the room name

    Returns:
        List of rooms with building information
    """
    stmt = select(RoomModel)

    if building_id:
        stmt = stmt.where(RoomModel.building_id == building_id)
    if room_status is not None:
        stmt = stmt.where(RoomModel.status == room_status)
    if min_capacity:
        stmt = stmt.where(RoomModel.capacity >= min_capacity)
    if q:
        stmt = stmt.where(func.lower(RoomModel.name).contains(q.lower()))

    result = await db.execute(stmt.order_by(RoomModel.name))
    rooms = result.unique().scalars().all()

    logger.info("Rooms listed", count=len(rooms))
    return [RoomResponse.model_validate(r) for r in rooms]


@router.get("/{room_id}", response_model=RoomResponse)
async def get_room(room_id: UUID, db: AsyncSession = Depends(get_db)) -> RoomResponse:
    """Get room details by ID."""
    return RoomResponse.model_validate(await _get_room_or_404(db, room_id))


@router.post("", response_model=RoomResponse, status_code=status.HTTP_201_CREATED)
async def create_room(
    request: RoomCreate,
    _: UserModel = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> RoomResponse:
    """
    Create a room (admin only).

    Raises:
        EntityNotFoundError: If the building does not exist
        ConflictError: If a room with this name exists
    """
    await _ensure_building(db, request.building_id)
    await _ensure_unique_name(db, request.name)

    room = RoomModel(**request.model_dump())
    db.add(room)

    try:
        await db.commit()
    except IntegrityError as e:
        await db.rollback()
        raise ConflictError(f"Room '{request.name}' already exists", cause=e)

    logger.info("Room created", room_id=str(room.id), name=room.name)
    return RoomResponse.model_validate(await _get_room_or_404(db, room.id))


@router.put("/{room_id}", response_model=RoomResponse)
async def update_room(
    room_id: UUID,
    request: RoomUpdate,
    _: UserModel = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> RoomResponse:
    """
    Update a room (admin only).

    Raises:
        EntityNotFoundError: If the room or the target building does not exist
        ConflictError: If the new name is taken
    """
    room = await _get_room_or_404(db, room_id)
    changes = request.model_dump(exclude_unset=True, exclude_none=True)

    if "building_id" in changes:
        await _ensure_building(db, changes["building_id"])
    if "name" in changes:
        await _ensure_unique_name(db, changes["name"], exclude_id=room_id)

    for field, value in changes.items():
        setattr(room, field, value)

    try:
        await db.commit()
    except IntegrityError as e:
        await db.rollback()
        raise ConflictError("Room name already in use", cause=e)

    logger.info("Room updated", room_id=str(room_id), fields=sorted(changes))
    return RoomResponse.model_validate(await _get_room_or_404(db, room_id))


@router.delete("/{room_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_room(
    room_id: UUID,
    _: UserModel = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> Response:
    """
    Delete a room (admin only).

    Raises:
        EntityNotFoundError: If the room does not exist
        ConflictError: While schedules still reference the room
    """
    room = await _get_room_or_404(db, room_id)

    schedule_count = await db.scalar(
        select(func.count(RoomScheduleModel.id)).where(RoomScheduleModel.room_id == room_id)
    )
    if schedule_count:
        raise ConflictError(
            "Cannot delete a room that still has schedules",
            context={"room_id": str(room_id), "schedules": schedule_count},
        )

    await db.delete(room)
    await db.commit()

    logger.info("Room deleted", room_id=str(room_id))
    return Response(status_code=status.HTTP_204_NO_CONTENT)
