# hosteldesk/api/routes/assets.py
from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone

from fastapi import APIRouter, Depends, HTTPException, Query, status
from fastapi.responses import Response
from sqlalchemy import select

from ..deps import DBDep, UserDep, require_role
from hosteldesk.db.models import (
    Asset,
    AssetMovement,
    AssetStatus,
    AssetType,
    MaintenanceSchedule,
    RoleEnum as Role,
)
from hosteldesk.schemas.assets import (
    AssetCreate,
    AssetOut,
    AssetUpdate,
    MaintenanceCreate,
    MaintenanceOut,
    MovementCreate,
    MovementOut,
)

router = APIRouter()
log = logging.getLogger(__name__)

staff_or_admin = Depends(require_role(Role.STAFF, Role.ADMIN))
admin_only = Depends(require_role(Role.ADMIN))

# NOT NULL у таблиці: явний null з клієнта ігноруємо
_REQUIRED_FIELDS = {"name", "type", "status"}


async def _get_asset(db: DBDep, asset_id: int) -> Asset:
    a = await db.get(Asset, asset_id)
    if not a:
        raise HTTPException(status_code=404, detail="Asset not found")
    return a


# --- статичні шляхи раніше за /{asset_id} ---


@router.get("/maintenance", response_model=list[MaintenanceOut], dependencies=[staff_or_admin])
async def list_maintenance(
    db: DBDep,
    asset_id: int | None = None,
    pending_only: bool = Query(default=False),
):
    q = select(MaintenanceSchedule)
    if asset_id is not None:
        q = q.where(MaintenanceSchedule.asset_id == asset_id)
    if pending_only:
        q = q.where(MaintenanceSchedule.completed_at.is_(None))
    return (await db.execute(q.order_by(MaintenanceSchedule.scheduled_for.asc()))).scalars().all()


@router.post(
    "/maintenance",
    response_model=MaintenanceOut,
    status_code=status.HTTP_201_CREATED,
    dependencies=[admin_only],
)
async def schedule_maintenance(payload: MaintenanceCreate, db: DBDep):
    await _get_asset(db, payload.asset_id)
    m = MaintenanceSchedule(**payload.model_dump())
    db.add(m)
    await db.commit()
    await db.refresh(m)
    return m


@router.post("/maintenance/{schedule_id}/complete", response_model=MaintenanceOut, dependencies=[admin_only])
async def complete_maintenance(schedule_id: int, db: DBDep):
    """Позначає обслуговування виконаним; для періодичного планує наступне."""
    m = await db.get(MaintenanceSchedule, schedule_id)
    if not m:
        raise HTTPException(status_code=404, detail="Maintenance schedule not found")
    if m.completed_at is not None:
        raise HTTPException(status_code=409, detail="Maintenance already completed")

    now = datetime.now(timezone.utc)
    m.completed_at = now
    if m.frequency_days:
        db.add(MaintenanceSchedule(
            asset_id=m.asset_id,
            title=m.title,
            notes=m.notes,
            scheduled_for=now + timedelta(days=m.frequency_days),
            frequency_days=m.frequency_days,
        ))
    await db.commit()
    await db.refresh(m)
    return m


@router.get("/movements", response_model=list[MovementOut], dependencies=[staff_or_admin])
async def list_movements(db: DBDep, asset_id: int | None = None):
    q = select(AssetMovement)
    if asset_id is not None:
        q = q.where(AssetMovement.asset_id == asset_id)
    return (await db.execute(q.order_by(AssetMovement.moved_at.desc(), AssetMovement.id.desc()))).scalars().all()


@router.post(
    "/movements",
    response_model=MovementOut,
    status_code=status.HTTP_201_CREATED,
    dependencies=[staff_or_admin],
)
async def record_movement(payload: MovementCreate, db: DBDep, current: UserDep):
    a = await _get_asset(db, payload.asset_id)
    if a.status == AssetStatus.RETIRED:
        raise HTTPException(status_code=400, detail="Retired assets cannot be moved")

    mv = AssetMovement(
        asset_id=a.id,
        from_building=a.building,
        from_room=a.room_number,
        to_building=payload.to_building,
        to_room=payload.to_room,
        reason=payload.reason,
        moved_by_id=current.id,
        moved_at=datetime.now(timezone.utc),
    )
    a.building = payload.to_building
    a.room_number = payload.to_room
    db.add(mv)
    await db.commit()
    await db.refresh(mv)
    log.info("asset_moved", extra={"asset_id": a.id, "to_building": a.building, "to_room": a.room_number})
    return mv


# --- майно ---


@router.get("", response_model=list[AssetOut], dependencies=[staff_or_admin])
async def list_assets(
    db: DBDep,
    status_: AssetStatus | None = Query(default=None, alias="status"),
    type_: AssetType | None = Query(default=None, alias="type"),
    building: str | None = None,
):
    q = select(Asset)
    if status_:
        q = q.where(Asset.status == status_)
    if type_:
        q = q.where(Asset.type == type_)
    if building:
        q = q.where(Asset.building == building)
    return (await db.execute(q.order_by(Asset.asset_tag.asc()))).scalars().all()


@router.post("", response_model=AssetOut, status_code=status.HTTP_201_CREATED, dependencies=[admin_only])
async def create_asset(payload: AssetCreate, db: DBDep):
    exists = (await db.execute(select(Asset.id).where(Asset.asset_tag == payload.asset_tag))).first()
    if exists:
        raise HTTPException(status_code=409, detail="Asset tag already exists")
    a = Asset(**payload.model_dump())
    db.add(a)
    await db.commit()
    await db.refresh(a)
    return a


@router.get("/{asset_id}", response_model=AssetOut, dependencies=[staff_or_admin])
async def get_asset(asset_id: int, db: DBDep):
    return await _get_asset(db, asset_id)


@router.put("/{asset_id}", response_model=AssetOut, dependencies=[admin_only])
async def update_asset(asset_id: int, payload: AssetUpdate, db: DBDep):
    a = await _get_asset(db, asset_id)
    for field, value in payload.model_dump(exclude_unset=True).items():
        if value is None and field in _REQUIRED_FIELDS:
            continue
        setattr(a, field, value)
    await db.commit()
    await db.refresh(a)
    return a


@router.delete("/{asset_id}", status_code=204, dependencies=[admin_only])
async def delete_asset(asset_id: int, db: DBDep):
    """Майно не видаляємо фізично: списуємо (RETIRED)."""
    a = await _get_asset(db, asset_id)
    a.status = AssetStatus.RETIRED
    await db.commit()
    return Response(status_code=204)
