# hosteldesk/api/routes/admin.py
from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, Query, status
from fastapi.responses import Response
from sqlalchemy import func, select

from ..deps import AdminDep, DBDep, require_permission
from hosteldesk.core.security import hash_password
from hosteldesk.db.models import (
    CategoryStaffMapping,
    HostelBlock,
    RoleEnum as Role,
    StaffVertical,
    Ticket,
    User,
)
from hosteldesk.schemas.auth import UserOut
from hosteldesk.schemas.mappings import MappingCreate, MappingOut, MappingUpdate
from hosteldesk.schemas.users import UserAdminUpdate, UserCreate, UserStatusIn
from hosteldesk.services.auth import get_user_by_email, serialize_user
from hosteldesk.services.tickets import OPEN_STATUSES

router = APIRouter()
log = logging.getLogger(__name__)


def _user_out(u: User) -> UserOut:
    return UserOut(**serialize_user(u))


async def _get_user(db: DBDep, user_id: int) -> User:
    u = await db.get(User, user_id)
    if not u:
        raise HTTPException(status_code=404, detail="User not found")
    return u


# ===== користувачі =====


@router.get(
    "/users",
    response_model=list[UserOut],
    dependencies=[Depends(require_permission("view_all_users"))],
)
async def list_users(
    db: DBDep,
    role: Role | None = None,
    active: bool | None = None,
):
    q = select(User)
    if role is not None:
        q = q.where(User.role == role)
    if active is not None:
        q = q.where(User.is_active == active)
    rows = (await db.execute(q.order_by(User.id.asc()))).scalars().all()
    return [_user_out(u) for u in rows]


@router.post(
    "/users",
    response_model=UserOut,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_permission("create_users"))],
)
async def create_user(payload: UserCreate, db: DBDep):
    email = payload.email.strip().lower()
    if await get_user_by_email(db, email):
        raise HTTPException(status_code=409, detail="Email already registered")

    u = User(
        email=email,
        password_hash=hash_password(payload.password),
        first_name=payload.first_name,
        last_name=payload.last_name,
        role=payload.role,
        staff_vertical=payload.staff_vertical,
        staff_id=payload.staff_id,
        student_id=payload.student_id,
        room_number=payload.room_number,
        hostel_block=payload.hostel_block,
        phone=payload.phone,
        is_active=True,
    )
    db.add(u)
    await db.commit()
    await db.refresh(u)
    log.info("user_created", extra={"user_id": u.id, "role": u.role.value})
    return _user_out(u)


@router.put(
    "/users/{user_id}",
    response_model=UserOut,
    dependencies=[Depends(require_permission("update_users"))],
)
async def update_user(user_id: int, payload: UserAdminUpdate, db: DBDep):
    u = await _get_user(db, user_id)
    data = payload.model_dump(exclude_unset=True)

    # студент не може бути виконавцем, тож спершу треба перепризначити його заявки
    if data.get("role") == Role.STUDENT and u.role != Role.STUDENT:
        open_assigned = await db.scalar(
            select(func.count(Ticket.id)).where(
                Ticket.assigned_to_id == u.id,
                Ticket.status.in_(list(OPEN_STATUSES)),
            )
        )
        if open_assigned:
            raise HTTPException(
                status_code=409,
                detail=f"User still has {open_assigned} open assigned ticket(s); reassign them first",
            )

    password = data.pop("password", None)
    if password:
        u.password_hash = hash_password(password)
    for field, value in data.items():
        if value is not None:
            setattr(u, field, value)

    # вертикаль лише у персоналу
    if u.role == Role.STAFF and u.staff_vertical is None:
        raise HTTPException(status_code=400, detail="staff_vertical is required for STAFF users")
    if u.role != Role.STAFF:
        u.staff_vertical = None

    await db.commit()
    await db.refresh(u)
    return _user_out(u)


async def _set_active(db: DBDep, user_id: int, current: User, is_active: bool) -> User:
    u = await _get_user(db, user_id)
    if u.id == current.id and not is_active:
        raise HTTPException(status_code=400, detail="You cannot deactivate yourself")
    u.is_active = is_active
    await db.commit()
    await db.refresh(u)
    log.info("user_status_changed", extra={"user_id": u.id, "is_active": is_active})
    return u


@router.put(
    "/users/{user_id}/status",
    response_model=UserOut,
    dependencies=[Depends(require_permission("deactivate_users"))],
)
async def set_user_status(user_id: int, payload: UserStatusIn, db: DBDep, current: AdminDep):
    return _user_out(await _set_active(db, user_id, current, payload.is_active))


@router.delete(
    "/users/{user_id}",
    status_code=204,
    dependencies=[Depends(require_permission("manage_users"))],
)
async def delete_user(user_id: int, db: DBDep, current: AdminDep):
    """Заявки посилаються на користувача, тож видалення = деактивація."""
    await _set_active(db, user_id, current, False)
    return Response(status_code=204)


@router.get("/staff", response_model=list[UserOut], dependencies=[Depends(require_permission("view_all_users"))])
async def list_staff(db: DBDep, vertical: StaffVertical | None = None):
    q = select(User).where(User.role == Role.STAFF, User.is_active == True)  # noqa: E712
    if vertical is not None:
        q = q.where(User.staff_vertical == vertical)
    rows = (await db.execute(q.order_by(User.id.asc()))).scalars().all()
    return [_user_out(u) for u in rows]


@router.get("/hostels", dependencies=[Depends(require_permission("view_all_users"))])
async def list_hostels():
    return [{"value": b.value, "display_name": b.display_name} for b in HostelBlock]


# ===== маршрутизація: категорія → персонал =====


async def _check_staff(db: DBDep, staff_id: int) -> None:
    staff = await db.get(User, staff_id)
    if staff is None or staff.role != Role.STAFF:
        raise HTTPException(status_code=400, detail="Mapping target must be a staff member")


@router.get(
    "/mappings",
    response_model=list[MappingOut],
    dependencies=[Depends(require_permission("view_mappings"))],
)
async def list_mappings(
    db: DBDep,
    category: str | None = None,
    staff_id: int | None = None,
    active_only: bool = Query(default=False),
):
    q = select(CategoryStaffMapping)
    if category:
        q = q.where(CategoryStaffMapping.category == category)
    if staff_id is not None:
        q = q.where(CategoryStaffMapping.staff_id == staff_id)
    if active_only:
        q = q.where(CategoryStaffMapping.is_active == True)  # noqa: E712
    q = q.order_by(CategoryStaffMapping.category.asc(), CategoryStaffMapping.priority_level.asc())
    return (await db.execute(q)).scalars().all()


@router.post(
    "/mappings",
    response_model=MappingOut,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_permission("create_mappings"))],
)
async def create_mapping(payload: MappingCreate, db: DBDep):
    await _check_staff(db, payload.staff_id)
    m = CategoryStaffMapping(**payload.model_dump())
    db.add(m)
    await db.commit()
    await db.refresh(m)
    return m


@router.put(
    "/mappings/{mapping_id}",
    response_model=MappingOut,
    dependencies=[Depends(require_permission("update_mappings"))],
)
async def update_mapping(mapping_id: int, payload: MappingUpdate, db: DBDep):
    m = await db.get(CategoryStaffMapping, mapping_id)
    if not m:
        raise HTTPException(status_code=404, detail="Mapping not found")
    for field, value in payload.model_dump(exclude_unset=True).items():
        # hostel_block=None означає "усі корпуси", тож його передаємо як є
        if value is not None or field == "hostel_block":
            setattr(m, field, value)
    await db.commit()
    await db.refresh(m)
    return m


@router.delete(
    "/mappings/{mapping_id}",
    status_code=204,
    dependencies=[Depends(require_permission("delete_mappings"))],
)
async def delete_mapping(mapping_id: int, db: DBDep):
    m = await db.get(CategoryStaffMapping, mapping_id)
    if not m:
        raise HTTPException(status_code=404, detail="Mapping not found")
    await db.delete(m)
    await db.commit()
    return Response(status_code=204)
