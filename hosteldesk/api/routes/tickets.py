# hosteldesk/api/routes/tickets.py
from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from fastapi.responses import Response
from sqlalchemy import and_, func, or_, select

from ..deps import DBDep, UserDep, check_actor, require_permission
from hosteldesk.db.models import (
    CategoryStaffMapping,
    RoleEnum as Role,
    Ticket,
    TicketCategory as Category,
    TicketComment,
    TicketHistory,
    TicketPriority as Priority,
    TicketStatus as Status,
    User,
)
from hosteldesk.schemas.auth import UserOut
from hosteldesk.schemas.tickets import (
    CommentCreate,
    CommentOut,
    HistoryOut,
    RatingIn,
    TicketCreate,
    TicketOut,
    TicketUpdate,
)
from hosteldesk.services.assignment import (
    apply_assignment,
    apply_unassignment,
    check_assignment,
    mapping_ranker,
    recommended_staff,
)
from hosteldesk.services.auth import serialize_user
from hosteldesk.services.notifications import enqueue
from hosteldesk.services.permissions import has_permission, role_of
from hosteldesk.services.tickets import (
    apply_rating,
    apply_status_change,
    available_statuses,
    can_edit_fields,
    can_view,
    check_rating,
    check_status_change,
    generate_ticket_number,
    is_assignee,
    is_creator,
    sla_breach_time,
)

router = APIRouter()
log = logging.getLogger(__name__)


async def _get_ticket(db: DBDep, ticket_id: int) -> Ticket:
    t = await db.get(Ticket, ticket_id)
    if not t:
        raise HTTPException(status_code=404, detail="Ticket not found")
    return t


async def _get_visible_ticket(db: DBDep, ticket_id: int, current: User) -> Ticket:
    t = await _get_ticket(db, ticket_id)
    if not can_view(current, t):
        raise HTTPException(status_code=403, detail="Access denied")
    return t


@router.post(
    "",
    response_model=TicketOut,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_permission("create_ticket"))],
)
async def create_ticket(payload: TicketCreate, db: DBDep, current: UserDep):
    now = datetime.now(timezone.utc)
    seq = (await db.execute(select(func.count(Ticket.id)))).scalar_one() + 1

    t = Ticket(
        ticket_number=generate_ticket_number(seq, now),
        title=payload.title,
        description=payload.description,
        category=payload.category,
        custom_category=payload.custom_category,
        priority=payload.priority,
        status=Status.OPEN,
        created_by_id=current.id,
        # корпус/кімнату студента беремо з профілю, якщо у формі порожньо
        hostel_block=payload.hostel_block or current.hostel_block,
        room_number=payload.room_number or current.room_number,
        location_details=payload.location_details,
        created_at=now,
        updated_at=now,
        sla_breach_at=sla_breach_time(payload.priority, now),
    )
    db.add(t)
    await db.commit()
    await db.refresh(t)

    log.info("ticket_created", extra={"ticket_id": t.id, "priority": t.priority.value})
    enqueue("ticket_created", {
        "ticket_id": t.id,
        "ticket_number": t.ticket_number,
        "created_by": current.email,
        "priority": t.priority.value,
    })
    return t


@router.get("", response_model=list[TicketOut])
async def list_tickets(
    db: DBDep,
    current: UserDep,
    status_: Status | None = Query(default=None, alias="status"),
    priority: Priority | None = None,
    category: Category | None = None,
    assigned_to: int | None = None,
    limit: int = Query(default=50, ge=1, le=500),
    offset: int = Query(default=0, ge=0),
):
    q = select(Ticket)
    role = role_of(current)
    if role == Role.STUDENT:
        q = q.where(Ticket.created_by_id == current.id)
    elif role == Role.STAFF:
        q = q.where(or_(
            Ticket.assigned_to_id == current.id,
            and_(Ticket.assigned_to_id.is_(None), Ticket.status == Status.OPEN),
        ))
    if status_:
        q = q.where(Ticket.status == status_)
    if priority:
        q = q.where(Ticket.priority == priority)
    if category:
        q = q.where(Ticket.category == category)
    if assigned_to is not None:
        q = q.where(Ticket.assigned_to_id == assigned_to)

    q = q.order_by(Ticket.created_at.desc(), Ticket.id.desc()).limit(limit).offset(offset)
    return (await db.execute(q)).scalars().all()


@router.get("/{ticket_id}", response_model=TicketOut)
async def get_ticket(ticket_id: int, db: DBDep, current: UserDep):
    return await _get_visible_ticket(db, ticket_id, current)


@router.put("/{ticket_id}", response_model=TicketOut)
async def update_ticket(ticket_id: int, payload: TicketUpdate, db: DBDep, current: UserDep):
    t = await _get_ticket(db, ticket_id)
    if not can_edit_fields(current, t):
        raise HTTPException(status_code=403, detail="Not allowed to edit this ticket")

    data = payload.model_dump(exclude_unset=True)
    for field in ("title", "description", "hostel_block", "room_number", "location_details"):
        if field in data and data[field] is not None:
            setattr(t, field, data[field])

    if "category" in data or "custom_category" in data:
        category = data.get("category") or t.category
        custom = (data.get("custom_category", t.custom_category) or "").strip()
        if category == Category.CUSTOM and not custom:
            raise HTTPException(status_code=400, detail="custom_category is required when category is CUSTOM")
        t.category = category
        t.custom_category = custom if category == Category.CUSTOM else None

    if data.get("priority") is not None and data["priority"] != t.priority:
        t.priority = data["priority"]
        t.sla_breach_at = sla_breach_time(t.priority, t.created_at)

    t.updated_at = datetime.now(timezone.utc)
    await db.commit()
    await db.refresh(t)
    return t


@router.delete(
    "/{ticket_id}",
    status_code=204,
    dependencies=[Depends(require_permission("delete_all_tickets"))],
)
async def delete_ticket(ticket_id: int, db: DBDep, current: UserDep):
    """М'яке видалення: заявка переходить у CANCELLED за звичайними правилами."""
    t = await _get_ticket(db, ticket_id)
    if t.status != Status.CANCELLED:
        check_status_change(current, t, Status.CANCELLED)
        old = t.status
        history, _ = apply_status_change(t, Status.CANCELLED, current, None)
        db.add(history)
        await db.commit()
        enqueue("status_changed", {"ticket_id": t.id, "from": old.value, "to": Status.CANCELLED.value})
    return Response(status_code=204)


# --- призначення / статус ---


@router.post("/{ticket_id}/assign/{staff_id}", response_model=TicketOut)
async def assign_ticket(
    ticket_id: int,
    staff_id: int,
    db: DBDep,
    current: UserDep,
    requested_by: Optional[int] = Query(default=None, alias="requestedBy"),
):
    check_actor(current, requested_by)
    t = await _get_ticket(db, ticket_id)
    staff = await db.get(User, staff_id)
    if staff is None:
        raise HTTPException(status_code=404, detail="Staff member not found")

    check_assignment(current, t, staff)
    db.add(apply_assignment(t, staff, current))
    await db.commit()
    await db.refresh(t)

    enqueue("ticket_assigned", {"ticket_id": t.id, "assigned_to": staff.id, "assigned_by": current.id})
    return t


@router.put("/{ticket_id}/status", response_model=TicketOut)
async def update_status(
    ticket_id: int,
    db: DBDep,
    current: UserDep,
    new_status: Status = Query(alias="status"),
    updated_by: Optional[int] = Query(default=None, alias="updatedBy"),
    comment: Optional[str] = Query(default=None, max_length=2000),
):
    check_actor(current, updated_by)
    t = await _get_ticket(db, ticket_id)

    check_status_change(current, t, new_status)
    old = t.status
    history, note = apply_status_change(t, new_status, current, comment)
    db.add(history)
    if note is not None:
        db.add(note)
    await db.commit()
    await db.refresh(t)

    enqueue("status_changed", {
        "ticket_id": t.id,
        "from": old.value,
        "to": t.status.value,
        "updated_by": current.id,
    })
    return t


@router.patch("/{ticket_id}/unassign", response_model=TicketOut)
async def unassign_ticket(
    ticket_id: int,
    db: DBDep,
    current: UserDep,
    admin_id: Optional[int] = Query(default=None, alias="adminId"),
):
    check_actor(current, admin_id)
    t = await _get_ticket(db, ticket_id)

    old = t.status
    db.add(apply_unassignment(t, current))
    await db.commit()
    await db.refresh(t)

    if old != t.status:
        enqueue("status_changed", {"ticket_id": t.id, "from": old.value, "to": t.status.value})
    return t


@router.post(
    "/{ticket_id}/rating",
    response_model=TicketOut,
    dependencies=[Depends(require_permission("rate_completed_work"))],
)
async def rate_ticket(ticket_id: int, payload: RatingIn, db: DBDep, current: UserDep):
    """Оцінка автора (1..5) і необов'язковий відгук по вирішеній заявці."""
    t = await _get_ticket(db, ticket_id)
    check_rating(current, t)
    db.add(apply_rating(t, payload.rating, payload.feedback, current))
    await db.commit()
    await db.refresh(t)
    log.info("ticket_rated", extra={"ticket_id": t.id, "rating": t.satisfaction_rating})
    return t


@router.get("/{ticket_id}/available-statuses")
async def get_available_statuses(ticket_id: int, db: DBDep, current: UserDep):
    t = await _get_visible_ticket(db, ticket_id, current)
    role = role_of(current)
    # рядкові обмеження: чужа заявка → переходів немає
    if (role == Role.STUDENT and not is_creator(current, t)) or (
        role == Role.STAFF and not is_assignee(current, t)
    ):
        allowed = frozenset()
    else:
        allowed = available_statuses(role, t.status)
    return {
        "current": t.status.value,
        "available": sorted(s.value for s in allowed),
    }


@router.get(
    "/{ticket_id}/recommended-staff",
    response_model=list[UserOut],
    dependencies=[Depends(require_permission("assign_tickets"))],
)
async def get_recommended_staff(ticket_id: int, db: DBDep, ranked: bool = Query(default=False)):
    """Фільтр за категорією; ranked=true додатково впорядковує за мапінгами."""
    t = await _get_ticket(db, ticket_id)
    roster = (await db.execute(
        select(User)
        .where(User.role == Role.STAFF, User.is_active == True)  # noqa: E712
        .order_by(User.id.asc())
    )).scalars().all()
    ranker = None
    if ranked:
        mappings = (await db.execute(
            select(CategoryStaffMapping).where(CategoryStaffMapping.is_active == True)  # noqa: E712
        )).scalars().all()
        ranker = mapping_ranker(mappings)

    staff = recommended_staff(t, roster, ranker=ranker)
    return [UserOut(**serialize_user(u)) for u in staff]


# --- коментарі / історія ---


def _can_comment(user: User, t: Ticket) -> bool:
    if has_permission(user, "comment_on_any_ticket"):
        return True
    if has_permission(user, "comment_on_assigned_tickets") and is_assignee(user, t):
        return True
    return has_permission(user, "comment_on_own_tickets") and is_creator(user, t)


@router.get("/{ticket_id}/comments", response_model=list[CommentOut])
async def list_comments(ticket_id: int, db: DBDep, current: UserDep):
    t = await _get_visible_ticket(db, ticket_id, current)
    q = select(TicketComment).where(TicketComment.ticket_id == t.id)
    if role_of(current) == Role.STUDENT:
        q = q.where(TicketComment.is_internal == False)  # noqa: E712
    q = q.order_by(TicketComment.created_at.asc(), TicketComment.id.asc())
    return (await db.execute(q)).scalars().all()


@router.post("/{ticket_id}/comments", response_model=CommentOut, status_code=status.HTTP_201_CREATED)
async def add_comment(ticket_id: int, payload: CommentCreate, db: DBDep, current: UserDep):
    t = await _get_ticket(db, ticket_id)
    if not _can_comment(current, t):
        raise HTTPException(status_code=403, detail="Not allowed to comment on this ticket")

    c = TicketComment(
        ticket_id=t.id,
        author_id=current.id,
        body=payload.body,
        # внутрішні нотатки лише для персоналу
        is_internal=payload.is_internal and role_of(current) != Role.STUDENT,
        created_at=datetime.now(timezone.utc),
    )
    db.add(c)
    await db.commit()
    await db.refresh(c)
    return c


@router.get("/{ticket_id}/history", response_model=list[HistoryOut])
async def list_history(ticket_id: int, db: DBDep, current: UserDep):
    t = await _get_visible_ticket(db, ticket_id, current)
    rows = (await db.execute(
        select(TicketHistory)
        .where(TicketHistory.ticket_id == t.id)
        .order_by(TicketHistory.created_at.asc(), TicketHistory.id.asc())
    )).scalars().all()
    return rows
