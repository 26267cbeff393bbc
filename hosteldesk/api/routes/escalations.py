# hosteldesk/api/routes/escalations.py
from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import select

from ..deps import DBDep, UserDep, require_permission
from hosteldesk.db.models import RoleEnum as Role, Ticket, TicketEscalation, User
from hosteldesk.schemas.escalations import (
    EscalationOut,
    EscalationStats,
    ManualEscalationIn,
    ResolveEscalationIn,
)
from hosteldesk.services.escalations import (
    is_overdue,
    level_color,
    level_label,
    process_automatic_escalations,
    statistics,
)
from hosteldesk.services.notifications import enqueue

router = APIRouter(dependencies=[Depends(require_permission("escalate_tickets"))])
log = logging.getLogger(__name__)


def _escalation_out(e: TicketEscalation, now: Optional[datetime] = None) -> EscalationOut:
    return EscalationOut(
        id=e.id,
        ticket_id=e.ticket_id,
        escalated_from_id=e.escalated_from_id,
        escalated_to_id=e.escalated_to_id,
        reason=e.reason,
        escalation_level=e.escalation_level,
        level_label=level_label(e.escalation_level),
        level_color=level_color(e.escalation_level),
        is_auto_escalated=e.is_auto_escalated,
        escalated_at=e.escalated_at,
        resolved_at=e.resolved_at,
        resolution_note=e.resolution_note,
        overdue=is_overdue(e, now),
    )


@router.get("", response_model=list[EscalationOut])
async def list_escalations(
    db: DBDep,
    active_only: bool = Query(default=False),
    ticket_id: int | None = None,
    level: int | None = Query(default=None, ge=1, le=5),
):
    q = select(TicketEscalation)
    if active_only:
        q = q.where(TicketEscalation.resolved_at.is_(None))
    if ticket_id is not None:
        q = q.where(TicketEscalation.ticket_id == ticket_id)
    if level is not None:
        q = q.where(TicketEscalation.escalation_level == level)
    rows = (await db.execute(q.order_by(TicketEscalation.escalated_at.desc()))).scalars().all()
    now = datetime.now(timezone.utc)
    return [_escalation_out(e, now) for e in rows]


@router.get("/statistics", response_model=EscalationStats)
async def escalation_statistics(db: DBDep):
    rows = (await db.execute(select(TicketEscalation))).scalars().all()
    return statistics(rows, datetime.now(timezone.utc))


@router.post("/manual", response_model=EscalationOut, status_code=status.HTTP_201_CREATED)
async def manual_escalation(payload: ManualEscalationIn, db: DBDep, current: UserDep):
    t = await db.get(Ticket, payload.ticket_id)
    if not t:
        raise HTTPException(status_code=404, detail="Ticket not found")
    target = await db.get(User, payload.escalated_to_id)
    if target is None or not target.is_active or target.role not in {Role.STAFF, Role.ADMIN}:
        raise HTTPException(status_code=400, detail="Escalation target must be an active staff member or admin")

    e = TicketEscalation(
        ticket_id=t.id,
        escalated_from_id=t.assigned_to_id,
        escalated_to_id=target.id,
        reason=payload.reason,
        escalation_level=payload.escalation_level,
        is_auto_escalated=False,
        escalated_at=datetime.now(timezone.utc),
    )
    db.add(e)
    await db.commit()
    await db.refresh(e)

    log.info("manual_escalation", extra={"ticket_id": t.id, "level": e.escalation_level, "by": current.id})
    enqueue("ticket_escalated", {
        "ticket_id": t.id,
        "escalation_id": e.id,
        "level": e.escalation_level,
        "auto": False,
    })
    return _escalation_out(e)


@router.post("/{escalation_id}/resolve", response_model=EscalationOut)
async def resolve_escalation(
    escalation_id: int,
    db: DBDep,
    payload: ResolveEscalationIn | None = None,
):
    e = await db.get(TicketEscalation, escalation_id)
    if not e:
        raise HTTPException(status_code=404, detail="Escalation not found")
    if e.resolved_at is not None:
        raise HTTPException(status_code=409, detail="Escalation already resolved")

    e.resolved_at = datetime.now(timezone.utc)
    e.resolution_note = payload.resolution_note if payload else None
    await db.commit()
    await db.refresh(e)
    return _escalation_out(e)


@router.post("/process")
async def process_escalations(db: DBDep):
    created = await process_automatic_escalations(db)
    now = datetime.now(timezone.utc)
    return {
        "created": len(created),
        "escalations": [_escalation_out(e, now) for e in created],
    }
