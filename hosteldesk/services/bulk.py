"""
Bulk operations: масова зміна статусу, призначення, експорт у CSV.

Кожна заявка проходить ті самі правила, що й одиночна дія; помилка однієї
заявки не зупиняє решту, а потрапляє у failed.
"""

from __future__ import annotations

import csv
import io
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from hosteldesk.db.models import Ticket, TicketStatus as Status, User
from hosteldesk.services.assignment import apply_assignment, check_assignment
from hosteldesk.services.errors import TicketActionError
from hosteldesk.services.escalations import as_utc
from hosteldesk.services.notifications import enqueue
from hosteldesk.services.tickets import apply_status_change, check_status_change

log = logging.getLogger(__name__)

CSV_HEADER = [
    "Ticket Number", "Title", "Category", "Priority", "Status", "Created By",
    "Assigned To", "Hostel Block", "Room Number", "Created At", "Resolved At",
]


@dataclass
class BulkOperationResult:
    successful: List[str] = field(default_factory=list)
    failed: List[str] = field(default_factory=list)

    @property
    def success_count(self) -> int:
        return len(self.successful)

    @property
    def failure_count(self) -> int:
        return len(self.failed)

    @property
    def total_count(self) -> int:
        return self.success_count + self.failure_count

    @property
    def success_rate(self) -> float:
        return (self.success_count * 100.0 / self.total_count) if self.total_count else 0.0

    def as_dict(self) -> Dict[str, Any]:
        return {
            "successful": self.successful,
            "failed": self.failed,
            "success_count": self.success_count,
            "failure_count": self.failure_count,
            "total_count": self.total_count,
            "success_rate": round(self.success_rate, 2),
        }


async def _load_tickets(db: AsyncSession, ticket_ids: Sequence[int]) -> Dict[int, Ticket]:
    rows = (await db.execute(select(Ticket).where(Ticket.id.in_(list(ticket_ids))))).scalars().all()
    return {t.id: t for t in rows}


async def bulk_update_status(
    db: AsyncSession,
    ticket_ids: Sequence[int],
    new_status: Status,
    actor: User,
    comment: Optional[str] = None,
) -> BulkOperationResult:
    result = BulkOperationResult()
    tickets = await _load_tickets(db, ticket_ids)
    events = []

    for tid in ticket_ids:
        t = tickets.get(tid)
        if t is None:
            result.failed.append(f"Ticket {tid}: not found")
            continue
        try:
            check_status_change(actor, t, new_status)
        except TicketActionError as e:
            result.failed.append(f"Ticket {t.ticket_number}: {e.detail}")
            continue
        old = t.status
        history, note = apply_status_change(t, new_status, actor, comment)
        db.add(history)
        if note is not None:
            db.add(note)
        result.successful.append(f"Ticket {t.ticket_number}: {old.value} -> {new_status.value}")
        events.append({"ticket_id": t.id, "from": old.value, "to": new_status.value})

    await db.commit()
    for payload in events:
        enqueue("status_changed", payload)
    log.info("bulk_status_update", extra={"ok": result.success_count, "failed": result.failure_count})
    return result


async def bulk_assign(
    db: AsyncSession,
    ticket_ids: Sequence[int],
    staff: Optional[User],
    actor: User,
) -> BulkOperationResult:
    result = BulkOperationResult()
    tickets = await _load_tickets(db, ticket_ids)
    events = []

    for tid in ticket_ids:
        t = tickets.get(tid)
        if t is None:
            result.failed.append(f"Ticket {tid}: not found")
            continue
        try:
            check_assignment(actor, t, staff)
        except TicketActionError as e:
            result.failed.append(f"Ticket {t.ticket_number}: {e.detail}")
            continue
        db.add(apply_assignment(t, staff, actor))
        result.successful.append(f"Ticket {t.ticket_number}: assigned to {staff.full_name}")
        events.append({"ticket_id": t.id, "assigned_to": staff.id})

    await db.commit()
    for payload in events:
        enqueue("ticket_assigned", payload)
    log.info("bulk_assign", extra={"ok": result.success_count, "failed": result.failure_count})
    return result


def _iso(dt) -> str:
    dt = as_utc(dt)
    return dt.isoformat() if dt else ""


def tickets_to_csv(tickets: Sequence[Ticket], users: Dict[int, User]) -> str:
    """users: id → User для колонок "Created By" / "Assigned To"."""
    buf = io.StringIO()
    writer = csv.writer(buf, lineterminator="\n")
    writer.writerow(CSV_HEADER)
    for t in tickets:
        creator = users.get(t.created_by_id)
        assignee = users.get(t.assigned_to_id) if t.assigned_to_id else None
        writer.writerow([
            t.ticket_number,
            t.title,
            t.effective_category,
            t.priority.value,
            t.status.value,
            creator.full_name if creator else "",
            assignee.full_name if assignee else "",
            t.hostel_block.display_name if t.hostel_block else "",
            t.room_number or "",
            _iso(t.created_at),
            _iso(t.resolved_at),
        ])
    return buf.getvalue()


async def export_tickets_csv(db: AsyncSession, ticket_ids: Optional[Sequence[int]] = None) -> str:
    q = select(Ticket).order_by(Ticket.created_at.asc())
    if ticket_ids:
        q = q.where(Ticket.id.in_(list(ticket_ids)))
    tickets = (await db.execute(q)).scalars().all()

    user_ids = {t.created_by_id for t in tickets} | {t.assigned_to_id for t in tickets if t.assigned_to_id}
    users: Dict[int, User] = {}
    if user_ids:
        rows = (await db.execute(select(User).where(User.id.in_(list(user_ids))))).scalars().all()
        users = {u.id: u for u in rows}
    return tickets_to_csv(tickets, users)
