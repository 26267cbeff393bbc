"""
Escalations service

- класифікатор рівнів (підпис + "колір"/важкість для UI),
- правило прострочення (24 год без вирішення),
- автоматичний скан заявок за порогами часу та SLA.
"""

from __future__ import annotations

import enum
import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Iterable, Iterator, List, Optional, Tuple

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from hosteldesk.db.models import (
    RoleEnum as Role,
    Ticket,
    TicketEscalation,
    TicketPriority as Priority,
    TicketStatus as Status,
    User,
)
from hosteldesk.services.notifications import enqueue
from hosteldesk.services.tickets import OPEN_STATUSES

log = logging.getLogger(__name__)

OVERDUE_AFTER = timedelta(hours=24)


class EscalationLevel(enum.IntEnum):
    EMERGENCY_UNASSIGNED = 1
    HIGH_NO_PROGRESS = 2
    MEDIUM_UNASSIGNED = 3
    LOW_UNASSIGNED = 4
    SLA_BREACH = 5


LEVEL_LABELS: Dict[int, str] = {
    1: "Emergency Unassigned",
    2: "High No Progress",
    3: "Medium Unassigned",
    4: "Low Unassigned",
    5: "SLA Breach",
}

LEVEL_COLORS: Dict[int, str] = {
    1: "error",
    2: "warning",
    3: "info",
    4: "default",
    5: "error",
}


def level_label(level: int) -> str:
    return LEVEL_LABELS.get(int(level), "Unknown") if level is not None else "Unknown"


def level_color(level: int) -> str:
    return LEVEL_COLORS.get(int(level), "default") if level is not None else "default"


def parse_level(value: Any) -> EscalationLevel:
    """Приймає 2, '2' або 'HIGH_NO_PROGRESS'."""
    if isinstance(value, EscalationLevel):
        return value
    if isinstance(value, int):
        return EscalationLevel(value)
    s = str(value).strip().upper()
    if s.isdigit():
        return EscalationLevel(int(s))
    try:
        return EscalationLevel[s]
    except KeyError:
        raise ValueError(f"Unknown escalation level: {value}") from None


def as_utc(dt: Optional[datetime]) -> Optional[datetime]:
    # SQLite повертає naive datetime, вважаємо його UTC
    if dt is None:
        return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def is_overdue(escalation: Any, now: Optional[datetime] = None) -> bool:
    if getattr(escalation, "resolved_at", None) is not None:
        return False
    escalated_at = as_utc(getattr(escalation, "escalated_at", None))
    if escalated_at is None:
        return False
    now = as_utc(now) or datetime.now(timezone.utc)
    return now - escalated_at > OVERDUE_AFTER


# --- автоматичні ескалації ---

# (пріоритет, статуси, поріг, рівень, причина, від якої мітки рахуємо)
TIME_RULES: Tuple[Tuple[Priority, frozenset, timedelta, EscalationLevel, str, str], ...] = (
    (Priority.EMERGENCY, frozenset({Status.OPEN}), timedelta(hours=1),
     EscalationLevel.EMERGENCY_UNASSIGNED, "Emergency ticket unassigned for over 1 hour", "created_at"),
    (Priority.HIGH, frozenset({Status.ASSIGNED, Status.IN_PROGRESS}), timedelta(hours=4),
     EscalationLevel.HIGH_NO_PROGRESS, "High priority ticket without progress for over 4 hours", "updated_at"),
    (Priority.MEDIUM, frozenset({Status.OPEN}), timedelta(hours=24),
     EscalationLevel.MEDIUM_UNASSIGNED, "Medium priority ticket unassigned for over 24 hours", "created_at"),
    (Priority.LOW, frozenset({Status.OPEN}), timedelta(hours=72),
     EscalationLevel.LOW_UNASSIGNED, "Low priority ticket unassigned for over 72 hours", "created_at"),
)


def find_escalation_candidates(
    tickets: Iterable[Ticket],
    now: Optional[datetime] = None,
    active_levels: Optional[Dict[int, set]] = None,
) -> Iterator[Tuple[Ticket, EscalationLevel, str]]:
    """
    active_levels: ticket_id → рівні, для яких уже є невирішена ескалація
    (такі заявки повторно не ескалюємо).
    """
    now = as_utc(now) or datetime.now(timezone.utc)
    active_levels = active_levels or {}

    for t in tickets:
        taken = active_levels.get(t.id, set())
        for priority, statuses, threshold, level, reason, since_attr in TIME_RULES:
            if t.priority != priority or t.status not in statuses:
                continue
            since = as_utc(getattr(t, since_attr, None))
            if since is not None and now - since > threshold and int(level) not in taken:
                yield t, level, reason

        breach = as_utc(t.sla_breach_at)
        if (
            breach is not None
            and t.status in OPEN_STATUSES
            and now > breach
            and int(EscalationLevel.SLA_BREACH) not in taken
        ):
            yield t, EscalationLevel.SLA_BREACH, "Ticket has breached SLA"


async def _first_active_admin(db: AsyncSession) -> Optional[User]:
    res = await db.execute(
        select(User)
        .where(User.role == Role.ADMIN, User.is_active == True)  # noqa: E712
        .order_by(User.id.asc())
        .limit(1)
    )
    return res.scalar_one_or_none()


async def process_automatic_escalations(
    db: AsyncSession, now: Optional[datetime] = None
) -> List[TicketEscalation]:
    """
    Сканує відкриті заявки і створює авто-ескалації.
    Виконавця/статус заявки не змінює: це робить адмін через звичайні дії.
    """
    now = as_utc(now) or datetime.now(timezone.utc)

    tickets = (
        await db.execute(select(Ticket).where(Ticket.status.in_(list(OPEN_STATUSES))))
    ).scalars().all()
    if not tickets:
        return []

    active_rows = (
        await db.execute(
            select(TicketEscalation.ticket_id, TicketEscalation.escalation_level)
            .where(TicketEscalation.resolved_at.is_(None))
        )
    ).all()
    active_levels: Dict[int, set] = {}
    for ticket_id, lvl in active_rows:
        active_levels.setdefault(ticket_id, set()).add(int(lvl))

    target = await _first_active_admin(db)
    if target is None:
        log.warning("escalation_target_missing", extra={"tickets": len(tickets)})
        return []

    created: List[TicketEscalation] = []
    for t, level, reason in find_escalation_candidates(tickets, now, active_levels):
        esc = TicketEscalation(
            ticket_id=t.id,
            escalated_from_id=t.assigned_to_id,
            escalated_to_id=target.id,
            reason=reason,
            escalation_level=int(level),
            is_auto_escalated=True,
            escalated_at=now,
        )
        db.add(esc)
        created.append(esc)
        # один тікет може потрапити і під часове правило, і під SLA
        active_levels.setdefault(t.id, set()).add(int(level))

    if created:
        await db.commit()
        for esc in created:
            await db.refresh(esc)
            enqueue("ticket_escalated", {
                "ticket_id": esc.ticket_id,
                "escalation_id": esc.id,
                "level": esc.escalation_level,
                "auto": True,
            })
        log.info("auto_escalations_created", extra={"count": len(created)})
    return created


def statistics(escalations: Iterable[TicketEscalation], now: Optional[datetime] = None) -> Dict[str, Any]:
    rows = list(escalations)
    by_level: Dict[str, int] = {}
    for e in rows:
        key = level_label(e.escalation_level)
        by_level[key] = by_level.get(key, 0) + 1
    return {
        "total_escalations": len(rows),
        "active_escalations": sum(1 for e in rows if e.resolved_at is None),
        "overdue_escalations": sum(1 for e in rows if is_overdue(e, now)),
        "auto_escalations": sum(1 for e in rows if e.is_auto_escalated),
        "escalations_by_level": by_level,
    }
