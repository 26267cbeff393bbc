"""
Reports service

Операційний дашборд: агреговані зрізи по заявках за період (7d/30d/90d).
Рахуємо в Python по вибірці за період, щоб однаково працювало на Postgres і SQLite.
"""

from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Iterable, List, Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from hosteldesk.db.models import Ticket, TicketEscalation, TicketStatus as Status, User
from hosteldesk.services.escalations import as_utc
from hosteldesk.services.tickets import OPEN_STATUSES

TIME_RANGES: Dict[str, timedelta] = {
    "7d": timedelta(days=7),
    "30d": timedelta(days=30),
    "90d": timedelta(days=90),
}

_DONE = {Status.RESOLVED, Status.CLOSED}


def _enum_key(v):
    # Повертаємо string-значення навіть якщо SQLAlchemy віддасть Enum-об'єкт
    return v.value if hasattr(v, "value") else v


def parse_time_range(value: Optional[str]) -> timedelta:
    if value is None:
        return TIME_RANGES["7d"]
    try:
        return TIME_RANGES[value.strip().lower()]
    except KeyError:
        raise ValueError(f"Unsupported time range: {value}") from None


def _count_by(rows: Iterable[Any]) -> Dict[str, int]:
    out: Dict[str, int] = {}
    for v in rows:
        key = _enum_key(v)
        out[key] = out.get(key, 0) + 1
    return out


def summarize(tickets: List[Ticket], now: datetime) -> Dict[str, Any]:
    """
    Чиста частина звіту (без БД):
      - розподіл за статусом / пріоритетом / категорією
      - середній час вирішення (год)
      - частка вирішених вчасно (SLA)
      - відкриті заявки, що вже прострочили SLA
    """
    resolution_hours: List[float] = []
    within_sla = 0
    for t in tickets:
        resolved = as_utc(t.resolved_at)
        if t.status in _DONE and resolved is not None:
            resolution_hours.append((resolved - as_utc(t.created_at)).total_seconds() / 3600)
            breach = as_utc(t.sla_breach_at)
            if breach is None or resolved <= breach:
                within_sla += 1

    overdue_open = sum(
        1 for t in tickets
        if t.status in OPEN_STATUSES and t.sla_breach_at is not None and now > as_utc(t.sla_breach_at)
    )

    return {
        "total_tickets": len(tickets),
        "open_tickets": sum(1 for t in tickets if t.status in OPEN_STATUSES),
        "resolved_tickets": len(resolution_hours),
        "unassigned_tickets": sum(
            1 for t in tickets if t.status in OPEN_STATUSES and t.assigned_to_id is None
        ),
        "sla_breached_open": overdue_open,
        "avg_resolution_hours": round(sum(resolution_hours) / len(resolution_hours), 2)
        if resolution_hours else None,
        "sla_compliance_rate": round(within_sla * 100.0 / len(resolution_hours), 2)
        if resolution_hours else None,
        "by_status": _count_by(t.status for t in tickets),
        "by_priority": _count_by(t.priority for t in tickets),
        "by_category": _count_by(t.effective_category for t in tickets),
    }


async def operational_dashboard(
    db: AsyncSession,
    time_range: Optional[str] = "7d",
    now: Optional[datetime] = None,
) -> Dict[str, Any]:
    now = as_utc(now) or datetime.now(timezone.utc)
    since = now - parse_time_range(time_range)

    tickets = (
        await db.execute(select(Ticket).where(Ticket.created_at >= since))
    ).scalars().all()
    report = summarize(list(tickets), now)

    # навантаження персоналу: відкриті заявки на виконавця (за весь час)
    workload_rows = (await db.execute(
        select(User.id, User.first_name, User.last_name, User.email, func.count(Ticket.id))
        .join(Ticket, Ticket.assigned_to_id == User.id)
        .where(Ticket.status.in_(list(OPEN_STATUSES)))
        .group_by(User.id, User.first_name, User.last_name, User.email)
        .order_by(func.count(Ticket.id).desc())
    )).all()

    active_escalations = (await db.execute(
        select(func.count(TicketEscalation.id)).where(TicketEscalation.resolved_at.is_(None))
    )).scalar_one()

    report.update({
        "time_range": (time_range or "7d").lower(),
        "since": since.isoformat(),
        "staff_workload": [
            {
                "staff_id": uid,
                "name": " ".join(p for p in (first, last) if p) or email,
                "open_tickets": int(cnt),
            }
            for uid, first, last, email, cnt in workload_rows
        ],
        "active_escalations": int(active_escalations),
        "generated_at": now.isoformat(),
    })
    return report
