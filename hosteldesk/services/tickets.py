"""
Tickets service (бізнес-правила для заявок)

Тут живе state machine статусів і рядкові перевірки прав ("чи це МОЯ заявка").
Роутери та bulk-операції імпортують ці функції, щоб не дублювати логіку.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timedelta, timezone
from typing import Any, FrozenSet, Mapping, Optional, Tuple

from hosteldesk.core.config import settings
from hosteldesk.db.models import (
    RoleEnum as Role,
    Ticket,
    TicketComment,
    TicketHistory,
    TicketPriority as Priority,
    TicketStatus as Status,
)
from hosteldesk.services.errors import ActionForbidden, IllegalTransition
from hosteldesk.services.permissions import role_of

# Допустимі переходи (без урахування ролі)
TRANSITIONS: Mapping[Status, FrozenSet[Status]] = {
    Status.OPEN: frozenset({Status.ASSIGNED, Status.CANCELLED}),
    Status.ASSIGNED: frozenset({Status.IN_PROGRESS, Status.ON_HOLD, Status.CANCELLED}),
    Status.IN_PROGRESS: frozenset({Status.ON_HOLD, Status.RESOLVED, Status.CANCELLED}),
    Status.ON_HOLD: frozenset({Status.IN_PROGRESS, Status.RESOLVED, Status.CANCELLED}),
    Status.RESOLVED: frozenset({Status.CLOSED, Status.REOPENED}),
    Status.CLOSED: frozenset({Status.REOPENED}),
    Status.CANCELLED: frozenset({Status.OPEN}),
    Status.REOPENED: frozenset({Status.ASSIGNED, Status.IN_PROGRESS, Status.CANCELLED}),
}

# Студент лише закриває вирішену заявку або перевідкриває закриту
STUDENT_TRANSITIONS: Mapping[Status, FrozenSet[Status]] = {
    Status.RESOLVED: frozenset({Status.CLOSED}),
    Status.CLOSED: frozenset({Status.REOPENED}),
}

OPEN_STATUSES: FrozenSet[Status] = frozenset({
    Status.OPEN,
    Status.ASSIGNED,
    Status.IN_PROGRESS,
    Status.ON_HOLD,
    Status.REOPENED,
})


def can_transition(src: Status, dst: Status) -> bool:
    """Перевіряє, чи дозволено перейти зі стану src до dst (без ролі)."""
    return dst in TRANSITIONS.get(src, frozenset())


def available_statuses(role: Any, current: Status) -> FrozenSet[Status]:
    """
    Статуси, у які роль може перевести заявку з current:
      - STUDENT: RESOLVED → CLOSED, CLOSED → REOPENED, інакше нічого;
      - STAFF: уся таблиця, крім ASSIGNED (призначення є окремою дією);
      - ADMIN: уся таблиця.
    """
    r = role_of(role)
    if r == Role.ADMIN:
        return TRANSITIONS.get(current, frozenset())
    if r == Role.STAFF:
        return TRANSITIONS.get(current, frozenset()) - {Status.ASSIGNED}
    if r == Role.STUDENT:
        return STUDENT_TRANSITIONS.get(current, frozenset())
    return frozenset()


def is_creator(user: Any, ticket: Ticket) -> bool:
    return user is not None and ticket.created_by_id == getattr(user, "id", None)


def is_assignee(user: Any, ticket: Ticket) -> bool:
    return (
        user is not None
        and ticket.assigned_to_id is not None
        and ticket.assigned_to_id == getattr(user, "id", None)
    )


def can_view(user: Any, ticket: Ticket) -> bool:
    r = role_of(user)
    if r == Role.ADMIN:
        return True
    if r == Role.STAFF:
        # своє + ще нічиє (щоб можна було взяти собі)
        return is_assignee(user, ticket) or (
            ticket.assigned_to_id is None and ticket.status == Status.OPEN
        )
    return is_creator(user, ticket)


def can_edit_fields(user: Any, ticket: Ticket) -> bool:
    """Автор може правити заявку, поки вона OPEN; адмін завжди."""
    r = role_of(user)
    if r == Role.ADMIN:
        return True
    return is_creator(user, ticket) and ticket.status == Status.OPEN


def check_status_change(user: Any, ticket: Ticket, new_status: Status) -> None:
    """
    Піднімає IllegalTransition, якщо перехід не дозволений для ролі,
    або ActionForbidden, якщо заявка "чужа" для студента/персоналу.
    """
    r = role_of(user)
    if r == Role.STUDENT and not is_creator(user, ticket):
        raise ActionForbidden("Students can only update their own tickets")
    if r == Role.STAFF and not is_assignee(user, ticket):
        raise ActionForbidden("Staff can only update tickets assigned to them")

    if new_status not in available_statuses(r, ticket.status):
        raise IllegalTransition(
            f"Invalid status transition from {ticket.status.value} to {new_status.value}"
        )


def apply_status_change(
    ticket: Ticket,
    new_status: Status,
    actor: Any,
    comment: Optional[str] = None,
    now: Optional[datetime] = None,
) -> Tuple[TicketHistory, Optional[TicketComment]]:
    """
    Змінює статус і часові мітки. Не перевіряє права, спершу check_status_change.
    Повертає (запис історії, коментар | None); додати їх у сесію має виклик.
    """
    now = now or datetime.now(timezone.utc)
    old = ticket.status
    ticket.status = new_status
    ticket.updated_at = now

    if new_status == Status.RESOLVED:
        ticket.resolved_at = now
    elif new_status == Status.CLOSED:
        ticket.closed_at = now
    elif new_status == Status.REOPENED:
        # повернули в роботу, попереднє рішення вже не актуальне
        ticket.resolved_at = None
        ticket.closed_at = None
        ticket.satisfaction_rating = None
        ticket.feedback = None

    note = comment.strip() if comment else None
    history = TicketHistory(
        ticket_id=ticket.id,
        changed_by_id=getattr(actor, "id", None),
        field="status",
        old_value=old.value,
        new_value=new_status.value,
        comment=note,
        created_at=now,
    )
    ticket_comment = None
    if note:
        ticket_comment = TicketComment(
            ticket_id=ticket.id,
            author_id=getattr(actor, "id", None),
            body=note,
            is_internal=False,
            created_at=now,
        )
    return history, ticket_comment


RATEABLE_STATUSES: FrozenSet[Status] = frozenset({Status.RESOLVED, Status.CLOSED})


def check_rating(user: Any, ticket: Ticket) -> None:
    """Оцінити роботу може лише автор і лише вирішену або закриту заявку, один раз."""
    if not is_creator(user, ticket):
        raise ActionForbidden("Only the ticket creator can rate the completed work")
    if ticket.status not in RATEABLE_STATUSES:
        raise IllegalTransition(f"Cannot rate a ticket in status {ticket.status.value}")
    if ticket.satisfaction_rating is not None:
        raise IllegalTransition("Ticket has already been rated")


def apply_rating(
    ticket: Ticket,
    rating: int,
    feedback: Optional[str],
    actor: Any,
    now: Optional[datetime] = None,
) -> TicketHistory:
    now = now or datetime.now(timezone.utc)
    ticket.satisfaction_rating = rating
    ticket.feedback = feedback
    ticket.updated_at = now
    return TicketHistory(
        ticket_id=ticket.id,
        changed_by_id=getattr(actor, "id", None),
        field="satisfaction_rating",
        old_value=None,
        new_value=str(rating),
        comment=feedback,
        created_at=now,
    )



# --- створення заявки ---


def generate_ticket_number(seq: int, now: Optional[datetime] = None) -> str:
    """TKT-<рік>-<порядковий:03>-<6 hex>."""
    now = now or datetime.now(timezone.utc)
    return f"TKT-{now.year}-{seq:03d}-{uuid.uuid4().hex[:6]}"


def sla_breach_time(priority: Priority, created_at: datetime) -> datetime:
    hours = settings.sla_resolution_hours.get(priority.value, 24)
    return created_at + timedelta(hours=hours * settings.sla_breach_factor)
