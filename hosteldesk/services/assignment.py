"""
Assignment service: хто може призначати заявки і кого рекомендувати.

Призначення + перехід OPEN → ASSIGNED робляться однією операцією
(apply_assignment), щоб клієнт не робив два окремі запити.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Callable, FrozenSet, Iterable, List, Mapping, Optional, Sequence

from hosteldesk.db.models import (
    RoleEnum as Role,
    StaffVertical as Vertical,
    Ticket,
    TicketCategory as Category,
    TicketHistory,
    TicketStatus as Status,
)
from hosteldesk.services.errors import ActionForbidden, IllegalTransition, InvalidAssignee
from hosteldesk.services.permissions import has_permission, role_of

# Категорія заявки → вертикалі персоналу, яких варто пропонувати.
# Категорій поза таблицею (у т.ч. CUSTOM) фільтр не стосується.
CATEGORY_VERTICALS: Mapping[Category, FrozenSet[Vertical]] = {
    Category.MAINTENANCE: frozenset({
        Vertical.ELECTRICAL,
        Vertical.PLUMBING,
        Vertical.HVAC,
        Vertical.CARPENTRY,
        Vertical.GENERAL_MAINTENANCE,
    }),
    Category.HOUSEKEEPING: frozenset({Vertical.HOUSEKEEPING}),
    Category.SECURITY: frozenset({Vertical.SECURITY}),
    Category.FACILITIES: frozenset({Vertical.IT_SUPPORT, Vertical.GENERAL_MAINTENANCE}),
    Category.STUDENT_SERVICES: frozenset({
        Vertical.BLOCK_A_WARDEN,
        Vertical.BLOCK_B_WARDEN,
        Vertical.BLOCK_C_WARDEN,
    }),
}

# Статуси, у яких адмін може (пере)призначити виконавця
ASSIGNABLE_STATUSES: FrozenSet[Status] = frozenset({
    Status.OPEN,
    Status.ASSIGNED,
    Status.IN_PROGRESS,
    Status.ON_HOLD,
    Status.REOPENED,
})

# статуси, з яких призначення автоматично веде в ASSIGNED
_AUTO_ASSIGNED_FROM: FrozenSet[Status] = frozenset({Status.OPEN, Status.REOPENED})

StaffRanker = Callable[[Ticket, List[Any]], List[Any]]


def can_assign(user: Any, ticket: Ticket) -> bool:
    """
    - ADMIN з assign_tickets: будь-яку "живу" заявку; перепризначення
      вже призначеної вимагає ще й reassign_tickets;
    - STAFF: лише взяти собі нічию заявку у статусі OPEN;
    - STUDENT: ніколи.
    """
    r = role_of(user)
    if r == Role.ADMIN:
        if not has_permission(user, "assign_tickets"):
            return False
        if ticket.status not in ASSIGNABLE_STATUSES:
            return False
        if ticket.assigned_to_id is not None:
            return has_permission(user, "reassign_tickets")
        return True
    if r == Role.STAFF:
        return ticket.assigned_to_id is None and ticket.status == Status.OPEN
    return False


def is_assignable_user(candidate: Any) -> bool:
    return (
        candidate is not None
        and getattr(candidate, "is_active", False)
        and role_of(candidate) in {Role.STAFF, Role.ADMIN}
    )


def check_assignment(user: Any, ticket: Ticket, assignee: Any) -> None:
    if not can_assign(user, ticket):
        if role_of(user) == Role.STAFF and ticket.assigned_to_id is not None:
            raise ActionForbidden("Ticket is already assigned")
        if role_of(user) == Role.ADMIN and ticket.status not in ASSIGNABLE_STATUSES:
            raise IllegalTransition(f"Cannot assign a ticket in status {ticket.status.value}")
        raise ActionForbidden("Not allowed to assign this ticket")

    if not is_assignable_user(assignee):
        raise InvalidAssignee("Assignee must be an active staff member")
    if role_of(user) == Role.STAFF and getattr(assignee, "id", None) != getattr(user, "id", None):
        raise ActionForbidden("Staff can only assign tickets to themselves")


def apply_assignment(
    ticket: Ticket,
    assignee: Any,
    actor: Any,
    now: Optional[datetime] = None,
) -> TicketHistory:
    now = now or datetime.now(timezone.utc)
    old_assignee = ticket.assigned_to_id
    ticket.assigned_to_id = assignee.id
    ticket.assigned_at = now
    ticket.updated_at = now

    comment = None
    if ticket.status in _AUTO_ASSIGNED_FROM:
        comment = f"status {ticket.status.value} -> {Status.ASSIGNED.value}"
        ticket.status = Status.ASSIGNED

    return TicketHistory(
        ticket_id=ticket.id,
        changed_by_id=getattr(actor, "id", None),
        field="assigned_to",
        old_value=str(old_assignee) if old_assignee is not None else None,
        new_value=str(assignee.id),
        comment=comment,
        created_at=now,
    )


def apply_unassignment(ticket: Ticket, actor: Any, now: Optional[datetime] = None) -> TicketHistory:
    """Лише адмін; заявка повертається в OPEN без виконавця.

    Закриті, вирішені та скасовані заявки не чіпаємо.
    """
    if role_of(actor) != Role.ADMIN:
        raise ActionForbidden("Only admins can unassign tickets")
    if ticket.assigned_to_id is None:
        raise IllegalTransition("Ticket is not currently assigned")
    if ticket.status not in ASSIGNABLE_STATUSES:
        raise IllegalTransition(f"Cannot unassign a ticket in status {ticket.status.value}")

    now = now or datetime.now(timezone.utc)
    old_assignee = ticket.assigned_to_id
    old_status = ticket.status
    ticket.assigned_to_id = None
    ticket.assigned_at = None
    ticket.status = Status.OPEN
    ticket.updated_at = now

    return TicketHistory(
        ticket_id=ticket.id,
        changed_by_id=getattr(actor, "id", None),
        field="assigned_to",
        old_value=str(old_assignee),
        new_value=None,
        comment=f"unassigned by admin, status {old_status.value} -> {Status.OPEN.value}",
        created_at=now,
    )


def _vertical_of(member: Any) -> Optional[Vertical]:
    raw = getattr(member, "staff_vertical", None)
    if raw is None or isinstance(raw, Vertical):
        return raw
    try:
        return Vertical(str(raw).upper())
    except ValueError:
        return None


def verticals_for(category: Any) -> Optional[FrozenSet[Vertical]]:
    """None означає "без фільтра" (категорія поза таблицею)."""
    try:
        cat = category if isinstance(category, Category) else Category(str(category))
    except ValueError:
        return None
    return CATEGORY_VERTICALS.get(cat)


def recommended_staff(
    ticket: Ticket,
    roster: Iterable[Any],
    ranker: Optional[StaffRanker] = None,
) -> List[Any]:
    """
    Фільтр персоналу за категорією заявки.

    ranker: точка розширення для впорядкування (напр. за priority_level /
    capacity_weight / expertise_level з CategoryStaffMapping); за замовчуванням
    порядок ростера зберігається.
    """
    staff: Sequence[Any] = [
        m for m in roster
        if role_of(m) == Role.STAFF and getattr(m, "is_active", True)
    ]
    wanted = verticals_for(ticket.category)
    if wanted is not None:
        staff = [m for m in staff if _vertical_of(m) in wanted]
    result = list(staff)
    if ranker is not None:
        result = ranker(ticket, result)
    return result


def mapping_ranker(mappings: Iterable[Any]) -> StaffRanker:
    """
    Ranker за CategoryStaffMapping: спершу персонал із активним мапінгом
    на категорію заявки (і її корпус або "усі корпуси"), за priority_level ↑,
    expertise_level ↓, capacity_weight ↓; решта у вихідному порядку.
    """
    rows = [m for m in mappings if getattr(m, "is_active", True)]

    def _rank(ticket: Ticket, staff: List[Any]) -> List[Any]:
        category = getattr(ticket.category, "value", ticket.category)
        wanted = {str(category), ticket.effective_category}
        best: dict = {}
        for m in rows:
            if m.category not in wanted:
                continue
            if m.hostel_block is not None and m.hostel_block != ticket.hostel_block:
                continue
            key = (m.priority_level, -m.expertise_level, -m.capacity_weight)
            if m.staff_id not in best or key < best[m.staff_id]:
                best[m.staff_id] = key

        mapped = sorted(
            (s for s in staff if s.id in best),
            key=lambda s: best[s.id],
        )
        rest = [s for s in staff if s.id not in best]
        return mapped + rest

    return _rank
