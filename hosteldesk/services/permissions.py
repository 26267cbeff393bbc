"""
Permissions service (рольова модель доступу)

Статична таблиця роль → набір прав. Це єдине джерело правди для
роутерів і сервісів; перевірки "чи це МОЯ заявка" живуть у services.tickets
та services.assignment, а не тут.
"""

from __future__ import annotations

from typing import Any, FrozenSet, Mapping

from hosteldesk.db.models import RoleEnum as Role

STUDENT_PERMISSIONS: FrozenSet[str] = frozenset({
    "create_ticket",
    "view_own_tickets",
    "reopen_own_tickets",
    "close_own_tickets",
    "comment_on_own_tickets",
    "rate_completed_work",
    "update_own_profile",
})

STAFF_PERMISSIONS: FrozenSet[str] = frozenset({
    "view_assigned_tickets",
    "update_assigned_ticket_status",
    "comment_on_assigned_tickets",
    "request_reassignment",
    "update_own_profile",
    "view_knowledge_base",
})

ADMIN_PERMISSIONS: FrozenSet[str] = frozenset({
    # заявки
    "create_ticket",
    "view_all_tickets",
    "edit_all_tickets",
    "delete_all_tickets",
    "assign_tickets",
    "reassign_tickets",
    "update_any_ticket_status",
    "comment_on_any_ticket",
    "bulk_ticket_operations",
    # користувачі
    "create_users",
    "manage_users",
    "update_users",
    "deactivate_users",
    "view_all_users",
    "bulk_user_operations",
    # маршрутизація (category → staff)
    "create_mappings",
    "update_mappings",
    "delete_mappings",
    "view_mappings",
    "manage_staff_assignments",
    # адміністрування системи
    "view_reports",
    "generate_reports",
    "system_settings",
    "escalate_tickets",
    "system_configuration",
    "audit_logs",
    "analytics_access",
})

ROLE_PERMISSIONS: Mapping[Role, FrozenSet[str]] = {
    Role.STUDENT: STUDENT_PERMISSIONS,
    Role.STAFF: STAFF_PERMISSIONS,
    Role.ADMIN: ADMIN_PERMISSIONS,
}


def role_of(subject: Any) -> Role | None:
    """
    Нормалізує "суб'єкт" до ролі: приймає User (будь-що з .role),
    RoleEnum або рядок 'STUDENT' | 'staff' | ...
    """
    if subject is None:
        return None
    raw = getattr(subject, "role", subject)
    if isinstance(raw, Role):
        return raw
    try:
        return Role(str(raw).upper())
    except ValueError:
        return None


def permissions_for(subject: Any) -> FrozenSet[str]:
    role = role_of(subject)
    if role is None:
        return frozenset()
    return ROLE_PERMISSIONS.get(role, frozenset())


def has_permission(subject: Any, permission: str) -> bool:
    """has_permission(user, 'assign_tickets') або has_permission('ADMIN', 'manage_users')."""
    return permission in permissions_for(subject)


def has_role(subject: Any, role: Role | str) -> bool:
    wanted = role_of(role)
    return wanted is not None and role_of(subject) == wanted
