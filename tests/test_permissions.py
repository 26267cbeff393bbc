import pytest

from hosteldesk.db.models import RoleEnum as Role, User
from hosteldesk.services.permissions import (
    ADMIN_PERMISSIONS,
    STAFF_PERMISSIONS,
    STUDENT_PERMISSIONS,
    has_permission,
    has_role,
    permissions_for,
    role_of,
)


def test_manage_users_only_for_admin():
    assert has_permission("STUDENT", "manage_users") is False
    assert has_permission("ADMIN", "manage_users") is True
    assert has_permission(Role.STAFF, "manage_users") is False


def test_user_object_and_case_insensitive_role():
    u = User(email="s@example.com", role=Role.STUDENT)
    assert has_permission(u, "create_ticket")
    assert not has_permission(u, "assign_tickets")
    assert has_permission("admin", "assign_tickets")


@pytest.mark.parametrize("subject", [None, "JANITOR", "", 42])
def test_unknown_subject_has_no_permissions(subject):
    assert role_of(subject) is None
    assert permissions_for(subject) == frozenset()
    assert not has_permission(subject, "create_ticket")


def test_staff_cannot_create_tickets_or_bulk():
    assert not has_permission("STAFF", "create_ticket")
    assert not has_permission("STAFF", "bulk_ticket_operations")
    assert has_permission("STAFF", "update_assigned_ticket_status")


def test_permission_tables_are_exact():
    assert len(STUDENT_PERMISSIONS) == 7
    assert len(STAFF_PERMISSIONS) == 6
    assert len(ADMIN_PERMISSIONS) == 27
    # студент і адмін мають спільне лише create_ticket
    assert STUDENT_PERMISSIONS & ADMIN_PERMISSIONS == {"create_ticket"}


def test_has_role():
    u = User(email="a@example.com", role=Role.ADMIN)
    assert has_role(u, "ADMIN")
    assert has_role(u, Role.ADMIN)
    assert not has_role(u, Role.STAFF)
    assert not has_role(None, Role.ADMIN)
