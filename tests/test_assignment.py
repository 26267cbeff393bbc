from types import SimpleNamespace

import pytest

from hosteldesk.db.models import (
    HostelBlock,
    RoleEnum as Role,
    StaffVertical as V,
    Ticket,
    TicketCategory as C,
    TicketStatus as S,
    User,
)
from hosteldesk.services.assignment import (
    apply_assignment,
    apply_unassignment,
    can_assign,
    check_assignment,
    mapping_ranker,
    recommended_staff,
)
from hosteldesk.services.errors import ActionForbidden, IllegalTransition, InvalidAssignee


def _staff(uid, vertical, active=True):
    return User(id=uid, email=f"s{uid}@example.com", role=Role.STAFF, staff_vertical=vertical, is_active=active)


ADMIN = User(id=1, email="admin@example.com", role=Role.ADMIN, is_active=True)
STUDENT = User(id=2, email="student@example.com", role=Role.STUDENT, is_active=True)


def _ticket(status=S.OPEN, assignee=None, category=C.MAINTENANCE, **kw):
    return Ticket(id=7, status=status, assigned_to_id=assignee, category=category, created_by_id=2, **kw)


def test_staff_cannot_self_assign_already_assigned_ticket():
    electrician = _staff(10, V.ELECTRICAL)
    assert can_assign(electrician, _ticket(S.ASSIGNED, assignee=11)) is False
    with pytest.raises(ActionForbidden):
        check_assignment(electrician, _ticket(S.ASSIGNED, assignee=11), electrician)


def test_staff_self_assign_open_unassigned():
    electrician = _staff(10, V.ELECTRICAL)
    t = _ticket()
    assert can_assign(electrician, t)
    check_assignment(electrician, t, electrician)


def test_staff_cannot_assign_someone_else():
    with pytest.raises(ActionForbidden):
        check_assignment(_staff(10, V.ELECTRICAL), _ticket(), _staff(11, V.PLUMBING))


def test_student_never_assigns():
    assert not can_assign(STUDENT, _ticket())


@pytest.mark.parametrize("status", [S.OPEN, S.ASSIGNED, S.IN_PROGRESS, S.ON_HOLD, S.REOPENED])
def test_admin_assigns_live_tickets(status):
    assert can_assign(ADMIN, _ticket(status, assignee=None if status == S.OPEN else 10))


@pytest.mark.parametrize("status", [S.RESOLVED, S.CLOSED, S.CANCELLED])
def test_admin_cannot_assign_finished_tickets(status):
    assert not can_assign(ADMIN, _ticket(status))
    with pytest.raises(IllegalTransition):
        check_assignment(ADMIN, _ticket(status), _staff(10, V.PLUMBING))


def test_assignee_must_be_active_staff():
    with pytest.raises(InvalidAssignee):
        check_assignment(ADMIN, _ticket(), STUDENT)
    with pytest.raises(InvalidAssignee):
        check_assignment(ADMIN, _ticket(), _staff(10, V.PLUMBING, active=False))
    with pytest.raises(InvalidAssignee):
        check_assignment(ADMIN, _ticket(), None)


def test_assignment_moves_open_to_assigned():
    t = _ticket()
    history = apply_assignment(t, _staff(10, V.PLUMBING), ADMIN)
    assert t.status == S.ASSIGNED
    assert t.assigned_to_id == 10
    assert t.assigned_at is not None
    assert history.field == "assigned_to"
    assert history.new_value == "10"
    assert history.changed_by_id == ADMIN.id


def test_reassignment_keeps_in_progress_status():
    t = _ticket(S.IN_PROGRESS, assignee=10)
    history = apply_assignment(t, _staff(11, V.PLUMBING), ADMIN)
    assert t.status == S.IN_PROGRESS
    assert history.old_value == "10"


def test_unassign_returns_ticket_to_open():
    t = _ticket(S.IN_PROGRESS, assignee=10)
    history = apply_unassignment(t, ADMIN)
    assert t.status == S.OPEN
    assert t.assigned_to_id is None
    assert history.old_value == "10" and history.new_value is None


def test_unassign_rules():
    with pytest.raises(ActionForbidden):
        apply_unassignment(_ticket(S.ASSIGNED, assignee=10), _staff(10, V.PLUMBING))
    with pytest.raises(IllegalTransition):
        apply_unassignment(_ticket(), ADMIN)


@pytest.mark.parametrize("status", [S.RESOLVED, S.CLOSED, S.CANCELLED])
def test_unassign_rejects_finished_ticket(status):
    t = _ticket(status, assignee=10)
    with pytest.raises(IllegalTransition):
        apply_unassignment(t, ADMIN)
    assert t.status == status
    assert t.assigned_to_id == 10


def test_recommended_staff_housekeeping():
    roster = [_staff(10, V.ELECTRICAL), _staff(11, V.HOUSEKEEPING)]
    result = recommended_staff(_ticket(category=C.HOUSEKEEPING), roster)
    assert [s.id for s in result] == [11]


def test_recommended_staff_maintenance_group():
    roster = [_staff(10, V.ELECTRICAL), _staff(11, V.HOUSEKEEPING), _staff(12, V.CARPENTRY)]
    result = recommended_staff(_ticket(category=C.MAINTENANCE), roster)
    assert [s.id for s in result] == [10, 12]


@pytest.mark.parametrize("category", [C.CUSTOM, C.GENERAL, C.PLUMBING_WATER])
def test_categories_outside_lookup_are_unfiltered(category):
    roster = [_staff(10, V.ELECTRICAL), _staff(11, V.HOUSEKEEPING)]
    result = recommended_staff(_ticket(category=category), roster)
    assert [s.id for s in result] == [10, 11]


def test_recommended_staff_drops_inactive_and_non_staff():
    roster = [_staff(10, V.SECURITY, active=False), ADMIN, _staff(11, V.SECURITY)]
    result = recommended_staff(_ticket(category=C.SECURITY), roster)
    assert [s.id for s in result] == [11]


def test_recommended_staff_accepts_string_verticals():
    member = SimpleNamespace(id=20, role="STAFF", staff_vertical="housekeeping", is_active=True)
    assert recommended_staff(_ticket(category=C.HOUSEKEEPING), [member]) == [member]


def test_mapping_ranker_orders_mapped_staff_first():
    roster = [_staff(10, V.PLUMBING), _staff(11, V.ELECTRICAL), _staff(12, V.HVAC)]
    mappings = [
        SimpleNamespace(staff_id=12, category="MAINTENANCE", hostel_block=None,
                        priority_level=1, expertise_level=3, capacity_weight=1.0, is_active=True),
        SimpleNamespace(staff_id=11, category="MAINTENANCE", hostel_block=HostelBlock.BLOCK_A,
                        priority_level=2, expertise_level=5, capacity_weight=1.0, is_active=True),
        # інший корпус не враховується
        SimpleNamespace(staff_id=10, category="MAINTENANCE", hostel_block=HostelBlock.BLOCK_B,
                        priority_level=1, expertise_level=5, capacity_weight=2.0, is_active=True),
    ]
    t = _ticket(category=C.MAINTENANCE, hostel_block=HostelBlock.BLOCK_A)
    result = recommended_staff(t, roster, ranker=mapping_ranker(mappings))
    assert [s.id for s in result] == [12, 11, 10]
