from datetime import datetime, timezone

import pytest

from hosteldesk.db.models import RoleEnum as Role, Ticket, TicketStatus as S, User
from hosteldesk.services.errors import ActionForbidden, IllegalTransition
from hosteldesk.services.tickets import (
    TRANSITIONS,
    apply_rating,
    apply_status_change,
    available_statuses,
    can_transition,
    check_rating,
    check_status_change,
)

EXPECTED = {
    Role.ADMIN: {
        S.OPEN: {S.ASSIGNED, S.CANCELLED},
        S.ASSIGNED: {S.IN_PROGRESS, S.ON_HOLD, S.CANCELLED},
        S.IN_PROGRESS: {S.ON_HOLD, S.RESOLVED, S.CANCELLED},
        S.ON_HOLD: {S.IN_PROGRESS, S.RESOLVED, S.CANCELLED},
        S.RESOLVED: {S.CLOSED, S.REOPENED},
        S.CLOSED: {S.REOPENED},
        S.CANCELLED: {S.OPEN},
        S.REOPENED: {S.ASSIGNED, S.IN_PROGRESS, S.CANCELLED},
    },
    Role.STAFF: {
        S.OPEN: {S.CANCELLED},
        S.ASSIGNED: {S.IN_PROGRESS, S.ON_HOLD, S.CANCELLED},
        S.IN_PROGRESS: {S.ON_HOLD, S.RESOLVED, S.CANCELLED},
        S.ON_HOLD: {S.IN_PROGRESS, S.RESOLVED, S.CANCELLED},
        S.RESOLVED: {S.CLOSED, S.REOPENED},
        S.CLOSED: {S.REOPENED},
        S.CANCELLED: {S.OPEN},
        S.REOPENED: {S.IN_PROGRESS, S.CANCELLED},
    },
    Role.STUDENT: {
        S.OPEN: set(),
        S.ASSIGNED: set(),
        S.IN_PROGRESS: set(),
        S.ON_HOLD: set(),
        S.RESOLVED: {S.CLOSED},
        S.CLOSED: {S.REOPENED},
        S.CANCELLED: set(),
        S.REOPENED: set(),
    },
}

CASES = [(role, status, allowed) for role, table in EXPECTED.items() for status, allowed in table.items()]


@pytest.mark.parametrize("role,current,expected", CASES, ids=[f"{r.value}-{s.value}" for r, s, _ in CASES])
def test_available_statuses_matrix(role, current, expected):
    assert available_statuses(role, current) == frozenset(expected)


def test_matrix_covers_every_role_and_status():
    assert len(CASES) == 24
    assert set(TRANSITIONS) == set(S)


def test_unknown_role_gets_nothing():
    assert available_statuses("JANITOR", S.RESOLVED) == frozenset()


def test_can_transition_ignores_role():
    assert can_transition(S.CANCELLED, S.OPEN)
    assert can_transition(S.CLOSED, S.REOPENED)
    assert not can_transition(S.OPEN, S.RESOLVED)
    assert not can_transition(S.CLOSED, S.OPEN)


def _user(uid, role):
    return User(id=uid, email=f"u{uid}@example.com", role=role)


def _ticket(status, creator=1, assignee=None):
    return Ticket(id=10, status=status, created_by_id=creator, assigned_to_id=assignee)


def test_creator_student_can_close_resolved_ticket():
    check_status_change(_user(1, Role.STUDENT), _ticket(S.RESOLVED, creator=1), S.CLOSED)


def test_other_student_cannot_close_resolved_ticket():
    with pytest.raises(ActionForbidden):
        check_status_change(_user(2, Role.STUDENT), _ticket(S.RESOLVED, creator=1), S.CLOSED)


def test_student_cannot_cancel_own_open_ticket():
    with pytest.raises(IllegalTransition):
        check_status_change(_user(1, Role.STUDENT), _ticket(S.OPEN, creator=1), S.CANCELLED)


def test_staff_must_be_assignee():
    with pytest.raises(ActionForbidden):
        check_status_change(_user(5, Role.STAFF), _ticket(S.ASSIGNED, assignee=6), S.IN_PROGRESS)
    check_status_change(_user(6, Role.STAFF), _ticket(S.ASSIGNED, assignee=6), S.IN_PROGRESS)


def test_staff_cannot_move_to_assigned():
    with pytest.raises(IllegalTransition):
        check_status_change(_user(6, Role.STAFF), _ticket(S.REOPENED, assignee=6), S.ASSIGNED)


def test_admin_rejected_outside_table():
    with pytest.raises(IllegalTransition) as exc:
        check_status_change(_user(9, Role.ADMIN), _ticket(S.OPEN), S.RESOLVED)
    assert exc.value.status_code == 400


def test_resolve_sets_resolved_at_and_records_actor():
    now = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)
    t = _ticket(S.IN_PROGRESS, assignee=6)
    history, note = apply_status_change(t, S.RESOLVED, _user(6, Role.STAFF), "  replaced washer ", now=now)

    assert t.status == S.RESOLVED
    assert t.resolved_at == now
    assert t.updated_at == now
    assert history.changed_by_id == 6
    assert (history.old_value, history.new_value) == ("IN_PROGRESS", "RESOLVED")
    assert note is not None and note.body == "replaced washer"


def test_reopen_clears_resolution_timestamps():
    t = _ticket(S.CLOSED)
    t.resolved_at = datetime(2026, 3, 1, tzinfo=timezone.utc)
    t.closed_at = datetime(2026, 3, 2, tzinfo=timezone.utc)

    history, note = apply_status_change(t, S.REOPENED, _user(1, Role.STUDENT))

    assert t.resolved_at is None
    assert t.closed_at is None
    assert note is None
    assert history.comment is None


def test_close_sets_closed_at():
    now = datetime(2026, 3, 3, tzinfo=timezone.utc)
    t = _ticket(S.RESOLVED)
    apply_status_change(t, S.CLOSED, _user(1, Role.STUDENT), now=now)
    assert t.closed_at == now


def test_rating_only_by_creator_after_resolution():
    creator = _user(1, Role.STUDENT)
    check_rating(creator, _ticket(S.RESOLVED))
    check_rating(creator, _ticket(S.CLOSED))

    with pytest.raises(ActionForbidden):
        check_rating(_user(2, Role.STUDENT), _ticket(S.RESOLVED))
    for status in (S.OPEN, S.IN_PROGRESS, S.CANCELLED, S.REOPENED):
        with pytest.raises(IllegalTransition):
            check_rating(creator, _ticket(status))


def test_rating_is_recorded_once():
    t = _ticket(S.RESOLVED)
    history = apply_rating(t, 4, "Quick fix", _user(1, Role.STUDENT))
    assert (t.satisfaction_rating, t.feedback) == (4, "Quick fix")
    assert (history.field, history.new_value, history.comment) == ("satisfaction_rating", "4", "Quick fix")

    with pytest.raises(IllegalTransition):
        check_rating(_user(1, Role.STUDENT), t)


def test_reopen_clears_rating():
    t = _ticket(S.CLOSED)
    t.satisfaction_rating = 2
    t.feedback = "Still leaking"
    apply_status_change(t, S.REOPENED, _user(1, Role.STUDENT))
    assert t.satisfaction_rating is None
    assert t.feedback is None
