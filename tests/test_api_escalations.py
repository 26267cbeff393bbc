from datetime import datetime, timedelta, timezone

from conftest import auth

from hosteldesk.db.models import TicketEscalation, TicketPriority as P


async def test_escalations_are_admin_only(client, student, plumber):
    assert (await client.get("/api/escalations", headers=auth(student))).status_code == 403
    assert (await client.get("/api/escalations/statistics", headers=auth(plumber))).status_code == 403


async def test_manual_escalation_and_resolve(client, make_ticket, student, admin, plumber):
    t = await make_ticket(student)
    r = await client.post(
        "/api/escalations/manual",
        json={"ticket_id": t.id, "escalated_to_id": plumber.id, "reason": "Student called twice", "escalation_level": "HIGH_NO_PROGRESS"},
        headers=auth(admin),
    )
    assert r.status_code == 201, r.text
    esc = r.json()
    assert esc["escalation_level"] == 2
    assert esc["level_label"] == "High No Progress"
    assert esc["level_color"] == "warning"
    assert esc["is_auto_escalated"] is False
    assert esc["overdue"] is False

    bad_target = await client.post(
        "/api/escalations/manual",
        json={"ticket_id": t.id, "escalated_to_id": student.id, "reason": "x"},
        headers=auth(admin),
    )
    assert bad_target.status_code == 400

    r = await client.post(
        f"/api/escalations/{esc['id']}/resolve",
        json={"resolution_note": "Technician on site"},
        headers=auth(admin),
    )
    assert r.status_code == 200
    assert r.json()["resolved_at"] is not None
    assert r.json()["resolution_note"] == "Technician on site"

    again = await client.post(f"/api/escalations/{esc['id']}/resolve", headers=auth(admin))
    assert again.status_code == 409


async def test_list_and_statistics(client, db, make_ticket, student, admin):
    t = await make_ticket(student)
    now = datetime.now(timezone.utc)
    db.add_all([
        TicketEscalation(ticket_id=t.id, escalated_to_id=admin.id, reason="old", escalation_level=1,
                         is_auto_escalated=True, escalated_at=now - timedelta(hours=30)),
        TicketEscalation(ticket_id=t.id, escalated_to_id=admin.id, reason="new", escalation_level=5,
                         is_auto_escalated=True, escalated_at=now - timedelta(hours=1)),
    ])
    await db.commit()

    listed = (await client.get("/api/escalations", headers=auth(admin))).json()
    assert [e["reason"] for e in listed] == ["new", "old"]
    assert [e["overdue"] for e in listed] == [False, True]

    stats = (await client.get("/api/escalations/statistics", headers=auth(admin))).json()
    assert stats["total_escalations"] == 2
    assert stats["active_escalations"] == 2
    assert stats["overdue_escalations"] == 1
    assert stats["escalations_by_level"] == {"Emergency Unassigned": 1, "SLA Breach": 1}


async def test_process_endpoint(client, make_ticket, student, admin):
    await make_ticket(student, priority=P.LOW, created_at=datetime.now(timezone.utc) - timedelta(days=4))
    r = await client.post("/api/escalations/process", headers=auth(admin))
    assert r.status_code == 200
    body = r.json()
    assert body["created"] == 1
    assert body["escalations"][0]["level_label"] == "Low Unassigned"

    r = await client.post("/api/escalations/process", headers=auth(admin))
    assert r.json()["created"] == 0
