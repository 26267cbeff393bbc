from datetime import datetime, timedelta, timezone

from conftest import auth

from hosteldesk.db.models import TicketCategory as C, TicketPriority as P, TicketStatus as S


async def test_operational_dashboard(client, make_ticket, student, admin, plumber):
    now = datetime.now(timezone.utc)
    await make_ticket(student, status=S.ASSIGNED, assigned_to_id=plumber.id, priority=P.HIGH)
    await make_ticket(
        student,
        status=S.RESOLVED,
        created_at=now - timedelta(hours=10),
        resolved_at=now - timedelta(hours=4),
        sla_breach_at=now + timedelta(hours=20),
    )
    await make_ticket(student, category=C.CUSTOM, custom_category="Pest control")
    # поза 7-денним вікном
    await make_ticket(student, created_at=now - timedelta(days=20))

    r = await client.get(
        "/api/analytics/advanced/dashboard/operational", params={"timeRange": "7d"}, headers=auth(admin)
    )
    assert r.status_code == 200, r.text
    body = r.json()
    assert body["time_range"] == "7d"
    assert body["total_tickets"] == 3
    assert body["open_tickets"] == 2
    assert body["resolved_tickets"] == 1
    assert body["unassigned_tickets"] == 1
    assert body["avg_resolution_hours"] == 6.0
    assert body["sla_compliance_rate"] == 100.0
    assert body["by_status"] == {"ASSIGNED": 1, "RESOLVED": 1, "OPEN": 1}
    assert body["by_category"]["Pest control"] == 1
    assert body["staff_workload"] == [{"staff_id": plumber.id, "name": plumber.full_name, "open_tickets": 1}]

    wide = await client.get(
        "/api/analytics/advanced/dashboard/operational", params={"timeRange": "30d"}, headers=auth(admin)
    )
    assert wide.json()["total_tickets"] == 4


async def test_dashboard_rejects_unknown_range(client, admin):
    r = await client.get(
        "/api/analytics/advanced/dashboard/operational", params={"timeRange": "1y"}, headers=auth(admin)
    )
    assert r.status_code == 400


async def test_dashboard_requires_analytics_access(client, plumber):
    r = await client.get("/api/analytics/advanced/dashboard/operational", headers=auth(plumber))
    assert r.status_code == 403
