from conftest import PASSWORD, auth

from hosteldesk.db.models import (
    RoleEnum as Role,
    StaffVertical as V,
    TicketCategory as C,
    TicketStatus as S,
)

NEW_STAFF = {
    "email": "Carpenter@Example.com",
    "password": "Wood1234",
    "first_name": "Olena",
    "last_name": "Koval",
    "role": "STAFF",
    "staff_vertical": "CARPENTRY",
    "staff_id": "STF-042",
}


async def test_admin_only(client, student, plumber):
    assert (await client.get("/api/admin/users", headers=auth(student))).status_code == 403
    assert (await client.get("/api/admin/staff", headers=auth(plumber))).status_code == 403


async def test_create_and_update_user(client, admin):
    r = await client.post("/api/admin/users", json=NEW_STAFF, headers=auth(admin))
    assert r.status_code == 201, r.text
    created = r.json()
    assert created["email"] == "carpenter@example.com"
    assert created["staff_vertical"] == "CARPENTRY"

    dup = await client.post("/api/admin/users", json=NEW_STAFF, headers=auth(admin))
    assert dup.status_code == 409

    r = await client.put(
        f"/api/admin/users/{created['id']}",
        json={"role": "STUDENT", "room_number": "C-12"},
        headers=auth(admin),
    )
    assert r.status_code == 200
    assert r.json()["role"] == "STUDENT"
    # вертикаль скидається разом з роллю персоналу
    assert r.json()["staff_vertical"] is None


async def test_demoting_staff_with_open_tickets_conflicts(client, db, admin, student, plumber, make_ticket):
    t = await make_ticket(student, status=S.ASSIGNED, assigned_to_id=plumber.id)

    r = await client.put(f"/api/admin/users/{plumber.id}", json={"role": "STUDENT"}, headers=auth(admin))
    assert r.status_code == 409
    await db.refresh(plumber)
    assert plumber.role == Role.STAFF
    assert plumber.staff_vertical == V.PLUMBING

    # закриті заявки не заважають
    t.status = S.CLOSED
    await db.commit()
    r = await client.put(f"/api/admin/users/{plumber.id}", json={"role": "STUDENT"}, headers=auth(admin))
    assert r.status_code == 200
    assert r.json()["role"] == "STUDENT"


async def test_staff_requires_vertical(client, admin):
    payload = {**NEW_STAFF, "staff_vertical": None}
    assert (await client.post("/api/admin/users", json=payload, headers=auth(admin))).status_code == 422


async def test_user_status_toggle_blocks_login(client, admin, student):
    r = await client.put(f"/api/admin/users/{student.id}/status", json={"is_active": False}, headers=auth(admin))
    assert r.status_code == 200
    assert r.json()["is_active"] is False

    login = await client.post("/api/users/authenticate", json={"email": student.email, "password": PASSWORD})
    assert login.status_code == 403

    r = await client.get("/api/admin/users", params={"active": True}, headers=auth(admin))
    assert student.id not in [u["id"] for u in r.json()]


async def test_admin_cannot_deactivate_self(client, admin):
    r = await client.delete(f"/api/admin/users/{admin.id}", headers=auth(admin))
    assert r.status_code == 400


async def test_staff_and_hostels(client, admin, plumber, electrician):
    r = await client.get("/api/admin/staff", params={"vertical": "PLUMBING"}, headers=auth(admin))
    assert [u["id"] for u in r.json()] == [plumber.id]

    hostels = (await client.get("/api/admin/hostels", headers=auth(admin))).json()
    assert hostels[0] == {"value": "BLOCK_A", "display_name": "Block A"}
    assert len(hostels) == 8


async def test_mappings_crud(client, admin, plumber, student):
    body = {"staff_id": plumber.id, "category": "MAINTENANCE", "priority_level": 2, "capacity_weight": 1.5}
    r = await client.post("/api/admin/mappings", json=body, headers=auth(admin))
    assert r.status_code == 201, r.text
    mid = r.json()["id"]
    assert r.json()["hostel_block"] is None

    bad = {**body, "capacity_weight": 3.0}
    assert (await client.post("/api/admin/mappings", json=bad, headers=auth(admin))).status_code == 422
    wrong_target = {**body, "staff_id": student.id}
    assert (await client.post("/api/admin/mappings", json=wrong_target, headers=auth(admin))).status_code == 400

    r = await client.put(f"/api/admin/mappings/{mid}", json={"expertise_level": 5}, headers=auth(admin))
    assert r.json()["expertise_level"] == 5
    assert r.json()["priority_level"] == 2

    listed = (await client.get("/api/admin/mappings", params={"category": "MAINTENANCE"}, headers=auth(admin))).json()
    assert [m["id"] for m in listed] == [mid]

    assert (await client.delete(f"/api/admin/mappings/{mid}", headers=auth(admin))).status_code == 204
    assert (await client.delete(f"/api/admin/mappings/{mid}", headers=auth(admin))).status_code == 404


async def test_ranked_recommendation_uses_mappings(client, admin, make_user, make_ticket, student):
    first = await make_user(Role.STAFF, V.PLUMBING)
    second = await make_user(Role.STAFF, V.ELECTRICAL)
    await client.post(
        "/api/admin/mappings",
        json={"staff_id": second.id, "category": "MAINTENANCE", "priority_level": 1},
        headers=auth(admin),
    )
    t = await make_ticket(student, category=C.MAINTENANCE)

    plain = await client.get(f"/api/tickets/{t.id}/recommended-staff", headers=auth(admin))
    assert [u["id"] for u in plain.json()] == [first.id, second.id]
    ranked = await client.get(
        f"/api/tickets/{t.id}/recommended-staff", params={"ranked": True}, headers=auth(admin)
    )
    assert [u["id"] for u in ranked.json()] == [second.id, first.id]
