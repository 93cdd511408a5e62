from datetime import date, timedelta

from models import db
from models.audit_log import AuditLog
from models.user import User, ROLE_ADMIN
from services.subscriptions import seed_plans

DAY = date(2024, 6, 1)


def headers(user, role=None):
    out = {"X-User-Id": str(user.id)}
    if role:
        out["X-User-Role"] = role
    return out


def _book(client, user, court, dates, start="18:00", end="19:00", **extra):
    body = {
        "court_id": court.id,
        "dates": [d.isoformat() for d in dates],
        "start_time": start,
        "end_time": end,
        **extra,
    }
    return client.post("/bookings", json=body, headers=headers(user))


def test_health(client):
    resp = client.get("/health")
    assert resp.status_code == 200
    assert resp.get_json() == {"status": "ok"}
    assert resp.headers["X-Content-Type-Options"] == "nosniff"


def test_requires_identity(client, make_user):
    assert client.get("/bookings/me").status_code == 401
    assert client.get("/bookings/me", headers={"X-User-Id": "not-a-number"}).status_code == 401
    assert client.get("/bookings/me", headers={"X-User-Id": "9999"}).status_code == 401


def test_create_booking_batch(client, make_user, make_court):
    owner = make_user()
    mate = make_user()
    court = make_court(price=1200)

    resp = _book(client, owner, court, [DAY, DAY + timedelta(days=1)], team_member_ids=[mate.id])

    assert resp.status_code == 201
    body = resp.get_json()
    assert body["count"] == 2
    assert body["total_amount"] == 2400
    assert body["batch_ref"].startswith("BT-")
    assert {b["date"] for b in body["data"]} == {"2024-06-01", "2024-06-02"}
    assert body["data"][0]["team_members"][0]["user_id"] == mate.id
    assert AuditLog.query.filter_by(action="BOOKING_CREATE").count() == 1


def test_create_booking_conflict_names_date(client, make_user, make_court):
    owner = make_user()
    court = make_court()
    _book(client, owner, court, [DAY + timedelta(days=1)])

    resp = _book(client, owner, court, [DAY, DAY + timedelta(days=1)], start="20:00", end="21:00")

    assert resp.status_code == 409
    body = resp.get_json()
    assert body["date"] == "2024-06-02"
    assert body["user_id"] == owner.id
    assert client.get("/bookings/me", headers=headers(owner)).get_json()[0]["date"] == "2024-06-02"


def test_create_booking_validation(client, make_user, make_court):
    owner = make_user()
    court = make_court()

    assert client.post("/bookings", json={}, headers=headers(owner)).status_code == 400
    resp = _book(client, owner, court, [DAY], start="19:00", end="18:00")
    assert resp.status_code == 400
    assert "error" in resp.get_json()


def test_availability(client, make_user, make_court):
    owner = make_user()
    court = make_court()
    _book(client, owner, court, [DAY], start="6:00 PM", end="7:00 PM")

    resp = client.get(
        f"/bookings/availability?court_id={court.id}&dates={DAY.isoformat()},2024-06-02",
        headers=headers(owner),
    )

    assert resp.status_code == 200
    assert resp.get_json()["data"] == ["2024-06-01_18:00"]
    missing = client.get("/bookings/availability?court_id=999&dates=2024-06-01", headers=headers(owner))
    assert missing.status_code == 404


def test_cancel_by_stranger_is_forbidden(client, make_user, make_court):
    owner = make_user()
    stranger = make_user()
    court = make_court()
    booking_id = _book(client, owner, court, [DAY]).get_json()["data"][0]["id"]

    assert client.post(f"/bookings/{booking_id}/cancel", headers=headers(stranger)).status_code == 403

    resp = client.post(f"/bookings/{booking_id}/cancel", json={"reason": "rain"}, headers=headers(owner))
    assert resp.status_code == 200
    assert resp.get_json()["data"]["status"] == "Cancelled"


def test_pay_requires_admin(client, make_user, make_court):
    owner = make_user()
    admin = make_user(role=ROLE_ADMIN)
    court = make_court()
    booking_id = _book(client, owner, court, [DAY]).get_json()["data"][0]["id"]

    assert client.post(f"/bookings/{booking_id}/pay", headers=headers(owner)).status_code == 403
    resp = client.post(f"/bookings/{booking_id}/pay", headers=headers(admin, ROLE_ADMIN))
    assert resp.status_code == 200
    assert resp.get_json()["data"]["status"] == "Confirmed"


def test_join_flow(client, make_user, make_court):
    captain = make_user()
    player = make_user()
    court = make_court()
    booking_id = _book(client, captain, court, [DAY], is_public=True).get_json()["data"][0]["id"]

    joined = client.post(f"/bookings/{booking_id}/join", headers=headers(player))
    assert joined.status_code == 200
    request_id = joined.get_json()["data"]["id"]

    detail = client.get(f"/bookings/{booking_id}", headers=headers(captain)).get_json()
    assert [r["id"] for r in detail["join_requests"]] == [request_id]
    assert "join_requests" not in client.get(f"/bookings/{booking_id}", headers=headers(player)).get_json()

    url = f"/bookings/{booking_id}/requests/{request_id}"
    assert client.put(url, json={"status": "Accepted"}, headers=headers(player)).status_code == 403

    resp = client.put(url, json={"status": "Accepted"}, headers=headers(captain))
    assert resp.status_code == 200
    body = resp.get_json()
    assert body["data"]["status"] == "Accepted"
    assert body["booking"]["total_players"] == 2

    again = client.put(url, json={"status": "Declined"}, headers=headers(captain))
    assert again.status_code == 400


def test_admin_extend(client, make_user):
    admin = make_user(role=ROLE_ADMIN)
    member = make_user(active=False, expiry=DAY - timedelta(days=3))

    denied = client.post(f"/admin/users/{member.id}/extend", json={"days": 30}, headers=headers(member))
    assert denied.status_code == 403

    resp = client.post(f"/admin/users/{member.id}/extend", json={"days": 30}, headers=headers(admin, ROLE_ADMIN))
    assert resp.status_code == 200
    data = resp.get_json()["data"]
    assert data["membership_status"] == "Active"
    assert data["last_warning_day"] is None

    bad = client.post(f"/admin/users/{member.id}/extend", json={"days": 0}, headers=headers(admin, ROLE_ADMIN))
    assert bad.status_code == 400
    unknown = client.post("/admin/users/9999/extend", json={"days": 5}, headers=headers(admin, ROLE_ADMIN))
    assert unknown.status_code == 404


def test_admin_booking_list_filters(client, make_user, make_court):
    admin = make_user(role=ROLE_ADMIN)
    owner = make_user()
    court = make_court()
    _book(client, owner, court, [DAY, DAY + timedelta(days=1)])

    rows = client.get("/admin/bookings?date=2024-06-02", headers=headers(admin, ROLE_ADMIN)).get_json()
    assert [r["date"] for r in rows] == ["2024-06-02"]
    assert client.get("/admin/bookings?date=junk", headers=headers(admin, ROLE_ADMIN)).status_code == 400


def test_push_token_and_profile(client, make_user):
    user = make_user()

    assert client.post("/users/me/push-token", json={}, headers=headers(user)).status_code == 400
    resp = client.post("/users/me/push-token", json={"token": "ExponentPushToken[z]"}, headers=headers(user))
    assert resp.status_code == 200
    db.session.expire_all()
    assert db.session.get(User, user.id).push_token == "ExponentPushToken[z]"

    me = client.get("/users/me", headers=headers(user)).get_json()
    assert me["membership"]["status"] == "Active"


def test_non_numeric_court_id_is_rejected(client, make_user, make_court):
    owner = make_user()
    make_court()
    body = {"court_id": "abc", "dates": [DAY.isoformat()], "start_time": "18:00", "end_time": "19:00"}

    resp = client.post("/bookings", json=body, headers=headers(owner))

    assert resp.status_code == 400
    assert resp.get_json()["error"] == "court_id must be an integer"


def test_is_public_accepts_only_booleans(client, make_user, make_court):
    court = make_court()

    private = _book(client, make_user(), court, [DAY], is_public="false")
    assert private.status_code == 201
    assert private.get_json()["data"][0]["is_public"] is False

    public = _book(client, make_user(), court, [DAY], start="20:00", end="21:00", is_public=True)
    assert public.get_json()["data"][0]["is_public"] is True

    bad = _book(client, make_user(), court, [DAY], start="07:00", end="08:00", is_public="maybe")
    assert bad.status_code == 400


def test_subscription_purchase_and_admin_cancel(client, make_user):
    seed_plans()
    admin = make_user(role=ROLE_ADMIN)
    user = make_user(active=False)

    plans = client.get("/subscriptions/plans", headers=headers(user)).get_json()["data"]
    assert [p["code"] for p in plans] == ["monthly", "quarterly", "yearly"]
    assert client.get("/subscriptions/me", headers=headers(user)).status_code == 404

    bought = client.post("/subscriptions/purchase", json={"plan": "monthly", "payment_ref": "pay_9"},
                         headers=headers(user))
    assert bought.status_code == 201
    assert bought.get_json()["data"]["status"] == "Active"
    assert client.get("/subscriptions/me", headers=headers(user)).status_code == 200

    url = f"/admin/users/{user.id}/subscription"
    assert client.delete(url, headers=headers(user)).status_code == 403
    cancelled = client.delete(url, json={"reason": "refund"}, headers=headers(admin, ROLE_ADMIN))
    assert cancelled.status_code == 200
    assert cancelled.get_json()["data"]["status"] == "Cancelled"
    assert client.get(url, headers=headers(admin, ROLE_ADMIN)).status_code == 404


def test_admin_offline_subscription(client, make_user):
    admin = make_user(role=ROLE_ADMIN)
    user = make_user(active=False)

    resp = client.post(f"/admin/users/{user.id}/subscriptions", json={"days": 10, "amount": 500},
                       headers=headers(admin, ROLE_ADMIN))

    assert resp.status_code == 201
    assert resp.get_json()["data"]["payment_ref"] == "OFFLINE"
    missing = client.post(f"/admin/users/{user.id}/subscriptions", json={"days": 10},
                          headers=headers(admin, ROLE_ADMIN))
    assert missing.status_code == 400


def test_dashboard_and_my_stats(client, make_user, make_court):
    admin = make_user(role=ROLE_ADMIN)
    owner = make_user()
    court = make_court()
    _book(client, owner, court, [DAY])

    dash = client.get("/admin/stats/dashboard?date=2024-06-01", headers=headers(admin, ROLE_ADMIN))
    assert dash.status_code == 200
    data = dash.get_json()["data"]
    assert data["bookings_today"] == 1
    assert data["recent_bookings"][0]["owner_id"] == owner.id
    assert client.get("/admin/stats/dashboard", headers=headers(owner)).status_code == 403

    mine = client.get("/users/me/stats?date=2024-06-01", headers=headers(owner)).get_json()["data"]
    assert mine == {"total_bookings": 0, "hours_played": 0, "upcoming": 1}
