from botocore.exceptions import ClientError

from expense_tracker.core.config import settings
from expense_tracker.db import dynamo

lunch = {
    "amount": 12.5,
    "category": "Food",
    "paymentMethod": "Credit Card",
    "description": "  Lunch  ",
    "date": "2025-01-05T12:30:00Z",
}


def test_health(client):
    response = client.get("/api/health")
    assert response.status_code == 200
    assert response.json()["status"] == "ok"


def test_register_login_and_me(client, register_user):
    registered = register_user(email="Bob@Gmail.com", name="Bob")
    assert registered["user"]["email"] == "bob@gmail.com"
    assert registered["user"]["currency"] == "USD"

    response = client.post("/api/auth/login", json={"email": "bob@gmail.com", "password": "secret123"})
    assert response.status_code == 200
    token = response.json()["token"]

    me = client.get("/api/auth/me", headers={"Authorization": f"Bearer {token}"})
    assert me.status_code == 200
    assert me.json()["name"] == "Bob"


def test_duplicate_email_is_rejected(client, register_user):
    register_user()
    response = client.post(
        "/api/auth/register",
        json={"name": "Other", "email": "alice@gmail.com", "password": "secret123"},
    )
    assert response.status_code == 400
    assert response.json()["detail"] == "Email already exists"


def test_login_failures_look_identical(client, register_user):
    register_user()
    wrong_password = client.post("/api/auth/login", json={"email": "alice@gmail.com", "password": "nope-nope"})
    unknown_user = client.post("/api/auth/login", json={"email": "nobody@gmail.com", "password": "nope-nope"})
    assert wrong_password.status_code == unknown_user.status_code == 401
    assert wrong_password.json() == unknown_user.json() == {"detail": "Invalid credentials"}


def test_missing_or_bad_token(client):
    assert client.get("/api/expenses").status_code == 401
    response = client.get("/api/expenses", headers={"Authorization": "Bearer not-a-jwt"})
    assert response.status_code == 401
    assert response.headers["WWW-Authenticate"] == "Bearer"


def test_profile_and_password_change(client, auth_headers):
    response = client.put("/api/auth/profile", json={"name": "Alice B", "currency": "inr"}, headers=auth_headers)
    assert response.status_code == 200
    assert response.json()["currency"] == "INR"

    bad = client.put(
        "/api/auth/change-password",
        json={"currentPassword": "wrong-one", "newPassword": "another1"},
        headers=auth_headers,
    )
    assert bad.status_code == 400

    ok = client.put(
        "/api/auth/change-password",
        json={"currentPassword": "secret123", "newPassword": "another1"},
        headers=auth_headers,
    )
    assert ok.status_code == 200
    login = client.post("/api/auth/login", json={"email": "alice@gmail.com", "password": "another1"})
    assert login.status_code == 200


def test_create_then_get_round_trip(client, auth_headers):
    created = client.post("/api/expenses", json=lunch, headers=auth_headers)
    assert created.status_code == 201
    body = created.json()
    assert body["amount"] == 12.5
    assert body["paymentMethod"] == "Credit Card"
    assert body["description"] == "Lunch"
    assert body["occurredAt"] == "2025-01-05T12:30:00.000000+00:00"
    assert body["syncStatus"] == "synced"
    assert body["localId"] is None

    fetched = client.get(f"/api/expenses/{body['id']}", headers=auth_headers)
    assert fetched.status_code == 200
    assert fetched.json() == body


def test_create_rejects_invalid_fields(client, auth_headers):
    for bad in (
        dict(lunch, amount=0),
        dict(lunch, category="Crypto"),
        dict(lunch, paymentMethod="Cheque"),
        {"category": "Food", "paymentMethod": "Cash"},
    ):
        assert client.post("/api/expenses", json=bad, headers=auth_headers).status_code == 422


def test_timestamp_outside_utc_range_is_rejected(client, auth_headers):
    edge = dict(lunch, date="9999-12-31T23:00:00-05:00")
    response = client.post("/api/expenses", json=edge, headers=auth_headers)
    assert response.status_code == 422
    assert "out of range" in str(response.json()["detail"])

    expense_id = client.post("/api/expenses", json=lunch, headers=auth_headers).json()["id"]
    update = client.put(f"/api/expenses/{expense_id}", json={"date": edge["date"]}, headers=auth_headers)
    assert update.status_code == 422


def test_create_with_existing_local_id_is_rejected(client, auth_headers):
    payload = dict(lunch, localId="L1")
    assert client.post("/api/expenses", json=payload, headers=auth_headers).status_code == 201
    response = client.post("/api/expenses", json=payload, headers=auth_headers)
    assert response.status_code == 400


def test_list_filters_and_paginates(client, auth_headers):
    for day in range(1, 6):
        client.post(
            "/api/expenses",
            json=dict(lunch, date=f"2025-01-0{day}T10:00:00Z", category="Food" if day % 2 else "Bills"),
            headers=auth_headers,
        )

    page = client.get("/api/expenses?limit=2&page=2", headers=auth_headers).json()
    assert page["pagination"] == {"current": 2, "pages": 3, "total": 5}
    assert [e["occurredAt"][:10] for e in page["expenses"]] == ["2025-01-03", "2025-01-02"]

    food = client.get("/api/expenses?category=Food", headers=auth_headers).json()
    assert food["pagination"]["total"] == 3

    ranged = client.get("/api/expenses?startDate=2025-01-02&endDate=2025-01-04", headers=auth_headers).json()
    assert ranged["pagination"]["total"] == 3

    assert client.get("/api/expenses?category=Crypto", headers=auth_headers).status_code == 400
    assert client.get("/api/expenses?startDate=soon", headers=auth_headers).status_code == 400


def test_update_and_delete(client, auth_headers):
    expense_id = client.post("/api/expenses", json=lunch, headers=auth_headers).json()["id"]

    updated = client.put(f"/api/expenses/{expense_id}", json={"amount": 20, "category": "Health"}, headers=auth_headers)
    assert updated.status_code == 200
    assert updated.json()["amount"] == 20
    assert updated.json()["category"] == "Health"
    assert updated.json()["paymentMethod"] == "Credit Card"

    assert client.put(f"/api/expenses/{expense_id}", json={}, headers=auth_headers).status_code == 400

    deleted = client.delete(f"/api/expenses/{expense_id}", headers=auth_headers)
    assert deleted.json() == {"message": "Expense deleted"}
    assert client.get(f"/api/expenses/{expense_id}", headers=auth_headers).status_code == 404


def test_other_owners_records_are_not_found(client, auth_headers, register_user):
    expense_id = client.post("/api/expenses", json=lunch, headers=auth_headers).json()["id"]
    other = {"Authorization": f"Bearer {register_user(email='eve@gmail.com')['token']}"}

    assert client.get(f"/api/expenses/{expense_id}", headers=other).status_code == 404
    assert client.put(f"/api/expenses/{expense_id}", json={"amount": 1}, headers=other).status_code == 404
    assert client.delete(f"/api/expenses/{expense_id}", headers=other).status_code == 404


def test_stats_endpoints(client, auth_headers):
    client.post("/api/expenses", json=dict(lunch, date="2025-01-05T08:00:00Z"), headers=auth_headers)
    client.post("/api/expenses", json=dict(lunch, date="2025-01-20T08:00:00Z", category="Bills", amount=30), headers=auth_headers)

    daily = client.get("/api/expenses/stats/daily?date=2025-01-05", headers=auth_headers).json()
    assert daily["total"] == 12.5

    monthly = client.get("/api/expenses/stats/monthly?month=1&year=2025", headers=auth_headers).json()
    assert monthly["total"] == 42.5
    assert monthly["byCategory"] == {"Food": 12.5, "Bills": 30}

    categories = client.get("/api/expenses/stats/categories?month=1&year=2025", headers=auth_headers).json()
    assert [entry["category"] for entry in categories["breakdown"]] == ["Bills", "Food"]

    insights = client.get("/api/expenses/stats/insights", headers=auth_headers)
    assert insights.status_code == 200
    assert set(insights.json()) == {"insights", "currentMonthTotal", "lastMonthTotal", "overallChange"}


def test_stats_reject_malformed_query(client, auth_headers):
    for path in (
        "/api/expenses/stats/daily?date=tomorrow",
        "/api/expenses/stats/monthly?month=abc",
        "/api/expenses/stats/categories?month=1&year=twenty",
    ):
        response = client.get(path, headers=auth_headers)
        assert response.status_code == 400
        assert response.json()["detail"]


def test_dates_near_calendar_edges_are_rejected(client, auth_headers, monkeypatch):
    monkeypatch.setattr(settings, "TIMEZONE", "Asia/Kolkata")
    for path in (
        "/api/expenses/stats/daily?date=0001-01-01",
        "/api/expenses?startDate=0001-01-01",
        "/api/expenses?endDate=9999-12-31",
        "/api/expenses?startDate=0001-01-01T00:00:00",
    ):
        response = client.get(path, headers=auth_headers)
        assert response.status_code == 400, path
        assert response.json()["detail"]


def test_sync_endpoint_end_to_end(client, auth_headers):
    first = client.post(
        "/api/expenses/sync",
        json={"expenses": [{"amount": 50, "category": "Food", "paymentMethod": "Cash", "localId": "a1"}]},
        headers=auth_headers,
    )
    assert first.status_code == 200
    second = client.post(
        "/api/expenses/sync",
        json={
            "expenses": [
                {"amount": 55, "category": "Food", "paymentMethod": "Cash", "localId": "a1"},
                {"amount": "lots", "category": "Food", "paymentMethod": "Cash", "localId": "b2"},
            ]
        },
        headers=auth_headers,
    ).json()

    assert [entry["status"] for entry in second["results"]] == ["updated", "failed"]
    assert second["failed"] == 1

    listing = client.get("/api/expenses", headers=auth_headers).json()
    assert listing["pagination"]["total"] == 1
    assert listing["expenses"][0]["amount"] == 55
    assert listing["expenses"][0]["localId"] == "a1"


def test_sync_requires_expenses(client, auth_headers):
    response = client.post("/api/expenses/sync", json={}, headers=auth_headers)
    assert response.status_code == 400
    assert response.json()["detail"] == "Expenses array is required"


def test_store_failure_is_generic_500(client, auth_headers, monkeypatch):
    class BrokenTable:
        def query(self, **kwargs):
            raise ClientError(
                {"Error": {"Code": "InternalServerError", "Message": "table exploded"}}, "Query"
            )

    monkeypatch.setattr(dynamo, "expenses_table", lambda: BrokenTable())
    response = client.get("/api/expenses", headers=auth_headers)
    assert response.status_code == 500
    assert response.json() == {"detail": "Internal server error"}


def test_status_reports_tables(client):
    body = client.get("/api/status").json()
    assert body["overall_status"] == "healthy"
    assert set(body["tables"]) == {"users", "expenses"}
