"""End-to-end API tests.

Uses the shared in-memory database from conftest.py.
"""

from marketplace import models


def _login(client, email, password="secret123"):
    r = client.post("/api/auth/token", data={"username": email, "password": password})
    assert r.status_code == 200, r.text
    return {"Authorization": f"Bearer {r.json()['access_token']}"}


def test_health(client):
    r = client.get("/api/health")
    assert r.status_code == 200
    body = r.json()
    assert body["status"] == "ok"
    assert body["environment"] == "test"
    assert "X-Request-ID" in r.headers


def test_request_id_is_propagated(client):
    r = client.get("/api/health", headers={"X-Request-ID": "req-42"})
    assert r.headers["X-Request-ID"] == "req-42"


def test_register_login_and_me(client):
    r = client.post(
        "/api/auth/register",
        json={
            "email": "wei@example.com",
            "name": "Wei",
            "password": "secret123",
            "role": "SUPPLIER",
        },
    )
    assert r.status_code == 201, r.text
    body = r.json()
    assert body["role"] == "SUPPLIER"
    assert body["is_approved"] is False
    assert len(body["short_code"]) == 6

    headers = _login(client, "wei@example.com")
    me = client.get("/api/auth/me", headers=headers)
    assert me.status_code == 200
    assert me.json()["email"] == "wei@example.com"


def test_register_rejects_admin_and_duplicates(client, client_user):
    r = client.post(
        "/api/auth/register",
        json={"email": "boss@example.com", "name": "Boss", "password": "secret123", "role": "ADMIN"},
    )
    assert r.status_code == 403

    r = client.post(
        "/api/auth/register",
        json={"email": client_user.email, "name": "Dup", "password": "secret123", "role": "CLIENT"},
    )
    assert r.status_code == 400
    assert r.json()["code"] == "invalid_argument"


def test_login_rejects_bad_password(client, client_user):
    r = client.post("/api/auth/token", data={"username": client_user.email, "password": "nope"})
    assert r.status_code == 401


def test_requires_authentication(client):
    assert client.get("/api/orders").status_code == 401
    assert client.get("/api/orders", headers={"Authorization": "Bearer garbage"}).status_code == 401


def test_quote_endpoint(client, client_user, headers_for):
    r = client.get("/api/quotes", params={"amount_foreign": 1000}, headers=headers_for(client_user))
    assert r.status_code == 200
    body = r.json()
    assert body["local_base"] == 750
    assert body["fee_amount"] == 37.5
    assert body["total_payable"] == 787.5
    assert body["foreign_currency"] == "CNY"
    assert body["local_currency"] == "BRL"


def test_escrow_scenario(client, admin, supplier, client_user, headers_for):
    client_h = headers_for(client_user)
    supplier_h = headers_for(supplier)
    admin_h = headers_for(admin)

    r = client.post(
        "/api/orders",
        json={"supplier_code": "888888", "description": "Phone cases", "value_foreign": 1000},
        headers=client_h,
    )
    assert r.status_code == 201, r.text
    order_id = r.json()["id"]
    assert r.json()["status"] == "PENDING"
    assert r.json()["supplier_id"] == supplier.id

    detail = client.get(f"/api/orders/{order_id}", headers=client_h).json()
    assert detail["quote"]["total_payable"] == 787.5

    r = client.post(
        f"/api/orders/{order_id}/ship",
        json={"tracking_code": "CN123", "shipping_photos": ["photos/1.jpg"]},
        headers=supplier_h,
    )
    assert r.status_code == 200, r.text
    assert r.json()["status"] == "SENT"

    r = client.post(f"/api/orders/{order_id}/finalize", headers=admin_h)
    assert r.status_code == 200, r.text
    assert r.json()["status"] == "FINALIZED"

    bal = client.get("/api/balances/me", headers=supplier_h).json()
    assert bal["total_earned"] == 1000
    assert bal["available"] == 1000

    r = client.post("/api/withdrawals", json={"amount_foreign": 1000}, headers=supplier_h)
    assert r.status_code == 201, r.text
    tx_id = r.json()["id"]
    assert r.json()["status"] == "PENDING"
    assert client.get("/api/balances/me", headers=supplier_h).json()["available"] == 0

    r = client.post(f"/api/transactions/{tx_id}/approve", headers=admin_h)
    assert r.status_code == 200
    assert r.json()["status"] == "APPROVED"
    assert client.get(f"/api/balances/{supplier.id}", headers=admin_h).json()["available"] == 0

    r = client.post("/api/withdrawals", json={"amount_foreign": 1}, headers=supplier_h)
    assert r.status_code == 409
    assert r.json()["code"] == "insufficient_balance"

    r = client.post(f"/api/transactions/{tx_id}/reject", headers=admin_h)
    assert r.status_code == 409
    assert r.json()["code"] == "invalid_transition"

    overview = client.get("/api/admin/overview", headers=admin_h).json()
    assert overview["transferred_today"] == 1000
    assert overview["pending_withdrawals"] == 0


def test_dispute_scenario(client, supplier, client_user, headers_for):
    client_h = headers_for(client_user)
    order_id = client.post(
        "/api/orders",
        json={"supplier_code": supplier.short_code, "description": "Shoes", "value_foreign": 80},
        headers=client_h,
    ).json()["id"]

    r = client.post(f"/api/orders/{order_id}/dispute", json={"reason": "late"}, headers=client_h)
    assert r.status_code == 409
    assert r.json()["context"]["current"] == "PENDING"

    client.post(
        f"/api/orders/{order_id}/ship",
        json={"tracking_code": "CN9", "shipping_photos": ["a.jpg"]},
        headers=headers_for(supplier),
    )
    r = client.post(f"/api/orders/{order_id}/dispute", json={"reason": "Damaged"}, headers=client_h)
    assert r.status_code == 200
    assert r.json()["status"] == "DISPUTE"
    assert r.json()["dispute_reason"] == "Damaged"
    assert r.json()["tracking_code"] == "CN9"


def test_error_mapping(client, supplier, client_user, headers_for):
    client_h = headers_for(client_user)

    r = client.post(
        "/api/orders",
        json={"supplier_code": "000000", "description": "x", "value_foreign": 5},
        headers=client_h,
    )
    assert r.status_code == 404
    assert r.json()["code"] == "supplier_not_found"

    r = client.post(
        "/api/orders",
        json={"supplier_code": supplier.short_code, "description": "x", "value_foreign": 0},
        headers=client_h,
    )
    assert r.status_code == 422

    r = client.get("/api/orders/9999", headers=client_h)
    assert r.status_code == 404


def test_order_input_cannot_touch_other_fields(client, supplier, client_user, headers_for):
    client_h = headers_for(client_user)
    order_id = client.post(
        "/api/orders",
        json={"supplier_code": supplier.short_code, "description": "Bags", "value_foreign": 10},
        headers=client_h,
    ).json()["id"]
    client.post(
        f"/api/orders/{order_id}/ship",
        json={"tracking_code": "CN1", "shipping_photos": ["a.jpg"]},
        headers=headers_for(supplier),
    )

    r = client.post(
        f"/api/orders/{order_id}/dispute",
        json={"reason": "x", "value_foreign": 1},
        headers=client_h,
    )
    assert r.status_code == 422

    r = client.post(
        f"/api/orders/{order_id}/ship",
        json={"tracking_code": "CN1", "shipping_photos": []},
        headers=headers_for(supplier),
    )
    assert r.status_code == 422


def test_role_enforcement(client, admin, supplier, client_user, user_factory, headers_for):
    client_h = headers_for(client_user)
    supplier_h = headers_for(supplier)

    order_id = client.post(
        "/api/orders",
        json={"supplier_code": supplier.short_code, "description": "Toys", "value_foreign": 10},
        headers=client_h,
    ).json()["id"]

    # Supplier cannot place orders; client cannot ship or finalize.
    r = client.post(
        "/api/orders",
        json={"supplier_code": supplier.short_code, "description": "x", "value_foreign": 1},
        headers=supplier_h,
    )
    assert r.status_code == 403
    r = client.post(
        f"/api/orders/{order_id}/ship",
        json={"tracking_code": "CN1", "shipping_photos": ["a.jpg"]},
        headers=client_h,
    )
    assert r.status_code == 403
    assert client.post(f"/api/orders/{order_id}/finalize", headers=supplier_h).status_code == 403
    assert client.get("/api/admin/overview", headers=client_h).status_code == 403
    assert client.get("/api/suppliers", headers=supplier_h).status_code == 403

    # Non-party cannot read the order.
    stranger = user_factory(models.UserRole.CLIENT)
    assert client.get(f"/api/orders/{order_id}", headers=headers_for(stranger)).status_code == 403


def test_unapproved_supplier_cannot_ship_or_withdraw(client, client_user, user_factory, headers_for):
    pending = user_factory(models.UserRole.SUPPLIER, short_code="111111", is_approved=False)
    order_id = client.post(
        "/api/orders",
        json={"supplier_code": "111111", "description": "Lamps", "value_foreign": 10},
        headers=headers_for(client_user),
    ).json()["id"]

    h = headers_for(pending)
    r = client.post(
        f"/api/orders/{order_id}/ship",
        json={"tracking_code": "CN1", "shipping_photos": ["a.jpg"]},
        headers=h,
    )
    assert r.status_code == 403
    assert client.post("/api/withdrawals", json={"amount_foreign": 1}, headers=h).status_code == 403


def test_admin_directory_actions(client, admin, client_user, user_factory, headers_for):
    admin_h = headers_for(admin)
    s = user_factory(models.UserRole.SUPPLIER, is_approved=False)

    r = client.get("/api/suppliers", params={"approved": False}, headers=admin_h)
    assert [row["id"] for row in r.json()] == [s.id]

    assert client.post(f"/api/suppliers/{s.id}/approve", headers=admin_h).json()["is_approved"] is True
    assert client.post(f"/api/suppliers/{s.id}/block", headers=admin_h).json()["is_approved"] is False

    old_code = s.short_code
    rotated = client.post(f"/api/suppliers/{s.id}/short-code", headers=admin_h).json()
    assert rotated["id"] == s.id
    assert rotated["short_code"] != old_code

    r = client.put(f"/api/clients/{client_user.id}/fee", json={"fee_percentage": 10}, headers=admin_h)
    assert r.status_code == 200
    assert r.json()["fee_percentage"] == 10

    q = client.get(
        "/api/quotes", params={"amount_foreign": 1000}, headers=headers_for(client_user)
    ).json()
    assert q["total_payable"] == 825

    r = client.put(f"/api/clients/{client_user.id}/fee", json={"fee_percentage": 101}, headers=admin_h)
    assert r.status_code == 422


def test_listing_is_scoped_to_caller(client, admin, supplier, client_user, user_factory, headers_for):
    other_client = user_factory(models.UserRole.CLIENT)
    for c in (client_user, other_client):
        client.post(
            "/api/orders",
            json={"supplier_code": supplier.short_code, "description": "x", "value_foreign": 1},
            headers=headers_for(c),
        )

    assert len(client.get("/api/orders", headers=headers_for(client_user)).json()) == 1
    assert len(client.get("/api/orders", headers=headers_for(supplier)).json()) == 2
    assert len(client.get("/api/orders", headers=headers_for(admin)).json()) == 2
    r = client.get("/api/orders", params={"status": "SENT"}, headers=headers_for(admin))
    assert r.json() == []


def test_mutations_are_audited(client, db_session, supplier, client_user, headers_for):
    client.post(
        "/api/orders",
        json={"supplier_code": supplier.short_code, "description": "x", "value_foreign": 1},
        headers={**headers_for(client_user), "X-Request-ID": "audit-1"},
    )
    log = (
        db_session.query(models.AuditLog)
        .filter(models.AuditLog.action == "orders.created")
        .one()
    )
    assert log.user_id == client_user.id
    assert log.request_id == "audit-1"


def test_own_balance_is_supplier_only(client, admin, supplier, client_user, headers_for):
    assert client.get("/api/balances/me", headers=headers_for(admin)).status_code == 403
    assert client.get("/api/balances/me", headers=headers_for(client_user)).status_code == 403
    assert client.get("/api/balances/me", headers=headers_for(supplier)).status_code == 200
    assert client.get(f"/api/balances/{supplier.id}", headers=headers_for(admin)).status_code == 200


def test_error_body_shape(client, supplier, headers_for):
    r = client.post("/api/withdrawals", json={"amount_foreign": 10}, headers=headers_for(supplier))
    assert r.status_code == 409
    body = r.json()
    assert set(body) == {"detail", "code", "context"}
    assert body["code"] == "insufficient_balance"
    assert body["context"]["supplier_id"] == supplier.id
    assert body["context"]["available"] == 0
