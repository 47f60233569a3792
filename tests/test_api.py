from types import SimpleNamespace

from app.domain.enums import NotificationKind, Role
from tests.conftest import OTHER, OWNER, RENTER

ADDRESS = {
    "full_name": "Jan Kowalski",
    "phone_number": "+48 600 100 200",
    "address_line1": "ul. Polna 1",
    "city": "Lublin",
    "state": "lubelskie",
    "pincode": "20-001",
    "country": "PL",
}


def test_health_is_public(client):
    resp = client.get("/health")

    assert resp.status_code == 200
    assert resp.json() == {"status": "ok"}


def test_readiness_reports_broker_state(client):
    client.app.state.broker_probe = SimpleNamespace(is_alive=lambda: False)

    resp = client.get("/health/ready")

    assert resp.status_code == 200
    assert resp.json() == {"status": "ok", "database": "up", "broker": "down"}


def test_missing_token_is_unauthorized(client):
    resp = client.get("/addresses/")

    assert resp.status_code == 401
    assert resp.json()["error"] == "unauthorized"
    assert resp.headers["WWW-Authenticate"] == "Bearer"


def test_garbage_token_is_unauthorized(client):
    resp = client.get("/cart/", headers={"Authorization": "Bearer not-a-jwt"})

    assert resp.status_code == 401


def test_address_book_over_http(client, auth):
    first = client.post("/addresses/", json=ADDRESS, headers=auth(RENTER))
    assert first.status_code == 201
    assert first.json()["is_active"] is True

    second = client.post("/addresses/", json={**ADDRESS, "city": "Krakow"}, headers=auth(RENTER))
    second_id = second.json()["id"]

    resp = client.patch(f"/addresses/{second_id}/set-active", headers=auth(RENTER))
    assert resp.json()["is_active"] is True
    assert client.get("/addresses/active", headers=auth(RENTER)).json()["id"] == second_id

    resp = client.patch(f"/addresses/{second_id}", json={"is_active": False}, headers=auth(RENTER))
    assert resp.status_code == 400
    assert resp.json()["error"] == "validation_error"

    assert client.get(f"/addresses/{second_id}", headers=auth(OTHER)).status_code == 404

    assert client.delete(f"/addresses/{second_id}", headers=auth(RENTER)).status_code == 204
    remaining = client.get("/addresses/", headers=auth(RENTER)).json()
    assert [a["is_active"] for a in remaining] == [True]


def test_schema_errors_keep_422(client, auth):
    resp = client.post("/addresses/", json={"city": "Lublin"}, headers=auth(RENTER))

    assert resp.status_code == 422


def test_cart_over_http(client, auth):
    resp = client.post("/cart/items", json={"product_id": 11, "quantity": 2}, headers=auth(RENTER))
    assert resp.status_code == 200
    body = resp.json()
    assert body["total_items"] == 2
    assert body["total_sale_price"] == "60.00"

    item_id = body["items"][0]["id"]
    resp = client.patch(f"/cart/items/{item_id}", json={"quantity": 3}, headers=auth(RENTER))
    assert resp.json()["total_sale_price"] == "90.00"

    resp = client.post("/cart/items", json={"product_id": 999, "quantity": 1}, headers=auth(RENTER))
    assert resp.status_code == 404
    assert resp.json()["error"] == "not_found"

    resp = client.delete("/cart/", headers=auth(RENTER))
    assert resp.json()["items"] == []


def test_rental_flow_over_http(client, auth, dispatcher):
    address_id = client.post("/addresses/", json=ADDRESS, headers=auth(RENTER)).json()["id"]

    resp = client.post(
        "/rental-requests/",
        json={
            "product_id": 10,
            "delivery_address_id": address_id,
            "start_date": "2024-01-15T00:00:00Z",
            "end_date": "2024-01-20T00:00:00Z",
        },
        headers=auth(RENTER),
    )
    assert resp.status_code == 201
    created = resp.json()
    assert created["status"] == "pending"
    assert created["rental_days"] == 5
    assert created["total_amount"] == "100.00"
    request_id = created["id"]

    clash = client.post(
        "/rental-requests/",
        json={
            "product_id": 10,
            "delivery_address_id": address_id,
            "start_date": "2024-01-18T00:00:00Z",
            "end_date": "2024-01-22T00:00:00Z",
        },
        headers=auth(RENTER),
    )
    assert clash.status_code == 409
    assert clash.json()["error"] == "conflict"

    resp = client.post(f"/rental-requests/{request_id}/approve", headers=auth(RENTER))
    assert resp.status_code == 403

    resp = client.post(f"/rental-requests/{request_id}/approve", headers=auth(OWNER))
    assert resp.status_code == 200
    assert resp.json()["status"] == "approved"

    resp = client.post(f"/rental-requests/{request_id}/approve", headers=auth(OWNER))
    assert resp.status_code == 409
    assert resp.json()["error"] == "invalid_transition"

    resp = client.post(f"/rental-requests/{request_id}/complete", headers=auth(OWNER))
    resp = client.post(f"/rental-requests/{request_id}/return", headers=auth(OWNER))
    assert resp.json()["is_returned"] is True

    resp = client.post(
        f"/rental-requests/{request_id}/rate",
        json={"rating": 5, "review": "Polecam"},
        headers=auth(RENTER),
    )
    assert resp.json()["rating"] == 5

    assert client.get(f"/rental-requests/{request_id}", headers=auth(OTHER)).status_code == 404
    assert client.get("/rental-requests/my-products", headers=auth(OWNER)).json()[0]["id"] == request_id
    assert client.get("/rental-requests/stats", headers=auth(RENTER)).json()["as_requester"] == {"returned": 1}

    assert dispatcher.kinds() == [
        NotificationKind.RENTAL_REQUEST,
        NotificationKind.RENTAL_APPROVED,
        NotificationKind.RENTAL_COMPLETED,
        NotificationKind.RENTAL_RETURNED,
    ]


def test_unknown_event_is_rejected(client, auth):
    resp = client.post("/rental-requests/1/teleport", headers=auth(RENTER))

    assert resp.status_code == 422


def test_orders_over_http(client, auth):
    client.post("/addresses/", json=ADDRESS, headers=auth(RENTER))
    client.post("/cart/items", json={"product_id": 12, "quantity": 1}, headers=auth(RENTER))

    resp = client.post("/orders/checkout", headers=auth(RENTER))
    assert resp.status_code == 201
    order = resp.json()
    assert order["total_price"] == "15.00"
    assert order["shipping_address"]["city"] == "Lublin"

    assert client.get("/orders/my-orders", headers=auth(RENTER)).json()[0]["id"] == order["id"]
    assert client.get("/orders/", headers=auth(RENTER)).status_code == 403
    assert len(client.get("/orders/", headers=auth(OTHER, Role.ADMIN)).json()) == 1

    resp = client.patch(f"/orders/{order['id']}/status", json={"status": "processing"}, headers=auth(RENTER))
    assert resp.json()["status"] == "processing"


def test_notifications_over_http(client, auth, session_factory):
    from app.services.notification_service import NotificationService

    db = session_factory()
    try:
        NotificationService(db).record(
            NotificationKind.RENTAL_APPROVED,
            RENTER,
            {"from_user_id": OWNER, "product_id": 10, "rental_request_id": 1},
        )
    finally:
        db.close()

    assert client.get("/notifications/unread-count", headers=auth(RENTER)).json() == {"count": 1}
    listed = client.get("/notifications/", headers=auth(RENTER)).json()
    assert listed[0]["type"] == "rental_approved"

    resp = client.patch(f"/notifications/{listed[0]['id']}/read", headers=auth(RENTER))
    assert resp.json()["is_read"] is True
    assert client.get("/notifications/unread", headers=auth(RENTER)).json() == []

    assert client.delete(f"/notifications/{listed[0]['id']}", headers=auth(OTHER)).status_code == 404
    assert client.delete("/notifications/", headers=auth(RENTER)).status_code == 204
    assert client.get("/notifications/", headers=auth(RENTER)).json() == []
