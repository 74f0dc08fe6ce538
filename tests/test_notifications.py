def make_sale(client, product, buyer):
    headers, _ = buyer
    response = client.post(
        "/api/sales", json={"products": [{"product_id": product["id"], "quantity": 1}]}, headers=headers
    )
    assert response.status_code == 201
    return response.json()["sale"]


def test_notifications_require_auth(client):
    assert client.get("/api/notifications").status_code == 401


def test_mark_read(client, product, seller, buyer):
    make_sale(client, product, buyer)
    make_sale(client, product, buyer)
    headers, _ = seller

    listing = client.get("/api/notifications", headers=headers).json()
    assert listing["unread_count"] == 2
    first = listing["items"][0]
    assert first["read"] is False

    response = client.patch(f"/api/notifications/{first['id']}/read", headers=headers)
    assert response.status_code == 200
    assert response.json()["read"] is True

    unread = client.get("/api/notifications", params={"unread": "true"}, headers=headers).json()
    assert len(unread["items"]) == 1
    assert unread["unread_count"] == 1


def test_mark_all_read(client, product, seller, buyer):
    make_sale(client, product, buyer)
    make_sale(client, product, buyer)
    headers, _ = seller
    assert client.post("/api/notifications/read-all", headers=headers).json() == {"updated": 2}
    assert client.get("/api/notifications", headers=headers).json()["unread_count"] == 0


def test_notifications_are_private(client, product, seller, buyer):
    make_sale(client, product, buyer)
    seller_headers, _ = seller
    note = client.get("/api/notifications", headers=seller_headers).json()["items"][0]
    buyer_headers, _ = buyer
    assert client.patch(f"/api/notifications/{note['id']}/read", headers=buyer_headers).status_code == 404
    assert client.delete(f"/api/notifications/{note['id']}", headers=buyer_headers).status_code == 404


def test_delete_notification(client, product, seller, buyer):
    make_sale(client, product, buyer)
    headers, _ = seller
    note = client.get("/api/notifications", headers=headers).json()["items"][0]
    assert client.delete(f"/api/notifications/{note['id']}", headers=headers).status_code == 200
    assert client.get("/api/notifications", headers=headers).json()["items"] == []


def test_subscribe(client, subscriber):
    response = client.post("/api/notifications/subscribe", json={"email": "news@example.com"})
    assert response.status_code == 200
    assert subscriber.emails == ["news@example.com"]


def test_subscribe_rejects_bad_email(client):
    assert client.post("/api/notifications/subscribe", json={"email": "nope"}).status_code == 400
