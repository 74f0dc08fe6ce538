from conftest import create_product, register


def put_cart(client, headers, *lines):
    items = [{"product_id": product_id, "quantity": quantity} for product_id, quantity in lines]
    response = client.put("/api/cart", json={"items": items}, headers=headers)
    assert response.status_code == 200, response.text
    return response.json()


def test_empty_cart(client, buyer):
    headers, _ = buyer
    cart = client.get("/api/cart", headers=headers).json()
    assert cart["items"] == []
    assert cart["total"] == 0


def test_cart_requires_auth(client):
    assert client.get("/api/cart").status_code == 401


def test_put_cart_replaces_contents(client, seller, buyer):
    seller_headers, _ = seller
    a = create_product(client, seller_headers, name="A", price=2.5)
    b = create_product(client, seller_headers, name="B", price=10)
    headers, _ = buyer

    put_cart(client, headers, (a["id"], 2))
    cart = put_cart(client, headers, (b["id"], 3))
    assert [item["product_id"] for item in cart["items"]] == [b["id"]]
    assert cart["total"] == 30
    assert cart["message"] == "Cart updated successfully"
    assert cart["warnings"] == []


def test_duplicate_lines_are_merged(client, product, buyer):
    headers, _ = buyer
    cart = put_cart(client, headers, (product["id"], 1), (product["id"], 2))
    assert len(cart["items"]) == 1
    assert cart["items"][0]["quantity"] == 3
    assert cart["items"][0]["subtotal"] == 89.97


def test_quantity_clamped_to_stock(client, seller, buyer):
    seller_headers, _ = seller
    product = create_product(client, seller_headers, name="Scarce", stock=2)
    headers, _ = buyer
    cart = put_cart(client, headers, (product["id"], 5))
    assert cart["items"][0]["quantity"] == 2
    assert cart["warnings"] == ["Product 'Scarce' quantity adjusted from 5 to 2 (max available)"]


def test_unavailable_products_are_skipped(client, seller, buyer):
    seller_headers, _ = seller
    empty = create_product(client, seller_headers, name="Empty", stock=0)
    paused = create_product(client, seller_headers, name="Paused")
    client.put(f"/api/products/{paused['id']}", json={"paused": True}, headers=seller_headers)
    headers, _ = buyer

    cart = put_cart(client, headers, (empty["id"], 1), (paused["id"], 1), (9999, 1))
    assert cart["items"] == []
    assert cart["warnings"] == [
        "Product 'Empty' is out of stock",
        "Product 'Paused' is currently unavailable",
        "Product with ID 9999 not found",
    ]


def test_own_product_is_skipped(client, seller, product):
    headers, _ = seller
    cart = put_cart(client, headers, (product["id"], 1))
    assert cart["items"] == []
    assert cart["warnings"] == ["Product 'Widget' is your own product"]


def test_invalid_quantity(client, product, buyer):
    headers, _ = buyer
    body = {"items": [{"product_id": product["id"], "quantity": 0}]}
    assert client.put("/api/cart", json=body, headers=headers).status_code == 400


def test_clear_cart(client, product, buyer):
    headers, _ = buyer
    put_cart(client, headers, (product["id"], 1))
    assert client.delete("/api/cart", headers=headers).status_code == 200
    assert client.get("/api/cart", headers=headers).json()["items"] == []


def test_carts_are_per_user(client, product, buyer):
    headers, _ = buyer
    put_cart(client, headers, (product["id"], 1))
    other_headers, _ = register(client)
    assert client.get("/api/cart", headers=other_headers).json()["items"] == []


def test_validate_clean_cart(client, product, buyer):
    headers, _ = buyer
    put_cart(client, headers, (product["id"], 1))
    assert client.get("/api/cart/validate", headers=headers).json() == {"valid": True, "errors": []}


def test_validate_reports_price_and_stock_changes(client, seller, product, buyer):
    seller_headers, _ = seller
    headers, _ = buyer
    put_cart(client, headers, (product["id"], 5))
    client.put(f"/api/products/{product['id']}", json={"price": 35, "stock": 3}, headers=seller_headers)

    result = client.get("/api/cart/validate", headers=headers).json()
    assert result["valid"] is False
    assert result["errors"] == [
        "Product 'Widget' only has 3 units available (cart has 5)",
        "Product 'Widget' price has changed from $29.99 to $35.00",
    ]
    assert client.get("/api/cart", headers=headers).json()["items"][0]["subtotal"] == 175


def test_deleted_seller_drops_out_of_cart(client, seller, product, buyer):
    seller_headers, _ = seller
    headers, _ = buyer
    put_cart(client, headers, (product["id"], 1))
    client.delete("/api/users/profile", headers=seller_headers)

    assert client.get("/api/cart", headers=headers).json()["items"] == []
    result = client.get("/api/cart/validate", headers=headers).json()
    assert result == {"valid": False, "errors": ["Product 'Widget' no longer exists"]}
    cart = put_cart(client, headers, (product["id"], 1))
    assert cart["warnings"] == [f"Product with ID {product['id']} not found"]
