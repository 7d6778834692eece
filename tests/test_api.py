from sqlalchemy import select

from storefront.data.models import CartItemModel, OrderModel, ProductModel

ADDRESS = {
    "firstName": "Anna",
    "lastName": "Nowak",
    "addressLine1": "ul. Prosta 1",
    "city": "Warszawa",
    "state": "mazowieckie",
    "postalCode": "00-001",
}


def test_health(client):
    assert client.get("/health").json() == {"status": "ok"}


# ---------- cart ----------

def test_cart_requires_known_user(client, make_user):
    make_user(1)
    assert client.get("/api/cart").status_code == 401
    assert client.get("/api/cart", headers={"X-User-Id": "42"}).status_code == 401


def test_add_and_read_cart(client, headers, make_user, make_product):
    make_user(1)
    p = make_product(name="Keyboard", price="12.50", stock=5)

    r = client.post("/api/cart/add", json={"productId": p.id, "quantity": 2}, headers=headers(1))
    assert r.status_code == 200
    assert r.json() == {"message": "Item added to cart"}

    cart = client.get("/api/cart", headers=headers(1)).json()
    assert cart["count"] == 1
    assert cart["total"] == "25.00"
    assert cart["items"][0]["product_id"] == p.id
    assert cart["items"][0]["quantity"] == 2


def test_add_same_product_increments_line(client, headers, make_user, make_product, SessionTesting):
    make_user(1)
    p = make_product(stock=5)
    client.post("/api/cart/add", json={"productId": p.id}, headers=headers(1))
    client.post("/api/cart/add", json={"productId": p.id, "quantity": 2}, headers=headers(1))

    with SessionTesting() as s:
        rows = s.execute(select(CartItemModel)).scalars().all()
        assert [(r.product_id, r.quantity) for r in rows] == [(p.id, 3)]


def test_add_validation_and_stock_errors(client, headers, make_user, make_product):
    make_user(1)
    p = make_product(stock=1)

    assert client.post("/api/cart/add", json={"quantity": 1}, headers=headers(1)).status_code == 400
    assert client.post("/api/cart/add", json={"productId": p.id, "quantity": 0}, headers=headers(1)).status_code == 400
    assert client.post("/api/cart/add", json={"productId": 999}, headers=headers(1)).status_code == 404

    r = client.post("/api/cart/add", json={"productId": p.id, "quantity": 2}, headers=headers(1))
    assert r.status_code == 400
    assert "Insufficient stock" in r.json()["detail"]


def test_update_sets_quantity(client, headers, make_user, make_product, put_in_cart):
    make_user(1)
    p = make_product(stock=5)
    item = put_in_cart(1, p.id, 1)

    r = client.put(f"/api/cart/update/{item.id}", json={"quantity": 4}, headers=headers(1))
    assert r.status_code == 200
    assert client.get("/api/cart", headers=headers(1)).json()["items"][0]["quantity"] == 4

    assert client.put(f"/api/cart/update/{item.id}", json={"quantity": 6}, headers=headers(1)).status_code == 400
    assert client.put("/api/cart/update/999", json={"quantity": 1}, headers=headers(1)).status_code == 404


def test_remove_and_clear(client, headers, make_user, make_product, put_in_cart):
    make_user(1)
    make_user(2)
    a = make_product(name="A")
    b = make_product(name="B")
    item = put_in_cart(1, a.id, 1)
    put_in_cart(1, b.id, 1)
    other = put_in_cart(2, a.id, 1)

    # cudza pozycja nie jest widoczna
    assert client.delete(f"/api/cart/remove/{other.id}", headers=headers(1)).status_code == 404

    assert client.delete(f"/api/cart/remove/{item.id}", headers=headers(1)).json() == {"message": "Item removed from cart"}
    assert client.delete(f"/api/cart/remove/{item.id}", headers=headers(1)).status_code == 404

    assert client.delete("/api/cart/clear", headers=headers(1)).json() == {"message": "Cart cleared"}
    assert client.get("/api/cart", headers=headers(1)).json()["count"] == 0
    assert client.get("/api/cart", headers=headers(2)).json()["count"] == 1


# ---------- orders ----------

def test_create_order(client, headers, make_user, make_product, put_in_cart, SessionTesting, notifier):
    make_user(1)
    p = make_product(price="10.00", stock=5)
    put_in_cart(1, p.id, 2)

    r = client.post("/api/orders/create", json={"shippingAddress": ADDRESS}, headers=headers(1))

    assert r.status_code == 201
    body = r.json()
    assert body["message"] == "Order created successfully"
    assert body["order"]["totalAmount"] == "20.00"
    assert body["order"]["status"] == "processing"
    assert body["order"]["orderNumber"].startswith("ORD-")

    with SessionTesting() as s:
        assert s.get(ProductModel, p.id).stock_quantity == 3
        assert s.execute(select(CartItemModel)).first() is None
    assert len(notifier.sent) == 1


def test_create_order_missing_address_fields(client, headers, make_user, make_product, put_in_cart):
    make_user(1)
    p = make_product()
    put_in_cart(1, p.id, 1)

    r = client.post(
        "/api/orders/create",
        json={"shippingAddress": {k: v for k, v in ADDRESS.items() if k != "city"}},
        headers=headers(1),
    )

    assert r.status_code == 400
    detail = r.json()["detail"]
    assert detail["missing"] == ["city"]
    assert "postalCode" in detail["required"]


def test_create_order_insufficient_stock(client, headers, make_user, make_product, put_in_cart, SessionTesting):
    make_user(1)
    p = make_product(name="Mouse", stock=2)
    put_in_cart(1, p.id, 3)

    r = client.post("/api/orders/create", json={"shippingAddress": ADDRESS}, headers=headers(1))

    assert r.status_code == 400
    detail = r.json()["detail"]
    assert detail["message"] == "Insufficient stock for Mouse"
    assert detail["productId"] == p.id
    assert (detail["requested"], detail["available"]) == (3, 2)
    with SessionTesting() as s:
        assert s.get(ProductModel, p.id).stock_quantity == 2
        assert s.execute(select(OrderModel)).first() is None


def test_create_order_empty_cart(client, headers, make_user):
    make_user(1)
    r = client.post("/api/orders/create", json={"shippingAddress": ADDRESS}, headers=headers(1))
    assert r.status_code == 400
    assert r.json()["detail"] == "Cart is empty"


def test_create_order_while_checkout_in_progress(client, headers, lock_service, make_user, make_product, put_in_cart):
    make_user(1)
    p = make_product()
    put_in_cart(1, p.id, 1)
    lock_service.locks[1] = "someone-else"

    r = client.post("/api/orders/create", json={"shippingAddress": ADDRESS}, headers=headers(1))
    assert r.status_code == 409


def _place_order(client, headers, make_product, put_in_cart, user_id=1, **product):
    p = make_product(**product)
    put_in_cart(user_id, p.id, 1)
    r = client.post("/api/orders/create", json={"shippingAddress": ADDRESS}, headers=headers(user_id))
    assert r.status_code == 201
    return p, r.json()["order"]


def test_list_and_get_orders(client, headers, make_user, make_product, put_in_cart):
    make_user(1)
    make_user(2)
    _place_order(client, headers, make_product, put_in_cart, name="A")
    p, order = _place_order(client, headers, make_product, put_in_cart, name="B")

    listing = client.get("/api/orders?page=1&limit=1", headers=headers(1)).json()
    assert listing["pagination"] == {"page": 1, "limit": 1, "total": 2, "pages": 2}
    assert len(listing["orders"]) == 1
    assert listing["orders"][0]["item_count"] == 1

    detail = client.get(f"/api/orders/{order['id']}", headers=headers(1)).json()
    assert detail["order_number"] == order["orderNumber"]
    assert detail["items"][0]["name"] == "B"
    assert detail["items"][0]["product_id"] == p.id
    assert detail["shipping_address"]["city"] == "Warszawa"

    # cudze zamowienie
    assert client.get(f"/api/orders/{order['id']}", headers=headers(2)).status_code == 404
    assert client.get("/api/orders", headers=headers(2)).json()["pagination"]["total"] == 0


def test_verified_purchase(client, headers, make_user, make_product, put_in_cart):
    make_user(1)
    bought, _ = _place_order(client, headers, make_product, put_in_cart)
    other = make_product(name="Other")

    assert client.get(f"/api/orders/verified-purchase/{bought.id}", headers=headers(1)).json()["verified"] is True
    assert client.get(f"/api/orders/verified-purchase/{other.id}", headers=headers(1)).json()["verified"] is False


# ---------- admin ----------

def test_admin_endpoints_require_admin(client, headers, make_user, make_product):
    make_user(1)
    p = make_product()
    r = client.post(f"/api/admin/products/{p.id}/restock", json={"quantity": 5}, headers=headers(1))
    assert r.status_code == 403


def test_status_change_flow(client, headers, make_user, make_product, put_in_cart):
    make_user(1)
    make_user(9, name="Admin", is_admin=True)
    _, order = _place_order(client, headers, make_product, put_in_cart)
    url = f"/api/admin/orders/{order['id']}/status"

    r = client.put(url, json={"status": "shipped", "trackingNumber": "PL123"}, headers=headers(9))
    assert r.status_code == 200

    detail = client.get(f"/api/orders/{order['id']}", headers=headers(1)).json()
    assert (detail["status"], detail["tracking_number"]) == ("shipped", "PL123")

    # nie da sie cofnac
    assert client.put(url, json={"status": "processing"}, headers=headers(9)).status_code == 400
    assert client.put(url, json={"status": "delivered"}, headers=headers(9)).status_code == 200
    assert client.put(url, json={"status": "cancelled"}, headers=headers(9)).status_code == 400
    assert client.put(url, json={"status": "lost"}, headers=headers(9)).status_code == 400
    assert client.put("/api/admin/orders/999/status", json={"status": "shipped"}, headers=headers(9)).status_code == 404


def test_restock(client, headers, make_user, make_product):
    make_user(9, is_admin=True)
    p = make_product(stock=0)

    r = client.post(f"/api/admin/products/{p.id}/restock", json={"quantity": 7}, headers=headers(9))
    assert r.status_code == 200
    assert r.json()["stock_quantity"] == 7

    assert client.post(f"/api/admin/products/{p.id}/restock", json={"quantity": 0}, headers=headers(9)).status_code == 400
    assert client.post("/api/admin/products/999/restock", json={"quantity": 1}, headers=headers(9)).status_code == 404
