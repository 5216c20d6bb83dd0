from conftest import FaultyStore, create_customer, create_product
from utils.table_store import StorageRequestError


def _place(client, customer_id, product_id, quantity=1, **extra):
    return client.post("/orders", json={
        "customer_id": customer_id, "product_id": product_id, "quantity": quantity, **extra,
    })


def _logs(client, **params):
    response = client.get("/logs", params=params)
    assert response.status_code == 200
    return response.json()["items"]


def test_root(client):
    response = client.get("/")
    assert response.status_code == 200
    assert response.json() == {"message": "Retail Manager API is running"}


# =========================
# CUSTOMERS
# =========================
def test_register_and_fetch_customer(client):
    created = create_customer(client)

    assert created["id"]
    assert created["etag"]
    fetched = client.get(f"/customers/{created['id']}").json()
    assert fetched["username"] == "thandi_m"
    assert fetched["email"] == "thandi@example.com"

    listing = client.get("/customers").json()
    assert listing["total"] == 1
    assert _logs(client, action="CUSTOMER_CREATE")[0]["meta"]["username"] == "thandi_m"


def test_duplicate_username_or_email_is_rejected(client):
    create_customer(client)

    same_username = client.post("/customers", json={
        "first_name": "T", "surname": "M", "email": "other@example.com",
        "address": "Somewhere", "username": "thandi_m",
    })
    same_email = client.post("/customers", json={
        "first_name": "T", "surname": "M", "email": "thandi@example.com",
        "address": "Somewhere", "username": "someone_else",
    })

    assert same_username.status_code == 409
    assert same_email.status_code == 409
    assert client.get("/customers").json()["total"] == 1


def test_customer_validation(client):
    response = client.post("/customers", json={
        "first_name": "Thandi", "surname": "Mokoena", "email": "not-an-email",
        "address": "12 Long Street", "username": "thandi_m",
    })
    assert response.status_code == 422


def test_unknown_customer(client):
    assert client.get("/customers/ghost").status_code == 404


def test_new_customer_shows_up_in_cached_list(client):
    create_customer(client, username="a", email="a@example.com")
    assert client.get("/customers").json()["total"] == 1

    create_customer(client, username="b", email="b@example.com")
    assert [c["username"] for c in client.get("/customers").json()["items"]] == ["a", "b"]


def test_transient_storage_failure_maps_to_503(client, services, sleeps):
    customer = create_customer(client)
    services.customers = FaultyStore(services.customers)
    services.customers.fail("get", *[StorageRequestError(503, "busy")] * 3)

    response = client.get(f"/customers/{customer['id']}")

    assert response.status_code == 503
    assert sleeps == [1.0, 2.0]


# =========================
# PRODUCTS
# =========================
def test_add_product_and_details(client):
    created = create_product(client)

    assert created["price"] == 120.5
    assert created["stock_quantity"] == 5
    assert created["image_url"] == ""

    details = client.get(f"/products/{created['id']}/details").json()
    assert details == {"price": 120.5, "stock": 5, "name": "Ceramic Mug"}


def test_add_product_with_image(client):
    created = create_product(client, files={"file": ("mug.png", b"\x89PNG fake", "image/png")})

    assert created["image_url"] == f"http://testserver/static/uploads/product-images/{created['id']}.png"
    served = client.get(created["image_url"].replace("http://testserver", ""))
    assert served.status_code == 200
    assert served.content == b"\x89PNG fake"


def test_add_product_rejects_non_image(client):
    response = client.post(
        "/products",
        data={"name": "Mug", "price": "10", "stock_quantity": "1"},
        files={"file": ("notes.txt", b"hello", "text/plain")},
    )
    assert response.status_code == 400
    assert client.get("/products").json()["total"] == 0


def test_add_product_rejects_negative_values(client):
    negative_price = client.post("/products", data={"name": "Mug", "price": "-1", "stock_quantity": "1"})
    negative_stock = client.post("/products", data={"name": "Mug", "price": "1", "stock_quantity": "-1"})

    assert negative_price.status_code == 422
    assert negative_stock.status_code == 422


def test_in_stock_filter(client):
    create_product(client, name="Mug", stock=3)
    create_product(client, name="Teapot", stock=0)

    everything = client.get("/products").json()
    orderable = client.get("/products", params={"in_stock": True}).json()

    assert [p["name"] for p in everything["items"]] == ["Mug", "Teapot"]
    assert [p["name"] for p in orderable["items"]] == ["Mug"]


def test_unknown_product(client):
    assert client.get("/products/ghost").status_code == 404
    assert client.get("/products/ghost/details").status_code == 404


# =========================
# ORDERS
# =========================
def test_place_order(client, sink):
    customer = create_customer(client)
    product = create_product(client, price="19.99", stock=5)

    response = _place(client, customer["id"], product["id"], 3)

    assert response.status_code == 201, response.text
    order = response.json()
    assert order["quantity"] == 3
    assert order["unit_price"] == 19.99
    assert order["total_price"] == 59.97
    assert order["order_status"] == "Pending"
    assert order["order_date"].endswith("Z")
    assert order["customer_name"] == "Thandi Mokoena"
    assert order["product_name"] == "Ceramic Mug"
    assert client.get(f"/products/{product['id']}").json()["stock_quantity"] == 2
    assert len(sink.messages) == 1
    assert _logs(client, action="ORDER_CREATE")[0]["meta"]["order_id"] == order["id"]


def test_order_refreshes_cached_product_list(client):
    customer = create_customer(client)
    product = create_product(client, stock=5)
    assert client.get("/products").json()["items"][0]["stock_quantity"] == 5

    _place(client, customer["id"], product["id"], 2)

    assert client.get("/products").json()["items"][0]["stock_quantity"] == 3


def test_client_supplied_price_is_ignored(client):
    customer = create_customer(client)
    product = create_product(client, price="10")

    response = _place(client, customer["id"], product["id"], 1, unit_price=0.01, total_price=0.01)

    assert response.status_code == 201
    assert response.json()["total_price"] == 10.0


def test_order_with_insufficient_stock(client):
    customer = create_customer(client)
    product = create_product(client, stock=2)

    response = _place(client, customer["id"], product["id"], 3)

    assert response.status_code == 400
    assert response.json()["detail"]["available"] == 2
    assert client.get(f"/products/{product['id']}").json()["stock_quantity"] == 2
    assert client.get("/orders").json()["total"] == 0
    failure = _logs(client, action="ORDER_CREATE", status="FAIL")[0]
    assert failure["meta"]["error"] == "InsufficientStock"


def test_order_for_unknown_customer_or_product(client):
    customer = create_customer(client)
    product = create_product(client)

    assert _place(client, "ghost", product["id"]).status_code == 404
    assert _place(client, customer["id"], "ghost").status_code == 404


def test_order_quantity_must_be_positive(client):
    customer = create_customer(client)
    product = create_product(client)

    assert _place(client, customer["id"], product["id"], 0).status_code == 422


def test_failed_rollback_is_reported(client, services):
    customer = create_customer(client)
    product = create_product(client, stock=5)
    workflow = services.workflow
    workflow.orders = FaultyStore(workflow.orders)
    workflow.orders.fail("insert", StorageRequestError(400, "bad entity"))
    workflow.products = FaultyStore(workflow.products)
    workflow.products.fail("update", None, StorageRequestError(503, "gone"))

    response = _place(client, customer["id"], product["id"], 2)

    assert response.status_code == 500
    detail = response.json()["detail"]
    assert detail["stage"] == "ORDER_COMMIT"
    assert detail["rollback"] == "failed"
    # Stock stays decremented and the product list reflects it
    assert client.get("/products").json()["items"][0]["stock_quantity"] == 3

    rollback_log = _logs(client, action="ORDER_ROLLBACK")[0]
    assert rollback_log["status"] == "FAIL"
    assert rollback_log["meta"]["product_id"] == product["id"]
    assert rollback_log["meta"]["restore_stock"] == 5
    assert rollback_log["meta"]["decremented_by"] == 2


def test_successful_rollback_restores_stock(client, services):
    customer = create_customer(client)
    product = create_product(client, stock=5)
    services.workflow.orders = FaultyStore(services.workflow.orders)
    services.workflow.orders.fail("insert", StorageRequestError(400, "bad entity"))

    response = _place(client, customer["id"], product["id"], 2)

    assert response.status_code == 500
    assert response.json()["detail"]["rollback"] == "succeeded"
    assert client.get(f"/products/{product['id']}").json()["stock_quantity"] == 5
    assert _logs(client, action="ORDER_ROLLBACK") == []


def test_order_status_update_uses_etag(client):
    customer = create_customer(client)
    product = create_product(client)
    order = _place(client, customer["id"], product["id"]).json()

    first = client.patch(f"/orders/{order['id']}/status", json={"status": "Shipped", "etag": order["etag"]})
    stale = client.patch(f"/orders/{order['id']}/status", json={"status": "Cancelled", "etag": order["etag"]})

    assert first.status_code == 200
    assert first.json()["order_status"] == "Shipped"
    assert first.json()["etag"] != order["etag"]
    assert stale.status_code == 409
    assert client.get(f"/orders/{order['id']}").json()["order_status"] == "Shipped"


def test_list_and_delete_orders(client):
    customer = create_customer(client)
    product = create_product(client)
    first = _place(client, customer["id"], product["id"]).json()
    _place(client, customer["id"], product["id"])

    assert client.get("/orders").json()["total"] == 2

    assert client.delete(f"/orders/{first['id']}").status_code == 200
    assert client.get(f"/orders/{first['id']}").status_code == 404
    assert client.delete(f"/orders/{first['id']}").status_code == 404
    assert client.get("/orders").json()["total"] == 1


# =========================
# LOGS
# =========================
def test_log_filters(client):
    create_customer(client)
    create_product(client)

    assert client.get("/logs").json()["total"] == 2
    assert [l["action"] for l in _logs(client, resource="products")] == ["PRODUCT_CREATE"]
    assert _logs(client, status="FAIL") == []
