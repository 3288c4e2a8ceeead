def test_order_status_missing_session_id(api_client):
    res = api_client.get("/api/order-status")
    assert res.status_code == 400
    assert res.json() == {"error": "Session ID required"}

def test_order_status_unknown_session(api_client):
    res = api_client.get("/api/order-status", params={"session_id": "cs_missing"})
    assert res.status_code == 404
    assert "error" in res.json()

def test_order_status_paid_session(api_client, gateway, order_store, stripe_session):
    gateway.sessions["cs_test_1"] = stripe_session()

    res = api_client.get("/api/order-status", params={"session_id": "cs_test_1"})

    assert res.status_code == 200
    body = res.json()
    assert body["success"] is True
    assert body["orderId"] == "cs_test_1"
    assert body["paymentIntent"] == "pi_1"
    assert body["customerEmail"] == "buyer@example.com"
    assert body["totalAmount"] == 135.0
    assert body["currency"] == "usd"
    assert body["paymentStatus"] == "paid"
    assert body["shippingAddress"]["country"] == "US"
    assert len(body["items"]) == 1
    # Réconciliation opportuniste
    assert order_store.rows["cs_test_1"]["status"] == "paid"

def test_order_status_without_service_key(app, api_client, gateway, stripe_session):
    from artshop import dependencies

    app.dependency_overrides[dependencies.get_optional_order_writer] = lambda: None
    gateway.sessions["cs_test_1"] = stripe_session()
    res = api_client.get("/api/order-status", params={"session_id": "cs_test_1"})
    assert res.status_code == 200
    assert res.json()["orderId"] == "cs_test_1"

def test_list_orders_requires_filter(api_client):
    res = api_client.get("/api/orders")
    assert res.status_code == 400
    assert res.json() == {"error": "user_id or email required"}

def test_list_orders_by_user(api_client, order_store):
    order_store.rows = {
        "cs_a": {"stripe_session_id": "cs_a", "user_id": "u1", "created_at": "2024-01-01T00:00:00+00:00"},
        "cs_b": {"stripe_session_id": "cs_b", "user_id": "u1", "created_at": "2024-05-01T00:00:00+00:00"},
        "cs_c": {"stripe_session_id": "cs_c", "user_id": "u2", "created_at": "2024-03-01T00:00:00+00:00"},
    }
    res = api_client.get("/api/orders", params={"user_id": "u1"})
    assert res.status_code == 200
    assert [o["stripe_session_id"] for o in res.json()["orders"]] == ["cs_b", "cs_a"]

def test_list_orders_wrong_method(api_client):
    res = api_client.post("/api/orders")
    assert res.status_code == 405
    assert res.json() == {"error": "Method not allowed"}
