from artshop.health import service as health_service


def test_health_root(client):
    res = client.get("/health")
    assert res.status_code == 200
    assert res.json() == {"ok": True}

def test_health_supabase(client, monkeypatch):
    monkeypatch.setattr(health_service, "health_supabase_info", lambda: {"connect_ok": True})
    res = client.get("/health/supabase")
    assert res.status_code == 200
    assert res.json() == {"connect_ok": True}

def test_health_stripe(client):
    res = client.get("/health/stripe")
    assert res.status_code == 200
    assert set(res.json()) >= {"secret_key_set", "webhook_secret_set", "key_mode"}

def test_health_rate_limit_disabled_in_tests(client):
    res = client.get("/health/rate-limit")
    assert res.status_code == 200
    assert res.json()["enabled"] is False

def test_unknown_route_is_json_error(client):
    res = client.get("/api/nope")
    assert res.status_code == 404
    assert res.json() == {"error": "Not Found"}
