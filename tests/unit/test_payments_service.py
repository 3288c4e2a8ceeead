import json
import pytest

from artshop import config
from artshop.errors import ConfigurationError, UpstreamError, ValidationError
from artshop.payments import service


def test_create_checkout_session_params(gateway, cart_item):
    result = service.create_checkout_session(
        gateway=gateway,
        cart=[cart_item(total=120), cart_item(title="Harbor", total=80.5)],
        origin="https://shop.example",
        customer_email="buyer@example.com",
        user_id="3f2b8c1e-9d4a-4c6b-8e21-5a7f0d9b1c42",
    )

    assert result == {"url": "https://checkout.stripe.com/c/pay/cs_test_1", "sessionId": "cs_test_1"}
    params = gateway.created[0]
    assert params["mode"] == "payment"
    assert params["payment_method_types"] == ["card"]
    assert [li["price_data"]["unit_amount"] for li in params["line_items"]] == [12000, 8050]
    assert params["success_url"] == "https://shop.example?checkout=success&session_id={CHECKOUT_SESSION_ID}"
    assert params["cancel_url"] == "https://shop.example?checkout=cancel"
    assert params["customer_email"] == "buyer@example.com"
    assert params["metadata"]["user_id"] == "3f2b8c1e-9d4a-4c6b-8e21-5a7f0d9b1c42"
    assert len(json.loads(params["metadata"]["cart"])) == 2
    assert len(params["shipping_address_collection"]["allowed_countries"]) == 18
    assert "NZ" in params["shipping_address_collection"]["allowed_countries"]

def test_shipping_options():
    standard, express = service.shipping_options("usd")
    assert standard["shipping_rate_data"]["display_name"] == "Standard Shipping"
    assert standard["shipping_rate_data"]["fixed_amount"] == {"amount": 0, "currency": "usd"}
    assert standard["shipping_rate_data"]["delivery_estimate"]["minimum"]["value"] == 5
    assert standard["shipping_rate_data"]["delivery_estimate"]["maximum"]["value"] == 10
    assert express["shipping_rate_data"]["display_name"] == "Express Shipping"
    assert express["shipping_rate_data"]["fixed_amount"]["amount"] == 1500
    assert express["shipping_rate_data"]["delivery_estimate"]["maximum"] == {"unit": "business_day", "value": 4}

def test_default_origin_and_no_email(monkeypatch, gateway, cart_item):
    monkeypatch.setattr(config, "DEFAULT_ORIGIN", "https://default.example")
    service.create_checkout_session(gateway=gateway, cart=[cart_item()])
    params = gateway.created[0]
    assert params["success_url"].startswith("https://default.example?checkout=success")
    assert "customer_email" not in params
    assert "user_id" not in params["metadata"]

def test_empty_cart_rejected_before_key_check(gateway):
    gateway.api_key = ""
    with pytest.raises(ValidationError):
        service.create_checkout_session(gateway=gateway, cart=[])
    assert gateway.created == []

def test_missing_key_makes_no_outbound_call(gateway, cart_item):
    gateway.api_key = ""
    with pytest.raises(ConfigurationError) as exc:
        service.create_checkout_session(gateway=gateway, cart=[cart_item()])
    assert exc.value.status_code == 500
    assert gateway.created == []

def test_malformed_item_is_upstream_error(gateway):
    with pytest.raises(UpstreamError) as exc:
        service.create_checkout_session(gateway=gateway, cart=[{"artwork": {"title": "x"}}])
    assert exc.value.message.startswith("Invalid cart item")
    assert gateway.created == []

def test_gateway_failure_is_upstream_error(monkeypatch, gateway, cart_item):
    def _boom(**params):
        raise RuntimeError("stripe exploded")

    monkeypatch.setattr(gateway, "create_checkout_session", _boom)
    with pytest.raises(UpstreamError) as exc:
        service.create_checkout_session(gateway=gateway, cart=[cart_item()])
    assert exc.value.message == "stripe exploded"

def test_user_id_normalized(gateway, cart_item):
    service.create_checkout_session(gateway=gateway, cart=[cart_item()], user_id="3F2B8C1E-9D4A-4C6B-8E21-5A7F0D9B1C42")
    assert gateway.created[0]["metadata"]["user_id"] == "3f2b8c1e-9d4a-4c6b-8e21-5a7f0d9b1c42"

@pytest.mark.parametrize("user_id", ["user-1", "42", "not-a-uuid"])
def test_invalid_user_id_rejected_before_stripe(gateway, cart_item, user_id):
    with pytest.raises(ValidationError) as exc:
        service.create_checkout_session(gateway=gateway, cart=[cart_item()], user_id=user_id)
    assert exc.value.message == "Invalid userId"
    assert gateway.created == []

def test_empty_user_id_is_anonymous(gateway, cart_item):
    service.create_checkout_session(gateway=gateway, cart=[cart_item()], user_id="")
    assert "user_id" not in gateway.created[0]["metadata"]
