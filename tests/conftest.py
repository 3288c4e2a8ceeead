import os

# Avant l'import de l'app: pas d'init Redis, hôtes de test acceptés
os.environ.setdefault("DISABLE_FASTAPI_LIMITER_INIT_FOR_TESTS", "1")
os.environ.setdefault("CORS_ORIGINS", "*")

import copy
import hashlib
import hmac
import json
import threading
import time
from typing import Any, Dict, Generator, List, Optional

import pytest
from fastapi.testclient import TestClient

from artshop.app import app as fastapi_app
from artshop import dependencies
from artshop.dependencies import WebhookSettings
from artshop.errors import NotFoundError, UpstreamError
from artshop.infra.stripe_client import StripeGateway

WEBHOOK_SECRET = "whsec_test_secret"

# Marquage automatique selon le dossier
def pytest_collection_modifyitems(config, items):
    for item in items:
        nodeid = item.nodeid.replace("\\", "/")
        if "tests/unit/" in nodeid:
            item.add_marker(pytest.mark.unit)
        elif "tests/integration/" in nodeid:
            item.add_marker(pytest.mark.integration)


class FakeOrderRepository:
    """Store 'orders' en mémoire avec contrainte UNIQUE(stripe_session_id)."""

    def __init__(self):
        self.rows: Dict[str, Dict[str, Any]] = {}
        self._lock = threading.Lock()

    def insert_if_absent(self, row: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        with self._lock:
            if row["stripe_session_id"] in self.rows:
                return None
            stored = dict(copy.deepcopy(row), id=len(self.rows) + 1)
            self.rows[row["stripe_session_id"]] = stored
            return stored

    def mark_failed_by_payment_intent(self, payment_intent_id: str) -> int:
        with self._lock:
            matched = [r for r in self.rows.values() if r.get("stripe_payment_intent") == payment_intent_id]
            for r in matched:
                r["status"] = "failed"
            return len(matched)

    def list_orders(self, user_id: Optional[str] = None, email: Optional[str] = None) -> List[Dict[str, Any]]:
        rows = [
            r for r in self.rows.values()
            if (user_id and r.get("user_id") == user_id) or (email and r.get("customer_email") == email)
        ]
        return sorted(rows, key=lambda r: r["created_at"], reverse=True)


class FailingOrderRepository(FakeOrderRepository):
    def insert_if_absent(self, row):
        raise UpstreamError("Failed to save order: connection refused")

    def mark_failed_by_payment_intent(self, payment_intent_id):
        raise UpstreamError("Failed to update order: connection refused")


class FakeAnalyticsRepository:
    def __init__(self):
        self.events: List[Dict[str, Any]] = []

    def track(self, event_type, order_id, price, item_count):
        self.events.append({"event_type": event_type, "order_id": order_id, "price": price, "item_count": item_count})


class FakeStripeGateway(StripeGateway):
    """Gateway Stripe sans réseau: sessions en mémoire, appels enregistrés."""

    def __init__(self, api_key: str = "sk_test_fake"):
        super().__init__(api_key)
        self.sessions: Dict[str, Dict[str, Any]] = {}
        self.created: List[Dict[str, Any]] = []
        self.retrieved: List[str] = []

    def create_checkout_session(self, **params):
        self.require_key()
        self.created.append(params)
        sid = f"cs_test_{len(self.created)}"
        return {"id": sid, "url": f"https://checkout.stripe.com/c/pay/{sid}"}

    def retrieve_checkout_session(self, session_id, expand=None):
        self.require_key()
        self.retrieved.append(session_id)
        if session_id not in self.sessions:
            raise NotFoundError(f"Session introuvable: {session_id}")
        return self.sessions[session_id]


def make_cart_item(title="Sunset", size="Large", total=120.0, frame_label="Black Oak"):
    return {
        "artwork": {"id": "art-1", "title": title, "image": "https://img.example/sunset.jpg"},
        "size": {"name": size, "dimensions": "24x36 in"},
        "frame": {"name": "black-oak", "label": frame_label},
        "total": total,
    }

def make_session(
    session_id="cs_test_1",
    payment_status="paid",
    amount_total=13500,
    payment_intent="pi_1",
    cart=None,
    user_id=None,
    email="buyer@example.com",
):
    metadata = {"cart": json.dumps(cart if cart is not None else [{"artworkId": "art-1", "price": 120.0}])}
    if user_id:
        metadata["user_id"] = user_id
    return {
        "id": session_id,
        "object": "checkout.session",
        "payment_intent": payment_intent,
        "payment_status": payment_status,
        "status": "complete",
        "amount_total": amount_total,
        "currency": "usd",
        "customer_details": {"email": email},
        "shipping_details": {
            "name": "Ada Lovelace",
            "address": {"line1": "1 Main St", "line2": None, "city": "Springfield",
                        "state": "IL", "postal_code": "62701", "country": "US"},
        },
        "shipping_cost": {"amount_total": 1500},
        "metadata": metadata,
    }

def make_event(event_type: str, obj: Dict[str, Any], event_id="evt_1") -> Dict[str, Any]:
    return {"id": event_id, "object": "event", "type": event_type, "data": {"object": obj}}

def sign_payload(payload: bytes, secret: str = WEBHOOK_SECRET, timestamp: Optional[int] = None) -> str:
    """En-tête Stripe-Signature: t=<ts>,v1=HMAC-SHA256(secret, "<ts>.<payload>")."""
    ts = int(time.time()) if timestamp is None else timestamp
    signed = f"{ts}.".encode("utf-8") + payload
    sig = hmac.new(secret.encode("utf-8"), signed, hashlib.sha256).hexdigest()
    return f"t={ts},v1={sig}"


@pytest.fixture(scope="session")
def app():
    return fastapi_app

@pytest.fixture()
def client(app) -> Generator[TestClient, None, None]:
    with TestClient(app) as c:
        yield c

@pytest.fixture()
def order_store() -> FakeOrderRepository:
    return FakeOrderRepository()

@pytest.fixture()
def analytics_store() -> FakeAnalyticsRepository:
    return FakeAnalyticsRepository()

@pytest.fixture()
def gateway() -> FakeStripeGateway:
    return FakeStripeGateway()

@pytest.fixture()
def api_client(app, client, gateway, order_store, analytics_store):
    """Client HTTP avec Stripe/Supabase remplacés par les faux en mémoire."""
    overrides = {
        dependencies.get_stripe_gateway: lambda: gateway,
        dependencies.get_webhook_settings: lambda: WebhookSettings(secret=WEBHOOK_SECRET),
        dependencies.get_optional_order_writer: lambda: order_store,
        dependencies.get_order_reader: lambda: order_store,
        dependencies.get_optional_analytics: lambda: analytics_store,
    }
    app.dependency_overrides.update(overrides)
    try:
        yield client
    finally:
        app.dependency_overrides.clear()

# Les modules de test n'importent pas conftest: les helpers sont exposés en fixtures
@pytest.fixture()
def failing_store() -> FailingOrderRepository:
    return FailingOrderRepository()

@pytest.fixture()
def cart_item():
    return make_cart_item

@pytest.fixture()
def stripe_session():
    return make_session

@pytest.fixture()
def stripe_event():
    return make_event

@pytest.fixture()
def sign():
    return sign_payload

@pytest.fixture()
def webhook_secret() -> str:
    return WEBHOOK_SECRET
