"""Réconciliation des commandes à partir des observations Stripe.

Deux déclencheurs convergent ici:
- webhook (checkout.session.completed / payment_intent.payment_failed), via handle_event
- lecture directe d'une session (/api/order-status), via reconcile_completed

L'idempotence repose sur la contrainte UNIQUE(stripe_session_id) et un upsert
« ignore duplicates »: deux réconciliations concurrentes de la même session
produisent une seule ligne, et une commande déjà 'failed' n'est jamais réécrite
par une livraison tardive de l'événement 'completed'.
"""
import logging
from decimal import Decimal
from typing import Any, Dict, List, Optional

from artshop.errors import UpstreamError
from artshop.orders.models import OrderView
from artshop.orders.repository import AnalyticsRepository, OrderRepository, now_iso
from artshop.payments.metadata import extract_metadata
from artshop.payments.models import (
    CheckoutCompletedEvent,
    CheckoutSession,
    PaymentFailedEvent,
    WebhookEvent,
)

logger = logging.getLogger(__name__)

def from_minor_units(amount: Optional[int]) -> Optional[float]:
    if amount is None:
        return None
    return float(Decimal(amount) / 100)

def build_order_view(session: CheckoutSession, items: List[Dict[str, Any]]) -> OrderView:
    return OrderView(
        success=session.payment_status == "paid",
        order_id=session.id,
        payment_intent=session.payment_intent,
        customer_email=session.customer_email,
        total_amount=from_minor_units(session.amount_total),
        currency=session.currency,
        shipping_address=session.shipping,
        items=items,
        payment_status=session.payment_status,
    )

def build_order_row(session: CheckoutSession, items: List[Dict[str, Any]], user_id: Optional[str] = None) -> Dict[str, Any]:
    """Ligne 'orders' pour une session payée (items = copie dénormalisée du panier)."""
    now = now_iso()
    return {
        "stripe_session_id": session.id,
        "stripe_payment_intent": session.payment_intent,
        "status": "paid",
        "total_amount": from_minor_units(session.amount_total),
        "currency": session.currency,
        "customer_email": session.customer_email,
        "user_id": user_id,
        "shipping_address": session.shipping.model_dump() if session.shipping else None,
        "items": items,
        "metadata": {
            "shipping_cost": from_minor_units(session.shipping_cost) or 0,
            "payment_status": session.payment_status,
        },
        "created_at": now,
        "updated_at": now,
    }

def _track_order_complete(analytics: Optional[AnalyticsRepository], view: OrderView) -> None:
    # Fire-and-forget: ne doit jamais faire échouer l'écriture de la commande
    if analytics is None:
        return
    try:
        analytics.track("order_complete", view.order_id, view.total_amount, len(view.items))
    except Exception:
        logger.exception("Failed to track analytics order_id=%s", view.order_id)

def reconcile_completed(
    session: CheckoutSession,
    orders: OrderRepository,
    analytics: Optional[AnalyticsRepository] = None,
) -> OrderView:
    """
    Matérialise la commande d'une session terminée, de façon idempotente.
    - Session non payée (ex: paiement différé): rien n'est écrit
    - Première observation 'paid': insertion status='paid' puis événement analytics
    - Observations suivantes: no-op
    Lève UpstreamError si l'écriture échoue; retourne la vue normalisée sinon.
    """
    user_id, items = extract_metadata(session.metadata)
    view = build_order_view(session, items)
    if session.payment_status != "paid":
        logger.info("orders.reconcile session_id=%s payment_status=%s: not persisted", session.id, session.payment_status)
        return view

    created = orders.insert_if_absent(build_order_row(session, items, user_id))
    if created is None:
        logger.info("orders.reconcile session_id=%s already recorded", session.id)
        return view

    logger.info("Order saved to Supabase: %s (session_id=%s)", created.get("id"), session.id)
    _track_order_complete(analytics, view)
    return view

def reconcile_failed(payment_intent_id: str, orders: OrderRepository) -> int:
    """
    Passe la commande liée au PaymentIntent en 'failed'.
    Aucune commande correspondante (échec arrivé avant 'completed', ou jamais payée): no-op.
    """
    updated = orders.mark_failed_by_payment_intent(payment_intent_id)
    if not updated:
        logger.info("orders.reconcile payment_intent=%s: no matching order", payment_intent_id)
    return updated

def handle_event(
    event: WebhookEvent,
    orders: OrderRepository,
    analytics: Optional[AnalyticsRepository] = None,
) -> Dict[str, Any]:
    """
    Traite un événement webhook déjà authentifié.
    Les échecs d'écriture sont loggués mais pas propagés: Stripe attend un 200,
    et relivrer un événement ne corrige pas une base en erreur (remédiation hors bande).
    """
    if isinstance(event, CheckoutCompletedEvent):
        logger.info("Checkout session completed: %s (event=%s)", event.session.id, event.type)
        try:
            reconcile_completed(event.session, orders, analytics)
        except UpstreamError:
            logger.exception("Failed to save order session_id=%s", event.session.id)
    elif isinstance(event, PaymentFailedEvent):
        logger.info("Payment failed: %s (event=%s)", event.payment_intent_id, event.type)
        try:
            reconcile_failed(event.payment_intent_id, orders)
        except UpstreamError:
            logger.exception("Failed to mark order failed payment_intent=%s", event.payment_intent_id)
    return {"received": True}
